from fastapi import APIRouter, status
from fastapi.responses import PlainTextResponse, Response

from src.api.v1 import gate, links, user

home_router = APIRouter()


@home_router.get("/", response_description="Homepage", include_in_schema=False)
async def home() -> Response:
    return PlainTextResponse("LinkGate API", status_code=status.HTTP_200_OK)


api_router = APIRouter()
api_router.include_router(user.router, tags=["User"], prefix="/v1/user")
api_router.include_router(links.router, tags=["Links"], prefix="/v1/links")
api_router.include_router(gate.router, tags=["Gate"], prefix="/v1/gate")
