import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi_cache import FastAPICache
from fastapi_cache.backends.redis import RedisBackend
from starlette.responses import JSONResponse

from src.api import routes
from src.api.deps import get_redis_client
from src.core.config import settings
from src.utils.logger import init_logger, get_logger

# Инициализация loguru логирования
init_logger()
logger = get_logger(__name__)

app = FastAPI(
    title="LinkGate API",
    description="Link shortener with click attribution and earnings",
    version=settings.VERSION,
    openapi_url=f"/{settings.API_PREFIX}/openapi.json",
)


async def on_startup() -> None:
    redis_client = await get_redis_client()
    FastAPICache.init(RedisBackend(redis_client), prefix="fastapi-cache")
    logger.info("FastAPI app running...")


app.add_middleware(
    CORSMiddleware,
    allow_origins=[str(origin).rstrip("/") for origin in settings.BACKEND_CORS_ORIGINS] or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_event_handler("startup", on_startup)

app.include_router(routes.home_router)
app.include_router(routes.api_router, prefix=f"/{settings.API_PREFIX}")


# Error handler
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "status": "error",
            "message": exc.detail
        }
    )


if __name__ == "__main__":
    uvicorn.run("src.main:app", reload=True)
