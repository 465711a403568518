from decimal import Decimal

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_geo_locator
from src.core.exceptions import ObjectNotFoundException, StorageUnavailable
from src.db.session import get_session
from src.repositories.short_link import ShortLinkRepository
from src.schemas.click import SVisit
from src.schemas.common import IGetResponseBase
from src.schemas.short_link import SGateVisit
from src.services.click_pipeline import ClickRecorder
from src.services.visitor_classifier import GeoLocator, client_ip_from_headers
from src.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


def visit_from_request(request: Request) -> SVisit:
    remote_addr = request.client.host if request.client else None
    return SVisit(
        client_ip=client_ip_from_headers(request.headers.get("x-forwarded-for"), remote_addr),
        user_agent=request.headers.get("user-agent"),
        referer=request.headers.get("referer"),
    )


@router.get(
    "/{short_id}",
    response_description="Gate page visit",
    response_model=IGetResponseBase[SGateVisit],
    summary="Record a visit and return the destination"
)
async def gate_visit(
        short_id: str,
        request: Request,
        session: AsyncSession = Depends(get_session),
        geo_locator: GeoLocator = Depends(get_geo_locator),
) -> IGetResponseBase[SGateVisit]:
    link = await ShortLinkRepository(db=session).find_active(short_id)
    if link is None:
        raise ObjectNotFoundException("Link not found")

    destination_url = link.original_url
    recorded, earned = True, Decimal(0)
    try:
        outcome = await ClickRecorder(session, geo_locator).record_visit(link, visit_from_request(request))
        earned = outcome.earned
    except StorageUnavailable as exc:
        # the visitor still gets the destination
        logger.warning(f"Gate visit on '{short_id}' served without recording: {exc.detail}")
        recorded = False

    return IGetResponseBase(
        data=SGateVisit(short_id=short_id, destination_url=destination_url, recorded=recorded, earned=earned)
    )
