from datetime import datetime, timedelta
from typing import List

from fastapi import APIRouter, Depends, Query, status
from fastapi_cache.decorator import cache

from src.api.deps import get_link_repository, get_user_repository
from src.core.config import settings
from src.models.short_link import ShortLink
from src.repositories.short_link import ShortLinkRepository
from src.repositories.user import UserRepository
from src.schemas.click import SClickRead
from src.schemas.common import IGetResponseBase, IPostResponseBase
from src.schemas.short_link import SLinkStats, SShortLinkCreate, SShortLinkRead, SShortLinkUpdate
from src.services.short_id import ShortIdAllocator
from src.utils.cache import link_stats_cache_key_builder
from src.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


def to_read(link: ShortLink) -> SShortLinkRead:
    link_read = SShortLinkRead.model_validate(link)
    link_read.short_url = f"{settings.BASE_URL.rstrip('/')}/{link.short_id}"
    return link_read


@router.post(
    "",
    response_description="Shorten a URL",
    response_model=IPostResponseBase[SShortLinkRead],
    status_code=status.HTTP_201_CREATED,
    summary="Create short link"
)
async def create_link(
        obj_in: SShortLinkCreate,
        link_repo: ShortLinkRepository = Depends(get_link_repository),
        user_repo: UserRepository = Depends(get_user_repository),
) -> IPostResponseBase[SShortLinkRead]:
    if obj_in.user_id is not None:
        await user_repo.ensure_exists(obj_in.user_id)

    short_id = await ShortIdAllocator(exists=link_repo.exists).allocate()
    link = await link_repo.create(obj_in, short_id=short_id)
    return IPostResponseBase(data=to_read(link))


@router.get(
    "/user/{user_id}",
    response_description="Get links of an owner",
    response_model=IGetResponseBase[List[SShortLinkRead]],
    summary="Get links of an owner"
)
async def get_user_links(
        user_id: int,
        page: int = Query(1, ge=1),
        limit: int = Query(50, ge=1, le=100),
        link_repo: ShortLinkRepository = Depends(get_link_repository),
) -> IGetResponseBase[List[SShortLinkRead]]:
    links = await link_repo.all(page=page, limit=limit, user_id=user_id)
    return IGetResponseBase(data=[to_read(link) for link in links], meta={"page": page, "limit": limit})


@router.get(
    "/{short_id}/stats",
    response_description="Link analytics",
    response_model=IGetResponseBase[SLinkStats],
    summary="Get link stats"
)
@cache(
    expire=settings.STATS_CACHE_SECONDS,
    key_builder=link_stats_cache_key_builder
)
async def get_link_stats(
        short_id: str,
        days: int = Query(settings.STATS_DEFAULT_DAYS, ge=1, le=365),
        link_repo: ShortLinkRepository = Depends(get_link_repository),
) -> IGetResponseBase[SLinkStats]:
    link = await link_repo.get(short_id=short_id)
    # the lookback window includes today
    since = datetime.utcnow().date() - timedelta(days=days - 1)

    country_stats = await link_repo.get_country_stats(link.id)
    daily_stats = await link_repo.get_daily_stats(link.id, since)
    recent_clicks = await link_repo.get_recent_clicks(link.id)

    stats = SLinkStats(
        link=to_read(link),
        days=days,
        device_stats=link.device_stats,
        country_stats=country_stats,
        daily_stats=daily_stats,
        recent_clicks=[SClickRead.model_validate(click) for click in recent_clicks],
    )
    return IGetResponseBase(data=stats)


@router.patch(
    "/{short_id}",
    response_description="Update link",
    response_model=IGetResponseBase[SShortLinkRead],
    summary="Rename or pause / resume a link"
)
async def update_link(
        short_id: str,
        obj_in: SShortLinkUpdate,
        link_repo: ShortLinkRepository = Depends(get_link_repository),
) -> IGetResponseBase[SShortLinkRead]:
    link = await link_repo.get(short_id=short_id)
    link = await link_repo.update(link, obj_in)
    logger.info(f"Link '{short_id}' updated: {obj_in.model_dump(exclude_unset=True)}")
    return IGetResponseBase(data=to_read(link))
