from datetime import datetime, timedelta
from typing import List

from fastapi import APIRouter, Depends, Query, status

from src.api.deps import get_link_repository, get_user_repository
from src.core.config import settings
from src.repositories.short_link import ShortLinkRepository
from src.repositories.user import UserRepository
from src.schemas.common import IGetResponseBase, IPostResponseBase
from src.schemas.user import (
    SCountryCount,
    SEarningsDay,
    SEarningsMonth,
    SEarningsSummary,
    SReferredUsers,
    SUserCreate,
    SUserRead,
    SUserUpdate,
)
from src.services.earnings import month_start, monthly_totals
from src.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "",
    response_description="Create new user",
    response_model=IPostResponseBase[SUserRead],
    status_code=status.HTTP_201_CREATED,
    summary="Create new user"
)
async def create_user(
        obj_in: SUserCreate,
        user_repo: UserRepository = Depends(get_user_repository),
) -> IPostResponseBase[SUserRead]:
    logger.info(f"Creating user: {obj_in.email} (referral code: {obj_in.referral_code})")
    user = await user_repo.create(obj_in=obj_in)
    return IPostResponseBase(data=SUserRead.model_validate(user))


@router.get(
    "/referral-code/{referral_code}",
    response_description="Get user by referral_code",
    response_model=IGetResponseBase[int],
    summary="Get user by referral_code"
)
async def get_user_by_referral_code(
        referral_code: str,
        user_repo: UserRepository = Depends(get_user_repository),
) -> IGetResponseBase[int]:
    user = await user_repo.get(referral_code=referral_code)
    return IGetResponseBase(data=user.id)


@router.get(
    "/{user_id}",
    response_description="Get user by id",
    response_model=IGetResponseBase[SUserRead],
    summary="Get user with balances"
)
async def get_user(
        user_id: int,
        user_repo: UserRepository = Depends(get_user_repository),
) -> IGetResponseBase[SUserRead]:
    user = await user_repo.get(id=user_id)
    return IGetResponseBase(data=SUserRead.model_validate(user))


@router.patch(
    "/{user_id}",
    response_description="Update user by id",
    response_model=IGetResponseBase[SUserRead],
    summary="Update name, CPM rate or referral commission"
)
async def update_user(
        user_id: int,
        obj_in: SUserUpdate,
        user_repo: UserRepository = Depends(get_user_repository),
) -> IGetResponseBase[SUserRead]:
    user = await user_repo.get(id=user_id)
    user = await user_repo.update(obj_current=user, obj_in=obj_in)
    return IGetResponseBase(data=SUserRead.model_validate(user))


@router.get(
    "/{user_id}/referrals",
    response_description="Get referred users",
    response_model=IGetResponseBase[List[SReferredUsers]],
    summary="Get users invited by this user"
)
async def get_referrals(
        user_id: int,
        user_repo: UserRepository = Depends(get_user_repository),
) -> IGetResponseBase[List[SReferredUsers]]:
    await user_repo.ensure_exists(user_id)
    referrals = await user_repo.get_referred_users(user_id)
    return IGetResponseBase(data=[SReferredUsers.model_validate(u) for u in referrals])


@router.get(
    "/{user_id}/earnings",
    response_description="Earnings summary",
    response_model=IGetResponseBase[SEarningsSummary],
    summary="Link totals, daily and monthly earnings, top countries"
)
async def get_earnings_summary(
        user_id: int,
        days: int = Query(settings.STATS_DEFAULT_DAYS, ge=1, le=365),
        user_repo: UserRepository = Depends(get_user_repository),
        link_repo: ShortLinkRepository = Depends(get_link_repository),
) -> IGetResponseBase[SEarningsSummary]:
    user = await user_repo.get(id=user_id)
    today = datetime.utcnow().date()
    since = today - timedelta(days=days - 1)
    # current month plus the previous ones
    months_since = month_start(today, settings.EARNINGS_SUMMARY_MONTHS - 1)

    totals = await link_repo.get_owner_totals(user_id)
    daily = await link_repo.get_owner_daily_totals(user_id, since)
    monthly = monthly_totals(await link_repo.get_owner_daily_totals(user_id, months_since))
    top_countries = await link_repo.get_owner_top_countries(user_id, limit=10)

    summary = SEarningsSummary(
        user_id=user.id,
        days=days,
        total_links=totals["links"],
        total_clicks=totals["clicks"],
        total_earnings=user.total_earnings,
        pending_earnings=user.pending_earnings,
        referral_earnings=user.referral_earnings,
        daily=[SEarningsDay(**row) for row in daily],
        monthly=[SEarningsMonth(**row) for row in monthly],
        top_countries=[SCountryCount(**row) for row in top_countries],
    )
    return IGetResponseBase(data=summary)
