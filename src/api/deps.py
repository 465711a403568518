from functools import lru_cache

from fastapi import Depends
from redis import asyncio as aioredis
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.db.session import get_session
from src.repositories.short_link import ShortLinkRepository
from src.repositories.user import UserRepository
from src.services.visitor_classifier import GeoLocator, MaxMindGeoLocator, NullGeoLocator


async def get_redis_client(
        # db_number: int = 1
) -> Redis:
    redis = await aioredis.from_url(
        f"redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}",
        password=settings.REDIS_PASSWORD or None,
        max_connections=10,
        encoding="utf8",
        decode_responses=True,
        db=0
    )
    return redis


@lru_cache()
def get_geo_locator() -> GeoLocator:
    # the reader is memory-mapped once per process
    if settings.GEOIP_DATABASE_PATH:
        return MaxMindGeoLocator(settings.GEOIP_DATABASE_PATH)
    return NullGeoLocator()


def get_user_repository(
        session: AsyncSession = Depends(get_session),
) -> UserRepository:
    return UserRepository(db=session)


def get_link_repository(
        session: AsyncSession = Depends(get_session),
) -> ShortLinkRepository:
    return ShortLinkRepository(db=session)
