from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.core.config import settings


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_pre_ping": True,
        "pool_recycle": 1800,
        "pool_size": settings.POOL_SIZE,
        "max_overflow": settings.MAX_OVERFLOW,
    }


engine = create_async_engine(
    settings.POSTGRES_URL,
    echo=False,
    future=True,
    **_engine_kwargs(settings.POSTGRES_URL),
)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


async def get_session() -> AsyncIterator[AsyncSession]:
    async with async_session_maker() as session:
        yield session


# for tasks and management commands: `async with session_scope() as session`
session_scope = asynccontextmanager(get_session)
