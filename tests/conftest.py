"""
Общие фикстуры: временная SQLite база (aiosqlite) и клиент FastAPI.

Транзакции открываются как BEGIN IMMEDIATE, поэтому параллельные визиты
сериализуются так же, как на блокировке строки в PostgreSQL.
"""

import pytest
from fastapi.testclient import TestClient
from fastapi_cache import FastAPICache
from fastapi_cache.backends.inmemory import InMemoryBackend
from sqlalchemy import create_engine, event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

import src.models  # noqa: F401
from src.repositories.short_link import ShortLinkRepository
from src.repositories.user import UserRepository
from src.schemas.click import SVisit
from src.schemas.short_link import SShortLinkCreate
from src.schemas.user import SUserCreate
from fakes import DESKTOP_UA, GEO_TABLE, StubGeoLocator


@pytest.fixture
def geo_locator():
    return StubGeoLocator(GEO_TABLE)


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'linkgate.db'}"


@pytest.fixture
def engine(db_url):
    sync_engine = create_engine(db_url.replace("+aiosqlite", ""))
    SQLModel.metadata.create_all(sync_engine)
    sync_engine.dispose()

    # NullPool: TestClient runs the app in its own event loop
    async_engine = create_async_engine(db_url, poolclass=NullPool, connect_args={"timeout": 30})

    @event.listens_for(async_engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(async_engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    yield async_engine


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def make_user(session):
    async def _make_user(email: str, referral_code: str = None, **fields):
        repo = UserRepository(db=session)
        user = await repo.create(SUserCreate(email=email, name=email.split("@")[0], referral_code=referral_code))
        if fields:
            for field, value in fields.items():
                setattr(user, field, value)
            await session.commit()
            await session.refresh(user)
        # release the write lock taken by refresh
        await session.commit()
        return user

    return _make_user


@pytest.fixture
def make_link(session):
    async def _make_link(short_id: str, user_id: int = None, url: str = "https://example.com/landing"):
        repo = ShortLinkRepository(db=session)
        link = await repo.create(SShortLinkCreate(original_url=url, user_id=user_id), short_id=short_id)
        await session.commit()
        return link

    return _make_link


@pytest.fixture
def client(session_maker, geo_locator, monkeypatch):
    from src.api.deps import get_geo_locator
    from src.db import session as db_session
    from src.db.session import get_session
    from src.main import app

    async def override_get_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_geo_locator] = lambda: geo_locator
    monkeypatch.setattr(db_session, "async_session_maker", session_maker)
    FastAPICache.init(InMemoryBackend(), prefix="test-cache")

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def fetch(session_maker):
    """Свежая копия строки из отдельной сессии."""
    async def _fetch(model, obj_id):
        async with session_maker() as s:
            return await s.get(model, obj_id)

    return _fetch


@pytest.fixture
def visit(session_maker, geo_locator):
    """Один визит на gate-страницу в собственной сессии."""
    from src.services.click_pipeline import ClickRecorder

    async def _visit(short_id: str, ip: str = "8.8.8.8", user_agent: str = DESKTOP_UA, **fields):
        async with session_maker() as s:
            link = await ShortLinkRepository(db=s).find_active(short_id)
            assert link is not None, f"link {short_id} is not active"
            return await ClickRecorder(s, geo_locator).record_visit(
                link, SVisit(client_ip=ip, user_agent=user_agent, **fields)
            )

    return _visit
