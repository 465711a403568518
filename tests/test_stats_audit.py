"""
Тесты сверки счётчиков: сервис, celery задача и management команда.
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest
from click.testing import CliRunner
from sqlalchemy import update
from unittest.mock import patch

from src.db import session as db_session
from src.management.commands.audit_stats import audit_stats
from src.models.short_link import ShortLink
from src.services.stats_audit import audit_link_stats
from src.tasks.stats_audit import audit_link_stats_task


async def tamper(session_maker, short_id, **values):
    async with session_maker() as s:
        await s.execute(update(ShortLink).where(ShortLink.short_id == short_id).values(**values))
        await s.commit()


@pytest.fixture
def drifting_db(session_maker, geo_locator, monkeypatch):
    """Две ссылки с кликами, у одной счётчики расходятся с бакетами."""
    from src.repositories.short_link import ShortLinkRepository
    from src.repositories.user import UserRepository
    from src.schemas.click import SVisit
    from src.schemas.short_link import SShortLinkCreate
    from src.schemas.user import SUserCreate
    from src.services.click_pipeline import ClickRecorder

    async def seed():
        async with session_maker() as s:
            owner = await UserRepository(db=s).create(SUserCreate(email="audit@linkgate.io", name="audit"))
            for short_id in ["clean1", "drift1"]:
                await ShortLinkRepository(db=s).create(
                    SShortLinkCreate(original_url="https://example.com/a", user_id=owner.id), short_id=short_id
                )
        for short_id in ["clean1", "drift1", "drift1"]:
            async with session_maker() as s:
                link = await ShortLinkRepository(db=s).find_active(short_id)
                await ClickRecorder(s, geo_locator).record_visit(link, SVisit(client_ip="8.8.8.8"))
        await tamper(session_maker, "drift1", clicks=7, total_earnings=Decimal("1"))

    asyncio.run(seed())
    monkeypatch.setattr(db_session, "async_session_maker", session_maker)
    return session_maker


def test_audit_reports_drift(drifting_db):
    async def run():
        async with drifting_db() as s:
            return await audit_link_stats(s)

    result = asyncio.run(run())

    assert result["drift_count"] == 1
    assert result["repaired_count"] == 0
    row = result["links"][0]
    assert row["short_id"] == "drift1"
    assert (row["clicks"], row["daily_clicks"]) == (7, 2)
    assert row["daily_earnings"] == Decimal("0.005")


def test_audit_repair(drifting_db):
    async def run():
        async with drifting_db() as s:
            repaired = await audit_link_stats(s, repair=True)
        async with drifting_db() as s:
            again = await audit_link_stats(s)
            link = await s.get(ShortLink, repaired["links"][0]["link_id"])
        return repaired, again, link

    repaired, again, link = asyncio.run(run())

    assert repaired["repaired_count"] == 1
    assert again["drift_count"] == 0
    assert link.clicks == 2
    assert link.total_earnings == Decimal("0.005")


async def test_reset_keeps_clicks_made_after_drift_check(make_user, make_link, visit, session_maker, fetch):
    from src.repositories.short_link import ShortLinkRepository

    owner = await make_user("late.io")
    link = await make_link("late01", user_id=owner.id)
    await visit("late01")
    await tamper(session_maker, "late01", clicks=9)

    async with session_maker() as s:
        repo = ShortLinkRepository(db=s)
        drift = await repo.get_counter_drift()
        await s.commit()
        assert [row["daily_clicks"] for row in drift] == [1]

        # a click lands between the check and the repair
        await visit("late01")

        clicks, total_earnings = await repo.reset_counters(drift[0]["link_id"])

    async with session_maker() as s:
        daily = await ShortLinkRepository(db=s).get_daily_stats(link.id, since=date(2000, 1, 1))
    stored = await fetch(ShortLink, link.id)
    assert clicks == stored.clicks == sum(d.clicks for d in daily) == 2
    assert total_earnings == stored.total_earnings == sum(d.earnings for d in daily) == Decimal("0.005")


def test_link_without_buckets_is_consistent(session_maker):
    from src.repositories.short_link import ShortLinkRepository
    from src.schemas.short_link import SShortLinkCreate

    async def run():
        async with session_maker() as s:
            await ShortLinkRepository(db=s).create(SShortLinkCreate(original_url="https://example.com/"),
                                                   short_id="empty1")
            return await audit_link_stats(s)

    assert asyncio.run(run())["drift_count"] == 0


class TestAuditTask:

    def test_task_runs_audit(self, drifting_db):
        result = audit_link_stats_task.apply(kwargs={"repair": False}).get()

        assert result["drift_count"] == 1
        assert result["links"][0]["short_id"] == "drift1"
        # JSON friendly for the result backend
        assert result["links"][0]["daily_earnings"] == "0.00500000"

    def test_task_repair(self, drifting_db):
        result = audit_link_stats_task.apply(kwargs={"repair": True}).get()

        assert result["repaired_count"] == 1
        assert audit_link_stats_task.apply().get()["drift_count"] == 0

    def test_task_is_scheduled_daily(self):
        from src.tasks.celery_app import celery_app

        schedule = celery_app.conf.beat_schedule["audit-link-stats-daily"]
        assert schedule["task"] == audit_link_stats_task.name
        assert schedule["kwargs"] == {"repair": False}


class TestAuditCommand:

    def test_reports_drift(self, drifting_db):
        result = CliRunner().invoke(audit_stats, [])

        assert result.exit_code == 0
        assert "Found 1 drifting links" in result.output

    def test_verbose_lists_links(self, drifting_db):
        result = CliRunner().invoke(audit_stats, ["--verbose"])

        assert result.exit_code == 0
        assert "drift1: clicks 7 (buckets 2)" in result.output
        assert "clean1" not in result.output

    def test_repair(self, drifting_db):
        runner = CliRunner()

        result = runner.invoke(audit_stats, ["--repair"])
        assert "Repaired 1 of 1 drifting links." in result.output

        result = runner.invoke(audit_stats, [])
        assert "All link counters match their daily buckets." in result.output

    def test_failure_is_reported(self):
        with patch("src.management.commands.audit_stats._audit_stats_async", side_effect=RuntimeError("db down")):
            result = CliRunner().invoke(audit_stats, [])

        assert result.exit_code == 1
        assert "db down" in result.output
