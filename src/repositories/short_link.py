from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import delete, desc, func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import select

from src.core.config import settings
from src.core.exceptions import DatabaseException, DuplicateObjectException, ObjectNotFoundException
from src.models.link_stats import LinkClick, LinkCountryStat, LinkDailyCountryStat, LinkDailyStat
from src.models.short_link import ShortLink
from src.repositories.sqlalchemy import BaseSQLAlchemyRepository
from src.schemas.short_link import SDailyStat, SShortLinkCreate, SShortLinkUpdate
from src.utils.logger import get_logger

logger = get_logger(__name__)

DEVICE_COLUMNS = {
    "desktop": "desktop_clicks",
    "mobile": "mobile_clicks",
    "tablet": "tablet_clicks",
    "unknown": "unknown_clicks",
}


class ShortLinkRepository(BaseSQLAlchemyRepository[ShortLink, SShortLinkCreate, SShortLinkUpdate]):
    _model = ShortLink
    _join_models = []

    async def create(self, obj_in: SShortLinkCreate, short_id: str = None) -> ShortLink:
        """
        Create a short link under an already allocated short_id.
        """
        if not short_id:
            raise ValueError("short_id must be allocated before the link is created")

        db_obj = ShortLink(
            short_id=short_id,
            original_url=str(obj_in.original_url),
            title=obj_in.title or "",
            user_id=obj_in.user_id,
        )
        self.db.add(db_obj)
        try:
            await self.db.commit()
            await self.db.refresh(db_obj)
            logger.info(f"Short link '{short_id}' created for user {obj_in.user_id}.")
            return db_obj
        except IntegrityError as exc:
            await self.db.rollback()
            logger.error(f"IntegrityError during short link creation: {exc}")
            raise DuplicateObjectException(f"Short link '{short_id}' already exists.") from exc
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error(f"SQLAlchemyError during short link creation: {exc}")
            raise DatabaseException("An error occurred while creating the short link.") from exc

    async def exists(self, short_id: str) -> bool:
        """
        Check whether a short_id is taken, active or not.
        """
        query = select(func.count(ShortLink.id)).where(ShortLink.short_id == short_id)
        try:
            result = await self.db.execute(query)
            return (result.scalar_one() or 0) > 0
        except SQLAlchemyError as exc:
            logger.error(f"Error checking short_id '{short_id}': {exc}")
            raise DatabaseException("An error occurred while checking the short id.") from exc

    async def find_active(self, short_id: str) -> Optional[ShortLink]:
        """
        Resolve a link for the gate page.

        Missing and inactive links are the same outcome: None.
        """
        query = select(ShortLink).where(ShortLink.short_id == short_id, ShortLink.is_active.is_(True))
        try:
            result = await self.db.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error(f"Error resolving short link '{short_id}': {exc}")
            raise DatabaseException("An error occurred while resolving the short link.") from exc

    async def record_click(self, link_id: int, click: LinkClick, day: date) -> Tuple[int, Decimal]:
        """
        Apply one click to every aggregate of the link.

        Runs inside the caller's transaction and does not commit. Counters
        are only ever incremented in SQL (never read-modify-write), and the
        first statement locks the link row, so concurrent clicks on the
        same link serialize on the bucket upsert and the ring-buffer trim.

        Args:
            link_id (int): ID of an active link.
            click (LinkClick): Classified click with its earning filled in.
            day (date): UTC day of the click.

        Returns:
            Tuple[int, Decimal]: clicks and total_earnings of the link including this click.

        Raises:
            ObjectNotFoundException: If the link row is gone.
            SQLAlchemyError: Propagated to the caller, which owns the rollback.
        """
        earned = click.earned or Decimal(0)
        device_column = DEVICE_COLUMNS.get(click.device, DEVICE_COLUMNS["unknown"])

        # 1-2. totals and device breakdown
        result = await self.db.execute(
            update(ShortLink)
            .where(ShortLink.id == link_id)
            .values(**{
                "clicks": ShortLink.clicks + 1,
                "total_earnings": ShortLink.total_earnings + earned,
                device_column: getattr(ShortLink, device_column) + 1,
            })
            .returning(ShortLink.clicks, ShortLink.total_earnings)
            .execution_options(synchronize_session=False)
        )
        totals = result.first()
        if totals is None:
            raise ObjectNotFoundException(f"ShortLink {link_id} not found.")

        # 3. lifetime country breakdown
        stmt = self._upsert(LinkCountryStat).values(link_id=link_id, country=click.country, clicks=1)
        await self.db.execute(
            stmt.on_conflict_do_update(
                index_elements=["link_id", "country"],
                set_={"clicks": LinkCountryStat.clicks + 1},
            )
        )

        # 4. daily bucket, find-or-create in one statement
        stmt = self._upsert(LinkDailyStat).values(link_id=link_id, day=day, clicks=1, earnings=earned)
        await self.db.execute(
            stmt.on_conflict_do_update(
                index_elements=["link_id", "day"],
                set_={
                    "clicks": LinkDailyStat.clicks + 1,
                    "earnings": LinkDailyStat.earnings + earned,
                },
            )
        )
        stmt = self._upsert(LinkDailyCountryStat).values(link_id=link_id, day=day, country=click.country, clicks=1)
        await self.db.execute(
            stmt.on_conflict_do_update(
                index_elements=["link_id", "day", "country"],
                set_={"clicks": LinkDailyCountryStat.clicks + 1},
            )
        )

        # 5. recent-click ring buffer: append, then evict everything but the newest N
        click.link_id = link_id
        self.db.add(click)
        await self.db.flush()

        newest = (
            select(LinkClick.id)
            .where(LinkClick.link_id == link_id)
            .order_by(LinkClick.id.desc())
            .limit(settings.RECENT_CLICKS_LIMIT)
        )
        await self.db.execute(
            delete(LinkClick)
            .where(LinkClick.link_id == link_id, LinkClick.id.not_in(newest))
            .execution_options(synchronize_session=False)
        )
        return totals[0], totals[1]

    async def get_country_stats(self, link_id: int) -> Dict[str, int]:
        query = (
            select(LinkCountryStat.country, LinkCountryStat.clicks)
            .where(LinkCountryStat.link_id == link_id)
            .order_by(LinkCountryStat.clicks.desc(), LinkCountryStat.country)
        )
        try:
            result = await self.db.execute(query)
            return {country: clicks for country, clicks in result.all()}
        except SQLAlchemyError as exc:
            logger.error(f"Error fetching country stats for link {link_id}: {exc}")
            raise DatabaseException("An error occurred while fetching country stats.") from exc

    async def get_daily_stats(self, link_id: int, since: date) -> List[SDailyStat]:
        """
        Daily buckets of a link from `since` (inclusive), sorted by day.

        Buckets are sparse: days without clicks are absent.
        """
        buckets_query = (
            select(LinkDailyStat)
            .where(LinkDailyStat.link_id == link_id, LinkDailyStat.day >= since)
            .order_by(LinkDailyStat.day)
        )
        countries_query = (
            select(LinkDailyCountryStat.day, LinkDailyCountryStat.country, LinkDailyCountryStat.clicks)
            .where(LinkDailyCountryStat.link_id == link_id, LinkDailyCountryStat.day >= since)
        )
        try:
            buckets = (await self.db.execute(buckets_query)).scalars().all()
            countries = (await self.db.execute(countries_query)).all()
        except SQLAlchemyError as exc:
            logger.error(f"Error fetching daily stats for link {link_id}: {exc}")
            raise DatabaseException("An error occurred while fetching daily stats.") from exc

        by_day = defaultdict(dict)
        for day, country, clicks in countries:
            by_day[day][country] = clicks

        return [
            SDailyStat(day=bucket.day, clicks=bucket.clicks, earnings=bucket.earnings,
                       countries=by_day.get(bucket.day, {}))
            for bucket in buckets
        ]

    async def get_recent_clicks(self, link_id: int, limit: int = None) -> List[LinkClick]:
        """
        Recent-click log of a link, newest first.
        """
        query = (
            select(LinkClick)
            .where(LinkClick.link_id == link_id)
            .order_by(LinkClick.id.desc())
            .limit(limit or settings.RECENT_CLICKS_LIMIT)
        )
        try:
            result = await self.db.execute(query)
            return result.scalars().all()
        except SQLAlchemyError as exc:
            logger.error(f"Error fetching recent clicks for link {link_id}: {exc}")
            raise DatabaseException("An error occurred while fetching recent clicks.") from exc

    async def get_owner_daily_totals(self, user_id: int, since: date) -> List[dict]:
        """
        Clicks and earnings per day summed over all links of an owner.
        """
        query = (
            select(
                LinkDailyStat.day,
                func.sum(LinkDailyStat.clicks).label("clicks"),
                func.sum(LinkDailyStat.earnings).label("earnings"),
            )
            .join(ShortLink, ShortLink.id == LinkDailyStat.link_id)
            .where(ShortLink.user_id == user_id, LinkDailyStat.day >= since)
            .group_by(LinkDailyStat.day)
            .order_by(LinkDailyStat.day)
        )
        try:
            result = await self.db.execute(query)
            return [
                {"day": day, "clicks": clicks or 0, "earnings": earnings or Decimal(0)}
                for day, clicks, earnings in result.all()
            ]
        except SQLAlchemyError as exc:
            logger.error(f"Error fetching daily totals for user {user_id}: {exc}")
            raise DatabaseException("An error occurred while fetching daily totals.") from exc

    async def get_owner_totals(self, user_id: int) -> Dict[str, int]:
        """Number of links of an owner and their lifetime clicks."""
        query = (
            select(func.count(ShortLink.id), func.coalesce(func.sum(ShortLink.clicks), 0))
            .where(ShortLink.user_id == user_id)
        )
        try:
            result = await self.db.execute(query)
            links, clicks = result.one()
            return {"links": links, "clicks": clicks}
        except SQLAlchemyError as exc:
            logger.error(f"Error fetching link totals for user {user_id}: {exc}")
            raise DatabaseException("An error occurred while fetching link totals.") from exc

    async def get_owner_top_countries(self, user_id: int, limit: int = 10) -> List[dict]:
        query = (
            select(LinkCountryStat.country, func.sum(LinkCountryStat.clicks).label("clicks"))
            .join(ShortLink, ShortLink.id == LinkCountryStat.link_id)
            .where(ShortLink.user_id == user_id)
            .group_by(LinkCountryStat.country)
            .order_by(desc("clicks"), LinkCountryStat.country)
            .limit(limit)
        )
        try:
            result = await self.db.execute(query)
            return [{"country": country, "clicks": clicks} for country, clicks in result.all()]
        except SQLAlchemyError as exc:
            logger.error(f"Error fetching top countries for user {user_id}: {exc}")
            raise DatabaseException("An error occurred while fetching top countries.") from exc

    async def get_counter_drift(self) -> List[dict]:
        """
        Links whose totals differ from the sum of their daily buckets.
        """
        daily = (
            select(
                LinkDailyStat.link_id,
                func.sum(LinkDailyStat.clicks).label("clicks"),
                func.sum(LinkDailyStat.earnings).label("earnings"),
            )
            .group_by(LinkDailyStat.link_id)
            .subquery()
        )
        query = (
            select(
                ShortLink.id,
                ShortLink.short_id,
                ShortLink.clicks,
                ShortLink.total_earnings,
                daily.c.clicks,
                daily.c.earnings,
            )
            .outerjoin(daily, daily.c.link_id == ShortLink.id)
            .order_by(ShortLink.id)
        )
        try:
            result = await self.db.execute(query)
            rows = result.all()
        except SQLAlchemyError as exc:
            logger.error(f"Error computing counter drift: {exc}")
            raise DatabaseException("An error occurred while computing counter drift.") from exc

        drift = []
        for link_id, short_id, clicks, total_earnings, daily_clicks, daily_earnings in rows:
            daily_clicks = daily_clicks or 0
            daily_earnings = daily_earnings or Decimal(0)
            if clicks != daily_clicks or total_earnings != daily_earnings:
                drift.append({
                    "link_id": link_id,
                    "short_id": short_id,
                    "clicks": clicks,
                    "total_earnings": total_earnings,
                    "daily_clicks": daily_clicks,
                    "daily_earnings": daily_earnings,
                })
        return drift

    async def reset_counters(self, link_id: int) -> Tuple[int, Decimal]:
        """
        Set link totals to the sums of its daily buckets (counter audit
        with --repair). Commits.

        The link row is locked first and the sums are computed by the
        UPDATE itself, so a click committed after the drift was detected
        is counted on both sides.

        Returns:
            Tuple[int, Decimal]: clicks and total_earnings after the reset.
        """
        daily_clicks = (
            select(func.coalesce(func.sum(LinkDailyStat.clicks), 0))
            .where(LinkDailyStat.link_id == link_id)
            .scalar_subquery()
        )
        daily_earnings = (
            select(func.coalesce(func.sum(LinkDailyStat.earnings), 0))
            .where(LinkDailyStat.link_id == link_id)
            .scalar_subquery()
        )
        try:
            # same lock a visit takes with its first UPDATE
            await self.db.execute(select(ShortLink.id).where(ShortLink.id == link_id).with_for_update())
            result = await self.db.execute(
                update(ShortLink)
                .where(ShortLink.id == link_id)
                .values(clicks=daily_clicks, total_earnings=daily_earnings)
                .returning(ShortLink.clicks, ShortLink.total_earnings)
                .execution_options(synchronize_session=False)
            )
            row = result.first()
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error(f"Error resetting counters of link {link_id}: {exc}")
            raise DatabaseException("An error occurred while resetting link counters.") from exc

        if row is None:
            raise ObjectNotFoundException(f"ShortLink {link_id} not found.")
        return row[0], row[1]
