"""
Конвейер учёта визита на gate-страницу:
классификация -> расчёт заработка -> агрегаты ссылки -> балансы.
"""

from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import ObjectNotFoundException, StorageUnavailable
from src.models.link_stats import LinkClick
from src.models.short_link import ShortLink
from src.repositories.short_link import ShortLinkRepository
from src.repositories.user import UserRepository
from src.schemas.click import SClickOutcome, SVisit
from src.services.earnings import calculate_earnings
from src.services.ledger import EarningsLedger
from src.services.visitor_classifier import GeoLocator, NullGeoLocator, parse_user_agent, resolve_geo
from src.utils.logger import get_logger

logger = get_logger(__name__)


def as_utc(ts: datetime) -> datetime:
    """Naive timestamps are treated as UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


class ClickRecorder:
    """Сервис учёта кликов по активной короткой ссылке."""

    def __init__(self, session: AsyncSession, geo_locator: GeoLocator = None):
        self.session = session
        self.geo_locator = geo_locator or NullGeoLocator()
        self.links = ShortLinkRepository(db=session)
        self.users = UserRepository(db=session)
        self.ledger = EarningsLedger(self.users)

    async def record_visit(self, link: ShortLink, visit: SVisit) -> SClickOutcome:
        """
        Учесть визит на gate-страницу.

        Ссылка должна быть уже найдена и активна (это проверяет вызывающий код).
        Агрегаты ссылки и балансы обновляются в одной транзакции: либо
        применяется всё, либо ничего.

        Args:
            link: Активная короткая ссылка
            visit: Данные запроса (IP, User-Agent, Referer, время)

        Returns:
            SClickOutcome: Счётчики ссылки после клика и начисления

        Raises:
            StorageUnavailable: Хранилище не приняло изменения (транзакция откачена)
        """
        short_id = link.short_id
        client = parse_user_agent(visit.user_agent)
        geo = resolve_geo(visit.client_ip, self.geo_locator)
        clicked_at = as_utc(visit.timestamp)

        try:
            cpm_rate = await self.users.get_cpm_rate(link.user_id) if link.user_id is not None else None
            earned = calculate_earnings(geo.country, cpm_rate)

            click = LinkClick(
                link_id=link.id,
                clicked_at=clicked_at,
                country=geo.country,
                city=geo.city,
                region=geo.region,
                ip=visit.client_ip,
                user_agent=visit.user_agent,
                referer=visit.referer,
                device=client.device,
                browser=client.browser,
                os=client.os,
                earned=earned,
            )
            clicks, total_earnings = await self.links.record_click(link.id, click, clicked_at.date())
            referral_earned = await self.ledger.credit(link.user_id, earned)

            await self.session.commit()
        except (SQLAlchemyError, ObjectNotFoundException) as exc:
            await self.session.rollback()
            logger.error(f"Click on '{short_id}' not recorded: {exc}")
            raise StorageUnavailable(f"Click on '{short_id}' was not recorded.") from exc

        logger.info(
            f"Click on '{short_id}': {geo.country}/{client.device}/{client.browser}, "
            f"earned {earned} (referral {referral_earned})"
        )
        return SClickOutcome(
            short_id=short_id,
            clicks=clicks,
            total_earnings=total_earnings,
            earned=earned,
            referral_earned=referral_earned,
            client=client,
            geo=geo,
        )
