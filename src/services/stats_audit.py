"""
Сверка счётчиков ссылок с суммами дневных бакетов.
"""

from datetime import datetime
from typing import Dict

from sqlalchemy.ext.asyncio import AsyncSession

from src.repositories.short_link import ShortLinkRepository
from src.utils.logger import get_logger

logger = get_logger(__name__)


async def audit_link_stats(session: AsyncSession, repair: bool = False) -> Dict:
    """
    Найти ссылки, у которых clicks / total_earnings расходятся с суммой
    дневных бакетов, и (с repair=True) выставить счётчики по бакетам.

    Returns:
        Dict: {"checked_at", "drift_count", "repaired_count", "links"}
    """
    repo = ShortLinkRepository(db=session)
    drift = await repo.get_counter_drift()

    repaired = 0
    for row in drift:
        logger.warning(
            f"Link '{row['short_id']}' drift: clicks {row['clicks']} vs {row['daily_clicks']}, "
            f"earnings {row['total_earnings']} vs {row['daily_earnings']}"
        )
        if repair:
            clicks, total_earnings = await repo.reset_counters(row["link_id"])
            logger.info(f"Link '{row['short_id']}' reset to {clicks} clicks, {total_earnings} earned")
            repaired += 1

    if drift:
        logger.info(f"Counter audit: {len(drift)} drifting links, {repaired} repaired")
    else:
        logger.info("Counter audit: all link counters match their daily buckets")

    return {
        "checked_at": datetime.utcnow().isoformat(),
        "drift_count": len(drift),
        "repaired_count": repaired,
        "links": drift,
    }
