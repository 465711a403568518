"""
Celery task: daily audit of link counters against daily buckets.
"""

import asyncio
from typing import Dict

from src.db.session import session_scope
from src.services.stats_audit import audit_link_stats
from src.utils.logger import get_logger
from .celery_app import celery_app

logger = get_logger(__name__)


@celery_app.task(
    bind=True,
    name="src.tasks.stats_audit.audit_link_stats_task",
    max_retries=3,
    default_retry_delay=300,  # 5 минут
    retry_backoff=True,
    retry_jitter=True
)
def audit_link_stats_task(self, repair: bool = False) -> Dict:
    """
    Сверка счётчиков ссылок с дневными бакетами.

    Args:
        repair: Выставить счётчики по суммам бакетов

    Returns:
        Dict: Результат сверки (Decimal приведены к строкам)
    """
    task_id = self.request.id
    logger.info(f"Starting link stats audit task {task_id} (repair={repair})")

    try:
        result = asyncio.run(_audit_link_stats_async(repair))
    except Exception as exc:
        logger.error(f"Link stats audit task {task_id} failed: {exc}")
        raise self.retry(exc=exc)

    logger.info(f"Link stats audit task {task_id} completed: {result['drift_count']} drifting links")
    return result


async def _audit_link_stats_async(repair: bool = False) -> Dict:
    async with session_scope() as session:
        result = await audit_link_stats(session, repair=repair)

    result["links"] = [
        {key: str(value) if key.endswith("earnings") else value for key, value in row.items()}
        for row in result["links"]
    ]
    return result
