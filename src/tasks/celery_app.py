"""
Celery application configuration for background tasks.
"""

from celery import Celery
from celery.schedules import crontab

from src.core.config import settings
from src.utils.logger import get_logger

logger = get_logger(__name__)

# Создаем экземпляр Celery
celery_app = Celery(
    "linkgate_backend",
    broker=f"{settings.REDIS_URL}/0",
    backend=f"{settings.REDIS_URL}/1",
    include=["src.tasks.stats_audit"]
)

# Конфигурация Celery
celery_app.conf.update(
    # Настройки задач
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Настройки воркера
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,

    # Настройки планировщика (Beat)
    beat_schedule={
        "audit-link-stats-daily": {
            "task": "src.tasks.stats_audit.audit_link_stats_task",
            "schedule": crontab(minute=30, hour=0),  # после закрытия суток UTC
            "kwargs": {"repair": False},
            "options": {"queue": "stats_audit"}
        },
    },

    # Настройки очередей
    task_routes={
        "src.tasks.stats_audit.audit_link_stats_task": {"queue": "stats_audit"},
    },

    # Настройки retry
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # Настройки логирования
    worker_log_format="[%(asctime)s: %(levelname)s/%(processName)s] %(message)s",
    worker_task_log_format="[%(asctime)s: %(levelname)s/%(processName)s][%(task_name)s(%(task_id)s)] %(message)s",
)

logger.info("Celery application configured successfully")
