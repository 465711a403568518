"""
Celery tasks package for background job processing.
"""

from .celery_app import celery_app
from .stats_audit import audit_link_stats_task

__all__ = ["celery_app", "audit_link_stats_task"]
