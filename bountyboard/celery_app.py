"""Celery application instance and configuration."""
from __future__ import annotations

from celery import Celery
from celery.schedules import crontab

from bountyboard.config import settings


def _resolve_broker_url() -> str:
    if settings.CELERY_BROKER_URL is not None:
        return str(settings.CELERY_BROKER_URL)
    return str(settings.REDIS_URL)


def _resolve_result_backend() -> str:
    if settings.CELERY_RESULT_BACKEND is not None:
        return str(settings.CELERY_RESULT_BACKEND)
    return str(settings.REDIS_URL)


celery_app = Celery(
    "bountyboard",
    broker=_resolve_broker_url(),
    backend=_resolve_result_backend(),
    include=[
        "bountyboard.tasks.achievements",
        "bountyboard.tasks.integrity",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,
    task_soft_time_limit=25 * 60,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
)

celery_app.conf.beat_schedule = {
    "audit-ledger-integrity": {
        "task": "bountyboard.tasks.integrity.audit_ledger_integrity",
        "schedule": crontab(hour=settings.LEDGER_AUDIT_HOUR, minute=0),
    },
    "refresh-achievement-snapshots": {
        "task": "bountyboard.tasks.achievements.check_all_achievements",
        "schedule": crontab(hour=settings.LEDGER_AUDIT_HOUR, minute=30),
    },
}

__all__ = ["celery_app"]
