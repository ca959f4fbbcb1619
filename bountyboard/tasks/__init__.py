"""Celery tasks package."""

from bountyboard.tasks import achievements, integrity

__all__ = ["achievements", "integrity"]
