"""Celery task running the ledger consistency audit."""
from __future__ import annotations

from typing import Any

from loguru import logger

from bountyboard.celery_app import celery_app
from bountyboard.db.session import SessionLocal
from bountyboard.services.integrity import audit_ledger


@celery_app.task(name="bountyboard.tasks.integrity.audit_ledger_integrity")
def audit_ledger_integrity() -> dict[str, Any]:
    """Check the committed ledger for states the transaction core must never produce."""

    db = SessionLocal()
    try:
        report = audit_ledger(db)
        if not report.ok:
            logger.error(
                "Ledger audit found violations",
                checks=[v.check for v in report.violations],
            )
        return report.as_dict()
    except Exception as exc:
        logger.error("Ledger audit failed", error=str(exc))
        raise
    finally:
        db.close()
