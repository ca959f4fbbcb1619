"""Celery tasks for achievement processing."""
from __future__ import annotations

from uuid import UUID

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from bountyboard.celery_app import celery_app
from bountyboard.db.session import SessionLocal
from bountyboard.services import aggregates
from bountyboard.services.achievement_service import AchievementService
from bountyboard.utils.cache import achievement_cache
from bountyboard.utils.exceptions import LedgerError


@celery_app.task(name="bountyboard.tasks.achievements.check_user_achievements")
def check_user_achievements(user_id: str) -> dict[str, int | list[str] | str]:
    """Recompute one user's snapshot and report achievements not seen before."""

    db = SessionLocal()
    try:
        try:
            user_uuid = UUID(user_id)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid user ID: {user_id}") from exc

        service = AchievementService(db, achievement_cache)
        newly_earned = service.check_for_new_achievements(user_uuid)

        logger.info(
            "User achievement check completed",
            user_id=user_id,
            new_count=len(newly_earned),
        )

        return {
            "user_id": user_id,
            "new_achievements": len(newly_earned),
            "achievement_ids": [a.id for a in newly_earned],
        }

    except Exception as exc:
        logger.error("Achievement check failed", user_id=user_id, error=str(exc))
        raise
    finally:
        db.close()


@celery_app.task(name="bountyboard.tasks.achievements.check_all_achievements")
def check_all_achievements() -> dict[str, int]:
    """Refresh snapshots for every user with at least one completion."""

    db = SessionLocal()
    try:
        user_ids = aggregates.list_users_with_completions(db)

        total_checked = 0
        total_failed = 0
        total_new = 0
        service = AchievementService(db, achievement_cache)

        for user_id in user_ids:
            try:
                newly_earned = service.check_for_new_achievements(user_id)
            except (LedgerError, SQLAlchemyError) as exc:
                db.rollback()
                total_failed += 1
                logger.error(
                    "Achievement check failed for user",
                    user_id=str(user_id),
                    error=str(exc),
                )
                continue

            total_checked += 1
            total_new += len(newly_earned)
            if total_checked % 100 == 0:
                logger.info(
                    "Achievement check progress",
                    checked=total_checked,
                    total=len(user_ids),
                )

        logger.info(
            "Bulk achievement check completed",
            users_checked=total_checked,
            users_failed=total_failed,
            total_new=total_new,
        )

        return {
            "users_checked": total_checked,
            "users_failed": total_failed,
            "total_new": total_new,
        }

    except Exception as exc:
        logger.error("Bulk achievement check failed", error=str(exc))
        raise
    finally:
        db.close()
