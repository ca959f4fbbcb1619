"""Transaction helpers for the ledger: atomic blocks, row locks and lock timeouts."""
from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Optional, Type, TypeVar

from loguru import logger
from sqlalchemy import select, text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from bountyboard.config import settings
from bountyboard.utils.exceptions import LedgerError, LedgerErrorCode

ModelT = TypeVar("ModelT")

# SQLSTATE 55P03 (lock_not_available) is what PostgreSQL raises when lock_timeout fires.
_PG_LOCK_NOT_AVAILABLE = "55P03"


def is_lock_timeout(error: DBAPIError) -> bool:
    """Return True if the driver error means a lock wait was abandoned."""

    orig = error.orig
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if sqlstate == _PG_LOCK_NOT_AVAILABLE:
        return True
    # pysqlite reports busy-timeout expiry as "database is locked"
    return isinstance(error, OperationalError) and "database is locked" in str(orig)


def apply_lock_timeout(db: Session, timeout_ms: int | None = None) -> None:
    """Bound lock waits for the current transaction where the dialect supports it."""

    timeout_ms = settings.LOCK_TIMEOUT_MS if timeout_ms is None else timeout_ms
    if timeout_ms <= 0 or db.get_bind().dialect.name != "postgresql":
        return
    db.execute(text(f"SET LOCAL lock_timeout = '{int(timeout_ms)}ms'"))


@contextmanager
def ledger_transaction(
    db: Session,
    *,
    on_conflict: LedgerErrorCode,
    lock_timeout_ms: int | None = None,
) -> Iterator[Session]:
    """Run the enclosed block as one atomic ledger transaction.

    The block commits on success and rolls back on any exception. Unique
    constraint violations surface as ``on_conflict``; lock wait expiry as
    ``LOCK_TIMEOUT``; any other store failure as an opaque ``INTERNAL_ERROR``.
    """

    try:
        apply_lock_timeout(db, lock_timeout_ms)
        yield db
        db.commit()
    except LedgerError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        logger.info("Unique constraint rejected ledger write", conflict=on_conflict.value)
        raise LedgerError(on_conflict) from exc
    except DBAPIError as exc:
        db.rollback()
        if is_lock_timeout(exc):
            logger.warning("Ledger lock wait timed out", error=str(exc.orig))
            raise LedgerError(LedgerErrorCode.LOCK_TIMEOUT) from exc
        logger.error("Ledger transaction failed", error=str(exc))
        raise LedgerError(LedgerErrorCode.INTERNAL_ERROR) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Ledger transaction failed", error=str(exc))
        raise LedgerError(LedgerErrorCode.INTERNAL_ERROR) from exc
    except Exception:
        db.rollback()
        raise


def lock_row(db: Session, model: Type[ModelT], ident: Any) -> Optional[ModelT]:
    """``SELECT ... FOR UPDATE`` a row by primary key, refreshing any cached instance."""

    stmt = (
        select(model)
        .where(model.id == ident)  # type: ignore[attr-defined]
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return db.execute(stmt).scalar_one_or_none()


def find_and_lock_row(
    db: Session, model: Type[ModelT], ident: Any, missing: LedgerErrorCode
) -> ModelT:
    """Lock a row by primary key or raise ``missing`` if it does not exist."""

    row = lock_row(db, model, ident)
    if row is None:
        raise LedgerError(missing, {"id": str(ident)})
    return row


__all__ = [
    "apply_lock_timeout",
    "find_and_lock_row",
    "is_lock_timeout",
    "ledger_transaction",
    "lock_row",
]
