"""Database engine and session factory."""
from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from bountyboard.config import settings


def engine_options(url: str) -> dict[str, Any]:
    """Pool settings for ``url``; SQLite files get a busy timeout instead of a sized pool."""

    if make_url(url).get_backend_name() == "sqlite":
        return {"connect_args": {"check_same_thread": False, "timeout": 30}}
    return {
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 20,
        "pool_recycle": 3600,
    }


engine = create_engine(str(settings.DATABASE_URL), **engine_options(str(settings.DATABASE_URL)))

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,  # ledger rows stay readable after commit
)
