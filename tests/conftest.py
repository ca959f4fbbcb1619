"""Pytest fixtures for ledger, achievement and API tests."""

import os
from collections.abc import Callable, Generator
from datetime import datetime, timedelta, timezone

os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from bountyboard.api.deps import get_achievement_cache, get_db
from bountyboard.core.security import create_access_token
from bountyboard.db.base import Base
from bountyboard.db.models import (
    Bounty,
    BountyParticipation,
    ParticipationStatus,
    Reward,
    RewardClaim,
    User,
)
from bountyboard.main import create_app
from bountyboard.utils.cache import InMemoryAchievementCache, achievement_cache

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session(db_engine) -> Generator[Session, None, None]:
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=db_engine, expire_on_commit=False
    )
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        for model in (RewardClaim, BountyParticipation, Reward, Bounty, User):
            db.query(model).delete()
        db.commit()
        db.close()


@pytest.fixture(autouse=True)
def clear_cache() -> Generator[None, None, None]:
    achievement_cache.clear()
    try:
        yield
    finally:
        achievement_cache.clear()


@pytest.fixture()
def cache() -> InMemoryAchievementCache:
    return InMemoryAchievementCache(ttl_seconds=3600, max_size=100)


@pytest.fixture()
def client(
    db_session: Session, cache: InMemoryAchievementCache
) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_achievement_cache] = lambda: cache
    with TestClient(app) as test_client:
        yield test_client


# ----------------------------------------------------------------------
# Ledger data
# ----------------------------------------------------------------------
@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    counter = {"n": 0}

    def factory(name: str | None = None, role: str = "student", **kwargs) -> User:
        counter["n"] += 1
        user = User(
            name=name or f"User {counter['n']}",
            email=f"user{counter['n']}@example.com",
            role=role,
            is_active=True,
            **kwargs,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return factory


@pytest.fixture()
def make_bounty(db_session: Session) -> Callable[..., Bounty]:
    def factory(
        name: str = "Bug bash",
        type: str = "coding",
        alloted_points: int = 100,
        alloted_berries: int = 50,
        scheduled_date: datetime | None = None,
        is_active: bool = True,
        capacity: int | None = None,
    ) -> Bounty:
        bounty = Bounty(
            name=name,
            type=type,
            alloted_points=alloted_points,
            alloted_berries=alloted_berries,
            scheduled_date=scheduled_date or datetime.now(timezone.utc) + timedelta(days=30),
            is_active=is_active,
            capacity=capacity,
        )
        db_session.add(bounty)
        db_session.commit()
        return bounty

    return factory


@pytest.fixture()
def make_reward(db_session: Session) -> Callable[..., Reward]:
    def factory(
        name: str = "Sticker pack",
        berries_required: int = 50,
        expiry_date: datetime | None = None,
    ) -> Reward:
        reward = Reward(name=name, berries_required=berries_required, expiry_date=expiry_date)
        db_session.add(reward)
        db_session.commit()
        return reward

    return factory


@pytest.fixture()
def add_completion(db_session: Session) -> Callable[..., BountyParticipation]:
    """Insert a completed participation directly, bypassing the ledger service."""

    def factory(
        user: User,
        bounty: Bounty,
        points: int,
        berries: int = 0,
        registered_at: datetime = NOW - timedelta(days=2),
        completed_at: datetime | None = NOW,
    ) -> BountyParticipation:
        participation = BountyParticipation(
            user_id=user.id,
            bounty_id=bounty.id,
            status=ParticipationStatus.COMPLETED.value,
            points_earned=points,
            berries_earned=berries,
            created_at=registered_at,
            completed_at=completed_at,
            modified_at=completed_at,
        )
        db_session.add(participation)
        db_session.commit()
        return participation

    return factory


@pytest.fixture()
def student(make_user) -> User:
    return make_user(name="Ada", role="student")


@pytest.fixture()
def admin(make_user) -> User:
    return make_user(name="Grace", role="admin")


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


# ----------------------------------------------------------------------
# File-backed engine for concurrent transactions
# ----------------------------------------------------------------------
@pytest.fixture()
def file_session_factory(tmp_path) -> Generator[sessionmaker, None, None]:
    """Sessions over a shared SQLite file where every transaction takes the write lock up front.

    ``BEGIN IMMEDIATE`` serialises writers the way ``SELECT ... FOR UPDATE``
    serialises them on PostgreSQL.
    """

    engine = create_engine(
        f"sqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(
        autocommit=False, autoflush=False, bind=engine, expire_on_commit=False
    )
    try:
        yield factory
    finally:
        engine.dispose()
