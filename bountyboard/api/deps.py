"""Shared API dependencies."""
from __future__ import annotations

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from bountyboard.config import settings
from bountyboard.core.security import InvalidTokenError, decode_access_token
from bountyboard.db.models.user import User
from bountyboard.db.session import SessionLocal
from bountyboard.services.achievement_service import AchievementService
from bountyboard.services.ledger import LedgerService
from bountyboard.utils.cache import AchievementCache, achievement_cache

# Tokens are issued by the identity provider; this service only verifies them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")


def get_db() -> Session:
    """Yield a database session for request lifetime."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)
) -> User:
    """Resolve the authenticated user from the Authorization header."""

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not token:
        raise credentials_exception

    try:
        token_data = decode_access_token(token)
    except InvalidTokenError as exc:
        raise credentials_exception from exc

    user = db.get(User, token_data.sub)
    if not user or not user.is_active:
        raise credentials_exception
    return user


def require_privileged(current_user: User = Depends(get_current_user)) -> User:
    """Allow faculty, creators and admins."""

    if not current_user.is_privileged:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions"
        )
    return current_user


def require_roles(*roles: str):
    """Build a dependency admitting only the given roles."""

    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions"
            )
        return current_user

    return dependency


require_admin = require_roles("admin")
require_creator_or_admin = require_roles("creator", "admin")


def get_achievement_cache() -> AchievementCache:
    return achievement_cache


def get_ledger_service(
    db: Session = Depends(get_db),
    cache: AchievementCache = Depends(get_achievement_cache),
) -> LedgerService:
    return LedgerService(db, cache=cache)


def get_achievement_service(
    db: Session = Depends(get_db),
    cache: AchievementCache = Depends(get_achievement_cache),
) -> AchievementService:
    return AchievementService(db, cache)
