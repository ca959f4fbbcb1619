"""Bearer token verification for the identity context.

Tokens are issued elsewhere; this service only needs to read the subject back
out of them. ``create_access_token`` exists for scripts and tests that have to
act as a given user.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

from bountyboard.config import settings


ALGORITHM = "HS256"
ACCESS_TOKEN_TYPE = "access"


class InvalidTokenError(Exception):
    """Raised when a JWT cannot be decoded or does not identify a user."""


class TokenPayload(BaseModel):
    """Claims the ledger relies on."""

    sub: uuid.UUID
    exp: datetime
    type: str


def create_access_token(subject: uuid.UUID | str, expires_minutes: int | None = None) -> str:
    minutes = expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    payload: Dict[str, Any] = {"exp": expire, "sub": str(subject), "type": ACCESS_TOKEN_TYPE}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> TokenPayload:
    """Verify signature and expiry and return the token's claims."""

    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
        payload = TokenPayload.model_validate(claims)
    except (JWTError, ValidationError) as exc:
        raise InvalidTokenError(str(exc)) from exc
    if payload.type != ACCESS_TOKEN_TYPE:
        raise InvalidTokenError("Token must be an access token")
    return payload
