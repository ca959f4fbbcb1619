"""Custom exception classes and error handling utilities."""
from __future__ import annotations

import enum
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from loguru import logger


class BountyBoardException(Exception):
    """Base exception for the application."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ErrorKind(str, enum.Enum):
    """Broad failure categories callers branch on."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    BUSINESS_RULE = "business_rule"
    RESOURCE_EXHAUSTION = "resource_exhaustion"
    LOCK_TIMEOUT = "lock_timeout"
    INTERNAL = "internal"


class LedgerErrorCode(str, enum.Enum):
    """Stable error codes surfaced by the ledger and achievement services."""

    INVALID_POINTS_EARNED = "INVALID_POINTS_EARNED"
    INVALID_BERRIES_EARNED = "INVALID_BERRIES_EARNED"
    INVALID_LIMIT = "INVALID_LIMIT"

    USER_NOT_FOUND = "USER_NOT_FOUND"
    BOUNTY_NOT_FOUND = "BOUNTY_NOT_FOUND"
    REWARD_NOT_FOUND = "REWARD_NOT_FOUND"
    PARTICIPATION_NOT_FOUND = "PARTICIPATION_NOT_FOUND"
    INVALID_REDEEMABLE_CODE = "INVALID_REDEEMABLE_CODE"

    DUPLICATE_PARTICIPATION = "DUPLICATE_PARTICIPATION"
    REWARD_ALREADY_CLAIMED = "REWARD_ALREADY_CLAIMED"

    BOUNTY_NOT_ACTIVE = "BOUNTY_NOT_ACTIVE"
    BOUNTY_EXPIRED = "BOUNTY_EXPIRED"
    BOUNTY_FULL = "BOUNTY_FULL"
    BOUNTY_ALREADY_COMPLETED = "BOUNTY_ALREADY_COMPLETED"
    CANNOT_CANCEL_COMPLETED_BOUNTY = "CANNOT_CANCEL_COMPLETED_BOUNTY"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    REWARD_EXPIRED = "REWARD_EXPIRED"
    INSUFFICIENT_BERRIES = "INSUFFICIENT_BERRIES"

    UNABLE_TO_GENERATE_UNIQUE_CODE = "UNABLE_TO_GENERATE_UNIQUE_CODE"
    LOCK_TIMEOUT = "LOCK_TIMEOUT"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    @property
    def kind(self) -> ErrorKind:
        return ERROR_KINDS[self]


ERROR_KINDS: Dict[LedgerErrorCode, ErrorKind] = {
    LedgerErrorCode.INVALID_POINTS_EARNED: ErrorKind.VALIDATION,
    LedgerErrorCode.INVALID_BERRIES_EARNED: ErrorKind.VALIDATION,
    LedgerErrorCode.INVALID_LIMIT: ErrorKind.VALIDATION,
    LedgerErrorCode.USER_NOT_FOUND: ErrorKind.NOT_FOUND,
    LedgerErrorCode.BOUNTY_NOT_FOUND: ErrorKind.NOT_FOUND,
    LedgerErrorCode.REWARD_NOT_FOUND: ErrorKind.NOT_FOUND,
    LedgerErrorCode.PARTICIPATION_NOT_FOUND: ErrorKind.NOT_FOUND,
    LedgerErrorCode.INVALID_REDEEMABLE_CODE: ErrorKind.NOT_FOUND,
    LedgerErrorCode.DUPLICATE_PARTICIPATION: ErrorKind.CONFLICT,
    LedgerErrorCode.REWARD_ALREADY_CLAIMED: ErrorKind.CONFLICT,
    LedgerErrorCode.BOUNTY_NOT_ACTIVE: ErrorKind.BUSINESS_RULE,
    LedgerErrorCode.BOUNTY_EXPIRED: ErrorKind.BUSINESS_RULE,
    LedgerErrorCode.BOUNTY_FULL: ErrorKind.BUSINESS_RULE,
    LedgerErrorCode.BOUNTY_ALREADY_COMPLETED: ErrorKind.BUSINESS_RULE,
    LedgerErrorCode.CANNOT_CANCEL_COMPLETED_BOUNTY: ErrorKind.BUSINESS_RULE,
    LedgerErrorCode.INVALID_STATUS_TRANSITION: ErrorKind.BUSINESS_RULE,
    LedgerErrorCode.REWARD_EXPIRED: ErrorKind.BUSINESS_RULE,
    LedgerErrorCode.INSUFFICIENT_BERRIES: ErrorKind.BUSINESS_RULE,
    LedgerErrorCode.UNABLE_TO_GENERATE_UNIQUE_CODE: ErrorKind.RESOURCE_EXHAUSTION,
    LedgerErrorCode.LOCK_TIMEOUT: ErrorKind.LOCK_TIMEOUT,
    LedgerErrorCode.INTERNAL_ERROR: ErrorKind.INTERNAL,
}

ERROR_MESSAGES: Dict[LedgerErrorCode, str] = {
    LedgerErrorCode.INVALID_POINTS_EARNED: "Points earned cannot be negative",
    LedgerErrorCode.INVALID_BERRIES_EARNED: "Berries earned cannot be negative",
    LedgerErrorCode.INVALID_LIMIT: "Limit must be between 1 and 100",
    LedgerErrorCode.USER_NOT_FOUND: "User not found",
    LedgerErrorCode.BOUNTY_NOT_FOUND: "Bounty not found",
    LedgerErrorCode.REWARD_NOT_FOUND: "Reward not found",
    LedgerErrorCode.PARTICIPATION_NOT_FOUND: "Participation not found",
    LedgerErrorCode.INVALID_REDEEMABLE_CODE: "Redeemable code not recognised",
    LedgerErrorCode.DUPLICATE_PARTICIPATION: "User is already registered for this bounty",
    LedgerErrorCode.REWARD_ALREADY_CLAIMED: "User has already claimed this reward",
    LedgerErrorCode.BOUNTY_NOT_ACTIVE: "Bounty is not active",
    LedgerErrorCode.BOUNTY_EXPIRED: "Bounty registration has closed",
    LedgerErrorCode.BOUNTY_FULL: "Bounty has reached its capacity",
    LedgerErrorCode.BOUNTY_ALREADY_COMPLETED: "Bounty has already been completed",
    LedgerErrorCode.CANNOT_CANCEL_COMPLETED_BOUNTY: "A completed bounty cannot be cancelled",
    LedgerErrorCode.INVALID_STATUS_TRANSITION: "Participation cannot move to the requested status",
    LedgerErrorCode.REWARD_EXPIRED: "Reward has expired",
    LedgerErrorCode.INSUFFICIENT_BERRIES: "Not enough berries to claim this reward",
    LedgerErrorCode.UNABLE_TO_GENERATE_UNIQUE_CODE: "Could not generate a unique redeemable code",
    LedgerErrorCode.LOCK_TIMEOUT: "The ledger is busy. Please try again later.",
    LedgerErrorCode.INTERNAL_ERROR: "Ledger operation failed. Please try again later.",
}

HTTP_STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.BUSINESS_RULE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.RESOURCE_EXHAUSTION: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.LOCK_TIMEOUT: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class LedgerError(BountyBoardException):
    """A ledger or achievement operation was rejected.

    ``code`` is a member of the closed :class:`LedgerErrorCode` set; callers
    branch on it (or on ``kind``) rather than on the message text.
    """

    def __init__(self, code: LedgerErrorCode, details: Optional[Dict[str, Any]] = None):
        self.code = code
        super().__init__(ERROR_MESSAGES[code], details)

    @property
    def kind(self) -> ErrorKind:
        return self.code.kind

    @property
    def status_code(self) -> int:
        return HTTP_STATUS_BY_KIND[self.kind]

    def __repr__(self) -> str:
        return f"LedgerError({self.code.value}, details={self.details!r})"


def handle_ledger_error(error: LedgerError) -> JSONResponse:
    """Translate a ledger error into an HTTP response with a stable code."""

    if error.kind is ErrorKind.INTERNAL:
        logger.error(f"Ledger error: {error.code.value}", details=error.details)
    elif error.kind in (ErrorKind.LOCK_TIMEOUT, ErrorKind.RESOURCE_EXHAUSTION):
        logger.warning(f"Ledger unavailable: {error.code.value}", details=error.details)
    elif error.kind is ErrorKind.BUSINESS_RULE:
        logger.warning(f"Ledger rule violated: {error.code.value}", details=error.details)
    else:
        logger.info(f"Ledger rejected request: {error.code.value}", details=error.details)

    headers = {"Retry-After": "1"} if error.kind is ErrorKind.LOCK_TIMEOUT else None
    # Internal failures stay opaque to callers
    details = {} if error.kind is ErrorKind.INTERNAL else error.details
    return JSONResponse(
        status_code=error.status_code,
        content={
            "detail": {
                "code": error.code.value,
                "kind": error.kind.value,
                "message": error.message,
                "details": details,
            }
        },
        headers=headers,
    )


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    return handle_ledger_error(exc)
