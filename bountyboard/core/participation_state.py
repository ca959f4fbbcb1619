"""Participation lifecycle: which status changes the ledger accepts."""
from __future__ import annotations

from bountyboard.db.models.bounty import ParticipationStatus
from bountyboard.utils.exceptions import LedgerError, LedgerErrorCode

ALLOWED_TRANSITIONS: dict[ParticipationStatus, frozenset[ParticipationStatus]] = {
    ParticipationStatus.REGISTERED: frozenset(
        {ParticipationStatus.COMPLETED, ParticipationStatus.CANCELLED}
    ),
    ParticipationStatus.COMPLETED: frozenset(),
    ParticipationStatus.CANCELLED: frozenset(),
}

# Rejections that have a more specific code than INVALID_STATUS_TRANSITION.
_SPECIFIC_REJECTIONS: dict[tuple[ParticipationStatus, ParticipationStatus], LedgerErrorCode] = {
    (ParticipationStatus.COMPLETED, ParticipationStatus.COMPLETED): (
        LedgerErrorCode.BOUNTY_ALREADY_COMPLETED
    ),
    (ParticipationStatus.COMPLETED, ParticipationStatus.CANCELLED): (
        LedgerErrorCode.CANNOT_CANCEL_COMPLETED_BOUNTY
    ),
}


def can_transition(current: ParticipationStatus, target: ParticipationStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def ensure_transition(current: str | ParticipationStatus, target: ParticipationStatus) -> None:
    """Raise a ``LedgerError`` unless ``current -> target`` is a permitted transition."""

    current = ParticipationStatus(current)
    if can_transition(current, target):
        return
    code = _SPECIFIC_REJECTIONS.get(
        (current, target), LedgerErrorCode.INVALID_STATUS_TRANSITION
    )
    raise LedgerError(code, {"from": current.value, "to": target.value})


def is_terminal(status: str | ParticipationStatus) -> bool:
    return not ALLOWED_TRANSITIONS[ParticipationStatus(status)]


__all__ = ["ALLOWED_TRANSITIONS", "can_transition", "ensure_transition", "is_terminal"]
