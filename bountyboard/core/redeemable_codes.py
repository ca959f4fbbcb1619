"""Generation of unique redeemable codes for reward claims."""
from __future__ import annotations

import secrets
import string
from typing import Callable, Protocol, Sequence

from loguru import logger

from bountyboard.utils.exceptions import LedgerError, LedgerErrorCode

CODE_PREFIX = "RWD"
CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 10


class RandomSource(Protocol):
    def choice(self, seq: Sequence[str]) -> str: ...


class RedeemableCodeGenerator:
    """Draw random codes until one is not already taken, within a fixed budget.

    Both the randomness source and the attempt budget are injectable so tests
    can force collisions deterministically (e.g. ``random.Random(seed)``).
    """

    def __init__(
        self,
        max_attempts: int = 10,
        rng: RandomSource | None = None,
        length: int = CODE_LENGTH,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.length = length
        self._rng: RandomSource = rng or secrets.SystemRandom()

    def candidate(self) -> str:
        return CODE_PREFIX + "".join(self._rng.choice(CODE_ALPHABET) for _ in range(self.length))

    def generate(self, is_taken: Callable[[str], bool]) -> str:
        """Return a code for which ``is_taken`` is false or raise after the budget is spent."""

        for attempt in range(1, self.max_attempts + 1):
            code = self.candidate()
            if not is_taken(code):
                return code
            logger.debug("Redeemable code collision", attempt=attempt)
        raise LedgerError(
            LedgerErrorCode.UNABLE_TO_GENERATE_UNIQUE_CODE,
            {"attempts": self.max_attempts},
        )


__all__ = ["CODE_ALPHABET", "CODE_PREFIX", "RandomSource", "RedeemableCodeGenerator"]
