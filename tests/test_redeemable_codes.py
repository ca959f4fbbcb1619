"""Tests for redeemable code generation."""
from __future__ import annotations

import random

import pytest

from bountyboard.core.redeemable_codes import CODE_ALPHABET, CODE_PREFIX, RedeemableCodeGenerator
from bountyboard.utils.exceptions import ErrorKind, LedgerError, LedgerErrorCode


def test_candidate_format():
    generator = RedeemableCodeGenerator(rng=random.Random(7))
    code = generator.candidate()

    assert code.startswith(CODE_PREFIX)
    assert len(code) == len(CODE_PREFIX) + 10
    assert all(ch in CODE_ALPHABET for ch in code[len(CODE_PREFIX):])


def test_seeded_generators_are_reproducible():
    first = RedeemableCodeGenerator(rng=random.Random(42)).candidate()
    second = RedeemableCodeGenerator(rng=random.Random(42)).candidate()

    assert first == second


def test_generate_retries_until_free():
    taken_checks: list[str] = []

    def is_taken(code: str) -> bool:
        taken_checks.append(code)
        return len(taken_checks) < 3

    code = RedeemableCodeGenerator(max_attempts=5, rng=random.Random(1)).generate(is_taken)

    assert len(taken_checks) == 3
    assert code == taken_checks[-1]


def test_generate_gives_up_after_budget():
    attempts: list[str] = []

    def always_taken(code: str) -> bool:
        attempts.append(code)
        return True

    with pytest.raises(LedgerError) as excinfo:
        RedeemableCodeGenerator(max_attempts=4, rng=random.Random(3)).generate(always_taken)

    assert len(attempts) == 4
    assert excinfo.value.code is LedgerErrorCode.UNABLE_TO_GENERATE_UNIQUE_CODE
    assert excinfo.value.kind is ErrorKind.RESOURCE_EXHAUSTION
    assert excinfo.value.details == {"attempts": 4}


def test_rejects_empty_budget():
    with pytest.raises(ValueError):
        RedeemableCodeGenerator(max_attempts=0)
