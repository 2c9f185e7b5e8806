"""Unit tests for the utility bill lifecycle rules."""

import pytest

from src.models.utility_bill import UtilityBillStatus
from src.services.bill_state_machine import (
    ALLOWED_TRANSITIONS,
    can_transition,
    is_immutable,
    is_terminal,
)

S = UtilityBillStatus


class TestCanTransition:
    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (S.DRAFT, S.PROCESSING),
            (S.DRAFT, S.REJECTED),
            (S.PROCESSING, S.REVIEW_REQUIRED),
            (S.PROCESSING, S.APPROVED),
            (S.PROCESSING, S.REJECTED),
            (S.REVIEW_REQUIRED, S.APPROVED),
            (S.REVIEW_REQUIRED, S.REJECTED),
            (S.APPROVED, S.POSTED),
            (S.APPROVED, S.REJECTED),
        ],
    )
    def test_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (S.DRAFT, S.APPROVED),
            (S.DRAFT, S.POSTED),
            (S.PROCESSING, S.DRAFT),
            (S.REVIEW_REQUIRED, S.PROCESSING),
            (S.APPROVED, S.PROCESSING),
            (S.REJECTED, S.DRAFT),
        ],
    )
    def test_refused(self, current, target):
        assert not can_transition(current, target)

    @pytest.mark.parametrize("target", list(S))
    def test_nothing_leaves_posted(self, target):
        assert not can_transition(S.POSTED, target)

    def test_every_status_has_an_entry(self):
        assert set(ALLOWED_TRANSITIONS) == set(S)


class TestTerminalAndImmutable:
    def test_terminal_states(self):
        assert {status for status in S if is_terminal(status)} == {S.POSTED, S.REJECTED}

    def test_only_posted_is_immutable(self):
        assert {status for status in S if is_immutable(status)} == {S.POSTED}
