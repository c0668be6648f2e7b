"""Tests for the EscrowStateMachine domain guard.

These tests verify that:
    1. Every legal transition is allowed.
    2. Illegal transitions are blocked.
    3. Terminal states allow nothing.
    4. The convenience function validate_transition works.
"""

from __future__ import annotations

import pytest
from statemachine.exceptions import TransitionNotAllowed

from afritokeni_ussd.domain.state_machine import (
    EscrowStateMachine,
    validate_transition,
)


class TestHappyPath:
    """pending -> funded -> completed."""

    def test_full_lifecycle(self) -> None:
        sm = EscrowStateMachine("pending")
        assert sm.status == "pending"

        sm.funding_confirmed()
        assert sm.status == "funded"

        sm.agent_verified()
        assert sm.status == "completed"


class TestSideExits:
    def test_pending_cancelled(self) -> None:
        sm = EscrowStateMachine("pending")
        sm.user_cancelled()
        assert sm.status == "cancelled"

    def test_pending_expires(self) -> None:
        sm = EscrowStateMachine("pending")
        sm.timeout_expired()
        assert sm.status == "expired"

    def test_funded_expires(self) -> None:
        sm = EscrowStateMachine("funded")
        sm.timeout_expired()
        assert sm.status == "expired"


class TestIllegalTransitions:
    """Verify that illegal transitions raise TransitionNotAllowed."""

    def test_pending_to_completed(self) -> None:
        sm = EscrowStateMachine("pending")
        with pytest.raises(TransitionNotAllowed):
            sm.agent_verified()

    def test_funded_cannot_be_cancelled(self) -> None:
        sm = EscrowStateMachine("funded")
        with pytest.raises(TransitionNotAllowed):
            sm.user_cancelled()

    def test_funded_cannot_be_funded_again(self) -> None:
        sm = EscrowStateMachine("funded")
        with pytest.raises(TransitionNotAllowed):
            sm.funding_confirmed()

    @pytest.mark.parametrize("status", ["completed", "expired", "cancelled"])
    def test_terminal_states_are_final(self, status: str) -> None:
        sm = EscrowStateMachine(status)
        assert sm.get_allowed_events() == []


class TestAllowedEvents:
    def test_pending_allowed(self) -> None:
        allowed = EscrowStateMachine("pending").get_allowed_events()
        assert set(allowed) == {"funding_confirmed", "user_cancelled", "timeout_expired"}

    def test_funded_allowed(self) -> None:
        allowed = EscrowStateMachine("funded").get_allowed_events()
        assert set(allowed) == {"agent_verified", "timeout_expired"}


class TestValidateTransitionFunction:
    def test_valid_transition(self) -> None:
        assert validate_transition("funded", "agent_verified") == "completed"

    def test_illegal_transition(self) -> None:
        with pytest.raises(TransitionNotAllowed):
            validate_transition("expired", "agent_verified")

    def test_invalid_event_name(self) -> None:
        with pytest.raises(ValueError, match="Unknown event"):
            validate_transition("funded", "nonexistent_event")

    def test_invalid_status(self) -> None:
        with pytest.raises(ValueError, match="Unknown status"):
            EscrowStateMachine("INVALID_STATUS")
