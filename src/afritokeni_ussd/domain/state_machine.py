"""Escrow Agreement State Machine Guard.

Uses python-statemachine to enforce legal state transitions at the domain level.
No matter what the USSD flow or the agent API does, an illegal transition
(e.g., pending -> completed, or anything out of expired) raises
TransitionNotAllowed.

The state machine is instantiated per-agreement and validates transitions
before the ORM model's status field is updated.

Transition table:
    pending  -> funded     (funding_confirmed)
    pending  -> cancelled  (user_cancelled)
    pending  -> expired    (timeout_expired)
    funded   -> completed  (agent_verified)
    funded   -> expired    (timeout_expired)
"""

from __future__ import annotations

from statemachine import State, StateMachine


class EscrowStateMachine(StateMachine):
    """State machine that guards escrow agreement lifecycle transitions.

    Usage:
        sm = EscrowStateMachine(current_status="funded")
        sm.agent_verified()  # transitions to completed
        sm.status            # "completed"
    """

    # --- States ---
    PENDING = State("Pending", value="pending", initial=True)
    FUNDED = State("Funded", value="funded")
    COMPLETED = State("Completed", value="completed", final=True)
    EXPIRED = State("Expired", value="expired", final=True)
    CANCELLED = State("Cancelled", value="cancelled", final=True)

    # --- Events / Transitions ---
    funding_confirmed = PENDING.to(FUNDED)
    user_cancelled = PENDING.to(CANCELLED)
    timeout_expired = PENDING.to(EXPIRED) | FUNDED.to(EXPIRED)
    agent_verified = FUNDED.to(COMPLETED)

    def __init__(self, current_status: str = "pending") -> None:
        """Initialize the state machine at a given status.

        Args:
            current_status: The current EscrowStatus value (e.g., "funded").
        """
        valid_values = {s.value for s in self.states}
        if current_status not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(
                f"Unknown status '{current_status}'. Valid states: {valid}"
            )
        super().__init__(start_value=current_status)

    @property
    def status(self) -> str:
        """Return the current state value as a string (matches EscrowStatus enum)."""
        return str(self.current_state.value)

    def get_allowed_events(self) -> list[str]:
        """Return a list of event names that can fire from the current state."""
        return [event.id for event in self.allowed_events]


def validate_transition(current_status: str, event_name: str) -> str:
    """Fire the named event on a throwaway machine and return the new status.

    Raises:
        TransitionNotAllowed: If the transition is illegal.
        ValueError: If the status or event name is invalid.
    """
    sm = EscrowStateMachine(current_status=current_status)

    event_method = getattr(sm, event_name, None)
    if event_method is None or not callable(event_method):
        raise ValueError(
            f"Unknown event '{event_name}'. "
            f"Allowed events from {current_status}: {sm.get_allowed_events()}"
        )

    event_method()
    return sm.status
