"""Purchase state machine transitions enforced by the ledger."""


class InvalidTransitionError(ValueError):
    """Raised when a status change is not allowed by the state machine."""


ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "created": {"pending", "paid", "cancelled"},
    "pending": {"paid", "cancelled"},
    # Remote truth can show a cancelled purchase was captured after all.
    "cancelled": {"paid"},
    "paid": set(),
}

TERMINAL_STATES = frozenset({"paid"})


def can_transition(current: str, new: str) -> bool:
    """Return True when `current -> new` is a legal change of status."""

    return new in ALLOWED_TRANSITIONS.get(current, set())


def validate_transition(current: str, new: str) -> None:
    """Raise when a transition is not allowed by the state machine."""

    if not can_transition(current, new):
        raise InvalidTransitionError(f"Invalid transition: {current} -> {new}")
