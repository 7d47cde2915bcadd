"""
Errors raised by ledger and session operations.

Each error carries a short `user_message` that interface layers can show
verbatim, while `str(error)` keeps the detailed message for logs.
"""

from __future__ import annotations

from typing import Optional


class LedgerError(Exception):
    """Base class for every rejected ledger or session action."""

    def __init__(self, message: str, user_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.user_message = user_message or message


class NotAuthorized(LedgerError):
    """The caller lacks the role (host or self) the action needs."""

    def __init__(self, action: str, caller_id: str) -> None:
        super().__init__(
            f"{caller_id} is not allowed to {action}",
            f"You are not allowed to {action}.",
        )
        self.action = action
        self.caller_id = caller_id


class InvalidState(LedgerError):
    """The action is not permitted in the game's or participant's current status."""


class NotFound(LedgerError):
    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f"{kind} {key!r} not found", f"{kind.capitalize()} not found.")
        self.kind = kind
        self.key = key


class InsufficientParticipants(LedgerError):
    def __init__(self, eligible: int) -> None:
        super().__init__(
            f"insufficient data: {eligible} settle-eligible participant(s), need at least 2",
            "At least two players with amounts are needed to settle.",
        )
        self.eligible = eligible


class MappingFailure(LedgerError):
    """A settled name could not be attributed back to a participant identity."""

    def __init__(self, names) -> None:
        names = sorted(names)
        super().__init__(
            f"could not map settled players to participants: {', '.join(names)}",
            "Could not map players to users.",
        )
        self.names = names


class InvalidAmount(LedgerError, ValueError):
    def __init__(self, value) -> None:
        super().__init__(
            f"invalid cash amount: {value!r}",
            "Amounts must be non-negative numbers.",
        )
        self.value = value


SESSION_LOCKED = "session locked"
