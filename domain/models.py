from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class GameStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"
    ENDED = "ended"


class ParticipantStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class AmountField(str, Enum):
    """Which of the two cash columns a single-field request refers to."""

    CASH_IN = "cash_in"
    CASH_OUT = "cash_out"


@dataclass
class Game:
    """
    A poker table that players join with a short code.

    The game is independent of any transport (Discord, web) or database
    schema; repositories map rows to and from this model.
    """

    id: str
    short_code: str
    host_id: str
    status: GameStatus
    description: Optional[str] = None
    created_at: Optional[str] = None
    ended_at: Optional[str] = None


@dataclass
class Participant:
    """
    One player's seat in one game.

    `confirmed_*` amounts are the host-approved figures used for
    settlement. `requested_*` amounts are what the player last reported
    for themself; they differ from the confirmed ones while a change is
    awaiting the host.
    """

    game_id: str
    participant_id: str
    status: ParticipantStatus
    confirmed_cash_in: Optional[float] = None
    confirmed_cash_out: Optional[float] = None
    requested_cash_in: Optional[float] = None
    requested_cash_out: Optional[float] = None
    display_name: Optional[str] = None

    @property
    def cash_in(self) -> float:
        return self.confirmed_cash_in or 0.0

    @property
    def cash_out(self) -> float:
        return self.confirmed_cash_out or 0.0

    def has_pending_request(self) -> bool:
        return (
            self.requested_cash_in != self.confirmed_cash_in
            or self.requested_cash_out != self.confirmed_cash_out
        )


@dataclass
class Guest:
    """An unauthenticated, host-managed player scoped to one session."""

    id: str
    game_id: str
    name: str
    cash_in: float = 0.0
    cash_out: float = 0.0

    def is_settle_eligible(self) -> bool:
        return self.cash_in != 0 or self.cash_out != 0


@dataclass
class Profile:
    """
    Lifetime identity of a player across games.

    `net_profit` only ever moves by deltas applied when a game ends.
    """

    id: str
    display_name: Optional[str] = None
    venmo_handle: Optional[str] = None
    net_profit: float = 0.0
    profile_public: bool = True


@dataclass
class SessionSnapshot:
    participant_id: str
    game_id: str
    cash_in: float
    cash_out: float
    session_net: float
    snapshotted_at: str


@dataclass
class GuestSessionSnapshot:
    guest_name: str
    game_id: str
    cash_in: float
    cash_out: float
    session_net: float
    snapshotted_at: str


@dataclass
class ProfitHistoryEntry:
    id: str
    profile_id: str
    game_id: str
    profit_delta: float
    recorded_at: str


@dataclass
class PlayerEntry:
    """Settlement input: one uniquely named party and its cash flows."""

    name: str
    cash_in: float
    cash_out: float


@dataclass
class Transfer:
    target: str
    value: float


@dataclass
class PlayerResult:
    """
    Settlement output for one party.

    `paid_by` lists who pays this player, `paid_to` whom this player pays.
    """

    name: str
    display_name: str
    cash_in: float
    cash_out: float
    net: float
    paid_by: List[Transfer] = field(default_factory=list)
    paid_to: List[Transfer] = field(default_factory=list)


@dataclass
class Payout:
    slippage: float
    players: List[PlayerResult] = field(default_factory=list)


class ChangeKind(str, Enum):
    PARTICIPANT = "participant"
    GUEST = "guest"
    GAME = "game"


@dataclass
class ChangeEvent:
    """A row in a game changed; subscribers should re-read the game."""

    game_id: str
    kind: ChangeKind
    subject_id: Optional[str] = None
