from __future__ import annotations

from typing import Callable, ContextManager, List, Optional, Protocol

from .models import (
    ChangeEvent,
    Game,
    GameStatus,
    Guest,
    GuestSessionSnapshot,
    Participant,
    ParticipantStatus,
    Profile,
    ProfitHistoryEntry,
    SessionSnapshot,
)


class UnitOfWork(Protocol):
    """
    Groups several repository writes into one all-or-nothing change.

    Inside `atomic()` every repository sharing this unit of work writes
    through the same transaction; leaving the block with an exception
    rolls all of it back.
    """

    def atomic(self) -> ContextManager[None]:
        ...


class GameRepository(Protocol):
    """
    Abstraction over game persistence.

    Implementations map between database rows and the `Game` domain model
    and hide any SQL / driver details from the application layer.
    """

    def get_game(self, game_id: str) -> Optional[Game]:
        """Return the game with the given ID, or None if not found."""

        ...

    def get_game_by_code(self, short_code: str) -> Optional[Game]:
        ...

    def add_game(self, game: Game) -> None:
        ...

    def set_status(
        self,
        game_id: str,
        status: GameStatus,
        ended_at: Optional[str] = None,
        expected: Optional[GameStatus] = None,
    ) -> bool:
        """
        Move the game to `status`. With `expected`, only a game currently in
        that status is changed. Returns False when no row was updated.
        """

        ...

    def set_host(self, game_id: str, host_id: str) -> None:
        ...

    def list_games_for_participant(self, participant_id: str) -> List[Game]:
        """Return non-ended games the participant has been admitted to."""

        ...


class ParticipantRepository(Protocol):
    """
    Per-game participant rows.

    Writes are per-row and last-write-wins; there is no version check.
    """

    def get_participant(self, game_id: str, participant_id: str) -> Optional[Participant]:
        ...

    def list_participants(
        self,
        game_id: str,
        status: Optional[ParticipantStatus] = None,
    ) -> List[Participant]:
        ...

    def add_participant(self, participant: Participant) -> bool:
        """Insert a new row. Returns False if the player already has one in this game."""

        ...

    def save_participant(self, participant: Participant) -> None:
        """Overwrite status and all four amount columns of an existing row."""

        ...

    def clear_amounts(self, game_id: str) -> None:
        """Reset confirmed and requested amounts of every row in the game to unset."""

        ...


class GuestRepository(Protocol):
    def get_guest(self, guest_id: str) -> Optional[Guest]:
        ...

    def list_guests(self, game_id: str) -> List[Guest]:
        ...

    def add_guest(self, guest: Guest) -> None:
        ...

    def save_guest(self, guest: Guest) -> None:
        ...

    def delete_guest(self, guest_id: str) -> None:
        ...

    def delete_guests_for_game(self, game_id: str) -> None:
        ...


class SnapshotRepository(Protocol):
    """Append-only session history."""

    def add_snapshots(
        self,
        snapshots: List[SessionSnapshot],
        guest_snapshots: List[GuestSessionSnapshot],
    ) -> None:
        ...

    def list_snapshots(
        self,
        game_id: str,
        participant_id: Optional[str] = None,
    ) -> List[SessionSnapshot]:
        """Return snapshots ordered by timestamp, oldest first."""

        ...

    def list_guest_snapshots(self, game_id: str) -> List[GuestSessionSnapshot]:
        ...


class ProfileRepository(Protocol):
    def get_profile(self, profile_id: str) -> Optional[Profile]:
        ...

    def add_profile(self, profile: Profile) -> None:
        """Insert a profile; an existing row with the same ID is left untouched."""

        ...

    def update_profile(self, profile: Profile) -> None:
        """Update display fields. `net_profit` is never written here."""

        ...

    def apply_profit_delta(self, entry: ProfitHistoryEntry) -> None:
        """
        Add `entry.profit_delta` to the profile's lifetime net profit and
        record the entry in the profit history.
        """

        ...

    def list_profit_history(self, profile_id: str) -> List[ProfitHistoryEntry]:
        ...

    def top_public_profiles(self, limit: int) -> List[Profile]:
        ...


class IdentityRepository(Protocol):
    """
    Maps external identities (e.g. Discord users) to profile IDs.

    The application layer works exclusively with profile IDs and leaves
    provider-specific identifiers to this abstraction.
    """

    def find_profile_id(self, provider: str, provider_user_id: str) -> Optional[str]:
        ...

    def set_external_identity(self, provider: str, provider_user_id: str, profile_id: str) -> None:
        ...

    def get_external_ids(self, provider: str, profile_id: str) -> List[str]:
        ...


class ChangeNotifier(Protocol):
    """
    Best-effort fan-out of row-change events scoped to a game.

    Delivery may be dropped; readers re-fetch periodically as a fallback.
    """

    def subscribe(self, game_id: str, callback: Callable[[ChangeEvent], None]) -> Callable[[], None]:
        """Register `callback` and return a function that unsubscribes it."""

        ...

    def publish(self, event: ChangeEvent) -> None:
        ...

