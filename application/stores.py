from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from application.profiles import ProfileResolver
from domain.errors import InvalidState, NotAuthorized, NotFound, SESSION_LOCKED
from domain.models import ChangeEvent, ChangeKind, Game, GameStatus, Participant
from domain.repositories import (
    ChangeNotifier,
    GameRepository,
    GuestRepository,
    ParticipantRepository,
    ProfileRepository,
    SnapshotRepository,
    UnitOfWork,
)

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Stores:
    """
    Everything an application service needs from the outside world.

    Services never depend on concrete storage or transport types; they
    only see these repository protocols, the unit of work that makes
    multi-row changes atomic, and an optional change notifier.
    """

    games: GameRepository
    participants: ParticipantRepository
    guests: GuestRepository
    snapshots: SnapshotRepository
    profiles: ProfileRepository
    uow: UnitOfWork
    notifier: Optional[ChangeNotifier] = None
    resolver: Optional[ProfileResolver] = None
    clock: Callable[[], datetime] = field(default=utc_now)

    def __post_init__(self) -> None:
        if self.resolver is None:
            self.resolver = ProfileResolver(self.profiles)

    def now(self) -> str:
        return self.clock().isoformat()

    def notify(self, game_id: str, kind: ChangeKind, subject_id: Optional[str] = None) -> None:
        """Publish a change event. Call only after the change is committed."""

        if self.notifier is None:
            return
        self.notifier.publish(ChangeEvent(game_id=game_id, kind=kind, subject_id=subject_id))


def require_game(stores: Stores, game_id: str) -> Game:
    game = stores.games.get_game(game_id)
    if game is None:
        raise NotFound("game", game_id)
    return game


def require_participant(stores: Stores, game_id: str, participant_id: str) -> Participant:
    participant = stores.participants.get_participant(game_id, participant_id)
    if participant is None:
        raise NotFound("participant", participant_id)
    return participant


def require_host(game: Game, caller_id: str, action: str) -> None:
    if game.host_id != caller_id:
        logger.debug("Rejected %s by non-host %s in game %s", action, caller_id, game.id)
        raise NotAuthorized(action, caller_id)


def require_self(participant_id: str, caller_id: str, action: str) -> None:
    if participant_id != caller_id:
        raise NotAuthorized(action, caller_id)


def require_not_ended(game: Game) -> None:
    if game.status == GameStatus.ENDED:
        raise InvalidState(f"game {game.id} has ended", "This game has ended.")


def require_unlocked(game: Game) -> None:
    """Mutations are only accepted while the session is active."""

    require_not_ended(game)
    if game.status == GameStatus.CLOSED:
        raise InvalidState(SESSION_LOCKED, "The session is closed; amounts are locked.")
