"""
Game-level session state machine.

    active --close--> closed --reopen--> active   (repeatable, host only)
    active | closed --end--> ended                (terminal)

Close and end write several rows (snapshots, profit deltas, status) and
run inside one `atomic()` block: either every row lands or none does.
Change events are published only after the block commits.
"""

from __future__ import annotations

import logging
import secrets
import uuid
from typing import Dict, List, Optional, Tuple

from application.guests import settle_eligible_guests
from application.history import record_snapshots
from application.profiles import ensure_profile
from application.stores import (
    Stores,
    require_game,
    require_host,
    require_not_ended,
    require_participant,
)
from domain.errors import InsufficientParticipants, InvalidState, MappingFailure
from domain.models import (
    ChangeKind,
    Game,
    GameStatus,
    Participant,
    ParticipantStatus,
    Payout,
    PlayerEntry,
    ProfitHistoryEntry,
)
from domain.settlement import build_settlement_entries, settle_ledger

logger = logging.getLogger(__name__)

SHORT_CODE_BYTES = 4
_SHORT_CODE_ATTEMPTS = 10


def _new_short_code(stores: Stores) -> str:
    for _ in range(_SHORT_CODE_ATTEMPTS):
        code = secrets.token_hex(SHORT_CODE_BYTES)
        if stores.games.get_game_by_code(code) is None:
            return code
    raise RuntimeError("could not allocate a unique short code")


def _move(stores: Stores, game: Game, status: GameStatus, ended_at: Optional[str] = None) -> None:
    """Move `game` out of the status it was read in, or fail if it has left it."""

    if not stores.games.set_status(game.id, status, ended_at=ended_at, expected=game.status):
        raise InvalidState(
            f"game {game.id} is no longer {game.status.value}",
            "The game changed in the meantime. Please try again.",
        )


def create_game(stores: Stores, host_id: str, description: Optional[str] = None) -> Game:
    """Start a new active game; the creator is its host and first approved player."""

    game = Game(
        id=uuid.uuid4().hex,
        short_code=_new_short_code(stores),
        host_id=host_id,
        status=GameStatus.ACTIVE,
        description=(description or "").strip() or None,
        created_at=stores.now(),
    )
    with stores.uow.atomic():
        ensure_profile(stores.profiles, host_id)
        stores.games.add_game(game)
        stores.participants.add_participant(
            Participant(
                game_id=game.id,
                participant_id=host_id,
                status=ParticipantStatus.APPROVED,
                confirmed_cash_in=0.0,
                confirmed_cash_out=0.0,
                requested_cash_in=0.0,
                requested_cash_out=0.0,
            )
        )
    logger.info("Host %s created game %s (%s)", host_id, game.id, game.short_code)
    return game


def close(stores: Stores, game_id: str, host_id: str) -> Game:
    """Snapshot the current session and lock the ledger."""

    game = require_game(stores, game_id)
    require_host(game, host_id, "close the session")
    if game.status != GameStatus.ACTIVE:
        raise InvalidState(
            f"cannot close game {game_id} from {game.status.value}",
            "Only an active session can be closed.",
        )

    with stores.uow.atomic():
        _move(stores, game, GameStatus.CLOSED)
        participants = stores.participants.list_participants(game_id, ParticipantStatus.APPROVED)
        guests = settle_eligible_guests(stores, game_id)
        record_snapshots(stores, game_id, participants, guests, stores.now())

    game.status = GameStatus.CLOSED
    logger.info("Host %s closed the session of game %s", host_id, game_id)
    stores.notify(game_id, ChangeKind.GAME)
    return game


def reopen(stores: Stores, game_id: str, host_id: str) -> Game:
    """
    Start a fresh session.

    Every player's confirmed and requested amounts go back to unset and
    all guests are removed, so nothing from the previous session leaks in.
    """

    game = require_game(stores, game_id)
    require_host(game, host_id, "reopen the session")
    if game.status != GameStatus.CLOSED:
        raise InvalidState(
            f"cannot reopen game {game_id} from {game.status.value}",
            "Only a closed session can be reopened.",
        )

    with stores.uow.atomic():
        _move(stores, game, GameStatus.ACTIVE)
        stores.participants.clear_amounts(game_id)
        stores.guests.delete_guests_for_game(game_id)

    game.status = GameStatus.ACTIVE
    logger.info("Host %s reopened game %s", host_id, game_id)
    stores.notify(game_id, ChangeKind.GAME)
    return game


def _settlement_inputs(
    stores: Stores, game_id: str
) -> Tuple[List[Participant], list, List[PlayerEntry], Dict[str, Optional[str]]]:
    participants = stores.participants.list_participants(game_id, ParticipantStatus.APPROVED)
    guests = settle_eligible_guests(stores, game_id)
    labels = {p.participant_id: stores.resolver.label(p.participant_id) for p in participants}
    entries, identities = build_settlement_entries(participants, guests, labels)
    return participants, guests, entries, identities


def payout(stores: Stores, game_id: str) -> Payout:
    """Current settlement of approved players and eligible guests."""

    require_game(stores, game_id)
    _, _, entries, _ = _settlement_inputs(stores, game_id)
    return settle_ledger(entries)


def end(stores: Stores, game_id: str, host_id: str) -> Payout:
    """
    Finish the game: settle once, apply each player's net to their lifetime
    profit, and mark the game ended.

    Guests are settled but get no profit delta. If any settled name cannot
    be mapped back to a participant nothing is written.
    """

    game = require_game(stores, game_id)
    require_host(game, host_id, "end the game")
    require_not_ended(game)

    participants, guests, entries, identities = _settlement_inputs(stores, game_id)
    if len(entries) < 2:
        raise InsufficientParticipants(len(entries))
    result = settle_ledger(entries)

    # Every name settle_ledger reports must be one of the entries it was given.
    unmapped = [p.name for p in result.players if p.name not in identities]
    if unmapped:
        raise MappingFailure(unmapped)

    now = stores.now()
    deltas = [
        ProfitHistoryEntry(
            id=uuid.uuid4().hex,
            profile_id=identities[p.name],
            game_id=game_id,
            profit_delta=p.net,
            recorded_at=now,
        )
        for p in result.players
        if identities[p.name] is not None
    ]

    with stores.uow.atomic():
        _move(stores, game, GameStatus.ENDED, ended_at=now)
        if game.status == GameStatus.ACTIVE:
            # A closed game already snapshotted this session on close.
            record_snapshots(stores, game_id, participants, guests, now)
        for entry in deltas:
            stores.profiles.apply_profit_delta(entry)

    game.status = GameStatus.ENDED
    game.ended_at = now
    logger.info(
        "Host %s ended game %s; applied %d profit delta(s), slippage %.2f",
        host_id,
        game_id,
        len(deltas),
        result.slippage,
    )
    stores.notify(game_id, ChangeKind.GAME)
    return result


def transfer_host(stores: Stores, game_id: str, current_host_id: str, new_host_id: str) -> Game:
    game = require_game(stores, game_id)
    require_host(game, current_host_id, "transfer host")
    require_not_ended(game)
    if new_host_id == current_host_id:
        raise InvalidState("host transfer to self", "You are already the host.")

    new_host = require_participant(stores, game_id, new_host_id)
    if new_host.status != ParticipantStatus.APPROVED:
        raise InvalidState(
            f"new host {new_host_id} is {new_host.status.value}",
            "New host must be an approved player.",
        )

    stores.games.set_host(game_id, new_host_id)
    game.host_id = new_host_id
    logger.info("Host of game %s moved from %s to %s", game_id, current_host_id, new_host_id)
    stores.notify(game_id, ChangeKind.GAME)
    return game


def games_for_participant(stores: Stores, participant_id: str) -> List[Game]:
    """Games still in play that the participant has been admitted to, newest first."""

    return stores.games.list_games_for_participant(participant_id)
