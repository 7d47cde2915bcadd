"""
Participant ledger: admission and cash-amount changes within one game.

Who may do what:
- a player may ask to join, re-ask after being denied, and report their own
  requested cash in / cash out;
- the host approves or denies players, edits confirmed amounts, and accepts
  or rejects a player's requested change one field at a time;
- everyone else may only read.

While the session is closed every mutation here is refused with
"session locked", host edits of confirmed amounts included, so the
snapshot taken at close stays the record of that session. An ended game
refuses everything.
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional

from application.profiles import ensure_profile
from application.stores import (
    Stores,
    require_game,
    require_host,
    require_participant,
    require_self,
    require_unlocked,
)
from domain.errors import InvalidAmount, InvalidState, NotFound
from domain.models import (
    AmountField,
    ChangeKind,
    GameStatus,
    Participant,
    ParticipantStatus,
)

logger = logging.getLogger(__name__)


def validate_amount(value) -> float:
    if isinstance(value, bool):
        raise InvalidAmount(value)
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise InvalidAmount(value) from None
    if not math.isfinite(amount) or amount < 0:
        raise InvalidAmount(value)
    # Adding 0.0 turns -0.0 into 0.0.
    return amount + 0.0


def _require_approved(participant: Participant) -> None:
    if participant.status != ParticipantStatus.APPROVED:
        raise InvalidState(
            f"participant {participant.participant_id} is {participant.status.value}",
            "That player has not been approved.",
        )


def _save(stores: Stores, participant: Participant) -> Participant:
    stores.participants.save_participant(participant)
    stores.notify(participant.game_id, ChangeKind.PARTICIPANT, participant.participant_id)
    return participant


def request_join(stores: Stores, game_id: str, participant_id: str) -> Participant:
    """
    Ask to join an active game.

    A new row starts as pending with requested amounts of zero. Asking
    again returns the existing row unchanged, whatever its status.
    """

    game = require_game(stores, game_id)
    if game.status != GameStatus.ACTIVE:
        raise InvalidState(f"game {game_id} is not joinable", "Game not found or not active.")

    existing = stores.participants.get_participant(game_id, participant_id)
    if existing is not None:
        return existing

    ensure_profile(stores.profiles, participant_id)
    participant = Participant(
        game_id=game_id,
        participant_id=participant_id,
        status=ParticipantStatus.PENDING,
        requested_cash_in=0.0,
        requested_cash_out=0.0,
    )
    if stores.participants.add_participant(participant):
        logger.info("Participant %s requested to join game %s", participant_id, game_id)
        stores.notify(game_id, ChangeKind.PARTICIPANT, participant_id)
    # A concurrent join may have inserted first; return whichever row won.
    return require_participant(stores, game_id, participant_id)


def join_by_code(stores: Stores, short_code: str, participant_id: str) -> Participant:
    code = short_code.strip().lower()
    if not code:
        raise NotFound("game", short_code)
    game = stores.games.get_game_by_code(code)
    if game is None:
        raise NotFound("game", code)
    return request_join(stores, game.id, participant_id)


def set_requested_amounts(
    stores: Stores,
    game_id: str,
    participant_id: str,
    cash_in,
    cash_out,
    caller_id: str,
) -> Participant:
    """A player reports their own cash in / cash out for the host to approve."""

    require_self(participant_id, caller_id, "change another player's requested amounts")
    cash_in = validate_amount(cash_in)
    cash_out = validate_amount(cash_out)

    game = require_game(stores, game_id)
    require_unlocked(game)
    participant = require_participant(stores, game_id, participant_id)
    if participant.status == ParticipantStatus.DENIED:
        return participant

    participant.requested_cash_in = cash_in
    participant.requested_cash_out = cash_out
    return _save(stores, participant)


def approve(stores: Stores, game_id: str, participant_id: str, host_id: str) -> Participant:
    """Admit a player; their pending request becomes their confirmed amounts."""

    game = require_game(stores, game_id)
    require_host(game, host_id, "approve players")
    require_unlocked(game)
    participant = require_participant(stores, game_id, participant_id)

    cash_in = participant.requested_cash_in if participant.requested_cash_in is not None else 0.0
    cash_out = participant.requested_cash_out if participant.requested_cash_out is not None else 0.0
    participant.status = ParticipantStatus.APPROVED
    participant.confirmed_cash_in = cash_in
    participant.confirmed_cash_out = cash_out
    participant.requested_cash_in = cash_in
    participant.requested_cash_out = cash_out
    logger.info("Host %s approved %s in game %s", host_id, participant_id, game_id)
    return _save(stores, participant)


def deny(stores: Stores, game_id: str, participant_id: str, host_id: str) -> Participant:
    """Refuse (or remove) a player. The row is kept so they can ask again."""

    game = require_game(stores, game_id)
    require_host(game, host_id, "deny players")
    require_unlocked(game)
    if participant_id == game.host_id:
        raise InvalidState("the host cannot be denied", "Cannot kick yourself.")
    participant = require_participant(stores, game_id, participant_id)

    participant.status = ParticipantStatus.DENIED
    logger.info("Host %s denied %s in game %s", host_id, participant_id, game_id)
    return _save(stores, participant)


def kick(stores: Stores, game_id: str, participant_id: str, host_id: str) -> Participant:
    game = require_game(stores, game_id)
    require_host(game, host_id, "kick players")
    if participant_id == host_id:
        raise InvalidState("host tried to kick themself", "Cannot kick yourself.")
    return deny(stores, game_id, participant_id, host_id)


def request_rejoin(
    stores: Stores,
    game_id: str,
    participant_id: str,
    caller_id: str,
) -> Participant:
    """
    A denied player asks to be let back in.

    Only denied -> pending is allowed. Confirmed amounts stay as they were
    until the host approves again.
    """

    require_self(participant_id, caller_id, "rejoin for another player")
    game = require_game(stores, game_id)
    require_unlocked(game)
    participant = require_participant(stores, game_id, participant_id)
    if participant.status != ParticipantStatus.DENIED:
        raise InvalidState(
            f"rejoin requires status denied, participant is {participant.status.value}",
            "Only removed players can ask to rejoin.",
        )

    participant.status = ParticipantStatus.PENDING
    logger.info("Participant %s asked to rejoin game %s", participant_id, game_id)
    return _save(stores, participant)


def set_confirmed_amounts(
    stores: Stores,
    game_id: str,
    participant_id: str,
    cash_in,
    cash_out,
    host_id: str,
) -> Participant:
    """Host overwrites a player's confirmed amounts and clears any pending request."""

    game = require_game(stores, game_id)
    require_host(game, host_id, "edit confirmed amounts")
    cash_in = validate_amount(cash_in)
    cash_out = validate_amount(cash_out)
    require_unlocked(game)
    participant = require_participant(stores, game_id, participant_id)
    _require_approved(participant)

    participant.confirmed_cash_in = cash_in
    participant.confirmed_cash_out = cash_out
    participant.requested_cash_in = cash_in
    participant.requested_cash_out = cash_out
    return _save(stores, participant)


def _field_values(participant: Participant, field: AmountField):
    if field == AmountField.CASH_IN:
        return participant.requested_cash_in, participant.confirmed_cash_in
    return participant.requested_cash_out, participant.confirmed_cash_out


def _assign(participant: Participant, field: AmountField, confirmed, requested) -> None:
    if field == AmountField.CASH_IN:
        participant.confirmed_cash_in = confirmed
        participant.requested_cash_in = requested
    else:
        participant.confirmed_cash_out = confirmed
        participant.requested_cash_out = requested


def approve_requested_delta(
    stores: Stores,
    game_id: str,
    participant_id: str,
    field: AmountField,
    host_id: str,
) -> Participant:
    """Accept one requested field into the confirmed amounts, leaving the other alone."""

    field = AmountField(field)
    game = require_game(stores, game_id)
    require_host(game, host_id, "approve requested amounts")
    require_unlocked(game)
    participant = require_participant(stores, game_id, participant_id)
    _require_approved(participant)

    requested, confirmed = _field_values(participant, field)
    value = requested if requested is not None else (confirmed or 0.0)
    _assign(participant, field, confirmed=value, requested=value)
    return _save(stores, participant)


def reject_requested_delta(
    stores: Stores,
    game_id: str,
    participant_id: str,
    field: AmountField,
    host_id: str,
) -> Participant:
    """Drop one requested field back to the confirmed value."""

    field = AmountField(field)
    game = require_game(stores, game_id)
    require_host(game, host_id, "reject requested amounts")
    require_unlocked(game)
    participant = require_participant(stores, game_id, participant_id)
    _require_approved(participant)

    _, confirmed = _field_values(participant, field)
    _assign(participant, field, confirmed=confirmed, requested=confirmed)
    return _save(stores, participant)


def list_participants(
    stores: Stores,
    game_id: str,
    status: Optional[ParticipantStatus] = None,
) -> List[Participant]:
    """Read path: every caller may list a game's players, with display names resolved."""

    require_game(stores, game_id)
    participants = stores.participants.list_participants(game_id, status)
    for p in participants:
        p.display_name = stores.resolver.display_name(p.participant_id)
    return participants
