from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from application.ledger import validate_amount
from application.stores import Stores, require_game, require_host, require_unlocked
from domain.errors import NotFound
from domain.models import ChangeKind, Game, Guest

logger = logging.getLogger(__name__)


def _require_guest(stores: Stores, guest_id: str) -> Guest:
    guest = stores.guests.get_guest(guest_id)
    if guest is None:
        raise NotFound("guest", guest_id)
    return guest


def _require_host_unlocked(stores: Stores, game_id: str, host_id: str, action: str) -> Game:
    game = require_game(stores, game_id)
    require_host(game, host_id, action)
    require_unlocked(game)
    return game


def add_guest(
    stores: Stores,
    game_id: str,
    host_id: str,
    name: str,
    cash_in=0.0,
    cash_out=0.0,
) -> Guest:
    """Host adds an unauthenticated player for the current session only."""

    _require_host_unlocked(stores, game_id, host_id, "manage guests")
    name = (name or "").strip()
    if not name:
        raise ValueError("Guest name must not be empty.")

    guest = Guest(
        id=uuid.uuid4().hex,
        game_id=game_id,
        name=name,
        cash_in=validate_amount(cash_in),
        cash_out=validate_amount(cash_out),
    )
    stores.guests.add_guest(guest)
    logger.info("Host %s added guest %r to game %s", host_id, name, game_id)
    stores.notify(game_id, ChangeKind.GUEST, guest.id)
    return guest


def update_guest(
    stores: Stores,
    guest_id: str,
    host_id: str,
    name: Optional[str] = None,
    cash_in=None,
    cash_out=None,
) -> Guest:
    guest = _require_guest(stores, guest_id)
    _require_host_unlocked(stores, guest.game_id, host_id, "manage guests")

    if name is not None and name.strip():
        guest.name = name.strip()
    if cash_in is not None:
        guest.cash_in = validate_amount(cash_in)
    if cash_out is not None:
        guest.cash_out = validate_amount(cash_out)

    stores.guests.save_guest(guest)
    stores.notify(guest.game_id, ChangeKind.GUEST, guest.id)
    return guest


def remove_guest(stores: Stores, guest_id: str, host_id: str) -> None:
    guest = _require_guest(stores, guest_id)
    _require_host_unlocked(stores, guest.game_id, host_id, "manage guests")

    stores.guests.delete_guest(guest_id)
    logger.info("Host %s removed guest %r from game %s", host_id, guest.name, guest.game_id)
    stores.notify(guest.game_id, ChangeKind.GUEST, guest_id)


def list_guests(stores: Stores, game_id: str) -> List[Guest]:
    require_game(stores, game_id)
    return stores.guests.list_guests(game_id)


def settle_eligible_guests(stores: Stores, game_id: str) -> List[Guest]:
    return [g for g in stores.guests.list_guests(game_id) if g.is_settle_eligible()]
