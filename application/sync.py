"""
Client-side view of a game's ledger.

Readers keep a local copy of the participant list that is refreshed from
the store whenever a change event arrives, and periodically as a fallback
when events are dropped. Interfaces may apply a tentative change locally
while a request is in flight, but the next authoritative snapshot always
wins: every pending local change is discarded once a fresher snapshot
arrives.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, replace
from threading import Lock
from typing import Dict, List, Optional, Tuple

from application.ledger import list_participants
from application.stores import Stores
from domain.models import ChangeEvent, Participant

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 3.0


@dataclass(frozen=True)
class LedgerSnapshot:
    """Authoritative participant list; higher versions are fresher."""

    version: int
    participants: Tuple[Participant, ...]


class LedgerView:
    """Reducer over authoritative snapshots and optimistic local patches."""

    def __init__(self) -> None:
        self._snapshot: Optional[LedgerSnapshot] = None
        self._pending: Dict[str, dict] = {}
        self._lock = Lock()

    @property
    def version(self) -> int:
        return self._snapshot.version if self._snapshot is not None else -1

    def apply_snapshot(self, snapshot: LedgerSnapshot) -> bool:
        """Accept `snapshot` if it is fresher than the current one."""

        with self._lock:
            if self._snapshot is not None and snapshot.version <= self._snapshot.version:
                return False
            self._snapshot = snapshot
            self._pending.clear()
            return True

    def apply_optimistic(self, participant_id: str, **changes) -> None:
        with self._lock:
            self._pending.setdefault(participant_id, {}).update(changes)

    def has_pending(self) -> bool:
        return bool(self._pending)

    def participants(self) -> List[Participant]:
        with self._lock:
            if self._snapshot is None:
                return []
            return [
                replace(p, **self._pending.get(p.participant_id, {}))
                for p in self._snapshot.participants
            ]


class LedgerSync:
    """Keeps a `LedgerView` up to date for one game."""

    def __init__(self, stores: Stores, game_id: str, view: Optional[LedgerView] = None) -> None:
        self._stores = stores
        self.game_id = game_id
        self.view = view or LedgerView()
        self._sequence = itertools.count()
        self._unsubscribe = None

    def refresh(self) -> bool:
        # The version is taken before the read so a slow, older read that
        # finishes late cannot replace a newer one.
        version = next(self._sequence)
        participants = list_participants(self._stores, self.game_id)
        accepted = self.view.apply_snapshot(LedgerSnapshot(version, tuple(participants)))
        if not accepted:
            logger.debug("Ignored stale snapshot %d for game %s", version, self.game_id)
        return accepted

    def on_change(self, event: ChangeEvent) -> None:
        if event.game_id == self.game_id:
            self.refresh()

    def start(self) -> None:
        """Subscribe to change events (if a notifier is wired) and load once."""

        if self._stores.notifier is not None and self._unsubscribe is None:
            self._unsubscribe = self._stores.notifier.subscribe(self.game_id, self.on_change)
        self.refresh()

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
