from __future__ import annotations

import logging
from collections import defaultdict
from threading import Lock
from typing import Callable, Dict, List

from domain.models import ChangeEvent
from domain.repositories import ChangeNotifier

logger = logging.getLogger(__name__)

Subscriber = Callable[[ChangeEvent], None]


class InProcessChangeNotifier(ChangeNotifier):
    """
    Fan-out of change events to subscribers in the same process.

    Delivery is best-effort: a subscriber that raises is logged and the
    remaining subscribers still receive the event.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[Subscriber]] = defaultdict(list)
        self._lock = Lock()

    def subscribe(self, game_id: str, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers[game_id].append(callback)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(game_id, [])
                if callback in callbacks:
                    callbacks.remove(callback)
                if not callbacks:
                    self._subscribers.pop(game_id, None)

        return unsubscribe

    def publish(self, event: ChangeEvent) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(event.game_id, []))

        for callback in callbacks:
            try:
                callback(event)
            except Exception:
                logger.exception("Change subscriber failed for game %s", event.game_id)

    def subscriber_count(self, game_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get(game_id, []))
