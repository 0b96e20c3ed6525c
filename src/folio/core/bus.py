"""Lightweight in-process listener bus."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class EventBus:
    """Synchronous event bus used to fan out history transitions.

    Thread-safe: subscribe/unsubscribe/publish are protected by a lock, and
    callbacks run outside the lock on a snapshot of the subscriber list so a
    listener may unsubscribe itself (or touch the publisher) while handling
    an event.  A failing listener is logged and never breaks the publisher.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: dict[str, list[Callable[[Any], Any]]] = defaultdict(list)

    def subscribe(self, event: str, callback: Callable[[Any], Any]) -> Callable[[], None]:
        """Register *callback* for *event*.  Returns an unsubscribe handle."""
        with self._lock:
            self._subscribers[event].append(callback)

        def _unsubscribe() -> None:
            self.unsubscribe(event, callback)

        return _unsubscribe

    def unsubscribe(self, event: str, callback: Callable[[Any], Any]) -> None:
        with self._lock:
            if callback in self._subscribers[event]:
                self._subscribers[event].remove(callback)

    def subscriber_count(self, event: str) -> int:
        with self._lock:
            return len(self._subscribers.get(event, []))

    def publish(self, event: str, payload: Any = None) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(event, []))
        for callback in callbacks:
            try:
                callback(payload)
            except Exception:
                logger.exception("EventBus callback error on '%s'", event)

    def clear(self) -> None:
        """Drop every subscriber."""
        with self._lock:
            self._subscribers.clear()
