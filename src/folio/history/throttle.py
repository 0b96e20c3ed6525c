"""ThrottleGate — bounds checkpoint density for high-frequency edits."""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any

from folio.core.clock import Clock, SystemClock, now_ms


class ThrottleGate:
    """Turns frequent "maybe checkpoint" calls into at most one commit per window.

    With ``window_ms == 0`` every :meth:`maybe_mark` commits.  Otherwise a
    commit happens only when no mark was recorded yet or at least
    ``window_ms`` milliseconds passed since the last one.  Marks made directly
    (outside the gate) are reported through :meth:`touch` so they also open a
    fresh window.
    """

    def __init__(self, window_ms: float = 0.0, clock: Clock | None = None) -> None:
        if window_ms < 0:
            raise ValueError(f"window_ms must be >= 0, got {window_ms}")
        self._window_ms = float(window_ms)
        self._clock = clock or SystemClock()
        self._last_mark_ms: float | None = None
        self._lock = threading.Lock()

    @property
    def window_ms(self) -> float:
        return self._window_ms

    @property
    def last_mark_ms(self) -> float | None:
        with self._lock:
            return self._last_mark_ms

    def _now(self, now_ms_value: float | None) -> float:
        return now_ms(self._clock) if now_ms_value is None else float(now_ms_value)

    def touch(self, now_ms_value: float | None = None) -> None:
        """Record that a mark happened at *now_ms_value* (default: clock time)."""
        with self._lock:
            self._last_mark_ms = self._now(now_ms_value)

    def maybe_mark(
        self, commit: Callable[[], Any], now_ms_value: float | None = None
    ) -> bool:
        """Call *commit* if the window allows it.  Returns whether it marked.

        A *commit* that returns ``False`` reports a no-op checkpoint: the
        window is left where it was and the call returns False.
        """
        now = self._now(now_ms_value)
        with self._lock:
            previous = self._last_mark_ms
            if self._window_ms > 0 and previous is not None:
                if now - previous < self._window_ms:
                    return False
            self._last_mark_ms = now
        if commit() is False:
            with self._lock:
                if self._last_mark_ms == now:
                    self._last_mark_ms = previous
            return False
        return True

    def reset(self) -> None:
        """Forget the last mark so the next call commits."""
        with self._lock:
            self._last_mark_ms = None
