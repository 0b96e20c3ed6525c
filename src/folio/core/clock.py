"""Time sources for checkpoint throttling.

The throttle gate only ever asks "how many milliseconds since the last
mark?", so a clock needs a single ``now()`` in epoch seconds.  Tests and the
demo drive a :class:`SimClock` by hand to replay typing bursts exactly.
"""

from __future__ import annotations

import time
from typing import Any, Protocol, runtime_checkable

DEFAULT_SIM_EPOCH = 1_000_000.0


@runtime_checkable
class Clock(Protocol):
    def now(self) -> float:
        """Epoch seconds."""
        ...

    def elapsed(self) -> float:
        """Seconds since the clock started."""
        ...


class SystemClock:
    """Wall-clock epoch, advanced by the monotonic counter.

    The epoch is sampled once at construction; later readings add monotonic
    deltas, so a system clock adjustment mid-session cannot make a throttle
    window run backwards.
    """

    def __init__(self) -> None:
        self._origin = time.monotonic()
        self._epoch_at_origin = time.time()

    def now(self) -> float:
        return self._epoch_at_origin + self.elapsed()

    def elapsed(self) -> float:
        return time.monotonic() - self._origin


class SimClock:
    """Hand-driven clock: time moves only through :meth:`step`/:meth:`step_ms`/:meth:`set_time`."""

    def __init__(self, start_epoch: float = DEFAULT_SIM_EPOCH) -> None:
        self._start_epoch = float(start_epoch)
        self._offset = 0.0

    @property
    def start_epoch(self) -> float:
        return self._start_epoch

    def now(self) -> float:
        return self._start_epoch + self._offset

    def elapsed(self) -> float:
        return self._offset

    def step(self, dt: float) -> None:
        if dt < 0:
            raise ValueError(f"SimClock.step() requires dt >= 0, got {dt}")
        self._offset += dt

    def step_ms(self, dt_ms: float) -> None:
        """Advance by *dt_ms* milliseconds (one simulated keystroke gap)."""
        self.step(dt_ms / 1000.0)

    def set_time(self, epoch_time: float) -> None:
        offset = epoch_time - self._start_epoch
        if offset < 0:
            raise ValueError(
                f"epoch_time {epoch_time} is before start_epoch {self._start_epoch}"
            )
        self._offset = offset


def now_ms(clock: Clock) -> float:
    """Current time of *clock* in epoch milliseconds."""
    return clock.now() * 1000.0


def create_clock(config: Any = None) -> SystemClock | SimClock:
    """Clock for the ``folio.time`` section: ``mode: simulated`` or realtime."""
    if not config or config.get("mode", "realtime") != "simulated":
        return SystemClock()
    return SimClock(start_epoch=config.get("start_epoch", DEFAULT_SIM_EPOCH))
