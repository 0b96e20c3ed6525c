"""HistoryController — bounded undo/redo timeline with optional persistence."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from folio.core.bus import EventBus
from folio.core.clock import Clock
from folio.history.config import HistoryConfig
from folio.history.persistence import PersistenceAdapter
from folio.history.policy import EqualityFn, resolve_equality, trim_past
from folio.history.sanitizer import sanitize_snapshot
from folio.history.state import HistoryState
from folio.history.storage import Storage, create_storage
from folio.history.throttle import ThrottleGate

logger = logging.getLogger(__name__)

T = TypeVar("T")

EVENT_CHANGE = "change"
EVENT_HYDRATED = "hydrated"


class HistoryController(Generic[T]):
    """Owns one :class:`HistoryState` and mediates every transition.

    Typical editing loop::

        ctrl = HistoryController(doc, max_size=200, throttle_ms=800)
        ctrl.maybe_mark()                      # keystroke: throttled checkpoint
        ctrl.set(edit, record=False)           # live edit, no history entry
        ctrl.commit()                          # blur / save point
        ctrl.undo(); ctrl.redo()

    Transitions are synchronous and serialized by a re-entrant lock, so an
    updater may read the controller.  A transition that changes nothing
    returns the current state object unchanged and neither notifies
    listeners nor writes to storage.  Listeners run after the lock is
    released and receive the new state.

    When a :class:`PersistenceAdapter` is given, every real transition is
    written best-effort, and the stored snapshot is read back asynchronously
    (hydration).  Constructed inside a running event loop, hydration is
    scheduled immediately; otherwise ``await ctrl.hydrate()``.
    """

    def __init__(
        self,
        initial: T | Callable[[], T],
        *,
        max_size: int | None = None,
        equality: str | EqualityFn | None = "identity",
        clear_future_by_default: bool = True,
        throttle_ms: float = 0.0,
        persistence: PersistenceAdapter | None = None,
        clock: Clock | None = None,
        auto_hydrate: bool = True,
    ) -> None:
        if callable(initial):
            initial = initial()
        self._initial: T = initial
        self._state: HistoryState[T] = HistoryState.initial(initial)
        self._max_size = max_size
        self._equal = resolve_equality(equality)
        self._clear_future_by_default = clear_future_by_default
        self._gate = ThrottleGate(window_ms=throttle_ms, clock=clock)
        self._persistence = persistence
        self._bus = EventBus()
        self._lock = threading.RLock()
        self._closed = False
        self._hydrated = persistence is None
        self._hydration_task: asyncio.Task | None = None

        if persistence is not None and auto_hydrate:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
            if loop is not None:
                self._hydration_task = loop.create_task(self.hydrate())

    @classmethod
    def from_config(
        cls,
        config: HistoryConfig,
        initial: T | Callable[[], T],
        *,
        storage: Storage | None = None,
        clock: Clock | None = None,
        serialize: Callable[[dict[str, Any]], Any] | None = None,
        deserialize: Callable[[Any], Any] | None = None,
        auto_hydrate: bool = True,
    ) -> HistoryController[T]:
        """Build a controller from a :class:`HistoryConfig`.

        An explicit *storage* enables persistence even when the config
        leaves it disabled.
        """
        pcfg = config.persistence
        persistence = None
        if pcfg.enabled or storage is not None:
            persistence = PersistenceAdapter(
                storage if storage is not None else create_storage(pcfg),
                pcfg.key,
                version=pcfg.version,
                serialize=serialize,
                deserialize=deserialize,
                fmt=pcfg.format,
            )
        return cls(
            initial,
            max_size=config.max_size or None,
            equality=config.equality,
            clear_future_by_default=config.clear_future_by_default,
            throttle_ms=config.throttle_ms,
            persistence=persistence,
            clock=clock,
            auto_hydrate=auto_hydrate,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> HistoryState[T]:
        with self._lock:
            return self._state

    @property
    def present(self) -> T:
        return self.state.present

    @property
    def past(self) -> tuple[T, ...]:
        return self.state.past

    @property
    def future(self) -> tuple[T, ...]:
        return self.state.future

    @property
    def can_undo(self) -> bool:
        return self.state.can_undo

    @property
    def can_redo(self) -> bool:
        return self.state.can_redo

    @property
    def initial(self) -> T:
        """Value used by :meth:`reset` when called without an argument."""
        with self._lock:
            return self._initial

    @property
    def max_size(self) -> int | None:
        return self._max_size

    @property
    def hydrated(self) -> bool:
        return self._hydrated

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def persistence(self) -> PersistenceAdapter | None:
        return self._persistence

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _push(self, past: tuple[T, ...], value: T) -> tuple[T, ...]:
        return tuple(trim_past(past + (value,), self._max_size))

    def _apply(
        self,
        action: str,
        compute: Callable[[HistoryState[T]], HistoryState[T]],
        persist: bool = True,
    ) -> HistoryState[T]:
        with self._lock:
            current = self._state
            nxt = compute(current)
            if nxt is current:
                return current
            self._state = nxt
            if persist:
                self._write(nxt)
        logger.debug(
            "History %s: past=%d future=%d", action, len(nxt.past), len(nxt.future)
        )
        self._bus.publish(EVENT_CHANGE, nxt)
        return nxt

    def set(
        self,
        updater: T | Callable[[T], T],
        *,
        record: bool = True,
        clear_future: bool | None = None,
        persist: bool = True,
    ) -> HistoryState[T]:
        """Replace ``present`` with *updater* (or ``updater(present)``).

        With ``record=True`` the old present is pushed onto ``past``; with
        ``record=False`` only ``present`` changes.  ``future`` is cleared
        unless ``clear_future=False`` (``None`` means the controller default).
        Writing an equal value is a no-op.
        """
        clear = self._clear_future_by_default if clear_future is None else bool(clear_future)

        def compute(cur: HistoryState[T]) -> HistoryState[T]:
            nxt = updater(cur.present) if callable(updater) else updater
            same = self._equal(cur.present, nxt)
            future = () if clear else cur.future
            if not record:
                if same and (not clear or not cur.future):
                    return cur
                return HistoryState(past=cur.past, present=nxt, future=future)
            if same:
                return cur
            return HistoryState(
                past=self._push(cur.past, cur.present), present=nxt, future=future
            )

        return self._apply("set", compute, persist=persist)

    def _commit_step(self, cur: HistoryState[T]) -> HistoryState[T]:
        if cur.past and self._equal(cur.past[-1], cur.present):
            if not cur.future:
                return cur
            return HistoryState(past=cur.past, present=cur.present, future=())
        return HistoryState(
            past=self._push(cur.past, cur.present), present=cur.present, future=()
        )

    def _checkpoint(self) -> tuple[HistoryState[T], bool]:
        changed = False

        def compute(cur: HistoryState[T]) -> HistoryState[T]:
            nonlocal changed
            nxt = self._commit_step(cur)
            changed = nxt is not cur
            return nxt

        return self._apply("commit", compute), changed

    def commit(self) -> HistoryState[T]:
        """Checkpoint: snapshot ``present`` onto ``past`` and clear ``future``.

        A checkpoint that changes the timeline restarts the throttle window.
        """
        state, changed = self._checkpoint()
        if changed:
            self._gate.touch()
        return state

    mark = commit

    def maybe_mark(self, now_ms: float | None = None) -> bool:
        """Checkpoint at most once per throttle window.

        Returns True only when a checkpoint changed the timeline; an
        idempotent one leaves the window open.
        """
        return self._gate.maybe_mark(lambda: self._checkpoint()[1], now_ms)

    def undo(self) -> HistoryState[T]:
        def compute(cur: HistoryState[T]) -> HistoryState[T]:
            if not cur.past:
                return cur
            return HistoryState(
                past=cur.past[:-1],
                present=cur.past[-1],
                future=(cur.present,) + cur.future,
            )

        return self._apply("undo", compute)

    def redo(self) -> HistoryState[T]:
        def compute(cur: HistoryState[T]) -> HistoryState[T]:
            if not cur.future:
                return cur
            return HistoryState(
                past=self._push(cur.past, cur.present),
                present=cur.future[0],
                future=cur.future[1:],
            )

        return self._apply("redo", compute)

    def reset(self, value: T | Callable[[T], T] | None = None) -> HistoryState[T]:
        """Start a fresh timeline at *value* (default: the remembered initial).

        A callable *value* receives the remembered initial.  The resolved
        value becomes the new initial.
        """

        def compute(cur: HistoryState[T]) -> HistoryState[T]:
            if value is None:
                resolved = self._initial
            elif callable(value):
                resolved = value(self._initial)
            else:
                resolved = value
            self._initial = resolved
            return HistoryState.initial(resolved)

        return self._apply("reset", compute)

    def load(self, snapshot: Any) -> HistoryState[T]:
        """Replace the whole timeline from a ``{past, present, future}`` snapshot.

        Malformed snapshots (``None``, non-mappings) are ignored.  The loaded
        present becomes the new initial.
        """

        def compute(cur: HistoryState[T]) -> HistoryState[T]:
            loaded = sanitize_snapshot(snapshot, fallback=self._initial)
            if loaded is None or loaded is cur:
                return cur
            self._initial = loaded.present
            return HistoryState(
                past=tuple(trim_past(loaded.past, self._max_size)),
                present=loaded.present,
                future=loaded.future,
            )

        return self._apply("load", compute)

    def clear(self) -> HistoryState[T]:
        """Drop all undo/redo entries, keeping ``present``."""

        def compute(cur: HistoryState[T]) -> HistoryState[T]:
            if not cur.past and not cur.future:
                return cur
            return HistoryState.initial(cur.present)

        return self._apply("clear", compute)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def subscribe(self, listener: Callable[[HistoryState[T]], Any]) -> Callable[[], None]:
        """Call *listener(state)* after every transition.  Returns an unsubscribe."""
        return self._bus.subscribe(EVENT_CHANGE, listener)

    def on_hydrated(self, listener: Callable[[HistoryState[T]], Any]) -> Callable[[], None]:
        """Call *listener(state)* once hydration has settled."""
        return self._bus.subscribe(EVENT_HYDRATED, listener)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _write(self, state: HistoryState[T]) -> None:
        if self._persistence is None or self._closed:
            return
        self._persistence.write(state)

    def save(self) -> bool:
        """Write the current state now.  False if there is nothing to write to."""
        if self._persistence is None or self._closed:
            return False
        return self._persistence.write(self.state)

    def forget(self) -> bool:
        """Remove the persisted snapshot; in-memory state is untouched."""
        if self._persistence is None:
            return False
        return self._persistence.clear()

    async def flush(self) -> None:
        """Wait for pending asynchronous storage writes."""
        if self._persistence is not None:
            await self._persistence.flush()

    async def hydrate(self) -> bool:
        """Replace the default state with the persisted snapshot, if usable.

        Returns True when a stored snapshot was applied.  ``hydrated`` is set
        whatever the outcome, unless the controller was closed meanwhile, in
        which case the result is discarded.
        """
        if self._persistence is None:
            self._hydrated = True
            return False

        loaded = await self._persistence.read(fallback=self.initial)
        if self._closed:
            logger.debug("Discarding hydration result for closed controller")
            return False

        if loaded is not None:
            with self._lock:
                state = HistoryState(
                    past=tuple(trim_past(loaded.past, self._max_size)),
                    present=loaded.present,
                    future=loaded.future,
                )
                self._state = state
            logger.info(
                "Hydrated history from %r: past=%d future=%d",
                self._persistence.key,
                len(state.past),
                len(state.future),
            )
            self._bus.publish(EVENT_CHANGE, state)
        self._hydrated = True
        self._bus.publish(EVENT_HYDRATED, self.state)
        return loaded is not None

    async def wait_hydrated(self) -> bool:
        """Wait until hydration settled, running it if nobody scheduled it."""
        if self._hydrated:
            return True
        task = self._hydration_task
        if task is None:
            await self.hydrate()
        elif not task.done():
            try:
                await task
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
        return self._hydrated

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Tear down: discard late hydration results and stop writing."""
        if self._closed:
            return
        self._closed = True
        task = self._hydration_task
        if task is not None and not task.done():
            try:
                running = asyncio.get_running_loop()
            except RuntimeError:
                running = None
            if running is task.get_loop():
                task.cancel()
        self._bus.clear()
        logger.debug("History controller closed")

    def __enter__(self) -> HistoryController[T]:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    async def __aenter__(self) -> HistoryController[T]:
        await self.wait_hydrated()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.close()
