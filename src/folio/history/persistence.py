"""PersistenceAdapter — best-effort durability for a HistoryState."""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from collections.abc import Callable
from typing import Any

import msgpack

from folio.history.sanitizer import sanitize_snapshot
from folio.history.state import HistoryState
from folio.history.storage import Storage

logger = logging.getLogger(__name__)

# Snapshot schema version (a mismatch on read means "no usable snapshot")
SNAPSHOT_VERSION = 1

SNAPSHOT_FORMATS = ("json", "msgpack")


def _default_serializer(obj: Any) -> Any:
    """Convert values json/msgpack cannot encode natively."""
    if isinstance(obj, (tuple, set, frozenset)):
        return list(obj)
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    raise TypeError(f"Cannot serialize {type(obj)}")


def decode_payload(raw: Any) -> Any:
    """Parse a stored payload: JSON for text, msgpack (or JSON) for bytes.

    Values that are neither text nor bytes are returned unchanged.
    """
    if isinstance(raw, str):
        return json.loads(raw)
    if isinstance(raw, (bytes, bytearray)):
        try:
            return msgpack.unpackb(bytes(raw), raw=False)
        except Exception:
            return json.loads(bytes(raw).decode("utf-8"))
    return raw


def encode_payload(payload: Any, fmt: str = "json") -> str | bytes:
    """Encode *payload* as JSON text or msgpack bytes."""
    if fmt == "msgpack":
        return msgpack.packb(payload, default=_default_serializer, use_bin_type=True)
    return json.dumps(payload, default=_default_serializer)


def _log_task_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("History write failed: %s", exc)


class PersistenceAdapter:
    """Boundary between a history controller and a key-value :class:`Storage`.

    Stored payload::

        {"version": 1, "past": [...], "present": ..., "future": [...]}

    ``serialize`` receives that dict and may return any JSON/msgpack-encodable
    value, or an already-encoded ``str``/``bytes``.  ``deserialize`` receives
    the raw stored value and must return the (parsed) snapshot mapping; the
    default parses text as JSON and bytes as msgpack.  Every storage or codec
    failure is logged and swallowed: in-memory state stays authoritative.
    """

    def __init__(
        self,
        storage: Storage,
        key: str,
        *,
        version: int = SNAPSHOT_VERSION,
        serialize: Callable[[dict[str, Any]], Any] | None = None,
        deserialize: Callable[[Any], Any] | None = None,
        fmt: str = "json",
    ) -> None:
        if fmt not in SNAPSHOT_FORMATS:
            raise ValueError(f"Unknown snapshot format {fmt!r}, expected one of {SNAPSHOT_FORMATS}")
        self._storage = storage
        self._key = key
        self._version = version
        self._serialize = serialize or (lambda snapshot: snapshot)
        self._deserialize = deserialize or decode_payload
        self._fmt = fmt
        self._pending: set[asyncio.Task] = set()

    @property
    def key(self) -> str:
        return self._key

    @property
    def version(self) -> int:
        return self._version

    @property
    def storage(self) -> Storage:
        return self._storage

    def snapshot(self, state: HistoryState) -> dict[str, Any]:
        """Versioned plain-dict snapshot of *state*."""
        return {"version": self._version, **state.to_dict()}

    def encode(self, state: HistoryState) -> str | bytes:
        serialized = self._serialize(self.snapshot(state))
        if isinstance(serialized, (str, bytes)):
            return serialized
        return encode_payload(serialized, self._fmt)

    def write(self, state: HistoryState) -> bool:
        """Persist *state*.  Returns False (never raises) on failure."""
        try:
            payload = self.encode(state)
            result = self._storage.set(self._key, payload)
            if inspect.isawaitable(result):
                self._finish(result)
        except Exception as exc:
            logger.warning("History write to %r failed: %s", self._key, exc)
            return False
        return True

    async def read(self, fallback: Any = None) -> HistoryState | None:
        """Load and sanitize the stored snapshot, or ``None`` if unusable."""
        try:
            raw = self._storage.get(self._key)
            if inspect.isawaitable(raw):
                raw = await raw
            if raw is None:
                logger.debug("No stored history under %r", self._key)
                return None
            parsed = self._deserialize(raw)
        except Exception as exc:
            logger.warning("History read from %r failed: %s", self._key, exc)
            return None

        state = sanitize_snapshot(parsed, fallback=fallback, version=self._version)
        if state is None:
            logger.info("Discarding unusable history snapshot under %r", self._key)
        return state

    def clear(self) -> bool:
        """Remove the stored snapshot.  Returns False (never raises) on failure."""
        try:
            result = self._storage.remove(self._key)
            if inspect.isawaitable(result):
                self._finish(result)
        except Exception as exc:
            logger.warning("History clear of %r failed: %s", self._key, exc)
            return False
        return True

    async def flush(self) -> None:
        """Wait for every scheduled asynchronous write or remove to settle."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _finish(self, awaitable: Any) -> None:
        """Fire-and-forget on the running loop, or run to completion without one."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        async def _await() -> Any:
            return await awaitable

        if loop is None:
            asyncio.run(_await())
            return
        task = loop.create_task(_await())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        task.add_done_callback(_log_task_failure)
