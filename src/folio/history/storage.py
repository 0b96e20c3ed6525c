"""Key-value storage backends for persisted history snapshots."""

from __future__ import annotations

import gzip
import logging
import threading
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

StoredValue = str | bytes

_TEXT_SUFFIX = ".json"
_BINARY_SUFFIX = ".msgpack"


@runtime_checkable
class Storage(Protocol):
    """Three-method key-value capability used by the persistence adapter.

    Implementations may be synchronous or return awaitables from any of the
    methods; the adapter handles both.
    """

    def get(self, key: str) -> Any:
        """Return the stored value (``str`` or ``bytes``) or ``None``."""
        ...

    def set(self, key: str, value: StoredValue) -> Any:
        """Store *value* under *key*, replacing any previous value."""
        ...

    def remove(self, key: str) -> Any:
        """Delete *key*.  Missing keys are ignored."""
        ...


class MemoryStorage:
    """Thread-safe in-process storage.  Nothing survives the process."""

    def __init__(self, initial: dict[str, StoredValue] | None = None) -> None:
        self._data: dict[str, StoredValue] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> StoredValue | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: StoredValue) -> None:
        with self._lock:
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._data)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class FileStorage:
    """One file per key under *directory*.

    Text values land in ``<key>.json`` and binary values (msgpack payloads)
    in ``<key>.msgpack``; writing one form removes the other so a key never
    has two competing values.  With ``compression=True`` files are
    gzip-wrapped.  Reads detect gzip transparently, so toggling compression
    does not orphan existing files.
    """

    def __init__(self, directory: str | Path, compression: bool = False) -> None:
        self._directory = Path(directory)
        self._compression = compression
        self._lock = threading.Lock()

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def compression(self) -> bool:
        return self._compression

    def _paths(self, key: str) -> tuple[Path, Path]:
        if not key or "/" in key or "\\" in key or ".." in key:
            raise ValueError(f"Invalid storage key: {key!r}")
        return (
            self._directory / f"{key}{_TEXT_SUFFIX}",
            self._directory / f"{key}{_BINARY_SUFFIX}",
        )

    def get(self, key: str) -> StoredValue | None:
        text_path, binary_path = self._paths(key)
        with self._lock:
            if text_path.exists():
                return self._read(text_path).decode("utf-8")
            if binary_path.exists():
                return self._read(binary_path)
        return None

    def set(self, key: str, value: StoredValue) -> None:
        text_path, binary_path = self._paths(key)
        if isinstance(value, str):
            raw = value.encode("utf-8")
            target, stale = text_path, binary_path
        elif isinstance(value, (bytes, bytearray)):
            raw = bytes(value)
            target, stale = binary_path, text_path
        else:
            raise TypeError(f"FileStorage values must be str or bytes, got {type(value)}")

        if self._compression:
            raw = gzip.compress(raw)

        with self._lock:
            self._directory.mkdir(parents=True, exist_ok=True)
            tmp = target.with_name(target.name + ".tmp")
            tmp.write_bytes(raw)
            tmp.replace(target)
            stale.unlink(missing_ok=True)
        logger.debug("Stored %d bytes under key %r at %s", len(raw), key, target)

    def remove(self, key: str) -> None:
        text_path, binary_path = self._paths(key)
        with self._lock:
            text_path.unlink(missing_ok=True)
            binary_path.unlink(missing_ok=True)

    @staticmethod
    def _read(path: Path) -> bytes:
        raw = path.read_bytes()
        try:
            raw = gzip.decompress(raw)
        except gzip.BadGzipFile:
            pass
        return raw


def create_storage(config: Any) -> MemoryStorage | FileStorage:
    """Build the storage backend described by a persistence config section.

    Accepts a :class:`~folio.history.config.PersistenceConfig` or any object
    with ``backend``, ``directory`` and ``compression`` attributes.

    Raises:
        ValueError: If the backend name is unknown.
    """
    backend = getattr(config, "backend", "memory")
    if backend == "memory":
        return MemoryStorage()
    if backend == "file":
        return FileStorage(
            directory=getattr(config, "directory", "data/history"),
            compression=bool(getattr(config, "compression", False)),
        )
    raise ValueError(f"Unknown storage backend {backend!r}, expected 'memory' or 'file'")
