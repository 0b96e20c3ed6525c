"""Bounded undo/redo history with optional persistence for folio."""

from folio.history.config import HistoryConfig, PersistenceConfig
from folio.history.controller import HistoryController
from folio.history.persistence import SNAPSHOT_VERSION, PersistenceAdapter
from folio.history.policy import resolve_equality, trim_past
from folio.history.sanitizer import sanitize_snapshot
from folio.history.state import HistoryState
from folio.history.storage import FileStorage, MemoryStorage, Storage, create_storage
from folio.history.throttle import ThrottleGate

__all__ = [
    "FileStorage",
    "HistoryConfig",
    "HistoryController",
    "HistoryState",
    "MemoryStorage",
    "PersistenceAdapter",
    "PersistenceConfig",
    "SNAPSHOT_VERSION",
    "Storage",
    "ThrottleGate",
    "create_storage",
    "resolve_equality",
    "sanitize_snapshot",
    "trim_past",
]
