"""HistoryState — one immutable past/present/future record."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class HistoryState(Generic[T]):
    """Immutable undo/redo timeline.

    ``past`` is ordered oldest first (its last element is the snapshot right
    before ``present``); ``future`` is ordered nearest-redo first.  Both are
    tuples so a state can be handed to listeners and other threads without
    copying.  Every transition builds a new instance; a no-op transition
    returns the very same instance, which lets callers detect "nothing
    changed" with ``is``.
    """

    past: tuple[T, ...] = ()
    present: T | None = None
    future: tuple[T, ...] = ()

    @classmethod
    def initial(cls, present: T) -> HistoryState[T]:
        """Fresh timeline with no undo or redo entries."""
        return cls(past=(), present=present, future=())

    @property
    def can_undo(self) -> bool:
        return len(self.past) > 0

    @property
    def can_redo(self) -> bool:
        return len(self.future) > 0

    def to_dict(self) -> dict[str, Any]:
        """Plain-dict form (lists instead of tuples) for serialization."""
        return {
            "past": list(self.past),
            "present": self.present,
            "future": list(self.future),
        }
