"""Snapshot sanitizer — turns possibly-malformed data into a HistoryState."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from folio.history.state import HistoryState


def _as_tuple(value: Any) -> tuple:
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return ()


def sanitize_snapshot(
    raw: Any, fallback: Any = None, version: int | None = None
) -> HistoryState | None:
    """Normalize *raw* into a :class:`HistoryState`, or ``None`` if unusable.

    * a ``HistoryState`` is returned as is when its buffers are tuples,
      otherwise rebuilt with tuple buffers;
    * anything that is not a mapping is unusable;
    * when *version* is given, ``raw["version"]`` must be that int;
    * non-sequence ``past`` / ``future`` become empty;
    * a missing (or ``None``) ``present`` becomes *fallback*.
    """
    if isinstance(raw, HistoryState):
        if type(raw.past) is tuple and type(raw.future) is tuple:
            return raw
        return HistoryState(
            past=_as_tuple(raw.past), present=raw.present, future=_as_tuple(raw.future)
        )
    if not isinstance(raw, Mapping):
        return None
    if version is not None:
        declared = raw.get("version")
        if type(declared) is not int or declared != version:
            return None
    present = raw.get("present")
    if present is None:
        present = fallback
    return HistoryState(
        past=_as_tuple(raw.get("past")),
        present=present,
        future=_as_tuple(raw.get("future")),
    )
