"""Bounding and equality policies for the history controller."""

from __future__ import annotations

import math
import operator
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

T = TypeVar("T")

EqualityFn = Callable[[Any, Any], bool]


def trim_past(past: Sequence[T], max_size: int | float | None) -> Sequence[T]:
    """Drop the oldest entries of *past* so at most *max_size* remain.

    A *max_size* that is not a positive finite number means unbounded and
    returns *past* unchanged (the same object).
    """
    if max_size is None or isinstance(max_size, bool):
        return past
    if not isinstance(max_size, (int, float)):
        return past
    if not math.isfinite(max_size) or max_size <= 0:
        return past
    limit = int(max_size)
    if limit <= 0 or len(past) <= limit:
        return past
    return past[len(past) - limit :]


# Immutable scalars compare by value under the default policy
_VALUE_TYPES = (str, bytes, int, float, bool)


def identity(a: Any, b: Any) -> bool:
    """Sameness like JavaScript ``Object.is``.

    Containers and objects compare by identity.  Strings, bytes and numbers
    of the same type compare by value; ``nan`` equals ``nan`` and ``0.0``
    differs from ``-0.0``.
    """
    if a is b:
        return True
    kind = type(a)
    if kind is not type(b) or kind not in _VALUE_TYPES:
        return False
    if kind is float:
        if math.isnan(a) and math.isnan(b):
            return True
        if a == 0.0 and b == 0.0:
            return math.copysign(1.0, a) == math.copysign(1.0, b)
    return a == b


def structural(a: Any, b: Any) -> bool:
    """Sameness by value (``==``), with identity as a fast path."""
    if a is b:
        return True
    try:
        return bool(operator.eq(a, b))
    except Exception:
        return False


EQUALITY_POLICIES: dict[str, EqualityFn] = {
    "identity": identity,
    "structural": structural,
}


def resolve_equality(policy: str | EqualityFn | None) -> EqualityFn:
    """Return the equality function named by *policy* (or *policy* itself).

    Raises:
        ValueError: If *policy* is an unknown name.
    """
    if policy is None:
        return identity
    if callable(policy):
        return policy
    try:
        return EQUALITY_POLICIES[policy]
    except KeyError:
        raise ValueError(
            f"Unknown equality policy {policy!r}, expected one of "
            f"{sorted(EQUALITY_POLICIES)}"
        ) from None
