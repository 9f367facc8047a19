# src/stepsnap/core/dependencies.py
"""Structural equality for dependency descriptions.

A snapshot is only reused when the dependency description it was
recorded under is structurally equal to the current one. The comparison
is deliberately conservative: whenever equality cannot be established
(NaN, ambiguous comparisons, mismatched types) the descriptions are
treated as different, which forces a full recompute instead of
replaying a snapshot that might not apply.

Rules:
- Mappings: same key set, equal values; key order is ignored
- Sequences (list/tuple): same length, equal elements in order.
  list and tuple are interchangeable because codecs such as JSON do
  not preserve the distinction.
- Sets: compared with set equality
- NumPy arrays: same shape and equal elements (NaN never equal)
- bool never equals a non-bool number, even though ``True == 1``
- Floats: standard equality, so NaN is unequal to everything,
  including itself and the same NaN object
- Anything else: ``==`` must return a real boolean True

Containers may be cyclic; a pair of containers already under comparison
is assumed equal when met again.
"""

from collections.abc import Mapping, Set
from typing import Any

import numpy as np

_SEQUENCE_TYPES = (list, tuple)


def dependencies_equal(current: Any, recovered: Any) -> bool:
    """Return True if two dependency descriptions are structurally equal.

    Args:
        current: Dependency description of the running context
        recovered: Dependency description read back from a snapshot

    Returns:
        True only if the descriptions are provably equal
    """
    return _equal(current, recovered, set())


def _equal(a: Any, b: Any, in_progress: set[tuple[int, int]]) -> bool:
    if isinstance(a, Mapping) or isinstance(b, Mapping):
        if not (isinstance(a, Mapping) and isinstance(b, Mapping)):
            return False
        return _guarded(a, b, in_progress, _mappings_equal)

    if isinstance(a, _SEQUENCE_TYPES) or isinstance(b, _SEQUENCE_TYPES):
        if not (isinstance(a, _SEQUENCE_TYPES) and isinstance(b, _SEQUENCE_TYPES)):
            return False
        return _guarded(a, b, in_progress, _sequences_equal)

    if isinstance(a, np.ndarray) or isinstance(b, np.ndarray):
        if not (isinstance(a, np.ndarray) and isinstance(b, np.ndarray)):
            return False
        return a.shape == b.shape and bool(np.array_equal(a, b))

    if isinstance(a, Set) or isinstance(b, Set):
        if not (isinstance(a, Set) and isinstance(b, Set)):
            return False
        return _scalar_equal(a, b)

    if isinstance(a, bool | np.bool_) != isinstance(b, bool | np.bool_):
        return False

    return _scalar_equal(a, b)


def _guarded(
    a: Any,
    b: Any,
    in_progress: set[tuple[int, int]],
    compare: Any,
) -> bool:
    """Run a container comparison, short-circuiting re-entrant pairs."""
    key = (id(a), id(b))
    if key in in_progress:
        return True
    in_progress.add(key)
    try:
        result: bool = compare(a, b, in_progress)
    finally:
        in_progress.discard(key)
    return result


def _mappings_equal(
    a: Mapping[Any, Any],
    b: Mapping[Any, Any],
    in_progress: set[tuple[int, int]],
) -> bool:
    if len(a) != len(b):
        return False
    for key, value in a.items():
        if key not in b:
            return False
        if not _equal(value, b[key], in_progress):
            return False
    return True


def _sequences_equal(
    a: list[Any] | tuple[Any, ...],
    b: list[Any] | tuple[Any, ...],
    in_progress: set[tuple[int, int]],
) -> bool:
    if len(a) != len(b):
        return False
    return all(_equal(x, y, in_progress) for x, y in zip(a, b, strict=True))


def _scalar_equal(a: Any, b: Any) -> bool:
    # NaN floats are unequal even when they are the same object
    if isinstance(a, float | np.floating) and a != a:
        return False
    result = a == b
    if isinstance(result, bool | np.bool_):
        return bool(result)
    # Comparisons that do not produce a plain truth value are never trusted
    return False
