"""Binary search over sorted values that skips positions already used."""

from __future__ import annotations

from typing import Sequence

__all__ = ["binary_search"]


def binary_search(
    values: Sequence[int],
    used: Sequence[bool],
    low: int,
    high: int,
    target: int,
) -> int:
    """Find an unused index of *target* in ``values[low:high + 1]``.

    *values* must be sorted ascending and *used* marks positions that may
    not be returned.  Like :meth:`str.find`, returns -1 when no unused
    position holds *target*.
    """
    if high < low:
        return -1
    mid = low + (high - low) // 2
    value = values[mid]
    if value > target:
        return binary_search(values, used, low, mid - 1, target)
    if value < target:
        return binary_search(values, used, mid + 1, high, target)
    if not used[mid]:
        return mid
    found = binary_search(values, used, low, mid - 1, target)
    if found == -1:
        return binary_search(values, used, mid + 1, high, target)
    return found