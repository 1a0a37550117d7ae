"""Sorting of (key, row id) tuples: quicksort plus a byte-wise radix sort."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Sequence

__all__ = [
    "MergeTuple",
    "byte_at",
    "quicksort",
    "radix_sort",
    "table_sort_on_key",
]

KEY_BYTES = 8
DEFAULT_QUICKSORT_THRESHOLD = 8192


@dataclass(slots=True)
class MergeTuple:
    """A column value together with the row it came from."""

    key: int
    row_id: int


def byte_at(num: int, key: int) -> int:
    """Return byte *key* of the 64-bit *num*, counting from the most significant."""
    if not 0 <= key < KEY_BYTES:
        raise ValueError(f"byte index must be between 0 and 7, got {key}")
    return (num >> ((KEY_BYTES - 1 - key) * 8)) & 0xFF


def _partition(items: list[MergeTuple], low: int, high: int) -> int:
    pivot = items[high].key
    boundary = low - 1
    for index in range(low, high):
        if items[index].key < pivot:
            boundary += 1
            items[boundary], items[index] = items[index], items[boundary]
    items[boundary + 1], items[high] = items[high], items[boundary + 1]
    return boundary + 1


def quicksort(items: list[MergeTuple]) -> None:
    """Sort *items* in place by key, using the last element as pivot."""
    pending = [(0, len(items) - 1)]
    while pending:
        low, high = pending.pop()
        if low >= high:
            continue
        pivot = _partition(items, low, high)
        pending.append((low, pivot - 1))
        pending.append((pivot + 1, high))


def radix_sort(
    items: Iterable[MergeTuple],
    key: int = 0,
    quicksort_threshold: int = DEFAULT_QUICKSORT_THRESHOLD,
) -> list[MergeTuple]:
    """Return *items* sorted by key, starting the radix pass at byte *key*.

    Groups no larger than *quicksort_threshold* are finished with
    :func:`quicksort`; larger ones are split on the next byte.
    """
    if not 0 <= key <= KEY_BYTES:
        raise ValueError(f"byte index must be between 0 and 8, got {key}")
    items = list(items)
    if key == KEY_BYTES:
        return items
    if len(items) <= quicksort_threshold:
        quicksort(items)
        return items

    groups: dict[int, list[MergeTuple]] = defaultdict(list)
    for item in items:
        groups[byte_at(item.key, key)].append(item)

    result: list[MergeTuple] = []
    for byte in sorted(groups):
        result.extend(radix_sort(groups[byte], key + 1, quicksort_threshold))
    return result


def table_sort_on_key(
    columns: Sequence[Sequence[int]],
    key: int,
    quicksort_threshold: int = DEFAULT_QUICKSORT_THRESHOLD,
) -> list[MergeTuple]:
    """Sort the rows of a column-major table by column *key*.

    Returns one :class:`MergeTuple` per row, holding the column value and
    the row's original index, in ascending order of value.
    """
    column = columns[key]
    tuples = [MergeTuple(value, row) for row, value in enumerate(column)]
    return radix_sort(tuples, 0, quicksort_threshold)