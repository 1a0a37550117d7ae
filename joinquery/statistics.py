"""Column statistics and the cardinality estimates a join optimiser uses.

Every column keeps its lowest and highest value, the number of values
(``f_all``), an estimate of the number of distinct values (``d_distinct``)
and a table recording which values occur.  When the value range is wider
than the limit ``n`` given to :func:`initial_stats`, the table has ``n``
slots and a value is recorded at ``(value - first_lower) % n``, where
``first_lower`` is the lowest value of the table's first column.
Otherwise it has one slot per value of the range, with value ``v`` at
``upper - v``; the column's ``n`` is then 0.

The estimates use unsigned machine arithmetic: differences of bounds wrap
at 64 bits and most results are stored as 32-bit unsigned integers.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Callable

from .relations import RelationTable

__all__ = [
    "ColumnStats",
    "TableStats",
    "BloomFilter",
    "sdbm_hash",
    "initial_stats",
    "filter_equal_to_value",
    "filter_between_values",
    "filter_between_columns",
    "self_join_stats",
    "join_stats",
]

_MASK32 = 0xFFFFFFFF
_MASK64 = (1 << 64) - 1
# The sdbm mixing step applied to its fixed seed of 1254.
_SDBM_SEED = ((1254 << 7) + (1254 << 12) - (1254 >> 5)) & _MASK32


@dataclass
class ColumnStats:
    """Statistics of one column."""

    lower: int
    upper: int
    f_all: int
    d_distinct: int
    n: int = 0
    distinct_array: bytearray = field(default_factory=bytearray)


@dataclass
class TableStats:
    """Statistics of every column of one relation."""

    columns: list[ColumnStats]

    @property
    def cols(self) -> int:
        return len(self.columns)

    def copy(self) -> TableStats:
        """Copy the per-column figures; the distinct tables are shared."""
        return TableStats([replace(column) for column in self.columns])


class BloomFilter:
    """A single-hash bit table remembering which slots have been hit."""

    def __init__(self, cells: int, hash_function: Callable[[int], int]) -> None:
        if cells < 1:
            raise ValueError("a bloom filter needs at least one cell")
        self.cells = cells
        self._hash = hash_function
        self._table = bytearray(cells)

    def add(self, value: int) -> bool:
        """Mark *value*'s slot; return True if it was already marked."""
        position = self._hash(value) % self.cells
        seen = bool(self._table[position])
        self._table[position] = 1
        return seen


def sdbm_hash(value: int) -> int:
    """One sdbm mixing step from a fixed seed, as a 32-bit unsigned int."""
    return (_SDBM_SEED + value) & _MASK32


def _div(a: float, b: float) -> float:
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a)
    return a / b


def _pow(base: float, exponent: float) -> float:
    try:
        return math.pow(base, exponent)
    except ValueError:
        return math.nan
    except OverflowError:
        return math.inf


def _round(x: float) -> float:
    if not math.isfinite(x):
        return x
    return math.copysign(math.floor(abs(x) + 0.5), x)


def _u32(x: float) -> int:
    x = _round(x)
    if not math.isfinite(x):
        return 0
    return int(x) & _MASK32


def _u64(x: float) -> int:
    x = _round(x)
    if not math.isfinite(x):
        return 0
    return int(x) & _MASK64


def _span(upper: int, lower: int) -> int:
    return (upper - lower) & _MASK64


def _shrink_distinct(column: ColumnStats, kept: float, old: float) -> int:
    """Estimate the distinct values left after keeping *kept* of *old* rows."""
    ratio = 1.0 - _div(kept, old)
    exponent = _div(float(column.f_all), float(column.d_distinct))
    return _u32(column.d_distinct * (1.0 - _pow(ratio, exponent)))


def initial_stats(relation: RelationTable, n: int) -> TableStats:
    """Compute the statistics of every column of *relation*.

    *n* bounds the size of a column's distinct-value table.
    """
    if n < 1:
        raise ValueError("the distinct table size must be at least 1")
    if relation.rows == 0:
        raise ValueError("cannot compute statistics of an empty relation")

    columns: list[ColumnStats] = []
    for values in relation.table:
        lower, upper = min(values), max(values)
        stats = ColumnStats(lower, upper, relation.rows, 0)
        first_lower = columns[0].lower if columns else lower
        width = (_span(upper, lower) + 1) & _MASK64
        if width > n:
            stats.n = n
            table = bytearray(n)
            for value in values:
                table[((value - first_lower) & _MASK64) % n] = 1
        else:
            table = bytearray(width)
            for value in values:
                table[upper - value] = 1
        stats.distinct_array = table
        stats.d_distinct = sum(table)
        columns.append(stats)
    return TableStats(columns)


def filter_equal_to_value(stats: TableStats, column: int, value: int) -> None:
    """Update *stats* for the filter ``column = value``."""
    target = stats.columns[column]
    f_all_old = target.f_all

    target.lower = value
    target.upper = value

    if target.n != 0:
        slot = ((value - stats.columns[0].lower) & _MASK64) % target.n
    else:
        slot = _span(target.upper, value)
    is_distinct = slot < len(target.distinct_array) and bool(
        target.distinct_array[slot]
    )

    if is_distinct:
        target.f_all = _u64(_div(float(target.f_all), float(target.d_distinct)))
        target.d_distinct = 1
    else:
        target.f_all = 0
        target.d_distinct = 0

    for index, other in enumerate(stats.columns):
        if index != column:
            other.d_distinct = _shrink_distinct(other, target.f_all, f_all_old)
            other.f_all = target.f_all


def filter_between_values(stats: TableStats, column: int, low: int, high: int) -> None:
    """Update *stats* for the filter ``low <= column <= high``."""
    if low > high:
        low, high = high, low
    target = stats.columns[column]
    f_all_old = target.f_all

    low = max(low, target.lower)
    high = min(high, target.upper)

    ratio = _div(float(_span(high, low)), float(_span(target.upper, target.lower)))
    target.d_distinct = _u32(ratio * target.d_distinct)
    target.f_all = _u32(ratio * target.f_all)
    target.lower = low
    target.upper = high

    for index, other in enumerate(stats.columns):
        if index != column:
            other.d_distinct = _shrink_distinct(other, target.f_all, f_all_old)
            other.f_all = target.f_all


def filter_between_columns(
    stats1: TableStats, stats2: TableStats, col1: int, col2: int
) -> None:
    """Update the statistics for the filter ``col1 = col2`` within one relation.

    Columns *col1* and *col2* of *stats1* are narrowed to their common
    range; column *col1* of *stats2* takes over the result.
    """
    a = stats1.columns[col1]
    b = stats1.columns[col2]

    if a.lower > b.lower:
        b.lower = a.lower
    else:
        a.lower = b.lower
    if a.upper < b.upper:
        b.upper = a.upper
    else:
        a.upper = b.upper

    f_all_old = a.f_all
    n = (_span(a.upper, a.lower) + 1) & _MASK64

    a.f_all = _u32(_div(float(f_all_old), float(n)))
    b.f_all = a.f_all
    a.d_distinct = _u32(
        a.d_distinct
        * (
            1.0
            - _pow(
                1.0 - _div(float(a.f_all), float(f_all_old)),
                _div(float(f_all_old), float(a.d_distinct)),
            )
        )
    )
    b.d_distinct = a.d_distinct

    c = stats2.columns[col1]
    c.lower = a.lower
    c.upper = a.upper
    c.f_all = a.f_all
    f_all_old2 = c.f_all
    c.d_distinct = _u32(
        c.d_distinct
        * (
            1.0
            - _pow(
                1.0 - _div(float(c.f_all), float(f_all_old2)),
                _div(float(f_all_old2), float(c.d_distinct)),
            )
        )
    )

    for index in range(stats1.cols):
        if index in (col1, col2):
            continue
        first = stats1.columns[index]
        first.d_distinct = _shrink_distinct(first, a.f_all, f_all_old)
        first.f_all = a.f_all
        second = stats2.columns[index]
        second.d_distinct = _shrink_distinct(second, c.f_all, f_all_old2)
        second.f_all = c.f_all


def self_join_stats(stats: TableStats, column: int) -> int:
    """Update *stats* for joining *column* with itself; return the estimated cost."""
    target = stats.columns[column]
    n = (_span(target.upper, target.lower) + 1) & _MASK64
    target.f_all = _u32(_div(_pow(float(target.f_all), 2.0), float(n)))
    for index, other in enumerate(stats.columns):
        if index != column:
            other.f_all = target.f_all
    return target.f_all


def join_stats(stats1: TableStats, stats2: TableStats, col1: int, col2: int) -> int:
    """Update both statistics for the join ``col1 = col2``; return the estimated cost.

    Columns whose ranges do not overlap give a cost of 0 and are left as
    they are.
    """
    first = stats1.columns[col1]
    second = stats2.columns[col2]
    new_lower = max(first.lower, second.lower)
    new_upper = min(first.upper, second.upper)
    if new_lower > new_upper:
        return 0

    filter_between_values(stats1, col1, new_lower, new_upper)
    filter_between_values(stats2, col2, new_lower, new_upper)

    first.lower = second.lower = new_lower
    first.upper = second.upper = new_upper

    n = (_span(first.upper, first.lower) + 1) & _MASK64
    d_old1 = first.d_distinct
    d_old2 = second.d_distinct

    first.f_all = _u32(_div(float(first.f_all) * float(second.f_all), float(n)))
    second.f_all = first.f_all
    first.d_distinct = _u32(
        _div(float(first.d_distinct) * float(second.d_distinct), float(n))
    )
    second.d_distinct = first.d_distinct

    for stats, column, target, d_old in (
        (stats1, col1, first, d_old1),
        (stats2, col2, second, d_old2),
    ):
        for index, other in enumerate(stats.columns):
            if index != column:
                other.f_all = target.f_all
                other.d_distinct = _shrink_distinct(other, target.d_distinct, d_old)

    return first.f_all