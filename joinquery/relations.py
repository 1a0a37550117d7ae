"""Relations, queries and result structures, and the readers that load them.

Relations are stored column-major: ``table[column][row]``.  Join results
are kept as pairs of 32-bit row ids packed into one 64-bit integer, the
left row id in the high half and the right row id in the low half.
"""

from __future__ import annotations

import os
import re
import struct
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Sequence

from .sorting import MergeTuple

__all__ = [
    "RelationTable",
    "JoinPred",
    "CompPred",
    "Projection",
    "Query",
    "ResStruct",
    "FullResList",
    "QueryBatchReader",
    "pack_pair",
    "unpack_pair",
    "merge_tables",
    "switch_elements",
    "read_csv_table",
    "read_relation",
    "read_relations",
    "parse_query",
]

_MASK32 = 0xFFFFFFFF
_MAX64 = (1 << 64) - 1
_WORD = struct.Struct("<Q")
_HEADER = struct.Struct("<QQ")
_BATCH_END = "F"
_OPERATORS = "=<>"


@dataclass
class RelationTable:
    """A relation of ``rows`` rows and ``cols`` columns, stored by column."""

    rows: int
    cols: int
    table: list[list[int]]
    table_id: int = 0

    def __post_init__(self) -> None:
        if len(self.table) != self.cols:
            raise ValueError(
                f"relation declares {self.cols} columns but holds {len(self.table)}"
            )
        for column in self.table:
            if len(column) != self.rows:
                raise ValueError(
                    f"relation declares {self.rows} rows but a column holds {len(column)}"
                )


@dataclass(frozen=True)
class JoinPred:
    """Equality between ``rel1.col_rel1`` and ``rel2.col_rel2``."""

    rel1: int
    rel2: int
    col_rel1: int
    col_rel2: int


@dataclass(frozen=True)
class CompPred:
    """Comparison of ``rel1.col_rel1`` with a constant: ``<``, ``>`` or ``=``."""

    comp: str
    rel1: int
    col_rel1: int
    num: int


@dataclass(frozen=True)
class Projection:
    """A column to be summed in the query's answer."""

    rel: int
    col_rel: int


@dataclass
class Query:
    """One parsed query; relation numbers in predicates index ``query_rels``."""

    query_rels: list[RelationTable]
    comp_preds: list[CompPred] = field(default_factory=list)
    join_preds: list[JoinPred] = field(default_factory=list)
    proj: list[Projection] = field(default_factory=list)

    @property
    def total_rels(self) -> int:
        return len(self.query_rels)


@dataclass
class ResStruct:
    """The surviving row ids of one relation of a query."""

    table_id: int
    row_ids: list[int] = field(default_factory=list)


@dataclass
class FullResList:
    """Relations whose row-id lists are aligned position by position."""

    table_list: list[ResStruct] = field(default_factory=list)


def pack_pair(left: int, right: int) -> int:
    """Pack two 32-bit row ids into one 64-bit integer."""
    for value in (left, right):
        if not 0 <= value <= _MASK32:
            raise ValueError(f"row id {value} does not fit in 32 bits")
    return (left << 32) | right


def unpack_pair(value: int) -> tuple[int, int]:
    """Split a packed pair into its left and right row ids."""
    return (value >> 32) & _MASK32, value & _MASK32


def merge_tables(
    sorted1: Sequence[MergeTuple], sorted2: Sequence[MergeTuple]
) -> list[int]:
    """Merge-join two key-sorted tuple sequences.

    Returns the packed ``(row_id1, row_id2)`` pair of every match, in the
    order the merge finds them.
    """
    size1, size2 = len(sorted1), len(sorted2)
    pairs: list[int] = []
    if not size1 or not size2:
        return pairs

    a = b = pin = 0
    while a < size1:
        key1 = sorted1[a].key
        key2 = sorted2[b].key
        if key1 == key2:
            pairs.append(pack_pair(sorted1[a].row_id, sorted2[b].row_id))
            b += 1
            # Table 2 exhausted: rewind it for the next, possibly equal, key.
            if b == size2:
                b = pin
                a += 1
        elif key1 < key2:
            a += 1
            if a == size1:
                break
            if sorted1[a - 1].key == sorted1[a].key:
                b = pin
            else:
                pin = b
        else:
            b += 1
            if b == size2:
                break
    return pairs


def switch_elements(columns: Sequence[list[int]], first: int, second: int) -> None:
    """Swap rows *first* and *second* in every column, in place."""
    for column in columns:
        column[first], column[second] = column[second], column[first]


def _strtoul(text: str) -> int:
    """Parse an unsigned integer with C base detection (0x hex, 0 octal)."""
    s = text.lstrip()
    negative = False
    if s[:1] in "+-" and s:
        negative = s[0] == "-"
        s = s[1:]
    if s[:2].lower() == "0x" and s[2:3] and s[2] in "0123456789abcdefABCDEF":
        base, body, allowed = 16, s[2:], "0123456789abcdefABCDEF"
    elif s.startswith("0"):
        base, body, allowed = 8, s, "01234567"
    else:
        base, body, allowed = 10, s, "0123456789"
    digits = []
    for ch in body:
        if ch not in allowed:
            break
        digits.append(ch)
    if not digits:
        return 0
    value = min(int("".join(digits), base), _MAX64)
    return (-value) & _MAX64 if negative else value


def read_csv_table(path: str | os.PathLike[str]) -> list[list[int]]:
    """Read a comma separated file of integers into columns.

    Each line is one row; the result holds one list per field, with one
    value per line.  Every line must have the same number of fields.
    """
    with open(path, encoding="utf-8") as handle:
        text = handle.read()
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    if not lines:
        return []

    rows = [[tok for tok in re.split(r"[,\n]", line) if tok] for line in lines]
    width = len(rows[-1])
    columns: list[list[int]] = [[] for _ in range(width)]
    for number, fields in enumerate(rows, start=1):
        if len(fields) != width:
            raise ValueError(
                f"line {number} has {len(fields)} fields, expected {width}"
            )
        for column, token in zip(columns, fields):
            column.append(_strtoul(token))
    return columns


def read_relation(path: str | os.PathLike[str]) -> RelationTable:
    """Read a binary relation: row count, column count, then the columns.

    All numbers are little-endian unsigned 64-bit integers.
    """
    with open(path, "rb") as handle:
        data = handle.read()
    if len(data) < _HEADER.size:
        raise ValueError(f"{os.fspath(path)}: relation header is truncated")
    rows, cols = _HEADER.unpack_from(data)
    expected = _HEADER.size + rows * cols * _WORD.size
    if len(data) < expected:
        raise ValueError(f"{os.fspath(path)}: relation data is truncated")
    column_format = struct.Struct(f"<{rows}Q")
    table = [
        list(column_format.unpack_from(data, _HEADER.size + index * column_format.size))
        for index in range(cols)
    ]
    return RelationTable(rows, cols, table)


def read_relations(
    workload_dir: str | os.PathLike[str], names: Iterable[str]
) -> list[RelationTable]:
    """Load every relation named in *names* from *workload_dir*, in order."""
    relations: list[RelationTable] = []
    for name in names:
        name = name.rstrip("\n")
        if not name:
            continue
        relation = read_relation(os.path.join(workload_dir, name))
        relation.table_id = len(relations)
        relations.append(relation)
    return relations


def _number(text: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        raise ValueError(f"expected a number, got {text!r}") from None


def _column_ref(text: str) -> tuple[int, int]:
    rel, dot, col = text.partition(".")
    if not dot:
        raise ValueError(f"expected relation.column, got {text!r}")
    return _number(rel), _number(col)


def _parse_predicate(text: str) -> JoinPred | CompPred:
    position = next((i for i, ch in enumerate(text) if ch in _OPERATORS), -1)
    if position <= 0:
        raise ValueError(f"predicate {text!r} has no comparison operator")
    symbol = text[position]
    left, right = text[:position], text[position + 1 :]
    rel1, col1 = _column_ref(left)
    if symbol == "=":
        rel2, dot, col2 = right.partition(".")
        if dot and col2:
            return JoinPred(rel1, _number(rel2), col1, _number(col2))
    return CompPred(symbol, rel1, col1, _number(right))


def parse_query(line: str, relations: Sequence[RelationTable]) -> Query:
    """Parse ``relations|predicates|projections`` into a :class:`Query`.

    Relations are space separated indexes into *relations*; predicates are
    joined by ``&``; projections are space separated ``rel.col`` pairs.
    """
    parts = line.rstrip("\r\n").split("|")
    if len(parts) != 3:
        raise ValueError(f"query {line!r} must have three '|' separated parts")
    tables, predicates, projections = parts

    query_rels = []
    for token in tables.split():
        index = _number(token)
        if not 0 <= index < len(relations):
            raise IndexError(f"relation {index} does not exist")
        query_rels.append(relations[index])

    query = Query(query_rels)
    for text in predicates.split("&"):
        if not text:
            continue
        pred = _parse_predicate(text)
        if isinstance(pred, JoinPred):
            query.join_preds.append(pred)
        else:
            query.comp_preds.append(pred)

    for token in projections.split():
        rel, col = _column_ref(token)
        query.proj.append(Projection(rel, col))
    return query


class QueryBatchReader:
    """Iterate over the batches of a query file, each ended by a line ``F``.

    Queries after the last ``F`` line do not form a batch and are dropped.
    """

    def __init__(
        self,
        workload_dir: str | os.PathLike[str],
        query_file: str,
        relations: Sequence[RelationTable],
    ) -> None:
        self.path = os.path.join(workload_dir, query_file)
        self.relations = relations

    def __iter__(self) -> Iterator[list[Query]]:
        with open(self.path, encoding="utf-8") as handle:
            batch: list[Query] = []
            for line in handle:
                stripped = line.rstrip("\r\n")
                if stripped == _BATCH_END:
                    yield batch
                    batch = []
                elif stripped.strip():
                    batch.append(parse_query(stripped, self.relations))