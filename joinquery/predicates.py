"""Evaluation of comparison and join predicates over relations.

Intermediate results are a list of :class:`FullResList` groups.  Each group
holds one :class:`ResStruct` per relation already joined together, and the
row-id lists of a group are aligned position by position: position ``i`` of
every list belongs to the same joined tuple.
"""

from __future__ import annotations

import operator
from typing import Callable, Iterable, MutableSet, Sequence

from .relations import (
    CompPred,
    FullResList,
    JoinPred,
    RelationTable,
    ResStruct,
    merge_tables,
    unpack_pair,
)
from .sorting import table_sort_on_key

__all__ = [
    "find_in_results",
    "comparison_predicate",
    "delete_targeted_single",
    "delete_targeted",
    "join_self",
    "join_predicate",
    "do_all_comp_preds",
    "do_all_join_preds",
]

_COMPARISONS: dict[str, Callable[[int, int], bool]] = {
    ">": operator.gt,
    "<": operator.lt,
    "=": operator.eq,
}

_Located = tuple[int, FullResList, ResStruct]


def find_in_results(
    table_list: Sequence[ResStruct] | None, table_id: int
) -> ResStruct | None:
    """Return the entry of *table_list* for relation *table_id*, or None."""
    if table_list is None:
        return None
    return next((res for res in table_list if res.table_id == table_id), None)


def _locate(results: Sequence[FullResList], table_id: int) -> _Located | None:
    for index, group in enumerate(results):
        res = find_in_results(group.table_list, table_id)
        if res is not None:
            return index, group, res
    return None


def _fresh(relations: Sequence[RelationTable], rel: int) -> ResStruct:
    return ResStruct(rel, list(range(relations[rel].rows)))


def _retain(group: FullResList, keep: Sequence[int]) -> None:
    """Keep only positions *keep* in every row-id list of *group*."""
    for res in group.table_list:
        res.row_ids = [res.row_ids[position] for position in keep]


def _group_for(
    relations: Sequence[RelationTable], rel: int, results: list[FullResList]
) -> tuple[FullResList, ResStruct]:
    found = _locate(results, rel)
    if found is not None:
        return found[1], found[2]
    res = _fresh(relations, rel)
    group = FullResList([res])
    results.append(group)
    return group, res


def comparison_predicate(
    relations: Sequence[RelationTable],
    pred: CompPred,
    results: list[FullResList],
) -> None:
    """Filter the rows of ``pred.rel1`` by comparing a column with a constant.

    A relation not yet in *results* enters as a new group holding all its
    rows before filtering.  Rows dropped from the relation are dropped from
    the other relations of its group too, keeping the group aligned.
    """
    try:
        compare = _COMPARISONS[pred.comp]
    except KeyError:
        raise ValueError(f"unknown comparison operator {pred.comp!r}") from None
    column = relations[pred.rel1].table[pred.col_rel1]
    group, res = _group_for(relations, pred.rel1, results)
    keep = [
        position
        for position, row in enumerate(res.row_ids)
        if compare(column[row], pred.num)
    ]
    _retain(group, keep)


def delete_targeted_single(res: ResStruct, side: int, pairs: Iterable[int]) -> None:
    """Rebuild the row ids of *res* from packed position pairs.

    *side* 0 takes the left half of each pair, 1 the right half; each half
    is a position in the current row-id list.
    """
    if side not in (0, 1):
        raise ValueError(f"side must be 0 or 1, got {side}")
    old = res.row_ids
    res.row_ids = [old[unpack_pair(pair)[side]] for pair in pairs]


def delete_targeted(full: FullResList, side: int, pairs: Sequence[int]) -> None:
    """Apply :func:`delete_targeted_single` to every relation of *full*."""
    for res in full.table_list:
        delete_targeted_single(res, side, pairs)


def join_self(
    relations: Sequence[RelationTable],
    pred: JoinPred,
    results: list[FullResList],
) -> None:
    """Keep the rows of one relation whose two join columns are equal."""
    column1 = relations[pred.rel1].table[pred.col_rel1]
    column2 = relations[pred.rel2].table[pred.col_rel2]
    group, res = _group_for(relations, pred.rel1, results)
    keep = [
        position
        for position, row in enumerate(res.row_ids)
        if column1[row] == column2[row]
    ]
    _retain(group, keep)


def _sorted_values(column: Sequence[int], res: ResStruct):
    return table_sort_on_key([[column[row] for row in res.row_ids]], 0)


def join_predicate(
    relations: Sequence[RelationTable],
    pred: JoinPred,
    results: list[FullResList],
) -> None:
    """Equi-join two relations and record the result in *results*.

    Relations already in the same group are filtered in place; otherwise
    the two sides are sort-merge joined and their groups fused.
    """
    column1 = relations[pred.rel1].table[pred.col_rel1]
    column2 = relations[pred.rel2].table[pred.col_rel2]
    first = _locate(results, pred.rel1)
    second = _locate(results, pred.rel2)

    if first is not None and second is not None and first[1] is second[1]:
        res1, res2 = first[2], second[2]
        keep = [
            position
            for position, (row1, row2) in enumerate(zip(res1.row_ids, res2.row_ids))
            if column1[row1] == column2[row2]
        ]
        _retain(first[1], keep)
        return

    res1 = first[2] if first is not None else _fresh(relations, pred.rel1)
    res2 = second[2] if second is not None else _fresh(relations, pred.rel2)
    pairs = merge_tables(_sorted_values(column1, res1), _sorted_values(column2, res2))

    if first is None and second is None:
        delete_targeted_single(res1, 0, pairs)
        delete_targeted_single(res2, 1, pairs)
        results.append(FullResList([res1, res2]))
    elif first is not None and second is not None:
        group1, group2 = first[1], second[1]
        delete_targeted(group1, 0, pairs)
        delete_targeted(group2, 1, pairs)
        group1.table_list.extend(group2.table_list)
        del results[second[0]]
    elif first is not None:
        delete_targeted(first[1], 0, pairs)
        delete_targeted_single(res2, 1, pairs)
        first[1].table_list.append(res2)
    else:
        delete_targeted(second[1], 1, pairs)
        delete_targeted_single(res1, 0, pairs)
        second[1].table_list.append(res1)


def do_all_comp_preds(
    relations: Sequence[RelationTable],
    comp_preds: Iterable[CompPred],
    results: list[FullResList],
    seen: MutableSet[int],
) -> None:
    """Apply every comparison predicate, adding its relation to *seen*."""
    for pred in comp_preds:
        comparison_predicate(relations, pred, results)
        seen.add(pred.rel1)


def _apply_join(
    relations: Sequence[RelationTable],
    pred: JoinPred,
    results: list[FullResList],
    seen: MutableSet[int],
) -> None:
    if pred.rel1 == pred.rel2:
        if pred.col_rel1 == pred.col_rel2:
            return
        join_self(relations, pred, results)
        seen.add(pred.rel1)
    else:
        join_predicate(relations, pred, results)
        seen.add(pred.rel1)
        seen.add(pred.rel2)


def do_all_join_preds(
    relations: Sequence[RelationTable],
    join_preds: Iterable[JoinPred],
    results: list[FullResList],
    seen: MutableSet[int],
) -> None:
    """Apply every join predicate.

    A first pass applies, in order, the predicates touching a relation
    already in *seen* at the time they are reached; the others are then
    applied in their original order.  A self join on one column is a
    tautology and is skipped.
    """
    pending: list[JoinPred] = []
    for pred in join_preds:
        if pred.rel1 not in seen and pred.rel2 not in seen:
            pending.append(pred)
            continue
        _apply_join(relations, pred, results, seen)
    for pred in pending:
        _apply_join(relations, pred, results, seen)