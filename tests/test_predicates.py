import operator

import pytest

from joinquery.predicates import (
    comparison_predicate,
    delete_targeted,
    delete_targeted_single,
    do_all_comp_preds,
    do_all_join_preds,
    find_in_results,
    join_predicate,
    join_self,
)
from joinquery.relations import (
    CompPred,
    FullResList,
    JoinPred,
    RelationTable,
    ResStruct,
    pack_pair,
)


def _rel(*columns):
    return RelationTable(len(columns[0]), len(columns), [list(c) for c in columns])


def _ids(group):
    return [res.table_id for res in group.table_list]


def _check_join(relations, group, pred):
    res1 = find_in_results(group.table_list, pred.rel1)
    res2 = find_in_results(group.table_list, pred.rel2)
    assert len(res1.row_ids) == len(res2.row_ids)
    col1 = relations[pred.rel1].table[pred.col_rel1]
    col2 = relations[pred.rel2].table[pred.col_rel2]
    for row1, row2 in zip(res1.row_ids, res2.row_ids):
        assert col1[row1] == col2[row2]


def test_find_in_results():
    table_list = [ResStruct(3, [1]), ResStruct(5, [2])]
    assert find_in_results(table_list, 5) is table_list[1]
    assert find_in_results(table_list, 4) is None
    assert find_in_results(None, 1) is None


def test_comparison_greater_creates_group():
    relations = [_rel([5, 1, 7, 3])]
    results = []
    comparison_predicate(relations, CompPred(">", 0, 0, 3), results)
    assert len(results) == 1
    res = results[0].table_list[0]
    assert res.table_id == 0
    assert sorted(res.row_ids) == [0, 2]


@pytest.mark.parametrize(
    "symbol, compare", [(">", operator.gt), ("<", operator.lt), ("=", operator.eq)]
)
def test_comparison_keeps_exactly_matching_rows(symbol, compare):
    values = [4, 9, 4, 1, 7, 4]
    relations = [_rel(values)]
    results = []
    comparison_predicate(relations, CompPred(symbol, 0, 0, 4), results)
    kept = set(results[0].table_list[0].row_ids)
    for row, value in enumerate(values):
        assert (row in kept) == compare(value, 4)


def test_comparison_on_existing_relation_narrows_it():
    values = [2, 8, 5, 6, 1]
    relations = [_rel(values)]
    results = []
    comparison_predicate(relations, CompPred(">", 0, 0, 2), results)
    comparison_predicate(relations, CompPred("<", 0, 0, 7), results)
    assert len(results) == 1
    rows = results[0].table_list[0].row_ids
    assert rows
    assert all(2 < values[row] < 7 for row in rows)


def test_comparison_keeps_group_aligned():
    relations = [_rel([1, 5, 9]), _rel([7, 8, 9])]
    group = FullResList([ResStruct(0, [0, 1, 2]), ResStruct(1, [2, 1, 0])])
    results = [group]
    original = set(zip([0, 1, 2], [2, 1, 0]))
    comparison_predicate(relations, CompPred(">", 0, 0, 3), results)
    res0, res1 = group.table_list
    assert len(res0.row_ids) == len(res1.row_ids)
    assert set(zip(res0.row_ids, res1.row_ids)) <= original
    assert all(relations[0].table[0][row] > 3 for row in res0.row_ids)


def test_unknown_comparison_raises():
    relations = [_rel([1, 2])]
    with pytest.raises(ValueError):
        comparison_predicate(relations, CompPred("!", 0, 0, 1), [])


def test_delete_targeted_single_sides():
    pairs = [pack_pair(2, 0), pack_pair(0, 1)]
    left = ResStruct(0, [10, 20, 30])
    delete_targeted_single(left, 0, pairs)
    assert left.row_ids == [30, 10]
    right = ResStruct(1, [10, 20, 30])
    delete_targeted_single(right, 1, pairs)
    assert right.row_ids == [10, 20]


def test_delete_targeted_single_rejects_bad_side():
    with pytest.raises(ValueError):
        delete_targeted_single(ResStruct(0, [1]), 2, [])


def test_delete_targeted_applies_to_whole_group():
    group = FullResList([ResStruct(0, [10, 20, 30]), ResStruct(1, [40, 50, 60])])
    delete_targeted(group, 0, [pack_pair(1, 0), pack_pair(1, 2)])
    assert group.table_list[0].row_ids == [20, 20]
    assert group.table_list[1].row_ids == [50, 50]


def test_join_self_keeps_rows_with_equal_columns():
    first, second = [1, 2, 3, 4], [1, 5, 3, 0]
    relations = [_rel(first, second)]
    results = []
    join_self(relations, JoinPred(0, 0, 0, 1), results)
    kept = set(results[0].table_list[0].row_ids)
    for row in range(4):
        assert (row in kept) == (first[row] == second[row])


def test_join_fresh_relations():
    relations = [_rel([1, 2, 2]), _rel([2, 3])]
    results = []
    pred = JoinPred(0, 1, 0, 0)
    join_predicate(relations, pred, results)
    assert len(results) == 1
    group = results[0]
    assert _ids(group) == [0, 1]
    pairs = set(zip(group.table_list[0].row_ids, group.table_list[1].row_ids))
    assert pairs == {(1, 0), (2, 0)}


def test_join_with_first_relation_filtered():
    relations = [_rel([1, 2, 3, 2]), _rel([2, 3, 3, 9])]
    results = []
    comparison_predicate(relations, CompPred(">", 0, 0, 1), results)
    pred = JoinPred(0, 1, 0, 0)
    join_predicate(relations, pred, results)
    assert len(results) == 1
    assert _ids(results[0]) == [0, 1]
    _check_join(relations, results[0], pred)
    assert all(relations[0].table[0][r] > 1 for r in results[0].table_list[0].row_ids)


def test_join_with_second_relation_existing():
    relations = [_rel([1, 2, 3]), _rel([3, 2, 7])]
    results = []
    comparison_predicate(relations, CompPred("<", 1, 0, 5), results)
    pred = JoinPred(0, 1, 0, 0)
    join_predicate(relations, pred, results)
    assert len(results) == 1
    assert _ids(results[0]) == [1, 0]
    _check_join(relations, results[0], pred)


def test_join_fuses_two_groups():
    relations = [_rel([1, 2, 3, 4]), _rel([4, 3, 2, 8])]
    results = []
    comparison_predicate(relations, CompPred(">", 0, 0, 1), results)
    comparison_predicate(relations, CompPred("<", 1, 0, 4), results)
    assert len(results) == 2
    pred = JoinPred(0, 1, 0, 0)
    join_predicate(relations, pred, results)
    assert len(results) == 1
    assert _ids(results[0]) == [0, 1]
    _check_join(relations, results[0], pred)


def test_join_within_same_group_filters_aligned():
    relations = [_rel([5, 6, 7]), _rel([5, 0, 7])]
    group = FullResList([ResStruct(0, [0, 1, 2]), ResStruct(1, [0, 1, 2])])
    results = [group]
    pred = JoinPred(0, 1, 0, 0)
    join_predicate(relations, pred, results)
    assert len(results) == 1
    _check_join(relations, group, pred)
    assert group.table_list[0].row_ids == group.table_list[1].row_ids
    assert 1 not in group.table_list[0].row_ids


def test_do_all_comp_preds_marks_seen():
    relations = [_rel([1, 2]), _rel([3, 4])]
    results = []
    seen = set()
    do_all_comp_preds(
        relations, [CompPred(">", 1, 0, 3), CompPred("=", 0, 0, 2)], results, seen
    )
    assert seen == {0, 1}
    assert len(results) == 2


def test_do_all_join_preds_without_seen_relations():
    relations = [_rel([1, 2, 3]), _rel([2, 3, 4], [5, 6, 7]), _rel([6, 7, 8])]
    preds = [JoinPred(0, 1, 0, 0), JoinPred(1, 2, 1, 0)]
    results = []
    seen = set()
    do_all_join_preds(relations, preds, results, seen)
    assert seen == {0, 1, 2}
    assert len(results) == 1
    assert sorted(_ids(results[0])) == [0, 1, 2]
    for pred in preds:
        _check_join(relations, results[0], pred)


def test_do_all_join_preds_defers_unconnected_predicates():
    relations = [_rel([1, 2, 3]), _rel([2, 3, 4], [5, 6, 7]), _rel([6, 7, 8])]
    results = []
    seen = set()
    do_all_comp_preds(relations, [CompPred(">", 2, 0, 5)], results, seen)
    preds = [JoinPred(0, 1, 0, 0), JoinPred(1, 2, 1, 0)]
    do_all_join_preds(relations, preds, results, seen)
    assert len(results) == 1
    assert _ids(results[0]) == [2, 1, 0]
    for pred in preds:
        _check_join(relations, results[0], pred)


def test_trivial_self_join_is_skipped():
    relations = [_rel([1, 2], [3, 4])]
    results = []
    seen = set()
    do_all_join_preds(relations, [JoinPred(0, 0, 1, 1)], results, seen)
    assert results == []
    assert seen == set()