from huadb.comparison import Comparison, ComparisonType
from huadb.expressions import ColumnValue, Const, Logic, LogicType, ValueType
from huadb.operators import (
    FilterOperator,
    JoinType,
    NestedLoopJoinOperator,
    ProjectionOperator,
    SeqScanOperator,
)
from huadb.optimizer import JoinOrderAlgorithm, Optimizer


def col(idx, name):
    return ColumnValue(idx, ValueType.INT, name, 4)


def eq(left, right):
    return Comparison(ComparisonType.EQUAL, left, right)


def scans():
    a = SeqScanOperator(["a.x", "a.w"], 1, "a")
    b = SeqScanOperator(["b.z", "b.y"], 2, "b")
    return a, b


def join(join_type=JoinType.INNER):
    a, b = scans()
    return NestedLoopJoinOperator(a.column_list + b.column_list, a, b, Const(True), join_type)


def optimizer():
    return Optimizer(None, JoinOrderAlgorithm.NONE, False)


def test_split_and_push_to_scan():
    a, _ = scans()
    pred = Logic(LogicType.AND, eq(col(0, "a.x"), Const(1)), eq(col(1, "a.w"), Const(2)))
    plan = optimizer().optimize(FilterOperator(a.column_list, a, pred))
    assert isinstance(plan, FilterOperator)
    assert isinstance(plan.children[0], FilterOperator)
    assert plan.children[0].children[0] is a
    predicates = {str(plan.predicate), str(plan.children[0].predicate)}
    assert predicates == {"a.x = 1", "a.w = 2"}


def test_push_through_join():
    plan = join()
    pred = Logic(
        LogicType.AND,
        Logic(LogicType.AND, eq(col(0, "a.x"), Const(1)), eq(col(3, "b.y"), Const(2))),
        eq(col(0, "a.x"), col(3, "b.y")),
    )
    result = optimizer().optimize(FilterOperator(plan.column_list, plan, pred))
    assert isinstance(result, NestedLoopJoinOperator)
    left, right = result.children
    assert isinstance(left, FilterOperator) and isinstance(left.children[0], SeqScanOperator)
    assert isinstance(right, FilterOperator) and isinstance(right.children[0], SeqScanOperator)
    assert right.predicate.evaluate([0, 2]) is True
    assert right.predicate.evaluate([2, 0]) is False
    assert left.predicate.evaluate([1, 9]) is True
    assert result.join_condition.evaluate_join([5, 0], [0, 5]) is True
    assert result.join_condition.evaluate_join([5, 0], [5, 0]) is False


def test_outer_join_keeps_filter_above():
    plan = join(JoinType.LEFT)
    pred = eq(col(0, "a.x"), Const(1))
    result = optimizer().optimize(FilterOperator(plan.column_list, plan, pred))
    assert isinstance(result, FilterOperator)
    assert result.children[0] is plan
    assert isinstance(plan.children[0], SeqScanOperator)


def test_unqualified_column_stays():
    a, _ = scans()
    pred = eq(col(0, "x"), Const(1))
    result = optimizer().optimize(FilterOperator(a.column_list, a, pred))
    assert isinstance(result, FilterOperator)
    assert result.predicate is pred
    assert result.children[0] is a


def test_filter_under_projection_reaches_scan():
    a, _ = scans()
    filt = FilterOperator(a.column_list, a, eq(col(1, "a.w"), Const(3)))
    proj = ProjectionOperator(["a.w"], filt, [col(1, "a.w")])
    result = optimizer().optimize(proj)
    assert result is proj
    assert isinstance(result.children[0], FilterOperator)
    assert result.children[0].children[0] is a
    assert result.children[0].predicate.evaluate([0, 3]) is True


def test_plan_without_filters_unchanged():
    plan = join()
    result = optimizer().optimize(plan)
    assert result is plan
    assert str(result) == "NestedLoopJoin: true\n  SeqScan: a\n  SeqScan: b"