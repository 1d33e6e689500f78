import pytest

from huadb.comparison import Comparison, ComparisonType
from huadb.expressions import ColumnValue, Const, ValueType
from huadb.operators import (
    AggregateOperator,
    AggregateType,
    DeleteOperator,
    FilterOperator,
    HashJoinOperator,
    JoinType,
    LimitOperator,
    MergeJoinOperator,
    NestedLoopJoinOperator,
    Operator,
    OperatorType,
    OrderByOperator,
    OrderByType,
    ProjectionOperator,
    SeqScanOperator,
    ValuesOperator,
)


def scan(name="t", alias=None):
    return SeqScanOperator([f"{name}.a", f"{name}.b"], 1, name, alias, False)


def col(idx, name):
    return ColumnValue(idx, ValueType.INT, name, 4)


def test_seqscan_string_without_alias():
    assert scan().to_string() == "SeqScan: t"


def test_seqscan_string_with_alias():
    op = scan("t", "u")
    assert op.to_string() == "SeqScan: t u"
    assert op.table_name_or_alias == "u"


def test_seqscan_name_defaults_to_table():
    assert scan("t").table_name_or_alias == "t"


def test_filter_indents_child():
    child = scan()
    pred = Comparison(ComparisonType.EQUAL, col(0, "t.a"), Const(1))
    op = FilterOperator(child.column_list, child, pred)
    assert op.to_string() == "Filter: t.a = 1\n  SeqScan: t"
    assert str(op) == op.to_string(0)


def test_nested_indentation():
    child = scan()
    op = LimitOperator(child.column_list, child, 3, None)
    assert op.to_string(1) == "  LimitOperator:\n    SeqScan: t"


def test_projection_lists_expressions():
    child = scan()
    op = ProjectionOperator(child.column_list, child, [col(0, "t.a"), col(1, "t.b")])
    assert op.to_string() == "Projection: [t.a, t.b]\n  SeqScan: t"


def test_hash_and_merge_join_strings():
    left, right = scan("l"), scan("r")
    cols = left.column_list + right.column_list
    hash_join = HashJoinOperator(cols, left, right, col(0, "l.a"), col(0, "r.a"))
    assert hash_join.to_string() == "HashJoin: left=l.a right=r.a\n  SeqScan: l\n  SeqScan: r"
    merge = MergeJoinOperator(cols, left, right, col(0, "l.a"), col(0, "r.a"))
    assert merge.to_string().startswith("MergeJoin: left=l.a right=r.a\n")
    assert hash_join.join_type is JoinType.INNER


def test_nested_loop_join_string():
    left, right = scan("l"), scan("r")
    op = NestedLoopJoinOperator(left.column_list + right.column_list, left, right, Const(True))
    assert op.to_string() == "NestedLoopJoin: true\n  SeqScan: l\n  SeqScan: r"
    assert op.children == [left, right]


def test_values_operator():
    op = ValuesOperator(["#1"], [[Const(1)]])
    assert op.to_string() == "ValuesOperator"
    assert op.to_string(2) == "    ValuesOperator"
    assert op.operator_type is OperatorType.VALUES


def test_other_node_strings():
    child = scan()
    agg = AggregateOperator(child.column_list, child, [], [Const(1)], [False], [AggregateType.COUNT_STAR])
    assert agg.to_string() == "Aggregate:\n  SeqScan: t"
    order = OrderByOperator(child.column_list, child, [(OrderByType.ASC, col(0, "t.a"))])
    assert order.to_string() == "Order:\n  SeqScan: t"
    delete = DeleteOperator(["delete"], child, 7)
    assert delete.to_string() == "DeleteOperator:\n  SeqScan: t"
    assert delete.oid == 7


def test_output_columns_is_column_list():
    op = scan()
    assert op.output_columns == ["t.a", "t.b"]
    assert op.children == []


def test_operator_is_abstract():
    with pytest.raises(TypeError):
        Operator(OperatorType.SEQSCAN, [], [])