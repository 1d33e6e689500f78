import pytest

from huadb.comparison import Comparison, ComparisonType
from huadb.errors import DbError
from huadb.expressions import ColumnValue, Const, ExpressionList, ValueType


def compare(kind, lhs, rhs):
    return Comparison(kind, Const(lhs), Const(rhs)).evaluate(())


def between(kind, value, low, high):
    bounds = ExpressionList([Const(low), Const(high)])
    return Comparison(kind, Const(value), bounds).evaluate(())


def in_list(kind, value, items):
    return Comparison(kind, Const(value), ExpressionList([Const(i) for i in items])).evaluate(())


PAIRS = [(1, 2), (2, 2), (3, 2), (1.5, 2), (2, 1.5), ("a", "b"), ("b", "b")]


@pytest.mark.parametrize("a,b", PAIRS)
@pytest.mark.parametrize(
    "kind,opposite",
    [
        (ComparisonType.EQUAL, ComparisonType.NOT_EQUAL),
        (ComparisonType.LESS, ComparisonType.GREATER_EQUAL),
        (ComparisonType.GREATER, ComparisonType.LESS_EQUAL),
    ],
)
def test_opposite_comparisons(kind, opposite, a, b):
    assert compare(kind, a, b) == (not compare(opposite, a, b))


@pytest.mark.parametrize("a,b", PAIRS)
def test_less_mirrors_greater(a, b):
    assert compare(ComparisonType.LESS, a, b) == compare(ComparisonType.GREATER, b, a)


def test_equal_on_same_value():
    assert compare(ComparisonType.EQUAL, 4, 4.0) is True


@pytest.mark.parametrize("value", [0, 1, 5, 10, 11, 2.5])
def test_between_opposites(value):
    inside = between(ComparisonType.BETWEEN, value, 1, 10)
    outside = between(ComparisonType.NOT_BETWEEN, value, 1, 10)
    assert inside == (not outside)


def test_between_includes_bounds():
    assert between(ComparisonType.BETWEEN, 1, 1, 10) == between(ComparisonType.BETWEEN, 10, 1, 10)
    assert between(ComparisonType.BETWEEN, 1, 1, 10) is True


def test_between_rejects_strings():
    with pytest.raises(DbError):
        between(ComparisonType.BETWEEN, "m", "a", "z")


@pytest.mark.parametrize(
    "value,items",
    [(2, [1, 2, 3]), (4, [1, 2, 3]), ("b", ["a", "b"]), (1.5, [1.5]), (1, [])],
)
def test_in_matches_membership(value, items):
    found = in_list(ComparisonType.IN, value, items)
    assert found == (value in items)
    assert in_list(ComparisonType.NOT_IN, value, items) == (not found)


def test_in_rejects_booleans():
    with pytest.raises(DbError):
        in_list(ComparisonType.IN, True, [True])


@pytest.mark.parametrize(
    "text,pattern",
    [("hello", "h%o"), ("hello", "h_llo"), ("hello", "x%"), ("数据库", "数%"), ("ab", "a_c")],
)
def test_like_and_not_like_are_opposites(text, pattern):
    like = compare(ComparisonType.LIKE, text, pattern)
    assert compare(ComparisonType.NOT_LIKE, text, pattern) == (not like)


def test_like_percent_matches_any_run():
    assert compare(ComparisonType.LIKE, "hello", "h%o") is True
    assert compare(ComparisonType.LIKE, "数据库", "数_库") == compare(
        ComparisonType.LIKE, "hello", "h%o"
    )


def test_like_requires_strings():
    with pytest.raises(DbError):
        compare(ComparisonType.LIKE, 1, "1")


@pytest.mark.parametrize("kind", list(ComparisonType))
def test_null_propagates(kind):
    assert Comparison(kind, Const(None), Const(1)).evaluate(()) is None


def test_string_against_number_fails():
    with pytest.raises(DbError):
        compare(ComparisonType.EQUAL, "1", 1)


def test_boolean_ordering_fails():
    with pytest.raises(DbError):
        compare(ComparisonType.LESS, True, False)


def test_join_evaluation_matches_constants():
    expr = Comparison(
        ComparisonType.LESS_EQUAL,
        ColumnValue(0, ValueType.INT, "l.a", 4, True),
        ColumnValue(1, ValueType.INT, "r.b", 4, False),
    )
    assert expr.evaluate_join([3], [0, 8]) == compare(ComparisonType.LESS_EQUAL, 3, 8)
    assert expr.evaluate_join([9], [0, 8]) == compare(ComparisonType.LESS_EQUAL, 9, 8)


def test_string_form_and_type():
    expr = Comparison(
        ComparisonType.EQUAL,
        ColumnValue(0, ValueType.INT, "t.a", 4),
        ColumnValue(1, ValueType.INT, "t.b", 4),
    )
    assert str(expr) == "t.a = t.b"
    assert expr.value_type is ValueType.BOOL
    assert expr.comparison_type is ComparisonType.EQUAL