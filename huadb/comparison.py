"""Comparison expressions, including BETWEEN, IN and LIKE."""

from __future__ import annotations

import re
from enum import Enum

from huadb.errors import DbError
from huadb.expressions import (
    OperatorExpression,
    OperatorExpressionType,
    ValueType,
    _type_of,
)


class ComparisonType(Enum):
    EQUAL = "="
    NOT_EQUAL = "!="
    LESS = "<"
    LESS_EQUAL = "<="
    GREATER = ">"
    GREATER_EQUAL = ">="
    BETWEEN = "between"
    NOT_BETWEEN = "not between"
    IN = "in"
    NOT_IN = "not_in"
    LIKE = "~~"
    NOT_LIKE = "!~~"


_NUMERIC = (ValueType.INT, ValueType.DOUBLE)

_ORDERING = {
    ComparisonType.EQUAL: lambda a, b: a == b,
    ComparisonType.NOT_EQUAL: lambda a, b: a != b,
    ComparisonType.LESS: lambda a, b: a < b,
    ComparisonType.LESS_EQUAL: lambda a, b: a <= b,
    ComparisonType.GREATER: lambda a, b: a > b,
    ComparisonType.GREATER_EQUAL: lambda a, b: a >= b,
}


def _like(text: str, pattern: str) -> bool:
    regex = pattern.replace("%", ".*").replace("_", ".")
    try:
        return re.fullmatch(regex, text) is not None
    except re.error as exc:
        raise DbError(f"Invalid LIKE pattern {pattern}") from exc


class Comparison(OperatorExpression):
    """Compares two values; NULL on either side gives NULL."""

    def __init__(
        self,
        comparison_type: ComparisonType,
        left: OperatorExpression,
        right: OperatorExpression,
    ) -> None:
        super().__init__(OperatorExpressionType.COMPARISON, (left, right), ValueType.BOOL)
        self.comparison_type = comparison_type

    def evaluate(self, record):
        return self._compute(self.children[0].evaluate(record), self.children[1].evaluate(record))

    def evaluate_join(self, left, right):
        return self._compute(
            self.children[0].evaluate_join(left, right),
            self.children[1].evaluate_join(left, right),
        )

    def __str__(self) -> str:
        return f"{self.children[0]} {self.comparison_type.value} {self.children[1]}"

    def _compute(self, lhs, rhs):
        if lhs is None or rhs is None:
            return None
        kind = self.comparison_type
        if kind in (ComparisonType.BETWEEN, ComparisonType.NOT_BETWEEN):
            between = self._between(lhs, rhs)
            return between if kind is ComparisonType.BETWEEN else not between
        if kind in (ComparisonType.IN, ComparisonType.NOT_IN):
            found = self._in_list(lhs, rhs)
            return found if kind is ComparisonType.IN else not found
        if kind in (ComparisonType.LIKE, ComparisonType.NOT_LIKE):
            if not _type_of(lhs).is_string or not _type_of(rhs).is_string:
                raise DbError("LIKE operator only supports CHAR and VARCHAR types")
            matched = _like(lhs, rhs)
            return matched if kind is ComparisonType.LIKE else not matched
        return self._order(lhs, rhs)

    @staticmethod
    def _between(lhs, rhs) -> bool:
        if _type_of(lhs) not in _NUMERIC:
            raise DbError("Type unsupported for comparison operation (between)")
        if _type_of(rhs) is not ValueType.LIST or len(rhs) < 2:
            raise DbError("BETWEEN needs a lower and an upper bound")
        low, high = rhs[0], rhs[1]
        if _type_of(low) not in _NUMERIC or _type_of(high) not in _NUMERIC:
            raise DbError("Type unsupported for comparison operation (between)")
        return low <= lhs <= high

    @staticmethod
    def _in_list(lhs, rhs) -> bool:
        if _type_of(rhs) is not ValueType.LIST:
            raise DbError("IN needs a list of values")
        lhs_type = _type_of(lhs)
        for value in rhs:
            if lhs_type not in _NUMERIC and not lhs_type.is_string:
                raise DbError("Type unsupported for comparison operation (in)")
            if lhs == value:
                return True
        return False

    def _order(self, lhs, rhs) -> bool:
        operation = _ORDERING.get(self.comparison_type)
        if operation is None:
            raise DbError("Unknown comparison type")
        lhs_type, rhs_type = _type_of(lhs), _type_of(rhs)
        if lhs_type in _NUMERIC and rhs_type in _NUMERIC:
            return operation(lhs, rhs)
        if lhs_type.is_string and rhs_type.is_string:
            return operation(lhs, rhs)
        raise DbError("Type unsupported for comparison operation")