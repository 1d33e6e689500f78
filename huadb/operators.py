"""Physical query plan nodes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional, Sequence

from huadb.expressions import OperatorExpression


class OperatorType(Enum):
    AGGREGATE = "aggregate"
    DELETE = "delete"
    FILTER = "filter"
    HASHJOIN = "hashjoin"
    INSERT = "insert"
    LIMIT = "limit"
    LOCK_ROWS = "lock_rows"
    MERGEJOIN = "mergejoin"
    NESTEDLOOP = "nestedloop"
    ORDERBY = "orderby"
    PROJECTION = "projection"
    SEQSCAN = "seqscan"
    UPDATE = "update"
    VALUES = "values"


class AggregateType(Enum):
    AVG = "avg"
    COUNT_STAR = "count_star"
    COUNT = "count"
    SUM = "sum"
    MIN = "min"
    MAX = "max"


class JoinType(Enum):
    INNER = "inner"
    LEFT = "left"
    RIGHT = "right"
    FULL = "full"


class OrderByType(Enum):
    ASC = "asc"
    DESC = "desc"


class SelectLockType(Enum):
    NOLOCK = "nolock"
    SHARE = "share"
    UPDATE = "update"


def _pad(indent_num: int) -> str:
    return " " * (indent_num * 2)


def _fmt(expr: Optional[OperatorExpression]) -> str:
    return "" if expr is None else str(expr)


class Operator(ABC):
    """A plan node with its output columns and child nodes."""

    def __init__(
        self,
        operator_type: OperatorType,
        column_list: Sequence[Any],
        children: Sequence["Operator"] = (),
    ) -> None:
        self.operator_type = operator_type
        self.column_list = column_list
        self.children = list(children)

    @property
    def output_columns(self) -> Sequence[Any]:
        return self.column_list

    @abstractmethod
    def to_string(self, indent_num: int = 0) -> str:
        """Render the subtree, indenting two spaces per level."""

    def _child_string(self, index: int, indent_num: int) -> str:
        return self.children[index].to_string(indent_num + 1)

    def __str__(self) -> str:
        return self.to_string(0)


class AggregateOperator(Operator):
    """Groups input rows and computes aggregates."""

    def __init__(
        self,
        column_list,
        child: Operator,
        group_bys: Sequence[OperatorExpression],
        aggregates: Sequence[OperatorExpression],
        is_distincts: Sequence[bool],
        aggregate_types: Sequence[AggregateType],
    ) -> None:
        super().__init__(OperatorType.AGGREGATE, column_list, [child])
        self.group_bys = list(group_bys)
        self.aggregates = list(aggregates)
        self.is_distincts = list(is_distincts)
        self.aggregate_types = list(aggregate_types)

    def to_string(self, indent_num: int = 0) -> str:
        return f"{_pad(indent_num)}Aggregate:\n{self._child_string(0, indent_num)}"


class DeleteOperator(Operator):
    """Deletes the rows produced by its child from a table."""

    def __init__(self, column_list, child: Operator, oid: int) -> None:
        super().__init__(OperatorType.DELETE, column_list, [child])
        self.oid = oid

    def to_string(self, indent_num: int = 0) -> str:
        return f"{_pad(indent_num)}DeleteOperator:\n{self._child_string(0, indent_num)}"


class FilterOperator(Operator):
    """Keeps the rows for which the predicate is true."""

    def __init__(self, column_list, child: Operator, predicate: OperatorExpression) -> None:
        super().__init__(OperatorType.FILTER, column_list, [child])
        self.predicate = predicate

    def to_string(self, indent_num: int = 0) -> str:
        return (
            f"{_pad(indent_num)}Filter: {_fmt(self.predicate)}\n"
            f"{self._child_string(0, indent_num)}"
        )


class HashJoinOperator(Operator):
    """Equi-join on one key from each side, using a hash table."""

    def __init__(
        self,
        column_list,
        left: Operator,
        right: Operator,
        left_key: OperatorExpression,
        right_key: OperatorExpression,
        join_type: JoinType = JoinType.INNER,
    ) -> None:
        super().__init__(OperatorType.HASHJOIN, column_list, [left, right])
        self.left_key = left_key
        self.right_key = right_key
        self.join_type = join_type

    def to_string(self, indent_num: int = 0) -> str:
        return (
            f"{_pad(indent_num)}HashJoin: left={_fmt(self.left_key)} "
            f"right={_fmt(self.right_key)}\n"
            f"{self._child_string(0, indent_num)}\n{self._child_string(1, indent_num)}"
        )


class InsertOperator(Operator):
    """Inserts the rows produced by its child into a table."""

    def __init__(self, column_list, child: Operator, insert_columns, oid: int) -> None:
        super().__init__(OperatorType.INSERT, column_list, [child])
        self.insert_columns = insert_columns
        self.oid = oid

    def to_string(self, indent_num: int = 0) -> str:
        return f"{_pad(indent_num)}InsertOperator\n{self._child_string(0, indent_num)}"


class LimitOperator(Operator):
    """Skips ``limit_offset`` rows and passes on at most ``limit_count``."""

    def __init__(
        self,
        column_list,
        child: Operator,
        limit_count: Optional[int],
        limit_offset: Optional[int],
    ) -> None:
        super().__init__(OperatorType.LIMIT, column_list, [child])
        self.limit_count = limit_count
        self.limit_offset = limit_offset

    def to_string(self, indent_num: int = 0) -> str:
        return f"{_pad(indent_num)}LimitOperator:\n{self._child_string(0, indent_num)}"


class LockRowsOperator(Operator):
    """Locks the rows produced by its child."""

    def __init__(
        self, column_list, child: Operator, oid: int, lock_type: SelectLockType
    ) -> None:
        super().__init__(OperatorType.LOCK_ROWS, column_list, [child])
        self.oid = oid
        self.lock_type = lock_type

    def to_string(self, indent_num: int = 0) -> str:
        return f"{_pad(indent_num)}LockRowsOperator:\n{self._child_string(0, indent_num)}"


class MergeJoinOperator(Operator):
    """Equi-join of two inputs sorted on their keys."""

    def __init__(
        self,
        column_list,
        left: Operator,
        right: Operator,
        left_key: OperatorExpression,
        right_key: OperatorExpression,
        join_type: JoinType = JoinType.INNER,
    ) -> None:
        super().__init__(OperatorType.MERGEJOIN, column_list, [left, right])
        self.left_key = left_key
        self.right_key = right_key
        self.join_type = join_type

    def to_string(self, indent_num: int = 0) -> str:
        return (
            f"{_pad(indent_num)}MergeJoin: left={_fmt(self.left_key)} "
            f"right={_fmt(self.right_key)}\n"
            f"{self._child_string(0, indent_num)}\n{self._child_string(1, indent_num)}"
        )


class NestedLoopJoinOperator(Operator):
    """Join that tests the condition on every pair of rows."""

    def __init__(
        self,
        column_list,
        left: Operator,
        right: Operator,
        join_condition: OperatorExpression,
        join_type: JoinType = JoinType.INNER,
    ) -> None:
        super().__init__(OperatorType.NESTEDLOOP, column_list, [left, right])
        self.join_condition = join_condition
        self.join_type = join_type

    def to_string(self, indent_num: int = 0) -> str:
        return (
            f"{_pad(indent_num)}NestedLoopJoin: {_fmt(self.join_condition)}\n"
            f"{self._child_string(0, indent_num)}\n{self._child_string(1, indent_num)}"
        )


class OrderByOperator(Operator):
    """Sorts its input by a list of (direction, expression) keys."""

    def __init__(
        self,
        column_list,
        child: Operator,
        order_bys: Sequence[tuple[OrderByType, OperatorExpression]],
    ) -> None:
        super().__init__(OperatorType.ORDERBY, column_list, [child])
        self.order_bys = list(order_bys)

    def to_string(self, indent_num: int = 0) -> str:
        return f"{_pad(indent_num)}Order:\n{self._child_string(0, indent_num)}"


class ProjectionOperator(Operator):
    """Computes one output column per expression."""

    def __init__(
        self, column_list, child: Operator, exprs: Sequence[OperatorExpression]
    ) -> None:
        super().__init__(OperatorType.PROJECTION, column_list, [child])
        self.exprs = list(exprs)

    def to_string(self, indent_num: int = 0) -> str:
        exprs = "[" + ", ".join(_fmt(expr) for expr in self.exprs) + "]"
        return f"{_pad(indent_num)}Projection: {exprs}\n{self._child_string(0, indent_num)}"


class SeqScanOperator(Operator):
    """Reads every row of a table."""

    def __init__(
        self,
        column_list,
        table_oid: int,
        table_name: str,
        alias: Optional[str] = None,
        has_lock: bool = False,
    ) -> None:
        super().__init__(OperatorType.SEQSCAN, column_list, [])
        self.table_oid = table_oid
        self.table_name = table_name
        self.alias = alias
        self.has_lock = has_lock

    @property
    def table_name_or_alias(self) -> str:
        return self.alias if self.alias else self.table_name

    def to_string(self, indent_num: int = 0) -> str:
        if self.alias:
            return f"{_pad(indent_num)}SeqScan: {self.table_name} {self.alias}"
        return f"{_pad(indent_num)}SeqScan: {self.table_name}"


class UpdateOperator(Operator):
    """Rewrites the rows produced by its child with one expression per column."""

    def __init__(
        self,
        column_list,
        child: Operator,
        oid: int,
        update_exprs: Sequence[OperatorExpression],
    ) -> None:
        super().__init__(OperatorType.UPDATE, column_list, [child])
        self.oid = oid
        self.update_exprs = list(update_exprs)

    def to_string(self, indent_num: int = 0) -> str:
        return f"{_pad(indent_num)}UpdateOperator:\n{self._child_string(0, indent_num)}"


class ValuesOperator(Operator):
    """Produces literal rows, one list of expressions per row."""

    def __init__(
        self, column_list, values: Sequence[Sequence[OperatorExpression]]
    ) -> None:
        super().__init__(OperatorType.VALUES, column_list, [])
        self.values = [list(row) for row in values]

    def to_string(self, indent_num: int = 0) -> str:
        return f"{_pad(indent_num)}ValuesOperator"