"""Rule-based rewriting of query plans."""

from __future__ import annotations

import copy
from enum import Enum
from typing import Any, Callable, Iterator, Optional, Sequence

from huadb.expressions import ColumnValue, Const, Logic, LogicType, OperatorExpression
from huadb.operators import (
    FilterOperator,
    JoinType,
    NestedLoopJoinOperator,
    Operator,
    SeqScanOperator,
)


class JoinOrderAlgorithm(Enum):
    NONE = "none"
    DP = "dp"
    GREEDY = "greedy"


DEFAULT_JOIN_ORDER_ALGORITHM = JoinOrderAlgorithm.NONE


class _Unresolved(Exception):
    """A column of a predicate is not found in the target node."""


def _column_names(plan: Operator) -> list[str]:
    return [col if isinstance(col, str) else col.name for col in plan.output_columns]


def _column_values(expr: OperatorExpression) -> Iterator[ColumnValue]:
    if isinstance(expr, ColumnValue):
        yield expr
        return
    for child in expr.children:
        yield from _column_values(child)
    arg = getattr(expr, "arg", None)
    if isinstance(arg, OperatorExpression):
        yield from _column_values(arg)
    for attr in ("args", "exprs"):
        items = getattr(expr, attr, None)
        if isinstance(items, list):
            for item in items:
                yield from _column_values(item)


def _rewrite(
    expr: OperatorExpression, mapper: Callable[[ColumnValue], ColumnValue]
) -> OperatorExpression:
    if isinstance(expr, ColumnValue):
        return mapper(expr)
    clone = copy.copy(expr)
    clone.children = [_rewrite(child, mapper) for child in expr.children]
    arg = getattr(expr, "arg", None)
    if isinstance(arg, OperatorExpression):
        clone.arg = _rewrite(arg, mapper)
    for attr in ("args", "exprs"):
        items = getattr(expr, attr, None)
        if isinstance(items, list):
            setattr(clone, attr, [_rewrite(item, mapper) for item in items])
    return clone


def _tables(expr: OperatorExpression) -> Optional[set[str]]:
    """Tables named by the predicate's columns; None if a column has no table prefix."""
    tables = set()
    for column in _column_values(expr):
        if "." not in column.name:
            return None
        tables.add(column.name.split(".", 1)[0])
    return tables


def _covered_tables(plan: Operator) -> set[str]:
    if isinstance(plan, SeqScanOperator):
        return {plan.table_name_or_alias}
    tables: set[str] = set()
    for child in plan.children:
        tables |= _covered_tables(child)
    return tables


def _rebase(expr: OperatorExpression, target: Operator) -> Optional[OperatorExpression]:
    """Rewrite column indices to ``target``'s output, by column name."""
    names = _column_names(target)

    def mapper(column: ColumnValue) -> ColumnValue:
        if column.name not in names:
            raise _Unresolved(column.name)
        return ColumnValue(
            names.index(column.name), column.value_type, column.name, column.size, True
        )

    try:
        return _rewrite(expr, mapper)
    except _Unresolved:
        return None


def _rebase_join(
    expr: OperatorExpression, left: Operator, right: Operator
) -> Optional[OperatorExpression]:
    """Rewrite columns to refer to the left or right input of a join."""
    left_names, right_names = _column_names(left), _column_names(right)

    def mapper(column: ColumnValue) -> ColumnValue:
        in_left, in_right = column.name in left_names, column.name in right_names
        if in_left == in_right:
            raise _Unresolved(column.name)
        names = left_names if in_left else right_names
        return ColumnValue(
            names.index(column.name), column.value_type, column.name, column.size, in_left
        )

    try:
        return _rewrite(expr, mapper)
    except _Unresolved:
        return None


def _conjuncts(expr: OperatorExpression) -> list[OperatorExpression]:
    if isinstance(expr, Logic) and expr.logic_type is LogicType.AND:
        return _conjuncts(expr.children[0]) + _conjuncts(expr.children[1])
    return [expr]


def _wrap(plan: Operator, predicates: Sequence[OperatorExpression]) -> Operator:
    for predicate in predicates:
        plan = FilterOperator(plan.column_list, plan, predicate)
    return plan


def _is_true(expr: Optional[OperatorExpression]) -> bool:
    return expr is None or (isinstance(expr, Const) and expr.value is True)


class Optimizer:
    """Splits conjunctive filters and pushes them down to scans and joins.

    The join order of the plan is kept as planned.
    """

    def __init__(
        self,
        catalog: Any,
        join_order_algorithm: JoinOrderAlgorithm = DEFAULT_JOIN_ORDER_ALGORITHM,
        enable_projection_pushdown: bool = False,
    ) -> None:
        self.catalog = catalog
        self.join_order_algorithm = join_order_algorithm
        self.enable_projection_pushdown = enable_projection_pushdown

    def optimize(self, plan: Operator) -> Operator:
        plan = self._split_predicates(plan)
        plan = self._push_down(plan)
        return self._reorder_join(plan)

    def _split_predicates(self, plan: Operator) -> Operator:
        plan.children = [self._split_predicates(child) for child in plan.children]
        if isinstance(plan, FilterOperator):
            return _wrap(plan.children[0], _conjuncts(plan.predicate))
        return plan

    def _push_down(self, plan: Operator) -> Operator:
        plan, leftover = self._push(plan, [])
        return _wrap(plan, leftover)

    def _push(
        self, plan: Operator, predicates: list[OperatorExpression]
    ) -> tuple[Operator, list[OperatorExpression]]:
        """Push predicates (relative to ``plan``'s output) into ``plan``.

        Returns the new plan and the predicates still to be applied above it.
        """
        if isinstance(plan, FilterOperator):
            return self._push(plan.children[0], [*predicates, plan.predicate])
        if isinstance(plan, SeqScanOperator):
            name = plan.table_name_or_alias
            matching = [pred for pred in predicates if _tables(pred) == {name}]
            others = [pred for pred in predicates if _tables(pred) != {name}]
            return _wrap(plan, matching), others
        if isinstance(plan, NestedLoopJoinOperator) and plan.join_type is JoinType.INNER:
            return self._push_into_join(plan, predicates)
        plan.children = [self._push_down(child) for child in plan.children]
        return plan, predicates

    def _push_into_join(
        self, plan: NestedLoopJoinOperator, predicates: list[OperatorExpression]
    ) -> tuple[Operator, list[OperatorExpression]]:
        left, right = plan.children
        left_tables, right_tables = _covered_tables(left), _covered_tables(right)
        left_preds: list[OperatorExpression] = []
        right_preds: list[OperatorExpression] = []
        leftover: list[OperatorExpression] = []
        for predicate in predicates:
            tables = _tables(predicate)
            if not tables:
                leftover.append(predicate)
                continue
            if tables <= left_tables:
                rebased = _rebase(predicate, left)
                target = left_preds
            elif tables <= right_tables:
                rebased = _rebase(predicate, right)
                target = right_preds
            elif tables <= left_tables | right_tables:
                rebased = _rebase_join(predicate, left, right)
                if rebased is not None:
                    if _is_true(plan.join_condition):
                        plan.join_condition = rebased
                    else:
                        plan.join_condition = Logic(LogicType.AND, plan.join_condition, rebased)
                    continue
                target = leftover
            else:
                leftover.append(predicate)
                continue
            if rebased is None:
                leftover.append(predicate)
            elif target is leftover:
                leftover.append(predicate)
            else:
                target.append(rebased)
        new_left, left_rest = self._push(left, left_preds)
        new_right, right_rest = self._push(right, right_preds)
        plan.children = [_wrap(new_left, left_rest), _wrap(new_right, right_rest)]
        return plan, leftover

    def _reorder_join(self, plan: Operator) -> Operator:
        """Visit every node of the plan; joins keep the order they were planned in."""
        if self.join_order_algorithm is JoinOrderAlgorithm.NONE:
            return plan
        plan.children = [self._reorder_join(child) for child in plan.children]
        return plan