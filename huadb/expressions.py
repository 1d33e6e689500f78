"""Expressions evaluated by query operators against records."""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Iterable, Sequence

from huadb.errors import DbError

_INT32_MIN = -(1 << 31)
_INT32_SPAN = 1 << 32
_TRUE_WORDS = frozenset({"t", "true", "y", "yes", "on", "1"})
_FALSE_WORDS = frozenset({"f", "false", "n", "no", "off", "0"})


class ValueType(Enum):
    NULL = "null"
    BOOL = "bool"
    INT = "int"
    DOUBLE = "double"
    CHAR = "char"
    VARCHAR = "varchar"
    LIST = "list"

    @property
    def is_string(self) -> bool:
        return self in (ValueType.CHAR, ValueType.VARCHAR)


class OperatorExpressionType(Enum):
    AGGREGATE = "aggregate"
    ARITHMETIC = "arithmetic"
    TYPE_CAST = "type_cast"
    COLUMN_VALUE = "column_value"
    COMPARISON = "comparison"
    CONST = "const"
    FUNC_CALL = "func_call"
    LIST = "list"
    LOGIC = "logic"
    NULL_TEST = "null_test"


def _type_of(value: Any) -> ValueType:
    """Database type of a Python value; None is NULL."""
    if value is None:
        return ValueType.NULL
    if isinstance(value, bool):
        return ValueType.BOOL
    if isinstance(value, int):
        return ValueType.INT
    if isinstance(value, float):
        return ValueType.DOUBLE
    if isinstance(value, str):
        return ValueType.VARCHAR
    if isinstance(value, (list, tuple)):
        return ValueType.LIST
    raise DbError(f"Unsupported value of type {type(value).__name__}")


def _size_of(value: Any) -> int:
    value_type = _type_of(value)
    if value_type is ValueType.BOOL:
        return 1
    if value_type is ValueType.INT:
        return 4
    if value_type is ValueType.DOUBLE:
        return 8
    if value_type.is_string:
        return len(value.encode("utf-8"))
    return 0


def _wrap_int32(number: int) -> int:
    return (number - _INT32_MIN) % _INT32_SPAN + _INT32_MIN


def _format_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_format_value(item) for item in value) + "]"
    return str(value)


def _column(record: Sequence[Any], col_idx: int) -> Any:
    try:
        return record[col_idx]
    except IndexError as exc:
        raise DbError("Column index out of range") from exc


def _join_strings(exprs: Iterable["OperatorExpression"]) -> str:
    return "[" + ", ".join(str(expr) for expr in exprs) + "]"


class OperatorExpression:
    """Base of all expressions; a record is a sequence of column values."""

    def __init__(
        self,
        expr_type: OperatorExpressionType | None = None,
        children: Iterable["OperatorExpression"] = (),
        value_type: ValueType = ValueType.NULL,
        name: str = "<no_name>",
        size: int = 0,
    ) -> None:
        self.expr_type = expr_type
        self.children = list(children)
        self.value_type = value_type
        self.name = name
        self.size = size

    def evaluate(self, record: Sequence[Any]) -> Any:
        raise DbError("Evaluate method not implemented")

    def evaluate_join(self, left: Sequence[Any], right: Sequence[Any]) -> Any:
        raise DbError("EvaluateJoin method not implemented")

    def __str__(self) -> str:
        return "OperatorExpression"


class Const(OperatorExpression):
    """A literal value."""

    def __init__(self, value: Any) -> None:
        super().__init__(
            OperatorExpressionType.CONST, (), _type_of(value), "<no_name>", _size_of(value)
        )
        self.value = value

    def evaluate(self, record):
        return self.value

    def evaluate_join(self, left, right):
        return self.value

    def __str__(self) -> str:
        return _format_value(self.value)


class ColumnValue(OperatorExpression):
    """The value of a column, taken from the left or right record of a join."""

    def __init__(
        self, col_idx: int, col_type: ValueType, name: str, size: int, is_left: bool = True
    ) -> None:
        super().__init__(OperatorExpressionType.COLUMN_VALUE, (), col_type, name, size)
        self.col_idx = col_idx
        self.is_left = is_left

    def evaluate(self, record):
        return _column(record, self.col_idx)

    def evaluate_join(self, left, right):
        return _column(left if self.is_left else right, self.col_idx)

    def __str__(self) -> str:
        return self.name


class ExpressionList(OperatorExpression):
    """A list of expressions evaluating to a list of values."""

    def __init__(self, exprs: Iterable[OperatorExpression]) -> None:
        super().__init__(OperatorExpressionType.LIST, (), ValueType.LIST, "<no_name>")
        self.exprs = list(exprs)

    def evaluate(self, record):
        return [expr.evaluate(record) for expr in self.exprs]

    def evaluate_join(self, left, right):
        return [expr.evaluate(left) for expr in self.exprs]

    def __str__(self) -> str:
        return _join_strings(self.exprs)


class ArithmeticType(Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"


def _int_operation(op: ArithmeticType, lhs: int, rhs: int) -> int:
    if op is ArithmeticType.ADD:
        result = lhs + rhs
    elif op is ArithmeticType.SUB:
        result = lhs - rhs
    elif op is ArithmeticType.MUL:
        result = lhs * rhs
    else:
        if rhs == 0:
            raise DbError("division by zero")
        result = abs(lhs) // abs(rhs)
        if (lhs < 0) != (rhs < 0):
            result = -result
    return _wrap_int32(result)


def _float_operation(op: ArithmeticType, lhs: float, rhs: float) -> float:
    if op is ArithmeticType.ADD:
        return lhs + rhs
    if op is ArithmeticType.SUB:
        return lhs - rhs
    if op is ArithmeticType.MUL:
        return lhs * rhs
    if rhs == 0:
        if lhs == 0 or math.isnan(lhs):
            return math.nan
        return math.copysign(math.inf, lhs) * math.copysign(1.0, rhs)
    return lhs / rhs


class Arithmetic(OperatorExpression):
    """Binary arithmetic; the left operand's type decides integer or double math."""

    def __init__(
        self, arithmetic_type: ArithmeticType, left: OperatorExpression, right: OperatorExpression
    ) -> None:
        super().__init__(OperatorExpressionType.ARITHMETIC, (left, right), ValueType.INT)
        self.arithmetic_type = arithmetic_type

    def evaluate(self, record):
        return self._compute(self.children[0].evaluate(record), self.children[1].evaluate(record))

    def evaluate_join(self, left, right):
        return self._compute(
            self.children[0].evaluate_join(left, right),
            self.children[1].evaluate_join(left, right),
        )

    def _compute(self, lhs, rhs):
        if lhs is None or rhs is None:
            return None
        lhs_type, rhs_type = _type_of(lhs), _type_of(rhs)
        if lhs_type is ValueType.INT:
            if rhs_type is not ValueType.INT:
                raise DbError("Type unsupported for arithmetic operation")
            return _int_operation(self.arithmetic_type, lhs, rhs)
        if lhs_type is ValueType.DOUBLE:
            if rhs_type not in (ValueType.INT, ValueType.DOUBLE):
                raise DbError("Type unsupported for arithmetic operation")
            return _float_operation(self.arithmetic_type, lhs, float(rhs))
        raise DbError("Type unsupported for arithmetic operation")

    def __str__(self) -> str:
        return f"{self.children[0]} {self.arithmetic_type.value} {self.children[1]}"


class LogicType(Enum):
    AND = "and"
    OR = "or"
    NOT = "not"


def _negate(value):
    if value is None:
        return None
    if isinstance(value, bool):
        return not value
    raise DbError("Type unsupported for logic operation")


class Logic(OperatorExpression):
    """AND, OR over two booleans, or NOT over one; NULL in gives NULL out."""

    def __init__(
        self,
        logic_type: LogicType,
        left: OperatorExpression,
        right: OperatorExpression | None = None,
    ) -> None:
        if right is None and logic_type is not LogicType.NOT:
            raise DbError(f"{logic_type.value} needs two operands")
        children = (left,) if right is None else (left, right)
        super().__init__(OperatorExpressionType.LOGIC, children, ValueType.BOOL)
        self.logic_type = logic_type

    def evaluate(self, record):
        if self.logic_type is LogicType.NOT:
            return _negate(self.children[0].evaluate(record))
        return self._compute(self.children[0].evaluate(record), self.children[1].evaluate(record))

    def evaluate_join(self, left, right):
        if self.logic_type is LogicType.NOT:
            return _negate(self.children[0].evaluate(left))
        return self._compute(
            self.children[0].evaluate_join(left, right),
            self.children[1].evaluate_join(left, right),
        )

    def _compute(self, lhs, rhs):
        if lhs is None or rhs is None:
            return None
        if not isinstance(lhs, bool) or not isinstance(rhs, bool):
            raise DbError("Type unsupported for logic operation")
        if self.logic_type is LogicType.AND:
            return lhs and rhs
        if self.logic_type is LogicType.OR:
            return lhs or rhs
        raise DbError("Unknown logic type")

    def __str__(self) -> str:
        if self.logic_type is LogicType.NOT:
            return f"{self.logic_type.value} {self.children[0]}"
        return f"{self.children[0]} {self.logic_type.value} {self.children[1]}"


class NullTest(OperatorExpression):
    """IS NULL or IS NOT NULL."""

    def __init__(self, is_null: bool, arg: OperatorExpression) -> None:
        super().__init__(OperatorExpressionType.NULL_TEST, (), ValueType.BOOL, "<no_name>")
        self.is_null = is_null
        self.arg = arg

    def _test(self, value) -> bool:
        return (value is None) == self.is_null

    def evaluate(self, record):
        return self._test(self.arg.evaluate(record))

    def evaluate_join(self, left, right):
        return self._test(self.arg.evaluate(left))

    def __str__(self) -> str:
        return str(self.arg)


def _cast_bool(value):
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise DbError(f"Cannot cast {_format_value(value)} to bool")


class TypeCast(OperatorExpression):
    """A cast of its argument; only casts to bool are supported."""

    def __init__(self, cast_type: ValueType, arg: OperatorExpression) -> None:
        super().__init__(OperatorExpressionType.TYPE_CAST, (), cast_type, "<no_name>")
        self.cast_type = cast_type
        self.arg = arg

    def _cast(self, value):
        if self.cast_type is ValueType.BOOL:
            return _cast_bool(value)
        raise DbError("Type unsupported for cast operation")

    def evaluate(self, record):
        return self._cast(self.arg.evaluate(record))

    def evaluate_join(self, left, right):
        return self._cast(self.arg.evaluate(left))

    def __str__(self) -> str:
        return str(self.arg)


_FUNCTION_TYPES = {
    "lower": ValueType.VARCHAR,
    "upper": ValueType.VARCHAR,
    "length": ValueType.INT,
}


class FuncCall(OperatorExpression):
    """A call to one of the string functions lower, upper and length."""

    def __init__(self, function_name: str, args: Iterable[OperatorExpression]) -> None:
        if function_name not in _FUNCTION_TYPES:
            raise DbError(f"Unknown function name {function_name}")
        super().__init__(
            OperatorExpressionType.FUNC_CALL, (), _FUNCTION_TYPES[function_name], function_name
        )
        self.function_name = function_name
        self.args = list(args)
        if len(self.args) != 1 or not self.args[0].value_type.is_string:
            raise DbError(f"Argument mismatch for function {function_name}")

    def _apply(self, value):
        if value is None:
            return None
        if not isinstance(value, str):
            raise DbError(f"Argument mismatch for function {self.function_name}")
        if self.function_name == "lower":
            return value.lower()
        if self.function_name == "upper":
            return value.upper()
        return len(value.encode("utf-8"))

    def evaluate(self, record):
        return self._apply(self.args[0].evaluate(record))

    def evaluate_join(self, left, right):
        return self._apply(self.args[0].evaluate_join(left, right))

    def __str__(self) -> str:
        return f"{self.function_name}({_join_strings(self.args)})"