"""
Runtime value wrappers for the merc interpreter.

A Value pairs raw Python data with a ValueType tag. The set of tags is
closed: numbers (IEEE-754 doubles), strings, booleans, nil and functions.
"""

import math
from decimal import Decimal
from dataclasses import dataclass
from enum import Enum
from typing import Any, List

from ..ast import S


class ValueType(Enum):
    """Runtime type tags."""
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    NIL = "nil"
    FUNCTION = "function"


@dataclass(frozen=True)
class FunctionData:
    """
    A user-defined function.

    Holds its own copy of the body; there is no link back to the defining
    environment, so functions cannot close over variables.
    """
    name: str
    params: List[str]
    body: S


@dataclass(frozen=True)
class Value:
    """
    A runtime value.

    The `data` field holds the Python object (float, str, bool, None or
    FunctionData) and `type` the tag used for dispatch.
    """
    data: Any
    type: ValueType

    def __repr__(self) -> str:
        return f"Value({self.data!r}, {self.type.name})"

    def __str__(self) -> str:
        return display(self)

    @property
    def is_number(self) -> bool:
        return self.type == ValueType.NUMBER

    @property
    def is_string(self) -> bool:
        return self.type == ValueType.STRING

    @property
    def is_boolean(self) -> bool:
        return self.type == ValueType.BOOLEAN

    @property
    def is_nil(self) -> bool:
        return self.type == ValueType.NIL

    @property
    def is_function(self) -> bool:
        return self.type == ValueType.FUNCTION


# Convenience constructors

def number_val(x: float) -> Value:
    """Create a number value."""
    return Value(float(x), ValueType.NUMBER)


def string_val(s: str) -> Value:
    """Create a string value."""
    return Value(str(s), ValueType.STRING)


def bool_val(b: bool) -> Value:
    """Create a boolean value."""
    return Value(bool(b), ValueType.BOOLEAN)


NIL = Value(None, ValueType.NIL)


def nil_val() -> Value:
    """The nil value."""
    return NIL


def function_val(name: str, params: List[str], body: S) -> Value:
    """Create a function value."""
    return Value(FunctionData(name, list(params), body), ValueType.FUNCTION)


def format_number(x: float) -> str:
    """Shortest round-tripping digits in positional form; integral values print without '.0'."""
    if math.isnan(x):
        return "NaN"
    if math.isinf(x):
        return "inf" if x > 0 else "-inf"
    if x.is_integer():
        if x == 0 and math.copysign(1.0, x) < 0:
            return "-0"
        return str(int(x))
    return format(Decimal(repr(x)), "f")


def display(value: Value) -> str:
    """Display form used by print and the REPL."""
    if value.type == ValueType.NUMBER:
        return format_number(value.data)
    if value.type == ValueType.STRING:
        return value.data
    if value.type == ValueType.BOOLEAN:
        return "true" if value.data else "false"
    if value.type == ValueType.NIL:
        return "nil"
    if value.type == ValueType.FUNCTION:
        return f"<function {value.data.name}>"
    raise ValueError(f"Unknown value type: {value.type}")


def values_equal(left: Value, right: Value) -> bool:
    """Structural equality; different tags are never equal.

    Functions never compare equal, not even to themselves.
    """
    if left.type != right.type:
        return False
    if left.type == ValueType.NIL:
        return True
    if left.type == ValueType.FUNCTION:
        return False
    return left.data == right.data
