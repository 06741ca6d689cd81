"""
Runtime values for the Choco interpreter.

A Value is an immutable tagged variant over Number, String, Bool, Array and
Nil. Arrays hold a tuple of Values, so no two values ever share mutable
state: assignment, parameter binding and array construction all copy by
value for free.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable


class ValueKind(Enum):
    NUMBER = "number"
    STRING = "string"
    BOOL = "bool"
    ARRAY = "array"
    NIL = "nil"


@dataclass(frozen=True)
class Value:
    """
    A runtime value.

    The `data` field holds the Python payload (float, str, bool, tuple of
    Value, or None); `kind` says which variant it is.
    """
    data: Any
    kind: ValueKind

    def __repr__(self) -> str:
        return f"Value({self.data!r}, {self.kind.name})"

    def __str__(self) -> str:
        return render(self)

    @property
    def is_number(self) -> bool:
        return self.kind == ValueKind.NUMBER

    @property
    def is_string(self) -> bool:
        return self.kind == ValueKind.STRING

    @property
    def is_bool(self) -> bool:
        return self.kind == ValueKind.BOOL

    @property
    def is_array(self) -> bool:
        return self.kind == ValueKind.ARRAY

    @property
    def is_nil(self) -> bool:
        return self.kind == ValueKind.NIL

    def to_python(self) -> Any:
        """Unwrap to plain Python data (arrays become lists)."""
        if self.kind == ValueKind.ARRAY:
            return [item.to_python() for item in self.data]
        return self.data


NIL = Value(None, ValueKind.NIL)
TRUE = Value(True, ValueKind.BOOL)
FALSE = Value(False, ValueKind.BOOL)


# Convenience constructors

def number_val(n: float) -> Value:
    """Create a number value (always stored as a float)."""
    return Value(float(n), ValueKind.NUMBER)


def string_val(s: str) -> Value:
    return Value(str(s), ValueKind.STRING)


def bool_val(b: bool) -> Value:
    return TRUE if b else FALSE


def array_val(items: Iterable[Value]) -> Value:
    """Create an array value from Values."""
    return Value(tuple(items), ValueKind.ARRAY)


def wrap_value(data: Any) -> Value:
    """Wrap plain Python data (None, bool, int, float, str, list/tuple)."""
    if isinstance(data, Value):
        return data
    if data is None:
        return NIL
    if isinstance(data, bool):
        return bool_val(data)
    if isinstance(data, (int, float)):
        return number_val(data)
    if isinstance(data, str):
        return string_val(data)
    if isinstance(data, (list, tuple)):
        return array_val(wrap_value(item) for item in data)
    raise TypeError(f"cannot convert {type(data).__name__} to a Choco value")


# Rendering

def render_number(n: float) -> str:
    """Integral numbers print without a decimal point; others print with
    six fractional digits, trailing zeros and a bare '.' removed."""
    if math.isnan(n):
        return "nan"
    if math.isinf(n):
        return "inf" if n > 0 else "-inf"
    if n == int(n):
        return str(int(n))
    text = f"{n:.6f}".rstrip("0")
    if text.endswith("."):
        text = text[:-1]
    return text


def render(value: Value) -> str:
    """Canonical text for a value, as printed by puts and interpolation."""
    if value.kind == ValueKind.NUMBER:
        return render_number(value.data)
    if value.kind == ValueKind.STRING:
        return value.data
    if value.kind == ValueKind.BOOL:
        return "true" if value.data else "false"
    if value.kind == ValueKind.ARRAY:
        return "[" + ", ".join(render(item) for item in value.data) + "]"
    return "nil"
