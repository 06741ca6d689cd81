"""
Coercion and fallback policy.

Choco never fails on a semantic mismatch. Every operator, lookup and
conversion that meets an unexpected type degrades to a fixed result, and
all of those results are defined here:

- arithmetic on incompatible operands, or `/` and `%` by zero, returns the
  left operand unchanged;
- comparisons across variants (and orderings on non-numbers) are false;
- `!` on a non-Bool is false, `-` on a non-Number is the operand itself;
- indexing anything but an Array with an in-range Number returns the base;
- reading an unbound name yields Nil, calling an unknown function yields Nil.
"""

import math
from typing import Callable, Optional

from .values import Value, ValueKind, NIL, bool_val, number_val, string_val, render
from ..tokens import TokenType


# Result of reading an unbound variable or calling an unregistered function
MISSING = NIL

COMPARISON_OPERATORS = frozenset({
    TokenType.EQ, TokenType.NE, TokenType.LT,
    TokenType.GT, TokenType.LE, TokenType.GE,
})

ARITHMETIC_OPERATORS = frozenset({
    TokenType.PLUS, TokenType.MINUS, TokenType.STAR,
    TokenType.SLASH, TokenType.PERCENT,
})

LOGICAL_OPERATORS = frozenset({TokenType.AND, TokenType.OR})


# =============================================================================
# Truthiness
# =============================================================================

def is_truthy(value: Value) -> bool:
    """Condition of an if statement.

    Bool is itself, Number is nonzero, String is non-empty. Arrays and Nil
    are always false, even when non-empty.
    """
    if value.is_bool:
        return value.data
    if value.is_number:
        return value.data != 0
    if value.is_string:
        return value.data != ""
    return False


def logical_truth(value: Value) -> bool:
    """Operand coercion for && and ||: Bool is itself, Number is nonzero,
    everything else (Strings included) is false."""
    if value.is_bool:
        return value.data
    if value.is_number:
        return value.data != 0
    return False


def loop_continues(value: Value) -> bool:
    """A while loop only runs on the exact Bool true."""
    return value.is_bool and value.data is True


# =============================================================================
# Operators
# =============================================================================

def logical(operator: TokenType, left: Value, right: Value) -> Value:
    if operator == TokenType.AND:
        return bool_val(logical_truth(left) and logical_truth(right))
    return bool_val(logical_truth(left) or logical_truth(right))


def compare(operator: TokenType, left: Value, right: Value) -> Value:
    """Comparison; only Numbers order, Bools and Strings support == and !=."""
    if left.is_number and right.is_number:
        a, b = left.data, right.data
        result = {
            TokenType.EQ: a == b,
            TokenType.NE: a != b,
            TokenType.LT: a < b,
            TokenType.GT: a > b,
            TokenType.LE: a <= b,
            TokenType.GE: a >= b,
        }[operator]
        return bool_val(result)

    if left.kind == right.kind and left.kind in (ValueKind.BOOL, ValueKind.STRING):
        if operator == TokenType.EQ:
            return bool_val(left.data == right.data)
        if operator == TokenType.NE:
            return bool_val(left.data != right.data)

    return bool_val(False)


def arithmetic(operator: TokenType, left: Value, right: Value) -> Value:
    """+ - * / %; the left operand is returned when the operation is undefined."""
    if left.is_string and right.is_string:
        if operator == TokenType.PLUS:
            return string_val(left.data + right.data)
        return left

    if not left.is_number or not right.is_number:
        return left

    a, b = left.data, right.data
    if operator == TokenType.PLUS:
        return number_val(a + b)
    if operator == TokenType.MINUS:
        return number_val(a - b)
    if operator == TokenType.STAR:
        return number_val(a * b)
    if b == 0:
        return left
    if operator == TokenType.SLASH:
        return number_val(a / b)
    # C fmod: the result takes the sign of the dividend
    if math.isinf(a):
        return number_val(math.nan)
    return number_val(math.fmod(a, b))


def binary(operator: TokenType, left: Value, right: Value) -> Value:
    """Apply any binary operator."""
    if operator in LOGICAL_OPERATORS:
        return logical(operator, left, right)
    if operator in COMPARISON_OPERATORS:
        return compare(operator, left, right)
    if operator in ARITHMETIC_OPERATORS:
        return arithmetic(operator, left, right)
    raise ValueError(f"not a binary operator: {operator}")


def logical_not(value: Value) -> Value:
    """! on a Bool negates it; on anything else it is false."""
    if value.is_bool:
        return bool_val(not value.data)
    return bool_val(False)


def negate(value: Value) -> Value:
    """Unary minus on a Number; any other value passes through."""
    if value.is_number:
        return number_val(-value.data)
    return value


# =============================================================================
# Access
# =============================================================================

def index(base: Value, position: Value) -> Value:
    """base[position]; out of range or wrong types yield the base unchanged."""
    if not base.is_array or not position.is_number:
        return base
    if not math.isfinite(position.data):
        return base
    i = int(position.data)
    if 0 <= i < len(base.data):
        return base.data[i]
    return base


def range_bounds(start: Value, end: Value) -> range:
    """Iteration range of a for loop: truncated start inclusive to truncated
    end exclusive, empty unless both bounds are finite Numbers."""
    if not start.is_number or not end.is_number:
        return range(0)
    if not (math.isfinite(start.data) and math.isfinite(end.data)):
        return range(0)
    return range(int(start.data), int(end.data))


def callable_name(callee: Value, is_function: Callable[[str], bool]) -> Optional[str]:
    """Name of the function a callee refers to, or None if it is not callable."""
    if callee.is_string and is_function(callee.data):
        return callee.data
    return None


def interpolate(text: str, lookup: Callable[[str], Value]) -> str:
    """Replace each #{name} with the rendered value of name.

    The text between the braces is used verbatim as the name. A '#{' with
    no closing brace is kept as is. Scanning resumes one character after
    each marker, so a marker assembled by a substitution is expanded too.
    """
    pos = 0
    while True:
        opening = text.find("#{", pos)
        if opening == -1:
            return text
        closing = text.find("}", opening + 2)
        if closing != -1:
            name = text[opening + 2:closing]
            text = text[:opening] + render(lookup(name)) + text[closing + 1:]
        pos = opening + 1
