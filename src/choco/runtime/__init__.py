"""
Choco Runtime - Tree-walking interpreter for Choco programs.

This module provides:
- Interpreter: Executes parsed programs
- Value: Immutable runtime values and their canonical rendering
- ExecutionContext: Scope stack, function table and output channel
- policy: Coercion and fallback rules for every type mismatch
"""

from .values import (
    Value,
    ValueKind,
    NIL,
    TRUE,
    FALSE,
    number_val,
    string_val,
    bool_val,
    array_val,
    wrap_value,
    render,
    render_number,
)

from .context import (
    Scope,
    FunctionTable,
    ExecutionContext,
    create_context,
)

from .interpreter import (
    Interpreter,
    ExecutionResult,
    Signal,
    SignalKind,
    execute,
    run,
)

from . import policy

__all__ = [
    # Values
    'Value',
    'ValueKind',
    'NIL',
    'TRUE',
    'FALSE',
    'number_val',
    'string_val',
    'bool_val',
    'array_val',
    'wrap_value',
    'render',
    'render_number',

    # Context
    'Scope',
    'FunctionTable',
    'ExecutionContext',
    'create_context',

    # Interpreter
    'Interpreter',
    'ExecutionResult',
    'Signal',
    'SignalKind',
    'execute',
    'run',

    'policy',
]
