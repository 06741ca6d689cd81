"""
Execution context for the Choco interpreter.

Holds the scope stack, the function table, the output channel and the
diagnostics collected while a program runs.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, TextIO
from contextlib import contextmanager

from .values import Value, NIL
from ..ast import FunctionDef
from ..errors import Diagnostic, DiagnosticCollector


@dataclass
class Scope:
    """A single frame of variable bindings."""
    variables: Dict[str, Value] = field(default_factory=dict)
    name: str = "anonymous"  # For debugging

    def get(self, name: str) -> Optional[Value]:
        return self.variables.get(name)

    def set(self, name: str, value: Value) -> None:
        self.variables[name] = value

    def contains(self, name: str) -> bool:
        return name in self.variables


@dataclass
class FunctionTable:
    """Function name to declaration. Re-declaring a name replaces it."""
    functions: Dict[str, FunctionDef] = field(default_factory=dict)

    def declare(self, function: FunctionDef) -> None:
        self.functions[function.name] = function

    def lookup(self, name: str) -> Optional[FunctionDef]:
        return self.functions.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self.functions

    def names(self) -> List[str]:
        return list(self.functions)


@dataclass
class ExecutionContext:
    """
    The full execution context for running a Choco program.

    Tracks:
    - The scope stack (frame 0 is the global frame and is never popped)
    - Declared functions
    - Program output (every puts line, optionally echoed to a stream)
    - Diagnostics (errors/warnings)
    """
    frames: List[Scope] = field(default_factory=lambda: [Scope(name="global")])
    functions: FunctionTable = field(default_factory=FunctionTable)

    # Output channels
    output: Optional[TextIO] = None
    error_output: Optional[TextIO] = None
    output_lines: List[str] = field(default_factory=list)

    # Diagnostics
    diagnostics: DiagnosticCollector = field(default_factory=DiagnosticCollector)

    # Source tracking for error messages
    source_lines: List[str] = field(default_factory=list)

    @property
    def global_scope(self) -> Scope:
        return self.frames[0]

    @property
    def current_scope(self) -> Scope:
        return self.frames[-1]

    @property
    def call_depth(self) -> int:
        return len(self.frames) - 1

    def read(self, name: str) -> Value:
        """Look a name up from the innermost frame outwards; Nil if unbound."""
        for scope in reversed(self.frames):
            value = scope.get(name)
            if value is not None:
                return value
        return NIL

    def write(self, name: str, value: Value) -> None:
        """Assign-or-declare.

        Updates the innermost frame that already binds the name; otherwise
        creates the binding in the current frame.
        """
        for scope in reversed(self.frames):
            if scope.contains(name):
                scope.set(name, value)
                return
        self.current_scope.set(name, value)

    def bind(self, name: str, value: Value) -> None:
        """Create a binding in the current frame, shadowing outer ones."""
        self.current_scope.set(name, value)

    @contextmanager
    def new_frame(self, name: str = "call"):
        """
        Context manager that pushes a frame for one function call.

        Usage:
            with ctx.new_frame("fact"):
                ctx.bind("n", number_val(3))
        """
        scope = Scope(name=name)
        self.frames.append(scope)
        try:
            yield scope
        finally:
            self.frames.pop()

    def emit(self, text: str) -> None:
        """Write one line of program output."""
        self.output_lines.append(text)
        if self.output is not None:
            self.output.write(text + "\n")
            self.output.flush()

    def report(self, diagnostic: Diagnostic) -> None:
        """Record a diagnostic and echo it to the error channel."""
        if diagnostic.source_line is None:
            diagnostic.source_line = self._get_source_line(diagnostic.span.start.line)
        self.diagnostics.add(diagnostic)
        if self.error_output is not None:
            self.error_output.write(diagnostic.format() + "\n")
            self.error_output.flush()

    def _get_source_line(self, line_num: int) -> Optional[str]:
        if 1 <= line_num <= len(self.source_lines):
            return self.source_lines[line_num - 1]
        return None

    @property
    def has_errors(self) -> bool:
        return self.diagnostics.has_errors

    def snapshot_globals(self) -> Dict[str, Value]:
        """Copy of the global frame's bindings."""
        return dict(self.global_scope.variables)


def create_context(
    source: str = "",
    output: Optional[TextIO] = None,
    error_output: Optional[TextIO] = None,
    globals: Optional[Dict[str, Value]] = None,
) -> ExecutionContext:
    """
    Create a fresh execution context.

    Args:
        source: The source code (for error messages)
        output: Stream that receives puts output as it happens
        error_output: Stream that receives diagnostics as they happen
        globals: Initial bindings for the global frame

    Returns:
        A new ExecutionContext
    """
    ctx = ExecutionContext(
        output=output,
        error_output=error_output,
        source_lines=source.split('\n') if source else [],
    )
    for name, value in (globals or {}).items():
        ctx.global_scope.set(name, value)
    return ctx
