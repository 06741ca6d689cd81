"""
Choco exceptions and diagnostics.

Error code ranges:
- E0xx / W0xx: Lexer errors and warnings
- E1xx / W1xx: Parser errors and warnings
- E4xx: Runtime errors

Only an unterminated string literal is fatal. Everything else is recorded
as a Diagnostic and the program keeps running (or halts cleanly).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List
from .tokens import SourceSpan


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class Diagnostic:
    """A single diagnostic message (error, warning, etc.)."""
    code: str                       # E002, E101, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity
    span: SourceSpan
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        # Header: location: severity[code]: message
        loc = f"{self.span.start}"
        parts.append(f"{loc}: {self.severity.value}[{self.code}]: {self.message}")

        # Source line with caret
        if show_source and self.source_line is not None:
            parts.append("  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            end_col = self.span.end.column if self.span.start.line == self.span.end.line else len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        return {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "range": {
                "start": {
                    "line": self.span.start.line,
                    "column": self.span.start.column,
                    "offset": self.span.start.offset,
                },
                "end": {
                    "line": self.span.end.line,
                    "column": self.span.end.column,
                    "offset": self.span.end.offset,
                },
            },
            "hints": self.hints,
        }


class ChocoError(Exception):
    """Base exception for Choco errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexerError(ChocoError):
    """Error during lexical analysis (E0xx)."""
    pass


class UnterminatedStringError(LexerError):
    """A string literal's closing quote was never found."""
    pass


class ParserError(ChocoError):
    """Error while delimiting blocks and statements (E1xx)."""
    pass


class UnterminatedBlockError(ParserError):
    """Brace depth never returned to zero before end of input."""
    pass


class MalformedHeaderError(ParserError):
    """A block header (if/else/while/for/fn) is missing a required piece."""
    pass


class RuntimeFault(ChocoError):
    """Error that stops a running program (E4xx)."""
    pass


class ExecutionHalted(RuntimeFault):
    """Raised to unwind the whole program when it must stop early."""
    pass


# --- Lexer error codes ---

def error_unterminated_string(span: SourceSpan, source_line: str = None) -> UnterminatedStringError:
    """E002: Unterminated string literal."""
    diag = Diagnostic(
        code="E002",
        message="unterminated string literal",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=['string literals must be closed with a matching \'"\''],
    )
    return UnterminatedStringError(diag)


def warning_stray_character(char: str, span: SourceSpan, source_line: str = None) -> Diagnostic:
    """W001: Character outside the token set; input ends there."""
    return Diagnostic(
        code="W001",
        message=f"unexpected character '{char}', ignoring the rest of the input",
        severity=ErrorSeverity.WARNING,
        span=span,
        source_line=source_line,
    )


# --- Parser error codes ---

def error_unterminated_block(opener: str, span: SourceSpan,
                             source_line: str = None) -> UnterminatedBlockError:
    """E101: Block never closed."""
    diag = Diagnostic(
        code="E101",
        message=f"unterminated block after '{opener}', expected '}}' before end of file",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["the block extends to the end of the input"],
    )
    return UnterminatedBlockError(diag)


def error_malformed_header(message: str, span: SourceSpan,
                           source_line: str = None) -> MalformedHeaderError:
    """E102: Malformed block header."""
    diag = Diagnostic(
        code="E102",
        message=message,
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["execution stops at this statement"],
    )
    return MalformedHeaderError(diag)


def warning_skipped_token(found: str, span: SourceSpan, source_line: str = None) -> Diagnostic:
    """W102: Token that cannot start a statement."""
    return Diagnostic(
        code="W102",
        message=f"unexpected {found}, skipped",
        severity=ErrorSeverity.WARNING,
        span=span,
        source_line=source_line,
    )


# --- Runtime error codes ---

def error_call_depth(name: str, span: SourceSpan, source_line: str = None) -> ExecutionHalted:
    """E401: Host recursion exhausted."""
    diag = Diagnostic(
        code="E401",
        message=f"maximum call depth exceeded while calling '{name}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["use --recursion-limit to allow deeper recursion"],
    )
    return ExecutionHalted(diag)


class DiagnosticCollector:
    """Collects diagnostics during lexing, parsing and execution."""

    def __init__(self):
        self.diagnostics: List[Diagnostic] = []
        self._error_count = 0

    def add(self, diagnostic: Diagnostic) -> None:
        """Add a diagnostic."""
        self.diagnostics.append(diagnostic)
        if diagnostic.severity == ErrorSeverity.ERROR:
            self._error_count += 1

    def add_error(self, error: ChocoError) -> None:
        """Add an error exception as a diagnostic."""
        self.add(error.diagnostic)

    def extend(self, other: "DiagnosticCollector") -> None:
        for diagnostic in other.diagnostics:
            self.add(diagnostic)

    def __iter__(self):
        return iter(self.diagnostics)

    def __len__(self) -> int:
        return len(self.diagnostics)

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def warning_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity == ErrorSeverity.WARNING)

    @property
    def has_errors(self) -> bool:
        return self._error_count > 0

    @property
    def has_warnings(self) -> bool:
        return self.warning_count > 0

    def codes(self) -> List[str]:
        return [d.code for d in self.diagnostics]

    def format_all(self, show_source: bool = True) -> str:
        """Format all diagnostics for display."""
        parts = [d.format(show_source) for d in self.diagnostics]
        if self._error_count > 0:
            parts.append(f"{self._error_count} error(s), {self.warning_count} warning(s)")
        elif self.warning_count > 0:
            parts.append(f"{self.warning_count} warning(s)")
        return "\n\n".join(parts)

    def to_json(self) -> dict:
        """Convert all diagnostics to JSON format."""
        return {
            "diagnostics": [d.to_json() for d in self.diagnostics],
            "error_count": self._error_count,
            "warning_count": self.warning_count,
        }
