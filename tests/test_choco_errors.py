"""
Tests for Choco diagnostics.
"""

from choco import Diagnostic, DiagnosticCollector, ErrorSeverity, SourceLocation, SourceSpan
from choco.errors import (
    error_unterminated_block,
    warning_skipped_token,
    error_call_depth,
    ParserError,
    RuntimeFault,
)


def span(line, start_col, end_col):
    return SourceSpan(
        SourceLocation(line, start_col, 0),
        SourceLocation(line, end_col, 0),
    )


class TestDiagnostic:
    """Test diagnostic formatting."""

    def test_format_with_source(self):
        diag = Diagnostic(
            code="E102",
            message="expected '{' after while condition",
            severity=ErrorSeverity.ERROR,
            span=span(2, 9, 13),
            source_line="while x puts 1",
        )
        lines = diag.format().splitlines()
        assert lines[0] == "2:9: error[E102]: expected '{' after while condition"
        assert lines[2] == "  2 | while x puts 1"
        assert lines[3] == "    | " + " " * 8 + "^^^^"

    def test_format_without_source(self):
        diag = warning_skipped_token("'}'", span(1, 1, 2))
        assert diag.format() == "1:1: warning[W102]: unexpected '}', skipped"

    def test_hints(self):
        error = error_unterminated_block("if", span(1, 6, 7))
        assert "= hint: the block extends to the end of the input" in error.diagnostic.format()

    def test_to_json(self):
        diag = warning_skipped_token("';'", span(3, 4, 5))
        data = diag.to_json()
        assert data["code"] == "W102"
        assert data["severity"] == "warning"
        assert data["range"]["start"] == {"line": 3, "column": 4, "offset": 0}


class TestErrors:
    """Test the exception hierarchy."""

    def test_exceptions_wrap_a_diagnostic(self):
        error = error_unterminated_block("while", span(1, 7, 8))
        assert isinstance(error, ParserError)
        assert error.diagnostic.code == "E101"
        assert str(error) == error.diagnostic.format()

    def test_call_depth(self):
        error = error_call_depth("loop", span(1, 1, 5))
        assert isinstance(error, RuntimeFault)
        assert error.diagnostic.code == "E401"
        assert "'loop'" in error.diagnostic.message


class TestDiagnosticCollector:
    """Test diagnostic collection."""

    def test_counts(self):
        collector = DiagnosticCollector()
        collector.add(warning_skipped_token("'}'", span(1, 1, 2)))
        collector.add_error(error_unterminated_block("fn", span(2, 1, 2)))
        assert len(collector) == 2
        assert collector.error_count == 1
        assert collector.warning_count == 1
        assert collector.has_errors
        assert collector.codes() == ["W102", "E101"]

    def test_format_all_summary(self):
        collector = DiagnosticCollector()
        collector.add(warning_skipped_token("'}'", span(1, 1, 2)))
        assert collector.format_all().endswith("1 warning(s)")

    def test_extend_and_json(self):
        first = DiagnosticCollector()
        first.add_error(error_unterminated_block("if", span(1, 1, 2)))
        second = DiagnosticCollector()
        second.extend(first)
        data = second.to_json()
        assert data["error_count"] == 1
        assert data["warning_count"] == 0
        assert [d["code"] for d in data["diagnostics"]] == ["E101"]
