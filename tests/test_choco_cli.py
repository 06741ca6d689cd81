"""
Tests for the choco command line interface.
"""

import json
import textwrap
from pathlib import Path

import pytest

from choco import __version__
from choco.__main__ import main

EXAMPLES = Path(__file__).parent.parent / "examples"


@pytest.fixture
def script(tmp_path):
    """Write a Choco script to a temporary file and return its path."""
    def write(source, name="script.choco"):
        path = tmp_path / name
        path.write_text(textwrap.dedent(source))
        return str(path)
    return write


class TestRun:
    """Test running scripts."""

    def test_run_file(self, script, capsys):
        path = script("""
            fn fact(n) {
                if n <= 1 { return 1 }
                return n * fact(n - 1)
            }
            for i in 1..4 {
                let f = fact(i)
                puts "#{i}! = #{f}"
            }
        """)
        assert main([path]) == 0
        captured = capsys.readouterr()
        assert captured.out == "1! = 1\n2! = 2\n3! = 6\n"
        assert captured.err == ""

    def test_run_command(self, capsys):
        assert main(["-c", 'let who = "world"\nputs "hello #{who}"']) == 0
        assert capsys.readouterr().out == "hello world\n"

    def test_deep_recursion(self, capsys):
        source = "fn sum(n) { if n == 0 { return 0 } return n + sum(n - 1) }\nputs sum(1000)"
        assert main(["-c", source]) == 0
        assert capsys.readouterr().out == "500500\n"

    def test_recursion_limit_option(self, capsys):
        source = "fn sum(n) { if n == 0 { return 0 } return n + sum(n - 1) }\nputs sum(1000)"
        assert main(["-c", source, "--recursion-limit", "2000"]) == 0
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "E401" in captured.err

    def test_missing_argument(self, capsys):
        assert main([]) == 1
        assert "usage:" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        missing = tmp_path / "nope.choco"
        assert main([str(missing)]) == 1
        assert f"Error: File not found: {missing}" in capsys.readouterr().err

    def test_unterminated_string_exits_1(self, capsys):
        assert main(["-c", 'puts "abc']) == 1
        captured = capsys.readouterr()
        assert "error[E002]" in captured.err
        assert 'puts "abc' in captured.err

    def test_runtime_problems_exit_0(self, capsys):
        """Diagnostics go to stderr but the exit status stays 0."""
        assert main(["-c", "puts 1\nwhile x puts 2"]) == 0
        captured = capsys.readouterr()
        assert captured.out == "1\n"
        assert "error[E102]" in captured.err

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out


class TestExamples:
    """Run the bundled example scripts."""

    def test_fizzbuzz(self, capsys):
        assert main([str(EXAMPLES / "fizzbuzz.choco")]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 15
        assert lines[:5] == ["1", "2", "Fizz", "4", "Buzz"]
        assert lines[14] == "FizzBuzz"

    def test_factorial(self, capsys):
        assert main([str(EXAMPLES / "factorial.choco")]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert lines[-1] == "7! = 5040"

    def test_arrays(self, capsys):
        assert main([str(EXAMPLES / "arrays.choco")]) == 0
        assert capsys.readouterr().out.splitlines() == [
            "sum of [2, 3, 5, 7, 11] is 28",
            "3",
            "3.5",
        ]


class TestInspection:
    """Test --tokens, --ast and --diagnostics-json."""

    def test_tokens(self, capsys):
        assert main(["-c", "puts 1", "--tokens"]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert lines == [
            "<command>:1:1\tPUTS",
            "<command>:1:6\tNUMBER(1.0)",
            "<command>:1:7\tEOF",
        ]

    def test_ast(self, capsys):
        assert main(["-c", "let x = 1 + 2", "--ast"]) == 0
        out = capsys.readouterr().out
        assert out.splitlines()[0] == "Program()"
        assert "LetStatement(name='x')" in out
        assert "BinaryOp(operator=PLUS)" in out

    def test_ast_does_not_run(self, capsys):
        assert main(["-c", "puts 1", "--ast"]) == 0
        assert "\n1\n" not in capsys.readouterr().out

    def test_diagnostics_json(self, capsys):
        assert main(["-c", "if true {\n puts 1", "--diagnostics-json"]) == 0
        captured = capsys.readouterr()
        assert captured.out == "1\n"
        report = json.loads(captured.err)
        assert report["error_count"] == 1
        assert report["diagnostics"][0]["code"] == "E101"
        assert report["diagnostics"][0]["range"]["start"]["line"] == 1

    def test_diagnostics_json_for_lexer_error(self, capsys):
        assert main(["-c", '"open', "--diagnostics-json"]) == 1
        report = json.loads(capsys.readouterr().err)
        assert report["diagnostics"][0]["code"] == "E002"
