"""
Unit tests for the Choco parser.
"""

import textwrap

import pytest
from choco import (
    tokenize, parse, Parser, TokenType, format_tree,
    NumberLiteral, StringLiteral, BoolLiteral, NilLiteral, ArrayLiteral,
    Identifier, BinaryOp, UnaryOp, Call, IndexAccess,
    Block, LetStatement, AssignmentStatement, FunctionDef, PutsStatement,
    IfStatement, WhileStatement, ForStatement, ReturnStatement,
    ExpressionStatement, MalformedStatement, Program,
)


def parse_source(source):
    return parse(tokenize(source), source=source)


def parse_expr(source):
    """Parse `puts <expr>` and return the expression."""
    program = parse_source(f"puts {source}")
    stmt = program.statements[0]
    assert isinstance(stmt, PutsStatement)
    return stmt.value


class TestStatements:
    """Test statement parsing."""

    def test_empty_program(self):
        program = parse_source("")
        assert isinstance(program, Program)
        assert program.statements == []
        assert program.diagnostics == []

    def test_let_statement(self):
        program = parse_source("let x = 1")
        stmt = program.statements[0]
        assert isinstance(stmt, LetStatement)
        assert stmt.name == "x"
        assert isinstance(stmt.value, NumberLiteral)
        assert stmt.value.value == 1.0

    def test_assignment(self):
        stmt = parse_source("x = 2").statements[0]
        assert isinstance(stmt, AssignmentStatement)
        assert stmt.name == "x"

    def test_comparison_is_not_assignment(self):
        stmt = parse_source("x == 2").statements[0]
        assert isinstance(stmt, ExpressionStatement)
        assert stmt.expression.operator == TokenType.EQ

    def test_puts(self):
        stmt = parse_source('puts "hi"').statements[0]
        assert isinstance(stmt, PutsStatement)
        assert isinstance(stmt.value, StringLiteral)
        assert stmt.value.value == "hi"

    def test_semicolons_are_optional(self):
        program = parse_source("let a = 1; let b = 2\nputs a; puts b;")
        assert [type(s) for s in program.statements] == [
            LetStatement, LetStatement, PutsStatement, PutsStatement,
        ]

    def test_expression_statement(self):
        stmt = parse_source("greet(1)").statements[0]
        assert isinstance(stmt, ExpressionStatement)
        assert isinstance(stmt.expression, Call)

    def test_return(self):
        stmt = parse_source("return 1 + 2").statements[0]
        assert isinstance(stmt, ReturnStatement)
        assert isinstance(stmt.value, BinaryOp)


class TestFunctionDefs:
    """Test fn declarations."""

    def test_function_def(self):
        program = parse_source("fn add(a, b) { return a + b }")
        fn = program.statements[0]
        assert isinstance(fn, FunctionDef)
        assert fn.name == "add"
        assert fn.parameters == ["a", "b"]
        assert isinstance(fn.body, Block)
        assert len(fn.body.statements) == 1
        assert isinstance(fn.body.statements[0], ReturnStatement)

    def test_body_extent(self):
        """The body records the token range between its braces."""
        tokens = tokenize("fn add(a, b) { return a + b }")
        fn = parse(tokens).statements[0]
        assert tokens[fn.body.start].type == TokenType.RETURN
        assert tokens[fn.body.end].type == TokenType.RBRACE
        assert fn.body.end == len(tokens) - 2
        assert fn.body.terminated

    def test_no_parameters(self):
        fn = parse_source("fn f() {}").statements[0]
        assert fn.parameters == []
        assert fn.body.statements == []

    def test_program_functions(self):
        program = parse_source("fn a() {}\nputs 1\nfn b() {}")
        assert [f.name for f in program.functions] == ["a", "b"]


class TestControlFlow:
    """Test if, while and for."""

    def test_if(self):
        stmt = parse_source("if x < 1 { puts 1 }").statements[0]
        assert isinstance(stmt, IfStatement)
        assert isinstance(stmt.condition, BinaryOp)
        assert len(stmt.then_branch.statements) == 1
        assert stmt.else_branch is None

    def test_if_else(self):
        stmt = parse_source("if x { puts 1 } else { puts 2 }").statements[0]
        assert isinstance(stmt.else_branch, Block)
        assert isinstance(stmt.else_branch.statements[0], PutsStatement)

    def test_else_if_chain(self):
        source = textwrap.dedent("""
            if x == 1 {
                puts "one"
            } else if x == 2 {
                puts "two"
            } else {
                puts "many"
            }
            puts "done"
        """)
        program = parse_source(source)
        assert len(program.statements) == 2
        outer = program.statements[0]
        nested = outer.else_branch.statements[0]
        assert isinstance(nested, IfStatement)
        assert isinstance(nested.else_branch, Block)
        assert isinstance(program.statements[1], PutsStatement)

    def test_while(self):
        stmt = parse_source("while i < 3 { i = i + 1 }").statements[0]
        assert isinstance(stmt, WhileStatement)
        assert isinstance(stmt.body.statements[0], AssignmentStatement)

    def test_for(self):
        stmt = parse_source("for i in 0..5 { puts i }").statements[0]
        assert isinstance(stmt, ForStatement)
        assert stmt.variable == "i"
        assert stmt.start.value == 0.0
        assert stmt.end.value == 5.0

    def test_for_with_expression_bounds(self):
        stmt = parse_source("for i in a + 1..len(xs) { }").statements[0]
        assert isinstance(stmt.start, BinaryOp)
        assert isinstance(stmt.end, Call)

    def test_nested_blocks(self):
        """Nested braces are matched by depth counting."""
        source = textwrap.dedent("""
            while a {
                if b { x = 1 }
                y = 2
            }
            z = 3
        """)
        program = parse_source(source)
        assert len(program.statements) == 2
        loop = program.statements[0]
        assert len(loop.body.statements) == 2
        assert isinstance(loop.body.statements[1], AssignmentStatement)


class TestExpressions:
    """Test expression parsing and precedence."""

    def test_literals(self):
        assert isinstance(parse_expr("1"), NumberLiteral)
        assert isinstance(parse_expr('"s"'), StringLiteral)
        assert parse_expr("true").value is True
        assert parse_expr("false").value is False
        assert isinstance(parse_expr("x"), Identifier)

    def test_multiplication_binds_tighter(self):
        expr = parse_expr("1 + 2 * 3")
        assert expr.operator == TokenType.PLUS
        assert isinstance(expr.left, NumberLiteral)
        assert expr.right.operator == TokenType.STAR

    def test_left_associative(self):
        expr = parse_expr("10 - 3 - 2")
        assert expr.operator == TokenType.MINUS
        assert isinstance(expr.left, BinaryOp)
        assert expr.left.left.value == 10.0
        assert expr.right.value == 2.0

    def test_comparison_below_arithmetic(self):
        expr = parse_expr("a + 1 < b * 2")
        assert expr.operator == TokenType.LT
        assert expr.left.operator == TokenType.PLUS
        assert expr.right.operator == TokenType.STAR

    def test_and_binds_tighter_than_or(self):
        expr = parse_expr("a || b && c")
        assert expr.operator == TokenType.OR
        assert expr.right.operator == TokenType.AND

    def test_grouping(self):
        expr = parse_expr("(1 + 2) * 3")
        assert expr.operator == TokenType.STAR
        assert expr.left.operator == TokenType.PLUS

    def test_unary_binds_tightest(self):
        expr = parse_expr("-x * 2")
        assert expr.operator == TokenType.STAR
        assert isinstance(expr.left, UnaryOp)
        assert expr.left.operator == TokenType.MINUS

        expr = parse_expr("!a == b")
        assert expr.operator == TokenType.EQ
        assert expr.left.operator == TokenType.BANG

    def test_call(self):
        expr = parse_expr("f(1, x, \"s\")")
        assert isinstance(expr, Call)
        assert expr.callee.name == "f"
        assert len(expr.arguments) == 3

    def test_call_without_arguments(self):
        expr = parse_expr("f()")
        assert isinstance(expr, Call)
        assert expr.arguments == []

    def test_chained_postfix(self):
        expr = parse_expr("f(1)[0]")
        assert isinstance(expr, IndexAccess)
        assert isinstance(expr.object, Call)

    def test_nested_index(self):
        expr = parse_expr("grid[1][2]")
        assert isinstance(expr, IndexAccess)
        assert isinstance(expr.object, IndexAccess)
        assert expr.index.value == 2.0

    def test_array_literal(self):
        expr = parse_expr("[1, [2, 3], \"x\"]")
        assert isinstance(expr, ArrayLiteral)
        assert len(expr.elements) == 3
        assert isinstance(expr.elements[1], ArrayLiteral)

    def test_empty_array(self):
        expr = parse_expr("[]")
        assert isinstance(expr, ArrayLiteral)
        assert expr.elements == []

    def test_missing_operand_is_nil(self):
        """A missing primary expression becomes a nil literal."""
        expr = parse_expr("1 +")
        assert isinstance(expr.right, NilLiteral)


class TestBlocks:
    """Test brace matching and structural recovery."""

    def test_find_block_end(self):
        tokens = tokenize("{ { } } x")
        parser = Parser(tokens)
        assert parser.find_block_end(1) == 3

    def test_find_block_end_unterminated(self):
        tokens = tokenize("{ { }")
        parser = Parser(tokens)
        assert parser.find_block_end(1) == len(tokens) - 1

    def test_unterminated_block(self):
        """An unterminated block extends to end of input and is still parsed."""
        program = parse_source("if x {\n  puts 1\n  puts 2")
        assert [d.code for d in program.diagnostics] == ["E101"]
        stmt = program.statements[0]
        assert stmt.then_branch.terminated is False
        assert len(stmt.then_branch.statements) == 2

    def test_malformed_header_skips_rest_of_top_level(self):
        source = textwrap.dedent("""
            puts 1
            for i 0..3 { puts i }
            puts 2
        """)
        program = parse_source(source)
        assert [d.code for d in program.diagnostics] == ["E102"]
        assert isinstance(program.statements[0], PutsStatement)
        assert isinstance(program.statements[1], MalformedStatement)
        assert len(program.statements) == 2

    def test_malformed_header_in_function_body(self):
        """Only the rest of the enclosing block is skipped."""
        source = textwrap.dedent("""
            fn f() {
                if 1 puts 1
                puts "skipped"
            }
            puts "after"
        """)
        program = parse_source(source)
        assert [d.code for d in program.diagnostics] == ["E102"]
        fn, after = program.statements
        assert isinstance(fn, FunctionDef)
        assert len(fn.body.statements) == 1
        assert isinstance(fn.body.statements[0], MalformedStatement)
        assert isinstance(after, PutsStatement)

    def test_malformed_header_in_nested_block(self):
        program = parse_source("if false { while true { for i 0..3 { } } puts 2 } else { puts 3 }")
        stmt = program.statements[0]
        loop = stmt.then_branch.statements[0]
        assert isinstance(loop.body.statements[0], MalformedStatement)
        assert isinstance(stmt.then_branch.statements[1], PutsStatement)
        assert isinstance(stmt.else_branch, Block)

    @pytest.mark.parametrize("source", [
        "if x puts 1",
        "while x puts 1",
        "for 1 in 0..3 { }",
        "for i in 0 3 { }",
        "fn (a) { }",
        "fn f a { }",
        "fn f(a b) { }",
        "fn f(a) puts a",
        "if x { } else puts 1",
        "let = 3",
    ])
    def test_malformed_headers(self, source):
        program = parse_source(source)
        assert [d.code for d in program.diagnostics] == ["E102"]
        assert isinstance(program.statements[-1], MalformedStatement)

    def test_stray_closing_brace_is_skipped(self):
        program = parse_source("}\nputs 1")
        assert [d.code for d in program.diagnostics] == ["W102"]
        assert len(program.statements) == 1
        assert isinstance(program.statements[0], PutsStatement)

    def test_diagnostics_carry_source_line(self):
        program = parse_source("puts 1\nwhile x puts 2")
        assert program.diagnostics[0].source_line == "while x puts 2"

    def test_tokens_must_end_with_eof(self):
        with pytest.raises(ValueError):
            Parser([])


class TestFormatTree:
    """Test tree printing."""

    def test_format_tree(self):
        program = parse_source("fn f(a) { return a }\nputs f(1)")
        lines = format_tree(program).splitlines()
        assert lines[0] == "Program()"
        assert lines[1] == "  FunctionDef(name='f')"
        assert any("ReturnStatement()" in line for line in lines)
        assert any("Call()" in line for line in lines)
