"""
Recursive descent parser for Choco.

Converts a token list into a statement tree. Block extents are located by
brace depth counting: depth starts at 1 after the opening '{', every '{'
increments it, every '}' decrements it, and the block ends where depth
reaches 0. The statements inside the extent are then parsed once and the
cursor moves just past the closing brace.

Structural problems never raise:
- an unterminated block (E101) extends to end of input and is still parsed;
- a malformed header (E102) becomes a MalformedStatement and the rest of
  the enclosing block is skipped;
- a token that cannot start a statement (W102) is skipped.
"""

import logging
from typing import List, Optional
from .tokens import Token, TokenType, SourceSpan
from .ast import (
    Expression, NumberLiteral, StringLiteral, BoolLiteral, NilLiteral,
    ArrayLiteral, Identifier, BinaryOp, UnaryOp, Call, IndexAccess,
    Statement, Block, LetStatement, AssignmentStatement, FunctionDef,
    PutsStatement, IfStatement, WhileStatement, ForStatement,
    ReturnStatement, ExpressionStatement, MalformedStatement, Program,
)
from .errors import (
    DiagnosticCollector,
    error_unterminated_block,
    error_malformed_header,
    warning_skipped_token,
)

logger = logging.getLogger(__name__)


class Parser:
    """
    Recursive descent parser for Choco.

    Usage:
        parser = Parser(tokens)
        program = parser.parse_program()

    Expressions use precedence climbing:
        Lowest:  ||
                 &&
                 == != < > <= >=
                 + -
                 * / %
        Highest: unary (! -), then calls and indexing
    """

    # Operator precedence levels (higher = tighter binding); all left-associative
    PRECEDENCE = {
        TokenType.OR: 1,
        TokenType.AND: 2,
        TokenType.EQ: 3,
        TokenType.NE: 3,
        TokenType.LT: 3,
        TokenType.GT: 3,
        TokenType.LE: 3,
        TokenType.GE: 3,
        TokenType.PLUS: 4,
        TokenType.MINUS: 4,
        TokenType.STAR: 5,
        TokenType.SLASH: 5,
        TokenType.PERCENT: 5,
    }

    def __init__(self, tokens: List[Token], filename: Optional[str] = None, source: Optional[str] = None):
        if not tokens or tokens[-1].type != TokenType.EOF:
            raise ValueError("token list must end with an EOF token")
        self.tokens = tokens
        self.filename = filename
        self.source_lines = source.splitlines() if source else []
        self.pos = 0
        self.diagnostics = DiagnosticCollector()
        self._block_ends: List[int] = []  # end of each block being parsed

    # =========================================================================
    # Token Navigation
    # =========================================================================

    @property
    def eof_index(self) -> int:
        return len(self.tokens) - 1

    def _current(self) -> Token:
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[self.pos]

    def _peek(self, offset: int = 0) -> Token:
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[idx]

    def _is_at_end(self) -> bool:
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        return self._current().type == token_type

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        """Consume token if it matches any of the given types."""
        if self._current().type in token_types:
            return self._advance()
        return None

    def _previous(self) -> Token:
        return self.tokens[max(0, self.pos - 1)]

    def _span_from(self, start: Token) -> SourceSpan:
        """Create a span from start token to the last consumed token."""
        end_token = self._previous() if self.pos > 0 else start
        if end_token.span.end.offset < start.span.start.offset:
            end_token = start
        return SourceSpan(start.span.start, end_token.span.end)

    def _source_line(self, token: Token) -> Optional[str]:
        line = token.span.start.line
        if 1 <= line <= len(self.source_lines):
            return self.source_lines[line - 1]
        return None

    def _skip_semicolon(self) -> None:
        self._match(TokenType.SEMICOLON)

    # =========================================================================
    # Blocks
    # =========================================================================

    def find_block_end(self, start: int) -> int:
        """Index of the '}' matching an already-consumed '{', or of EOF.

        ``start`` is the index of the first token after the opening brace.
        """
        depth = 1
        i = start
        while i < self.eof_index:
            token_type = self.tokens[i].type
            if token_type == TokenType.LBRACE:
                depth += 1
            elif token_type == TokenType.RBRACE:
                depth -= 1
                if depth == 0:
                    return i
            i += 1
        return self.eof_index

    def _parse_block(self, opener: Token) -> Block:
        """Parse the block whose '{' is the current token."""
        lbrace = self._advance()
        start = self.pos
        end = self.find_block_end(start)
        terminated = self.tokens[end].type == TokenType.RBRACE

        if not terminated:
            self.diagnostics.add_error(error_unterminated_block(
                opener.lexeme, lbrace.span, self._source_line(lbrace)
            ))
            logger.debug("unterminated block opened at %s", lbrace.span.start)

        statements = self._parse_statements(end)

        # Just past the closing brace; an unterminated block leaves us at EOF
        self.pos = end + 1 if terminated else end

        return Block(
            span=SourceSpan(lbrace.span.start, self.tokens[end].span.end),
            statements=statements,
            start=start,
            end=end,
            terminated=terminated,
        )

    def _parse_statements(self, end: int) -> List[Statement]:
        """Parse statements until the cursor reaches ``end`` (exclusive)."""
        statements = []
        self._block_ends.append(end)
        try:
            while self.pos < end and not self._is_at_end():
                stmt = self._parse_statement()
                if stmt is not None:
                    statements.append(stmt)
        finally:
            self._block_ends.pop()
        return statements

    def _malformed(self, message: str, start: Token) -> MalformedStatement:
        """Record a malformed header and skip to the end of the enclosing block.

        At top level that is the end of input. Only executing the returned
        statement stops the program.
        """
        error = error_malformed_header(message, self._current().span, self._source_line(self._current()))
        self.diagnostics.add_error(error)
        logger.debug("malformed header at %s: %s", self._current().span.start, message)
        statement = MalformedStatement(span=self._span_from(start), diagnostic=error.diagnostic)
        self.pos = self._block_ends[-1] if self._block_ends else self.eof_index
        return statement

    # =========================================================================
    # Statement Parsing
    # =========================================================================

    def _parse_statement(self) -> Optional[Statement]:
        """Parse one statement, dispatching on its leading token.

        Returns None when the current token cannot start a statement; that
        token is skipped.
        """
        token = self._current()

        if token.type == TokenType.LET:
            return self._parse_let_statement()
        if token.type == TokenType.FN:
            return self._parse_function_def()
        if token.type == TokenType.PUTS:
            return self._parse_puts_statement()
        if token.type == TokenType.IF:
            return self._parse_if_statement()
        if token.type == TokenType.WHILE:
            return self._parse_while_statement()
        if token.type == TokenType.FOR:
            return self._parse_for_statement()
        if token.type == TokenType.RETURN:
            return self._parse_return_statement()
        if token.type == TokenType.IDENTIFIER and self._peek(1).type == TokenType.ASSIGN:
            return self._parse_assignment()

        before = self.pos
        expression = self._parse_expression()
        if self.pos == before:
            skipped = self._advance()
            self.diagnostics.add(warning_skipped_token(
                f"'{skipped.lexeme}'", skipped.span, self._source_line(skipped)
            ))
            return None
        self._skip_semicolon()
        return ExpressionStatement(span=self._span_from(token), expression=expression)

    def _parse_let_statement(self) -> Statement:
        start = self._advance()  # consume 'let'
        if not self._check(TokenType.IDENTIFIER):
            return self._malformed("expected variable name after 'let'", start)
        name = self._advance().value
        self._match(TokenType.ASSIGN)
        value = self._parse_expression()
        self._skip_semicolon()
        return LetStatement(span=self._span_from(start), name=name, value=value)

    def _parse_assignment(self) -> Statement:
        start = self._advance()  # identifier
        self._advance()  # consume '='
        value = self._parse_expression()
        self._skip_semicolon()
        return AssignmentStatement(span=self._span_from(start), name=start.value, value=value)

    def _parse_function_def(self) -> Statement:
        start = self._advance()  # consume 'fn'
        if not self._check(TokenType.IDENTIFIER):
            return self._malformed("expected function name after 'fn'", start)
        name = self._advance().value

        if not self._match(TokenType.LPAREN):
            return self._malformed(f"expected '(' after function name '{name}'", start)

        parameters = []
        while not self._match(TokenType.RPAREN):
            if not self._check(TokenType.IDENTIFIER):
                return self._malformed(f"expected parameter name in declaration of '{name}'", start)
            parameters.append(self._advance().value)
            if not self._match(TokenType.COMMA):
                if not self._match(TokenType.RPAREN):
                    return self._malformed(f"expected ',' or ')' in parameters of '{name}'", start)
                break

        if not self._check(TokenType.LBRACE):
            return self._malformed(f"expected '{{' before body of function '{name}'", start)
        body = self._parse_block(start)

        return FunctionDef(span=self._span_from(start), name=name, parameters=parameters, body=body)

    def _parse_puts_statement(self) -> Statement:
        start = self._advance()  # consume 'puts'
        value = self._parse_expression()
        self._skip_semicolon()
        return PutsStatement(span=self._span_from(start), value=value)

    def _parse_if_statement(self) -> Statement:
        start = self._advance()  # consume 'if'
        condition = self._parse_expression()

        if not self._check(TokenType.LBRACE):
            return self._malformed("expected '{' after if condition", start)
        then_branch = self._parse_block(start)

        else_branch = None
        if self._check(TokenType.ELSE):
            else_token = self._advance()
            if self._check(TokenType.IF):
                # else if: the nested statement is the whole else block
                nested_start = self.pos
                nested = self._parse_if_statement()
                else_branch = Block(
                    span=nested.span,
                    statements=[nested],
                    start=nested_start,
                    end=self.pos,
                )
            elif self._check(TokenType.LBRACE):
                else_branch = self._parse_block(else_token)
            else:
                return self._malformed("expected '{' after else", start)

        return IfStatement(
            span=self._span_from(start),
            condition=condition,
            then_branch=then_branch,
            else_branch=else_branch,
        )

    def _parse_while_statement(self) -> Statement:
        start = self._advance()  # consume 'while'
        condition = self._parse_expression()
        if not self._check(TokenType.LBRACE):
            return self._malformed("expected '{' after while condition", start)
        body = self._parse_block(start)
        return WhileStatement(span=self._span_from(start), condition=condition, body=body)

    def _parse_for_statement(self) -> Statement:
        start = self._advance()  # consume 'for'
        if not self._check(TokenType.IDENTIFIER):
            return self._malformed("expected loop variable after 'for'", start)
        variable = self._advance().value

        if not self._match(TokenType.IN):
            return self._malformed("expected 'in' in for loop", start)
        range_start = self._parse_expression()

        if not self._match(TokenType.RANGE):
            return self._malformed("expected '..' in for loop", start)
        range_end = self._parse_expression()

        if not self._check(TokenType.LBRACE):
            return self._malformed("expected '{' after for range", start)
        body = self._parse_block(start)

        return ForStatement(
            span=self._span_from(start),
            variable=variable,
            start=range_start,
            end=range_end,
            body=body,
        )

    def _parse_return_statement(self) -> Statement:
        start = self._advance()  # consume 'return'
        value = self._parse_expression()
        self._skip_semicolon()
        return ReturnStatement(span=self._span_from(start), value=value)

    # =========================================================================
    # Expression Parsing (Precedence Climbing)
    # =========================================================================

    def _parse_expression(self) -> Expression:
        return self._parse_binary_expr(1)

    def _parse_binary_expr(self, min_precedence: int) -> Expression:
        """Parse binary expressions with precedence climbing."""
        left = self._parse_unary_expr()

        while True:
            op_token = self._current()
            precedence = self.PRECEDENCE.get(op_token.type)

            if precedence is None or precedence < min_precedence:
                break

            self._advance()  # consume operator
            right = self._parse_binary_expr(precedence + 1)

            left = BinaryOp(
                span=SourceSpan(left.span.start, right.span.end),
                left=left,
                operator=op_token.type,
                right=right
            )

        return left

    def _parse_unary_expr(self) -> Expression:
        """Parse unary expressions (!, -)."""
        if self._check(TokenType.BANG) or self._check(TokenType.MINUS):
            op = self._advance()
            operand = self._parse_unary_expr()
            return UnaryOp(
                span=SourceSpan(op.span.start, operand.span.end),
                operator=op.type,
                operand=operand
            )

        return self._parse_postfix_expr()

    def _parse_postfix_expr(self) -> Expression:
        """Parse calls and indexing after a primary expression."""
        expr = self._parse_primary_expr()

        while True:
            if self._match(TokenType.LPAREN):
                arguments = self._parse_list(TokenType.RPAREN)
                expr = Call(
                    span=SourceSpan(expr.span.start, self._previous().span.end),
                    callee=expr,
                    arguments=arguments,
                )
            elif self._match(TokenType.LBRACKET):
                index = self._parse_expression()
                self._match(TokenType.RBRACKET)
                expr = IndexAccess(
                    span=SourceSpan(expr.span.start, self._previous().span.end),
                    object=expr,
                    index=index,
                )
            else:
                break

        return expr

    def _parse_list(self, closer: TokenType) -> List[Expression]:
        """Parse comma-separated expressions after an opening delimiter.

        A missing closer ends the list at the first token that is neither an
        element nor a comma.
        """
        items = []
        while not self._match(closer):
            items.append(self._parse_expression())
            if not self._match(TokenType.COMMA):
                self._match(closer)
                break
        return items

    def _parse_primary_expr(self) -> Expression:
        """Parse literals, identifiers, array literals and grouping.

        Any other token yields a NilLiteral without being consumed.
        """
        token = self._current()

        if token.type == TokenType.NUMBER:
            self._advance()
            return NumberLiteral(span=token.span, value=token.value)

        if token.type == TokenType.STRING:
            self._advance()
            return StringLiteral(span=token.span, value=token.value)

        if token.type in (TokenType.TRUE, TokenType.FALSE):
            self._advance()
            return BoolLiteral(span=token.span, value=token.type == TokenType.TRUE)

        if token.type == TokenType.LBRACKET:
            self._advance()
            elements = self._parse_list(TokenType.RBRACKET)
            return ArrayLiteral(span=self._span_from(token), elements=elements)

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            return Identifier(span=token.span, name=token.value)

        if token.type == TokenType.LPAREN:
            self._advance()
            expr = self._parse_expression()
            self._match(TokenType.RPAREN)
            return expr

        return NilLiteral(span=token.span)

    # =========================================================================
    # Program
    # =========================================================================

    def parse_program(self) -> Program:
        """Parse the whole token list."""
        start = self._current()
        statements = self._parse_statements(self.eof_index)
        return Program(
            span=SourceSpan(start.span.start, self.tokens[-1].span.end),
            statements=statements,
            diagnostics=list(self.diagnostics),
        )


def parse(tokens: List[Token], filename: Optional[str] = None, source: Optional[str] = None) -> Program:
    """
    Convenience function to parse tokens into a program.

    Args:
        tokens: List of tokens from the lexer
        filename: Optional filename for error messages
        source: Optional original source code for diagnostics

    Returns:
        Parsed Program; structural problems are listed in
        ``program.diagnostics`` rather than raised
    """
    parser = Parser(tokens, filename, source)
    return parser.parse_program()
