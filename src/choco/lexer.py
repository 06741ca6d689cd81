"""
Lexer for Choco.

Converts source text into a flat list of tokens in a single left-to-right
scan with no backtracking. Supports:
- Line comments (// to end of line)
- Number literals with an optional fraction (1..5 is a range, 1.5 a number)
- String literals with escape sequences, spanning lines if needed
- Interpolation markers (#{...}) kept verbatim inside string text
- All keywords and operators
"""

import logging
from typing import List, Optional, Iterator
from .tokens import Token, TokenType, SourceLocation, SourceSpan, KEYWORDS, is_keyword
from .errors import (
    DiagnosticCollector,
    error_unterminated_string,
    warning_stray_character,
)

logger = logging.getLogger(__name__)

DIGITS = "0123456789"

# Recognised escapes; any other escaped character stands for itself
ESCAPES = {
    'n': '\n',
    't': '\t',
    '\\': '\\',
    '"': '"',
}


class Lexer:
    """
    Tokenizer for Choco source code.

    Usage:
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()

    Or for streaming:
        lexer = Lexer(source_code)
        for token in lexer:
            process(token)

    A character outside the token set ends the token stream early; the
    lexer records a W001 warning in ``lexer.diagnostics`` and emits EOF.
    """

    def __init__(self, source: str, filename: Optional[str] = None):
        self.source = source
        self.filename = filename
        self.pos = 0            # Current position in source
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)
        self._lines: Optional[List[str]] = None  # Cached line list
        self._truncated = False
        self.diagnostics = DiagnosticCollector()

    @property
    def lines(self) -> List[str]:
        """Lazy-load line list for error reporting."""
        if self._lines is None:
            self._lines = self.source.splitlines()
        return self._lines

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Get a specific line of source (1-indexed)."""
        if 1 <= line_num <= len(self.lines):
            return self.lines[line_num - 1]
        return None

    def _location(self) -> SourceLocation:
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        return SourceSpan(start, self._location())

    def _peek(self, offset: int = 0) -> str:
        """Look at character at current position + offset without consuming."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return '\0'
        return self.source[idx]

    def _advance(self) -> str:
        """Consume and return current character."""
        if self.pos >= len(self.source):
            return '\0'
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _match(self, expected: str) -> bool:
        """Consume character if it matches expected."""
        if self._peek() == expected:
            self._advance()
            return True
        return False

    def _is_at_end(self) -> bool:
        return self.pos >= len(self.source) or self._truncated

    def _skip_whitespace_and_comments(self) -> None:
        while not self._is_at_end():
            ch = self._peek()
            if ch in ' \t\r\n\f\v':
                self._advance()
            elif ch == '/' and self._peek(1) == '/':
                while self._peek() != '\n' and not self._is_at_end():
                    self._advance()
            else:
                break

    def _make_token(self, token_type: TokenType, value, start: SourceLocation,
                    lexeme: Optional[str] = None) -> Token:
        span = self._span(start)
        if lexeme is None:
            lexeme = self.source[start.offset:self.pos]
        return Token(token_type, value, lexeme, span)

    def _scan_string(self) -> Token:
        """Scan a string literal; the opening quote is the current character."""
        start = self._location()
        self._advance()  # consume opening quote

        chars = []
        while not self._is_at_end() and self._peek() != '"':
            ch = self._advance()
            if ch == '\\' and not self._is_at_end():
                escaped = self._advance()
                chars.append(ESCAPES.get(escaped, escaped))
            else:
                chars.append(ch)

        if self._is_at_end():
            raise error_unterminated_string(
                self._span(start),
                self.get_source_line(start.line)
            )

        self._advance()  # consume closing quote
        return self._make_token(TokenType.STRING, ''.join(chars), start)

    def _scan_number(self) -> Token:
        """Scan a numeric literal.

        A '.' belongs to the number only when a digit follows it, which also
        leaves '1..5' as NUMBER RANGE NUMBER.
        """
        start = self._location()

        while self._peek() in DIGITS:
            self._advance()

        if self._peek() == '.' and self._peek(1) in DIGITS:
            self._advance()  # consume '.'
            while self._peek() in DIGITS:
                self._advance()

        lexeme = self.source[start.offset:self.pos]
        return self._make_token(TokenType.NUMBER, float(lexeme), start, lexeme)

    def _scan_identifier_or_keyword(self) -> Token:
        start = self._location()

        while _is_identifier_char(self._peek()):
            self._advance()

        lexeme = self.source[start.offset:self.pos]
        if is_keyword(lexeme):
            return self._make_token(KEYWORDS[lexeme], lexeme, start, lexeme)
        return self._make_token(TokenType.IDENTIFIER, lexeme, start, lexeme)

    def _scan_token(self) -> Token:
        """Scan the next token."""
        self._skip_whitespace_and_comments()

        if self._is_at_end():
            return self._make_token(TokenType.EOF, None, self._location(), "")

        start = self._location()
        ch = self._peek()

        if ch == '"':
            return self._scan_string()

        if ch in DIGITS:
            return self._scan_number()

        if _is_identifier_start(ch):
            return self._scan_identifier_or_keyword()

        self._advance()

        # Two-character operators
        if ch == '.' and self._match('.'):
            return self._make_token(TokenType.RANGE, "..", start)
        if ch == '-' and self._match('>'):
            return self._make_token(TokenType.ARROW, "->", start)
        if ch == '=' and self._match('='):
            return self._make_token(TokenType.EQ, "==", start)
        if ch == '!' and self._match('='):
            return self._make_token(TokenType.NE, "!=", start)
        if ch == '<' and self._match('='):
            return self._make_token(TokenType.LE, "<=", start)
        if ch == '>' and self._match('='):
            return self._make_token(TokenType.GE, ">=", start)
        if ch == '&' and self._match('&'):
            return self._make_token(TokenType.AND, "&&", start)
        if ch == '|' and self._match('|'):
            return self._make_token(TokenType.OR, "||", start)

        single_char_tokens = {
            '+': TokenType.PLUS,
            '-': TokenType.MINUS,
            '*': TokenType.STAR,
            '/': TokenType.SLASH,
            '%': TokenType.PERCENT,
            '<': TokenType.LT,
            '>': TokenType.GT,
            '=': TokenType.ASSIGN,
            '!': TokenType.BANG,
            '(': TokenType.LPAREN,
            ')': TokenType.RPAREN,
            '{': TokenType.LBRACE,
            '}': TokenType.RBRACE,
            '[': TokenType.LBRACKET,
            ']': TokenType.RBRACKET,
            ',': TokenType.COMMA,
            ';': TokenType.SEMICOLON,
            ':': TokenType.COLON,
            '.': TokenType.DOT,
        }

        if ch in single_char_tokens:
            return self._make_token(single_char_tokens[ch], ch, start)

        # Stray character: the input ends here
        self.diagnostics.add(warning_stray_character(
            ch, self._span(start), self.get_source_line(start.line)
        ))
        logger.debug("stray character %r at %s, truncating input", ch, start)
        self._truncated = True
        return self._make_token(TokenType.EOF, None, start, "")

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source, returning a list of tokens ending in EOF."""
        tokens = []
        while True:
            token = self._scan_token()
            tokens.append(token)
            if token.type == TokenType.EOF:
                break
        return tokens

    def __iter__(self) -> Iterator[Token]:
        while True:
            token = self._scan_token()
            yield token
            if token.type == TokenType.EOF:
                break


def _is_identifier_start(ch: str) -> bool:
    return ch.isascii() and (ch.isalpha() or ch == '_')


def _is_identifier_char(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch == '_')


def tokenize(source: str, filename: Optional[str] = None) -> List[Token]:
    """
    Convenience function to tokenize source code.

    Args:
        source: The source code to tokenize
        filename: Optional filename for error messages

    Returns:
        List of tokens

    Raises:
        UnterminatedStringError: If a string literal is never closed
    """
    lexer = Lexer(source, filename)
    return lexer.tokenize()
