"""
Token types for the Choco lexer.

Every token type belongs to one of the fixed token categories
(literal, identifier, keyword, operator, punctuation, end-of-input).

Diagnostic code ranges:
- E0xx / W0xx: Lexer
- E1xx / W1xx: Parser
- E4xx: Runtime
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenKind(Enum):
    """Broad token categories."""
    LITERAL = "literal"
    IDENTIFIER = "identifier"
    KEYWORD = "keyword"
    OPERATOR = "operator"
    PUNCTUATION = "punctuation"
    END_OF_INPUT = "end-of-input"


class TokenType(Enum):
    """All token types recognized by the lexer."""

    # --- Literals ---
    NUMBER = auto()             # 42, 3.14
    STRING = auto()             # "hello #{name}"

    # --- Identifiers ---
    IDENTIFIER = auto()

    # --- Keywords ---
    LET = auto()
    FN = auto()
    IF = auto()
    ELSE = auto()
    WHILE = auto()
    FOR = auto()
    IN = auto()
    RETURN = auto()
    PUTS = auto()
    TRUE = auto()
    FALSE = auto()

    # --- Arithmetic operators ---
    PLUS = auto()               # +
    MINUS = auto()              # -
    STAR = auto()               # *
    SLASH = auto()              # /
    PERCENT = auto()            # %

    # --- Assignment ---
    ASSIGN = auto()             # =

    # --- Comparison operators ---
    EQ = auto()                 # ==
    NE = auto()                 # !=
    LT = auto()                 # <
    GT = auto()                 # >
    LE = auto()                 # <=
    GE = auto()                 # >=

    # --- Logical operators ---
    AND = auto()                # &&
    OR = auto()                 # ||
    BANG = auto()               # !

    # --- Delimiters ---
    LPAREN = auto()             # (
    RPAREN = auto()             # )
    LBRACE = auto()             # {
    RBRACE = auto()             # }
    LBRACKET = auto()           # [
    RBRACKET = auto()           # ]
    COMMA = auto()              # ,
    SEMICOLON = auto()          # ;
    ARROW = auto()              # ->
    DOT = auto()                # .
    RANGE = auto()              # ..
    COLON = auto()              # :

    # --- Special ---
    EOF = auto()

    @property
    def kind(self) -> TokenKind:
        """The category this token type belongs to."""
        return _KINDS[self]


_KINDS: dict[TokenType, TokenKind] = {}
for _type in (TokenType.NUMBER, TokenType.STRING):
    _KINDS[_type] = TokenKind.LITERAL
_KINDS[TokenType.IDENTIFIER] = TokenKind.IDENTIFIER
for _type in (TokenType.LET, TokenType.FN, TokenType.IF, TokenType.ELSE,
              TokenType.WHILE, TokenType.FOR, TokenType.IN, TokenType.RETURN,
              TokenType.PUTS, TokenType.TRUE, TokenType.FALSE):
    _KINDS[_type] = TokenKind.KEYWORD
for _type in (TokenType.PLUS, TokenType.MINUS, TokenType.STAR, TokenType.SLASH,
              TokenType.PERCENT, TokenType.ASSIGN, TokenType.EQ, TokenType.NE,
              TokenType.LT, TokenType.GT, TokenType.LE, TokenType.GE,
              TokenType.AND, TokenType.OR, TokenType.BANG):
    _KINDS[_type] = TokenKind.OPERATOR
for _type in (TokenType.LPAREN, TokenType.RPAREN, TokenType.LBRACE,
              TokenType.RBRACE, TokenType.LBRACKET, TokenType.RBRACKET,
              TokenType.COMMA, TokenType.SEMICOLON, TokenType.ARROW,
              TokenType.DOT, TokenType.RANGE, TokenType.COLON):
    _KINDS[_type] = TokenKind.PUNCTUATION
_KINDS[TokenType.EOF] = TokenKind.END_OF_INPUT


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class Token:
    """A single token from the lexer."""
    type: TokenType
    value: Any              # float for NUMBER, processed text for STRING, else the lexeme
    lexeme: str             # The original source text
    span: SourceSpan        # Location in source

    @property
    def kind(self) -> TokenKind:
        return self.type.kind

    @property
    def line(self) -> int:
        return self.span.start.line

    def __str__(self) -> str:
        if self.type in (TokenType.NUMBER, TokenType.STRING, TokenType.IDENTIFIER):
            return f"{self.type.name}({self.value!r})"
        return self.type.name


# Keyword mapping - maps string to token type
KEYWORDS: dict[str, TokenType] = {
    "let": TokenType.LET,
    "fn": TokenType.FN,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "while": TokenType.WHILE,
    "for": TokenType.FOR,
    "in": TokenType.IN,
    "return": TokenType.RETURN,
    "puts": TokenType.PUTS,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
}


def is_keyword(word: str) -> bool:
    """Check if a word is reserved."""
    return word in KEYWORDS
