"""
Choco - a small dynamically typed scripting language.

This package provides:
- Lexer: Tokenizes Choco source code
- Parser: Builds a statement tree from tokens, delimiting blocks by brace depth
- Interpreter: Executes the tree with a scope stack and a function table

Usage:
    from choco import tokenize, parse, Interpreter, run

    # One call
    result = run('let name = "world"\\nputs "hello #{name}"')
    print(result.output)        # ['hello world']

    # Or step by step
    source = '''
    fn fact(n) {
        if n <= 1 { return 1 }
        return n * fact(n - 1)
    }
    puts fact(5)
    '''
    tokens = tokenize(source)
    program = parse(tokens, source=source)
    result = Interpreter().run(program, source)
    for diag in result.diagnostics:
        print(diag.format())
"""

import logging

from .tokens import (
    Token,
    TokenType,
    TokenKind,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
    is_keyword,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .parser import (
    Parser,
    parse,
)

from .ast import (
    # Base
    AstNode,
    AstVisitor,
    # Expressions
    Expression,
    NumberLiteral,
    StringLiteral,
    BoolLiteral,
    NilLiteral,
    ArrayLiteral,
    Identifier,
    BinaryOp,
    UnaryOp,
    Call,
    IndexAccess,
    # Statements
    Statement,
    Block,
    LetStatement,
    AssignmentStatement,
    FunctionDef,
    PutsStatement,
    IfStatement,
    WhileStatement,
    ForStatement,
    ReturnStatement,
    ExpressionStatement,
    MalformedStatement,
    Program,
    # Helpers
    format_tree,
)

from .errors import (
    ChocoError,
    LexerError,
    UnterminatedStringError,
    ParserError,
    UnterminatedBlockError,
    MalformedHeaderError,
    RuntimeFault,
    ExecutionHalted,
    Diagnostic,
    DiagnosticCollector,
    ErrorSeverity,
)

from .runtime import (
    Interpreter,
    ExecutionResult,
    Signal,
    execute,
    run,
    Value,
    ValueKind,
    NIL,
    render,
    ExecutionContext,
)

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Tokens
    'Token',
    'TokenType',
    'TokenKind',
    'SourceLocation',
    'SourceSpan',
    'KEYWORDS',
    'is_keyword',

    # Lexer
    'Lexer',
    'tokenize',

    # Parser
    'Parser',
    'parse',

    # Tree nodes
    'AstNode',
    'AstVisitor',
    'Expression',
    'NumberLiteral',
    'StringLiteral',
    'BoolLiteral',
    'NilLiteral',
    'ArrayLiteral',
    'Identifier',
    'BinaryOp',
    'UnaryOp',
    'Call',
    'IndexAccess',
    'Statement',
    'Block',
    'LetStatement',
    'AssignmentStatement',
    'FunctionDef',
    'PutsStatement',
    'IfStatement',
    'WhileStatement',
    'ForStatement',
    'ReturnStatement',
    'ExpressionStatement',
    'MalformedStatement',
    'Program',
    'format_tree',

    # Errors
    'ChocoError',
    'LexerError',
    'UnterminatedStringError',
    'ParserError',
    'UnterminatedBlockError',
    'MalformedHeaderError',
    'RuntimeFault',
    'ExecutionHalted',
    'Diagnostic',
    'DiagnosticCollector',
    'ErrorSeverity',

    # Runtime
    'Interpreter',
    'ExecutionResult',
    'Signal',
    'execute',
    'run',
    'Value',
    'ValueKind',
    'NIL',
    'render',
    'ExecutionContext',

    '__version__',
]
