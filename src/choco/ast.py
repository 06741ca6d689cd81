"""
Statement and expression tree for Choco.

The parser delimits every block by brace depth counting over the token list
and parses it once. Each Block keeps the half-open token extent
[start, end) it was parsed from, so loop bodies and function bodies are
replayed by walking the tree instead of rescanning tokens.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Any
from abc import ABC
from .tokens import SourceSpan, TokenType
from .errors import Diagnostic


@dataclass
class AstNode(ABC):
    """Base class for all tree nodes."""
    span: SourceSpan  # Source location for error reporting

    def accept(self, visitor: "AstVisitor") -> Any:
        """Accept a visitor for traversal."""
        method_name = f"visit_{self.__class__.__name__}"
        method = getattr(visitor, method_name, visitor.generic_visit)
        return method(self)


class AstVisitor(ABC):
    """Base class for tree visitors."""

    def generic_visit(self, node: AstNode) -> Any:
        raise NotImplementedError(f"No visitor for {node.__class__.__name__}")


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass
class NumberLiteral(Expression):
    value: float


@dataclass
class StringLiteral(Expression):
    """String text as stored by the lexer; #{name} spans are resolved at evaluation."""
    value: str


@dataclass
class BoolLiteral(Expression):
    value: bool


@dataclass
class NilLiteral(Expression):
    """Produced where a primary expression was expected but none was found."""
    pass


@dataclass
class ArrayLiteral(Expression):
    """An array literal (e.g., [1, 2, 3])."""
    elements: List[Expression]


@dataclass
class Identifier(Expression):
    """A variable or function name reference."""
    name: str


@dataclass
class BinaryOp(Expression):
    """A binary operation (e.g., a + b, x && y)."""
    left: Expression
    operator: TokenType
    right: Expression


@dataclass
class UnaryOp(Expression):
    """A unary operation (!x, -n)."""
    operator: TokenType
    operand: Expression


@dataclass
class Call(Expression):
    """callee(arguments); a call only happens if the callee names a function."""
    callee: Expression
    arguments: List[Expression]


@dataclass
class IndexAccess(Expression):
    """Index access (e.g., items[0])."""
    object: Expression
    index: Expression


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass
class Statement(AstNode):
    """Base class for all statements."""
    pass


@dataclass
class Block(AstNode):
    """Statements between a '{' and its matching '}'.

    ``start`` is the index of the first token after the opening brace and
    ``end`` the index of the closing brace (or of EOF for an unterminated
    block).
    """
    statements: List[Statement]
    start: int
    end: int
    terminated: bool = True


@dataclass
class LetStatement(Statement):
    """let name = value"""
    name: str
    value: Expression


@dataclass
class AssignmentStatement(Statement):
    """name = value"""
    name: str
    value: Expression


@dataclass
class FunctionDef(Statement):
    """fn name(params) { body } -- registered when executed."""
    name: str
    parameters: List[str]
    body: Block


@dataclass
class PutsStatement(Statement):
    value: Expression


@dataclass
class IfStatement(Statement):
    """if/else; an 'else if' chain is a nested IfStatement in else_branch."""
    condition: Expression
    then_branch: Block
    else_branch: Optional[Block] = None


@dataclass
class WhileStatement(Statement):
    condition: Expression
    body: Block


@dataclass
class ForStatement(Statement):
    """for variable in start..end { body }"""
    variable: str
    start: Expression
    end: Expression
    body: Block


@dataclass
class ReturnStatement(Statement):
    value: Expression


@dataclass
class ExpressionStatement(Statement):
    """An expression evaluated for its side effects."""
    expression: Expression


@dataclass
class MalformedStatement(Statement):
    """A statement whose header could not be parsed.

    The rest of its enclosing block is skipped; executing it halts the program.
    """
    diagnostic: Diagnostic


@dataclass
class Program(AstNode):
    """The top-level statement list."""
    statements: List[Statement] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def functions(self) -> List[FunctionDef]:
        """Top-level function declarations."""
        return [s for s in self.statements if isinstance(s, FunctionDef)]


# =============================================================================
# Printing
# =============================================================================

class PrintVisitor(AstVisitor):
    """Renders a tree as indented text, for debugging and the --ast flag."""

    def __init__(self):
        self.depth = 0
        self.lines: List[str] = []

    def _emit(self, text: str) -> None:
        self.lines.append("  " * self.depth + text)

    def _nested(self, nodes) -> None:
        self.depth += 1
        for node in nodes:
            node.accept(self)
        self.depth -= 1

    def generic_visit(self, node: AstNode) -> Any:
        fields = {k: v for k, v in vars(node).items() if k != "span"}
        children = []
        scalars = []
        for key, value in fields.items():
            if isinstance(value, AstNode):
                children.append(value)
            elif isinstance(value, list) and value and isinstance(value[0], AstNode):
                children.extend(value)
            elif isinstance(value, TokenType):
                scalars.append(f"{key}={value.name}")
            elif not isinstance(value, (list, Diagnostic)):
                scalars.append(f"{key}={value!r}")
        self._emit(f"{node.__class__.__name__}({', '.join(scalars)})")
        self._nested(children)

    def visit_MalformedStatement(self, node: MalformedStatement) -> Any:
        self._emit(f"MalformedStatement({node.diagnostic.code}: {node.diagnostic.message})")


def format_tree(node: AstNode) -> str:
    """Render a tree node and its children as indented text."""
    visitor = PrintVisitor()
    node.accept(visitor)
    return "\n".join(visitor.lines)
