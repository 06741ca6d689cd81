"""
Tree-walking interpreter for Choco.

Statements execute for their side effects and return a Signal; a `return`
produces Signal.RETURN, which every enclosing statement loop passes
straight outward until the function call that owns it turns it into the
call's value. Expressions evaluate to Values. Every type mismatch falls
back to the results defined in `policy`.
"""

import logging
import sys
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, TextIO

from .values import Value, NIL, number_val, string_val, bool_val, array_val, render, wrap_value
from .context import ExecutionContext, create_context
from . import policy

from ..ast import (
    Program, Statement, Block, LetStatement, AssignmentStatement, FunctionDef,
    PutsStatement, IfStatement, WhileStatement, ForStatement, ReturnStatement,
    ExpressionStatement, MalformedStatement,
    Expression, NumberLiteral, StringLiteral, BoolLiteral, NilLiteral,
    ArrayLiteral, Identifier, BinaryOp, UnaryOp, Call, IndexAccess,
)
from ..errors import Diagnostic, ExecutionHalted, error_call_depth
from ..tokens import SourceSpan, TokenType

logger = logging.getLogger(__name__)

# Each Choco call nests roughly ten Python frames
DEFAULT_RECURSION_LIMIT = 30_000

# Worker thread stack reserved per allowed Python frame
STACK_BYTES_PER_FRAME = 8 * 1024


class SignalKind(Enum):
    NORMAL = "normal"
    RETURN = "return"


@dataclass(frozen=True)
class Signal:
    """Outcome of executing a statement."""
    kind: SignalKind
    value: Value = NIL

    @property
    def is_return(self) -> bool:
        return self.kind == SignalKind.RETURN

    @staticmethod
    def returning(value: Value) -> "Signal":
        return Signal(SignalKind.RETURN, value)


NORMAL = Signal(SignalKind.NORMAL)


@dataclass
class ExecutionResult:
    """Result of running a program."""
    success: bool
    output: List[str] = field(default_factory=list)
    globals: Dict[str, Value] = field(default_factory=dict)
    functions: List[str] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    halted: bool = False
    returned: Optional[Value] = None
    error_message: Optional[str] = None

    @property
    def stdout(self) -> str:
        """Program output as printed, one line per puts."""
        return "".join(line + "\n" for line in self.output)

    def get(self, name: str) -> Value:
        """A global variable after the run; Nil if unbound."""
        return self.globals.get(name, NIL)


class Interpreter:
    """
    Tree-walking interpreter for Choco programs.

    Usage:
        interpreter = Interpreter(output=sys.stdout)
        result = interpreter.run(program, source)
        interpreter.call("fact", [5])

    Programs run on a worker thread with a large stack and a raised
    recursion limit, since every Choco call nests several Python frames.
    """

    def __init__(
        self,
        output: Optional[TextIO] = None,
        error_output: Optional[TextIO] = None,
        recursion_limit: int = DEFAULT_RECURSION_LIMIT,
    ):
        """
        Initialize the interpreter.

        Args:
            output: Stream that receives puts output as it happens
            error_output: Stream that receives diagnostics as they happen
            recursion_limit: Python recursion limit while a program runs
        """
        self.output = output
        self.error_output = error_output
        self.recursion_limit = recursion_limit
        self.context: Optional[ExecutionContext] = None

    def run(
        self,
        program: Program,
        source: str = "",
        globals: Optional[Dict[str, Any]] = None,
    ) -> ExecutionResult:
        """
        Execute a parsed program from its first statement.

        Args:
            program: The parsed program
            source: Original source code for error messages
            globals: Initial global bindings (raw Python values or Values)

        Returns:
            ExecutionResult with output, final globals and diagnostics
        """
        ctx = create_context(
            source=source,
            output=self.output,
            error_output=self.error_output,
            globals={name: wrap_value(v) for name, v in (globals or {}).items()},
        )
        self.context = ctx

        for diagnostic in program.diagnostics:
            ctx.report(diagnostic)

        halted, returned = self._run_deep(lambda: self._run_program(program, ctx))

        if halted is not None:
            if halted not in ctx.diagnostics.diagnostics:
                ctx.report(halted)
            logger.debug("program halted: %s", halted.message)

        return ExecutionResult(
            success=halted is None and not ctx.has_errors,
            output=list(ctx.output_lines),
            globals=ctx.snapshot_globals(),
            functions=ctx.functions.names(),
            diagnostics=list(ctx.diagnostics),
            halted=halted is not None,
            returned=returned,
            error_message=halted.message if halted is not None else None,
        )

    def _run_program(self, program: Program, ctx: ExecutionContext):
        """Returns (halting diagnostic or None, top-level return value or None)."""
        try:
            signal = self._execute_statements(program.statements, ctx)
        except ExecutionHalted as e:
            return e.diagnostic, None
        except RecursionError:
            return error_call_depth("<program>", program.span).diagnostic, None

        if signal.is_return:
            # return at top level ends the program
            logger.debug("top-level return, stopping")
            return None, signal.value
        return None, None

    def _run_deep(self, work: Callable[[], Any]) -> Any:
        """Run ``work`` on a thread with a large stack and a raised recursion limit."""
        outcome: Dict[str, Any] = {}

        def target():
            try:
                outcome["value"] = work()
            except BaseException as e:
                outcome["error"] = e

        previous_limit = sys.getrecursionlimit()
        if self.recursion_limit > previous_limit:
            sys.setrecursionlimit(self.recursion_limit)
        try:
            frames = max(self.recursion_limit, previous_limit)
            previous_size = threading.stack_size(frames * STACK_BYTES_PER_FRAME)
            try:
                worker = threading.Thread(target=target, name="choco-run")
                worker.start()
            finally:
                threading.stack_size(previous_size)
            worker.join()
        finally:
            sys.setrecursionlimit(previous_limit)

        if "error" in outcome:
            raise outcome["error"]
        return outcome["value"]

    def call(self, name: str, args: Sequence[Any] = ()) -> Value:
        """Call a function declared by the last program run."""
        if self.context is None:
            raise RuntimeError("no program has been run")
        values = [wrap_value(a) for a in args]
        return self._run_deep(lambda: self.call_function(name, values, self.context))

    # =========================================================================
    # Functions
    # =========================================================================

    def call_function(self, name: str, args: List[Value], ctx: ExecutionContext,
                      span: Optional[SourceSpan] = None) -> Value:
        """Invoke a declared function; unknown names yield Nil."""
        function = ctx.functions.lookup(name)
        if function is None:
            return policy.MISSING

        logger.debug("call %s with %d argument(s) at depth %d", name, len(args), ctx.call_depth + 1)
        with ctx.new_frame(name):
            # Extra arguments are dropped; missing parameters stay unbound
            for param, arg in zip(function.parameters, args):
                ctx.bind(param, arg)
            try:
                signal = self._execute_block(function.body, ctx)
            except RecursionError:
                raise error_call_depth(name, span or function.span) from None

        return signal.value if signal.is_return else NIL

    # =========================================================================
    # Statements
    # =========================================================================

    def _execute_statements(self, statements: List[Statement], ctx: ExecutionContext) -> Signal:
        for stmt in statements:
            signal = self._execute_statement(stmt, ctx)
            if signal.is_return:
                return signal
        return NORMAL

    def _execute_block(self, block: Block, ctx: ExecutionContext) -> Signal:
        return self._execute_statements(block.statements, ctx)

    def _execute_statement(self, stmt: Statement, ctx: ExecutionContext) -> Signal:
        """Execute a statement."""
        if isinstance(stmt, (LetStatement, AssignmentStatement)):
            ctx.write(stmt.name, self._evaluate(stmt.value, ctx))
        elif isinstance(stmt, FunctionDef):
            ctx.functions.declare(stmt)
            logger.debug("declared %s(%s)", stmt.name, ", ".join(stmt.parameters))
        elif isinstance(stmt, PutsStatement):
            ctx.emit(render(self._evaluate(stmt.value, ctx)))
        elif isinstance(stmt, IfStatement):
            return self._execute_if(stmt, ctx)
        elif isinstance(stmt, WhileStatement):
            return self._execute_while(stmt, ctx)
        elif isinstance(stmt, ForStatement):
            return self._execute_for(stmt, ctx)
        elif isinstance(stmt, ReturnStatement):
            return Signal.returning(self._evaluate(stmt.value, ctx))
        elif isinstance(stmt, ExpressionStatement):
            self._evaluate(stmt.expression, ctx)
        elif isinstance(stmt, MalformedStatement):
            raise ExecutionHalted(stmt.diagnostic)
        else:
            raise RuntimeError(f"Unknown statement type: {type(stmt).__name__}")
        return NORMAL

    def _execute_if(self, stmt: IfStatement, ctx: ExecutionContext) -> Signal:
        condition = self._evaluate(stmt.condition, ctx)
        if policy.is_truthy(condition):
            return self._execute_block(stmt.then_branch, ctx)
        if stmt.else_branch is not None:
            return self._execute_block(stmt.else_branch, ctx)
        return NORMAL

    def _execute_while(self, stmt: WhileStatement, ctx: ExecutionContext) -> Signal:
        while policy.loop_continues(self._evaluate(stmt.condition, ctx)):
            signal = self._execute_block(stmt.body, ctx)
            if signal.is_return:
                return signal
        return NORMAL

    def _execute_for(self, stmt: ForStatement, ctx: ExecutionContext) -> Signal:
        start = self._evaluate(stmt.start, ctx)
        end = self._evaluate(stmt.end, ctx)
        for i in policy.range_bounds(start, end):
            ctx.write(stmt.variable, number_val(i))
            signal = self._execute_block(stmt.body, ctx)
            if signal.is_return:
                return signal
        return NORMAL

    # =========================================================================
    # Expressions
    # =========================================================================

    def _evaluate(self, expr: Expression, ctx: ExecutionContext) -> Value:
        """Evaluate an expression to produce a Value."""
        if isinstance(expr, NumberLiteral):
            return number_val(expr.value)
        elif isinstance(expr, StringLiteral):
            return string_val(policy.interpolate(expr.value, ctx.read))
        elif isinstance(expr, BoolLiteral):
            return bool_val(expr.value)
        elif isinstance(expr, NilLiteral):
            return NIL
        elif isinstance(expr, ArrayLiteral):
            return array_val(self._evaluate(e, ctx) for e in expr.elements)
        elif isinstance(expr, Identifier):
            return self._eval_identifier(expr, ctx)
        elif isinstance(expr, BinaryOp):
            # Both sides are always evaluated, && and || included
            left = self._evaluate(expr.left, ctx)
            right = self._evaluate(expr.right, ctx)
            return policy.binary(expr.operator, left, right)
        elif isinstance(expr, UnaryOp):
            return self._eval_unary_op(expr, ctx)
        elif isinstance(expr, Call):
            return self._eval_call(expr, ctx)
        elif isinstance(expr, IndexAccess):
            base = self._evaluate(expr.object, ctx)
            position = self._evaluate(expr.index, ctx)
            return policy.index(base, position)
        else:
            raise RuntimeError(f"Unknown expression type: {type(expr).__name__}")

    def _eval_identifier(self, ident: Identifier, ctx: ExecutionContext) -> Value:
        """A declared function name evaluates to its name, ready to be called;
        anything else is a variable read."""
        if ident.name in ctx.functions:
            return string_val(ident.name)
        return ctx.read(ident.name)

    def _eval_unary_op(self, op: UnaryOp, ctx: ExecutionContext) -> Value:
        operand = self._evaluate(op.operand, ctx)
        if op.operator == TokenType.BANG:
            return policy.logical_not(operand)
        if op.operator == TokenType.MINUS:
            return policy.negate(operand)
        raise RuntimeError(f"Unknown unary operator: {op.operator}")

    def _eval_call(self, call: Call, ctx: ExecutionContext) -> Value:
        """Call the function the callee names; a non-callable callee is
        returned as is and its arguments are never evaluated."""
        callee = self._evaluate(call.callee, ctx)
        name = policy.callable_name(callee, ctx.functions.__contains__)
        if name is None:
            return callee
        args = [self._evaluate(arg, ctx) for arg in call.arguments]
        return self.call_function(name, args, ctx, call.span)


def execute(
    program: Program,
    source: str = "",
    output: Optional[TextIO] = None,
    error_output: Optional[TextIO] = None,
) -> ExecutionResult:
    """
    Execute a parsed program.

    This is a convenience wrapper around Interpreter.run().
    """
    interpreter = Interpreter(output=output, error_output=error_output)
    return interpreter.run(program, source)


def run(
    source: str,
    filename: Optional[str] = None,
    output: Optional[TextIO] = None,
    error_output: Optional[TextIO] = None,
    globals: Optional[Dict[str, Any]] = None,
    recursion_limit: int = DEFAULT_RECURSION_LIMIT,
) -> ExecutionResult:
    """
    Lex, parse and execute Choco source in one call.

        from choco import run

        result = run('''
            fn fact(n) {
                if n <= 1 { return 1 }
                return n * fact(n - 1)
            }
            puts fact(5)
        ''')
        assert result.output == ["120"]

    Args:
        source: Choco source code
        filename: Optional filename for diagnostics
        output: Stream that receives puts output as it happens
        error_output: Stream that receives diagnostics as they happen
        globals: Initial global bindings
        recursion_limit: Python recursion limit while the program runs

    Returns:
        ExecutionResult with output, final globals and diagnostics

    Raises:
        UnterminatedStringError: If a string literal is never closed
    """
    from ..lexer import Lexer
    from ..parser import parse

    lexer = Lexer(source, filename)
    tokens = lexer.tokenize()
    program = parse(tokens, filename, source)
    program.diagnostics[:0] = lexer.diagnostics.diagnostics

    interpreter = Interpreter(output=output, error_output=error_output,
                              recursion_limit=recursion_limit)
    return interpreter.run(program, source, globals)
