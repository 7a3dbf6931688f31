"""
Tree-walking interpreter for merc.

Evaluates AST nodes to runtime Values against one flat environment.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, TextIO

from .values import (
    Value, ValueType,
    number_val, string_val, bool_val, nil_val, function_val, values_equal,
)
from .context import ExecutionContext, create_context
from .builtins import call_builtin, is_builtin

from ..ast import (
    S, Atom, Cons, BinaryExpr, IfExpr, Block, FunDef, FunCall, Op,
    identifier_name,
)
from ..errors import DiagnosticError, EvalError, MercError
from ..parser import Parser
from ..tokens import Token, TokenType

logger = logging.getLogger(__name__)


_TOKEN_BY_OP = {
    Op.PLUS: TokenType.PLUS,
    Op.MINUS: TokenType.MINUS,
    Op.STAR: TokenType.STAR,
    Op.SLASH: TokenType.SLASH,
}


@dataclass
class ExecutionResult:
    """Result of running a sequence of statements."""
    success: bool
    value: Value = field(default_factory=nil_val)
    errors: List[MercError] = field(default_factory=list)
    variables: Dict[str, Value] = field(default_factory=dict)

    @property
    def error_messages(self) -> List[str]:
        return [error_message(e) for e in self.errors]


def error_message(error: MercError) -> str:
    """The one-line message of any merc error."""
    if isinstance(error, (DiagnosticError, EvalError)):
        return error.message
    return str(error)


class Interpreter:
    """
    Tree-walking interpreter.

    Evaluates AST nodes by dispatching on the node class. One interpreter
    owns one environment; a session driver can read it with snapshot() and
    seed it with replace_variables().
    """

    def __init__(self, output: Optional[TextIO] = None,
                 variables: Optional[Dict[str, Value]] = None):
        """
        Initialize the interpreter.

        Args:
            output: Sink for the print built-in (default sys.stdout)
            variables: Bindings to start from (copied)
        """
        self.ctx: ExecutionContext = create_context(variables, output)

    @property
    def variables(self) -> Dict[str, Value]:
        """The live environment."""
        return self.ctx.variables

    def snapshot(self) -> Dict[str, Value]:
        return self.ctx.snapshot()

    def replace_variables(self, variables: Dict[str, Value]) -> None:
        """Replace the environment wholesale (copied)."""
        self.ctx.replace_variables(dict(variables))

    # =========================================================================
    # Driving loop
    # =========================================================================

    def run(self, parser: Parser,
            report: Optional[Callable[[MercError], None]] = None) -> ExecutionResult:
        """
        Pull statements from the parser one at a time and evaluate them.

        An error aborts only the statement it occurred in: it is recorded,
        passed to `report`, and the loop moves on. After a lex or parse
        error the parser skips to the next line.

        Returns:
            ExecutionResult holding the last successful statement's value
        """
        errors: List[MercError] = []
        last = nil_val()
        needs_sync = False

        def record(error: MercError) -> None:
            errors.append(error)
            if report is not None:
                report(error)

        while True:
            try:
                if needs_sync:
                    needs_sync = False
                    parser.synchronize()
                node = parser.parse_statement()
            except DiagnosticError as e:
                logger.debug("Statement rejected: %s", e.message)
                record(e)
                needs_sync = True
                continue
            except RecursionError:
                record(EvalError("Maximum recursion depth exceeded"))
                needs_sync = True
                continue

            if node is None:
                break

            try:
                last = self.evaluate(node)
            except EvalError as e:
                logger.debug("Evaluation of %s failed: %s", node, e.message)
                record(e)

        return ExecutionResult(
            success=not errors,
            value=last,
            errors=errors,
            variables=self.snapshot(),
        )

    # =========================================================================
    # Evaluation
    # =========================================================================

    def evaluate(self, node: S) -> Value:
        """
        Evaluate one top-level statement.

        A top-level `return` simply yields its value.

        Raises:
            EvalError: on any runtime error, including host stack exhaustion
        """
        try:
            result = self._evaluate(node)
            if self.ctx.should_return:
                result = self.ctx.return_value
            return result
        except RecursionError:
            raise EvalError("Maximum recursion depth exceeded") from None
        finally:
            self.ctx.clear_return()

    def _evaluate(self, node: S) -> Value:
        """Evaluate a node to produce a Value."""
        if isinstance(node, Atom):
            return self._eval_atom(node.token)
        elif isinstance(node, Cons):
            return self._eval_cons(node)
        elif isinstance(node, BinaryExpr):
            return self._eval_binary_expr(node)
        elif isinstance(node, IfExpr):
            return self._eval_if(node)
        elif isinstance(node, Block):
            return self._eval_block(node)
        elif isinstance(node, FunDef):
            return self._eval_function_def(node)
        elif isinstance(node, FunCall):
            return self._eval_function_call(node)
        else:
            raise EvalError(f"Unknown node type: {type(node).__name__}")

    def _eval_atom(self, token: Token) -> Value:
        """Evaluate a literal or look up an identifier."""
        if token.type == TokenType.NUMBER:
            return number_val(float(token.value))
        elif token.type == TokenType.STRING:
            return string_val(token.value)
        elif token.type == TokenType.TRUE:
            return bool_val(True)
        elif token.type == TokenType.FALSE:
            return bool_val(False)
        elif token.type == TokenType.NIL:
            return nil_val()
        elif token.type == TokenType.IDENTIFIER:
            value = self.ctx.get_variable(token.value)
            if value is None:
                raise EvalError(f"Undefined variable: {token.value}")
            return value
        else:
            raise EvalError(f"Invalid atomic expression: {token.lexeme}")

    def _eval_cons(self, node: Cons) -> Value:
        """Evaluate a keyword- or operator-headed form."""
        head = node.head
        args = node.children

        if head == TokenType.LET:
            return self._eval_let(args)
        elif head == TokenType.RETURN:
            if len(args) != 1:
                raise EvalError("Invalid return expression")
            value = self._evaluate(args[0])
            self.ctx.signal_return(value)
            return value
        elif head == TokenType.WHILE:
            return self._eval_while(args)
        elif head in (TokenType.AND, TokenType.OR):
            return self._eval_logical(head, args)
        elif head == TokenType.LBRACKET:
            return self._eval_index(args)
        elif head == TokenType.BANG:
            raise EvalError("Unsupported postfix operator '!'")
        elif head in (TokenType.PLUS, TokenType.MINUS) and len(args) == 1:
            return self._eval_unary(head, self._evaluate(args[0]))

        if len(args) != 2:
            raise EvalError("Binary operation requires exactly two operands")
        left = self._evaluate(args[0])
        right = self._evaluate(args[1])
        return self._apply_binary(head, left, right)

    def _eval_let(self, args: List[S]) -> Value:
        if len(args) != 2:
            raise EvalError("Invalid let expression")
        name = identifier_name(args[0])
        if name is None:
            raise EvalError("Expected identifier in let binding")
        value = self._evaluate(args[1])
        self.ctx.set_variable(name, value)
        logger.debug("Bound %s = %r", name, value)
        return value

    def _eval_while(self, args: List[S]) -> Value:
        """Loop while the condition is exactly true.

        Any other condition value, non-booleans included, ends the loop
        without an error.
        """
        if len(args) != 2:
            raise EvalError("Invalid while expression")
        condition, body = args
        while True:
            cond = self._evaluate(condition)
            if not (cond.is_boolean and cond.data is True):
                break
            self._evaluate(body)
            if self.ctx.should_return:
                return self.ctx.return_value
        return nil_val()

    def _eval_logical(self, head: TokenType, args: List[S]) -> Value:
        """Short-circuiting and/or over booleans."""
        name = "and" if head == TokenType.AND else "or"
        if len(args) != 2:
            raise EvalError(f"Logical {name} requires exactly two operands")
        left = self._evaluate(args[0])
        if not left.is_boolean:
            raise EvalError(f"Invalid operands for logical {name}")
        if head == TokenType.AND and not left.data:
            return left
        if head == TokenType.OR and left.data:
            return left
        right = self._evaluate(args[1])
        if not right.is_boolean:
            raise EvalError(f"Invalid operands for logical {name}")
        return right

    def _eval_index(self, args: List[S]) -> Value:
        """string[index] yields a one-character string."""
        if len(args) != 2:
            raise EvalError("Invalid index expression")
        target = self._evaluate(args[0])
        index = self._evaluate(args[1])
        if not target.is_string:
            raise EvalError(f"Cannot index into {target.type.value}")
        if not index.is_number or not index.data.is_integer():
            raise EvalError("String index must be an integer")
        i = int(index.data)
        if not 0 <= i < len(target.data):
            raise EvalError(f"String index out of range: {i}")
        return string_val(target.data[i])

    def _eval_unary(self, head: TokenType, operand: Value) -> Value:
        if not operand.is_number:
            name = "negation" if head == TokenType.MINUS else "unary plus"
            raise EvalError(f"Invalid operand for {name}")
        if head == TokenType.MINUS:
            return number_val(-operand.data)
        return operand

    def _eval_binary_expr(self, node: BinaryExpr) -> Value:
        left = self._evaluate(node.lhs)
        right = self._evaluate(node.rhs)
        return self._apply_binary(_TOKEN_BY_OP[node.op], left, right)

    def _apply_binary(self, op: TokenType, left: Value, right: Value) -> Value:
        """Apply a binary operator to two evaluated operands."""
        if op == TokenType.PLUS:
            if left.is_number and right.is_number:
                return number_val(left.data + right.data)
            if left.is_string and right.is_string:
                return string_val(left.data + right.data)
            raise EvalError("Invalid operands for addition")
        elif op == TokenType.MINUS:
            self._require_numbers(left, right, "subtraction")
            return number_val(left.data - right.data)
        elif op == TokenType.STAR:
            self._require_numbers(left, right, "multiplication")
            return number_val(left.data * right.data)
        elif op == TokenType.SLASH:
            self._require_numbers(left, right, "division")
            if right.data == 0.0:
                raise EvalError("Division by zero")
            return number_val(left.data / right.data)

        # Comparison operators
        elif op == TokenType.EQUAL_EQUAL:
            return bool_val(values_equal(left, right))
        elif op == TokenType.BANG_EQUAL:
            return bool_val(not values_equal(left, right))
        elif op == TokenType.LESS:
            self._require_numbers(left, right, "less than comparison")
            return bool_val(left.data < right.data)
        elif op == TokenType.LESS_EQUAL:
            self._require_numbers(left, right, "less than or equal comparison")
            return bool_val(left.data <= right.data)
        elif op == TokenType.GREATER:
            self._require_numbers(left, right, "greater than comparison")
            return bool_val(left.data > right.data)
        elif op == TokenType.GREATER_EQUAL:
            self._require_numbers(left, right, "greater than or equal comparison")
            return bool_val(left.data >= right.data)

        else:
            raise EvalError(f"Unknown binary operator: {op.name}")

    @staticmethod
    def _require_numbers(left: Value, right: Value, operation: str) -> None:
        if not (left.is_number and right.is_number):
            raise EvalError(f"Invalid operands for {operation}")

    def _eval_if(self, node: IfExpr) -> Value:
        condition = self._evaluate(node.cond)
        if not condition.is_boolean:
            raise EvalError("If condition must be a boolean")
        if condition.data:
            return self._evaluate(node.then_branch)
        elif node.else_branch is not None:
            return self._evaluate(node.else_branch)
        return nil_val()

    def _eval_block(self, block: Block) -> Value:
        """Evaluate statements in order. Blocks do not open a new scope."""
        result = nil_val()
        for stmt in block.statements:
            result = self._evaluate(stmt)
            if self.ctx.should_return:
                return self.ctx.return_value
        return result

    def _eval_function_def(self, node: FunDef) -> Value:
        name = identifier_name(node.name)
        if name is None:
            raise EvalError("Function name must be an identifier")

        params = []
        for arg in node.args:
            param = identifier_name(arg)
            if param is None:
                raise EvalError("Function parameters must be identifiers")
            params.append(param)

        func = function_val(name, params, node.body)
        self.ctx.set_variable(name, func)
        logger.debug("Defined function %s(%s)", name, ", ".join(params))
        return func

    def _eval_function_call(self, node: FunCall) -> Value:
        """
        Call a user function or the print built-in.

        Arguments are evaluated in the caller's environment. The body then
        runs in a fresh environment holding only the parameters, and the
        caller's environment is restored afterwards even on error.
        """
        name = identifier_name(node.name)
        if name is None:
            raise EvalError("Function name must be an identifier")

        callee = self.ctx.get_variable(name)
        if callee is None or callee.type != ValueType.FUNCTION:
            if is_builtin(name):
                args = [self._evaluate(arg) for arg in node.args]
                return call_builtin(name, self.ctx, args)
            raise EvalError(f"'{name}' is not a function")

        func = callee.data
        if len(node.args) != len(func.params):
            raise EvalError(
                f"Wrong number of arguments: expected {len(func.params)}, got {len(node.args)}"
            )

        args = [self._evaluate(arg) for arg in node.args]
        bindings = dict(zip(func.params, args))

        logger.debug("Calling %s at depth %d", name, self.ctx.call_depth + 1)
        with self.ctx.call_scope(bindings):
            result = self._evaluate(func.body)
            if self.ctx.should_return:
                result = self.ctx.return_value
                self.ctx.clear_return()
        return result


def execute(
    source: str,
    variables: Optional[Dict[str, Value]] = None,
    output: Optional[TextIO] = None,
    filename: Optional[str] = None,
    report: Optional[Callable[[MercError], None]] = None,
) -> ExecutionResult:
    """
    High-level API to run merc source in one call.

        from merc import execute

        result = execute('''
            func add(a, b) { return a + b }
            add(2, 3)
        ''')
        if result.success:
            print(result.value)        # 5
        else:
            print(result.error_messages)

    Args:
        source: merc source code
        variables: Bindings carried over from an earlier run
        output: Sink for print (default sys.stdout)
        filename: Optional filename for diagnostics
        report: Called with each error as it happens

    Returns:
        ExecutionResult with the last value, errors and final environment
    """
    interpreter = Interpreter(output=output, variables=variables)
    return interpreter.run(Parser(source, filename), report=report)
