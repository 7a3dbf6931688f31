"""
Built-in function registry for the merc interpreter.

Built-ins are consulted only when a called name is not bound to a
user-defined function, so a user function named `print` wins.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .context import ExecutionContext
from .values import Value, display, nil_val
from ..errors import EvalError


@dataclass
class BuiltinFunction:
    """
    A built-in function.

    The implementation receives the execution context and the already
    evaluated arguments. arity is None for variadic built-ins.
    """
    name: str
    implementation: Callable[[ExecutionContext, List[Value]], Value]
    arity: Optional[int] = None
    doc: str = ""


class BuiltinRegistry:
    """Registry of built-in functions, looked up by name."""

    def __init__(self):
        self._functions: Dict[str, BuiltinFunction] = {}
        self._register_all()

    def get_function(self, name: str) -> Optional[BuiltinFunction]:
        """Look up a function by name."""
        return self._functions.get(name)

    def register(self, func: BuiltinFunction) -> None:
        """Register a function."""
        self._functions[func.name] = func

    def names(self) -> List[str]:
        return sorted(self._functions)

    def _register_all(self) -> None:
        """Register all built-in functions."""
        self._register_io_functions()

    # --- I/O Functions ---

    def _register_io_functions(self) -> None:

        def _print(ctx: ExecutionContext, args: List[Value]) -> Value:
            ctx.write_line("".join(display(arg) for arg in args))
            return nil_val()

        self.register(BuiltinFunction(
            "print", _print,
            doc="Write the display forms of all arguments, unseparated, as one line",
        ))


_registry: Optional[BuiltinRegistry] = None


def get_builtin_registry() -> BuiltinRegistry:
    """Get the global builtin registry (lazily created)."""
    global _registry
    if _registry is None:
        _registry = BuiltinRegistry()
    return _registry


def is_builtin(name: str) -> bool:
    return get_builtin_registry().get_function(name) is not None


def call_builtin(name: str, ctx: ExecutionContext, args: List[Value]) -> Value:
    """
    Call a built-in function by name.

    Raises:
        EvalError: if no such built-in exists or the argument count is wrong
    """
    func = get_builtin_registry().get_function(name)
    if func is None:
        raise EvalError(f"'{name}' is not a function")
    if func.arity is not None and func.arity != len(args):
        raise EvalError(
            f"Wrong number of arguments: expected {func.arity}, got {len(args)}"
        )
    return func.implementation(ctx, args)
