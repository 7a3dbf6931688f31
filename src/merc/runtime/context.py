"""
Execution context for the merc interpreter.

Holds the single flat environment, the output sink used by print, and the
early-return signal.
"""

import sys
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional, TextIO

from .values import Value


@dataclass
class ExecutionContext:
    """
    The mutable state of one interpreter instance.

    Tracks:
    - Variable bindings (one flat mapping, no nested scopes)
    - The text sink that print writes to
    - Whether a return has been signalled, and its value
    """
    variables: Dict[str, Value] = field(default_factory=dict)
    output: TextIO = field(default_factory=lambda: sys.stdout)
    call_depth: int = 0

    # Control flow flags
    _should_return: bool = False
    _return_value: Optional[Value] = None

    def get_variable(self, name: str) -> Optional[Value]:
        """Look up a binding, or None when undefined."""
        return self.variables.get(name)

    def set_variable(self, name: str, value: Value) -> None:
        """Bind name, overwriting any previous binding."""
        self.variables[name] = value

    def replace_variables(self, variables: Dict[str, Value]) -> None:
        """Replace the entire environment."""
        self.variables = variables

    def snapshot(self) -> Dict[str, Value]:
        """Shallow copy of the environment. Values are immutable."""
        return dict(self.variables)

    @contextmanager
    def call_scope(self, bindings: Dict[str, Value]) -> Iterator[Dict[str, Value]]:
        """
        Swap in a fresh environment for a function call.

        The caller's environment is restored verbatim when the block exits,
        whether normally or by an exception. Nested calls each restore the
        environment that was active just before them.

        Usage:
            with ctx.call_scope({"a": number_val(1)}):
                result = evaluate(body)
        """
        saved = self.variables
        self.variables = bindings
        self.call_depth += 1
        try:
            yield bindings
        finally:
            self.variables = saved
            self.call_depth -= 1

    def write_line(self, text: str) -> None:
        """Write one line to the output sink."""
        self.output.write(text + "\n")

    def signal_return(self, value: Value) -> None:
        """Signal an early return from the enclosing function body."""
        self._should_return = True
        self._return_value = value

    @property
    def should_return(self) -> bool:
        """Check if early return was signalled."""
        return self._should_return

    @property
    def return_value(self) -> Optional[Value]:
        """Get the return value if early return was signalled."""
        return self._return_value

    def clear_return(self) -> None:
        """Clear the return signal (used after handling return)."""
        self._should_return = False
        self._return_value = None


def create_context(
    variables: Optional[Dict[str, Value]] = None,
    output: Optional[TextIO] = None,
) -> ExecutionContext:
    """
    Create a fresh execution context.

    Args:
        variables: Bindings to seed the environment with (copied)
        output: Sink for print; defaults to sys.stdout

    Returns:
        A new ExecutionContext
    """
    return ExecutionContext(
        variables=dict(variables) if variables else {},
        output=output if output is not None else sys.stdout,
    )
