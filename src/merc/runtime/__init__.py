"""
merc runtime - tree-walking interpreter.

This module provides:
- Interpreter: Evaluates AST nodes against one flat environment
- Value: Runtime value wrappers with a type tag
- ExecutionContext: Environment, output sink and return signal
- BuiltinRegistry: Built-in functions (print)
"""

from .values import (
    Value,
    ValueType,
    FunctionData,
    NIL,
    number_val,
    string_val,
    bool_val,
    nil_val,
    function_val,
    display,
    format_number,
    values_equal,
)

from .context import (
    ExecutionContext,
    create_context,
)

from .builtins import (
    BuiltinFunction,
    BuiltinRegistry,
    get_builtin_registry,
    is_builtin,
    call_builtin,
)

from .interpreter import (
    Interpreter,
    ExecutionResult,
    error_message,
    execute,
)

__all__ = [
    # Values
    'Value',
    'ValueType',
    'FunctionData',
    'NIL',
    'number_val',
    'string_val',
    'bool_val',
    'nil_val',
    'function_val',
    'display',
    'format_number',
    'values_equal',
    # Context
    'ExecutionContext',
    'create_context',
    # Builtins
    'BuiltinFunction',
    'BuiltinRegistry',
    'get_builtin_registry',
    'is_builtin',
    'call_builtin',
    # Interpreter
    'Interpreter',
    'ExecutionResult',
    'error_message',
    'execute',
]
