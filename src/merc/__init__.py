"""
merc - a small expression-oriented scripting language.

This package provides:
- Lexer: Turns source text into tokens, one at a time
- Parser: Builds one AST node per top-level statement
- Interpreter: Evaluates the AST with a single flat environment
- Repl: Interactive session that keeps bindings between lines

Usage:
    from merc import tokenize, parse, execute

    tokens = tokenize('let x = 1 + 2')
    statements = parse('func sq(n) { return n * n }\\nsq(4)')

    result = execute('''
        let total = 0
        let i = 0
        while i < 5 {
            let total = total + i
            let i = i + 1
        }
        total
    ''')
    print(result.value)        # 10
"""

import logging

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .ast import (
    Op,
    Atom,
    Cons,
    BinaryExpr,
    IfExpr,
    Block,
    FunDef,
    FunCall,
    S,
)

from .parser import (
    Parser,
    parse,
)

from .errors import (
    MercError,
    DiagnosticError,
    LexerError,
    ParserError,
    EvalError,
    Diagnostic,
    ErrorSeverity,
)

from .runtime import (
    Interpreter,
    ExecutionResult,
    execute,
    Value,
    ValueType,
    ExecutionContext,
)

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Tokens
    'Token',
    'TokenType',
    'SourceLocation',
    'SourceSpan',
    'KEYWORDS',
    # Lexer
    'Lexer',
    'tokenize',
    # AST
    'Op',
    'Atom',
    'Cons',
    'BinaryExpr',
    'IfExpr',
    'Block',
    'FunDef',
    'FunCall',
    'S',
    # Parser
    'Parser',
    'parse',
    # Errors
    'MercError',
    'DiagnosticError',
    'LexerError',
    'ParserError',
    'EvalError',
    'Diagnostic',
    'ErrorSeverity',
    # Runtime
    'Interpreter',
    'ExecutionResult',
    'execute',
    'Value',
    'ValueType',
    'ExecutionContext',
]
