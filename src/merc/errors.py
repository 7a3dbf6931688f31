"""
merc exceptions and diagnostics.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors

Evaluation errors carry a message only and have no code.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List
from .tokens import SourceSpan


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"


@dataclass
class Diagnostic:
    """A single diagnostic message (error, warning, etc.)."""
    code: str                       # E001, E101, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity
    span: SourceSpan
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    @property
    def help(self) -> Optional[str]:
        """First hint, if any."""
        return self.hints[0] if self.hints else None

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        # Header: location: severity[code]: message
        loc = f"{self.span.start}"
        parts.append(f"{loc}: {self.severity.value}[{self.code}]: {self.message}")

        # Source line with caret
        if show_source and self.source_line is not None:
            parts.append("  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            end_col = self.span.end.column if self.span.start.line == self.span.end.line else len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)


class MercError(Exception):
    """Base exception for all merc errors."""
    pass


class DiagnosticError(MercError):
    """An error that carries a source-located diagnostic."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    @property
    def message(self) -> str:
        return self.diagnostic.message

    @property
    def span(self) -> SourceSpan:
        return self.diagnostic.span

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexerError(DiagnosticError):
    """Error during lexical analysis (E0xx)."""
    pass


class ParserError(DiagnosticError):
    """Error during parsing (E1xx)."""
    pass


class EvalError(MercError):
    """Error during evaluation. Message only, no source span."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# --- Lexer error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E001: Unexpected character."""
    diag = Diagnostic(
        code="E001",
        message=f"unexpected character '{char}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["please use valid characters: letters, digits, '_', quotes, operators and brackets"],
    )
    return LexerError(diag)


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexerError:
    """E002: Unterminated string literal."""
    diag = Diagnostic(
        code="E002",
        message="unterminated string",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["this string is not terminated; close it with '\"'"],
    )
    return LexerError(diag)


# --- Parser error codes ---

def error_unexpected_token(expected: str, found: str, span: SourceSpan,
                           source_line: str = None, hints: List[str] = None) -> ParserError:
    """E101: Unexpected token."""
    diag = Diagnostic(
        code="E101",
        message=f"expected {expected}, found {found}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=hints or [],
    )
    return ParserError(diag)


def error_unexpected_eof(expected: str, span: SourceSpan, source_line: str = None) -> ParserError:
    """E102: Unexpected end of input."""
    diag = Diagnostic(
        code="E102",
        message=f"unexpected end of input, expected {expected}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_expected_expression(found: str, span: SourceSpan, source_line: str = None) -> ParserError:
    """E103: Expected an expression."""
    diag = Diagnostic(
        code="E103",
        message=f"expected expression, found {found}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=[f"{found} cannot start an expression"],
    )
    return ParserError(diag)


def error_unexpected_statement(found: str, span: SourceSpan, source_line: str = None,
                               hint: str = None) -> ParserError:
    """E104: Token cannot start a statement."""
    diag = Diagnostic(
        code="E104",
        message=f"unexpected {found} at start of statement",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=[hint or f"a statement cannot begin with {found}"],
    )
    return ParserError(diag)
