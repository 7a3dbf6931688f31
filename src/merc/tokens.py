"""
Token types for the merc lexer.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenType(Enum):
    """All token types recognized by the lexer."""

    # --- Brackets and punctuation ---
    LPAREN = auto()             # (
    RPAREN = auto()             # )
    LBRACE = auto()             # {
    RBRACE = auto()             # }
    LBRACKET = auto()           # [
    RBRACKET = auto()           # ]
    COMMA = auto()              # ,
    DOT = auto()                # .
    SEMICOLON = auto()          # ;

    # --- Arithmetic operators ---
    PLUS = auto()               # +
    MINUS = auto()              # -
    STAR = auto()               # *
    SLASH = auto()              # /

    # --- Comparison operators ---
    EQUAL = auto()              # =
    EQUAL_EQUAL = auto()        # ==
    BANG = auto()               # !
    BANG_EQUAL = auto()         # !=
    LESS = auto()               # <
    LESS_EQUAL = auto()         # <=
    GREATER = auto()            # >
    GREATER_EQUAL = auto()      # >=

    # --- Literals ---
    STRING = auto()             # "hello"
    NUMBER = auto()             # 42, 3.14 (value kept as decimal text)
    IDENTIFIER = auto()         # user-defined names

    # --- Keywords ---
    LET = auto()                # let
    FUN = auto()                # func / fun
    IF = auto()                 # if
    ELSE = auto()               # else
    WHILE = auto()              # while
    RETURN = auto()             # return
    TRUE = auto()               # true
    FALSE = auto()              # false
    NIL = auto()                # nil
    AND = auto()                # and
    OR = auto()                 # or

    # --- Reserved keywords (no grammar yet) ---
    CLASS = auto()              # class
    FOR = auto()                # for
    SUPER = auto()              # super
    THIS = auto()               # this

    # --- Structural ---
    NEWLINE = auto()            # end of line
    EOF = auto()                # end of input


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

    @property
    def length(self) -> int:
        return self.end.offset - self.start.offset

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class Token:
    """A single token from the lexer."""
    type: TokenType
    value: Any              # Literal text for STRING/NUMBER/IDENTIFIER
    lexeme: str             # The original source text
    span: SourceSpan        # Location in source

    @property
    def row(self) -> int:
        return self.span.start.line

    @property
    def column(self) -> int:
        return self.span.start.column

    @property
    def index(self) -> int:
        """Absolute character offset of the token start."""
        return self.span.start.offset

    def describe(self) -> str:
        """Human-readable token description for diagnostics."""
        if self.type == TokenType.EOF:
            return "end of input"
        if self.type == TokenType.NEWLINE:
            return "newline"
        if self.type == TokenType.STRING:
            return f'string "{self.value}"'
        if self.type == TokenType.NUMBER:
            return f"number {self.value}"
        if self.type == TokenType.IDENTIFIER:
            return f"identifier '{self.value}'"
        return f"'{self.lexeme}'"

    def __str__(self) -> str:
        if self.type in (TokenType.STRING, TokenType.NUMBER, TokenType.IDENTIFIER):
            kind = f"{self.type.name}({self.value!r})"
        else:
            kind = self.type.name
        return f"Token: {kind}, row: {self.row} col: {self.column}"


# Keyword mapping - maps string to token type
KEYWORDS: dict[str, TokenType] = {
    "and": TokenType.AND,
    "class": TokenType.CLASS,
    "else": TokenType.ELSE,
    "false": TokenType.FALSE,
    "func": TokenType.FUN,
    "fun": TokenType.FUN,
    "for": TokenType.FOR,
    "if": TokenType.IF,
    "nil": TokenType.NIL,
    "or": TokenType.OR,
    "return": TokenType.RETURN,
    "super": TokenType.SUPER,
    "this": TokenType.THIS,
    "true": TokenType.TRUE,
    "let": TokenType.LET,
    "while": TokenType.WHILE,
}

# Reserved words that have a token but no grammar
RESERVED_KEYWORDS: set[TokenType] = {
    TokenType.CLASS,
    TokenType.FOR,
    TokenType.SUPER,
    TokenType.THIS,
}

# Single-character tokens that never need lookahead
SINGLE_CHAR_TOKENS: dict[str, TokenType] = {
    '(': TokenType.LPAREN,
    ')': TokenType.RPAREN,
    '{': TokenType.LBRACE,
    '}': TokenType.RBRACE,
    '[': TokenType.LBRACKET,
    ']': TokenType.RBRACKET,
    ',': TokenType.COMMA,
    '.': TokenType.DOT,
    ';': TokenType.SEMICOLON,
    '+': TokenType.PLUS,
    '-': TokenType.MINUS,
    '*': TokenType.STAR,
}

# Operators that may be followed by '=' to form a two-character operator
COMPARISON_PAIRS: dict[str, tuple[TokenType, TokenType]] = {
    '=': (TokenType.EQUAL, TokenType.EQUAL_EQUAL),
    '!': (TokenType.BANG, TokenType.BANG_EQUAL),
    '<': (TokenType.LESS, TokenType.LESS_EQUAL),
    '>': (TokenType.GREATER, TokenType.GREATER_EQUAL),
}


def is_reserved_keyword(token_type: TokenType) -> bool:
    """Check if a token type is a reserved keyword without grammar."""
    return token_type in RESERVED_KEYWORDS
