"""
Abstract Syntax Tree (AST) node definitions for merc.

The tree is a closed set of S-expression-like nodes. Operator and keyword
forms share the Cons node, and the head token tells them apart. Every node
renders as an S-expression with str(), e.g. "(+ 1 (* 2 3))".
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Union
from .tokens import Token, TokenType


class Op(Enum):
    """Arithmetic operators for the BinaryExpr node."""
    PLUS = "+"
    MINUS = "-"
    STAR = "*"
    SLASH = "/"


# =============================================================================
# Nodes
# =============================================================================

@dataclass
class Atom:
    """A literal or identifier reference."""
    token: Token

    @property
    def is_identifier(self) -> bool:
        return self.token.type == TokenType.IDENTIFIER

    @property
    def name(self) -> Optional[str]:
        """Identifier name, or None for literals."""
        return self.token.value if self.is_identifier else None

    def __str__(self) -> str:
        if self.token.type == TokenType.STRING:
            return f'"{self.token.value}"'
        return self.token.lexeme


@dataclass
class Cons:
    """A keyword- or operator-headed form: let, return, while, operators."""
    token: Token
    children: List["S"] = field(default_factory=list)

    @property
    def head(self) -> TokenType:
        return self.token.type

    def __str__(self) -> str:
        parts = [self.token.lexeme] + [str(child) for child in self.children]
        return f"({' '.join(parts)})"


@dataclass
class BinaryExpr:
    """An arithmetic binary node built directly rather than by the parser."""
    op: Op
    lhs: "S"
    rhs: "S"

    def __str__(self) -> str:
        return f"({self.op.value} {self.lhs} {self.rhs})"


@dataclass
class IfExpr:
    """if/else; else_branch is None when absent or empty."""
    cond: "S"
    then_branch: "S"
    else_branch: Optional["S"] = None

    def __str__(self) -> str:
        if self.else_branch is None:
            return f"(if {self.cond} {self.then_branch})"
        return f"(if {self.cond} {self.then_branch} {self.else_branch})"


@dataclass
class Block:
    """A {...} body. Evaluates to its last statement's value."""
    statements: List["S"] = field(default_factory=list)

    def __str__(self) -> str:
        return "{" + " ".join(str(stmt) for stmt in self.statements) + "}"


@dataclass
class FunDef:
    """A function definition. args are validated as identifiers when evaluated."""
    name: "S"
    args: List["S"]
    body: "S"

    def __str__(self) -> str:
        params = " ".join(str(arg) for arg in self.args)
        return f"(func {self.name} ({params}) {self.body})"


@dataclass
class FunCall:
    """A call of a named function."""
    name: "S"
    args: List["S"] = field(default_factory=list)

    def __str__(self) -> str:
        parts = [str(self.name)] + [str(arg) for arg in self.args]
        return f"(call {' '.join(parts)})"


S = Union[Atom, Cons, BinaryExpr, IfExpr, Block, FunDef, FunCall]


def identifier_name(node: S) -> Optional[str]:
    """Return the name if node is an identifier Atom, else None."""
    if isinstance(node, Atom) and node.is_identifier:
        return node.token.value
    return None
