"""
Statement-dispatch parser with a Pratt expression parser for merc.

Pulls tokens lazily from the lexer with one token of lookahead and builds
one AST node per top-level statement on demand.
"""

from typing import Iterator, List, Optional, Union
from .tokens import Token, TokenType, is_reserved_keyword
from .lexer import Lexer
from .ast import S, Atom, Cons, IfExpr, Block, FunDef, FunCall
from .errors import (
    ParserError,
    error_unexpected_token,
    error_unexpected_eof,
    error_expected_expression,
    error_unexpected_statement,
)


class Parser:
    """
    Statement parser over a token stream.

    Usage:
        parser = Parser(source)
        while (statement := parser.parse_statement()) is not None:
            ...

    Expressions use precedence climbing with (left, right) binding powers:
        Lowest:  + -            (1, 2)
                 * /            (3, 4)
                 == != < <= > >=  (5, 5)
                 or             (6, 7)
                 and            (7, 8)
                 postfix ! [    left 6

    A prefix + or - parses its operand at binding power 1, so it applies to
    the whole following sum: -1 + 2 is (- (+ 1 2)). Comparisons group to
    the right: a == b == c is (== a (== b c)).
    """

    PREFIX_BINDING_POWER = 1

    INFIX_BINDING_POWER = {
        TokenType.PLUS: (1, 2),
        TokenType.MINUS: (1, 2),
        TokenType.STAR: (3, 4),
        TokenType.SLASH: (3, 4),
        TokenType.EQUAL_EQUAL: (5, 5),
        TokenType.BANG_EQUAL: (5, 5),
        TokenType.LESS: (5, 5),
        TokenType.LESS_EQUAL: (5, 5),
        TokenType.GREATER: (5, 5),
        TokenType.GREATER_EQUAL: (5, 5),
        TokenType.OR: (6, 7),
        TokenType.AND: (7, 8),
    }

    POSTFIX_BINDING_POWER = {
        TokenType.BANG: 6,
        TokenType.LBRACKET: 6,
    }

    LITERALS = {
        TokenType.NUMBER,
        TokenType.STRING,
        TokenType.TRUE,
        TokenType.FALSE,
        TokenType.NIL,
    }

    EXPRESSION_START = LITERALS | {
        TokenType.IDENTIFIER,
        TokenType.LPAREN,
        TokenType.PLUS,
        TokenType.MINUS,
    }

    def __init__(self, source: Union[str, Lexer], filename: Optional[str] = None):
        if isinstance(source, Lexer):
            self.lexer = source
        else:
            self.lexer = Lexer(source, filename)
        self._lookahead: Optional[Token] = None

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        """Get current token, pulling it from the lexer if needed."""
        if self._lookahead is None:
            token = self.lexer.next_token()
            self._lookahead = token if token is not None else self.lexer.eof_token()
        return self._lookahead

    def _is_at_end(self) -> bool:
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        """Check if current token is of given type."""
        return self._current().type == token_type

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._current()
        if token.type != TokenType.EOF:
            self._lookahead = None
        return token

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        """Consume token if it matches any of the given types."""
        if self._current().type in token_types:
            return self._advance()
        return None

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        raise self._error(expected)

    def _skip_newlines(self) -> None:
        while self._check(TokenType.NEWLINE):
            self._advance()

    def _skip_separators(self) -> None:
        """Skip NEWLINE and ';' tokens between statements."""
        while self._current().type in (TokenType.NEWLINE, TokenType.SEMICOLON):
            self._advance()

    def _source_line(self, token: Token) -> Optional[str]:
        return self.lexer.get_source_line(token.row)

    def _error(self, expected: str, hints: List[str] = None) -> ParserError:
        """Build an error for the current token."""
        token = self._current()
        if token.type == TokenType.EOF:
            return error_unexpected_eof(expected, token.span, self._source_line(token))
        return error_unexpected_token(
            expected, token.describe(), token.span, self._source_line(token), hints
        )

    def synchronize(self) -> None:
        """Discard tokens up to the next newline so parsing can resume."""
        while self._current().type not in (TokenType.NEWLINE, TokenType.EOF):
            self._advance()

    # =========================================================================
    # Statement Parsing
    # =========================================================================

    def parse_statement(self) -> Optional[S]:
        """Parse one top-level statement, or return None at end of input.

        Raises:
            ParserError: on a structural mismatch
            LexerError: when the token stream itself is malformed
        """
        self._skip_separators()
        if self._is_at_end():
            return None
        return self._parse_statement()

    def __iter__(self) -> Iterator[S]:
        while True:
            statement = self.parse_statement()
            if statement is None:
                return
            yield statement

    def _parse_statement(self) -> S:
        token = self._current()

        if token.type == TokenType.LET:
            return self._parse_let()
        if token.type == TokenType.LBRACE:
            return self._parse_block()
        if token.type == TokenType.FUN:
            return self._parse_function_def()
        if token.type == TokenType.IF:
            return self._parse_if()
        if token.type == TokenType.RETURN:
            return self._parse_return()
        if token.type == TokenType.WHILE:
            return self._parse_while()
        if token.type in self.EXPRESSION_START:
            return self._parse_expression(0)

        if token.type == TokenType.EOF:
            raise error_unexpected_eof("statement", token.span)

        hint = None
        if token.type == TokenType.EQUAL:
            hint = "use 'let NAME = value' to bind a variable"
        elif token.type == TokenType.RBRACE:
            hint = "this '}' has no matching '{'"
        elif is_reserved_keyword(token.type):
            hint = f"'{token.lexeme}' is a reserved word and cannot be used yet"
        raise error_unexpected_statement(
            token.describe(), token.span, self._source_line(token), hint
        )

    def _parse_let(self) -> Cons:
        """let NAME = <block | expression>"""
        let_token = self._advance()
        if not self._check(TokenType.IDENTIFIER):
            raise self._error("identifier after 'let'")
        name = Atom(self._advance())
        if not self._check(TokenType.EQUAL):
            raise self._error(f"'=' after 'let {name.token.value}'")
        self._advance()

        if self._check(TokenType.LBRACE):
            value = self._parse_block()
        else:
            value = self._parse_expression(0)
        return Cons(let_token, [name, value])

    def _parse_function_def(self) -> FunDef:
        """func NAME(params) { body }"""
        self._advance()  # consume 'func'
        if not self._check(TokenType.IDENTIFIER):
            raise self._error("function name after 'func'")
        name = Atom(self._advance())
        args = self._parse_arguments()
        if not self._check(TokenType.LBRACE):
            raise self._error(f"'{{' to start the body of '{name.token.value}'")
        body = self._parse_block()
        return FunDef(name=name, args=args, body=body)

    def _parse_if(self) -> IfExpr:
        """if cond { then } [else { else } | else if ...]"""
        self._advance()  # consume 'if'
        cond = self._parse_expression(0)
        if not self._check(TokenType.LBRACE):
            raise self._error("'{' after if condition")
        then_branch = self._parse_block()

        else_branch = None
        self._skip_newlines()
        if self._match(TokenType.ELSE):
            if self._check(TokenType.IF):
                else_branch = self._parse_if()
            else:
                if not self._check(TokenType.LBRACE):
                    raise self._error("'{' or 'if' after 'else'")
                block = self._parse_block()
                # else {} is the same as no else at all
                if block.statements:
                    else_branch = block

        return IfExpr(cond=cond, then_branch=then_branch, else_branch=else_branch)

    def _parse_return(self) -> Cons:
        return_token = self._advance()
        value = self._parse_expression(0)
        return Cons(return_token, [value])

    def _parse_while(self) -> Cons:
        while_token = self._advance()
        cond = self._parse_expression(0)
        if not self._check(TokenType.LBRACE):
            raise self._error("'{' after while condition")
        body = self._parse_block()
        return Cons(while_token, [cond, body])

    def _parse_block(self) -> Block:
        """Parse { statements }. End of input closes the block implicitly."""
        self._consume(TokenType.LBRACE, "'{'")
        statements = []

        while True:
            self._skip_separators()
            if self._match(TokenType.RBRACE):
                break
            if self._is_at_end():
                break
            statements.append(self._parse_statement())

        return Block(statements)

    def _parse_arguments(self) -> List[S]:
        """Parse ( expr, expr, ... )."""
        self._consume(TokenType.LPAREN, "'('")
        args = []
        if self._match(TokenType.RPAREN):
            return args

        while True:
            args.append(self._parse_expression(0))
            if self._match(TokenType.COMMA):
                continue
            if self._match(TokenType.RPAREN):
                break
            raise self._error("',' or ')'")
        return args

    # =========================================================================
    # Expression Parsing (Pratt)
    # =========================================================================

    def _parse_expression(self, min_bp: int) -> S:
        """Parse an expression whose operators bind at least min_bp."""
        token = self._current()

        if token.type == TokenType.NEWLINE:
            self._advance()
            return self._parse_expression(0)

        if token.type in self.LITERALS:
            lhs = Atom(self._advance())
        elif token.type == TokenType.IDENTIFIER:
            name = Atom(self._advance())
            if self._check(TokenType.LPAREN):
                lhs = FunCall(name=name, args=self._parse_arguments())
            else:
                lhs = name
        elif token.type == TokenType.LPAREN:
            self._advance()
            lhs = self._parse_expression(0)
            self._consume(TokenType.RPAREN, "')' to close group")
        elif token.type in (TokenType.PLUS, TokenType.MINUS):
            op = self._advance()
            operand = self._parse_expression(self.PREFIX_BINDING_POWER)
            lhs = Cons(op, [operand])
        elif token.type == TokenType.EOF:
            raise error_unexpected_eof("expression", token.span)
        else:
            raise error_expected_expression(
                token.describe(), token.span, self._source_line(token)
            )

        while True:
            op = self._current()

            left_bp = self.POSTFIX_BINDING_POWER.get(op.type)
            if left_bp is not None:
                if left_bp < min_bp:
                    break
                self._advance()
                if op.type == TokenType.LBRACKET:
                    index = self._parse_expression(0)
                    self._consume(TokenType.RBRACKET, "']'")
                    lhs = Cons(op, [lhs, index])
                else:
                    lhs = Cons(op, [lhs])
                continue

            binding = self.INFIX_BINDING_POWER.get(op.type)
            if binding is None:
                break
            left_bp, right_bp = binding
            if left_bp < min_bp:
                break
            self._advance()
            rhs = self._parse_expression(right_bp)
            lhs = Cons(op, [lhs, rhs])

        return lhs


def parse(source: str, filename: Optional[str] = None) -> List[S]:
    """
    Convenience function to parse a whole program.

    Args:
        source: The source code
        filename: Optional filename for error messages

    Returns:
        One AST node per top-level statement

    Raises:
        LexerError, ParserError: on the first malformed statement
    """
    parser = Parser(source, filename)
    return list(parser)
