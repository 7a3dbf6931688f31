"""
Lexer for merc.

Converts source text into a lazy stream of tokens for the parser.
Supports:
- Line comments (// to end of line)
- Significant newlines (NEWLINE tokens; \\n, \\r\\n and \\r)
- String literals (double quotes, may span lines, no escapes)
- Decimal number literals with at most one decimal point
- Identifiers and the fixed keyword table
- Two-character comparison operators, allowing spaces between the
  characters ("< =" is LESS_EQUAL)
"""

from typing import List, Optional, Iterator
from .tokens import (
    Token, TokenType, SourceLocation, SourceSpan,
    KEYWORDS, SINGLE_CHAR_TOKENS, COMPARISON_PAIRS,
)
from .errors import (
    LexerError,
    error_unexpected_character,
    error_unterminated_string,
)

DIGITS = "0123456789"


class Lexer:
    """
    Pull-based tokenizer.

    Tokens are produced one at a time by next_token(), which returns None once
    the input is exhausted. The lexer is forward-only and cannot be rewound.

    Usage:
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()       # list ending with an EOF token

    Or for streaming:
        for token in Lexer(source_code):
            process(token)
    """

    def __init__(self, source: str, filename: Optional[str] = None):
        self.source = source
        self.filename = filename
        self.pos = 0            # Current position in source
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)
        self._lines: Optional[List[str]] = None  # Cached line list

    @property
    def lines(self) -> List[str]:
        """Lazy-load line list for error reporting."""
        if self._lines is None:
            self._lines = self.source.splitlines()
        return self._lines

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Get a specific line of source (1-indexed)."""
        if 1 <= line_num <= len(self.lines):
            return self.lines[line_num - 1]
        return None

    def location(self) -> SourceLocation:
        """Get current source location."""
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        """Create a span from start to current position."""
        return SourceSpan(start, self.location())

    def _peek(self, offset: int = 0) -> str:
        """Look at character at current position + offset without consuming."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return '\0'
        return self.source[idx]

    def _advance(self) -> str:
        """Consume and return current character."""
        if self.pos >= len(self.source):
            return '\0'
        ch = self.source[self.pos]
        self.pos += 1
        # \r\n counts as one line break, taken on the \n
        if ch == '\n' or (ch == '\r' and self._peek() != '\n'):
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _is_at_end(self) -> bool:
        """Check if we've reached end of source."""
        return self.pos >= len(self.source)

    def _skip_spaces(self) -> None:
        """Skip horizontal whitespace."""
        while self._peek() in ' \t':
            self._advance()

    def _skip_comment(self) -> None:
        """Skip a line comment, leaving the terminating newline in place."""
        while not self._is_at_end() and self._peek() not in '\r\n':
            self._advance()

    def _make_token(self, token_type: TokenType, value, start: SourceLocation,
                    lexeme: Optional[str] = None,
                    end: Optional[SourceLocation] = None) -> Token:
        """Create a token spanning start to end (default: current position)."""
        if end is None:
            end = self.location()
        if lexeme is None:
            lexeme = self.source[start.offset:end.offset]
        if value is None:
            value = lexeme
        return Token(token_type, value, lexeme, SourceSpan(start, end))

    def _scan_newline(self) -> Token:
        start = self.location()
        if self._advance() == '\r' and self._peek() == '\n':
            self._advance()
        return self._make_token(TokenType.NEWLINE, None, start, "\\n")

    def _scan_comparison(self, ch: str) -> Token:
        """Scan =, !, <, > and their '=' forms."""
        start = self.location()
        self._advance()
        single_end = self.location()
        single, double = COMPARISON_PAIRS[ch]

        while self._peek() == ' ':
            self._advance()
        if self._peek() == '=':
            self._advance()
            return self._make_token(double, ch + "=", start)
        return self._make_token(single, ch, start, ch, end=single_end)

    def _scan_string(self) -> Token:
        """Scan a string literal."""
        start = self.location()
        self._advance()  # consume opening quote

        chars = []
        while not self._is_at_end() and self._peek() != '"':
            chars.append(self._advance())

        if self._is_at_end():
            raise error_unterminated_string(
                self._span(start),
                self.get_source_line(start.line)
            )

        self._advance()  # consume closing quote
        return self._make_token(TokenType.STRING, ''.join(chars), start)

    def _scan_number(self) -> Token:
        """Scan a numeric literal with at most one decimal point.

        A trailing '.' that is not followed by a digit is left for the next
        token, so "3." is NUMBER("3") then DOT.
        """
        start = self.location()

        while self._peek() in DIGITS:
            self._advance()

        if self._peek() == '.' and self._peek(1) in DIGITS:
            self._advance()  # consume '.'
            while self._peek() in DIGITS:
                self._advance()

        lexeme = self.source[start.offset:self.pos]
        return self._make_token(TokenType.NUMBER, lexeme, start, lexeme)

    def _scan_identifier_or_keyword(self) -> Token:
        """Scan an identifier or keyword."""
        start = self.location()

        while self._peek().isalnum() or self._peek() == '_':
            self._advance()

        lexeme = self.source[start.offset:self.pos]
        token_type = KEYWORDS.get(lexeme, TokenType.IDENTIFIER)
        return self._make_token(token_type, lexeme, start, lexeme)

    def next_token(self) -> Optional[Token]:
        """Scan the next token, or return None at end of input."""
        while True:
            self._skip_spaces()
            if self._is_at_end():
                return None
            if self._peek() == '/' and self._peek(1) == '/':
                self._skip_comment()
                continue
            break

        ch = self._peek()

        if ch in '\r\n':
            return self._scan_newline()

        if ch in COMPARISON_PAIRS:
            return self._scan_comparison(ch)

        if ch == '"':
            return self._scan_string()

        if ch in DIGITS:
            return self._scan_number()

        if ch.isalpha() or ch == '_':
            return self._scan_identifier_or_keyword()

        start = self.location()
        self._advance()

        if ch == '/':
            return self._make_token(TokenType.SLASH, ch, start)

        if ch in SINGLE_CHAR_TOKENS:
            return self._make_token(SINGLE_CHAR_TOKENS[ch], ch, start)

        raise error_unexpected_character(
            ch, self._span(start), self.get_source_line(start.line)
        )

    def eof_token(self) -> Token:
        """An EOF sentinel positioned at the current location."""
        loc = self.location()
        return self._make_token(TokenType.EOF, "", loc, "", end=loc)

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source, returning tokens followed by EOF."""
        tokens = list(self)
        tokens.append(self.eof_token())
        return tokens

    def __iter__(self) -> Iterator[Token]:
        """Iterate over tokens until input is exhausted."""
        while True:
            token = self.next_token()
            if token is None:
                return
            yield token


def tokenize(source: str, filename: Optional[str] = None) -> List[Token]:
    """
    Convenience function to tokenize source code.

    Args:
        source: The source code to tokenize
        filename: Optional filename for error messages

    Returns:
        List of tokens, terminated by an EOF token

    Raises:
        LexerError: If tokenization fails
    """
    lexer = Lexer(source, filename)
    return lexer.tokenize()
