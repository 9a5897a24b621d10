"""
Scanner for buddy source text.

Converts source text into a lazy stream of positioned tokens.
Supports:
- Newline and ';' statement separators (EOL tokens)
- Newlines swallowed right after '[' and '{'
- Line comments (//) and block comments (/* */) as COMMENT tokens
- Single or double quoted strings (no escape processing)
- Integer literals (decimal, hex, octal, binary, '_' separators)
- Double literals (digits '.' digits)
- The full operator set including compound assignments
"""

from typing import List, Optional, Iterator
from .tokens import Token, TokenType, SourceLocation, SourceSpan, KEYWORDS
from .errors import (
    error_unterminated_string,
    error_unterminated_comment,
    error_invalid_number_literal,
)


# Three, two and one character operators, longest first
OPERATORS: List[tuple] = [
    ("<<=", TokenType.LSHIFT_ASSIGN),
    (">>=", TokenType.RSHIFT_ASSIGN),
    ("**", TokenType.DOUBLE_STAR),
    ("<<", TokenType.LSHIFT),
    (">>", TokenType.RSHIFT),
    ("&&", TokenType.AND),
    ("||", TokenType.OR),
    ("==", TokenType.EQ),
    ("!=", TokenType.NE),
    ("<=", TokenType.LE),
    (">=", TokenType.GE),
    (":=", TokenType.WALRUS),
    ("+=", TokenType.PLUS_ASSIGN),
    ("-=", TokenType.MINUS_ASSIGN),
    ("*=", TokenType.STAR_ASSIGN),
    ("/=", TokenType.SLASH_ASSIGN),
    ("%=", TokenType.PERCENT_ASSIGN),
    ("&=", TokenType.AMPERSAND_ASSIGN),
    ("|=", TokenType.PIPE_ASSIGN),
    ("^=", TokenType.CARET_ASSIGN),
    ("+", TokenType.PLUS),
    ("-", TokenType.MINUS),
    ("*", TokenType.STAR),
    ("/", TokenType.SLASH),
    ("%", TokenType.PERCENT),
    ("&", TokenType.AMPERSAND),
    ("|", TokenType.PIPE),
    ("^", TokenType.CARET),
    ("~", TokenType.TILDE),
    ("!", TokenType.NOT),
    ("<", TokenType.LT),
    (">", TokenType.GT),
    ("=", TokenType.ASSIGN),
    ("?", TokenType.QUESTION),
    (":", TokenType.COLON),
    (",", TokenType.COMMA),
    (".", TokenType.DOT),
    ("(", TokenType.LPAREN),
    (")", TokenType.RPAREN),
    ("[", TokenType.LBRACKET),
    ("]", TokenType.RBRACKET),
    ("{", TokenType.LBRACE),
    ("}", TokenType.RBRACE),
]

DIGITS = {
    "x": "0123456789abcdefABCDEF",
    "o": "01234567",
    "b": "01",
}


class Lexer:
    """
    Tokenizer for buddy scripts.

    Usage:
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()

    Or for streaming:
        lexer = Lexer(source_code)
        token = lexer.scan()
        while token.type != TokenType.EOF:
            ...
            token = lexer.scan()
    """

    def __init__(self, source: str, filename: Optional[str] = None):
        self.source = source.replace("\r\n", "\n")
        self.filename = filename
        self.pos = 0            # Current position in source
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)
        self._lines: Optional[List[str]] = None
        self._last: Optional[TokenType] = None
        self._done = False

    @property
    def lines(self) -> List[str]:
        """Lazy-load line list for error reporting."""
        if self._lines is None:
            self._lines = self.source.split("\n")
        return self._lines

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Get a specific line of source (1-indexed)."""
        if 1 <= line_num <= len(self.lines):
            return self.lines[line_num - 1]
        return None

    def _location(self) -> SourceLocation:
        """Get current source location."""
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        """Create a span from start to current position."""
        return SourceSpan(start, self._location())

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
        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _is_at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _make_token(self, token_type: TokenType, value, start: SourceLocation,
                    lexeme: Optional[str] = None) -> Token:
        """Create a token."""
        if lexeme is None:
            lexeme = self.source[start.offset:self.pos]
        return Token(token_type, value, lexeme, self._span(start))

    def _skip_blanks(self) -> None:
        """Skip horizontal whitespace, and newlines that follow '[' or '{'."""
        while True:
            ch = self._peek()
            if ch in ' \t\r':
                self._advance()
            elif ch == '\n' and self._last in (TokenType.LBRACKET, TokenType.LBRACE):
                self._advance()
            else:
                return

    def _scan_line_comment(self, start: SourceLocation) -> Token:
        self._advance()  # consume '/'
        self._advance()  # consume '/'
        while self._peek() != '\n' and not self._is_at_end():
            self._advance()
        text = self.source[start.offset + 2:self.pos].strip()
        return self._make_token(TokenType.COMMENT, text, start)

    def _scan_block_comment(self, start: SourceLocation) -> Token:
        self._advance()  # consume '/'
        self._advance()  # consume '*'
        while not self._is_at_end():
            if self._peek() == '*' and self._peek(1) == '/':
                self._advance()
                self._advance()
                text = self.source[start.offset + 2:self.pos - 2].strip()
                return self._make_token(TokenType.COMMENT, text, start)
            self._advance()
        raise error_unterminated_comment(self._span(start), self.get_source_line(start.line))

    def _scan_string(self, start: SourceLocation) -> Token:
        """Scan a quoted string; no escape sequences are processed."""
        quote = self._advance()
        while not self._is_at_end() and self._peek() != quote:
            if self._peek() == '\n':
                break
            self._advance()
        if self._peek() != quote:
            raise error_unterminated_string(self._span(start), self.get_source_line(start.line))
        self._advance()  # closing quote
        value = self.source[start.offset + 1:self.pos - 1]
        return self._make_token(TokenType.STRING, value, start)

    def _scan_number(self, start: SourceLocation) -> Token:
        """Scan a numeric literal (integer or double)."""
        if self._peek() == '0' and self._peek(1).lower() in DIGITS:
            return self._scan_prefixed_integer(start)

        while self._peek().isdigit() or self._peek() == '_':
            self._advance()

        is_double = False
        if self._peek() == '.' and self._peek(1).isdigit():
            is_double = True
            self._advance()  # consume '.'
            while self._peek().isdigit() or self._peek() == '_':
                self._advance()

        # identifiers glued to a number ('12ab') are not valid literals
        if self._peek().isalpha() or self._peek() == '_':
            while self._peek().isalnum() or self._peek() == '_':
                self._advance()
            lexeme = self.source[start.offset:self.pos]
            raise error_invalid_number_literal(lexeme, self._span(start), self.get_source_line(start.line))

        lexeme = self.source[start.offset:self.pos]
        clean = lexeme.replace('_', '')
        try:
            if is_double:
                return self._make_token(TokenType.DOUBLE, float(clean), start, lexeme)
            return self._make_token(TokenType.INTEGER, int(clean, 10), start, lexeme)
        except ValueError:
            raise error_invalid_number_literal(lexeme, self._span(start), self.get_source_line(start.line))

    def _scan_prefixed_integer(self, start: SourceLocation) -> Token:
        """Scan 0x, 0o and 0b integer literals."""
        self._advance()  # consume '0'
        kind = self._advance().lower()
        valid = DIGITS[kind]
        while self._peek().isalnum() or self._peek() == '_':
            self._advance()

        lexeme = self.source[start.offset:self.pos]
        digits = lexeme[2:].replace('_', '')
        if not digits or any(ch not in valid for ch in digits):
            raise error_invalid_number_literal(lexeme, self._span(start), self.get_source_line(start.line))
        base = {"x": 16, "o": 8, "b": 2}[kind]
        return self._make_token(TokenType.INTEGER, int(digits, base), start, lexeme)

    def _scan_identifier_or_keyword(self, start: SourceLocation) -> Token:
        """Scan an identifier or keyword."""
        while self._peek().isalnum() or self._peek() == '_':
            self._advance()

        lexeme = self.source[start.offset:self.pos]
        token_type = KEYWORDS.get(lexeme)
        if token_type == TokenType.BOOLEAN:
            return self._make_token(token_type, lexeme == "true", start, lexeme)
        if token_type is not None:
            return self._make_token(token_type, lexeme, start, lexeme)
        return self._make_token(TokenType.IDENTIFIER, lexeme, start, lexeme)

    def _scan_operator(self, start: SourceLocation) -> Token:
        for text, token_type in OPERATORS:
            if self.source.startswith(text, self.pos):
                for _ in text:
                    self._advance()
                return self._make_token(token_type, text, start)
        ch = self._advance()
        return self._make_token(TokenType.INVALID, ch, start)

    def _scan_token(self) -> Token:
        self._skip_blanks()
        start = self._location()

        if self._is_at_end():
            return self._make_token(TokenType.EOF, None, start, "")

        ch = self._peek()

        if ch == '\n':
            self._advance()
            return self._make_token(TokenType.EOL, "\n", start, "\\n")
        if ch == ';':
            self._advance()
            return self._make_token(TokenType.EOL, ";", start)
        if ch == '/' and self._peek(1) == '/':
            return self._scan_line_comment(start)
        if ch == '/' and self._peek(1) == '*':
            return self._scan_block_comment(start)
        if ch in '"\'':
            return self._scan_string(start)
        if ch.isdigit():
            return self._scan_number(start)
        if ch.isalpha() or ch == '_':
            return self._scan_identifier_or_keyword(start)
        return self._scan_operator(start)

    def scan(self) -> Token:
        """Scan and return the next token; EOF is returned repeatedly at the end."""
        token = self._scan_token()
        if token.type != TokenType.COMMENT:
            self._last = token.type
        return token

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source, returning a list of tokens."""
        return list(self)

    def __iter__(self) -> Iterator[Token]:
        """Iterate over tokens, ending with EOF."""
        while True:
            token = self.scan()
            yield token
            if token.type == TokenType.EOF:
                break


def tokenize(source: str, filename: Optional[str] = None) -> List[Token]:
    """
    Convenience function to tokenize source code.

    Args:
        source: The source code to tokenize
        filename: Optional filename for error messages

    Returns:
        List of tokens

    Raises:
        LexerError: If tokenization fails
    """
    lexer = Lexer(source, filename)
    return lexer.tokenize()
