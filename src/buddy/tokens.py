"""
Token types and grammar tables for the buddy scanner and parser.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Evaluation errors
- E5xx/W5xx: Static analysis diagnostics
"""

from enum import Enum, IntEnum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenType(Enum):
    """All token types recognized by the scanner."""

    # --- Literals ---
    INTEGER = auto()            # 42, 0x1A, 0b101, 0o17, 1_000
    DOUBLE = auto()             # 3.14
    STRING = auto()             # "hello", 'hello'
    BOOLEAN = auto()            # true, false

    # --- Identifiers ---
    IDENTIFIER = auto()

    # --- Keywords ---
    IF = auto()
    ELSE = auto()
    WHILE = auto()
    FOR = auto()
    IN = auto()
    BREAK = auto()
    CONTINUE = auto()
    RETURN = auto()
    DEF = auto()
    IMPORT = auto()
    FROM = auto()
    AS = auto()
    ASSERT = auto()
    LET = auto()

    # --- Arithmetic operators ---
    PLUS = auto()               # +
    MINUS = auto()              # -
    STAR = auto()               # *
    SLASH = auto()              # /
    PERCENT = auto()            # %
    DOUBLE_STAR = auto()        # **

    # --- Bitwise operators ---
    AMPERSAND = auto()          # &
    PIPE = auto()               # |
    CARET = auto()              # ^
    TILDE = auto()              # ~
    LSHIFT = auto()             # <<
    RSHIFT = auto()             # >>

    # --- Logical operators ---
    NOT = auto()                # !
    AND = auto()                # &&
    OR = auto()                 # ||

    # --- Comparison operators ---
    EQ = auto()                 # ==
    NE = auto()                 # !=
    LT = auto()                 # <
    LE = auto()                 # <=
    GT = auto()                 # >
    GE = auto()                 # >=

    # --- Assignment ---
    ASSIGN = auto()             # =
    WALRUS = auto()             # := (reserved)
    PLUS_ASSIGN = auto()        # +=
    MINUS_ASSIGN = auto()       # -=
    STAR_ASSIGN = auto()        # *=
    SLASH_ASSIGN = auto()       # /=
    PERCENT_ASSIGN = auto()     # %=
    AMPERSAND_ASSIGN = auto()   # &=
    PIPE_ASSIGN = auto()        # |=
    CARET_ASSIGN = auto()       # ^=
    LSHIFT_ASSIGN = auto()      # <<=
    RSHIFT_ASSIGN = auto()      # >>=

    # --- Punctuation ---
    QUESTION = auto()           # ?
    COLON = auto()              # :
    COMMA = auto()              # ,
    DOT = auto()                # .
    LPAREN = auto()             # (
    RPAREN = auto()             # )
    LBRACKET = auto()           # [
    RBRACKET = auto()           # ]
    LBRACE = auto()             # {
    RBRACE = auto()             # }

    # --- Special ---
    COMMENT = auto()            # // line or /* block */
    INVALID = auto()            # unrecognized character
    EOL = auto()                # newline or ';'
    EOF = auto()                # end of input


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.filename or '<input>'}:{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        return f"{self.start}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class Token:
    """A single token from the scanner."""
    type: TokenType
    value: Any              # int, float, bool or str depending on the type
    lexeme: str             # The original source text
    span: SourceSpan        # Location in source

    def __str__(self) -> str:
        if self.type in (TokenType.INTEGER, TokenType.DOUBLE, TokenType.STRING,
                         TokenType.BOOLEAN, TokenType.IDENTIFIER, TokenType.INVALID):
            return f"{self.type.name}({self.value!r})"
        return self.type.name

    def describe(self) -> str:
        """Human readable form used in parser messages."""
        if self.type == TokenType.EOF:
            return "end of input"
        if self.type == TokenType.EOL:
            return "end of line"
        return f"'{self.lexeme}'"


# Keyword mapping - maps string to token type
KEYWORDS: dict[str, TokenType] = {
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "while": TokenType.WHILE,
    "for": TokenType.FOR,
    "in": TokenType.IN,
    "break": TokenType.BREAK,
    "continue": TokenType.CONTINUE,
    "return": TokenType.RETURN,
    "def": TokenType.DEF,
    "import": TokenType.IMPORT,
    "from": TokenType.FROM,
    "as": TokenType.AS,
    "assert": TokenType.ASSERT,
    "let": TokenType.LET,

    # Boolean literals
    "true": TokenType.BOOLEAN,
    "false": TokenType.BOOLEAN,
}


class Precedence(IntEnum):
    """Binding power of infix operators, lowest first."""
    LOWEST = 0
    ASSIGN = 1
    TERNARY = 2
    BITWISE = 3
    LOGICAL = 4
    SHIFT = 5
    EQUALITY = 6
    RELATIONAL = 7
    ADDITIVE = 8
    MULTIPLICATIVE = 9
    INDEX = 10
    PREFIX = 11
    CALL = 12
    DOT = 13


# Compound assignment operator -> binary operator it desugars to
COMPOUND_ASSIGN: dict[TokenType, TokenType] = {
    TokenType.PLUS_ASSIGN: TokenType.PLUS,
    TokenType.MINUS_ASSIGN: TokenType.MINUS,
    TokenType.STAR_ASSIGN: TokenType.STAR,
    TokenType.SLASH_ASSIGN: TokenType.SLASH,
    TokenType.PERCENT_ASSIGN: TokenType.PERCENT,
    TokenType.AMPERSAND_ASSIGN: TokenType.AMPERSAND,
    TokenType.PIPE_ASSIGN: TokenType.PIPE,
    TokenType.CARET_ASSIGN: TokenType.CARET,
    TokenType.LSHIFT_ASSIGN: TokenType.LSHIFT,
    TokenType.RSHIFT_ASSIGN: TokenType.RSHIFT,
}


# Infix precedence table used by the parser
PRECEDENCE: dict[TokenType, Precedence] = {
    TokenType.ASSIGN: Precedence.ASSIGN,
    **{op: Precedence.ASSIGN for op in COMPOUND_ASSIGN},
    TokenType.QUESTION: Precedence.TERNARY,
    TokenType.AMPERSAND: Precedence.BITWISE,
    TokenType.PIPE: Precedence.BITWISE,
    TokenType.CARET: Precedence.BITWISE,
    TokenType.AND: Precedence.LOGICAL,
    TokenType.OR: Precedence.LOGICAL,
    TokenType.LSHIFT: Precedence.SHIFT,
    TokenType.RSHIFT: Precedence.SHIFT,
    TokenType.EQ: Precedence.EQUALITY,
    TokenType.NE: Precedence.EQUALITY,
    TokenType.LT: Precedence.RELATIONAL,
    TokenType.LE: Precedence.RELATIONAL,
    TokenType.GT: Precedence.RELATIONAL,
    TokenType.GE: Precedence.RELATIONAL,
    TokenType.PLUS: Precedence.ADDITIVE,
    TokenType.MINUS: Precedence.ADDITIVE,
    TokenType.STAR: Precedence.MULTIPLICATIVE,
    TokenType.SLASH: Precedence.MULTIPLICATIVE,
    TokenType.PERCENT: Precedence.MULTIPLICATIVE,
    TokenType.DOUBLE_STAR: Precedence.MULTIPLICATIVE,
    TokenType.LBRACKET: Precedence.INDEX,
    TokenType.LPAREN: Precedence.CALL,
    TokenType.DOT: Precedence.DOT,
}


# Operator spelling, used by the AST printer and diagnostics
OPERATOR_SYMBOLS: dict[TokenType, str] = {
    TokenType.PLUS: "+",
    TokenType.MINUS: "-",
    TokenType.STAR: "*",
    TokenType.SLASH: "/",
    TokenType.PERCENT: "%",
    TokenType.DOUBLE_STAR: "**",
    TokenType.AMPERSAND: "&",
    TokenType.PIPE: "|",
    TokenType.CARET: "^",
    TokenType.TILDE: "~",
    TokenType.LSHIFT: "<<",
    TokenType.RSHIFT: ">>",
    TokenType.NOT: "!",
    TokenType.AND: "&&",
    TokenType.OR: "||",
    TokenType.EQ: "==",
    TokenType.NE: "!=",
    TokenType.LT: "<",
    TokenType.LE: "<=",
    TokenType.GT: ">",
    TokenType.GE: ">=",
}


def get_precedence(token_type: TokenType) -> Precedence:
    """Infix binding power of a token type (LOWEST when it is not infix)."""
    return PRECEDENCE.get(token_type, Precedence.LOWEST)


def is_keyword(token_type: TokenType) -> bool:
    """Check if a token type is a keyword (booleans excluded)."""
    return token_type in KEYWORDS.values() and token_type != TokenType.BOOLEAN
