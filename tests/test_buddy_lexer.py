"""
Tests for the buddy lexer.
"""

import pytest
from buddy import tokenize, Lexer, TokenType, LexerError


def types(source):
    """Token types of source, without the trailing EOF."""
    return [t.type for t in tokenize(source)][:-1]


class TestLexerBasics:
    """Test basic lexer functionality."""

    def test_empty_source(self):
        """Test lexing empty source."""
        tokens = tokenize("")
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF

    def test_whitespace_only(self):
        """Test lexing whitespace-only source."""
        tokens = tokenize("   \t  ")
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF

    def test_single_identifier(self):
        """Test lexing a single identifier."""
        tokens = tokenize("foo")
        assert tokens[0].type == TokenType.IDENTIFIER
        assert tokens[0].value == "foo"

    def test_identifier_with_underscore_and_digits(self):
        """Test identifiers with underscores and digits."""
        tokens = tokenize("_my_var2")
        assert tokens[0].type == TokenType.IDENTIFIER
        assert tokens[0].value == "_my_var2"

    def test_location_tracking(self):
        """Test that line and column are tracked."""
        tokens = tokenize("a\n  b")
        b = tokens[2]
        assert b.value == "b"
        assert b.span.start.line == 2
        assert b.span.start.column == 3

    def test_filename_in_location(self):
        """Test that the filename is kept in token locations."""
        tokens = tokenize("x", "main.bud")
        assert str(tokens[0].span.start) == "main.bud:1:1"

    def test_crlf_normalized(self):
        """Test that CRLF line endings become a single EOL."""
        assert types("a\r\nb") == [TokenType.IDENTIFIER, TokenType.EOL, TokenType.IDENTIFIER]


class TestStatementSeparators:
    """Test newline and semicolon handling."""

    def test_newline_is_eol(self):
        """Test that a newline produces EOL."""
        tokens = tokenize("a\nb")
        assert tokens[1].type == TokenType.EOL
        assert tokens[1].value == "\n"

    def test_semicolon_is_eol(self):
        """Test that ';' produces EOL."""
        tokens = tokenize("a; b")
        assert tokens[1].type == TokenType.EOL
        assert tokens[1].value == ";"

    def test_newline_after_brace_swallowed(self):
        """Test that a newline right after '{' produces no EOL."""
        assert types("{\na") == [TokenType.LBRACE, TokenType.IDENTIFIER]

    def test_newline_after_bracket_swallowed(self):
        """Test that a newline right after '[' produces no EOL."""
        assert types("[\n1") == [TokenType.LBRACKET, TokenType.INTEGER]

    def test_newline_after_paren_kept(self):
        """Test that a newline after '(' still produces EOL."""
        assert types("(\n1") == [TokenType.LPAREN, TokenType.EOL, TokenType.INTEGER]


class TestComments:
    """Test comment handling."""

    def test_line_comment(self):
        """Test that line comments are COMMENT tokens."""
        tokens = tokenize("// hello\nx")
        assert tokens[0].type == TokenType.COMMENT
        assert tokens[0].value == "hello"
        assert tokens[1].type == TokenType.EOL
        assert tokens[2].type == TokenType.IDENTIFIER

    def test_block_comment(self):
        """Test block comments spanning lines."""
        tokens = tokenize("/* one\ntwo */ x")
        assert tokens[0].type == TokenType.COMMENT
        assert tokens[0].value == "one\ntwo"
        assert tokens[1].type == TokenType.IDENTIFIER
        assert tokens[1].span.start.line == 2

    def test_unterminated_block_comment(self):
        """Test that an unclosed block comment is an error."""
        with pytest.raises(LexerError) as exc_info:
            tokenize("/* never closed")
        assert "E003" in str(exc_info.value)

    def test_slash_is_not_comment(self):
        """Test that a single slash is division."""
        assert types("a / b") == [TokenType.IDENTIFIER, TokenType.SLASH, TokenType.IDENTIFIER]


class TestStringLiterals:
    """Test string literal lexing."""

    def test_double_quoted(self):
        """Test double quoted strings."""
        tokens = tokenize('"hello world"')
        assert tokens[0].type == TokenType.STRING
        assert tokens[0].value == "hello world"

    def test_single_quoted(self):
        """Test single quoted strings."""
        tokens = tokenize("'hi'")
        assert tokens[0].type == TokenType.STRING
        assert tokens[0].value == "hi"

    def test_other_quote_inside(self):
        """Test that the other quote character is plain text."""
        tokens = tokenize("'say \"hi\"'")
        assert tokens[0].value == 'say "hi"'

    def test_no_escape_processing(self):
        """Test that backslashes are kept verbatim."""
        tokens = tokenize(r'"a\nb"')
        assert tokens[0].value == "a\\nb"

    def test_empty_string(self):
        """Test the empty string."""
        tokens = tokenize('""')
        assert tokens[0].type == TokenType.STRING
        assert tokens[0].value == ""

    def test_unterminated_string(self):
        """Test that an unterminated string is an error."""
        with pytest.raises(LexerError) as exc_info:
            tokenize('"hello')
        assert "E002" in str(exc_info.value)

    def test_newline_in_string(self):
        """Test that a string may not span lines."""
        with pytest.raises(LexerError) as exc_info:
            tokenize('"hello\nworld"')
        assert "E002" in str(exc_info.value)


class TestNumericLiterals:
    """Test numeric literal lexing."""

    @pytest.mark.parametrize("source,expected", [
        ("42", 42),
        ("0", 0),
        ("1_000", 1000),
        ("0x1A", 26),
        ("0XfF", 255),
        ("0o17", 15),
        ("0b1010", 10),
        ("0b1_0", 2),
    ])
    def test_integers(self, source, expected):
        """Test decimal and prefixed integer literals."""
        tokens = tokenize(source)
        assert tokens[0].type == TokenType.INTEGER
        assert tokens[0].value == expected
        assert tokens[0].lexeme == source

    def test_double(self):
        """Test double literals."""
        tokens = tokenize("3.25")
        assert tokens[0].type == TokenType.DOUBLE
        assert tokens[0].value == 3.25

    def test_trailing_dot_is_path(self):
        """Test that '1.' is an integer followed by a dot."""
        assert types("1.x") == [TokenType.INTEGER, TokenType.DOT, TokenType.IDENTIFIER]

    @pytest.mark.parametrize("source", ["0x", "0b2", "0o9", "12ab"])
    def test_invalid_literals(self, source):
        """Test malformed numeric literals."""
        with pytest.raises(LexerError) as exc_info:
            tokenize(source)
        assert "E004" in str(exc_info.value)


class TestKeywords:
    """Test keyword recognition."""

    @pytest.mark.parametrize("word,token_type", [
        ("if", TokenType.IF),
        ("else", TokenType.ELSE),
        ("while", TokenType.WHILE),
        ("for", TokenType.FOR),
        ("in", TokenType.IN),
        ("break", TokenType.BREAK),
        ("continue", TokenType.CONTINUE),
        ("return", TokenType.RETURN),
        ("def", TokenType.DEF),
        ("import", TokenType.IMPORT),
        ("from", TokenType.FROM),
        ("as", TokenType.AS),
        ("assert", TokenType.ASSERT),
        ("let", TokenType.LET),
    ])
    def test_keyword(self, word, token_type):
        """Test each keyword maps to its token type."""
        assert tokenize(word)[0].type == token_type

    def test_booleans(self):
        """Test true and false are boolean literals."""
        tokens = tokenize("true false")
        assert tokens[0].type == TokenType.BOOLEAN
        assert tokens[0].value is True
        assert tokens[1].value is False

    def test_keyword_prefix_is_identifier(self):
        """Test that identifiers starting with a keyword stay identifiers."""
        tokens = tokenize("iffy")
        assert tokens[0].type == TokenType.IDENTIFIER


class TestOperators:
    """Test operator lexing."""

    @pytest.mark.parametrize("source,token_type", [
        ("**", TokenType.DOUBLE_STAR),
        ("<<=", TokenType.LSHIFT_ASSIGN),
        (">>=", TokenType.RSHIFT_ASSIGN),
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
        ("%=", TokenType.PERCENT_ASSIGN),
        ("^=", TokenType.CARET_ASSIGN),
        ("~", TokenType.TILDE),
        ("!", TokenType.NOT),
        ("?", TokenType.QUESTION),
        (":", TokenType.COLON),
    ])
    def test_operator(self, source, token_type):
        """Test that operators lex to a single token."""
        tokens = tokenize(source)
        assert tokens[0].type == token_type
        assert tokens[1].type == TokenType.EOF

    def test_longest_match(self):
        """Test that '***' is '**' followed by '*'."""
        assert types("***") == [TokenType.DOUBLE_STAR, TokenType.STAR]

    def test_invalid_character(self):
        """Test that unknown characters become INVALID tokens."""
        tokens = tokenize("a @ b")
        assert tokens[1].type == TokenType.INVALID
        assert tokens[1].value == "@"


class TestLexerIterator:
    """Test lazy scanning."""

    def test_iterate_ends_at_eof(self):
        """Test that iteration stops after EOF."""
        tokens = list(Lexer("a + 1"))
        assert [t.type for t in tokens] == [
            TokenType.IDENTIFIER, TokenType.PLUS, TokenType.INTEGER, TokenType.EOF,
        ]

    def test_scan_repeats_eof(self):
        """Test that scan() keeps returning EOF at the end."""
        lexer = Lexer("x")
        lexer.scan()
        assert lexer.scan().type == TokenType.EOF
        assert lexer.scan().type == TokenType.EOF


class TestScriptExample:
    """Test lexing a realistic snippet."""

    def test_function(self):
        """Test a small function definition."""
        source = "def add(a, b=2) {\n  return a + b\n}\n"
        assert types(source) == [
            TokenType.DEF, TokenType.IDENTIFIER, TokenType.LPAREN,
            TokenType.IDENTIFIER, TokenType.COMMA, TokenType.IDENTIFIER,
            TokenType.ASSIGN, TokenType.INTEGER, TokenType.RPAREN, TokenType.LBRACE,
            TokenType.RETURN, TokenType.IDENTIFIER, TokenType.PLUS, TokenType.IDENTIFIER,
            TokenType.EOL, TokenType.RBRACE, TokenType.EOL,
        ]
