"""
Pratt parser for buddy.

Converts a token stream into an Abstract Syntax Tree (AST). The parser
keeps only the current token and one token of lookahead, pulling tokens
from the scanner on demand; COMMENT tokens are skipped transparently.

Expressions use precedence climbing over the table in tokens.py:
    Lowest:  = += -= ...    (assignment, right side parsed at LOWEST)
             ? :            (ternary, branches parsed at LOWEST)
             & | ^
             && ||
             << >>
             == !=
             < <= > >=
             + -
             * / % **       (all left-associative)
             [ ]            (index / slice)
             - ! ~          (prefix)
             ( )            (call)
    Highest: .              (path)
"""

from typing import Iterator, List, Optional, Union
from .tokens import (
    Token, TokenType, SourceSpan, Precedence, COMPOUND_ASSIGN,
    get_precedence, is_keyword,
)
from .lexer import Lexer
from .ast import (
    # Expressions
    Expression, Literal, Identifier, UnaryOp, BinaryOp, Assignment,
    ListLiteral, DictLiteral, IndexAccess, Slice, PathAccess,
    FunctionCall, NamedArgument, IfExpr,
    ListComprehension, DictComprehension, ComprehensionClause,
    # Statements
    Block, LetStatement, ReturnStatement, BreakStatement, ContinueStatement,
    AssertStatement, WhileStatement, ForStatement, ForEachStatement,
    ImportStatement, ImportSymbol,
    # Declarations
    Parameter, FunctionDef, Script,
)
from .errors import (
    error_unexpected_token,
    error_unexpected_eof,
    error_invalid_expression,
    error_invalid_assignment,
    error_too_many_parameters,
    error_misplaced_declaration,
    error_invalid_call,
    error_duplicate_function,
    error_unexpected_character,
)


MAX_ARITY = 255

LITERAL_TYPES = (TokenType.INTEGER, TokenType.DOUBLE, TokenType.STRING, TokenType.BOOLEAN)
PREFIX_OPERATORS = (TokenType.MINUS, TokenType.NOT, TokenType.TILDE)


class Parser:
    """
    Pratt parser for buddy scripts.

    Usage:
        parser = Parser(Lexer(source))
        script = parser.parse()

    A list of tokens (ending with EOF) is accepted in place of a lexer.
    """

    def __init__(self, lexer_or_tokens: Union[Lexer, List[Token]],
                 filename: Optional[str] = None, source: Optional[str] = None):
        if isinstance(lexer_or_tokens, Lexer):
            self._lexer: Optional[Lexer] = lexer_or_tokens
            self.filename = filename or lexer_or_tokens.filename
            self.source = source if source is not None else lexer_or_tokens.source
        else:
            self._lexer = None
            self.filename = filename
            self.source = source
        self._tokens: Iterator[Token] = self._filtered(iter(lexer_or_tokens))
        self._lines: Optional[List[str]] = None
        self._previous: Optional[Token] = None
        self._curr = next(self._tokens)
        self._next = next(self._tokens, self._curr)

    @staticmethod
    def _filtered(tokens: Iterator[Token]) -> Iterator[Token]:
        last = None
        for token in tokens:
            if token.type == TokenType.COMMENT:
                continue
            last = token
            yield token
            if token.type == TokenType.EOF:
                return
        if last is not None:
            # a bare token list without EOF still ends cleanly
            while True:
                yield Token(TokenType.EOF, None, "", SourceSpan(last.span.end, last.span.end))

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        """Get current token."""
        return self._curr

    def _peek(self) -> Token:
        """Get the lookahead token."""
        return self._next

    def _is_at_end(self) -> bool:
        """Check if at end of tokens."""
        return self._curr.type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        """Check if current token is of given type."""
        return self._curr.type == token_type

    def _check_any(self, *token_types: TokenType) -> bool:
        """Check if current token is any of given types."""
        return self._curr.type in token_types

    def _check_semicolon(self) -> bool:
        return self._curr.type == TokenType.EOL and self._curr.value == ";"

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._curr
        if not self._is_at_end():
            self._previous = token
            self._curr = self._next
            if self._next.type != TokenType.EOF:
                self._next = next(self._tokens)
        return token

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        self._error(expected)

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        """Consume token if it matches any of the given types."""
        if self._curr.type in token_types:
            return self._advance()
        return None

    def _skip_eols(self) -> None:
        """Skip blank statement separators."""
        while self._check(TokenType.EOL):
            self._advance()

    def _source_line(self, line: int) -> Optional[str]:
        if self._lexer is not None:
            return self._lexer.get_source_line(line)
        if self.source is None:
            return None
        if self._lines is None:
            self._lines = self.source.replace("\r\n", "\n").split("\n")
        if 1 <= line <= len(self._lines):
            return self._lines[line - 1]
        return None

    def _line_of(self, span: SourceSpan) -> Optional[str]:
        return self._source_line(span.start.line)

    def _error(self, expected: str) -> None:
        """Raise a parser error."""
        token = self._curr
        if token.type == TokenType.EOF:
            raise error_unexpected_eof(expected, token.span, self._line_of(token.span))
        raise error_unexpected_token(expected, token, self._line_of(token.span))

    def _span_from(self, start: Union[Token, SourceSpan]) -> SourceSpan:
        """Create a span from start token to the last consumed token."""
        begin = start.span.start if isinstance(start, Token) else start.start
        end_token = self._previous or self._curr
        return SourceSpan(begin, end_token.span.end)

    # =========================================================================
    # Script
    # =========================================================================

    def parse(self) -> Script:
        """
        Parse a complete script.

        Returns:
            Script with top-level statements and declared functions

        Raises:
            ParserError: On the first syntax error
        """
        start = self._curr
        statements: List[Expression] = []
        functions = {}

        self._skip_eols()
        while not self._is_at_end():
            if self._check(TokenType.DEF):
                func = self._parse_function_def()
                if func.name in functions:
                    raise error_duplicate_function(func.name, func.span, self._line_of(func.span))
                functions[func.name] = func
            else:
                statements.append(self._parse_statement())
            if not self._is_at_end():
                self._consume(TokenType.EOL, "end of line")
            self._skip_eols()

        return Script(
            span=self._span_from(start),
            name=self.filename or "<input>",
            statements=statements,
            functions=functions,
        )

    # =========================================================================
    # Declarations
    # =========================================================================

    def _parse_function_def(self) -> FunctionDef:
        """def name(a, b, c=default) { body }"""
        start = self._consume(TokenType.DEF, "'def'")
        name = self._consume(TokenType.IDENTIFIER, "function name").value
        self._consume(TokenType.LPAREN, "'('")

        parameters: List[Parameter] = []
        seen_default = False
        while not self._check(TokenType.RPAREN):
            param_token = self._consume(TokenType.IDENTIFIER, "parameter name")
            default = None
            if self._match(TokenType.ASSIGN):
                default = self._parse_expression()
                seen_default = True
            elif seen_default:
                self._error("'=' (parameters with defaults must come last)")
            parameters.append(Parameter(
                span=self._span_from(param_token),
                name=param_token.value,
                default_value=default,
            ))
            if len(parameters) > MAX_ARITY:
                raise error_too_many_parameters(name, MAX_ARITY, param_token.span,
                                                self._line_of(param_token.span))
            if not self._match(TokenType.COMMA):
                break
        self._consume(TokenType.RPAREN, "')'")

        body = self._parse_block()
        return FunctionDef(
            span=self._span_from(start),
            name=name,
            parameters=parameters,
            body=body,
        )

    # =========================================================================
    # Statements
    # =========================================================================

    def _parse_statement(self) -> Expression:
        """Parse a statement (keyword statements go through the prefix table)."""
        if self._check(TokenType.DEF):
            token = self._curr
            raise error_misplaced_declaration(
                "functions can only be declared at the top level of a script",
                token.span, self._line_of(token.span))
        return self._parse_expression()

    def _parse_block(self) -> Block:
        """{ statement EOL ... }"""
        start = self._consume(TokenType.LBRACE, "'{'")
        statements: List[Expression] = []
        self._skip_eols()
        while not self._check(TokenType.RBRACE):
            if self._is_at_end():
                self._error("'}'")
            statements.append(self._parse_statement())
            if not self._check(TokenType.RBRACE):
                self._consume(TokenType.EOL, "end of line")
            self._skip_eols()
        self._consume(TokenType.RBRACE, "'}'")
        return Block(span=self._span_from(start), statements=statements)

    def _parse_keyword(self) -> Expression:
        token_type = self._curr.type
        if token_type == TokenType.IF:
            return self._parse_if()
        if token_type == TokenType.WHILE:
            return self._parse_while()
        if token_type == TokenType.FOR:
            return self._parse_for()
        if token_type == TokenType.BREAK:
            token = self._advance()
            return BreakStatement(span=token.span)
        if token_type == TokenType.CONTINUE:
            token = self._advance()
            return ContinueStatement(span=token.span)
        if token_type == TokenType.RETURN:
            return self._parse_return()
        if token_type == TokenType.ASSERT:
            start = self._advance()
            condition = self._parse_expression()
            return AssertStatement(span=self._span_from(start), condition=condition)
        if token_type == TokenType.LET:
            return self._parse_let()
        if token_type == TokenType.IMPORT:
            return self._parse_import()
        if token_type == TokenType.FROM:
            return self._parse_from_import()
        if token_type == TokenType.DEF:
            return self._parse_statement()
        raise error_invalid_expression(self._curr, self._line_of(self._curr.span))

    def _parse_if(self) -> IfExpr:
        """if cond { } [else { } | else <keyword statement>]"""
        start = self._consume(TokenType.IF, "'if'")
        condition = self._parse_expression()
        then_branch = self._parse_block()
        else_branch = None
        if self._match(TokenType.ELSE):
            if self._check(TokenType.LBRACE):
                else_branch = self._parse_block()
            elif is_keyword(self._curr.type):
                else_branch = self._parse_keyword()
            else:
                self._error("'{' or keyword after 'else'")
        return IfExpr(
            span=self._span_from(start),
            condition=condition,
            then_branch=then_branch,
            else_branch=else_branch,
        )

    def _parse_while(self) -> WhileStatement:
        start = self._consume(TokenType.WHILE, "'while'")
        condition = self._parse_expression()
        body = self._parse_block()
        return WhileStatement(span=self._span_from(start), condition=condition, body=body)

    def _parse_for(self) -> Expression:
        """
        for init; cond; incr { }   or   for x in iterable { }

        Every clause of the C-style form is optional and the whole header
        may be wrapped in parentheses.
        """
        start = self._consume(TokenType.FOR, "'for'")
        if self._check(TokenType.LBRACE):
            body = self._parse_block()
            return ForStatement(span=self._span_from(start), init=None,
                                condition=None, increment=None, body=body)

        wrapped = self._match(TokenType.LPAREN) is not None

        init = None
        if not self._check_semicolon():
            init = self._parse_expression()
            if isinstance(init, Identifier) and self._match(TokenType.IN):
                iterable = self._parse_expression()
                if wrapped:
                    self._consume(TokenType.RPAREN, "')'")
                body = self._parse_block()
                return ForEachStatement(
                    span=self._span_from(start),
                    variable=init.name,
                    iterable=iterable,
                    body=body,
                )
        self._consume_semicolon()

        condition = None
        if not self._check_semicolon():
            condition = self._parse_expression()
        self._consume_semicolon()

        increment = None
        closer = TokenType.RPAREN if wrapped else TokenType.LBRACE
        if not self._check(closer):
            increment = self._parse_expression()
        if wrapped:
            self._consume(TokenType.RPAREN, "')'")

        body = self._parse_block()
        return ForStatement(
            span=self._span_from(start),
            init=init,
            condition=condition,
            increment=increment,
            body=body,
        )

    def _consume_semicolon(self) -> None:
        if not self._check_semicolon():
            self._error("';'")
        self._advance()

    def _parse_return(self) -> ReturnStatement:
        start = self._consume(TokenType.RETURN, "'return'")
        value = None
        if not self._check_any(TokenType.EOL, TokenType.EOF, TokenType.RBRACE):
            value = self._parse_expression()
        return ReturnStatement(span=self._span_from(start), value=value)

    def _parse_let(self) -> LetStatement:
        start = self._consume(TokenType.LET, "'let'")
        name = self._consume(TokenType.IDENTIFIER, "variable name").value
        self._consume(TokenType.ASSIGN, "'='")
        value = self._parse_expression()
        return LetStatement(span=self._span_from(start), name=name, value=value)

    def _parse_module_path(self) -> List[str]:
        path = [self._consume(TokenType.IDENTIFIER, "module name").value]
        while self._match(TokenType.DOT):
            path.append(self._consume(TokenType.IDENTIFIER, "module name").value)
        return path

    def _parse_import(self) -> ImportStatement:
        """import a.b.c [as alias]"""
        start = self._consume(TokenType.IMPORT, "'import'")
        path = self._parse_module_path()
        alias = None
        if self._match(TokenType.AS):
            alias = self._consume(TokenType.IDENTIFIER, "alias").value
        return ImportStatement(span=self._span_from(start), path=path, alias=alias)

    def _parse_from_import(self) -> ImportStatement:
        """from a.b import x [as y], ..."""
        start = self._consume(TokenType.FROM, "'from'")
        path = self._parse_module_path()
        self._consume(TokenType.IMPORT, "'import'")

        symbols: List[ImportSymbol] = []
        while True:
            name_token = self._consume(TokenType.IDENTIFIER, "function name")
            alias = None
            if self._match(TokenType.AS):
                alias = self._consume(TokenType.IDENTIFIER, "alias").value
            symbols.append(ImportSymbol(
                span=self._span_from(name_token),
                name=name_token.value,
                alias=alias,
            ))
            if not self._match(TokenType.COMMA):
                break
        return ImportStatement(span=self._span_from(start), path=path, symbols=symbols)

    # =========================================================================
    # Expressions
    # =========================================================================

    def _parse_expression(self, precedence: Precedence = Precedence.LOWEST) -> Expression:
        """Parse an expression binding tighter than `precedence`."""
        left = self._parse_prefix()
        while precedence < get_precedence(self._curr.type):
            left = self._parse_infix(left)
        return left

    def parse_expression(self) -> Expression:
        """Parse a single expression (used by tests and the REPL)."""
        return self._parse_expression()

    def _parse_prefix(self) -> Expression:
        token = self._curr

        if token.type in LITERAL_TYPES:
            self._advance()
            return Literal(span=token.span, value=token.value, literal_type=token.type)

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            return Identifier(span=token.span, name=token.value)

        if token.type in PREFIX_OPERATORS:
            self._advance()
            operand = self._parse_expression(Precedence.PREFIX)
            return UnaryOp(span=self._span_from(token), operator=token.type, operand=operand)

        if token.type == TokenType.LPAREN:
            self._advance()
            expr = self._parse_expression()
            self._consume(TokenType.RPAREN, "')'")
            return expr

        if token.type == TokenType.LBRACKET:
            return self._parse_array()

        if token.type == TokenType.LBRACE:
            return self._parse_dict()

        if is_keyword(token.type):
            return self._parse_keyword()

        if token.type == TokenType.INVALID:
            raise error_unexpected_character(token.value, token.span, self._line_of(token.span))

        if token.type == TokenType.EOF:
            raise error_unexpected_eof("expression", token.span, self._line_of(token.span))

        raise error_invalid_expression(token, self._line_of(token.span))

    def _parse_infix(self, left: Expression) -> Expression:
        token = self._curr

        if token.type == TokenType.ASSIGN or token.type in COMPOUND_ASSIGN:
            return self._parse_assign(left)
        if token.type == TokenType.QUESTION:
            return self._parse_ternary(left)
        if token.type == TokenType.LBRACKET:
            return self._parse_index(left)
        if token.type == TokenType.LPAREN:
            return self._parse_call(left)
        if token.type == TokenType.DOT:
            return self._parse_path(left)

        self._advance()
        right = self._parse_expression(get_precedence(token.type))
        return BinaryOp(
            span=SourceSpan(left.span.start, right.span.end),
            left=left,
            operator=token.type,
            right=right,
        )

    def _parse_assign(self, target: Expression) -> Assignment:
        operator = self._advance()
        if not isinstance(target, (Identifier, IndexAccess)):
            raise error_invalid_assignment(target.span, self._line_of(target.span))
        value = self._parse_expression()
        if operator.type in COMPOUND_ASSIGN:
            value = BinaryOp(
                span=SourceSpan(target.span.start, value.span.end),
                left=target,
                operator=COMPOUND_ASSIGN[operator.type],
                right=value,
            )
        return Assignment(
            span=SourceSpan(target.span.start, value.span.end),
            target=target,
            value=value,
        )

    def _parse_ternary(self, condition: Expression) -> IfExpr:
        """cond ? a : b"""
        self._consume(TokenType.QUESTION, "'?'")
        then_branch = self._parse_expression()
        self._consume(TokenType.COLON, "':'")
        else_branch = self._parse_expression()
        return IfExpr(
            span=SourceSpan(condition.span.start, else_branch.span.end),
            condition=condition,
            then_branch=then_branch,
            else_branch=else_branch,
        )

    def _parse_index(self, obj: Expression) -> IndexAccess:
        """a[i] or a[start:end:step]"""
        start = self._consume(TokenType.LBRACKET, "'['")
        index: Optional[Expression] = None
        if not self._check(TokenType.COLON):
            index = self._parse_expression()

        if self._check(TokenType.COLON):
            colon = self._advance()
            end = step = None
            if not self._check_any(TokenType.COLON, TokenType.RBRACKET):
                end = self._parse_expression()
            if self._match(TokenType.COLON):
                if not self._check(TokenType.RBRACKET):
                    step = self._parse_expression()
            slice_start = index.span.start if index is not None else colon.span.start
            index = Slice(
                span=SourceSpan(slice_start, self._curr.span.start),
                start=index,
                end=end,
                step=step,
            )

        self._consume(TokenType.RBRACKET, "']'")
        return IndexAccess(span=SourceSpan(obj.span.start, self._previous.span.end),
                           object=obj, index=index)

    def _parse_call(self, callee: Expression) -> Expression:
        """name(args, named=args) or path.to.name(args)"""
        if isinstance(callee, PathAccess):
            return self._replace_innermost(callee, self._parse_call)
        if not isinstance(callee, Identifier):
            raise error_invalid_call(callee.span, self._line_of(callee.span))

        self._consume(TokenType.LPAREN, "'('")
        arguments: List[Expression] = []
        named_arguments: List[NamedArgument] = []
        self._skip_eols()
        while not self._check(TokenType.RPAREN):
            if self._check(TokenType.IDENTIFIER) and self._peek().type == TokenType.ASSIGN:
                name_token = self._advance()
                self._advance()  # consume '='
                value = self._parse_expression()
                named_arguments.append(NamedArgument(
                    span=SourceSpan(name_token.span.start, value.span.end),
                    name=name_token.value,
                    value=value,
                ))
            elif named_arguments:
                self._error("named argument (positional arguments must come first)")
            else:
                arguments.append(self._parse_expression())
            if not self._match(TokenType.COMMA):
                break
            self._skip_eols()
        self._skip_eols()
        self._consume(TokenType.RPAREN, "')'")

        return FunctionCall(
            span=SourceSpan(callee.span.start, self._previous.span.end),
            name=callee.name,
            arguments=arguments,
            named_arguments=named_arguments,
        )

    def _parse_path(self, left: Expression) -> PathAccess:
        """a.b, extending an existing path at its innermost member."""
        if isinstance(left, PathAccess):
            return self._replace_innermost(left, self._parse_path)
        if not isinstance(left, Identifier):
            self._error("name before '.'")
        self._consume(TokenType.DOT, "'.'")
        name_token = self._consume(TokenType.IDENTIFIER, "name after '.'")
        member = Identifier(span=name_token.span, name=name_token.value)
        return PathAccess(
            span=SourceSpan(left.span.start, member.span.end),
            name=left.name,
            member=member,
        )

    def _replace_innermost(self, path: PathAccess, parse_member) -> PathAccess:
        member = parse_member(path.member)
        return PathAccess(
            span=SourceSpan(path.span.start, member.span.end),
            name=path.name,
            member=member,
        )

    # =========================================================================
    # Collection Literals
    # =========================================================================

    def _parse_array(self) -> Expression:
        """[a, b, c] or [expr for x in xs if cond]"""
        start = self._consume(TokenType.LBRACKET, "'['")
        self._skip_eols()
        if self._match(TokenType.RBRACKET):
            return ListLiteral(span=self._span_from(start), elements=[])

        first = self._parse_expression()
        if self._check(TokenType.FOR):
            clauses = self._parse_clauses()
            self._skip_eols()
            self._consume(TokenType.RBRACKET, "']'")
            return ListComprehension(span=self._span_from(start), element=first, clauses=clauses)

        elements = [first]
        while self._match(TokenType.COMMA):
            self._skip_eols()
            if self._check(TokenType.RBRACKET):
                break
            elements.append(self._parse_expression())
        self._skip_eols()
        self._consume(TokenType.RBRACKET, "']'")
        return ListLiteral(span=self._span_from(start), elements=elements)

    def _parse_dict(self) -> Expression:
        """{k: v, ...} or {k: v for x in xs}"""
        start = self._consume(TokenType.LBRACE, "'{'")
        self._skip_eols()
        if self._match(TokenType.RBRACE):
            return DictLiteral(span=self._span_from(start), entries=[])

        key, value = self._parse_entry()
        if self._check(TokenType.FOR):
            clauses = self._parse_clauses()
            self._skip_eols()
            self._consume(TokenType.RBRACE, "'}'")
            return DictComprehension(span=self._span_from(start), key=key, value=value,
                                     clauses=clauses)

        entries = [(key, value)]
        while self._match(TokenType.COMMA):
            self._skip_eols()
            if self._check(TokenType.RBRACE):
                break
            entries.append(self._parse_entry())
        self._skip_eols()
        self._consume(TokenType.RBRACE, "'}'")
        return DictLiteral(span=self._span_from(start), entries=entries)

    def _parse_entry(self):
        key = self._parse_expression()
        self._consume(TokenType.COLON, "':'")
        return key, self._parse_expression()

    def _parse_clauses(self) -> List[ComprehensionClause]:
        """One or more: for x in iterable [if cond]..."""
        clauses: List[ComprehensionClause] = []
        while self._check(TokenType.FOR):
            start = self._advance()
            variable = self._consume(TokenType.IDENTIFIER, "loop variable").value
            self._consume(TokenType.IN, "'in'")
            iterable = self._parse_expression()
            conditions: List[Expression] = []
            while self._match(TokenType.IF):
                conditions.append(self._parse_expression())
            clauses.append(ComprehensionClause(
                span=self._span_from(start),
                variable=variable,
                iterable=iterable,
                conditions=conditions,
            ))
        return clauses


def parse(source: str, filename: Optional[str] = None) -> Script:
    """
    Convenience function to parse source code.

    Args:
        source: The source code to parse
        filename: Optional filename for error messages

    Returns:
        The parsed Script

    Raises:
        LexerError: If tokenization fails
        ParserError: If parsing fails
    """
    return Parser(Lexer(source, filename)).parse()
