"""
Abstract Syntax Tree (AST) node definitions for buddy.

Every construct of the language is an expression: statements such as
loops and imports still produce (possibly empty) values when evaluated,
so all nodes that can appear in a statement list derive from Expression.
Helper nodes that only live inside other nodes (parameters, named
arguments, comprehension clauses, import symbols) derive from AstNode.

Compound assignments are desugared by the parser:
    a += 1   ->   Assignment(a, BinaryOp(a, PLUS, 1))
"""

from dataclasses import dataclass, field
from typing import Optional, List, Union, Any, Dict, Tuple
from abc import ABC
from .tokens import SourceSpan, TokenType


# =============================================================================
# Base Classes
# =============================================================================

@dataclass
class AstNode(ABC):
    """Base class for all AST nodes."""
    span: SourceSpan  # Source location for error reporting

    def accept(self, visitor: "AstVisitor") -> Any:
        """Accept a visitor for traversal."""
        method_name = f"visit_{self.__class__.__name__}"
        method = getattr(visitor, method_name, visitor.generic_visit)
        return method(self)


class AstVisitor(ABC):
    """Base class for AST visitors."""

    def generic_visit(self, node: AstNode) -> Any:
        """Default visit method."""
        raise NotImplementedError(f"No visitor for {node.__class__.__name__}")


@dataclass
class Expression(AstNode):
    """Base class for all expressions."""
    pass


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass
class Literal(Expression):
    """A literal value (integer, double, string, boolean)."""
    value: Union[int, float, str, bool]
    literal_type: TokenType  # INTEGER, DOUBLE, STRING, BOOLEAN


@dataclass
class Identifier(Expression):
    """A variable reference."""
    name: str


@dataclass
class UnaryOp(Expression):
    """A prefix operation (-x, !x, ~x)."""
    operator: TokenType
    operand: Expression


@dataclass
class BinaryOp(Expression):
    """A binary operation (e.g., a + b, x && y)."""
    left: Expression
    operator: TokenType
    right: Expression


@dataclass
class Assignment(Expression):
    """Assignment to an identifier or an index expression."""
    target: Expression  # Identifier or IndexAccess
    value: Expression


@dataclass
class ListLiteral(Expression):
    """An array literal (e.g., [1, 2, 3])."""
    elements: List[Expression]


@dataclass
class DictLiteral(Expression):
    """A dict literal (e.g., {"a": 1})."""
    entries: List[Tuple[Expression, Expression]]


@dataclass
class IndexAccess(Expression):
    """Index or slice access (e.g., arr[0], s[1:3])."""
    object: Expression
    index: Expression  # Expression or Slice


@dataclass
class Slice(Expression):
    """The start:end:step part of a slice access; each part is optional."""
    start: Optional[Expression] = None
    end: Optional[Expression] = None
    step: Optional[Expression] = None


@dataclass
class PathAccess(Expression):
    """
    Dotted access rooted at a name.

    ``mod.fn(x)`` is PathAccess("mod", FunctionCall("fn", ...)) and
    ``a.b.c`` nests as PathAccess("a", PathAccess("b", Identifier("c"))).
    """
    name: str
    member: Expression  # Identifier, FunctionCall or PathAccess


@dataclass
class NamedArgument(AstNode):
    """A name=value argument at a call site."""
    name: str
    value: Expression


@dataclass
class FunctionCall(Expression):
    """A call of a named function (e.g., f(1, b=2))."""
    name: str
    arguments: List[Expression] = field(default_factory=list)
    named_arguments: List[NamedArgument] = field(default_factory=list)


@dataclass
class IfExpr(Expression):
    """
    Conditional, used for both the if statement and the ternary operator.

    For statements the branches are Blocks; the alternative may also be
    another keyword statement (``else if ...``).
    """
    condition: Expression
    then_branch: Expression
    else_branch: Optional[Expression] = None


@dataclass
class ComprehensionClause(AstNode):
    """A single ``for variable in iterable [if cond]...`` clause."""
    variable: str
    iterable: Expression
    conditions: List[Expression] = field(default_factory=list)


@dataclass
class ListComprehension(Expression):
    """An array comprehension with one or more clauses.

    The clauses are evaluated left-to-right as nested loops:
        [x * y for x in xs for y in ys if x < y]
    """
    element: Expression
    clauses: List[ComprehensionClause] = field(default_factory=list)


@dataclass
class DictComprehension(Expression):
    """A dict comprehension: {k: v for x in xs}."""
    key: Expression
    value: Expression
    clauses: List[ComprehensionClause] = field(default_factory=list)


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass
class Block(Expression):
    """A braced list of statements."""
    statements: List[Expression] = field(default_factory=list)


@dataclass
class LetStatement(Expression):
    """let name = value"""
    name: str
    value: Expression


@dataclass
class ReturnStatement(Expression):
    value: Optional[Expression] = None


@dataclass
class BreakStatement(Expression):
    pass


@dataclass
class ContinueStatement(Expression):
    pass


@dataclass
class AssertStatement(Expression):
    condition: Expression


@dataclass
class WhileStatement(Expression):
    condition: Expression
    body: Block


@dataclass
class ForStatement(Expression):
    """C-style loop: for init; condition; increment { body }."""
    init: Optional[Expression]
    condition: Optional[Expression]
    increment: Optional[Expression]
    body: Block


@dataclass
class ForEachStatement(Expression):
    """for variable in iterable { body }"""
    variable: str
    iterable: Expression
    body: Block


@dataclass
class ImportSymbol(AstNode):
    """One ``name [as alias]`` entry of a from-import."""
    name: str
    alias: Optional[str] = None

    @property
    def bound_name(self) -> str:
        return self.alias or self.name


@dataclass
class ImportStatement(Expression):
    """
    Module import.

    ``import a.b as c`` has path ["a", "b"] and alias "c"; a from-import
    (``from a.b import x as y``) carries its symbols instead.
    """
    path: List[str]
    alias: Optional[str] = None
    symbols: List[ImportSymbol] = field(default_factory=list)

    @property
    def dotted_path(self) -> str:
        return ".".join(self.path)

    @property
    def bound_name(self) -> str:
        """Name the module is registered under (defaults to the last segment)."""
        return self.alias or self.path[-1]


# =============================================================================
# Declarations
# =============================================================================

@dataclass
class Parameter(AstNode):
    """A function parameter with an optional default."""
    name: str
    default_value: Optional[Expression] = None


@dataclass
class FunctionDef(Expression):
    """
    def name(a, b=2) { body }

    Parameters without defaults always precede those with defaults.
    """
    name: str
    parameters: List[Parameter]
    body: Block

    @property
    def arity(self) -> int:
        return len(self.parameters)


@dataclass
class Script(AstNode):
    """A complete source file: top-level statements plus its functions."""
    name: str
    statements: List[Expression] = field(default_factory=list)
    functions: Dict[str, FunctionDef] = field(default_factory=dict)


# =============================================================================
# Visitor Helpers
# =============================================================================

class FormatVisitor(AstVisitor):
    """Debug visitor that renders the AST structure as indented text."""

    def __init__(self, indent: int = 0):
        self.indent = indent
        self.lines: List[str] = []

    def _emit(self, text: str) -> None:
        self.lines.append("  " * self.indent + text)

    def _nested(self, node: AstNode) -> None:
        child = FormatVisitor(self.indent + 2)
        child.generic_visit(node)
        self.lines.extend(child.lines)

    def _item(self, item: Any) -> None:
        if isinstance(item, AstNode):
            self._nested(item)
        elif isinstance(item, tuple):
            for part in item:
                self._item(part)
        else:
            self._emit(f"    {item!r}")

    def generic_visit(self, node: AstNode) -> None:
        self._emit(f"{node.__class__.__name__}")
        for name, value in node.__dict__.items():
            if name == "span":
                continue
            if isinstance(value, AstNode):
                self._emit(f"  {name}:")
                self._nested(value)
            elif isinstance(value, dict):
                self._emit(f"  {name}: [")
                for item in value.values():
                    self._item(item)
                self._emit("  ]")
            elif isinstance(value, list):
                self._emit(f"  {name}: [")
                for item in value:
                    self._item(item)
                self._emit("  ]")
            elif isinstance(value, TokenType):
                self._emit(f"  {name}: {value.name}")
            else:
                self._emit(f"  {name}: {value!r}")


def format_ast(node: AstNode) -> str:
    """Render an AST node as an indented debug tree."""
    visitor = FormatVisitor()
    visitor.generic_visit(node)
    return "\n".join(visitor.lines)


def print_ast(node: AstNode) -> None:
    """Print an AST node for debugging."""
    print(format_ast(node))
