"""
Constant folding.

Replaces unary and binary operations whose operands are literals with the
literal result, computed by the runtime value model so folded and
unfolded programs agree. An operation that would fail (``1 / 0``,
``true + 1``) is left in place to fail at runtime with a located error.
"""

import logging
from typing import Optional

from ..ast import AstNode, BinaryOp, Literal, Script, UnaryOp
from ..errors import EvaluationError
from ..runtime.values import (
    Primitive, Int, Float, Bool, String, binary_operation, unary_operation,
)
from ..tokens import TokenType
from .base import AnalysisPass, NodeTransformer

logger = logging.getLogger(__name__)

# Longer strings are left for runtime
MAX_FOLDED_STRING = 4096


def literal_value(node: Literal) -> Primitive:
    """The runtime value of a literal node."""
    if node.literal_type == TokenType.INTEGER:
        return Int(int(node.value))
    elif node.literal_type == TokenType.DOUBLE:
        return Float(float(node.value))
    elif node.literal_type == TokenType.BOOLEAN:
        return Bool(bool(node.value))
    return String(str(node.value))


def to_literal(value: Primitive, template: AstNode) -> Optional[Literal]:
    """Build a literal node for a folded value, or None if it has no literal form."""
    if isinstance(value, Bool):
        literal_type = TokenType.BOOLEAN
    elif isinstance(value, Int):
        literal_type = TokenType.INTEGER
    elif isinstance(value, Float):
        literal_type = TokenType.DOUBLE
    elif isinstance(value, String):
        if len(value.value) > MAX_FOLDED_STRING:
            return None
        literal_type = TokenType.STRING
    else:
        return None
    return Literal(span=template.span, value=value.raw(), literal_type=literal_type)


class ConstantFolding(AnalysisPass, NodeTransformer):
    """Folds operations on literals; reports nothing."""

    def __init__(self):
        super().__init__()
        self.folded = 0

    @property
    def name(self) -> str:
        return "constant-folding"

    def check(self, script: Script) -> Script:
        self.folded = 0
        result = self.visit(script)
        logger.debug("folded %d constant expression(s)", self.folded)
        return result

    def _fold(self, node, compute) -> object:
        try:
            value = compute()
        except EvaluationError:
            return node
        folded = to_literal(value, node)
        if folded is None:
            return node
        self.folded += 1
        return folded

    def visit_BinaryOp(self, node: BinaryOp):
        node = self.generic_visit(node)
        if not (isinstance(node.left, Literal) and isinstance(node.right, Literal)):
            return node
        left, right = literal_value(node.left), literal_value(node.right)
        return self._fold(node, lambda: binary_operation(node.operator, left, right))

    def visit_UnaryOp(self, node: UnaryOp):
        node = self.generic_visit(node)
        if not isinstance(node.operand, Literal):
            return node
        operand = literal_value(node.operand)
        return self._fold(node, lambda: unary_operation(node.operator, operand))
