"""
Cyclomatic complexity.

Complexity starts at 1 and grows by one per decision point: each if or
ternary, each loop, each comprehension clause and filter, and each
``&&`` / ``||``.
"""

from typing import Dict

from ..ast import AstNode, BinaryOp, ComprehensionClause, FunctionDef, Script
from ..errors import ErrorSeverity
from ..tokens import TokenType
from .base import AnalysisPass, NodeTransformer


class _DecisionCounter(NodeTransformer):

    def __init__(self):
        self.count = 0

    def _decision(self, node):
        self.count += 1
        return self.generic_visit(node)

    visit_IfExpr = _decision
    visit_WhileStatement = _decision
    visit_ForStatement = _decision
    visit_ForEachStatement = _decision

    def visit_ComprehensionClause(self, node: ComprehensionClause):
        self.count += 1 + len(node.conditions)
        return self.generic_visit(node)

    def visit_BinaryOp(self, node: BinaryOp):
        if node.operator in (TokenType.AND, TokenType.OR):
            self.count += 1
        return self.generic_visit(node)

    def visit_FunctionDef(self, node: FunctionDef):
        return node


def cyclomatic_complexity(node: AstNode) -> int:
    """
    Compute the cyclomatic complexity of a function or script.

    For a Script only the top-level statements count; each function is
    measured on its own.
    """
    counter = _DecisionCounter()
    if isinstance(node, FunctionDef):
        counter.generic_visit(node)
    elif isinstance(node, Script):
        for stmt in node.statements:
            counter.visit(stmt)
    else:
        counter.visit(node)
    return 1 + counter.count


def complexity_table(script: Script) -> Dict[str, int]:
    """Complexity of the script body (under its name) and of every function."""
    table = {script.name: cyclomatic_complexity(script)}
    for name, function in script.functions.items():
        table[name] = cyclomatic_complexity(function)
    return table


class ComplexityReport(AnalysisPass):
    """I501 for every function, with its complexity."""

    def __init__(self, threshold: int = 0):
        super().__init__()
        self.threshold = threshold

    @property
    def name(self) -> str:
        return "complexity"

    def check(self, script: Script) -> Script:
        for function in script.functions.values():
            value = cyclomatic_complexity(function)
            if value >= self.threshold:
                self.report("I501",
                            f"function '{function.name}' has cyclomatic complexity {value}",
                            function.span, ErrorSeverity.INFO)
        return script
