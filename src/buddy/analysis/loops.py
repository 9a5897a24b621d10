"""Reports break and continue statements that are not inside a loop."""

from ..ast import BreakStatement, ContinueStatement, FunctionDef
from ..errors import ErrorSeverity
from .base import AnalysisPass, NodeTransformer


class LoopCheck(AnalysisPass, NodeTransformer):
    """E501 for a stray break, E502 for a stray continue."""

    def __init__(self):
        super().__init__()
        self._depth = 0

    @property
    def name(self) -> str:
        return "loop-check"

    def check(self, script):
        self._depth = 0
        return self.visit(script)

    def _loop(self, node):
        self._depth += 1
        try:
            return self.generic_visit(node)
        finally:
            self._depth -= 1

    visit_WhileStatement = _loop
    visit_ForStatement = _loop
    visit_ForEachStatement = _loop

    def visit_FunctionDef(self, node: FunctionDef):
        # loops never reach across a function boundary
        saved, self._depth = self._depth, 0
        try:
            return self.generic_visit(node)
        finally:
            self._depth = saved

    def visit_BreakStatement(self, node: BreakStatement):
        if self._depth == 0:
            self.report("E501", "'break' outside of a loop", node.span, ErrorSeverity.ERROR)
        return node

    def visit_ContinueStatement(self, node: ContinueStatement):
        if self._depth == 0:
            self.report("E502", "'continue' outside of a loop", node.span, ErrorSeverity.ERROR)
        return node
