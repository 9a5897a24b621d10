"""
AST walking framework for static analysis.

Passes walk a parsed Script before interpretation. They can report
diagnostics (checks such as loop placement or unused names), rewrite
nodes (constant folding), or both. Passes compose through analyze().
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import fields, replace
from typing import Any, Dict, List, Optional, Tuple

from ..ast import AstNode, AstVisitor, Script
from ..errors import Diagnostic, ErrorSeverity
from ..tokens import SourceSpan

logger = logging.getLogger(__name__)


class NodeTransformer(AstVisitor):
    """
    A walker that rebuilds the tree bottom-up.

    Every node is dispatched to ``visit_<ClassName>`` when the subclass
    defines one, otherwise to generic_visit, which visits all child nodes
    (including those held in lists, tuples and dicts) and returns a copy
    of the node only when a child changed. Subclasses return a replacement
    node, or the node itself to keep it.
    """

    def visit(self, node: Optional[AstNode]) -> Any:
        if node is None:
            return None
        return node.accept(self)

    def generic_visit(self, node: AstNode) -> AstNode:
        changes: Dict[str, Any] = {}
        for f in fields(node):
            if f.name == "span":
                continue
            value = getattr(node, f.name)
            new_value = self._transform(value)
            if new_value is not value:
                changes[f.name] = new_value
        if not changes:
            return node
        return replace(node, **changes)

    def _transform(self, value: Any) -> Any:
        if isinstance(value, AstNode):
            return value.accept(self)
        if isinstance(value, list):
            items = [self._transform(v) for v in value]
            if all(a is b for a, b in zip(items, value)):
                return value
            return items
        if isinstance(value, tuple):
            items = tuple(self._transform(v) for v in value)
            if all(a is b for a, b in zip(items, value)):
                return value
            return items
        if isinstance(value, dict):
            items = {k: self._transform(v) for k, v in value.items()}
            if all(items[k] is value[k] for k in value):
                return value
            return items
        return value


class AnalysisPass(ABC):
    """
    Base class for analysis passes.

    A pass receives a Script and returns a (possibly rewritten) Script
    together with the diagnostics it produced.
    """

    def __init__(self):
        self.source_lines: List[str] = []
        self.diagnostics: List[Diagnostic] = []

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of this pass for debugging/logging."""
        pass

    @abstractmethod
    def check(self, script: Script) -> Script:
        """Walk the script, recording diagnostics via report()."""
        pass

    def run(self, script: Script, source: Optional[str] = None) -> Tuple[Script, List[Diagnostic]]:
        """
        Apply this pass to a script.

        Args:
            script: The parsed script
            source: Source text, used to show the offending line

        Returns:
            The resulting script and the diagnostics of this run
        """
        self.source_lines = source.replace("\r\n", "\n").split("\n") if source else []
        self.diagnostics = []
        result = self.check(script)
        logger.debug("pass %s produced %d diagnostic(s)", self.name, len(self.diagnostics))
        return result, self.diagnostics

    def report(self, code: str, message: str, span: Optional[SourceSpan],
               severity: ErrorSeverity = ErrorSeverity.WARNING,
               hints: Optional[List[str]] = None) -> None:
        source_line = None
        if span is not None and 1 <= span.start.line <= len(self.source_lines):
            source_line = self.source_lines[span.start.line - 1]
        self.diagnostics.append(Diagnostic(
            code=code,
            message=message,
            severity=severity,
            span=span,
            source_line=source_line,
            hints=hints or [],
        ))

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: {self.name}>"
