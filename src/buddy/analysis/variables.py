"""
Unused variable and unused import detection.

Top-level variables are visible to every function body (functions are
parented on their module's environment), so a global counts as used when
any part of the script reads it. Function locals only count reads inside
their own function.
"""

from typing import Dict, List, Set

from ..ast import (
    AstNode, Assignment, FunctionCall, FunctionDef, Identifier,
    ImportStatement, LetStatement, PathAccess, Script,
)
from ..tokens import SourceSpan
from .base import AnalysisPass, NodeTransformer


class NameUsage(NodeTransformer):
    """Collects assigned and read variable names below a node."""

    def __init__(self, descend_functions: bool = False):
        self.assigned: Dict[str, SourceSpan] = {}
        self.read: Set[str] = set()
        self.calls: Set[str] = set()
        self.modules: Set[str] = set()
        self.descend_functions = descend_functions

    def visit_Assignment(self, node: Assignment):
        if isinstance(node.target, Identifier):
            self.assigned.setdefault(node.target.name, node.target.span)
            self.visit(node.value)
            return node
        return self.generic_visit(node)

    def visit_LetStatement(self, node: LetStatement):
        self.assigned.setdefault(node.name, node.span)
        self.visit(node.value)
        return node

    def visit_Identifier(self, node: Identifier):
        self.read.add(node.name)
        return node

    def visit_FunctionCall(self, node: FunctionCall):
        self.calls.add(node.name)
        return self.generic_visit(node)

    def visit_PathAccess(self, node: PathAccess):
        self.read.add(node.name)
        self.modules.add(node.name)
        self._visit_member(node.member)
        return node

    def _visit_member(self, member: AstNode) -> None:
        # member names are keys or module functions, not variables
        if isinstance(member, PathAccess):
            self._visit_member(member.member)
        elif isinstance(member, FunctionCall):
            self.generic_visit(member)

    def visit_FunctionDef(self, node: FunctionDef):
        if self.descend_functions:
            return self.generic_visit(node)
        return node


def _ignored(name: str) -> bool:
    return name.startswith("_")


class UnusedVariables(AnalysisPass):
    """W501 for each variable that is assigned but never read."""

    @property
    def name(self) -> str:
        return "unused-variables"

    def check(self, script: Script) -> Script:
        everywhere = NameUsage(descend_functions=True)
        everywhere.visit(script)

        top = NameUsage()
        for stmt in script.statements:
            top.visit(stmt)
        for name, span in top.assigned.items():
            if name not in everywhere.read and not _ignored(name):
                self.report("W501", f"variable '{name}' is assigned but never used", span)

        for function in script.functions.values():
            local = NameUsage()
            for param in function.parameters:
                local.visit(param.default_value)
            local.visit(function.body)
            for name, span in local.assigned.items():
                if name not in local.read and not _ignored(name):
                    self.report("W501",
                                f"variable '{name}' is assigned but never used in '{function.name}'",
                                span)
        return script


class _ImportCollector(NodeTransformer):

    def __init__(self):
        self.imports: List[ImportStatement] = []

    def visit_ImportStatement(self, node: ImportStatement):
        self.imports.append(node)
        return node


class UnusedImports(AnalysisPass):
    """W502 for each imported module or symbol that is never referenced."""

    @property
    def name(self) -> str:
        return "unused-imports"

    def check(self, script: Script) -> Script:
        collector = _ImportCollector()
        collector.visit(script)
        usage = NameUsage(descend_functions=True)
        usage.visit(script)

        for stmt in collector.imports:
            if not stmt.symbols:
                if stmt.bound_name not in usage.modules:
                    self.report("W502", f"module '{stmt.dotted_path}' is imported but never used",
                                stmt.span)
                continue
            for symbol in stmt.symbols:
                if symbol.bound_name not in usage.calls:
                    self.report("W502",
                                f"'{symbol.bound_name}' is imported from '{stmt.dotted_path}' "
                                f"but never used",
                                symbol.span)
        return script
