"""
Static analysis passes for buddy scripts.

Usage:
    from buddy.parser import parse
    from buddy.analysis import analyze

    result = analyze(parse(source), source=source)
    for diag in result.diagnostics:
        print(diag.format())
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..ast import Script
from ..errors import Diagnostic, ErrorSeverity
from .base import AnalysisPass, NodeTransformer
from .complexity import ComplexityReport, complexity_table, cyclomatic_complexity
from .folding import ConstantFolding
from .loops import LoopCheck
from .variables import NameUsage, UnusedImports, UnusedVariables

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """The analysed (possibly rewritten) script and everything reported."""
    script: Script
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == ErrorSeverity.ERROR]

    @property
    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == ErrorSeverity.WARNING]

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


def default_passes() -> List[AnalysisPass]:
    return [LoopCheck(), UnusedVariables(), UnusedImports(), ConstantFolding()]


def analyze(script: Script, passes: Optional[Sequence[AnalysisPass]] = None,
            source: Optional[str] = None) -> AnalysisResult:
    """
    Run analysis passes over a script, in order.

    Each pass sees the script produced by the previous one.

    Args:
        script: The parsed script
        passes: Passes to run (default_passes() when None)
        source: Source text, for showing offending lines

    Returns:
        AnalysisResult with the final script and all diagnostics
    """
    if passes is None:
        passes = default_passes()
    diagnostics: List[Diagnostic] = []
    for analysis_pass in passes:
        logger.debug("running analysis pass %s on %s", analysis_pass.name, script.name)
        script, found = analysis_pass.run(script, source)
        diagnostics.extend(found)
    return AnalysisResult(script, diagnostics)


__all__ = [
    'AnalysisPass',
    'NodeTransformer',
    'AnalysisResult',
    'analyze',
    'default_passes',
    'LoopCheck',
    'UnusedVariables',
    'UnusedImports',
    'NameUsage',
    'ConstantFolding',
    'ComplexityReport',
    'cyclomatic_complexity',
    'complexity_table',
]
