"""
Execution context for the buddy interpreter.

Manages environments (variable scopes), the stack of modules whose
functions are visible, call depth, output stream and the source text
used for error messages. Also defines the control signals used to unwind
the evaluator for return, break, continue and exit.
"""

import logging
import sys
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TextIO

from .values import Primitive
from ..errors import EvaluationError, UndefinedReferenceError, RecursionLimitError
from ..tokens import SourceSpan

logger = logging.getLogger(__name__)


DEFAULT_MAX_DEPTH = 1024


# =============================================================================
# Environments
# =============================================================================

@dataclass
class Binding:
    """A single variable binding."""
    value: Optional[Primitive]
    readonly: bool = False


@dataclass
class Environment:
    """
    A single scope containing variable bindings.

    Environments form a chain via the `parent` field. Lookups walk the
    chain innermost first; definitions always land in this frame.
    """
    bindings: Dict[str, Binding] = field(default_factory=dict)
    parent: Optional["Environment"] = None
    name: str = "anonymous"  # For debugging

    def lookup(self, name: str) -> Optional[Binding]:
        """Find the binding for a name in this scope or parent scopes."""
        env: Optional[Environment] = self
        while env is not None:
            binding = env.bindings.get(name)
            if binding is not None:
                return binding
            env = env.parent
        return None

    def resolve(self, name: str) -> Optional[Primitive]:
        """
        Look up a variable value.

        Raises:
            UndefinedReferenceError: If no scope in the chain binds `name`
        """
        binding = self.lookup(name)
        if binding is None:
            raise UndefinedReferenceError(f"{name}: undefined variable")
        return binding.value

    def define(self, name: str, value: Optional[Primitive], readonly: bool = False) -> None:
        """Bind a variable in this scope (shadowing any parent binding)."""
        current = self.bindings.get(name)
        if current is not None and current.readonly:
            raise EvaluationError(f"{name}: read-only value can not be reassigned")
        self.bindings[name] = Binding(value, readonly)

    def contains(self, name: str) -> bool:
        """Check if a variable exists in this scope or parents."""
        return self.lookup(name) is not None

    def enclosed(self, name: str = "block") -> "Environment":
        """Create a child environment."""
        return Environment(parent=self, name=name)

    def names(self) -> List[str]:
        """Names bound directly in this scope."""
        return list(self.bindings)


# =============================================================================
# Control Signals
# =============================================================================

class ControlSignal(Exception):
    """Base class for non-error unwinding of the evaluator."""

    def __init__(self, span: Optional[SourceSpan] = None):
        super().__init__(self.__class__.__name__)
        self.span = span


class ReturnSignal(ControlSignal):
    """Raised by `return`; absorbed by function and script bodies."""

    def __init__(self, value: Optional[Primitive], span: Optional[SourceSpan] = None):
        super().__init__(span)
        self.value = value


class BreakSignal(ControlSignal):
    """Raised by `break`; absorbed by the nearest loop."""


class ContinueSignal(ControlSignal):
    """Raised by `continue`; absorbed by the nearest loop."""


class ExitSignal(ControlSignal):
    """Raised by the exit() builtin; ends the whole run."""

    def __init__(self, code: int = 0, span: Optional[SourceSpan] = None):
        super().__init__(span)
        self.code = code


# =============================================================================
# Execution Context
# =============================================================================

@dataclass
class ExecutionContext:
    """
    The full execution context for interpreting buddy code.

    Tracks:
    - The current environment
    - The stack of modules (the innermost one resolves function calls)
    - Call depth against max_depth
    - Output stream for print
    - Source lines per file for error messages
    """
    environment: Environment = field(default_factory=lambda: Environment(name="global"))
    modules: List[Any] = field(default_factory=list)
    depth: int = 0
    max_depth: int = DEFAULT_MAX_DEPTH
    stdout: TextIO = field(default_factory=lambda: sys.stdout)
    sources: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def module(self) -> Any:
        """The module whose functions are currently visible."""
        if not self.modules:
            return None
        return self.modules[-1]

    def add_source(self, filename: Optional[str], source: str) -> None:
        """Remember source text for error messages."""
        self.sources[filename or "<input>"] = source.replace("\r\n", "\n").split("\n")

    def source_line(self, span: Optional[SourceSpan]) -> Optional[str]:
        """Get the source line a span starts on, if the file is known."""
        if span is None:
            return None
        lines = self.sources.get(span.start.filename or "<input>")
        if lines is None:
            return None
        line_num = span.start.line
        if 1 <= line_num <= len(lines):
            return lines[line_num - 1]
        return None

    def resolve(self, name: str) -> Optional[Primitive]:
        """Look up a variable in the current environment chain."""
        return self.environment.resolve(name)

    def define(self, name: str, value: Optional[Primitive]) -> None:
        """Define a variable in the current environment."""
        self.environment.define(name, value)

    @contextmanager
    def new_scope(self, name: str = "block"):
        """
        Context manager to create a new nested environment.

        Usage:
            with ctx.new_scope("while-body"):
                # variables defined here are local to this scope
                ctx.define("i", Int(0))
        """
        old_environment = self.environment
        self.environment = old_environment.enclosed(name)
        try:
            yield self.environment
        finally:
            self.environment = old_environment

    @contextmanager
    def call_frame(self, environment: Environment, module: Any = None):
        """
        Switch to a function (or module) environment for the duration of a call.

        Raises:
            RecursionLimitError: If the call would exceed max_depth
        """
        if self.depth >= self.max_depth:
            logger.debug("call depth limit %d reached in %s", self.max_depth, environment.name)
            raise RecursionLimitError(
                f"maximum call depth exceeded ({self.max_depth})",
                hints=["check for unbounded recursion"],
            )
        old_environment = self.environment
        self.environment = environment
        if module is not None:
            self.modules.append(module)
        self.depth += 1
        try:
            yield environment
        finally:
            self.depth -= 1
            if module is not None:
                self.modules.pop()
            self.environment = old_environment
