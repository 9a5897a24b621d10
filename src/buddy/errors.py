"""
Diagnostics and the buddy error hierarchy.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Evaluation errors
- E5xx/W5xx/I5xx: Static analysis diagnostics
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List
from .tokens import SourceSpan, Token


TAB_WIDTH = 4


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class Diagnostic:
    """A single diagnostic message (error, warning, etc.)."""
    code: str                       # E001, E101, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity
    span: Optional[SourceSpan] = None
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    @property
    def location(self) -> str:
        if self.span is None:
            return "<input>"
        return str(self.span.start)

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = [f"{self.location}: {self.severity.value}[{self.code}]: {self.message}"]

        if show_source and self.span is not None and self.source_line is not None:
            line = self.source_line.replace("\t", " " * TAB_WIDTH)
            col = self.span.start.column
            prefix = self.source_line[:col - 1].replace("\t", " " * TAB_WIDTH)
            if self.span.start.line == self.span.end.line:
                width = max(1, self.span.end.column - col)
            else:
                width = max(1, len(self.source_line) - col + 1)
            line_num = str(self.span.start.line)
            parts.append("    |")
            parts.append(f"{line_num:>3} | {line}")
            parts.append(f"    | {' ' * len(prefix)}^{'~' * (width - 1)}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        data = {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "hints": self.hints,
        }
        if self.span is not None:
            data["range"] = {
                "file": self.span.start.filename,
                "start": {"line": self.span.start.line, "column": self.span.start.column},
                "end": {"line": self.span.end.line, "column": self.span.end.column},
            }
        return data


class BuddyError(Exception):
    """Base exception for buddy errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    @property
    def code(self) -> str:
        return self.diagnostic.code

    @property
    def message(self) -> str:
        return self.diagnostic.message

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexerError(BuddyError):
    """Error during lexical analysis (E0xx)."""
    pass


class ParserError(BuddyError):
    """Error during parsing (E1xx)."""
    pass


class EvaluationError(BuddyError):
    """
    Error raised while evaluating a script (E4xx).

    The value layer raises these without a location; the interpreter
    attaches the span of the innermost node being evaluated.
    """
    code_value = "E400"

    def __init__(self, message: str, span: Optional[SourceSpan] = None,
                 source_line: Optional[str] = None, hints: Optional[List[str]] = None):
        super().__init__(Diagnostic(
            code=self.code_value,
            message=message,
            severity=ErrorSeverity.ERROR,
            span=span,
            source_line=source_line,
            hints=hints or [],
        ))

    @property
    def located(self) -> bool:
        return self.diagnostic.span is not None

    def locate(self, span: SourceSpan, source_line: Optional[str]) -> "EvaluationError":
        """Attach a location unless a more precise one is already set."""
        if not self.located:
            self.diagnostic.span = span
            self.diagnostic.source_line = source_line
        return self


class UnsupportedOperationError(EvaluationError):
    """The value type has no such operator capability (E401)."""
    code_value = "E401"


class IncompatibleTypeError(EvaluationError):
    """The capability exists but the operand types disagree (E402)."""
    code_value = "E402"


class UndefinedReferenceError(EvaluationError):
    """Variable, function or module not found (E403)."""
    code_value = "E403"


class DomainError(EvaluationError):
    """Base class for value domain violations."""
    code_value = "E404"


class DivisionByZeroError(DomainError):
    """Division or modulo by zero (E404)."""
    code_value = "E404"

    def __init__(self, message: str = "division by zero", **kwargs):
        super().__init__(message, **kwargs)


class IndexOutOfRangeError(DomainError):
    """Array or string index outside its bounds (E405)."""
    code_value = "E405"


class KeyNotFoundError(DomainError):
    """Dict key missing (E406)."""
    code_value = "E406"


class ControlFlowError(EvaluationError):
    """break/continue used outside a loop (E407)."""
    code_value = "E407"


class RecursionLimitError(EvaluationError):
    """Maximum call depth exceeded (E408)."""
    code_value = "E408"


class AssertionFailedError(EvaluationError):
    """assert on a falsy value (E409)."""
    code_value = "E409"


class ArgumentError(EvaluationError):
    """Arguments do not match the callee's parameters (E410)."""
    code_value = "E410"


class ModuleError(EvaluationError):
    """Import failures and duplicate registrations (E411)."""
    code_value = "E411"


# --- Lexer error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E001: Unexpected character."""
    diag = Diagnostic(
        code="E001",
        message=f"unexpected character '{char}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexerError:
    """E002: Unterminated string literal."""
    diag = Diagnostic(
        code="E002",
        message="unterminated string literal",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["string literals must be closed with matching quotes"],
    )
    return LexerError(diag)


def error_unterminated_comment(span: SourceSpan, source_line: str = None) -> LexerError:
    """E003: Unterminated block comment."""
    diag = Diagnostic(
        code="E003",
        message="unterminated block comment (expected closing */)",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_invalid_number_literal(text: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E004: Invalid number literal."""
    diag = Diagnostic(
        code="E004",
        message=f"invalid number literal '{text}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["valid forms: 42, 1_000, 0x1A, 0b101, 0o17, 1.5"],
    )
    return LexerError(diag)


# --- Parser error codes ---

def error_unexpected_token(expected: str, found: Token, source_line: str = None) -> ParserError:
    """E101: Unexpected token."""
    diag = Diagnostic(
        code="E101",
        message=f"expected {expected}, found {found.describe()}",
        severity=ErrorSeverity.ERROR,
        span=found.span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_unexpected_eof(expected: str, span: SourceSpan, source_line: str = None) -> ParserError:
    """E102: Unexpected end of input."""
    diag = Diagnostic(
        code="E102",
        message=f"unexpected end of input, expected {expected}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_invalid_expression(found: Token, source_line: str = None) -> ParserError:
    """E103: Token cannot start an expression."""
    diag = Diagnostic(
        code="E103",
        message=f"invalid expression starting with {found.describe()}",
        severity=ErrorSeverity.ERROR,
        span=found.span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_invalid_assignment(span: SourceSpan, source_line: str = None) -> ParserError:
    """E104: Assignment to something other than a variable or index."""
    diag = Diagnostic(
        code="E104",
        message="invalid assignment target",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["only variables and index expressions can be assigned"],
    )
    return ParserError(diag)


def error_too_many_parameters(name: str, limit: int, span: SourceSpan,
                              source_line: str = None) -> ParserError:
    """E105: Parameter list over the arity limit."""
    diag = Diagnostic(
        code="E105",
        message=f"too many parameters given to function '{name}' (limit is {limit})",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_misplaced_declaration(what: str, span: SourceSpan, source_line: str = None) -> ParserError:
    """E106: Declaration outside of the place it is allowed."""
    diag = Diagnostic(
        code="E106",
        message=what,
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_invalid_call(span: SourceSpan, source_line: str = None) -> ParserError:
    """E107: Call on something that is not a function name."""
    diag = Diagnostic(
        code="E107",
        message="only named functions can be called",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_duplicate_function(name: str, span: SourceSpan, source_line: str = None) -> ParserError:
    """E108: Function declared twice in the same script."""
    diag = Diagnostic(
        code="E108",
        message=f"function '{name}' already defined",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


class DiagnosticCollector:
    """Collects diagnostics from analysis passes."""

    def __init__(self, max_errors: int = 20):
        self.diagnostics: List[Diagnostic] = []
        self.max_errors = max_errors
        self._error_count = 0

    def add(self, diagnostic: Diagnostic) -> None:
        """Add a diagnostic."""
        self.diagnostics.append(diagnostic)
        if diagnostic.severity == ErrorSeverity.ERROR:
            self._error_count += 1

    def extend(self, diagnostics: List[Diagnostic]) -> None:
        for diagnostic in diagnostics:
            self.add(diagnostic)

    def add_error(self, error: BuddyError) -> None:
        """Add an error exception as a diagnostic."""
        self.add(error.diagnostic)

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def warning_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity == ErrorSeverity.WARNING)

    @property
    def has_errors(self) -> bool:
        return self._error_count > 0

    @property
    def has_warnings(self) -> bool:
        return self.warning_count > 0

    @property
    def should_stop(self) -> bool:
        """Check if we've hit the max error limit."""
        return self._error_count >= self.max_errors

    def format_all(self, show_source: bool = True) -> str:
        """Format all diagnostics for display."""
        parts = [d.format(show_source) for d in self.diagnostics]
        if self._error_count > 0:
            parts.append(f"{self._error_count} error(s), {self.warning_count} warning(s)")
        elif self.warning_count > 0:
            parts.append(f"{self.warning_count} warning(s)")
        return "\n\n".join(parts)

    def to_json(self) -> dict:
        """Convert all diagnostics to JSON format."""
        return {
            "diagnostics": [d.to_json() for d in self.diagnostics],
            "error_count": self._error_count,
            "warning_count": self.warning_count,
        }
