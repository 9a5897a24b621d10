"""
Tests for diagnostics and the error hierarchy.
"""

import pytest

from buddy import (
    Diagnostic, DiagnosticCollector, ErrorSeverity, SourceLocation, SourceSpan,
    EvaluationError, UnsupportedOperationError, IncompatibleTypeError,
    UndefinedReferenceError, DomainError, DivisionByZeroError, IndexOutOfRangeError,
    KeyNotFoundError, ControlFlowError, RecursionLimitError, AssertionFailedError,
    ArgumentError, ModuleError, BuddyError,
)


def span(line, start, end, filename="t.bud"):
    return SourceSpan(
        SourceLocation(line, start, start - 1, filename),
        SourceLocation(line, end, end - 1, filename),
    )


class TestDiagnosticFormat:
    """Test diagnostic rendering."""

    def test_with_source(self):
        """Test the location header, source line and underline."""
        diag = Diagnostic(
            code="E403",
            message="foo: undefined variable",
            severity=ErrorSeverity.ERROR,
            span=span(1, 5, 8),
            source_line="x = foo + 1",
        )
        assert diag.format().split("\n") == [
            "t.bud:1:5: error[E403]: foo: undefined variable",
            "    |",
            "  1 | x = foo + 1",
            "    |     ^~~",
        ]

    def test_without_source(self):
        """Test a diagnostic without source text is one line."""
        diag = Diagnostic("W501", "variable 'x' is assigned but never used",
                          ErrorSeverity.WARNING, span=span(3, 1, 2))
        assert diag.format() == "t.bud:3:1: warning[W501]: variable 'x' is assigned but never used"

    def test_no_span(self):
        """Test a diagnostic without a location."""
        diag = Diagnostic("E400", "boom", ErrorSeverity.ERROR)
        assert diag.format() == "<input>: error[E400]: boom"

    def test_tabs_expanded(self):
        """Test the underline lines up with tab-indented source."""
        diag = Diagnostic("E401", "bad", ErrorSeverity.ERROR,
                          span=span(2, 2, 3), source_line="\tx")
        lines = diag.format().split("\n")
        assert lines[2] == "  2 |     x"
        assert lines[3] == "    |     ^"

    def test_hints(self):
        """Test hints follow the source excerpt."""
        diag = Diagnostic("E408", "too deep", ErrorSeverity.ERROR,
                          hints=["check for unbounded recursion"])
        assert diag.format().endswith("    = hint: check for unbounded recursion")

    def test_to_json(self):
        """Test the JSON form."""
        data = Diagnostic("E101", "unexpected token", ErrorSeverity.ERROR,
                          span=span(2, 3, 5)).to_json()
        assert data["code"] == "E101"
        assert data["severity"] == "error"
        assert data["range"] == {
            "file": "t.bud",
            "start": {"line": 2, "column": 3},
            "end": {"line": 2, "column": 5},
        }

    def test_to_json_no_span(self):
        """Test no range is emitted without a location."""
        assert "range" not in Diagnostic("E400", "x", ErrorSeverity.ERROR).to_json()


class TestEvaluationErrors:
    """Test evaluation error classes."""

    @pytest.mark.parametrize("error_class,code", [
        (EvaluationError, "E400"),
        (UnsupportedOperationError, "E401"),
        (IncompatibleTypeError, "E402"),
        (UndefinedReferenceError, "E403"),
        (DomainError, "E404"),
        (IndexOutOfRangeError, "E405"),
        (KeyNotFoundError, "E406"),
        (ControlFlowError, "E407"),
        (RecursionLimitError, "E408"),
        (AssertionFailedError, "E409"),
        (ArgumentError, "E410"),
        (ModuleError, "E411"),
    ])
    def test_codes(self, error_class, code):
        """Test each error class carries its code."""
        err = error_class("message")
        assert err.code == code
        assert err.message == "message"
        assert isinstance(err, BuddyError)

    def test_division_by_zero(self):
        """Test the division error defaults."""
        err = DivisionByZeroError()
        assert err.code == "E404"
        assert err.message == "division by zero"
        assert isinstance(err, DomainError)

    def test_locate_keeps_first(self):
        """Test the innermost location is kept."""
        err = EvaluationError("bad")
        assert not err.located
        err.locate(span(2, 3, 4), "inner")
        err.locate(span(1, 1, 9), "outer")
        assert err.diagnostic.span.start.line == 2
        assert err.diagnostic.source_line == "inner"

    def test_str_is_formatted(self):
        """Test str() gives the full diagnostic."""
        err = ArgumentError("f: missing argument 'a'").locate(span(4, 1, 5), "f(b)")
        assert str(err).startswith("t.bud:4:1: error[E410]: f: missing argument 'a'")


class TestDiagnosticCollector:
    """Test collecting diagnostics."""

    def make(self):
        collector = DiagnosticCollector(max_errors=2)
        collector.add(Diagnostic("W501", "unused", ErrorSeverity.WARNING))
        collector.add_error(ModuleError("missing"))
        return collector

    def test_counts(self):
        """Test error and warning counts."""
        collector = self.make()
        assert collector.error_count == 1
        assert collector.warning_count == 1
        assert collector.has_errors
        assert collector.has_warnings
        assert not collector.should_stop

    def test_should_stop(self):
        """Test the error limit."""
        collector = self.make()
        collector.extend([Diagnostic("E501", "stray", ErrorSeverity.ERROR)])
        assert collector.should_stop

    def test_format_all(self):
        """Test the summary line."""
        assert self.make().format_all().endswith("1 error(s), 1 warning(s)")

    def test_to_json(self):
        """Test the JSON form."""
        data = self.make().to_json()
        assert data["error_count"] == 1
        assert data["warning_count"] == 1
        assert [d["code"] for d in data["diagnostics"]] == ["W501", "E411"]
