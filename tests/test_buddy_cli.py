"""
Tests for the command line interface and the REPL.
"""

import io

import pytest

from buddy.__main__ import main
from buddy.config import CONFIG_ENV_VAR
from buddy.repl import Repl, is_complete


@pytest.fixture(autouse=True)
def no_config(tmp_path, monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def script(tmp_path):
    def write(source, name="main.bud"):
        path = tmp_path / name
        path.write_text(source)
        return str(path)
    return write


class TestRun:
    """Test the run command."""

    def test_output(self, script, capsys):
        """Test a script's print output."""
        assert main(["run", script('print("hello", 1 + 1)')]) == 0
        assert capsys.readouterr().out == "hello 2\n"

    def test_print_result(self, script, capsys):
        """Test --print-result shows the last value."""
        assert main(["run", "-p", script("[1, 2] + [3]")]) == 0
        assert capsys.readouterr().out == "[1, 2, 3]\n"

    def test_exit_code(self, script):
        """Test exit() sets the process exit code."""
        assert main(["run", script("exit(3)")]) == 3

    def test_error(self, script, capsys):
        """Test errors go to stderr with their location."""
        assert main(["run", script("x = 1\nx + true")]) == 1
        err = capsys.readouterr().err
        assert "main.bud:2:1" in err
        assert "E401" in err

    def test_missing_file(self, tmp_path, capsys):
        """Test a script that does not exist."""
        assert main(["run", str(tmp_path / "nope.bud")]) == 1
        assert "File not found" in capsys.readouterr().err

    def test_config_file(self, script, tmp_path, capsys):
        """Test --config applies module paths."""
        lib = tmp_path / "lib"
        lib.mkdir()
        (lib / "util.bud").write_text("def seven() { return 7 }")
        config = tmp_path / "conf.yaml"
        config.write_text(f"module_paths: ['{lib}']\n")
        path = script("import util\nprint(util.seven())", name="elsewhere.bud")
        assert main(["-c", str(config), "run", path]) == 0
        assert capsys.readouterr().out == "7\n"

    def test_bad_config(self, script, tmp_path, capsys):
        """Test an invalid config file stops the CLI."""
        config = tmp_path / "conf.yaml"
        config.write_text("max_depth: -1\n")
        assert main(["-c", str(config), "run", script("1")]) == 1
        assert "max_depth" in capsys.readouterr().err


class TestCheck:
    """Test the check command."""

    def test_ok(self, script, capsys):
        """Test a clean script."""
        assert main(["check", script("def f() { return 1 }\nf()")]) == 0
        assert "OK: main.bud - 1 function(s), 1 statement(s)" in capsys.readouterr().out

    def test_warnings(self, script, capsys):
        """Test warnings are printed but do not fail."""
        assert main(["check", script("unused = 1")]) == 0
        out = capsys.readouterr().out
        assert "warning[W501]" in out
        assert "1 warning(s)" in out

    def test_errors(self, script, capsys):
        """Test an analysis error fails the check."""
        assert main(["check", script("break")]) == 1
        assert "error[E501]" in capsys.readouterr().out

    def test_syntax_error(self, script, capsys):
        """Test a script that does not parse."""
        assert main(["check", script("x = (")]) == 1
        assert "E102" in capsys.readouterr().err


class TestDebugAndCyclo:
    """Test the debug and cyclo commands."""

    def test_debug(self, script, capsys):
        """Test the AST dump."""
        assert main(["debug", script("x = 1")]) == 0
        out = capsys.readouterr().out
        assert "Script" in out
        assert "Assignment" in out

    def test_cyclo(self, script, capsys):
        """Test the complexity table."""
        path = script("def f(x) { if x { 1 } }\nf(1)")
        assert main(["cyclo", path]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert lines == [f"   1  {path}", "   2  f"]


class TestRepl:
    """Test the interactive loop."""

    @pytest.mark.parametrize("text,complete", [
        ("x = 1", True),
        ("def f() {", False),
        ("def f() {\n  return 1\n}", True),
        ("[1,", False),
        ("/* open", False),
        ('"unterminated', True),
    ])
    def test_is_complete(self, text, complete):
        """Test chunk completeness."""
        assert is_complete(text) == complete

    def run(self, text):
        out = io.StringIO()
        code = Repl(stdin=io.StringIO(text), stdout=out).loop()
        return code, out.getvalue()

    def test_values_printed(self):
        """Test each chunk's value is echoed."""
        code, out = self.run("x = 20\nx + 1\n")
        assert code == 0
        assert "21\n" in out

    def test_multiline_function(self):
        """Test a definition spanning lines, then a call."""
        _, out = self.run("def f() {\n  return 3\n}\nf() * 2\n")
        assert "... " in out
        assert "6\n" in out

    def test_error_does_not_stop(self):
        """Test the session continues after an error."""
        _, out = self.run("missing\n1 + 1\n")
        assert "E403" in out
        assert "2\n" in out

    def test_exit(self):
        """Test exit() ends the session with its code."""
        code, out = self.run("exit(4)\nprint('never')\n")
        assert code == 4
        assert "never" not in out
