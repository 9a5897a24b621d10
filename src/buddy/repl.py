"""
Interactive read-eval-print loop.

Lines are collected until every bracket opened in the chunk is closed,
then the chunk runs in a persistent Interpreter so variables, functions
and imports carry over between chunks.
"""

import logging
import sys
from typing import Optional, TextIO

from .errors import LexerError
from .lexer import Lexer
from .runtime.interpreter import ExecutionResult, Interpreter
from .tokens import TokenType

logger = logging.getLogger(__name__)

OPENERS = (TokenType.LPAREN, TokenType.LBRACKET, TokenType.LBRACE)
CLOSERS = (TokenType.RPAREN, TokenType.RBRACKET, TokenType.RBRACE)


def is_complete(text: str) -> bool:
    """True when no bracket or block comment is left open in text."""
    depth = 0
    try:
        for token in Lexer(text, "<repl>"):
            if token.type in OPENERS:
                depth += 1
            elif token.type in CLOSERS:
                depth -= 1
    except LexerError as err:
        # an open block comment continues on the next line
        return err.code != "E003"
    return depth <= 0


class Repl:
    """
    A line-oriented session over a single interpreter.

    Usage:
        Repl().loop()
    """

    prompt = ">>> "
    continuation = "... "

    def __init__(self, interpreter: Optional[Interpreter] = None,
                 stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None):
        self.stdout = stdout or sys.stdout
        self.stdin = stdin or sys.stdin
        self.interpreter = interpreter or Interpreter(stdout=self.stdout)

    def run_chunk(self, text: str) -> ExecutionResult:
        """Run one complete chunk and print its value or error."""
        result = self.interpreter.run(text, "<repl>")
        if result.error is not None:
            self.stdout.write(result.error_message + "\n")
        elif result.value is not None:
            self.stdout.write(result.value.display() + "\n")
        return result

    def _read(self, prompt: str) -> Optional[str]:
        self.stdout.write(prompt)
        self.stdout.flush()
        line = self.stdin.readline()
        if not line:
            return None
        return line.rstrip("\n")

    def loop(self) -> int:
        """
        Read and run chunks until end of input or exit().

        Returns:
            The exit code passed to exit(), else 0
        """
        while True:
            line = self._read(self.prompt)
            if line is None:
                self.stdout.write("\n")
                return 0
            chunk = line
            while not is_complete(chunk):
                line = self._read(self.continuation)
                if line is None:
                    break
                chunk += "\n" + line
            if not chunk.strip():
                continue
            result = self.run_chunk(chunk)
            if result.exited:
                logger.debug("repl stopped by exit(%d)", result.exit_code)
                return result.exit_code
