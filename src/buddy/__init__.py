"""
buddy - a small embeddable scripting language.

This package provides:
- Lexer: Tokenizes buddy source code
- Parser: Builds the AST with a Pratt parser
- Interpreter: Tree-walking evaluator over primitive values
- Analysis: Static checks and constant folding on the AST
- Config: YAML-backed interpreter settings

Usage:
    from buddy import compile_and_run, Interpreter

    result = compile_and_run('''
        def fib(n) {
            if n < 2 { return n }
            return fib(n - 1) + fib(n - 2)
        }
        fib(10)
    ''')
    print(result.raw)     # 55

    # Embedding: keep one interpreter and expose host values
    interp = Interpreter()
    interp.define("limit", 10, readonly=True)
    interp.run("squares = [x * x for x in [1, 2, 3] if x < limit]")
"""

import logging

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
    Precedence,
    KEYWORDS,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .parser import (
    Parser,
    parse,
)

from .ast import (
    AstNode,
    AstVisitor,
    Expression,
    Script,
    FunctionDef,
    format_ast,
    print_ast,
)

from .errors import (
    ErrorSeverity,
    Diagnostic,
    DiagnosticCollector,
    BuddyError,
    LexerError,
    ParserError,
    EvaluationError,
    UnsupportedOperationError,
    IncompatibleTypeError,
    UndefinedReferenceError,
    DomainError,
    DivisionByZeroError,
    IndexOutOfRangeError,
    KeyNotFoundError,
    ControlFlowError,
    RecursionLimitError,
    AssertionFailedError,
    ArgumentError,
    ModuleError,
)

from .config import (
    ConfigError,
    InterpreterConfig,
    load_config,
)

from .runtime import (
    Primitive,
    Int,
    Float,
    Bool,
    String,
    Array,
    Dict,
    Interpreter,
    ExecutionResult,
    compile_and_run,
    run_file,
)

from .analysis import (
    AnalysisResult,
    analyze,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    # Tokens
    'Token',
    'TokenType',
    'SourceLocation',
    'SourceSpan',
    'Precedence',
    'KEYWORDS',
    # Lexer / Parser
    'Lexer',
    'tokenize',
    'Parser',
    'parse',
    # AST
    'AstNode',
    'AstVisitor',
    'Expression',
    'Script',
    'FunctionDef',
    'format_ast',
    'print_ast',
    # Errors
    'ErrorSeverity',
    'Diagnostic',
    'DiagnosticCollector',
    'BuddyError',
    'LexerError',
    'ParserError',
    'EvaluationError',
    'UnsupportedOperationError',
    'IncompatibleTypeError',
    'UndefinedReferenceError',
    'DomainError',
    'DivisionByZeroError',
    'IndexOutOfRangeError',
    'KeyNotFoundError',
    'ControlFlowError',
    'RecursionLimitError',
    'AssertionFailedError',
    'ArgumentError',
    'ModuleError',
    # Config
    'ConfigError',
    'InterpreterConfig',
    'load_config',
    # Runtime
    'Primitive',
    'Int',
    'Float',
    'Bool',
    'String',
    'Array',
    'Dict',
    'Interpreter',
    'ExecutionResult',
    'compile_and_run',
    'run_file',
    # Analysis
    'AnalysisResult',
    'analyze',
]
