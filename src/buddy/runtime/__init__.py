"""
buddy runtime - tree-walking interpreter for buddy scripts.

This module provides:
- Interpreter: Executes parsed scripts
- Primitive values: Int, Float, Bool, String, Array, Dict and their capabilities
- ExecutionContext: Environment chain, module stack and call depth
- BuiltinRegistry: Core functions and builtin modules
- ModuleLoader: Resolution and caching of imported .bud files
"""

from .values import (
    Primitive,
    Arithmetic,
    Bitwise,
    Comparable,
    Container,
    Sliceable,
    Iterable,
    Sizeable,
    Int,
    Float,
    Bool,
    String,
    Array,
    Dict,
    binary_operation,
    unary_operation,
    wrap,
    unwrap,
    type_name,
)

from .context import (
    Binding,
    Environment,
    ExecutionContext,
    ControlSignal,
    ReturnSignal,
    BreakSignal,
    ContinueSignal,
    ExitSignal,
)

from .builtins import (
    BuiltinFunction,
    BuiltinModule,
    BuiltinRegistry,
    get_builtin_registry,
)

from .modules import (
    UserFunction,
    UserModule,
    ModuleLoader,
)

from .interpreter import (
    Interpreter,
    ExecutionResult,
    compile_and_run,
    run_file,
)

__all__ = [
    # Values
    'Primitive',
    'Arithmetic',
    'Bitwise',
    'Comparable',
    'Container',
    'Sliceable',
    'Iterable',
    'Sizeable',
    'Int',
    'Float',
    'Bool',
    'String',
    'Array',
    'Dict',
    'binary_operation',
    'unary_operation',
    'wrap',
    'unwrap',
    'type_name',
    # Context
    'Binding',
    'Environment',
    'ExecutionContext',
    'ControlSignal',
    'ReturnSignal',
    'BreakSignal',
    'ContinueSignal',
    'ExitSignal',
    # Builtins
    'BuiltinFunction',
    'BuiltinModule',
    'BuiltinRegistry',
    'get_builtin_registry',
    # Modules
    'UserFunction',
    'UserModule',
    'ModuleLoader',
    # Interpreter
    'Interpreter',
    'ExecutionResult',
    'compile_and_run',
    'run_file',
]
