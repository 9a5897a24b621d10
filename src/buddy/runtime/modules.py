"""
User modules, user functions and the module loader.

A UserModule is the unit of function visibility: each script and each
imported .bud file gets one, holding its own top-level environment, its
declared functions and the modules it imported (by alias). Functions keep
a reference to the module that declared them so that their bodies resolve
variables and calls lexically, in the defining module.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from ..ast import FunctionDef, Script
from ..config import InterpreterConfig
from ..errors import ModuleError, UndefinedReferenceError
from ..parser import parse
from .builtins import BuiltinFunction, BuiltinModule, BuiltinRegistry
from .context import Environment

logger = logging.getLogger(__name__)


@dataclass
class UserFunction:
    """A function declared with `def`, bound to its defining module."""
    definition: FunctionDef
    module: "UserModule"

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def arity(self) -> int:
        return self.definition.arity

    @property
    def params(self) -> List[str]:
        return [p.name for p in self.definition.parameters]


FunctionLike = Union[UserFunction, BuiltinFunction]
ModuleLike = Union["UserModule", BuiltinModule]


@dataclass
class UserModule:
    """
    Functions and imported modules visible from one script or file.

    `environment` is the module's top-level scope; function bodies are
    evaluated in children of it.
    """
    name: str
    environment: Environment = field(default_factory=lambda: Environment(name="module"))
    functions: Dict[str, FunctionLike] = field(default_factory=dict)
    modules: Dict[str, ModuleLike] = field(default_factory=dict)

    def register(self, alias: str, module: ModuleLike) -> None:
        """
        Register an imported module under an alias.

        Raises:
            ModuleError: If the alias is already taken
        """
        if alias in self.modules:
            raise ModuleError(f"{alias}: module already imported")
        self.modules[alias] = module

    def append(self, name: str, function: FunctionLike) -> None:
        """
        Make a function callable by name in this module.

        Raises:
            ModuleError: If the name is already defined
        """
        if name in self.functions:
            raise ModuleError(f"{name}: function already defined")
        self.functions[name] = function

    def define(self, definition: FunctionDef) -> UserFunction:
        """Register a function declared in this module."""
        function = UserFunction(definition, self)
        self.append(definition.name, function)
        return function

    def lookup(self, name: str) -> FunctionLike:
        """
        Look up a function by name.

        Raises:
            UndefinedReferenceError: If no such function is visible
        """
        function = self.functions.get(name)
        if function is None:
            raise UndefinedReferenceError(f"{name}: function not defined")
        return function

    def has_function(self, name: str) -> bool:
        return name in self.functions

    def get_module(self, name: str) -> ModuleLike:
        """
        Look up an imported module by alias.

        Raises:
            UndefinedReferenceError: If nothing is imported under that alias
        """
        module = self.modules.get(name)
        if module is None:
            raise UndefinedReferenceError(f"{name}: module not imported")
        return module

    def has_module(self, name: str) -> bool:
        return name in self.modules


# executor(script, source, filename, module_name) -> evaluated UserModule
ModuleExecutor = Callable[[Script, str, str, str], UserModule]


class ModuleLoader:
    """
    Resolves import paths to modules.

    Builtin modules are found by the last path segment. Anything else is
    looked up as ``<segment>/.../<last><extension>`` under the importing
    file's directory and then each configured module path. File modules
    are parsed, evaluated once through the executor and cached per dotted
    path; an import that is still being evaluated is an import cycle.
    """

    def __init__(self, config: InterpreterConfig, registry: BuiltinRegistry,
                 executor: Optional[ModuleExecutor] = None):
        self.config = config
        self.registry = registry
        self.executor = executor
        self._cache: Dict[str, UserModule] = {}
        self._loading: List[str] = []

    def find(self, path: List[str], origin: Optional[str] = None) -> Optional[Path]:
        """Locate the source file of a module, or None."""
        relative = Path(*path[:-1]) / f"{path[-1]}{self.config.module_extension}"
        bases: List[Path] = []
        if origin and not origin.startswith("<"):
            bases.append(Path(origin).resolve().parent)
        bases.extend(Path(p) for p in self.config.module_paths)
        for base in bases:
            candidate = base / relative
            if candidate.is_file():
                return candidate
        return None

    def load(self, path: List[str], origin: Optional[str] = None) -> ModuleLike:
        """
        Load the module named by an import path.

        Args:
            path: Import path segments (``a.b.c`` -> ["a", "b", "c"])
            origin: Filename of the importing script, if any

        Returns:
            A BuiltinModule or an evaluated UserModule

        Raises:
            ModuleError: Module not found, import cycle, or read failure
        """
        builtin = self.registry.get_module(path[-1])
        if builtin is not None:
            return builtin

        dotted = ".".join(path)
        if dotted in self._cache:
            return self._cache[dotted]
        if dotted in self._loading:
            chain = " -> ".join(self._loading + [dotted])
            raise ModuleError(f"import cycle detected: {chain}")

        location = self.find(path, origin)
        if location is None:
            raise ModuleError(
                f"{dotted}: module not found",
                hints=[f"searched for {'/'.join(path)}{self.config.module_extension} "
                       f"in {', '.join(self.config.module_paths)}"],
            )
        if self.executor is None:
            raise ModuleError(f"{dotted}: no executor available to evaluate module")

        logger.debug("loading module %s from %s", dotted, location)
        try:
            source = location.read_text(encoding="utf-8")
        except OSError as exc:
            raise ModuleError(f"{dotted}: {exc}")

        self._loading.append(dotted)
        try:
            script = parse(source, str(location))
            module = self.executor(script, source, str(location), path[-1])
        finally:
            self._loading.pop()

        self._cache[dotted] = module
        return module
