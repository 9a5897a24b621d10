"""
Built-in function registry for the buddy interpreter.

Core functions (int, float, string, bool, len, typeof, all, any, exit,
print) are callable from any script without an import. The remaining
functions live in builtin modules that must be imported first:

    io       print, printf
    strings  lower, upper
    array    first, last
    time     now, unix
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from .values import (
    Primitive, Int, Float, Bool, String, Array,
    Sizeable, type_name,
)
from .context import ExecutionContext, ExitSignal
from ..errors import (
    ArgumentError,
    IncompatibleTypeError,
    DomainError,
    ModuleError,
    UndefinedReferenceError,
)

logger = logging.getLogger(__name__)


@dataclass
class BuiltinFunction:
    """
    A built-in function and its parameter names.

    The implementation receives evaluated positional arguments. When
    `uses_context` is set it also receives the ExecutionContext first
    (for functions that write output).
    """
    name: str
    params: List[str]
    implementation: Callable[..., Optional[Primitive]]
    variadic: bool = False
    doc: str = ""
    uses_context: bool = False

    @property
    def arity(self) -> int:
        return len(self.params)

    def bind(self, args: List[Optional[Primitive]],
             named: Dict[str, Optional[Primitive]]) -> List[Optional[Primitive]]:
        """Merge named arguments into the positional list by parameter name."""
        bound = list(args)
        for name, value in named.items():
            if name not in self.params:
                raise ArgumentError(f"{self.name}: unknown parameter '{name}'")
            position = self.params.index(name)
            if position < len(bound):
                raise ArgumentError(f"{self.name}: parameter '{name}' given more than once")
            if position > len(bound):
                missing = self.params[len(bound)]
                raise ArgumentError(f"{self.name}: missing argument '{missing}'")
            bound.append(value)
        if self.variadic:
            if len(bound) < len(self.params):
                raise ArgumentError(f"{self.name}: not enough arguments given")
        elif len(bound) != len(self.params):
            raise ArgumentError(
                f"{self.name}: expected {len(self.params)} argument(s), got {len(bound)}"
            )
        return bound

    def call(self, ctx: ExecutionContext, args: List[Optional[Primitive]],
             named: Optional[Dict[str, Optional[Primitive]]] = None) -> Optional[Primitive]:
        bound = self.bind(args, named or {})
        if self.uses_context:
            return self.implementation(ctx, *bound)
        return self.implementation(*bound)


@dataclass
class BuiltinModule:
    """A named group of builtin functions, registered by import."""
    name: str
    functions: Dict[str, BuiltinFunction] = field(default_factory=dict)

    def lookup(self, name: str) -> BuiltinFunction:
        """Look up a function by name."""
        func = self.functions.get(name)
        if func is None:
            raise UndefinedReferenceError(f"{name}: function not defined in module '{self.name}'")
        return func

    def get_module(self, name: str):
        raise ModuleError(f"{name}: no sub module defined in '{self.name}'")

    def select(self, names: Dict[str, str]) -> "BuiltinModule":
        """
        Build a module holding only the chosen functions.

        Args:
            names: Function name -> alias it is registered under

        Raises:
            ModuleError: If a name is not defined in this module
        """
        selected: Dict[str, BuiltinFunction] = {}
        for name, alias in names.items():
            if name not in self.functions:
                raise ModuleError(f"{name}: undefined function in module '{self.name}'")
            selected[alias] = self.functions[name]
        return BuiltinModule(self.name, selected)


def _expect(func: str, value: Optional[Primitive], *kinds: type) -> Primitive:
    """Check an argument type, raising IncompatibleTypeError otherwise."""
    if not isinstance(value, kinds):
        expected = " or ".join(k.type_name for k in kinds)
        raise IncompatibleTypeError(f"{func}: expected {expected}, got {type_name(value)}")
    return value


def _display(value: Optional[Primitive]) -> str:
    return "nil" if value is None else value.display()


class BuiltinRegistry:
    """
    Registry of all built-in functions and builtin modules.

    Core functions are looked up by name; modules are looked up by the
    last segment of an import path.
    """

    def __init__(self):
        self._functions: Dict[str, BuiltinFunction] = {}
        self._modules: Dict[str, BuiltinModule] = {}
        self._register_all()

    def get_function(self, name: str) -> Optional[BuiltinFunction]:
        """Look up a core function by name."""
        return self._functions.get(name)

    def get_module(self, name: str) -> Optional[BuiltinModule]:
        """Look up a builtin module by name."""
        return self._modules.get(name)

    def register(self, func: BuiltinFunction) -> None:
        """Register a core function."""
        self._functions[func.name] = func

    def register_module(self, module: BuiltinModule) -> None:
        """Register a builtin module."""
        self._modules[module.name] = module

    def function_names(self) -> List[str]:
        return sorted(self._functions)

    def module_names(self) -> List[str]:
        return sorted(self._modules)

    def _register_all(self) -> None:
        """Register all built-in functions."""
        self._register_conversion_functions()
        self._register_query_functions()
        self._register_process_functions()
        self._register_io_module()
        self._register_strings_module()
        self._register_array_module()
        self._register_time_module()
        logger.debug("registered %d core functions and %d modules",
                     len(self._functions), len(self._modules))

    # --- Conversion Functions ---

    def _register_conversion_functions(self) -> None:
        """int(), float(), string(), bool()."""

        def _int(value: Optional[Primitive]) -> Primitive:
            if isinstance(value, Bool):
                return Int(1 if value.value else 0)
            if isinstance(value, (Int, Float)):
                try:
                    return Int(int(value.value))
                except (OverflowError, ValueError):
                    raise DomainError(f"int: can not convert {value.display()} to int")
            if isinstance(value, String):
                try:
                    return Int(int(value.value.strip(), 0))
                except ValueError:
                    raise DomainError(f"int: can not convert '{value.value}' to int")
            raise IncompatibleTypeError(f"int: {type_name(value)} can not be converted to int")

        def _float(value: Optional[Primitive]) -> Primitive:
            if isinstance(value, Bool):
                return Float(1.0 if value.value else 0.0)
            if isinstance(value, (Int, Float)):
                try:
                    return Float(float(value.value))
                except OverflowError:
                    raise DomainError("float: integer too large to convert to float")
            if isinstance(value, String):
                try:
                    return Float(float(value.value))
                except ValueError:
                    raise DomainError(f"float: can not convert '{value.value}' to float")
            raise IncompatibleTypeError(f"float: {type_name(value)} can not be converted to float")

        def _string(value: Optional[Primitive]) -> Primitive:
            return String(_display(value))

        def _bool(value: Optional[Primitive]) -> Primitive:
            return Bool(value is not None and value.is_truthy())

        self.register(BuiltinFunction("int", ["value"], _int, doc="Convert to int"))
        self.register(BuiltinFunction("float", ["value"], _float, doc="Convert to float"))
        self.register(BuiltinFunction("string", ["value"], _string, doc="Display form of a value"))
        self.register(BuiltinFunction("bool", ["value"], _bool, doc="Truthiness of a value"))

    # --- Query Functions ---

    def _register_query_functions(self) -> None:
        """len(), typeof(), all(), any()."""

        def _len(value: Optional[Primitive]) -> Primitive:
            if not isinstance(value, Sizeable):
                raise IncompatibleTypeError(f"len: can not get length of {type_name(value)}")
            return Int(value.length())

        def _typeof(value: Optional[Primitive]) -> Primitive:
            return String(type_name(value))

        def _all(*args: Optional[Primitive]) -> Primitive:
            # an empty call is false
            if not args:
                return Bool(False)
            return Bool(all(a is not None and a.is_truthy() for a in args))

        def _any(*args: Optional[Primitive]) -> Primitive:
            return Bool(any(a is not None and a.is_truthy() for a in args))

        self.register(BuiltinFunction("len", ["value"], _len, doc="Length of a string, array or dict"))
        self.register(BuiltinFunction("typeof", ["value"], _typeof, doc="Type name of a value"))
        self.register(BuiltinFunction("all", [], _all, variadic=True,
                                      doc="True when every argument is truthy"))
        self.register(BuiltinFunction("any", [], _any, variadic=True,
                                      doc="True when some argument is truthy"))

    # --- Process Functions ---

    def _register_process_functions(self) -> None:
        """exit(), and print() which is also available without import."""

        def _exit(*args: Optional[Primitive]) -> Primitive:
            if len(args) > 1:
                raise ArgumentError(f"exit: expected at most 1 argument, got {len(args)}")
            code = 0
            if args:
                number = _expect("exit", args[0], Int, Float).value
                try:
                    code = int(number)
                except (OverflowError, ValueError):
                    raise DomainError(f"exit: invalid exit code {number}")
            raise ExitSignal(code)

        self.register(BuiltinFunction("exit", [], _exit, variadic=True,
                                      doc="Stop the script with an exit code"))
        self.register(BuiltinFunction("print", [], _print, variadic=True,
                                      doc="Print values separated by spaces", uses_context=True))

    # --- Builtin Modules ---

    def _register_io_module(self) -> None:

        def _printf(ctx: ExecutionContext, fmt: Optional[Primitive],
                    *args: Optional[Primitive]) -> None:
            pattern = _expect("printf", fmt, String).value
            values = tuple(None if a is None else a.raw() for a in args)
            try:
                text = pattern % values
            except (TypeError, ValueError) as exc:
                raise ArgumentError(f"printf: {exc}")
            ctx.stdout.write(text)
            return None

        self.register_module(BuiltinModule("io", {
            "print": BuiltinFunction("print", [], _print, variadic=True,
                                     doc="Print values separated by spaces", uses_context=True),
            "printf": BuiltinFunction("printf", ["format"], _printf, variadic=True,
                                      doc="Print with %-style formatting", uses_context=True),
        }))

    def _register_strings_module(self) -> None:

        def _lower(value: Optional[Primitive]) -> Primitive:
            return String(_expect("lower", value, String).value.lower())

        def _upper(value: Optional[Primitive]) -> Primitive:
            return String(_expect("upper", value, String).value.upper())

        self.register_module(BuiltinModule("strings", {
            "lower": BuiltinFunction("lower", ["str"], _lower, doc="Lowercase a string"),
            "upper": BuiltinFunction("upper", ["str"], _upper, doc="Uppercase a string"),
        }))

    def _register_array_module(self) -> None:

        def _first(value: Optional[Primitive]) -> Optional[Primitive]:
            return _expect("first", value, Array).get(Int(0))

        def _last(value: Optional[Primitive]) -> Optional[Primitive]:
            return _expect("last", value, Array).get(Int(-1))

        self.register_module(BuiltinModule("array", {
            "first": BuiltinFunction("first", ["array"], _first, doc="First element"),
            "last": BuiltinFunction("last", ["array"], _last, doc="Last element"),
        }))

    def _register_time_module(self) -> None:

        def _now() -> Primitive:
            return String(datetime.now().astimezone().isoformat(timespec="seconds"))

        def _unix() -> Primitive:
            return Int(int(time.time()))

        self.register_module(BuiltinModule("time", {
            "now": BuiltinFunction("now", [], _now, doc="Current time (RFC 3339)"),
            "unix": BuiltinFunction("unix", [], _unix, doc="Seconds since the epoch"),
        }))


def _print(ctx: ExecutionContext, *args: Optional[Primitive]) -> None:
    ctx.stdout.write(" ".join(_display(a) for a in args) + "\n")
    return None


# Global registry instance
_registry: Optional[BuiltinRegistry] = None


def get_builtin_registry() -> BuiltinRegistry:
    """Get the global builtin registry (singleton)."""
    global _registry
    if _registry is None:
        _registry = BuiltinRegistry()
    return _registry
