"""
Runtime values for the buddy interpreter.

Every runtime value is a Primitive. Operators are grouped into capability
mixins (Arithmetic, Bitwise, Comparable, Container, Sliceable, Iterable,
Sizeable) and each concrete type implements only the ones that make sense
for it. binary_operation/unary_operation dispatch on the left operand:

- capability missing              -> UnsupportedOperationError
- capability present, bad operand -> IncompatibleTypeError

Scalar values (Int, Float, Bool, String) are immutable and hashable so
they can be used as dict keys. Array and Dict are mutable containers with
reference semantics; arithmetic on them returns new containers.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict as DictType, Iterator, List, Optional

from ..tokens import TokenType, OPERATOR_SYMBOLS
from ..errors import (
    UnsupportedOperationError,
    IncompatibleTypeError,
    DivisionByZeroError,
    DomainError,
    IndexOutOfRangeError,
    KeyNotFoundError,
)


# =============================================================================
# Base Classes
# =============================================================================

class Primitive(ABC):
    """Base class for all runtime values."""

    type_name: str = "primitive"

    @abstractmethod
    def raw(self) -> Any:
        """The equivalent host (Python) value."""

    @abstractmethod
    def is_truthy(self) -> bool:
        """Check if this value is truthy in boolean context."""

    def logical_not(self) -> "Bool":
        return Bool(not self.is_truthy())

    def display(self) -> str:
        """String form used by print and string concatenation."""
        return str(self.raw())

    def __str__(self) -> str:
        return self.display()


class Arithmetic(ABC):
    """+ - * / % ** and unary minus."""

    @abstractmethod
    def add(self, other: Primitive) -> Primitive: ...

    @abstractmethod
    def sub(self, other: Primitive) -> Primitive: ...

    @abstractmethod
    def mul(self, other: Primitive) -> Primitive: ...

    @abstractmethod
    def div(self, other: Primitive) -> Primitive: ...

    @abstractmethod
    def mod(self, other: Primitive) -> Primitive: ...

    @abstractmethod
    def pow(self, other: Primitive) -> Primitive: ...

    @abstractmethod
    def negate(self) -> Primitive: ...


class Bitwise(ABC):
    """<< >> & | ^ and unary ~."""

    @abstractmethod
    def lshift(self, other: Primitive) -> Primitive: ...

    @abstractmethod
    def rshift(self, other: Primitive) -> Primitive: ...

    @abstractmethod
    def bit_and(self, other: Primitive) -> Primitive: ...

    @abstractmethod
    def bit_or(self, other: Primitive) -> Primitive: ...

    @abstractmethod
    def bit_xor(self, other: Primitive) -> Primitive: ...

    @abstractmethod
    def bit_not(self) -> Primitive: ...


class Comparable(ABC):
    """== != < <= > >= against a value of the same type."""

    @abstractmethod
    def eq(self, other: Primitive) -> "Bool": ...

    @abstractmethod
    def ne(self, other: Primitive) -> "Bool": ...

    @abstractmethod
    def lt(self, other: Primitive) -> "Bool": ...

    @abstractmethod
    def le(self, other: Primitive) -> "Bool": ...

    @abstractmethod
    def gt(self, other: Primitive) -> "Bool": ...

    @abstractmethod
    def ge(self, other: Primitive) -> "Bool": ...


class Container(ABC):
    """Keyed or indexed element access."""

    @abstractmethod
    def get(self, key: Primitive) -> Primitive: ...

    @abstractmethod
    def set(self, key: Primitive, value: Primitive) -> None: ...


class Sliceable(ABC):

    @abstractmethod
    def slice(self, start: Optional[Primitive], end: Optional[Primitive],
              step: Optional[Primitive]) -> Primitive: ...


class Iterable(ABC):

    @abstractmethod
    def iterate(self) -> Iterator[Primitive]: ...


class Sizeable(ABC):

    @abstractmethod
    def length(self) -> int: ...


# =============================================================================
# Helpers
# =============================================================================

def _unsupported(operation: str, value: Primitive) -> UnsupportedOperationError:
    return UnsupportedOperationError(f"unsupported operation '{operation}' for {value.type_name}")


def _incompatible(operation: str, left: Primitive, right: Primitive) -> IncompatibleTypeError:
    return IncompatibleTypeError(
        f"incompatible types for '{operation}': {left.type_name} and {right.type_name}"
    )


def _trunc_div(a: int, b: int) -> int:
    """Integer division truncating toward zero."""
    q = abs(a) // abs(b)
    return q if (a < 0) == (b < 0) else -q


def _trunc_mod(a: int, b: int) -> int:
    """Remainder with the sign of the dividend."""
    return a - b * _trunc_div(a, b)


# Largest integer result in bits, and longest string or array built by repetition
MAX_INT_BITS = 1 << 24
MAX_REPEAT_LENGTH = 1 << 24


def _to_int(number) -> int:
    try:
        return int(number)
    except (OverflowError, ValueError):
        raise DomainError(f"{number} can not be converted to an integer")


def _to_float(number: int) -> float:
    try:
        return float(number)
    except OverflowError:
        raise DomainError("integer too large to convert to float")


def _count(operation: str, left: Primitive, right: Primitive) -> int:
    """Numeric right operand used as a count (floats are truncated)."""
    if isinstance(right, (Int, Float)):
        return _to_int(right.value)
    raise _incompatible(operation, left, right)


def _repeat_count(operation: str, left: Primitive, right: Primitive, size: int) -> int:
    count = max(_count(operation, left, right), 0)
    if size * count > MAX_REPEAT_LENGTH:
        raise DomainError(f"result of '{operation}' is too large ({size} * {count} items)")
    return count


def _index(value: Optional[Primitive], what: str = "index") -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, (Int, Float)):
        return _to_int(value.value)
    raise IncompatibleTypeError(f"{value.type_name} can not be used as {what}")


def _normalize_index(key: Primitive, size: int) -> int:
    index = _index(key)
    if index < 0:
        index += size
    if index < 0 or index >= size:
        raise IndexOutOfRangeError(f"index out of range: {key.display()} (length {size})")
    return index


def _python_slice(start, end, step) -> slice:
    step_value = _index(step, "slice step")
    if step_value == 0:
        raise DomainError("slice step can not be zero")
    return slice(_index(start, "slice start"), _index(end, "slice end"), step_value)


# =============================================================================
# Scalars
# =============================================================================

@dataclass(frozen=True)
class Int(Primitive, Arithmetic, Bitwise, Comparable):
    """Integer value."""
    value: int
    type_name = "int"

    def raw(self) -> int:
        return self.value

    def is_truthy(self) -> bool:
        return self.value != 0

    def display(self) -> str:
        return str(self.value)

    def _numeric(self, operation: str, other: Primitive,
                 int_op: Callable[[int, int], Any],
                 float_op: Callable[[float, float], float]) -> Primitive:
        if isinstance(other, Int):
            return Int(int_op(self.value, other.value))
        if isinstance(other, Float):
            return Float(float_op(_to_float(self.value), other.value))
        raise _incompatible(operation, self, other)

    def add(self, other: Primitive) -> Primitive:
        if isinstance(other, String):
            return String(self.display() + other.value)
        return self._numeric("+", other, lambda a, b: a + b, lambda a, b: a + b)

    def sub(self, other: Primitive) -> Primitive:
        return self._numeric("-", other, lambda a, b: a - b, lambda a, b: a - b)

    def mul(self, other: Primitive) -> Primitive:
        return self._numeric("*", other, lambda a, b: a * b, lambda a, b: a * b)

    def div(self, other: Primitive) -> Primitive:
        if isinstance(other, (Int, Float)) and other.value == 0:
            raise DivisionByZeroError()
        return self._numeric("/", other, _trunc_div, lambda a, b: a / b)

    def mod(self, other: Primitive) -> Primitive:
        if isinstance(other, (Int, Float)) and other.value == 0:
            raise DivisionByZeroError()
        return self._numeric("%", other, _trunc_mod, math.fmod)

    def pow(self, other: Primitive) -> Primitive:
        if isinstance(other, Int):
            if other.value >= 0:
                if abs(self.value) > 1 and self.value.bit_length() * other.value > MAX_INT_BITS:
                    raise DomainError(f"result of {self.value} ** {other.value} is too large")
                return Int(self.value ** other.value)
            if self.value == 0:
                raise DivisionByZeroError()
            return Int(int(_to_float(self.value) ** other.value))
        if isinstance(other, Float):
            return Float(_float_pow(_to_float(self.value), other.value))
        raise _incompatible("**", self, other)

    def negate(self) -> Primitive:
        return Int(-self.value)

    def _bits(self, operation: str, other: Primitive, op: Callable[[int, int], int]) -> "Int":
        if not isinstance(other, Int):
            raise _incompatible(operation, self, other)
        try:
            return Int(op(self.value, other.value))
        except ValueError as exc:
            raise DomainError(f"invalid operand for '{operation}': {exc}")

    def lshift(self, other: Primitive) -> Primitive:
        if isinstance(other, Int) and self.value and other.value > MAX_INT_BITS:
            raise DomainError(f"shift count too large: {other.value}")
        return self._bits("<<", other, lambda a, b: a << b)

    def rshift(self, other: Primitive) -> Primitive:
        return self._bits(">>", other, lambda a, b: a >> b)

    def bit_and(self, other: Primitive) -> Primitive:
        return self._bits("&", other, lambda a, b: a & b)

    def bit_or(self, other: Primitive) -> Primitive:
        return self._bits("|", other, lambda a, b: a | b)

    def bit_xor(self, other: Primitive) -> Primitive:
        return self._bits("^", other, lambda a, b: a ^ b)

    def bit_not(self) -> Primitive:
        return Int(~self.value)

    def _compare(self, operation: str, other: Primitive, op) -> "Bool":
        if not isinstance(other, Int):
            raise _incompatible(operation, self, other)
        return Bool(op(self.value, other.value))

    def eq(self, other): return self._compare("==", other, lambda a, b: a == b)
    def ne(self, other): return self._compare("!=", other, lambda a, b: a != b)
    def lt(self, other): return self._compare("<", other, lambda a, b: a < b)
    def le(self, other): return self._compare("<=", other, lambda a, b: a <= b)
    def gt(self, other): return self._compare(">", other, lambda a, b: a > b)
    def ge(self, other): return self._compare(">=", other, lambda a, b: a >= b)


def _float_pow(base: float, exponent: float) -> float:
    try:
        return math.pow(base, exponent)
    except ZeroDivisionError:
        raise DivisionByZeroError()
    except (ValueError, OverflowError) as exc:
        raise DomainError(f"invalid power {base} ** {exponent}: {exc}")


@dataclass(frozen=True)
class Float(Primitive, Arithmetic, Comparable):
    """Double precision value."""
    value: float
    type_name = "float"

    def raw(self) -> float:
        return self.value

    def is_truthy(self) -> bool:
        return self.value != 0

    def display(self) -> str:
        text = repr(self.value)
        if text.endswith(".0"):
            text = text[:-2]
        return text

    def _numeric(self, operation: str, other: Primitive, op) -> "Float":
        if isinstance(other, (Int, Float)):
            return Float(op(self.value, _to_float(other.value)))
        raise _incompatible(operation, self, other)

    def add(self, other: Primitive) -> Primitive:
        if isinstance(other, String):
            return String(self.display() + other.value)
        return self._numeric("+", other, lambda a, b: a + b)

    def sub(self, other: Primitive) -> Primitive:
        return self._numeric("-", other, lambda a, b: a - b)

    def mul(self, other: Primitive) -> Primitive:
        return self._numeric("*", other, lambda a, b: a * b)

    def div(self, other: Primitive) -> Primitive:
        if isinstance(other, (Int, Float)) and other.value == 0:
            raise DivisionByZeroError()
        return self._numeric("/", other, lambda a, b: a / b)

    def mod(self, other: Primitive) -> Primitive:
        if isinstance(other, (Int, Float)) and other.value == 0:
            raise DivisionByZeroError()
        return self._numeric("%", other, math.fmod)

    def pow(self, other: Primitive) -> Primitive:
        return self._numeric("**", other, _float_pow)

    def negate(self) -> Primitive:
        return Float(-self.value)

    def _compare(self, operation: str, other: Primitive, op) -> "Bool":
        if not isinstance(other, Float):
            raise _incompatible(operation, self, other)
        return Bool(op(self.value, other.value))

    def eq(self, other): return self._compare("==", other, lambda a, b: a == b)
    def ne(self, other): return self._compare("!=", other, lambda a, b: a != b)
    def lt(self, other): return self._compare("<", other, lambda a, b: a < b)
    def le(self, other): return self._compare("<=", other, lambda a, b: a <= b)
    def gt(self, other): return self._compare(">", other, lambda a, b: a > b)
    def ge(self, other): return self._compare(">=", other, lambda a, b: a >= b)


@dataclass(frozen=True)
class Bool(Primitive, Comparable):
    """Boolean value; only equality is defined."""
    value: bool
    type_name = "bool"

    def raw(self) -> bool:
        return self.value

    def is_truthy(self) -> bool:
        return self.value

    def display(self) -> str:
        return "true" if self.value else "false"

    def _equality(self, operation: str, other: Primitive) -> bool:
        if not isinstance(other, Bool):
            raise _incompatible(operation, self, other)
        return self.value == other.value

    def eq(self, other): return Bool(self._equality("==", other))
    def ne(self, other): return Bool(not self._equality("!=", other))
    def lt(self, other): raise _unsupported("<", self)
    def le(self, other): raise _unsupported("<=", self)
    def gt(self, other): raise _unsupported(">", self)
    def ge(self, other): raise _unsupported(">=", self)


@dataclass(frozen=True)
class String(Primitive, Arithmetic, Comparable, Container, Sliceable, Iterable, Sizeable):
    """
    Text value.

    Arithmetic on strings works on character counts:
        "hello" - 2   -> "he"      (keep the first n characters)
        "hello" - -2  -> "llo"     (drop the first n characters)
        "ab" * 3      -> "ababab"
        "abcdef" / 2  -> "abc"     (keep len / n characters)
    """
    value: str
    type_name = "string"

    def raw(self) -> str:
        return self.value

    def is_truthy(self) -> bool:
        return self.value != ""

    def display(self) -> str:
        return self.value

    def add(self, other: Primitive) -> Primitive:
        if isinstance(other, (Int, Float, String)):
            return String(self.value + other.display())
        raise _incompatible("+", self, other)

    def sub(self, other: Primitive) -> Primitive:
        part = _count("-", self, other)
        if part > len(self.value):
            return String("")
        if part < 0:
            return String(self.value[-part:])
        return String(self.value[:part])

    def mul(self, other: Primitive) -> Primitive:
        return String(self.value * _repeat_count("*", self, other, len(self.value)))

    def div(self, other: Primitive) -> Primitive:
        part = _count("/", self, other)
        if part == 0:
            return self
        if part < 0:
            raise DomainError("string can not be divided by a negative value")
        return String(self.value[:len(self.value) // part])

    def mod(self, other: Primitive) -> Primitive:
        raise _unsupported("%", self)

    def pow(self, other: Primitive) -> Primitive:
        raise _unsupported("**", self)

    def negate(self) -> Primitive:
        raise _unsupported("-", self)

    def _compare(self, operation: str, other: Primitive, op) -> "Bool":
        if not isinstance(other, String):
            raise _incompatible(operation, self, other)
        return Bool(op(self.value, other.value))

    def eq(self, other): return self._compare("==", other, lambda a, b: a == b)
    def ne(self, other): return self._compare("!=", other, lambda a, b: a != b)
    def lt(self, other): return self._compare("<", other, lambda a, b: a < b)
    def le(self, other): return self._compare("<=", other, lambda a, b: a <= b)
    def gt(self, other): return self._compare(">", other, lambda a, b: a > b)
    def ge(self, other): return self._compare(">=", other, lambda a, b: a >= b)

    def get(self, key: Primitive) -> Primitive:
        return String(self.value[_normalize_index(key, len(self.value))])

    def set(self, key: Primitive, value: Primitive) -> None:
        raise _unsupported("index assignment", self)

    def slice(self, start, end, step) -> Primitive:
        return String(self.value[_python_slice(start, end, step)])

    def iterate(self) -> Iterator[Primitive]:
        for char in self.value:
            yield String(char)

    def length(self) -> int:
        return len(self.value)


# =============================================================================
# Containers
# =============================================================================

@dataclass
class Array(Primitive, Arithmetic, Container, Sliceable, Iterable, Sizeable):
    """
    Ordered, mutable list of values.

    Arithmetic returns a new array:
        [1, 2] + [3]   -> [1, 2, 3]    (concatenation)
        [1, 2] + 3     -> [1, 2, 3]    (append)
        [1, 2, 3] - 1  -> [1, 2]       (drop last n; negative drops first n)
        [1] * 3        -> [1, 1, 1]
        [1, 2, 3, 4] / 2 -> [[1, 2], [3, 4]]
    """
    values: List[Primitive] = field(default_factory=list)
    type_name = "array"

    def raw(self) -> list:
        return _raw_container(self, {})

    def is_truthy(self) -> bool:
        return len(self.values) > 0

    def display(self) -> str:
        return _display_container(self, set())

    def add(self, other: Primitive) -> Primitive:
        if isinstance(other, Array):
            return Array(self.values + other.values)
        return Array(self.values + [other])

    def sub(self, other: Primitive) -> Primitive:
        offset = _count("-", self, other)
        size = len(self.values)
        if offset > size or -offset > size:
            return Array([])
        if offset < 0:
            return Array(self.values[-offset:])
        return Array(self.values[:size - offset])

    def mul(self, other: Primitive) -> Primitive:
        return Array(self.values * _repeat_count("*", self, other, len(self.values)))

    def div(self, other: Primitive) -> Primitive:
        parts = _count("/", self, other)
        size = len(self.values)
        if parts <= 0:
            raise DomainError("array can not be divided by zero or a negative value")
        if parts > size:
            raise DomainError(f"array of length {size} can not be divided by {parts}")
        step = size // parts
        chunks: List[Primitive] = []
        i = 0
        while i < size and len(chunks) < parts:
            end = size if len(chunks) == parts - 1 else min(i + step, size)
            chunks.append(Array(self.values[i:end]))
            i += step
        return Array(chunks)

    def mod(self, other: Primitive) -> Primitive:
        raise _unsupported("%", self)

    def pow(self, other: Primitive) -> Primitive:
        raise _unsupported("**", self)

    def negate(self) -> Primitive:
        raise _unsupported("-", self)

    def get(self, key: Primitive) -> Primitive:
        return self.values[_normalize_index(key, len(self.values))]

    def set(self, key: Primitive, value: Primitive) -> None:
        self.values[_normalize_index(key, len(self.values))] = value

    def slice(self, start, end, step) -> Primitive:
        return Array(self.values[_python_slice(start, end, step)])

    def iterate(self) -> Iterator[Primitive]:
        return iter(list(self.values))

    def length(self) -> int:
        return len(self.values)


def _check_key(key: Primitive) -> Primitive:
    if isinstance(key, (Array, Dict)):
        raise IncompatibleTypeError(f"{key.type_name} can not be used as dict key")
    return key


@dataclass
class Dict(Primitive, Arithmetic, Container, Iterable, Sizeable):
    """
    Insertion-ordered mapping from scalar keys to values.

    Iteration yields the values. ``+`` merges two dicts into a new one and
    ``- key`` returns a copy without that key.
    """
    entries: DictType[Primitive, Primitive] = field(default_factory=dict)
    type_name = "dict"

    def raw(self) -> dict:
        return _raw_container(self, {})

    def is_truthy(self) -> bool:
        return len(self.entries) > 0

    def display(self) -> str:
        return _display_container(self, set())

    def add(self, other: Primitive) -> Primitive:
        if not isinstance(other, Dict):
            raise _incompatible("+", self, other)
        merged = dict(self.entries)
        merged.update(other.entries)
        return Dict(merged)

    def sub(self, other: Primitive) -> Primitive:
        remaining = dict(self.entries)
        remaining.pop(_check_key(other), None)
        return Dict(remaining)

    def mul(self, other: Primitive) -> Primitive:
        raise _unsupported("*", self)

    def div(self, other: Primitive) -> Primitive:
        raise _unsupported("/", self)

    def mod(self, other: Primitive) -> Primitive:
        raise _unsupported("%", self)

    def pow(self, other: Primitive) -> Primitive:
        raise _unsupported("**", self)

    def negate(self) -> Primitive:
        raise _unsupported("-", self)

    def get(self, key: Primitive) -> Primitive:
        try:
            return self.entries[_check_key(key)]
        except KeyError:
            raise KeyNotFoundError(f"{_repr(key)}: key not found")

    def set(self, key: Primitive, value: Primitive) -> None:
        self.entries[_check_key(key)] = value

    def iterate(self) -> Iterator[Primitive]:
        return iter(list(self.entries.values()))

    def length(self) -> int:
        return len(self.entries)


def _repr(value: Primitive, active: Optional[set] = None) -> str:
    """Element form inside containers: strings are quoted."""
    if isinstance(value, String):
        return repr(value.value)
    if isinstance(value, (Array, Dict)):
        return _display_container(value, set() if active is None else active)
    return value.display()


def _display_container(value: Primitive, active: set) -> str:
    """A container already being displayed shows as [...] or {...}."""
    if id(value) in active:
        return "[...]" if isinstance(value, Array) else "{...}"
    active.add(id(value))
    try:
        if isinstance(value, Array):
            return "[" + ", ".join(_repr(v, active) for v in value.values) + "]"
        items = ", ".join(f"{_repr(k, active)}: {_repr(v, active)}"
                          for k, v in value.entries.items())
        return "{" + items + "}"
    finally:
        active.discard(id(value))


def _raw_container(value: Primitive, converted: dict) -> Any:
    """Host list or dict; shared and cyclic references are kept as such."""
    if id(value) in converted:
        return converted[id(value)]
    if isinstance(value, Array):
        result = converted[id(value)] = []
        result.extend(_raw_element(v, converted) for v in value.values)
        return result
    result = converted[id(value)] = {}
    for k, v in value.entries.items():
        result[k.raw()] = _raw_element(v, converted)
    return result


def _raw_element(value: Primitive, converted: dict) -> Any:
    if isinstance(value, (Array, Dict)):
        return _raw_container(value, converted)
    return value.raw()


# =============================================================================
# Operator Dispatch
# =============================================================================

BINARY_OPERATIONS: DictType[TokenType, tuple] = {
    TokenType.PLUS: (Arithmetic, "add"),
    TokenType.MINUS: (Arithmetic, "sub"),
    TokenType.STAR: (Arithmetic, "mul"),
    TokenType.SLASH: (Arithmetic, "div"),
    TokenType.PERCENT: (Arithmetic, "mod"),
    TokenType.DOUBLE_STAR: (Arithmetic, "pow"),
    TokenType.LSHIFT: (Bitwise, "lshift"),
    TokenType.RSHIFT: (Bitwise, "rshift"),
    TokenType.AMPERSAND: (Bitwise, "bit_and"),
    TokenType.PIPE: (Bitwise, "bit_or"),
    TokenType.CARET: (Bitwise, "bit_xor"),
    TokenType.EQ: (Comparable, "eq"),
    TokenType.NE: (Comparable, "ne"),
    TokenType.LT: (Comparable, "lt"),
    TokenType.LE: (Comparable, "le"),
    TokenType.GT: (Comparable, "gt"),
    TokenType.GE: (Comparable, "ge"),
}


def binary_operation(op: TokenType, left: Primitive, right: Primitive) -> Primitive:
    """
    Apply a binary operator to two evaluated operands.

    Raises:
        UnsupportedOperationError: The left operand lacks the capability
        IncompatibleTypeError: The right operand can not be combined with the left
        DomainError: Division by zero, bad shift count, etc.
    """
    if op == TokenType.AND:
        return Bool(left.is_truthy() and right.is_truthy())
    if op == TokenType.OR:
        return Bool(left.is_truthy() or right.is_truthy())

    try:
        capability, method = BINARY_OPERATIONS[op]
    except KeyError:
        raise UnsupportedOperationError(f"unknown binary operator {op.name}")
    symbol = OPERATOR_SYMBOLS.get(op, op.name)
    if not isinstance(left, capability):
        raise _unsupported(symbol, left)
    try:
        return getattr(left, method)(right)
    except (OverflowError, MemoryError) as exc:
        raise DomainError(f"result of '{symbol}' is out of range: {exc}")


def unary_operation(op: TokenType, operand: Primitive) -> Primitive:
    """Apply a prefix operator (-, !, ~)."""
    if op == TokenType.NOT:
        return operand.logical_not()
    if op == TokenType.MINUS:
        if not isinstance(operand, Arithmetic):
            raise _unsupported("-", operand)
        return operand.negate()
    if op == TokenType.TILDE:
        if not isinstance(operand, Bitwise):
            raise _unsupported("~", operand)
        return operand.bit_not()
    raise UnsupportedOperationError(f"unknown unary operator {op.name}")


# =============================================================================
# Host Conversion
# =============================================================================

def wrap(data: Any) -> Optional[Primitive]:
    """Convert a host value into a Primitive (None stays None)."""
    if data is None or isinstance(data, Primitive):
        return data
    if isinstance(data, bool):
        return Bool(data)
    if isinstance(data, int):
        return Int(data)
    if isinstance(data, float):
        return Float(data)
    if isinstance(data, str):
        return String(data)
    if isinstance(data, (list, tuple)):
        return Array([wrap(item) for item in data])
    if isinstance(data, dict):
        return Dict({_check_key(wrap(k)): wrap(v) for k, v in data.items()})
    raise IncompatibleTypeError(f"can not convert {type(data).__name__} to a buddy value")


def unwrap(value: Optional[Primitive]) -> Any:
    """Extract the host value (None stays None)."""
    if value is None:
        return None
    return value.raw()


def type_name(value: Optional[Primitive]) -> str:
    """Type name of a value; the absence of a value is 'nil'."""
    if value is None:
        return "nil"
    return value.type_name
