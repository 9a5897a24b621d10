"""
Tests for runtime values and operator dispatch.
"""

import pytest

from buddy import TokenType
from buddy.errors import (
    UnsupportedOperationError, IncompatibleTypeError, DomainError,
    DivisionByZeroError, IndexOutOfRangeError, KeyNotFoundError,
)
from buddy.runtime import (
    Int, Float, Bool, String, Array, Dict,
    Arithmetic, Bitwise, Comparable, Container, Sliceable, Iterable, Sizeable,
    binary_operation, unary_operation, wrap, unwrap, type_name,
)


def op(token_type, left, right):
    return binary_operation(token_type, left, right)


class TestCapabilities:
    """Test which capabilities each type implements."""

    def test_int(self):
        """Test int is arithmetic, bitwise and comparable."""
        v = Int(1)
        assert isinstance(v, (Arithmetic, Bitwise, Comparable))
        assert not isinstance(v, Container)

    def test_float_has_no_bitwise(self):
        """Test float lacks bitwise operators."""
        assert not isinstance(Float(1.0), Bitwise)

    def test_string(self):
        """Test string capabilities."""
        v = String("a")
        for cap in (Arithmetic, Comparable, Container, Sliceable, Iterable, Sizeable):
            assert isinstance(v, cap)

    def test_array_and_dict(self):
        """Test container capabilities."""
        assert isinstance(Array([]), Sliceable)
        assert not isinstance(Dict(), Sliceable)
        assert isinstance(Dict(), Iterable)

    def test_type_names(self):
        """Test type names, including the absence of a value."""
        assert [type_name(v) for v in (Int(1), Float(1.0), Bool(True), String(""), Array(), Dict())] \
            == ["int", "float", "bool", "string", "array", "dict"]
        assert type_name(None) == "nil"


class TestNumericArithmetic:
    """Test int and float arithmetic."""

    def test_int_operations(self):
        """Test int with int stays int."""
        assert op(TokenType.PLUS, Int(2), Int(3)) == Int(5)
        assert op(TokenType.MINUS, Int(2), Int(3)) == Int(-1)
        assert op(TokenType.STAR, Int(2), Int(3)) == Int(6)
        assert op(TokenType.DOUBLE_STAR, Int(2), Int(10)) == Int(1024)

    def test_int_division_truncates(self):
        """Test int division truncates toward zero."""
        assert op(TokenType.SLASH, Int(7), Int(2)) == Int(3)
        assert op(TokenType.SLASH, Int(-7), Int(2)) == Int(-3)

    def test_int_modulo_sign_of_dividend(self):
        """Test int modulo keeps the dividend's sign."""
        assert op(TokenType.PERCENT, Int(7), Int(3)) == Int(1)
        assert op(TokenType.PERCENT, Int(-7), Int(3)) == Int(-1)

    def test_promotion_to_float(self):
        """Test int mixed with float gives float."""
        assert op(TokenType.PLUS, Int(1), Float(0.5)) == Float(1.5)
        assert op(TokenType.STAR, Float(2.0), Int(3)) == Float(6.0)

    def test_float_modulo(self):
        """Test float modulo uses fmod."""
        assert op(TokenType.PERCENT, Float(-7.5), Int(2)) == Float(-1.5)

    def test_negative_exponent_truncates(self):
        """Test int power with a negative exponent."""
        assert op(TokenType.DOUBLE_STAR, Int(2), Int(-1)) == Int(0)

    @pytest.mark.parametrize("token_type", [TokenType.SLASH, TokenType.PERCENT])
    def test_division_by_zero(self, token_type):
        """Test division and modulo by zero."""
        with pytest.raises(DivisionByZeroError) as exc_info:
            op(token_type, Int(1), Int(0))
        assert "E404" in str(exc_info.value)
        with pytest.raises(DivisionByZeroError):
            op(token_type, Float(1.0), Float(0.0))

    def test_invalid_power(self):
        """Test a power with no real result."""
        with pytest.raises(DomainError):
            op(TokenType.DOUBLE_STAR, Float(-8.0), Float(0.5))

    @pytest.mark.parametrize("token_type,left,right", [
        (TokenType.PLUS, Int(10 ** 400), Float(1.5)),
        (TokenType.STAR, Float(1.5), Int(10 ** 400)),
        (TokenType.DOUBLE_STAR, Int(10 ** 400), Float(0.5)),
        (TokenType.DOUBLE_STAR, Int(10 ** 400), Int(-1)),
        (TokenType.DOUBLE_STAR, Int(3), Int(10 ** 8)),
    ])
    def test_result_out_of_range(self, token_type, left, right):
        """Test results that can not be represented raise a domain error."""
        with pytest.raises(DomainError) as exc_info:
            op(token_type, left, right)
        assert "E404" in str(exc_info.value)

    def test_large_int_power(self):
        """Test powers stay exact below the size limit."""
        assert op(TokenType.DOUBLE_STAR, Int(10), Int(400)) == Int(10 ** 400)
        assert op(TokenType.DOUBLE_STAR, Int(1), Int(10 ** 12)) == Int(1)

    def test_number_plus_string(self):
        """Test numbers concatenate with strings."""
        assert op(TokenType.PLUS, Int(1), String("a")) == String("1a")
        assert op(TokenType.PLUS, Float(1.5), String("x")) == String("1.5x")

    def test_bool_has_no_arithmetic(self):
        """Test true + 1 is unsupported."""
        with pytest.raises(UnsupportedOperationError) as exc_info:
            op(TokenType.PLUS, Bool(True), Int(1))
        assert "E401" in str(exc_info.value)

    def test_int_plus_bool_incompatible(self):
        """Test 1 + true is an incompatible operand."""
        with pytest.raises(IncompatibleTypeError) as exc_info:
            op(TokenType.PLUS, Int(1), Bool(True))
        assert "E402" in str(exc_info.value)


class TestBitwise:
    """Test bitwise and shift operators."""

    def test_operators(self):
        """Test & | ^ << >>."""
        assert op(TokenType.AMPERSAND, Int(6), Int(3)) == Int(2)
        assert op(TokenType.PIPE, Int(6), Int(3)) == Int(7)
        assert op(TokenType.CARET, Int(6), Int(3)) == Int(5)
        assert op(TokenType.LSHIFT, Int(1), Int(4)) == Int(16)
        assert op(TokenType.RSHIFT, Int(16), Int(2)) == Int(4)

    def test_negative_shift(self):
        """Test a negative shift count."""
        with pytest.raises(DomainError):
            op(TokenType.LSHIFT, Int(1), Int(-1))

    def test_huge_shift(self):
        """Test a shift count too large to represent."""
        with pytest.raises(DomainError):
            op(TokenType.LSHIFT, Int(1), Int(10 ** 11))
        assert op(TokenType.RSHIFT, Int(1), Int(10 ** 11)) == Int(0)

    def test_requires_int(self):
        """Test bitwise operators reject floats."""
        with pytest.raises(IncompatibleTypeError):
            op(TokenType.AMPERSAND, Int(1), Float(1.0))
        with pytest.raises(UnsupportedOperationError):
            op(TokenType.AMPERSAND, Float(1.0), Int(1))

    def test_bit_not(self):
        """Test unary ~."""
        assert unary_operation(TokenType.TILDE, Int(0)) == Int(-1)


class TestComparison:
    """Test comparison operators."""

    def test_same_type(self):
        """Test comparisons between values of one type."""
        assert op(TokenType.LT, Int(1), Int(2)) == Bool(True)
        assert op(TokenType.GE, Float(1.0), Float(2.0)) == Bool(False)
        assert op(TokenType.LT, String("a"), String("b")) == Bool(True)
        assert op(TokenType.EQ, String("a"), String("a")) == Bool(True)

    def test_mixed_numeric_rejected(self):
        """Test int and float do not compare."""
        with pytest.raises(IncompatibleTypeError):
            op(TokenType.EQ, Int(1), Float(1.0))

    def test_int_and_string_rejected(self):
        """Test 1 < "a" fails."""
        with pytest.raises(IncompatibleTypeError):
            op(TokenType.LT, Int(1), String("a"))

    def test_bool_equality_only(self):
        """Test bools support only == and !=."""
        assert op(TokenType.EQ, Bool(True), Bool(True)) == Bool(True)
        assert op(TokenType.NE, Bool(True), Bool(False)) == Bool(True)
        with pytest.raises(UnsupportedOperationError):
            op(TokenType.LT, Bool(True), Bool(False))

    def test_array_not_comparable(self):
        """Test arrays have no comparison."""
        with pytest.raises(UnsupportedOperationError):
            op(TokenType.EQ, Array([]), Array([]))


class TestLogical:
    """Test logical operators and truthiness."""

    def test_and_or(self):
        """Test && and || combine truthiness."""
        assert op(TokenType.AND, Int(1), String("x")) == Bool(True)
        assert op(TokenType.AND, Int(1), String("")) == Bool(False)
        assert op(TokenType.OR, Int(0), Array([Int(1)])) == Bool(True)

    @pytest.mark.parametrize("value,truthy", [
        (Bool(True), True),
        (Bool(False), False),
        (Int(0), False),
        (Int(-2), True),
        (Float(0.0), False),
        (String(""), False),
        (String("0"), True),
        (Array([]), False),
        (Dict(), False),
        (Dict({String("a"): Int(1)}), True),
    ])
    def test_truthiness(self, value, truthy):
        """Test truthiness per type."""
        assert value.is_truthy() is truthy

    def test_not(self):
        """Test unary !."""
        assert unary_operation(TokenType.NOT, Int(0)) == Bool(True)
        assert unary_operation(TokenType.NOT, String("a")) == Bool(False)

    def test_negate(self):
        """Test unary minus."""
        assert unary_operation(TokenType.MINUS, Float(1.5)) == Float(-1.5)
        with pytest.raises(UnsupportedOperationError):
            unary_operation(TokenType.MINUS, Bool(True))


class TestStrings:
    """Test string arithmetic and access."""

    def test_keep_first(self):
        """Test "hello" - 2 keeps the first two characters."""
        assert op(TokenType.MINUS, String("hello"), Int(2)) == String("he")

    def test_drop_first(self):
        """Test a negative count drops characters from the front."""
        assert op(TokenType.MINUS, String("hello"), Int(-2)) == String("llo")

    def test_keep_more_than_length(self):
        """Test keeping more than the length gives the empty string."""
        assert op(TokenType.MINUS, String("hi"), Int(5)) == String("")

    def test_repeat_too_large(self):
        """Test string repetition past the size limit."""
        with pytest.raises(DomainError) as exc_info:
            op(TokenType.STAR, String("a"), Int(10 ** 12))
        assert "E404" in str(exc_info.value)
        assert op(TokenType.STAR, String(""), Int(10 ** 12)) == String("")

    def test_repeat(self):
        """Test string repetition."""
        assert op(TokenType.STAR, String("ab"), Int(3)) == String("ababab")

    def test_divide(self):
        """Test string division keeps len / n characters."""
        assert op(TokenType.SLASH, String("abcdef"), Int(2)) == String("abc")
        assert op(TokenType.SLASH, String("abc"), Int(0)) == String("abc")

    def test_index_and_slice(self):
        """Test indexing and slicing strings."""
        s = String("hello")
        assert s.get(Int(1)) == String("e")
        assert s.get(Int(-1)) == String("o")
        assert s.slice(Int(1), Int(3), None) == String("el")

    def test_immutable(self):
        """Test strings reject index assignment."""
        with pytest.raises(UnsupportedOperationError):
            String("a").set(Int(0), String("b"))

    def test_iterate(self):
        """Test iterating characters."""
        assert [c.value for c in String("ab").iterate()] == ["a", "b"]


class TestArrays:
    """Test array arithmetic and access."""

    def arr(self, *items):
        return Array([Int(i) for i in items])

    def test_concatenate_and_append(self):
        """Test + with an array and with a scalar."""
        assert op(TokenType.PLUS, self.arr(1, 2), self.arr(3)).raw() == [1, 2, 3]
        assert op(TokenType.PLUS, self.arr(1, 2), Int(3)).raw() == [1, 2, 3]

    def test_drop(self):
        """Test - drops from the end, or the front when negative."""
        assert op(TokenType.MINUS, self.arr(1, 2, 3), Int(1)).raw() == [1, 2]
        assert op(TokenType.MINUS, self.arr(1, 2, 3), Int(-1)).raw() == [2, 3]

    def test_repeat(self):
        """Test array repetition."""
        assert op(TokenType.STAR, self.arr(1), Int(3)).raw() == [1, 1, 1]

    def test_repeat_too_large(self):
        """Test repetition past the size limit."""
        with pytest.raises(DomainError):
            op(TokenType.STAR, self.arr(1, 2), Int(10 ** 12))
        with pytest.raises(DomainError):
            op(TokenType.STAR, self.arr(1), Float(float("inf")))
        assert op(TokenType.STAR, Array([]), Int(10 ** 12)).raw() == []

    def test_self_reference(self):
        """Test an array that contains itself."""
        array = self.arr(1, 2)
        array.set(Int(1), array)
        assert array.display() == "[1, [...]]"
        data = array.raw()
        assert data[1] is data

    def test_shared_element_displayed_twice(self):
        """Test a repeated element that is not a cycle is shown in full."""
        inner = self.arr(1)
        assert Array([inner, inner]).display() == "[[1], [1]]"

    def test_split(self):
        """Test / splits into chunks."""
        assert op(TokenType.SLASH, self.arr(1, 2, 3, 4), Int(2)).raw() == [[1, 2], [3, 4]]
        assert op(TokenType.SLASH, self.arr(1, 2, 3), Int(2)).raw() == [[1], [2, 3]]

    @pytest.mark.parametrize("parts", [0, -1, 4])
    def test_invalid_split(self, parts):
        """Test splitting into too many or non-positive chunks."""
        with pytest.raises(DomainError):
            op(TokenType.SLASH, self.arr(1, 2, 3), Int(parts))

    def test_arithmetic_returns_new_array(self):
        """Test the operands are not modified."""
        left = self.arr(1)
        op(TokenType.PLUS, left, Int(2))
        assert left.raw() == [1]

    def test_index(self):
        """Test indexing with int, float and negative indices."""
        a = self.arr(10, 20, 30)
        assert a.get(Int(0)) == Int(10)
        assert a.get(Float(1.9)) == Int(20)
        assert a.get(Int(-1)) == Int(30)

    def test_index_out_of_range(self):
        """Test out-of-range access."""
        with pytest.raises(IndexOutOfRangeError) as exc_info:
            self.arr(1).get(Int(3))
        assert "E405" in str(exc_info.value)

    def test_non_numeric_index(self):
        """Test a string index is rejected."""
        with pytest.raises(IncompatibleTypeError):
            self.arr(1).get(String("0"))

    def test_set(self):
        """Test index assignment."""
        a = self.arr(1, 2)
        a.set(Int(-1), Int(9))
        assert a.raw() == [1, 9]

    def test_slice(self):
        """Test slicing with a step."""
        assert self.arr(0, 1, 2, 3, 4).slice(None, None, Int(2)).raw() == [0, 2, 4]

    def test_zero_step(self):
        """Test a zero slice step."""
        with pytest.raises(DomainError):
            self.arr(1, 2).slice(None, None, Int(0))

    def test_display(self):
        """Test display quotes strings inside containers."""
        assert Array([Int(1), String("a"), Float(2.0)]).display() == "[1, 'a', 2]"


class TestDicts:
    """Test dict behavior."""

    def test_get_set(self):
        """Test setting and reading keys."""
        d = Dict()
        d.set(String("a"), Int(1))
        d.set(Int(1), String("one"))
        assert d.get(String("a")) == Int(1)
        assert d.get(Int(1)) == String("one")

    def test_keys_distinguish_types(self):
        """Test that 1, 1.0 and "1" are distinct keys."""
        d = Dict()
        d.set(Int(1), String("int"))
        d.set(Float(1.0), String("float"))
        d.set(String("1"), String("string"))
        assert d.length() == 3

    def test_missing_key(self):
        """Test a missing key."""
        with pytest.raises(KeyNotFoundError) as exc_info:
            Dict().get(String("nope"))
        assert "E406" in str(exc_info.value)

    def test_container_key_rejected(self):
        """Test arrays can not be keys."""
        with pytest.raises(IncompatibleTypeError):
            Dict().set(Array([]), Int(1))

    def test_self_reference(self):
        """Test a dict that contains itself."""
        d = Dict({String("a"): Int(1)})
        d.set(String("me"), d)
        assert d.display() == "{'a': 1, 'me': {...}}"
        data = d.raw()
        assert data["me"] is data

    def test_merge_and_remove(self):
        """Test + merges and - removes a key."""
        a = Dict({String("a"): Int(1)})
        b = Dict({String("b"): Int(2)})
        merged = op(TokenType.PLUS, a, b)
        assert merged.raw() == {"a": 1, "b": 2}
        assert op(TokenType.MINUS, merged, String("a")).raw() == {"b": 2}
        assert a.raw() == {"a": 1}

    def test_iterate_values(self):
        """Test iteration yields values in insertion order."""
        d = Dict({String("x"): Int(1), String("y"): Int(2)})
        assert [v.value for v in d.iterate()] == [1, 2]

    def test_display(self):
        """Test the dict display form."""
        assert Dict({String("a"): Int(1)}).display() == "{'a': 1}"


class TestHostConversion:
    """Test wrap and unwrap."""

    def test_wrap_scalars(self):
        """Test host scalars become primitives."""
        assert wrap(True) == Bool(True)
        assert wrap(3) == Int(3)
        assert wrap(1.5) == Float(1.5)
        assert wrap("s") == String("s")
        assert wrap(None) is None

    def test_round_trip_nested(self):
        """Test nested containers survive wrap then unwrap."""
        data = {"a": [1, 2.5, "x"], "b": {"c": False}}
        assert unwrap(wrap(data)) == data

    def test_unsupported_host_value(self):
        """Test objects without a buddy form are rejected."""
        with pytest.raises(IncompatibleTypeError):
            wrap(object())

    def test_display_forms(self):
        """Test display of scalars."""
        assert Float(2.0).display() == "2"
        assert Float(2.5).display() == "2.5"
        assert Bool(False).display() == "false"
        assert str(Int(7)) == "7"
