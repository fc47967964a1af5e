import math
import operator

import pytest

from sailrvm import calc
from sailrvm.stack import ItemType, StackItem, VarTable, VarType, VMError, VMStack


def ival(value):
    return StackItem(ItemType.IVAL, value)


def dval(value):
    return StackItem(ItemType.DVAL, value)


def sval(value):
    return StackItem(ItemType.PP_STR, value)


def bval(value):
    return StackItem(ItemType.BOOLEAN, value)


def make_stack(*items):
    stack = VMStack()
    for item in items:
        stack.push(item)
    return stack


def test_add_then_sub_round_trip():
    stack = make_stack(ival(17), ival(25))
    summed = calc.add(stack)
    assert summed.type is ItemType.IVAL
    stack.push(ival(25))
    back = calc.sub(stack)
    assert back.type is ItemType.IVAL
    assert back.value == 17
    assert len(stack) == 1


def test_add_beyond_int_limit_becomes_double():
    stack = make_stack(ival(calc.INT_MAX), ival(1))
    result = calc.add(stack)
    assert result.type is ItemType.DVAL
    assert result.value > calc.INT_MAX


def test_add_mixed_numbers_gives_double():
    stack = make_stack(ival(2), dval(0.5))
    result = calc.add(stack)
    assert result.type is ItemType.DVAL
    stack.push(dval(0.5))
    assert calc.sub(stack).value == 2.0


def test_add_strings_concatenates_to_temporary():
    left, right = "foo", "bar"
    stack = make_stack(sval(left), sval(right))
    result = calc.add(stack)
    assert result.type is ItemType.PP_STR
    assert result.is_temp()
    assert result.value == left + right
    assert stack.top() is result


def test_add_string_and_number_is_error():
    stack = make_stack(sval("a"), ival(1))
    with pytest.raises(VMError):
        calc.add(stack)
    assert stack.has_error()
    assert len(stack) == 2


def test_sub_self_is_zero():
    stack = make_stack(ival(42), ival(42))
    result = calc.sub(stack)
    assert result.type is ItemType.IVAL
    assert result.value == 0


def test_mul_by_one_keeps_value():
    stack = make_stack(ival(123), ival(1))
    result = calc.mul(stack)
    assert (result.type, result.value) == (ItemType.IVAL, 123)


def test_mul_int_by_double_is_double():
    stack = make_stack(ival(3), dval(1.0))
    result = calc.mul(stack)
    assert result.type is ItemType.DVAL
    assert result.value == 3.0


def test_mul_overflow_becomes_double():
    stack = make_stack(ival(calc.INT_MAX), ival(calc.INT_MAX))
    result = calc.mul(stack)
    assert result.type is ItemType.DVAL
    assert result.value > calc.INT_MAX


def test_div_always_double_and_inverts_mul():
    stack = make_stack(ival(7), ival(2))
    quotient = calc.div(stack)
    assert quotient.type is ItemType.DVAL
    stack.push(ival(2))
    product = calc.mul(stack)
    assert product.value == 7


def test_div_by_zero_gives_infinity():
    stack = make_stack(ival(5), ival(0))
    result = calc.div(stack)
    assert math.isinf(result.value)
    assert result.value > 0


def test_div_zero_by_zero_gives_nan():
    stack = make_stack(dval(0.0), ival(0))
    result = calc.div(stack)
    assert result.type is ItemType.DVAL
    assert math.isnan(result.value)
    assert len(stack) == 1


def test_div_non_number_is_error():
    stack = make_stack(bval(True), ival(1))
    with pytest.raises(VMError):
        calc.div(stack)
    assert stack.error_count() == 1


def test_power_of_one_is_identity():
    stack = make_stack(ival(9), ival(1))
    result = calc.power(stack)
    assert (result.type, result.value) == (ItemType.IVAL, 9)


def test_power_of_zero_is_one():
    stack = make_stack(dval(3.5), ival(0))
    result = calc.power(stack)
    assert result.type is ItemType.DVAL
    assert result.value == 1.0


def test_power_matches_square_by_mul():
    stack = make_stack(ival(12), ival(2))
    squared = calc.power(stack).value
    other = make_stack(ival(12), ival(12))
    assert calc.mul(other).value == squared


@pytest.mark.parametrize("dividend, divisor", [(7, 3), (-7, 3), (7, -3), (9, 3)])
def test_mod_int_sign_follows_dividend(dividend, divisor):
    stack = make_stack(ival(dividend), ival(divisor))
    result = calc.mod(stack)
    assert result.type is ItemType.IVAL
    assert (dividend - result.value) % divisor == 0
    assert abs(result.value) < abs(divisor)
    assert result.value == 0 or (result.value > 0) == (dividend > 0)


def test_mod_by_zero_is_error():
    stack = make_stack(ival(4), ival(0))
    with pytest.raises(VMError):
        calc.mod(stack)
    assert stack.has_error()


def test_mod_double_gives_fraction_of_left():
    stack = make_stack(dval(5.25), ival(2))
    assert calc.mod(stack).value == math.modf(5.25)[0]


@pytest.mark.parametrize("n", range(1, 13))
def test_factorial_small(n):
    stack = make_stack(ival(n))
    result = calc.factorial(stack)
    assert result.type is ItemType.IVAL
    assert result.value == math.factorial(n)


def test_factorial_beyond_int_is_double():
    stack = make_stack(ival(13))
    result = calc.factorial(stack)
    assert result.type is ItemType.DVAL
    assert result.value == float(math.factorial(13))


def test_factorial_of_negative_is_minus_one():
    stack = make_stack(ival(-3))
    assert calc.factorial(stack).value == -1


def test_factorial_of_double_truncates():
    stack = make_stack(dval(4.7))
    result = calc.factorial(stack)
    assert (result.type, result.value) == (ItemType.IVAL, math.factorial(4))


def test_factorial_of_string_is_error():
    stack = make_stack(sval("x"))
    with pytest.raises(VMError):
        calc.factorial(stack)


@pytest.mark.parametrize("item", [ival(8), dval(-2.5)])
def test_uminus_twice_is_identity(item):
    original_type, original_value = item.type, item.value
    stack = make_stack(item)
    once = calc.uminus(stack)
    assert once.value == -original_value
    twice = calc.uminus(stack)
    assert (twice.type, twice.value) == (original_type, original_value)


def test_uminus_of_bool_is_error():
    stack = make_stack(bval(True))
    with pytest.raises(VMError):
        calc.uminus(stack)


@pytest.mark.parametrize("a", [True, False])
@pytest.mark.parametrize("b", [True, False])
def test_and_or(a, b):
    stack = make_stack(bval(a), bval(b))
    assert calc.logical_and(stack).value is (a and b)
    stack = make_stack(bval(a), bval(b))
    assert calc.logical_or(stack).value is (a or b)


def test_and_needs_booleans():
    stack = make_stack(bval(True), ival(1))
    with pytest.raises(VMError):
        calc.logical_and(stack)
    stack = make_stack(ival(1), bval(True))
    with pytest.raises(VMError):
        calc.logical_or(stack)


def test_eq_numbers_across_types():
    stack = make_stack(ival(3), dval(3.0))
    result = calc.eq(stack)
    assert result.type is ItemType.BOOLEAN
    assert result.value is True


def test_eq_strings():
    assert calc.eq(make_stack(sval("abc"), sval("abc"))).value is True
    assert calc.eq(make_stack(sval("abc"), sval("abd"))).value is False


def test_eq_nan_handling():
    assert calc.eq(make_stack(dval(math.nan), dval(math.nan))).value is True
    assert calc.eq(make_stack(dval(math.nan), ival(1))).value is False


def test_eq_incompatible_is_error():
    stack = make_stack(ival(1), sval("1"))
    with pytest.raises(VMError):
        calc.eq(stack)
    assert stack.has_error()


def test_neq_is_negation_of_eq():
    for left, right in [(ival(1), ival(2)), (sval("a"), sval("a")), (ival(2), dval(2.0))]:
        expected = not calc.eq(make_stack(left, right)).value
        fresh_left = StackItem(left.type, left.value)
        fresh_right = StackItem(right.type, right.value)
        assert calc.neq(make_stack(fresh_left, fresh_right)).value is expected


def test_neq_nan_handling():
    assert calc.neq(make_stack(dval(math.nan), dval(math.nan))).value is False
    assert calc.neq(make_stack(dval(math.nan), dval(1.0))).value is True


def test_neq_incompatible_is_error():
    with pytest.raises(VMError):
        calc.neq(make_stack(bval(True), bval(True)))


@pytest.mark.parametrize(
    "func, op",
    [(calc.gt, operator.gt), (calc.lt, operator.lt), (calc.ge, operator.ge), (calc.le, operator.le)],
)
@pytest.mark.parametrize("left, right", [(1, 2), (2, 1), (2, 2), (1.5, 2)])
def test_ordering(func, op, left, right):
    make = dval if isinstance(left, float) else ival
    stack = make_stack(make(left), ival(right))
    result = func(stack)
    assert result.type is ItemType.BOOLEAN
    assert result.value is op(left, right)
    assert len(stack) == 1


@pytest.mark.parametrize("func", [calc.gt, calc.lt, calc.ge, calc.le])
def test_ordering_rejects_strings(func):
    stack = make_stack(sval("a"), sval("b"))
    with pytest.raises(VMError):
        func(stack)
    assert stack.has_error()


def test_neg_flips_and_rejects_numbers():
    stack = make_stack(bval(False))
    assert calc.neg(stack).value is True
    assert calc.neg(stack).value is False
    with pytest.raises(VMError):
        calc.neg(make_stack(ival(0)))


def test_variable_reference_is_read_not_changed():
    table = VarTable()
    record = table.add("x", 10, VarType.INT)
    stack = make_stack(StackItem(ItemType.PP_IVAL, record=record), ival(5))
    result = calc.add(stack)
    stack.push(ival(5))
    assert calc.sub(stack).value == 10
    assert result.type is ItemType.IVAL
    assert table.get("x") == 10


def test_undefined_variable_is_error():
    table = VarTable()
    record = table.add("y", None, VarType.NULL)
    stack = make_stack(StackItem(ItemType.NULL_ITEM, record=record), ival(1))
    with pytest.raises(VMError):
        calc.add(stack)
    assert stack.error_count() == 1