"""Arithmetic, comparison and logical operations on the VM stack.

Every operation takes its operands from the top of the stack, replaces them
with the result and returns the pushed result item. When the operands are
of the wrong kind, the stack's error counter is raised and :class:`VMError`
is raised; the stack is then left as it was.
"""

from __future__ import annotations

import math
import operator
from collections.abc import Callable

from sailrvm.stack import ItemType, StackItem, VMError, VMStack

INT_MIN = -(2**31)
INT_MAX = 2**31 - 1

_NUMERIC = frozenset({ItemType.IVAL, ItemType.DVAL})


def _within_int_limits(num: float) -> bool:
    return INT_MIN < num < INT_MAX


def _fail(stack: VMStack, message: str) -> VMError:
    stack.raise_error()
    return VMError(message)


def _c_pow(x: float, y: float) -> float:
    """Power with the results of C's pow() instead of Python exceptions."""
    try:
        return math.pow(x, y)
    except OverflowError:
        if x < 0 and y.is_integer() and int(y) % 2:
            return -math.inf
        return math.inf
    except ValueError:
        if x == 0:
            if y.is_integer() and int(y) % 2:
                return math.copysign(math.inf, x)
            return math.inf
        return math.nan


def _int_pow(x: int, y: int) -> int:
    return int(_c_pow(float(x), float(y)) + 0.5)


def _int_mod(x: int, y: int) -> int:
    """Remainder whose sign follows the dividend."""
    if y == 0:
        raise ZeroDivisionError("integer modulo by zero")
    remainder = abs(x) % abs(y)
    return -remainder if x < 0 else remainder


def _dbl_mod(x: float, y: float) -> float:
    # The double form of the modulo operator yields the fractional part of
    # the left operand; the right operand takes no part in it.
    return math.modf(x)[0]


def _c_div(x: float, y: float) -> float:
    """Floating point division with IEEE results for a zero divisor."""
    if y == 0:
        if x == 0 or math.isnan(x):
            return math.nan
        return math.copysign(math.inf, x) * math.copysign(1.0, y)
    return x / y


def _int_factorial(x: int) -> float:
    """Factorial as the VM defines it: -1 below zero and 0 for zero."""
    if x < 0:
        return -1.0
    if x == 0:
        return 0.0
    result = 1.0
    for k in range(2, x + 1):
        result *= k
        if math.isinf(result):
            break
    return result


def _replace_top(stack: VMStack, item: StackItem) -> StackItem:
    stack.pop()
    return stack.push(item)


def _replace_two(stack: VMStack, item: StackItem) -> StackItem:
    stack.pop_n(2)
    return stack.push(item)


def _arith(
    stack: VMStack,
    int_func: Callable[[int, int], int],
    dbl_func: Callable[[float, float], float],
    message: str,
) -> StackItem:
    top = stack.top()
    second = stack.second()
    top.resolve()
    second.resolve()

    if top.type is ItemType.IVAL and second.type is ItemType.IVAL:
        left, right = int(second.value), int(top.value)
        temp = dbl_func(float(left), float(right))
        if _within_int_limits(temp):
            try:
                result = StackItem(ItemType.IVAL, int_func(left, right))
            except ZeroDivisionError as exc:
                raise _fail(stack, str(exc)) from exc
        else:
            result = StackItem(ItemType.DVAL, temp)
    elif top.type in _NUMERIC and second.type in _NUMERIC:
        result = StackItem(
            ItemType.DVAL, dbl_func(float(second.value), float(top.value))
        )
    else:
        raise _fail(stack, message)
    return _replace_two(stack, result)


def add(stack: VMStack) -> StackItem:
    """Add two numbers or concatenate two strings."""
    top = stack.top()
    second = stack.second()
    top.resolve()
    second.resolve()
    if top.type is ItemType.PP_STR and second.type is ItemType.PP_STR:
        joined = second.value + top.value
        return _replace_two(stack, StackItem(ItemType.PP_STR, joined))
    return _arith(
        stack,
        operator.add,
        operator.add,
        "ADDX should be applied to 'num and num' or 'str and str' on stack",
    )


_NUM_MESSAGE = "this operation should be applied to num and num on stack"


def sub(stack: VMStack) -> StackItem:
    """Subtract the top number from the second."""
    return _arith(stack, operator.sub, operator.sub, _NUM_MESSAGE)


def mul(stack: VMStack) -> StackItem:
    """Multiply two numbers."""
    return _arith(stack, operator.mul, operator.mul, _NUM_MESSAGE)


def power(stack: VMStack) -> StackItem:
    """Raise the second number to the power of the top one."""
    return _arith(stack, _int_pow, _c_pow, _NUM_MESSAGE)


def mod(stack: VMStack) -> StackItem:
    """Remainder of two ints; for doubles, the fractional part of the left."""
    return _arith(stack, _int_mod, _dbl_mod, _NUM_MESSAGE)


def div(stack: VMStack) -> StackItem:
    """Divide the second number by the top one; the result is always a double."""
    top = stack.top()
    second = stack.second()
    top.resolve()
    second.resolve()
    if top.type not in _NUMERIC or second.type not in _NUMERIC:
        raise _fail(stack, "DIVX should be applied to num and num on stack")
    result = _c_div(float(second.value), float(top.value))
    return _replace_two(stack, StackItem(ItemType.DVAL, result))


def factorial(stack: VMStack) -> StackItem:
    """Replace the top number with its factorial.

    A double is truncated to an int first. The result is an int while it
    fits the int range and a double beyond it.
    """
    top = stack.top()
    top.resolve()
    if top.type is ItemType.IVAL:
        operand = int(top.value)
    elif top.type is ItemType.DVAL:
        value = float(top.value)
        if not math.isfinite(value):
            raise _fail(stack, "FACT cannot be applied to a non-finite number")
        operand = int(value)
    else:
        raise _fail(stack, "FACT should be applied to a num on stack")

    temp = _int_factorial(operand)
    if _within_int_limits(temp):
        result = StackItem(ItemType.IVAL, int(temp))
    else:
        result = StackItem(ItemType.DVAL, temp)
    return _replace_top(stack, result)


def uminus(stack: VMStack) -> StackItem:
    """Negate the top number, keeping its type."""
    top = stack.top()
    top.resolve()
    if top.type is ItemType.IVAL:
        result = StackItem(ItemType.IVAL, -int(top.value))
    elif top.type is ItemType.DVAL:
        result = StackItem(ItemType.DVAL, -float(top.value))
    else:
        raise _fail(stack, "uminus should be applied to a num on stack")
    return _replace_top(stack, result)


def _logical(stack: VMStack, op: Callable[[bool, bool], bool], name: str) -> StackItem:
    top = stack.top()
    second = stack.second()
    if top.type is not ItemType.BOOLEAN or second.type is not ItemType.BOOLEAN:
        raise _fail(stack, f"{name} should be applied to boolean and boolean")
    result = op(bool(second.value), bool(top.value))
    return _replace_two(stack, StackItem(ItemType.BOOLEAN, result))


def logical_and(stack: VMStack) -> StackItem:
    """Logical conjunction of two booleans."""
    return _logical(stack, lambda a, b: a and b, "AND")


def logical_or(stack: VMStack) -> StackItem:
    """Logical disjunction of two booleans."""
    return _logical(stack, lambda a, b: a or b, "OR")


def _is_nan(item: StackItem) -> bool:
    return item.type is ItemType.DVAL and math.isnan(item.value)


def _resolved_pair(stack: VMStack) -> tuple[StackItem, StackItem]:
    top = stack.top()
    second = stack.second()
    top.resolve()
    second.resolve()
    return second, top


def _push_bool(stack: VMStack, value: bool) -> StackItem:
    return _replace_two(stack, StackItem(ItemType.BOOLEAN, bool(value)))


def eq(stack: VMStack) -> StackItem:
    """Equality of two numbers or two strings; NaN equals NaN."""
    left, right = _resolved_pair(stack)
    if _is_nan(left) and _is_nan(right):
        result = True
    elif _is_nan(left) or _is_nan(right):
        result = False
    elif left.type in _NUMERIC and right.type in _NUMERIC:
        result = left.value == right.value
    elif left.type is ItemType.PP_STR and right.type is ItemType.PP_STR:
        result = left.value == right.value
    else:
        raise _fail(stack, "types are invalid for VM_EQ command")
    return _push_bool(stack, result)


def neq(stack: VMStack) -> StackItem:
    """Inequality of two numbers or two strings; NaN equals NaN."""
    left, right = _resolved_pair(stack)
    if _is_nan(left) and _is_nan(right):
        result = False
    elif left.type in _NUMERIC and right.type in _NUMERIC:
        result = left.value != right.value
    elif left.type is ItemType.PP_STR and right.type is ItemType.PP_STR:
        result = left.value != right.value
    else:
        raise _fail(stack, "types are invalid for VM_NEQ command")
    return _push_bool(stack, result)


def _compare(
    stack: VMStack, op: Callable[[float, float], bool], name: str
) -> StackItem:
    left, right = _resolved_pair(stack)
    if left.type in _NUMERIC and right.type in _NUMERIC:
        return _push_bool(stack, op(left.value, right.value))
    if left.type is ItemType.PP_STR and right.type is ItemType.PP_STR:
        raise _fail(stack, f"string is not supported for {name} calculation")
    raise _fail(stack, f"types are invalid for {name} calculation")


def gt(stack: VMStack) -> StackItem:
    """Whether the second number is greater than the top one."""
    return _compare(stack, operator.gt, ">")


def lt(stack: VMStack) -> StackItem:
    """Whether the second number is less than the top one."""
    return _compare(stack, operator.lt, "<")


def ge(stack: VMStack) -> StackItem:
    """Whether the second number is greater than or equal to the top one."""
    return _compare(stack, operator.ge, ">=")


def le(stack: VMStack) -> StackItem:
    """Whether the second number is less than or equal to the top one."""
    return _compare(stack, operator.le, "<=")


def neg(stack: VMStack) -> StackItem:
    """Logical negation of the top boolean."""
    top = stack.top()
    if top.type is not ItemType.BOOLEAN:
        raise _fail(stack, "type is invalid for VM_NEG command")
    return _replace_top(stack, StackItem(ItemType.BOOLEAN, not top.value))