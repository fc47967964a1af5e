"""Functions built into the virtual machine and their dispatch by name.

Every function takes its arguments from the top of the stack, removes
them and pushes its result. A string result is pushed as a temporary
``PP_STR`` item that belongs to the stack rather than to a variable.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from sailrvm.args import Arg, check_arg_count, check_arg_count_above, collect_args
from sailrvm.stack import ItemType, StackItem, VMError, VMStack

_T = TypeVar("_T")

_INT_PREFIX = re.compile(r"\s*[+-]?\d+")
_FLOAT_PREFIX = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def _typed(stack: VMStack, getter: Callable[[], _T], message: str) -> _T:
    """Read an argument; on a type mismatch count the error and raise."""
    try:
        return getter()
    except VMError as exc:
        stack.raise_error()
        raise VMError(message) from exc


def _int_to_str(value: int) -> str:
    return str(value)


def _float_to_str(value: float) -> str:
    return f"{value:f}"


def _finish_with(stack: VMStack, num_args: int, item: StackItem) -> StackItem:
    stack.pop_n(num_args)
    return stack.push(item)


def _finish_with_str(stack: VMStack, num_args: int, text: str) -> StackItem:
    return _finish_with(stack, num_args, StackItem(ItemType.PP_STR, text))


def args_to_string(args: Sequence[Arg], stack: VMStack) -> str:
    """Join the arguments as text.

    Numbers are written out, booleans become ``1`` or ``0``, regular
    expressions give their pattern and null arguments add nothing.
    """
    parts: list[str] = []
    for arg in args:
        kind = arg.kind()
        if kind == "s":
            parts.append(_typed(stack, arg.as_str, "this should be string"))
        elif kind == "i":
            parts.append(_int_to_str(_typed(stack, arg.as_int, "this should be int")))
        elif kind == "d":
            parts.append(
                _float_to_str(_typed(stack, arg.as_float, "this should be double"))
            )
        elif kind == "r":
            parts.append(arg.as_regex().pattern)
        elif kind == "b":
            parts.append("1" if arg.as_bool() else "0")
        elif kind == "n":
            continue
        else:
            raise VMError(f"argument of type {arg.item.type.name} cannot be written")
    return "".join(parts)


def func_print(stack: VMStack, num_args: int) -> str:
    """Print the arguments joined as text, without a newline; return the text."""
    check_arg_count_above(num_args, 0)
    text = args_to_string(collect_args(stack, num_args), stack)
    print(text, end="")
    stack.pop_n(num_args)
    return text


def num_to_str(stack: VMStack, num_args: int) -> StackItem:
    """Convert a number to a string."""
    check_arg_count(num_args, 1)
    (arg,) = collect_args(stack, num_args)
    kind = arg.kind()
    if kind == "i":
        text = _int_to_str(arg.as_int())
    elif kind == "d":
        text = _float_to_str(arg.as_float())
    else:
        stack.raise_error()
        raise VMError("for argument, number should be specified")
    return _finish_with_str(stack, num_args, text)


def _str_transform(
    stack: VMStack, num_args: int, func: Callable[[str], str]
) -> StackItem:
    check_arg_count(num_args, 1)
    (arg,) = collect_args(stack, num_args)
    text = _typed(stack, arg.as_str, "for argument, string should be specified")
    return _finish_with_str(stack, num_args, func(text))


def str_strip(stack: VMStack, num_args: int) -> StackItem:
    """Remove white space from both ends of a string."""
    return _str_transform(stack, num_args, str.strip)


def str_lstrip(stack: VMStack, num_args: int) -> StackItem:
    """Remove white space from the start of a string."""
    return _str_transform(stack, num_args, str.lstrip)


def str_rstrip(stack: VMStack, num_args: int) -> StackItem:
    """Remove white space from the end of a string."""
    return _str_transform(stack, num_args, str.rstrip)


def str_concat(stack: VMStack, num_args: int) -> StackItem:
    """Join any number of arguments into one string."""
    check_arg_count_above(num_args, 0)
    text = args_to_string(collect_args(stack, num_args), stack)
    return _finish_with_str(stack, num_args, text)


def str_repeat(stack: VMStack, num_args: int) -> StackItem:
    """Repeat a string a given number of times."""
    check_arg_count(num_args, 2)
    source, count = collect_args(stack, num_args)
    text = _typed(stack, source.as_str, "for 1st argument, string should be specified")
    times = _typed(stack, count.as_int, "for 2nd argument, int value should be specified")
    return _finish_with_str(stack, num_args, text * max(times, 0))


def str_subset(stack: VMStack, num_args: int) -> StackItem:
    """Characters from one position to another, both one-based and inclusive.

    Positions below 1 are taken as 1.
    """
    check_arg_count(num_args, 3)
    source, first, last = collect_args(stack, num_args)
    text = _typed(stack, source.as_str, "for 1st argument, string should be specified")
    from_idx = _typed(
        stack, first.as_int, "for 2nd argument, int value should be specified"
    )
    to_idx = _typed(stack, last.as_int, "for 3rd argument, int value should be specified")
    start = max(from_idx - 1, 0)
    stop = max(to_idx - 1, 0)
    return _finish_with_str(stack, num_args, text[start : stop + 1])


def _parse_int(text: str) -> int:
    found = _INT_PREFIX.match(text)
    return int(found.group()) if found else 0


def _parse_float(text: str) -> float:
    found = _FLOAT_PREFIX.match(text)
    return float(found.group()) if found else 0.0


def str_to_num(stack: VMStack, num_args: int) -> StackItem:
    """Read a number from a string: a double if it holds a dot, else an int.

    Only the leading numeric part counts; a string without one gives zero.
    """
    check_arg_count(num_args, 1)
    (arg,) = collect_args(stack, num_args)
    text = _typed(stack, arg.as_str, "for argument, string should be specified")
    if "." in text:
        item = StackItem(ItemType.DVAL, _parse_float(text))
    else:
        item = StackItem(ItemType.IVAL, _parse_int(text))
    return _finish_with(stack, num_args, item)


def rexp_matched(stack: VMStack, num_args: int) -> StackItem:
    """A group of the last regular expression match; "" if there is none."""
    check_arg_count(num_args, 1)
    (arg,) = collect_args(stack, num_args)
    index = _typed(stack, arg.as_int, "for the argument, int value should be specified")
    last = stack.last_rexp
    text = last.group(index) if last is not None else ""
    return _finish_with_str(stack, num_args, text)


_BUILTINS: dict[str, Callable[[VMStack, int], Any]] = {
    "print": func_print,
    "num_to_str": num_to_str,
    "str_strip": str_strip,
    "str_lstrip": str_lstrip,
    "str_rstrip": str_rstrip,
    "str_concat": str_concat,
    "str_repeat": str_repeat,
    "str_subset": str_subset,
    "str_to_num": str_to_num,
    "rexp_matched": rexp_matched,
}


def call_builtin(stack: VMStack, name: str, num_args: int) -> Any:
    """Run the built-in function called ``name`` and return its result."""
    func = _BUILTINS.get(name)
    if func is None:
        raise VMError(f"Function, {name} , cannot be found.")
    return func(stack, num_args)