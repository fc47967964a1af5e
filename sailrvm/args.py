"""Access to the arguments of a function call on the VM stack."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sailrvm.rexp import Regex
from sailrvm.stack import ItemType, StackItem, VMError, VMStack


class ArgumentCountError(VMError):
    """Raised when a function receives the wrong number of arguments."""


def check_arg_count(count: int, expected: int) -> None:
    """Raise unless exactly ``expected`` arguments were given."""
    if count != expected:
        raise ArgumentCountError(
            f"number of args is not specified correctly. "
            f"Specified: {count} , Intended: {expected}"
        )


def check_arg_count_above(count: int, minimum: int) -> None:
    """Raise unless more than ``minimum`` arguments were given."""
    if count <= minimum:
        raise ArgumentCountError(
            f"number of args is not specified correctly. "
            f"Specified: {count} , Intended: more than {minimum}"
        )


_INT_TYPES = frozenset({ItemType.IVAL, ItemType.PP_IVAL})
_DOUBLE_TYPES = frozenset({ItemType.DVAL, ItemType.PP_DVAL})


@dataclass(frozen=True)
class Arg:
    """One argument of a function call, backed by a stack item."""

    item: StackItem

    def kind(self) -> str:
        """Classify the argument with a single letter.

        ``i`` int, ``d`` double, ``s`` string, ``r`` regular expression,
        ``b`` boolean, ``n`` null, ``x`` anything else.
        """
        item_type = self.item.type
        if item_type in _INT_TYPES:
            return "i"
        if item_type in _DOUBLE_TYPES:
            return "d"
        if item_type is ItemType.PP_STR:
            return "s"
        if item_type is ItemType.PP_REXP:
            return "r"
        if item_type is ItemType.BOOLEAN:
            return "b"
        if item_type is ItemType.NULL_ITEM:
            return "n"
        return "x"

    def _require(self, kind: str, what: str) -> Any:
        if self.kind() != kind:
            raise VMError(f"the stack item does not hold {what} value")
        return self.item.value

    def as_int(self) -> int:
        return int(self._require("i", "int"))

    def as_float(self) -> float:
        return float(self._require("d", "double"))

    def as_str(self) -> str:
        return self._require("s", "string")

    def as_regex(self) -> Regex:
        return self._require("r", "rexp")

    def as_bool(self) -> bool:
        return bool(self._require("b", "boolean"))


def collect_args(stack: VMStack, count: int) -> list[Arg]:
    """Return the top ``count`` stack items as arguments, first argument first.

    The stack itself is left unchanged.
    """
    if count < 0:
        raise ValueError("count must not be negative")
    return [Arg(stack.nth(depth)) for depth in range(count, 0, -1)]