"""Stack items, variable table and the VM stack with its error counter."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any


class VMError(Exception):
    """Raised when the virtual machine cannot carry out an operation."""


class ItemType(Enum):
    """Kinds of items held on the VM stack."""

    IVAL = auto()
    DVAL = auto()
    BOOLEAN = auto()
    PP_IVAL = auto()
    PP_DVAL = auto()
    PP_STR = auto()
    PP_REXP = auto()
    NULL_ITEM = auto()
    VOID_ITEM = auto()


class VarType(Enum):
    """Types of variables held in the variable table."""

    NULL = auto()
    INT = auto()
    DBL = auto()
    STR = auto()
    REXP = auto()


@dataclass
class VarRecord:
    """A named variable: its current type and value."""

    key: str
    type: VarType
    value: Any = None


class VarTable:
    """Named variables shared between the VM and its user."""

    def __init__(self) -> None:
        self._records: dict[str, VarRecord] = {}

    def add(self, key: str, value: Any, var_type: VarType) -> VarRecord:
        """Register a variable and return its record."""
        record = VarRecord(key, var_type, value)
        self._records[key] = record
        return record

    def get(self, key: str) -> Any:
        """Return the current value of a variable."""
        return self.record(key).value

    def record(self, key: str) -> VarRecord:
        """Return the record of a variable."""
        try:
            return self._records[key]
        except KeyError:
            raise KeyError(f"no variable named {key!r}") from None

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def __iter__(self) -> Iterator[VarRecord]:
        return iter(self._records.values())

    def __len__(self) -> int:
        return len(self._records)


_POINTER_TYPES = frozenset(
    {ItemType.PP_IVAL, ItemType.PP_DVAL, ItemType.PP_STR, ItemType.PP_REXP}
)

_NULL_RESOLUTION = {
    VarType.INT: ItemType.IVAL,
    VarType.DBL: ItemType.DVAL,
    VarType.STR: ItemType.PP_STR,
    VarType.REXP: ItemType.PP_REXP,
}


class StackItem:
    """An item on the VM stack.

    Items of a pointer type (``PP_*``) that carry a record read their value
    from that record; all other items hold their value themselves.
    """

    __slots__ = ("type", "record", "_value")

    def __init__(
        self, type: ItemType, value: Any = None, record: VarRecord | None = None
    ) -> None:
        self.type = type
        self.record = record
        self._value = value

    @property
    def value(self) -> Any:
        if self.record is not None and self.type in _POINTER_TYPES:
            return self.record.value
        return self._value

    @value.setter
    def value(self, new_value: Any) -> None:
        self._value = new_value

    def resolve(self) -> None:
        """Turn a reference to a number into the number, in place.

        ``PP_IVAL`` and ``PP_DVAL`` become plain values detached from their
        record. A ``NULL_ITEM`` whose variable has since been defined takes
        the variable's type; one whose variable is still undefined is left
        as it is. Other items are unchanged.
        """
        if self.type is ItemType.PP_IVAL:
            self._value = self.value
            self.type = ItemType.IVAL
            self.record = None
        elif self.type is ItemType.PP_DVAL:
            self._value = self.value
            self.type = ItemType.DVAL
            self.record = None
        elif self.type is ItemType.NULL_ITEM:
            record = self.record
            if record is None:
                return
            new_type = _NULL_RESOLUTION.get(record.type)
            if new_type is None:
                return
            self.type = new_type
            if new_type in (ItemType.IVAL, ItemType.DVAL):
                self._value = record.value

    def is_temp(self) -> bool:
        """Whether the item's object is owned by the stack, not a variable."""
        return self.record is None

    def __repr__(self) -> str:
        key = self.record.key if self.record is not None else None
        return f"StackItem({self.type.name}, value={self.value!r}, record={key!r})"


class VMStack:
    """The operand stack of the virtual machine."""

    def __init__(self, encoding: str = "UTF8") -> None:
        self._items: list[StackItem] = []
        self._errors = 0
        self.encoding = encoding
        self.last_rexp: Any = None
        self.code_position = 0

    def push(self, item: StackItem) -> StackItem:
        self._items.append(item)
        return item

    def pop(self) -> StackItem:
        if not self._items:
            raise VMError("stack underflow")
        return self._items.pop()

    def pop_n(self, count: int) -> list[StackItem]:
        """Remove ``count`` items and return them, deepest first."""
        if count < 0:
            raise ValueError("count must not be negative")
        if count > len(self._items):
            raise VMError("stack underflow")
        if count == 0:
            return []
        popped = self._items[-count:]
        del self._items[-count:]
        return popped

    def top(self) -> StackItem:
        return self.nth(1)

    def second(self) -> StackItem:
        return self.nth(2)

    def nth(self, n: int) -> StackItem:
        """Return the n-th item counted from the top, starting at 1."""
        if n < 1 or n > len(self._items):
            raise VMError(f"no stack item at depth {n}")
        return self._items[-n]

    def raise_error(self) -> None:
        self._errors += 1

    def error_count(self) -> int:
        return self._errors

    def has_error(self) -> bool:
        return self._errors > 0

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[StackItem]:
        return iter(self._items)