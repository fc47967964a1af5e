"""Registry of functions supplied by the VM's user."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any, Optional

from sailrvm.args import Arg, collect_args
from sailrvm.instructions import MAX_FUNC_NAME_LEN
from sailrvm.stack import VMStack

ExtCallable = Callable[[Optional[list[Arg]], int, VMStack], Any]


@dataclass(frozen=True)
class ExtFunc:
    """A user function: its name, the number of arguments and the callable.

    The callable receives the argument list (``None`` when it takes no
    arguments), the number of arguments and the stack. It is responsible
    for removing its arguments from the stack and pushing a result.
    """

    name: str
    num_args: int
    func: ExtCallable


class ExtFuncRegistry:
    """Named user functions, with a record of the one executed last."""

    def __init__(self) -> None:
        self._funcs: dict[str, ExtFunc] = {}
        self._last_executed: str | None = None

    @property
    def last_executed(self) -> str | None:
        """Name of the function applied most recently, if any."""
        return self._last_executed

    def add(self, name: str, num_args: int, func: ExtCallable) -> ExtFunc:
        """Register a function; an existing one of that name is kept and returned."""
        if len(name) >= MAX_FUNC_NAME_LEN - 1:
            raise ValueError(f"function name is too long: {name!r}")
        if num_args < 0:
            raise ValueError("number of arguments must not be negative")
        existing = self._funcs.get(name)
        if existing is not None:
            return existing
        entry = ExtFunc(name, num_args, func)
        self._funcs[name] = entry
        return entry

    def find(self, name: str) -> ExtFunc | None:
        """Return the function registered under ``name``, or None."""
        return self._funcs.get(name)

    def apply(self, entry: ExtFunc, stack: VMStack) -> Any:
        """Call ``entry`` with its arguments from the stack and return its result."""
        args = collect_args(stack, entry.num_args) if entry.num_args > 0 else None
        result = entry.func(args, entry.num_args, stack)
        self._last_executed = entry.name
        return result

    def reset_last_executed(self) -> None:
        """Forget which function was executed last."""
        self._last_executed = None

    def __contains__(self, name: object) -> bool:
        return name in self._funcs

    def __len__(self) -> int:
        return len(self._funcs)

    def __iter__(self) -> Iterator[ExtFunc]:
        return iter(self._funcs.values())