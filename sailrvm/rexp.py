"""Regular expressions and the VM's match operation."""

from __future__ import annotations

import re

from sailrvm.stack import ItemType, StackItem, VMError, VMStack


class Regex:
    """A compiled regular expression that remembers its last match."""

    def __init__(self, pattern: str, encoding: str = "UTF8") -> None:
        self.pattern = pattern
        self.encoding = encoding
        try:
            self._compiled = re.compile(pattern)
        except re.error as exc:
            raise ValueError(f"invalid regular expression {pattern!r}: {exc}") from exc
        self._last: re.Match[str] | None = None

    def match(self, text: str) -> bool:
        """Search ``text``; remember and report whether it matched."""
        self._last = self._compiled.search(text)
        return self._last is not None

    def group(self, index: int) -> str:
        """Return a group of the last match, or "" if there is none."""
        last = self._last
        if last is None or index < 0 or index > self._compiled.groups:
            return ""
        return last.group(index) or ""

    def __str__(self) -> str:
        return self.pattern

    def __repr__(self) -> str:
        return f"Regex({self.pattern!r}, encoding={self.encoding!r})"


def rexp_match(stack: VMStack) -> bool:
    """Match the string and regex on top of the stack; push the result.

    The two items may come in either order. The regex becomes the stack's
    last executed regular expression.
    """
    top = stack.top()
    second = stack.second()
    top.resolve()
    second.resolve()

    if top.type is ItemType.PP_STR and second.type is ItemType.PP_REXP:
        str_item, rexp_item = top, second
    elif top.type is ItemType.PP_REXP and second.type is ItemType.PP_STR:
        str_item, rexp_item = second, top
    else:
        stack.raise_error()
        raise VMError("regular expression match needs a regular expression and a string")

    regex = rexp_item.value
    matched = regex.match(str_item.value)
    stack.last_rexp = regex

    stack.pop_n(2)
    stack.push(StackItem(ItemType.BOOLEAN, matched))
    return matched