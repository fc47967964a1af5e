"""Virtual machine commands and instructions."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

from sailrvm.stack import VMError

MAX_FUNC_NAME_LEN = 511


class Command(Enum):
    """Commands understood by the virtual machine, in their canonical order."""

    # Stack manipulation
    PUSH_IVAL = auto()
    PUSH_DVAL = auto()
    PUSH_PP_IVAL = auto()
    PUSH_PP_DVAL = auto()
    PUSH_PP_NUM = auto()
    PUSH_PP_STR = auto()
    PUSH_PP_REXP = auto()
    PUSH_NULL = auto()
    POP = auto()
    END = auto()
    DISP = auto()
    # Code jump
    FJMP = auto()
    JMP = auto()
    LABEL = auto()
    # Value assign
    STO = auto()
    # Function call
    FCALL = auto()
    # Arithmetic
    ADDX = auto()
    SUBX = auto()
    MULX = auto()
    DIVX = auto()
    MODX = auto()
    POWX = auto()
    FAC = auto()
    UMINUS = auto()
    # Regular expression matching
    REXP_MATCH = auto()
    # Logical
    AND = auto()
    OR = auto()
    EQ = auto()
    NEQ = auto()
    GT = auto()
    LT = auto()
    GE = auto()
    LE = auto()
    NEG = auto()
    # No operation
    NOP = auto()

    def __str__(self) -> str:
        return f"VM_{self.name}"


_KEY_COMMANDS = frozenset(
    {
        Command.PUSH_PP_IVAL,
        Command.PUSH_PP_DVAL,
        Command.PUSH_PP_NUM,
        Command.PUSH_PP_STR,
        Command.PUSH_PP_REXP,
        Command.PUSH_NULL,
    }
)
_LABEL_COMMANDS = frozenset({Command.LABEL, Command.JMP, Command.FJMP})


@dataclass
class Instruction:
    """A single VM instruction: a command and its optional arguments."""

    cmd: Command
    ival: int = 0
    dval: float = 0.0
    ptr_key: str | None = None
    label: str | None = None
    fname: str = ""
    num_arg: int = 0
    loc: Any = None

    def __post_init__(self) -> None:
        if len(self.fname) > MAX_FUNC_NAME_LEN:
            raise ValueError(f"function name is too long: {self.fname!r}")

    def describe(self) -> str:
        """Return a one-line human readable description of the instruction."""
        name = str(self.cmd)
        if self.cmd is Command.PUSH_IVAL:
            return f"CMD:{name}\t ARG:.ival={self.ival}"
        if self.cmd is Command.PUSH_DVAL:
            return f"CMD:{name}\t ARG:.dval={self.dval:f}"
        if self.cmd in _KEY_COMMANDS:
            return f"CMD:{name}\t ARG:.ptr_key={self.ptr_key}"
        if self.cmd in _LABEL_COMMANDS:
            return f"CMD:{name}\t ARG:.label={self.label}"
        if self.cmd is Command.FCALL:
            return f"CMD:{name}\t ARG:.fname={self.fname}  .num_arg={self.num_arg}"
        return f"CMD:{name}"


def jump_offset(code: Sequence[Instruction], idx: int, label: str) -> int:
    """Return how far to move forward from ``idx`` to reach ``label``.

    The result is the number of steps to add to ``idx`` before the usual
    increment of the instruction counter lands on the label.
    """
    for position, inst in enumerate(code[idx + 1 :], start=idx + 1):
        if inst.cmd is Command.LABEL and inst.label == label:
            return position - idx - 1
    raise VMError(f"label to jump to could not be found in VM code: {label!r}")