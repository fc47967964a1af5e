"""Execution of VM code against a variable table and a stack."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from enum import Enum
from typing import Optional

from sailrvm import calc
from sailrvm.assign import store_value
from sailrvm.builtins import call_builtin
from sailrvm.extfuncs import ExtFuncRegistry
from sailrvm.instructions import Command, Instruction, jump_offset
from sailrvm.rexp import rexp_match
from sailrvm.stack import ItemType, StackItem, VarType, VMError, VMStack, VarTable


class ExecResult(Enum):
    """Outcome of running code or a single instruction."""

    FAIL = 0
    SUCCESS = 1
    SUSPEND = 2


_STACK_OPERATIONS: dict[Command, Callable[[VMStack], object]] = {
    Command.MULX: calc.mul,
    Command.SUBX: calc.sub,
    Command.DIVX: calc.div,
    Command.POWX: calc.power,
    Command.FAC: calc.factorial,
    Command.UMINUS: calc.uminus,
    Command.AND: calc.logical_and,
    Command.OR: calc.logical_or,
    Command.EQ: calc.eq,
    Command.NEQ: calc.neq,
    Command.LT: calc.lt,
    Command.LE: calc.le,
    Command.GT: calc.gt,
    Command.GE: calc.ge,
    Command.NEG: calc.neg,
    Command.REXP_MATCH: rexp_match,
}

_NUM_ITEM_TYPES = {VarType.INT: ItemType.PP_IVAL, VarType.DBL: ItemType.PP_DVAL}


def _record(table: VarTable, key: Optional[str]):
    if key is None or key not in table:
        raise VMError(f"variable {key!r} is not in the variable table")
    return table.record(key)


def _push_num(table: VarTable, stack: VMStack, key: Optional[str]) -> None:
    record = _record(table, key)
    item_type = _NUM_ITEM_TYPES.get(record.type)
    if item_type is None:
        raise VMError(f"variable {record.key!r} does not hold a number")
    stack.push(StackItem(item_type, record=record))


def _push_typed(
    table: VarTable,
    stack: VMStack,
    key: Optional[str],
    var_type: VarType,
    item_type: ItemType,
) -> None:
    record = _record(table, key)
    if record.type is not var_type:
        raise VMError(
            f"variable {record.key!r} should be of type {var_type.name}, "
            f"not {record.type.name}"
        )
    stack.push(StackItem(item_type, record=record))


def _push_null(table: VarTable, stack: VMStack, key: Optional[str]) -> None:
    if key is None:
        raise VMError("PUSH_NULL needs a variable name")
    record = table.record(key) if key in table else table.add(key, None, VarType.NULL)
    stack.push(StackItem(ItemType.NULL_ITEM, record=record))


def _call(
    inst: Instruction, stack: VMStack, ext_funcs: Optional[ExtFuncRegistry]
) -> ExecResult:
    entry = ext_funcs.find(inst.fname) if ext_funcs is not None else None
    if entry is None:
        call_builtin(stack, inst.fname, inst.num_arg)
        return ExecResult.SUCCESS
    outcome = ext_funcs.apply(entry, stack)
    if outcome is ExecResult.SUSPEND:
        return ExecResult.SUSPEND
    if outcome is ExecResult.FAIL:
        raise VMError(f"external function {inst.fname!r} failed")
    return ExecResult.SUCCESS


def run_instruction(
    inst: Instruction,
    table: VarTable,
    stack: VMStack,
    ext_funcs: Optional[ExtFuncRegistry] = None,
) -> ExecResult:
    """Run one instruction other than a jump.

    Returns SUCCESS, or SUSPEND when an external function asks for it.
    Raises :class:`VMError` when the instruction fails.
    """
    cmd = inst.cmd
    if cmd is Command.PUSH_IVAL:
        stack.push(StackItem(ItemType.IVAL, inst.ival))
    elif cmd is Command.PUSH_DVAL:
        stack.push(StackItem(ItemType.DVAL, inst.dval))
    elif cmd in (Command.PUSH_PP_IVAL, Command.PUSH_PP_DVAL):
        raise VMError("this instruction is not used; use VM_PUSH_PP_NUM")
    elif cmd is Command.PUSH_PP_NUM:
        _push_num(table, stack, inst.ptr_key)
    elif cmd is Command.PUSH_PP_STR:
        _push_typed(table, stack, inst.ptr_key, VarType.STR, ItemType.PP_STR)
    elif cmd is Command.PUSH_PP_REXP:
        _push_typed(table, stack, inst.ptr_key, VarType.REXP, ItemType.PP_REXP)
    elif cmd is Command.PUSH_NULL:
        _push_null(table, stack, inst.ptr_key)
    elif cmd is Command.POP:
        stack.pop()
    elif cmd in (Command.FJMP, Command.JMP):
        raise VMError("jump instructions are handled by execute()")
    elif cmd is Command.END:
        pass
    elif cmd is Command.DISP:
        print(stack.top().value)
    elif cmd is Command.STO:
        store_value(stack)
    elif cmd is Command.FCALL:
        return _call(inst, stack, ext_funcs)
    elif cmd is Command.ADDX:
        calc.add(stack)
    elif cmd in _STACK_OPERATIONS:
        _STACK_OPERATIONS[cmd](stack)
    elif cmd is Command.LABEL:
        pass
    else:
        raise VMError(f"undefined VM command specified: {cmd}")
    return ExecResult.SUCCESS


def _failure(inst: Instruction, message: str) -> VMError:
    where = f" ({inst.loc})" if inst.loc is not None else ""
    return VMError(f"{inst.describe()}{where}: {message}")


def execute(
    code: Sequence[Instruction],
    table: VarTable,
    stack: VMStack,
    ext_funcs: Optional[ExtFuncRegistry] = None,
    start: int = 0,
) -> ExecResult:
    """Run ``code`` from position ``start``.

    Returns SUCCESS when the code ran to its end, or SUSPEND when an
    external function suspended execution; the stack's ``code_position``
    then holds the position to resume from. Raises :class:`VMError` on
    failure.
    """
    idx = start
    while idx < len(code):
        inst = code[idx]
        try:
            if inst.cmd is Command.JMP:
                idx += jump_offset(code, idx, inst.label)
            elif inst.cmd is Command.FJMP:
                if len(stack) == 0:
                    raise VMError("stack is empty at a conditional jump")
                top = stack.top()
                if top.type is not ItemType.BOOLEAN:
                    raise VMError("top item of the current stack is not boolean")
                if not top.value:
                    idx += jump_offset(code, idx, inst.label)
                stack.pop()
            else:
                outcome = run_instruction(inst, table, stack, ext_funcs)
                if outcome is ExecResult.SUSPEND:
                    stack.code_position = idx + 1
                    return ExecResult.SUSPEND
        except VMError as exc:
            raise _failure(inst, str(exc)) from exc

        if inst.cmd is not Command.END and stack.has_error():
            raise _failure(
                inst, f"{stack.error_count()} runtime error(s) raised"
            )
        idx += 1
    return ExecResult.SUCCESS