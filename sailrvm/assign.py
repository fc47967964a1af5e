"""Assignment of the value on top of the stack to a variable."""

from __future__ import annotations

from sailrvm.rexp import Regex
from sailrvm.stack import ItemType, StackItem, VarRecord, VarType, VMError, VMStack

_LVALUE_TYPES = frozenset(
    {
        ItemType.NULL_ITEM,
        ItemType.PP_IVAL,
        ItemType.PP_DVAL,
        ItemType.PP_STR,
        ItemType.PP_REXP,
    }
)

_EXPECTED_RECORD_TYPE = {
    ItemType.PP_IVAL: VarType.INT,
    ItemType.PP_DVAL: VarType.DBL,
    ItemType.PP_STR: VarType.STR,
    ItemType.PP_REXP: VarType.REXP,
}


def _assign_number(record: VarRecord, rvalue: StackItem) -> None:
    """Store a number; the variable follows the type of the value."""
    if rvalue.type is ItemType.IVAL:
        record.type = VarType.INT
        record.value = int(rvalue.value)
    elif rvalue.type is ItemType.DVAL:
        record.type = VarType.DBL
        record.value = float(rvalue.value)
    else:
        raise VMError(
            f"only a number can be assigned to numeric variable {record.key!r}"
        )


def _assign_string(record: VarRecord, rvalue: StackItem) -> None:
    if rvalue.type is not ItemType.PP_STR:
        raise VMError(f"only a string can be assigned to string variable {record.key!r}")
    if rvalue.record is record:
        return  # assignment to itself, e.g. x = x
    record.type = VarType.STR
    record.value = rvalue.value


def _regex_for(rvalue: StackItem) -> Regex:
    regex = rvalue.value
    if rvalue.is_temp():
        return regex
    return Regex(regex.pattern, regex.encoding)


def _assign_regex(record: VarRecord, rvalue: StackItem) -> None:
    if rvalue.type is not ItemType.PP_REXP:
        raise VMError(
            f"only a regular expression can be assigned to variable {record.key!r}"
        )
    record.type = VarType.REXP
    record.value = _regex_for(rvalue)


def _define(record: VarRecord, rvalue: StackItem) -> None:
    """Give an undefined variable the type and value of ``rvalue``."""
    if rvalue.type in (ItemType.IVAL, ItemType.DVAL):
        _assign_number(record, rvalue)
    elif rvalue.type is ItemType.PP_STR:
        record.type = VarType.STR
        record.value = rvalue.value
    elif rvalue.type is ItemType.PP_REXP:
        record.type = VarType.REXP
        record.value = _regex_for(rvalue)
    else:
        raise VMError(
            "only an int, a double, a string or a regular expression can be assigned"
        )


def _assign_by_record_type(record: VarRecord, rvalue: StackItem) -> None:
    if record.type is VarType.NULL:
        _define(record, rvalue)
    elif record.type in (VarType.INT, VarType.DBL):
        _assign_number(record, rvalue)
    elif record.type is VarType.STR:
        _assign_string(record, rvalue)
    elif record.type is VarType.REXP:
        _assign_regex(record, rvalue)
    else:
        raise VMError(f"variable {record.key!r} has an unsupported type")


def _store(lvalue: StackItem, rvalue: StackItem) -> VarRecord:
    if lvalue.type not in _LVALUE_TYPES:
        raise VMError(
            "lvalue should be a variable reference (PP_IVAL, PP_DVAL, PP_STR, "
            "PP_REXP) or NULL_ITEM"
        )
    record = lvalue.record
    if record is None:
        raise VMError("lvalue does not refer to a variable")

    if lvalue.type is not ItemType.NULL_ITEM:
        expected = _EXPECTED_RECORD_TYPE[lvalue.type]
        if record.type is not expected:
            raise VMError(
                f"variable {record.key!r} should be of type {expected.name}, "
                f"not {record.type.name}"
            )
    _assign_by_record_type(record, rvalue)
    return record


def store_value(stack: VMStack) -> VarRecord:
    """Assign the top item to the variable referred to by the second item.

    Both items are removed from the stack and the updated variable record is
    returned. On failure the stack's error counter is raised and
    :class:`VMError` is raised.
    """
    lvalue = stack.second()
    rvalue = stack.top()
    rvalue.resolve()
    try:
        record = _store(lvalue, rvalue)
    except VMError:
        stack.raise_error()
        raise
    stack.pop_n(2)
    return record