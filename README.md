# sailrvm

`sailrvm` is a small stack-based virtual machine. It runs a list of
`Instruction` objects against a variable table (`VarTable`) and an operand
stack (`VMStack`). Variables you put in the table before a run can be read
back afterwards, together with any new variables the code assigned.

## Installing

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Example

```python
from sailrvm.instructions import Command, Instruction
from sailrvm.machine import execute
from sailrvm.stack import VarTable, VarType, VMStack

table = VarTable()
table.add("x", 10, VarType.INT)

code = [
    Instruction(Command.PUSH_NULL, ptr_key="y"),   # y is not yet known
    Instruction(Command.PUSH_PP_NUM, ptr_key="x"),
    Instruction(Command.PUSH_IVAL, ival=5),
    Instruction(Command.MULX),
    Instruction(Command.STO),                      # y = x * 5
    Instruction(Command.END),
]

execute(code, table, VMStack())
print(table.get("y"))            # 50
print(table.record("y").type)    # VarType.INT
```

## Modules

| Module | Contents |
| --- | --- |
| `sailrvm.instructions` | `Command`, an enum of every opcode; `Instruction`, a dataclass holding a command and its arguments (`ival`, `dval`, `ptr_key`, `label`, `fname`, `num_arg`, `loc`), with `describe()` for a one-line text form; `jump_offset`, which finds the distance to a `LABEL` and raises `VMError` if there is none. |
| `sailrvm.stack` | `VMStack` (push, pop, `pop_n`, `top`, `second`, `nth`, and an error counter with `raise_error`, `error_count`, `has_error`), `StackItem` with `resolve()` and `is_temp()`, `ItemType`, the variable table `VarTable` with its `VarRecord` entries and `VarType`, and the exception `VMError`. |
| `sailrvm.rexp` | `Regex`, a compiled regular expression that remembers its last match (`match`, `group`), and `rexp_match`, which matches a string against a regex on the stack in either order and records the regex as the stack's `last_rexp`. |
| `sailrvm.assign` | `store_value`, the assignment operation. An undefined variable takes the type of the first value stored in it; integer and double variables switch type when the other kind of number is assigned; string and regex variables accept only their own kind. |
| `sailrvm.calc` | Arithmetic (`add`, `sub`, `mul`, `div`, `power`, `mod`, `factorial`, `uminus`), comparisons (`eq`, `neq`, `gt`, `lt`, `ge`, `le`) and logic (`logical_and`, `logical_or`, `neg`). `add` also joins two strings. Integer results outside the 32-bit range become doubles; `div` always gives a double. |
| `sailrvm.args` | `Arg` and `collect_args`, for reading function arguments from the stack (`kind`, `as_int`, `as_float`, `as_str`, `as_regex`, `as_bool`), plus `check_arg_count`, `check_arg_count_above` and `ArgumentCountError`. |
| `sailrvm.builtins` | The built-in script functions `print` (`func_print`), `num_to_str`, `str_strip`, `str_lstrip`, `str_rstrip`, `str_concat`, `str_repeat`, `str_subset` (one-based, inclusive), `str_to_num` and `rexp_matched`; `args_to_string`; and `call_builtin`, which dispatches by name. |
| `sailrvm.extfuncs` | `ExtFuncRegistry` and `ExtFunc`, for registering your own Python functions. A registered function is tried before a built-in of the same name. The registry's `last_executed` holds the name of the function applied last. |
| `sailrvm.machine` | `execute`, which runs a code list, and `run_instruction`, which runs one non-jump instruction; `ExecResult` (`SUCCESS`, `SUSPEND`, `FAIL`). |

## Running code

`execute(code, table, stack, ext_funcs=None, start=0)` walks the instruction
list from index `start` and returns `ExecResult.SUCCESS` when it reaches the
end. Any failure raises `VMError`, with the failing instruction's description
(and its `loc`, if set) in the message.

- `JMP` moves to the matching `LABEL`. `FJMP` pops a boolean from the top of
  the stack and jumps when it is false; anything other than a boolean there
  raises `VMError`.
- Errors counted on the stack while an instruction runs stop the run at once,
  except after `END`.
- `PUSH_NULL` adds the named variable to the table as `VarType.NULL` if it is
  not there yet; `STO` then gives it a type.
- `DISP` prints the value on top of the stack.
- `PUSH_PP_IVAL` and `PUSH_PP_DVAL` are rejected; use `PUSH_PP_NUM`. `MODX`
  and `NOP` are not handled by `run_instruction` and raise `VMError`
  (`calc.mod` can still be called directly).

## External functions and suspending

An external function is called as `func(args, num_args, stack)`, where `args`
is a list of `Arg` (or `None` when it takes no arguments). It must remove its
arguments from the stack and push its result itself.

```python
from sailrvm.extfuncs import ExtFuncRegistry
from sailrvm.machine import ExecResult
from sailrvm.stack import ItemType, StackItem

def twice(args, num_args, stack):
    value = args[0].as_int()
    stack.pop_n(num_args)
    stack.push(StackItem(ItemType.IVAL, value * 2))
    return ExecResult.SUCCESS

funcs = ExtFuncRegistry()
funcs.add("twice", 1, twice)
```

If the function returns `ExecResult.SUSPEND`, `execute` returns
`ExecResult.SUSPEND` and sets `stack.code_position` to the next instruction;
call `execute(code, table, stack, funcs, stack.code_position)` to resume. A
return of `ExecResult.FAIL` raises `VMError`.

## What the package does not do

- It has no compiler or parser: it runs instruction lists that are built
  elsewhere, and provides no command-line program.
- It has no date functions; the built-in functions are only those listed
  above, and calling any other name without registering it raises `VMError`.