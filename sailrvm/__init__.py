"""Stack-based virtual machine that runs instruction lists against a variable table."""

__version__ = "0.1.0"

__all__ = [
    "args",
    "assign",
    "builtins",
    "calc",
    "extfuncs",
    "instructions",
    "machine",
    "rexp",
    "stack",
]