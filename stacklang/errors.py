from __future__ import annotations

from typing import Any


class StackError(Exception):
    """ Base class for all stack language errors"""
    pass


# -------------------------------
# Lex / parse failures
# -------------------------------
class StackSyntaxError(StackError):
    """ Raised when source text cannot be turned into expressions"""

    def __init__(self, message: str, span: Any = None):
        self.message = message
        self.span = span
        super().__init__(f"{span}: {message}" if span is not None else message)


class LexError(StackSyntaxError):
    """ Raised for malformed literals (bad escapes, unterminated strings, overflow)"""


class MismatchedBracketError(StackSyntaxError):
    """ Raised when a closer does not match the innermost open bracket"""


class UnbalancedBlockError(StackSyntaxError):
    """ Raised when input ends with brackets still open"""


# -------------------------------
# VM failures
# -------------------------------
class VMError(StackError):
    """ Base class for failures raised while stepping the VM"""


class StackUnderflowError(VMError):
    """ Raised when an operation pops from an empty stack"""

    def __init__(self, op: Any = None):
        self.op = op
        super().__init__(f"stack underflow in {op}" if op is not None else "stack underflow")


class IPBoundsError(VMError):
    """ Raised when the instruction pointer leaves the stream without reaching End"""

    def __init__(self, ip: int, length: int):
        self.ip = ip
        self.length = length
        super().__init__(f"instruction pointer {ip} out of bounds (stream length {length})")


class ArithmeticTypeError(VMError):
    """ Raised when arithmetic operands are of mismatched or unsupported types"""

    def __init__(self, op: str, lhs: Any, rhs: Any):
        self.op = op
        self.lhs = lhs
        self.rhs = rhs
        super().__init__(f"cannot apply {op} to {lhs!r} and {rhs!r}")


class DivisionByZeroError(VMError):
    """ Raised on integer division or remainder by zero"""


class TypeMismatchError(VMError):
    """ Raised when an intrinsic receives a value of the wrong kind"""


class UnknownNameError(VMError):
    """ Raised when a call cannot be resolved"""

    def __init__(self, name: str, span: Any = None):
        self.name = name
        self.span = span
        where = f" at {span}" if span is not None else ""
        super().__init__(f"unknown name '{name}'{where}")


class AssertionFailedError(VMError):
    """ Raised by the assert intrinsic"""


class UnknownModuleError(VMError):
    """ Raised when import cannot find a module"""
