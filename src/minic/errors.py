"""Diagnostics raised while tokenizing, parsing, checking and running programs."""

from __future__ import annotations

from .ast import Pos


class MinicError(Exception):
    """Base error. Carries a message and an optional source position."""

    def __init__(self, msg: str, pos: Pos | None = None):
        self.msg: str = msg
        self.pos: Pos | None = pos
        if pos is None:
            super().__init__(msg)
        else:
            super().__init__(f"{msg} at line {pos.line} col {pos.col}")

    @property
    def kind(self) -> str:
        return type(self).__name__


# ============================================================
# SEMANTIC ERRORS
# ============================================================


class SemanticError(MinicError):
    """Raised by the checker; no statement has executed yet."""


class DuplicateDefinition(SemanticError):
    pass


class UnknownType(SemanticError):
    pass


class UnknownBase(SemanticError):
    pass


class InheritanceCycle(SemanticError):
    pass


class Redeclaration(SemanticError):
    pass


class UndeclaredIdentifier(SemanticError):
    pass


class NotAssignable(SemanticError):
    pass


class TypeMismatch(SemanticError):
    pass


class InvalidCast(SemanticError):
    pass


class UnknownField(SemanticError):
    pass


class ArityMismatch(SemanticError):
    pass


class MisplacedJump(SemanticError):
    """break or continue outside of a loop."""


class MissingDefinition(SemanticError):
    """A prototype with no body was called, or the entry point is absent."""


class StaticIndexOutOfBounds(SemanticError):
    """Strict mode: constant index outside a known array bound."""


class StaticDivisionByZero(SemanticError):
    """Strict mode: division or modulo by the constant 0."""


# ============================================================
# RUNTIME FAULTS
# ============================================================


class RuntimeFault(MinicError):
    """Raised by the execution engine; terminates the run."""


class NullDereference(RuntimeFault):
    pass


class IndexOutOfBounds(RuntimeFault):
    pass


class DivisionByZero(RuntimeFault):
    pass


class DanglingPointer(RuntimeFault):
    """Access through an address whose storage has gone out of scope."""


class InvalidDowncast(RuntimeFault):
    pass


class MissingReturn(RuntimeFault):
    """Control reached the end of a non-void function."""


class StackOverflow(RuntimeFault):
    pass
