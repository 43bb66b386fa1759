"""Scope resolver: a stack of lexical scopes mapping names to symbols."""

from __future__ import annotations

import logging
import weakref
from dataclasses import dataclass

from .ast import Pos
from .errors import Redeclaration, UndeclaredIdentifier
from .types import MethodDef, Type

logger = logging.getLogger(__name__)

# Storage classes
STORAGE_GLOBAL: str = "global"
STORAGE_LOCAL: str = "local"
STORAGE_PARAM: str = "parameter"
STORAGE_FIELD: str = "field"
STORAGE_METHOD: str = "method"
STORAGE_FUNCTION: str = "function"


@dataclass
class Symbol:
    """A declared name. `owner` is the declaring class for fields and methods."""

    name: str
    typ: Type
    storage: str
    depth: int
    pos: Pos | None
    owner: str | None = None
    method: MethodDef | None = None


class Scope:
    """One lexical scope. The link to the enclosing scope is weak."""

    def __init__(self, parent: Scope | None, depth: int):
        self._parent: weakref.ref[Scope] | None = (
            weakref.ref(parent) if parent is not None else None
        )
        self.depth: int = depth
        self.symbols: dict[str, Symbol] = {}

    @property
    def parent(self) -> Scope | None:
        if self._parent is None:
            return None
        return self._parent()

    def get(self, name: str) -> Symbol | None:
        return self.symbols.get(name)


class ScopeStack:
    """Scopes from the global scope (bottom) to the innermost (top).

    The stack owns every live scope, so each weak parent link stays valid
    for as long as its child is reachable from the stack.
    """

    def __init__(self) -> None:
        self._scopes: list[Scope] = [Scope(None, 0)]

    @property
    def current(self) -> Scope:
        return self._scopes[-1]

    @property
    def global_scope(self) -> Scope:
        return self._scopes[0]

    @property
    def depth(self) -> int:
        return self.current.depth

    def push(self) -> Scope:
        scope = Scope(self.current, self.current.depth + 1)
        self._scopes.append(scope)
        logger.debug("push scope depth=%d", scope.depth)
        return scope

    def pop(self) -> None:
        if len(self._scopes) == 1:
            raise RuntimeError("cannot pop the global scope")
        scope = self._scopes.pop()
        logger.debug("pop scope depth=%d", scope.depth)

    def declare(self, name: str, symbol: Symbol) -> Symbol:
        """Bind `name` in the current scope; shadowing outer scopes is legal."""
        scope = self.current
        existing = scope.get(name)
        if existing is not None:
            raise Redeclaration(
                f"'{name}' is already declared in this scope", symbol.pos
            )
        symbol.depth = scope.depth
        scope.symbols[name] = symbol
        return symbol

    def lookup(self, name: str, pos: Pos | None = None) -> Symbol:
        """Innermost binding of `name`, searching outward to the globals."""
        sym = self.try_lookup(name)
        if sym is not None:
            return sym
        raise UndeclaredIdentifier(f"undeclared identifier '{name}'", pos)

    def try_lookup(self, name: str) -> Symbol | None:
        scope: Scope | None = self.current
        while scope is not None:
            sym = scope.get(name)
            if sym is not None:
                return sym
            scope = scope.parent
        return None
