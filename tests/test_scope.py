"""Tests for the scope stack."""

import pytest

from minic.errors import Redeclaration, UndeclaredIdentifier
from minic.scope import STORAGE_GLOBAL, STORAGE_LOCAL, ScopeStack, Symbol
from minic.types import CHAR_T, INT_T


def _sym(name: str, typ=INT_T, storage: str = STORAGE_LOCAL) -> Symbol:
    return Symbol(name, typ, storage, 0, None)


def test_lookup_searches_outward():
    scopes = ScopeStack()
    scopes.declare("g", _sym("g", storage=STORAGE_GLOBAL))
    scopes.push()
    scopes.push()
    assert scopes.lookup("g").storage == STORAGE_GLOBAL
    assert scopes.depth == 2


def test_shadowing_is_legal_and_innermost_wins():
    scopes = ScopeStack()
    scopes.declare("x", _sym("x", INT_T, STORAGE_GLOBAL))
    scopes.push()
    inner = scopes.declare("x", _sym("x", CHAR_T))
    assert scopes.lookup("x") is inner
    assert inner.depth == 1
    scopes.pop()
    assert scopes.lookup("x").storage == STORAGE_GLOBAL


def test_redeclaration_in_same_scope():
    scopes = ScopeStack()
    scopes.push()
    scopes.declare("x", _sym("x"))
    with pytest.raises(Redeclaration):
        scopes.declare("x", _sym("x"))


def test_undeclared_after_pop():
    scopes = ScopeStack()
    scopes.push()
    scopes.declare("tmp", _sym("tmp"))
    scopes.pop()
    with pytest.raises(UndeclaredIdentifier):
        scopes.lookup("tmp")
    assert scopes.try_lookup("tmp") is None


def test_global_scope_cannot_be_popped():
    scopes = ScopeStack()
    with pytest.raises(RuntimeError):
        scopes.pop()


def test_parent_links():
    scopes = ScopeStack()
    child = scopes.push()
    assert child.parent is scopes.global_scope
    assert scopes.global_scope.parent is None
