"""Tests for the type & class table."""

import pytest

from minic import parse
from minic.errors import DuplicateDefinition, InheritanceCycle, TypeMismatch, UnknownBase, UnknownType
from minic.types import (
    CHAR_T,
    INT_T,
    TypeTable,
    array_of,
    class_type,
    pointer_to,
    struct_type,
    type_eq,
    type_name,
)


def _table(source: str) -> TypeTable:
    table = TypeTable()
    for decl in parse(source).decls:
        table.register(decl)
    table.complete()
    return table


HIERARCHY = """
class A { int a; int f() { return 1; } int g() { return 1; } };
class B extends A { int b; int f() { return 2; } };
class C extends B { char c; int g() { return 3; } };
class D { int d; };
"""


def test_subtype_walks_base_links():
    t = _table(HIERARCHY)
    assert t.is_subtype("C", "A")
    assert t.is_subtype("B", "B")
    assert not t.is_subtype("A", "C")
    assert not t.is_subtype("D", "A")


def test_lookup_method_prefers_most_derived():
    t = _table(HIERARCHY)
    assert t.lookup_method("C", "f").owner == "B"
    assert t.lookup_method("C", "g").owner == "C"
    assert t.lookup_method("B", "g").owner == "A"
    assert t.lookup_method("A", "missing") is None


def test_methods_of_merges_overrides():
    t = _table(HIERARCHY)
    methods = t.methods_of("C")
    assert {name: m.owner for name, m in methods.items()} == {"f": "B", "g": "C"}


def test_inherited_fields_come_first():
    t = _table(HIERARCHY)
    layout = t.field_layout(class_type("C"))
    assert [f.name for f in layout] == ["a", "b", "c"]
    assert t.field_offset(class_type("C"), "c")[0] == 2
    assert t.field_offset(class_type("B"), "c") is None


def test_ancestry_is_root_first():
    t = _table(HIERARCHY)
    assert [c.name for c in t.ancestry("C")] == ["A", "B", "C"]


def test_struct_layout_and_sizes():
    t = _table(
        """
struct In { char tag; int v[3]; };
struct Out { struct In in; char flag; int* p; };
"""
    )
    assert t.cell_count(struct_type("In")) == 4
    assert t.cell_count(struct_type("Out")) == 6
    assert t.field_offset(struct_type("Out"), "p")[0] == 5
    assert t.sizeof(struct_type("In")) == 16
    assert t.sizeof(struct_type("Out")) == 24
    assert t.sizeof(array_of(CHAR_T, 5)) == 5
    assert t.sizeof(pointer_to(INT_T)) == 4


def test_member_types_may_refer_forward():
    t = _table("class A { B partner; }; class B { A partner; };")
    assert type_eq(t.lookup_field("A", "partner").typ, class_type("B"))


def test_duplicate_type_name():
    with pytest.raises(DuplicateDefinition):
        _table("struct S { int a; }; class S { int b; };")


def test_unknown_base_must_be_declared_first():
    with pytest.raises(UnknownBase):
        _table("class B extends A { int b; }; class A { int a; };")


def test_self_extension_is_a_cycle():
    with pytest.raises(InheritanceCycle):
        _table("class A extends A { int a; };")


def test_unknown_member_type():
    with pytest.raises(UnknownType):
        _table("struct S { struct Nope n; };")


def test_void_field_rejected():
    with pytest.raises(TypeMismatch):
        _table("struct S { void v; };")


def test_mutually_nested_structs_rejected():
    with pytest.raises(TypeMismatch):
        _table("struct A { struct B b; }; struct B { struct A a; };")


def test_resolve_by_name():
    t = _table(HIERARCHY + "struct S { int x; };")
    assert type_eq(t.resolve("S"), struct_type("S"))
    assert type_eq(t.resolve("A"), class_type("A"))
    with pytest.raises(UnknownType):
        t.resolve("Nope")


def test_type_equality_and_names():
    assert type_eq(pointer_to(array_of(INT_T, 2)), pointer_to(array_of(INT_T, 2)))
    assert not type_eq(array_of(INT_T, 2), array_of(INT_T, 3))
    assert not type_eq(class_type("A"), struct_type("A"))
    assert type_name(pointer_to(struct_type("P"))) == "struct P*"
    assert type_name(array_of(CHAR_T, 4)) == "char[4]"
