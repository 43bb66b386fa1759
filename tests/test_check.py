"""Tests for the semantic checker."""

import pytest

from minic import check, parse
from minic.ast import TAssignStmt, TFunDecl, TLocalDecl
from minic.check import CALL_BUILTIN, CALL_FUNCTION, CALL_METHOD, check as check_program
from minic.errors import (
    ArityMismatch,
    MissingDefinition,
    SemanticError,
    StaticIndexOutOfBounds,
    TypeMismatch,
    UndeclaredIdentifier,
)
from minic.scope import STORAGE_FIELD, STORAGE_GLOBAL, STORAGE_LOCAL, STORAGE_PARAM
from minic.types import ArrayT, ClassT, PointerT, type_name


def _fn(program, name: str) -> TFunDecl:
    for d in program.decls:
        if isinstance(d, TFunDecl) and d.name == name:
            return d
    raise ValueError(f"no function {name}")


def test_expression_types_are_recorded():
    source = """
int main() {
    char buf[4];
    char* p;
    p = buf;
    print_i(buf[1] + 1);
    return 0;
}
"""
    checked = check(source)
    stmts = _fn(checked.program, "main").body.stmts
    assign = stmts[2]
    assert isinstance(assign, TAssignStmt)
    assert isinstance(checked.type_of(assign.value), ArrayT)
    assert isinstance(checked.type_of(assign.target), PointerT)
    call = stmts[3].expr
    assert type_name(checked.type_of(call.args[0])) == "int"
    assert type_name(checked.type_of(call.args[0].left)) == "char"
    assert checked.call_targets[id(call)].kind == CALL_BUILTIN


def test_bindings_record_storage():
    source = """
int g;
class Box {
    int v;
    int get(int extra) {
        int local;
        local = extra;
        return v + local + g;
    }
};
int main() { return 0; }
"""
    checked = check(source)
    box = checked.program.decls[1]
    body = box.methods[0].body.stmts
    assign = body[1]
    assert checked.bindings[id(assign.target)].storage == STORAGE_LOCAL
    assert checked.bindings[id(assign.value)].storage == STORAGE_PARAM
    ret = body[2].value
    field = ret.left.left
    assert checked.bindings[id(field)].storage == STORAGE_FIELD
    assert checked.bindings[id(field)].owner == "Box"
    assert checked.bindings[id(ret.right)].storage == STORAGE_GLOBAL


def test_call_targets_distinguish_functions_and_methods():
    source = """
class A {
    int f() { return g(); }
    int g() { return 1; }
};
int h() { return 2; }
int main() {
    A a;
    a = new A();
    print_i(a.f() + h());
    return 0;
}
"""
    checked = check(source)
    f = checked.program.decls[0].methods[0]
    inner = f.body.stmts[0].value
    assert checked.call_targets[id(inner)].kind == CALL_METHOD
    main_stmts = _fn(checked.program, "main").body.stmts
    total = main_stmts[2].expr.args[0]
    assert checked.call_targets[id(total.left)].kind == CALL_METHOD
    assert checked.call_targets[id(total.right)].kind == CALL_FUNCTION


def test_globals_and_entry():
    checked = check("int a; char b[3]; int main() { return 0; }")
    assert [s.name for s in checked.globals] == ["a", "b"]
    assert checked.entry.name == "main"


def test_custom_entry():
    checked = check("int start() { return 0; }", entry="start")
    assert checked.entry.name == "start"
    with pytest.raises(MissingDefinition):
        check("int start() { return 0; }")


def test_sizeof_is_computed_statically():
    checked = check("struct P { char c; int i; }; int main() { print_i(sizeof(struct P)); return 0; }")
    call = _fn(checked.program, "main").body.stmts[0].expr
    assert checked.sizes[id(call.args[0])] == 8


def test_local_declaration_types():
    checked = check("class K { int v; }; int main() { K k; int m[2][2]; return 0; }")
    stmts = _fn(checked.program, "main").body.stmts
    assert isinstance(stmts[0], TLocalDecl)
    assert isinstance(checked.decl_types[id(stmts[0])], ClassT)
    assert type_name(checked.decl_types[id(stmts[1])]) == "int[2][2]"


def test_strict_option_overrides_pragma():
    source = "int main() { int a[2]; a[2] = 1; return 0; }"
    with pytest.raises(StaticIndexOutOfBounds):
        check(source, strict=True)
    assert check(source).strict is False
    pragma = "// pragma strict\n" + source
    with pytest.raises(StaticIndexOutOfBounds):
        check(pragma)
    assert check(pragma, strict=False).strict is False


def test_null_constant_only_for_literal_zero():
    check("int main() { int* p; p = 0; return 0; }")
    with pytest.raises(TypeMismatch):
        check("int main() { int* p; int z; z = 0; p = z; return 0; }")


def test_upcast_allowed_downcast_needs_cast():
    source = "class A { int a; }; class B extends A { int b; };\n"
    check(source + "int main() { A a; a = new B(); return 0; }")
    with pytest.raises(TypeMismatch):
        check(source + "int main() { B b; b = new A(); return 0; }")


def test_errors_report_location():
    with pytest.raises(UndeclaredIdentifier) as exc:
        check("int main() {\n    return nope;\n}")
    assert exc.value.pos.line == 2
    assert exc.value.pos.col == 12
    assert isinstance(exc.value, SemanticError)
    assert exc.value.kind == "UndeclaredIdentifier"


def test_method_argument_count():
    with pytest.raises(ArityMismatch):
        check("class A { int f(int x) { return x; } }; int main() { A a; a = new A(); a.f(); return 0; }")


def test_check_accepts_parsed_program():
    program = parse("int main() { return 0; }")
    assert check_program(program).program is program
