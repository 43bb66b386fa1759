"""Tests for the MiniC parser."""

import pytest

from minic import ParseError, parse
from minic.ast import (
    TAddressOf,
    TArrayType,
    TAssignStmt,
    TBinaryOp,
    TCall,
    TCast,
    TClassDecl,
    TClassType,
    TDeref,
    TExprStmt,
    TFieldAccess,
    TFunDecl,
    TIfStmt,
    TIndex,
    TIntLit,
    TLocalDecl,
    TMethodCall,
    TNew,
    TPointerType,
    TPrimitive,
    TReturnStmt,
    TSizeOf,
    TStructDecl,
    TStructType,
    TUnaryOp,
    TVar,
    TVarDecl,
)


def _main_stmts(body: str):
    program = parse("int main() {\n" + body + "\n}")
    fn = program.decls[0]
    assert isinstance(fn, TFunDecl) and fn.body is not None
    return fn.body.stmts


def _expr(text: str):
    stmt = _main_stmts(text + ";")[0]
    assert isinstance(stmt, TExprStmt)
    return stmt.expr


def test_top_level_declarations():
    program = parse(
        """
struct P { int x; char name[8]; };
class A { int v; int get() { return v; } };
class B extends A { };
int g[2][3];
int f(int a, char* s);
void h(void) { }
"""
    )
    kinds = [type(d) for d in program.decls]
    assert kinds == [TStructDecl, TClassDecl, TClassDecl, TVarDecl, TFunDecl, TFunDecl]
    struct = program.decls[0]
    assert [f.name for f in struct.fields] == ["x", "name"]
    assert isinstance(struct.fields[1].typ, TArrayType) and struct.fields[1].typ.size == 8
    a = program.decls[1]
    assert a.parent is None
    assert [m.name for m in a.methods] == ["get"]
    assert program.decls[2].parent == "A"
    proto = program.decls[4]
    assert proto.body is None
    assert isinstance(proto.params[1].typ, TPointerType)
    assert program.decls[5].params == []


def test_array_dimensions_nest_outermost_first():
    program = parse("int g[2][3];")
    typ = program.decls[0].typ
    assert isinstance(typ, TArrayType) and typ.size == 2
    assert isinstance(typ.element, TArrayType) and typ.element.size == 3
    assert isinstance(typ.element.element, TPrimitive)


def test_local_declarations_by_type_form():
    stmts = _main_stmts("int x; struct P p; Box b; Box* bp; char** cs;")
    assert all(isinstance(s, TLocalDecl) for s in stmts)
    assert isinstance(stmts[1].typ, TStructType)
    assert isinstance(stmts[2].typ, TClassType)
    assert isinstance(stmts[3].typ, TPointerType)
    assert isinstance(stmts[4].typ.inner, TPointerType)


def test_star_between_names_declares_a_pointer():
    stmts = _main_stmts("a * b;")
    assert isinstance(stmts[0], TLocalDecl)
    assert isinstance(stmts[0].typ, TPointerType)


def test_product_expression_is_not_a_declaration():
    stmts = _main_stmts("a * b + 1;")
    assert isinstance(stmts[0], TExprStmt)
    assert isinstance(stmts[0].expr, TBinaryOp)


def test_precedence():
    e = _expr("1 + 2 * 3 < 4 && 5 == 6 || 7")
    assert isinstance(e, TBinaryOp) and e.op == "||"
    left = e.left
    assert left.op == "&&"
    assert left.left.op == "<"
    assert left.left.left.op == "+"
    assert left.left.left.right.op == "*"
    assert left.right.op == "=="


def test_left_associative_subtraction():
    e = _expr("10 - 4 - 3")
    assert e.op == "-" and isinstance(e.left, TBinaryOp)
    assert isinstance(e.right, TIntLit) and e.right.value == 3


def test_unary_forms():
    assert isinstance(_expr("-x"), TUnaryOp)
    assert isinstance(_expr("!x"), TUnaryOp)
    assert isinstance(_expr("*p"), TDeref)
    assert isinstance(_expr("&x"), TAddressOf)
    cast = _expr("(class Dog)a")
    assert isinstance(cast, TCast) and isinstance(cast.typ, TClassType)
    cast = _expr("(int*)v")
    assert isinstance(cast.typ, TPointerType)


def test_parenthesised_name_is_not_a_cast():
    e = _expr("(x) + 1")
    assert isinstance(e, TBinaryOp) and isinstance(e.left, TVar)


def test_arrow_is_deref_then_field():
    e = _expr("p->next->val")
    assert isinstance(e, TFieldAccess) and e.field == "val"
    assert isinstance(e.obj, TDeref)
    inner = e.obj.operand
    assert isinstance(inner, TFieldAccess) and inner.field == "next"
    assert isinstance(inner.obj, TDeref)


def test_postfix_chains():
    e = _expr("a.b[2].c(1, 2)")
    assert isinstance(e, TMethodCall) and e.method == "c" and len(e.args) == 2
    assert isinstance(e.obj, TIndex)
    assert isinstance(e.obj.obj, TFieldAccess)


def test_calls_and_new():
    e = _expr("f(g(1), 2)")
    assert isinstance(e, TCall) and e.name == "f"
    assert isinstance(e.args[0], TCall)
    assert isinstance(_expr("new class Dog()"), TNew)
    assert _expr("new Dog()").class_name == "Dog"


def test_sizeof_type_and_expression():
    assert isinstance(_expr("sizeof(struct P)").target, TStructType)
    assert isinstance(_expr("sizeof(int[4])").target, TArrayType)
    assert isinstance(_expr("sizeof(x)").target, TVar)


def test_assignment_and_control_statements():
    stmts = _main_stmts("x = 1; if (x) return 1; else return 2;")
    assert isinstance(stmts[0], TAssignStmt)
    assert isinstance(stmts[1], TIfStmt)
    assert isinstance(stmts[1].else_body, TReturnStmt)


def test_dangling_else_binds_inner():
    stmts = _main_stmts("if (a) if (b) x = 1; else x = 2;")
    outer = stmts[0]
    assert outer.else_body is None
    assert outer.then_body.else_body is not None


def test_pragma_sets_strict():
    assert parse("// pragma strict\nint main() { return 0; }").strict is True
    assert parse("int main() { return 0; }").strict is False
    assert parse("int main() { return 0; }\n// pragma strict\n").strict is False


def test_errors_carry_position():
    with pytest.raises(ParseError) as exc:
        parse("int main() {\n    return 0\n}")
    assert exc.value.pos.line == 3
    assert exc.value.kind == "ParseError"


def test_call_on_non_name_rejected():
    with pytest.raises(ParseError):
        parse("int main() { f(1)(2); }")


def test_unterminated_block():
    with pytest.raises(ParseError):
        parse("int main() { x = 1;")
