"""Parse-time AST node definitions for MiniC."""

from __future__ import annotations

from dataclasses import dataclass


# ============================================================
# POSITION
# ============================================================


@dataclass
class Pos:
    """Source position, 1-indexed."""

    line: int
    col: int


# ============================================================
# TYPES (parse-time, unresolved)
# ============================================================


@dataclass
class TType:
    """Base for all type nodes."""

    pos: Pos


@dataclass
class TPrimitive(TType):
    """int, char, void."""

    kind: str


@dataclass
class TStructType(TType):
    """struct Name."""

    name: str


@dataclass
class TClassType(TType):
    """class Name, or a bare class name in declaration position."""

    name: str


@dataclass
class TPointerType(TType):
    """T*."""

    inner: TType


@dataclass
class TArrayType(TType):
    """T[n]: one node per dimension, outermost first."""

    element: TType
    size: int


# ============================================================
# DECLARATIONS
# ============================================================


@dataclass
class TDecl:
    """Base for all top-level declarations."""

    pos: Pos


@dataclass
class TVarDecl(TDecl):
    """Global variable, struct field or class field: Type name;"""

    name: str
    typ: TType


@dataclass
class TParam:
    """Function or method parameter."""

    pos: Pos
    name: str
    typ: TType


@dataclass
class TFunDecl(TDecl):
    """Function prototype (body is None) or definition."""

    name: str
    params: list[TParam]
    ret: TType
    body: TBlock | None


@dataclass
class TStructDecl(TDecl):
    """struct Name { fields };"""

    name: str
    fields: list[TVarDecl]


@dataclass
class TClassDecl(TDecl):
    """class Name extends Base { fields and methods }."""

    name: str
    parent: str | None
    fields: list[TVarDecl]
    methods: list[TFunDecl]


@dataclass
class TProgram:
    """One translation unit, as a list of declarations."""

    decls: list[TDecl]
    strict: bool = False


# ============================================================
# STATEMENTS
# ============================================================


@dataclass
class TStmt:
    """Base for all statements."""

    pos: Pos


@dataclass
class TLocalDecl(TStmt):
    """Type name; inside a block."""

    name: str
    typ: TType


@dataclass
class TBlock(TStmt):
    """{ ... } opens a scope."""

    stmts: list[TStmt]


@dataclass
class TWhileStmt(TStmt):
    """while (cond) body."""

    cond: TExpr
    body: TStmt


@dataclass
class TIfStmt(TStmt):
    """if (cond) then_body else else_body."""

    cond: TExpr
    then_body: TStmt
    else_body: TStmt | None


@dataclass
class TReturnStmt(TStmt):
    """return expr?;"""

    value: TExpr | None


@dataclass
class TBreakStmt(TStmt):
    """break;"""


@dataclass
class TContinueStmt(TStmt):
    """continue;"""


@dataclass
class TAssignStmt(TStmt):
    """target = value;"""

    target: TExpr
    value: TExpr


@dataclass
class TExprStmt(TStmt):
    """Bare expression as statement."""

    expr: TExpr


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass
class TExpr:
    """Base for all expressions."""

    pos: Pos


@dataclass
class TIntLit(TExpr):
    """Integer literal."""

    value: int


@dataclass
class TCharLit(TExpr):
    """Character literal with escapes resolved."""

    value: str


@dataclass
class TStringLit(TExpr):
    """String literal with escapes resolved."""

    value: str


@dataclass
class TVar(TExpr):
    """Variable, field or function name reference."""

    name: str


@dataclass
class TBinaryOp(TExpr):
    """left op right."""

    op: str
    left: TExpr
    right: TExpr


@dataclass
class TUnaryOp(TExpr):
    """- or ! applied to an operand."""

    op: str
    operand: TExpr


@dataclass
class TDeref(TExpr):
    """*operand."""

    operand: TExpr


@dataclass
class TAddressOf(TExpr):
    """&operand."""

    operand: TExpr


@dataclass
class TFieldAccess(TExpr):
    """obj.field."""

    obj: TExpr
    field: str


@dataclass
class TIndex(TExpr):
    """obj[index]."""

    obj: TExpr
    index: TExpr


@dataclass
class TCall(TExpr):
    """name(args): a function, a runtime library call, or a method of 'this'."""

    name: str
    args: list[TExpr]


@dataclass
class TMethodCall(TExpr):
    """obj.method(args)."""

    obj: TExpr
    method: str
    args: list[TExpr]


@dataclass
class TNew(TExpr):
    """new class Name()."""

    class_name: str


@dataclass
class TCast(TExpr):
    """(Type) expr."""

    typ: TType
    expr: TExpr


@dataclass
class TSizeOf(TExpr):
    """sizeof(Type) or sizeof(expr). The operand is never evaluated."""

    target: TType | TExpr
