"""Emitter that converts a MiniC AST back into source text.

The emitter is total over the parse-time AST in `minic/ast.py`: if a new node
type is added, this emitter should be updated alongside it.
"""

from __future__ import annotations

from .ast import (
    TAddressOf,
    TArrayType,
    TAssignStmt,
    TBinaryOp,
    TBlock,
    TBreakStmt,
    TCall,
    TCast,
    TCharLit,
    TClassDecl,
    TClassType,
    TContinueStmt,
    TDecl,
    TDeref,
    TExpr,
    TExprStmt,
    TFieldAccess,
    TFunDecl,
    TIfStmt,
    TIndex,
    TIntLit,
    TLocalDecl,
    TMethodCall,
    TNew,
    TParam,
    TPointerType,
    TPrimitive,
    TProgram,
    TReturnStmt,
    TSizeOf,
    TStmt,
    TStringLit,
    TStructDecl,
    TStructType,
    TType,
    TUnaryOp,
    TVar,
    TVarDecl,
    TWhileStmt,
)


def to_source(program: TProgram) -> str:
    """Render a `TProgram` back into MiniC source text."""
    return _Emitter().emit_program(program)


class _Emitter:
    _INDENT: str = "    "

    # Expression precedence (higher binds tighter)
    _PREC_OR: int = 1
    _PREC_AND: int = 2
    _PREC_EQUALITY: int = 3
    _PREC_RELATIONAL: int = 4
    _PREC_SUM: int = 5
    _PREC_PRODUCT: int = 6
    _PREC_UNARY: int = 7
    _PREC_POSTFIX: int = 8
    _PREC_PRIMARY: int = 9

    _BIN_PREC: dict[str, int] = {
        "||": _PREC_OR,
        "&&": _PREC_AND,
        "==": _PREC_EQUALITY,
        "!=": _PREC_EQUALITY,
        "<": _PREC_RELATIONAL,
        "<=": _PREC_RELATIONAL,
        ">": _PREC_RELATIONAL,
        ">=": _PREC_RELATIONAL,
        "+": _PREC_SUM,
        "-": _PREC_SUM,
        "*": _PREC_PRODUCT,
        "/": _PREC_PRODUCT,
        "%": _PREC_PRODUCT,
    }

    _ESCAPES: dict[str, str] = {
        "\a": "\\a",
        "\b": "\\b",
        "\n": "\\n",
        "\r": "\\r",
        "\t": "\\t",
        "\0": "\\0",
        "\\": "\\\\",
    }

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._indent_level: int = 0

    # ── Public ──────────────────────────────────────────────

    def emit_program(self, program: TProgram) -> str:
        self._lines = []
        self._indent_level = 0
        if program.strict:
            self._lines.append("// pragma strict")
            self._lines.append("")
        first = True
        for decl in program.decls:
            if not first:
                self._lines.append("")
            first = False
            self._emit_decl(decl)
        text = "\n".join(self._lines)
        if text == "":
            return ""
        if not text.endswith("\n"):
            text += "\n"
        return text

    # ── Lines / Blocks ──────────────────────────────────────

    def _emit_line(self, line: str) -> None:
        self._lines.append(self._INDENT * self._indent_level + line)

    def _emit_body(self, stmts: list[TStmt]) -> None:
        self._indent_level += 1
        for stmt in stmts:
            self._emit_stmt(stmt)
        self._indent_level -= 1

    # ── Decls ───────────────────────────────────────────────

    def _emit_decl(self, decl: TDecl) -> None:
        if isinstance(decl, TVarDecl):
            self._emit_line(self._render_declarator(decl.typ, decl.name) + ";")
            return
        if isinstance(decl, TFunDecl):
            self._emit_fun_decl(decl)
            return
        if isinstance(decl, TStructDecl):
            self._emit_line("struct " + decl.name + " {")
            self._indent_level += 1
            for field in decl.fields:
                self._emit_line(self._render_declarator(field.typ, field.name) + ";")
            self._indent_level -= 1
            self._emit_line("};")
            return
        if isinstance(decl, TClassDecl):
            self._emit_class_decl(decl)
            return
        raise TypeError("unhandled decl type")

    def _emit_fun_decl(self, decl: TFunDecl) -> None:
        header = (
            self._render_type(decl.ret)
            + " "
            + decl.name
            + "("
            + self._render_param_list(decl.params)
            + ")"
        )
        if decl.body is None:
            self._emit_line(header + ";")
            return
        self._emit_line(header + " {")
        self._emit_body(decl.body.stmts)
        self._emit_line("}")

    def _emit_class_decl(self, decl: TClassDecl) -> None:
        if decl.parent is None:
            header = "class " + decl.name + " {"
        else:
            header = "class " + decl.name + " extends " + decl.parent + " {"
        self._emit_line(header)
        self._indent_level += 1

        for field in decl.fields:
            self._emit_line(self._render_declarator(field.typ, field.name) + ";")

        for method in decl.methods:
            if decl.fields or method is not decl.methods[0]:
                self._lines.append("")
            self._emit_fun_decl(method)

        self._indent_level -= 1
        self._emit_line("};")

    # ── Stmts ───────────────────────────────────────────────

    def _emit_stmt(self, stmt: TStmt) -> None:
        if isinstance(stmt, TLocalDecl):
            self._emit_line(self._render_declarator(stmt.typ, stmt.name) + ";")
            return
        if isinstance(stmt, TAssignStmt):
            self._emit_line(
                f"{self._render_expr(stmt.target, self._PREC_OR)} = {self._render_expr(stmt.value, self._PREC_OR)};"
            )
            return
        if isinstance(stmt, TExprStmt):
            self._emit_line(self._render_expr(stmt.expr, self._PREC_OR) + ";")
            return
        if isinstance(stmt, TReturnStmt):
            if stmt.value is None:
                self._emit_line("return;")
            else:
                self._emit_line(f"return {self._render_expr(stmt.value, self._PREC_OR)};")
            return
        if isinstance(stmt, TBreakStmt):
            self._emit_line("break;")
            return
        if isinstance(stmt, TContinueStmt):
            self._emit_line("continue;")
            return
        if isinstance(stmt, TBlock):
            self._emit_line("{")
            self._emit_body(stmt.stmts)
            self._emit_line("}")
            return
        if isinstance(stmt, TIfStmt):
            self._emit_if_chain(stmt)
            return
        if isinstance(stmt, TWhileStmt):
            self._emit_line("while (" + self._render_expr(stmt.cond, self._PREC_OR) + ") {")
            self._emit_body(self._as_stmts(stmt.body))
            self._emit_line("}")
            return
        raise TypeError("unhandled stmt type")

    def _as_stmts(self, stmt: TStmt) -> list[TStmt]:
        # Braces are always emitted, so a block body contributes its statements
        if isinstance(stmt, TBlock):
            return stmt.stmts
        return [stmt]

    def _emit_if_chain(self, stmt: TIfStmt) -> None:
        self._emit_line("if (" + self._render_expr(stmt.cond, self._PREC_OR) + ") {")
        self._emit_body(self._as_stmts(stmt.then_body))
        else_body = stmt.else_body
        while isinstance(else_body, TIfStmt):
            self._emit_line(
                "} else if (" + self._render_expr(else_body.cond, self._PREC_OR) + ") {"
            )
            self._emit_body(self._as_stmts(else_body.then_body))
            else_body = else_body.else_body
        if else_body is not None:
            self._emit_line("} else {")
            self._emit_body(self._as_stmts(else_body))
        self._emit_line("}")

    # ── Types ───────────────────────────────────────────────

    def _render_type(self, typ: TType, tagged: bool = False) -> str:
        """Type text; `tagged` spells class types as `class X` for casts and sizeof."""
        if isinstance(typ, TPrimitive):
            return typ.kind
        if isinstance(typ, TStructType):
            return "struct " + typ.name
        if isinstance(typ, TClassType):
            return ("class " + typ.name) if tagged else typ.name
        if isinstance(typ, TPointerType):
            return self._render_type(typ.inner, tagged) + "*"
        if isinstance(typ, TArrayType):
            base, dims = self._split_array(typ)
            return self._render_type(base, tagged) + dims
        raise TypeError("unhandled type node")

    def _split_array(self, typ: TType) -> tuple[TType, str]:
        dims = ""
        while isinstance(typ, TArrayType):
            dims += f"[{typ.size}]"
            typ = typ.element
        return typ, dims

    def _render_declarator(self, typ: TType, name: str) -> str:
        base, dims = self._split_array(typ)
        return self._render_type(base) + " " + name + dims

    # ── Params ──────────────────────────────────────────────

    def _render_param_list(self, params: list[TParam]) -> str:
        parts: list[str] = []
        for p in params:
            parts.append(self._render_declarator(p.typ, p.name))
        return ", ".join(parts)

    # ── Exprs ───────────────────────────────────────────────

    def _expr_prec(self, expr: TExpr) -> int:
        if isinstance(expr, TBinaryOp):
            if expr.op not in self._BIN_PREC:
                raise ValueError(f"unknown binary operator: {expr.op}")
            return self._BIN_PREC[expr.op]
        if isinstance(expr, (TUnaryOp, TDeref, TAddressOf, TCast)):
            return self._PREC_UNARY
        if isinstance(expr, (TFieldAccess, TIndex, TMethodCall)):
            return self._PREC_POSTFIX
        return self._PREC_PRIMARY

    def _render_expr(self, expr: TExpr, parent_prec: int, side: str = "") -> str:
        prec = self._expr_prec(expr)
        text = self._render_expr_inner(expr)
        need_parens = prec < parent_prec
        if prec == parent_prec and side == "right" and prec != self._PREC_UNARY:
            need_parens = True
        if need_parens:
            return f"({text})"
        return text

    def _render_expr_inner(self, expr: TExpr) -> str:
        if isinstance(expr, TIntLit):
            return str(expr.value)
        if isinstance(expr, TCharLit):
            return "'" + self._escape_text(expr.value, "'") + "'"
        if isinstance(expr, TStringLit):
            return '"' + self._escape_text(expr.value, '"') + '"'
        if isinstance(expr, TVar):
            return expr.name
        if isinstance(expr, TBinaryOp):
            prec = self._BIN_PREC[expr.op]
            left = self._render_expr(expr.left, prec, "left")
            right = self._render_expr(expr.right, prec, "right")
            return f"{left} {expr.op} {right}"
        if isinstance(expr, TUnaryOp):
            operand = self._render_expr(expr.operand, self._PREC_UNARY)
            if expr.op == "-" and operand.startswith("-"):
                return f"-({operand})"
            return expr.op + operand
        if isinstance(expr, TDeref):
            return "*" + self._render_expr(expr.operand, self._PREC_UNARY)
        if isinstance(expr, TAddressOf):
            return "&" + self._render_expr(expr.operand, self._PREC_UNARY)
        if isinstance(expr, TCast):
            return f"({self._render_type(expr.typ, True)}){self._render_expr(expr.expr, self._PREC_UNARY)}"
        if isinstance(expr, TFieldAccess):
            if isinstance(expr.obj, TDeref):
                inner = self._render_expr(expr.obj.operand, self._PREC_POSTFIX)
                return f"{inner}->{expr.field}"
            return f"{self._render_expr(expr.obj, self._PREC_POSTFIX)}.{expr.field}"
        if isinstance(expr, TIndex):
            obj = self._render_expr(expr.obj, self._PREC_POSTFIX)
            return f"{obj}[{self._render_expr(expr.index, self._PREC_OR)}]"
        if isinstance(expr, TCall):
            return f"{expr.name}({self._render_args(expr.args)})"
        if isinstance(expr, TMethodCall):
            obj = self._render_expr(expr.obj, self._PREC_POSTFIX)
            return f"{obj}.{expr.method}({self._render_args(expr.args)})"
        if isinstance(expr, TNew):
            return f"new class {expr.class_name}()"
        if isinstance(expr, TSizeOf):
            if isinstance(expr.target, TType):
                return f"sizeof({self._render_type(expr.target, True)})"
            return f"sizeof({self._render_expr(expr.target, self._PREC_OR)})"
        raise TypeError("unhandled expr type")

    def _render_args(self, args: list[TExpr]) -> str:
        parts: list[str] = []
        for a in args:
            parts.append(self._render_expr(a, self._PREC_OR))
        return ", ".join(parts)

    def _escape_text(self, s: str, quote: str) -> str:
        out = ""
        for ch in s:
            if ch in self._ESCAPES:
                out += self._ESCAPES[ch]
            elif ch == quote:
                out += "\\" + quote
            else:
                out += ch
        return out
