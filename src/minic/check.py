"""Semantic checker for MiniC programs. Resolves names and types, fails on the first error.

The checker walks the program once. Every expression's resolved type is
recorded in `expr_types`, every variable reference's symbol in `bindings`
and every call's resolved target in `call_targets`, all keyed by `id(node)`.
The execution engine reads these side tables instead of re-deriving them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .ast import (
    Pos,
    TAddressOf,
    TAssignStmt,
    TBinaryOp,
    TBlock,
    TBreakStmt,
    TCall,
    TCast,
    TCharLit,
    TClassDecl,
    TContinueStmt,
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
    TProgram,
    TReturnStmt,
    TSizeOf,
    TStmt,
    TStringLit,
    TStructDecl,
    TType,
    TUnaryOp,
    TVar,
    TVarDecl,
    TWhileStmt,
)
from .errors import (
    ArityMismatch,
    DuplicateDefinition,
    InvalidCast,
    MisplacedJump,
    MissingDefinition,
    NotAssignable,
    StaticDivisionByZero,
    StaticIndexOutOfBounds,
    TypeMismatch,
    UnknownField,
    UnknownType,
)
from .host import BUILTINS
from .scope import (
    STORAGE_FIELD,
    STORAGE_FUNCTION,
    STORAGE_GLOBAL,
    STORAGE_LOCAL,
    STORAGE_METHOD,
    STORAGE_PARAM,
    ScopeStack,
    Symbol,
)
from .types import (
    CHAR_T,
    INT_T,
    TY_INT,
    TY_VOID,
    VOID_T,
    ArrayT,
    ClassT,
    MethodDef,
    PointerT,
    StructT,
    Type,
    TypeTable,
    array_of,
    class_type,
    is_integral,
    is_scalar,
    is_void_pointer,
    pointer_to,
    type_eq,
    type_name,
)

logger = logging.getLogger(__name__)

ARITH_OPS: set[str] = {"+", "-", "*", "/", "%"}
ORDER_OPS: set[str] = {"<", "<=", ">", ">="}
EQUALITY_OPS: set[str] = {"==", "!="}
LOGIC_OPS: set[str] = {"&&", "||"}

# Call target kinds
CALL_FUNCTION: str = "function"
CALL_BUILTIN: str = "builtin"
CALL_METHOD: str = "method"


# ============================================================
# CHECKED PROGRAM
# ============================================================


@dataclass
class FunctionInfo:
    """A free function. `decl` is the definition; None while only prototyped."""

    name: str
    param_names: list[str]
    params: list[Type]
    ret: Type
    decl: TFunDecl | None
    proto_pos: Pos


@dataclass
class CallTarget:
    kind: str
    name: str
    params: list[Type]
    ret: Type
    function: FunctionInfo | None = None
    method: MethodDef | None = None


@dataclass
class CheckedProgram:
    """A program that passed checking, plus everything resolved about it."""

    program: TProgram
    table: TypeTable
    functions: dict[str, FunctionInfo]
    globals: list[Symbol]
    entry: FunctionInfo
    strict: bool
    expr_types: dict[int, Type] = field(default_factory=dict)
    bindings: dict[int, Symbol] = field(default_factory=dict)
    call_targets: dict[int, CallTarget] = field(default_factory=dict)
    decl_types: dict[int, Type] = field(default_factory=dict)
    sizes: dict[int, int] = field(default_factory=dict)

    def type_of(self, expr: TExpr) -> Type:
        return self.expr_types[id(expr)]


def _const_int(expr: TExpr) -> int | None:
    """Value of an integer constant expression made of literals and unary minus."""
    if isinstance(expr, TIntLit):
        return expr.value
    if isinstance(expr, TCharLit):
        return ord(expr.value)
    if isinstance(expr, TUnaryOp) and expr.op == "-":
        inner = _const_int(expr.operand)
        if inner is not None:
            return -inner
    return None


def _is_null_constant(expr: TExpr) -> bool:
    return isinstance(expr, TIntLit) and expr.value == 0


# ============================================================
# CHECKER
# ============================================================


class Checker:
    def __init__(self, program: TProgram, *, strict: bool = False, entry: str = "main"):
        self.program: TProgram = program
        self.strict: bool = strict
        self.entry_name: str = entry
        self.table: TypeTable = TypeTable()
        self.scopes: ScopeStack = ScopeStack()
        self.functions: dict[str, FunctionInfo] = {}
        self.globals: list[Symbol] = []
        self.expr_types: dict[int, Type] = {}
        self.bindings: dict[int, Symbol] = {}
        self.call_targets: dict[int, CallTarget] = {}
        self.decl_types: dict[int, Type] = {}
        self.sizes: dict[int, int] = {}
        self.current_ret: Type = VOID_T
        self.current_class: str | None = None
        self.loop_depth: int = 0

    def check(self) -> CheckedProgram:
        self.collect_types()
        self.collect_globals()
        entry = self.check_entry()
        self.check_bodies()
        return CheckedProgram(
            program=self.program,
            table=self.table,
            functions=self.functions,
            globals=self.globals,
            entry=entry,
            strict=self.strict,
            expr_types=self.expr_types,
            bindings=self.bindings,
            call_targets=self.call_targets,
            decl_types=self.decl_types,
            sizes=self.sizes,
        )

    # ── Pass 1: Declarations ──────────────────────────────────

    def collect_types(self) -> None:
        for decl in self.program.decls:
            if isinstance(decl, (TStructDecl, TClassDecl)):
                self.table.register(decl)
        self.table.complete()

    def collect_globals(self) -> None:
        for name, (_params, ret) in BUILTINS.items():
            self.scopes.declare(name, Symbol(name, ret, STORAGE_FUNCTION, 0, None, "builtin"))
        for decl in self.program.decls:
            if isinstance(decl, TVarDecl):
                typ = self.resolve_storage_type(decl.typ, decl.pos)
                sym = Symbol(decl.name, typ, STORAGE_GLOBAL, 0, decl.pos)
                self.scopes.declare(decl.name, sym)
                self.globals.append(sym)
            elif isinstance(decl, TFunDecl):
                self.collect_function(decl)
        logger.debug(
            "collected %d globals and %d functions", len(self.globals), len(self.functions)
        )

    def collect_function(self, decl: TFunDecl) -> None:
        params: list[Type] = []
        for p in decl.params:
            ptype = self.resolve_storage_type(p.typ, p.pos)
            self.decl_types[id(p)] = ptype
            params.append(ptype)
        ret = self.table.resolve_type(decl.ret)
        if isinstance(ret, ArrayT):
            raise TypeMismatch(f"function '{decl.name}' cannot return an array", decl.pos)
        if decl.name in BUILTINS:
            if decl.body is not None:
                raise DuplicateDefinition(
                    f"'{decl.name}' is a runtime library function", decl.pos
                )
            # Calls always use the built-in signature.
            return
        existing = self.functions.get(decl.name)
        if existing is None:
            info = FunctionInfo(
                decl.name,
                [p.name for p in decl.params],
                params,
                ret,
                decl if decl.body is not None else None,
                decl.pos,
            )
            self.scopes.declare(decl.name, Symbol(decl.name, ret, STORAGE_FUNCTION, 0, decl.pos))
            self.functions[decl.name] = info
            return
        self._match_signature(decl, params, ret, existing.params, existing.ret)
        if decl.body is not None:
            if existing.decl is not None:
                raise DuplicateDefinition(
                    f"function '{decl.name}' is already defined", decl.pos
                )
            existing.decl = decl
            existing.param_names = [p.name for p in decl.params]

    def _match_signature(
        self,
        decl: TFunDecl,
        params: list[Type],
        ret: Type,
        prior_params: list[Type],
        prior_ret: Type,
    ) -> None:
        if len(params) != len(prior_params):
            raise ArityMismatch(
                f"'{decl.name}' declared with {len(prior_params)} parameters,"
                f" got {len(params)}",
                decl.pos,
            )
        if not type_eq(ret, prior_ret):
            raise TypeMismatch(
                f"'{decl.name}' declared returning {type_name(prior_ret)},"
                f" got {type_name(ret)}",
                decl.pos,
            )
        for a, b in zip(params, prior_params):
            if not type_eq(a, b):
                raise TypeMismatch(
                    f"'{decl.name}' parameter type {type_name(a)} does not match"
                    f" prior declaration {type_name(b)}",
                    decl.pos,
                )

    def check_entry(self) -> FunctionInfo:
        info = self.functions.get(self.entry_name)
        if info is None or info.decl is None:
            raise MissingDefinition(f"no definition of entry function '{self.entry_name}'")
        if len(info.params) != 0:
            raise ArityMismatch(
                f"entry function '{self.entry_name}' must take no parameters", info.decl.pos
            )
        if info.ret.kind != TY_INT and info.ret.kind != TY_VOID:
            raise TypeMismatch(
                f"entry function '{self.entry_name}' must return int or void", info.decl.pos
            )
        return info

    def resolve_storage_type(self, t: TType, pos: Pos) -> Type:
        """Resolve the declared type of a variable, parameter or field."""
        typ = self.table.resolve_type(t)
        inner = typ
        while isinstance(inner, ArrayT):
            inner = inner.element
        if inner.kind == TY_VOID:
            raise TypeMismatch("variable cannot have type void", pos)
        return typ

    # ── Pass 2: Bodies ────────────────────────────────────────

    def check_bodies(self) -> None:
        for decl in self.program.decls:
            if isinstance(decl, TFunDecl) and decl.body is not None and decl.name not in BUILTINS:
                info = self.functions[decl.name]
                self.check_function(decl, info.params, info.ret)
            elif isinstance(decl, TClassDecl):
                self.check_class(decl)

    def check_function(self, decl: TFunDecl, params: list[Type], ret: Type) -> None:
        logger.debug("checking function %s", decl.name)
        assert decl.body is not None
        self.current_ret = ret
        self.scopes.push()
        try:
            for p, ptype in zip(decl.params, params):
                self.decl_types[id(p)] = ptype
                self.scopes.declare(p.name, Symbol(p.name, ptype, STORAGE_PARAM, 0, p.pos))
            self.check_stmts(decl.body.stmts)
        finally:
            self.scopes.pop()

    def check_class(self, decl: TClassDecl) -> None:
        cdef = self.table.classes[decl.name]
        self.current_class = cdef.name
        self.scopes.push()
        try:
            for f in self.table.field_layout(class_type(cdef.name)):
                self.scopes.declare(
                    f.name, Symbol(f.name, f.typ, STORAGE_FIELD, 0, f.pos, f.owner)
                )
            for name, m in self.table.methods_of(cdef.name).items():
                self.scopes.declare(
                    name, Symbol(name, m.ret, STORAGE_METHOD, 0, m.decl.pos, m.owner, m)
                )
            for mdecl in decl.methods:
                m = cdef.methods[mdecl.name]
                logger.debug("checking method %s.%s", cdef.name, m.name)
                self.check_function(mdecl, m.params, m.ret)
        finally:
            self.scopes.pop()
            self.current_class = None

    # ── Statements ────────────────────────────────────────────

    def check_stmts(self, stmts: list[TStmt]) -> None:
        for stmt in stmts:
            self.check_stmt(stmt)

    def check_stmt(self, stmt: TStmt) -> None:
        if isinstance(stmt, TLocalDecl):
            typ = self.resolve_storage_type(stmt.typ, stmt.pos)
            self.decl_types[id(stmt)] = typ
            self.scopes.declare(stmt.name, Symbol(stmt.name, typ, STORAGE_LOCAL, 0, stmt.pos))
        elif isinstance(stmt, TBlock):
            self.scopes.push()
            try:
                self.check_stmts(stmt.stmts)
            finally:
                self.scopes.pop()
        elif isinstance(stmt, TAssignStmt):
            self.check_assign(stmt)
        elif isinstance(stmt, TExprStmt):
            self.check_expr(stmt.expr)
        elif isinstance(stmt, TIfStmt):
            self.check_condition(stmt.cond)
            self.check_stmt(stmt.then_body)
            if stmt.else_body is not None:
                self.check_stmt(stmt.else_body)
        elif isinstance(stmt, TWhileStmt):
            self.check_condition(stmt.cond)
            self.loop_depth += 1
            try:
                self.check_stmt(stmt.body)
            finally:
                self.loop_depth -= 1
        elif isinstance(stmt, TReturnStmt):
            self.check_return(stmt)
        elif isinstance(stmt, TBreakStmt):
            if self.loop_depth == 0:
                raise MisplacedJump("break outside of a loop", stmt.pos)
        elif isinstance(stmt, TContinueStmt):
            if self.loop_depth == 0:
                raise MisplacedJump("continue outside of a loop", stmt.pos)
        else:
            raise TypeMismatch("unhandled statement", stmt.pos)

    def check_condition(self, cond: TExpr) -> None:
        t = self.check_expr(cond)
        if not is_scalar(t):
            raise TypeMismatch(f"condition has non-scalar type {type_name(t)}", cond.pos)

    def check_assign(self, stmt: TAssignStmt) -> None:
        target_t = self.check_expr(stmt.target)
        if not self.is_addressable(stmt.target):
            raise NotAssignable("left side of assignment is not assignable", stmt.target.pos)
        if isinstance(target_t, ArrayT):
            raise NotAssignable("arrays cannot be assigned", stmt.target.pos)
        value_t = self.check_expr(stmt.value)
        self.require_assignable(value_t, target_t, stmt.value)

    def check_return(self, stmt: TReturnStmt) -> None:
        if stmt.value is None:
            if self.current_ret.kind != TY_VOID:
                raise TypeMismatch(
                    f"missing return value of type {type_name(self.current_ret)}", stmt.pos
                )
            return
        value_t = self.check_expr(stmt.value)
        if self.current_ret.kind == TY_VOID:
            raise TypeMismatch("void function cannot return a value", stmt.pos)
        self.require_assignable(value_t, self.current_ret, stmt.value)

    # ── Type relations ────────────────────────────────────────

    def is_assignable(self, source: Type, target: Type, expr: TExpr | None = None) -> bool:
        """Can a value of type `source` be stored in a slot of type `target`?"""
        if type_eq(source, target):
            return True
        if is_integral(source) and is_integral(target):
            return True
        if isinstance(target, (PointerT, ClassT)) and expr is not None and _is_null_constant(expr):
            return True
        if isinstance(source, PointerT) and isinstance(target, PointerT):
            return is_void_pointer(source) or is_void_pointer(target)
        if isinstance(source, ArrayT) and isinstance(target, PointerT):
            return is_void_pointer(target) or type_eq(source.element, target.target)
        if isinstance(source, ArrayT) and isinstance(target, ArrayT):
            # Array parameters take an array of the same element type at least as long
            return type_eq(source.element, target.element) and source.size >= target.size
        if isinstance(source, ClassT) and isinstance(target, ClassT):
            return self.table.is_subtype(source.name, target.name)
        return False

    def require_assignable(self, source: Type, target: Type, expr: TExpr) -> None:
        if not self.is_assignable(source, target, expr):
            raise TypeMismatch(
                f"cannot use {type_name(source)} as {type_name(target)}", expr.pos
            )

    def is_castable(self, source: Type, target: Type) -> bool:
        if type_eq(source, target):
            return True
        if is_integral(source) and is_integral(target):
            return True
        if isinstance(source, ClassT) and isinstance(target, ClassT):
            return self.table.is_subtype(source.name, target.name) or self.table.is_subtype(
                target.name, source.name
            )
        if isinstance(target, PointerT):
            return isinstance(source, (PointerT, ArrayT))
        return False

    def is_addressable(self, expr: TExpr) -> bool:
        """Whether the expression names storage that outlives the expression."""
        if isinstance(expr, TVar):
            sym = self.bindings.get(id(expr))
            return sym is not None and sym.storage in (
                STORAGE_GLOBAL,
                STORAGE_LOCAL,
                STORAGE_PARAM,
                STORAGE_FIELD,
            )
        if isinstance(expr, TDeref):
            return True
        if isinstance(expr, TFieldAccess):
            if isinstance(self.expr_types[id(expr.obj)], ClassT):
                return True
            return self.is_addressable(expr.obj)
        if isinstance(expr, TIndex):
            if isinstance(self.expr_types[id(expr.obj)], PointerT):
                return True
            return self.is_addressable(expr.obj)
        return False

    # ── Expressions ───────────────────────────────────────────

    def check_expr(self, expr: TExpr) -> Type:
        t = self._check_expr(expr)
        self.expr_types[id(expr)] = t
        return t

    def _check_expr(self, expr: TExpr) -> Type:
        if isinstance(expr, TIntLit):
            return INT_T
        if isinstance(expr, TCharLit):
            return CHAR_T
        if isinstance(expr, TStringLit):
            return array_of(CHAR_T, len(expr.value.encode("latin-1")) + 1)
        if isinstance(expr, TVar):
            return self.check_var(expr)
        if isinstance(expr, TBinaryOp):
            return self.check_binary_op(expr)
        if isinstance(expr, TUnaryOp):
            return self.check_unary_op(expr)
        if isinstance(expr, TDeref):
            t = self.check_expr(expr.operand)
            if not isinstance(t, PointerT) or t.target.kind == TY_VOID:
                raise TypeMismatch(f"cannot dereference {type_name(t)}", expr.pos)
            return t.target
        if isinstance(expr, TAddressOf):
            t = self.check_expr(expr.operand)
            if not self.is_addressable(expr.operand):
                raise NotAssignable("cannot take the address of this expression", expr.pos)
            return pointer_to(t)
        if isinstance(expr, TFieldAccess):
            return self.check_field_access(expr)
        if isinstance(expr, TIndex):
            return self.check_index(expr)
        if isinstance(expr, TCall):
            return self.check_call(expr)
        if isinstance(expr, TMethodCall):
            return self.check_method_call(expr)
        if isinstance(expr, TNew):
            if expr.class_name not in self.table.classes:
                raise UnknownType(f"unknown class '{expr.class_name}'", expr.pos)
            return class_type(expr.class_name)
        if isinstance(expr, TCast):
            target = self.table.resolve_type(expr.typ)
            source = self.check_expr(expr.expr)
            if not self.is_castable(source, target):
                raise InvalidCast(
                    f"cannot cast {type_name(source)} to {type_name(target)}", expr.pos
                )
            return target
        if isinstance(expr, TSizeOf):
            if isinstance(expr.target, TType):
                t = self.table.resolve_type(expr.target)
            else:
                t = self.check_expr(expr.target)
            self.sizes[id(expr)] = self.table.sizeof(t)
            return INT_T
        raise TypeMismatch("unhandled expression", expr.pos)

    def check_var(self, expr: TVar) -> Type:
        sym = self.scopes.lookup(expr.name, expr.pos)
        if sym.storage == STORAGE_FUNCTION or sym.storage == STORAGE_METHOD:
            raise TypeMismatch(f"'{expr.name}' is a function, not a value", expr.pos)
        self.bindings[id(expr)] = sym
        return sym.typ

    def check_binary_op(self, expr: TBinaryOp) -> Type:
        left = self.check_expr(expr.left)
        right = self.check_expr(expr.right)
        op = expr.op
        if op in LOGIC_OPS:
            if not is_scalar(left) or not is_scalar(right):
                raise TypeMismatch(f"operands of {op} must be scalar", expr.pos)
            return INT_T
        if op in ARITH_OPS or op in ORDER_OPS:
            if not is_integral(left) or not is_integral(right):
                raise TypeMismatch(
                    f"operator {op} not defined for {type_name(left)} and {type_name(right)}",
                    expr.pos,
                )
            if self.strict and (op == "/" or op == "%") and _const_int(expr.right) == 0:
                raise StaticDivisionByZero("division by constant zero", expr.right.pos)
            return INT_T
        if op in EQUALITY_OPS:
            if self.is_comparable(left, right, expr):
                return INT_T
            raise TypeMismatch(
                f"cannot compare {type_name(left)} with {type_name(right)}", expr.pos
            )
        raise TypeMismatch(f"unknown operator {op}", expr.pos)

    def is_comparable(self, left: Type, right: Type, expr: TBinaryOp) -> bool:
        if is_integral(left) and is_integral(right):
            return True
        refs = (PointerT, ClassT)
        if isinstance(left, refs) and _is_null_constant(expr.right):
            return True
        if isinstance(right, refs) and _is_null_constant(expr.left):
            return True
        if isinstance(left, PointerT) and isinstance(right, PointerT):
            return type_eq(left, right) or is_void_pointer(left) or is_void_pointer(right)
        if isinstance(left, ClassT) and isinstance(right, ClassT):
            return self.table.is_subtype(left.name, right.name) or self.table.is_subtype(
                right.name, left.name
            )
        return False

    def check_unary_op(self, expr: TUnaryOp) -> Type:
        t = self.check_expr(expr.operand)
        if expr.op == "-":
            if not is_integral(t):
                raise TypeMismatch(f"cannot negate {type_name(t)}", expr.pos)
            return INT_T
        if not is_scalar(t):
            raise TypeMismatch(f"operand of ! must be scalar, got {type_name(t)}", expr.pos)
        return INT_T

    def check_field_access(self, expr: TFieldAccess) -> Type:
        obj_t = self.check_expr(expr.obj)
        if isinstance(obj_t, StructT):
            found = self.table.field_offset(obj_t, expr.field)
            if found is None:
                raise UnknownField(
                    f"struct '{obj_t.name}' has no field '{expr.field}'", expr.pos
                )
            return found[1].typ
        if isinstance(obj_t, ClassT):
            f = self.table.lookup_field(obj_t.name, expr.field)
            if f is None:
                raise UnknownField(f"class '{obj_t.name}' has no field '{expr.field}'", expr.pos)
            return f.typ
        raise TypeMismatch(f"{type_name(obj_t)} has no fields", expr.pos)

    def check_index(self, expr: TIndex) -> Type:
        obj_t = self.check_expr(expr.obj)
        index_t = self.check_expr(expr.index)
        if not is_integral(index_t):
            raise TypeMismatch(f"array index must be an integer, got {type_name(index_t)}", expr.index.pos)
        if isinstance(obj_t, ArrayT):
            if self.strict:
                const = _const_int(expr.index)
                if const is not None and (const < 0 or const >= obj_t.size):
                    raise StaticIndexOutOfBounds(
                        f"index {const} outside array bound {obj_t.size}", expr.index.pos
                    )
            return obj_t.element
        if isinstance(obj_t, PointerT) and obj_t.target.kind != TY_VOID:
            return obj_t.target
        raise TypeMismatch(f"cannot index {type_name(obj_t)}", expr.pos)

    def check_call(self, expr: TCall) -> Type:
        sym = self.scopes.lookup(expr.name, expr.pos)
        if sym.storage == STORAGE_METHOD:
            assert sym.method is not None
            m = sym.method
            target = CallTarget(CALL_METHOD, expr.name, m.params, m.ret, method=m)
        elif sym.storage == STORAGE_FUNCTION and sym.owner == "builtin":
            params, ret = BUILTINS[expr.name]
            target = CallTarget(CALL_BUILTIN, expr.name, params, ret)
        elif sym.storage == STORAGE_FUNCTION:
            info = self.functions[expr.name]
            if info.decl is None:
                raise MissingDefinition(
                    f"function '{expr.name}' is declared but never defined", expr.pos
                )
            target = CallTarget(CALL_FUNCTION, expr.name, info.params, info.ret, function=info)
        else:
            raise TypeMismatch(f"'{expr.name}' is not a function", expr.pos)
        self.check_args(expr.name, expr.args, target.params, expr.pos)
        self.call_targets[id(expr)] = target
        return target.ret

    def check_method_call(self, expr: TMethodCall) -> Type:
        obj_t = self.check_expr(expr.obj)
        if not isinstance(obj_t, ClassT):
            raise TypeMismatch(f"{type_name(obj_t)} has no methods", expr.pos)
        m = self.table.lookup_method(obj_t.name, expr.method)
        if m is None:
            raise UnknownField(
                f"class '{obj_t.name}' has no method '{expr.method}'", expr.pos
            )
        self.check_args(expr.method, expr.args, m.params, expr.pos)
        self.call_targets[id(expr)] = CallTarget(CALL_METHOD, expr.method, m.params, m.ret, method=m)
        return m.ret

    def check_args(self, name: str, args: list[TExpr], params: list[Type], pos: Pos) -> None:
        if len(args) != len(params):
            raise ArityMismatch(
                f"'{name}' expects {len(params)} arguments, got {len(args)}", pos
            )
        for arg, ptype in zip(args, params):
            arg_t = self.check_expr(arg)
            self.require_assignable(arg_t, ptype, arg)


def check(program: TProgram, *, strict: bool | None = None, entry: str = "main") -> CheckedProgram:
    """Check a parsed program. Raises a SemanticError subclass on the first error."""
    checker = Checker(
        program, strict=program.strict if strict is None else strict, entry=entry
    )
    return checker.check()
