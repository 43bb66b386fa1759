"""Execution engine for checked MiniC programs.

The engine is a tree-walking interpreter over the checked AST. Storage lives
in a `Memory` arena; frames map names to addresses in it. Struct and primitive
values are copied at every binding site, object handles only alias.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass

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
    TUnaryOp,
    TVar,
    TWhileStmt,
)
from .check import CALL_BUILTIN, CALL_FUNCTION, CheckedProgram, check
from .errors import (
    DivisionByZero,
    IndexOutOfBounds,
    InvalidDowncast,
    MissingReturn,
    NullDereference,
    RuntimeFault,
    StackOverflow,
)
from .host import BufferedHost, Host
from .memory import (
    BLOCK_FRAME,
    BLOCK_GLOBAL,
    BLOCK_OBJECT,
    BLOCK_STRING,
    Address,
    Memory,
    Value,
    VChar,
    VInt,
    VObject,
    VPointer,
    VStruct,
)
from .scope import STORAGE_FIELD, STORAGE_GLOBAL
from .types import (
    TY_CHAR,
    TY_INT,
    TY_VOID,
    ArrayT,
    ClassT,
    PointerT,
    StructT,
    Type,
    class_type,
    type_name,
)

logger = logging.getLogger(__name__)

FAULT_EXIT_CODE: int = 3
DEFAULT_MAX_CALL_DEPTH: int = 1000

# Interpreter frames consumed per call level, used to size the recursion limit
_PY_FRAMES_PER_CALL: int = 40


def wrap_int(n: int) -> int:
    """Wrap to the signed 32-bit range."""
    n &= 0xFFFFFFFF
    if n >= 0x80000000:
        return n - 0x100000000
    return n


def _trunc_div(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    if (a < 0) != (b < 0):
        return -q
    return q


# ============================================================
# Control flow signals (internal)
# ============================================================


class _Signal(Exception):
    pass


@dataclass
class _Return(_Signal):
    value: Value | None


class _Break(_Signal):
    pass


class _Continue(_Signal):
    pass


# ============================================================
# Frames
# ============================================================


class Frame:
    """One active call: scoped name bindings plus the blocks each scope owns."""

    def __init__(self, name: str, this: VObject | None):
        self.name: str = name
        self.this: VObject | None = this
        self._scopes: list[dict[str, Address]] = []
        self._owned: list[list[int]] = []

    def push_scope(self) -> None:
        self._scopes.append({})
        self._owned.append([])

    def pop_scope(self, memory: Memory) -> None:
        self._scopes.pop()
        for handle in self._owned.pop():
            memory.release(handle)

    def pop_all(self, memory: Memory) -> None:
        while self._scopes:
            self.pop_scope(memory)

    def bind(self, name: str, address: Address) -> None:
        self._scopes[-1][name] = address

    def own(self, address: Address) -> None:
        self._owned[-1].append(address.block)

    def lookup(self, name: str) -> Address:
        i = len(self._scopes) - 1
        while i >= 0:
            if name in self._scopes[i]:
                return self._scopes[i][name]
            i -= 1
        raise KeyError(name)


@dataclass
class RunResult:
    exit_code: int
    stdout: bytes
    stderr: bytes
    fault: RuntimeFault | None = None
    return_value: int | None = None


# ============================================================
# Runtime
# ============================================================


class Runtime:
    def __init__(
        self,
        checked: CheckedProgram,
        host: Host,
        *,
        max_call_depth: int = DEFAULT_MAX_CALL_DEPTH,
    ):
        self.checked = checked
        self.table = checked.table
        self.host = host
        self.max_call_depth = max_call_depth
        self.memory = Memory()
        self.frames: list[Frame] = []
        self.globals: dict[str, Address] = {}
        self._strings: dict[int, Address] = {}
        self._leaf_cache: dict[str, list[Type]] = {}

    # ---- Running -----------------------------------------------------------

    def run_main(self) -> RunResult:
        entry = self.checked.entry
        assert entry.decl is not None
        old_limit = sys.getrecursionlimit()
        sys.setrecursionlimit(max(old_limit, self.max_call_depth * _PY_FRAMES_PER_CALL + 1000))
        try:
            for sym in self.checked.globals:
                self.globals[sym.name] = self.memory.allocate(
                    BLOCK_GLOBAL, self.zero_cells(sym.typ)
                )
            result = self._invoke(entry.decl, entry.params, entry.ret, [], None, entry.decl.pos)
            code = result.value if isinstance(result, (VInt, VChar)) else None
            return self._result(0, None, code)
        except RecursionError:
            fault = StackOverflow("call stack exhausted")
            return self._fault_result(fault)
        except RuntimeFault as e:
            return self._fault_result(e)
        finally:
            sys.setrecursionlimit(old_limit)

    def _fault_result(self, fault: RuntimeFault) -> RunResult:
        logger.debug("fault %s: %s", fault.kind, fault)
        self.host.write_err(f"runtime error: {fault.kind}: {fault}\n")
        return self._result(FAULT_EXIT_CODE, fault, None)

    def _result(self, exit_code: int, fault: RuntimeFault | None, ret: int | None) -> RunResult:
        if isinstance(self.host, BufferedHost):
            return RunResult(
                exit_code, bytes(self.host.stdout), bytes(self.host.stderr), fault, ret
            )
        return RunResult(exit_code, b"", b"", fault, ret)

    # ---- Storage helpers ---------------------------------------------------

    def leaves(self, typ: Type) -> list[Type]:
        """Scalar type of every cell a value of `typ` occupies, in order."""
        if isinstance(typ, ArrayT):
            return self.leaves(typ.element) * typ.size
        if isinstance(typ, StructT):
            cached = self._leaf_cache.get(typ.name)
            if cached is None:
                cached = []
                for f in self.table.field_layout(typ):
                    cached.extend(self.leaves(f.typ))
                self._leaf_cache[typ.name] = cached
            return cached
        return [typ]

    def object_leaves(self, class_name: str) -> list[Type]:
        result: list[Type] = []
        for f in self.table.field_layout(class_type(class_name)):
            result.extend(self.leaves(f.typ))
        return result

    def zero_value(self, typ: Type) -> Value:
        if typ.kind == TY_CHAR:
            return VChar(0)
        if isinstance(typ, PointerT):
            return VPointer(None)
        if isinstance(typ, ClassT):
            return VObject(None)
        if isinstance(typ, StructT):
            return VStruct(typ.name, self.zero_cells(typ))
        return VInt(0)

    def zero_cells(self, typ: Type) -> list[Value | None]:
        return [self.zero_value(t) for t in self.leaves(typ)]

    def coerce(self, value: Value, typ: Type) -> Value:
        """Convert a checked value to the representation of `typ`."""
        if typ.kind == TY_INT:
            if isinstance(value, VChar):
                return VInt(value.value)
            return value
        if typ.kind == TY_CHAR:
            if isinstance(value, (VInt, VChar)):
                return VChar(value.value & 0xFF)
            return value
        if isinstance(typ, PointerT):
            if isinstance(value, VInt):
                return VPointer(None)
            return value
        if isinstance(typ, ClassT):
            if isinstance(value, VInt):
                return VObject(None)
            return value
        if isinstance(typ, StructT) and isinstance(value, VStruct):
            return VStruct(value.name, list(value.cells))
        return value

    def load(self, address: Address, typ: Type, pos: Pos) -> Value:
        if isinstance(typ, ArrayT):
            return VPointer(address)
        if isinstance(typ, StructT):
            leaves = self.leaves(typ)
            raw = self.memory.load(address, len(leaves), pos)
            cells: list[Value | None] = []
            for cell, leaf in zip(raw, leaves):
                cells.append(self.zero_value(leaf) if cell is None else cell)
            return VStruct(typ.name, cells)
        cell = self.memory.load(address, 1, pos)[0]
        if cell is None:
            return self.zero_value(typ)
        return self.coerce(cell, typ)

    def store(self, address: Address, typ: Type, value: Value, pos: Pos) -> None:
        if isinstance(value, VStruct):
            self.memory.store(address, list(value.cells), pos)
            return
        self.memory.store(address, [self.coerce(value, typ)], pos)

    def _local_block(self, typ: Type, kind: str = BLOCK_FRAME) -> Address:
        frame = self.frames[-1]
        address = self.memory.allocate(kind, self.zero_cells(typ))
        frame.own(address)
        return address

    # ---- Functions ---------------------------------------------------------

    def _invoke(
        self,
        decl: TFunDecl,
        params: list[Type],
        ret: Type,
        args: list[Value],
        this: VObject | None,
        pos: Pos,
    ) -> Value | None:
        if len(self.frames) >= self.max_call_depth:
            raise StackOverflow(f"call depth exceeds {self.max_call_depth}", pos)
        assert decl.body is not None
        logger.debug("call %s depth=%d", decl.name, len(self.frames) + 1)
        frame = Frame(decl.name, this)
        self.frames.append(frame)
        frame.push_scope()
        try:
            for p, ptype, arg in zip(decl.params, params, args):
                if isinstance(ptype, ArrayT):
                    assert isinstance(arg, VPointer) and arg.address is not None
                    frame.bind(p.name, arg.address)
                    continue
                address = self._local_block(ptype)
                self.store(address, ptype, arg, p.pos)
                frame.bind(p.name, address)
            try:
                self._exec_stmts(decl.body.stmts)
            except _Return as r:
                if ret.kind == TY_VOID or r.value is None:
                    return None
                return self.coerce(r.value, ret)
            if ret.kind == TY_VOID:
                return None
            if len(self.frames) == 1:
                return VInt(0)
            raise MissingReturn(f"function '{decl.name}' ended without returning a value", decl.pos)
        finally:
            frame.pop_all(self.memory)
            self.frames.pop()

    def _dispatch(self, receiver: VObject, name: str, args: list[Value], pos: Pos) -> Value | None:
        """Virtual call: the receiver's runtime class picks the method body."""
        block = self.memory.block(receiver.address, pos)
        assert block.class_name is not None
        method = self.table.lookup_method(block.class_name, name)
        assert method is not None
        return self._invoke(method.decl, method.params, method.ret, args, receiver, pos)

    def _call_builtin(self, name: str, args: list[Value], pos: Pos) -> Value | None:
        if name == "print_i":
            self.host.print_i(self._int(args[0]))
            return None
        if name == "print_c":
            self.host.print_c(self._int(args[0]) & 0xFF)
            return None
        if name == "print_s":
            ptr = args[0]
            assert isinstance(ptr, VPointer)
            self.host.print_s(self.memory.read_cstring(ptr.address, pos))
            return None
        if name == "read_i":
            return VInt(wrap_int(self.host.read_i()))
        if name == "read_c":
            return VChar(self.host.read_c() & 0xFF)
        if name == "mcmalloc":
            return VPointer(self.memory.allocate_raw(self._int(args[0])))
        raise RuntimeFault(f"unknown runtime library function '{name}'", pos)

    # ---- Statements --------------------------------------------------------

    def _exec_stmts(self, stmts: list[TStmt]) -> None:
        for st in stmts:
            self._exec_stmt(st)

    def _exec_block(self, block: TBlock) -> None:
        frame = self.frames[-1]
        frame.push_scope()
        try:
            self._exec_stmts(block.stmts)
        finally:
            frame.pop_scope(self.memory)

    def _exec_stmt(self, st: TStmt) -> None:
        if isinstance(st, TLocalDecl):
            typ = self.checked.decl_types[id(st)]
            self.frames[-1].bind(st.name, self._local_block(typ))
            return

        if isinstance(st, TAssignStmt):
            address = self._address_of(st.target)
            value = self._eval(st.value)
            self.store(address, self.checked.type_of(st.target), value, st.pos)
            return

        if isinstance(st, TExprStmt):
            self._eval(st.expr)
            return

        if isinstance(st, TBlock):
            self._exec_block(st)
            return

        if isinstance(st, TIfStmt):
            if self._truthy(self._eval(st.cond)):
                self._exec_stmt(st.then_body)
            elif st.else_body is not None:
                self._exec_stmt(st.else_body)
            return

        if isinstance(st, TWhileStmt):
            while self._truthy(self._eval(st.cond)):
                try:
                    self._exec_stmt(st.body)
                except _Continue:
                    continue
                except _Break:
                    break
            return

        if isinstance(st, TReturnStmt):
            if st.value is None:
                raise _Return(None)
            raise _Return(self._eval(st.value))

        if isinstance(st, TBreakStmt):
            raise _Break()
        if isinstance(st, TContinueStmt):
            raise _Continue()

        raise RuntimeFault("unsupported statement", st.pos)

    # ---- Addresses ---------------------------------------------------------

    def _address_of(self, expr: TExpr) -> Address:
        """Storage an expression designates, materialising struct rvalues."""
        if isinstance(expr, TVar):
            sym = self.checked.bindings[id(expr)]
            if sym.storage == STORAGE_GLOBAL:
                return self.globals[sym.name]
            if sym.storage == STORAGE_FIELD:
                this = self.frames[-1].this
                assert this is not None and sym.owner is not None
                found = self.table.field_offset(class_type(sym.owner), sym.name)
                assert found is not None
                self.memory.block(this.address, expr.pos)
                assert this.address is not None
                return this.address.plus(found[0])
            return self.frames[-1].lookup(sym.name)

        if isinstance(expr, TDeref):
            ptr = self._eval(expr.operand)
            assert isinstance(ptr, VPointer)
            if ptr.address is None:
                raise NullDereference("null pointer dereference", expr.pos)
            return ptr.address

        if isinstance(expr, TFieldAccess):
            obj_t = self.checked.type_of(expr.obj)
            if isinstance(obj_t, ClassT):
                ref = self._eval(expr.obj)
                assert isinstance(ref, VObject)
                if ref.address is None:
                    raise NullDereference(f"field '{expr.field}' of null object", expr.pos)
                self.memory.block(ref.address, expr.pos)
                base = ref.address
            else:
                assert isinstance(obj_t, StructT)
                base = self._address_of(expr.obj)
            found = self.table.field_offset(obj_t, expr.field)
            assert found is not None
            return base.plus(found[0])

        if isinstance(expr, TIndex):
            obj_t = self.checked.type_of(expr.obj)
            base_ptr = self._eval(expr.obj)
            assert isinstance(base_ptr, VPointer)
            index = self._int(self._eval(expr.index))
            if isinstance(obj_t, ArrayT):
                if index < 0 or index >= obj_t.size:
                    raise IndexOutOfBounds(
                        f"index {index} outside array bound {obj_t.size}", expr.pos
                    )
                assert base_ptr.address is not None
                return base_ptr.address.plus(index * self.table.cell_count(obj_t.element))
            assert isinstance(obj_t, PointerT)
            if base_ptr.address is None:
                raise NullDereference("indexing a null pointer", expr.pos)
            width = self.table.cell_count(obj_t.target)
            address = base_ptr.address.plus(index * width)
            block = self.memory.check_range(address, width, expr.pos)
            if block.byte_size is not None:
                # Raw blocks hold one cell per byte; bound by whole elements
                elem_size = max(self.table.sizeof(obj_t.target), 1)
                limit = block.byte_size // elem_size * width
                if address.offset < 0 or address.offset + width > limit:
                    raise IndexOutOfBounds(
                        f"index {index} outside heap block of {block.byte_size} bytes",
                        expr.pos,
                    )
            return address

        # Struct rvalue (call result, cast): give it temporary storage
        typ = self.checked.type_of(expr)
        value = self._eval(expr)
        address = self._local_block(typ)
        self.store(address, typ, value, expr.pos)
        return address

    # ---- Expressions -------------------------------------------------------

    def _eval(self, expr: TExpr) -> Value:
        if isinstance(expr, TIntLit):
            return VInt(wrap_int(expr.value))
        if isinstance(expr, TCharLit):
            return VChar(ord(expr.value) & 0xFF)
        if isinstance(expr, TStringLit):
            return VPointer(self._string_literal(expr))
        if isinstance(expr, (TVar, TDeref, TFieldAccess, TIndex)):
            return self.load(self._address_of(expr), self.checked.type_of(expr), expr.pos)
        if isinstance(expr, TBinaryOp):
            return self._eval_binary(expr)
        if isinstance(expr, TUnaryOp):
            operand = self._eval(expr.operand)
            if expr.op == "-":
                return VInt(wrap_int(-self._int(operand)))
            return VInt(0 if self._truthy(operand) else 1)
        if isinstance(expr, TAddressOf):
            return VPointer(self._address_of(expr.operand))
        if isinstance(expr, TCall):
            return self._eval_call(expr)
        if isinstance(expr, TMethodCall):
            receiver = self._eval(expr.obj)
            assert isinstance(receiver, VObject)
            if receiver.address is None:
                raise NullDereference(f"method '{expr.method}' called on null object", expr.pos)
            args = [self._eval(a) for a in expr.args]
            return self._unit(self._dispatch(receiver, expr.method, args, expr.pos))
        if isinstance(expr, TNew):
            leaves = self.object_leaves(expr.class_name)
            address = self.memory.allocate(
                BLOCK_OBJECT,
                [self.zero_value(t) for t in leaves],
                class_name=expr.class_name,
            )
            return VObject(address)
        if isinstance(expr, TCast):
            return self._eval_cast(expr)
        if isinstance(expr, TSizeOf):
            return VInt(self.checked.sizes[id(expr)])
        raise RuntimeFault("unsupported expression", expr.pos)

    def _unit(self, value: Value | None) -> Value:
        # Void calls only appear as expression statements
        return VInt(0) if value is None else value

    def _string_literal(self, expr: TStringLit) -> Address:
        address = self._strings.get(id(expr))
        if address is None:
            data = expr.value.encode("latin-1")
            cells: list[Value | None] = [VChar(b) for b in data]
            cells.append(VChar(0))
            address = self.memory.allocate(BLOCK_STRING, cells)
            self._strings[id(expr)] = address
        return address

    def _eval_call(self, expr: TCall) -> Value:
        target = self.checked.call_targets[id(expr)]
        args: list[Value] = []
        for arg, ptype in zip(expr.args, target.params):
            args.append(self.coerce(self._eval(arg), ptype))
        if target.kind == CALL_BUILTIN:
            return self._unit(self._call_builtin(target.name, args, expr.pos))
        if target.kind == CALL_FUNCTION:
            info = target.function
            assert info is not None and info.decl is not None
            return self._unit(
                self._invoke(info.decl, info.params, info.ret, args, None, expr.pos)
            )
        this = self.frames[-1].this
        assert this is not None
        return self._unit(self._dispatch(this, target.name, args, expr.pos))

    def _eval_binary(self, expr: TBinaryOp) -> Value:
        op = expr.op
        if op == "&&":
            if not self._truthy(self._eval(expr.left)):
                return VInt(0)
            return VInt(1 if self._truthy(self._eval(expr.right)) else 0)
        if op == "||":
            if self._truthy(self._eval(expr.left)):
                return VInt(1)
            return VInt(1 if self._truthy(self._eval(expr.right)) else 0)
        left = self._eval(expr.left)
        right = self._eval(expr.right)
        if op == "==":
            return VInt(1 if self._same(left, right) else 0)
        if op == "!=":
            return VInt(0 if self._same(left, right) else 1)
        a = self._int(left)
        b = self._int(right)
        if op == "+":
            return VInt(wrap_int(a + b))
        if op == "-":
            return VInt(wrap_int(a - b))
        if op == "*":
            return VInt(wrap_int(a * b))
        if op == "/" or op == "%":
            if b == 0:
                raise DivisionByZero("division by zero", expr.pos)
            q = _trunc_div(a, b)
            if op == "/":
                return VInt(wrap_int(q))
            return VInt(wrap_int(a - q * b))
        if op == "<":
            return VInt(1 if a < b else 0)
        if op == "<=":
            return VInt(1 if a <= b else 0)
        if op == ">":
            return VInt(1 if a > b else 0)
        if op == ">=":
            return VInt(1 if a >= b else 0)
        raise RuntimeFault(f"unknown operator {op}", expr.pos)

    def _eval_cast(self, expr: TCast) -> Value:
        target = self.checked.type_of(expr)
        value = self._eval(expr.expr)
        if isinstance(target, ClassT):
            assert isinstance(value, VObject)
            if value.address is not None:
                block = self.memory.block(value.address, expr.pos)
                assert block.class_name is not None
                if not self.table.is_subtype(block.class_name, target.name):
                    raise InvalidDowncast(
                        f"object of class '{block.class_name}' is not a {type_name(target)}",
                        expr.pos,
                    )
            return value
        return self.coerce(value, target)

    # ---- Value helpers -----------------------------------------------------

    def _int(self, value: Value) -> int:
        assert isinstance(value, (VInt, VChar))
        return value.value

    def _truthy(self, value: Value) -> bool:
        if isinstance(value, (VInt, VChar)):
            return value.value != 0
        if isinstance(value, (VPointer, VObject)):
            return value.address is not None
        return True

    def _same(self, left: Value, right: Value) -> bool:
        if isinstance(left, (VInt, VChar)) and isinstance(right, (VInt, VChar)):
            return left.value == right.value
        return self._handle(left) == self._handle(right)

    def _handle(self, value: Value) -> Address | None:
        if isinstance(value, (VPointer, VObject)):
            return value.address
        return None


def execute(
    checked: CheckedProgram,
    host: Host | None = None,
    *,
    max_call_depth: int = DEFAULT_MAX_CALL_DEPTH,
) -> RunResult:
    """Run an already-checked program against a host."""
    rt = Runtime(checked, host if host is not None else BufferedHost(), max_call_depth=max_call_depth)
    return rt.run_main()


def run(
    program: TProgram,
    *,
    stdin: bytes = b"",
    strict: bool | None = None,
    entry: str = "main",
    max_call_depth: int = DEFAULT_MAX_CALL_DEPTH,
) -> RunResult:
    """Check and run a parsed program. Semantic errors propagate as exceptions."""
    checked = check(program, strict=strict, entry=entry)
    return execute(checked, BufferedHost(stdin), max_call_depth=max_call_depth)
