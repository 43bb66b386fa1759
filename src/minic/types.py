"""Type and class table: resolved types, struct layouts and the class hierarchy."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .ast import (
    Pos,
    TArrayType,
    TClassDecl,
    TClassType,
    TFunDecl,
    TPointerType,
    TPrimitive,
    TStructDecl,
    TStructType,
    TType,
)
from .errors import (
    DuplicateDefinition,
    InheritanceCycle,
    TypeMismatch,
    UnknownBase,
    UnknownType,
)

logger = logging.getLogger(__name__)


# ============================================================
# RESOLVED TYPE REPRESENTATION
# ============================================================

TY_INT: str = "int"
TY_CHAR: str = "char"
TY_VOID: str = "void"

WORD_SIZE: int = 4


@dataclass
class Type:
    kind: str


@dataclass
class PointerT(Type):
    target: Type


@dataclass
class ArrayT(Type):
    element: Type
    size: int


@dataclass
class StructT(Type):
    name: str


@dataclass
class ClassT(Type):
    name: str


# Primitive singletons
INT_T: Type = Type(kind=TY_INT)
CHAR_T: Type = Type(kind=TY_CHAR)
VOID_T: Type = Type(kind=TY_VOID)

_PRIMITIVE_MAP: dict[str, Type] = {
    "int": INT_T,
    "char": CHAR_T,
    "void": VOID_T,
}


def pointer_to(t: Type) -> PointerT:
    return PointerT(kind="pointer", target=t)


def array_of(t: Type, size: int) -> ArrayT:
    return ArrayT(kind="array", element=t, size=size)


def struct_type(name: str) -> StructT:
    return StructT(kind="struct", name=name)


def class_type(name: str) -> ClassT:
    return ClassT(kind="class", name=name)


# ============================================================
# TYPE PREDICATES
# ============================================================


def type_eq(a: Type, b: Type) -> bool:
    """Structural for pointers and arrays, nominal for structs and classes."""
    if a.kind != b.kind:
        return False
    if isinstance(a, PointerT) and isinstance(b, PointerT):
        return type_eq(a.target, b.target)
    if isinstance(a, ArrayT) and isinstance(b, ArrayT):
        return a.size == b.size and type_eq(a.element, b.element)
    if isinstance(a, StructT) and isinstance(b, StructT):
        return a.name == b.name
    if isinstance(a, ClassT) and isinstance(b, ClassT):
        return a.name == b.name
    return True


def type_name(t: Type) -> str:
    """Human-readable name for a type, for error messages."""
    if isinstance(t, PointerT):
        return type_name(t.target) + "*"
    if isinstance(t, ArrayT):
        return type_name(t.element) + "[" + str(t.size) + "]"
    if isinstance(t, StructT):
        return "struct " + t.name
    if isinstance(t, ClassT):
        return "class " + t.name
    return t.kind


def is_integral(t: Type) -> bool:
    return t.kind == TY_INT or t.kind == TY_CHAR


def is_pointer(t: Type) -> bool:
    return isinstance(t, PointerT)


def is_void_pointer(t: Type) -> bool:
    return isinstance(t, PointerT) and t.target.kind == TY_VOID


def is_scalar(t: Type) -> bool:
    """Types that fit in one storage cell and can be tested for truth."""
    return is_integral(t) or isinstance(t, (PointerT, ClassT))


# ============================================================
# TABLE ENTRIES
# ============================================================


@dataclass
class FieldDef:
    name: str
    typ: Type
    owner: str
    pos: Pos


@dataclass
class MethodDef:
    name: str
    param_names: list[str]
    params: list[Type]
    ret: Type
    owner: str
    decl: TFunDecl


@dataclass
class StructDef:
    name: str
    decl: TStructDecl
    fields: list[FieldDef] = field(default_factory=list)


@dataclass
class ClassDef:
    name: str
    base: str | None
    decl: TClassDecl
    fields: list[FieldDef] = field(default_factory=list)
    methods: dict[str, MethodDef] = field(default_factory=dict)


# ============================================================
# TYPE & CLASS TABLE
# ============================================================


class TypeTable:
    """Registry of structs and classes declared at file scope.

    Declarations are registered in source order, so a base class must be
    declared before any class that extends it. Member types are resolved by
    `complete()` after every name is known, so fields and methods may mention
    types declared further down.
    """

    def __init__(self) -> None:
        self.structs: dict[str, StructDef] = {}
        self.classes: dict[str, ClassDef] = {}
        self._cells: dict[str, int] = {}

    # ── Registration ──────────────────────────────────────────

    def register(self, decl: TStructDecl | TClassDecl) -> None:
        if decl.name in self.structs or decl.name in self.classes:
            raise DuplicateDefinition(f"type '{decl.name}' is already defined", decl.pos)
        if isinstance(decl, TStructDecl):
            self.structs[decl.name] = StructDef(decl.name, decl)
            logger.debug("registered struct %s", decl.name)
            return
        if decl.parent is not None:
            if decl.parent == decl.name:
                raise InheritanceCycle(f"class '{decl.name}' extends itself", decl.pos)
            if decl.parent not in self.classes:
                raise UnknownBase(
                    f"class '{decl.name}' extends undeclared class '{decl.parent}'",
                    decl.pos,
                )
        self.classes[decl.name] = ClassDef(decl.name, decl.parent, decl)
        self._check_acyclic(decl.name, decl.pos)
        logger.debug("registered class %s (base %s)", decl.name, decl.parent)

    def _check_acyclic(self, name: str, pos: Pos) -> None:
        seen: set[str] = set()
        current: str | None = name
        while current is not None:
            if current in seen:
                raise InheritanceCycle(f"inheritance cycle through class '{current}'", pos)
            seen.add(current)
            current = self.classes[current].base

    def complete(self) -> None:
        """Resolve every member type; runs once after all registrations."""
        for sdef in self.structs.values():
            names: set[str] = set()
            for fdecl in sdef.decl.fields:
                if fdecl.name in names:
                    raise DuplicateDefinition(
                        f"duplicate field '{fdecl.name}' in struct '{sdef.name}'", fdecl.pos
                    )
                names.add(fdecl.name)
                ftype = self.resolve_type(fdecl.typ)
                self._require_value_type(ftype, fdecl.pos)
                sdef.fields.append(FieldDef(fdecl.name, ftype, sdef.name, fdecl.pos))
        for cdef in self.classes.values():
            self._complete_class(cdef)
        for name in self.structs:
            self.cell_count(struct_type(name))
        for cdef in self.classes.values():
            self._check_overrides(cdef)

    def _complete_class(self, cdef: ClassDef) -> None:
        for fdecl in cdef.decl.fields:
            if any(f.name == fdecl.name for f in cdef.fields):
                raise DuplicateDefinition(
                    f"duplicate field '{fdecl.name}' in class '{cdef.name}'", fdecl.pos
                )
            ftype = self.resolve_type(fdecl.typ)
            self._require_value_type(ftype, fdecl.pos)
            cdef.fields.append(FieldDef(fdecl.name, ftype, cdef.name, fdecl.pos))
        for mdecl in cdef.decl.methods:
            if mdecl.name in cdef.methods:
                raise DuplicateDefinition(
                    f"duplicate method '{mdecl.name}' in class '{cdef.name}'", mdecl.pos
                )
            params: list[Type] = []
            for p in mdecl.params:
                ptype = self.resolve_type(p.typ)
                self._require_value_type(ptype, p.pos)
                params.append(ptype)
            cdef.methods[mdecl.name] = MethodDef(
                mdecl.name,
                [p.name for p in mdecl.params],
                params,
                self.resolve_type(mdecl.ret),
                cdef.name,
                mdecl,
            )

    def _check_overrides(self, cdef: ClassDef) -> None:
        for m in cdef.methods.values():
            clash = self.lookup_field(cdef.name, m.name)
            if clash is not None:
                raise DuplicateDefinition(
                    f"method '{m.name}' of class '{cdef.name}' clashes with a field",
                    m.decl.pos,
                )
        if cdef.base is None:
            return
        for f in cdef.fields:
            inherited = self.lookup_field(cdef.base, f.name)
            if inherited is not None:
                raise DuplicateDefinition(
                    f"field '{f.name}' of class '{cdef.name}' hides inherited field"
                    f" from '{inherited.owner}'",
                    f.pos,
                )
        for m in cdef.methods.values():
            base_m = self.lookup_method(cdef.base, m.name)
            if base_m is None:
                continue
            same = len(base_m.params) == len(m.params) and type_eq(base_m.ret, m.ret)
            if same:
                for a, b in zip(base_m.params, m.params):
                    if not type_eq(a, b):
                        same = False
                        break
            if not same:
                raise TypeMismatch(
                    f"method '{cdef.name}.{m.name}' overrides '{base_m.owner}.{m.name}'"
                    " with a different signature",
                    m.decl.pos,
                )

    def _require_value_type(self, t: Type, pos: Pos) -> None:
        if t.kind == TY_VOID:
            raise TypeMismatch("storage cannot have type void", pos)
        if isinstance(t, ArrayT):
            self._require_value_type(t.element, pos)

    # ── Resolution ────────────────────────────────────────────

    def resolve(self, name: str, pos: Pos | None = None) -> Type:
        """Look up a declared struct or class by name."""
        if name in self.structs:
            return struct_type(name)
        if name in self.classes:
            return class_type(name)
        raise UnknownType(f"unknown type '{name}'", pos)

    def resolve_type(self, t: TType) -> Type:
        """Resolve a parse-time TType node into a checked Type."""
        if isinstance(t, TPrimitive):
            return _PRIMITIVE_MAP[t.kind]
        if isinstance(t, TStructType):
            if t.name not in self.structs:
                raise UnknownType(f"unknown struct '{t.name}'", t.pos)
            return struct_type(t.name)
        if isinstance(t, TClassType):
            if t.name not in self.classes:
                raise UnknownType(f"unknown class '{t.name}'", t.pos)
            return class_type(t.name)
        if isinstance(t, TPointerType):
            return pointer_to(self.resolve_type(t.inner))
        if isinstance(t, TArrayType):
            return array_of(self.resolve_type(t.element), t.size)
        raise UnknownType("unhandled type node", t.pos)

    # ── Hierarchy ─────────────────────────────────────────────

    def is_subtype(self, sub: str, base: str) -> bool:
        current: str | None = sub
        while current is not None:
            if current == base:
                return True
            current = self.classes[current].base
        return False

    def ancestry(self, name: str) -> list[ClassDef]:
        """Root first, `name` last."""
        chain: list[ClassDef] = []
        current: str | None = name
        while current is not None:
            cdef = self.classes[current]
            chain.append(cdef)
            current = cdef.base
        chain.reverse()
        return chain

    def lookup_method(self, class_name: str, name: str) -> MethodDef | None:
        current: str | None = class_name
        while current is not None:
            cdef = self.classes[current]
            if name in cdef.methods:
                return cdef.methods[name]
            current = cdef.base
        return None

    def lookup_field(self, class_name: str, name: str) -> FieldDef | None:
        current: str | None = class_name
        while current is not None:
            cdef = self.classes[current]
            for f in cdef.fields:
                if f.name == name:
                    return f
            current = cdef.base
        return None

    def methods_of(self, class_name: str) -> dict[str, MethodDef]:
        """Every method visible on the class, overrides replacing base entries."""
        result: dict[str, MethodDef] = {}
        for cdef in self.ancestry(class_name):
            result.update(cdef.methods)
        return result

    # ── Layout ────────────────────────────────────────────────

    def field_layout(self, t: StructT | ClassT) -> list[FieldDef]:
        """Fields in storage order; inherited fields precede a class's own."""
        if isinstance(t, StructT):
            return self.structs[t.name].fields
        result: list[FieldDef] = []
        for cdef in self.ancestry(t.name):
            result.extend(cdef.fields)
        return result

    def field_offset(self, t: StructT | ClassT, name: str) -> tuple[int, FieldDef] | None:
        """Cell offset of a field within a struct value or an object block."""
        offset = 0
        for f in self.field_layout(t):
            if f.name == name:
                return offset, f
            offset += self.cell_count(f.typ)
        return None

    def cell_count(self, t: Type) -> int:
        """Number of scalar storage cells a value of this type occupies."""
        if isinstance(t, ArrayT):
            return t.size * self.cell_count(t.element)
        if isinstance(t, StructT):
            cached = self._cells.get(t.name)
            if cached is not None:
                if cached < 0:
                    raise TypeMismatch(
                        f"struct '{t.name}' contains itself by value",
                        self.structs[t.name].decl.pos,
                    )
                return cached
            self._cells[t.name] = -1
            total = 0
            for f in self.structs[t.name].fields:
                total += self.cell_count(f.typ)
            self._cells[t.name] = total
            return total
        return 1

    def alignment(self, t: Type) -> int:
        if t.kind == TY_CHAR or t.kind == TY_VOID:
            return 1
        if isinstance(t, ArrayT):
            return self.alignment(t.element)
        return WORD_SIZE

    def sizeof(self, t: Type) -> int:
        """Byte size: int, pointers and object references are one word."""
        if t.kind == TY_CHAR or t.kind == TY_VOID:
            return 1
        if isinstance(t, ArrayT):
            return t.size * self.sizeof(t.element)
        if isinstance(t, StructT):
            offset = 0
            for f in self.structs[t.name].fields:
                align = self.alignment(f.typ)
                offset = _round_up(offset, align)
                offset += self.sizeof(f.typ)
            return _round_up(offset, WORD_SIZE)
        return WORD_SIZE


def _round_up(n: int, align: int) -> int:
    return (n + align - 1) // align * align
