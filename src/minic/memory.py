"""Memory arena holding every global, local, object and heap block, addressed by handle.

A block is a flat list of scalar cells. Structs and arrays occupy consecutive
cells in declaration (row-major) order, so an address is simply a block
handle plus a cell offset. Handles are never reused: a released frame block
leaves the arena, and any later access through its handle is a dangling
pointer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .ast import Pos
from .errors import DanglingPointer, IndexOutOfBounds, NullDereference

logger = logging.getLogger(__name__)

# Block kinds
BLOCK_GLOBAL: str = "global"
BLOCK_FRAME: str = "frame"
BLOCK_OBJECT: str = "object"
BLOCK_HEAP: str = "heap"
BLOCK_STRING: str = "string"


# ============================================================
# VALUES
# ============================================================


@dataclass(frozen=True)
class Address:
    block: int
    offset: int

    def plus(self, cells: int) -> Address:
        return Address(self.block, self.offset + cells)


class Value:
    pass


@dataclass(frozen=True)
class VInt(Value):
    value: int


@dataclass(frozen=True)
class VChar(Value):
    value: int


@dataclass(frozen=True)
class VPointer(Value):
    address: Address | None


@dataclass(frozen=True)
class VObject(Value):
    """Handle to a class instance; copying it aliases the object."""

    address: Address | None


@dataclass
class VStruct(Value):
    """A struct by value. Its cells are copied whenever it is bound."""

    name: str
    cells: list[Value | None]


# ============================================================
# BLOCKS
# ============================================================


@dataclass
class Block:
    handle: int
    kind: str
    cells: list[Value | None]
    class_name: str | None = None
    byte_size: int | None = None


class Memory:
    """Live blocks by handle. Handles are issued in increasing order."""

    def __init__(self) -> None:
        self.blocks: dict[int, Block] = {}
        self._next_handle = 0

    def allocate(
        self,
        kind: str,
        cells: list[Value | None],
        *,
        class_name: str | None = None,
        byte_size: int | None = None,
    ) -> Address:
        block = Block(self._next_handle, kind, cells, class_name, byte_size)
        self._next_handle += 1
        self.blocks[block.handle] = block
        logger.debug("allocate %s block #%d (%d cells)", kind, block.handle, len(cells))
        return Address(block.handle, 0)

    def allocate_raw(self, size: int) -> Address:
        """Uninitialised heap block of `size` bytes, one cell per byte."""
        size = max(size, 0)
        return self.allocate(BLOCK_HEAP, [None] * size, byte_size=size)

    def release(self, handle: int) -> None:
        del self.blocks[handle]

    def block(self, address: Address | None, pos: Pos | None = None) -> Block:
        if address is None:
            raise NullDereference("null pointer dereference", pos)
        block = self.blocks.get(address.block)
        if block is None:
            # Every issued handle missing from the arena has been released
            raise DanglingPointer("access to storage that is out of scope", pos)
        return block

    def check_range(self, address: Address | None, count: int, pos: Pos | None = None) -> Block:
        block = self.block(address, pos)
        assert address is not None
        if address.offset < 0 or address.offset + count > len(block.cells):
            raise IndexOutOfBounds(
                f"access at cell {address.offset} outside block of {len(block.cells)} cells",
                pos,
            )
        return block

    def load(self, address: Address | None, count: int, pos: Pos | None = None) -> list[Value | None]:
        block = self.check_range(address, count, pos)
        assert address is not None
        return block.cells[address.offset : address.offset + count]

    def store(self, address: Address | None, values: list[Value | None], pos: Pos | None = None) -> None:
        block = self.check_range(address, len(values), pos)
        assert address is not None
        block.cells[address.offset : address.offset + len(values)] = values

    def read_cstring(self, address: Address | None, pos: Pos | None = None) -> bytes:
        """Bytes from `address` up to, not including, the terminating NUL."""
        block = self.block(address, pos)
        assert address is not None
        out = bytearray()
        i = address.offset
        while True:
            if i < 0 or i >= len(block.cells):
                raise IndexOutOfBounds("string is not NUL-terminated", pos)
            cell = block.cells[i]
            code = cell.value if isinstance(cell, (VInt, VChar)) else 0
            if code == 0:
                return bytes(out)
            out.append(code & 0xFF)
            i += 1
