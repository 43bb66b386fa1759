"""Tests for the memory arena."""

import pytest

from minic.errors import DanglingPointer, IndexOutOfBounds, NullDereference
from minic.memory import BLOCK_FRAME, BLOCK_STRING, Address, Memory, VChar, VInt


def test_allocate_load_store():
    mem = Memory()
    addr = mem.allocate(BLOCK_FRAME, [VInt(0), VInt(0), VInt(0)])
    mem.store(addr.plus(1), [VInt(7), VInt(8)])
    assert mem.load(addr, 3) == [VInt(0), VInt(7), VInt(8)]


def test_handles_are_never_reused():
    mem = Memory()
    a = mem.allocate(BLOCK_FRAME, [VInt(1)])
    mem.release(a.block)
    b = mem.allocate(BLOCK_FRAME, [VInt(2)])
    assert a.block != b.block


def test_released_block_is_dangling():
    mem = Memory()
    addr = mem.allocate(BLOCK_FRAME, [VInt(1)])
    mem.release(addr.block)
    with pytest.raises(DanglingPointer):
        mem.load(addr, 1)


def test_null_access():
    mem = Memory()
    with pytest.raises(NullDereference):
        mem.load(None, 1)


def test_range_checks():
    mem = Memory()
    addr = mem.allocate(BLOCK_FRAME, [VInt(0), VInt(0)])
    with pytest.raises(IndexOutOfBounds):
        mem.store(addr.plus(1), [VInt(1), VInt(2)])
    with pytest.raises(IndexOutOfBounds):
        mem.load(Address(addr.block, -1), 1)


def test_raw_blocks_are_uninitialised():
    mem = Memory()
    addr = mem.allocate_raw(3)
    assert mem.load(addr, 3) == [None, None, None]
    assert mem.blocks[addr.block].byte_size == 3


def test_read_cstring():
    mem = Memory()
    cells = [VChar(ord(c)) for c in "hi"] + [VChar(0), VChar(ord("x"))]
    addr = mem.allocate(BLOCK_STRING, cells)
    assert mem.read_cstring(addr) == b"hi"
    assert mem.read_cstring(addr.plus(1)) == b"i"


def test_read_cstring_needs_terminator():
    mem = Memory()
    addr = mem.allocate(BLOCK_STRING, [VChar(ord("a"))])
    with pytest.raises(IndexOutOfBounds):
        mem.read_cstring(addr)


def test_released_blocks_leave_the_arena():
    mem = Memory()
    keep = mem.allocate(BLOCK_FRAME, [VInt(1)])
    for _ in range(100):
        mem.release(mem.allocate(BLOCK_FRAME, [VInt(0)]).block)
    assert list(mem.blocks) == [keep.block]
    assert mem.load(keep, 1) == [VInt(1)]
