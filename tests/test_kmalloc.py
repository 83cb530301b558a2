import pytest

from kernelkit.kmalloc import KUNIT, ChunkState, Heap

START = 0x100000
LENGTH = 0x10000


@pytest.fixture
def heap():
    return Heap(START, LENGTH)


def test_single_alloc(heap):
    ptr = heap.alloc(128)
    head = heap.head
    assert ptr == head.address + KUNIT
    assert head.state is ChunkState.USED
    assert head.length == 128 + KUNIT
    assert head.next.address == START + head.length
    assert head.next.state is ChunkState.FREE
    assert head.next.length == LENGTH - head.length


def test_single_alloc_and_free(heap):
    ptr = heap.alloc(128)
    heap.free(ptr)
    assert heap.head.state is ChunkState.FREE
    assert heap.head.next is None
    assert heap.head.length == LENGTH


def test_lengths_are_rounded_and_cover_heap(heap):
    ptrs = [heap.alloc(n) for n in (1, 17, 33, 100)]
    assert all((p - START) % KUNIT == 0 for p in ptrs)
    assert len(set(ptrs)) == len(ptrs)
    assert sum(c.length for c in heap.chunks()) == LENGTH


def test_free_merges_neighbours(heap):
    a = heap.alloc(64)
    b = heap.alloc(64)
    c = heap.alloc(64)
    heap.free(a)
    heap.free(c)
    heap.free(b)
    assert [ch.state for ch in heap.chunks()] == [ChunkState.FREE]
    assert heap.head.length == LENGTH


def test_freed_space_is_reused(heap):
    a = heap.alloc(64)
    heap.alloc(64)
    heap.free(a)
    assert heap.alloc(64) == a


def test_double_free_rejected(heap):
    a = heap.alloc(32)
    heap.free(a)
    with pytest.raises(ValueError):
        heap.free(a)


def test_free_of_unknown_address(heap):
    heap.alloc(32)
    with pytest.raises(ValueError):
        heap.free(START + 3)


def test_out_of_memory():
    small = Heap(0, 4 * KUNIT)
    with pytest.raises(MemoryError):
        small.alloc(10 * KUNIT)


def test_no_split_when_remainder_small():
    small = Heap(0, 4 * KUNIT)
    small.alloc(KUNIT)
    assert small.head.next is None
    assert small.head.length == 4 * KUNIT


def test_debug_lists_chunks(heap):
    heap.alloc(16)
    lines = heap.debug().splitlines()
    assert lines[0] == "state ptr      prev     next     length"
    assert lines[1].startswith("U")
    assert lines[2].startswith("F")
    assert len(lines) == 1 + len(list(heap.chunks()))