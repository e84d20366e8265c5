"""A concurrent FIFO queue with split reference counting on head and tail."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Generic, Optional, TypeVar

from threadkit.refstacks import _AtomicCell, _AtomicInt

T = TypeVar("T")

_INTERNAL_MODULUS = 1 << 30
_EXTERNAL_MODULUS = 1 << 2


@dataclass(frozen=True)
class _NodeCounter:
    internal_count: int
    external_counters: int

    @property
    def settled(self) -> bool:
        return self.internal_count == 0 and self.external_counters == 0


class _Box:
    """Holds a queued value so that a stored None is told apart from no value."""

    __slots__ = ("value",)

    def __init__(self, value: Any) -> None:
        self.value = value


class _Node:
    __slots__ = ("data", "count", "next")

    def __init__(self, external_count: int = 2) -> None:
        self.data = _AtomicCell(None)
        self.count = _AtomicCell(_NodeCounter(0, external_count))
        self.next = _AtomicCell(_EMPTY)


@dataclass(frozen=True)
class _CountedPtr:
    external_count: int
    node: Optional[_Node]


_EMPTY = _CountedPtr(0, None)


class RefCountedQueue(Generic[T]):
    """A FIFO queue that any number of threads may push to and pop from.

    Each node's counter holds an internal count (30 bits) and the number of
    counted pointers still referring to it (2 bits); the node is reclaimed
    when both reach zero.
    """

    def __init__(self) -> None:
        first = _CountedPtr(1, _Node())
        self._head = _AtomicCell(first)
        self._tail = _AtomicCell(first)
        self._destruct_count = _AtomicInt(0)
        self._construct_count = _AtomicInt(0)

    @property
    def destruct_count(self) -> int:
        """Number of nodes reclaimed so far."""
        return self._destruct_count.load()

    @property
    def construct_count(self) -> int:
        """Number of values pushed so far."""
        return self._construct_count.load()

    def _release_ref(self, node: _Node) -> None:
        old = node.count.load()
        while True:
            new = replace(
                old, internal_count=(old.internal_count - 1) % _INTERNAL_MODULUS
            )
            ok, current = node.count.compare_exchange(old, new)
            if ok:
                break
            old = current
        if new.settled:
            self._destruct_count.fetch_add(1)

    def _free_external_counter(self, old_ptr: _CountedPtr) -> None:
        node = old_ptr.node
        count_increase = old_ptr.external_count - 2
        old = node.count.load()
        while True:
            new = _NodeCounter(
                (old.internal_count + count_increase) % _INTERNAL_MODULUS,
                (old.external_counters - 1) % _EXTERNAL_MODULUS,
            )
            ok, current = node.count.compare_exchange(old, new)
            if ok:
                break
            old = current
        if new.settled:
            self._destruct_count.fetch_add(1)

    @staticmethod
    def _increase_external_count(cell: _AtomicCell, old: _CountedPtr) -> _CountedPtr:
        while True:
            new = replace(old, external_count=old.external_count + 1)
            ok, current = cell.compare_exchange(old, new)
            if ok:
                return new
            old = current

    def _set_new_tail(self, old_tail: _CountedPtr, new_tail: _CountedPtr) -> _CountedPtr:
        current_tail_node = old_tail.node
        while True:
            ok, current = self._tail.compare_exchange(old_tail, new_tail)
            if ok:
                break
            old_tail = current
            if old_tail.node is not current_tail_node:
                break
        if old_tail.node is current_tail_node:
            self._free_external_counter(old_tail)
        else:
            self._release_ref(current_tail_node)
        return old_tail

    def push(self, value: T) -> None:
        """Append ``value`` at the tail of the queue."""
        new_data = _Box(value)
        new_next = _CountedPtr(1, _Node())
        old_tail = self._tail.load()
        while True:
            old_tail = self._increase_external_count(self._tail, old_tail)
            tail_node = old_tail.node
            claimed, _ = tail_node.data.compare_exchange(None, new_data)
            if claimed:
                linked, old_next = tail_node.next.compare_exchange(_EMPTY, new_next)
                if not linked:
                    new_next = old_next
                self._set_new_tail(old_tail, new_next)
                break
            # Another thread owns this tail; help it link a node and move on.
            linked, old_next = tail_node.next.compare_exchange(_EMPTY, new_next)
            if linked:
                old_next = new_next
                new_next = _CountedPtr(1, _Node())
            old_tail = self._set_new_tail(old_tail, old_next)
        self._construct_count.fetch_add(1)

    def pop(self) -> Optional[T]:
        """Remove and return the value at the head, or None if the queue is empty."""
        old_head = self._head.load()
        while True:
            old_head = self._increase_external_count(self._head, old_head)
            node = old_head.node
            if node is self._tail.load().node:
                self._release_ref(node)
                return None
            next_ptr = node.next.load()
            ok, current = self._head.compare_exchange(old_head, next_ptr)
            if ok:
                box = node.data.exchange(None)
                self._free_external_counter(old_head)
                return box.value
            self._release_ref(node)
            old_head = current