"""Concurrent stacks that reclaim nodes by split reference counting.

The head of each stack is a counted pointer: a node plus an external count of
the threads currently holding it. Each node keeps an internal count that is
settled against the external count when the node leaves the stack. A node is
reclaimed once both counts balance out.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from typing import Any, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")


class _AtomicCell:
    """A value that is loaded, stored and compare-exchanged as one step."""

    __slots__ = ("_value", "_lock")

    def __init__(self, value: Any = None) -> None:
        self._value = value
        self._lock = threading.Lock()

    def load(self) -> Any:
        with self._lock:
            return self._value

    def store(self, value: Any) -> None:
        with self._lock:
            self._value = value

    def exchange(self, value: Any) -> Any:
        with self._lock:
            old, self._value = self._value, value
            return old

    def compare_exchange(self, expected: Any, desired: Any) -> Tuple[bool, Any]:
        """Store ``desired`` if the value equals ``expected``.

        Returns whether the store happened and the value seen before it.
        """
        with self._lock:
            current = self._value
            if current == expected:
                self._value = desired
                return True, current
            return False, current


class _AtomicInt(_AtomicCell):
    """An integer cell with atomic addition."""

    __slots__ = ()

    def __init__(self, value: int = 0) -> None:
        super().__init__(value)

    def fetch_add(self, amount: int) -> int:
        """Add ``amount`` and return the value held before."""
        with self._lock:
            old = self._value
            self._value = old + amount
            return old


class _Node:
    __slots__ = ("data", "internal_count", "next")

    def __init__(self, data: Any) -> None:
        self.data = data
        self.internal_count = _AtomicInt(0)
        self.next: Optional[_CountedPtr] = None


@dataclass(frozen=True)
class _CountedPtr:
    external_count: int
    node: Optional[_Node]


class RefCountStack(Generic[T]):
    """A stack whose head carries an external reference count."""

    def __init__(self) -> None:
        self._head = _AtomicCell(_CountedPtr(0, None))
        self._reclaimed = _AtomicInt(0)

    @property
    def reclaimed(self) -> int:
        """Number of nodes whose reference counts have fully settled."""
        return self._reclaimed.load()

    def _increase_head_count(self, old: _CountedPtr) -> _CountedPtr:
        while True:
            new = replace(old, external_count=old.external_count + 1)
            ok, current = self._head.compare_exchange(old, new)
            if ok:
                return new
            old = current

    def push(self, data: T) -> None:
        """Put ``data`` on top of the stack."""
        node = _Node(data)
        new_head = _CountedPtr(1, node)
        node.next = self._head.load()
        while True:
            ok, current = self._head.compare_exchange(node.next, new_head)
            if ok:
                return
            node.next = current

    def pop(self) -> Optional[T]:
        """Take the top value off the stack, or return None if it is empty."""
        old_head = self._head.load()
        while True:
            old_head = self._increase_head_count(old_head)
            node = old_head.node
            if node is None:
                return None
            ok, current = self._head.compare_exchange(old_head, node.next)
            if ok:
                result, node.data = node.data, None
                count_increase = old_head.external_count - 2
                if node.internal_count.fetch_add(count_increase) == -count_increase:
                    self._reclaimed.fetch_add(1)
                return result
            if node.internal_count.fetch_add(-1) == 1:
                self._reclaimed.fetch_add(1)
            old_head = current


class SingleRefStack(Generic[T]):
    """A stack whose head reference count is bumped in place on every pop."""

    def __init__(self) -> None:
        self._head = _AtomicCell(_CountedPtr(0, None))
        self._reclaimed = _AtomicInt(0)

    @property
    def reclaimed(self) -> int:
        """Number of nodes whose reference counts have fully settled."""
        return self._reclaimed.load()

    def push(self, data: T) -> None:
        """Put ``data`` on top of the stack."""
        node = _Node(data)
        new_head = _CountedPtr(1, node)
        node.next = self._head.load()
        while True:
            ok, current = self._head.compare_exchange(node.next, new_head)
            if ok:
                return
            node.next = current

    def pop(self) -> Optional[T]:
        """Take the top value off the stack, or return None if it is empty."""
        old_head = self._head.load()
        while True:
            while True:
                new_head = replace(old_head, external_count=old_head.external_count + 1)
                ok, current = self._head.compare_exchange(old_head, new_head)
                if ok:
                    break
                old_head = current
            old_head = new_head

            node = old_head.node
            if node is None:
                return None

            ok, current = self._head.compare_exchange(old_head, node.next)
            if ok:
                result, node.data = node.data, None
                increase_count = old_head.external_count - 2
                if node.internal_count.fetch_add(increase_count) == -increase_count:
                    self._reclaimed.fetch_add(1)
                return result
            if node.internal_count.fetch_add(-1) == 1:
                self._reclaimed.fetch_add(1)
            old_head = current