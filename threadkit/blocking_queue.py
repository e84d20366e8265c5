"""A blocking FIFO queue that can be told to stop and lets other threads steal."""

from __future__ import annotations

import threading
from collections import deque
from typing import Deque, Generic, Optional, TypeVar

T = TypeVar("T")


class ThreadSafeQueue(Generic[T]):
    """A FIFO queue shared between producer and consumer threads.

    Consumers may block until data arrives. Once :meth:`stop` has been called,
    every blocked or later waiting consumer is released and receives None,
    even if values are still queued. The non-blocking calls keep working.
    """

    def __init__(self) -> None:
        self._items: Deque[T] = deque()
        self._cond = threading.Condition()
        self._stopped = False

    @property
    def stopped(self) -> bool:
        """Whether :meth:`stop` has been called."""
        with self._cond:
            return self._stopped

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)

    def push(self, value: T) -> None:
        """Append ``value`` and wake one waiting consumer."""
        with self._cond:
            self._items.append(value)
            self._cond.notify()

    def wait_and_pop(self) -> Optional[T]:
        """Block until a value is available and return it.

        Returns None once the queue has been stopped.
        """
        with self._cond:
            self._cond.wait_for(lambda: self._stopped or bool(self._items))
            if self._stopped:
                return None
            return self._items.popleft()

    def wait_and_pop_timeout(self, timeout: float = 0.1) -> Optional[T]:
        """Like :meth:`wait_and_pop`, but give up after ``timeout`` seconds.

        Returns None on timeout or when the queue has been stopped.
        """
        with self._cond:
            ready = self._cond.wait_for(
                lambda: self._stopped or bool(self._items), timeout
            )
            if not ready or self._stopped:
                return None
            return self._items.popleft()

    def try_pop(self) -> Optional[T]:
        """Return the oldest value at once, or None if the queue is empty."""
        with self._cond:
            if not self._items:
                return None
            return self._items.popleft()

    def try_steal(self) -> Optional[T]:
        """Return the newest value at once, or None if the queue is empty."""
        with self._cond:
            if not self._items:
                return None
            return self._items.pop()

    def empty(self) -> bool:
        """Whether the queue holds no values."""
        with self._cond:
            return not self._items

    def stop(self) -> None:
        """Release every waiting consumer; later waits return None at once."""
        with self._cond:
            self._stopped = True
            self._cond.notify_all()