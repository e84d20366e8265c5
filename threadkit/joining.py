"""Helpers that make sure threads are joined when a scope ends."""

from __future__ import annotations

import threading
from typing import Any, Callable, List, Optional, Union


class JoinThreads:
    """Joins every started thread of a list when the ``with`` block ends.

    The list is held by reference, so threads appended after construction
    are joined too.
    """

    def __init__(self, threads: List[threading.Thread]) -> None:
        self.threads = threads

    def join_all(self) -> None:
        """Join every thread in the list that has been started."""
        current = threading.current_thread()
        for thread in self.threads:
            if thread.ident is not None and thread is not current:
                thread.join()

    def __enter__(self) -> "JoinThreads":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.join_all()


class ThreadGuard:
    """Joins one thread when the ``with`` block ends, even on an exception."""

    def __init__(self, thread: threading.Thread) -> None:
        self.thread = thread

    def __enter__(self) -> threading.Thread:
        return self.thread

    def __exit__(self, *exc_info: Any) -> None:
        if self.thread.ident is not None and self.thread is not threading.current_thread():
            self.thread.join()


class JoiningThread:
    """Owns a running thread and joins it before letting it go.

    Built from a callable and its arguments, or from a thread object, which is
    started if it has not been. With no arguments it owns no thread.
    """

    def __init__(
        self,
        target: Union[Callable[..., Any], threading.Thread, None] = None,
        *args: Any,
        **kwargs: Any,
    ) -> None:
        self._thread: Optional[threading.Thread]
        if target is None:
            self._thread = None
        elif isinstance(target, threading.Thread):
            if args or kwargs:
                raise TypeError("arguments cannot be given with a thread object")
            self._thread = target
            if target.ident is None:
                target.start()
        else:
            self._thread = threading.Thread(target=target, args=args, kwargs=kwargs)
            self._thread.start()

    @property
    def thread(self) -> Optional[threading.Thread]:
        """The owned thread, or None."""
        return self._thread

    @property
    def ident(self) -> Optional[int]:
        """Identifier of the owned thread, or None when there is none."""
        return self._thread.ident if self._thread is not None else None

    def joinable(self) -> bool:
        """Whether a thread is owned and has not yet been joined."""
        return self._thread is not None

    def join(self) -> None:
        """Wait for the owned thread to finish and release it."""
        if self._thread is None:
            raise RuntimeError("no thread to join")
        if self._thread is threading.current_thread():
            raise RuntimeError("a thread cannot join itself")
        self._thread.join()
        self._thread = None

    def swap(self, other: "JoiningThread") -> None:
        """Exchange owned threads with ``other``."""
        self._thread, other._thread = other._thread, self._thread

    def replace(self, other: "JoiningThread") -> "JoiningThread":
        """Join the owned thread, then take over ``other``'s thread."""
        if other is self:
            return self
        if self.joinable():
            self.join()
        self._thread, other._thread = other._thread, None
        return self

    def __enter__(self) -> "JoiningThread":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self.joinable():
            self.join()