"""Thread pools that differ in how their workers find work.

* :class:`SimpleThreadPool` – workers poll one shared queue; submit returns nothing.
* :class:`FutureThreadPool` – as above, but every submission yields a future.
* :class:`NotifyThreadPool` – workers sleep on one shared queue until work arrives.
* :class:`ParallelThreadPool` – one queue per worker, filled round-robin.
* :class:`StealThreadPool` – one queue per worker; idle workers steal from the others.
* :class:`ThreadPool` – a condition-variable pool that takes any callable with arguments.

Every pool has a shared instance obtained with ``instance()``. Once that
instance has been shut down, the next call creates a fresh one.
"""

from __future__ import annotations

import os
import threading
import time
import traceback
from collections import deque
from concurrent.futures import Future
from typing import Any, Callable, ClassVar, Deque, Dict, List, Optional, TypeVar

from threadkit.blocking_queue import ThreadSafeQueue

R = TypeVar("R")

_instances: Dict[type, Any] = {}
_instances_lock = threading.Lock()


def _default_thread_count() -> int:
    return os.cpu_count() or 2


def _shared_instance(cls: type) -> Any:
    """Return the running shared instance of ``cls``, creating it if needed."""
    with _instances_lock:
        current = _instances.get(cls)
        if current is None or current.stopped:
            current = cls()
            _instances[cls] = current
        return current


class _Task:
    """A callable paired with the future that receives its outcome."""

    __slots__ = ("func", "future")

    def __init__(self, func: Callable[[], Any]) -> None:
        self.func = func
        self.future: Future = Future()

    def __call__(self) -> None:
        if not self.future.set_running_or_notify_cancel():
            return
        try:
            result = self.func()
        except BaseException as exc:  # handed over to whoever waits on the future
            self.future.set_exception(exc)
        else:
            self.future.set_result(result)


def _reporting(func: Callable[[], Any]) -> Callable[[], None]:
    """Wrap ``func`` so that an exception is printed instead of killing the worker."""

    def run() -> None:
        try:
            func()
        except Exception:
            traceback.print_exc()

    return run


class _QueuePool:
    """Common machinery for pools whose workers read from ThreadSafeQueues."""

    _queue_count_matches_threads: ClassVar[bool] = False

    def __init__(self, thread_count: Optional[int] = None) -> None:
        count = _default_thread_count() if thread_count is None else thread_count
        if count < 1:
            raise ValueError("a pool needs at least one thread")
        self._done = threading.Event()
        queue_count = count if self._queue_count_matches_threads else 1
        self._queues: List[ThreadSafeQueue[Any]] = [
            ThreadSafeQueue() for _ in range(queue_count)
        ]
        self._threads: List[threading.Thread] = []
        try:
            for index in range(count):
                thread = threading.Thread(
                    target=self._worker,
                    args=(index,),
                    name=f"{type(self).__name__}-{index}",
                    daemon=True,
                )
                thread.start()
                self._threads.append(thread)
        except BaseException:
            self._halt()
            raise

    @property
    def stopped(self) -> bool:
        """Whether the pool has been shut down."""
        return self._done.is_set()

    @property
    def thread_count(self) -> int:
        """Number of worker threads."""
        return len(self._threads)

    def _worker(self, index: int) -> None:
        self._poll(self._queues[0])

    def _poll(self, queue: ThreadSafeQueue[Any]) -> None:
        while not self._done.is_set():
            task = queue.try_pop()
            if task is None:
                time.sleep(0)
                continue
            task()

    def _wait_on(self, queue: ThreadSafeQueue[Any]) -> None:
        while not self._done.is_set():
            task = queue.wait_and_pop()
            if task is None:
                continue
            task()

    def _check_running(self) -> None:
        if self._done.is_set():
            raise RuntimeError("the pool has been shut down")

    def _push(self, index: int, func: Callable[[], R]) -> "Future[R]":
        self._check_running()
        task = _Task(func)
        self._queues[index].push(task)
        return task.future

    def _halt(self) -> None:
        self._done.set()
        for queue in self._queues:
            queue.stop()
        current = threading.current_thread()
        for thread in self._threads:
            if thread is not current:
                thread.join()

    def _shutdown(self) -> None:
        self._halt()
        for queue in self._queues:
            while (item := queue.try_pop()) is not None:
                if isinstance(item, _Task):
                    item.future.cancel()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self._shutdown()


class SimpleThreadPool(_QueuePool):
    """Polling pool that runs submitted callables and reports nothing back."""

    @classmethod
    def instance(cls) -> "SimpleThreadPool":
        """Return the shared running pool, creating it if needed."""
        return _shared_instance(cls)

    def submit(self, func: Callable[[], Any]) -> None:
        """Queue ``func`` to be called on some worker thread."""
        self._check_running()
        self._queues[0].push(_reporting(func))

    def shutdown(self) -> None:
        """Stop the workers and wait for them; queued work is dropped."""
        self._shutdown()


class FutureThreadPool(_QueuePool):
    """Polling pool whose submissions return futures."""

    @classmethod
    def instance(cls) -> "FutureThreadPool":
        """Return the shared running pool, creating it if needed."""
        return _shared_instance(cls)

    def submit(self, func: Callable[[], R]) -> "Future[R]":
        """Queue ``func``; its result or exception arrives in the returned future."""
        return self._push(0, func)

    def shutdown(self) -> None:
        """Stop the workers and wait for them; queued work is cancelled."""
        self._shutdown()


class NotifyThreadPool(_QueuePool):
    """Pool whose workers block on a shared queue until work arrives."""

    def _worker(self, index: int) -> None:
        self._wait_on(self._queues[0])

    @classmethod
    def instance(cls) -> "NotifyThreadPool":
        """Return the shared running pool, creating it if needed."""
        return _shared_instance(cls)

    def submit(self, func: Callable[[], R]) -> "Future[R]":
        """Queue ``func``; its result or exception arrives in the returned future."""
        return self._push(0, func)

    def shutdown(self) -> None:
        """Stop the workers and wait for them; queued work is cancelled."""
        self._shutdown()


class _RoundRobinPool(_QueuePool):
    """One queue per worker; submissions go to the queues in turn."""

    _queue_count_matches_threads = True

    def __init__(self, thread_count: Optional[int] = None) -> None:
        self._index = 0
        self._index_lock = threading.Lock()
        super().__init__(thread_count)

    def _next_index(self) -> int:
        with self._index_lock:
            self._index = (self._index + 1) % len(self._queues)
            return self._index


class ParallelThreadPool(_RoundRobinPool):
    """Each worker serves only its own queue."""

    def _worker(self, index: int) -> None:
        self._wait_on(self._queues[index])

    @classmethod
    def instance(cls) -> "ParallelThreadPool":
        """Return the shared running pool, creating it if needed."""
        return _shared_instance(cls)

    def submit(self, func: Callable[[], R]) -> "Future[R]":
        """Queue ``func`` on the next worker's queue and return its future."""
        self._check_running()
        return self._push(self._next_index(), func)

    def shutdown(self) -> None:
        """Stop the workers and wait for them; queued work is cancelled."""
        self._shutdown()


class StealThreadPool(_RoundRobinPool):
    """Each worker serves its own queue and steals the newest work of others when idle."""

    def _worker(self, index: int) -> None:
        own = self._queues[index]
        others = [queue for position, queue in enumerate(self._queues) if position != index]
        while not self._done.is_set():
            task = own.try_pop()
            if task is None:
                task = next(
                    (stolen for queue in others if (stolen := queue.try_steal()) is not None),
                    None,
                )
            if task is None:
                time.sleep(0)
                continue
            task()

    @classmethod
    def instance(cls) -> "StealThreadPool":
        """Return the shared running pool, creating it if needed."""
        return _shared_instance(cls)

    def submit(self, func: Callable[[], R]) -> "Future[R]":
        """Queue ``func`` on the next worker's queue and return its future."""
        self._check_running()
        return self._push(self._next_index(), func)

    def shutdown(self) -> None:
        """Stop the workers and wait for them; queued work is cancelled."""
        self._shutdown()


class ThreadPool:
    """A pool that runs any callable with arguments and tracks its idle workers.

    Fewer than two requested threads are raised to two.
    """

    def __init__(self, thread_count: Optional[int] = None) -> None:
        count = _default_thread_count() if thread_count is None else thread_count
        self._size = 2 if count <= 1 else count
        self._cond = threading.Condition()
        self._tasks: Deque[_Task] = deque()
        self._stopped = False
        self._idle = self._size
        self._idle_lock = threading.Lock()
        self._threads: List[threading.Thread] = []
        for index in range(self._size):
            thread = threading.Thread(
                target=self._worker, name=f"ThreadPool-{index}", daemon=True
            )
            thread.start()
            self._threads.append(thread)

    @classmethod
    def instance(cls) -> "ThreadPool":
        """Return the shared running pool, creating it if needed."""
        return _shared_instance(cls)

    @property
    def stopped(self) -> bool:
        """Whether :meth:`stop` has been called."""
        with self._cond:
            return self._stopped

    def _worker(self) -> None:
        while True:
            with self._cond:
                if self._stopped:
                    return
                self._cond.wait_for(lambda: self._stopped or bool(self._tasks))
                if not self._tasks:
                    return
                task = self._tasks.popleft()
            with self._idle_lock:
                self._idle -= 1
            try:
                task()
            finally:
                with self._idle_lock:
                    self._idle += 1

    def commit(self, func: Callable[..., R], *args: Any, **kwargs: Any) -> "Future[R]":
        """Queue ``func(*args, **kwargs)`` and return a future for its outcome."""
        task = _Task(lambda: func(*args, **kwargs))
        with self._cond:
            if self._stopped:
                raise RuntimeError("the pool has been stopped")
            self._tasks.append(task)
            self._cond.notify()
        return task.future

    def idle_thread_count(self) -> int:
        """Number of workers not currently running a task."""
        with self._idle_lock:
            return self._idle

    def stop(self) -> None:
        """Stop the workers and wait for them; queued work is cancelled."""
        with self._cond:
            self._stopped = True
            self._cond.notify_all()
        current = threading.current_thread()
        for thread in self._threads:
            if thread is not current:
                thread.join()
        with self._cond:
            leftovers, self._tasks = list(self._tasks), deque()
        for task in leftovers:
            task.future.cancel()

    def __enter__(self) -> "ThreadPool":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()