"""Data-parallel algorithms that split a list into blocks handled by threads.

Work is divided into blocks of at least 25 elements. At most one thread per
processor is used. The calling thread always handles the last block itself.
Exceptions raised while processing a block reach the caller.
"""

from __future__ import annotations

import itertools
import os
import threading
from concurrent.futures import Future, InvalidStateError
from typing import (
    Any,
    Callable,
    Iterator,
    List,
    MutableSequence,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
)

from threadkit.joining import JoinThreads

T = TypeVar("T")

MIN_PER_THREAD = 25


def _thread_count(length: int) -> int:
    max_threads = (length + MIN_PER_THREAD - 1) // MIN_PER_THREAD
    return min(os.cpu_count() or 2, max_threads)


def _blocks(length: int, num_threads: int) -> Iterator[Tuple[int, int]]:
    """Yield ``num_threads`` half-open ranges; the last one takes the remainder."""
    block_size = length // num_threads
    start = 0
    for _ in range(num_threads - 1):
        yield start, start + block_size
        start += block_size
    yield start, length


def _spawn(fn: Callable[..., Any], *args: Any) -> Tuple[threading.Thread, Future]:
    """Run ``fn(*args)`` on a new thread; its outcome lands in the future."""
    future: Future = Future()

    def run() -> None:
        try:
            future.set_result(fn(*args))
        except BaseException as exc:  # handed over to whoever waits on the future
            future.set_exception(exc)

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return thread, future


def _apply(items: MutableSequence[T], start: int, end: int, func: Callable[[T], T]) -> None:
    items[start:end] = [func(item) for item in items[start:end]]


def parallel_for_each(items: MutableSequence[T], func: Callable[[T], T]) -> None:
    """Replace every element of ``items`` with ``func(element)``, in parallel blocks."""
    length = len(items)
    if not length:
        return
    blocks = list(_blocks(length, _thread_count(length)))
    threads: List[threading.Thread] = []
    futures: List[Future] = []
    with JoinThreads(threads):
        for start, end in blocks[:-1]:
            thread, future = _spawn(_apply, items, start, end, func)
            threads.append(thread)
            futures.append(future)
        _apply(items, *blocks[-1], func)
        for future in futures:
            future.result()


def _async_for_each(
    items: MutableSequence[T], first: int, last: int, func: Callable[[T], T]
) -> None:
    length = last - first
    if not length:
        return
    if length < 2 * MIN_PER_THREAD:
        _apply(items, first, last, func)
        return
    mid = first + length // 2
    thread, first_half = _spawn(_async_for_each, items, first, mid, func)
    try:
        _async_for_each(items, mid, last, func)
    finally:
        thread.join()
    first_half.result()


def async_for_each(items: MutableSequence[T], func: Callable[[T], T]) -> None:
    """Like :func:`parallel_for_each`, halving the work recursively instead."""
    _async_for_each(items, 0, len(items), func)


def _settle(result: Future, index: int) -> None:
    try:
        result.set_result(index)
    except InvalidStateError:
        pass


def _find_element(
    items: Sequence[Any],
    start: int,
    end: int,
    match: Any,
    result: Future,
    done: threading.Event,
) -> None:
    try:
        for index, item in enumerate(items[start:end], start):
            if done.is_set():
                return
            if item == match:
                _settle(result, index)
                done.set()
                return
    except Exception as exc:
        try:
            result.set_exception(exc)
            done.set()
        except InvalidStateError:
            pass


def parallel_find(items: Sequence[Any], match: Any) -> Optional[int]:
    """Return the index of an element equal to ``match``, or None if there is none.

    When several elements match, any one of their indices may be returned.
    """
    length = len(items)
    if not length:
        return None
    blocks = list(_blocks(length, _thread_count(length)))
    result: Future = Future()
    done = threading.Event()
    threads: List[threading.Thread] = []
    with JoinThreads(threads):
        for start, end in blocks[:-1]:
            thread = threading.Thread(
                target=_find_element,
                args=(items, start, end, match, result, done),
                daemon=True,
            )
            thread.start()
            threads.append(thread)
        _find_element(items, *blocks[-1], match, result, done)
    if not done.is_set():
        return None
    return result.result()


def _find_impl(
    items: Sequence[Any], first: int, last: int, match: Any, done: threading.Event
) -> int:
    try:
        length = last - first
        if length < 2 * MIN_PER_THREAD:
            for index, item in enumerate(items[first:last], first):
                if done.is_set():
                    break
                if item == match:
                    done.set()
                    return index
            return last
        mid = first + length // 2
        thread, async_result = _spawn(_find_impl, items, mid, last, match, done)
        try:
            direct = _find_impl(items, first, mid, match, done)
        except BaseException:
            thread.join()
            raise
        return async_result.result() if direct == mid else direct
    except BaseException:
        done.set()
        raise


def parallel_find_async(items: Sequence[Any], match: Any) -> Optional[int]:
    """Like :func:`parallel_find`, halving the search recursively instead."""
    length = len(items)
    index = _find_impl(items, 0, length, match, threading.Event())
    return None if index == length else index


def _process_chunk(
    values: MutableSequence[Any],
    start: int,
    last: int,
    previous_end: Optional[Future],
    end_value: Optional[Future],
) -> None:
    try:
        values[start : last + 1] = list(itertools.accumulate(values[start : last + 1]))
        if previous_end is not None:
            addend = previous_end.result()
            values[last] = values[last] + addend
            if end_value is not None:
                end_value.set_result(values[last])
            values[start:last] = [item + addend for item in values[start:last]]
        elif end_value is not None:
            end_value.set_result(values[last])
    except BaseException as exc:
        if end_value is None:
            raise
        end_value.set_exception(exc)


def parallel_partial_sum(values: MutableSequence[Any]) -> None:
    """Replace each element of ``values`` with the running total up to it."""
    length = len(values)
    if not length:
        return
    blocks = list(_blocks(length, _thread_count(length)))
    previous_end: Optional[Future] = None
    threads: List[threading.Thread] = []
    with JoinThreads(threads):
        for start, end in blocks[:-1]:
            end_value: Future = Future()
            thread = threading.Thread(
                target=_process_chunk,
                args=(values, start, end - 1, previous_end, end_value),
                daemon=True,
            )
            thread.start()
            threads.append(thread)
            previous_end = end_value
        start, end = blocks[-1]
        _process_chunk(values, start, end - 1, previous_end, None)


def main(argv: Optional[list] = None) -> int:
    """Search a small list for 25 squared and report what was found."""
    values = [1, 24, 25, 13, 24, 45, 24, 12, 214, 34, 54, 25 * 25]
    index = parallel_find(values, 25 * 25)
    if index is None:
        print("not find value sqrt value 25")
    else:
        print(f"find iter value is {values[index]}")
    return 0