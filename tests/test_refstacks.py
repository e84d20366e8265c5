import threading
import time

import pytest

from threadkit.refstacks import RefCountStack, SingleRefStack


def _pop_all(stack, count):
    return [stack.pop() for _ in range(count)]


def _interleave(stack):
    observed = []
    stack.push("a")
    observed.append(stack.pop())
    observed.append(stack.pop())
    stack.push("b")
    stack.push("c")
    observed.append(stack.pop())
    stack.push("d")
    observed.append(stack.pop())
    observed.append(stack.pop())
    return observed


def _run_concurrently(stack, total):
    removed = set()
    removed_lock = threading.Lock()

    def producer():
        for i in range(total):
            stack.push(i)

    def consumer(quota):
        taken = 0
        while taken < quota:
            value = stack.pop()
            if value is None:
                time.sleep(0.0005)
                continue
            with removed_lock:
                removed.add(value)
            taken += 1

    threads = [
        threading.Thread(target=producer),
        threading.Thread(target=consumer, args=(total // 2,)),
        threading.Thread(target=consumer, args=(total // 2,)),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return removed


def test_ref_count_stack_pop_empty_returns_none():
    stack = RefCountStack()
    assert stack.pop() is None
    assert stack.pop() is None


def test_single_ref_stack_pop_empty_returns_none():
    stack = SingleRefStack()
    assert stack.pop() is None
    assert stack.pop() is None


def test_ref_count_stack_last_in_first_out():
    stack = RefCountStack()
    for value in [1, 2, 3]:
        stack.push(value)
    assert _pop_all(stack, 3) == [3, 2, 1]
    assert stack.pop() is None


def test_single_ref_stack_last_in_first_out():
    stack = SingleRefStack()
    for value in [1, 2, 3]:
        stack.push(value)
    assert _pop_all(stack, 3) == [3, 2, 1]
    assert stack.pop() is None


def test_ref_count_stack_interleaved_push_and_pop():
    stack = RefCountStack()
    assert _interleave(stack) == ["a", None, "c", "d", "b"]


def test_single_ref_stack_interleaved_push_and_pop():
    stack = SingleRefStack()
    assert _interleave(stack) == ["a", None, "c", "d", "b"]


def test_ref_count_stack_every_popped_node_is_reclaimed():
    stack = RefCountStack()
    for i in range(50):
        stack.push(i)
    assert _pop_all(stack, 50) == list(reversed(range(50)))
    assert stack.reclaimed == 50


def test_single_ref_stack_every_popped_node_is_reclaimed():
    stack = SingleRefStack()
    for i in range(50):
        stack.push(i)
    assert _pop_all(stack, 50) == list(reversed(range(50)))
    assert stack.reclaimed == 50


@pytest.mark.timeout(60)
def test_ref_count_stack_concurrent_push_and_two_poppers():
    stack = RefCountStack()
    total = 2000
    assert _run_concurrently(stack, total) == set(range(total))
    assert stack.pop() is None
    assert stack.reclaimed == total


@pytest.mark.timeout(60)
def test_single_ref_stack_concurrent_push_and_two_poppers():
    stack = SingleRefStack()
    total = 2000
    assert _run_concurrently(stack, total) == set(range(total))
    assert stack.pop() is None
    assert stack.reclaimed == total