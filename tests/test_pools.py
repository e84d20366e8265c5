import threading
import time

import pytest

from threadkit.pools import (
    FutureThreadPool,
    NotifyThreadPool,
    ParallelThreadPool,
    SimpleThreadPool,
    StealThreadPool,
    ThreadPool,
)

SQUARES = [n * n for n in range(20)]


def _squares(pool):
    futures = [pool.submit(lambda n=n: n * n) for n in range(20)]
    return [f.result(timeout=5) for f in futures]


def _boom():
    raise KeyError("missing")


@pytest.mark.timeout(10)
def test_future_pool_submit_returns_result():
    with FutureThreadPool(2) as pool:
        assert _squares(pool) == SQUARES


@pytest.mark.timeout(10)
def test_notify_pool_submit_returns_result():
    with NotifyThreadPool(2) as pool:
        assert _squares(pool) == SQUARES


@pytest.mark.timeout(10)
def test_parallel_pool_submit_returns_result():
    with ParallelThreadPool(2) as pool:
        assert _squares(pool) == SQUARES


@pytest.mark.timeout(10)
def test_steal_pool_submit_returns_result():
    with StealThreadPool(2) as pool:
        assert _squares(pool) == SQUARES


@pytest.mark.timeout(10)
def test_future_pool_submit_propagates_exception():
    with FutureThreadPool(2) as pool:
        with pytest.raises(KeyError):
            pool.submit(_boom).result(timeout=5)


@pytest.mark.timeout(10)
def test_notify_pool_submit_propagates_exception():
    with NotifyThreadPool(2) as pool:
        with pytest.raises(KeyError):
            pool.submit(_boom).result(timeout=5)


@pytest.mark.timeout(10)
def test_parallel_pool_submit_propagates_exception():
    with ParallelThreadPool(2) as pool:
        with pytest.raises(KeyError):
            pool.submit(_boom).result(timeout=5)


@pytest.mark.timeout(10)
def test_steal_pool_submit_propagates_exception():
    with StealThreadPool(2) as pool:
        with pytest.raises(KeyError):
            pool.submit(_boom).result(timeout=5)


@pytest.mark.timeout(10)
def test_submit_after_shutdown_raises():
    pools = [
        SimpleThreadPool(1),
        FutureThreadPool(1),
        NotifyThreadPool(1),
        ParallelThreadPool(1),
        StealThreadPool(1),
    ]
    for pool in pools:
        pool.shutdown()
        assert pool.stopped is True
        with pytest.raises(RuntimeError):
            pool.submit(lambda: None)


def test_zero_threads_rejected():
    with pytest.raises(ValueError):
        SimpleThreadPool(0)
    with pytest.raises(ValueError):
        FutureThreadPool(0)
    with pytest.raises(ValueError):
        NotifyThreadPool(0)
    with pytest.raises(ValueError):
        ParallelThreadPool(0)
    with pytest.raises(ValueError):
        StealThreadPool(0)


@pytest.mark.timeout(10)
def test_simple_pool_runs_every_task():
    results = []
    lock = threading.Lock()
    finished = threading.Event()
    total = 30

    def record(n):
        with lock:
            results.append(n)
            if len(results) == total:
                finished.set()

    with SimpleThreadPool(3) as pool:
        for n in range(total):
            assert pool.submit(lambda n=n: record(n)) is None
        assert finished.wait(5)
    assert sorted(results) == list(range(total))


@pytest.mark.timeout(10)
def test_pool_thread_count():
    with FutureThreadPool(3) as pool:
        assert pool.thread_count == 3


@pytest.mark.timeout(10)
def test_parallel_pool_round_robin_starts_at_second_queue():
    with ParallelThreadPool(3) as pool:
        names = [
            pool.submit(lambda: threading.current_thread().name).result(timeout=5)
            for _ in range(4)
        ]
    assert names == [
        "ParallelThreadPool-1",
        "ParallelThreadPool-2",
        "ParallelThreadPool-0",
        "ParallelThreadPool-1",
    ]


@pytest.mark.timeout(10)
def test_steal_pool_idle_worker_takes_blocked_queue_work():
    release = threading.Event()
    with StealThreadPool(2) as pool:
        blocker = pool.submit(lambda: release.wait(5))
        others = [pool.submit(lambda n=n: n) for n in range(6)]
        assert [f.result(timeout=5) for f in others] == list(range(6))
        assert not blocker.done()
        release.set()
        assert blocker.result(timeout=5) is True


@pytest.mark.timeout(10)
def test_shutdown_cancels_queued_work():
    release = threading.Event()
    started = threading.Event()
    pool = NotifyThreadPool(1)

    def block():
        started.set()
        release.wait(5)
        return "ran"

    running = pool.submit(block)
    assert started.wait(5)
    pending = pool.submit(lambda: "never")
    stopper = threading.Thread(target=pool.shutdown)
    stopper.start()
    release.set()
    stopper.join(5)
    assert running.result(timeout=5) == "ran"
    assert pending.cancelled()


@pytest.mark.timeout(10)
def test_simple_pool_instance_is_shared_and_renewed():
    first = SimpleThreadPool.instance()
    again = SimpleThreadPool.instance()
    first.shutdown()
    second = SimpleThreadPool.instance()
    second.shutdown()
    assert again is first
    assert second is not first
    assert first.stopped is True


@pytest.mark.timeout(10)
def test_future_pool_instance_is_shared_and_renewed():
    first = FutureThreadPool.instance()
    again = FutureThreadPool.instance()
    first.shutdown()
    second = FutureThreadPool.instance()
    try:
        assert again is first
        assert second is not first
        assert second.submit(lambda: "ok").result(timeout=5) == "ok"
    finally:
        second.shutdown()


@pytest.mark.timeout(10)
def test_notify_pool_instance_is_shared_and_renewed():
    first = NotifyThreadPool.instance()
    again = NotifyThreadPool.instance()
    first.shutdown()
    second = NotifyThreadPool.instance()
    try:
        assert again is first
        assert second is not first
        assert second.submit(lambda: "ok").result(timeout=5) == "ok"
    finally:
        second.shutdown()


@pytest.mark.timeout(10)
def test_parallel_pool_instance_is_shared_and_renewed():
    first = ParallelThreadPool.instance()
    again = ParallelThreadPool.instance()
    first.shutdown()
    second = ParallelThreadPool.instance()
    try:
        assert again is first
        assert second is not first
        assert second.submit(lambda: "ok").result(timeout=5) == "ok"
    finally:
        second.shutdown()


@pytest.mark.timeout(10)
def test_steal_pool_instance_is_shared_and_renewed():
    first = StealThreadPool.instance()
    again = StealThreadPool.instance()
    first.shutdown()
    second = StealThreadPool.instance()
    try:
        assert again is first
        assert second is not first
        assert second.submit(lambda: "ok").result(timeout=5) == "ok"
    finally:
        second.shutdown()


@pytest.mark.timeout(10)
def test_thread_pool_commit_with_arguments():
    with ThreadPool(2) as pool:
        future = pool.commit(lambda a, b, scale=1: (a + b) * scale, 2, 3, scale=10)
        assert future.result(timeout=5) == 50


@pytest.mark.timeout(10)
def test_thread_pool_commit_propagates_exception():
    def boom():
        raise ValueError("bad")

    with ThreadPool(2) as pool:
        with pytest.raises(ValueError):
            pool.commit(boom).result(timeout=5)


def test_thread_pool_raises_small_counts_to_two():
    pool = ThreadPool(1)
    try:
        assert pool.idle_thread_count() == 2
    finally:
        pool.stop()


@pytest.mark.timeout(10)
def test_thread_pool_idle_count_tracks_running_tasks():
    started = threading.Event()
    release = threading.Event()

    def block():
        started.set()
        release.wait(5)

    with ThreadPool(2) as pool:
        assert pool.idle_thread_count() == 2
        future = pool.commit(block)
        assert started.wait(5)
        assert pool.idle_thread_count() == 1
        release.set()
        future.result(timeout=5)
        deadline = time.monotonic() + 5
        while pool.idle_thread_count() != 2 and time.monotonic() < deadline:
            time.sleep(0.01)
        assert pool.idle_thread_count() == 2


@pytest.mark.timeout(10)
def test_thread_pool_commit_after_stop_raises():
    pool = ThreadPool(2)
    pool.stop()
    assert pool.stopped
    with pytest.raises(RuntimeError):
        pool.commit(lambda: 1)


@pytest.mark.timeout(10)
def test_thread_pool_instance_shared_and_renewed():
    first = ThreadPool.instance()
    try:
        assert ThreadPool.instance() is first
    finally:
        first.stop()
    second = ThreadPool.instance()
    try:
        assert second is not first
        assert second.commit(lambda: "ok").result(timeout=5) == "ok"
    finally:
        second.stop()