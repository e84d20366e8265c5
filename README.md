# threadkit

Small, self-contained concurrency building blocks for Python threads.
It has no dependencies beyond the standard library.

## What is inside

| Module | Contents |
| --- | --- |
| `threadkit.refstacks` | `RefCountStack`, `SingleRefStack`: stacks whose nodes are tracked with split (external and internal) reference counts |
| `threadkit.lockfree_queue` | `RefCountedQueue`: a FIFO queue with split reference counts on head and tail |
| `threadkit.blocking_queue` | `ThreadSafeQueue`: a FIFO queue with blocking and non-blocking pops, stealing from the tail, and a stop signal |
| `threadkit.actors` | `Actor` base class with one worker thread per actor, plus `ActorA`, `ActorB`, `ActorC` passing a `Message` down a chain |
| `threadkit.joining` | `JoinThreads`, `ThreadGuard`, `JoiningThread`: helpers that make sure threads are joined |
| `threadkit.parallel` | `parallel_for_each`, `async_for_each`, `parallel_find`, `parallel_find_async`, `parallel_partial_sum` |
| `threadkit.pools` | `SimpleThreadPool`, `FutureThreadPool`, `NotifyThreadPool`, `ParallelThreadPool`, `StealThreadPool`, `ThreadPool` |

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Stacks and queues

`RefCountStack` and `SingleRefStack` offer `push(data)` and `pop()`. `pop()`
returns `None` when the stack is empty. The `reclaimed` property counts the
nodes whose reference counts have settled. Each compare-and-exchange step
is made atomic with a small lock per cell. No hardware atomics are used.

`RefCountedQueue` offers `push(value)` and `pop()`, which returns `None`
when the queue is empty. It also has `construct_count` and `destruct_count`
properties. These report the values pushed and the nodes reclaimed.

`ThreadSafeQueue` has these methods:

* `push(value)`
* `wait_and_pop()`, which blocks until a value arrives
* `wait_and_pop_timeout(timeout=0.1)`
* `try_pop()`, which takes the oldest value
* `try_steal()`, which takes the newest value
* `empty()`
* `len()`
* `stop()`

After `stop()`, every waiting or later blocking pop returns `None`.

```python
from threadkit.refstacks import RefCountStack
from threadkit.blocking_queue import ThreadSafeQueue

stack = RefCountStack()
stack.push(1)
stack.push(2)
print(stack.pop())  # 2

queue = ThreadSafeQueue()
queue.push("job")
print(queue.try_pop())  # job
```

## Actors

Each `Actor` subclass has a shared instance, obtained with `instance()`. The
instance handles the messages given to `post_msg()` one at a time, on its
own thread, by calling `deal_msg()`. `stop()` ends the thread and drops
any pending messages. A later `instance()` call then creates a fresh actor.
`ActorA` prints what it receives and sends `Message("llfc")` to `ActorB`.
`ActorB` does the same towards `ActorC`, which only prints.

## Joining threads

* `JoinThreads(threads)` is a context manager. It joins every started
  thread in the list when the block ends.
* `ThreadGuard(thread)` does the same for a single thread.
* `JoiningThread` owns one thread and joins it on `join()`, when it is
  replaced, or when its `with` block ends. It is built from a callable and
  its arguments, or from a thread object. Its methods are `joinable()`,
  `swap(other)` and `replace(other)`.

## Parallel algorithms

These functions split a list into blocks of at least 25 elements. They use
at most one thread per processor, and the calling thread handles the last
block. An exception raised in a block reaches the caller.

* `parallel_for_each(items, func)` and `async_for_each(items, func)` replace
  each element with `func(element)`.
* `parallel_find(items, match)` and `parallel_find_async(items, match)`
  return an index of an element equal to `match`, or `None`.
* `parallel_partial_sum(values)` replaces each element with the running
  total up to and including it.

```python
from threadkit.parallel import parallel_partial_sum

values = [1, 2, 3, 4, 5, 6, 7, 8, 9]
parallel_partial_sum(values)
print(values)  # [1, 3, 6, 10, 15, 21, 28, 36, 45]
```

## Thread pools

Every pool has a shared instance from `instance()` and can also be created
directly with a thread count. The pools differ in how workers find work:

* `SimpleThreadPool.submit(func)` queues work and returns nothing. Its
  workers poll one shared queue.
* `FutureThreadPool` also polls one shared queue. Its `submit(func)`
  returns a `concurrent.futures.Future`.
* `NotifyThreadPool` also returns a future from `submit(func)`. Its workers
  sleep until work arrives.
* `ParallelThreadPool` gives each worker its own queue and hands out
  submissions round-robin.
* `StealThreadPool` works like `ParallelThreadPool`, but an idle worker
  steals the newest task from another worker's queue.
* `ThreadPool.commit(func, *args, **kwargs)` takes any callable with
  arguments and returns a future. It has at least two workers, and
  `idle_thread_count()` reports the workers not busy.

`shutdown()` stops a pool and waits for its workers; for `ThreadPool`,
`stop()` does this. Work still queued is cancelled, or dropped in the case
of `SimpleThreadPool`. After that, submitting raises `RuntimeError`.

```python
from threadkit.pools import ThreadPool

future = ThreadPool.instance().commit(pow, 2, 10)
print(future.result())  # 1024
```

## Commands

```
threadkit-actors
threadkit-parallel
```

`threadkit-actors` posts `Message("wgt")` to `ActorA`. It then waits two
seconds while the message passes down the chain, and stops the actors.
`threadkit-parallel` searches a short sample list for 625 with
`parallel_find` and prints the value it found.

## What it does not do

The package does not include sorting algorithms built on the pools. It
also has no lock helpers beyond what the queues and pools use internally,
such as hierarchical or reader/writer locks. The commands are small
demonstrations, not tools.