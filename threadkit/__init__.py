"""Concurrency building blocks: reference-counted stacks and queues, a blocking queue, actors, thread-joining helpers, thread pools and parallel list algorithms."""

__version__ = "0.1.0"