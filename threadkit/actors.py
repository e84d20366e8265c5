"""Singleton actors that each own a message queue and a worker thread.

Messages posted to :class:`ActorA` are handled there and forwarded to
:class:`ActorB`, which forwards to :class:`ActorC`.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Optional

from threadkit.blocking_queue import ThreadSafeQueue


@dataclass(frozen=True)
class Message:
    """A message carrying a name."""

    name: str

    def __str__(self) -> str:
        return self.name


class Actor:
    """An object whose messages are handled, one at a time, on its own thread.

    Obtain the shared instance of a subclass with :meth:`instance`; once that
    instance has been stopped, the next call creates a fresh one.
    """

    _instances: ClassVar[Dict[type, "Actor"]] = {}
    _instances_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self) -> None:
        self._stop_event = threading.Event()
        self._queue: ThreadSafeQueue[Any] = ThreadSafeQueue()
        self._thread = threading.Thread(
            target=self._run, name=type(self).__name__, daemon=True
        )
        self._thread.start()

    @classmethod
    def instance(cls) -> "Actor":
        """Return the running shared instance of this class, creating it if needed."""
        with Actor._instances_lock:
            current: Optional[Actor] = Actor._instances.get(cls)
            if current is None or current.stopped:
                current = cls()
                Actor._instances[cls] = current
            return current

    @property
    def stopped(self) -> bool:
        """Whether :meth:`stop` has been called."""
        return self._stop_event.is_set()

    def post_msg(self, message: Any) -> None:
        """Queue ``message`` for handling on the actor's thread."""
        self._queue.push(message)

    def deal_msg(self, message: Any) -> None:
        """Handle one message; subclasses override this."""
        print(f"{type(self).__name__} deal msg is {message}", flush=True)

    def stop(self) -> None:
        """Stop the worker thread and wait for it; pending messages are dropped."""
        self._stop_event.set()
        self._queue.stop()
        if self._thread is not threading.current_thread():
            self._thread.join()

    def _run(self) -> None:
        while not self._stop_event.is_set():
            message = self._queue.wait_and_pop()
            if message is None:
                continue
            self.deal_msg(message)
        print(f"{type(self).__name__} thread exit", flush=True)


class ActorC(Actor):
    """Last actor in the chain: reports what it receives."""

    def deal_msg(self, message: Any) -> None:
        print(f"class C deal msg is {message}", flush=True)


class ActorB(Actor):
    """Middle actor: reports the message and sends a new one to :class:`ActorC`."""

    def deal_msg(self, message: Any) -> None:
        print(f"class B deal msg is {message}", flush=True)
        ActorC.instance().post_msg(Message("llfc"))


class ActorA(Actor):
    """First actor: reports the message and sends a new one to :class:`ActorB`."""

    def deal_msg(self, message: Any) -> None:
        print(f"class A deal msg is {message}", flush=True)
        ActorB.instance().post_msg(Message("llfc"))


def main(argv: Optional[list] = None) -> int:
    """Send one message through the A -> B -> C chain, then shut the actors down."""
    ActorA.instance().post_msg(Message("wgt"))
    time.sleep(2)
    print("main process exited!", flush=True)
    for actor_class in (ActorA, ActorB, ActorC):
        actor_class.instance().stop()
    return 0