"""Bounded multi-subscriber broadcast channel.

Contract:
- subscribe() returns a Subscription that receives every message broadcast
  after it joined, never earlier ones, in broadcast order.
- broadcast() delivers to every live subscription. While any live
  subscription's queue holds `capacity` messages, broadcast() blocks until
  that subscription drains a slot or goes away.
- A subscription leaves the fan-out set when closed or garbage-collected.
- Subscriptions keep the bus alive; the bus only references them weakly.

Example:
    bus: EventBus[str] = EventBus(capacity=8)
    sub = bus.subscribe()
    bus.broadcast("hello")
    sub.try_recv()  # "hello"
    sub.try_recv()  # None
"""

from __future__ import annotations

import threading
import time
import weakref
from collections import deque
from typing import Generic, TypeVar

T = TypeVar("T")

# Writers re-check periodically so readers dropped without close() are noticed.
_RECHECK_INTERVAL = 0.05


class EventBus(Generic[T]):
    """Single-writer, multi-reader bounded broadcast."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("EventBus capacity must be at least 1")
        self.capacity = capacity
        self._lock = threading.Lock()
        self._space = threading.Condition(self._lock)
        self._readers: weakref.WeakSet[Subscription[T]] = weakref.WeakSet()

    def subscribe(self) -> Subscription[T]:
        sub: Subscription[T] = Subscription(self)
        with self._lock:
            self._readers.add(sub)
        return sub

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._readers)

    def broadcast(self, message: T) -> int:
        """Deliver message to every live subscription.

        Blocks while any subscription's queue is full.

        Returns:
            Number of subscriptions the message was delivered to
        """
        with self._space:
            while self._any_full():
                self._space.wait(_RECHECK_INTERVAL)

            readers = list(self._readers)
            for reader in readers:
                reader._queue.append(message)
                reader._arrived.notify_all()
            return len(readers)

    def _any_full(self) -> bool:
        # Caller holds the lock. No strong references survive this call, so a
        # dropped subscription can be collected while the writer waits.
        return any(len(reader._queue) >= self.capacity for reader in list(self._readers))

    def _detach(self, sub: Subscription[T]) -> None:
        # Caller holds the lock.
        self._readers.discard(sub)
        self._space.notify_all()


class Subscription(Generic[T]):
    """Reader side of an EventBus."""

    def __init__(self, bus: EventBus[T]) -> None:
        self._bus = bus
        self._queue: deque[T] = deque()
        self._arrived = threading.Condition(bus._lock)
        self._closed = False

    @property
    def bus(self) -> EventBus[T]:
        return self._bus

    @property
    def closed(self) -> bool:
        with self._bus._lock:
            return self._closed

    def pending(self) -> int:
        with self._bus._lock:
            return len(self._queue)

    def try_recv(self) -> T | None:
        """Return the next message without blocking, or None if none is ready."""
        with self._bus._lock:
            return self._pop()

    def recv(self, timeout: float | None = None) -> T | None:
        """Block for the next message; None on timeout or after close()."""
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._arrived:
            while not self._queue:
                if self._closed:
                    return None
                if deadline is None:
                    self._arrived.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                self._arrived.wait(remaining)
            return self._pop()

    def close(self) -> None:
        with self._bus._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.clear()
            self._bus._detach(self)
            self._arrived.notify_all()

    def _pop(self) -> T | None:
        # Caller holds the bus lock.
        if not self._queue:
            return None
        message = self._queue.popleft()
        self._bus._space.notify_all()
        return message

    def __enter__(self) -> Subscription[T]:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
