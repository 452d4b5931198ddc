"""
Replay-last broadcast

Fan-out of published values to any number of observers. A new subscriber
immediately receives the most recent value (if any), then every later
publish until it unsubscribes.
"""

import itertools
import logging
import queue
import threading
from typing import Any, Callable, Dict, List, Optional


class Subscription:
    """
    Handle for one observer of a ReplayBroadcast

    With a callback, values are pushed to it synchronously on publish.
    Without one, values are queued for get()/drain().
    """

    def __init__(self, broadcast: "ReplayBroadcast", sub_id: int,
                 callback: Optional[Callable[[Any], None]] = None):
        self.id = sub_id
        self.callback = callback
        self.last_seq = 0
        self.active = True
        self._broadcast = broadcast
        self._queue: "queue.Queue[Any]" = queue.Queue()

    def _deliver(self, seq: int, value: Any) -> None:
        if not self.active or seq <= self.last_seq:
            return
        self.last_seq = seq
        if self.callback is None:
            self._queue.put(value)
            return
        try:
            self.callback(value)
        except Exception as e:
            logging.warning(f"Subscriber {self.id} callback failed: {e}")

    def get(self, timeout: Optional[float] = None) -> Any:
        """
        Next queued value

        Raises:
            queue.Empty: Nothing arrived within the timeout
        """
        return self._queue.get(timeout=timeout)

    def get_nowait(self) -> Any:
        return self._queue.get_nowait()

    def drain(self) -> List[Any]:
        """All queued values, oldest first"""
        values = []
        while True:
            try:
                values.append(self._queue.get_nowait())
            except queue.Empty:
                return values

    def unsubscribe(self) -> None:
        self._broadcast.unsubscribe(self)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.unsubscribe()
        return False


class ReplayBroadcast:
    """Hot stream with replay of the latest value to late subscribers"""

    def __init__(self):
        self._lock = threading.RLock()
        self._subscribers: Dict[int, Subscription] = {}
        self._ids = itertools.count(1)
        self._seq = 0
        self._latest: Any = None

    def publish(self, value: Any) -> None:
        """Deliver a value to every current subscriber, in publish order"""
        with self._lock:
            self._seq += 1
            self._latest = value
            seq = self._seq
            for sub in list(self._subscribers.values()):
                sub._deliver(seq, value)

    def subscribe(self, callback: Optional[Callable[[Any], None]] = None) -> Subscription:
        """Register an observer; it receives the latest value immediately if one exists"""
        with self._lock:
            sub = Subscription(self, next(self._ids), callback)
            self._subscribers[sub.id] = sub
            if self._seq > 0:
                sub._deliver(self._seq, self._latest)
            return sub

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subscription.active = False
            self._subscribers.pop(subscription.id, None)

    @property
    def latest(self) -> Any:
        with self._lock:
            return self._latest

    @property
    def publish_count(self) -> int:
        return self._seq

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def clear(self) -> None:
        """Drop every subscriber (the latest value is kept)"""
        with self._lock:
            for sub in self._subscribers.values():
                sub.active = False
            self._subscribers.clear()
