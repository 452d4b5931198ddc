"""
Periodic tick driver

Runs a callback at a fixed period on a background thread. Ticks of one loop never
overlap: if one runs longer than the period, the missed periods are skipped
rather than replayed back to back.
"""

import logging
import threading
import time
from typing import Callable, Optional


class PeriodicScheduler:
    """
    Stopped -> start() -> Running -> stop() -> Stopped

    start() while running and stop() while stopped are no-ops. The callback
    never receives arguments; any exception it raises is logged and the loop
    carries on with the next tick. start() never blocks: after a stop() from
    inside the callback, a restarted loop may begin while the old one is
    still finishing its last tick.
    """

    def __init__(self, interval_s: float, callback: Callable[[], None], name: str = "band-power-ticker"):
        if interval_s <= 0:
            raise ValueError(f"Interval must be positive, got {interval_s}")
        self.interval_s = interval_s
        self.callback = callback
        self.name = name
        self.tick_count = 0
        self.skipped_ticks = 0
        self.error_count = 0
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._state_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and not self._stop_event.is_set()

    def start(self) -> bool:
        """
        Start ticking

        Returns:
            bool: False if the scheduler was already running
        """
        with self._state_lock:
            if self.is_running:
                return False
            # A loop stopped from inside its own tick exits on its own event once that tick ends
            self._stop_event = threading.Event()
            self._thread = threading.Thread(target=self._run, args=(self._stop_event,),
                                            name=self.name, daemon=True)
            self._thread.start()
            return True

    def stop(self, timeout: Optional[float] = None, wait: bool = True) -> Optional[threading.Thread]:
        """
        Stop ticking; safe to call from inside the callback

        Args:
            timeout: Maximum time to wait for an in-flight tick
            wait: If False, signal the loop and return without joining

        Returns:
            threading.Thread or None: The stopped loop thread, None if the
            scheduler was already stopped
        """
        with self._state_lock:
            if not self.is_running:
                return None
            self._stop_event.set()
            thread = self._thread
        if wait and thread is not threading.current_thread():
            thread.join(timeout)
        return thread

    def _run(self, stop_event: threading.Event) -> None:
        next_deadline = time.monotonic() + self.interval_s
        while not stop_event.wait(max(0.0, next_deadline - time.monotonic())):
            try:
                self.callback()
            except Exception:
                self.error_count += 1
                logging.exception("Scheduled tick failed")
            self.tick_count += 1

            next_deadline += self.interval_s
            now = time.monotonic()
            if now > next_deadline:
                missed = int((now - next_deadline) // self.interval_s) + 1
                self.skipped_ticks += missed
                next_deadline += missed * self.interval_s
                logging.debug(f"Tick overran the interval, skipped {missed} tick(s)")
