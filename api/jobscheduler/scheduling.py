"""
Deferred task scheduling.

Each task is a ``threading.Timer`` keyed by job id, so a pending completion
can be cancelled when its job is deleted or the application shuts down.
"""

import logging
import threading
from typing import Callable, Hashable

log = logging.getLogger("scheduler")


class DeferredTaskScheduler:
    def __init__(self):
        self._lock = threading.Lock()
        self._timers: dict[Hashable, threading.Timer] = {}

    def schedule(self, key: Hashable, delay_seconds: float, fn: Callable[[], None]) -> None:
        """Run ``fn`` once after ``delay_seconds``. Replaces any task under the same key."""

        def _fire():
            with self._lock:
                # only forget the entry if it is still ours
                if self._timers.get(key) is timer:
                    del self._timers[key]
            fn()

        timer = threading.Timer(delay_seconds, _fire)
        timer.daemon = True
        with self._lock:
            previous = self._timers.pop(key, None)
            self._timers[key] = timer
        if previous is not None:
            previous.cancel()
        timer.start()

    def cancel(self, key: Hashable) -> bool:
        with self._lock:
            timer = self._timers.pop(key, None)
        if timer is None:
            return False
        timer.cancel()
        log.info("deferred task cancelled", extra={"job_id": key, "event": "task_cancelled"})
        return True

    def pending(self) -> list:
        with self._lock:
            return list(self._timers)

    def shutdown(self) -> None:
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()
        if timers:
            log.info(f"cancelled {len(timers)} deferred tasks", extra={"event": "scheduler_shutdown"})
