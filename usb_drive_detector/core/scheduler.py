import math
import time
import threading
from threading import Thread
from typing import Callable, Optional

from .errors import ConfigurationError
from .logger import logger

# Pause after an unexpected scheduling error so it cannot turn into a busy loop.
ERROR_BACKOFF_S = 1.0


def validate_interval(interval_ms) -> int:
    if isinstance(interval_ms, bool) or not isinstance(interval_ms, (int, float)):
        raise ConfigurationError(f"Polling interval must be a number, got {interval_ms!r}")
    if not math.isfinite(interval_ms):
        raise ConfigurationError(f"Polling interval must be a finite number, got {interval_ms}")
    if interval_ms <= 0:
        raise ConfigurationError(f"Polling interval must be greater than 0, got {interval_ms}")
    return interval_ms


class _ScheduledTask:
    """Handle for one start() call; cancelled by stop()."""

    def __init__(self, period_s: float):
        self.period_s = period_s
        self.next_run = time.monotonic()
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def done(self) -> bool:
        return self.cancelled


class PollingScheduler:
    """
    Runs `task` at a fixed rate on a single background worker thread.

    Ticks never overlap. stop() only cancels future ticks; a tick that is
    already executing runs to completion.
    """

    def __init__(self, task: Callable[[], None], interval_ms: int, name: str = "usb-drive-poller"):
        self._task = task
        self._interval_ms = validate_interval(interval_ms)
        self._name = name
        # Guards the task handle, the interval and the worker reference together.
        self._lock = threading.RLock()
        self._wakeup = threading.Condition(self._lock)
        self._scheduled: Optional[_ScheduledTask] = None
        self._worker: Optional[Thread] = None
        self._shut_down = False

    @property
    def interval_ms(self) -> int:
        with self._lock:
            return self._interval_ms

    @property
    def is_scheduled(self) -> bool:
        with self._lock:
            if self._scheduled is None or self._scheduled.done():
                return False
            return self._worker is not None and self._worker.is_alive()

    @property
    def is_shut_down(self) -> bool:
        with self._lock:
            return self._shut_down

    def start(self):
        with self._lock:
            if self._shut_down:
                logger.debug("Scheduler is shut down, ignoring start()")
                return
            if self.is_scheduled:
                return
            self._scheduled = _ScheduledTask(self._interval_ms / 1000.0)
            if self._worker is None or not self._worker.is_alive():
                self._worker = Thread(target=self._run, name=self._name, daemon=True)
                self._worker.start()
            self._wakeup.notify_all()
            logger.debug(f"Polling scheduled every {self._interval_ms} ms")

    def stop(self):
        with self._lock:
            if self._scheduled is not None and not self._scheduled.done():
                self._scheduled.cancel()
                self._wakeup.notify_all()
                logger.debug("Polling stopped")

    def set_interval(self, interval_ms: int, restart: bool = False):
        interval_ms = validate_interval(interval_ms)
        with self._lock:
            self._interval_ms = interval_ms
            if restart:
                self.stop()
                self.start()

    def shutdown(self, timeout: float = 5.0) -> bool:
        """
        Stop the worker thread, waiting at most `timeout` seconds for an
        in-flight tick. Returns False if the worker was still running.
        """
        with self._lock:
            self._shut_down = True
            if self._scheduled is not None:
                self._scheduled.cancel()
            self._wakeup.notify_all()
            worker = self._worker

        if worker is None or worker is threading.current_thread():
            return True

        worker.join(timeout)
        if worker.is_alive():
            logger.warning(f"Polling worker did not terminate within {timeout} seconds")
            return False
        return True

    def _next_due(self) -> Optional[_ScheduledTask]:
        """Block until a tick is due; returns None once shut down."""
        with self._lock:
            while True:
                if self._shut_down:
                    return None
                scheduled = self._scheduled
                if scheduled is None or scheduled.done():
                    self._wakeup.wait()
                    continue
                delay = scheduled.next_run - time.monotonic()
                if delay > 0:
                    self._wakeup.wait(min(delay, threading.TIMEOUT_MAX))
                    continue
                now = time.monotonic()
                scheduled.next_run += scheduled.period_s
                # Re-anchor instead of firing a burst of catch-up ticks.
                if scheduled.next_run < now:
                    scheduled.next_run = now + scheduled.period_s
                return scheduled

    def _run(self):
        while True:
            try:
                if self._next_due() is None:
                    return
            except Exception:
                logger.exception("Polling scheduler failed while waiting for the next tick")
                time.sleep(ERROR_BACKOFF_S)
                continue
            try:
                self._task()
            except Exception:
                logger.exception("Polling task raised, continuing with the next tick")
