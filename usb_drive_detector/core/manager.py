import threading
from typing import FrozenSet, List, Optional

from .config import config
from .detector import PlatformCapabilities
from .dispatcher import DriveListener, EventDispatcher
from .errors import DetectorClosedError
from .events import PollOutcome, StorageDevice
from .logger import logger
from .reconciler import StateReconciler
from .scheduler import PollingScheduler, validate_interval


class USBDeviceDetectorManager:
    """
    Polls for removable storage devices and notifies drive listeners of
    CONNECTED / REMOVED transitions.

    Polling starts when the first listener is added and stops when the last
    one is removed. close() is terminal: the scheduler is never restarted.

    Usage:
        with USBDeviceDetectorManager(polling_interval_ms=1000) as manager:
            manager.add_drive_listener(print)
            ...
    """

    def __init__(self, polling_interval_ms: Optional[int] = None,
                 capabilities: Optional[PlatformCapabilities] = None,
                 shutdown_timeout: Optional[float] = None):
        if polling_interval_ms is None:
            polling_interval_ms = config["detector"]["polling_interval_ms"]
        if shutdown_timeout is None:
            shutdown_timeout = float(config["detector"]["shutdown_timeout_seconds"])
        if capabilities is None:
            from ..platforms import detect_capabilities
            capabilities = detect_capabilities()

        self._capabilities = capabilities
        self._shutdown_timeout = shutdown_timeout
        # Guards the listener-count -> scheduler start/stop decision.
        self._lock = threading.RLock()
        self._closed = False

        self._dispatcher = EventDispatcher()
        self._reconciler = StateReconciler(sink=self._dispatcher.dispatch)
        self._scheduler = PollingScheduler(self._poll, validate_interval(polling_interval_ms))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def capabilities(self) -> PlatformCapabilities:
        return self._capabilities

    @property
    def polling_interval(self) -> int:
        return self._scheduler.interval_ms

    @property
    def connected_devices(self) -> FrozenSet[StorageDevice]:
        """Devices known to be attached as of the last poll tick."""
        return self._reconciler.connected_devices()

    @property
    def listener_count(self) -> int:
        return len(self._dispatcher)

    @property
    def is_active(self) -> bool:
        return self._scheduler.is_scheduled

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def set_polling_interval(self, polling_interval_ms: int):
        """Change the polling period; restarts polling in place when active."""
        polling_interval_ms = validate_interval(polling_interval_ms)
        with self._lock:
            self._ensure_open()
            self._scheduler.set_interval(polling_interval_ms, restart=len(self._dispatcher) > 0)
        logger.info(f"Polling interval set to {polling_interval_ms} ms",
                    extra={"interval_ms": polling_interval_ms})

    def add_drive_listener(self, listener: DriveListener) -> bool:
        """
        Register a listener. Returns False if it was already registered.
        Polling starts automatically with the first listener.
        """
        with self._lock:
            self._ensure_open()
            if not self._dispatcher.register(listener):
                return False
            self._scheduler.start()
            return True

    def remove_drive_listener(self, listener: DriveListener) -> bool:
        """
        Unregister a listener. Returns False if it was not registered.
        Polling stops automatically when the last listener is removed.
        """
        with self._lock:
            removed = self._dispatcher.unregister(listener)
            if len(self._dispatcher) == 0 and not self._closed:
                self._scheduler.stop()
            return removed

    def get_removable_devices(self) -> List[StorageDevice]:
        """
        Enumerate the attached devices right now. Has no effect on polling,
        on listeners or on the connected device set.
        """
        return list(self._capabilities.enumerator.enumerate())

    def unmount_storage_device(self, device: StorageDevice):
        """Unmount `device`. Raises UnmountError on failure; no retry."""
        logger.info(f"Unmounting {device.system_display_name}",
                    extra={"root_directory": device.root_directory})
        self._capabilities.unmounter.unmount(device)

    def close(self):
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._scheduler.stop()

        # Join outside the lock: a listener running on the worker may call back into us.
        if not self._scheduler.shutdown(self._shutdown_timeout):
            logger.warning("Closed detector while a poll tick was still running")
        self._dispatcher.clear()
        logger.debug("USB device detector closed")

    shutdown = close

    def _ensure_open(self):
        if self._closed:
            raise DetectorClosedError("USB device detector has been closed")

    def _take_snapshot(self) -> PollOutcome:
        try:
            return PollOutcome(devices=tuple(self.get_removable_devices()))
        except Exception as e:
            return PollOutcome(error=e)

    def _poll(self):
        logger.debug("Polling refresh task is running")
        outcome = self._take_snapshot()
        if not outcome.ok:
            logger.error(f"Error while refreshing device list: {outcome.error}",
                         exc_info=outcome.error)
            return
        self._reconciler.reconcile(outcome.devices)
