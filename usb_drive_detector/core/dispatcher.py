import threading
from typing import Callable, List

from .errors import ObserverError
from .events import StorageEvent
from .logger import logger

DriveListener = Callable[[StorageEvent], None]


class EventDispatcher:
    """
    Ordered registry of observers.

    dispatch() works on a copy of the registry taken under the lock, so
    observers may register or unregister (themselves included) while an
    event is being delivered.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._observers: List[DriveListener] = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._observers)

    def observers(self) -> List[DriveListener]:
        with self._lock:
            return list(self._observers)

    def register(self, observer: DriveListener) -> bool:
        if not callable(observer):
            raise TypeError(f"Observer must be callable, got {observer!r}")
        with self._lock:
            if observer in self._observers:
                return False
            self._observers.append(observer)
            return True

    def unregister(self, observer: DriveListener) -> bool:
        with self._lock:
            try:
                self._observers.remove(observer)
            except ValueError:
                return False
            return True

    def clear(self):
        with self._lock:
            self._observers.clear()

    def dispatch(self, event: StorageEvent) -> List[ObserverError]:
        """Deliver `event` to every observer; failures are logged and returned."""
        failures: List[ObserverError] = []
        for observer in self.observers():
            try:
                observer(event)
            except Exception as e:
                failure = ObserverError(observer, event, e)
                logger.error(
                    f"A drive listener raised while handling {event.event_type.name} "
                    f"for {event.device.root_directory}",
                    exc_info=True,
                    extra={"observer": repr(observer)}
                )
                failures.append(failure)
        return failures
