import threading
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Iterable, Optional, Tuple

from .events import DeviceEventType, StorageDevice, StorageEvent
from .logger import logger


@dataclass(frozen=True)
class ReconcileResult:
    added: Tuple[StorageDevice, ...] = ()
    removed: Tuple[StorageDevice, ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


class StateReconciler:
    """
    Owns the set of devices currently believed to be connected.

    reconcile() diffs a fresh snapshot against that set, updates it and
    emits one event per transition: every CONNECTED event of the tick first,
    then every REMOVED event.
    """

    def __init__(self, sink: Optional[Callable[[StorageEvent], object]] = None):
        self._sink = sink
        self._lock = threading.Lock()
        # dict keeps insertion order; values are the instances first seen
        self._connected: Dict[StorageDevice, StorageDevice] = {}

    def connected_devices(self) -> FrozenSet[StorageDevice]:
        with self._lock:
            return frozenset(self._connected)

    def reconcile(self, snapshot: Iterable[StorageDevice]) -> ReconcileResult:
        # Coalesce devices that share an identifier, keeping snapshot order.
        current: Dict[StorageDevice, StorageDevice] = {}
        for device in snapshot:
            current.setdefault(device, device)

        with self._lock:
            removed = tuple(d for d in self._connected.values() if d not in current)
            for device in removed:
                del self._connected[device]

            added = tuple(d for d in current.values() if d not in self._connected)
            for device in added:
                self._connected[device] = device

        result = ReconcileResult(added=added, removed=removed)
        if result.changed:
            logger.debug(f"Reconciled snapshot: {len(added)} connected, {len(removed)} removed")
        self._emit(result)
        return result

    def _emit(self, result: ReconcileResult):
        if self._sink is None:
            return
        for device in result.added:
            self._sink(StorageEvent(device, DeviceEventType.CONNECTED))
        for device in result.removed:
            self._sink(StorageEvent(device, DeviceEventType.REMOVED))
