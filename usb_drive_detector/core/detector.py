from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List
from .events import StorageDevice


class DeviceEnumerator(ABC):
    @abstractmethod
    def enumerate(self) -> List[StorageDevice]:
        """
        Return the storage devices currently attached to the host.
        Raises EnumerationError if the platform probe fails.
        """


class DeviceUnmounter(ABC):
    @abstractmethod
    def unmount(self, device: StorageDevice) -> None:
        """
        Unmount the given device. Single attempt, no retry.
        Raises UnmountError if the OS-level unmount fails.
        """


@dataclass(frozen=True)
class PlatformCapabilities:
    """The enumerator/unmounter pair a manager is built around."""
    enumerator: DeviceEnumerator
    unmounter: DeviceUnmounter
    platform: str = "custom"
