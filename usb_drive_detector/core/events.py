from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
from datetime import datetime


class DeviceEventType(Enum):
    CONNECTED = "connected"
    REMOVED = "removed"


@dataclass(frozen=True)
class StorageDevice:
    """
    A removable storage device as seen by one enumeration.

    Two instances are the same device when their root directories match;
    every other attribute is informational.
    """
    root_directory: str
    device_name: Optional[str] = field(default=None, compare=False)
    volume_name: Optional[str] = field(default=None, compare=False)
    uuid: Optional[str] = field(default=None, compare=False)
    device_path: Optional[str] = field(default=None, compare=False)
    total_size: Optional[int] = field(default=None, compare=False)

    @property
    def identifier(self) -> str:
        return self.root_directory

    @property
    def system_display_name(self) -> str:
        if self.volume_name:
            return f"{self.volume_name} ({self.root_directory})"
        return self.root_directory


@dataclass(frozen=True)
class StorageEvent:
    device: StorageDevice
    event_type: DeviceEventType
    timestamp: datetime = field(default_factory=datetime.now, compare=False)


@dataclass(frozen=True)
class PollOutcome:
    """Result of one enumerator call: either a snapshot or the error it raised."""
    devices: tuple = ()
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None
