import json
import subprocess
from typing import List

from ..core.detector import DeviceEnumerator, DeviceUnmounter
from ..core.errors import EnumerationError, UnmountError
from ..core.events import StorageDevice
from ..core.logger import logger
from .commands import describe_failure, run_command

# DriveType 2 = removable disk
POWERSHELL_QUERY = (
    "Get-CimInstance Win32_LogicalDisk -Filter 'DriveType = 2' | "
    "Select-Object DeviceID, VolumeName, VolumeSerialNumber, Size, Description | "
    "ConvertTo-Json -Compress"
)


def parse_logical_disks(output: str) -> List[StorageDevice]:
    """
    Parse the JSON printed by POWERSHELL_QUERY. PowerShell prints a single
    object instead of a list when exactly one disk matches, and nothing at
    all when none do.
    """
    output = output.strip()
    if not output:
        return []

    data = json.loads(output)
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise ValueError(f"expected a JSON object or array, got {type(data).__name__}")

    devices = []
    for item in data:
        if not isinstance(item, dict):
            raise ValueError(f"expected a JSON object per disk, got {type(item).__name__}")
        drive = item.get("DeviceID")
        if not drive:
            continue
        # Size is null for an empty card reader slot
        size = item.get("Size")
        devices.append(StorageDevice(
            root_directory=drive.rstrip("\\") + "\\",
            device_name=item.get("Description"),
            volume_name=item.get("VolumeName") or None,
            uuid=item.get("VolumeSerialNumber") or None,
            device_path=drive,
            total_size=int(size) if size is not None else None
        ))
    return devices


class WindowsStorageDeviceDetector(DeviceEnumerator):
    def enumerate(self) -> List[StorageDevice]:
        try:
            output = run_command(["powershell", "-NoProfile", "-NonInteractive", "-Command", POWERSHELL_QUERY])
        except (OSError, subprocess.SubprocessError) as e:
            raise EnumerationError(f"PowerShell query failed: {describe_failure(e)}") from e

        try:
            return parse_logical_disks(output)
        except ValueError as e:
            raise EnumerationError(f"Unexpected PowerShell output: {e}") from e


class WindowsStorageDeviceUnmounter(DeviceUnmounter):
    def unmount(self, device: StorageDevice) -> None:
        # mountvol wants "E:" without the trailing slash; /P dismounts the volume.
        drive = device.root_directory.rstrip('\\')
        try:
            run_command(["mountvol", drive, "/P"])
        except (OSError, subprocess.SubprocessError) as e:
            raise UnmountError(f"Failed to unmount {drive}: {describe_failure(e)}") from e
        logger.info(f"Unmounted {drive}", extra={"root_directory": device.root_directory})
