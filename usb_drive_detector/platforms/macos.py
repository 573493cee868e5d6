import plistlib
import subprocess
from typing import Any, Dict, List

from ..core.detector import DeviceEnumerator, DeviceUnmounter
from ..core.errors import EnumerationError, UnmountError
from ..core.events import StorageDevice
from ..core.logger import logger
from .commands import describe_failure, run_command

# "external" also lists the synthesized APFS containers backed by external disks.
DISKUTIL_LIST = ["diskutil", "list", "-plist", "external"]


def _volume_to_device(volume: Dict[str, Any], disk: Dict[str, Any]) -> StorageDevice:
    identifier = volume.get("DeviceIdentifier")
    return StorageDevice(
        root_directory=volume["MountPoint"],
        device_name=disk.get("DeviceIdentifier"),
        volume_name=volume.get("VolumeName") or None,
        uuid=volume.get("VolumeUUID") or None,
        device_path=f"/dev/{identifier}" if identifier else None,
        total_size=volume.get("Size")
    )


def parse_diskutil_list(data: bytes) -> List[StorageDevice]:
    """
    Mounted volumes from `diskutil list -plist external`.
    A disk without a partition map carries its MountPoint directly, so the
    whole disk is considered as well as each of its partitions and APFS volumes.
    APFS volumes live on a synthesized container disk, listed as its own entry.
    """
    plist = plistlib.loads(data)
    if not isinstance(plist, dict):
        raise ValueError("diskutil output is not a dictionary")

    devices = []
    for disk in plist.get("AllDisksAndPartitions", []):
        candidates = [disk] + disk.get("Partitions", []) + disk.get("APFSVolumes", [])
        for volume in candidates:
            if volume.get("MountPoint"):
                devices.append(_volume_to_device(volume, disk))
    return devices


class MacOSStorageDeviceDetector(DeviceEnumerator):
    def enumerate(self) -> List[StorageDevice]:
        try:
            result = subprocess.run(DISKUTIL_LIST, capture_output=True, timeout=10, check=True)
        except (OSError, subprocess.SubprocessError) as e:
            raise EnumerationError(f"diskutil list failed: {describe_failure(e)}") from e

        try:
            return parse_diskutil_list(result.stdout)
        except (plistlib.InvalidFileException, ValueError, KeyError) as e:
            raise EnumerationError(f"Unexpected diskutil output: {e}") from e


class MacOSStorageDeviceUnmounter(DeviceUnmounter):
    def unmount(self, device: StorageDevice) -> None:
        try:
            run_command(["diskutil", "unmount", device.root_directory])
        except (OSError, subprocess.SubprocessError) as e:
            raise UnmountError(
                f"Failed to unmount {device.root_directory}: {describe_failure(e)}"
            ) from e
        logger.info(f"Unmounted {device.root_directory}",
                    extra={"root_directory": device.root_directory})
