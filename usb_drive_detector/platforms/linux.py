import subprocess
from typing import List, Optional

import psutil
import pyudev

from ..core.detector import DeviceEnumerator, DeviceUnmounter
from ..core.errors import EnumerationError, UnmountError
from ..core.events import StorageDevice
from ..core.logger import logger
from .commands import describe_failure, run_command


def is_usb_partition(properties) -> bool:
    """udev properties of a block device -> True if it sits on the USB bus."""
    return properties.get('ID_BUS') == 'usb'


def build_device(partition, properties, total_size: Optional[int] = None) -> StorageDevice:
    return StorageDevice(
        root_directory=partition.mountpoint,
        device_name=properties.get('ID_MODEL') or properties.get('ID_SERIAL'),
        volume_name=properties.get('ID_FS_LABEL') or None,
        uuid=properties.get('ID_FS_UUID') or None,
        device_path=partition.device,
        total_size=total_size
    )


class LinuxStorageDeviceDetector(DeviceEnumerator):
    """
    Mounted partitions (psutil) whose udev block device reports ID_BUS=usb.
    """

    def __init__(self):
        self.context = pyudev.Context()

    def enumerate(self) -> List[StorageDevice]:
        try:
            partitions = psutil.disk_partitions(all=False)
        except OSError as e:
            raise EnumerationError(f"Unable to list mounted partitions: {e}") from e

        devices = []
        for part in partitions:
            if not part.device.startswith('/dev/'):
                continue
            properties = self._udev_properties(part.device)
            if properties is None or not is_usb_partition(properties):
                continue
            devices.append(build_device(part, properties, self._total_size(part.mountpoint)))
        return devices

    def _udev_properties(self, device_file: str):
        try:
            return pyudev.Devices.from_device_file(self.context, device_file).properties
        except (pyudev.DeviceNotFoundError, OSError, ValueError) as e:
            # Not a udev device or permission denied, skip
            logger.debug(f"No udev entry for {device_file}: {e}")
            return None

    def _total_size(self, mountpoint: str) -> Optional[int]:
        try:
            return psutil.disk_usage(mountpoint).total
        except OSError:
            return None


class LinuxStorageDeviceUnmounter(DeviceUnmounter):
    def unmount(self, device: StorageDevice) -> None:
        try:
            run_command(["umount", device.root_directory])
        except (OSError, subprocess.SubprocessError) as e:
            raise UnmountError(
                f"Failed to unmount {device.root_directory}: {describe_failure(e)}"
            ) from e
        logger.info(f"Unmounted {device.root_directory}",
                    extra={"root_directory": device.root_directory})
