import sys

from ..core.detector import PlatformCapabilities
from ..core.errors import UnsupportedPlatformError


def detect_capabilities(platform: str = sys.platform) -> PlatformCapabilities:
    """Pick the enumerator/unmounter pair for `platform` (a sys.platform value)."""
    # Platform modules are imported lazily: pyudev only exists on Linux.
    if platform.startswith('linux'):
        from .linux import LinuxStorageDeviceDetector, LinuxStorageDeviceUnmounter
        return PlatformCapabilities(LinuxStorageDeviceDetector(), LinuxStorageDeviceUnmounter(), 'linux')
    elif platform == 'win32':
        from .windows import WindowsStorageDeviceDetector, WindowsStorageDeviceUnmounter
        return PlatformCapabilities(WindowsStorageDeviceDetector(), WindowsStorageDeviceUnmounter(), 'win32')
    elif platform == 'darwin':
        from .macos import MacOSStorageDeviceDetector, MacOSStorageDeviceUnmounter
        return PlatformCapabilities(MacOSStorageDeviceDetector(), MacOSStorageDeviceUnmounter(), 'darwin')
    raise UnsupportedPlatformError(f"Unsupported platform: {platform}")
