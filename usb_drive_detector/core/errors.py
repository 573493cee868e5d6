from typing import Any, Callable


class DetectorError(Exception):
    """Base class for every error raised by usb_drive_detector."""


class ConfigurationError(DetectorError, ValueError):
    """Invalid configuration value, e.g. a polling interval <= 0."""


class EnumerationError(DetectorError):
    """The platform probe failed to list the attached storage devices."""


class UnmountError(DetectorError, OSError):
    """The OS refused or failed to unmount a device."""


class DetectorClosedError(DetectorError):
    """Operation attempted on a manager that has already been closed."""


class UnsupportedPlatformError(DetectorError):
    """No enumerator/unmounter pair exists for the running platform."""


class ObserverError(DetectorError):
    """
    An observer raised while handling an event.

    Never raised by the dispatcher; instances are returned from
    EventDispatcher.dispatch so callers can inspect the failures.
    """

    def __init__(self, observer: Callable[..., Any], event: Any, cause: BaseException):
        super().__init__(f"Observer {observer!r} failed on {event!r}: {cause!r}")
        self.observer = observer
        self.event = event
        self.cause = cause
