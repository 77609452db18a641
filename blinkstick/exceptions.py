"""BlinkStick exceptions."""

from typing import Optional


class BlinkStickError(Exception):
    """Base class for all BlinkStick errors."""


class NotConnected(BlinkStickError):
    """The device handle has no open transport."""


class TransportError(BlinkStickError, OSError):
    """A USB transfer to or from the device failed."""


class TransportTimeout(TransportError):
    """The device did not complete the transfer in time."""


class ShortTransfer(TransportError):
    """The device moved fewer bytes than the report requires."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"short transfer: expected {expected} bytes, got {actual}")
        self.expected = expected
        self.actual = actual


class TransportOSError(TransportError):
    """The host USB stack reported an error."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code


class PermissionDenied(TransportError):
    """The host refused access to the device."""


class UnknownColorName(BlinkStickError, ValueError):
    """The color name is not a CSS color and not a #rrggbb string."""


class MalformedColor(BlinkStickError, ValueError):
    """The hex color string is not of the form #rrggbb."""


class InvalidArgument(BlinkStickError, ValueError):
    """An argument is outside the range the device accepts."""
