"""Init file for BlinkStick"""
from .const import BlinkStickDevice, Mode
from .device import BlinkStick
from .exceptions import (
    BlinkStickError,
    InvalidArgument,
    MalformedColor,
    NotConnected,
    PermissionDenied,
    ShortTransfer,
    TransportError,
    TransportTimeout,
    UnknownColorName,
)
from .finder import BlinkStickFinder

__all__ = [
    "BlinkStick",
    "BlinkStickDevice",
    "BlinkStickError",
    "BlinkStickFinder",
    "InvalidArgument",
    "MalformedColor",
    "Mode",
    "NotConnected",
    "PermissionDenied",
    "ShortTransfer",
    "TransportError",
    "TransportTimeout",
    "UnknownColorName",
]
