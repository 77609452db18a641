from abc import ABC, abstractmethod
import logging
import os
import sys
from typing import Any, Callable, List, Optional

import usb.core  # type: ignore

from .const import DEFAULT_TIMEOUT_MS, PRODUCT_ID, VENDOR_ID
from .device import BlinkStick
from .exceptions import BlinkStickError, PermissionDenied, TransportOSError
from .transport import Transport, UsbTransport, translate_usb_error

_LOGGER = logging.getLogger(__name__)

PermissionCallback = Callable[[Any, bool], None]

UDEV_RULE = (
    f'SUBSYSTEM=="usb", ATTR{{idVendor}}=="{VENDOR_ID:04x}", '
    f'ATTR{{idProduct}}=="{PRODUCT_ID:04x}", MODE:="0666"'
)
UDEV_RULES_PATH = "/etc/udev/rules.d/85-blinkstick.rules"


class DeviceManager(ABC):
    """The host side view of connected USB devices."""

    @abstractmethod
    def devices(self) -> List[Any]:
        """Return every connected USB device."""

    @abstractmethod
    def has_permission(self, device: Any) -> bool:
        """Return True if this process may open the device."""

    @abstractmethod
    def open(self, device: Any, timeout_ms: int = DEFAULT_TIMEOUT_MS) -> Transport:
        """Open a transport to the device."""

    @abstractmethod
    def request_permission(
        self, device: Any, callback: Optional[PermissionCallback] = None
    ) -> None:
        """Ask the host for access to the device.

        The callback is invoked with the device and whether access is
        granted once the host has answered.
        """


class UsbDeviceManager(DeviceManager):
    """Device manager backed by libusb through pyusb."""

    def devices(self) -> List[Any]:
        try:
            return list(usb.core.find(find_all=True))
        except usb.core.NoBackendError as ex:
            raise TransportOSError(f"No libusb backend available: {ex}") from ex
        except usb.core.USBError as ex:
            raise translate_usb_error(ex) from ex

    @staticmethod
    def device_node(device: Any) -> str:
        return f"/dev/bus/usb/{device.bus:03d}/{device.address:03d}"

    def has_permission(self, device: Any) -> bool:
        if not sys.platform.startswith("linux"):
            return True
        node = self.device_node(device)
        if not os.path.exists(node):
            return True
        return os.access(node, os.R_OK | os.W_OK)

    def open(self, device: Any, timeout_ms: int = DEFAULT_TIMEOUT_MS) -> Transport:
        return UsbTransport(device, timeout_ms=timeout_ms)

    def request_permission(
        self, device: Any, callback: Optional[PermissionCallback] = None
    ) -> None:
        # libusb cannot prompt the user, access comes from udev
        granted = self.has_permission(device)
        if not granted:
            _LOGGER.warning(
                "No permission to access %s, add the following rule to %s "
                "and replug the device: %s",
                self.device_node(device),
                UDEV_RULES_PATH,
                UDEV_RULE,
            )
        if callback is not None:
            callback(device, granted)


def is_blinkstick(device: Any) -> bool:
    return bool(device.idVendor == VENDOR_ID and device.idProduct == PRODUCT_ID)


class BlinkStickFinder:
    """Find and open BlinkStick devices."""

    def __init__(
        self,
        manager: Optional[DeviceManager] = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> None:
        self.manager: DeviceManager = manager or UsbDeviceManager()
        self.timeout_ms = timeout_ms

    def find_all(self) -> List[Any]:
        """Return every connected BlinkStick, unopened."""
        found = [device for device in self.manager.devices() if is_blinkstick(device)]
        _LOGGER.debug("Found %d BlinkStick device(s)", len(found))
        return found

    def find_first(self) -> Optional[Any]:
        found = self.find_all()
        return found[0] if found else None

    def open(self, candidate: Any) -> BlinkStick:
        """Open a candidate returned by find_all or find_first.

        Raises PermissionDenied when the host has not granted access;
        call request_permission and open again once it has.
        """
        if not self.manager.has_permission(candidate):
            raise PermissionDenied(f"No permission to open {candidate!r}")
        return BlinkStick(self.manager.open(candidate, timeout_ms=self.timeout_ms))

    def request_permission(
        self, candidate: Any, callback: Optional[PermissionCallback] = None
    ) -> None:
        self.manager.request_permission(candidate, callback)

    def find_by_serial(self, serial: str) -> Optional[BlinkStick]:
        """Open the BlinkStick with the given serial, if connected."""
        for candidate in self.find_all():
            try:
                stick = self.open(candidate)
            except BlinkStickError as ex:
                _LOGGER.debug("Skipping %r: %s", candidate, ex)
                continue
            matched = False
            try:
                matched = stick.get_serial() == serial
            except BlinkStickError as ex:
                _LOGGER.debug("Unable to read serial of %r: %s", candidate, ex)
            finally:
                if not matched:
                    stick.close()
            if matched:
                return stick
        return None
