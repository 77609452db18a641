"""USB transport for BlinkStick devices.

The rest of the library only talks to the device through a Transport:
two HID control transfer primitives, string descriptors and the serial.
"""

from abc import ABC, abstractmethod
import errno
import logging
from typing import Any, Callable, Optional, Sequence, TypeVar, cast

import usb.core  # type: ignore
import usb.util  # type: ignore

from .const import (
    DEFAULT_TIMEOUT_MS,
    DESCRIPTOR_TYPE_DEVICE,
    DESCRIPTOR_TYPE_STRING,
    DEVICE_DESCRIPTOR_LEN,
    REQUEST_GET_DESCRIPTOR,
    REQUEST_GET_REPORT,
    REQUEST_SET_REPORT,
    REQUEST_TYPE_GET_DESCRIPTOR,
    REQUEST_TYPE_GET_REPORT,
    REQUEST_TYPE_SET_REPORT,
    STRING_DESCRIPTOR_MAX_LEN,
)
from .exceptions import (
    NotConnected,
    PermissionDenied,
    ShortTransfer,
    TransportOSError,
    TransportTimeout,
)
from .utils import bytes_to_hex

_LOGGER = logging.getLogger(__name__)

HID_INTERFACE = 0
PERMISSION_ERRNOS = {errno.EACCES, errno.EPERM}

WrapFuncType = TypeVar("WrapFuncType", bound=Callable[..., Any])


def translate_usb_error(ex: "usb.core.USBError") -> Exception:
    """Map a pyusb error onto the transport error hierarchy."""
    if isinstance(ex, usb.core.USBTimeoutError):
        return TransportTimeout(str(ex))
    if ex.errno in PERMISSION_ERRNOS:
        return PermissionDenied(str(ex))
    return TransportOSError(str(ex), ex.errno)


def _usb_transfer(func: WrapFuncType) -> WrapFuncType:
    """Define a wrapper that requires an open transport and maps USB errors."""

    def _transfer_wrap(self: "UsbTransport", *args: Any, **kwargs: Any) -> Any:
        if not self.is_open:
            raise NotConnected(f"{self.name}: transport is closed")
        try:
            return func(self, *args, **kwargs)
        except usb.core.USBError as ex:
            _LOGGER.debug("%s: usb error while calling %s: %s", self.name, func, ex)
            raise translate_usb_error(ex) from ex

    return cast(WrapFuncType, _transfer_wrap)


class Transport(ABC):
    """A HID control channel to one device."""

    timeout_ms: int = DEFAULT_TIMEOUT_MS

    @property
    def name(self) -> str:
        """A short identifier used in log messages."""
        return self.__class__.__name__

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """True until close() is called."""

    @abstractmethod
    def control_out(
        self,
        request_type: int,
        request: int,
        value: int,
        index: int,
        data: bytes,
        timeout_ms: Optional[int] = None,
    ) -> int:
        """Perform an OUT control transfer and return the bytes written."""

    @abstractmethod
    def control_in(
        self,
        request_type: int,
        request: int,
        value: int,
        index: int,
        length: int,
        timeout_ms: Optional[int] = None,
    ) -> bytes:
        """Perform an IN control transfer and return the bytes read."""

    @abstractmethod
    def serial(self) -> str:
        """The serial number string of the device."""

    @abstractmethod
    def close(self) -> None:
        """Release the device."""

    def send_feature_report(self, frame: Sequence[int]) -> None:
        """Send a HID feature report, frame[0] being the report id."""
        data = bytes(frame)
        _LOGGER.debug("%s => %s (%d)", self.name, bytes_to_hex(data), len(data))
        written = self.control_out(
            REQUEST_TYPE_SET_REPORT,
            REQUEST_SET_REPORT,
            data[0],
            0,
            data,
            self.timeout_ms,
        )
        if written != len(data):
            raise ShortTransfer(len(data), written)

    def get_feature_report(self, report_id: int, length: int) -> bytes:
        """Read a HID feature report of up to length bytes."""
        data = self.control_in(
            REQUEST_TYPE_GET_REPORT,
            REQUEST_GET_REPORT,
            report_id,
            0,
            length,
            self.timeout_ms,
        )
        _LOGGER.debug("%s <= %s (%d)", self.name, bytes_to_hex(data), len(data))
        return data

    def raw_device_descriptor(self) -> bytes:
        """The 18 byte standard device descriptor."""
        data = self.control_in(
            REQUEST_TYPE_GET_DESCRIPTOR,
            REQUEST_GET_DESCRIPTOR,
            DESCRIPTOR_TYPE_DEVICE << 8,
            0,
            DEVICE_DESCRIPTOR_LEN,
            self.timeout_ms,
        )
        if len(data) < DEVICE_DESCRIPTOR_LEN:
            raise ShortTransfer(DEVICE_DESCRIPTOR_LEN, len(data))
        return data

    def string_descriptor(self, index: int) -> str:
        """Read a string descriptor and decode it from UTF-16LE."""
        if not index:
            return ""
        data = self.control_in(
            REQUEST_TYPE_GET_DESCRIPTOR,
            REQUEST_GET_DESCRIPTOR,
            (DESCRIPTOR_TYPE_STRING << 8) | index,
            0,
            STRING_DESCRIPTOR_MAX_LEN,
            self.timeout_ms,
        )
        if len(data) < 2:
            raise ShortTransfer(2, len(data))
        # bLength counts the two header bytes
        end = min(data[0], len(data))
        return bytes(data[2:end]).decode("utf-16-le", errors="replace")

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class UsbTransport(Transport):
    """Transport over libusb using pyusb."""

    def __init__(
        self,
        device: "usb.core.Device",
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        detach_kernel_driver: bool = True,
    ) -> None:
        self._device: Optional["usb.core.Device"] = device
        self._name = f"usb:{device.bus:03d}:{device.address:03d}"
        self._detached = False
        self.timeout_ms = timeout_ms
        if detach_kernel_driver:
            try:
                self._detach_kernel_driver()
            except BaseException:
                self._release()
                raise

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_open(self) -> bool:
        return self._device is not None

    @property
    def device(self) -> "usb.core.Device":
        assert self._device is not None
        return self._device

    @_usb_transfer
    def _detach_kernel_driver(self) -> None:
        # Linux binds usbhid to the device; libusb needs it released
        # before it will issue control transfers.
        try:
            if self.device.is_kernel_driver_active(HID_INTERFACE):
                _LOGGER.debug("%s: detaching kernel driver", self.name)
                self.device.detach_kernel_driver(HID_INTERFACE)
                self._detached = True
        except NotImplementedError:
            pass

    @_usb_transfer
    def control_out(
        self,
        request_type: int,
        request: int,
        value: int,
        index: int,
        data: bytes,
        timeout_ms: Optional[int] = None,
    ) -> int:
        return int(
            self.device.ctrl_transfer(
                request_type,
                request,
                value,
                index,
                data,
                timeout_ms if timeout_ms is not None else self.timeout_ms,
            )
        )

    @_usb_transfer
    def control_in(
        self,
        request_type: int,
        request: int,
        value: int,
        index: int,
        length: int,
        timeout_ms: Optional[int] = None,
    ) -> bytes:
        return bytes(
            self.device.ctrl_transfer(
                request_type,
                request,
                value,
                index,
                length,
                timeout_ms if timeout_ms is not None else self.timeout_ms,
            )
        )

    @_usb_transfer
    def serial(self) -> str:
        if not self.device.iSerialNumber:
            return ""
        try:
            return usb.util.get_string(self.device, self.device.iSerialNumber) or ""
        except ValueError as ex:
            # pyusb raises ValueError when the langid table is unreadable
            raise TransportOSError(f"{self.name}: unable to read serial: {ex}") from ex

    def _release(self) -> None:
        device = self._device
        if device is None:
            return
        self._device = None
        if self._detached:
            try:
                device.attach_kernel_driver(HID_INTERFACE)
            except (usb.core.USBError, NotImplementedError) as ex:
                _LOGGER.debug("%s: unable to reattach kernel driver: %s", self.name, ex)
        try:
            usb.util.dispose_resources(device)
        except usb.core.USBError as ex:
            _LOGGER.debug("%s: error releasing device: %s", self.name, ex)

    def close(self) -> None:
        """Hand the device back to the kernel driver and free pyusb resources."""
        self._release()
