import array
import errno
from types import SimpleNamespace
from typing import Any, Dict, List, Optional
import unittest
from unittest.mock import MagicMock, patch

import usb.core

from blinkstick.const import PRODUCT_ID, VENDOR_ID, BlinkStickDevice
from blinkstick.device import BlinkStick
from blinkstick.exceptions import (
    NotConnected,
    PermissionDenied,
    ShortTransfer,
    TransportOSError,
    TransportTimeout,
)
from blinkstick.finder import (
    UDEV_RULE,
    BlinkStickFinder,
    DeviceManager,
    PermissionCallback,
    UsbDeviceManager,
    is_blinkstick,
)
from blinkstick.transport import UsbTransport, translate_usb_error
from tests import FakeTransport


def _usb_device(bus: int = 1, address: int = 5, driver_active: bool = False):
    device = MagicMock()
    device.bus = bus
    device.address = address
    device.idVendor = VENDOR_ID
    device.idProduct = PRODUCT_ID
    device.iSerialNumber = 3
    device.is_kernel_driver_active.return_value = driver_active
    return device


class TestUsbTransport(unittest.TestCase):
    def test_detaches_kernel_driver(self):
        device = _usb_device(driver_active=True)
        transport = UsbTransport(device)
        device.is_kernel_driver_active.assert_called_once_with(0)
        device.detach_kernel_driver.assert_called_once_with(0)
        self.assertEqual(transport.name, "usb:001:005")

    def test_leaves_inactive_kernel_driver(self):
        device = _usb_device(driver_active=False)
        UsbTransport(device)
        device.detach_kernel_driver.assert_not_called()

    def test_kernel_driver_not_supported(self):
        device = _usb_device()
        device.is_kernel_driver_active.side_effect = NotImplementedError
        transport = UsbTransport(device)
        self.assertTrue(transport.is_open)

    def test_detach_permission_denied(self):
        device = _usb_device()
        device.is_kernel_driver_active.side_effect = usb.core.USBError(
            "Access denied", errno=errno.EACCES
        )
        with patch("blinkstick.transport.usb.util.dispose_resources") as dispose:
            with self.assertRaises(PermissionDenied):
                UsbTransport(device)
        dispose.assert_called_once_with(device)

    def test_detach_busy_releases_device(self):
        device = _usb_device(driver_active=True)
        device.detach_kernel_driver.side_effect = usb.core.USBError(
            "Resource busy", errno=errno.EBUSY
        )
        with patch("blinkstick.transport.usb.util.dispose_resources") as dispose:
            with self.assertRaises(TransportOSError):
                UsbTransport(device)
        dispose.assert_called_once_with(device)
        device.attach_kernel_driver.assert_not_called()

    def test_close_reattaches_kernel_driver(self):
        device = _usb_device(driver_active=True)
        transport = UsbTransport(device)
        with patch("blinkstick.transport.usb.util.dispose_resources") as dispose:
            transport.close()
            transport.close()
        device.attach_kernel_driver.assert_called_once_with(0)
        dispose.assert_called_once_with(device)

    def test_close_reattach_failure_still_releases(self):
        device = _usb_device(driver_active=True)
        device.attach_kernel_driver.side_effect = usb.core.USBError(
            "No such device", errno=errno.ENODEV
        )
        transport = UsbTransport(device)
        with patch("blinkstick.transport.usb.util.dispose_resources") as dispose:
            transport.close()
        dispose.assert_called_once_with(device)
        self.assertFalse(transport.is_open)

    def test_send_feature_report(self):
        device = _usb_device()
        device.ctrl_transfer.return_value = 4
        transport = UsbTransport(device)
        transport.send_feature_report(bytearray([1, 255, 0, 0]))
        device.ctrl_transfer.assert_called_once_with(
            0x20, 0x09, 0x01, 0x00, b"\x01\xff\x00\x00", 2000
        )

    def test_send_feature_report_short(self):
        device = _usb_device()
        device.ctrl_transfer.return_value = 2
        transport = UsbTransport(device)
        with self.assertRaises(ShortTransfer):
            transport.send_feature_report(bytearray([1, 255, 0, 0]))

    def test_get_feature_report(self):
        device = _usb_device()
        device.ctrl_transfer.return_value = array.array("B", [4, 2])
        transport = UsbTransport(device, timeout_ms=500)
        self.assertEqual(transport.get_feature_report(4, 2), b"\x04\x02")
        device.ctrl_transfer.assert_called_once_with(0xA0, 0x01, 4, 0, 2, 500)

    def test_string_descriptor(self):
        device = _usb_device()
        encoded = "BlinkStick".encode("utf-16-le")
        device.ctrl_transfer.return_value = array.array(
            "B", bytes([len(encoded) + 2, 3]) + encoded + b"\x00\x00"
        )
        transport = UsbTransport(device)
        self.assertEqual(transport.string_descriptor(2), "BlinkStick")
        device.ctrl_transfer.assert_called_once_with(0x80, 0x06, 0x0302, 0, 255, 2000)
        self.assertEqual(transport.string_descriptor(0), "")

    def test_raw_device_descriptor(self):
        device = _usb_device()
        device.ctrl_transfer.return_value = array.array("B", range(18))
        transport = UsbTransport(device)
        self.assertEqual(transport.raw_device_descriptor(), bytes(range(18)))
        device.ctrl_transfer.assert_called_once_with(0x80, 0x06, 0x0100, 0, 18, 2000)
        device.ctrl_transfer.return_value = array.array("B", range(8))
        with self.assertRaises(ShortTransfer):
            transport.raw_device_descriptor()

    def test_serial(self):
        device = _usb_device()
        transport = UsbTransport(device)
        with patch(
            "blinkstick.transport.usb.util.get_string", return_value="BS000123-3.0"
        ) as get_string:
            self.assertEqual(transport.serial(), "BS000123-3.0")
        get_string.assert_called_once_with(device, 3)

    def test_serial_without_langids(self):
        device = _usb_device()
        device.langids = ()
        transport = UsbTransport(device)
        with self.assertRaises(TransportOSError):
            transport.serial()

    def test_blinkstick_without_langids(self):
        device = _usb_device()
        device.langids = ()
        device.ctrl_transfer.return_value = 4
        stick = BlinkStick(UsbTransport(device))
        self.assertEqual(stick.get_version_major(), -1)
        self.assertEqual(stick.get_version_minor(), -1)
        self.assertEqual(stick.get_blinkstick_device(), BlinkStickDevice.Unknown)
        stick.turn_off()
        device.ctrl_transfer.assert_called_once_with(
            0x20, 0x09, 0x01, 0x00, b"\x01\x00\x00\x00", 2000
        )

    def test_error_translation(self):
        device = _usb_device()
        transport = UsbTransport(device)
        device.ctrl_transfer.side_effect = usb.core.USBTimeoutError(
            "Operation timed out", errno=errno.ETIMEDOUT
        )
        with self.assertRaises(TransportTimeout):
            transport.get_feature_report(1, 33)
        device.ctrl_transfer.side_effect = usb.core.USBError(
            "Access denied", errno=errno.EACCES
        )
        with self.assertRaises(PermissionDenied):
            transport.send_feature_report(bytearray([1, 0, 0, 0]))
        device.ctrl_transfer.side_effect = usb.core.USBError(
            "Pipe error", errno=errno.EPIPE
        )
        with self.assertRaises(TransportOSError) as cm:
            transport.get_feature_report(4, 2)
        self.assertEqual(cm.exception.code, errno.EPIPE)

    def test_translate_usb_error(self):
        self.assertIsInstance(
            translate_usb_error(usb.core.USBError("No device", errno=errno.ENODEV)),
            TransportOSError,
        )
        self.assertIsInstance(
            translate_usb_error(usb.core.USBError("Not permitted", errno=errno.EPERM)),
            PermissionDenied,
        )

    def test_close(self):
        device = _usb_device()
        transport = UsbTransport(device)
        with patch("blinkstick.transport.usb.util.dispose_resources") as dispose:
            transport.close()
            transport.close()
        dispose.assert_called_once_with(device)
        self.assertFalse(transport.is_open)
        with self.assertRaises(NotConnected):
            transport.send_feature_report(bytearray([1, 0, 0, 0]))
        with self.assertRaises(NotConnected):
            transport.serial()

    def test_blinkstick_over_usb(self):
        device = _usb_device()
        device.ctrl_transfer.return_value = 4
        with patch("blinkstick.transport.usb.util.dispose_resources"):
            with BlinkStick(UsbTransport(device)) as stick:
                stick.set_color("red")
        device.ctrl_transfer.assert_called_once_with(
            0x20, 0x09, 0x01, 0x00, b"\x01\xff\x00\x00", 2000
        )


class TestUsbDeviceManager(unittest.TestCase):
    def test_devices(self):
        found = [_usb_device(), _usb_device(address=6)]
        with patch("blinkstick.finder.usb.core.find", return_value=iter(found)) as find:
            self.assertEqual(UsbDeviceManager().devices(), found)
        find.assert_called_once_with(find_all=True)

    def test_no_backend(self):
        with patch(
            "blinkstick.finder.usb.core.find",
            side_effect=usb.core.NoBackendError("No backend available"),
        ):
            with self.assertRaises(TransportOSError):
                UsbDeviceManager().devices()

    def test_has_permission(self):
        manager = UsbDeviceManager()
        device = _usb_device(bus=2, address=7)
        self.assertEqual(manager.device_node(device), "/dev/bus/usb/002/007")
        with patch("blinkstick.finder.sys") as mock_sys, patch(
            "blinkstick.finder.os.path.exists", return_value=True
        ), patch("blinkstick.finder.os.access", return_value=False) as access:
            mock_sys.platform = "linux"
            self.assertFalse(manager.has_permission(device))
            access.return_value = True
            self.assertTrue(manager.has_permission(device))
            mock_sys.platform = "darwin"
            access.return_value = False
            self.assertTrue(manager.has_permission(device))

    def test_request_permission_denied(self):
        manager = UsbDeviceManager()
        device = _usb_device()
        callback = MagicMock()
        with patch.object(manager, "has_permission", return_value=False):
            with self.assertLogs("blinkstick.finder", level="WARNING") as logs:
                manager.request_permission(device, callback)
        callback.assert_called_once_with(device, False)
        self.assertIn(UDEV_RULE, logs.output[0])

    def test_request_permission_granted(self):
        manager = UsbDeviceManager()
        device = _usb_device()
        callback = MagicMock()
        with patch.object(manager, "has_permission", return_value=True):
            manager.request_permission(device, callback)
        callback.assert_called_once_with(device, True)

    def test_open(self):
        device = _usb_device()
        transport = UsbDeviceManager().open(device, timeout_ms=750)
        self.assertIsInstance(transport, UsbTransport)
        self.assertEqual(transport.timeout_ms, 750)


class FakeDeviceManager(DeviceManager):
    def __init__(self, transports: Dict[str, FakeTransport], permitted=True) -> None:
        self.transports = transports
        self.permitted = permitted
        self.attached: List[Any] = [
            SimpleNamespace(idVendor=VENDOR_ID, idProduct=PRODUCT_ID, serial=serial)
            for serial in transports
        ]
        self.opened: List[Any] = []

    def devices(self) -> List[Any]:
        return self.attached

    def has_permission(self, device: Any) -> bool:
        return self.permitted

    def open(self, device: Any, timeout_ms: int = 2000) -> FakeTransport:
        self.opened.append((device, timeout_ms))
        return self.transports[device.serial]

    def request_permission(
        self, device: Any, callback: Optional[PermissionCallback] = None
    ) -> None:
        if callback is not None:
            callback(device, self.permitted)


class TestBlinkStickFinder(unittest.TestCase):
    def setUp(self):
        self.first = FakeTransport(serial="BS000001-1.0")
        self.second = FakeTransport(serial="BS000002-3.0")
        self.manager = FakeDeviceManager(
            {"BS000001-1.0": self.first, "BS000002-3.0": self.second}
        )
        self.manager.attached.insert(
            0, SimpleNamespace(idVendor=0x046D, idProduct=0xC077, serial="mouse")
        )
        self.finder = BlinkStickFinder(self.manager, timeout_ms=1000)

    def test_is_blinkstick(self):
        self.assertFalse(is_blinkstick(self.manager.attached[0]))
        self.assertTrue(is_blinkstick(self.manager.attached[1]))

    def test_find_all(self):
        found = self.finder.find_all()
        self.assertEqual([d.serial for d in found], ["BS000001-1.0", "BS000002-3.0"])
        self.assertEqual(self.manager.opened, [])

    def test_find_first(self):
        self.assertEqual(self.finder.find_first().serial, "BS000001-1.0")
        self.assertIsNone(BlinkStickFinder(FakeDeviceManager({})).find_first())

    def test_open(self):
        candidate = self.finder.find_first()
        stick = self.finder.open(candidate)
        self.assertIs(stick.transport, self.first)
        self.assertEqual(self.manager.opened, [(candidate, 1000)])

    def test_open_without_permission(self):
        self.manager.permitted = False
        candidate = self.finder.find_first()
        with self.assertRaises(PermissionDenied):
            self.finder.open(candidate)
        self.assertEqual(self.manager.opened, [])
        callback = MagicMock()
        self.finder.request_permission(candidate, callback)
        callback.assert_called_once_with(candidate, False)

    def test_find_by_serial(self):
        stick = self.finder.find_by_serial("BS000002-3.0")
        self.assertIsNotNone(stick)
        self.assertIs(stick.transport, self.second)
        self.assertTrue(self.first.closed)
        self.assertFalse(self.second.closed)
        stick.set_colors(0, [1, 2, 3])
        self.assertEqual(self.second.frames[0][:5], b"\x06\x00\x01\x02\x03")

    def test_find_by_serial_missing(self):
        self.assertIsNone(self.finder.find_by_serial("BS999999-1.0"))
        self.assertTrue(self.first.closed)
        self.assertTrue(self.second.closed)

    def test_find_by_serial_skips_unreadable(self):
        self.first._serial = None
        stick = self.finder.find_by_serial("BS000002-3.0")
        self.assertIs(stick.transport, self.second)
        self.assertTrue(self.first.closed)
