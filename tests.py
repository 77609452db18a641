import unittest
from typing import Dict, List, Optional, Tuple
from unittest.mock import patch

import pytest

import blinkstick
from blinkstick.const import (
    COLOR_UNKNOWN,
    MODE_UNKNOWN,
    REQUEST_TYPE_GET_DESCRIPTOR,
    REQUEST_TYPE_GET_REPORT,
    BlinkStickDevice,
    Mode,
)
from blinkstick.exceptions import (
    InvalidArgument,
    MalformedColor,
    NotConnected,
    ShortTransfer,
    TransportError,
    TransportTimeout,
    UnknownColorName,
)
from blinkstick.protocol import (
    ProtocolBlinkStick,
    determine_max_leds,
    determine_report_id,
)
from blinkstick.transport import Transport
from blinkstick.utils import (
    color_to_rgb,
    device_type_from_version,
    get_color_names_list,
    hex_to_rgb,
    name_to_hex,
    pack,
    parse_version,
    remap_byte,
    rgb_to_hex,
    unpack,
)

SERIAL_BLINKSTICK = "BS000123-1.0"
SERIAL_PRO = "BS000234-2.1"
SERIAL_STRIP = "BS000456-3.0"

MANUFACTURER = "Agile Innovative Ltd"
PRODUCT = "BlinkStick"


def _device_descriptor() -> bytes:
    descriptor = bytearray(18)
    descriptor[0] = 18
    descriptor[1] = 0x01
    descriptor[14] = 1
    descriptor[15] = 2
    descriptor[16] = 3
    return bytes(descriptor)


class FakeTransport(Transport):
    """A transport that records every transfer.

    Feature reports written are kept per report id and returned when the
    same report is read back, like the device firmware does.
    """

    def __init__(
        self,
        serial: Optional[str] = SERIAL_BLINKSTICK,
        reports: Optional[Dict[int, bytes]] = None,
        descriptor: Optional[bytes] = None,
        strings: Optional[Dict[int, str]] = None,
    ) -> None:
        self._serial = serial
        self.reports: Dict[int, bytes] = dict(reports or {})
        self.descriptor = descriptor
        self.strings = strings or {}
        self.sent: List[Tuple[int, int, int, int, bytes, Optional[int]]] = []
        self.reads: List[Tuple[int, int, int, int, int, Optional[int]]] = []
        self.serial_reads = 0
        self.write_error: Optional[Exception] = None
        self.short_write = False
        self.closed = False

    @property
    def is_open(self) -> bool:
        return not self.closed

    @property
    def frames(self) -> List[bytes]:
        return [call[4] for call in self.sent]

    def control_out(
        self, request_type, request, value, index, data, timeout_ms=None
    ):
        if self.write_error is not None:
            raise self.write_error
        self.sent.append(
            (request_type, request, value, index, bytes(data), timeout_ms)
        )
        self.reports[value] = bytes(data)
        if self.short_write:
            return len(data) - 1
        return len(data)

    def control_in(
        self, request_type, request, value, index, length, timeout_ms=None
    ):
        self.reads.append((request_type, request, value, index, length, timeout_ms))
        if request_type == REQUEST_TYPE_GET_REPORT:
            if value not in self.reports:
                raise TransportTimeout("timed out")
            return self.reports[value][:length]
        assert request_type == REQUEST_TYPE_GET_DESCRIPTOR
        if value >> 8 == 0x01:
            if self.descriptor is None:
                raise TransportTimeout("timed out")
            return self.descriptor[:length]
        encoded = self.strings[value & 0xFF].encode("utf-16-le")
        return bytes([len(encoded) + 2, 0x03]) + encoded

    def serial(self) -> str:
        self.serial_reads += 1
        if self._serial is None:
            raise TransportTimeout("timed out")
        return self._serial

    def close(self) -> None:
        self.closed = True


class TestUtils(unittest.TestCase):
    def test_remap_byte_identity_at_full_brightness(self):
        for value in range(256):
            self.assertEqual(remap_byte(value, 255), value)

    def test_remap_byte_bounds_and_monotonic(self):
        for limit in range(256):
            self.assertEqual(remap_byte(0, limit), 0)
            self.assertEqual(remap_byte(255, limit), limit)
            previous = 0
            for value in range(256):
                remapped = remap_byte(value, limit)
                self.assertGreaterEqual(remapped, previous)
                self.assertLessEqual(remapped, limit)
                previous = remapped

    def test_remap_byte_rounds(self):
        self.assertEqual(remap_byte(255, 128), 128)
        self.assertEqual(remap_byte(128, 128), 64)
        # 1 * 200 / 255 = 0.78
        self.assertEqual(remap_byte(1, 200), 1)
        # 1 * 100 / 255 = 0.39
        self.assertEqual(remap_byte(1, 100), 0)

    def test_pack_unpack(self):
        self.assertEqual(pack(0x12, 0x34, 0x56), 0xFF123456)
        self.assertEqual(pack(0, 0, 0), 0xFF000000)
        self.assertEqual(unpack(0xFF123456), (0x12, 0x34, 0x56))
        self.assertEqual(unpack(0x00ABCDEF), (0xAB, 0xCD, 0xEF))
        for rgb in [(0, 0, 0), (255, 255, 255), (1, 128, 254)]:
            self.assertEqual(unpack(pack(*rgb)), rgb)

    def test_hex_to_rgb(self):
        self.assertEqual(hex_to_rgb("#6495ed"), 0xFF6495ED)
        self.assertEqual(hex_to_rgb("#6495ED"), 0xFF6495ED)
        self.assertEqual(hex_to_rgb("#000000"), 0xFF000000)
        self.assertEqual(hex_to_rgb(rgb_to_hex(12, 34, 56)), pack(12, 34, 56))
        for bad in ["6495ed", "#6495e", "#6495edd", "#fff", "#6495eg", ""]:
            with self.assertRaises(MalformedColor):
                hex_to_rgb(bad)

    def test_name_to_hex(self):
        self.assertEqual(name_to_hex("cornflowerblue"), "#6495ed")
        self.assertEqual(name_to_hex("red"), "#ff0000")
        with self.assertRaises(UnknownColorName):
            name_to_hex("CornflowerBlue")
        with self.assertRaises(UnknownColorName):
            name_to_hex("notacolor")

    def test_color_to_rgb(self):
        self.assertEqual(color_to_rgb("red"), (255, 0, 0))
        self.assertEqual(color_to_rgb(" #00ff00 "), (0, 255, 0))
        self.assertEqual(color_to_rgb(0x0000FF), (0, 0, 255))
        self.assertEqual(color_to_rgb(0xFF102030), (0x10, 0x20, 0x30))
        self.assertEqual(color_to_rgb((1, 2, 3)), (1, 2, 3))
        self.assertEqual(color_to_rgb([1, 2, 3]), (1, 2, 3))
        with self.assertRaises(InvalidArgument):
            color_to_rgb((256, 0, 0))
        with self.assertRaises(InvalidArgument):
            color_to_rgb((1, 2))
        with self.assertRaises(InvalidArgument):
            color_to_rgb(True)
        with self.assertRaises(UnknownColorName):
            color_to_rgb("blurple")
        with self.assertRaises(MalformedColor):
            color_to_rgb("#12")

    def test_rgb_to_hex(self):
        self.assertEqual(rgb_to_hex(0x64, 0x95, 0xED), "#6495ED")
        self.assertEqual(rgb_to_hex(0, 0, 0), "#000000")

    def test_get_color_names_list(self):
        names = get_color_names_list()
        self.assertGreaterEqual(len(names), 140)
        self.assertEqual(names, sorted(names))
        self.assertIn("cornflowerblue", names)

    def test_parse_version(self):
        self.assertEqual(parse_version(SERIAL_BLINKSTICK), (1, 0))
        self.assertEqual(parse_version(SERIAL_PRO), (2, 1))
        self.assertEqual(parse_version("X-3.0"), (3, 0))
        self.assertEqual(parse_version("3.0"), (3, 0))
        self.assertEqual(parse_version("ab"), (-1, -1))
        self.assertEqual(parse_version(""), (-1, -1))
        self.assertEqual(parse_version("BS000123-x.y"), (-1, -1))

    def test_device_type_from_version(self):
        self.assertEqual(device_type_from_version(1), BlinkStickDevice.BlinkStick)
        self.assertEqual(device_type_from_version(2), BlinkStickDevice.BlinkStickPro)
        self.assertEqual(
            device_type_from_version(3), BlinkStickDevice.BlinkStickStripOrSquare
        )
        self.assertEqual(device_type_from_version(4), BlinkStickDevice.Unknown)
        self.assertEqual(device_type_from_version(-1), BlinkStickDevice.Unknown)


class TestProtocol(unittest.TestCase):
    def test_report_capacity_table(self):
        expected = {
            0: (6, 8),
            1: (6, 8),
            24: (6, 8),
            25: (7, 16),
            48: (7, 16),
            49: (8, 32),
            96: (8, 32),
            97: (9, 64),
            192: (9, 64),
            193: (10, 64),
            384: (10, 64),
            385: (10, 64),
        }
        for length, (report_id, leds) in expected.items():
            self.assertEqual(determine_report_id(length), report_id, length)
            self.assertEqual(determine_max_leds(length), leds, length)

    def test_construct_colors_frame_layout(self):
        protocol = ProtocolBlinkStick()
        for length in range(385):
            data = [(i * 7 + 1) & 0xFF for i in range(length)]
            msg = protocol.construct_colors(2, data)
            capacity = determine_max_leds(length) * 3
            used = min(length, capacity)
            self.assertEqual(len(msg), 2 + capacity)
            self.assertEqual(msg[0], determine_report_id(length))
            self.assertEqual(msg[1], 2)
            self.assertEqual(list(msg[2 : 2 + used]), data[:used])
            self.assertEqual(set(msg[2 + used :]) - {0}, set())

    def test_construct_colors_single_led(self):
        msg = ProtocolBlinkStick().construct_colors(0, [0, 0, 255])
        self.assertEqual(len(msg), 26)
        self.assertEqual(msg, bytearray([6, 0, 0, 0, 255] + [0] * 21))

    def test_construct_colors_empty(self):
        msg = ProtocolBlinkStick().construct_colors(1, [])
        self.assertEqual(msg, bytearray([6, 1] + [0] * 24))

    def test_construct_colors_clamps_to_64_leds(self):
        data = [1] * 300
        msg = ProtocolBlinkStick().construct_colors(0, data)
        self.assertEqual(msg[0], 10)
        self.assertEqual(len(msg), 194)
        self.assertEqual(list(msg[2:]), [1] * 192)

    def test_construct_colors_brightness(self):
        protocol = ProtocolBlinkStick(brightness_limit=128)
        msg = protocol.construct_colors(0, [255, 0, 255, 128])
        self.assertEqual(list(msg[:6]), [6, 0, 128, 0, 128, 64])

    def test_construct_colors_rejects_bad_bytes(self):
        with self.assertRaises(InvalidArgument):
            ProtocolBlinkStick().construct_colors(0, [0, 256, 0])
        with self.assertRaises(InvalidArgument):
            ProtocolBlinkStick().construct_colors(256, [0, 0, 0])

    def test_construct_color(self):
        protocol = ProtocolBlinkStick()
        for value in range(256):
            self.assertEqual(
                protocol.construct_color(value, 255 - value, value),
                bytearray([1, value, 255 - value, value]),
            )
        protocol.brightness_limit = 128
        self.assertEqual(
            protocol.construct_color(255, 255, 255), bytearray([1, 128, 128, 128])
        )

    def test_construct_indexed_color(self):
        protocol = ProtocolBlinkStick()
        self.assertEqual(
            protocol.construct_indexed_color(1, 7, 10, 20, 30),
            bytearray([5, 1, 7, 10, 20, 30]),
        )
        # the firmware ignores channels past 2, they are still sent
        self.assertEqual(
            protocol.construct_indexed_color(3, 0, 0, 0, 0),
            bytearray([5, 3, 0, 0, 0, 0]),
        )
        protocol.brightness_limit = 0
        self.assertEqual(
            protocol.construct_indexed_color(0, 1, 255, 255, 255),
            bytearray([5, 0, 1, 0, 0, 0]),
        )
        with self.assertRaises(InvalidArgument):
            protocol.construct_indexed_color(0, 256, 0, 0, 0)

    def test_construct_turn_off(self):
        protocol = ProtocolBlinkStick()
        self.assertEqual(
            protocol.construct_turn_off(BlinkStickDevice.BlinkStickStripOrSquare),
            bytearray([6] + [0] * 25),
        )
        for device_type in (
            BlinkStickDevice.BlinkStick,
            BlinkStickDevice.BlinkStickPro,
            BlinkStickDevice.Unknown,
        ):
            self.assertEqual(
                protocol.construct_turn_off(device_type), bytearray([1, 0, 0, 0])
            )

    def test_construct_mode(self):
        protocol = ProtocolBlinkStick()
        self.assertEqual(protocol.construct_mode(Mode.WS2812), bytearray([4, 2]))
        self.assertEqual(protocol.construct_mode(9), bytearray([4, 9]))
        with self.assertRaises(InvalidArgument):
            protocol.construct_mode(256)

    def test_construct_info_block(self):
        protocol = ProtocolBlinkStick()
        msg = protocol.construct_info_block(1, "hello")
        self.assertEqual(len(msg), 33)
        self.assertEqual(msg, bytearray(b"\x02hello" + b"\x00" * 27))
        msg = protocol.construct_info_block(2, "x" * 40)
        self.assertEqual(msg, bytearray(b"\x03" + b"x" * 32))
        with self.assertRaises(InvalidArgument):
            protocol.construct_info_block(1, "café")
        with self.assertRaises(InvalidArgument):
            protocol.construct_info_block(3, "hello")

    def test_parse_reports(self):
        protocol = ProtocolBlinkStick()
        self.assertEqual(protocol.parse_color(b"\x01\x10\x20\x30"), 0xFF102030)
        self.assertEqual(protocol.parse_color(b"\x01"), COLOR_UNKNOWN)
        self.assertEqual(protocol.parse_mode(b"\x04\x03"), 3)
        self.assertEqual(protocol.parse_mode(b"\x04"), MODE_UNKNOWN)
        self.assertEqual(protocol.parse_info_block(b"\x02abc\x00garbage"), "abc")
        self.assertEqual(protocol.parse_info_block(b"\x02" + b"\x00" * 32), "")
        self.assertEqual(protocol.parse_info_block(b"\x02" + b"y" * 32), "y" * 32)
        self.assertEqual(protocol.parse_info_block(b""), "")

    def test_brightness_limit_clamps(self):
        protocol = ProtocolBlinkStick()
        self.assertEqual(protocol.brightness_limit, 255)
        protocol.brightness_limit = 300
        self.assertEqual(protocol.brightness_limit, 255)
        protocol.brightness_limit = -4
        self.assertEqual(protocol.brightness_limit, 0)


class TestBlinkStick(unittest.TestCase):
    def _stick(self, **kwargs) -> Tuple[blinkstick.BlinkStick, FakeTransport]:
        transport = FakeTransport(**kwargs)
        return blinkstick.BlinkStick(transport), transport

    def test_device_type_blinkstick(self):
        stick, transport = self._stick(serial=SERIAL_BLINKSTICK)
        self.assertEqual(stick.get_blinkstick_device(), BlinkStickDevice.BlinkStick)
        self.assertEqual(stick.get_version_major(), 1)
        self.assertEqual(stick.get_version_minor(), 0)
        self.assertEqual(transport.serial_reads, 1)

    def test_device_type_pro(self):
        stick, _ = self._stick(serial=SERIAL_PRO)
        self.assertEqual(stick.get_version_minor(), 1)
        self.assertEqual(stick.get_blinkstick_device(), BlinkStickDevice.BlinkStickPro)
        self.assertEqual(stick.get_description(), "BlinkStick Pro")

    def test_device_type_unreadable_serial(self):
        stick, _ = self._stick(serial=None)
        self.assertEqual(stick.get_version_major(), -1)
        self.assertEqual(stick.get_version_minor(), -1)
        self.assertEqual(stick.get_blinkstick_device(), BlinkStickDevice.Unknown)
        with self.assertRaises(TransportError):
            stick.get_serial()

    def test_serial_is_not_cached(self):
        stick, transport = self._stick()
        self.assertEqual(stick.get_serial(), SERIAL_BLINKSTICK)
        self.assertEqual(stick.get_serial(), SERIAL_BLINKSTICK)
        self.assertEqual(transport.serial_reads, 2)

    def test_unparseable_serial_read_once(self):
        stick, transport = self._stick(serial="BS000123-x.y")
        self.assertEqual(stick.get_version_major(), -1)
        self.assertEqual(stick.get_version_minor(), -1)
        stick.turn_off()
        stick.turn_off()
        self.assertEqual(stick.get_blinkstick_device(), BlinkStickDevice.Unknown)
        self.assertEqual(transport.serial_reads, 1)

    def test_unreadable_serial_is_retried(self):
        stick, transport = self._stick(serial=None)
        self.assertEqual(stick.get_version_major(), -1)
        transport._serial = SERIAL_STRIP
        self.assertEqual(stick.get_version_major(), 3)
        self.assertEqual(stick.get_version_minor(), 0)
        self.assertEqual(transport.serial_reads, 2)

    def test_set_color_wire_format(self):
        stick, transport = self._stick(serial=SERIAL_STRIP)
        stick.set_color(255, 0, 0)
        self.assertEqual(
            transport.sent, [(0x20, 0x09, 0x01, 0x00, b"\x01\xff\x00\x00", 2000)]
        )

    def test_set_color_forms(self):
        stick, transport = self._stick()
        stick.set_color("cornflowerblue")
        stick.set_color("#6495ED")
        stick.set_color(0x6495ED)
        stick.set_color((0x64, 0x95, 0xED))
        self.assertEqual(transport.frames, [b"\x01\x64\x95\xed"] * 4)

    def test_set_color_brightness_limit(self):
        stick, transport = self._stick()
        self.assertEqual(stick.set_brightness_limit(128), 128)
        stick.set_color(255, 255, 255)
        self.assertEqual(transport.frames[-1], bytes([1, 128, 128, 128]))
        # reading back returns what the device holds
        self.assertEqual(stick.get_color(), 0xFF808080)

    def test_set_color_invalid(self):
        stick, transport = self._stick()
        with self.assertRaises(UnknownColorName):
            stick.set_color("blurple")
        with self.assertRaises(MalformedColor):
            stick.set_color("#12")
        with self.assertRaises(InvalidArgument):
            stick.set_color(256, 0, 0)
        with self.assertRaises(InvalidArgument):
            stick.set_color(1, 2)
        self.assertEqual(transport.sent, [])

    def test_set_random_color(self):
        stick, transport = self._stick()
        with patch("blinkstick.utils.random.randint", side_effect=[1, 2, 3]):
            stick.set_random_color()
        self.assertEqual(transport.frames, [b"\x01\x01\x02\x03"])

    def test_set_indexed_color(self):
        stick, transport = self._stick(serial=SERIAL_PRO)
        stick.set_indexed_color(1, 5, "red")
        stick.set_indexed_color(0, 2, 10, 20, 30)
        stick.brightness_limit = 51
        stick.set_indexed_color(2, 0, 0xFFFFFF)
        self.assertEqual(
            transport.frames,
            [
                bytes([5, 1, 5, 255, 0, 0]),
                bytes([5, 0, 2, 10, 20, 30]),
                bytes([5, 2, 0, 51, 51, 51]),
            ],
        )
        self.assertEqual(transport.sent[0][2], 5)

    def test_set_colors(self):
        stick, transport = self._stick(serial=SERIAL_STRIP)
        stick.set_colors(0, [0, 0, 255])
        self.assertEqual(transport.frames[-1], bytes([6, 0, 0, 0, 255] + [0] * 21))
        stick.set_colors(0, [10] * 96)
        self.assertEqual(transport.frames[-1][0], 8)
        self.assertEqual(len(transport.frames[-1]), 98)
        self.assertEqual(transport.sent[-1][2], 8)

    def test_channel_zero_helpers(self):
        stick, transport = self._stick(serial=SERIAL_STRIP)
        stick.set_led(4, "blue")
        stick.set_led(5, 1, 2, 3)
        stick.set_frame([0, 255, 0])
        self.assertEqual(
            transport.frames,
            [
                bytes([5, 0, 4, 0, 0, 255]),
                bytes([5, 0, 5, 1, 2, 3]),
                bytes([6, 0, 0, 255, 0] + [0] * 21),
            ],
        )

    def test_turn_off_strip(self):
        stick, transport = self._stick(serial="X-3.0")
        stick.turn_off()
        self.assertEqual(transport.frames, [bytes([6] + [0] * 25)])

    def test_turn_off_blinkstick(self):
        stick, transport = self._stick(serial=SERIAL_BLINKSTICK)
        stick.brightness_limit = 10
        stick.turn_off()
        self.assertEqual(transport.frames, [b"\x01\x00\x00\x00"])

    def test_get_color(self):
        stick, transport = self._stick(
            reports={1: bytes([1, 0x10, 0x20, 0x30]) + bytes(29)}
        )
        self.assertEqual(stick.get_color(), 0xFF102030)
        self.assertEqual(stick.get_color_string(), "#102030")
        self.assertEqual(transport.reads[-1], (0xA0, 0x01, 1, 0, 33, 2000))

    def test_get_color_unreadable(self):
        stick, _ = self._stick()
        self.assertEqual(stick.get_color(), 0xFF000000)
        self.assertEqual(stick.get_color_string(), "#000000")

    def test_mode(self):
        stick, transport = self._stick(serial=SERIAL_PRO)
        self.assertEqual(stick.get_mode(), MODE_UNKNOWN)
        stick.set_mode(Mode.WS2812_MIRROR)
        self.assertEqual(transport.frames[-1], b"\x04\x03")
        self.assertEqual(stick.get_mode(), 3)
        self.assertEqual(transport.reads[-1], (0xA0, 0x01, 4, 0, 2, 2000))
        transport.reports[4] = b"\x04"
        self.assertEqual(stick.get_mode(), MODE_UNKNOWN)

    def test_info_blocks(self):
        stick, transport = self._stick()
        self.assertEqual(stick.get_info_block1(), "")
        stick.set_info_block1("kitchen")
        stick.set_info_block2("z" * 40)
        self.assertEqual(transport.sent[0][2], 2)
        self.assertEqual(transport.sent[1][2], 3)
        self.assertEqual(len(transport.frames[0]), 33)
        self.assertEqual(stick.get_info_block1(), "kitchen")
        self.assertEqual(stick.get_info_block2(), "z" * 32)
        self.assertEqual(transport.reads[-1], (0xA0, 0x01, 3, 0, 33, 2000))

    def test_descriptor_strings(self):
        stick, transport = self._stick(
            descriptor=_device_descriptor(),
            strings={1: MANUFACTURER, 2: PRODUCT},
        )
        self.assertEqual(stick.get_manufacturer(), MANUFACTURER)
        self.assertEqual(stick.get_product(), PRODUCT)
        reads = len(transport.reads)
        self.assertEqual(stick.get_manufacturer(), MANUFACTURER)
        self.assertEqual(stick.get_product(), PRODUCT)
        self.assertEqual(len(transport.reads), reads)
        self.assertIn((0x80, 0x06, 0x0301, 0, 255, 2000), transport.reads)
        self.assertIn((0x80, 0x06, 0x0302, 0, 255, 2000), transport.reads)

    def test_descriptor_strings_unreadable(self):
        stick, _ = self._stick()
        with self.assertRaises(TransportError):
            stick.get_manufacturer()

    def test_write_errors_propagate(self):
        stick, transport = self._stick()
        transport.write_error = TransportTimeout("timed out")
        with self.assertRaises(TransportError):
            stick.set_color("red")
        with self.assertRaises(TransportTimeout):
            stick.set_mode(1)

    def test_short_write(self):
        stick, transport = self._stick()
        transport.short_write = True
        with pytest.raises(ShortTransfer) as exc_info:
            stick.set_color(1, 2, 3)
        assert exc_info.value.expected == 4
        assert exc_info.value.actual == 3

    def test_brightness_limit(self):
        stick, _ = self._stick()
        self.assertEqual(stick.get_brightness_limit(), 255)
        self.assertEqual(stick.set_brightness_limit(300), 255)
        self.assertEqual(stick.set_brightness_limit(-1), 0)
        self.assertEqual(stick.get_brightness_limit(), 0)

    def test_close(self):
        stick, transport = self._stick()
        self.assertTrue(stick.is_connected())
        stick.close()
        self.assertTrue(transport.closed)
        self.assertFalse(stick.is_connected())
        with self.assertRaises(NotConnected):
            stick.set_color("red")
        self.assertEqual(stick.get_color(), COLOR_UNKNOWN)
        self.assertEqual(stick.get_mode(), MODE_UNKNOWN)
        self.assertEqual(stick.get_info_block1(), "")
        self.assertEqual(stick.get_version_major(), -1)
        stick.close()

    def test_context_manager_closes_on_error(self):
        transport = FakeTransport()
        with self.assertRaises(UnknownColorName):
            with blinkstick.BlinkStick(transport) as stick:
                stick.set_color("blurple")
        self.assertTrue(transport.closed)

    def test_str(self):
        stick, _ = self._stick(serial=SERIAL_STRIP, reports={1: b"\x01\xff\x00\x00"})
        self.assertEqual(
            str(stick), "BlinkStick Strip/Square [BS000456-3.0] color: #FF0000"
        )
        stick.close()
        self.assertEqual(str(stick), "BlinkStick [not connected]")
