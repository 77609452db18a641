import logging
import threading
from typing import Any, Optional, Sequence, Tuple

from .const import (
    CHANNEL_R,
    COLOR_UNKNOWN,
    DEVICE_DESCRIPTIONS,
    DEVICE_DESCRIPTOR_MANUFACTURER_IDX,
    DEVICE_DESCRIPTOR_PRODUCT_IDX,
    MODE_UNKNOWN,
    REPORT_ID_COLOR,
    REPORT_ID_MODE,
    VERSION_UNKNOWN,
    BlinkStickDevice,
)
from .exceptions import BlinkStickError, InvalidArgument, NotConnected
from .protocol import ProtocolBlinkStick, info_block_report_id
from .transport import Transport
from .utils import (
    ColorType,
    color_to_rgb,
    device_type_from_version,
    parse_version,
    random_rgb,
    rgb_to_hex,
    unpack,
)

_LOGGER = logging.getLogger(__name__)


class BlinkStick:
    """A BlinkStick device.

    The handle owns its transport. It is not meant to be shared between
    threads without external locking; the internal lock only keeps a
    single transfer from being interleaved with another.
    """

    def __init__(self, transport: Transport) -> None:
        """Init the device around an open transport."""
        self._transport: Optional[Transport] = transport
        self._protocol = ProtocolBlinkStick()
        self._lock = threading.Lock()
        self._version_major: int = VERSION_UNKNOWN
        self._version_minor: int = VERSION_UNKNOWN
        self._version_read = False
        self._manufacturer: Optional[str] = None
        self._product: Optional[str] = None

    @property
    def transport(self) -> Transport:
        """Return the transport, raising if the handle was closed."""
        if self._transport is None or not self._transport.is_open:
            raise NotConnected("BlinkStick is not connected")
        return self._transport

    @property
    def protocol(self) -> ProtocolBlinkStick:
        return self._protocol

    def is_connected(self) -> bool:
        return self._transport is not None and self._transport.is_open

    def close(self) -> None:
        if self._transport is None:
            return
        try:
            self._transport.close()
        finally:
            self._transport = None

    def __enter__(self) -> "BlinkStick":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _send_report(self, msg: bytearray) -> None:
        transport = self.transport
        with self._lock:
            transport.send_feature_report(msg)

    def _get_report(self, report_id: int, length: int) -> bytes:
        transport = self.transport
        with self._lock:
            return transport.get_feature_report(report_id, length)

    @property
    def brightness_limit(self) -> int:
        return self._protocol.brightness_limit

    @brightness_limit.setter
    def brightness_limit(self, value: int) -> None:
        self._protocol.brightness_limit = value

    def set_brightness_limit(self, value: int) -> int:
        """Set the brightness ceiling, clamped to [0..255]."""
        self.brightness_limit = value
        return self.brightness_limit

    def get_brightness_limit(self) -> int:
        return self.brightness_limit

    @staticmethod
    def _rgb_from_args(
        color: ColorType, green: Optional[int], blue: Optional[int]
    ) -> Tuple[int, int, int]:
        if green is None and blue is None:
            return color_to_rgb(color)
        if green is None or blue is None or not isinstance(color, int):
            raise InvalidArgument("red, green and blue must all be given as ints")
        return color_to_rgb((color, green, blue))

    def set_color(
        self,
        color: ColorType,
        green: Optional[int] = None,
        blue: Optional[int] = None,
    ) -> None:
        """Set the color of the device.

        Either pass red, green and blue as three ints or pass a single
        color: a packed 0xrrggbb int, an (r, g, b) tuple, a css color
        name or a #rrggbb string.
        """
        red, green, blue = self._rgb_from_args(color, green, blue)
        self._send_report(self._protocol.construct_color(red, green, blue))

    def set_random_color(self) -> None:
        self.set_color(random_rgb())

    def set_indexed_color(
        self,
        channel: int,
        index: int,
        color: ColorType,
        green: Optional[int] = None,
        blue: Optional[int] = None,
    ) -> None:
        """Set the color of the led at index on channel.

        Channel values above 2 and indexes past the end of the strip are
        sent as is; the firmware ignores them.
        """
        red, green, blue = self._rgb_from_args(color, green, blue)
        self._send_report(
            self._protocol.construct_indexed_color(channel, index, red, green, blue)
        )

    def set_led(
        self,
        index: int,
        color: ColorType,
        green: Optional[int] = None,
        blue: Optional[int] = None,
    ) -> None:
        """Set the color of the led at index on channel 0."""
        self.set_indexed_color(CHANNEL_R, index, color, green, blue)

    def set_colors(self, channel: int, data: Sequence[int]) -> None:
        """Send a frame of led colors in [g0, r0, b0, g1, ...] order."""
        self._send_report(self._protocol.construct_colors(channel, data))

    def set_frame(self, data: Sequence[int]) -> None:
        """Send a frame of led colors to channel 0."""
        self.set_colors(CHANNEL_R, data)

    def turn_off(self) -> None:
        self._send_report(
            self._protocol.construct_turn_off(self.get_blinkstick_device())
        )

    def get_color(self) -> int:
        """Get the current color as a packed 0xFFrrggbb int.

        The value is what the device holds, so it reflects the
        brightness limit that was in effect when it was set.
        """
        try:
            rx = self._get_report(REPORT_ID_COLOR, self._protocol.color_report_length)
        except BlinkStickError as ex:
            _LOGGER.debug("Unable to read color: %s", ex)
            return COLOR_UNKNOWN
        return self._protocol.parse_color(rx)

    def get_color_string(self) -> str:
        return rgb_to_hex(*unpack(self.get_color()))

    def set_mode(self, mode: int) -> None:
        """Set the mode: 0 normal, 1 inverse, 2 WS2812, 3 WS2812 mirror."""
        self._send_report(self._protocol.construct_mode(mode))

    def get_mode(self) -> int:
        try:
            rx = self._get_report(REPORT_ID_MODE, self._protocol.mode_report_length)
        except BlinkStickError as ex:
            _LOGGER.debug("Unable to read mode: %s", ex)
            return MODE_UNKNOWN
        return self._protocol.parse_mode(rx)

    def _get_info_block(self, block: int) -> str:
        try:
            rx = self._get_report(
                info_block_report_id(block),
                self._protocol.info_block_report_length,
            )
        except BlinkStickError as ex:
            _LOGGER.debug("Unable to read info block %d: %s", block, ex)
            return ""
        return self._protocol.parse_info_block(rx)

    def _set_info_block(self, block: int, text: str) -> None:
        self._send_report(self._protocol.construct_info_block(block, text))

    def get_info_block1(self) -> str:
        return self._get_info_block(1)

    def get_info_block2(self) -> str:
        return self._get_info_block(2)

    def set_info_block1(self, text: str) -> None:
        self._set_info_block(1, text)

    def set_info_block2(self, text: str) -> None:
        self._set_info_block(2, text)

    def get_serial(self) -> str:
        return self.transport.serial()

    def _get_descriptor_string(self, offset: int) -> str:
        transport = self.transport
        with self._lock:
            descriptor = transport.raw_device_descriptor()
            return transport.string_descriptor(descriptor[offset])

    def get_manufacturer(self) -> str:
        if self._manufacturer is None:
            self._manufacturer = self._get_descriptor_string(
                DEVICE_DESCRIPTOR_MANUFACTURER_IDX
            )
        return self._manufacturer

    def get_product(self) -> str:
        if self._product is None:
            self._product = self._get_descriptor_string(DEVICE_DESCRIPTOR_PRODUCT_IDX)
        return self._product

    def _read_version(self) -> None:
        if self._version_read:
            return
        try:
            serial = self.get_serial()
        except BlinkStickError as ex:
            # not cached, the next call reads the serial again
            _LOGGER.debug("Unable to read serial: %s", ex)
            return
        self._version_major, self._version_minor = parse_version(serial)
        self._version_read = True

    def get_version_major(self) -> int:
        self._read_version()
        return self._version_major

    def get_version_minor(self) -> int:
        self._read_version()
        return self._version_minor

    def get_blinkstick_device(self) -> BlinkStickDevice:
        return device_type_from_version(self.get_version_major())

    def get_description(self) -> str:
        return DEVICE_DESCRIPTIONS[self.get_blinkstick_device()]

    def __str__(self) -> str:
        if not self.is_connected():
            return "BlinkStick [not connected]"
        try:
            serial = self.get_serial()
        except BlinkStickError:
            serial = "unknown serial"
        return f"{self.get_description()} [{serial}] color: {self.get_color_string()}"
