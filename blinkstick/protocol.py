"""BlinkStick feature report protocol."""

import logging
from typing import Sequence, Tuple

from .const import (
    BYTES_PER_LED,
    CHANNEL_R,
    COLOR_REPORT_LEN,
    COLOR_UNKNOWN,
    INFO_BLOCK_REPORT_LEN,
    INFO_BLOCK_SIZE,
    MAX_BRIGHTNESS,
    MIN_BRIGHTNESS,
    MODE_REPORT_LEN,
    MODE_UNKNOWN,
    REPORT_CAPACITIES,
    REPORT_ID_COLOR,
    REPORT_ID_INDEXED_COLOR,
    REPORT_ID_INFO_BLOCK1,
    REPORT_ID_INFO_BLOCK2,
    REPORT_ID_MODE,
    BlinkStickDevice,
)
from .exceptions import InvalidArgument
from .utils import check_byte, pack, remap_byte

_LOGGER = logging.getLogger(__name__)

INFO_BLOCK_REPORT_IDS = {
    1: REPORT_ID_INFO_BLOCK1,
    2: REPORT_ID_INFO_BLOCK2,
}

# Strip and Square only light up through the multi led reports
TURN_OFF_LEDS = 8


def determine_report_id(length: int) -> int:
    """Pick the multi led report id for a payload of length bytes."""
    return _capacity_row(length)[1]


def determine_max_leds(length: int) -> int:
    """Number of leds the report for a payload of length bytes addresses."""
    return _capacity_row(length)[2]


def _capacity_row(length: int) -> Tuple[int, int, int]:
    for row in REPORT_CAPACITIES:
        if length <= row[0]:
            return row
    return REPORT_CAPACITIES[-1]


def info_block_report_id(block: int) -> int:
    try:
        return INFO_BLOCK_REPORT_IDS[block]
    except KeyError as ex:
        raise InvalidArgument(f"Info block must be 1 or 2, got {block}") from ex


class ProtocolBlinkStick:
    """Builds and parses BlinkStick feature reports.

    Every color byte sent through the protocol is scaled by the
    brightness limit. Reports read back are returned as the device
    holds them, without reversing that scaling.
    """

    def __init__(self, brightness_limit: int = MAX_BRIGHTNESS) -> None:
        self._brightness_limit = MAX_BRIGHTNESS
        self.brightness_limit = brightness_limit

    @property
    def brightness_limit(self) -> int:
        return self._brightness_limit

    @brightness_limit.setter
    def brightness_limit(self, value: int) -> None:
        self._brightness_limit = max(MIN_BRIGHTNESS, min(MAX_BRIGHTNESS, int(value)))

    def remap(self, value: int) -> int:
        return remap_byte(value, self._brightness_limit)

    def construct_color(self, red: int, green: int, blue: int) -> bytearray:
        """The bytes to send to set the color of the first led."""
        # 01 rr gg bb
        return bytearray(
            [REPORT_ID_COLOR, self.remap(red), self.remap(green), self.remap(blue)]
        )

    def construct_indexed_color(
        self, channel: int, index: int, red: int, green: int, blue: int
    ) -> bytearray:
        """The bytes to send to set the color of a single led on a channel."""
        # 05 ch ix rr gg bb
        return bytearray(
            [
                REPORT_ID_INDEXED_COLOR,
                check_byte("Channel", channel),
                check_byte("Index", index),
                self.remap(red),
                self.remap(green),
                self.remap(blue),
            ]
        )

    def construct_colors(self, channel: int, data: Sequence[int]) -> bytearray:
        """The bytes to send for a frame of led colors.

        data is in [g0, r0, b0, g1, r1, b1, ...] order and is passed
        through in that order. The frame is always padded with zeros to
        the capacity of the chosen report so leds past the end of data
        turn off; data beyond that capacity is dropped.
        """
        #  0  1  2  3  4  5 ...
        # id ch g0 r0 b0 g1 ...
        length = len(data)
        capacity = determine_max_leds(length) * BYTES_PER_LED
        msg = bytearray(2 + capacity)
        msg[0] = determine_report_id(length)
        msg[1] = check_byte("Channel", channel)
        for idx, value in enumerate(data[:capacity]):
            msg[2 + idx] = self.remap(check_byte("Color byte", value))
        if length > capacity:
            _LOGGER.debug(
                "Dropping %d bytes of led data past %d leds",
                length - capacity,
                capacity // BYTES_PER_LED,
            )
        return msg

    def construct_turn_off(self, device_type: BlinkStickDevice) -> bytearray:
        """The bytes to send to turn every led off."""
        if device_type == BlinkStickDevice.BlinkStickStripOrSquare:
            return self.construct_colors(CHANNEL_R, [0] * TURN_OFF_LEDS * BYTES_PER_LED)
        return self.construct_color(0, 0, 0)

    def construct_mode(self, mode: int) -> bytearray:
        """The bytes to send to change the mode of a BlinkStick Pro."""
        return bytearray([REPORT_ID_MODE, check_byte("Mode", int(mode))])

    def construct_info_block(self, block: int, text: str) -> bytearray:
        """The bytes to send to store text in an info block."""
        try:
            encoded = text.encode("ascii")
        except UnicodeEncodeError as ex:
            raise InvalidArgument(f"Info block text must be ascii: {text!r}") from ex
        msg = bytearray(1 + INFO_BLOCK_SIZE)
        msg[0] = info_block_report_id(block)
        encoded = encoded[:INFO_BLOCK_SIZE]
        msg[1 : 1 + len(encoded)] = encoded
        return msg

    @property
    def color_report_length(self) -> int:
        return COLOR_REPORT_LEN

    @property
    def mode_report_length(self) -> int:
        return MODE_REPORT_LEN

    @property
    def info_block_report_length(self) -> int:
        return INFO_BLOCK_REPORT_LEN

    def parse_color(self, rx: bytes) -> int:
        """Convert a color report to a packed 0xFFrrggbb color."""
        if len(rx) < 4:
            return COLOR_UNKNOWN
        return pack(rx[1], rx[2], rx[3])

    def parse_mode(self, rx: bytes) -> int:
        if len(rx) < MODE_REPORT_LEN:
            return MODE_UNKNOWN
        return rx[1]

    def parse_info_block(self, rx: bytes) -> str:
        """Decode the text of an info block report up to the first NUL."""
        if len(rx) < 2:
            return ""
        payload = bytes(rx[1 : 1 + INFO_BLOCK_SIZE])
        payload = payload.split(b"\x00", 1)[0]
        return payload.decode("ascii", errors="ignore")
