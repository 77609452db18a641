"""BlinkStick protocol constants."""

from enum import Enum, IntEnum
from typing import Final, Tuple

VENDOR_ID: Final = 0x20A0
PRODUCT_ID: Final = 0x41E5

# HID class requests (feature reports over endpoint 0)
REQUEST_TYPE_SET_REPORT: Final = 0x20
REQUEST_SET_REPORT: Final = 0x09
REQUEST_TYPE_GET_REPORT: Final = 0xA0
REQUEST_GET_REPORT: Final = 0x01

# Standard requests
REQUEST_TYPE_GET_DESCRIPTOR: Final = 0x80
REQUEST_GET_DESCRIPTOR: Final = 0x06
DESCRIPTOR_TYPE_DEVICE: Final = 0x01
DESCRIPTOR_TYPE_STRING: Final = 0x03
DEVICE_DESCRIPTOR_LEN: Final = 18
STRING_DESCRIPTOR_MAX_LEN: Final = 255
DEVICE_DESCRIPTOR_MANUFACTURER_IDX: Final = 14
DEVICE_DESCRIPTOR_PRODUCT_IDX: Final = 15
DEVICE_DESCRIPTOR_SERIAL_IDX: Final = 16

DEFAULT_TIMEOUT_MS: Final = 2000

# Report ids
REPORT_ID_COLOR: Final = 1
REPORT_ID_INFO_BLOCK1: Final = 2
REPORT_ID_INFO_BLOCK2: Final = 3
REPORT_ID_MODE: Final = 4
REPORT_ID_INDEXED_COLOR: Final = 5
REPORT_ID_COLORS_8: Final = 6
REPORT_ID_COLORS_16: Final = 7
REPORT_ID_COLORS_32: Final = 8
REPORT_ID_COLORS_64: Final = 9
REPORT_ID_COLORS_128: Final = 10

# Lengths of reports read back from the device, report id included
COLOR_REPORT_LEN: Final = 33
INFO_BLOCK_REPORT_LEN: Final = 33
MODE_REPORT_LEN: Final = 2

INFO_BLOCK_SIZE: Final = 32
BYTES_PER_LED: Final = 3

# (max payload length, report id, led capacity)
# Report 10 addresses at most 64 LEDs even though its payload limit
# would fit 128.
REPORT_CAPACITIES: Final[Tuple[Tuple[int, int, int], ...]] = (
    (8 * BYTES_PER_LED, REPORT_ID_COLORS_8, 8),
    (16 * BYTES_PER_LED, REPORT_ID_COLORS_16, 16),
    (32 * BYTES_PER_LED, REPORT_ID_COLORS_32, 32),
    (64 * BYTES_PER_LED, REPORT_ID_COLORS_64, 64),
    (128 * BYTES_PER_LED, REPORT_ID_COLORS_128, 64),
)

MAX_BRIGHTNESS: Final = 255
MIN_BRIGHTNESS: Final = 0

# Sentinels returned by getters when the device cannot be read
MODE_UNKNOWN: Final = 0xFF
VERSION_UNKNOWN: Final = -1
COLOR_UNKNOWN: Final = 0xFF000000
OPAQUE_ALPHA: Final = 0xFF

CHANNEL_R: Final = 0
CHANNEL_G: Final = 1
CHANNEL_B: Final = 2
CHANNELS = {CHANNEL_R, CHANNEL_G, CHANNEL_B}


class Mode(IntEnum):
    NORMAL = 0
    INVERSE = 1
    WS2812 = 2
    WS2812_MIRROR = 3


class BlinkStickDevice(Enum):
    Unknown = 0
    BlinkStick = 1
    BlinkStickPro = 2
    BlinkStickStripOrSquare = 3


VERSION_MAJOR_TO_DEVICE = {
    1: BlinkStickDevice.BlinkStick,
    2: BlinkStickDevice.BlinkStickPro,
    3: BlinkStickDevice.BlinkStickStripOrSquare,
}

DEVICE_DESCRIPTIONS = {
    BlinkStickDevice.Unknown: "Unknown BlinkStick",
    BlinkStickDevice.BlinkStick: "BlinkStick",
    BlinkStickDevice.BlinkStickPro: "BlinkStick Pro",
    BlinkStickDevice.BlinkStickStripOrSquare: "BlinkStick Strip/Square",
}
