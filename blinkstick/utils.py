import random
import string
from typing import Final, FrozenSet, List, Sequence, Tuple, Union

import webcolors  # type: ignore

from .const import (
    MAX_BRIGHTNESS,
    OPAQUE_ALPHA,
    VERSION_MAJOR_TO_DEVICE,
    VERSION_UNKNOWN,
    BlinkStickDevice,
)
from .exceptions import InvalidArgument, MalformedColor, UnknownColorName

ColorType = Union[int, str, Sequence[int]]

HEX_COLOR_LEN: Final = 7

CSS_COLOR_NAMES: FrozenSet[str] = frozenset(webcolors.names(webcolors.CSS3))


def pack(r: int, g: int, b: int) -> int:
    """Pack a color into 0xAARRGGBB with an opaque alpha byte."""
    return (OPAQUE_ALPHA << 24) | ((r & 0xFF) << 16) | ((g & 0xFF) << 8) | (b & 0xFF)


def unpack(value: int) -> Tuple[int, int, int]:
    return (value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF


def hex_to_rgb(value: str) -> int:
    """Convert a #rrggbb string to its packed form."""
    if not isinstance(value, str) or len(value) != HEX_COLOR_LEN or value[0] != "#":
        raise MalformedColor(f"Color {value!r} is not in #rrggbb format")
    try:
        rgb = webcolors.hex_to_rgb(value)
    except ValueError as ex:
        raise MalformedColor(f"Color {value!r} is not in #rrggbb format") from ex
    return pack(rgb.red, rgb.green, rgb.blue)


def name_to_hex(name: str) -> str:
    """Look up a CSS color name; the lookup is case sensitive."""
    if name not in CSS_COLOR_NAMES:
        raise UnknownColorName(f"Unknown color name: {name!r}")
    return str(webcolors.name_to_hex(name, spec=webcolors.CSS3))


def rgb_to_hex(r: int, g: int, b: int) -> str:
    return f"#{r & 0xFF:02X}{g & 0xFF:02X}{b & 0xFF:02X}"


def remap_byte(value: int, limit: int) -> int:
    """Scale a byte from [0..255] to [0..limit], rounding to nearest.

    The fraction value * limit / 255 can never land on exactly one half
    since 255 is odd, so adding half the divisor is a plain round().
    """
    value = max(0, min(0xFF, value))
    limit = max(0, min(MAX_BRIGHTNESS, limit))
    return (value * limit + MAX_BRIGHTNESS // 2) // MAX_BRIGHTNESS


def remap_color(rgb: Sequence[int], limit: int) -> Tuple[int, ...]:
    return tuple(remap_byte(c, limit) for c in rgb)


def check_byte(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(f"{name} must be an int, got {value!r}")
    if not 0 <= value <= 0xFF:
        raise InvalidArgument(
            f"{name} of {value} is not valid and must be between 0 and 255"
        )
    return value


def string_to_rgb(value: str) -> Tuple[int, int, int]:
    value = value.strip()
    if value.startswith("#"):
        return unpack(hex_to_rgb(value))
    return unpack(hex_to_rgb(name_to_hex(value)))


def color_to_rgb(color: ColorType) -> Tuple[int, int, int]:
    """Convert any accepted color form to an (r, g, b) tuple.

    Accepts a css color name, a #rrggbb string, a packed int 0x00rrggbb
    (any alpha byte is ignored) or a sequence of three bytes.
    """
    if isinstance(color, str):
        return string_to_rgb(color)
    if isinstance(color, bool):
        raise InvalidArgument(f"Not a color: {color!r}")
    if isinstance(color, int):
        return unpack(color)
    if isinstance(color, (tuple, list)) and len(color) == 3:
        r, g, b = color
        return (
            check_byte("Red", r),
            check_byte("Green", g),
            check_byte("Blue", b),
        )
    raise InvalidArgument(f"Not a color: {color!r}")


def random_rgb() -> Tuple[int, int, int]:
    return random.randint(0, 255), random.randint(0, 255), random.randint(0, 255)


def get_color_names_list() -> List[str]:
    return sorted(CSS_COLOR_NAMES)


def parse_version(serial: str) -> Tuple[int, int]:
    """Extract (major, minor) from a serial ending in X.Y.

    Returns (-1, -1) for anything that does not parse.
    """
    if not serial or len(serial) < 3:
        return VERSION_UNKNOWN, VERSION_UNKNOWN
    major, minor = serial[-3], serial[-1]
    if major not in string.digits or minor not in string.digits:
        return VERSION_UNKNOWN, VERSION_UNKNOWN
    return int(major), int(minor)


def device_type_from_version(major: int) -> BlinkStickDevice:
    return VERSION_MAJOR_TO_DEVICE.get(major, BlinkStickDevice.Unknown)


def bytes_to_hex(data: Sequence[int]) -> str:
    return " ".join(f"0x{x:02X}" for x in data)
