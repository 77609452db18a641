#!/usr/bin/env python
"""
This is a utility for controlling BlinkStick USB LED devices.

Devices are found on the USB bus by vendor and product id and driven with
HID feature reports, so no kernel driver or daemon is needed, only access
to the USB device node (see the udev rule printed when access is denied).

##### Available:
* Listing connected devices
* Setting the color by name, web hex value or RGB triple
* Setting a random color
* Setting the color of a single LED on BlinkStick Pro/Strip/Square
* Sending a frame of colors to a strip
* Turning LEDs off
* Reading and setting the mode of BlinkStick Pro
* Reading and writing the two info blocks
* Limiting brightness
"""

import logging
from optparse import OptionGroup, OptionParser, Values
import sys
from typing import Any, List, Optional, Tuple

from .const import BYTES_PER_LED, Mode
from .device import BlinkStick
from .exceptions import BlinkStickError, PermissionDenied
from .finder import BlinkStickFinder
from .utils import ColorType, color_to_rgb, get_color_names_list

_LOGGER = logging.getLogger(__name__)

MODE_NAMES = {mode.name.lower(): mode for mode in Mode}


# =======================================================================
def showUsageExamples() -> None:
    example_text = """
Examples:

List connected devices:
    %prog% -l

Show info about the first device:
    %prog% -i

Set fixed color red on the first device:
    %prog% -c red
    %prog% -c 255,0,0
    %prog% -c "#FF0000"

Set color on a device by serial:
    %prog% -s BS000123-3.0 -c blue

Set a random color at 50% brightness:
    %prog% -b 128 --random

Set the 4th LED on channel 0 to green:
    %prog% --index 3 --channel 0 -c green

Send a frame of colors to a strip:
    %prog% --frame "red green #0000FF 10,20,30"

Set BlinkStick Pro to WS2812 mode:
    %prog% -m ws2812

Turn off:
    %prog% -0

Store text in info block 1:
    %prog% --infoblock1 "kitchen"
    """

    print(example_text.replace("%prog%", sys.argv[0]))


def processColorArg(parser: OptionParser, value: str) -> ColorType:
    value = value.strip()
    color: ColorType = value
    if "," in value:
        try:
            color = tuple(int(part) for part in value.split(","))
        except ValueError:
            parser.error(f"Invalid color value: {value}")
    try:
        color_to_rgb(color)
    except ValueError:
        parser.error(f"Invalid color value: {value}")
    return color


def processFrameArgs(parser: OptionParser, value: str) -> List[int]:
    # convert the space separated list of colors to GRB bytes
    data: List[int] = []
    for item in value.strip().split():
        red, green, blue = color_to_rgb(processColorArg(parser, item))
        data.extend((green, red, blue))
    if not data:
        parser.error("COLORLIST must contain at least one color")
    return data


def processModeArg(parser: OptionParser, value: str) -> int:
    if value.isdigit():
        return int(value)
    mode = MODE_NAMES.get(value.strip().lower().replace("-", "_"))
    if mode is None:
        parser.error(f"Not a valid mode: {value}")
    assert mode is not None
    return int(mode)


def parseArgs() -> Tuple[Values, Any]:  # noqa: C901
    parser = OptionParser()

    parser.description = "A utility to control BlinkStick USB LED devices. "

    color_group = OptionGroup(parser, "Color options (mutually exclusive)")
    info_group = OptionGroup(parser, "Program help and information option")
    other_group = OptionGroup(parser, "Other options")

    parser.add_option_group(info_group)
    info_group.add_option(
        "-e",
        "--examples",
        action="store_true",
        dest="showexamples",
        default=False,
        help="Show usage examples",
    )
    info_group.add_option(
        "--listcolors",
        action="store_true",
        dest="listcolors",
        default=False,
        help="List color names",
    )

    parser.add_option(
        "-l",
        "--list",
        action="store_true",
        dest="list",
        default=False,
        help="List connected BlinkStick devices",
    )
    parser.add_option(
        "-s",
        "--serial",
        dest="serial",
        default=None,
        metavar="SERIAL",
        help="Operate on the device with this serial instead of the first one",
    )

    color_group.add_option(
        "-c",
        "--color",
        dest="color",
        default=None,
        help="Set a single color.  Can be either color name, web hex, or comma-separated RGB triple.",
        metavar="COLOR",
    )
    color_group.add_option(
        "--random",
        action="store_true",
        dest="random",
        default=False,
        help="Set a random color",
    )
    color_group.add_option(
        "--frame",
        dest="frame",
        default=None,
        metavar="COLORLIST",
        help="Send a frame of colors to a strip. "
        + "COLORLIST is a space-separated list of color names, web hex values, or comma-separated RGB triples",
    )
    color_group.add_option(
        "-0",
        "--off",
        action="store_true",
        dest="off",
        default=False,
        help="Turn off the LEDs",
    )
    parser.add_option_group(color_group)

    other_group.add_option(
        "--index",
        dest="index",
        default=None,
        type="int",
        metavar="INDEX",
        help="LED index for --color (BlinkStick Pro/Strip/Square)",
    )
    other_group.add_option(
        "--channel",
        dest="channel",
        default=0,
        type="int",
        metavar="CHANNEL",
        help="Channel for --index and --frame (0 - R, 1 - G, 2 - B)",
    )
    other_group.add_option(
        "-b",
        "--brightness",
        dest="brightness",
        default=None,
        type="int",
        metavar="LIMIT",
        help="Limit brightness to LIMIT (0-255) for colors set by this command",
    )
    other_group.add_option(
        "-m",
        "--mode",
        dest="mode",
        default=None,
        metavar="MODE",
        help="Set BlinkStick Pro mode: normal, inverse, ws2812, ws2812_mirror or 0-3",
    )
    other_group.add_option(
        "--infoblock1",
        dest="infoblock1",
        default=None,
        metavar="TEXT",
        help="Store TEXT (up to 32 characters) in info block 1",
    )
    other_group.add_option(
        "--infoblock2",
        dest="infoblock2",
        default=None,
        metavar="TEXT",
        help="Store TEXT (up to 32 characters) in info block 2",
    )
    other_group.add_option(
        "-v",
        "--verbose",
        action="store_true",
        dest="verbose",
        default=False,
        help="Log every report sent to and read from the device",
    )
    parser.add_option_group(other_group)

    parser.add_option(
        "-i",
        "--info",
        action="store_true",
        dest="info",
        default=False,
        help="Info about the device state",
    )

    parser.usage = "usage: %prog [-lsicb0me] [options]"
    (options, args) = parser.parse_args()

    if options.showexamples:
        showUsageExamples()
        sys.exit(0)

    if options.listcolors:
        for c in get_color_names_list():
            print(f"{c}, ", end="")
        print()
        sys.exit(0)

    mode_count = sum(
        bool(x)
        for x in (options.color, options.random, options.frame, options.off)
    )
    if mode_count > 1:
        parser.error(
            "options --color, --random, --frame and --off are mutually exclusive"
        )

    if options.color is not None:
        options.color = processColorArg(parser, options.color)

    if options.frame is not None:
        options.frame = processFrameArgs(parser, options.frame)

    if options.index is not None and options.color is None:
        parser.error("--index needs a --color")

    if options.mode is not None:
        options.mode = processModeArg(parser, options.mode)

    if options.brightness is not None and not 0 <= options.brightness <= 255:
        parser.error("brightness must be between 0 and 255")

    return (options, args)


def showDeviceList(finder: BlinkStickFinder) -> None:
    candidates = finder.find_all()
    print(f"{len(candidates)} devices found:")
    for candidate in candidates:
        try:
            with finder.open(candidate) as stick:
                print(
                    "  {} {} ({} {})".format(
                        stick.get_serial(),
                        stick.get_description(),
                        stick.get_manufacturer(),
                        stick.get_product(),
                    )
                )
        except BlinkStickError as e:
            print(f"  {candidate!r}: {e}")


def showDeviceInfo(stick: BlinkStick) -> None:
    print(f"Serial:        {stick.get_serial()}")
    print(f"Device:        {stick.get_description()}")
    print(f"Manufacturer:  {stick.get_manufacturer()}")
    print(f"Product:       {stick.get_product()}")
    print(f"Version:       {stick.get_version_major()}.{stick.get_version_minor()}")
    print(f"Color:         {stick.get_color_string()}")
    print(f"Mode:          {stick.get_mode()}")
    print(f"Info block 1:  {stick.get_info_block1()}")
    print(f"Info block 2:  {stick.get_info_block2()}")


def openDevice(finder: BlinkStickFinder, serial: Optional[str]) -> BlinkStick:
    if serial is not None:
        stick = finder.find_by_serial(serial)
        if stick is None:
            print(f"No BlinkStick found with serial {serial}")
            sys.exit(1)
        return stick

    candidate = finder.find_first()
    if candidate is None:
        print("No BlinkStick found")
        sys.exit(1)
    try:
        return finder.open(candidate)
    except PermissionDenied as e:
        finder.request_permission(candidate)
        print(f"Permission denied: {e}")
        sys.exit(1)


def applyOptions(stick: BlinkStick, options: Values) -> None:  # noqa: C901
    if options.brightness is not None:
        stick.set_brightness_limit(options.brightness)

    if options.mode is not None:
        print(f"Setting mode: {options.mode}")
        stick.set_mode(options.mode)

    if options.color is not None:
        if options.index is not None:
            print(
                f"Setting LED {options.index} on channel {options.channel} "
                f"to {options.color}"
            )
            stick.set_indexed_color(options.channel, options.index, options.color)
        else:
            print(f"Setting color: {options.color}")
            stick.set_color(options.color)
    elif options.random:
        print("Setting random color")
        stick.set_random_color()
    elif options.frame is not None:
        print(
            f"Sending {len(options.frame) // BYTES_PER_LED} LED colors "
            f"to channel {options.channel}"
        )
        stick.set_colors(options.channel, options.frame)
    elif options.off:
        print("Turning off")
        stick.turn_off()

    if options.infoblock1 is not None:
        stick.set_info_block1(options.infoblock1)

    if options.infoblock2 is not None:
        stick.set_info_block2(options.infoblock2)

    if options.info:
        showDeviceInfo(stick)


# =======================================================================
def main() -> None:  # noqa: C901
    (options, args) = parseArgs()

    logging.basicConfig(level=logging.DEBUG if options.verbose else logging.WARNING)

    finder = BlinkStickFinder()

    try:
        if options.list:
            showDeviceList(finder)
            sys.exit(0)

        with openDevice(finder, options.serial) as stick:
            applyOptions(stick, options)
    except BlinkStickError as e:
        print(f"Unable to control BlinkStick: {e}")
        sys.exit(1)

    sys.exit(0)


if __name__ == "__main__":
    main()
