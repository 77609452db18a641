import contextlib
import io
import sys
import unittest
from unittest.mock import MagicMock, patch

from blinkstick import cli
from blinkstick.device import BlinkStick
from blinkstick.exceptions import PermissionDenied
from tests import FakeTransport


def parse(*argv):
    with patch.object(sys, "argv", ["blinkstick", *argv]):
        options, _ = cli.parseArgs()
    return options


class TestParseArgs(unittest.TestCase):
    def test_color(self):
        self.assertEqual(parse("-c", "red").color, "red")
        self.assertEqual(parse("-c", "255,0,10").color, (255, 0, 10))
        self.assertEqual(parse("--color", "#00FF00").color, "#00FF00")

    def test_frame_is_grb(self):
        options = parse("--frame", "red 0,0,255 #00FF00")
        self.assertEqual(options.frame, [0, 255, 0, 0, 0, 255, 255, 0, 0])

    def test_mode(self):
        self.assertEqual(parse("-m", "ws2812").mode, 2)
        self.assertEqual(parse("-m", "WS2812-MIRROR").mode, 3)
        self.assertEqual(parse("-m", "1").mode, 1)

    def test_invalid_arguments(self):
        invalid = [
            ["-c", "blurple"],
            ["-c", "300,0,0"],
            ["-c", "#12"],
            ["-c", "red", "--random"],
            ["--off", "--frame", "red"],
            ["--index", "2"],
            ["-m", "disco"],
            ["-b", "256"],
        ]
        for argv in invalid:
            with contextlib.redirect_stderr(io.StringIO()):
                with self.assertRaises(SystemExit) as cm:
                    parse(*argv)
            self.assertEqual(cm.exception.code, 2, argv)


class TestApplyOptions(unittest.TestCase):
    def test_color_with_brightness(self):
        stick = MagicMock(spec=BlinkStick)
        with contextlib.redirect_stdout(io.StringIO()):
            cli.applyOptions(stick, parse("-b", "128", "-c", "255,0,0"))
        stick.set_brightness_limit.assert_called_once_with(128)
        stick.set_color.assert_called_once_with((255, 0, 0))

    def test_indexed_color(self):
        stick = MagicMock(spec=BlinkStick)
        with contextlib.redirect_stdout(io.StringIO()):
            cli.applyOptions(
                stick, parse("--index", "3", "--channel", "1", "-c", "blue")
            )
        stick.set_indexed_color.assert_called_once_with(1, 3, "blue")
        stick.set_color.assert_not_called()

    def test_off_mode_and_info_blocks(self):
        stick = MagicMock(spec=BlinkStick)
        options = parse("-0", "-m", "inverse", "--infoblock1", "desk")
        with contextlib.redirect_stdout(io.StringIO()):
            cli.applyOptions(stick, options)
        stick.set_mode.assert_called_once_with(1)
        stick.turn_off.assert_called_once_with()
        stick.set_info_block1.assert_called_once_with("desk")
        stick.set_info_block2.assert_not_called()

    def test_frame(self):
        stick = MagicMock(spec=BlinkStick)
        with contextlib.redirect_stdout(io.StringIO()):
            cli.applyOptions(stick, parse("--channel", "2", "--frame", "red blue"))
        stick.set_colors.assert_called_once_with(2, [0, 255, 0, 0, 0, 255])


class TestMain(unittest.TestCase):
    def _run(self, finder, *argv):
        out = io.StringIO()
        with patch.object(sys, "argv", ["blinkstick", *argv]), patch(
            "blinkstick.cli.BlinkStickFinder", return_value=finder
        ), patch("blinkstick.cli.logging.basicConfig"), contextlib.redirect_stdout(
            out
        ):
            with self.assertRaises(SystemExit) as cm:
                cli.main()
        return cm.exception.code, out.getvalue()

    def test_set_color_on_first_device(self):
        transport = FakeTransport()
        finder = MagicMock()
        finder.open.return_value = BlinkStick(transport)
        code, _ = self._run(finder, "-c", "red")
        self.assertEqual(code, 0)
        self.assertEqual(transport.frames, [b"\x01\xff\x00\x00"])
        self.assertTrue(transport.closed)

    def test_serial(self):
        transport = FakeTransport(serial="BS000002-3.0")
        finder = MagicMock()
        finder.find_by_serial.return_value = BlinkStick(transport)
        code, _ = self._run(finder, "-s", "BS000002-3.0", "-0")
        self.assertEqual(code, 0)
        finder.find_by_serial.assert_called_once_with("BS000002-3.0")
        self.assertEqual(transport.frames, [bytes([6] + [0] * 25)])

    def test_serial_not_found(self):
        finder = MagicMock()
        finder.find_by_serial.return_value = None
        code, out = self._run(finder, "-s", "BS000009-1.0", "-0")
        self.assertEqual(code, 1)
        self.assertIn("BS000009-1.0", out)

    def test_no_device(self):
        finder = MagicMock()
        finder.find_first.return_value = None
        code, out = self._run(finder, "-c", "red")
        self.assertEqual(code, 1)
        self.assertIn("No BlinkStick found", out)

    def test_permission_denied(self):
        finder = MagicMock()
        finder.find_first.return_value = "candidate"
        finder.open.side_effect = PermissionDenied("no access")
        code, _ = self._run(finder, "-c", "red")
        self.assertEqual(code, 1)
        finder.request_permission.assert_called_once_with("candidate")

    def test_transport_error(self):
        transport = FakeTransport()
        transport.write_error = PermissionDenied("no access")
        finder = MagicMock()
        finder.open.return_value = BlinkStick(transport)
        code, out = self._run(finder, "-c", "red")
        self.assertEqual(code, 1)
        self.assertIn("Unable to control BlinkStick", out)
        self.assertTrue(transport.closed)

    def test_list(self):
        descriptor = bytearray(18)
        descriptor[14] = 1
        descriptor[15] = 2
        transport = FakeTransport(
            serial="BS000002-3.0",
            descriptor=bytes(descriptor),
            strings={1: "Agile Innovative Ltd", 2: "BlinkStick"},
        )
        finder = MagicMock()
        finder.find_all.return_value = ["candidate"]
        finder.open.return_value = BlinkStick(transport)
        code, out = self._run(finder, "-l")
        self.assertEqual(code, 0)
        self.assertIn("1 devices found", out)
        self.assertIn("BS000002-3.0 BlinkStick Strip/Square", out)
        self.assertIn("Agile Innovative Ltd", out)

    def test_info(self):
        transport = FakeTransport(
            serial="BS000001-1.0",
            reports={1: b"\x01\x10\x20\x30", 2: b"\x02desk" + bytes(28)},
            descriptor=bytes(18),
        )
        finder = MagicMock()
        finder.open.return_value = BlinkStick(transport)
        code, out = self._run(finder, "-i")
        self.assertEqual(code, 0)
        self.assertIn("#102030", out)
        self.assertIn("Info block 1:  desk", out)
        self.assertIn("Mode:          255", out)
