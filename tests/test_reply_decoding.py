"""
Calibration tests for reply decoding strictness.

AbletonOSC is not consistent about wire types (counts sometimes arrive as
floats, booleans sometimes as ints), so each decoder's accepted set is
pinned down here.
"""

import math
import os
import sys
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fake_live import build_reply  # noqa: E402

from ableton_osc.codec import (  # noqa: E402
    TypedValue,
    ValueType,
    WireMessage,
    decode,
    decode_bool,
    decode_float,
    decode_int_lenient,
    decode_int_strict,
    first_arg,
)
from ableton_osc.errors import DecodeError  # noqa: E402


def reply(*values):
    return WireMessage.build("/live/song/get/num_tracks", *values)


class TestIntegerStrictness(unittest.TestCase):
    def test_strict_accepts_native_int(self):
        self.assertEqual(decode_int_strict(reply(7)), 7)

    def test_strict_rejects_float(self):
        with self.assertRaises(DecodeError):
            decode_int_strict(reply(4.9))

    def test_strict_rejects_bool(self):
        with self.assertRaises(DecodeError):
            decode_int_strict(reply(True))

    def test_lenient_truncates_toward_zero(self):
        self.assertEqual(decode_int_lenient(reply(4.9)), 4)
        self.assertEqual(decode_int_lenient(reply(-4.9)), -4)
        self.assertEqual(decode_int_lenient(reply(8.0)), 8)

    def test_lenient_accepts_native_int(self):
        self.assertEqual(decode_int_lenient(reply(-3)), -3)

    def test_lenient_rejects_string(self):
        with self.assertRaises(DecodeError):
            decode_int_lenient(reply("four"))

    def test_lenient_rejects_non_finite(self):
        for value in (math.nan, math.inf, -math.inf):
            with self.subTest(value=value):
                with self.assertRaises(DecodeError):
                    decode_int_lenient(WireMessage("/x", (TypedValue(ValueType.FLOAT, value),)))

    def test_lenient_truncates_float32_from_the_wire(self):
        # 4.9 is not exact in 32 bits; it still truncates to 4
        message = decode(build_reply("/live/song/get/num_scenes", 4.9))
        self.assertEqual(decode_int_lenient(message), 4)
        with self.assertRaises(DecodeError):
            decode_int_strict(message)


class TestBooleanDecoding(unittest.TestCase):
    def test_native_bool(self):
        self.assertTrue(decode_bool(reply(True)))
        self.assertFalse(decode_bool(reply(False)))

    def test_integer_bool(self):
        self.assertFalse(decode_bool(reply(0)))
        self.assertTrue(decode_bool(reply(1)))
        self.assertTrue(decode_bool(reply(-3)))

    def test_float_and_string_rejected(self):
        with self.assertRaises(DecodeError):
            decode_bool(reply(1.0))
        with self.assertRaises(DecodeError):
            decode_bool(reply("true"))

    def test_wire_true_false_tags(self):
        self.assertTrue(decode_bool(decode(build_reply("/live/song/get/is_playing", True))))
        self.assertFalse(decode_bool(decode(build_reply("/live/song/get/is_playing", False))))


class TestFloatDecoding(unittest.TestCase):
    def test_float(self):
        self.assertEqual(decode_float(reply(120.0)), 120.0)

    def test_int_rejected(self):
        with self.assertRaises(DecodeError):
            decode_float(reply(120))


class TestMissingArgument(unittest.TestCase):
    def test_every_decoder_rejects_empty_reply(self):
        empty = WireMessage("/live/song/get/tempo")
        for decoder in (first_arg, decode_float, decode_bool, decode_int_strict, decode_int_lenient):
            with self.subTest(decoder=decoder.__name__):
                with self.assertRaises(DecodeError) as ctx:
                    decoder(empty)
                self.assertEqual(ctx.exception.address, "/live/song/get/tempo")


if __name__ == "__main__":
    unittest.main()
