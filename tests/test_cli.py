"""
Tests for the ableton_osc command line: dispatch, argument styles and JSON
error reporting.
"""

import io
import json
import os
import sys
import tempfile
import unittest
from contextlib import redirect_stdout
from unittest.mock import MagicMock, patch

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ableton_osc import cli  # noqa: E402
from ableton_osc.client import AbletonInfo  # noqa: E402
from ableton_osc.errors import BindError, OscTimeoutError  # noqa: E402


def invoke(argv, client=None):
    out = io.StringIO()
    with redirect_stdout(out):
        code = cli.run(argv, client=client)
    return code, json.loads(out.getvalue())


class TestDispatch(unittest.TestCase):
    def setUp(self):
        self.client = MagicMock()

    def test_list(self):
        code, payload = invoke(["--list"])
        self.assertEqual(code, 0)
        self.assertEqual(payload["functions"], sorted(cli.DISPATCH))
        self.assertIn("set_tempo", payload["functions"])

    def test_no_arguments(self):
        code, payload = invoke([])
        self.assertEqual(code, 1)
        self.assertIn("Usage", payload["error"])

    def test_unknown_function(self):
        code, payload = invoke(["rewind"], self.client)
        self.assertEqual(code, 1)
        self.assertIn("Unknown function 'rewind'", payload["error"])

    def test_test_connection(self):
        self.client.test_connection.return_value = False
        code, payload = invoke(["test_connection"], self.client)
        self.assertEqual(code, 0)
        self.assertEqual(payload, {"success": True, "connected": False})

    def test_get_info(self):
        self.client.get_info.return_value = AbletonInfo(
            tempo=120.0, is_playing=False, current_time=0.0, scene_count=8, track_count=4,
        )
        code, payload = invoke(["get_info"], self.client)
        self.assertEqual(code, 0)
        self.assertEqual(payload["tempo"], 120.0)
        self.assertEqual(payload["signature_numerator"], 4)

    def test_set_tempo_json_args(self):
        code, payload = invoke(["set_tempo", '{"bpm": 128}'], self.client)
        self.assertEqual(code, 0)
        self.assertEqual(payload["bpm"], 128.0)
        self.client.set_tempo.assert_called_once_with(128.0)

    def test_set_playing_flag_args(self):
        code, payload = invoke(["set_playing", "--playing", "false"], self.client)
        self.assertEqual(code, 0)
        self.assertFalse(payload["playing"])
        self.client.set_playing.assert_called_once_with(False)

    def test_check_installed(self):
        with tempfile.TemporaryDirectory() as tmp, \
                patch.dict(os.environ, {"ABLETON_USER_LIBRARY": tmp}):
            code, payload = invoke(["check_installed"], self.client)
        self.assertEqual(code, 0)
        self.assertFalse(payload["installed"])
        self.assertTrue(payload["path"].endswith(os.path.join("Remote Scripts", "AbletonOSC")))


class TestArgumentErrors(unittest.TestCase):
    def test_invalid_json(self):
        code, payload = invoke(["set_tempo", "{bpm: 120"], MagicMock())
        self.assertEqual(code, 1)
        self.assertIn("Invalid JSON", payload["error"])

    def test_non_object_json(self):
        code, payload = invoke(["set_tempo", "[120]"], MagicMock())
        self.assertEqual(code, 1)
        self.assertIn("JSON object", payload["error"])

    def test_missing_argument(self):
        client = MagicMock()
        code, payload = invoke(["set_tempo", "{}"], client)
        self.assertEqual(code, 1)
        self.assertIn("bpm", payload["error"])
        client.set_tempo.assert_not_called()

    def test_misspelled_boolean_rejected(self):
        client = MagicMock()
        code, payload = invoke(["set_playing", "--playing", "ture"], client)
        self.assertEqual(code, 1)
        self.assertEqual(payload["error_type"], "ValueError")
        self.assertIn("'ture'", payload["error"])
        client.set_playing.assert_not_called()

    def test_flag_parsing(self):
        self.assertEqual(
            cli._parse_flag_args(["--bpm", "120", "--restart-ableton", "--ratio", "0.5"]),
            {"bpm": 120, "restart_ableton": True, "ratio": 0.5},
        )


class TestClientErrors(unittest.TestCase):
    def test_timeout_reported_with_type(self):
        client = MagicMock()
        client.get_info.side_effect = OscTimeoutError(0.5, "/live/song/get/tempo")
        code, payload = invoke(["get_info"], client)
        self.assertEqual(code, 1)
        self.assertFalse(payload["success"])
        self.assertEqual(payload["error_type"], "OscTimeoutError")
        self.assertIn("/live/song/get/tempo", payload["error"])

    def test_bind_error_reported_with_type(self):
        client = MagicMock()
        client.set_tempo.side_effect = BindError("0.0.0.0", 11001, "Address already in use")
        code, payload = invoke(["set_tempo", "--bpm", "100"], client)
        self.assertEqual(code, 1)
        self.assertEqual(payload["error_type"], "BindError")
        self.assertIn("11001", payload["error"])


if __name__ == "__main__":
    unittest.main()
