"""
Tests for AbletonProcessManager with psutil and subprocess mocked out.
"""

import os
import subprocess
import sys
import unittest
from unittest.mock import MagicMock, patch

import psutil

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ableton_osc.process import AbletonProcessManager, _is_ableton_name  # noqa: E402


def fake_proc(pid, name):
    proc = MagicMock()
    proc.info = {"pid": pid, "name": name}
    return proc


class TestProcessNames(unittest.TestCase):
    def test_recognizes_live(self):
        self.assertTrue(_is_ableton_name("Live"))
        self.assertTrue(_is_ableton_name("Ableton Live 12 Suite.exe"))
        self.assertTrue(_is_ableton_name("live.exe"))

    def test_ignores_other_processes(self):
        self.assertFalse(_is_ableton_name(None))
        self.assertFalse(_is_ableton_name("LiveSync"))
        self.assertFalse(_is_ableton_name("python"))


@patch("ableton_osc.process.psutil.process_iter")
class TestIsRunning(unittest.TestCase):
    def test_running(self, process_iter):
        process_iter.return_value = [fake_proc(1, "Finder"), fake_proc(42, "Live")]
        self.assertEqual(AbletonProcessManager().is_ableton_running(), (True, 42))

    def test_not_running(self, process_iter):
        process_iter.return_value = [fake_proc(1, "Finder")]
        self.assertEqual(AbletonProcessManager().is_ableton_running(), (False, None))


class TestCloseAbleton(unittest.TestCase):
    def setUp(self):
        self.manager = AbletonProcessManager(platform_name="darwin")

    def test_not_running_counts_as_closed(self):
        with patch.object(self.manager, "is_ableton_running", return_value=(False, None)):
            self.assertTrue(self.manager.close_ableton())

    @patch("ableton_osc.process.psutil.Process")
    def test_graceful_terminate(self, process_cls):
        with patch.object(self.manager, "is_ableton_running", return_value=(True, 42)), \
                patch.object(self.manager, "wait_for_ableton_exit", return_value=True):
            self.assertTrue(self.manager.close_ableton())
        process_cls.assert_called_once_with(42)
        process_cls.return_value.terminate.assert_called_once()
        process_cls.return_value.kill.assert_not_called()

    @patch("ableton_osc.process.psutil.Process")
    def test_force_kill_after_timeout(self, process_cls):
        with patch.object(self.manager, "is_ableton_running", return_value=(True, 42)), \
                patch.object(self.manager, "wait_for_ableton_exit", side_effect=[False, True]):
            self.assertTrue(self.manager.close_ableton(timeout=0.1))
        process_cls.return_value.kill.assert_called_once()

    @patch("ableton_osc.process.psutil.Process")
    def test_no_force_leaves_live_running(self, process_cls):
        with patch.object(self.manager, "is_ableton_running", return_value=(True, 42)), \
                patch.object(self.manager, "wait_for_ableton_exit", return_value=False):
            self.assertFalse(self.manager.close_ableton(force=False, timeout=0.1))
        process_cls.return_value.kill.assert_not_called()

    @patch("ableton_osc.process.psutil.Process")
    def test_access_denied(self, process_cls):
        process_cls.return_value.terminate.side_effect = psutil.AccessDenied(42)
        with patch.object(self.manager, "is_ableton_running", return_value=(True, 42)):
            self.assertFalse(self.manager.close_ableton())


@patch("ableton_osc.process.subprocess.Popen")
class TestLaunchAbleton(unittest.TestCase):
    def _manager(self, platform_name, **kwargs):
        manager = AbletonProcessManager(platform_name=platform_name, **kwargs)
        patcher = patch.object(manager, "is_ableton_running", return_value=(False, None))
        patcher.start()
        self.addCleanup(patcher.stop)
        return manager

    def test_macos_uses_bundle_id(self, popen):
        self.assertTrue(self._manager("darwin").launch_ableton())
        self.assertEqual(popen.call_args[0][0], ["open", "-b", "com.ableton.live"])

    def test_windows_uses_executable(self, popen):
        exe = r"C:\ProgramData\Ableton\Live 12 Suite\Program\Ableton Live 12 Suite.exe"
        self.assertTrue(self._manager("win32", ableton_path=exe).launch_ableton())
        self.assertEqual(popen.call_args[0][0], [exe])

    def test_windows_without_executable(self, popen):
        manager = self._manager("win32")
        with patch.object(manager, "find_ableton", return_value=None):
            self.assertFalse(manager.launch_ableton())
        popen.assert_not_called()

    def test_unsupported_platform(self, popen):
        self.assertFalse(self._manager("linux").launch_ableton())
        popen.assert_not_called()

    def test_launch_failure(self, popen):
        popen.side_effect = FileNotFoundError("open")
        self.assertFalse(self._manager("darwin").launch_ableton())

    def test_already_running(self, popen):
        manager = AbletonProcessManager(platform_name="darwin")
        with patch.object(manager, "is_ableton_running", return_value=(True, 7)):
            self.assertTrue(manager.launch_ableton())
        popen.assert_not_called()

    def test_output_is_discarded(self, popen):
        self._manager("darwin").launch_ableton()
        self.assertEqual(popen.call_args[1]["stdout"], subprocess.DEVNULL)


if __name__ == "__main__":
    unittest.main()
