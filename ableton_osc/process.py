"""
Ableton Live Process Manager

Closes and relaunches Ableton Live around a Remote Script installation:
- Detect if Ableton is running
- Close Ableton (graceful terminate, then force kill)
- Launch Ableton (macOS bundle id, or a Windows executable)
"""

import glob
import logging
import os
import subprocess
import sys
import time
from typing import List, Optional, Tuple

import psutil

logger = logging.getLogger(__name__)

MACOS_BUNDLE_ID = "com.ableton.live"

# Live's process is "Live" on macOS and "Ableton Live 12 Suite.exe" etc. on Windows
_PROCESS_NAMES = ("live", "live.exe")
_PROCESS_PREFIX = "ableton live"


def _is_ableton_name(name: Optional[str]) -> bool:
    if not name:
        return False
    name = name.lower()
    return name in _PROCESS_NAMES or name.startswith(_PROCESS_PREFIX)


class AbletonProcessManager:
    """Detects, closes and launches the Ableton Live process"""

    def __init__(self, ableton_path: Optional[str] = None, platform_name: Optional[str] = None):
        """
        Args:
            ableton_path: Windows path to the Live executable (auto-detected if None)
            platform_name: sys.platform override, mainly for tests
        """
        self.platform_name = platform_name or sys.platform
        self.ableton_path = ableton_path

    def _windows_candidates(self) -> List[str]:
        roots = [
            os.environ.get("ProgramData", r"C:\ProgramData"),
            os.environ.get("ProgramFiles", r"C:\Program Files"),
            os.environ.get("ProgramFiles(x86)", r"C:\Program Files (x86)"),
        ]
        candidates: List[str] = []
        for root in roots:
            pattern = os.path.join(root, "Ableton", "Live *", "Program", "Ableton Live *.exe")
            # Newest major version first
            candidates.extend(sorted(glob.glob(pattern), reverse=True))
        return candidates

    def find_ableton(self) -> Optional[str]:
        """Auto-detect the Live executable on Windows"""
        if self.ableton_path:
            return self.ableton_path
        for path in self._windows_candidates():
            if os.path.exists(path):
                return path
        return None

    def is_ableton_running(self) -> Tuple[bool, Optional[int]]:
        """
        Check if Ableton is currently running

        Returns:
            Tuple of (is_running, pid)
        """
        for proc in psutil.process_iter(['pid', 'name']):
            try:
                if _is_ableton_name(proc.info['name']):
                    return True, proc.info['pid']
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue

        return False, None

    def wait_for_ableton_exit(self, timeout: float = 30.0) -> bool:
        """
        Wait for Ableton to fully exit

        Returns:
            True if Ableton exited, False on timeout
        """
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if not self.is_ableton_running()[0]:
                return True
            time.sleep(0.5)
        return not self.is_ableton_running()[0]

    def close_ableton(self, force: bool = True, timeout: float = 10.0) -> bool:
        """
        Close Ableton Live.

        Sends a graceful terminate first. If Live is still running after
        *timeout* seconds and *force* is True, kills the process.

        Returns:
            True if Ableton was closed (or wasn't running), False otherwise
        """
        is_running, pid = self.is_ableton_running()
        if not is_running:
            logger.info("Ableton is not running")
            return True

        logger.info("Closing Ableton (PID: %s)...", pid)
        try:
            proc = psutil.Process(pid)
            proc.terminate()
            if self.wait_for_ableton_exit(timeout=timeout):
                logger.info("Ableton closed")
                return True

            if not force:
                logger.error("Ableton did not close within %ss", timeout)
                return False

            logger.warning("Graceful exit failed, force killing Ableton (PID: %s)", pid)
            proc.kill()
            return self.wait_for_ableton_exit(timeout=5.0)
        except psutil.NoSuchProcess:
            return True
        except psutil.AccessDenied as e:
            logger.error("Not allowed to close Ableton (PID: %s): %s", pid, e)
            return False

    def launch_ableton(self) -> bool:
        """
        Launch Ableton Live without waiting for it to finish loading

        Returns:
            True if a launch was started (or Live is already running)
        """
        is_running, pid = self.is_ableton_running()
        if is_running:
            logger.info("Ableton already running (PID: %s)", pid)
            return True

        if self.platform_name == "darwin":
            cmd = ["open", "-b", MACOS_BUNDLE_ID]
            creationflags = 0
        elif self.platform_name.startswith("win"):
            path = self.find_ableton()
            if not path:
                logger.error("Ableton executable not found; start Live manually")
                return False
            cmd = [path]
            creationflags = (getattr(subprocess, "DETACHED_PROCESS", 0)
                             | getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0))
        else:
            logger.error("Cannot launch Ableton on platform %s", self.platform_name)
            return False

        logger.info("Launching Ableton Live: %s", " ".join(cmd))
        try:
            subprocess.Popen(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                creationflags=creationflags,
            )
        except OSError as e:
            logger.error("Failed to launch Ableton: %s", e)
            return False
        return True
