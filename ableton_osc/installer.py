"""
AbletonOSC Remote Script installation.

Places the AbletonOSC control surface into the Live User Library's
"Remote Scripts" folder, where Live picks up third-party control surfaces:

    macOS:   ~/Music/Ableton/User Library/Remote Scripts/AbletonOSC
    Windows: ~/Documents/Ableton/User Library/Remote Scripts/AbletonOSC

The client never assumes the script is installed; is_installed() is a plain
filesystem check, and a missing script simply shows up as "not connected".
"""

import io
import logging
import os
import shutil
import sys
import tempfile
import zipfile
from pathlib import Path
from typing import Optional

import requests
from pydantic import BaseModel

from .errors import InstallationError, UnsupportedPlatformError
from .process import AbletonProcessManager

logger = logging.getLogger(__name__)

ABLETON_OSC_ARCHIVE_URL = "https://github.com/ideoforms/AbletonOSC/archive/refs/heads/master.zip"
SCRIPT_DIR_NAME = "AbletonOSC"
DOWNLOAD_TIMEOUT = 60.0

NEXT_STEPS = (
    "Please:\n"
    "1. Go to Preferences > Link/Tempo/MIDI\n"
    "2. Select 'AbletonOSC' from the Control Surface dropdown"
)


class InstallResult(BaseModel):
    """Outcome of install_ableton_osc()."""
    success: bool
    message: str
    path: Optional[str] = None


def get_user_library_dir(platform_name: Optional[str] = None, home: Optional[Path] = None) -> Path:
    """
    Resolve the Ableton User Library folder.

    ABLETON_USER_LIBRARY overrides the platform default.

    Raises:
        UnsupportedPlatformError: not macOS or Windows and no override set
    """
    override = os.environ.get("ABLETON_USER_LIBRARY")
    if override:
        return Path(override).expanduser()

    platform_name = platform_name or sys.platform
    home = home or Path.home()
    if platform_name == "darwin":
        return home / "Music" / "Ableton" / "User Library"
    if platform_name.startswith("win"):
        return home / "Documents" / "Ableton" / "User Library"
    raise UnsupportedPlatformError(platform_name)


def get_remote_scripts_dir(platform_name: Optional[str] = None, home: Optional[Path] = None) -> Path:
    return get_user_library_dir(platform_name, home) / "Remote Scripts"


def get_installed_script_path(platform_name: Optional[str] = None, home: Optional[Path] = None) -> Path:
    return get_remote_scripts_dir(platform_name, home) / SCRIPT_DIR_NAME


def is_installed(script_path: Optional[Path] = None) -> bool:
    """True if the AbletonOSC folder exists and contains its __init__.py.

    Platforms without a known User Library report False.
    """
    if script_path is None:
        try:
            script_path = get_installed_script_path()
        except UnsupportedPlatformError as e:
            logger.info("AbletonOSC installation check skipped: %s", e)
            return False
    installed = script_path.is_dir() and (script_path / "__init__.py").is_file()
    logger.debug("AbletonOSC installation check at %s: %s", script_path, installed)
    return installed


def _download_archive(url: str, session: Optional[requests.Session]) -> bytes:
    getter = session or requests
    try:
        response = getter.get(url, timeout=DOWNLOAD_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as e:
        raise InstallationError(f"Failed to download AbletonOSC from {url}: {e}")
    return response.content


def _extract_script(archive: bytes, workdir: Path) -> Path:
    """Unpack the archive and return its single top-level folder."""
    try:
        with zipfile.ZipFile(io.BytesIO(archive)) as zf:
            zf.extractall(workdir)
    except zipfile.BadZipFile as e:
        raise InstallationError(f"Downloaded AbletonOSC archive is not a valid zip file: {e}")

    folders = [p for p in workdir.iterdir() if p.is_dir()]
    if len(folders) != 1:
        raise InstallationError(
            f"Expected one top-level folder in the AbletonOSC archive, found {len(folders)}",
            path=str(workdir),
        )
    source = folders[0]
    if not (source / "__init__.py").is_file():
        raise InstallationError("AbletonOSC archive has no __init__.py", path=str(source))
    return source


def _swap_into_place(source: Path, target: Path) -> None:
    """Copy *source* beside *target* and swap it in; the old copy survives a failed copy."""
    try:
        staging_root = Path(tempfile.mkdtemp(prefix=".ableton-osc-", dir=target.parent))
    except OSError as e:
        raise InstallationError(f"Failed to create staging directory: {e}", path=str(target.parent))

    try:
        staged = staging_root / target.name
        try:
            shutil.copytree(source, staged)
        except (OSError, shutil.Error) as e:
            raise InstallationError(f"Failed to copy AbletonOSC: {e}", path=str(target))

        previous = staging_root / "previous"
        if target.exists():
            logger.info("Replacing previous AbletonOSC installation at %s", target)
            try:
                target.rename(previous)
            except OSError as e:
                raise InstallationError(f"Failed to move old installation aside: {e}", path=str(target))

        try:
            staged.rename(target)
        except OSError as e:
            if previous.exists():
                previous.rename(target)
            raise InstallationError(f"Failed to move new installation into place: {e}", path=str(target))
    finally:
        shutil.rmtree(staging_root, ignore_errors=True)


def install_ableton_osc(restart_ableton: bool = True,
                        remote_scripts_dir: Optional[Path] = None,
                        archive_url: str = ABLETON_OSC_ARCHIVE_URL,
                        session: Optional[requests.Session] = None,
                        process_manager: Optional[AbletonProcessManager] = None) -> InstallResult:
    """
    Download AbletonOSC and install it into the Remote Scripts folder.

    Any previous installation is replaced, but only once the new copy is
    complete. When *restart_ableton* is set, Live is closed before copying
    (it locks the scripts it has loaded) and relaunched afterwards, also
    when the installation fails.

    Args:
        restart_ableton: Close Live before and relaunch it after installing
        remote_scripts_dir: Target Remote Scripts folder (auto-detected if None)
        archive_url: Zip archive of the AbletonOSC repository
        session: Optional requests.Session for the download
        process_manager: Optional AbletonProcessManager (for restarting Live)

    Returns:
        InstallResult with the installed path and the manual next steps

    Raises:
        InstallationError: naming what failed and the path involved
    """
    scripts_dir = remote_scripts_dir or get_remote_scripts_dir()
    target = scripts_dir / SCRIPT_DIR_NAME
    manager = process_manager or AbletonProcessManager()

    if restart_ableton and not manager.close_ableton():
        raise InstallationError("Ableton Live is still running; close it and retry", path=str(target))

    relaunched = False
    try:
        try:
            scripts_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise InstallationError(f"Failed to create Remote Scripts directory: {e}", path=str(scripts_dir))

        archive = _download_archive(archive_url, session)

        with tempfile.TemporaryDirectory(prefix="ableton-osc-") as tmp:
            source = _extract_script(archive, Path(tmp))
            _swap_into_place(source, target)
    finally:
        if restart_ableton:
            relaunched = manager.launch_ableton()

    logger.info("AbletonOSC installed at %s", target)

    if relaunched:
        message = f"AbletonOSC installed successfully! Ableton is restarting.\n{NEXT_STEPS}"
    else:
        message = f"AbletonOSC installed successfully! Start Ableton Live, then:\n{NEXT_STEPS}"

    return InstallResult(success=True, message=message, path=str(target))
