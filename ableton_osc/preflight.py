"""
Preflight guard: deterministic readiness checks for AbletonOSC before
execution-heavy flows.

Returns structured diagnostics so callers get actionable error messages
(what failed, and where the Remote Script was expected) instead of vague
timeouts.
"""

import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from .client import AbletonOSCClient
from .errors import UnsupportedPlatformError
from .installer import get_installed_script_path, is_installed


# ---------------------------------------------------------------------------
# Individual check primitives
# ---------------------------------------------------------------------------

def check_installation(script_path: Optional[Path] = None) -> Dict[str, Any]:
    """Verify the AbletonOSC Remote Script is in the Remote Scripts folder.

    Returns:
        ``{"ok": bool, "path": str|None, "message": str}``
    """
    try:
        target = script_path or get_installed_script_path()
    except UnsupportedPlatformError as exc:
        return {"ok": False, "path": None, "message": str(exc)}

    if is_installed(target):
        return {"ok": True, "path": str(target),
                "message": f"AbletonOSC installed at {target}"}
    return {
        "ok": False,
        "path": str(target),
        "message": (f"AbletonOSC not found at {target}. "
                    "Run 'python -m ableton_osc install' or copy AbletonOSC there manually."),
    }


def check_osc_bridge(client: AbletonOSCClient,
                     attempts: int = 3,
                     delay_s: float = 1.0) -> Dict[str, Any]:
    """Verify AbletonOSC is answering queries.

    Args:
        client: Client whose test_connection() is probed.
        attempts: Max retries.
        delay_s: Seconds between retries.

    Returns:
        ``{"ok": bool, "latency_ms": float|None, "attempts_used": int,
           "message": str}``
    """
    for i in range(1, attempts + 1):
        t0 = time.monotonic()
        if client.test_connection():
            elapsed_ms = (time.monotonic() - t0) * 1000
            return {
                "ok": True,
                "latency_ms": round(elapsed_ms, 1),
                "attempts_used": i,
                "message": f"AbletonOSC responding ({elapsed_ms:.0f} ms, attempt {i}/{attempts})",
            }
        if i < attempts:
            time.sleep(delay_s)

    settings = client.settings
    return {
        "ok": False,
        "latency_ms": None,
        "attempts_used": attempts,
        "message": (f"AbletonOSC unreachable at {settings.remote_host}:{settings.remote_port} "
                    f"after {attempts} attempts. Make sure Live is running and 'AbletonOSC' "
                    "is selected as a Control Surface in Preferences > Link/Tempo/MIDI."),
    }


# ---------------------------------------------------------------------------
# Composite preflight
# ---------------------------------------------------------------------------

def run_preflight(client: AbletonOSCClient,
                  require_install: bool = True,
                  script_path: Optional[Path] = None,
                  osc_attempts: int = 3,
                  osc_delay_s: float = 1.0) -> Dict[str, Any]:
    """Run all preflight checks and return a combined report.

    Checks run in dependency order; later checks are skipped if an earlier
    one fails so the caller gets the *first* actionable failure.

    Returns:
        ``{"ok": bool, "checks": [...], "failure_type": str|None,
           "message": str}``
    """
    checks: List[Dict[str, Any]] = []

    # 1. Remote Script on disk (optional: Live may run on another machine)
    if require_install:
        install = check_installation(script_path)
        checks.append({"name": "installation", **install})
        if not install["ok"]:
            return _build_report(checks, "ableton_osc_not_installed")

    # 2. OSC round trip
    osc = check_osc_bridge(client, attempts=osc_attempts, delay_s=osc_delay_s)
    checks.append({"name": "osc_bridge", **osc})
    if not osc["ok"]:
        return _build_report(checks, "osc_unreachable")

    return _build_report(checks, None)


def _build_report(checks: List[Dict[str, Any]],
                  failure_type: Optional[str]) -> Dict[str, Any]:
    ok = failure_type is None
    if ok:
        msg = f"All {len(checks)} preflight checks passed"
    else:
        failed = [c for c in checks if not c.get("ok")]
        msg = failed[0]["message"] if failed else "Unknown preflight failure"
    return {
        "ok": ok,
        "checks": checks,
        "failure_type": failure_type,
        "message": msg,
    }
