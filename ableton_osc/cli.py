"""
AbletonOSC CLI: command-line wrapper around the AbletonOSC client.

Usage:
    python -m ableton_osc <function_name> '<json_args>'
    python -m ableton_osc --list            # list all available functions

Examples:
    python -m ableton_osc test_connection
    python -m ableton_osc get_info
    python -m ableton_osc set_tempo '{"bpm": 128}'
    python -m ableton_osc set_playing --playing true

All output is JSON on stdout.  Exit code 0 on success, 1 on error.
"""

import json
import logging
import os
import sys
from typing import Any, Callable, Dict, List, Optional

from .client import AbletonOSCClient
from .errors import AbletonOSCError
from .installer import get_installed_script_path, install_ableton_osc, is_installed
from .logging_config import setup_logging
from .preflight import run_preflight

logger = logging.getLogger(__name__)


_TRUE_STRINGS = ("1", "true", "yes", "on")
_FALSE_STRINGS = ("0", "false", "no", "off")


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        raise ValueError(f"expected true/false, got {value!r}")
    return bool(value)


def _require(args: Dict[str, Any], key: str) -> Any:
    if args.get(key) is None:
        raise ValueError(f"missing required argument '{key}'")
    return args[key]


def _set_playing(client: AbletonOSCClient, args: Dict[str, Any]) -> Dict[str, Any]:
    playing = _to_bool(_require(args, "playing"))
    client.set_playing(playing)
    return {"success": True, "playing": playing,
            "message": "Playback start sent" if playing else "Playback stop sent"}


def _set_tempo(client: AbletonOSCClient, args: Dict[str, Any]) -> Dict[str, Any]:
    bpm = float(_require(args, "bpm"))
    client.set_tempo(bpm)
    return {"success": True, "bpm": bpm, "message": f"Tempo set to {bpm} BPM (not acknowledged)"}


def _check_installed(_client: AbletonOSCClient, _args: Dict[str, Any]) -> Dict[str, Any]:
    path = get_installed_script_path()
    return {"success": True, "installed": is_installed(path), "path": str(path)}


def _install(_client: AbletonOSCClient, args: Dict[str, Any]) -> Dict[str, Any]:
    restart = _to_bool(args.get("restart_ableton", True))
    return install_ableton_osc(restart_ableton=restart).model_dump()


def _preflight(client: AbletonOSCClient, args: Dict[str, Any]) -> Dict[str, Any]:
    report = run_preflight(
        client,
        require_install=_to_bool(args.get("require_install", True)),
        osc_attempts=int(args.get("attempts", 3)),
    )
    report["success"] = report["ok"]
    return report


DISPATCH: Dict[str, Callable[[AbletonOSCClient, Dict[str, Any]], Dict[str, Any]]] = {
    # -- Connectivity / song info --
    "test_connection": lambda c, a: {"success": True, "connected": c.test_connection()},
    "get_info":        lambda c, a: {"success": True, **c.get_info().model_dump()},

    # -- Transport / tempo (one-way) --
    "set_playing":     _set_playing,
    "set_tempo":       _set_tempo,

    # -- Installation --
    "check_installed": _check_installed,
    "install":         _install,
    "preflight":       _preflight,
}


def list_functions() -> List[str]:
    """Return sorted list of all available function names."""
    return sorted(DISPATCH)


def _parse_flag_args(argv: List[str]) -> Dict[str, Any]:
    """Fallback: parse --key value pairs from argv."""
    args: Dict[str, Any] = {}
    i = 0
    while i < len(argv):
        if argv[i].startswith("--"):
            key = argv[i][2:].replace("-", "_")
            if i + 1 < len(argv) and not argv[i + 1].startswith("--"):
                val: Any = argv[i + 1]
                try:
                    val = int(val)
                except ValueError:
                    try:
                        val = float(val)
                    except ValueError:
                        pass
                args[key] = val
                i += 2
            else:
                args[key] = True
                i += 1
        else:
            i += 1
    return args


def _emit(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, default=str))


def run(argv: List[str], client: Optional[AbletonOSCClient] = None) -> int:
    """Execute one CLI invocation and return the exit code."""
    if not argv:
        _emit({"success": False, "error": "Usage: python -m ableton_osc <function_name> '<json_args>' | --list"})
        return 1

    if argv[0] == "--list":
        _emit({"functions": list_functions()})
        return 0

    func_name = argv[0]
    rest = argv[1:]
    if func_name not in DISPATCH:
        _emit({"success": False,
               "error": f"Unknown function '{func_name}'. Use --list to see available functions."})
        return 1

    if not rest:
        args: Any = {}
    elif rest[0].startswith("--"):
        args = _parse_flag_args(rest)
    else:
        try:
            args = json.loads(rest[0])
        except json.JSONDecodeError:
            _emit({"success": False,
                   "error": f"Invalid JSON args. Received: {rest[0]!r}. Use flag style instead: --bpm 120"})
            return 1

    if not isinstance(args, dict):
        _emit({"success": False, "error": "Args must be a JSON object"})
        return 1

    try:
        client = client or AbletonOSCClient()
        result = DISPATCH[func_name](client, args)
    except AbletonOSCError as e:
        logger.error("%s failed: %s", func_name, e)
        _emit({"success": False, "error": str(e), "error_type": type(e).__name__})
        return 1
    except ValueError as e:
        _emit({"success": False, "error": f"{func_name}: {e}", "error_type": "ValueError"})
        return 1

    _emit(result)
    return 0 if result.get("success", True) else 1


def main() -> None:
    setup_logging(log_file=os.environ.get("ABLETON_OSC_LOG_FILE", "logs/ableton_osc.log"),
                  console_level=logging.WARNING)
    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
