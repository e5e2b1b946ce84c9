"""
Runtime settings for the AbletonOSC client.

Values come from environment variables (a local .env file is honoured via
python-dotenv). Defaults match AbletonOSC's own conventions: it listens on
UDP 11000 and replies to port 11001.
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

DEFAULT_REMOTE_HOST = "127.0.0.1"
DEFAULT_REMOTE_PORT = 11000
DEFAULT_LOCAL_HOST = "0.0.0.0"
DEFAULT_LOCAL_PORT = 11001
DEFAULT_TIMEOUT = 0.5
DEFAULT_BIND_WAIT = 5.0

# /live/test is answered by AbletonOSC itself; tempo works on older builds too.
DEFAULT_PROBE_ADDRESSES = ("/live/test", "/live/song/get/tempo")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be a number of seconds, got {raw!r}")


def _env_bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw = environ.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean (true/false), got {raw!r}")


@dataclass(frozen=True)
class OSCSettings:
    """Endpoints and timing for one conversation with AbletonOSC.

    Args:
        remote_host: Host AbletonOSC listens on (default: 127.0.0.1)
        remote_port: Port AbletonOSC listens on (default: 11000)
        local_host: Interface to bind for replies (default: all interfaces)
        local_port: Port AbletonOSC sends replies to (default: 11001)
        timeout: Seconds to wait for each reply
        bind_wait: Seconds to wait for another in-process user of
            local_port to release it before giving up with BindError
        verify_sender: Drop datagrams that do not come from the remote endpoint
        match_reply_address: Discard replies whose address differs from the query
        probe_addresses: Queries tried in order by test_connection()
    """

    remote_host: str = DEFAULT_REMOTE_HOST
    remote_port: int = DEFAULT_REMOTE_PORT
    local_host: str = DEFAULT_LOCAL_HOST
    local_port: int = DEFAULT_LOCAL_PORT
    timeout: float = DEFAULT_TIMEOUT
    bind_wait: float = DEFAULT_BIND_WAIT
    verify_sender: bool = False
    match_reply_address: bool = True
    probe_addresses: Tuple[str, ...] = field(default=DEFAULT_PROBE_ADDRESSES)

    def __post_init__(self):
        for name in ("remote_port", "local_port"):
            port = getattr(self, name)
            if not 0 <= port <= 65535:
                raise ValueError(f"{name} must be between 0 and 65535, got {port}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.bind_wait < 0:
            raise ValueError(f"bind_wait cannot be negative, got {self.bind_wait}")
        if not self.probe_addresses:
            raise ValueError("probe_addresses needs at least one OSC address")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "OSCSettings":
        """Build settings from ABLETON_OSC_* environment variables."""
        if environ is None:
            load_dotenv()
            environ = os.environ

        return cls(
            remote_host=environ.get("ABLETON_OSC_HOST", DEFAULT_REMOTE_HOST).strip(),
            remote_port=_env_int(environ, "ABLETON_OSC_PORT", DEFAULT_REMOTE_PORT),
            local_host=environ.get("ABLETON_OSC_LISTEN_HOST", DEFAULT_LOCAL_HOST).strip(),
            local_port=_env_int(environ, "ABLETON_OSC_LISTEN_PORT", DEFAULT_LOCAL_PORT),
            timeout=_env_float(environ, "ABLETON_OSC_TIMEOUT", DEFAULT_TIMEOUT),
            bind_wait=_env_float(environ, "ABLETON_OSC_BIND_WAIT", DEFAULT_BIND_WAIT),
            verify_sender=_env_bool(environ, "ABLETON_OSC_VERIFY_SENDER", False),
            match_reply_address=_env_bool(environ, "ABLETON_OSC_MATCH_REPLY_ADDRESS", True),
        )
