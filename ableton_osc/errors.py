"""
Exception taxonomy for the AbletonOSC client.

Every failure the client can report derives from AbletonOSCError, so callers
can catch the whole family or pick out the specific kind:

    TransportError   - socket level (bind, address, send, receive, timeout)
    CodecError       - OSC frame encode/decode problems
    InstallationError - Remote Script placement problems
"""

from typing import Optional


class AbletonOSCError(Exception):
    """Base class for every error raised by this package."""


# ==================== TRANSPORT ====================

class TransportError(AbletonOSCError):
    """Base class for UDP transport failures."""


class BindError(TransportError):
    """Raised when the local response port cannot be bound."""

    def __init__(self, host: str, port: int, reason: str) -> None:
        self.host = host
        self.port = port
        self.reason = reason
        super().__init__(
            f"Could not bind UDP {host}:{port} ({reason}). "
            "Another AbletonOSC client may already be listening on this port."
        )


class AddressError(TransportError):
    """Raised when the remote endpoint cannot be resolved."""


class SendError(TransportError):
    """Raised when a datagram could not be handed to the OS."""


class ReceiveError(TransportError):
    """Raised when the OS reports a failure while waiting for a reply."""


class OscTimeoutError(TransportError, TimeoutError):
    """Raised when no reply arrives within the configured timeout."""

    def __init__(self, timeout: float, address: Optional[str] = None) -> None:
        self.timeout = timeout
        self.address = address
        if address:
            message = f"No reply to {address} within {timeout:.3f}s"
        else:
            message = f"No datagram received within {timeout:.3f}s"
        super().__init__(message)


# ==================== CODEC ====================

class CodecError(AbletonOSCError):
    """Base class for OSC frame errors."""


class EncodeError(CodecError):
    """Raised when a WireMessage cannot be turned into an OSC frame."""


class DecodeError(CodecError):
    """Raised when a datagram is malformed or carries the wrong type."""

    def __init__(self, message: str, address: Optional[str] = None) -> None:
        self.address = address
        if address:
            message = f"{address}: {message}"
        super().__init__(message)


# ==================== INSTALLATION ====================

class InstallationError(AbletonOSCError):
    """Raised when the AbletonOSC Remote Script cannot be installed."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        self.path = path
        if path:
            message = f"{message} (path: {path})"
        super().__init__(message)


class UnsupportedPlatformError(InstallationError):
    """Raised on platforms where Ableton Live does not run."""

    def __init__(self, platform_name: str) -> None:
        self.platform_name = platform_name
        super().__init__(
            f"Unsupported operating system '{platform_name}'. "
            "Ableton Live only runs on macOS and Windows."
        )
