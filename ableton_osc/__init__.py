"""
AbletonOSC Client Package

Query and control a running Ableton Live set through the AbletonOSC remote
script (OSC over UDP, 127.0.0.1:11000 -> replies on :11001).
"""

__version__ = "0.1.0"

from .client import AbletonInfo, AbletonOSCClient
from .codec import (
    TypedValue,
    ValueType,
    WireMessage,
    decode,
    decode_bool,
    decode_float,
    decode_int_lenient,
    decode_int_strict,
    encode,
    first_arg,
)
from .config import OSCSettings
from .errors import (
    AbletonOSCError,
    AddressError,
    BindError,
    CodecError,
    DecodeError,
    EncodeError,
    InstallationError,
    OscTimeoutError,
    ReceiveError,
    SendError,
    TransportError,
    UnsupportedPlatformError,
)
from .installer import InstallResult, get_installed_script_path, install_ableton_osc, is_installed
from .transport import UDPTransport

__all__ = [
    'AbletonInfo',
    'AbletonOSCClient',
    'OSCSettings',
    'UDPTransport',
    'TypedValue',
    'ValueType',
    'WireMessage',
    'encode',
    'decode',
    'first_arg',
    'decode_float',
    'decode_bool',
    'decode_int_strict',
    'decode_int_lenient',
    'AbletonOSCError',
    'TransportError',
    'BindError',
    'AddressError',
    'SendError',
    'ReceiveError',
    'OscTimeoutError',
    'CodecError',
    'EncodeError',
    'DecodeError',
    'InstallationError',
    'UnsupportedPlatformError',
    'InstallResult',
    'install_ableton_osc',
    'is_installed',
    'get_installed_script_path',
]
