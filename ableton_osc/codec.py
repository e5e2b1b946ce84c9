"""
OSC message codec for AbletonOSC traffic.

Frames are plain OSC 1.0 messages (address + type tags + arguments), built
and parsed with python-osc. Arguments are restricted to a closed set of
types that AbletonOSC actually uses:

    FLOAT  <-> 'f' (32-bit; 'd' accepted on decode and rounded to 32 bits)
    INT    <-> 'i' (32-bit; 'h' accepted on decode)
    BOOL   <-> 'T' / 'F'
    STRING <-> 's'

python-osc is lenient with damaged datagrams (it zero-pads short floats and
skips unknown tags), so decode() walks the frame layout first and only then
lets python-osc read the values.
"""

import math
import struct
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Tuple, Union

from pythonosc import osc_message_builder
from pythonosc.osc_bundle import OscBundle
from pythonosc.osc_message import OscMessage, ParseError
from pythonosc.osc_message_builder import OscMessageBuilder
from pythonosc.parsing import osc_types

from .errors import DecodeError, EncodeError

Scalar = Union[float, int, bool, str]


class ValueType(str, Enum):
    """Closed set of argument types carried in a WireMessage."""
    FLOAT = "float"
    INT = "int"
    BOOL = "bool"
    STRING = "string"


def _to_float32(value: Union[int, float]) -> float:
    """Round to the nearest 32-bit float, the precision of an OSC 'f'."""
    try:
        return struct.unpack(">f", struct.pack(">f", value))[0]
    except (OverflowError, struct.error) as exc:
        raise ValueError(f"float value {value!r} is outside the 32-bit range: {exc}")


@dataclass(frozen=True)
class TypedValue:
    """A single tagged OSC argument.

    The Python type of ``value`` must agree with ``type``; in particular a
    bool is never accepted as an INT (and vice versa). FLOAT values are held
    at 32-bit precision, so they survive encode/decode unchanged.
    """
    type: ValueType
    value: Scalar

    def __post_init__(self):
        value = self.value
        if self.type is ValueType.BOOL:
            ok = isinstance(value, bool)
        elif self.type is ValueType.INT:
            ok = isinstance(value, int) and not isinstance(value, bool)
        elif self.type is ValueType.FLOAT:
            ok = isinstance(value, (int, float)) and not isinstance(value, bool)
            if ok:
                object.__setattr__(self, "value", _to_float32(value))
        elif self.type is ValueType.STRING:
            ok = isinstance(value, str)
        else:
            ok = False
        if not ok:
            raise TypeError(f"{type(value).__name__} value {value!r} cannot be tagged {self.type}")

    @classmethod
    def of(cls, value: Scalar) -> "TypedValue":
        """Infer the tag from a plain Python value."""
        if isinstance(value, bool):
            return cls(ValueType.BOOL, value)
        if isinstance(value, int):
            return cls(ValueType.INT, value)
        if isinstance(value, float):
            return cls(ValueType.FLOAT, value)
        if isinstance(value, str):
            return cls(ValueType.STRING, value)
        raise TypeError(f"Unsupported OSC argument type: {type(value).__name__}")


@dataclass(frozen=True)
class WireMessage:
    """One OSC message: an address path plus ordered, typed arguments."""
    address: str
    args: Tuple[TypedValue, ...] = ()

    @classmethod
    def build(cls, address: str, *values: Scalar) -> "WireMessage":
        """WireMessage.build("/live/song/set/tempo", 128.0)"""
        return cls(address, tuple(TypedValue.of(v) for v in values))

    @property
    def values(self) -> Tuple[Scalar, ...]:
        return tuple(arg.value for arg in self.args)


# ==================== ENCODE ====================

def _builder_arg(arg: TypedValue) -> Tuple[Any, str]:
    if arg.type is ValueType.FLOAT:
        return arg.value, OscMessageBuilder.ARG_TYPE_FLOAT
    if arg.type is ValueType.INT:
        return arg.value, OscMessageBuilder.ARG_TYPE_INT
    if arg.type is ValueType.BOOL:
        tag = OscMessageBuilder.ARG_TYPE_TRUE if arg.value else OscMessageBuilder.ARG_TYPE_FALSE
        return arg.value, tag
    return arg.value, OscMessageBuilder.ARG_TYPE_STRING


def encode(message: WireMessage) -> bytes:
    """Encode a WireMessage into a single OSC datagram.

    Raises:
        EncodeError: empty or relative address, or a value that does not
            fit its 32-bit wire representation
    """
    address = message.address
    if not address or not address.startswith("/"):
        raise EncodeError(f"OSC address must be a non-empty path starting with '/', got {address!r}")

    builder = OscMessageBuilder(address=address)
    for arg in message.args:
        if not isinstance(arg, TypedValue):
            raise EncodeError(f"{address}: argument {arg!r} is not a TypedValue")
        value, tag = _builder_arg(arg)
        builder.add_arg(value, tag)

    try:
        return builder.build().dgram
    except (osc_message_builder.BuildError, osc_types.BuildError,
            OverflowError, ValueError, TypeError) as exc:
        raise EncodeError(f"{address}: could not build OSC message: {exc}")


# ==================== DECODE ====================

_FIXED_SIZES = {"i": 4, "f": 4, "h": 8, "d": 8, "T": 0, "F": 0}

_TAG_TYPES = {
    "i": ValueType.INT,
    "h": ValueType.INT,
    "f": ValueType.FLOAT,
    "d": ValueType.FLOAT,
    "T": ValueType.BOOL,
    "F": ValueType.BOOL,
    "s": ValueType.STRING,
}


def _read_layout(data: bytes) -> Tuple[str, str]:
    """Walk the frame and return (address, type tags) or raise DecodeError."""
    try:
        address, index = osc_types.get_string(data, 0)
        if index == len(data):
            # Address-only messages are legal OSC and carry no arguments.
            return address, ""

        type_tag, index = osc_types.get_string(data, index)
        if not type_tag.startswith(","):
            raise DecodeError(f"type tag string must start with ',', got {type_tag!r}", address)

        tags = type_tag[1:]
        for tag in tags:
            if tag == "s":
                _, index = osc_types.get_string(data, index)
            elif tag in _FIXED_SIZES:
                index += _FIXED_SIZES[tag]
            else:
                raise DecodeError(f"unsupported OSC type tag {tag!r}", address)
            if index > len(data):
                raise DecodeError("datagram truncated inside argument data", address)
    except (osc_types.ParseError, ValueError) as exc:
        raise DecodeError(f"malformed OSC frame: {exc}")

    if index != len(data):
        raise DecodeError(f"{len(data) - index} unexpected trailing bytes", address)
    return address, tags


def decode(data: bytes) -> WireMessage:
    """Decode one datagram into a WireMessage.

    Raises:
        DecodeError: empty, truncated or malformed buffer, unsupported type
            tag, or a frame that is not a single OSC message (e.g. a bundle)
    """
    if not data:
        raise DecodeError("empty datagram")
    if OscBundle.dgram_is_bundle(data):
        raise DecodeError("OSC bundles are not supported, expected a single message")
    if not OscMessage.dgram_is_message(data):
        raise DecodeError("datagram is not an OSC message (address must start with '/')")

    address, tags = _read_layout(data)
    try:
        params = OscMessage(data).params
    except ParseError as exc:
        raise DecodeError(f"malformed OSC frame: {exc}", address)

    if len(params) != len(tags):
        raise DecodeError(f"expected {len(tags)} arguments, parsed {len(params)}", address)

    try:
        args = tuple(TypedValue(_TAG_TYPES[tag], value) for tag, value in zip(tags, params))
    except (TypeError, ValueError) as exc:
        raise DecodeError(f"argument does not fit its type: {exc}", address)
    return WireMessage(address, args)


# ==================== ARGUMENT DECODERS ====================
# Each takes a decoded reply and extracts its first argument as a Python
# value, raising DecodeError if the wire type is not acceptable.

Decoder = Callable[[WireMessage], Any]


def first_arg(message: WireMessage) -> TypedValue:
    if not message.args:
        raise DecodeError("reply carried no arguments", message.address)
    return message.args[0]


def decode_float(message: WireMessage) -> float:
    """Strict float: only a FLOAT-tagged argument is accepted."""
    arg = first_arg(message)
    if arg.type is not ValueType.FLOAT:
        raise DecodeError(f"expected float, got {arg.type.value} {arg.value!r}", message.address)
    return arg.value


def decode_bool(message: WireMessage) -> bool:
    """Native T/F, or an integer where 0 is False and anything else True."""
    arg = first_arg(message)
    if arg.type is ValueType.BOOL:
        return arg.value
    if arg.type is ValueType.INT:
        return arg.value != 0
    raise DecodeError(f"expected bool, got {arg.type.value} {arg.value!r}", message.address)


def decode_int_strict(message: WireMessage) -> int:
    """Strict integer: only an INT-tagged argument is accepted."""
    arg = first_arg(message)
    if arg.type is not ValueType.INT:
        raise DecodeError(f"expected int, got {arg.type.value} {arg.value!r}", message.address)
    return arg.value


def decode_int_lenient(message: WireMessage) -> int:
    """Integer or float; floats are truncated toward zero (4.9 -> 4, -4.9 -> -4)."""
    arg = first_arg(message)
    if arg.type is ValueType.INT:
        return arg.value
    if arg.type is ValueType.FLOAT:
        if not math.isfinite(arg.value):
            raise DecodeError(f"cannot truncate non-finite float {arg.value!r} to int", message.address)
        return int(arg.value)
    raise DecodeError(f"expected int or float, got {arg.type.value} {arg.value!r}", message.address)
