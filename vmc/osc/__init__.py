from __future__ import annotations

from .decoder import MAX_BUNDLE_DEPTH, decode, decode_value
from .encoder import encode, encode_string, encode_value, pad4
from .errors import DecodeError, DecodeErrorKind, EncodeError, TransportClosed
from .transport import DatagramHandle, UDPDatagramHandle
from .types import (
    OSCBlob,
    OSCBool,
    OSCBundle,
    OSCFloat,
    OSCInt,
    OSCMessage,
    OSCPacket,
    OSCString,
    OSCTime,
    OSCValue,
    to_osc_value,
)

__all__ = [
    "MAX_BUNDLE_DEPTH",
    "DatagramHandle",
    "DecodeError",
    "DecodeErrorKind",
    "EncodeError",
    "OSCBlob",
    "OSCBool",
    "OSCBundle",
    "OSCFloat",
    "OSCInt",
    "OSCMessage",
    "OSCPacket",
    "OSCString",
    "OSCTime",
    "OSCValue",
    "TransportClosed",
    "UDPDatagramHandle",
    "decode",
    "decode_value",
    "encode",
    "encode_string",
    "encode_value",
    "pad4",
    "to_osc_value",
]
