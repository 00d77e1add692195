from __future__ import annotations

import struct

from .decoder import BUNDLE_TAG
from .errors import EncodeError
from .types import OSCBlob, OSCBool, OSCBundle, OSCFloat, OSCInt, OSCMessage, OSCPacket, OSCString, OSCTime, OSCValue


def pad4(n: int) -> int:
    """Round `n` up to the next multiple of 4."""
    return (n + 3) & ~3


def encode_string(s: str) -> bytes:
    """NUL-terminate `s` and pad with NULs to a multiple of 4 bytes."""
    raw = s.encode("utf-8")
    return raw + b"\x00" * (pad4(len(raw) + 1) - len(raw))


def encode_time(t: OSCTime) -> bytes:
    return struct.pack(">II", t.seconds, t.fraction)


def encode_value(value: OSCValue) -> bytes:
    if isinstance(value, OSCInt):
        return struct.pack(">i", value.value)
    if isinstance(value, OSCFloat):
        return struct.pack(">f", value.value)
    if isinstance(value, OSCString):
        return encode_string(value.value)
    if isinstance(value, OSCBlob):
        data = value.value
        return struct.pack(">I", len(data)) + data + b"\x00" * (pad4(len(data)) - len(data))
    if isinstance(value, OSCTime):
        return encode_time(value)
    if isinstance(value, OSCBool):
        return b""
    raise EncodeError(f"not an OSC value: {value!r}")


def _encode_message(msg: OSCMessage) -> bytes:
    if not msg.address.startswith("/"):
        raise EncodeError(f"OSC address must start with '/': {msg.address!r}")
    parts = [encode_string(msg.address), encode_string(msg.type_tags)]
    parts.extend(encode_value(a) for a in msg.args)
    return b"".join(parts)


def _encode_bundle(bundle: OSCBundle) -> bytes:
    parts = [BUNDLE_TAG, encode_time(bundle.timetag)]
    for element in bundle.elements:
        body = encode(element)
        parts.append(struct.pack(">I", len(body)))
        parts.append(body)
    return b"".join(parts)


def encode(packet: OSCPacket) -> bytes:
    """Serialise a message or bundle into one datagram payload."""

    if isinstance(packet, OSCMessage):
        return _encode_message(packet)
    if isinstance(packet, OSCBundle):
        return _encode_bundle(packet)
    raise EncodeError(f"not an OSC packet: {packet!r}")
