from __future__ import annotations

import struct
from collections.abc import Callable

from .errors import DecodeError, DecodeErrorKind
from .types import OSCBlob, OSCBool, OSCBundle, OSCFloat, OSCInt, OSCMessage, OSCPacket, OSCString, OSCTime, OSCValue

BUNDLE_TAG = b"#bundle\x00"

# Bundles nested deeper than this are rejected instead of recursed into.
MAX_BUNDLE_DEPTH = 16


def _require(data: bytes, offset: int, size: int, what: str) -> None:
    if offset + size > len(data):
        raise DecodeError(
            DecodeErrorKind.EOF,
            f"need {size} bytes for {what}, {max(0, len(data) - offset)} left",
            offset,
        )


def _skip_padding(data: bytes, offset: int, end: int, what: str) -> int:
    """Check that `data[offset:end]` exists and is all NUL; return `end`."""
    if end > len(data):
        raise DecodeError(DecodeErrorKind.EOF, f"{what} padding runs past end of buffer", offset)
    if any(data[offset:end]):
        raise DecodeError(DecodeErrorKind.PADDING_MISMATCH, f"non-zero padding after {what}", offset)
    return end


def read_padded_string(data: bytes, offset: int, what: str = "string") -> tuple[str, int]:
    nul = data.find(b"\x00", offset)
    if nul == -1:
        raise DecodeError(DecodeErrorKind.EOF, f"unterminated {what}", offset)
    raw = data[offset:nul]
    # NUL terminator plus 0-3 bytes so the whole field is a multiple of 4.
    end = offset + ((nul - offset) // 4 + 1) * 4
    end = _skip_padding(data, nul + 1, end, what)
    try:
        return raw.decode("utf-8"), end
    except UnicodeDecodeError as e:
        raise DecodeError(DecodeErrorKind.INVALID_STRING, f"{what} is not valid UTF-8: {e.reason}", offset) from e


def _read_int(data: bytes, offset: int) -> tuple[OSCValue, int]:
    _require(data, offset, 4, "int32")
    return OSCInt(struct.unpack_from(">i", data, offset)[0]), offset + 4


def _read_float(data: bytes, offset: int) -> tuple[OSCValue, int]:
    _require(data, offset, 4, "float32")
    return OSCFloat(struct.unpack_from(">f", data, offset)[0]), offset + 4


def _read_string(data: bytes, offset: int) -> tuple[OSCValue, int]:
    s, offset = read_padded_string(data, offset)
    return OSCString(s), offset


def _read_blob(data: bytes, offset: int) -> tuple[OSCValue, int]:
    _require(data, offset, 4, "blob size")
    (size,) = struct.unpack_from(">I", data, offset)
    start = offset + 4
    _require(data, start, size, "blob data")
    end = start + size
    padded_end = start + (size + 3) // 4 * 4
    padded_end = _skip_padding(data, end, padded_end, "blob")
    return OSCBlob(data[start:end]), padded_end


def read_time(data: bytes, offset: int) -> tuple[OSCTime, int]:
    _require(data, offset, 8, "time tag")
    seconds, fraction = struct.unpack_from(">II", data, offset)
    return OSCTime(seconds, fraction), offset + 8


def _read_true(data: bytes, offset: int) -> tuple[OSCValue, int]:
    return OSCBool(True), offset


def _read_false(data: bytes, offset: int) -> tuple[OSCValue, int]:
    return OSCBool(False), offset


_READERS: dict[str, Callable[[bytes, int], tuple[OSCValue, int]]] = {
    "i": _read_int,
    "f": _read_float,
    "s": _read_string,
    "b": _read_blob,
    "t": read_time,
    "T": _read_true,
    "F": _read_false,
}


def decode_value(tag: str, data: bytes, offset: int = 0) -> tuple[OSCValue, int]:
    """Decode one argument of type `tag` starting at `offset`.

    Returns the value and the offset just past it (padding included).
    """

    reader = _READERS.get(tag)
    if reader is None:
        raise DecodeError(DecodeErrorKind.UNSUPPORTED_TYPE, f"type tag {tag!r} is not supported", offset)
    return reader(data, offset)


def _decode_message(data: bytes, offset: int) -> OSCMessage:
    address, offset = read_padded_string(data, offset, "address")
    if not address.startswith("/"):
        raise DecodeError(DecodeErrorKind.INVALID_ADDRESS, f"address {address!r} does not start with '/'", 0)

    # Some old senders omit the type tag string entirely.
    if offset == len(data):
        return OSCMessage(address)

    tags_at = offset
    if data[offset : offset + 1] != b",":
        raise DecodeError(DecodeErrorKind.INVALID_TYPE_TAG, "type tag string must start with ','", offset)
    tags, offset = read_padded_string(data, offset, "type tag string")

    args: list[OSCValue] = []
    for i, tag in enumerate(tags[1:]):
        if tag not in _READERS:
            raise DecodeError(DecodeErrorKind.UNSUPPORTED_TYPE, f"type tag {tag!r} is not supported", tags_at + 1 + i)
        value, offset = _READERS[tag](data, offset)
        args.append(value)

    if offset != len(data):
        raise DecodeError(
            DecodeErrorKind.PADDING_MISMATCH,
            f"{len(data) - offset} trailing bytes after message arguments",
            offset,
        )
    return OSCMessage(address, tuple(args))


def _decode_bundle(data: bytes, depth: int, max_depth: int) -> OSCBundle:
    if depth > max_depth:
        raise DecodeError(DecodeErrorKind.DEPTH_EXCEEDED, f"bundle nesting exceeds {max_depth} levels", 0)

    timetag, offset = read_time(data, len(BUNDLE_TAG))
    elements: list[OSCPacket] = []
    while offset < len(data):
        _require(data, offset, 4, "bundle element size")
        (size,) = struct.unpack_from(">I", data, offset)
        offset += 4
        if size % 4:
            raise DecodeError(DecodeErrorKind.PADDING_MISMATCH, f"bundle element size {size} is not a multiple of 4", offset - 4)
        _require(data, offset, size, "bundle element")
        element = data[offset : offset + size]
        try:
            elements.append(_decode_packet(element, depth, max_depth))
        except DecodeError as e:
            # Report offsets relative to the enclosing buffer.
            if e.offset is None:
                raise
            raise DecodeError(e.kind, e.message, offset + e.offset) from None
        offset += size

    return OSCBundle(tuple(elements), timetag)


def _decode_packet(data: bytes, depth: int, max_depth: int) -> OSCPacket:
    if not data:
        raise DecodeError(DecodeErrorKind.EOF, "empty packet", 0)
    if data.startswith(BUNDLE_TAG):
        return _decode_bundle(data, depth + 1, max_depth)
    if BUNDLE_TAG.startswith(data):
        raise DecodeError(DecodeErrorKind.EOF, "packet ends inside the bundle tag", len(data))
    if data[:1] == b"#":
        raise DecodeError(DecodeErrorKind.INVALID_ADDRESS, "unknown '#' packet tag", 0)
    return _decode_message(data, 0)


def decode(data: bytes, *, max_depth: int = MAX_BUNDLE_DEPTH) -> OSCPacket:
    """Decode one OSC packet (a single datagram) into a message or bundle.

    Raises `DecodeError` on any malformed framing; never reads past `data`.
    """

    return _decode_packet(bytes(data), 0, max_depth)
