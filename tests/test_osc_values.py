from __future__ import annotations

import struct

import pytest

from vmc.osc import (
    DecodeError,
    DecodeErrorKind,
    EncodeError,
    OSCBlob,
    OSCBool,
    OSCFloat,
    OSCInt,
    OSCString,
    OSCTime,
    decode_value,
    encode_string,
    encode_value,
    pad4,
    to_osc_value,
)


@pytest.mark.parametrize(
    "value",
    [
        OSCInt(0),
        OSCInt(-(2**31)),
        OSCInt(2**31 - 1),
        OSCFloat(0.5),
        OSCFloat(-1234.25),
        OSCString(""),
        OSCString("abc"),
        OSCString("abcd"),
        OSCString("Blink_L"),
        OSCBlob(b""),
        OSCBlob(b"\x01\x02\x03"),
        OSCBlob(b"\xff" * 8),
        OSCTime(3_900_000_000, 123),
    ],
)
def test_encoded_values_are_padded_and_decode_back(value):
    data = encode_value(value)
    assert len(data) % 4 == 0

    decoded, end = decode_value(value.type_tag, data)
    assert decoded == value
    assert end == len(data)


def test_bool_tags_carry_no_payload():
    assert encode_value(OSCBool(True)) == b""
    assert OSCBool(True).type_tag == "T"
    assert OSCBool(False).type_tag == "F"

    value, end = decode_value("F", b"", 0)
    assert value == OSCBool(False)
    assert end == 0


def test_string_padding_always_includes_terminator():
    assert encode_string("") == b"\x00\x00\x00\x00"
    assert encode_string("abc") == b"abc\x00"
    assert encode_string("abcd") == b"abcd\x00\x00\x00\x00"
    assert pad4(0) == 0
    assert pad4(5) == 8


def test_float_is_stored_at_single_precision():
    v = OSCFloat(0.1)
    assert v.value == struct.unpack(">f", struct.pack(">f", 0.1))[0]
    assert decode_value("f", encode_value(v))[0] == v


def test_int_range_and_type_are_checked():
    with pytest.raises(ValueError):
        OSCInt(2**31)
    with pytest.raises(TypeError):
        OSCInt(True)


def test_string_rejects_nul():
    with pytest.raises(ValueError):
        OSCString("a\x00b")


def test_to_osc_value_maps_python_types():
    assert to_osc_value(True) == OSCBool(True)
    assert to_osc_value(3) == OSCInt(3)
    assert to_osc_value(0.5) == OSCFloat(0.5)
    assert to_osc_value("x") == OSCString("x")
    assert to_osc_value(b"\x00") == OSCBlob(b"\x00")
    with pytest.raises(TypeError):
        to_osc_value(object())


def test_encode_value_rejects_non_values():
    with pytest.raises(EncodeError):
        encode_value(1.5)  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("tag", "data"),
    [
        ("i", b"\x00\x00"),
        ("f", b""),
        ("t", b"\x00" * 7),
        ("s", b"abc"),
        ("b", b"\x00\x00\x00\x08abcd"),
    ],
)
def test_short_buffers_fail_with_eof(tag, data):
    with pytest.raises(DecodeError) as ei:
        decode_value(tag, data)
    assert ei.value.kind is DecodeErrorKind.EOF


def test_non_zero_string_padding_is_rejected():
    with pytest.raises(DecodeError) as ei:
        decode_value("s", b"ab\x00x")
    assert ei.value.kind is DecodeErrorKind.PADDING_MISMATCH


def test_non_zero_blob_padding_is_rejected():
    with pytest.raises(DecodeError) as ei:
        decode_value("b", b"\x00\x00\x00\x01a\x00\x01\x00")
    assert ei.value.kind is DecodeErrorKind.PADDING_MISMATCH


def test_invalid_utf8_is_reported():
    with pytest.raises(DecodeError) as ei:
        decode_value("s", b"\xff\xfe\x00\x00")
    assert ei.value.kind is DecodeErrorKind.INVALID_STRING


def test_unknown_tag_is_unsupported():
    with pytest.raises(DecodeError) as ei:
        decode_value("d", b"\x00" * 8)
    assert ei.value.kind is DecodeErrorKind.UNSUPPORTED_TYPE


def test_time_tag_unix_conversion():
    t = OSCTime.from_unix(1_700_000_000.5)
    assert t.seconds == 1_700_000_000 + 2_208_988_800
    assert t.fraction == 2**31
    assert t.to_unix() == pytest.approx(1_700_000_000.5)
    assert OSCTime.IMMEDIATE.is_immediate
    assert not t.is_immediate
