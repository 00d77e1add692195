from __future__ import annotations

import struct
import time
from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

# Seconds between the NTP epoch (1900-01-01) and the unix epoch (RFC 5905).
UNIX_EPOCH_OFFSET = 2_208_988_800
_TWO_POW_32 = 2**32

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1


def to_float32(value: float) -> float:
    """Round a python float to the nearest IEEE-754 single precision value."""
    try:
        return struct.unpack(">f", struct.pack(">f", float(value)))[0]
    except OverflowError as e:
        raise ValueError(f"{value!r} does not fit in a float32") from e


@dataclass(frozen=True)
class OSCInt:
    value: int
    type_tag: ClassVar[str] = "i"

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise TypeError(f"OSCInt expects int, got {type(self.value).__name__}")
        if not (_INT32_MIN <= self.value <= _INT32_MAX):
            raise ValueError(f"{self.value} is out of int32 range")


@dataclass(frozen=True)
class OSCFloat:
    # Stored at float32 precision so a wire round trip is lossless.
    value: float
    type_tag: ClassVar[str] = "f"

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", to_float32(self.value))


@dataclass(frozen=True)
class OSCString:
    value: str
    type_tag: ClassVar[str] = "s"

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise TypeError(f"OSCString expects str, got {type(self.value).__name__}")
        if "\x00" in self.value:
            raise ValueError("OSC strings cannot contain NUL characters")


@dataclass(frozen=True)
class OSCBlob:
    value: bytes
    type_tag: ClassVar[str] = "b"

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", bytes(self.value))


@dataclass(frozen=True)
class OSCBool:
    value: bool

    @property
    def type_tag(self) -> str:
        return "T" if self.value else "F"


@dataclass(frozen=True, order=True)
class OSCTime:
    """64-bit NTP time tag: seconds since 1900-01-01 plus a 32-bit fraction."""

    seconds: int
    fraction: int = 0
    type_tag: ClassVar[str] = "t"
    IMMEDIATE: ClassVar[OSCTime]

    def __post_init__(self) -> None:
        for name in ("seconds", "fraction"):
            v = getattr(self, name)
            if not (0 <= v < _TWO_POW_32):
                raise ValueError(f"OSCTime.{name}={v} does not fit in uint32")

    @property
    def is_immediate(self) -> bool:
        return self == OSCTime.IMMEDIATE

    @classmethod
    def from_unix(cls, timestamp: float) -> OSCTime:
        if timestamp < 0:
            raise ValueError("time is before the unix epoch")
        ntp = timestamp + UNIX_EPOCH_OFFSET
        seconds = int(ntp)
        fraction = int(round((ntp - seconds) * _TWO_POW_32))
        if fraction >= _TWO_POW_32:
            seconds, fraction = seconds + 1, 0
        return cls(seconds, fraction)

    @classmethod
    def now(cls) -> OSCTime:
        return cls.from_unix(time.time())

    def to_unix(self) -> float:
        return self.seconds - UNIX_EPOCH_OFFSET + self.fraction / _TWO_POW_32


# 63 zero bits followed by a one: "process immediately".
OSCTime.IMMEDIATE = OSCTime(0, 1)


OSCValue = Union[OSCInt, OSCFloat, OSCString, OSCBlob, OSCBool, OSCTime]
VALUE_TYPES: tuple[type, ...] = (OSCInt, OSCFloat, OSCString, OSCBlob, OSCBool, OSCTime)


def to_osc_value(value: Any) -> OSCValue:
    """Wrap a plain python value in the matching OSC argument type."""

    if isinstance(value, VALUE_TYPES):
        return value
    # bool first: it is an int subclass.
    if isinstance(value, bool):
        return OSCBool(value)
    if isinstance(value, int):
        return OSCInt(value)
    if isinstance(value, float):
        return OSCFloat(value)
    if isinstance(value, str):
        return OSCString(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return OSCBlob(bytes(value))
    raise TypeError(f"no OSC argument type for {type(value).__name__}")


def _as_args(args: Any) -> tuple[OSCValue, ...]:
    return tuple(to_osc_value(a) for a in args)


@dataclass(frozen=True)
class OSCMessage:
    address: str
    args: tuple[OSCValue, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", _as_args(self.args))

    @property
    def type_tags(self) -> str:
        return "," + "".join(a.type_tag for a in self.args)

    def values(self) -> list[Any]:
        """Unwrapped argument values (time tags stay `OSCTime`)."""
        out: list[Any] = []
        for a in self.args:
            out.append(a if isinstance(a, OSCTime) else a.value)
        return out


@dataclass(frozen=True)
class OSCBundle:
    elements: tuple[OSCPacket, ...] = field(default_factory=tuple)
    timetag: OSCTime = OSCTime.IMMEDIATE

    def __post_init__(self) -> None:
        elements = tuple(self.elements)
        for e in elements:
            if not isinstance(e, (OSCMessage, OSCBundle)):
                raise TypeError(f"bundle elements must be packets, got {type(e).__name__}")
        object.__setattr__(self, "elements", elements)


OSCPacket = Union[OSCMessage, OSCBundle]
