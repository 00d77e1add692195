from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any


class DecodeErrorKind(str, enum.Enum):
    EOF = "EOF"
    INVALID_TYPE_TAG = "INVALID_TYPE_TAG"
    INVALID_ADDRESS = "INVALID_ADDRESS"
    PADDING_MISMATCH = "PADDING_MISMATCH"
    UNSUPPORTED_TYPE = "UNSUPPORTED_TYPE"
    DEPTH_EXCEEDED = "DEPTH_EXCEEDED"
    INVALID_STRING = "INVALID_STRING"


@dataclass(frozen=True)
class DecodeError(Exception):
    """Malformed OSC framing. Fatal for the datagram being decoded."""

    kind: DecodeErrorKind
    message: str
    offset: int | None = None

    def __str__(self) -> str:
        if self.offset is None:
            return f"{self.kind.value}: {self.message}"
        return f"{self.kind.value} at byte {self.offset}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message, "offset": self.offset}


class EncodeError(ValueError):
    """Raised when an application-built packet cannot be put on the wire."""


class TransportClosed(ConnectionError):
    """The datagram handle was closed; no bytes were sent."""
