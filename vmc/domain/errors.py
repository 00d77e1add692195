from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class MessageError(Exception):
    """A known VMC address carried arguments we cannot accept.

    Recoverable per message: `parse` reports it as an `Invalid` outcome and
    moves on to the next message of the datagram.
    """

    code: str
    message: str
    address: str
    details: dict[str, Any] | None = field(default=None, hash=False)

    def __str__(self) -> str:
        return f"{self.address}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "address": self.address,
        }
        if self.details is not None:
            payload["details"] = self.details
        return payload


class SignatureMismatch(MessageError):
    def __init__(self, *, address: str, expected: list[str], got: str) -> None:
        super().__init__(
            code="SIGNATURE_MISMATCH",
            message=f"type tags {got!r} do not match any of {expected!r}",
            address=address,
            details={"expected": expected, "got": got},
        )


class InvalidArgument(MessageError):
    def __init__(self, *, address: str, field: str, value: Any) -> None:
        super().__init__(
            code="INVALID_ARGUMENT",
            message=f"unsupported value {value!r} for {field}",
            address=address,
            details={"field": field, "value": value},
        )
