from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Union

from ..osc.decoder import MAX_BUNDLE_DEPTH, decode
from ..osc.types import OSCMessage, OSCPacket
from .catalog import Recognized, Unrecognized, from_osc
from .errors import MessageError
from .messages import VMCMessage


@dataclass(frozen=True)
class Invalid:
    """A catalog address whose arguments were rejected."""

    error: MessageError

    @property
    def address(self) -> str:
        return self.error.address


MessageOutcome = Union[Recognized, Unrecognized, Invalid]


def iter_messages(packet: OSCPacket) -> Iterator[OSCMessage]:
    """Flatten bundles depth-first, preserving element order."""
    if isinstance(packet, OSCMessage):
        yield packet
        return
    for element in packet.elements:
        yield from iter_messages(element)


def parse_packet(packet: OSCPacket) -> list[MessageOutcome]:
    outcomes: list[MessageOutcome] = []
    for message in iter_messages(packet):
        try:
            outcomes.append(from_osc(message))
        except MessageError as exc:
            outcomes.append(Invalid(exc))
    return outcomes


def parse(data: bytes, *, max_depth: int = MAX_BUNDLE_DEPTH) -> list[MessageOutcome]:
    """Decode one datagram and convert every message it carries.

    A framing error raises `DecodeError` and nothing is returned for the
    datagram. Per-message argument errors become `Invalid` entries instead.
    """

    return parse_packet(decode(data, max_depth=max_depth))


def recognized(outcomes: Iterable[MessageOutcome]) -> Iterator[VMCMessage]:
    for outcome in outcomes:
        if isinstance(outcome, Recognized):
            yield outcome.message

