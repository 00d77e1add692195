"""Recording VMC traffic as JSON lines.

Frames are delimited by `/VMC/Ext/T`: each `Time` message closes the open
frame and starts a new one stamped with its value. Messages seen before the
first `Time` have no timestamp and are dropped.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Iterator

from pydantic import TypeAdapter

from .messages import MESSAGE_TYPES, Time, VMCMessage

_ADAPTERS: dict[str, TypeAdapter[Any]] = {cls.__name__: TypeAdapter(cls) for cls in MESSAGE_TYPES}


def message_to_dict(message: VMCMessage) -> dict[str, Any]:
    if type(message) not in MESSAGE_TYPES:
        raise TypeError(f"not a VMC message: {message!r}")
    name = type(message).__name__
    return {"type": name, **_ADAPTERS[name].dump_python(message, mode="json")}


def message_from_dict(data: dict[str, Any]) -> VMCMessage:
    fields = dict(data)
    name = fields.pop("type", None)
    adapter = _ADAPTERS.get(name) if isinstance(name, str) else None
    if adapter is None:
        raise ValueError(f"unknown VMC message type: {name!r}")
    return adapter.validate_python(fields)


@dataclass
class RecordedFrame:
    # Sender clock (`Time.seconds`) at the start of the frame.
    time_delta: float
    messages: list[VMCMessage] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"time_delta": self.time_delta, "messages": [message_to_dict(m) for m in self.messages]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RecordedFrame:
        return cls(
            time_delta=float(data["time_delta"]),
            messages=[message_from_dict(m) for m in data.get("messages", [])],
        )


class FrameRecorder:
    def __init__(self) -> None:
        self._current: RecordedFrame | None = None

    def feed(self, message: VMCMessage) -> RecordedFrame | None:
        """Add one message; returns the frame it completed, if any."""
        if isinstance(message, Time):
            done = self._current
            self._current = RecordedFrame(time_delta=message.seconds)
            return done
        if self._current is not None:
            self._current.messages.append(message)
        return None

    def flush(self) -> RecordedFrame | None:
        done, self._current = self._current, None
        return done


def write_frames(path: Path, frames: Iterable[RecordedFrame]) -> int:
    path.parent.mkdir(parents=True, exist_ok=True)
    n = 0
    with path.open("w", encoding="utf-8") as f:
        for frame in frames:
            f.write(json.dumps(frame.to_dict(), ensure_ascii=False))
            f.write("\n")
            n += 1
    return n


def read_frames(path: Path) -> Iterator[RecordedFrame]:
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                yield RecordedFrame.from_dict(json.loads(line))
