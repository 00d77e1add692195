from __future__ import annotations

import asyncio
import math
import time
import uuid
from dataclasses import dataclass
from typing import Literal

from .messages import (
    ApplyBlendShapes,
    BlendShape,
    BoneTransform,
    ModelState,
    Quat,
    StandardBlendShape,
    StandardBone,
    State,
    Time,
    VMCMessage,
    Vec3,
)

StreamState = Literal["STOPPED", "RUNNING", "STOPPING"]

# Eye bone offsets (metres, local to the head) of a typical VRM avatar.
_LEFT_EYE = Vec3(-0.016136881, 0.061875343, 0.02154272)
_RIGHT_EYE = Vec3(0.016136864, 0.061875224, 0.02154272)


@dataclass
class StreamStatus:
    running: bool
    stream_id: str | None
    fps: int | None
    frames_sent: int = 0


def _sleep_interval_s(fps: int) -> float:
    if fps <= 0:
        return 1 / 60
    return 1.0 / float(fps)


def demo_frame(t: float) -> list[VMCMessage]:
    """Messages for one frame of the idle animation at `t` seconds."""
    wave = math.sin(t) / 2 + 0.5
    eyes = Quat.from_euler(math.cos(t) * 0.05, math.sin(t) * 0.05, 0.0)
    return [
        BlendShape(StandardBlendShape.A, wave),
        BlendShape(StandardBlendShape.FUN, wave * 0.6),
        BoneTransform(StandardBone.LEFT_EYE, _LEFT_EYE, eyes),
        BoneTransform(StandardBone.RIGHT_EYE, _RIGHT_EYE, eyes),
        ApplyBlendShapes(),
        State(ModelState.LOADED),
        Time.elapsed(),
    ]


class DemoAnimationStream:
    """Background task that keeps a marionette busy with a looping idle animation."""

    def __init__(self, *, performer, logger, fps: int = 60) -> None:
        self._performer = performer
        self._logger = logger

        self._task: asyncio.Task[None] | None = None
        self._state: StreamState = "STOPPED"
        self._stream_id: str | None = None
        self._fps = int(fps)
        self._frames_sent = 0

    def status(self) -> StreamStatus:
        return StreamStatus(
            running=self._state == "RUNNING",
            stream_id=self._stream_id,
            fps=self._fps if self._state == "RUNNING" else None,
            frames_sent=self._frames_sent,
        )

    async def start(self) -> str:
        if self._state == "RUNNING":
            # Idempotent: return existing stream_id
            assert self._stream_id is not None
            return self._stream_id

        self._state = "RUNNING"
        self._stream_id = str(uuid.uuid4())
        self._frames_sent = 0
        self._task = asyncio.create_task(self._run(), name="vmc-demo-stream")
        self._logger.info("stream.start", stream_id=self._stream_id, fps=self._fps)
        return self._stream_id

    async def stop(self) -> None:
        if self._state == "STOPPED":
            return

        self._state = "STOPPING"
        task = self._task
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            finally:
                self._task = None

        self._logger.info("stream.stop", stream_id=self._stream_id, frames_sent=self._frames_sent)
        self._state = "STOPPED"
        self._stream_id = None

    async def wait(self) -> None:
        """Block until the stream task ends; re-raises its failure, if any."""
        if self._task is not None:
            await self._task

    async def _run(self) -> None:
        interval = _sleep_interval_s(self._fps)
        start = time.monotonic()
        while True:
            for message in demo_frame(time.monotonic() - start):
                await self._performer.send(message)
            self._frames_sent += 1
            await asyncio.sleep(interval)
