from __future__ import annotations

import asyncio

import pytest

from vmc.domain.dispatch import parse, recognized
from vmc.domain.messages import ApplyBlendShapes, BlendShape, BoneTransform, State, StandardBone, Time
from vmc.domain.streams import DemoAnimationStream, demo_frame
from vmc.observability.logging import get_logger
from vmc.roles.performer import Performer


def test_demo_frame_layout():
    frame = demo_frame(0.0)

    assert [type(m) for m in frame] == [BlendShape, BlendShape, BoneTransform, BoneTransform, ApplyBlendShapes, State, Time]
    assert frame[0].value == pytest.approx(0.5)
    assert frame[2].standard_bone is StandardBone.LEFT_EYE
    assert frame[3].standard_bone is StandardBone.RIGHT_EYE


@pytest.mark.asyncio
async def test_demo_stream_start_is_idempotent_and_stop_halts_sending(memory_handle):
    handle = memory_handle
    stream = DemoAnimationStream(performer=Performer(handle), logger=get_logger(), fps=200)

    stream_id = await stream.start()
    assert await stream.start() == stream_id
    assert stream.status().running

    deadline = asyncio.get_running_loop().time() + 1.5
    while stream.status().frames_sent < 2:
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("stream did not send frames")
        await asyncio.sleep(0.01)

    await stream.stop()
    status = stream.status()
    assert not status.running
    assert status.stream_id is None

    sent = len(handle.sent)
    await asyncio.sleep(0.05)
    assert len(handle.sent) == sent

    messages = [m for data in handle.sent for m in recognized(parse(data))]
    assert isinstance(messages[0], BlendShape)
    assert any(isinstance(m, Time) for m in messages)
