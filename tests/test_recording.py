from __future__ import annotations

from pathlib import Path

import pytest

from vmc.domain.messages import (
    ApplyBlendShapes,
    BlendShape,
    BoneTransform,
    DeviceTransform,
    DeviceType,
    ModelState,
    Quat,
    State,
    Time,
    Vec3,
)
from vmc.domain.recording import FrameRecorder, RecordedFrame, message_from_dict, message_to_dict, read_frames, write_frames


def test_message_dict_form():
    d = message_to_dict(BoneTransform("Head", Vec3(0.5, 1.0, 0.0), Quat.identity()))
    assert d == {
        "type": "BoneTransform",
        "bone": "Head",
        "position": [0.5, 1.0, 0.0],
        "rotation": [0.0, 0.0, 0.0, 1.0],
    }
    assert message_from_dict(d) == BoneTransform("Head", Vec3(0.5, 1.0, 0.0), Quat.identity())


def test_enum_fields_use_wire_values():
    assert message_to_dict(State(ModelState.LOADED))["model_state"] == 1
    d = message_to_dict(DeviceTransform(DeviceType.TRACKER, "LHR-1", Vec3(0.0, 0.0, 0.0), Quat.identity(), local=True))
    assert d["device"] == "Tra"
    assert message_from_dict(d).device is DeviceType.TRACKER


def test_unknown_type_is_rejected():
    with pytest.raises(ValueError):
        message_from_dict({"type": "Nope"})
    with pytest.raises(TypeError):
        message_to_dict(Vec3(0.0, 0.0, 0.0))  # type: ignore[arg-type]


def test_recorder_groups_messages_by_time_marker():
    rec = FrameRecorder()

    # Nothing is recorded before the first time marker.
    assert rec.feed(BlendShape("A", 1.0)) is None
    assert rec.feed(Time(1.0)) is None
    assert rec.feed(BlendShape("A", 0.5)) is None
    assert rec.feed(ApplyBlendShapes()) is None

    frame = rec.feed(Time(1.5))
    assert frame == RecordedFrame(1.0, [BlendShape("A", 0.5), ApplyBlendShapes()])

    rec.feed(State(ModelState.LOADED))
    assert rec.flush() == RecordedFrame(1.5, [State(ModelState.LOADED)])
    assert rec.flush() is None


def test_frames_survive_a_file(tmp_path: Path):
    frames = [
        RecordedFrame(0.25, [BlendShape("Joy", 0.75), ApplyBlendShapes()]),
        RecordedFrame(0.5, []),
        RecordedFrame(0.75, [State(ModelState.NOT_LOADED)]),
    ]
    path = tmp_path / "rec" / "out.jsonl"

    assert write_frames(path, frames) == 3
    assert len(path.read_text(encoding="utf-8").splitlines()) == 3
    assert list(read_frames(path)) == frames
