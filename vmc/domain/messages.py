"""VMC message structs.

Every struct is an immutable pydantic dataclass: field values are validated and
coerced on construction, and float fields are rounded to float32 so a message
survives `to_osc`/`from_osc` (and the wire) unchanged.
"""

from __future__ import annotations

import enum
import math
import time
from typing import Annotated, NamedTuple, Optional, Union

from pydantic import AfterValidator, BeforeValidator, Field
from pydantic.dataclasses import dataclass

from ..osc.types import to_float32

Float32 = Annotated[float, AfterValidator(to_float32)]
Int32 = Annotated[int, Field(ge=-(2**31), le=2**31 - 1)]


class Vec3(NamedTuple):
    x: Float32
    y: Float32
    z: Float32


class Quat(NamedTuple):
    x: Float32
    y: Float32
    z: Float32
    w: Float32

    @classmethod
    def identity(cls) -> Quat:
        return cls(0.0, 0.0, 0.0, 1.0)

    @classmethod
    def from_euler(cls, x: float, y: float, z: float) -> Quat:
        """Rotation about X, then Y, then Z (radians), composed as qx * qy * qz."""
        sx, cx = math.sin(x / 2), math.cos(x / 2)
        sy, cy = math.sin(y / 2), math.cos(y / 2)
        sz, cz = math.sin(z / 2), math.cos(z / 2)
        return cls(
            sx * cy * cz + cx * sy * sz,
            cx * sy * cz - sx * cy * sz,
            cx * cy * sz + sx * sy * cz,
            cx * cy * cz - sx * sy * sz,
        )


class Color(NamedTuple):
    r: Float32
    g: Float32
    b: Float32
    a: Float32


class ModelState(enum.IntEnum):
    NOT_LOADED = 0
    LOADED = 1


class CalibrationState(enum.IntEnum):
    UNCALIBRATED = 0
    WAITING_FOR_CALIBRATION = 1
    CALIBRATING = 2
    CALIBRATED = 3


class CalibrationMode(enum.IntEnum):
    NORMAL = 0
    MIXED_REALITY_HAND = 1
    MIXED_REALITY_FLOOR = 2


class TrackingState(enum.IntEnum):
    POOR = 0
    GOOD = 1


class InputAction(enum.IntEnum):
    RELEASE = 0
    PRESS = 1
    AXIS = 2


class DeviceType(str, enum.Enum):
    # Values are the address segment: /VMC/Ext/{Hmd,Con,Tra}/Pos
    HMD = "Hmd"
    CONTROLLER = "Con"
    TRACKER = "Tra"


class StandardBone(str, enum.Enum):
    """VRM 0.x humanoid bone names."""

    HIPS = "Hips"
    LEFT_UPPER_LEG = "LeftUpperLeg"
    RIGHT_UPPER_LEG = "RightUpperLeg"
    LEFT_LOWER_LEG = "LeftLowerLeg"
    RIGHT_LOWER_LEG = "RightLowerLeg"
    LEFT_FOOT = "LeftFoot"
    RIGHT_FOOT = "RightFoot"
    PELVIS = "Pelvis"
    SPINE = "Spine"
    CHEST = "Chest"
    UPPER_CHEST = "UpperChest"
    NECK = "Neck"
    HEAD = "Head"
    LEFT_SHOULDER = "LeftShoulder"
    RIGHT_SHOULDER = "RightShoulder"
    LEFT_UPPER_ARM = "LeftUpperArm"
    RIGHT_UPPER_ARM = "RightUpperArm"
    LEFT_LOWER_ARM = "LeftLowerArm"
    RIGHT_LOWER_ARM = "RightLowerArm"
    LEFT_HAND = "LeftHand"
    RIGHT_HAND = "RightHand"
    LEFT_TOES = "LeftToes"
    RIGHT_TOES = "RightToes"
    LEFT_EYE = "LeftEye"
    RIGHT_EYE = "RightEye"
    JAW = "Jaw"
    LEFT_THUMB_PROXIMAL = "LeftThumbProximal"
    LEFT_THUMB_INTERMEDIATE = "LeftThumbIntermediate"
    LEFT_THUMB_DISTAL = "LeftThumbDistal"
    LEFT_INDEX_PROXIMAL = "LeftIndexProximal"
    LEFT_INDEX_INTERMEDIATE = "LeftIndexIntermediate"
    LEFT_INDEX_DISTAL = "LeftIndexDistal"
    LEFT_MIDDLE_PROXIMAL = "LeftMiddleProximal"
    LEFT_MIDDLE_INTERMEDIATE = "LeftMiddleIntermediate"
    LEFT_MIDDLE_DISTAL = "LeftMiddleDistal"
    LEFT_RING_PROXIMAL = "LeftRingProximal"
    LEFT_RING_INTERMEDIATE = "LeftRingIntermediate"
    LEFT_RING_DISTAL = "LeftRingDistal"
    LEFT_LITTLE_PROXIMAL = "LeftLittleProximal"
    LEFT_LITTLE_INTERMEDIATE = "LeftLittleIntermediate"
    LEFT_LITTLE_DISTAL = "LeftLittleDistal"
    RIGHT_THUMB_PROXIMAL = "RightThumbProximal"
    RIGHT_THUMB_INTERMEDIATE = "RightThumbIntermediate"
    RIGHT_THUMB_DISTAL = "RightThumbDistal"
    RIGHT_INDEX_PROXIMAL = "RightIndexProximal"
    RIGHT_INDEX_INTERMEDIATE = "RightIndexIntermediate"
    RIGHT_INDEX_DISTAL = "RightIndexDistal"
    RIGHT_MIDDLE_PROXIMAL = "RightMiddleProximal"
    RIGHT_MIDDLE_INTERMEDIATE = "RightMiddleIntermediate"
    RIGHT_MIDDLE_DISTAL = "RightMiddleDistal"
    RIGHT_RING_PROXIMAL = "RightRingProximal"
    RIGHT_RING_INTERMEDIATE = "RightRingIntermediate"
    RIGHT_RING_DISTAL = "RightRingDistal"
    RIGHT_LITTLE_PROXIMAL = "RightLittleProximal"
    RIGHT_LITTLE_INTERMEDIATE = "RightLittleIntermediate"
    RIGHT_LITTLE_DISTAL = "RightLittleDistal"


class StandardBlendShape(str, enum.Enum):
    """VRM 0.x blend shape presets.

    Senders driving a VRM 1.x avatar should map expressions onto these names;
    receivers should still accept arbitrary keys.
    """

    NEUTRAL = "Neutral"
    A = "A"
    I = "I"  # noqa: E741
    U = "U"
    E = "E"
    O = "O"  # noqa: E741
    BLINK = "Blink"
    JOY = "Joy"
    ANGRY = "Angry"
    SORROW = "Sorrow"
    FUN = "Fun"
    LOOK_UP = "LookUp"
    LOOK_DOWN = "LookDown"
    LOOK_LEFT = "LookLeft"
    LOOK_RIGHT = "LookRight"
    BLINK_L = "Blink_L"
    BLINK_R = "Blink_R"


def _enum_value(v: object) -> object:
    return v.value if isinstance(v, enum.Enum) else v


# Accepts a StandardBone / StandardBlendShape member and stores its string value.
Name = Annotated[str, BeforeValidator(_enum_value)]


@dataclass(frozen=True)
class RootTransform:
    """`/VMC/Ext/Root/Pos`: absolute model root pose.

    `scale` and `offset` (mixed-reality adjustment) travel together or not at all.
    """

    position: Vec3
    rotation: Quat
    scale: Optional[Vec3] = None
    offset: Optional[Vec3] = None

    def __post_init__(self) -> None:
        if (self.scale is None) != (self.offset is None):
            raise ValueError("scale and offset must be given together")


@dataclass(frozen=True)
class BoneTransform:
    """`/VMC/Ext/Bone/Pos`: local pose of one humanoid bone."""

    bone: Name
    position: Vec3
    rotation: Quat

    @property
    def standard_bone(self) -> StandardBone | None:
        try:
            return StandardBone(self.bone)
        except ValueError:
            return None


@dataclass(frozen=True)
class DeviceTransform:
    """`/VMC/Ext/{Hmd,Con,Tra}/Pos[/Local]`.

    `joint` is the OpenVR serial; `local` selects raw device scale over avatar scale.
    """

    device: DeviceType
    joint: str
    position: Vec3
    rotation: Quat
    local: bool = False


@dataclass(frozen=True)
class BlendShape:
    """`/VMC/Ext/Blend/Val`. Not applied until `ApplyBlendShapes` arrives."""

    key: Name
    value: Float32


@dataclass(frozen=True)
class ApplyBlendShapes:
    pass


@dataclass(frozen=True)
class State:
    """`/VMC/Ext/OK`: model load, calibration and tracking status."""

    model_state: ModelState
    calibration_mode: Optional[CalibrationMode] = None
    calibration_state: Optional[CalibrationState] = None
    tracking_state: Optional[TrackingState] = None

    def __post_init__(self) -> None:
        if (self.calibration_mode is None) != (self.calibration_state is None):
            raise ValueError("calibration_mode and calibration_state must be given together")
        if self.tracking_state is not None and self.calibration_mode is None:
            raise ValueError("tracking_state requires calibration info")


_EPOCH: float | None = None


@dataclass(frozen=True)
class Time:
    """`/VMC/Ext/T`: seconds elapsed on the sender's clock."""

    seconds: Float32

    @classmethod
    def elapsed(cls) -> Time:
        """Seconds since the first call in this process (monotonic clock)."""
        global _EPOCH
        now = time.monotonic()
        if _EPOCH is None:
            _EPOCH = now
        return cls(now - _EPOCH)


@dataclass(frozen=True)
class CameraTransform:
    name: str
    position: Vec3
    rotation: Quat
    fov: Float32


@dataclass(frozen=True)
class ControllerInput:
    action: InputAction
    name: str
    is_left: bool
    is_touch: bool
    is_axis: bool
    axis: Vec3


@dataclass(frozen=True)
class KeyInput:
    action: InputAction
    name: str
    keycode: Int32


@dataclass(frozen=True)
class MidiNote:
    active: bool
    channel: Int32
    note: Int32
    velocity: Float32


@dataclass(frozen=True)
class MidiControlValue:
    knob: Int32
    value: Float32


@dataclass(frozen=True)
class MidiControlButton:
    knob: Int32
    active: bool


@dataclass(frozen=True)
class DirectionalLight:
    name: str
    position: Vec3
    rotation: Quat
    color: Color


@dataclass(frozen=True)
class ReceiveEnable:
    """`/VMC/Ext/Rcv`: ask the peer to (stop) listening on `port`."""

    enable: bool
    port: Int32
    address: Optional[str] = None


@dataclass(frozen=True)
class SendPeriod:
    """`/VMC/Ext/Set/Period`: send interval, in frames, per data category."""

    status: Int32
    root: Int32
    bone: Int32
    blend_shape: Int32
    camera: Int32
    devices: Int32


@dataclass(frozen=True)
class CalibrationReady:
    pass


@dataclass(frozen=True)
class CalibrationExec:
    mode: CalibrationMode


@dataclass(frozen=True)
class ConfigRequest:
    path: str


@dataclass(frozen=True)
class LoadedModel:
    """`/VMC/Ext/VRM`: path and title of the avatar loaded by the sender."""

    path: str
    title: str
    hash: Optional[str] = None


VMCMessage = Union[
    RootTransform,
    BoneTransform,
    DeviceTransform,
    BlendShape,
    ApplyBlendShapes,
    State,
    Time,
    CameraTransform,
    ControllerInput,
    KeyInput,
    MidiNote,
    MidiControlValue,
    MidiControlButton,
    DirectionalLight,
    ReceiveEnable,
    SendPeriod,
    CalibrationReady,
    CalibrationExec,
    ConfigRequest,
    LoadedModel,
]

MESSAGE_TYPES: tuple[type, ...] = VMCMessage.__args__  # type: ignore[attr-defined]
