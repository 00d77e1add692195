"""Address/signature table binding every VMC message kind to its OSC form."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping, Union

from ..osc.types import OSCMessage, OSCValue
from .errors import InvalidArgument, SignatureMismatch
from .messages import (
    ApplyBlendShapes,
    BlendShape,
    BoneTransform,
    CalibrationExec,
    CalibrationMode,
    CalibrationReady,
    CalibrationState,
    CameraTransform,
    Color,
    ConfigRequest,
    ControllerInput,
    DeviceTransform,
    DeviceType,
    DirectionalLight,
    InputAction,
    KeyInput,
    LoadedModel,
    MidiControlButton,
    MidiControlValue,
    MidiNote,
    ModelState,
    Quat,
    ReceiveEnable,
    RootTransform,
    SendPeriod,
    State,
    Time,
    TrackingState,
    Vec3,
    VMCMessage,
)

ROOT_NAME = "root"


@dataclass(frozen=True)
class Signature:
    """Accepted type tags for one address.

    `optional` groups are all-or-nothing and must appear in order; a later
    group is only read when every earlier one is present. With `trailing`,
    arguments past the known ones are ignored instead of rejected.
    """

    required: str
    optional: tuple[str, ...] = ()
    trailing: bool = False

    def match(self, tags: str) -> int | None:
        """Number of optional groups present in `tags`, or None if they don't fit."""
        if not tags.startswith(self.required):
            return None
        pos = len(self.required)
        groups = 0
        for group in self.optional:
            if not tags.startswith(group, pos):
                break
            pos += len(group)
            groups += 1
        if pos != len(tags) and not self.trailing:
            return None
        return groups

    def variants(self) -> list[str]:
        out = [self.required]
        for group in self.optional:
            out.append(out[-1] + group)
        if self.trailing:
            out = [v + "*" for v in out]
        return out


@dataclass(frozen=True)
class Recognized:
    message: VMCMessage


@dataclass(frozen=True)
class Unrecognized:
    """A well-formed OSC message whose address is not in the catalog."""

    address: str
    args: tuple[OSCValue, ...] = ()


Conversion = Union[Recognized, Unrecognized]

_Decoder = Callable[[str, list[Any], int], VMCMessage]


@dataclass(frozen=True)
class CatalogEntry:
    address: str
    message_type: type
    signature: Signature
    decoder: _Decoder = field(repr=False)


def _enum(enum_cls: type[enum.Enum], value: Any, *, address: str, name: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidArgument(address=address, field=name, value=value) from None


def _pose(v: list[Any], start: int) -> tuple[Vec3, Quat]:
    return Vec3(*v[start : start + 3]), Quat(*v[start + 3 : start + 7])


def _floats(*groups: tuple[float, ...]) -> list[float]:
    return [float(x) for g in groups for x in g]


# --- decoders: (address, native values, optional groups present) -> message ---


def _root(address: str, v: list[Any], groups: int) -> RootTransform:
    position, rotation = _pose(v, 1)
    if groups:
        return RootTransform(position, rotation, Vec3(*v[8:11]), Vec3(*v[11:14]))
    return RootTransform(position, rotation)


def _bone(address: str, v: list[Any], groups: int) -> BoneTransform:
    return BoneTransform(v[0], *_pose(v, 1))


def _device(device: DeviceType, local: bool) -> _Decoder:
    def decode(address: str, v: list[Any], groups: int) -> DeviceTransform:
        return DeviceTransform(device, v[0], *_pose(v, 1), local=local)

    return decode


def _blend(address: str, v: list[Any], groups: int) -> BlendShape:
    return BlendShape(v[0], v[1])


def _state(address: str, v: list[Any], groups: int) -> State:
    model = _enum(ModelState, v[0], address=address, name="model_state")
    if groups == 0:
        return State(model)
    # Wire order is state before mode.
    cal_state = _enum(CalibrationState, v[1], address=address, name="calibration_state")
    cal_mode = _enum(CalibrationMode, v[2], address=address, name="calibration_mode")
    tracking = None
    if groups > 1:
        tracking = _enum(TrackingState, v[3], address=address, name="tracking_state")
    return State(model, cal_mode, cal_state, tracking)


def _camera(address: str, v: list[Any], groups: int) -> CameraTransform:
    return CameraTransform(v[0], *_pose(v, 1), v[8])


def _controller(address: str, v: list[Any], groups: int) -> ControllerInput:
    action = _enum(InputAction, v[0], address=address, name="action")
    return ControllerInput(action, v[1], bool(v[2]), bool(v[3]), bool(v[4]), Vec3(*v[5:8]))


def _key(address: str, v: list[Any], groups: int) -> KeyInput:
    return KeyInput(_enum(InputAction, v[0], address=address, name="action"), v[1], v[2])


def _light(address: str, v: list[Any], groups: int) -> DirectionalLight:
    return DirectionalLight(v[0], *_pose(v, 1), Color(*v[8:12]))


def _receive_enable(address: str, v: list[Any], groups: int) -> ReceiveEnable:
    return ReceiveEnable(bool(v[0]), v[1], v[2] if groups else None)


def _calibration_exec(address: str, v: list[Any], groups: int) -> CalibrationExec:
    return CalibrationExec(_enum(CalibrationMode, v[0], address=address, name="mode"))


def _loaded_model(address: str, v: list[Any], groups: int) -> LoadedModel:
    return LoadedModel(v[0], v[1], v[2] if groups else None)


_POSE = "sfffffff"

_ENTRIES = [
    CatalogEntry("/VMC/Ext/Root/Pos", RootTransform, Signature(_POSE, ("ffffff",), trailing=True), _root),
    CatalogEntry("/VMC/Ext/Bone/Pos", BoneTransform, Signature(_POSE), _bone),
    CatalogEntry("/VMC/Ext/Blend/Val", BlendShape, Signature("sf", trailing=True), _blend),
    CatalogEntry("/VMC/Ext/Blend/Apply", ApplyBlendShapes, Signature("", trailing=True), lambda a, v, g: ApplyBlendShapes()),
    CatalogEntry("/VMC/Ext/OK", State, Signature("i", ("ii", "i"), trailing=True), _state),
    CatalogEntry("/VMC/Ext/T", Time, Signature("f", trailing=True), lambda a, v, g: Time(v[0])),
    CatalogEntry("/VMC/Ext/Cam", CameraTransform, Signature(_POSE + "f", trailing=True), _camera),
    CatalogEntry("/VMC/Ext/Con", ControllerInput, Signature("isiiifff", trailing=True), _controller),
    CatalogEntry("/VMC/Ext/Key", KeyInput, Signature("isi", trailing=True), _key),
    CatalogEntry(
        "/VMC/Ext/Midi/Note",
        MidiNote,
        Signature("iiif", trailing=True),
        lambda a, v, g: MidiNote(bool(v[0]), v[1], v[2], v[3]),
    ),
    CatalogEntry(
        "/VMC/Ext/Midi/CC/Val",
        MidiControlValue,
        Signature("if", trailing=True),
        lambda a, v, g: MidiControlValue(v[0], v[1]),
    ),
    CatalogEntry(
        "/VMC/Ext/Midi/CC/Bit",
        MidiControlButton,
        Signature("ii", trailing=True),
        lambda a, v, g: MidiControlButton(v[0], bool(v[1])),
    ),
    CatalogEntry("/VMC/Ext/Light", DirectionalLight, Signature(_POSE + "ffff", trailing=True), _light),
    CatalogEntry("/VMC/Ext/Rcv", ReceiveEnable, Signature("ii", ("s",), trailing=True), _receive_enable),
    CatalogEntry("/VMC/Ext/Set/Period", SendPeriod, Signature("iiiiii", trailing=True), lambda a, v, g: SendPeriod(*v[:6])),
    CatalogEntry(
        "/VMC/Ext/Set/Calib/Ready",
        CalibrationReady,
        Signature("", trailing=True),
        lambda a, v, g: CalibrationReady(),
    ),
    CatalogEntry("/VMC/Ext/Set/Calib/Exec", CalibrationExec, Signature("i", trailing=True), _calibration_exec),
    CatalogEntry("/VMC/Ext/Set/Config", ConfigRequest, Signature("s", trailing=True), lambda a, v, g: ConfigRequest(v[0])),
    CatalogEntry("/VMC/Ext/VRM", LoadedModel, Signature("ss", ("s",), trailing=True), _loaded_model),
]

for _device_type in DeviceType:
    for _local in (False, True):
        _ENTRIES.append(
            CatalogEntry(
                f"/VMC/Ext/{_device_type.value}/Pos" + ("/Local" if _local else ""),
                DeviceTransform,
                Signature(_POSE, trailing=True),
                _device(_device_type, _local),
            )
        )

CATALOG: Mapping[str, CatalogEntry] = MappingProxyType({e.address: e for e in _ENTRIES})


def catalog_addresses() -> list[str]:
    return list(CATALOG)


def lookup(address: str) -> CatalogEntry | None:
    return CATALOG.get(address)


def from_osc(message: OSCMessage) -> Conversion:
    """Convert one decoded OSC message into a VMC message.

    Raises:
        SignatureMismatch: known address, type tags the signature does not accept.
        InvalidArgument: known signature, but an enum field is out of range.
    """

    entry = lookup(message.address)
    if entry is None:
        return Unrecognized(message.address, message.args)
    tags = message.type_tags[1:]
    groups = entry.signature.match(tags)
    if groups is None:
        raise SignatureMismatch(address=message.address, expected=entry.signature.variants(), got=tags)
    return Recognized(entry.decoder(message.address, message.values(), groups))


# --- encoders ---


def _device_address(m: DeviceTransform) -> str:
    return f"/VMC/Ext/{m.device.value}/Pos" + ("/Local" if m.local else "")


def _state_args(m: State) -> list[Any]:
    args: list[Any] = [int(m.model_state)]
    if m.calibration_mode is not None and m.calibration_state is not None:
        args += [int(m.calibration_state), int(m.calibration_mode)]
        if m.tracking_state is not None:
            args.append(int(m.tracking_state))
    return args


def _root_args(m: RootTransform) -> list[Any]:
    args: list[Any] = [ROOT_NAME, *_floats(m.position, m.rotation)]
    if m.scale is not None and m.offset is not None:
        args += _floats(m.scale, m.offset)
    return args


def _optional(value: str | None) -> list[Any]:
    return [] if value is None else [value]


_ENCODERS: dict[type, Callable[[Any], tuple[str, list[Any]]]] = {
    RootTransform: lambda m: ("/VMC/Ext/Root/Pos", _root_args(m)),
    BoneTransform: lambda m: ("/VMC/Ext/Bone/Pos", [m.bone, *_floats(m.position, m.rotation)]),
    DeviceTransform: lambda m: (_device_address(m), [m.joint, *_floats(m.position, m.rotation)]),
    BlendShape: lambda m: ("/VMC/Ext/Blend/Val", [m.key, float(m.value)]),
    ApplyBlendShapes: lambda m: ("/VMC/Ext/Blend/Apply", []),
    State: lambda m: ("/VMC/Ext/OK", _state_args(m)),
    Time: lambda m: ("/VMC/Ext/T", [float(m.seconds)]),
    CameraTransform: lambda m: ("/VMC/Ext/Cam", [m.name, *_floats(m.position, m.rotation), float(m.fov)]),
    ControllerInput: lambda m: (
        "/VMC/Ext/Con",
        [int(m.action), m.name, int(m.is_left), int(m.is_touch), int(m.is_axis), *_floats(m.axis)],
    ),
    KeyInput: lambda m: ("/VMC/Ext/Key", [int(m.action), m.name, m.keycode]),
    MidiNote: lambda m: ("/VMC/Ext/Midi/Note", [int(m.active), m.channel, m.note, float(m.velocity)]),
    MidiControlValue: lambda m: ("/VMC/Ext/Midi/CC/Val", [m.knob, float(m.value)]),
    MidiControlButton: lambda m: ("/VMC/Ext/Midi/CC/Bit", [m.knob, int(m.active)]),
    DirectionalLight: lambda m: ("/VMC/Ext/Light", [m.name, *_floats(m.position, m.rotation, m.color)]),
    ReceiveEnable: lambda m: ("/VMC/Ext/Rcv", [int(m.enable), m.port, *_optional(m.address)]),
    SendPeriod: lambda m: (
        "/VMC/Ext/Set/Period",
        [m.status, m.root, m.bone, m.blend_shape, m.camera, m.devices],
    ),
    CalibrationReady: lambda m: ("/VMC/Ext/Set/Calib/Ready", []),
    CalibrationExec: lambda m: ("/VMC/Ext/Set/Calib/Exec", [int(m.mode)]),
    ConfigRequest: lambda m: ("/VMC/Ext/Set/Config", [m.path]),
    LoadedModel: lambda m: ("/VMC/Ext/VRM", [m.path, m.title, *_optional(m.hash)]),
}


def to_osc(message: VMCMessage) -> OSCMessage:
    encoder = _ENCODERS.get(type(message))
    if encoder is None:
        raise TypeError(f"not a VMC message: {message!r}")
    address, args = encoder(message)
    return OSCMessage(address, args)
