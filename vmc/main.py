from __future__ import annotations

import argparse
import asyncio
import contextlib
from pathlib import Path
from typing import Any

from .config.loader import load_settings
from .config.settings import Settings
from .domain.catalog import Recognized, Unrecognized
from .domain.dispatch import Invalid, parse
from .domain.messages import ApplyBlendShapes, BlendShape, Time
from .domain.recording import FrameRecorder, RecordedFrame, read_frames, write_frames
from .domain.streams import DemoAnimationStream
from .observability.logging import configure_logging, get_logger
from .osc.errors import DecodeError
from .roles.factory import open_marionette, open_performer
from .roles.marionette import Marionette


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="vmc", description="VMC protocol performer / marionette tools")

    p.add_argument("--config", type=Path, default=None, help="YAML config (default: ./config.yaml or ./config/config.yaml)")
    p.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], default=None)
    p.add_argument("--log-format", choices=["json", "console"], default=None)

    sub = p.add_subparsers(dest="command", required=True)

    m = sub.add_parser("marionette", help="receive VMC traffic and log every message")
    m.add_argument("--bind-ip", default=None)
    m.add_argument("--bind-port", type=int, default=None)

    s = sub.add_parser("performer", help="send a looping demo animation")
    s.add_argument("--target-ip", default=None)
    s.add_argument("--target-port", type=int, default=None)
    s.add_argument("--fps", type=int, default=None)
    s.add_argument("--duration", type=float, default=None, help="seconds to run (default: until interrupted)")

    r = sub.add_parser("record", help="record received frames to JSON lines")
    r.add_argument("--bind-ip", default=None)
    r.add_argument("--bind-port", type=int, default=None)
    r.add_argument("--output", type=Path, default=None)
    r.add_argument("--duration", type=float, default=None, help="seconds to record (default: until interrupted)")

    y = sub.add_parser("replay", help="send recorded frames paced by their timestamps")
    y.add_argument("input", type=Path)
    y.add_argument("--target-ip", default=None)
    y.add_argument("--target-port", type=int, default=None)
    y.add_argument("--loop", action="store_true")

    return p


def _cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    o: dict[str, Any] = {}

    if args.log_level is not None:
        o.setdefault("logging", {})["level"] = args.log_level
    if args.log_format is not None:
        o.setdefault("logging", {})["json"] = args.log_format == "json"

    if getattr(args, "bind_ip", None) is not None or getattr(args, "bind_port", None) is not None:
        o.setdefault("marionette", {}).setdefault("bind", {})
        if args.bind_ip is not None:
            o["marionette"]["bind"]["ip"] = args.bind_ip
        if args.bind_port is not None:
            o["marionette"]["bind"]["port"] = args.bind_port

    if getattr(args, "target_ip", None) is not None or getattr(args, "target_port", None) is not None:
        o.setdefault("performer", {}).setdefault("target", {})
        if args.target_ip is not None:
            o["performer"]["target"]["ip"] = args.target_ip
        if args.target_port is not None:
            o["performer"]["target"]["port"] = args.target_port

    if getattr(args, "fps", None) is not None:
        o.setdefault("demo", {})["fps"] = args.fps

    if getattr(args, "output", None) is not None:
        o.setdefault("recorder", {})["output"] = str(args.output)

    return o


def _decode(data: bytes, settings: Settings, logger, sender) -> list | None:
    try:
        return parse(data, max_depth=settings.codec.max_bundle_depth)
    except DecodeError as e:
        logger.warning("vmc.decode_failed", sender=list(sender), size=len(data), **e.to_dict())
        return None


async def _pump_marionette(marionette: Marionette, settings: Settings, logger) -> None:
    blend_shapes: dict[str, float] = {}
    async for data, sender in marionette:
        outcomes = _decode(data, settings, logger, sender)
        if outcomes is None:
            continue
        for outcome in outcomes:
            if isinstance(outcome, Invalid):
                logger.warning("vmc.invalid", **outcome.error.to_dict())
            elif isinstance(outcome, Unrecognized):
                logger.debug("vmc.unrecognized", osc_address=outcome.address, arg_count=len(outcome.args))
            elif isinstance(outcome, Recognized):
                message = outcome.message
                if isinstance(message, BlendShape):
                    blend_shapes[message.key] = message.value
                elif isinstance(message, ApplyBlendShapes) and blend_shapes:
                    logger.info("vmc.blend_shapes", values={k: v for k, v in blend_shapes.items() if v > 0})
                    blend_shapes.clear()
                else:
                    logger.info("vmc.message", type=type(message).__name__, sender=list(sender))


async def _record(marionette: Marionette, settings: Settings, logger, frames: list[RecordedFrame]) -> None:
    recorder = FrameRecorder()
    async for data, sender in marionette:
        outcomes = _decode(data, settings, logger, sender)
        if outcomes is None:
            continue
        for outcome in outcomes:
            if isinstance(outcome, Invalid):
                logger.warning("vmc.invalid", **outcome.error.to_dict())
            elif isinstance(outcome, Recognized):
                frame = recorder.feed(outcome.message)
                if frame is not None:
                    frames.append(frame)


async def _run_for(coro, duration: float | None) -> None:
    if duration is None:
        await coro
        return
    with contextlib.suppress(asyncio.TimeoutError):
        await asyncio.wait_for(coro, timeout=duration)


async def _cmd_marionette(settings: Settings, args: argparse.Namespace) -> None:
    logger = get_logger().bind(component="app")
    async with await open_marionette(
        settings.marionette.bind.as_tuple(),
        queue_maxsize=settings.marionette.queue_maxsize,
    ) as marionette:
        logger.info("marionette.start", bind_ip=settings.marionette.bind.ip, bind_port=settings.marionette.bind.port)
        await _pump_marionette(marionette, settings, logger)


async def _cmd_performer(settings: Settings, args: argparse.Namespace) -> None:
    logger = get_logger().bind(component="app")
    async with await open_performer(settings.performer.target.as_tuple(), bind=settings.performer.bind.as_tuple()) as performer:
        stream = DemoAnimationStream(performer=performer, logger=get_logger().bind(component="stream"), fps=settings.demo.fps)
        await stream.start()
        try:
            await _run_for(stream.wait(), args.duration)
        finally:
            await stream.stop()
        logger.info("performer.done", frames_sent=stream.status().frames_sent)


async def _cmd_record(settings: Settings, args: argparse.Namespace) -> None:
    logger = get_logger().bind(component="app")
    frames: list[RecordedFrame] = []
    output = settings.recorder.output
    async with await open_marionette(
        settings.marionette.bind.as_tuple(),
        queue_maxsize=settings.marionette.queue_maxsize,
    ) as marionette:
        logger.info("record.start", bind_port=settings.marionette.bind.port, output=str(output))
        try:
            await _run_for(_record(marionette, settings, logger, frames), args.duration)
        finally:
            n = write_frames(output, frames)
            logger.info("record.saved", output=str(output), frames=n)


async def _cmd_replay(settings: Settings, args: argparse.Namespace) -> None:
    logger = get_logger().bind(component="app")
    frames = list(read_frames(args.input))
    if not frames:
        logger.warning("replay.empty", input=str(args.input))
        return

    async with await open_performer(settings.performer.target.as_tuple(), bind=settings.performer.bind.as_tuple()) as performer:
        logger.info("replay.start", input=str(args.input), frames=len(frames), loop=args.loop)
        while True:
            previous = frames[0].time_delta
            for frame in frames:
                await asyncio.sleep(max(0.0, frame.time_delta - previous))
                previous = frame.time_delta
                await performer.send(Time(frame.time_delta))
                for message in frame.messages:
                    await performer.send(message)
            if not args.loop:
                break
        logger.info("replay.done", frames=len(frames))


_COMMANDS = {
    "marionette": _cmd_marionette,
    "performer": _cmd_performer,
    "record": _cmd_record,
    "replay": _cmd_replay,
}


async def _run(settings: Settings, args: argparse.Namespace) -> None:
    configure_logging(level=settings.logging.level, json_logs=settings.logging.json_logs)
    await _COMMANDS[args.command](settings, args)


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    project_root = Path(__file__).resolve().parents[1]
    loaded = load_settings(project_root=project_root, config_path=args.config, cli_overrides=_cli_overrides(args))

    try:
        asyncio.run(_run(loaded.settings, args))
    except KeyboardInterrupt:
        return 130
    return 0
