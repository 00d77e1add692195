from __future__ import annotations

import asyncio
import socket
from typing import cast

import pytest
from pythonosc.dispatcher import Dispatcher
from pythonosc.osc_server import AsyncIOOSCUDPServer

from vmc.domain.catalog import Recognized
from vmc.domain.dispatch import parse
from vmc.domain.messages import ApplyBlendShapes, BlendShape, ModelState, State, Time
from vmc.osc import OSCMessage, TransportClosed
from vmc.roles.factory import open_marionette, open_performer
from vmc.roles.marionette import Marionette, MarionetteState
from vmc.roles.performer import Performer, bundle


class OscCapture:
    def __init__(self) -> None:
        self.messages: asyncio.Queue[tuple[str, tuple]] = asyncio.Queue()

    def handler(self, address: str, *args):
        self.messages.put_nowait((address, args))


def _free_udp_port() -> int:
    s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port


@pytest.mark.asyncio
async def test_performer_to_marionette_over_udp():
    async with await open_marionette(("127.0.0.1", 0)) as marionette:
        port = marionette.handle.local_address[1]
        async with await open_performer(("127.0.0.1", port)) as performer:
            await performer.send(BlendShape("Joy", 1.0))
            await performer.send(ApplyBlendShapes())

            data, sender = await asyncio.wait_for(marionette.receive(), timeout=1.5)
            assert marionette.state is MarionetteState.ITEM_READY
            assert sender[1] == performer.handle.local_address[1]
            assert parse(data) == [Recognized(BlendShape("Joy", 1.0))]

            data, _ = await asyncio.wait_for(marionette.receive(), timeout=1.5)
            assert parse(data) == [Recognized(ApplyBlendShapes())]


@pytest.mark.asyncio
async def test_bundle_goes_out_as_one_datagram():
    async with await open_marionette(("127.0.0.1", 0)) as marionette:
        port = marionette.handle.local_address[1]
        async with await open_performer(("127.0.0.1", port)) as performer:
            await performer.send_packet(bundle(BlendShape("A", 0.5), ApplyBlendShapes(), Time(1.0)))

            data, _ = await asyncio.wait_for(marionette.receive(), timeout=1.5)
            assert parse(data) == [
                Recognized(BlendShape("A", 0.5)),
                Recognized(ApplyBlendShapes()),
                Recognized(Time(1.0)),
            ]


@pytest.mark.asyncio
async def test_python_osc_server_receives_performer_messages():
    capture = OscCapture()
    dispatcher = Dispatcher()
    dispatcher.set_default_handler(capture.handler)

    port = _free_udp_port()
    loop = cast(asyncio.BaseEventLoop, asyncio.get_running_loop())
    server = AsyncIOOSCUDPServer(("127.0.0.1", port), dispatcher, loop)
    transport, _ = await server.create_serve_endpoint()
    try:
        async with await open_performer(("127.0.0.1", port)) as performer:
            await performer.send(State(ModelState.LOADED))
            await performer.send(BlendShape("Blink_L", 0.25))

            first = await asyncio.wait_for(capture.messages.get(), timeout=1.5)
            second = await asyncio.wait_for(capture.messages.get(), timeout=1.5)
    finally:
        transport.close()

    assert first == ("/VMC/Ext/OK", (1,))
    assert second == ("/VMC/Ext/Blend/Val", ("Blink_L", 0.25))


@pytest.mark.asyncio
async def test_send_on_closed_performer_fails_and_sends_nothing(memory_handle):
    handle = memory_handle
    performer = Performer(handle)
    performer.close()

    with pytest.raises(TransportClosed):
        await performer.send(Time(1.0))
    assert isinstance(TransportClosed("x"), OSError)
    assert handle.sent == []


@pytest.mark.asyncio
async def test_send_on_closed_udp_performer_raises():
    performer = await open_performer(("127.0.0.1", _free_udp_port()))
    performer.close()
    with pytest.raises(TransportClosed):
        await performer.send(Time(1.0))


@pytest.mark.asyncio
async def test_encode_failure_sends_nothing(memory_handle):
    handle = memory_handle
    performer = Performer(handle)

    with pytest.raises(TypeError):
        await performer.send(OSCMessage("/VMC/Ext/T", [1.0]))  # type: ignore[arg-type]
    assert handle.sent == []

    await performer.send(Time(2.0))
    assert len(handle.sent) == 1


@pytest.mark.asyncio
async def test_marionette_state_transitions(memory_handle):
    handle = memory_handle
    marionette = Marionette(handle)
    assert marionette.state is MarionetteState.AWAITING_DATAGRAM

    handle.inbox.put_nowait((b"one", ("127.0.0.1", 1)))
    assert await marionette.receive() == (b"one", ("127.0.0.1", 1))
    assert marionette.state is MarionetteState.ITEM_READY

    pending = asyncio.create_task(marionette.receive())
    await asyncio.sleep(0)
    assert marionette.state is MarionetteState.AWAITING_DATAGRAM

    handle.close()
    with pytest.raises(StopAsyncIteration):
        await pending
    assert marionette.state is MarionetteState.CLOSED

    with pytest.raises(StopAsyncIteration):
        await marionette.receive()


@pytest.mark.asyncio
async def test_marionette_iteration_ends_on_close(memory_handle):
    handle = memory_handle
    for i in range(3):
        handle.inbox.put_nowait((bytes([i]), ("127.0.0.1", 9)))
    handle.close()

    received = [data async for data, _ in Marionette(handle)]
    assert received == [b"\x00", b"\x01", b"\x02"]


@pytest.mark.asyncio
async def test_marionette_surfaces_io_errors_and_closes(memory_handle):
    handle = memory_handle
    marionette = Marionette(handle)
    handle.inbox.put_nowait(ConnectionRefusedError("port unreachable"))

    with pytest.raises(ConnectionRefusedError):
        await marionette.receive()
    assert marionette.state is MarionetteState.CLOSED


@pytest.mark.asyncio
async def test_marionette_is_single_consumer(memory_handle):
    handle = memory_handle
    marionette = Marionette(handle)

    first = asyncio.create_task(marionette.receive())
    await asyncio.sleep(0)
    with pytest.raises(RuntimeError):
        await marionette.receive()

    handle.inbox.put_nowait((b"x", ("127.0.0.1", 1)))
    assert (await first)[0] == b"x"


@pytest.mark.asyncio
async def test_cancelled_receive_leaves_stream_usable():
    async with await open_marionette(("127.0.0.1", 0)) as marionette:
        port = marionette.handle.local_address[1]

        pending = asyncio.create_task(marionette.receive())
        await asyncio.sleep(0.01)
        pending.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pending

        async with await open_performer(("127.0.0.1", port)) as performer:
            await performer.send(Time(3.0))
            data, _ = await asyncio.wait_for(marionette.receive(), timeout=1.5)
        assert parse(data) == [Recognized(Time(3.0))]


@pytest.mark.asyncio
async def test_udp_marionette_stops_when_closed():
    marionette = await open_marionette(("127.0.0.1", 0))
    pending = asyncio.create_task(marionette.receive())
    await asyncio.sleep(0.01)

    marionette.close()
    with pytest.raises(StopAsyncIteration):
        await asyncio.wait_for(pending, timeout=1.5)
    assert marionette.state is MarionetteState.CLOSED


@pytest.mark.asyncio
async def test_full_receive_queue_drops_and_counts():
    async with await open_marionette(("127.0.0.1", 0), queue_maxsize=2) as marionette:
        port = marionette.handle.local_address[1]
        async with await open_performer(("127.0.0.1", port)) as performer:
            for i in range(5):
                await performer.send(Time(float(i)))

            deadline = asyncio.get_running_loop().time() + 1.5
            while marionette.handle.dropped < 3:
                if asyncio.get_running_loop().time() > deadline:
                    raise AssertionError(f"dropped={marionette.handle.dropped}")
                await asyncio.sleep(0.01)

        data, _ = await marionette.receive()
        assert parse(data) == [Recognized(Time(0.0))]


@pytest.mark.asyncio
async def test_send_to_closed_port_raises_connection_refused():
    async with await open_performer(("127.0.0.1", _free_udp_port())) as performer:
        await performer.send(Time(1.0))
        await asyncio.sleep(0.05)

        with pytest.raises(ConnectionRefusedError):
            await performer.send(Time(2.0))
        assert not performer.handle.is_closed


@pytest.mark.asyncio
async def test_paused_handle_holds_send_until_resumed():
    async with await open_marionette(("127.0.0.1", 0)) as marionette:
        port = marionette.handle.local_address[1]
        async with await open_performer(("127.0.0.1", port)) as performer:
            protocol = performer.handle._protocol
            protocol.pause_writing()

            pending = asyncio.create_task(performer.send(Time(1.0)))
            await asyncio.sleep(0.01)
            assert not pending.done()

            protocol.resume_writing()
            await asyncio.wait_for(pending, timeout=1.5)
            data, _ = await asyncio.wait_for(marionette.receive(), timeout=1.5)
            assert parse(data) == [Recognized(Time(1.0))]


@pytest.mark.asyncio
async def test_close_releases_paused_send():
    performer = await open_performer(("127.0.0.1", _free_udp_port()))
    performer.handle._protocol.pause_writing()

    pending = asyncio.create_task(performer.send(Time(1.0)))
    await asyncio.sleep(0.01)
    assert not pending.done()

    performer.close()
    with pytest.raises(TransportClosed):
        await asyncio.wait_for(pending, timeout=1.5)


@pytest.mark.asyncio
async def test_cancelled_paused_send_sends_nothing():
    async with await open_marionette(("127.0.0.1", 0)) as marionette:
        port = marionette.handle.local_address[1]
        async with await open_performer(("127.0.0.1", port)) as performer:
            protocol = performer.handle._protocol
            protocol.pause_writing()

            pending = asyncio.create_task(performer.send(Time(1.0)))
            await asyncio.sleep(0.01)
            pending.cancel()
            with pytest.raises(asyncio.CancelledError):
                await pending

            protocol.resume_writing()
            await performer.send(Time(2.0))
            data, _ = await asyncio.wait_for(marionette.receive(), timeout=1.5)
            assert parse(data) == [Recognized(Time(2.0))]
