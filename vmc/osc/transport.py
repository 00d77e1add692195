from __future__ import annotations

import asyncio
from typing import Any, Protocol, Union

from .errors import TransportClosed

Address = tuple[Any, ...]

_CLOSED = object()

_QueueItem = Union[tuple[bytes, Address], BaseException, object]


class DatagramHandle(Protocol):
    """What the performer/marionette roles need from a socket."""

    async def send_datagram(self, data: bytes) -> None: ...

    async def receive_datagram(self) -> tuple[bytes, Address]: ...

    def close(self) -> None: ...

    @property
    def is_closed(self) -> bool: ...


class _DatagramProtocol(asyncio.DatagramProtocol):
    def __init__(self, *, queue_maxsize: int, receive: bool = True) -> None:
        self.transport: asyncio.DatagramTransport | None = None
        self.receive = receive
        self.send_error: Exception | None = None
        self.received: asyncio.Queue[_QueueItem] = asyncio.Queue(maxsize=queue_maxsize)
        self.dropped = 0
        self.closed = False
        self._writable = asyncio.Event()
        self._writable.set()

    def connection_made(self, transport) -> None:  # type: ignore[override]
        self.transport = transport

    def datagram_received(self, data: bytes, addr: Address) -> None:
        if self.receive:
            self._offer((data, addr))

    def error_received(self, exc: Exception) -> None:
        # Send-only handles have no reader; hold the error for the next send.
        if self.receive:
            self._offer(exc)
        else:
            self.send_error = exc

    def take_send_error(self) -> Exception | None:
        exc, self.send_error = self.send_error, None
        return exc

    def connection_lost(self, exc: Exception | None) -> None:
        self.closed = True
        # Wake blocked senders so they notice the close.
        self._writable.set()
        if self.received.full():
            self.received.get_nowait()
            self.dropped += 1
        self.received.put_nowait(_CLOSED)

    def pause_writing(self) -> None:
        self._writable.clear()

    def resume_writing(self) -> None:
        self._writable.set()

    async def wait_writable(self) -> None:
        await self._writable.wait()

    def _offer(self, item: _QueueItem) -> None:
        if self.closed:
            return
        try:
            self.received.put_nowait(item)
        except asyncio.QueueFull:
            self.dropped += 1


class UDPDatagramHandle:
    """asyncio UDP socket exposing the `DatagramHandle` contract.

    Notes:
    - Sends go to the connected `remote_addr`; one `sendto` per datagram.
    - Received datagrams wait in a bounded queue; overflow drops the newest
      datagram and bumps `dropped`.
    - `receive=False` opens a send-only handle: incoming datagrams are ignored
      and socket errors (e.g. ICMP port unreachable) are raised from the next
      `send_datagram` instead of being queued for a reader that never comes.
    """

    def __init__(self, transport: asyncio.DatagramTransport, protocol: _DatagramProtocol) -> None:
        self._transport = transport
        self._protocol = protocol

    @classmethod
    async def open(
        cls,
        *,
        local_addr: Address | None = None,
        remote_addr: Address | None = None,
        queue_maxsize: int = 1024,
        receive: bool = True,
    ) -> UDPDatagramHandle:
        loop = asyncio.get_running_loop()
        transport, protocol = await loop.create_datagram_endpoint(
            lambda: _DatagramProtocol(queue_maxsize=queue_maxsize, receive=receive),
            local_addr=local_addr,
            remote_addr=remote_addr,
        )
        return cls(transport, protocol)

    @property
    def local_address(self) -> Address:
        return self._transport.get_extra_info("sockname")

    @property
    def remote_address(self) -> Address | None:
        return self._transport.get_extra_info("peername")

    @property
    def dropped(self) -> int:
        return self._protocol.dropped

    @property
    def is_closed(self) -> bool:
        return self._protocol.closed or self._transport.is_closing()

    async def send_datagram(self, data: bytes) -> None:
        if self.is_closed:
            raise TransportClosed("datagram handle is closed")
        await self._protocol.wait_writable()
        # Re-check: the handle may have been closed while we were paused.
        if self.is_closed:
            raise TransportClosed("datagram handle is closed")
        self._raise_send_error()
        self._transport.sendto(data)
        # asyncio reports a failed sendto through error_received, not by raising.
        self._raise_send_error()

    def _raise_send_error(self) -> None:
        exc = self._protocol.take_send_error()
        if exc is not None:
            raise exc

    async def receive_datagram(self) -> tuple[bytes, Address]:
        queue = self._protocol.received
        item = await queue.get()
        if item is _CLOSED:
            # Leave the marker so later receives see the close too.
            queue.put_nowait(_CLOSED)
            raise TransportClosed("datagram handle is closed")
        if isinstance(item, BaseException):
            raise item
        return item  # type: ignore[return-value]

    def close(self) -> None:
        self._transport.close()
