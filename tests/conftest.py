from __future__ import annotations

import asyncio

import pytest

from vmc.observability.logging import configure_logging
from vmc.osc import TransportClosed


class MemoryHandle:
    """In-process datagram handle: `sent` collects outgoing data, `inbox` feeds receives."""

    def __init__(self) -> None:
        self.sent: list[bytes] = []
        self.inbox: asyncio.Queue = asyncio.Queue()
        self._closed = False

    async def send_datagram(self, data: bytes) -> None:
        if self._closed:
            raise TransportClosed("closed")
        self.sent.append(data)

    async def receive_datagram(self):
        item = await self.inbox.get()
        if isinstance(item, BaseException):
            raise item
        return item

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self.inbox.put_nowait(TransportClosed("closed"))

    @property
    def is_closed(self) -> bool:
        return self._closed


@pytest.fixture
def memory_handle() -> MemoryHandle:
    return MemoryHandle()


@pytest.fixture(autouse=True)
def _quiet_logs():
    configure_logging(level="ERROR", json_logs=True)
