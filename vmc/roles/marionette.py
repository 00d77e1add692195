from __future__ import annotations

import enum
from types import TracebackType

from ..observability.logging import component_logger
from ..osc.errors import TransportClosed
from ..osc.transport import Address, DatagramHandle


class MarionetteState(enum.Enum):
    AWAITING_DATAGRAM = "awaiting_datagram"
    ITEM_READY = "item_ready"
    CLOSED = "closed"


class Marionette:
    """Receiving side of a VMC session: an async stream of raw datagrams.

    Yields `(data, sender)` per datagram in arrival order and decodes nothing;
    feed `data` to `vmc.domain.dispatch.parse`. Single consumer: a second
    pull while one is pending raises `RuntimeError`.

    Closing the handle ends iteration. Any other `OSError` from the handle
    closes the stream and propagates.
    """

    def __init__(self, handle: DatagramHandle, *, logger=None) -> None:
        self._handle = handle
        self._logger = component_logger("marionette", logger)
        self._state = MarionetteState.AWAITING_DATAGRAM
        self._pulling = False

    @property
    def state(self) -> MarionetteState:
        return self._state

    @property
    def handle(self) -> DatagramHandle:
        return self._handle

    async def receive(self) -> tuple[bytes, Address]:
        if self._state is MarionetteState.CLOSED:
            raise StopAsyncIteration
        if self._pulling:
            raise RuntimeError("Marionette is single-consumer; another receive is already pending")

        self._pulling = True
        self._state = MarionetteState.AWAITING_DATAGRAM
        try:
            data, sender = await self._handle.receive_datagram()
        except TransportClosed:
            self._state = MarionetteState.CLOSED
            self._logger.info("marionette.closed")
            raise StopAsyncIteration from None
        except OSError as e:
            self._state = MarionetteState.CLOSED
            self._logger.warning("marionette.receive_failed", error=str(e), error_type=type(e).__name__)
            raise
        finally:
            self._pulling = False

        self._state = MarionetteState.ITEM_READY
        self._logger.debug("vmc.recv", size=len(data), sender=list(sender))
        return data, sender

    def __aiter__(self) -> Marionette:
        return self

    async def __anext__(self) -> tuple[bytes, Address]:
        return await self.receive()

    def close(self) -> None:
        self._state = MarionetteState.CLOSED
        if not self._handle.is_closed:
            self._handle.close()

    async def __aenter__(self) -> Marionette:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
