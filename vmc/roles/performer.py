from __future__ import annotations

from types import TracebackType

from ..domain.catalog import to_osc
from ..domain.messages import VMCMessage
from ..observability.logging import component_logger
from ..osc.encoder import encode
from ..osc.transport import DatagramHandle
from ..osc.types import OSCBundle, OSCPacket, OSCTime


def bundle(*messages: VMCMessage, timetag: OSCTime = OSCTime.IMMEDIATE) -> OSCBundle:
    """Pack several VMC messages into one bundle (one datagram)."""
    return OSCBundle(tuple(to_osc(m) for m in messages), timetag)


class Performer:
    """Sending side of a VMC session.

    Notes:
    - One `send` is one datagram; nothing is batched across calls.
    - The packet is fully encoded before the handle is touched, so an encode
      failure never puts bytes on the wire.
    - No retry, no timeout: a failing handle raises `OSError` to the caller.
    """

    def __init__(self, handle: DatagramHandle, *, logger=None) -> None:
        self._handle = handle
        self._logger = component_logger("performer", logger)

    @property
    def handle(self) -> DatagramHandle:
        return self._handle

    async def send(self, message: VMCMessage) -> None:
        packet = to_osc(message)
        await self._send_bytes(encode(packet))
        self._logger.debug("vmc.send", osc_address=packet.address, osc_args=packet.values())

    async def send_packet(self, packet: OSCPacket) -> None:
        data = encode(packet)
        await self._send_bytes(data)
        self._logger.debug("vmc.send_packet", size=len(data), bundle=isinstance(packet, OSCBundle))

    async def _send_bytes(self, data: bytes) -> None:
        await self._handle.send_datagram(data)

    def close(self) -> None:
        if not self._handle.is_closed:
            self._handle.close()
            self._logger.info("performer.close")

    async def __aenter__(self) -> Performer:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
