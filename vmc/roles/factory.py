from __future__ import annotations

from ..config.settings import DEFAULT_VMC_PORT
from ..observability.logging import component_logger
from ..osc.transport import Address, UDPDatagramHandle
from .marionette import Marionette
from .performer import Performer


async def open_performer(
    target: Address = ("127.0.0.1", DEFAULT_VMC_PORT),
    *,
    bind: Address = ("127.0.0.1", 0),
    logger=None,
) -> Performer:
    handle = await UDPDatagramHandle.open(local_addr=bind, remote_addr=target, receive=False)
    component_logger("performer", logger).info("performer.open", local=list(handle.local_address), target=list(target))
    return Performer(handle, logger=logger)


async def open_marionette(
    bind: Address = ("127.0.0.1", DEFAULT_VMC_PORT),
    *,
    queue_maxsize: int = 1024,
    logger=None,
) -> Marionette:
    handle = await UDPDatagramHandle.open(local_addr=bind, queue_maxsize=queue_maxsize)
    component_logger("marionette", logger).info("marionette.open", bind=list(handle.local_address))
    return Marionette(handle, logger=logger)
