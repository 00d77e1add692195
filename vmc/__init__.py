"""VMC (Virtual Motion Capture) protocol over OSC.

The OSC codec in `vmc.osc` is pure and knows nothing about VMC; the catalog in
`vmc.domain` maps VMC messages to and from OSC; `vmc.roles` puts them on a
datagram socket.
"""

from __future__ import annotations

from .domain.catalog import Recognized, Unrecognized, catalog_addresses, from_osc, to_osc
from .domain.dispatch import Invalid, parse, parse_packet, recognized
from .domain.errors import InvalidArgument, MessageError, SignatureMismatch
from .osc.errors import DecodeError, DecodeErrorKind, EncodeError, TransportClosed
from .roles.factory import DEFAULT_VMC_PORT, open_marionette, open_performer
from .roles.marionette import Marionette, MarionetteState
from .roles.performer import Performer, bundle

__all__ = [
    "DEFAULT_VMC_PORT",
    "DecodeError",
    "DecodeErrorKind",
    "EncodeError",
    "Invalid",
    "InvalidArgument",
    "Marionette",
    "MarionetteState",
    "MessageError",
    "Performer",
    "Recognized",
    "SignatureMismatch",
    "TransportClosed",
    "Unrecognized",
    "__version__",
    "bundle",
    "catalog_addresses",
    "from_osc",
    "open_marionette",
    "open_performer",
    "parse",
    "parse_packet",
    "recognized",
    "to_osc",
]

__version__ = "0.1.0"
