"""DMX buffers and transports."""

from prolighting.dmx.artnet import (
    ArtNetNodeDiscovery,
    ArtNetTransport,
    build_artdmx_packet,
    build_artpoll_packet,
    parse_artpoll_reply,
    port_address,
)
from prolighting.dmx.base import DMXTransport
from prolighting.dmx.factory import TransportSetup, create_transport
from prolighting.dmx.universe import (
    DMX_CHANNEL_COUNT,
    DMX_CHANNEL_MAX,
    DMX_CHANNEL_MIN,
    DMX_UNIVERSE_SIZE,
    UniverseBuffer,
    create_universe_buffer,
    is_valid_dmx_channel,
    to_dmx_byte,
)
from prolighting.dmx.usb import USBDMXTransport

__all__ = [
    "ArtNetNodeDiscovery",
    "ArtNetTransport",
    "build_artdmx_packet",
    "build_artpoll_packet",
    "parse_artpoll_reply",
    "port_address",
    "DMXTransport",
    "TransportSetup",
    "create_transport",
    "DMX_CHANNEL_COUNT",
    "DMX_CHANNEL_MIN",
    "DMX_CHANNEL_MAX",
    "DMX_UNIVERSE_SIZE",
    "UniverseBuffer",
    "create_universe_buffer",
    "is_valid_dmx_channel",
    "to_dmx_byte",
    "USBDMXTransport",
]
