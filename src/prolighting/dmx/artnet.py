"""Art-Net packet helpers, transmitter and node discovery."""

from __future__ import annotations

import ipaddress
import socket
import struct
import time
from typing import Callable, Dict, List, Optional

import structlog

from prolighting.core.events import EventHook
from prolighting.core.exceptions import DMXConnectionError
from prolighting.core.models import ArtNetNode
from prolighting.dmx.base import DMXTransport
from prolighting.dmx.universe import DMX_CHANNEL_COUNT

logger = structlog.get_logger()

ARTNET_PORT = 6454
ARTNET_HEADER = b"Art-Net\x00"
ARTNET_OPCODE_POLL = 0x2000
ARTNET_OPCODE_POLL_REPLY = 0x2100
ARTNET_OPCODE_DMX = 0x5000
ARTNET_PROTOCOL_VERSION = 14
ARTNET_DMX_HEADER_SIZE = 18
ARTPOLL_REPLY_MIN_SIZE = 240

# ArtPoll flags: send ArtPollReply on change; diagnostics priority low
ARTPOLL_FLAGS = 0x02
ARTPOLL_DIAG_PRIORITY = 0x07


def port_address(universe: int, subnet: int = 0, net: int = 0) -> int:
    """15-bit Art-Net Port-Address: Net(7) | SubNet(4) | Universe(4)."""
    return ((net & 0x7F) << 8) | ((subnet & 0x0F) << 4) | (universe & 0x0F)


def build_artdmx_packet(
    universe: int,
    dmx_data: bytes,
    sequence: int = 0,
    physical: int = 0,
) -> bytes:
    """
    Build an ArtDMX packet.

    ``universe`` is the full Port-Address. Expects up to 512 channels of
    slot data without DMX start code; short payloads are zero padded.
    """
    if len(dmx_data) > DMX_CHANNEL_COUNT:
        raise ValueError(f"ArtDMX payload too large: {len(dmx_data)} bytes")

    payload = bytes(dmx_data).ljust(DMX_CHANNEL_COUNT, b"\x00")
    # Length is big-endian on the wire.
    length = len(payload)

    packet = bytearray()
    packet.extend(ARTNET_HEADER)
    packet.extend(struct.pack("<H", ARTNET_OPCODE_DMX))
    packet.extend(struct.pack(">H", ARTNET_PROTOCOL_VERSION))
    packet.extend(bytes([sequence & 0xFF, physical & 0xFF]))
    packet.extend(struct.pack("<H", universe & 0x7FFF))
    packet.extend(struct.pack(">H", length))
    packet.extend(payload)
    return bytes(packet)


def build_artpoll_packet() -> bytes:
    """Build a 14-byte ArtPoll asking every node to reply."""
    packet = bytearray()
    packet.extend(ARTNET_HEADER)
    packet.extend(struct.pack("<H", ARTNET_OPCODE_POLL))
    packet.extend(struct.pack(">H", ARTNET_PROTOCOL_VERSION))
    packet.extend(bytes([ARTPOLL_FLAGS, ARTPOLL_DIAG_PRIORITY, 0x00, 0x00]))
    return bytes(packet)


def parse_artpoll_reply(data: bytes, source_ip: str) -> Optional[ArtNetNode]:
    """Decode an ArtPollReply, or return None if ``data`` is not one."""
    if len(data) < ARTPOLL_REPLY_MIN_SIZE or data[:8] != ARTNET_HEADER:
        return None
    (opcode,) = struct.unpack_from("<H", data, 8)
    if opcode != ARTNET_OPCODE_POLL_REPLY:
        return None

    short_name = data[26:44].split(b"\x00", 1)[0].decode("ascii", errors="replace")
    long_name = data[44:108].split(b"\x00", 1)[0].decode("ascii", errors="replace")
    num_ports = data[173]  # NumPorts lo; hi byte at 172 is always 0

    return ArtNetNode(
        ip_address=source_ip,
        node_name=short_name,
        node_type=long_name,
        output_count=max(1, num_ports),
        universes_per_output=1,
    )


class ArtNetTransport(DMXTransport):
    """UDP sender for Art-Net DMX packets."""

    name = "artnet"

    def __init__(
        self,
        host: str,
        port: int = ARTNET_PORT,
        net: int = 0,
        subnet: int = 0,
        broadcast: bool = True,
        discovery: Optional["ArtNetNodeDiscovery"] = None,
    ):
        self.host = host
        self.port = port
        self.net = net
        self.subnet = subnet
        self.broadcast = broadcast
        self.discovery = discovery
        self._socket: socket.socket | None = None
        self._errors = 0

    def initialize(self) -> None:
        if self._socket is not None:
            return
        try:
            ipaddress.IPv4Address(self.host)
        except ValueError:
            raise DMXConnectionError(self.name, f"invalid IP address '{self.host}'")

        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            if self.broadcast:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        except OSError as e:
            raise DMXConnectionError(self.name, str(e))
        self._socket = sock
        logger.info(
            "Art-Net transport open",
            host=self.host,
            port=self.port,
            net=self.net,
            subnet=self.subnet,
        )

        if self.discovery is not None and not self.discovery.open():
            logger.warning("Art-Net discovery unavailable, transport only")

    def shutdown(self) -> None:
        if self.discovery is not None:
            self.discovery.close()
        if self._socket is not None:
            self._socket.close()
            self._socket = None
            logger.info("Art-Net transport closed", errors=self._errors)

    @property
    def is_connected(self) -> bool:
        return self._socket is not None

    def send_dmx(self, universe: int, dmx_data: bytes, sequence: int = 0) -> None:
        if self._socket is None:
            return
        packet = build_artdmx_packet(
            universe=port_address(universe, self.subnet, self.net),
            dmx_data=dmx_data,
            sequence=sequence,
        )
        try:
            self._socket.sendto(packet, (self.host, self.port))
        except OSError as e:
            self._errors += 1
            if self._errors % 100 == 1:
                logger.error("Art-Net send failed", universe=universe, error=str(e))

    def tick(self, delta_time: float) -> None:
        if self.discovery is not None:
            self.discovery.tick(delta_time)

    def supports_rdm(self) -> bool:
        return True


class ArtNetNodeDiscovery:
    """
    Finds Art-Net nodes with ArtPoll and keeps an aged node list.

    Runs on the tick thread: ``tick`` drains pending replies from a
    non-blocking socket, sends an ArtPoll every ``poll_interval`` seconds and
    forgets nodes that have been silent for ``node_timeout`` seconds.
    """

    def __init__(
        self,
        port: int = ARTNET_PORT,
        poll_interval: float = 2.0,
        node_timeout: float = 10.0,
        broadcast_address: str = "255.255.255.255",
        clock: Callable[[], float] = time.monotonic,
    ):
        self.port = port
        self.poll_interval = poll_interval
        self.node_timeout = node_timeout
        self.broadcast_address = broadcast_address
        self._clock = clock
        self._socket: socket.socket | None = None
        self._accumulated = 0.0
        self._nodes: Dict[str, ArtNetNode] = {}

        self.on_node_discovered = EventHook("artnet_node_discovered")

    def open(self) -> bool:
        if self._socket is not None:
            return True
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.bind(("", self.port))
            sock.setblocking(False)
        except OSError as e:
            logger.error("Art-Net discovery bind failed", port=self.port, error=str(e))
            return False
        self._socket = sock
        logger.info("Art-Net discovery listening", port=self.port)
        return True

    def close(self) -> None:
        if self._socket is not None:
            self._socket.close()
            self._socket = None
        self._nodes.clear()
        self._accumulated = 0.0

    def send_poll(self) -> None:
        if self._socket is None:
            return
        try:
            self._socket.sendto(build_artpoll_packet(), (self.broadcast_address, self.port))
        except OSError as e:
            logger.warning("ArtPoll send failed", error=str(e))

    def tick(self, delta_time: float) -> None:
        self.process_incoming()
        self._accumulated += delta_time
        if self._accumulated >= self.poll_interval:
            self._accumulated = 0.0
            self.send_poll()
        self.age_nodes()

    def process_incoming(self) -> None:
        if self._socket is None:
            return
        while True:
            try:
                data, (source_ip, _port) = self._socket.recvfrom(2048)
            except BlockingIOError:
                return
            except OSError as e:
                logger.warning("Art-Net discovery receive failed", error=str(e))
                return
            self.handle_packet(data, source_ip)

    def handle_packet(self, data: bytes, source_ip: str) -> Optional[ArtNetNode]:
        node = parse_artpoll_reply(data, source_ip)
        if node is None:
            return None

        now = self._clock()
        existing = self._nodes.get(source_ip)
        if existing is not None:
            existing.last_seen = now
            return existing

        node.last_seen = now
        self._nodes[source_ip] = node
        logger.info("Art-Net node discovered", name=node.node_name, ip=source_ip)
        self.on_node_discovered.emit(node)
        return node

    def age_nodes(self) -> List[str]:
        now = self._clock()
        stale = [
            ip for ip, node in self._nodes.items()
            if now - node.last_seen > self.node_timeout
        ]
        for ip in stale:
            del self._nodes[ip]
            logger.info("Art-Net node lost", ip=ip)
        return stale

    def get_nodes(self) -> List[ArtNetNode]:
        return list(self._nodes.values())
