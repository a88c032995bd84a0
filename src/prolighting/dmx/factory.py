"""Builds the configured DMX transport."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import structlog

from prolighting.core.config import Settings
from prolighting.core.exceptions import TransportConfigError
from prolighting.core.models import DMXMode
from prolighting.dmx.artnet import ArtNetNodeDiscovery, ArtNetTransport
from prolighting.dmx.base import DMXTransport
from prolighting.dmx.usb import USBDMXTransport

logger = structlog.get_logger()


@dataclass
class TransportSetup:
    """Transport plus the Art-Net discovery it owns, if any."""

    transport: DMXTransport
    discovery: Optional[ArtNetNodeDiscovery] = None


def create_transport(settings: Settings) -> TransportSetup:
    """
    Build (but do not open) the transport selected by ``settings.dmx_mode``.

    Raises:
        TransportConfigError: for modes that have no implementation.
    """
    mode = settings.dmx_mode

    if mode == DMXMode.USB_DMX:
        usb = settings.usb
        return TransportSetup(USBDMXTransport(usb.url, usb.baud_rate, usb.universe))

    if mode == DMXMode.ARTNET:
        cfg = settings.artnet
        discovery = None
        if cfg.discovery_enabled:
            discovery = ArtNetNodeDiscovery(
                port=cfg.port,
                poll_interval=cfg.poll_interval_s,
                node_timeout=cfg.node_timeout_s,
            )
        transport = ArtNetTransport(
            host=cfg.ip_address,
            port=cfg.port,
            net=cfg.net,
            subnet=cfg.subnet,
            discovery=discovery,
        )
        return TransportSetup(transport, discovery)

    raise TransportConfigError(mode.value, "not implemented")
