"""
USB-DMX transport via an Enttec Open DMX style FTDI dongle.

Implements the DMX512 framing using pyftdi for the FTDI FT232R chip.
"""

from __future__ import annotations

import time
from typing import Any, Optional

import structlog

from prolighting.core.exceptions import DMXConnectionError
from prolighting.dmx.base import DMXTransport
from prolighting.dmx.universe import DMX_CHANNEL_COUNT, create_universe_buffer

logger = structlog.get_logger()

try:
    from pyftdi.serialext import serial_for_url
    PYFTDI_AVAILABLE = True
except ImportError:
    PYFTDI_AVAILABLE = False
    serial_for_url = None

DMX_BREAK_S = 0.0001  # >88us
DMX_MAB_S = 0.000012  # >8us


class USBDMXTransport(DMXTransport):
    """
    Transmits one DMX512 universe through a USB dongle.

    The dongle has no framing logic of its own, so every frame is:
    - Break: line held low for ~100us
    - Mark After Break: ~12us
    - Start code 0x00 followed by 512 slots at 250 kbaud, 8N2

    Only the configured universe is carried; frames for any other universe
    are dropped.
    """

    name = "usb_dmx"

    def __init__(self, url: str, baud_rate: int = 250000, universe: int = 0):
        self.url = url
        self.baud_rate = baud_rate
        self.universe = universe
        self._serial: Optional[Any] = None
        self._frame = create_universe_buffer()

        # Stats
        self._frames_sent = 0
        self._errors = 0

    def initialize(self) -> None:
        if self._serial is not None:
            return
        if not self.url:
            raise DMXConnectionError(self.name, "no serial port configured")
        if not PYFTDI_AVAILABLE:
            raise DMXConnectionError(self.url, "pyftdi not available")

        logger.info("Opening USB-DMX interface", url=self.url)
        try:
            self._serial = serial_for_url(
                self.url,
                baudrate=self.baud_rate,
                bytesize=8,
                stopbits=2,
            )
        except Exception as e:
            raise DMXConnectionError(self.url, str(e))
        logger.info("USB-DMX interface open", url=self.url, universe=self.universe)

    def shutdown(self) -> None:
        if self._serial is not None:
            self._serial.close()
            self._serial = None
            logger.info(
                "USB-DMX interface closed",
                frames_sent=self._frames_sent,
                errors=self._errors,
            )

    @property
    def is_connected(self) -> bool:
        return self._serial is not None

    def send_dmx(self, universe: int, dmx_data: bytes) -> None:
        if self._serial is None:
            return
        if universe != self.universe:
            return

        payload = bytes(dmx_data[:DMX_CHANNEL_COUNT])
        self._frame[1:1 + len(payload)] = payload
        try:
            self._serial.send_break(duration=DMX_BREAK_S)
            time.sleep(DMX_MAB_S)
            self._serial.write(bytes(self._frame))
            self._frames_sent += 1
        except Exception as e:
            self._errors += 1
            if self._errors % 100 == 1:
                logger.error("USB-DMX transmission error", error=str(e))

    def supports_rdm(self) -> bool:
        return bool(self.url)

    def get_stats(self) -> dict:
        """Get transmission statistics."""
        return {
            "connected": self.is_connected,
            "frames_sent": self._frames_sent,
            "errors": self._errors,
        }
