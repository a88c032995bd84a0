"""DMX transport interface shared by the USB and Art-Net outputs."""

from __future__ import annotations

from abc import ABC, abstractmethod


class DMXTransport(ABC):
    """
    Sends whole universes to the wire.

    Implementations are fire-and-forget: ``send_dmx`` logs failures and
    returns, the next full-universe flush is the retry.
    """

    name = "dmx"

    @abstractmethod
    def initialize(self) -> None:
        """Open the underlying device or socket; raise DMXConnectionError on failure."""

    @abstractmethod
    def shutdown(self) -> None:
        """Release the device or socket. Safe to call twice."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        ...

    @abstractmethod
    def send_dmx(self, universe: int, dmx_data: bytes) -> None:
        """Send 512 slots (no start code) for one universe."""

    def tick(self, delta_time: float) -> None:
        """Per-tick housekeeping hook; most transports have none."""

    def supports_rdm(self) -> bool:
        return False
