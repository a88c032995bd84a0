"""Canonical DMX universe sizing, indexing helpers and the per-universe buffer."""

from __future__ import annotations

from typing import Dict, List, Optional

import structlog

from prolighting.core.exceptions import DMXAddressError

logger = structlog.get_logger()

DMX_START_CODE = 0x00
DMX_START_CODE_INDEX = 0
DMX_CHANNEL_COUNT = 512
DMX_CHANNEL_MIN = 1
DMX_CHANNEL_MAX = DMX_CHANNEL_COUNT
DMX_UNIVERSE_SIZE = DMX_CHANNEL_COUNT + 1


def create_universe_buffer() -> bytearray:
    """Create a DMX wire frame including start code + 512 channels."""
    universe = bytearray(DMX_UNIVERSE_SIZE)
    universe[DMX_START_CODE_INDEX] = DMX_START_CODE
    return universe


def is_valid_dmx_channel(channel: int) -> bool:
    """Return True when a channel index is a valid 1-based DMX slot."""
    return DMX_CHANNEL_MIN <= channel <= DMX_CHANNEL_MAX


def clamp01(value: float) -> float:
    if value != value:  # NaN
        return 0.0
    return max(0.0, min(1.0, value))


def to_dmx_byte(value: float) -> int:
    """Convert a 0..1 level to a DMX byte, rounding half up."""
    return int(clamp01(value) * 255.0 + 0.5)


class UniverseBuffer:
    """
    Per-universe DMX channel storage.

    One 512-byte array per universe, created lazily and overwritten in
    place. Channel indices are 1-based like the console view of DMX; an
    index outside 1..512 raises DMXAddressError rather than being dropped.
    """

    def __init__(self) -> None:
        self._universes: Dict[int, bytearray] = {}

    def ensure_universe(self, universe: int) -> None:
        if universe not in self._universes:
            self._universes[universe] = bytearray(DMX_CHANNEL_COUNT)
            logger.debug("Universe buffer created", universe=universe)

    def has_universe(self, universe: int) -> bool:
        return universe in self._universes

    def set_channel(self, universe: int, channel: int, value: int) -> None:
        if not is_valid_dmx_channel(channel):
            raise DMXAddressError(channel, "channel must be 1-512")
        data = self._universes.get(universe)
        if data is None:
            logger.debug("Write to unknown universe ignored", universe=universe, channel=channel)
            return
        data[channel - 1] = max(0, min(255, int(value)))

    def get_channel(self, universe: int, channel: int) -> int:
        if not is_valid_dmx_channel(channel):
            raise DMXAddressError(channel, "channel must be 1-512")
        data = self._universes.get(universe)
        if data is None:
            return 0
        return data[channel - 1]

    def get_universe(self, universe: int) -> Optional[bytes]:
        """Snapshot of a universe's 512 slots, or None if it does not exist."""
        data = self._universes.get(universe)
        return bytes(data) if data is not None else None

    def get_universes(self) -> List[int]:
        return sorted(self._universes)

    def blackout(self) -> None:
        """Zero every live universe without dropping it."""
        for data in self._universes.values():
            data[:] = bytes(DMX_CHANNEL_COUNT)

    def reset(self) -> None:
        self._universes.clear()
