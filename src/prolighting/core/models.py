"""
Fixture and Discovery Models for ProLighting.

Virtual fixtures are the records experience code registers; discovered
fixtures and Art-Net nodes are what the network tells us is out there.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class FixtureType(str, Enum):
    """Fixture types; the type decides channel count and driver."""

    DIMMABLE = "dimmable"
    RGB = "rgb"
    RGBW = "rgbw"
    MOVING_HEAD = "moving_head"
    CUSTOM = "custom"


class DMXMode(str, Enum):
    """Wire transport used to reach the fixtures."""

    USB_DMX = "usb_dmx"
    ARTNET = "artnet"
    SACN = "sacn"  # reserved


class Fixture(BaseModel):
    """
    Virtual fixture definition.

    Ranges are checked by the fixture validator at registration time so a
    bad record is rejected with a reason instead of failing to construct.
    """

    virtual_id: Optional[int] = None  # None = assign next free id
    fixture_type: FixtureType = FixtureType.DIMMABLE
    universe: int = 0
    dmx_channel: int = 1
    channel_count: Optional[int] = None  # None = derive from fixture_type
    custom_channel_mapping: List[int] = Field(default_factory=list)
    rdm_uid: Optional[str] = None
    rdm_capable: bool = False

    @property
    def last_channel(self) -> int:
        return self.dmx_channel + (self.channel_count or 1) - 1


class DiscoveredFixture(BaseModel):
    """Physical fixture reported by RDM discovery."""

    rdm_uid: str
    manufacturer_id: int = 0
    manufacturer_name: str = ""
    model_id: int = 0
    model_name: str = ""
    dmx_address: int = 1
    universe: int = 0
    channel_count: int = 1
    fixture_type: FixtureType = FixtureType.DIMMABLE
    is_online: bool = True
    last_seen: float = 0.0
    virtual_fixture_id: int = -1  # -1 = not bound to a registered fixture


class ArtNetNode(BaseModel):
    """Art-Net node that answered an ArtPoll."""

    ip_address: str
    node_name: str = ""
    node_type: str = ""
    output_count: int = 1
    universes_per_output: int = 1
    last_seen: float = 0.0


_MOVING_HEAD_KEYWORDS = ("moving", "spot", "beam", "wash")
_RGBW_KEYWORDS = ("rgbw",)
_RGB_KEYWORDS = ("rgb", "par", "led")
_DIMMER_KEYWORDS = ("dimmer", "fresnel", "pc ")


def infer_fixture_type(model_name: str, channel_count: int) -> FixtureType:
    """
    Guess a fixture type for a discovered device.

    Model name keywords win; otherwise the DMX footprint decides.
    """
    model_lower = model_name.lower()

    # Moving head first, "spot"/"beam" heads often say "LED" too
    if any(kw in model_lower for kw in _MOVING_HEAD_KEYWORDS) and channel_count >= 8:
        return FixtureType.MOVING_HEAD
    if any(kw in model_lower for kw in _RGBW_KEYWORDS) and channel_count >= 4:
        return FixtureType.RGBW
    if any(kw in model_lower for kw in _RGB_KEYWORDS) and channel_count >= 3:
        return FixtureType.RGB
    if any(kw in model_lower for kw in _DIMMER_KEYWORDS) and channel_count == 1:
        return FixtureType.DIMMABLE

    footprints = {
        1: FixtureType.DIMMABLE,
        3: FixtureType.RGB,
        4: FixtureType.RGBW,
        8: FixtureType.MOVING_HEAD,
    }
    return footprints.get(channel_count, FixtureType.CUSTOM)
