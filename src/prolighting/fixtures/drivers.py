"""
Fixture Drivers: map semantic commands onto DMX channel offsets.

Each fixture type has one driver that turns intensity (0..1) and color
(r, g, b, w in 0..1, w < 0 meaning "no white") into bytes inside the
fixture's channel span. Intensity and color are independent channel
writes; nothing multiplies one by the other.
"""

from __future__ import annotations

from typing import Dict, Tuple

import structlog

from prolighting.core.models import Fixture, FixtureType
from prolighting.dmx.universe import UniverseBuffer, clamp01, to_dmx_byte
from prolighting.fixtures.validator import required_channels

logger = structlog.get_logger()


class FixtureDriver:
    """Base driver; subclasses override what their fixture supports."""

    supports_color = False
    intensity_offset = 0

    def apply_intensity(self, fixture: Fixture, intensity: float, buffer: UniverseBuffer) -> None:
        self._write(fixture, self.intensity_offset_for(fixture), to_dmx_byte(intensity), buffer)

    def apply_color(
        self,
        fixture: Fixture,
        red: float,
        green: float,
        blue: float,
        white: float,
        buffer: UniverseBuffer,
    ) -> bool:
        logger.warning(
            "Fixture does not support color",
            fixture_id=fixture.virtual_id,
            fixture_type=fixture.fixture_type.value,
        )
        return False

    def intensity_offset_for(self, fixture: Fixture) -> int:
        return self.intensity_offset

    def _write(self, fixture: Fixture, offset: int, value: int, buffer: UniverseBuffer) -> None:
        if not 0 <= offset < required_channels(fixture):
            logger.debug(
                "Offset outside fixture span skipped",
                fixture_id=fixture.virtual_id,
                offset=offset,
            )
            return
        buffer.set_channel(fixture.universe, fixture.dmx_channel + offset, value)


class DimmableDriver(FixtureDriver):
    """1 channel: intensity."""


class RGBDriver(FixtureDriver):
    """3 channels: R, G, B. Intensity shares offset 0."""

    supports_color = True

    def apply_color(self, fixture, red, green, blue, white, buffer) -> bool:
        self._write(fixture, 0, to_dmx_byte(red), buffer)
        self._write(fixture, 1, to_dmx_byte(green), buffer)
        self._write(fixture, 2, to_dmx_byte(blue), buffer)
        return True


class RGBWDriver(RGBDriver):
    """4 channels: R, G, B, W."""

    def apply_color(self, fixture, red, green, blue, white, buffer) -> bool:
        super().apply_color(fixture, red, green, blue, white, buffer)
        if white >= 0:
            self._write(fixture, 3, to_dmx_byte(white), buffer)
        return True


# Moving head layout, frozen for wire compatibility
MH_PAN = 0
MH_PAN_FINE = 1
MH_TILT = 2
MH_TILT_FINE = 3
MH_COLOR_WHEEL = 4
MH_GOBO = 5
MH_DIMMER = 6
MH_STROBE = 7

# Color wheel slot -> nominal color; slot n is DMX value n * 16
COLOR_WHEEL: Tuple[Tuple[float, float, float], ...] = (
    (1.0, 1.0, 1.0),  # open / white
    (1.0, 0.0, 0.0),  # red
    (1.0, 0.5, 0.0),  # orange
    (1.0, 1.0, 0.0),  # yellow
    (0.0, 1.0, 0.0),  # green
    (0.0, 1.0, 1.0),  # cyan
    (0.0, 0.0, 1.0),  # blue
    (1.0, 0.0, 1.0),  # magenta
)
COLOR_WHEEL_STEP = 16


def nearest_wheel_slot(red: float, green: float, blue: float) -> int:
    def distance(slot: Tuple[float, float, float]) -> float:
        return (slot[0] - red) ** 2 + (slot[1] - green) ** 2 + (slot[2] - blue) ** 2

    return min(range(len(COLOR_WHEEL)), key=lambda i: distance(COLOR_WHEEL[i]))


class MovingHeadDriver(FixtureDriver):
    """
    8 channels: pan, pan fine, tilt, tilt fine, color wheel, gobo, dimmer, strobe.

    Short-footprint heads (< 7 channels) take intensity on offset 0.
    """

    supports_color = True

    def intensity_offset_for(self, fixture: Fixture) -> int:
        return MH_DIMMER if required_channels(fixture) > MH_DIMMER else 0

    def apply_color(self, fixture, red, green, blue, white, buffer) -> bool:
        slot = nearest_wheel_slot(clamp01(red), clamp01(green), clamp01(blue))
        self._write(fixture, MH_COLOR_WHEEL, slot * COLOR_WHEEL_STEP, buffer)
        return True

    def apply_position(self, fixture: Fixture, pan: float, tilt: float, buffer: UniverseBuffer) -> None:
        """Write 16-bit pan/tilt, 0..1 across the head's full range."""
        pan16 = int(clamp01(pan) * 0xFFFF + 0.5)
        tilt16 = int(clamp01(tilt) * 0xFFFF + 0.5)
        self._write(fixture, MH_PAN, pan16 >> 8, buffer)
        self._write(fixture, MH_PAN_FINE, pan16 & 0xFF, buffer)
        self._write(fixture, MH_TILT, tilt16 >> 8, buffer)
        self._write(fixture, MH_TILT_FINE, tilt16 & 0xFF, buffer)


class CustomDriver(FixtureDriver):
    """
    Caller-mapped channels.

    ``custom_channel_mapping`` holds 1-based offsets; positions 0-2 are
    red, green and blue, position 3 is white. Intensity uses offset 0.
    """

    supports_color = True

    def apply_color(self, fixture, red, green, blue, white, buffer) -> bool:
        mapping = fixture.custom_channel_mapping
        if len(mapping) < 3:
            logger.warning("Custom fixture has no RGB mapping", fixture_id=fixture.virtual_id)
            return False
        for position, value in enumerate((red, green, blue)):
            self._write(fixture, mapping[position] - 1, to_dmx_byte(value), buffer)
        if white >= 0 and len(mapping) > 3:
            self._write(fixture, mapping[3] - 1, to_dmx_byte(white), buffer)
        return True


_DRIVERS: Dict[FixtureType, FixtureDriver] = {
    FixtureType.DIMMABLE: DimmableDriver(),
    FixtureType.RGB: RGBDriver(),
    FixtureType.RGBW: RGBWDriver(),
    FixtureType.MOVING_HEAD: MovingHeadDriver(),
    FixtureType.CUSTOM: CustomDriver(),
}


def create_driver(fixture_type: FixtureType) -> FixtureDriver:
    """Driver for a fixture type; drivers are stateless and shared."""
    return _DRIVERS.get(fixture_type, _DRIVERS[FixtureType.DIMMABLE])
