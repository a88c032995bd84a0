"""Placement validation for fixture registration."""

from __future__ import annotations

from typing import Iterable, Optional

from prolighting.core.exceptions import FixtureValidationError
from prolighting.core.models import Fixture, FixtureType
from prolighting.dmx.universe import DMX_CHANNEL_MAX, DMX_CHANNEL_MIN

DEFAULT_CHANNELS = {
    FixtureType.DIMMABLE: 1,
    FixtureType.RGB: 3,
    FixtureType.RGBW: 4,
    FixtureType.MOVING_HEAD: 8,
}

# Drivers write these offsets unconditionally
MIN_CHANNELS = {
    FixtureType.RGB: 3,
    FixtureType.RGBW: 4,
}


def required_channels(fixture: Fixture) -> int:
    """Channel span of a fixture: explicit count, else the type default."""
    if fixture.channel_count is not None and fixture.channel_count > 0:
        return fixture.channel_count
    if fixture.fixture_type == FixtureType.CUSTOM:
        return max(1, len(fixture.custom_channel_mapping))
    return DEFAULT_CHANNELS.get(fixture.fixture_type, 1)


def validate_register(
    candidate: Fixture,
    existing: Iterable[Fixture],
    max_universe: int = 15,
    exclude_id: Optional[int] = None,
) -> int:
    """
    Check that ``candidate`` can be placed next to ``existing``.

    Returns the candidate's channel count. Fixtures with ``exclude_id`` are
    skipped, which lets a registered fixture be re-validated at a new address.

    Raises:
        FixtureValidationError: on a bad ID, address, span, mapping or overlap.
    """
    fixture_id = candidate.virtual_id
    if fixture_id is None or fixture_id <= 0:
        raise FixtureValidationError(fixture_id, "virtual ID must be positive")
    if not 0 <= candidate.universe <= max_universe:
        raise FixtureValidationError(
            fixture_id, f"universe {candidate.universe} outside 0-{max_universe}"
        )
    if not DMX_CHANNEL_MIN <= candidate.dmx_channel <= DMX_CHANNEL_MAX:
        raise FixtureValidationError(
            fixture_id, f"DMX channel {candidate.dmx_channel} outside 1-512"
        )

    channels = required_channels(candidate)
    start = candidate.dmx_channel
    end = start + channels - 1
    if end > DMX_CHANNEL_MAX:
        raise FixtureValidationError(
            fixture_id, f"channels {start}-{end} exceed universe size"
        )

    minimum = MIN_CHANNELS.get(candidate.fixture_type, 1)
    if channels < minimum:
        raise FixtureValidationError(
            fixture_id,
            f"{candidate.fixture_type.value} needs at least {minimum} channels",
        )

    if candidate.fixture_type == FixtureType.CUSTOM:
        for offset in candidate.custom_channel_mapping:
            if not 1 <= offset <= channels:
                raise FixtureValidationError(
                    fixture_id, f"custom offset {offset} outside 1-{channels}"
                )

    for other in existing:
        if other.virtual_id == exclude_id:
            continue
        if other.virtual_id == fixture_id:
            raise FixtureValidationError(
                fixture_id, "virtual ID already registered", conflicting_id=fixture_id
            )
        if other.universe != candidate.universe:
            continue
        other_start = other.dmx_channel
        other_end = other_start + required_channels(other) - 1
        if not (end < other_start or start > other_end):
            raise FixtureValidationError(
                fixture_id,
                f"channels {start}-{end} overlap fixture {other.virtual_id} "
                f"({other_start}-{other_end})",
                conflicting_id=other.virtual_id,
            )

    return channels
