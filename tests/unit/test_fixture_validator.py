from typing import List

import pytest

from prolighting.core.exceptions import FixtureValidationError
from prolighting.core.models import Fixture, FixtureType
from prolighting.fixtures.validator import required_channels, validate_register


def _fixture(virtual_id: int, fixture_type: FixtureType = FixtureType.DIMMABLE, **kwargs) -> Fixture:
    return Fixture(virtual_id=virtual_id, fixture_type=fixture_type, **kwargs)


def test_required_channels_defaults_per_type() -> None:
    assert required_channels(_fixture(1, FixtureType.DIMMABLE)) == 1
    assert required_channels(_fixture(1, FixtureType.RGB)) == 3
    assert required_channels(_fixture(1, FixtureType.RGBW)) == 4
    assert required_channels(_fixture(1, FixtureType.MOVING_HEAD)) == 8
    assert required_channels(_fixture(1, FixtureType.CUSTOM, custom_channel_mapping=[1, 2, 3, 5])) == 4
    assert required_channels(_fixture(1, FixtureType.RGB, channel_count=6)) == 6


def test_valid_fixture_returns_channel_count() -> None:
    assert validate_register(_fixture(1, FixtureType.RGBW, dmx_channel=509), []) == 4


def test_rejects_non_positive_id() -> None:
    with pytest.raises(FixtureValidationError):
        validate_register(_fixture(0), [])


@pytest.mark.parametrize("dmx_channel", [0, 513])
def test_rejects_channel_outside_universe(dmx_channel: int) -> None:
    with pytest.raises(FixtureValidationError):
        validate_register(_fixture(1, dmx_channel=dmx_channel), [])


def test_rejects_span_past_channel_512() -> None:
    with pytest.raises(FixtureValidationError, match="exceed"):
        validate_register(_fixture(1, FixtureType.MOVING_HEAD, dmx_channel=510), [])


def test_rejects_universe_beyond_max() -> None:
    with pytest.raises(FixtureValidationError):
        validate_register(_fixture(1, universe=4), [], max_universe=3)


def test_rejects_rgb_with_too_few_channels() -> None:
    with pytest.raises(FixtureValidationError, match="at least 3"):
        validate_register(_fixture(1, FixtureType.RGB, channel_count=2), [])


def test_rejects_custom_mapping_outside_span() -> None:
    fixture = _fixture(1, FixtureType.CUSTOM, channel_count=3, custom_channel_mapping=[1, 2, 4])
    with pytest.raises(FixtureValidationError, match="custom offset"):
        validate_register(fixture, [])


def test_rejects_duplicate_virtual_id() -> None:
    existing = [_fixture(1, dmx_channel=100, channel_count=1)]
    with pytest.raises(FixtureValidationError) as exc_info:
        validate_register(_fixture(1, dmx_channel=1), existing)
    assert exc_info.value.conflicting_id == 1


def test_overlap_reports_conflicting_fixture() -> None:
    existing: List[Fixture] = [_fixture(1, FixtureType.RGB, dmx_channel=10, channel_count=3)]

    with pytest.raises(FixtureValidationError) as exc_info:
        validate_register(_fixture(2, FixtureType.DIMMABLE, dmx_channel=12), existing)

    assert exc_info.value.conflicting_id == 1


def test_adjacent_spans_and_other_universes_do_not_overlap() -> None:
    existing = [_fixture(1, FixtureType.RGB, dmx_channel=10, channel_count=3)]

    assert validate_register(_fixture(2, dmx_channel=13), existing) == 1
    assert validate_register(_fixture(3, dmx_channel=9), existing) == 1
    assert validate_register(_fixture(4, dmx_channel=10, universe=1), existing) == 1


def test_exclude_id_allows_revalidating_a_registered_fixture() -> None:
    fixture = _fixture(1, FixtureType.RGB, dmx_channel=10, channel_count=3)
    moved = fixture.model_copy(update={"dmx_channel": 11})

    assert validate_register(moved, [fixture], exclude_id=1) == 3
