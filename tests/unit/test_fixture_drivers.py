from prolighting.core.models import Fixture, FixtureType
from prolighting.dmx.universe import UniverseBuffer
from prolighting.fixtures.drivers import (
    COLOR_WHEEL_STEP,
    MH_COLOR_WHEEL,
    MH_DIMMER,
    CustomDriver,
    DimmableDriver,
    MovingHeadDriver,
    RGBDriver,
    RGBWDriver,
    create_driver,
    nearest_wheel_slot,
)


def _buffer() -> UniverseBuffer:
    buffer = UniverseBuffer()
    buffer.ensure_universe(0)
    return buffer


def _fixture(fixture_type: FixtureType, dmx_channel: int = 10, **kwargs) -> Fixture:
    return Fixture(virtual_id=1, fixture_type=fixture_type, dmx_channel=dmx_channel, **kwargs)


def test_factory_dispatches_on_fixture_type() -> None:
    assert isinstance(create_driver(FixtureType.DIMMABLE), DimmableDriver)
    assert isinstance(create_driver(FixtureType.RGB), RGBDriver)
    assert isinstance(create_driver(FixtureType.RGBW), RGBWDriver)
    assert isinstance(create_driver(FixtureType.MOVING_HEAD), MovingHeadDriver)
    assert isinstance(create_driver(FixtureType.CUSTOM), CustomDriver)
    assert create_driver(FixtureType.RGB) is create_driver(FixtureType.RGB)


def test_dimmable_intensity_lands_on_start_channel() -> None:
    buffer = _buffer()
    fixture = _fixture(FixtureType.DIMMABLE)

    create_driver(FixtureType.DIMMABLE).apply_intensity(fixture, 0.5, buffer)

    assert buffer.get_channel(0, 10) == 128
    assert buffer.get_channel(0, 11) == 0


def test_dimmable_has_no_color() -> None:
    buffer = _buffer()
    fixture = _fixture(FixtureType.DIMMABLE)

    assert create_driver(FixtureType.DIMMABLE).apply_color(fixture, 1.0, 0.0, 0.0, -1.0, buffer) is False
    assert buffer.get_universe(0) == bytes(512)


def test_rgb_color_and_intensity_are_independent_writes() -> None:
    buffer = _buffer()
    fixture = _fixture(FixtureType.RGB)
    driver = create_driver(FixtureType.RGB)

    driver.apply_color(fixture, 1.0, 0.5, 0.0, -1.0, buffer)
    assert [buffer.get_channel(0, ch) for ch in (10, 11, 12)] == [255, 128, 0]

    driver.apply_intensity(fixture, 0.2, buffer)
    assert [buffer.get_channel(0, ch) for ch in (10, 11, 12)] == [51, 128, 0]


def test_rgbw_writes_white_only_when_given() -> None:
    buffer = _buffer()
    fixture = _fixture(FixtureType.RGBW)
    driver = create_driver(FixtureType.RGBW)

    driver.apply_color(fixture, 0.0, 0.0, 0.0, -1.0, buffer)
    assert buffer.get_channel(0, 13) == 0

    driver.apply_color(fixture, 0.0, 0.0, 0.0, 1.0, buffer)
    assert buffer.get_channel(0, 13) == 255


def test_moving_head_intensity_uses_dimmer_channel() -> None:
    buffer = _buffer()
    fixture = _fixture(FixtureType.MOVING_HEAD, dmx_channel=1)

    create_driver(FixtureType.MOVING_HEAD).apply_intensity(fixture, 1.0, buffer)

    assert buffer.get_channel(0, 1 + MH_DIMMER) == 255
    assert buffer.get_channel(0, 1) == 0


def test_short_moving_head_falls_back_to_offset_zero() -> None:
    buffer = _buffer()
    fixture = _fixture(FixtureType.MOVING_HEAD, dmx_channel=1, channel_count=4)

    create_driver(FixtureType.MOVING_HEAD).apply_intensity(fixture, 1.0, buffer)

    assert buffer.get_channel(0, 1) == 255
    assert buffer.get_channel(0, 1 + MH_DIMMER) == 0


def test_moving_head_color_picks_nearest_wheel_slot() -> None:
    buffer = _buffer()
    fixture = _fixture(FixtureType.MOVING_HEAD, dmx_channel=1)

    create_driver(FixtureType.MOVING_HEAD).apply_color(fixture, 0.0, 0.1, 0.9, -1.0, buffer)

    assert nearest_wheel_slot(0.0, 0.1, 0.9) == 6
    assert buffer.get_channel(0, 1 + MH_COLOR_WHEEL) == 6 * COLOR_WHEEL_STEP


def test_moving_head_position_is_sixteen_bit() -> None:
    buffer = _buffer()
    fixture = _fixture(FixtureType.MOVING_HEAD, dmx_channel=1)
    driver = create_driver(FixtureType.MOVING_HEAD)

    driver.apply_position(fixture, 0.5, 1.0, buffer)

    assert buffer.get_channel(0, 1) == 0x80
    assert buffer.get_channel(0, 2) == 0x00
    assert buffer.get_channel(0, 3) == 0xFF
    assert buffer.get_channel(0, 4) == 0xFF


def test_custom_mapping_routes_rgbw_by_one_based_offsets() -> None:
    buffer = _buffer()
    fixture = _fixture(
        FixtureType.CUSTOM,
        channel_count=5,
        custom_channel_mapping=[5, 4, 3, 2],
    )

    assert create_driver(FixtureType.CUSTOM).apply_color(fixture, 1.0, 0.0, 0.5, 0.2, buffer)

    assert buffer.get_channel(0, 14) == 255  # red -> offset 5
    assert buffer.get_channel(0, 13) == 0  # green -> offset 4
    assert buffer.get_channel(0, 12) == 128  # blue -> offset 3
    assert buffer.get_channel(0, 11) == 51  # white -> offset 2


def test_custom_without_rgb_mapping_rejects_color() -> None:
    buffer = _buffer()
    fixture = _fixture(FixtureType.CUSTOM, channel_count=2, custom_channel_mapping=[1])

    assert create_driver(FixtureType.CUSTOM).apply_color(fixture, 1.0, 1.0, 1.0, -1.0, buffer) is False
