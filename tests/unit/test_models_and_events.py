from typing import List

import pytest

from prolighting.core.events import EventHook
from prolighting.core.models import FixtureType, infer_fixture_type


@pytest.mark.parametrize(
    ("model_name", "channel_count", "expected"),
    [
        ("Intimidator Spot 360", 14, FixtureType.MOVING_HEAD),
        ("Beam 7R", 16, FixtureType.MOVING_HEAD),
        ("SlimPAR RGBW", 4, FixtureType.RGBW),
        ("LED Par 64", 3, FixtureType.RGB),
        ("Fresnel Dimmer", 1, FixtureType.DIMMABLE),
        ("Unknown", 1, FixtureType.DIMMABLE),
        ("Unknown", 3, FixtureType.RGB),
        ("Unknown", 4, FixtureType.RGBW),
        ("Unknown", 8, FixtureType.MOVING_HEAD),
        ("Unknown", 6, FixtureType.CUSTOM),
    ],
)
def test_infer_fixture_type(model_name: str, channel_count: int, expected: FixtureType) -> None:
    assert infer_fixture_type(model_name, channel_count) == expected


def test_keyword_needs_a_matching_footprint() -> None:
    # A "spot" with too few channels for pan/tilt falls back to the footprint
    assert infer_fixture_type("LED Spot", 3) == FixtureType.RGB


def test_event_hook_delivers_in_subscription_order() -> None:
    hook = EventHook("test")
    seen: List[str] = []
    first = lambda value: seen.append(f"a{value}")  # noqa: E731
    hook.subscribe(first)
    hook.subscribe(lambda value: seen.append(f"b{value}"))
    hook.subscribe(first)

    hook.emit(1)
    hook.unsubscribe(first)
    hook.emit(2)

    assert seen == ["a1", "b1", "b2"]
    assert len(hook) == 1


def test_failing_handler_does_not_stop_others() -> None:
    hook = EventHook("test")
    seen: List[int] = []

    def broken(_value: int) -> None:
        raise RuntimeError("handler bug")

    hook.subscribe(broken)
    hook.subscribe(seen.append)

    hook.emit(5)

    assert seen == [5]
