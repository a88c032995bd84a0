from typing import List, Tuple

import pytest

from prolighting.fixtures.fade import FadeEngine


def _collect() -> Tuple[List[Tuple[int, float]], object]:
    calls: List[Tuple[int, float]] = []

    def on_intensity(virtual_id: int, value: float) -> None:
        calls.append((virtual_id, value))

    return calls, on_intensity


def test_linear_fade_reaches_target_and_finishes() -> None:
    engine = FadeEngine()
    calls, on_intensity = _collect()

    assert engine.start_fade(1, current=0.0, target=1.0, duration_s=1.0)

    for _ in range(4):
        engine.tick(0.25, on_intensity)

    values = [value for _, value in calls]
    assert values == pytest.approx([0.25, 0.5, 0.75, 1.0])
    assert not engine.is_active(1)
    assert engine.active_ids() == []


def test_callback_fires_every_tick_while_active() -> None:
    engine = FadeEngine()
    calls, on_intensity = _collect()
    engine.start_fade(1, current=1.0, target=0.0, duration_s=10.0)

    for _ in range(5):
        engine.tick(0.1, on_intensity)

    assert len(calls) == 5
    assert calls[-1][1] == pytest.approx(0.95)


def test_overshoot_snaps_to_target() -> None:
    engine = FadeEngine()
    calls, on_intensity = _collect()
    engine.start_fade(1, current=0.0, target=0.5, duration_s=0.1)

    engine.tick(1.0, on_intensity)

    assert calls == [(1, 0.5)]


def test_retarget_starts_from_interpolated_value() -> None:
    engine = FadeEngine()
    calls, on_intensity = _collect()
    engine.start_fade(1, current=0.0, target=1.0, duration_s=1.0)
    engine.tick(0.5, on_intensity)

    # Caller's "current" is ignored while a fade is running
    engine.start_fade(1, current=0.9, target=0.0, duration_s=1.0)
    assert engine.current(1) == pytest.approx(0.5)

    engine.tick(0.5, on_intensity)
    assert calls[-1][1] == pytest.approx(0.25)


def test_zero_duration_is_not_queued() -> None:
    engine = FadeEngine()
    engine.start_fade(1, current=0.0, target=1.0, duration_s=1.0)

    assert engine.start_fade(1, current=0.0, target=1.0, duration_s=0.0) is False
    assert engine.current(1) is None


def test_targets_are_clamped() -> None:
    engine = FadeEngine()
    calls, on_intensity = _collect()
    engine.start_fade(1, current=0.0, target=3.0, duration_s=0.5)

    engine.tick(1.0, on_intensity)

    assert calls == [(1, 1.0)]


def test_new_fade_from_callback_survives_completion() -> None:
    engine = FadeEngine()

    def chain(virtual_id: int, value: float) -> None:
        if value == 1.0:
            engine.start_fade(virtual_id, value, 0.0, 1.0)

    engine.start_fade(1, current=0.0, target=1.0, duration_s=0.5)
    engine.tick(1.0, chain)

    assert engine.is_active(1)


def test_cancel_and_reset() -> None:
    engine = FadeEngine()
    engine.start_fade(1, 0.0, 1.0, 1.0)
    engine.start_fade(2, 0.0, 1.0, 1.0)

    engine.cancel(1)
    assert engine.active_ids() == [2]

    engine.reset()
    assert engine.active_ids() == []


def test_small_steps_converge_exactly_and_monotonically() -> None:
    engine = FadeEngine()
    calls, on_intensity = _collect()
    engine.start_fade(1, current=0.0, target=1.0, duration_s=2.0)

    for _ in range(19):
        engine.tick(0.1, on_intensity)
    values = [value for _, value in calls]
    assert all(0.0 < v < 1.0 for v in values)
    assert values == sorted(values)
    assert engine.is_active(1)

    engine.tick(0.1, on_intensity)
    assert calls[-1][1] == 1.0
    assert not engine.is_active(1)
