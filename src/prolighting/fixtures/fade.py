"""Time-based linear intensity fades per virtual fixture."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from prolighting.dmx.universe import clamp01


@dataclass
class FadeState:
    current_intensity: float
    target_intensity: float
    rate: float  # intensity units per second
    active: bool = True


class FadeEngine:
    """
    Linear ramps driven by elapsed time.

    A new fade on a fixture that is already fading replaces the old one and
    starts from the interpolated value, so retargeting never jumps.
    """

    def __init__(self) -> None:
        self._states: Dict[int, FadeState] = {}

    def start_fade(self, virtual_id: int, current: float, target: float, duration_s: float) -> bool:
        """
        Begin a fade. Returns False when ``duration_s <= 0``: nothing is
        queued and the caller applies ``target`` directly.
        """
        existing = self._states.get(virtual_id)
        start = existing.current_intensity if existing is not None else clamp01(current)
        target = clamp01(target)

        if duration_s <= 0:
            self._states.pop(virtual_id, None)
            return False

        rate = abs(target - start) / duration_s
        self._states[virtual_id] = FadeState(
            current_intensity=start,
            target_intensity=target,
            rate=rate,
            active=True,
        )
        return True

    def cancel(self, virtual_id: int) -> None:
        """Drop a fade, leaving the fixture at its last stepped value."""
        self._states.pop(virtual_id, None)

    def tick(self, delta_time: float, on_intensity: Callable[[int, float], None]) -> None:
        finished: List[int] = []
        for virtual_id, state in list(self._states.items()):
            if not state.active:
                continue
            step = state.rate * delta_time
            remaining = state.target_intensity - state.current_intensity
            if abs(remaining) <= step:
                state.current_intensity = state.target_intensity
                state.active = False
                finished.append(virtual_id)
            elif remaining > 0:
                state.current_intensity += step
            else:
                state.current_intensity -= step
            on_intensity(virtual_id, state.current_intensity)

        for virtual_id in finished:
            # on_intensity may have started a new fade for this fixture
            state = self._states.get(virtual_id)
            if state is not None and not state.active:
                del self._states[virtual_id]

    def is_active(self, virtual_id: int) -> bool:
        state = self._states.get(virtual_id)
        return state is not None and state.active

    def current(self, virtual_id: int) -> Optional[float]:
        state = self._states.get(virtual_id)
        return state.current_intensity if state is not None else None

    def active_ids(self) -> List[int]:
        return [vid for vid, s in self._states.items() if s.active]

    def reset(self) -> None:
        self._states.clear()
