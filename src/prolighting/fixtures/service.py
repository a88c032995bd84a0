"""
Fixture Service: the API experience code drives lights through.

Wraps registration and validation, the driver family, fades and the
shared universe buffer behind virtual fixture IDs. Lookups that miss
return -1 / None / False rather than raising, because callers routinely
address fixtures that have since been unregistered.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Callable, List, Optional

import structlog

from prolighting.core.events import EventHook
from prolighting.core.exceptions import FixtureValidationError
from prolighting.core.models import Fixture
from prolighting.dmx.universe import UniverseBuffer, clamp01, to_dmx_byte
from prolighting.fixtures.drivers import MovingHeadDriver, create_driver
from prolighting.fixtures.fade import FadeEngine
from prolighting.fixtures.registry import FixtureRegistry
from prolighting.fixtures.validator import required_channels, validate_register

if TYPE_CHECKING:
    from prolighting.rdm.service import RDMService

logger = structlog.get_logger()

NOT_FOUND = -1


class FixtureService:
    """
    Registry + validator + drivers + fade engine over one UniverseBuffer.

    Every public method runs under ``lock``; pass the controller's lock so
    API calls and the tick serialize on a single mutex.
    """

    def __init__(
        self,
        buffer: UniverseBuffer,
        lock: Optional[threading.RLock] = None,
        max_universe: int = 15,
        rdm_only_mode: bool = False,
    ):
        self.buffer = buffer
        self.registry = FixtureRegistry()
        self.fades = FadeEngine()
        self.max_universe = max_universe
        self.rdm_only_mode = rdm_only_mode
        self._lock = lock or threading.RLock()
        self._next_virtual_id = 1
        self._rdm_service: Optional[RDMService] = None

        self.on_intensity_changed = EventHook("intensity_changed")
        self.on_color_changed = EventHook("color_changed")

    def set_rdm_context(self, rdm_service: RDMService) -> None:
        self._rdm_service = rdm_service

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def validate_and_register(self, fixture: Fixture) -> bool:
        try:
            self.register(fixture)
        except FixtureValidationError as e:
            logger.warning(
                "Fixture registration rejected",
                fixture_id=e.fixture_id,
                reason=e.reason,
                conflicting_id=e.conflicting_id,
            )
            return False
        return True

    def register(self, fixture: Fixture) -> Fixture:
        """
        Validate and register a copy of ``fixture``.

        Returns:
            The registered copy, with its virtual ID and channel count filled in.

        Raises:
            FixtureValidationError: the fixture cannot be placed.
        """
        with self._lock:
            candidate = fixture.model_copy(deep=True)
            if candidate.virtual_id is None:
                candidate.virtual_id = self.next_virtual_id()

            if self.rdm_only_mode and not candidate.rdm_capable:
                raise FixtureValidationError(
                    candidate.virtual_id, "RDM-only mode rejects non-RDM fixtures"
                )
            channels = validate_register(
                candidate, self.registry.fixtures(), max_universe=self.max_universe
            )

            candidate.channel_count = channels
            if not self.registry.register(candidate):
                raise FixtureValidationError(candidate.virtual_id, "virtual ID already registered")
            self.buffer.ensure_universe(candidate.universe)
            self._next_virtual_id = max(self._next_virtual_id, candidate.virtual_id + 1)
            logger.info(
                "Fixture registered",
                fixture_id=candidate.virtual_id,
                fixture_type=candidate.fixture_type.value,
                universe=candidate.universe,
                dmx_channel=candidate.dmx_channel,
                channel_count=channels,
            )
            return candidate.model_copy(deep=True)

    def unregister(self, virtual_id: int) -> bool:
        with self._lock:
            self.fades.cancel(virtual_id)
            rdm_uid = self.registry.rdm_uid_for(virtual_id)
            removed = self.registry.unregister(virtual_id)
            if removed is None:
                return False
            # The device stays cached but no longer reports for this ID
            if rdm_uid is not None and self._rdm_service is not None:
                self._rdm_service.unbind(rdm_uid)
            logger.info("Fixture unregistered", fixture_id=virtual_id)
            return True

    def next_virtual_id(self) -> int:
        with self._lock:
            while self._next_virtual_id in self.registry:
                self._next_virtual_id += 1
            virtual_id = self._next_virtual_id
            self._next_virtual_id += 1
            return virtual_id

    def move_fixture(self, virtual_id: int, dmx_channel: int) -> bool:
        """Re-address a registered fixture in place if the new span is free."""
        with self._lock:
            fixture = self.registry.find_mutable(virtual_id)
            if fixture is None:
                return False
            moved = fixture.model_copy(update={"dmx_channel": dmx_channel})
            try:
                validate_register(
                    moved,
                    self.registry.fixtures(),
                    max_universe=self.max_universe,
                    exclude_id=virtual_id,
                )
            except FixtureValidationError as e:
                logger.warning("Fixture move rejected", fixture_id=virtual_id, reason=e.reason)
                return False
            fixture.dmx_channel = dmx_channel
            return True

    def bind_rdm(self, virtual_id: int, uid: str) -> None:
        with self._lock:
            self.registry.map_rdm(virtual_id, uid)

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    def set_intensity_by_id(self, virtual_id: int, intensity: float) -> int:
        with self._lock:
            fixture = self.registry.find_mutable(virtual_id)
            if fixture is None:
                return NOT_FOUND
            value = clamp01(intensity)
            create_driver(fixture.fixture_type).apply_intensity(fixture, value, self.buffer)
            self.on_intensity_changed.emit(virtual_id, value)
            return fixture.universe

    def set_color_rgbw_by_id(
        self,
        virtual_id: int,
        red: float,
        green: float,
        blue: float,
        white: float = -1.0,
    ) -> int:
        with self._lock:
            fixture = self.registry.find_mutable(virtual_id)
            if fixture is None:
                return NOT_FOUND
            r, g, b = clamp01(red), clamp01(green), clamp01(blue)
            w = clamp01(white) if white >= 0 else -1.0
            if not create_driver(fixture.fixture_type).apply_color(fixture, r, g, b, w, self.buffer):
                return NOT_FOUND
            self.on_color_changed.emit(virtual_id, r, g, b)
            return fixture.universe

    def set_channel_by_id(self, virtual_id: int, channel_offset: int, value: float) -> int:
        """
        Write one raw channel. ``value`` in 0..1 is a level, anything else is
        taken as a DMX byte and clamped to 0..255.
        """
        with self._lock:
            fixture = self.registry.find_mutable(virtual_id)
            if fixture is None:
                return NOT_FOUND
            if not 0 <= channel_offset < required_channels(fixture):
                logger.warning(
                    "Invalid channel offset",
                    fixture_id=virtual_id,
                    offset=channel_offset,
                )
                return NOT_FOUND
            if value != value:
                dmx_value = 0
            elif 0.0 <= value <= 1.0:
                dmx_value = to_dmx_byte(value)
            else:
                dmx_value = int(max(0.0, min(255.0, value)))
            self.buffer.set_channel(fixture.universe, fixture.dmx_channel + channel_offset, dmx_value)
            return fixture.universe

    def set_pan_tilt_by_id(self, virtual_id: int, pan: float, tilt: float) -> int:
        with self._lock:
            fixture = self.registry.find_mutable(virtual_id)
            if fixture is None:
                return NOT_FOUND
            driver = create_driver(fixture.fixture_type)
            if not isinstance(driver, MovingHeadDriver):
                logger.warning("Fixture has no pan/tilt", fixture_id=virtual_id)
                return NOT_FOUND
            driver.apply_position(fixture, pan, tilt, self.buffer)
            return fixture.universe

    def get_intensity(self, virtual_id: int) -> Optional[float]:
        """Current level as read back from the buffer (or the running fade)."""
        with self._lock:
            fixture = self.registry.find_mutable(virtual_id)
            if fixture is None:
                return None
            fading = self.fades.current(virtual_id)
            if fading is not None:
                return fading
            offset = create_driver(fixture.fixture_type).intensity_offset_for(fixture)
            return self.buffer.get_channel(fixture.universe, fixture.dmx_channel + offset) / 255.0

    def all_off(self) -> None:
        with self._lock:
            for virtual_id in self.registry.ids():
                self.fades.cancel(virtual_id)
                self.set_intensity_by_id(virtual_id, 0.0)

    # -------------------------------------------------------------------------
    # Fades
    # -------------------------------------------------------------------------

    def start_fade_by_id(self, virtual_id: int, target: float, duration_s: float) -> bool:
        with self._lock:
            current = self.get_intensity(virtual_id)
            if current is None:
                return False
            if not self.fades.start_fade(virtual_id, current, target, duration_s):
                self.set_intensity_by_id(virtual_id, target)
            return True

    def tick_fades(
        self,
        delta_time: float,
        on_intensity: Optional[Callable[[int, float], None]] = None,
    ) -> List[int]:
        """Step fades and write each new level; returns touched universes."""
        touched: List[int] = []

        def apply(virtual_id: int, value: float) -> None:
            universe = self.set_intensity_by_id(virtual_id, value)
            if universe >= 0 and universe not in touched:
                touched.append(universe)
            if on_intensity is not None:
                on_intensity(virtual_id, value)

        with self._lock:
            self.fades.tick(delta_time, apply)
        return touched

    # -------------------------------------------------------------------------
    # RDM glue
    # -------------------------------------------------------------------------

    def update_fixture_online_status(self, rdm_uid: str, is_online: bool) -> bool:
        with self._lock:
            if self._rdm_service is None:
                return False
            virtual_id = self.registry.virtual_id_for(rdm_uid)
            if virtual_id is None:
                return False
            if is_online:
                self._rdm_service.mark_online(rdm_uid)
            else:
                self._rdm_service.mark_offline(rdm_uid)
            return True

    def is_fixture_rdm_capable(self, virtual_id: int) -> bool:
        fixture = self.find_fixture(virtual_id)
        return fixture.rdm_capable if fixture is not None else False

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def find_fixture(self, virtual_id: int) -> Optional[Fixture]:
        with self._lock:
            return self.registry.find(virtual_id)

    def find_fixture_mutable(self, virtual_id: int) -> Optional[Fixture]:
        with self._lock:
            return self.registry.find_mutable(virtual_id)

    def fixture_ids(self) -> List[int]:
        with self._lock:
            return self.registry.ids()

    def reset(self) -> None:
        with self._lock:
            self.fades.reset()
            self.registry.reset()
            self._next_virtual_id = 1
