"""
ProLighting Controller: composition root and tick loop.

Owns the universe buffer, the active transport, the fixture service and
the RDM service, and drives them in a fixed order every tick:

1. step fades (levels land in the buffer through the fixture service)
2. flush every live universe through the transport
3. transport housekeeping (Art-Net node polling and aging)
4. RDM: collect poll responses, start a poll pass when due, prune

so a fade step is on the wire in the same tick it was computed.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict, List, Optional

import structlog

from prolighting.core.config import Settings
from prolighting.core.events import EventHook
from prolighting.core.exceptions import DMXError, RDMError, RDMTimeoutError
from prolighting.core.models import (
    ArtNetNode,
    DiscoveredFixture,
    DMXMode,
    Fixture,
    infer_fixture_type,
)
from prolighting.dmx.artnet import ArtNetNodeDiscovery
from prolighting.dmx.base import DMXTransport
from prolighting.dmx.factory import TransportSetup, create_transport
from prolighting.dmx.universe import UniverseBuffer
from prolighting.fixtures.service import NOT_FOUND, FixtureService
from prolighting.rdm.service import RDMService
from prolighting.rdm.transport import NullRDMTransport, RDMTransport

logger = structlog.get_logger()


class ProLightingController:
    """
    Hardware-agnostic DMX lighting controller.

    Subscribe to events on the services:
    - ``fixtures.on_intensity_changed`` / ``fixtures.on_color_changed``
    - ``rdm.on_discovered`` / ``rdm.on_went_offline`` / ``rdm.on_came_online``
    - ``on_artnet_node_discovered``

    All public methods and the tick share one re-entrant lock, so API calls
    from other threads are serialized with the tick loop.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        rdm_transport: Optional[RDMTransport] = None,
        transport_factory: Callable[[Settings], TransportSetup] = create_transport,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or Settings()
        self._transport_factory = transport_factory
        self._clock = clock
        self._lock = threading.RLock()

        max_universe = (
            self.settings.artnet.max_universe
            if self.settings.dmx_mode == DMXMode.ARTNET
            else 15
        )
        self.buffer = UniverseBuffer()
        self.fixtures = FixtureService(
            self.buffer,
            lock=self._lock,
            max_universe=max_universe,
            rdm_only_mode=self.settings.rdm.rdm_only_mode,
        )
        self.rdm = RDMService(self.settings.rdm.poll_interval_s, clock=clock)
        self.fixtures.set_rdm_context(self.rdm)
        self.rdm_transport = rdm_transport or NullRDMTransport()

        self.on_artnet_node_discovered = EventHook("artnet_node_discovered")

        self._transport: Optional[DMXTransport] = None
        self._discovery: Optional[ArtNetNodeDiscovery] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pending_polls: Dict[str, Future] = {}
        self._initialized = False

        # Tick loop
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._last_tick: Optional[float] = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def initialize(self) -> bool:
        """
        Build and open the configured transport and register configured fixtures.

        Returns False if already initialized.

        Raises:
            TransportConfigError: unsupported transport mode.
            DMXConnectionError: the transport could not be opened.
        """
        with self._lock:
            if self._initialized:
                logger.warning("Controller already initialized")
                return False

            setup = self._transport_factory(self.settings)
            try:
                setup.transport.initialize()
            except DMXError:
                setup.transport.shutdown()
                raise

            self._transport = setup.transport
            self._discovery = setup.discovery
            if self._discovery is not None:
                self._discovery.on_node_discovered.subscribe(self.on_artnet_node_discovered.emit)

            rdm_cfg = self.settings.rdm
            if rdm_cfg.enabled:
                self.rdm.initialize(rdm_cfg.poll_interval_s)
                if rdm_cfg.workers > 0:
                    self._executor = ThreadPoolExecutor(
                        max_workers=rdm_cfg.workers,
                        thread_name_prefix="RDM-Poll",
                    )

            for fixture in self.settings.fixtures:
                self.fixtures.validate_and_register(fixture)

            self._initialized = True
            logger.info(
                "Controller initialized",
                mode=self.settings.dmx_mode.value,
                rdm=rdm_cfg.enabled,
                fixtures=len(self.fixtures.fixture_ids()),
            )
            return True

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def is_connected(self) -> bool:
        transport = self._transport
        return self._initialized and transport is not None and transport.is_connected

    @property
    def transport(self) -> Optional[DMXTransport]:
        return self._transport

    def shutdown(self) -> None:
        """Stop the loop, black out, close the transport and clear all state."""
        self.stop()
        with self._lock:
            if self.is_connected:
                self.buffer.blackout()
                self.flush_all()

            if self._discovery is not None:
                self._discovery.on_node_discovered.unsubscribe(self.on_artnet_node_discovered.emit)
            if self._transport is not None:
                self._transport.shutdown()
            self._transport = None
            self._discovery = None

            if self._executor is not None:
                self._executor.shutdown(wait=False, cancel_futures=True)
                self._executor = None
            self._pending_polls.clear()

            self.fixtures.reset()
            self.buffer.reset()
            self.rdm.reset()
            self._initialized = False
            logger.info("Controller shut down")

    # -------------------------------------------------------------------------
    # Tick
    # -------------------------------------------------------------------------

    def tick(self, delta_time: float) -> None:
        with self._lock:
            if not self.is_connected:
                return

            self.fixtures.tick_fades(delta_time)
            self.flush_all()
            self._transport.tick(delta_time)

            if self.settings.rdm.enabled:
                self._collect_rdm_polls()
                if self.rdm.tick(delta_time):
                    self._poll_rdm_fixtures()
                self.rdm.prune()

    def flush_universe(self, universe: int) -> None:
        data = self.buffer.get_universe(universe)
        if data is None or self._transport is None or not self._transport.is_connected:
            return
        self._transport.send_dmx(universe, data)

    def flush_all(self) -> None:
        for universe in self.buffer.get_universes():
            self.flush_universe(universe)

    def start(self) -> None:
        """Run the tick loop in a background thread."""
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(
            target=self._loop,
            name="DMX-Tick",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        self._running = False
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=1.0)
        self._thread = None

    def run_loop(self) -> None:
        """Run the tick loop in the calling thread until ``stop()``."""
        self._running = True
        try:
            self._loop()
        finally:
            self._running = False

    def _loop(self) -> None:
        frame_time = 1.0 / self.settings.refresh_rate_hz
        self._last_tick = time.monotonic()

        while self._running:
            start = time.monotonic()
            delta_time = start - self._last_tick
            self._last_tick = start

            self.tick(delta_time)

            # Maintain frame rate
            elapsed = time.monotonic() - start
            sleep_time = frame_time - elapsed
            if sleep_time > 0:
                time.sleep(sleep_time)
            elif self.settings.debug:
                logger.warning(
                    "Frame overrun",
                    elapsed_ms=elapsed * 1000,
                    target_ms=frame_time * 1000,
                )

    # -------------------------------------------------------------------------
    # Art-Net discovery
    # -------------------------------------------------------------------------

    def discover_artnet_nodes(self) -> bool:
        with self._lock:
            if self._discovery is None:
                logger.warning("Art-Net discovery unavailable")
                return False
            self._discovery.send_poll()
            return True

    def get_discovered_artnet_nodes(self) -> List[ArtNetNode]:
        with self._lock:
            return self._discovery.get_nodes() if self._discovery is not None else []

    # -------------------------------------------------------------------------
    # RDM
    # -------------------------------------------------------------------------

    def is_rdm_supported(self) -> bool:
        if not self.settings.rdm.enabled or self._transport is None:
            return False
        return self._transport.supports_rdm()

    def is_fixture_rdm_capable(self, virtual_id: int) -> bool:
        return self.fixtures.is_fixture_rdm_capable(virtual_id)

    def discover_rdm_fixtures(self) -> int:
        """Run RDM discovery on every live universe; returns new fixture count."""
        if not self.settings.rdm.enabled:
            logger.warning("RDM is not enabled in configuration")
            return 0
        if not self.is_rdm_supported():
            logger.warning("RDM not supported by current DMX interface")
            return 0

        with self._lock:
            universes = self.buffer.get_universes() or [self._default_universe()]

        logger.info("Starting RDM discovery", universes=universes)
        timeout = self.settings.rdm.discovery_timeout_s
        found: List[DiscoveredFixture] = []
        # I/O runs outside the lock so the tick keeps going
        for universe in universes:
            try:
                for fixture in self.rdm_transport.discover(universe, timeout):
                    fixture.universe = universe
                    found.append(fixture)
            except RDMError as e:
                logger.warning("RDM discovery failed", universe=universe, error=e.message)

        new_count = 0
        with self._lock:
            for fixture in found:
                if "fixture_type" not in fixture.model_fields_set:
                    fixture.fixture_type = infer_fixture_type(
                        fixture.model_name, fixture.channel_count
                    )
                virtual_id = self.fixtures.registry.virtual_id_for(fixture.rdm_uid)
                if virtual_id is not None:
                    fixture.virtual_fixture_id = virtual_id
                if self.rdm.add_or_update(fixture):
                    new_count += 1

        logger.info("RDM discovery complete", new=new_count, total=len(self.rdm))
        return new_count

    def get_discovered_rdm_fixtures(self) -> List[DiscoveredFixture]:
        with self._lock:
            return self.rdm.get_all()

    def auto_register_discovered_fixture(self, rdm_uid: str) -> int:
        """Promote a discovered fixture to a virtual fixture; returns its ID or -1."""
        with self._lock:
            discovered = self.rdm.try_get(rdm_uid)
            if discovered is None:
                logger.warning("RDM fixture not found in discovered fixtures", uid=rdm_uid)
                return NOT_FOUND

            existing = self.fixtures.registry.virtual_id_for(rdm_uid)
            if existing is not None and existing in self.fixtures.registry:
                logger.info("RDM fixture already registered", uid=rdm_uid, fixture_id=existing)
                return existing

            fixture = Fixture(
                virtual_id=self.fixtures.next_virtual_id(),
                fixture_type=discovered.fixture_type,
                universe=discovered.universe,
                dmx_channel=discovered.dmx_address,
                channel_count=discovered.channel_count,
                rdm_uid=rdm_uid,
                rdm_capable=True,
            )
            if not self.fixtures.validate_and_register(fixture):
                return NOT_FOUND

            self.rdm.bind(rdm_uid, fixture.virtual_id)
            logger.info("Auto-registered RDM fixture", uid=rdm_uid, fixture_id=fixture.virtual_id)
            return fixture.virtual_id

    def identify_fixture(self, virtual_id: int, state: bool) -> bool:
        with self._lock:
            uid = self.fixtures.registry.rdm_uid_for(virtual_id)
            fixture = self.fixtures.find_fixture(virtual_id)
        if uid is None or fixture is None:
            return False
        try:
            return self.rdm_transport.identify(self._rdm_universe(fixture.universe), uid, state)
        except RDMError as e:
            logger.warning("RDM identify failed", uid=uid, error=e.message)
            return False

    def _default_universe(self) -> int:
        if self.settings.dmx_mode == DMXMode.USB_DMX:
            return self.settings.usb.universe
        return 0

    def _rdm_universe(self, universe: int) -> int:
        # A USB dongle has one physical line whatever the virtual universe
        if self.settings.dmx_mode == DMXMode.USB_DMX:
            return self.settings.usb.universe
        return universe

    def _poll_rdm_fixtures(self) -> None:
        for entry in self.rdm.get_all():
            uid = entry.rdm_uid
            if uid in self._pending_polls:
                continue
            universe = self._rdm_universe(entry.universe)
            if self._executor is not None:
                self._pending_polls[uid] = self._executor.submit(
                    self.rdm_transport.get_device_info, universe, uid
                )
                continue
            try:
                response = self.rdm_transport.get_device_info(universe, uid)
            except RDMTimeoutError:
                logger.debug("RDM poll timed out", uid=uid)
                continue
            except RDMError as e:
                logger.warning("RDM poll failed", uid=uid, error=e.message)
                continue
            self._apply_poll_response(response)

    def _collect_rdm_polls(self) -> None:
        for uid, future in list(self._pending_polls.items()):
            if not future.done():
                continue
            del self._pending_polls[uid]
            try:
                response = future.result()
            except RDMTimeoutError:
                logger.debug("RDM poll timed out", uid=uid)
                continue
            except Exception as e:
                logger.warning("RDM poll failed", uid=uid, error=str(e))
                continue
            self._apply_poll_response(response)

    def _apply_poll_response(self, response: DiscoveredFixture) -> None:
        uid = response.rdm_uid
        if self.rdm.find_mutable(uid) is None:
            # Removed while the query was in flight; rediscovery brings it back
            return

        virtual_id = self.fixtures.registry.virtual_id_for(uid)
        if virtual_id is not None:
            response.virtual_fixture_id = virtual_id
            fixture = self.fixtures.find_fixture(virtual_id)
            if fixture is not None and response.dmx_address != fixture.dmx_channel:
                logger.info(
                    "RDM fixture moved",
                    uid=uid,
                    fixture_id=virtual_id,
                    old_address=fixture.dmx_channel,
                    new_address=response.dmx_address,
                )
                self.fixtures.move_fixture(virtual_id, response.dmx_address)
        self.rdm.add_or_update(response)
