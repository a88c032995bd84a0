"""
RDM Service: discovery cache and online/offline/removed lifecycle.

Per discovered fixture:

    Unknown --first response--> Online --silent > 3x poll--> Offline
    Offline --any response--> Online
    Offline --silent > 10x poll--> Removed (entry deleted)

Liveness events are keyed by the bound virtual fixture ID; fixtures that
have not been bound to a virtual fixture change state silently.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import structlog

from prolighting.core.events import EventHook
from prolighting.core.models import DiscoveredFixture

logger = structlog.get_logger()

MIN_POLL_INTERVAL_S = 0.1
OFFLINE_POLL_MULTIPLIER = 3.0
REMOVAL_POLL_MULTIPLIER = 10.0


@dataclass
class PruneResult:
    went_offline: List[int] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)


class RDMService:
    """Discovery cache keyed by RDM UID, driven by a poll clock."""

    def __init__(
        self,
        poll_interval: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._clock = clock
        self._discovered: Dict[str, DiscoveredFixture] = {}
        self._accumulated = 0.0
        self.poll_interval = max(MIN_POLL_INTERVAL_S, poll_interval)

        self.on_discovered = EventHook("rdm_discovered")
        self.on_went_offline = EventHook("rdm_went_offline")
        self.on_came_online = EventHook("rdm_came_online")

    def initialize(self, poll_interval: float) -> None:
        self.poll_interval = max(MIN_POLL_INTERVAL_S, poll_interval)
        self._accumulated = 0.0

    @property
    def offline_threshold(self) -> float:
        return self.poll_interval * OFFLINE_POLL_MULTIPLIER

    @property
    def removal_threshold(self) -> float:
        return self.poll_interval * REMOVAL_POLL_MULTIPLIER

    def tick(self, delta_time: float) -> bool:
        """Advance the poll clock; True when a poll pass is due."""
        self._accumulated += delta_time
        if self._accumulated >= self.poll_interval:
            self._accumulated = 0.0
            return True
        return False

    def add_or_update(self, fixture: DiscoveredFixture) -> bool:
        """
        Record a discovery or poll response. Returns True for a new UID.

        A response for a cached fixture keeps its virtual binding and
        brings it back online if it had gone offline.
        """
        now = self._clock()
        existing = self._discovered.get(fixture.rdm_uid)

        if existing is None:
            entry = fixture.model_copy(deep=True)
            entry.is_online = True
            entry.last_seen = now
            self._discovered[entry.rdm_uid] = entry
            logger.info(
                "RDM fixture discovered",
                uid=entry.rdm_uid,
                model=entry.model_name,
                dmx_address=entry.dmx_address,
            )
            self.on_discovered.emit(entry.model_copy(deep=True))
            return True

        existing.manufacturer_id = fixture.manufacturer_id
        existing.manufacturer_name = fixture.manufacturer_name or existing.manufacturer_name
        existing.model_id = fixture.model_id
        existing.model_name = fixture.model_name or existing.model_name
        existing.dmx_address = fixture.dmx_address
        existing.universe = fixture.universe
        existing.channel_count = fixture.channel_count
        if fixture.virtual_fixture_id >= 0:
            existing.virtual_fixture_id = fixture.virtual_fixture_id
        self.mark_online(fixture.rdm_uid)
        return False

    def bind(self, uid: str, virtual_id: int) -> bool:
        entry = self._discovered.get(uid)
        if entry is None:
            return False
        entry.virtual_fixture_id = virtual_id
        return True

    def unbind(self, uid: str) -> bool:
        """Detach a cached device from its virtual fixture; it stays cached."""
        return self.bind(uid, -1)

    def mark_online(self, uid: str) -> None:
        entry = self._discovered.get(uid)
        if entry is None:
            return
        was_offline = not entry.is_online
        entry.is_online = True
        entry.last_seen = self._clock()
        if was_offline:
            logger.info("RDM fixture back online", uid=uid, fixture_id=entry.virtual_fixture_id)
            if entry.virtual_fixture_id >= 0:
                self.on_came_online.emit(entry.virtual_fixture_id)

    def mark_offline(self, uid: str) -> None:
        entry = self._discovered.get(uid)
        if entry is None or not entry.is_online:
            return
        entry.is_online = False
        logger.info("RDM fixture offline", uid=uid, fixture_id=entry.virtual_fixture_id)
        if entry.virtual_fixture_id >= 0:
            self.on_went_offline.emit(entry.virtual_fixture_id)

    def prune(self, now: Optional[float] = None) -> PruneResult:
        """
        Apply the offline and removal thresholds to every cached fixture.

        Independent of the poll cadence, so a device that stops answering is
        caught even while no poll completes.
        """
        if now is None:
            now = self._clock()
        result = PruneResult()

        for uid, entry in list(self._discovered.items()):
            silent_for = now - entry.last_seen
            if silent_for > self.offline_threshold and entry.is_online:
                self.mark_offline(uid)
                if entry.virtual_fixture_id >= 0:
                    result.went_offline.append(entry.virtual_fixture_id)
            if silent_for > self.removal_threshold:
                result.removed.append(uid)

        for uid in result.removed:
            del self._discovered[uid]
            logger.info("RDM fixture removed", uid=uid)
        return result

    def try_get(self, uid: str) -> Optional[DiscoveredFixture]:
        entry = self._discovered.get(uid)
        return entry.model_copy(deep=True) if entry is not None else None

    def find_mutable(self, uid: str) -> Optional[DiscoveredFixture]:
        return self._discovered.get(uid)

    def get_all(self) -> List[DiscoveredFixture]:
        return [entry.model_copy(deep=True) for entry in self._discovered.values()]

    def uids(self) -> List[str]:
        return list(self._discovered)

    def reset(self) -> None:
        self._discovered.clear()
        self._accumulated = 0.0

    def __len__(self) -> int:
        return len(self._discovered)
