"""
RDM liveness lifecycle.

Covers:
- discovery events and cache updates
- Online -> Offline after 3x the poll interval without a response
- Offline -> Online on the next response, with exactly one event
- removal after 10x the poll interval
- prune running independently of the poll cadence
"""

from __future__ import annotations

from typing import List

from prolighting.core.models import DiscoveredFixture, FixtureType
from prolighting.rdm.service import RDMService


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _discovered(uid: str = "0001:00000001", **kwargs) -> DiscoveredFixture:
    defaults = dict(
        manufacturer_name="Acme",
        model_name="Par 64 RGB",
        dmx_address=1,
        channel_count=3,
        fixture_type=FixtureType.RGB,
    )
    defaults.update(kwargs)
    return DiscoveredFixture(rdm_uid=uid, **defaults)


def _service(poll_interval: float = 0.5) -> tuple[RDMService, FakeClock]:
    clock = FakeClock()
    return RDMService(poll_interval=poll_interval, clock=clock), clock


def test_new_uid_is_cached_online_and_announced() -> None:
    service, clock = _service()
    seen: List[DiscoveredFixture] = []
    service.on_discovered.subscribe(seen.append)

    assert service.add_or_update(_discovered()) is True
    assert service.add_or_update(_discovered()) is False

    entry = service.try_get("0001:00000001")
    assert entry is not None
    assert entry.is_online
    assert entry.last_seen == clock.now
    assert len(seen) == 1


def test_update_keeps_binding_and_refreshes_address() -> None:
    service, _clock = _service()
    service.add_or_update(_discovered())
    service.bind("0001:00000001", 7)

    service.add_or_update(_discovered(dmx_address=20))

    entry = service.try_get("0001:00000001")
    assert entry.virtual_fixture_id == 7
    assert entry.dmx_address == 20


def test_try_get_returns_a_copy() -> None:
    service, _clock = _service()
    service.add_or_update(_discovered())

    service.try_get("0001:00000001").dmx_address = 99

    assert service.try_get("0001:00000001").dmx_address == 1
    assert service.try_get("missing") is None


def test_poll_clock_fires_once_per_interval() -> None:
    service, _clock = _service(poll_interval=0.5)

    due = [service.tick(0.25) for _ in range(4)]

    assert due.count(True) == 2


def test_poll_interval_has_a_floor() -> None:
    service = RDMService(poll_interval=0.01)
    assert service.poll_interval == 0.1


def test_goes_offline_after_three_polls_of_silence() -> None:
    service, clock = _service(poll_interval=0.5)
    offline: List[int] = []
    service.on_went_offline.subscribe(offline.append)
    service.add_or_update(_discovered())
    service.bind("0001:00000001", 3)

    clock.now += 1.5
    assert service.prune().went_offline == []

    clock.now += 0.01
    result = service.prune()

    assert result.went_offline == [3]
    assert offline == [3]
    assert not service.try_get("0001:00000001").is_online

    # Already offline: no second event
    clock.now += 0.5
    service.prune()
    assert offline == [3]


def test_response_after_offline_fires_came_online_once() -> None:
    service, clock = _service(poll_interval=0.5)
    online: List[int] = []
    service.on_came_online.subscribe(online.append)
    service.add_or_update(_discovered())
    service.bind("0001:00000001", 3)

    clock.now += 2.0
    service.prune()
    service.add_or_update(_discovered())
    service.add_or_update(_discovered())

    assert online == [3]
    assert service.try_get("0001:00000001").is_online


def test_removed_after_ten_polls_of_silence() -> None:
    service, clock = _service(poll_interval=0.5)
    service.add_or_update(_discovered())

    clock.now += 5.0
    assert service.prune().removed == []

    clock.now += 0.01
    result = service.prune()

    assert result.removed == ["0001:00000001"]
    assert len(service) == 0

    # Rediscovery treats it as new
    assert service.add_or_update(_discovered()) is True


def test_unbound_fixture_changes_state_silently() -> None:
    service, clock = _service(poll_interval=0.5)
    events: List[int] = []
    service.on_went_offline.subscribe(events.append)
    service.on_came_online.subscribe(events.append)
    service.add_or_update(_discovered())

    clock.now += 2.0
    result = service.prune()
    service.add_or_update(_discovered())

    assert result.went_offline == []
    assert events == []


def test_unbind_silences_liveness_events() -> None:
    service, clock = _service(poll_interval=0.5)
    events: List[int] = []
    service.on_went_offline.subscribe(events.append)
    service.on_came_online.subscribe(events.append)
    service.add_or_update(_discovered())
    service.bind("0001:00000001", 3)

    assert service.unbind("0001:00000001")
    assert not service.unbind("ffff:ffffffff")

    clock.now += 2.0
    result = service.prune()
    service.add_or_update(_discovered())

    assert result.went_offline == []
    assert events == []
    assert service.try_get("0001:00000001").virtual_fixture_id == -1


def test_prune_without_poll_ticks_still_catches_silence() -> None:
    service, clock = _service(poll_interval=1.0)
    service.add_or_update(_discovered())

    # No tick() calls at all; only wall time passes
    clock.now += 3.5
    service.prune()

    assert not service.try_get("0001:00000001").is_online


def test_reset_clears_cache() -> None:
    service, _clock = _service()
    service.add_or_update(_discovered())
    service.tick(0.3)

    service.reset()

    assert service.get_all() == []
    assert service.uids() == []
