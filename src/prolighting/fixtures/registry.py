"""Registered virtual fixtures and their RDM UID bindings."""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional

from prolighting.core.models import Fixture


class FixtureRegistry:
    """
    Virtual fixtures keyed by virtual ID.

    Also holds the RDM UID <-> virtual ID join used to route RDM liveness
    back into virtual-fixture space. Lookups return None when absent.
    """

    def __init__(self) -> None:
        self._fixtures: Dict[int, Fixture] = {}
        self._virtual_to_uid: Dict[int, str] = {}
        self._uid_to_virtual: Dict[str, int] = {}

    def register(self, fixture: Fixture) -> bool:
        if fixture.virtual_id is None or fixture.virtual_id in self._fixtures:
            return False
        self._fixtures[fixture.virtual_id] = fixture
        if fixture.rdm_uid:
            self.map_rdm(fixture.virtual_id, fixture.rdm_uid)
        return True

    def unregister(self, virtual_id: int) -> Optional[Fixture]:
        fixture = self._fixtures.pop(virtual_id, None)
        uid = self._virtual_to_uid.pop(virtual_id, None)
        if uid is not None:
            self._uid_to_virtual.pop(uid, None)
        return fixture

    def find(self, virtual_id: int) -> Optional[Fixture]:
        """Copy of the registered fixture, safe to hand to callers."""
        fixture = self._fixtures.get(virtual_id)
        return fixture.model_copy(deep=True) if fixture is not None else None

    def find_mutable(self, virtual_id: int) -> Optional[Fixture]:
        """The stored fixture itself; edits change the registry."""
        return self._fixtures.get(virtual_id)

    def ids(self) -> List[int]:
        return list(self._fixtures)

    def fixtures(self) -> Iterator[Fixture]:
        return iter(list(self._fixtures.values()))

    def in_universe(self, universe: int) -> List[Fixture]:
        return [f for f in self._fixtures.values() if f.universe == universe]

    def map_rdm(self, virtual_id: int, uid: str) -> None:
        self._virtual_to_uid[virtual_id] = uid
        self._uid_to_virtual[uid] = virtual_id

    def rdm_uid_for(self, virtual_id: int) -> Optional[str]:
        return self._virtual_to_uid.get(virtual_id)

    def virtual_id_for(self, uid: str) -> Optional[int]:
        return self._uid_to_virtual.get(uid)

    def rdm_bindings(self) -> Dict[str, int]:
        return dict(self._uid_to_virtual)

    def reset(self) -> None:
        self._fixtures.clear()
        self._virtual_to_uid.clear()
        self._uid_to_virtual.clear()

    def __contains__(self, virtual_id: object) -> bool:
        return virtual_id in self._fixtures

    def __len__(self) -> int:
        return len(self._fixtures)
