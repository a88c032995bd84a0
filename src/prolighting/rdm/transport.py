"""
RDM Transport Layer - side-channel queries to physical fixtures.

Only discovery, the device-info / address query and identify are
modeled. Implementations may block on I/O; the controller runs polls on a
worker pool so a slow fixture never stalls the DMX tick.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

import structlog

from prolighting.core.exceptions import RDMTimeoutError
from prolighting.core.models import DiscoveredFixture

logger = structlog.get_logger()

RDM_PID_DEVICE_INFO = 0x0060
RDM_PID_DMX_START_ADDRESS = 0x00F0
RDM_PID_IDENTIFY_DEVICE = 0x1000


class RDMTransport(ABC):
    """Abstract RDM side-channel."""

    @abstractmethod
    def discover(self, universe: int, timeout_s: float) -> List[DiscoveredFixture]:
        """
        Run discovery on one universe.

        Returns:
            Every fixture that answered within ``timeout_s``.
        """

    @abstractmethod
    def get_device_info(self, universe: int, uid: str) -> DiscoveredFixture:
        """
        Query one device's info and DMX start address.

        Raises:
            RDMTimeoutError: if the device does not answer.
        """

    @abstractmethod
    def identify(self, universe: int, uid: str, state: bool) -> bool:
        """Turn a device's identify mode on or off."""


class NullRDMTransport(RDMTransport):
    """
    RDM side-channel for interfaces that cannot carry RDM.

    Discovery finds nothing and every query times out, which leaves
    liveness to the prune thresholds.
    """

    def discover(self, universe: int, timeout_s: float) -> List[DiscoveredFixture]:
        logger.debug("RDM discovery not available", universe=universe)
        return []

    def get_device_info(self, universe: int, uid: str) -> DiscoveredFixture:
        raise RDMTimeoutError(uid, "RDM not available on this interface")

    def identify(self, universe: int, uid: str, state: bool) -> bool:
        logger.debug("RDM identify not available", uid=uid)
        return False
