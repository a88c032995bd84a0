"""Virtual fixtures: registry, validation, drivers, fades and the service API."""

from prolighting.fixtures.drivers import FixtureDriver, create_driver
from prolighting.fixtures.fade import FadeEngine, FadeState
from prolighting.fixtures.registry import FixtureRegistry
from prolighting.fixtures.service import NOT_FOUND, FixtureService
from prolighting.fixtures.validator import required_channels, validate_register

__all__ = [
    "FixtureDriver",
    "create_driver",
    "FadeEngine",
    "FadeState",
    "FixtureRegistry",
    "NOT_FOUND",
    "FixtureService",
    "required_channels",
    "validate_register",
]
