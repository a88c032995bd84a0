"""Core system components for ProLighting."""

from prolighting.core.config import ArtNetConfig, RDMConfig, Settings, USBDMXConfig
from prolighting.core.events import EventHook
from prolighting.core.exceptions import (
    ConfigError,
    DMXAddressError,
    DMXConnectionError,
    DMXError,
    FixtureValidationError,
    ProLightingError,
    RDMError,
    TransportConfigError,
)
from prolighting.core.models import (
    ArtNetNode,
    DiscoveredFixture,
    DMXMode,
    Fixture,
    FixtureType,
)

__all__ = [
    "ArtNetConfig",
    "RDMConfig",
    "Settings",
    "USBDMXConfig",
    "EventHook",
    "ConfigError",
    "DMXAddressError",
    "DMXConnectionError",
    "DMXError",
    "FixtureValidationError",
    "ProLightingError",
    "RDMError",
    "TransportConfigError",
    "ArtNetNode",
    "DiscoveredFixture",
    "DMXMode",
    "Fixture",
    "FixtureType",
]
