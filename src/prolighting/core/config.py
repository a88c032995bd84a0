"""
Configuration Management for ProLighting.

Uses Pydantic Settings for type-safe configuration with environment
variable support and YAML file loading.
"""

from __future__ import annotations

from pathlib import Path
from typing import List

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

from prolighting.core.exceptions import ConfigError
from prolighting.core.models import DMXMode, Fixture

ARTNET_DEFAULT_PORT = 6454


class USBDMXConfig(BaseModel):
    """USB-DMX dongle configuration (Enttec Open DMX style)."""
    url: str = "ftdi://ftdi:232/1"  # pyftdi URL or serial device path
    baud_rate: int = 250000
    universe: int = Field(default=0, ge=0, le=15)  # the one universe a dongle carries


class ArtNetConfig(BaseModel):
    """Art-Net transport and node discovery configuration."""
    ip_address: str = "255.255.255.255"  # broadcast, or a node's unicast address
    port: int = Field(default=ARTNET_DEFAULT_PORT, ge=1, le=65535)
    net: int = Field(default=0, ge=0, le=127)
    subnet: int = Field(default=0, ge=0, le=15)
    max_universe: int = Field(default=15, ge=0, le=15)
    discovery_enabled: bool = True
    poll_interval_s: float = Field(default=2.0, gt=0)
    node_timeout_s: float = Field(default=10.0, gt=0)


class RDMConfig(BaseModel):
    """RDM discovery and liveness polling configuration."""
    enabled: bool = False
    poll_interval_s: float = Field(default=0.5, ge=0.1, le=10.0)
    discovery_timeout_s: float = Field(default=5.0, ge=1.0, le=30.0)
    rdm_only_mode: bool = False  # reject fixtures that are not RDM capable
    workers: int = Field(default=2, ge=0, le=16)  # 0 = poll on the tick thread

    @property
    def offline_threshold_s(self) -> float:
        return self.poll_interval_s * 3.0

    @property
    def removal_threshold_s(self) -> float:
        return self.poll_interval_s * 10.0


class Settings(BaseSettings):
    """
    Main application settings.

    Can be configured via:
    - Environment variables (prefixed with PROLIGHTING_)
    - YAML config file
    - Direct instantiation
    """

    dmx_mode: DMXMode = DMXMode.ARTNET
    refresh_rate_hz: float = Field(default=40.0, gt=0)

    # Component configs
    usb: USBDMXConfig = Field(default_factory=USBDMXConfig)
    artnet: ArtNetConfig = Field(default_factory=ArtNetConfig)
    rdm: RDMConfig = Field(default_factory=RDMConfig)

    # Fixtures registered at initialize
    fixtures: List[Fixture] = Field(default_factory=list)

    # Debug
    debug: bool = False
    log_level: str = "INFO"

    class Config:
        env_prefix = "PROLIGHTING_"
        env_nested_delimiter = "__"

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from a YAML file."""
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
            return cls(**data)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config '{path}': {e}") from e
        except ValidationError as e:
            raise ConfigError(f"Invalid config '{path}': {e}") from e

    def to_yaml(self, path: Path) -> None:
        """Save settings to a YAML file."""
        with open(path, "w") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)
