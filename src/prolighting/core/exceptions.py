"""
Custom Exceptions for ProLighting.

Provides a hierarchy of exceptions for the lighting core, so callers can
tell configuration failures apart from rejected operations and transient
transport trouble.
"""

from __future__ import annotations

from typing import Optional


class ProLightingError(Exception):
    """Base exception for all ProLighting errors."""

    def __init__(self, message: str, recoverable: bool = True):
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


# =============================================================================
# DMX Errors
# =============================================================================


class DMXError(ProLightingError):
    """Base exception for DMX-related errors."""
    pass


class DMXConnectionError(DMXError):
    """Failed to connect to DMX interface."""

    def __init__(self, interface: str, reason: str):
        super().__init__(
            f"Failed to connect to DMX interface '{interface}': {reason}",
            recoverable=False
        )
        self.interface = interface
        self.reason = reason


class DMXAddressError(DMXError):
    """Invalid DMX address or channel."""

    def __init__(self, address: int, reason: str):
        super().__init__(f"Invalid DMX address {address}: {reason}", recoverable=True)
        self.address = address


# =============================================================================
# Fixture Errors
# =============================================================================


class FixtureError(ProLightingError):
    """Base exception for fixture registry errors."""
    pass


class FixtureValidationError(FixtureError):
    """Fixture placement rejected (bad address, overlap, bad mapping)."""

    def __init__(
        self,
        fixture_id: Optional[int],
        reason: str,
        conflicting_id: Optional[int] = None,
    ):
        super().__init__(f"Fixture {fixture_id} rejected: {reason}", recoverable=True)
        self.fixture_id = fixture_id
        self.reason = reason
        self.conflicting_id = conflicting_id


# =============================================================================
# RDM Errors
# =============================================================================


class RDMError(ProLightingError):
    """Base exception for RDM side-channel errors."""
    pass


class RDMTimeoutError(RDMError):
    """RDM device did not answer in time."""

    def __init__(self, uid: str, reason: str = "no response"):
        super().__init__(f"RDM device {uid} timed out: {reason}", recoverable=True)
        self.uid = uid


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigError(ProLightingError):
    """Base exception for configuration errors."""

    def __init__(self, message: str):
        super().__init__(message, recoverable=False)


class TransportConfigError(ConfigError):
    """Transport mode cannot be built from the given configuration."""

    def __init__(self, mode: str, reason: str):
        super().__init__(f"Transport '{mode}' unavailable: {reason}")
        self.mode = mode
        self.reason = reason
