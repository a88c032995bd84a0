"""
ProLighting: hardware-agnostic DMX512 lighting control.

Virtual fixtures, fades and RDM liveness on top of Art-Net or USB-DMX
output, driven by a fixed-rate tick loop.
"""

__version__ = "0.1.0"
__author__ = "ProLighting Team"

from prolighting.controller import ProLightingController
from prolighting.core.config import Settings
from prolighting.core.models import Fixture, FixtureType

__all__ = [
    "ProLightingController",
    "Settings",
    "Fixture",
    "FixtureType",
    "__version__",
]
