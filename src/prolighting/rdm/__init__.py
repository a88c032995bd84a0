"""RDM discovery and liveness."""

from prolighting.rdm.service import PruneResult, RDMService
from prolighting.rdm.transport import NullRDMTransport, RDMTransport

__all__ = [
    "PruneResult",
    "RDMService",
    "NullRDMTransport",
    "RDMTransport",
]
