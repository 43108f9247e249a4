"""Message-passing execution hosts for the formation computations.

``create_compute_host`` picks a process-isolated host when the runtime
supports it and the synchronous inline host otherwise. Both speak the same
envelope protocol (``formation.compute.protocol``) and share the correlation
bookkeeping in ``BaseComputeHost``.
"""

from formation.compute.factory import create_compute_host, process_isolation_available
from formation.compute.host import BaseComputeHost, ComputeHost
from formation.compute.inline import InlineComputeHost
from formation.compute.protocol import (
    ERROR,
    OPTIMIZE_FORMATION,
    OPTIMIZE_FORMATION_OPTIMAL,
    SUCCESS,
    VALIDATE_POSITION,
    handle_request,
)

__all__ = [
    "BaseComputeHost",
    "ComputeHost",
    "ERROR",
    "InlineComputeHost",
    "OPTIMIZE_FORMATION",
    "OPTIMIZE_FORMATION_OPTIMAL",
    "SUCCESS",
    "VALIDATE_POSITION",
    "create_compute_host",
    "handle_request",
    "process_isolation_available",
]
