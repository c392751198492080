"""Abstract interfaces for kvmnet."""

from kvmnet.interfaces.hypervisor import (
    DomainHandle,
    HypervisorConnection,
    HypervisorConnector,
    NetworkHandle,
)
from kvmnet.interfaces.network import NetworkManager

__all__ = [
    "DomainHandle",
    "HypervisorConnection",
    "HypervisorConnector",
    "NetworkHandle",
    "NetworkManager",
]
