"""
kvmnet - private libvirt network lifecycle for a local Kubernetes node VM.

Provisions, reconciles and removes the isolated network the node VM is
attached to, and resolves the address dnsmasq leased to the VM.
"""

__version__ = "0.1.0"

from kvmnet.manager import LibvirtNetworkManager
from kvmnet.models import DriverConfig, NetworkTemplate

__all__ = ["LibvirtNetworkManager", "DriverConfig", "NetworkTemplate", "__version__"]
