"""Exceptions raised by kvmnet."""

from typing import Optional


class KvmNetError(Exception):
    """Base class for all kvmnet errors."""


class HypervisorError(KvmNetError):
    """A call into the hypervisor failed."""


class HypervisorConnectionError(HypervisorError, ConnectionError):
    """The hypervisor could not be reached at all."""


class NetworkNotFoundError(HypervisorError):
    """The hypervisor has no network with the requested name."""

    def __init__(self, name: str, message: Optional[str] = None):
        self.name = name
        super().__init__(message or f"network {name} not found")


class NetworkError(KvmNetError):
    """Reconciling, provisioning or removing a network failed."""


class NetworkInUseError(NetworkError):
    """Another domain still references the network."""

    def __init__(self, network: str, domain: str):
        self.network = network
        self.domain = domain
        super().__init__(f"network {network} still in use at least by domain '{domain}'")


class NetworkNameConflictError(NetworkError, ValueError):
    """The private network name collides with the default network name."""


class DomainDefinitionError(KvmNetError, ValueError):
    """A domain XML definition could not be parsed."""


class RetryTimeoutError(KvmNetError, TimeoutError):
    """A bounded retry loop never observed success before its deadline."""

    def __init__(self, message: str, last_error: Optional[BaseException] = None):
        self.last_error = last_error
        super().__init__(message)


class LeaseError(KvmNetError):
    """Reading DHCP lease or status data failed."""


class MalformedLeaseError(LeaseError, ValueError):
    """DHCP lease or status data is malformed."""
