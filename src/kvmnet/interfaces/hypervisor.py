"""Interfaces for the hypervisor capabilities kvmnet relies on."""

from abc import ABC, abstractmethod
from typing import List


class _Handle(ABC):
    """A hypervisor-side object that must be released once no longer needed."""

    @abstractmethod
    def close(self) -> None:
        """Release the handle."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class NetworkHandle(_Handle):
    """A defined hypervisor network."""

    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def create(self) -> None:
        """Start (activate) the network."""
        pass

    @abstractmethod
    def destroy(self) -> None:
        """Stop the network. The definition is kept."""
        pass

    @abstractmethod
    def undefine(self) -> None:
        """Remove the persisted definition."""
        pass

    @abstractmethod
    def is_active(self) -> bool:
        pass

    @abstractmethod
    def get_autostart(self) -> bool:
        pass

    @abstractmethod
    def set_autostart(self, autostart: bool) -> None:
        pass

    @abstractmethod
    def bridge_name(self) -> str:
        """Host-side bridge interface backing the network."""
        pass


class DomainHandle(_Handle):
    """A defined domain, running or not."""

    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def xml_desc(self) -> str:
        """Static (inactive) XML definition of the domain."""
        pass


class HypervisorConnection(_Handle):
    """An open connection to the hypervisor."""

    @abstractmethod
    def lookup_network(self, name: str) -> NetworkHandle:
        """Look up a network; raises NetworkNotFoundError if it is not defined."""
        pass

    @abstractmethod
    def define_network(self, xml: str) -> NetworkHandle:
        """Define (but do not start) a network from its XML description."""
        pass

    @abstractmethod
    def list_all_domains(self) -> List[DomainHandle]:
        """All domains, active and inactive."""
        pass

    @abstractmethod
    def get_lib_version(self) -> int:
        """libvirt version as ``major * 1000000 + minor * 1000 + release``."""
        pass


class HypervisorConnector(ABC):
    """Factory for hypervisor connections."""

    @abstractmethod
    def connect(self, uri: str) -> HypervisorConnection:
        """Open a connection; raises HypervisorConnectionError on failure."""
        pass
