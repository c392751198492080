"""Interfaces for kvmnet network management."""

from abc import ABC, abstractmethod
from typing import Optional


class NetworkManager(ABC):
    """Abstract interface for the private network lifecycle."""

    @abstractmethod
    def create_network(self) -> None:
        """Define and start the private network (VM creation)."""
        pass

    @abstractmethod
    def ensure_network(self) -> None:
        """Make sure default and private networks are active and autostarted (VM start)."""
        pass

    @abstractmethod
    def delete_network(self) -> None:
        """Remove the private network if nothing else uses it (VM deletion)."""
        pass

    @abstractmethod
    def lookup_ip(self) -> Optional[str]:
        """Get the VM's address on the private network, or None if not leased yet."""
        pass
