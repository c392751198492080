"""Service registry resolving kvmnet's hypervisor capability."""

import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Type, TypeVar

T = TypeVar("T")


@dataclass
class ServiceRegistration:
    factory: Callable[[], Any]
    singleton: bool = True
    instance: Optional[Any] = None


class DependencyContainer:
    """
    Maps capability interfaces to the objects that provide them.

    Usage:
        container = DependencyContainer()
        container.register(HypervisorConnector, LibvirtConnector)
        connector = container.resolve(HypervisorConnector)
    """

    def __init__(self):
        self._registrations: Dict[Type, ServiceRegistration] = {}
        self._lock = threading.RLock()

    def register(
        self,
        interface: Type[T],
        implementation: Callable[[], T] = None,
        singleton: bool = True,
        instance: T = None,
    ) -> "DependencyContainer":
        """
        Register a provider for ``interface``.

        Args:
            interface: The capability ABC
            implementation: Class or zero-argument factory building the provider
            singleton: If True, reuse the first instance built
            instance: Pre-created provider to hand out as is
        """
        if instance is not None:
            reg = ServiceRegistration(factory=lambda: instance, instance=instance)
        elif implementation is not None:
            reg = ServiceRegistration(factory=implementation, singleton=singleton)
        else:
            raise ValueError("Must provide implementation or instance")

        with self._lock:
            self._registrations[interface] = reg
        return self

    def resolve(self, interface: Type[T]) -> T:
        with self._lock:
            if interface not in self._registrations:
                raise KeyError(f"No registration for {interface}")

            reg = self._registrations[interface]
            if reg.singleton and reg.instance is not None:
                return reg.instance

            instance = reg.factory()
            if reg.singleton:
                reg.instance = instance
            return instance

    def reset(self) -> None:
        """Drop built singletons so the next resolve builds fresh ones."""
        with self._lock:
            for reg in self._registrations.values():
                reg.instance = None


_container: Optional[DependencyContainer] = None


def get_container() -> DependencyContainer:
    """Get the global container instance."""
    global _container
    if _container is None:
        _container = create_default_container()
    return _container


def set_container(container: Optional[DependencyContainer]) -> None:
    """Set the global container (useful for testing)."""
    global _container
    _container = container


def create_default_container() -> DependencyContainer:
    """Container backed by the real libvirt bindings."""
    from .backends.libvirt_backend import LibvirtConnector
    from .interfaces.hypervisor import HypervisorConnector

    return DependencyContainer().register(HypervisorConnector, LibvirtConnector)
