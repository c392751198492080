"""
Pytest fixtures and in-memory hypervisor fakes for kvmnet tests.
"""
import tempfile
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from kvmnet.di import DependencyContainer, set_container
from kvmnet.errors import HypervisorError, NetworkNotFoundError
from kvmnet.interfaces.hypervisor import (
    DomainHandle,
    HypervisorConnection,
    HypervisorConnector,
    NetworkHandle,
)
from kvmnet.models import DriverConfig


MUTATING_CALLS = {"create", "destroy", "undefine", "set_autostart", "define"}


def domain_xml(name: str, *networks: str) -> str:
    """Build a minimal libvirt domain definition attached to ``networks``."""
    interfaces = "".join(
        f"<interface type='network'><mac address='52:54:00:00:00:0{i}'/>"
        f"<source network='{net}'/><model type='virtio'/></interface>"
        for i, net in enumerate(networks)
    )
    return (
        f"<domain type='kvm'><name>{name}</name><memory unit='KiB'>2097152</memory>"
        f"<devices><disk type='file' device='disk'/>{interfaces}</devices></domain>"
    )


class FakeNetwork(NetworkHandle):
    """Network handle backed by a FakeHypervisor record."""

    def __init__(self, hv: "FakeHypervisor", name: str):
        self.hv = hv
        self._name = name
        self.closed = False

    @property
    def state(self) -> dict:
        if self._name not in self.hv.networks:
            raise HypervisorError(f"network {self._name} is gone")
        return self.hv.networks[self._name]

    def _record(self, call: str) -> None:
        self.hv.calls.append((call, self._name))
        remaining = self.hv.fail.get((call, self._name), 0)
        if remaining > 0:
            self.hv.fail[(call, self._name)] = remaining - 1
            raise HypervisorError(f"{call} network {self._name}: injected failure")

    def name(self) -> str:
        return self._name

    def create(self) -> None:
        self._record("create")
        if self.state["active"]:
            raise HypervisorError(f"network {self._name} is already active")
        self.state["active"] = True

    def destroy(self) -> None:
        self._record("destroy")
        if not self.state["active"]:
            raise HypervisorError(f"network {self._name} is not active")
        self.state["active"] = False
        self.hv.stale_active[self._name] = self.hv.lag.get(self._name, 0)

    def undefine(self) -> None:
        self._record("undefine")
        if self._name not in self.hv.networks:
            raise HypervisorError(f"network {self._name} is gone")
        del self.hv.networks[self._name]
        self.hv.ghosts[self._name] = self.hv.lag.get(self._name, 0)

    def is_active(self) -> bool:
        if self.hv.stale_active.get(self._name, 0) > 0:
            self.hv.stale_active[self._name] -= 1
            return True
        return self.state["active"]

    def get_autostart(self) -> bool:
        return self.state["autostart"]

    def set_autostart(self, autostart: bool) -> None:
        self._record("set_autostart")
        self.state["autostart"] = autostart

    def bridge_name(self) -> str:
        return self.state["bridge"]

    def close(self) -> None:
        self.closed = True
        self.hv.closed_handles += 1


class FakeDomain(DomainHandle):
    def __init__(self, hv: "FakeHypervisor", name: str, xml: str):
        self.hv = hv
        self._name = name
        self._xml = xml
        self.closed = False

    def name(self) -> str:
        return self._name

    def xml_desc(self) -> str:
        self.hv.calls.append(("xml_desc", self._name))
        return self._xml

    def close(self) -> None:
        self.closed = True
        self.hv.closed_handles += 1


class FakeHypervisor(HypervisorConnection):
    """A whole libvirt host in memory; doubles as the open connection."""

    def __init__(self, lib_version: int = 8000000):
        self.networks: Dict[str, dict] = {}
        self.domains: Dict[str, str] = {}
        self.lib_version = lib_version
        self.calls: List[tuple] = []
        self.fail: Dict[tuple, int] = {}
        self.handles: List[FakeNetwork] = []
        self.domain_handles: List[FakeDomain] = []
        self.closed_handles = 0
        self.connection_closed = 0
        # polls for which a destroy or undefine stays invisible
        self.lag: Dict[str, int] = {}
        self.stale_active: Dict[str, int] = {}
        self.ghosts: Dict[str, int] = {}

    def add_network(
        self, name: str, active: bool = True, autostart: bool = True, bridge: Optional[str] = None
    ) -> None:
        self.networks[name] = {
            "active": active,
            "autostart": autostart,
            "bridge": bridge or f"virbr{len(self.networks)}",
            "xml": None,
        }

    def add_domain(self, name: str, *networks: str) -> None:
        self.domains[name] = domain_xml(name, *networks)

    @property
    def mutations(self) -> List[tuple]:
        return [c for c in self.calls if c[0] in MUTATING_CALLS]

    def lookup_network(self, name: str) -> FakeNetwork:
        self.calls.append(("lookup", name))
        if name not in self.networks:
            if self.ghosts.get(name, 0) <= 0:
                raise NetworkNotFoundError(name)
            self.ghosts[name] -= 1
        handle = FakeNetwork(self, name)
        self.handles.append(handle)
        return handle

    def define_network(self, xml: str) -> FakeNetwork:
        name = ET.fromstring(xml).findtext("name")
        self.calls.append(("define", name))
        self.add_network(name, active=False, autostart=False)
        self.networks[name]["xml"] = xml
        handle = FakeNetwork(self, name)
        self.handles.append(handle)
        return handle

    def list_all_domains(self) -> List[FakeDomain]:
        doms = [FakeDomain(self, n, x) for n, x in self.domains.items()]
        self.domain_handles.extend(doms)
        return doms

    def get_lib_version(self) -> int:
        return self.lib_version

    def close(self) -> None:
        self.connection_closed += 1


class FakeConnector(HypervisorConnector):
    def __init__(self, hv: FakeHypervisor):
        self.hv = hv
        self.uris: List[str] = []

    def connect(self, uri: str) -> FakeHypervisor:
        self.uris.append(uri)
        return self.hv


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def hypervisor():
    """A host with the default network already set up, as libvirt installs it."""
    hv = FakeHypervisor()
    hv.add_network("default", active=True, autostart=True, bridge="virbr0")
    return hv


@pytest.fixture
def driver_config(temp_dir):
    return DriverConfig(
        connection_uri="qemu:///system",
        network="default",
        private_network="kvmnet-net",
        machine_name="node1",
        private_mac="52:54:00:aa:bb:cc",
        retry_timeout=0.2,
        retry_interval=0.01,
        dnsmasq_dir=temp_dir,
    )


@pytest.fixture(autouse=True)
def fake_container(hypervisor):
    """Resolve HypervisorConnector to the in-memory fake for every test."""
    container = DependencyContainer()
    container.register(HypervisorConnector, instance=FakeConnector(hypervisor))
    set_container(container)
    yield container
    set_container(None)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "slow: Slow tests")
    config.addinivalue_line("markers", "integration: Integration tests (require libvirtd)")
