"""libvirt implementation of the hypervisor capability interfaces."""

from typing import Any, Callable, List, Optional

try:
    import libvirt
except ImportError:
    libvirt = None

from ..errors import HypervisorConnectionError, HypervisorError, NetworkNotFoundError
from ..interfaces.hypervisor import (
    DomainHandle,
    HypervisorConnection,
    HypervisorConnector,
    NetworkHandle,
)
from ..logging import get_logger

log = get_logger(__name__)


def _call(context: str, fn: Callable[..., Any], *args: Any) -> Any:
    """Invoke a libvirt method, wrapping libvirtError with ``context``."""
    try:
        return fn(*args)
    except libvirt.libvirtError as e:
        raise HypervisorError(f"{context}: {e}") from e


class LibvirtNetwork(NetworkHandle):
    """Wraps ``virNetwork``."""

    def __init__(self, net):
        self._net = net
        self._name: Optional[str] = None

    def name(self) -> str:
        if self._name is None:
            self._name = _call("getting network name", self._net.name)
        return self._name

    def create(self) -> None:
        _call(f"starting network {self.name()}", self._net.create)

    def destroy(self) -> None:
        _call(f"destroying network {self.name()}", self._net.destroy)

    def undefine(self) -> None:
        _call(f"undefining network {self.name()}", self._net.undefine)

    def is_active(self) -> bool:
        return bool(_call(f"checking network status for {self.name()}", self._net.isActive))

    def get_autostart(self) -> bool:
        return bool(_call(f"checking network {self.name()} autostart", self._net.autostart))

    def set_autostart(self, autostart: bool) -> None:
        _call(
            f"setting autostart for network {self.name()}",
            self._net.setAutostart,
            1 if autostart else 0,
        )

    def bridge_name(self) -> str:
        return _call(f"getting bridge of network {self.name()}", self._net.bridgeName)

    def close(self) -> None:
        # virNetwork is freed when the last reference goes away
        self._net = None


class LibvirtDomain(DomainHandle):
    """Wraps ``virDomain``."""

    def __init__(self, dom):
        self._dom = dom

    def name(self) -> str:
        return _call("getting name of a domain", self._dom.name)

    def xml_desc(self) -> str:
        return _call(
            f"getting XML of domain '{self.name()}'",
            self._dom.XMLDesc,
            libvirt.VIR_DOMAIN_XML_INACTIVE,
        )

    def close(self) -> None:
        self._dom = None


class LibvirtConnection(HypervisorConnection):
    """Wraps ``virConnect``."""

    def __init__(self, conn, uri: str):
        self._conn = conn
        self.uri = uri

    def lookup_network(self, name: str) -> LibvirtNetwork:
        try:
            net = self._conn.networkLookupByName(name)
        except libvirt.libvirtError as e:
            if e.get_error_code() == libvirt.VIR_ERR_NO_NETWORK:
                raise NetworkNotFoundError(name) from e
            raise HypervisorError(f"looking up network {name}: {e}") from e
        return LibvirtNetwork(net)

    def define_network(self, xml: str) -> LibvirtNetwork:
        return LibvirtNetwork(_call("defining network from xml", self._conn.networkDefineXML, xml))

    def list_all_domains(self) -> List[LibvirtDomain]:
        doms = _call("list all domains", self._conn.listAllDomains, 0)
        return [LibvirtDomain(d) for d in doms]

    def get_lib_version(self) -> int:
        return _call("getting libversion", self._conn.getLibVersion)

    def close(self) -> None:
        """Close connection."""
        if self._conn is not None:
            try:
                self._conn.close()
            except libvirt.libvirtError as e:
                log.debug("libvirt_close_failed", uri=self.uri, error=str(e))
            self._conn = None


class LibvirtConnector(HypervisorConnector):
    """Opens connections with ``libvirt.open``."""

    def connect(self, uri: str) -> LibvirtConnection:
        if libvirt is None:
            raise HypervisorConnectionError(
                "libvirt-python is required. Install with: pip install libvirt-python"
            )
        try:
            conn = libvirt.open(uri)
        except libvirt.libvirtError as e:
            raise HypervisorConnectionError(f"Failed to connect to libvirt at {uri}: {e}") from e
        if conn is None:
            raise HypervisorConnectionError(f"Failed to open libvirt connection to {uri}")
        return LibvirtConnection(conn, uri)
