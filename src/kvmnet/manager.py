#!/usr/bin/env python3
"""
LibvirtNetworkManager - private network lifecycle for a single node VM.

Each public method is one top-level operation: it opens its own
hypervisor connection and closes it on every exit path.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from kvmnet.di import get_container
from kvmnet.errors import (
    HypervisorConnectionError,
    KvmNetError,
    LeaseError,
    NetworkError,
    NetworkNotFoundError,
)
from kvmnet.interfaces.hypervisor import HypervisorConnection, HypervisorConnector
from kvmnet.interfaces.network import NetworkManager
from kvmnet.leases import lookup_ip
from kvmnet.logging import get_logger, log_operation
from kvmnet.models import DriverConfig, NetworkState
from kvmnet.network import check_network_names, create_network, delete_network, setup_network
from kvmnet.retry import RetryLater, StopRetrying, retry_local

log = get_logger(__name__)


class LibvirtNetworkManager(NetworkManager):
    """Creates, reconciles and removes the private network of one VM."""

    def __init__(self, config: DriverConfig, connector: Optional[HypervisorConnector] = None):
        self.config = config
        self.connector = connector or get_container().resolve(HypervisorConnector)

    @contextmanager
    def _connect(self, operation: str) -> Iterator[HypervisorConnection]:
        try:
            conn = self.connector.connect(self.config.connection_uri)
        except HypervisorConnectionError as e:
            raise HypervisorConnectionError(f"{operation}: getting libvirt connection: {e}") from e
        with conn:
            yield conn

    def create_network(self) -> None:
        """Define and start the private network. Called on VM creation only."""
        with log_operation(log, "network_create", network=self.config.private_network):
            check_network_names(self.config)
            with self._connect(f"creating network {self.config.private_network}") as conn:
                create_network(conn, self.config)

    def ensure_network(self) -> None:
        """Bring both networks to active + autostart. Called on every VM start.

        A private network that cannot be brought up is assumed to be left
        over from a crashed run: it is deleted, re-created and reconciled
        once more.
        """
        cfg = self.config
        with log_operation(log, "network_ensure", network=cfg.private_network):
            with self._connect(f"ensuring network {cfg.private_network}") as conn:
                # Assumed to be created by the libvirt installation.
                log.info(f"Ensuring network {cfg.network} is active")
                setup_network(conn, cfg.network)

                log.info(f"Ensuring network {cfg.private_network} is active")
                try:
                    setup_network(conn, cfg.private_network)
                    return
                except KvmNetError as e:
                    log.debug(
                        f"Network {cfg.private_network} is inoperable, will try to recreate it",
                        error=str(e),
                    )

                try:
                    delete_network(conn, cfg)
                except KvmNetError as e:
                    raise NetworkError(
                        f"deleting inoperable network {cfg.private_network}: {e}"
                    ) from e
                log.debug(f"Successfully deleted {cfg.private_network} network")

                try:
                    create_network(conn, cfg)
                except KvmNetError as e:
                    raise NetworkError(
                        f"recreating inoperable network {cfg.private_network}: {e}"
                    ) from e
                log.debug(f"Successfully recreated {cfg.private_network} network")

                setup_network(conn, cfg.private_network)
                log.debug(f"Successfully activated {cfg.private_network} network")

    def delete_network(self) -> None:
        """Remove the private network. Called on VM deletion."""
        with log_operation(log, "network_delete", network=self.config.private_network):
            with self._connect(f"deleting network {self.config.private_network}") as conn:
                delete_network(conn, self.config)

    def lookup_ip(self) -> Optional[str]:
        """Current address of the VM on the private network, None if not leased yet."""
        with log_operation(log, "ip_lookup", network=self.config.private_network) as op_log:
            ip = self._lookup_ip()
            op_log.debug("ip_lookup.result", ip=ip)
            return ip

    def _lookup_ip(self) -> Optional[str]:
        with self._connect("looking up IP") as conn:
            return lookup_ip(
                conn,
                self.config.private_network,
                self.config.private_mac,
                self.config.dnsmasq_dir,
            )

    def wait_for_ip(self, timeout: float = 60.0) -> str:
        """Poll until the VM has leased an address on the private network."""
        found = {}

        def poll() -> None:
            try:
                ip = self._lookup_ip()
            except LeaseError as e:
                # A missing file just means dnsmasq has not written it yet.
                if isinstance(e.__cause__, FileNotFoundError):
                    raise RetryLater(str(e))
                raise StopRetrying(e)
            except KvmNetError as e:
                raise StopRetrying(e)
            if not ip:
                raise RetryLater("no address yet")
            found["ip"] = ip

        log.info(f"Waiting for VM IP address (timeout: {timeout}s)...")
        retry_local(
            poll,
            timeout,
            max(self.config.retry_interval, 1.0),
            description=f"waiting for IP of {self.config.machine_name}",
        )
        log.info(f"VM IP detected: {found['ip']}")
        return found["ip"]

    def network_state(self, name: Optional[str] = None) -> NetworkState:
        """Snapshot of the defined / active / autostart facets of a network."""
        name = name or self.config.private_network
        with self._connect("inspecting network") as conn:
            try:
                network = conn.lookup_network(name)
            except NetworkNotFoundError:
                return NetworkState(name=name, defined=False)
            with network:
                active = network.is_active()
                return NetworkState(
                    name=name,
                    defined=True,
                    active=active,
                    autostart=network.get_autostart(),
                    bridge=network.bridge_name() if active else None,
                )
