"""
Lifecycle of the private libvirt network: reconcile, provision, decommission.

The hypervisor offers no transactions. Each step below is checked and
corrected on its own, and every state transition is polled with
``retry_local`` until libvirt reports the expected state.
"""

from kvmnet.errors import (
    HypervisorError,
    NetworkError,
    NetworkNameConflictError,
    NetworkNotFoundError,
    RetryTimeoutError,
)
from kvmnet.guard import check_domains
from kvmnet.interfaces.hypervisor import HypervisorConnection
from kvmnet.logging import get_logger
from kvmnet.models import DriverConfig
from kvmnet.network_xml import render_network_xml
from kvmnet.retry import RetryLater, retry_local

log = get_logger(__name__)


def setup_network(conn: HypervisorConnection, name: str) -> None:
    """Ensure the network ``name`` is active and has autostart set.

    The network must already be defined. Activation is attempted once;
    deciding whether to escalate is up to the caller.
    """
    try:
        network = conn.lookup_network(name)
    except HypervisorError as e:
        raise NetworkError(f"checking network {name}: {e}") from e

    with network:
        try:
            if not network.get_autostart():
                network.set_autostart(True)
            if not network.is_active():
                network.create()
        except HypervisorError as e:
            raise NetworkError(str(e)) from e


def check_network_names(config: DriverConfig) -> None:
    """Reject a private network that would shadow the default network."""
    if config.private_network == config.network:
        raise NetworkNameConflictError(
            f"KVM network can't be named {config.private_network}. "
            f"This is the name of the default network {config.network}"
        )


def create_network(conn: HypervisorConnection, config: DriverConfig) -> None:
    """Define and start the private network unless it already exists.

    Called once per VM lifetime, at creation time.
    """
    check_network_names(config)
    name = config.private_network

    # The default network belongs to the host; it is only looked up.
    try:
        conn.lookup_network(config.network).close()
    except HypervisorError as e:
        raise NetworkError(f"network {config.network} doesn't exist: {e}") from e

    try:
        conn.lookup_network(name).close()
        log.debug("private_network_exists", network=name)
        return
    except NetworkNotFoundError:
        pass

    xml = render_network_xml(name, config.template)
    try:
        network = conn.define_network(xml)
    except HypervisorError as e:
        raise NetworkError(f"defining network from xml: {xml}: {e}") from e

    with network:

        def create() -> None:
            if network.is_active():
                return
            network.create()
            if not network.is_active():
                raise RetryLater(f"network {name} not active yet")

        log.debug(f"Trying to create network {name}...")
        try:
            retry_local(
                create,
                config.retry_timeout,
                config.retry_interval,
                description=f"creating network {name}",
            )
        except RetryTimeoutError as e:
            raise NetworkError(f"creating network {name}: {e}\ndefinition:{xml}") from e


def delete_network(conn: HypervisorConnection, config: DriverConfig) -> None:
    """Destroy and undefine the private network if no other domain uses it.

    A network that does not exist counts as deleted.
    """
    name = config.private_network

    log.debug(f"Checking if network {name} exists...")
    try:
        network = conn.lookup_network(name)
    except NetworkNotFoundError:
        log.warning(f"Network {name} does not exist. Skipping deletion")
        return
    except HypervisorError as e:
        raise NetworkError(f"failed looking for network {name}: {e}") from e

    with network:
        log.debug(f"Network {name} exists")

        check_domains(conn, name, config.machine_name)

        # Some libvirt versions refuse to destroy an inactive network.
        def activate() -> None:
            if network.is_active():
                return
            network.create()
            raise RetryLater("needs confirmation")

        log.debug(f"Trying to reactivate network {name} first (if needed)...")
        try:
            retry_local(
                activate,
                config.retry_timeout,
                config.retry_interval,
                description=f"reactivating network {name}",
            )
        except RetryTimeoutError as e:
            log.debug(f"Reactivating network {name} failed, will continue anyway...", error=str(e))

        # A transition call is issued until it succeeds once; later polls only
        # observe state, which libvirt may report late.
        issued = {"destroy": False, "undefine": False}

        def destroy() -> None:
            if not issued["destroy"]:
                network.destroy()
                issued["destroy"] = True
            if network.is_active():
                raise RetryLater(f"network {name} still active")

        log.debug(f"Trying to destroy network {name}...")
        retry_local(
            destroy,
            config.retry_timeout,
            config.retry_interval,
            description=f"destroying network {name}",
        )

        def still_defined() -> bool:
            try:
                conn.lookup_network(name).close()
            except NetworkNotFoundError:
                return False
            return True

        def undefine() -> None:
            if not issued["undefine"]:
                network.undefine()
                issued["undefine"] = True
            if still_defined():
                raise RetryLater(f"network {name} still defined")

        log.debug(f"Trying to undefine network {name}...")
        retry_local(
            undefine,
            config.retry_timeout,
            config.retry_interval,
            description=f"undefining network {name}",
        )
