"""
Domain usage guard: refuse to touch a network another domain depends on.
"""

from kvmnet.errors import DomainDefinitionError, NetworkInUseError
from kvmnet.interfaces.hypervisor import HypervisorConnection
from kvmnet.logging import get_logger
from kvmnet.network_xml import parse_domain_definition

log = get_logger(__name__)


def check_domains(conn: HypervisorConnection, network: str, machine_name: str) -> None:
    """Raise NetworkInUseError if any domain other than ``machine_name`` uses ``network``.

    Every defined domain is inspected, including stopped ones: a stopped
    VM's definition still reserves the network. The static definition is
    used rather than the runtime state for the same reason.
    """
    log.debug("Trying to list all domains...")
    domains = conn.list_all_domains()
    log.debug(f"Listed all domains: total of {len(domains)} domains")

    if not domains:
        log.warning("list of domains is 0 length")

    try:
        for dom in domains:
            name = dom.name()
            if name == machine_name:
                log.debug("Skipping domain as it is us...", domain=name)
                continue

            xml = dom.xml_desc()
            try:
                definition = parse_domain_definition(xml)
            except DomainDefinitionError as e:
                raise DomainDefinitionError(f"failed to parse XML of domain '{name}': {e}") from e

            if definition.uses_network(network):
                log.debug(f"domain {name} DOES use network {network}, aborting...")
                raise NetworkInUseError(network, name)
            log.debug(f"domain {name} does not use network {network}")
    finally:
        for dom in domains:
            dom.close()
