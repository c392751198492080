"""
Resolve the VM's address from libvirt's dnsmasq state files.

libvirt older than 1.2.6 only writes the append-only ``<network>.leases``
log. Newer releases write a JSON ``<bridge>.status`` snapshot instead.
Both are read-only for kvmnet.
"""

from pathlib import Path
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from kvmnet.errors import HypervisorError, LeaseError, MalformedLeaseError
from kvmnet.interfaces.hypervisor import HypervisorConnection
from kvmnet.logging import get_logger
from kvmnet.models import LeaseRecord
from kvmnet.paths import leases_file_path, status_file_path

log = get_logger(__name__)

# First libvirt release writing <bridge>.status (1.2.6)
LEASE_STATUS_MIN_LIBVERSION = 1002006

_status_adapter = TypeAdapter(List[LeaseRecord])


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise MalformedLeaseError(f"reading {path}: {e}") from e
    except OSError as e:
        raise LeaseError(f"reading {path}: {e}") from e


def parse_status_records(data: str) -> List[LeaseRecord]:
    """Parse a dnsmasq status snapshot. Empty content means no leases."""
    if not data.strip():
        return []
    try:
        return _status_adapter.validate_json(data)
    except ValidationError as e:
        raise MalformedLeaseError(f"reading status file: {e}") from e


def parse_status(data: str, mac: str) -> Optional[str]:
    """Return the address leased to ``mac``; the last matching record wins.

    Records without a MAC address (IPv6 leases keyed by DUID) never match.
    """
    ip = None
    for record in parse_status_records(data):
        if record.mac_address == mac:
            ip = record.ip_address
    return ip


def parse_lease_line(line: str) -> LeaseRecord:
    """Parse ``<expiry> <mac> <ip> <hostname> <client-id>``."""
    entry = line.split(" ")
    if len(entry) != 5:
        raise MalformedLeaseError(f"malformed leases entry: {entry}")
    expiry, mac, ip, hostname, client_id = entry
    return LeaseRecord(
        mac_address=mac,
        ip_address=ip,
        hostname=hostname,
        client_id=client_id,
        expiry_time=int(expiry) if expiry.isdigit() else None,
    )


def parse_leases(data: str, mac: str) -> Optional[str]:
    """Return the address leased to ``mac``; later lines override earlier ones.

    Any line that does not have exactly five fields aborts the parse.
    """
    ip = None
    for line in data.split("\n"):
        if not line:
            continue
        record = parse_lease_line(line)
        if record.mac_address == mac:
            ip = record.ip_address
    return ip


def lookup_ip_from_status_file(
    conn: HypervisorConnection, network: str, mac: str, base: Optional[Path] = None
) -> Optional[str]:
    try:
        handle = conn.lookup_network(network)
    except HypervisorError as e:
        raise LeaseError(f"looking up network by name: {e}") from e

    with handle:
        try:
            bridge = handle.bridge_name()
        except HypervisorError as e:
            log.warning(f"Failed to get network bridge: {e}")
            raise

    return parse_status(_read(status_file_path(bridge, base)), mac)


def lookup_ip_from_leases_file(network: str, mac: str, base: Optional[Path] = None) -> Optional[str]:
    return parse_leases(_read(leases_file_path(network, base)), mac)


def lookup_ip(
    conn: HypervisorConnection, network: str, mac: str, base: Optional[Path] = None
) -> Optional[str]:
    """Return the address dnsmasq handed to ``mac`` on ``network``, or None."""
    try:
        version = conn.get_lib_version()
    except HypervisorError as e:
        raise LeaseError(f"getting libversion: {e}") from e

    if version < LEASE_STATUS_MIN_LIBVERSION:
        log.debug("lease_lookup", source="leases", libversion=version, network=network)
        return lookup_ip_from_leases_file(network, mac, base)

    log.debug("lease_lookup", source="status", libversion=version, network=network)
    return lookup_ip_from_status_file(conn, network, mac, base)
