"""
Canonical host paths used by kvmnet.

libvirt's dnsmasq keeps per-network lease state under a well-known
directory; both the legacy ``.leases`` log and the newer ``.status``
snapshot are located from here.
"""

import os
from pathlib import Path
from typing import Optional

DEFAULT_DNSMASQ_DIR = "/var/lib/libvirt/dnsmasq"


# ── libvirt connection URI ───────────────────────────────────────────────────

def conn_uri(user_session: bool = False) -> str:
    """Return the libvirt connection URI for the given session type."""
    return "qemu:///session" if user_session else "qemu:///system"


# ── dnsmasq state ────────────────────────────────────────────────────────────

def dnsmasq_dir(override: Optional[Path] = None) -> Path:
    """Directory holding dnsmasq ``.status`` and ``.leases`` files."""
    if override is not None:
        return Path(override)
    return Path(os.getenv("KVMNET_DNSMASQ_DIR", DEFAULT_DNSMASQ_DIR))


def status_file_path(bridge: str, base: Optional[Path] = None) -> Path:
    """``<dnsmasq_dir>/<bridge>.status`` (libvirt >= 1.2.6)."""
    return dnsmasq_dir(base) / f"{bridge}.status"


def leases_file_path(network: str, base: Optional[Path] = None) -> Path:
    """``<dnsmasq_dir>/<network>.leases`` (older libvirt)."""
    return dnsmasq_dir(base) / f"{network}.leases"
