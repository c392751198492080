#!/usr/bin/env python3
"""
Data models for kvmnet: driver configuration, lease records and network state.
"""

import ipaddress
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from kvmnet.paths import conn_uri


class NetworkTemplate(BaseModel):
    """Addressing values substituted into the private network definition.

    The defaults reproduce the network layout deployed by earlier releases
    and must not change.
    """

    model_config = ConfigDict(frozen=True)

    gateway: str = Field(default="192.168.39.1", description="Host-side gateway address")
    netmask: str = Field(default="255.255.255.0", description="Network mask")
    dhcp_start: str = Field(default="192.168.39.2", description="First DHCP address")
    dhcp_end: str = Field(default="192.168.39.254", description="Last DHCP address")

    @field_validator("gateway", "netmask", "dhcp_start", "dhcp_end")
    @classmethod
    def must_be_ipv4(cls, v: str) -> str:
        try:
            ipaddress.IPv4Address(v)
        except ValueError:
            raise ValueError(f"not an IPv4 address: {v!r}")
        return v


class DriverConfig(BaseModel):
    """Settings handed in by the orchestrator. Read-only for kvmnet."""

    model_config = ConfigDict(frozen=True)

    connection_uri: str = Field(default_factory=conn_uri, description="libvirt connection URI")
    network: str = Field(default="default", description="Host-managed default network")
    private_network: str = Field(default="kvmnet-net", description="Network owned by kvmnet")
    machine_name: str = Field(description="Domain name of the managed VM")
    private_mac: str = Field(description="MAC address of the VM on the private network")
    template: NetworkTemplate = Field(default_factory=NetworkTemplate)
    retry_timeout: float = Field(default=10.0, gt=0, description="Deadline per retry phase (s)")
    retry_interval: float = Field(default=0.5, gt=0, description="Poll interval (s)")
    dnsmasq_dir: Optional[Path] = Field(
        default=None, description="Override for the libvirt dnsmasq state directory"
    )

    @field_validator("connection_uri", "network", "private_network", "machine_name", "private_mac")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("value cannot be empty")
        return v.strip()

    def save(self, path: Path) -> None:
        """Save configuration to YAML file."""
        import yaml

        config_dict = self.model_dump(mode="json", exclude_none=True)
        path.write_text(yaml.dump(config_dict, default_flow_style=False, sort_keys=False))

    @classmethod
    def load(cls, path: Path) -> "DriverConfig":
        """Load configuration from YAML file."""
        import yaml

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        data = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(data)


class LeaseRecord(BaseModel):
    """A MAC to IP association written by libvirt's dnsmasq."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    mac_address: Optional[str] = Field(default=None, alias="mac-address")
    ip_address: str = Field(alias="ip-address")
    hostname: Optional[str] = None
    client_id: Optional[str] = Field(default=None, alias="client-id")
    expiry_time: Optional[int] = Field(default=None, alias="expiry-time")


@dataclass
class DomainDefinition:
    """The parts of a domain definition kvmnet cares about."""

    name: str
    networks: List[str] = field(default_factory=list)

    def uses_network(self, network: str) -> bool:
        return network in self.networks


@dataclass
class NetworkState:
    """Point-in-time view of a libvirt network."""

    name: str
    defined: bool
    active: bool = False
    autostart: bool = False
    bridge: Optional[str] = None

    @property
    def healthy(self) -> bool:
        return self.defined and self.active and self.autostart
