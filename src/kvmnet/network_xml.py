"""
Network definition rendering and domain definition parsing.
"""

import xml.etree.ElementTree as ET
from typing import Optional
from xml.sax.saxutils import escape

from kvmnet.errors import DomainDefinitionError
from kvmnet.models import DomainDefinition, NetworkTemplate

# Deployed networks were defined from this exact text; keep it byte-stable.
NETWORK_TEMPLATE = """
<network>
  <name>{name}</name>
  <dns enable='no'/>
  <ip address='{gateway}' netmask='{netmask}'>
    <dhcp>
      <range start='{dhcp_start}' end='{dhcp_end}'/>
    </dhcp>
  </ip>
</network>
"""


def render_network_xml(name: str, template: Optional[NetworkTemplate] = None) -> str:
    """Render the libvirt definition of the private network."""
    template = template or NetworkTemplate()
    return NETWORK_TEMPLATE.format(
        name=escape(name),
        gateway=template.gateway,
        netmask=template.netmask,
        dhcp_start=template.dhcp_start,
        dhcp_end=template.dhcp_end,
    )


def parse_domain_definition(xml: str) -> DomainDefinition:
    """Extract the domain name and the networks its interfaces attach to.

    Only ``<name>`` and ``<devices><interface><source network=...>`` are
    read; the rest of the document is ignored.
    """
    try:
        root = ET.fromstring(xml)
    except ET.ParseError as e:
        raise DomainDefinitionError(f"invalid domain XML: {e}") from e

    networks = []
    for source in root.findall("./devices/interface/source"):
        network = source.get("network")
        if network:
            networks.append(network)

    return DomainDefinition(name=(root.findtext("name") or "").strip(), networks=networks)
