"""Tests for network XML rendering and domain XML parsing."""

import pytest

from kvmnet.errors import DomainDefinitionError
from kvmnet.models import NetworkTemplate
from kvmnet.network_xml import parse_domain_definition, render_network_xml

EXPECTED_DEFAULT_XML = """
<network>
  <name>kvmnet-net</name>
  <dns enable='no'/>
  <ip address='192.168.39.1' netmask='255.255.255.0'>
    <dhcp>
      <range start='192.168.39.2' end='192.168.39.254'/>
    </dhcp>
  </ip>
</network>
"""


class TestRenderNetworkXml:
    def test_default_template_is_stable(self):
        assert render_network_xml("kvmnet-net") == EXPECTED_DEFAULT_XML

    def test_explicit_default_template_matches(self):
        assert render_network_xml("kvmnet-net", NetworkTemplate()) == EXPECTED_DEFAULT_XML

    def test_custom_addressing(self):
        template = NetworkTemplate(
            gateway="10.10.0.1",
            netmask="255.255.0.0",
            dhcp_start="10.10.0.10",
            dhcp_end="10.10.0.99",
        )
        xml = render_network_xml("lab", template)
        assert "<ip address='10.10.0.1' netmask='255.255.0.0'>" in xml
        assert "<range start='10.10.0.10' end='10.10.0.99'/>" in xml

    def test_name_is_escaped(self):
        xml = render_network_xml("a<b&c")
        assert "<name>a&lt;b&amp;c</name>" in xml


class TestParseDomainDefinition:
    def test_extracts_name_and_networks(self):
        xml = """
        <domain type='kvm'>
          <name>node2</name>
          <uuid>0b1d7a4e-0000-0000-0000-000000000000</uuid>
          <devices>
            <disk type='file' device='disk'><source file='/var/lib/libvirt/images/n.qcow2'/></disk>
            <interface type='network'>
              <mac address='52:54:00:01:02:03'/>
              <source network='default'/>
            </interface>
            <interface type='network'>
              <source network='kvmnet-net'/>
            </interface>
            <interface type='bridge'>
              <source bridge='br0'/>
            </interface>
          </devices>
        </domain>
        """
        definition = parse_domain_definition(xml)
        assert definition.name == "node2"
        assert definition.networks == ["default", "kvmnet-net"]
        assert definition.uses_network("kvmnet-net")
        assert not definition.uses_network("br0")

    def test_domain_without_interfaces(self):
        definition = parse_domain_definition("<domain><name>bare</name></domain>")
        assert definition.name == "bare"
        assert definition.networks == []

    def test_invalid_xml(self):
        with pytest.raises(DomainDefinitionError):
            parse_domain_definition("<domain>")
