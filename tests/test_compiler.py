"""Tests for the line compiler."""
import pytest

from junos_config_sync.config_engine.compiler import (
    LineCompiler,
    implicit_vlan_id,
    interface_path,
    split_interface_name,
)
from junos_config_sync.config_engine.parser import StateParser, shape_physical
from junos_config_sync.config_engine.schema import (
    AddressBookAddress,
    AddressBookDns,
    AddressBookRange,
    AddressBookSet,
    DeviceContext,
    FamilyInet,
    InetAddress,
    Interface,
    IpsecVpn,
    IpsecVpnIke,
    IpsecVpnMonitor,
    Lacp,
    LogicalInterface,
    OspfArea,
    OspfInterface,
    OspfMd5Key,
    ParentEtherOptions,
    PhysicalInterface,
    ResourceKind,
    SecurityZone,
    Selector,
    TrackInterface,
    VrrpGroup,
    ZoneBookAddress,
)
from junos_config_sync.devices.base import DeviceFacts, EMPTY_SENTINEL
from junos_config_sync.errors import ConflictingOptions, StructuralConstraintViolation


@pytest.fixture
def compiler():
    return LineCompiler()


def committed(batch) -> str:
    """Dump a device would print after committing ``batch`` (absolute form)."""
    return "\n".join(batch.lines) + "\n"


class TestNames:
    """Tests for interface name helpers."""

    def test_split(self):
        assert split_interface_name("ge-0/0/0.10") == ("ge-0/0/0", "10")
        assert split_interface_name("ae0") == ("ae0", "")

    def test_too_many_dots(self):
        with pytest.raises(StructuralConstraintViolation, match="contains too dots"):
            split_interface_name("ge-0/0/0.1.2")

    def test_path(self):
        assert interface_path("ge-0/0/0.10") == "ge-0/0/0 unit 10"
        assert interface_path("irb") == "irb"

    def test_implicit_vlan_id(self):
        """Units get their number as vlan-id, except unit 0 and exempt parents."""
        assert implicit_vlan_id("ge-0/0/0.10") == 10
        assert implicit_vlan_id("ge-0/0/0.0") == 0
        assert implicit_vlan_id("irb.10") == 0
        assert implicit_vlan_id("st0.3") == 0
        assert implicit_vlan_id("ge-0/0/0") == 0


class TestInterfaceCompile:
    """Tests for the unified interface resource."""

    def test_ae0_example(self, compiler):
        """The documented ae0 example compiles to three ordered lines and parses back."""
        desired = Interface(
            name="ae0", vlan_tagging=True, inet=True,
            inet_address=[InetAddress(address="10.0.0.1/24")],
        )
        batch = compiler.compile(desired)
        assert batch.lines == [
            "set interfaces ae0 vlan-tagging",
            "set interfaces ae0 family inet",
            "set interfaces ae0 family inet address 10.0.0.1/24",
        ]
        parsed = StateParser().parse(committed(batch), Selector(ResourceKind.INTERFACE, name="ae0"))
        assert parsed == desired

    def test_bare_physical(self, compiler):
        """An interface with nothing set still gets its own line."""
        assert compiler.compile(Interface(name="ge-0/0/3")).lines == ["set interfaces ge-0/0/3"]

    def test_implicit_vlan_id_line(self, compiler):
        """A unit gets vlan-id from its number, so no bare line is needed."""
        assert compiler.compile(Interface(name="ge-0/0/3.100")).lines == [
            "set interfaces ge-0/0/3 unit 100 vlan-id 100",
        ]

    def test_st0_unit(self, compiler):
        assert compiler.compile(Interface(name="st0.1")).lines == ["set interfaces st0 unit 1"]

    def test_rejected_fields(self, compiler):
        """Unit-only fields are refused on a physical name and vice versa."""
        with pytest.raises(StructuralConstraintViolation, match="security_zone invalid"):
            compiler.compile(Interface(name="ge-0/0/3", security_zone="trust"))
        with pytest.raises(StructuralConstraintViolation, match="trunk invalid"):
            compiler.compile(Interface(name="ge-0/0/3.1", trunk=True))

    def test_aggregated_member(self, compiler):
        """Joining an ae parent sets the chassis device count after the member lines."""
        ctx = DeviceContext(interfaces_config=EMPTY_SENTINEL)
        batch = compiler.compile(Interface(name="ge-0/0/0", ether802_3ad="ae0"), ctx)
        assert batch.lines == [
            "set interfaces ge-0/0/0 ether-options 802.3ad ae0",
            "set interfaces ge-0/0/0 gigether-options 802.3ad ae0",
            "set chassis aggregated-devices ethernet device-count 1",
        ]
        assert batch.allocations == {"device_count": "1"}

    def test_aggregated_member_needs_snapshot(self, compiler):
        with pytest.raises(StructuralConstraintViolation):
            compiler.compile(Interface(name="ge-0/0/0", ether802_3ad="ae0"))

    def test_zone_only_on_security_platform(self, compiler):
        desired = Interface(name="ge-0/0/3.100", security_zone="trust")
        srx = DeviceContext(facts=DeviceFacts(hardware_model="srx345"))
        ex = DeviceContext(facts=DeviceFacts(hardware_model="ex4300-48t"))
        zone_line = "set security zones security-zone trust interfaces ge-0/0/3.100"
        assert zone_line in compiler.compile(desired, srx).lines
        assert zone_line not in compiler.compile(desired, ex).lines


class TestVrrp:
    """Tests for VRRP groups."""

    def test_conflicting_preempt(self, compiler):
        """preempt with no_preempt fails before any line is produced."""
        desired = LogicalInterface(
            name="ge-0/0/3.100",
            family_inet=FamilyInet(address=[InetAddress(
                address="192.0.2.1/24",
                vrrp_group=[VrrpGroup(identifier=1, preempt=True, no_preempt=True)],
            )]),
        )
        with pytest.raises(ConflictingOptions):
            compiler.compile(desired)

    def test_duplicate_identifier(self, compiler):
        desired = LogicalInterface(
            name="ge-0/0/3.100",
            family_inet=FamilyInet(address=[InetAddress(
                address="192.0.2.1/24",
                vrrp_group=[VrrpGroup(identifier=1), VrrpGroup(identifier=1)],
            )]),
        )
        with pytest.raises(StructuralConstraintViolation, match="same identifier 1"):
            compiler.compile(desired)

    def test_no_vrrp_on_st0(self, compiler):
        desired = LogicalInterface(
            name="st0.1",
            family_inet=FamilyInet(address=[InetAddress(
                address="10.255.0.1/30", vrrp_group=[VrrpGroup(identifier=1)],
            )]),
        )
        with pytest.raises(StructuralConstraintViolation, match="st0"):
            compiler.compile(desired)


class TestRoundTrip:
    """compile then parse gives the description back."""

    def test_logical(self, compiler):
        desired = LogicalInterface(
            name="ge-0/0/3.100",
            description="wan uplink",
            family_inet=FamilyInet(
                address=[InetAddress(
                    address="192.0.2.1/24",
                    vrrp_group=[VrrpGroup(
                        identifier=1,
                        virtual_address=["192.0.2.254"],
                        preempt=True,
                        priority=150,
                        track_interface=[TrackInterface(interface="ge-0/0/4", priority_cost=20)],
                    )],
                )],
                mtu=1500,
            ),
            vlan_id=300,
        )
        batch = compiler.compile(desired)
        parsed = StateParser().parse(
            committed(batch), Selector(ResourceKind.INTERFACE_LOGICAL, name=desired.name)
        )
        assert parsed == desired

    def test_physical_aggregate(self, compiler):
        """Zero LACP admin-key survives the trip."""
        desired = PhysicalInterface(
            name="ae1",
            description="core",
            parent_ether_opts=ParentEtherOptions(lacp=Lacp(mode="active", admin_key=0), minimum_links=2),
            vlan_tagging=True,
        )
        batch = compiler.compile(desired, DeviceContext(interfaces_config=EMPTY_SENTINEL))
        parsed = StateParser().parse(
            committed(batch), Selector(ResourceKind.INTERFACE_PHYSICAL, name="ae1")
        )
        assert shape_physical(parsed, desired) == desired
        assert batch.allocations["device_count"] == "2"

    def test_security_zone(self, compiler):
        desired = SecurityZone(
            name="trust",
            address_book=[AddressBookAddress(name="web", network="192.0.2.10/32", description="web server")],
            address_book_dns=[AddressBookDns(name="api", fqdn="api.example.com", ipv4_only=True)],
            address_book_range=[AddressBookRange(name="pool", from_address="192.0.2.100",
                                                 to_address="192.0.2.150")],
            address_book_set=[AddressBookSet(name="servers", address=["api", "web"])],
            description="inside",
            inbound_services=["ping", "ssh"],
            tcp_rst=True,
        )
        batch = compiler.compile(desired)
        parsed = StateParser().parse(committed(batch), Selector(ResourceKind.SECURITY_ZONE, name="trust"))
        assert parsed == desired

    def test_zone_book_address(self, compiler):
        desired = ZoneBookAddress(zone="trust", name="web", cidr="192.0.2.10/32", description="web")
        batch = compiler.compile(desired)
        parsed = StateParser().parse(
            committed(batch), Selector(ResourceKind.ZONE_BOOK_ADDRESS, zone="trust", name="web")
        )
        assert parsed == desired

    def test_ospf_area(self, compiler):
        """A zero priority is kept apart from an unset one."""
        desired = OspfArea(
            area_id="0.0.0.0",
            interface=[OspfInterface(
                name="ge-0/0/3.100", passive=True, metric=10, priority=0,
                authentication_md5=[OspfMd5Key(key_id=1, key="secret")],
            )],
        )
        batch = compiler.compile(desired)
        assert batch.lines[0] == "set protocols ospf area 0.0.0.0 interface ge-0/0/3.100"
        parsed = StateParser().parse(
            committed(batch), Selector(ResourceKind.OSPF_AREA, area_id="0.0.0.0")
        )
        assert parsed == desired

    def test_ipsec_vpn(self, compiler):
        desired = IpsecVpn(
            name="vpn-hq",
            bind_interface="st0.1",
            df_bit="clear",
            establish_tunnels="immediately",
            ike=IpsecVpnIke(gateway="gw-hq", policy="pol-hq", identity_local="10.0.0.0/24"),
            vpn_monitor=IpsecVpnMonitor(destination_ip="10.0.0.1", optimized=True),
        )
        batch = compiler.compile(desired)
        parsed = StateParser().parse(committed(batch), Selector(ResourceKind.IPSEC_VPN, name="vpn-hq"))
        assert parsed == desired


class TestLogicalCompile:
    """Tests for logical interface specifics."""

    def test_zone_membership(self, compiler):
        desired = LogicalInterface(
            name="ge-0/0/3.100", security_zone="trust", security_inbound_services=["ssh", "ping"],
        )
        assert compiler.compile(desired).lines == [
            "set interfaces ge-0/0/3 unit 100",
            "set security zones security-zone trust interfaces ge-0/0/3.100",
            "set security zones security-zone trust interfaces ge-0/0/3.100 host-inbound-traffic system-services ping",
            "set security zones security-zone trust interfaces ge-0/0/3.100 host-inbound-traffic system-services ssh",
            "set interfaces ge-0/0/3 unit 100 vlan-id 100",
        ]

    def test_inbound_needs_zone(self, compiler):
        with pytest.raises(StructuralConstraintViolation, match="need security_zone"):
            compiler.compile(LogicalInterface(name="ge-0/0/3.100", security_inbound_protocols=["ospf"]))

    def test_needs_one_dot(self, compiler):
        with pytest.raises(StructuralConstraintViolation, match="one dot"):
            compiler.compile(LogicalInterface(name="ge-0/0/3"))

    def test_vlan_no_compute(self, compiler):
        batch = compiler.compile(LogicalInterface(name="ge-0/0/3.100", vlan_no_compute=True))
        assert batch.lines == ["set interfaces ge-0/0/3 unit 100"]


class TestOtherKinds:
    """Validation of the non-interface kinds."""

    def test_ospf_needs_interface(self, compiler):
        with pytest.raises(StructuralConstraintViolation, match="at least one interface"):
            compiler.compile(OspfArea(area_id="0.0.0.1"))

    def test_ospf_v3_in_instance(self, compiler):
        desired = OspfArea(area_id="0.0.0.1", version="v3", routing_instance="blue",
                           interface=[OspfInterface(name="ge-0/0/1.0")])
        assert compiler.compile(desired).lines == [
            "set routing-instances blue protocols ospf3 area 0.0.0.1 interface ge-0/0/1.0",
        ]

    def test_md5_conflicts_with_password(self, compiler):
        desired = OspfArea(area_id="0.0.0.0", interface=[OspfInterface(
            name="ge-0/0/1.0", authentication_simple_password="pw",
            authentication_md5=[OspfMd5Key(key_id=1, key="k")],
        )])
        with pytest.raises(ConflictingOptions):
            compiler.compile(desired)

    def test_book_address_one_form(self, compiler):
        with pytest.raises(StructuralConstraintViolation, match="exactly one"):
            compiler.compile(ZoneBookAddress(zone="trust", name="x", cidr="192.0.2.1/32", wildcard="10.0.0.0/255.0.0.255"))
        with pytest.raises(StructuralConstraintViolation, match="exactly one"):
            compiler.compile(ZoneBookAddress(zone="trust", name="x"))

    def test_vpn_auto_bind(self, compiler):
        """The first st0 unit missing from the terse output is allocated."""
        ctx = DeviceContext(tunnel_units="st0                     up    up\n"
                                         "st0.0                   up    up   inet\n"
                                         "st0.1                   up    up   inet\n")
        desired = IpsecVpn(
            name="vpn-hq", bind_interface_auto=True,
            vpn_monitor=IpsecVpnMonitor(source_interface_auto=True),
        )
        batch = compiler.compile(desired, ctx)
        assert batch.allocations == {"bind_interface": "st0.2"}
        assert batch.lines == [
            "set interfaces st0 unit 2",
            "set security ipsec vpn vpn-hq bind-interface st0.2",
            "set security ipsec vpn vpn-hq vpn-monitor",
            "set security ipsec vpn vpn-hq vpn-monitor source-interface st0.2",
        ]

    def test_vpn_monitor_both_sources(self, compiler):
        """An explicit source is kept and the bound unit follows it."""
        desired = IpsecVpn(
            name="vpn-hq", bind_interface="st0.3", bind_interface_auto=True,
            vpn_monitor=IpsecVpnMonitor(source_interface="ge-0/0/0.0", source_interface_auto=True),
        )
        assert compiler.compile(desired).lines == [
            "set interfaces st0 unit 3",
            "set security ipsec vpn vpn-hq bind-interface st0.3",
            "set security ipsec vpn vpn-hq vpn-monitor",
            "set security ipsec vpn vpn-hq vpn-monitor source-interface ge-0/0/0.0",
            "set security ipsec vpn vpn-hq vpn-monitor source-interface st0.3",
        ]

    def test_vpn_bad_df_bit(self, compiler):
        with pytest.raises(StructuralConstraintViolation, match="df_bit"):
            compiler.compile(IpsecVpn(name="vpn-hq", df_bit="maybe"))


class TestDeleteAndReset:
    """Tests for delete, reset and placeholder batches."""

    def test_st0_unit_readded(self, compiler):
        """st0 units come back empty unless asked otherwise."""
        assert compiler.compile_delete(LogicalInterface(name="st0.1")).lines == [
            "delete interfaces st0 unit 1",
            "set interfaces st0 unit 1",
        ]
        assert compiler.compile_delete(LogicalInterface(name="st0.1", st0_also_on_destroy=True)).lines == [
            "delete interfaces st0 unit 1",
        ]

    def test_last_member_recounts(self, compiler):
        snapshot = (
            "set ge-0/0/0 ether-options 802.3ad ae0\n"
            "set ge-0/0/1 ether-options 802.3ad ae2\n"
        )
        batch = compiler.compile_delete(
            PhysicalInterface(name="ge-0/0/1", ether802_3ad="ae2"),
            DeviceContext(interfaces_config=snapshot),
        )
        assert batch.lines == [
            "delete interfaces ge-0/0/1",
            "set chassis aggregated-devices ethernet device-count 1",
        ]

    def test_legacy_zone_kept_off_security(self, compiler):
        current = Interface(name="ge-0/0/3.100", security_zone="trust", routing_instance="blue")
        ctx = DeviceContext(facts=DeviceFacts(hardware_model="ex4300-48t"))
        assert compiler.compile_delete(current, ctx).lines == [
            "delete interfaces ge-0/0/3 unit 100",
            "delete routing-instances blue interface ge-0/0/3.100",
        ]

    def test_zone_reset_keeps_singly_book(self, compiler):
        lines = compiler.compile_reset(SecurityZone(name="trust", address_book_configure_singly=True)).lines
        assert "delete security zones security-zone trust address-book" not in lines
        assert "delete security zones security-zone trust host-inbound-traffic" in lines

    def test_placeholder(self, compiler):
        assert compiler.placeholder("ge-0/0/3").lines == ["set interfaces ge-0/0/3 disable description NC"]
        assert compiler.placeholder("ge-0/0/3", "NC-GROUP").lines == [
            "set interfaces ge-0/0/3 apply-groups NC-GROUP",
        ]
        assert compiler.placeholder("st0.1", "NC-GROUP").lines == [
            "set interfaces st0 unit 1 disable description NC",
        ]

    def test_clear_placeholder(self, compiler):
        assert compiler.clear_placeholder("ge-0/0/3.100", "NC-GROUP").lines == [
            "delete interfaces ge-0/0/3 unit 100 apply-groups NC-GROUP",
            "delete interfaces ge-0/0/3 unit 100 description",
            "delete interfaces ge-0/0/3 unit 100 disable",
        ]
