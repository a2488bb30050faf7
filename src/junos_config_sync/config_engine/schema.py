"""Resource descriptions and engine data types.

Every resource kind is a dataclass with one class per nesting level. An
empty string, zero or False means "not configured": a set line with an
empty value and a missing line look the same on the device. Integer fields
whose zero is a legal device value are Optional instead.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from ..devices.base import DeviceFacts


class Classification(str, Enum):
    """Observed state of an interface scope."""
    UNCONFIGURED = "unconfigured"
    ADMINISTRATIVELY_DISABLED = "administratively_disabled"   # NC placeholder
    CONFIGURED = "configured"


class ResourceKind(str, Enum):
    """Resource families handled by the engine."""
    INTERFACE = "interface"
    INTERFACE_PHYSICAL = "interface_physical"
    INTERFACE_LOGICAL = "interface_logical"
    SECURITY_ZONE = "security_zone"
    ZONE_BOOK_ADDRESS = "zone_book_address"
    OSPF_AREA = "ospf_area"
    IPSEC_VPN = "ipsec_vpn"


# --- Directives ---

@dataclass
class DirectiveBatch:
    """Ordered set/delete lines for one resource mutation."""
    lines: list[str] = field(default_factory=list)
    # Identifiers minted by the compiler (e.g. bind_interface -> st0.3)
    allocations: dict[str, str] = field(default_factory=dict)

    def set(self, path: str) -> None:
        self.lines.append(f"set {path}")

    def delete(self, path: str) -> None:
        self.lines.append(f"delete {path}")

    def extend(self, other: "DirectiveBatch") -> None:
        self.lines.extend(other.lines)
        self.allocations.update(other.allocations)

    def __iter__(self):
        return iter(self.lines)

    def __len__(self) -> int:
        return len(self.lines)


@dataclass(frozen=True)
class DeviceContext:
    """Per-operation view of the device the compiler may consult.

    Snapshots are raw dump text captured under the read guard:
    interfaces_config is ``show configuration interfaces | display set relative``,
    tunnel_units is ``show interfaces st0 terse``.
    """
    facts: DeviceFacts = field(default_factory=DeviceFacts)
    group_interface_delete: str = ""
    interfaces_config: Optional[str] = None
    tunnel_units: Optional[str] = None
    # Aggregated parent the resource was bound to before an update
    previous_ae: str = ""


@dataclass(frozen=True)
class Selector:
    """Identity of the scope a dump was read from."""
    kind: ResourceKind
    name: str = ""
    zone: str = ""
    area_id: str = ""
    version: str = "v2"
    routing_instance: str = "default"

    def absolute_prefix(self) -> str:
        """Path prefix a non-relative dump carries before the relative part."""
        if self.kind in (
            ResourceKind.INTERFACE,
            ResourceKind.INTERFACE_PHYSICAL,
            ResourceKind.INTERFACE_LOGICAL,
        ):
            if "." in self.name:
                physical, unit = self.name.split(".", 1)
                return f"interfaces {physical} unit {unit} "
            return f"interfaces {self.name} "
        if self.kind == ResourceKind.SECURITY_ZONE:
            return f"security zones security-zone {self.name} "
        if self.kind == ResourceKind.ZONE_BOOK_ADDRESS:
            return f"security zones security-zone {self.zone} address-book address {self.name} "
        if self.kind == ResourceKind.OSPF_AREA:
            return ospf_area_path(self.area_id, self.version, self.routing_instance) + " "
        if self.kind == ResourceKind.IPSEC_VPN:
            return f"security ipsec vpn {self.name} "
        return ""


def ospf_area_path(area_id: str, version: str = "v2", routing_instance: str = "default") -> str:
    protocol = "ospf3" if version == "v3" else "ospf"
    path = f"protocols {protocol} area {area_id}"
    if routing_instance and routing_instance != "default":
        path = f"routing-instances {routing_instance} {path}"
    return path


# --- Addresses and VRRP ---

@dataclass
class TrackInterface:
    interface: str
    priority_cost: int = 0


@dataclass
class TrackRoute:
    route: str
    routing_instance: str
    priority_cost: int = 0


@dataclass
class VrrpGroup:
    """IPv4 VRRP group (``vrrp-group``)."""
    identifier: int
    virtual_address: list[str] = field(default_factory=list)
    accept_data: bool = False
    advertise_interval: int = 0
    advertisements_threshold: int = 0
    authentication_key: str = ""
    authentication_type: str = ""
    no_accept_data: bool = False
    no_preempt: bool = False
    preempt: bool = False
    priority: int = 0
    track_interface: list[TrackInterface] = field(default_factory=list)
    track_route: list[TrackRoute] = field(default_factory=list)


@dataclass
class Inet6VrrpGroup:
    """IPv6 VRRP group (``vrrp-inet6-group``)."""
    identifier: int
    virtual_address: list[str] = field(default_factory=list)
    virtual_link_local_address: str = ""
    accept_data: bool = False
    advertise_interval: int = 0
    advertisements_threshold: int = 0
    no_accept_data: bool = False
    no_preempt: bool = False
    preempt: bool = False
    priority: int = 0
    track_interface: list[TrackInterface] = field(default_factory=list)
    track_route: list[TrackRoute] = field(default_factory=list)


AnyVrrpGroup = Union[VrrpGroup, Inet6VrrpGroup]


@dataclass
class InetAddress:
    """One address of a family, with its VRRP groups."""
    address: str
    preferred: bool = False
    primary: bool = False
    vrrp_group: list[AnyVrrpGroup] = field(default_factory=list)


@dataclass
class RpfCheck:
    fail_filter: str = ""
    mode_loose: bool = False


@dataclass
class FamilyInet:
    address: list[InetAddress] = field(default_factory=list)
    filter_input: str = ""
    filter_output: str = ""
    mtu: int = 0
    rpf_check: Optional[RpfCheck] = None
    sampling_input: bool = False
    sampling_output: bool = False


@dataclass
class FamilyInet6(FamilyInet):
    dad_disable: bool = False


# --- Interfaces ---

@dataclass
class Interface:
    """Unified interface: physical or ``<physical>.<unit>``."""
    name: str
    description: str = ""
    vlan_tagging: bool = False
    vlan_tagging_id: int = 0
    inet: bool = False
    inet6: bool = False
    inet_address: list[InetAddress] = field(default_factory=list)
    inet6_address: list[InetAddress] = field(default_factory=list)
    inet_mtu: int = 0
    inet6_mtu: int = 0
    inet_filter_input: str = ""
    inet_filter_output: str = ""
    inet6_filter_input: str = ""
    inet6_filter_output: str = ""
    inet_rpf_check: Optional[RpfCheck] = None
    inet6_rpf_check: Optional[RpfCheck] = None
    ether802_3ad: str = ""
    trunk: bool = False
    vlan_members: list[str] = field(default_factory=list)
    vlan_native: int = 0
    ae_lacp: str = ""
    ae_link_speed: str = ""
    ae_minimum_links: int = 0
    security_zone: str = ""
    routing_instance: str = ""
    # Behaviour on delete, never read back from the device
    complete_destroy: bool = False


@dataclass
class EtherOptions:
    """ether-options / gigether-options block."""
    ae_8023ad: str = ""
    auto_negotiation: bool = False
    no_auto_negotiation: bool = False
    flow_control: bool = False
    no_flow_control: bool = False
    loopback: bool = False
    no_loopback: bool = False
    redundant_parent: str = ""


@dataclass
class Lacp:
    mode: str = ""   # active, passive
    admin_key: Optional[int] = None
    periodic: str = ""
    sync_reset: str = ""
    system_id: str = ""
    system_priority: Optional[int] = None


@dataclass
class ParentEtherOptions:
    """aggregated-ether-options (ae*) or redundant-ether-options (reth*)."""
    flow_control: bool = False
    no_flow_control: bool = False
    lacp: Optional[Lacp] = None
    loopback: bool = False
    no_loopback: bool = False
    link_speed: str = ""
    minimum_bandwidth: str = ""   # "<value> [<unit>]"
    minimum_links: int = 0
    redundancy_group: int = 0
    source_address_filter: list[str] = field(default_factory=list)
    source_filtering: bool = False


@dataclass
class Esi:
    identifier: str = ""
    mode: str = ""   # all-active, single-active
    auto_derive_lacp: bool = False
    df_election_type: str = ""
    source_bmac: str = ""


@dataclass
class PhysicalInterface:
    name: str
    description: str = ""
    ae_lacp: str = ""
    ae_link_speed: str = ""
    ae_minimum_links: int = 0
    esi: Optional[Esi] = None
    ether802_3ad: str = ""
    ether_opts: Optional[EtherOptions] = None
    gigether_opts: Optional[EtherOptions] = None
    parent_ether_opts: Optional[ParentEtherOptions] = None
    trunk: bool = False
    vlan_members: list[str] = field(default_factory=list)
    vlan_native: int = 0
    vlan_tagging: bool = False
    no_disable_on_destroy: bool = False

    def aggregated_parent(self) -> str:
        """The ae interface this one is a member of, if any."""
        if self.ether802_3ad:
            return self.ether802_3ad
        if self.ether_opts and self.ether_opts.ae_8023ad:
            return self.ether_opts.ae_8023ad
        if self.gigether_opts and self.gigether_opts.ae_8023ad:
            return self.gigether_opts.ae_8023ad
        return ""


@dataclass
class LogicalInterface:
    name: str
    description: str = ""
    family_inet: Optional[FamilyInet] = None
    family_inet6: Optional[FamilyInet6] = None
    routing_instance: str = ""
    security_zone: str = ""
    security_inbound_protocols: list[str] = field(default_factory=list)
    security_inbound_services: list[str] = field(default_factory=list)
    vlan_id: int = 0
    vlan_no_compute: bool = False
    # Keep st0 units removed on delete instead of re-adding them empty
    st0_also_on_destroy: bool = False


# --- Security zones ---

@dataclass
class AddressBookAddress:
    name: str
    network: str
    description: str = ""


@dataclass
class AddressBookDns:
    name: str
    fqdn: str
    description: str = ""
    ipv4_only: bool = False
    ipv6_only: bool = False


@dataclass
class AddressBookRange:
    name: str
    from_address: str
    to_address: str
    description: str = ""


@dataclass
class AddressBookWildcard:
    name: str
    network: str
    description: str = ""


@dataclass
class AddressBookSet:
    name: str
    address: list[str] = field(default_factory=list)
    address_set: list[str] = field(default_factory=list)
    description: str = ""


@dataclass
class ZoneInterface:
    name: str
    inbound_protocols: list[str] = field(default_factory=list)
    inbound_services: list[str] = field(default_factory=list)


@dataclass
class SecurityZone:
    name: str
    address_book: list[AddressBookAddress] = field(default_factory=list)
    address_book_dns: list[AddressBookDns] = field(default_factory=list)
    address_book_range: list[AddressBookRange] = field(default_factory=list)
    address_book_wildcard: list[AddressBookWildcard] = field(default_factory=list)
    address_book_set: list[AddressBookSet] = field(default_factory=list)
    # Entries managed one by one as ZoneBookAddress resources
    address_book_configure_singly: bool = False
    advance_policy_based_routing_profile: str = ""
    application_tracking: bool = False
    description: str = ""
    inbound_protocols: list[str] = field(default_factory=list)
    inbound_services: list[str] = field(default_factory=list)
    interface: list[ZoneInterface] = field(default_factory=list)
    reverse_reroute: bool = False
    screen: str = ""
    source_identity_log: bool = False
    tcp_rst: bool = False


@dataclass
class ZoneBookAddress:
    """Single address-book address in a zone. Exactly one form is set."""
    zone: str
    name: str
    cidr: str = ""
    description: str = ""
    dns_name: str = ""
    dns_ipv4_only: bool = False
    dns_ipv6_only: bool = False
    range_from: str = ""
    range_to: str = ""
    wildcard: str = ""


# --- OSPF ---

@dataclass
class OspfMd5Key:
    key_id: int
    key: str
    start_time: str = ""


@dataclass
class OspfBandwidthMetric:
    bandwidth: str
    metric: int


@dataclass
class OspfNeighbor:
    address: str
    eligible: bool = False


@dataclass
class OspfInterface:
    name: str
    authentication_simple_password: str = ""
    authentication_md5: list[OspfMd5Key] = field(default_factory=list)
    bandwidth_based_metrics: list[OspfBandwidthMetric] = field(default_factory=list)
    dead_interval: int = 0
    demand_circuit: bool = False
    disable: bool = False
    dynamic_neighbors: bool = False
    flood_reduction: bool = False
    hello_interval: int = 0
    interface_type: str = ""
    ipsec_sa: str = ""
    link_protection: bool = False
    metric: int = 0
    mtu: int = 0
    neighbor: list[OspfNeighbor] = field(default_factory=list)
    no_advertise_adjacency_segment: bool = False
    no_eligible_backup: bool = False
    no_eligible_remote_backup: bool = False
    no_interface_state_traps: bool = False
    no_neighbor_down_notification: bool = False
    node_link_protection: bool = False
    passive: bool = False
    poll_interval: int = 0
    priority: Optional[int] = None
    retransmit_interval: int = 0
    secondary: bool = False
    strict_bfd: bool = False
    te_metric: int = 0
    transit_delay: int = 0


@dataclass
class OspfArea:
    area_id: str
    version: str = "v2"
    routing_instance: str = "default"
    interface: list[OspfInterface] = field(default_factory=list)


# --- IPsec ---

@dataclass
class IpsecVpnIke:
    gateway: str
    policy: str
    identity_local: str = ""
    identity_remote: str = ""
    identity_service: str = ""


@dataclass
class IpsecVpnMonitor:
    destination_ip: str = ""
    optimized: bool = False
    source_interface: str = ""
    # Use the bind interface as monitor source
    source_interface_auto: bool = False


@dataclass
class IpsecVpn:
    name: str
    bind_interface: str = ""
    # Allocate the bind interface from the first free st0 unit
    bind_interface_auto: bool = False
    df_bit: str = ""   # clear, copy, set
    establish_tunnels: str = ""   # immediately, on-traffic
    ike: Optional[IpsecVpnIke] = None
    vpn_monitor: Optional[IpsecVpnMonitor] = None


ResourceDescription = Union[
    Interface,
    PhysicalInterface,
    LogicalInterface,
    SecurityZone,
    ZoneBookAddress,
    OspfArea,
    IpsecVpn,
]
