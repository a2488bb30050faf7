"""State parser for ``display set`` dumps.

Rebuilds resource descriptions from the flattened set lines a device
prints. Each resource kind has an ordered rule table mapping a literal
prefix (or exact literal) to a handler; the longest rule wins. Nested
collections are merged by a stable key so repeated lines about the same
address, VRRP group or OSPF interface land on one object.
"""
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from ..devices.base import EMPTY_SENTINEL, XML_END_TAG_CONFIG_OUT, XML_START_TAG_CONFIG_OUT
from ..errors import MalformedDeviceOutput
from .schema import (
    AddressBookAddress,
    AddressBookDns,
    AddressBookRange,
    AddressBookSet,
    AddressBookWildcard,
    EtherOptions,
    Esi,
    FamilyInet,
    FamilyInet6,
    Inet6VrrpGroup,
    InetAddress,
    Interface,
    IpsecVpn,
    IpsecVpnIke,
    IpsecVpnMonitor,
    Lacp,
    LogicalInterface,
    OspfArea,
    OspfBandwidthMetric,
    OspfInterface,
    OspfMd5Key,
    OspfNeighbor,
    ParentEtherOptions,
    PhysicalInterface,
    ResourceKind,
    RpfCheck,
    SecurityZone,
    Selector,
    TrackInterface,
    TrackRoute,
    VrrpGroup,
    ZoneBookAddress,
    ZoneInterface,
)
from .secret import reveal

SET_PREFIX = "set "

ESI_IDENTIFIER = re.compile(r"^([\d\w]{2}:){9}[\d\w]{2}")

Handler = Callable[[Any, str, str], None]


# --- Dump helpers ---

def config_lines(dump: Optional[str]) -> list[str]:
    """Payload lines of a dump, without envelope markers, sentinel or blanks.

    Trailing spaces are kept: a bare ``set `` line is meaningful.
    """
    if not dump or dump == EMPTY_SENTINEL:
        return []
    lines = []
    for raw in dump.splitlines():
        if XML_START_TAG_CONFIG_OUT in raw:
            continue
        if XML_END_TAG_CONFIG_OUT in raw:
            break
        if not raw.strip():
            continue
        lines.append(raw.rstrip("\r"))
    return lines


def is_empty_dump(dump: Optional[str]) -> bool:
    return not config_lines(dump)


def unquote(value: str) -> str:
    return value.strip('"')


def to_int(value: str, line: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise MalformedDeviceOutput(
            f"failed to convert value from '{line}' to integer"
        ) from None


# --- Rule table ---

class PrefixTable:
    """Ordered (pattern, handler) rules evaluated longest pattern first.

    A pattern ending with a space is a prefix: the handler receives the rest
    of the line. Any other pattern must match the whole line and the handler
    receives an empty value. Lines matching nothing go to ``fallback`` when
    one is set, and are skipped otherwise.
    """

    def __init__(
        self,
        rules: Iterable[tuple[str, Handler]] = (),
        fallback: Optional[Handler] = None,
    ):
        self._rules: list[tuple[str, bool, Handler]] = []
        self.fallback = fallback
        for pattern, handler in rules:
            self.add(pattern, handler)

    def add(self, pattern: str, handler: Handler) -> "PrefixTable":
        self._rules.append((pattern, not pattern.endswith(" "), handler))
        # stable: equal lengths keep registration order
        self._rules.sort(key=lambda rule: len(rule[0]), reverse=True)
        return self

    def extended(self, rules: Iterable[tuple[str, Handler]]) -> "PrefixTable":
        table = PrefixTable(fallback=self.fallback)
        table._rules = list(self._rules)
        for pattern, handler in rules:
            table.add(pattern, handler)
        return table

    def patterns(self) -> list[str]:
        return [rule[0] for rule in self._rules]

    def dispatch(self, target: Any, rest: str, line: str) -> bool:
        for pattern, exact, handler in self._rules:
            if exact:
                if rest == pattern:
                    handler(target, "", line)
                    return True
            elif rest.startswith(pattern):
                handler(target, rest[len(pattern):], line)
                return True
        if self.fallback is not None:
            self.fallback(target, rest, line)
            return True
        return False


# Handler factories

def _text(attr: str, quoted: bool = False) -> Handler:
    def handle(target, value, line):
        setattr(target, attr, unquote(value) if quoted else value)
    return handle


def _number(attr: str) -> Handler:
    def handle(target, value, line):
        setattr(target, attr, to_int(value, line))
    return handle


def _flag(attr: str) -> Handler:
    def handle(target, value, line):
        setattr(target, attr, True)
    return handle


def _secret(attr: str) -> Handler:
    """Quoted value, decoded when the device stored it as a $9$ secret."""
    def handle(target, value, line):
        setattr(target, attr, reveal(unquote(value)))
    return handle


def _append(attr: str, quoted: bool = False) -> Handler:
    def handle(target, value, line):
        item = unquote(value) if quoted else value
        items = getattr(target, attr)
        if item not in items:
            items.append(item)
    return handle


def _nested(attr: str, factory: Callable[[], Any], table: Optional[PrefixTable] = None) -> Handler:
    """Create the 0..1 child on first sight, then parse the rest into it."""
    def handle(target, value, line):
        child = getattr(target, attr)
        if child is None:
            child = factory()
            setattr(target, attr, child)
        if value and table is not None:
            table.dispatch(child, value, line)
    return handle


def _merge(items: list, key: Callable[[Any], Any], value: Any, factory: Callable[[Any], Any]) -> Any:
    for item in items:
        if key(item) == value:
            return item
    item = factory(value)
    items.append(item)
    return item


# --- Addresses and VRRP ---

def _track_interface(group, value, line):
    parts = value.split(" ")
    track = _merge(group.track_interface, lambda t: t.interface, parts[0], TrackInterface)
    if len(parts) > 1:
        track.priority_cost = to_int(parts[-1], line)


def _track_route(group, value, line):
    parts = value.split(" ")
    if len(parts) < 5:
        raise MalformedDeviceOutput(f"unexpected track route line '{line}'")
    track = _merge(
        group.track_route,
        lambda t: (t.route, t.routing_instance),
        (parts[0], parts[2]),
        lambda k: TrackRoute(route=k[0], routing_instance=k[1]),
    )
    track.priority_cost = to_int(parts[-1], line)


_VRRP_COMMON = [
    ("accept-data", _flag("accept_data")),
    ("advertisements-threshold ", _number("advertisements_threshold")),
    ("no-accept-data", _flag("no_accept_data")),
    ("no-preempt", _flag("no_preempt")),
    ("preempt", _flag("preempt")),
    ("priority ", _number("priority")),
    ("track interface ", _track_interface),
    ("track route ", _track_route),
]

VRRP_TABLE = PrefixTable(_VRRP_COMMON + [
    ("virtual-address ", _append("virtual_address")),
    ("advertise-interval ", _number("advertise_interval")),
    ("authentication-key ", _secret("authentication_key")),
    ("authentication-type ", _text("authentication_type")),
])

VRRP6_TABLE = PrefixTable(_VRRP_COMMON + [
    ("virtual-inet6-address ", _append("virtual_address")),
    ("virtual-link-local-address ", _text("virtual_link_local_address")),
    ("inet6-advertise-interval ", _number("advertise_interval")),
])


def _vrrp(factory: Callable[[int], Any], table: PrefixTable) -> Handler:
    def handle(address, value, line):
        identifier, _, rest = value.partition(" ")
        group = _merge(address.vrrp_group, lambda g: g.identifier, to_int(identifier, line), factory)
        if rest:
            table.dispatch(group, rest, line)
    return handle


ADDRESS_TABLE = PrefixTable([
    ("preferred", _flag("preferred")),
    ("primary", _flag("primary")),
    ("vrrp-group ", _vrrp(VrrpGroup, VRRP_TABLE)),
    ("vrrp-inet6-group ", _vrrp(Inet6VrrpGroup, VRRP6_TABLE)),
])


def _address(list_attr: str) -> Handler:
    def handle(target, value, line):
        address, _, rest = value.partition(" ")
        entry = _merge(getattr(target, list_attr), lambda a: a.address, address, InetAddress)
        if rest:
            ADDRESS_TABLE.dispatch(entry, rest, line)
    return handle


RPF_TABLE = PrefixTable([
    ("fail-filter ", _text("fail_filter", quoted=True)),
    ("mode loose", _flag("mode_loose")),
])

FAMILY_TABLE = PrefixTable([
    ("address ", _address("address")),
    ("filter input ", _text("filter_input")),
    ("filter output ", _text("filter_output")),
    ("mtu ", _number("mtu")),
    ("rpf-check", _nested("rpf_check", RpfCheck)),
    ("rpf-check ", _nested("rpf_check", RpfCheck, RPF_TABLE)),
    ("sampling input", _flag("sampling_input")),
    ("sampling output", _flag("sampling_output")),
])

FAMILY6_TABLE = FAMILY_TABLE.extended([
    ("dad-disable", _flag("dad_disable")),
])


# --- Logical interface ---

LOGICAL_TABLE = PrefixTable([
    ("description ", _text("description", quoted=True)),
    ("family inet", _nested("family_inet", FamilyInet)),
    ("family inet ", _nested("family_inet", FamilyInet, FAMILY_TABLE)),
    ("family inet6", _nested("family_inet6", FamilyInet6)),
    ("family inet6 ", _nested("family_inet6", FamilyInet6, FAMILY6_TABLE)),
    ("vlan-id ", _number("vlan_id")),
])


# --- Legacy unified interface ---

def _legacy_family(family: str) -> PrefixTable:
    return PrefixTable([
        ("address ", _address(f"{family}_address")),
        ("filter input ", _text(f"{family}_filter_input")),
        ("filter output ", _text(f"{family}_filter_output")),
        ("mtu ", _number(f"{family}_mtu")),
        ("rpf-check", _nested(f"{family}_rpf_check", RpfCheck)),
        ("rpf-check ", _nested(f"{family}_rpf_check", RpfCheck, RPF_TABLE)),
    ])


def _flagged(attr: str, table: PrefixTable) -> Handler:
    def handle(target, value, line):
        setattr(target, attr, True)
        if value:
            table.dispatch(target, value, line)
    return handle


INTERFACE_TABLE = PrefixTable([
    ("description ", _text("description", quoted=True)),
    ("vlan-tagging", _flag("vlan_tagging")),
    ("vlan-id ", _number("vlan_tagging_id")),
    ("family inet", _flag("inet")),
    ("family inet ", _flagged("inet", _legacy_family("inet"))),
    ("family inet6", _flag("inet6")),
    ("family inet6 ", _flagged("inet6", _legacy_family("inet6"))),
    ("ether-options 802.3ad ", _text("ether802_3ad")),
    ("gigether-options 802.3ad ", _text("ether802_3ad")),
    ("unit 0 family ethernet-switching interface-mode trunk", _flag("trunk")),
    ("unit 0 family ethernet-switching vlan members ", _append("vlan_members")),
    ("native-vlan-id ", _number("vlan_native")),
    ("aggregated-ether-options lacp ", _text("ae_lacp")),
    ("aggregated-ether-options link-speed ", _text("ae_link_speed")),
    ("aggregated-ether-options minimum-links ", _number("ae_minimum_links")),
])


# --- Physical interface ---

ETHER_TABLE = PrefixTable([
    ("802.3ad ", _text("ae_8023ad")),
    ("auto-negotiation", _flag("auto_negotiation")),
    ("no-auto-negotiation", _flag("no_auto_negotiation")),
    ("flow-control", _flag("flow_control")),
    ("no-flow-control", _flag("no_flow_control")),
    ("loopback", _flag("loopback")),
    ("no-loopback", _flag("no_loopback")),
    ("redundant-parent ", _text("redundant_parent")),
])

def _lacp_mode(lacp, value, line):
    lacp.mode = line.rstrip().rsplit(" ", 1)[-1]


LACP_TABLE = PrefixTable([
    ("active", _lacp_mode),
    ("passive", _lacp_mode),
    ("admin-key ", _number("admin_key")),
    ("periodic ", _text("periodic")),
    ("sync-reset ", _text("sync_reset")),
    ("system-id ", _text("system_id")),
    ("system-priority ", _number("system_priority")),
])


def _bandwidth_value(opts, value, line):
    unit = opts.minimum_bandwidth.partition(" ")[2]
    opts.minimum_bandwidth = f"{value} {unit}" if unit else value


def _bandwidth_unit(opts, value, line):
    opts.minimum_bandwidth = f"{opts.minimum_bandwidth.partition(' ')[0]} {value}"


PARENT_ETHER_TABLE = PrefixTable([
    ("flow-control", _flag("flow_control")),
    ("no-flow-control", _flag("no_flow_control")),
    ("lacp ", _nested("lacp", Lacp, LACP_TABLE)),
    ("loopback", _flag("loopback")),
    ("no-loopback", _flag("no_loopback")),
    ("link-speed ", _text("link_speed")),
    ("minimum-bandwidth bw-value ", _bandwidth_value),
    ("minimum-bandwidth bw-unit ", _bandwidth_unit),
    ("minimum-links ", _number("minimum_links")),
    ("redundancy-group ", _number("redundancy_group")),
    ("source-address-filter ", _append("source_address_filter")),
    ("source-filtering", _flag("source_filtering")),
])

_parent_ether = _nested("parent_ether_opts", ParentEtherOptions, PARENT_ETHER_TABLE)


def _aggregated(phys, value, line):
    """aggregated-ether-options feed both the ae_* shortcuts and parent_ether_opts."""
    _parent_ether(phys, value, line)
    if value in ("lacp active", "lacp passive"):
        phys.ae_lacp = value[len("lacp "):]
    elif value.startswith("link-speed "):
        phys.ae_link_speed = value[len("link-speed "):]
    elif value.startswith("minimum-links "):
        phys.ae_minimum_links = to_int(value[len("minimum-links "):], line)


def _ether(attr: str) -> Handler:
    nested = _nested(attr, EtherOptions, ETHER_TABLE)

    def handle(phys, value, line):
        nested(phys, value, line)
        if value.startswith("802.3ad "):
            phys.ether802_3ad = value[len("802.3ad "):]
    return handle


def _esi_mode(esi, value, line):
    esi.mode = line.rstrip().rsplit(" ", 1)[-1]


ESI_TABLE = PrefixTable([
    ("all-active", _esi_mode),
    ("single-active", _esi_mode),
    ("auto-derive lacp", _flag("auto_derive_lacp")),
    ("df-election-type ", _text("df_election_type")),
    ("source-bmac ", _text("source_bmac")),
])


def _esi(phys, value, line):
    if phys.esi is None:
        phys.esi = Esi()
    if ESI_IDENTIFIER.match(value):
        phys.esi.identifier = value
        return
    ESI_TABLE.dispatch(phys.esi, value, line)


PHYSICAL_TABLE = PrefixTable([
    ("aggregated-ether-options ", _aggregated),
    ("redundant-ether-options ", _parent_ether),
    ("description ", _text("description", quoted=True)),
    ("esi ", _esi),
    ("ether-options ", _ether("ether_opts")),
    ("gigether-options ", _ether("gigether_opts")),
    ("native-vlan-id ", _number("vlan_native")),
    ("unit 0 family ethernet-switching interface-mode trunk", _flag("trunk")),
    ("unit 0 family ethernet-switching vlan members ", _append("vlan_members")),
    ("vlan-tagging", _flag("vlan_tagging")),
])


# --- Security zone ---

def _book_entries(zone: SecurityZone) -> Iterable:
    yield from zone.address_book
    yield from zone.address_book_dns
    yield from zone.address_book_range
    yield from zone.address_book_wildcard


def _take_pending_description(zone: SecurityZone, name: str) -> str:
    """Remove the description-only placeholder for ``name`` and return its text."""
    for entry in zone.address_book:
        if entry.name == name and not entry.network:
            zone.address_book.remove(entry)
            return entry.description
    return ""


def _book_address(zone, value, line):
    name, _, rest = value.partition(" ")
    if rest.startswith("description "):
        description = unquote(rest[len("description "):])
        for entry in _book_entries(zone):
            if entry.name == name:
                entry.description = description
                return
        # description is listed before the address value
        zone.address_book.append(AddressBookAddress(name, "", description))
        return
    if rest.startswith("dns-name "):
        fqdn = rest[len("dns-name "):]
        ipv4_only = fqdn.endswith(" ipv4-only")
        ipv6_only = fqdn.endswith(" ipv6-only")
        if ipv4_only or ipv6_only:
            fqdn = fqdn.rsplit(" ", 1)[0]
        entry = None
        for dns in zone.address_book_dns:
            if dns.name == name:
                entry = dns
        if entry is None:
            entry = AddressBookDns(name, fqdn, _take_pending_description(zone, name))
            zone.address_book_dns.append(entry)
        entry.ipv4_only = entry.ipv4_only or ipv4_only
        entry.ipv6_only = entry.ipv6_only or ipv6_only
    elif rest.startswith("range-address "):
        parts = rest[len("range-address "):].split(" ")
        if len(parts) < 3:
            raise MalformedDeviceOutput(f"unexpected range-address line '{line}'")
        zone.address_book_range.append(
            AddressBookRange(name, parts[0], parts[2], _take_pending_description(zone, name))
        )
    elif rest.startswith("wildcard-address "):
        zone.address_book_wildcard.append(
            AddressBookWildcard(name, rest[len("wildcard-address "):],
                                _take_pending_description(zone, name))
        )
    elif rest:
        zone.address_book.append(
            AddressBookAddress(name, rest, _take_pending_description(zone, name))
        )


BOOK_SET_TABLE = PrefixTable([
    ("address ", _append("address")),
    ("address-set ", _append("address_set")),
    ("description ", _text("description", quoted=True)),
])


def _book_set(zone, value, line):
    name, _, rest = value.partition(" ")
    entry = _merge(zone.address_book_set, lambda s: s.name, name, AddressBookSet)
    if rest:
        BOOK_SET_TABLE.dispatch(entry, rest, line)


ZONE_INTERFACE_TABLE = PrefixTable([
    ("host-inbound-traffic protocols ", _append("inbound_protocols")),
    ("host-inbound-traffic system-services ", _append("inbound_services")),
])


def _zone_interface(zone, value, line):
    name, _, rest = value.partition(" ")
    entry = _merge(zone.interface, lambda i: i.name, name, ZoneInterface)
    if rest:
        ZONE_INTERFACE_TABLE.dispatch(entry, rest, line)


SECURITY_ZONE_TABLE = PrefixTable([
    ("address-book address ", _book_address),
    ("address-book address-set ", _book_set),
    ("advance-policy-based-routing-profile ", _text("advance_policy_based_routing_profile", quoted=True)),
    ("application-tracking", _flag("application_tracking")),
    ("description ", _text("description", quoted=True)),
    ("host-inbound-traffic protocols ", _append("inbound_protocols")),
    ("host-inbound-traffic system-services ", _append("inbound_services")),
    ("interfaces ", _zone_interface),
    ("enable-reverse-reroute", _flag("reverse_reroute")),
    ("screen ", _text("screen", quoted=True)),
    ("source-identity-log", _flag("source_identity_log")),
    ("tcp-rst", _flag("tcp_rst")),
])


# --- Zone book address ---

def _single_dns(entry, value, line):
    ipv4_only = value.endswith(" ipv4-only")
    ipv6_only = value.endswith(" ipv6-only")
    if ipv4_only or ipv6_only:
        value = value.rsplit(" ", 1)[0]
    entry.dns_name = value
    entry.dns_ipv4_only = entry.dns_ipv4_only or ipv4_only
    entry.dns_ipv6_only = entry.dns_ipv6_only or ipv6_only


def _single_range(entry, value, line):
    parts = value.split(" ")
    if len(parts) < 3:
        raise MalformedDeviceOutput(f"unexpected range-address line '{line}'")
    entry.range_from = parts[0]
    entry.range_to = parts[2]


def _single_cidr(entry, value, line):
    if "/" in value:
        entry.cidr = value


ZONE_BOOK_ADDRESS_TABLE = PrefixTable([
    ("description ", _text("description", quoted=True)),
    ("dns-name ", _single_dns),
    ("range-address ", _single_range),
    ("wildcard-address ", _text("wildcard")),
], fallback=_single_cidr)


# --- OSPF ---

def _md5(iface, value, line):
    key_id, _, rest = value.partition(" ")
    entry = _merge(iface.authentication_md5, lambda k: k.key_id, to_int(key_id, line),
                   lambda k: OspfMd5Key(k, ""))
    if rest.startswith("key "):
        entry.key = reveal(unquote(rest[len("key "):]))
    elif rest.startswith("start-time "):
        entry.start_time = rest[len("start-time "):]


def _bandwidth_metric(iface, value, line):
    bandwidth, _, rest = value.partition(" ")
    if not rest.startswith("metric "):
        raise MalformedDeviceOutput(f"unexpected bandwidth-based-metrics line '{line}'")
    metric = to_int(rest[len("metric "):], line)
    entry = _merge(iface.bandwidth_based_metrics, lambda b: b.bandwidth, bandwidth,
                   lambda b: OspfBandwidthMetric(b, metric))
    entry.metric = metric


def _neighbor(iface, value, line):
    address, _, rest = value.partition(" ")
    entry = _merge(iface.neighbor, lambda n: n.address, address, OspfNeighbor)
    if rest == "eligible":
        entry.eligible = True


OSPF_INTERFACE_TABLE = PrefixTable([
    ("authentication simple-password ", _secret("authentication_simple_password")),
    ("authentication md5 ", _md5),
    ("bandwidth-based-metrics bandwidth ", _bandwidth_metric),
    ("dead-interval ", _number("dead_interval")),
    ("demand-circuit", _flag("demand_circuit")),
    ("disable", _flag("disable")),
    ("dynamic-neighbors", _flag("dynamic_neighbors")),
    ("flood-reduction", _flag("flood_reduction")),
    ("hello-interval ", _number("hello_interval")),
    ("interface-type ", _text("interface_type")),
    ("ipsec-sa ", _text("ipsec_sa", quoted=True)),
    ("link-protection", _flag("link_protection")),
    ("metric ", _number("metric")),
    ("mtu ", _number("mtu")),
    ("neighbor ", _neighbor),
    ("no-advertise-adjacency-segment", _flag("no_advertise_adjacency_segment")),
    ("no-eligible-backup", _flag("no_eligible_backup")),
    ("no-eligible-remote-backup", _flag("no_eligible_remote_backup")),
    ("no-interface-state-traps", _flag("no_interface_state_traps")),
    ("no-neighbor-down-notification", _flag("no_neighbor_down_notification")),
    ("node-link-protection", _flag("node_link_protection")),
    ("passive", _flag("passive")),
    ("poll-interval ", _number("poll_interval")),
    ("priority ", _number("priority")),
    ("retransmit-interval ", _number("retransmit_interval")),
    ("secondary", _flag("secondary")),
    ("strict-bfd", _flag("strict_bfd")),
    ("te-metric ", _number("te_metric")),
    ("transit-delay ", _number("transit_delay")),
])


def _ospf_interface(area, value, line):
    name, _, rest = value.partition(" ")
    entry = _merge(area.interface, lambda i: i.name, name.strip(), OspfInterface)
    if rest:
        OSPF_INTERFACE_TABLE.dispatch(entry, rest, line)


OSPF_AREA_TABLE = PrefixTable([
    ("interface ", _ospf_interface),
])


# --- IPsec VPN ---

IKE_TABLE = PrefixTable([
    ("gateway ", _text("gateway")),
    ("ipsec-policy ", _text("policy")),
    ("proxy-identity local ", _text("identity_local")),
    ("proxy-identity remote ", _text("identity_remote")),
    ("proxy-identity service ", _text("identity_service")),
])

VPN_MONITOR_TABLE = PrefixTable([
    ("destination-ip ", _text("destination_ip")),
    ("optimized", _flag("optimized")),
    ("source-interface ", _text("source_interface")),
])

IPSEC_VPN_TABLE = PrefixTable([
    ("bind-interface ", _text("bind_interface")),
    ("df-bit ", _text("df_bit")),
    ("establish-tunnels ", _text("establish_tunnels")),
    ("ike ", _nested("ike", lambda: IpsecVpnIke("", ""), IKE_TABLE)),
    ("vpn-monitor", _nested("vpn_monitor", IpsecVpnMonitor)),
    ("vpn-monitor ", _nested("vpn_monitor", IpsecVpnMonitor, VPN_MONITOR_TABLE)),
])


# --- Parser ---

def _skip_unit_lines(line: str, selector: Selector) -> bool:
    """Physical scopes ignore unit lines other than ethernet-switching ones."""
    if "." in selector.name:
        return False
    return " unit " in line and "ethernet-switching" not in line


def _skip_switching_lines(line: str, selector: Selector) -> bool:
    return "ethernet-switching" in line


def _never(line: str, selector: Selector) -> bool:
    return False


@dataclass
class _KindRules:
    build: Callable[[Selector], Any]
    empty: Callable[[], Any]
    table: PrefixTable
    skip: Callable[[str, Selector], bool] = field(default=_never)


_KINDS: dict[ResourceKind, _KindRules] = {
    ResourceKind.INTERFACE: _KindRules(
        build=lambda s: Interface(name=s.name),
        empty=lambda: Interface(name=""),
        table=INTERFACE_TABLE,
        skip=_skip_unit_lines,
    ),
    ResourceKind.INTERFACE_PHYSICAL: _KindRules(
        build=lambda s: PhysicalInterface(name=s.name),
        empty=lambda: PhysicalInterface(name=""),
        table=PHYSICAL_TABLE,
        skip=_skip_unit_lines,
    ),
    ResourceKind.INTERFACE_LOGICAL: _KindRules(
        build=lambda s: LogicalInterface(name=s.name),
        empty=lambda: LogicalInterface(name=""),
        table=LOGICAL_TABLE,
        skip=_skip_switching_lines,
    ),
    ResourceKind.SECURITY_ZONE: _KindRules(
        build=lambda s: SecurityZone(name=s.name),
        empty=lambda: SecurityZone(name=""),
        table=SECURITY_ZONE_TABLE,
    ),
    ResourceKind.ZONE_BOOK_ADDRESS: _KindRules(
        build=lambda s: ZoneBookAddress(zone=s.zone, name=s.name),
        empty=lambda: ZoneBookAddress(zone="", name=""),
        table=ZONE_BOOK_ADDRESS_TABLE,
    ),
    ResourceKind.OSPF_AREA: _KindRules(
        build=lambda s: OspfArea(area_id=s.area_id, version=s.version,
                                 routing_instance=s.routing_instance),
        empty=lambda: OspfArea(area_id=""),
        table=OSPF_AREA_TABLE,
    ),
    ResourceKind.IPSEC_VPN: _KindRules(
        build=lambda s: IpsecVpn(name=s.name),
        empty=lambda: IpsecVpn(name=""),
        table=IPSEC_VPN_TABLE,
    ),
}


class StateParser:
    """Rebuild a resource description from a ``display set`` dump."""

    def parse(self, dump: Optional[str], selector: Selector):
        """
        Parse a dump of one resource scope.

        Args:
            dump: Raw query output (relative or absolute set lines)
            selector: Kind and identity of the scope that was dumped

        Returns:
            The resource description. When the dump holds nothing, its
            identifying field (name / area_id) is empty.

        Raises:
            MalformedDeviceOutput: A value could not be converted
        """
        rules = _KINDS[selector.kind]
        lines = [line for line in config_lines(dump) if not rules.skip(line, selector)]
        if not lines:
            return rules.empty()

        result = rules.build(selector)
        absolute = selector.absolute_prefix()
        for line in lines:
            rest = line[len(SET_PREFIX):] if line.startswith(SET_PREFIX) else line
            if absolute and rest.startswith(absolute):
                rest = rest[len(absolute):]
            rest = rest.rstrip()
            if not rest:
                continue
            rules.table.dispatch(result, rest, line)
        return result


# --- Cross-scope lookups ---

def zone_of_interface(zones_dump: Optional[str], interface: str) -> str:
    """Security zone an interface is bound to, from ``security zones`` (relative)."""
    pattern = re.compile(
        r"^set security-zone (\S+) interfaces " + re.escape(interface) + r"( host-inbound-traffic .*)?$"
    )
    for line in config_lines(zones_dump):
        match = pattern.match(line.rstrip())
        if match:
            return match.group(1)
    return ""


def zone_inbound_traffic(zones_dump: Optional[str], zone: str, interface: str) -> tuple[list[str], list[str]]:
    """host-inbound-traffic protocols and system-services of one zone interface."""
    prefix = f"set security-zone {zone} interfaces {interface} host-inbound-traffic "
    protocols: list[str] = []
    services: list[str] = []
    for line in config_lines(zones_dump):
        line = line.rstrip()
        if not line.startswith(prefix):
            continue
        rest = line[len(prefix):]
        if rest.startswith("protocols "):
            protocols.append(rest[len("protocols "):])
        elif rest.startswith("system-services "):
            services.append(rest[len("system-services "):])
    return protocols, services


def routing_instance_of_interface(instances_dump: Optional[str], interface: str) -> str:
    """Routing instance an interface is bound to, from ``routing-instances`` (relative)."""
    pattern = re.compile(r"^set (\S+) interface " + re.escape(interface) + r"$")
    for line in config_lines(instances_dump):
        match = pattern.match(line.rstrip())
        if match:
            return match.group(1)
    return ""


def shape_physical(read: PhysicalInterface, reference: Optional[PhysicalInterface]) -> PhysicalInterface:
    """Keep only the representation the caller uses.

    The device reports aggregated options and 802.3ad membership once, but
    a description can express each of them two ways (ae_* shortcuts or
    parent_ether_opts, ether802_3ad or ether/gigether options).
    """
    if reference is None:
        reference = PhysicalInterface(name=read.name)
    if reference.ae_lacp or reference.ae_link_speed or reference.ae_minimum_links:
        read.parent_ether_opts = None
    else:
        read.ae_lacp = ""
        read.ae_link_speed = ""
        read.ae_minimum_links = 0
    if reference.ether802_3ad:
        read.ether_opts = None
        read.gigether_opts = None
    else:
        read.ether802_3ad = ""
    return read
