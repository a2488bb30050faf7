"""Line compiler: resource descriptions to ordered set/delete directives.

The compiler is pure. Anything it needs to know about the device (facts,
placeholder group, allocator snapshots) comes in through DeviceContext, and
every structural problem is raised before a single line is returned.
"""
import logging
from typing import Optional

from ..errors import ConflictingOptions, StructuralConstraintViolation
from . import allocator
from .schema import (
    AnyVrrpGroup,
    DeviceContext,
    DirectiveBatch,
    EtherOptions,
    Esi,
    FamilyInet,
    FamilyInet6,
    Inet6VrrpGroup,
    InetAddress,
    Interface,
    IpsecVpn,
    LogicalInterface,
    OspfArea,
    OspfInterface,
    ParentEtherOptions,
    PhysicalInterface,
    ResourceDescription,
    RpfCheck,
    SecurityZone,
    ZoneBookAddress,
    ospf_area_path,
)

logger = logging.getLogger(__name__)

ESTABLISH_TUNNELS = ("immediately", "on-traffic")
DF_BIT = ("clear", "copy", "set")
OSPF_VERSIONS = ("v2", "v3")
TUNNEL_PHYSICAL = "st0"
# Units of these never get an implicit vlan-id
NO_VLAN_COMPUTE = (TUNNEL_PHYSICAL, "irb", "vlan")


def split_interface_name(name: str) -> tuple[str, str]:
    """``ge-0/0/0.10`` -> (``ge-0/0/0``, ``10``); physical names give an empty unit."""
    parts = name.split(".")
    if len(parts) > 2:
        raise StructuralConstraintViolation(
            f"the name {name} contains too dots", resource=name, field="name"
        )
    if len(parts) == 2:
        return parts[0], parts[1]
    return parts[0], ""


def interface_path(name: str) -> str:
    """Configuration path of an interface: ``ge-0/0/0 unit 10`` for a dotted name."""
    physical, unit = split_interface_name(name)
    if unit:
        return f"{physical} unit {unit}"
    return physical


def implicit_vlan_id(name: str, exempt: tuple = NO_VLAN_COMPUTE) -> int:
    """vlan-id a unit gets when none is given, 0 when it gets none."""
    physical, unit = split_interface_name(name)
    if not unit or physical in exempt or unit == "0" or not unit.isdigit():
        return 0
    return int(unit)


def _quoted(value: str) -> str:
    return f'"{value}"'


class LineCompiler:
    """Compile resource descriptions into DirectiveBatch objects."""

    def compile(self, desired: ResourceDescription, ctx: Optional[DeviceContext] = None) -> DirectiveBatch:
        """
        Compile the set lines that create ``desired``.

        Args:
            desired: Resource description
            ctx: Device context (facts, placeholder group, snapshots)

        Returns:
            Ordered batch of set lines

        Raises:
            StructuralConstraintViolation: The description cannot be compiled
            ConflictingOptions: Mutually exclusive options are both set
        """
        ctx = ctx or DeviceContext()
        if isinstance(desired, Interface):
            return self._interface(desired, ctx)
        if isinstance(desired, PhysicalInterface):
            return self._physical(desired, ctx)
        if isinstance(desired, LogicalInterface):
            return self._logical(desired, ctx)
        if isinstance(desired, SecurityZone):
            return self._security_zone(desired)
        if isinstance(desired, ZoneBookAddress):
            return self._zone_book_address(desired)
        if isinstance(desired, OspfArea):
            return self._ospf_area(desired)
        if isinstance(desired, IpsecVpn):
            return self._ipsec_vpn(desired, ctx)
        raise TypeError(f"unsupported resource description: {type(desired).__name__}")

    # --- Shared pieces ---

    def _snapshot(self, ctx: DeviceContext, resource: str) -> str:
        if ctx.interfaces_config is None:
            raise StructuralConstraintViolation(
                "interfaces configuration snapshot required to compute the aggregated device count",
                resource=resource,
            )
        return ctx.interfaces_config

    def _device_count(self, batch: DirectiveBatch, ctx: DeviceContext,
                      new_ae: str, old_ae: str, interface: str) -> None:
        count = allocator.aggregated_device_count(
            self._snapshot(ctx, interface), new_ae, old_ae, interface
        )
        batch.lines.append(allocator.device_count_directive(count))
        batch.allocations["device_count"] = count

    def _addresses(self, batch: DirectiveBatch, prefix: str, family: str,
                   addresses: list[InetAddress], physical: str, resource: str) -> None:
        """Address lines of one family, VRRP groups included."""
        seen: list[str] = []
        for address in addresses:
            if address.address in seen:
                raise StructuralConstraintViolation(
                    f"multiple blocks family_{family} with the same cidr_ip {address.address}",
                    resource=resource, field=f"family_{family}.address",
                )
            seen.append(address.address)
            address_path = f"{prefix} family {family} address {address.address}"
            batch.set(address_path)
            if address.preferred:
                batch.set(f"{address_path} preferred")
            if address.primary:
                batch.set(f"{address_path} primary")
            identifiers: list[int] = []
            for group in address.vrrp_group:
                if physical == TUNNEL_PHYSICAL:
                    raise StructuralConstraintViolation(
                        "vrrp not available on st0", resource=resource, field="vrrp_group"
                    )
                self._check_vrrp(group, resource)
                if group.identifier in identifiers:
                    raise StructuralConstraintViolation(
                        f"multiple blocks vrrp_group with the same identifier {group.identifier}",
                        resource=resource, field="vrrp_group",
                    )
                identifiers.append(group.identifier)
                self._vrrp(batch, address_path, group, resource)

    def _check_vrrp(self, group: AnyVrrpGroup, resource: str) -> None:
        if group.no_preempt and group.preempt:
            raise ConflictingOptions(
                "ConflictsWith no_preempt and preempt", resource=resource, field="vrrp_group"
            )
        if group.no_accept_data and group.accept_data:
            raise ConflictingOptions(
                "ConflictsWith no_accept_data and accept_data", resource=resource, field="vrrp_group"
            )

    def _vrrp(self, batch: DirectiveBatch, address_path: str, group: AnyVrrpGroup, resource: str) -> None:
        if isinstance(group, Inet6VrrpGroup):
            path = f"{address_path} vrrp-inet6-group {group.identifier}"
            for ip in group.virtual_address:
                batch.set(f"{path} virtual-inet6-address {ip}")
            if group.virtual_link_local_address:
                batch.set(f"{path} virtual-link-local-address {group.virtual_link_local_address}")
            if group.advertise_interval:
                batch.set(f"{path} inet6-advertise-interval {group.advertise_interval}")
        else:
            path = f"{address_path} vrrp-group {group.identifier}"
            for ip in group.virtual_address:
                batch.set(f"{path} virtual-address {ip}")
            if group.advertise_interval:
                batch.set(f"{path} advertise-interval {group.advertise_interval}")
            if group.authentication_key:
                batch.set(f"{path} authentication-key {_quoted(group.authentication_key)}")
            if group.authentication_type:
                batch.set(f"{path} authentication-type {group.authentication_type}")
        if group.accept_data:
            batch.set(f"{path} accept-data")
        if group.advertisements_threshold:
            batch.set(f"{path} advertisements-threshold {group.advertisements_threshold}")
        if group.no_accept_data:
            batch.set(f"{path} no-accept-data")
        if group.no_preempt:
            batch.set(f"{path} no-preempt")
        if group.preempt:
            batch.set(f"{path} preempt")
        if group.priority:
            batch.set(f"{path} priority {group.priority}")
        tracked: list[str] = []
        for track in group.track_interface:
            if track.interface in tracked:
                raise StructuralConstraintViolation(
                    f"multiple blocks track_interface with the same interface {track.interface}",
                    resource=resource, field="track_interface",
                )
            tracked.append(track.interface)
            batch.set(f"{path} track interface {track.interface} priority-cost {track.priority_cost}")
        routes: list[tuple[str, str]] = []
        for route in group.track_route:
            key = (route.route, route.routing_instance)
            if key in routes:
                raise StructuralConstraintViolation(
                    f"multiple blocks track_route with the same route {route.route}",
                    resource=resource, field="track_route",
                )
            routes.append(key)
            batch.set(
                f"{path} track route {route.route} routing-instance {route.routing_instance}"
                f" priority-cost {route.priority_cost}"
            )

    def _rpf_check(self, batch: DirectiveBatch, prefix: str, family: str, rpf: Optional[RpfCheck]) -> None:
        if rpf is None:
            return
        batch.set(f"{prefix} family {family} rpf-check")
        if rpf.fail_filter:
            batch.set(f"{prefix} family {family} rpf-check fail-filter {_quoted(rpf.fail_filter)}")
        if rpf.mode_loose:
            batch.set(f"{prefix} family {family} rpf-check mode loose")

    def _family(self, batch: DirectiveBatch, prefix: str, family: str,
                opts: FamilyInet, physical: str, resource: str) -> None:
        batch.set(f"{prefix} family {family}")
        self._addresses(batch, prefix, family, opts.address, physical, resource)
        if isinstance(opts, FamilyInet6) and opts.dad_disable:
            batch.set(f"{prefix} family {family} dad-disable")
        if opts.filter_input:
            batch.set(f"{prefix} family {family} filter input {opts.filter_input}")
        if opts.filter_output:
            batch.set(f"{prefix} family {family} filter output {opts.filter_output}")
        if opts.mtu > 0:
            batch.set(f"{prefix} family {family} mtu {opts.mtu}")
        self._rpf_check(batch, prefix, family, opts.rpf_check)
        if opts.sampling_input:
            batch.set(f"{prefix} family {family} sampling input")
        if opts.sampling_output:
            batch.set(f"{prefix} family {family} sampling output")

    def _switching(self, batch: DirectiveBatch, prefix: str, trunk: bool,
                   vlan_members: list[str], vlan_native: int) -> None:
        if trunk:
            batch.set(f"{prefix} unit 0 family ethernet-switching interface-mode trunk")
        for member in vlan_members:
            batch.set(f"{prefix} unit 0 family ethernet-switching vlan members {member}")
        if vlan_native:
            batch.set(f"{prefix} native-vlan-id {vlan_native}")

    # --- Legacy unified interface ---

    def _check_interface(self, desired: Interface, unit: str) -> None:
        if not unit:
            rejected = {
                "vlan_tagging_id": desired.vlan_tagging_id,
                "security_zone": desired.security_zone,
                "routing_instance": desired.routing_instance,
            }
        else:
            rejected = {
                "vlan_tagging": desired.vlan_tagging,
                "ether802_3ad": desired.ether802_3ad,
                "trunk": desired.trunk,
                "vlan_members": desired.vlan_members,
                "vlan_native": desired.vlan_native,
                "ae_lacp": desired.ae_lacp,
                "ae_link_speed": desired.ae_link_speed,
                "ae_minimum_links": desired.ae_minimum_links,
            }
        for name, value in rejected.items():
            if value:
                raise StructuralConstraintViolation(
                    f"{name} invalid for this interface", resource=desired.name, field=name
                )

    def _interface(self, desired: Interface, ctx: DeviceContext) -> DirectiveBatch:
        physical, unit = split_interface_name(desired.name)
        self._check_interface(desired, unit)
        name = desired.name
        prefix = f"interfaces {interface_path(name)}"
        batch = DirectiveBatch()

        if desired.description:
            batch.set(f"{prefix} description {_quoted(desired.description)}")
        if desired.vlan_tagging:
            batch.set(f"{prefix} vlan-tagging")
        if desired.vlan_tagging_id:
            batch.set(f"{prefix} vlan-id {desired.vlan_tagging_id}")
        elif implicit_vlan_id(name, exempt=(TUNNEL_PHYSICAL,)):
            batch.set(f"{prefix} vlan-id {unit}")
        if desired.inet:
            batch.set(f"{prefix} family inet")
        if desired.inet6:
            batch.set(f"{prefix} family inet6")
        self._addresses(batch, prefix, "inet", desired.inet_address, physical, name)
        self._addresses(batch, prefix, "inet6", desired.inet6_address, physical, name)
        if desired.inet_mtu > 0:
            batch.set(f"{prefix} family inet mtu {desired.inet_mtu}")
        if desired.inet6_mtu > 0:
            batch.set(f"{prefix} family inet6 mtu {desired.inet6_mtu}")
        self._rpf_check(batch, prefix, "inet", desired.inet_rpf_check)
        self._rpf_check(batch, prefix, "inet6", desired.inet6_rpf_check)
        if desired.inet_filter_input:
            batch.set(f"{prefix} family inet filter input {desired.inet_filter_input}")
        if desired.inet_filter_output:
            batch.set(f"{prefix} family inet filter output {desired.inet_filter_output}")
        if desired.inet6_filter_input:
            batch.set(f"{prefix} family inet6 filter input {desired.inet6_filter_input}")
        if desired.inet6_filter_output:
            batch.set(f"{prefix} family inet6 filter output {desired.inet6_filter_output}")
        if desired.ether802_3ad:
            batch.set(f"{prefix} ether-options 802.3ad {desired.ether802_3ad}")
            batch.set(f"{prefix} gigether-options 802.3ad {desired.ether802_3ad}")
            self._device_count(batch, ctx, desired.ether802_3ad,
                               ctx.previous_ae or allocator.NO_AGGREGATE, name)
        self._switching(batch, prefix, desired.trunk, desired.vlan_members, desired.vlan_native)
        for field_name, value, option in (
            ("ae_lacp", desired.ae_lacp, "lacp"),
            ("ae_link_speed", desired.ae_link_speed, "link-speed"),
            ("ae_minimum_links", desired.ae_minimum_links, "minimum-links"),
        ):
            if not value:
                continue
            if "ae" not in physical:
                raise StructuralConstraintViolation(
                    f"{field_name} invalid for this interface", resource=name, field=field_name
                )
            batch.set(f"{prefix} aggregated-ether-options {option} {value}")
        if desired.security_zone and ctx.facts.is_security_compatible():
            batch.set(f"security zones security-zone {desired.security_zone} interfaces {name}")
        if desired.routing_instance:
            batch.set(f"routing-instances {desired.routing_instance} interface {name}")

        if not any(line.startswith(f"set {prefix} ") for line in batch.lines):
            batch.lines.insert(0, f"set {prefix}")
        return batch

    # --- Physical interface ---

    def _esi(self, batch: DirectiveBatch, prefix: str, esi: Optional[Esi]) -> None:
        if esi is None:
            return
        if esi.mode:
            batch.set(f"{prefix} esi {esi.mode}")
        if esi.auto_derive_lacp:
            batch.set(f"{prefix} esi auto-derive lacp")
        if esi.df_election_type:
            batch.set(f"{prefix} esi df-election-type {esi.df_election_type}")
        if esi.identifier:
            batch.set(f"{prefix} esi {esi.identifier}")
        if esi.source_bmac:
            batch.set(f"{prefix} esi source-bmac {esi.source_bmac}")

    def _ether_options(self, batch: DirectiveBatch, prefix: str, keyword: str, opts: EtherOptions) -> None:
        path = f"{prefix} {keyword}"
        if opts.ae_8023ad:
            batch.set(f"{path} 802.3ad {opts.ae_8023ad}")
        if opts.auto_negotiation:
            batch.set(f"{path} auto-negotiation")
        if opts.no_auto_negotiation:
            batch.set(f"{path} no-auto-negotiation")
        if opts.flow_control:
            batch.set(f"{path} flow-control")
        if opts.no_flow_control:
            batch.set(f"{path} no-flow-control")
        if opts.loopback:
            batch.set(f"{path} loopback")
        if opts.no_loopback:
            batch.set(f"{path} no-loopback")
        if opts.redundant_parent:
            batch.set(f"{path} redundant-parent {opts.redundant_parent}")

    def _parent_ether_options(self, batch: DirectiveBatch, name: str, opts: ParentEtherOptions) -> None:
        if name.startswith("ae"):
            path = f"interfaces {name} aggregated-ether-options"
        elif name.startswith("reth"):
            path = f"interfaces {name} redundant-ether-options"
        else:
            raise StructuralConstraintViolation(
                f"parent_ether_opts not compatible with this interface {name} (need to ae* or reth*)",
                resource=name, field="parent_ether_opts",
            )
        if opts.flow_control and opts.no_flow_control:
            raise ConflictingOptions(
                "ConflictsWith flow_control and no_flow_control", resource=name, field="parent_ether_opts"
            )
        if opts.flow_control:
            batch.set(f"{path} flow-control")
        if opts.no_flow_control:
            batch.set(f"{path} no-flow-control")
        if opts.lacp is not None:
            lacp = opts.lacp
            if not lacp.mode:
                raise StructuralConstraintViolation(
                    "lacp mode is required", resource=name, field="parent_ether_opts.lacp.mode"
                )
            batch.set(f"{path} lacp {lacp.mode}")
            if lacp.admin_key is not None:
                batch.set(f"{path} lacp admin-key {lacp.admin_key}")
            if lacp.periodic:
                batch.set(f"{path} lacp periodic {lacp.periodic}")
            if lacp.sync_reset:
                batch.set(f"{path} lacp sync-reset {lacp.sync_reset}")
            if lacp.system_id:
                batch.set(f"{path} lacp system-id {lacp.system_id}")
            if lacp.system_priority is not None:
                batch.set(f"{path} lacp system-priority {lacp.system_priority}")
        if opts.loopback:
            batch.set(f"{path} loopback")
        if opts.no_loopback:
            batch.set(f"{path} no-loopback")
        if opts.link_speed:
            batch.set(f"{path} link-speed {opts.link_speed}")
        if opts.minimum_bandwidth:
            value, _, unit = opts.minimum_bandwidth.partition(" ")
            batch.set(f"{path} minimum-bandwidth bw-value {value}")
            if unit:
                batch.set(f"{path} minimum-bandwidth bw-unit {unit}")
        if opts.minimum_links:
            batch.set(f"{path} minimum-links {opts.minimum_links}")
        if opts.redundancy_group:
            batch.set(f"{path} redundancy-group {opts.redundancy_group}")
        for address in opts.source_address_filter:
            batch.set(f"{path} source-address-filter {address}")
        if opts.source_filtering:
            batch.set(f"{path} source-filtering")

    def _physical(self, desired: PhysicalInterface, ctx: DeviceContext) -> DirectiveBatch:
        name = desired.name
        if "." in name:
            raise StructuralConstraintViolation(
                f"the name {name} contains a dot", resource=name, field="name"
            )
        prefix = f"interfaces {name}"
        batch = DirectiveBatch()
        batch.set(prefix)

        for field_name, value, option in (
            ("ae_lacp", desired.ae_lacp, "lacp"),
            ("ae_link_speed", desired.ae_link_speed, "link-speed"),
            ("ae_minimum_links", desired.ae_minimum_links, "minimum-links"),
        ):
            if not value:
                continue
            if not name.startswith("ae"):
                raise StructuralConstraintViolation(
                    f"{field_name} invalid for this interface", resource=name, field=field_name
                )
            batch.set(f"{prefix} aggregated-ether-options {option} {value}")
        if desired.description:
            batch.set(f"{prefix} description {_quoted(desired.description)}")
        self._esi(batch, prefix, desired.esi)

        if name.startswith("ae"):
            self._device_count(batch, ctx, name, allocator.NO_AGGREGATE, name)
        elif desired.ether802_3ad or desired.ether_opts is not None or desired.gigether_opts is not None:
            new_ae = ""
            if desired.ether802_3ad:
                new_ae = desired.ether802_3ad
                batch.set(f"{prefix} ether-options 802.3ad {desired.ether802_3ad}")
                batch.set(f"{prefix} gigether-options 802.3ad {desired.ether802_3ad}")
            elif desired.ether_opts is not None:
                new_ae = desired.ether_opts.ae_8023ad
                self._ether_options(batch, prefix, "ether-options", desired.ether_opts)
            else:
                new_ae = desired.gigether_opts.ae_8023ad
                self._ether_options(batch, prefix, "gigether-options", desired.gigether_opts)
            if new_ae:
                self._device_count(batch, ctx, new_ae, ctx.previous_ae or allocator.NO_AGGREGATE, name)

        if desired.parent_ether_opts is not None:
            self._parent_ether_options(batch, name, desired.parent_ether_opts)
        self._switching(batch, prefix, desired.trunk, desired.vlan_members, desired.vlan_native)
        if desired.vlan_tagging:
            batch.set(f"{prefix} vlan-tagging")
        return batch

    # --- Logical interface ---

    def _logical(self, desired: LogicalInterface, ctx: DeviceContext) -> DirectiveBatch:
        name = desired.name
        parts = name.split(".")
        if len(parts) != 2:
            raise StructuralConstraintViolation(
                f"the name {name} doesn't contain one dot", resource=name, field="name"
            )
        physical, unit = parts
        prefix = f"interfaces {interface_path(name)}"
        batch = DirectiveBatch()
        batch.set(prefix)
        if desired.description:
            batch.set(f"{prefix} description {_quoted(desired.description)}")
        if desired.family_inet is not None:
            self._family(batch, prefix, "inet", desired.family_inet, physical, name)
        if desired.family_inet6 is not None:
            self._family(batch, prefix, "inet6", desired.family_inet6, physical, name)
        if desired.routing_instance:
            batch.set(f"routing-instances {desired.routing_instance} interface {name}")
        if desired.security_zone:
            zone_path = f"security zones security-zone {desired.security_zone} interfaces {name}"
            batch.set(zone_path)
            for protocol in sorted(desired.security_inbound_protocols):
                batch.set(f"{zone_path} host-inbound-traffic protocols {protocol}")
            for service in sorted(desired.security_inbound_services):
                batch.set(f"{zone_path} host-inbound-traffic system-services {service}")
        elif desired.security_inbound_protocols or desired.security_inbound_services:
            raise StructuralConstraintViolation(
                "security_inbound_protocols and security_inbound_services need security_zone",
                resource=name, field="security_zone",
            )
        if desired.vlan_id:
            batch.set(f"{prefix} vlan-id {desired.vlan_id}")
        elif implicit_vlan_id(name) and not desired.vlan_no_compute:
            batch.set(f"{prefix} vlan-id {unit}")
        return batch

    # --- Security zone ---

    def _book_line(self, batch: DirectiveBatch, prefix: str, name: str, value: str, description: str) -> None:
        batch.set(f"{prefix} address-book address {name} {value}")
        if description:
            batch.set(f"{prefix} address-book address {name} description {_quoted(description)}")

    def _security_zone(self, desired: SecurityZone) -> DirectiveBatch:
        name = desired.name
        prefix = f"security zones security-zone {name}"
        batch = DirectiveBatch()
        batch.set(prefix)

        if not desired.address_book_configure_singly:
            names: list[str] = []

            def claim(entry_name: str) -> None:
                if entry_name in names:
                    raise StructuralConstraintViolation(
                        f"multiple addresses with the same name {entry_name}",
                        resource=name, field="address_book",
                    )
                names.append(entry_name)

            for entry in desired.address_book:
                claim(entry.name)
                self._book_line(batch, prefix, entry.name, entry.network, entry.description)
            for entry in desired.address_book_dns:
                claim(entry.name)
                if entry.ipv4_only and entry.ipv6_only:
                    raise ConflictingOptions(
                        "ConflictsWith ipv4_only and ipv6_only", resource=name, field="address_book_dns"
                    )
                dns = f"dns-name {entry.fqdn}"
                self._book_line(batch, prefix, entry.name, dns, entry.description)
                if entry.ipv4_only:
                    batch.set(f"{prefix} address-book address {entry.name} {dns} ipv4-only")
                if entry.ipv6_only:
                    batch.set(f"{prefix} address-book address {entry.name} {dns} ipv6-only")
            for entry in desired.address_book_range:
                claim(entry.name)
                self._book_line(batch, prefix, entry.name,
                                f"range-address {entry.from_address} to {entry.to_address}",
                                entry.description)
            for entry in desired.address_book_wildcard:
                claim(entry.name)
                self._book_line(batch, prefix, entry.name, f"wildcard-address {entry.network}",
                                entry.description)
            for entry in desired.address_book_set:
                if entry.name in names:
                    raise StructuralConstraintViolation(
                        f"multiple addresses or address-sets with the same name {entry.name}",
                        resource=name, field="address_book_set",
                    )
                names.append(entry.name)
                if not entry.address and not entry.address_set:
                    raise StructuralConstraintViolation(
                        f"at least one of address or address_set is required in address_book_set {entry.name}",
                        resource=name, field="address_book_set",
                    )
                set_path = f"{prefix} address-book address-set {entry.name}"
                for address in sorted(entry.address):
                    batch.set(f"{set_path} address {address}")
                for address_set in sorted(entry.address_set):
                    batch.set(f"{set_path} address-set {address_set}")
                if entry.description:
                    batch.set(f"{set_path} description {_quoted(entry.description)}")

        if desired.advance_policy_based_routing_profile:
            batch.set(f"{prefix} advance-policy-based-routing-profile "
                      f"{_quoted(desired.advance_policy_based_routing_profile)}")
        if desired.application_tracking:
            batch.set(f"{prefix} application-tracking")
        if desired.description:
            batch.set(f"{prefix} description {_quoted(desired.description)}")
        for protocol in sorted(desired.inbound_protocols):
            batch.set(f"{prefix} host-inbound-traffic protocols {protocol}")
        for service in sorted(desired.inbound_services):
            batch.set(f"{prefix} host-inbound-traffic system-services {service}")
        if desired.reverse_reroute:
            batch.set(f"{prefix} enable-reverse-reroute")
        if desired.screen:
            batch.set(f"{prefix} screen {_quoted(desired.screen)}")
        if desired.source_identity_log:
            batch.set(f"{prefix} source-identity-log")
        if desired.tcp_rst:
            batch.set(f"{prefix} tcp-rst")
        return batch

    # --- Zone book address ---

    def _zone_book_address(self, desired: ZoneBookAddress) -> DirectiveBatch:
        resource = f"{desired.zone}/{desired.name}"
        forms = [
            bool(desired.cidr),
            bool(desired.dns_name),
            bool(desired.range_from or desired.range_to),
            bool(desired.wildcard),
        ]
        if sum(forms) != 1:
            raise StructuralConstraintViolation(
                "exactly one of cidr, dns_name, range_from/range_to or wildcard is required",
                resource=resource,
            )
        if bool(desired.range_from) != bool(desired.range_to):
            raise StructuralConstraintViolation(
                "range_from and range_to must be set together", resource=resource, field="range_to"
            )
        if (desired.dns_ipv4_only or desired.dns_ipv6_only) and not desired.dns_name:
            raise StructuralConstraintViolation(
                "dns_ipv4_only and dns_ipv6_only need dns_name", resource=resource, field="dns_name"
            )
        if desired.dns_ipv4_only and desired.dns_ipv6_only:
            raise ConflictingOptions(
                "ConflictsWith dns_ipv4_only and dns_ipv6_only", resource=resource, field="dns_name"
            )
        prefix = f"security zones security-zone {desired.zone} address-book address {desired.name}"
        batch = DirectiveBatch()
        if desired.cidr:
            batch.set(f"{prefix} {desired.cidr}")
        if desired.description:
            batch.set(f"{prefix} description {_quoted(desired.description)}")
        if desired.dns_name:
            batch.set(f"{prefix} dns-name {desired.dns_name}")
            if desired.dns_ipv4_only:
                batch.set(f"{prefix} dns-name {desired.dns_name} ipv4-only")
            if desired.dns_ipv6_only:
                batch.set(f"{prefix} dns-name {desired.dns_name} ipv6-only")
        if desired.range_from:
            batch.set(f"{prefix} range-address {desired.range_from} to {desired.range_to}")
        if desired.wildcard:
            batch.set(f"{prefix} wildcard-address {desired.wildcard}")
        return batch

    # --- OSPF area ---

    def _ospf_interface(self, batch: DirectiveBatch, prefix: str, iface: OspfInterface, resource: str) -> None:
        path = f"{prefix} interface {iface.name}"
        batch.set(path)
        if iface.authentication_simple_password:
            if iface.authentication_md5:
                raise ConflictingOptions(
                    "conflict between 'authentication_simple_password' and 'authentication_md5'"
                    f" in interface '{iface.name}'",
                    resource=resource, field="authentication_md5",
                )
            batch.set(f"{path} authentication simple-password "
                      f"{_quoted(iface.authentication_simple_password)}")
        key_ids: list[int] = []
        for key in iface.authentication_md5:
            if key.key_id in key_ids:
                raise StructuralConstraintViolation(
                    f"multiple blocks authentication_md5 with the same key_id {key.key_id}"
                    f" in interface with name {iface.name}",
                    resource=resource, field="authentication_md5",
                )
            key_ids.append(key.key_id)
            batch.set(f"{path} authentication md5 {key.key_id} key {_quoted(key.key)}")
            if key.start_time:
                batch.set(f"{path} authentication md5 {key.key_id} start-time {key.start_time}")
        bandwidths: list[str] = []
        for metric in iface.bandwidth_based_metrics:
            if metric.bandwidth in bandwidths:
                raise StructuralConstraintViolation(
                    f"multiple blocks bandwidth_based_metrics with the same bandwidth {metric.bandwidth}"
                    f" in interface with name {iface.name}",
                    resource=resource, field="bandwidth_based_metrics",
                )
            bandwidths.append(metric.bandwidth)
            batch.set(f"{path} bandwidth-based-metrics bandwidth {metric.bandwidth} metric {metric.metric}")
        if iface.dead_interval:
            batch.set(f"{path} dead-interval {iface.dead_interval}")
        if iface.demand_circuit:
            batch.set(f"{path} demand-circuit")
        if iface.disable:
            batch.set(f"{path} disable")
        if iface.dynamic_neighbors:
            batch.set(f"{path} dynamic-neighbors")
        if iface.flood_reduction:
            batch.set(f"{path} flood-reduction")
        if iface.hello_interval:
            batch.set(f"{path} hello-interval {iface.hello_interval}")
        if iface.interface_type:
            batch.set(f"{path} interface-type {iface.interface_type}")
        if iface.ipsec_sa:
            batch.set(f"{path} ipsec-sa {_quoted(iface.ipsec_sa)}")
        if iface.link_protection:
            batch.set(f"{path} link-protection")
        if iface.metric:
            batch.set(f"{path} metric {iface.metric}")
        if iface.mtu:
            batch.set(f"{path} mtu {iface.mtu}")
        neighbors: list[str] = []
        for neighbor in iface.neighbor:
            if neighbor.address in neighbors:
                raise StructuralConstraintViolation(
                    f"multiple blocks neighbor with the same address {neighbor.address}"
                    f" in interface with name {iface.name}",
                    resource=resource, field="neighbor",
                )
            neighbors.append(neighbor.address)
            batch.set(f"{path} neighbor {neighbor.address}")
            if neighbor.eligible:
                batch.set(f"{path} neighbor {neighbor.address} eligible")
        for flag, keyword in (
            (iface.no_advertise_adjacency_segment, "no-advertise-adjacency-segment"),
            (iface.no_eligible_backup, "no-eligible-backup"),
            (iface.no_eligible_remote_backup, "no-eligible-remote-backup"),
            (iface.no_interface_state_traps, "no-interface-state-traps"),
            (iface.no_neighbor_down_notification, "no-neighbor-down-notification"),
            (iface.node_link_protection, "node-link-protection"),
            (iface.passive, "passive"),
        ):
            if flag:
                batch.set(f"{path} {keyword}")
        if iface.poll_interval:
            batch.set(f"{path} poll-interval {iface.poll_interval}")
        if iface.priority is not None:
            batch.set(f"{path} priority {iface.priority}")
        if iface.retransmit_interval:
            batch.set(f"{path} retransmit-interval {iface.retransmit_interval}")
        if iface.secondary:
            batch.set(f"{path} secondary")
        if iface.strict_bfd:
            batch.set(f"{path} strict-bfd")
        if iface.te_metric:
            batch.set(f"{path} te-metric {iface.te_metric}")
        if iface.transit_delay:
            batch.set(f"{path} transit-delay {iface.transit_delay}")

    def _ospf_area(self, desired: OspfArea) -> DirectiveBatch:
        if desired.version not in OSPF_VERSIONS:
            raise StructuralConstraintViolation(
                f"unknown ospf version {desired.version}", resource=desired.area_id, field="version"
            )
        if not desired.interface:
            raise StructuralConstraintViolation(
                "at least one interface is required", resource=desired.area_id, field="interface"
            )
        prefix = ospf_area_path(desired.area_id, desired.version, desired.routing_instance)
        batch = DirectiveBatch()
        names: list[str] = []
        for iface in desired.interface:
            if iface.name in names:
                raise StructuralConstraintViolation(
                    f"multiple blocks interface with the same name {iface.name}",
                    resource=desired.area_id, field="interface",
                )
            names.append(iface.name)
            self._ospf_interface(batch, prefix, iface, desired.area_id)
        return batch

    # --- IPsec VPN ---

    def _ipsec_vpn(self, desired: IpsecVpn, ctx: DeviceContext) -> DirectiveBatch:
        name = desired.name
        if desired.establish_tunnels and desired.establish_tunnels not in ESTABLISH_TUNNELS:
            raise StructuralConstraintViolation(
                f"establish_tunnels must be one of {', '.join(ESTABLISH_TUNNELS)}",
                resource=name, field="establish_tunnels",
            )
        if desired.df_bit and desired.df_bit not in DF_BIT:
            raise StructuralConstraintViolation(
                f"df_bit must be one of {', '.join(DF_BIT)}", resource=name, field="df_bit"
            )
        batch = DirectiveBatch()
        bind_interface = desired.bind_interface
        if desired.bind_interface_auto:
            if not bind_interface:
                if ctx.tunnel_units is None:
                    raise StructuralConstraintViolation(
                        "st0 snapshot required to allocate the bind interface",
                        resource=name, field="bind_interface",
                    )
                slot = allocator.first_absent_slot(allocator.tunnel_units_present(ctx.tunnel_units))
                bind_interface = f"{TUNNEL_PHYSICAL}.{slot}"
                batch.allocations["bind_interface"] = bind_interface
                logger.debug(f"Allocated {bind_interface} for ipsec vpn {name}")
            batch.set(f"interfaces {interface_path(bind_interface)}")
        prefix = f"security ipsec vpn {name}"
        if desired.establish_tunnels:
            batch.set(f"{prefix} establish-tunnels {desired.establish_tunnels}")
        if bind_interface:
            batch.set(f"{prefix} bind-interface {bind_interface}")
        if desired.df_bit:
            batch.set(f"{prefix} df-bit {desired.df_bit}")
        if desired.ike is not None:
            ike = desired.ike
            batch.set(f"{prefix} ike gateway {ike.gateway}")
            batch.set(f"{prefix} ike ipsec-policy {ike.policy}")
            if ike.identity_local:
                batch.set(f"{prefix} ike proxy-identity local {ike.identity_local}")
            if ike.identity_remote:
                batch.set(f"{prefix} ike proxy-identity remote {ike.identity_remote}")
            if ike.identity_service:
                batch.set(f"{prefix} ike proxy-identity service {ike.identity_service}")
        if desired.vpn_monitor is not None:
            monitor = desired.vpn_monitor
            batch.set(f"{prefix} vpn-monitor")
            if monitor.source_interface:
                batch.set(f"{prefix} vpn-monitor source-interface {monitor.source_interface}")
            # the bound st0 unit is set last and wins over an explicit source
            if monitor.source_interface_auto:
                if not bind_interface:
                    raise StructuralConstraintViolation(
                        "source_interface_auto needs a bind interface", resource=name,
                        field="vpn_monitor.source_interface_auto",
                    )
                batch.set(f"{prefix} vpn-monitor source-interface {bind_interface}")
            if monitor.destination_ip:
                batch.set(f"{prefix} vpn-monitor destination-ip {monitor.destination_ip}")
            if monitor.optimized:
                batch.set(f"{prefix} vpn-monitor optimized")
        return batch

    # --- Delete and reset batches ---

    def compile_delete(self, current: ResourceDescription, ctx: Optional[DeviceContext] = None) -> DirectiveBatch:
        """
        Compile the lines removing ``current`` from the device.

        Aggregated device counts are recomputed from the context snapshot
        when the interface owned or was the last member of an ae parent.
        """
        ctx = ctx or DeviceContext()
        batch = DirectiveBatch()
        if isinstance(current, Interface):
            physical, unit = split_interface_name(current.name)
            path = interface_path(current.name)
            batch.delete(f"interfaces {path}")
            if physical == TUNNEL_PHYSICAL and unit and not current.complete_destroy:
                batch.set(f"interfaces {path}")
            if current.ether802_3ad and allocator.is_last_aggregated_child(
                self._snapshot(ctx, current.name), current.ether802_3ad, current.name
            ):
                self._device_count(batch, ctx, allocator.NO_AGGREGATE, current.ether802_3ad, current.name)
            if current.security_zone and ctx.facts.is_security_compatible():
                batch.delete(f"security zones security-zone {current.security_zone} interfaces {current.name}")
            if current.routing_instance:
                batch.delete(f"routing-instances {current.routing_instance} interface {current.name}")
        elif isinstance(current, PhysicalInterface):
            name = current.name
            batch.delete(f"interfaces {name}")
            parent = current.aggregated_parent()
            if name.startswith("ae"):
                self._device_count(batch, ctx, allocator.NO_AGGREGATE, name, name)
            elif parent and allocator.is_last_aggregated_child(self._snapshot(ctx, name), parent, name):
                self._device_count(batch, ctx, allocator.NO_AGGREGATE, parent, name)
        elif isinstance(current, LogicalInterface):
            physical, _ = split_interface_name(current.name)
            path = interface_path(current.name)
            batch.delete(f"interfaces {path}")
            if physical == TUNNEL_PHYSICAL and not current.st0_also_on_destroy:
                batch.set(f"interfaces {path}")
            if current.routing_instance:
                batch.delete(f"routing-instances {current.routing_instance} interface {current.name}")
            if current.security_zone:
                batch.delete(f"security zones security-zone {current.security_zone} interfaces {current.name}")
        elif isinstance(current, SecurityZone):
            batch.delete(f"security zones security-zone {current.name}")
        elif isinstance(current, ZoneBookAddress):
            batch.delete(f"security zones security-zone {current.zone} address-book address {current.name}")
        elif isinstance(current, OspfArea):
            batch.delete(ospf_area_path(current.area_id, current.version, current.routing_instance))
        elif isinstance(current, IpsecVpn):
            batch.delete(f"security ipsec vpn {current.name}")
        else:
            raise TypeError(f"unsupported resource description: {type(current).__name__}")
        return batch

    def compile_reset(self, current: ResourceDescription, ctx: Optional[DeviceContext] = None) -> DirectiveBatch:
        """Lines clearing the options an update re-sets, keeping the object itself."""
        ctx = ctx or DeviceContext()
        batch = DirectiveBatch()
        if isinstance(current, Interface):
            prefix = f"interfaces {interface_path(current.name)}"
            for option in (
                "vlan-tagging",
                "family inet",
                "family inet6",
                "ether-options 802.3ad",
                "gigether-options 802.3ad",
                "unit 0 family ethernet-switching interface-mode",
                "unit 0 family ethernet-switching vlan members",
                "native-vlan-id",
                "aggregated-ether-options",
            ):
                batch.delete(f"{prefix} {option}")
        elif isinstance(current, PhysicalInterface):
            prefix = f"interfaces {current.name}"
            for option in (
                "aggregated-ether-options",
                "description",
                "esi",
                "ether-options",
                "gigether-options",
                "native-vlan-id",
                "redundant-ether-options",
                "unit 0 family ethernet-switching interface-mode",
                "unit 0 family ethernet-switching vlan members",
                "vlan-tagging",
            ):
                batch.delete(f"{prefix} {option}")
            if ctx.previous_ae:
                self._device_count(batch, ctx, allocator.NO_AGGREGATE, ctx.previous_ae, current.name)
        elif isinstance(current, LogicalInterface):
            prefix = f"interfaces {interface_path(current.name)}"
            for option in ("description", "family inet", "family inet6"):
                batch.delete(f"{prefix} {option}")
        elif isinstance(current, SecurityZone):
            prefix = f"security zones security-zone {current.name}"
            options = [
                "advance-policy-based-routing-profile",
                "description",
                "application-tracking",
                "host-inbound-traffic",
                "enable-reverse-reroute",
                "screen",
                "source-identity-log",
                "tcp-rst",
            ]
            if not current.address_book_configure_singly:
                options.append("address-book")
            for option in options:
                batch.delete(f"{prefix} {option}")
        else:
            # whole-object replace for the remaining kinds
            batch.extend(self.compile_delete(current, ctx))
        return batch

    # --- NC placeholder ---

    def placeholder(self, name: str, group: str = "") -> DirectiveBatch:
        """Lines leaving ``name`` administratively disabled."""
        physical, _ = split_interface_name(name)
        path = f"interfaces {interface_path(name)}"
        batch = DirectiveBatch()
        if group and physical != TUNNEL_PHYSICAL:
            batch.set(f"{path} apply-groups {group}")
        else:
            batch.set(f"{path} disable description NC")
        return batch

    def clear_placeholder(self, name: str, group: str = "") -> DirectiveBatch:
        """Lines removing the NC placeholder before ``name`` is configured."""
        path = f"interfaces {interface_path(name)}"
        batch = DirectiveBatch()
        if group:
            batch.delete(f"{path} apply-groups {group}")
        batch.delete(f"{path} description")
        batch.delete(f"{path} disable")
        return batch
