"""Resource handlers, one per resource family."""
from ..config_engine.schema import ResourceKind
from .base import ResourceHandler, InterfaceHandler, ID_SEPARATOR
from .interface import InterfaceResource
from .interface_physical import PhysicalInterfaceResource
from .interface_logical import LogicalInterfaceResource
from .security_zone import SecurityZoneResource, ZoneBookAddressResource
from .ospf_area import OspfAreaResource
from .ipsec_vpn import IpsecVpnResource

__all__ = [
    "ResourceHandler",
    "InterfaceHandler",
    "ID_SEPARATOR",
    "InterfaceResource",
    "PhysicalInterfaceResource",
    "LogicalInterfaceResource",
    "SecurityZoneResource",
    "ZoneBookAddressResource",
    "OspfAreaResource",
    "IpsecVpnResource",
    "HANDLERS",
]

# Handler registry
HANDLERS = {
    ResourceKind.INTERFACE: InterfaceResource,
    ResourceKind.INTERFACE_PHYSICAL: PhysicalInterfaceResource,
    ResourceKind.INTERFACE_LOGICAL: LogicalInterfaceResource,
    ResourceKind.SECURITY_ZONE: SecurityZoneResource,
    ResourceKind.ZONE_BOOK_ADDRESS: ZoneBookAddressResource,
    ResourceKind.OSPF_AREA: OspfAreaResource,
    ResourceKind.IPSEC_VPN: IpsecVpnResource,
}
