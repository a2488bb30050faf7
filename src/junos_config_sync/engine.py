"""Config Engine: inventory lookup plus dispatch to the resource handlers.

Every call opens its own device session and closes it on the way out:

    engine = ConfigEngine(DeviceInventory())
    zone = await engine.create("srx-edge", SecurityZone(name="trust"))
    await engine.delete("srx-edge", zone)
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from .config.inventory import DeviceInventory
from .config_engine.guard import ReadGuard
from .config_engine.schema import (
    Interface,
    IpsecVpn,
    LogicalInterface,
    OspfArea,
    PhysicalInterface,
    ResourceDescription,
    ResourceKind,
    SecurityZone,
    ZoneBookAddress,
)
from .errors import JunosConfigError
from .resources import HANDLERS, LogicalInterfaceResource, ResourceHandler
from .session import DeviceSession
from .utils.logging_config import timed_section

logger = logging.getLogger(__name__)

KIND_OF = {
    Interface: ResourceKind.INTERFACE,
    PhysicalInterface: ResourceKind.INTERFACE_PHYSICAL,
    LogicalInterface: ResourceKind.INTERFACE_LOGICAL,
    SecurityZone: ResourceKind.SECURITY_ZONE,
    ZoneBookAddress: ResourceKind.ZONE_BOOK_ADDRESS,
    OspfArea: ResourceKind.OSPF_AREA,
    IpsecVpn: ResourceKind.IPSEC_VPN,
}


def kind_of(description: ResourceDescription) -> ResourceKind:
    try:
        return KIND_OF[type(description)]
    except KeyError:
        raise TypeError(f"unsupported resource description: {type(description).__name__}") from None


class ConfigEngine:
    """
    Entry point for resource lifecycle operations on inventory devices.

    Failures are logged with the device and operation, then re-raised.
    """

    def __init__(self, inventory: DeviceInventory, cancel: Optional[asyncio.Event] = None):
        """
        Args:
            inventory: Device inventory for looking up devices
            cancel: Stops pending candidate lock waits when set
        """
        self.inventory = inventory
        self.cancel = cancel
        self._guards: dict[str, ReadGuard] = {}

    def guard(self, device_id: str) -> ReadGuard:
        """Read guard shared by every session on ``device_id``."""
        return self._guards.setdefault(device_id, ReadGuard())

    @asynccontextmanager
    async def session(self, device_id: str) -> AsyncIterator[DeviceSession]:
        channel = self.inventory.create_channel(device_id)
        async with DeviceSession(channel, guard=self.guard(device_id)) as session:
            yield session

    def handler(self, session: DeviceSession, kind: ResourceKind) -> ResourceHandler:
        return HANDLERS[kind](session, cancel=self.cancel)

    async def _run(self, device_id: str, kind: ResourceKind, operation: str, *args):
        async with timed_section(f"{kind.value}_{operation}", device_id):
            try:
                async with self.session(device_id) as session:
                    method = getattr(self.handler(session, kind), operation)
                    return await method(*args)
            except JunosConfigError as e:
                logger.error(f"{operation} {kind.value} on {device_id} failed: {e}")
                raise

    async def create(self, device_id: str, desired: ResourceDescription) -> ResourceDescription:
        return await self._run(device_id, kind_of(desired), "create", desired)

    async def read(self, device_id: str, reference: ResourceDescription) -> Optional[ResourceDescription]:
        return await self._run(device_id, kind_of(reference), "read", reference)

    async def update(
        self, device_id: str, previous: ResourceDescription, desired: ResourceDescription
    ) -> ResourceDescription:
        if type(previous) is not type(desired):
            raise TypeError("previous and desired must describe the same resource kind")
        return await self._run(device_id, kind_of(desired), "update", previous, desired)

    async def delete(self, device_id: str, current: ResourceDescription) -> None:
        await self._run(device_id, kind_of(current), "delete", current)

    async def import_resource(self, device_id: str, kind: ResourceKind, resource_id: str) -> ResourceDescription:
        return await self._run(device_id, kind, "import_resource", resource_id)

    async def find_free_tunnel_unit(self, device_id: str) -> str:
        """First st0 unit from 1 that is absent, empty or disabled, e.g. ``st0.1``."""
        async with self.session(device_id) as session:
            return await LogicalInterfaceResource(session, cancel=self.cancel).free_tunnel_unit()
