"""Logical interfaces (``<physical>.<unit>``) and st0 unit allocation."""
import logging
from typing import Optional

from ..config_engine import allocator
from ..config_engine.compiler import TUNNEL_PHYSICAL, implicit_vlan_id, interface_path
from ..config_engine.schema import DirectiveBatch, LogicalInterface, ResourceKind, Selector
from ..errors import ResourceNotFound, StructuralConstraintViolation
from .base import InterfaceHandler

logger = logging.getLogger(__name__)


class LogicalInterfaceResource(InterfaceHandler):
    """Handler for ``junos_interface_logical``."""

    kind = ResourceKind.INTERFACE_LOGICAL
    resource_type = "junos_interface_logical"

    async def _check_memberships(self, desired: LogicalInterface, previous: Optional[LogicalInterface] = None):
        zone_changed = previous is None or previous.security_zone != desired.security_zone
        if desired.security_zone and zone_changed:
            self.require_security("security zone")
            await self.check_zone(desired.security_zone)
        ri_changed = previous is None or previous.routing_instance != desired.routing_instance
        if desired.routing_instance and ri_changed:
            await self.check_routing_instance(desired.routing_instance)

    async def create(self, desired: LogicalInterface) -> LogicalInterface:
        name = desired.name
        logger.info(f"Creating logical interface {name} on {self.session.device_id}")
        async with self.transaction(name) as tx:
            async with self.session.guard:
                if self.session.records_only:
                    await tx.apply(self.compiler.clear_placeholder(name, self.group))
                else:
                    await self.claim_interface(tx, name)
                    await self._check_memberships(desired)
                await tx.apply(self.compiler.compile(desired, self.session.context()))
            await tx.commit(self.commit_log("create"))
        if self.session.records_only:
            return desired
        await self.confirm_interface(name)
        return await self.read(desired)

    async def read(self, reference: LogicalInterface) -> Optional[LogicalInterface]:
        name = reference.name
        async with self.session.guard:
            if not await self.present(name):
                return None
            current = await self.parse(
                f"interfaces {interface_path(name)}", Selector(kind=self.kind, name=name)
            )
            zone, protocols, services, routing_instance = await self.interface_memberships(name)
        current.name = name
        current.security_zone = zone
        current.security_inbound_protocols = protocols
        current.security_inbound_services = services
        current.routing_instance = routing_instance
        current.st0_also_on_destroy = reference.st0_also_on_destroy
        current.vlan_no_compute = reference.vlan_no_compute
        if not reference.vlan_id and current.vlan_id == implicit_vlan_id(name):
            current.vlan_id = 0
        return current

    async def update(self, previous: LogicalInterface, desired: LogicalInterface) -> LogicalInterface:
        name = desired.name
        logger.info(f"Updating logical interface {name} on {self.session.device_id}")
        async with self.transaction(name) as tx:
            async with self.session.guard:
                await tx.apply(self.compiler.compile_reset(previous))
                if not self.session.records_only:
                    await self._check_memberships(desired, previous)
                cleanup = DirectiveBatch()
                # zone membership carries host-inbound-traffic, so it is always re-set
                if previous.security_zone:
                    cleanup.delete(f"security zones security-zone {previous.security_zone} interfaces {name}")
                if previous.routing_instance and previous.routing_instance != desired.routing_instance:
                    cleanup.delete(f"routing-instances {previous.routing_instance} interface {name}")
                await tx.apply(cleanup)
                await tx.apply(self.compiler.compile(desired, self.session.context()))
            await tx.commit(self.commit_log("update"))
        if self.session.records_only:
            return desired
        return await self.read(desired)

    async def delete(self, current: LogicalInterface) -> None:
        logger.info(f"Deleting logical interface {current.name} on {self.session.device_id}")
        async with self.transaction(current.name) as tx:
            await tx.apply(self.compiler.compile_delete(current, self.session.context()))
            await tx.commit(self.commit_log("delete"))

    async def import_resource(self, resource_id: str) -> LogicalInterface:
        if resource_id.count(".") != 1:
            raise StructuralConstraintViolation(
                f"name of interface {resource_id} need to have 1 dot", resource=resource_id
            )
        await self.import_interface(resource_id)
        current = await self.read(LogicalInterface(name=resource_id))
        if current is None:
            raise ResourceNotFound(
                f"don't find interface with id '{resource_id}' (id must be <name>)", resource=resource_id
            )
        return current

    async def free_tunnel_unit(self) -> str:
        """First st0 unit (from 1) that is absent, empty or only a placeholder."""
        async with self.session.guard:
            states = allocator.tunnel_unit_states(
                await self.dump(f"interfaces {TUNNEL_PHYSICAL}"), self.group
            )
        slot = allocator.first_reusable_slot(states, start=1)
        return f"{TUNNEL_PHYSICAL}.{slot}"
