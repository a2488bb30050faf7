"""Legacy unified interface: one resource for physical and ``<physical>.<unit>`` names."""
import logging
from typing import Optional

from ..config_engine import allocator
from ..config_engine.compiler import TUNNEL_PHYSICAL, implicit_vlan_id, interface_path, split_interface_name
from ..config_engine.classifier import contains_logical_unit
from ..config_engine.schema import DirectiveBatch, Interface, ResourceKind, Selector
from ..errors import ResourceNotFound, StructuralConstraintViolation
from .base import InterfaceHandler

logger = logging.getLogger(__name__)


class InterfaceResource(InterfaceHandler):
    """Handler for ``junos_interface``."""

    kind = ResourceKind.INTERFACE
    resource_type = "junos_interface"
    disabled_after_commit = (
        "interface {} exists (because is a physical or internal default interface) "
        "but always disable after commit => check your config"
    )
    missing_after_commit = "interface {} not exists after commit => check your config"

    async def _check_memberships(self, desired: Interface, previous: Optional[Interface] = None) -> None:
        """Zone and routing instance of ``desired`` must exist when they change."""
        zone_changed = previous is None or previous.security_zone != desired.security_zone
        if desired.security_zone and zone_changed:
            self.require_security("security zone")
            await self.check_zone(desired.security_zone, "security zones {} doesn't exist")
        ri_changed = previous is None or previous.routing_instance != desired.routing_instance
        if desired.routing_instance and ri_changed:
            await self.check_routing_instance(desired.routing_instance)

    async def create(self, desired: Interface) -> Interface:
        name = desired.name
        logger.info(f"Creating interface {name} on {self.session.device_id}")
        async with self.transaction(name) as tx:
            async with self.session.guard:
                if self.session.records_only:
                    await tx.apply(self.compiler.clear_placeholder(name, self.group))
                else:
                    await self.claim_interface(tx, name)
                    await self._check_memberships(desired)
                ctx = self.session.context(interfaces_config=await self.interfaces_snapshot())
                await tx.apply(self.compiler.compile(desired, ctx))
            await tx.commit(self.commit_log("create"))
        if self.session.records_only:
            return desired
        await self.confirm_interface(name)
        return await self.read(desired)

    async def read(self, reference: Interface) -> Optional[Interface]:
        name = reference.name
        async with self.session.guard:
            if not await self.present(name):
                return None
            current = await self.parse(
                f"interfaces {interface_path(name)}", Selector(kind=self.kind, name=name)
            )
            zone, _, _, routing_instance = await self.interface_memberships(name)
        current.name = name
        current.security_zone = zone
        current.routing_instance = routing_instance
        current.complete_destroy = reference.complete_destroy
        if not reference.vlan_tagging_id and current.vlan_tagging_id == implicit_vlan_id(name, (TUNNEL_PHYSICAL,)):
            current.vlan_tagging_id = 0
        return current

    async def _release_previous_aggregate(self, tx, previous: Interface, desired: Interface, snapshot: str) -> None:
        old_ae = previous.ether802_3ad
        if not old_ae or old_ae == desired.ether802_3ad:
            return
        if not allocator.is_last_aggregated_child(snapshot, old_ae, previous.name):
            return
        count = allocator.aggregated_device_count(
            snapshot, desired.ether802_3ad or allocator.NO_AGGREGATE, old_ae, previous.name
        )
        if count == "0":
            await tx.apply([allocator.device_count_directive(count)])
        await self.release_aggregate(tx, old_ae, count)

    async def update(self, previous: Interface, desired: Interface) -> Interface:
        name = desired.name
        logger.info(f"Updating interface {name} on {self.session.device_id}")
        async with self.transaction(name) as tx:
            async with self.session.guard:
                snapshot = await self.interfaces_snapshot()
                await tx.apply(self.compiler.compile_reset(previous))
                await self._release_previous_aggregate(tx, previous, desired, snapshot)
                if not self.session.records_only:
                    await self._check_memberships(desired, previous)
                cleanup = DirectiveBatch()
                if previous.security_zone and previous.security_zone != desired.security_zone:
                    cleanup.delete(f"security zones security-zone {previous.security_zone} interfaces {name}")
                if previous.routing_instance and previous.routing_instance != desired.routing_instance:
                    cleanup.delete(f"routing-instances {previous.routing_instance} interface {name}")
                await tx.apply(cleanup)
                ctx = self.session.context(
                    interfaces_config=snapshot,
                    previous_ae=previous.ether802_3ad if previous.ether802_3ad != desired.ether802_3ad else "",
                )
                await tx.apply(self.compiler.compile(desired, ctx))
            await tx.commit(self.commit_log("update"))
        if self.session.records_only:
            return desired
        return await self.read(desired)

    async def delete(self, current: Interface) -> None:
        name = current.name
        physical, unit = split_interface_name(name)
        logger.info(f"Deleting interface {name} on {self.session.device_id}")
        async with self.transaction(name) as tx:
            async with self.session.guard:
                snapshot = await self.interfaces_snapshot()
                if not unit and contains_logical_unit(await self.dump(f"interfaces {physical}")):
                    raise StructuralConstraintViolation(
                        f"interface {name} is used for a logical unit interface", resource=name
                    )
                batch = self.compiler.compile_delete(current, self.session.context(interfaces_config=snapshot))
                await tx.apply(batch)
                if "device_count" in batch.allocations and not self.session.records_only:
                    await self.release_aggregate(tx, current.ether802_3ad, batch.allocations["device_count"])
            await tx.commit(self.commit_log("delete"))
        if not current.complete_destroy and not self.session.records_only:
            await self.leave_placeholder(name)

    async def import_resource(self, resource_id: str) -> Interface:
        split_interface_name(resource_id)
        await self.import_interface(resource_id)
        current = await self.read(Interface(name=resource_id))
        if current is None:
            raise ResourceNotFound(
                f"don't find interface with id '{resource_id}' (id must be <name>)", resource=resource_id
            )
        return current
