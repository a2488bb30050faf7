"""Physical interfaces: ethernet options, aggregation, switching."""
import logging
from typing import Optional

from ..config_engine.classifier import contains_logical_unit
from ..config_engine.parser import shape_physical
from ..config_engine.schema import PhysicalInterface, ResourceKind, Selector
from ..errors import ResourceNotFound, StructuralConstraintViolation
from .base import InterfaceHandler

logger = logging.getLogger(__name__)


class PhysicalInterfaceResource(InterfaceHandler):
    """Handler for ``junos_interface_physical``.

    Deleting an interface the device keeps (every real port) leaves it
    disabled with the NC placeholder unless ``no_disable_on_destroy`` is set.
    """

    kind = ResourceKind.INTERFACE_PHYSICAL
    resource_type = "junos_interface_physical"

    async def create(self, desired: PhysicalInterface) -> PhysicalInterface:
        name = desired.name
        logger.info(f"Creating physical interface {name} on {self.session.device_id}")
        async with self.transaction(name) as tx:
            async with self.session.guard:
                if self.session.records_only:
                    await tx.apply(self.compiler.clear_placeholder(name, self.group))
                else:
                    await self.claim_interface(tx, name)
                ctx = self.session.context(interfaces_config=await self.interfaces_snapshot())
                await tx.apply(self.compiler.compile(desired, ctx))
            await tx.commit(self.commit_log("create"))
        if self.session.records_only:
            return desired
        await self.confirm_interface(name)
        return await self.read(desired)

    async def read(self, reference: PhysicalInterface) -> Optional[PhysicalInterface]:
        name = reference.name
        async with self.session.guard:
            if not await self.present(name):
                return None
            current = await self.parse(f"interfaces {name}", Selector(kind=self.kind, name=name))
        current.name = name
        current.no_disable_on_destroy = reference.no_disable_on_destroy
        return shape_physical(current, reference)

    async def update(self, previous: PhysicalInterface, desired: PhysicalInterface) -> PhysicalInterface:
        name = desired.name
        old_ae = previous.aggregated_parent()
        logger.info(f"Updating physical interface {name} on {self.session.device_id}")
        async with self.transaction(name) as tx:
            async with self.session.guard:
                ctx = self.session.context(
                    interfaces_config=await self.interfaces_snapshot(),
                    previous_ae=old_ae if old_ae != desired.aggregated_parent() else "",
                )
                await tx.apply(self.compiler.compile_reset(previous, ctx))
                await tx.apply(self.compiler.compile(desired, ctx))
            await tx.commit(self.commit_log("update"))
        if self.session.records_only:
            return desired
        return await self.read(desired)

    async def delete(self, current: PhysicalInterface) -> None:
        name = current.name
        logger.info(f"Deleting physical interface {name} on {self.session.device_id}")
        async with self.transaction(name) as tx:
            async with self.session.guard:
                if not self.session.records_only:
                    if contains_logical_unit(await self.dump(f"interfaces {name}")):
                        raise StructuralConstraintViolation(
                            f"interface {name} is used for a logical unit interface", resource=name
                        )
                ctx = self.session.context(interfaces_config=await self.interfaces_snapshot())
                await tx.apply(self.compiler.compile_delete(current, ctx))
            await tx.commit(self.commit_log("delete"))
        if not current.no_disable_on_destroy and not self.session.records_only:
            await self.leave_placeholder(name)

    async def import_resource(self, resource_id: str) -> PhysicalInterface:
        if "." in resource_id:
            raise StructuralConstraintViolation(
                f"name of interface {resource_id} need to doesn't have a dot", resource=resource_id
            )
        await self.import_interface(resource_id)
        current = await self.read(PhysicalInterface(name=resource_id))
        if current is None:
            raise ResourceNotFound(
                f"don't find interface with id '{resource_id}' (id must be <name>)", resource=resource_id
            )
        return current
