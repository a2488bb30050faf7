"""OSPF / OSPFv3 areas, per routing instance."""
import logging
from typing import Optional

from ..config_engine.parser import is_empty_dump
from ..config_engine.schema import OspfArea, ResourceKind, Selector, ospf_area_path
from ..errors import PostCommitDivergence, ResourceExists, ResourceNotFound
from .base import ResourceHandler, split_id

logger = logging.getLogger(__name__)


class OspfAreaResource(ResourceHandler):
    """Handler for ``junos_ospf_area``. Import id: ``<area_id>_-_<version>_-_<routing_instance>``."""

    kind = ResourceKind.OSPF_AREA
    resource_type = "junos_ospf_area"

    @staticmethod
    def _label(area: OspfArea) -> str:
        return f"ospf {area.version} area {area.area_id} in routing instance {area.routing_instance}"

    async def _exists(self, area: OspfArea) -> bool:
        dump = await self.session.query(
            f"show configuration {ospf_area_path(area.area_id, area.version, area.routing_instance)} | display set"
        )
        return not is_empty_dump(dump)

    async def create(self, desired: OspfArea) -> OspfArea:
        async with self.transaction(desired.area_id) as tx:
            if not self.session.records_only:
                await self.check_routing_instance(desired.routing_instance)
                if await self._exists(desired):
                    raise ResourceExists(
                        f"ospf {desired.version} area {desired.area_id} already exists"
                        f" in routing instance {desired.routing_instance}",
                        resource=desired.area_id,
                    )
            await tx.apply(self.compiler.compile(desired))
            await tx.commit(self.commit_log("create"))
        if self.session.records_only:
            return desired
        if not await self._exists(desired):
            raise PostCommitDivergence(
                f"{self._label(desired)} not exists after commit => check your config",
                resource=desired.area_id,
            )
        return await self.read(desired)

    async def read(self, reference: OspfArea) -> Optional[OspfArea]:
        selector = Selector(
            kind=self.kind,
            area_id=reference.area_id,
            version=reference.version,
            routing_instance=reference.routing_instance,
        )
        current = await self.parse(
            ospf_area_path(reference.area_id, reference.version, reference.routing_instance), selector
        )
        if not current.area_id:
            return None
        return current

    async def update(self, previous: OspfArea, desired: OspfArea) -> OspfArea:
        async with self.transaction(desired.area_id) as tx:
            await tx.apply(self.compiler.compile_delete(previous))
            await tx.apply(self.compiler.compile(desired))
            await tx.commit(self.commit_log("update"))
        if self.session.records_only:
            return desired
        return await self.read(desired)

    async def delete(self, current: OspfArea) -> None:
        logger.info(f"Deleting {self._label(current)} on {self.session.device_id}")
        async with self.transaction(current.area_id) as tx:
            await tx.apply(self.compiler.compile_delete(current))
            await tx.commit(self.commit_log("delete"))

    async def import_resource(self, resource_id: str) -> OspfArea:
        area_id, version, routing_instance = split_id(
            resource_id, 3, "<area_id>_-_<version>_-_<routing_instance>"
        )[:3]
        reference = OspfArea(area_id=area_id, version=version, routing_instance=routing_instance)
        if not await self.routing_instance_exists(routing_instance):
            raise ResourceNotFound(f"routing instance {routing_instance} doesn't exist", resource=resource_id)
        current = await self.read(reference)
        if current is None:
            raise ResourceNotFound(
                f"don't find ospf area with id '{resource_id}'"
                " (id must be <area_id>_-_<version>_-_<routing_instance>)",
                resource=resource_id,
            )
        return current
