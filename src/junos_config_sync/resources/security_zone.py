"""Security zones and their single address-book entries."""
import logging
from typing import Optional

from ..config_engine.parser import is_empty_dump
from ..config_engine.schema import ResourceKind, SecurityZone, Selector, ZoneBookAddress
from ..errors import PostCommitDivergence, ResourceExists, ResourceNotFound
from .base import ResourceHandler, split_id

logger = logging.getLogger(__name__)


class SecurityZoneResource(ResourceHandler):
    """Handler for ``junos_security_zone``.

    Interfaces bound to the zone are reported by read but owned by the
    interface resources, so they are never compiled here.
    """

    kind = ResourceKind.SECURITY_ZONE
    resource_type = "junos_security_zone"

    async def create(self, desired: SecurityZone) -> SecurityZone:
        name = desired.name
        self.require_security("security zone")
        logger.info(f"Creating security zone {name} on {self.session.device_id}")
        async with self.transaction(name) as tx:
            if not self.session.records_only and await self.zone_exists(name):
                raise ResourceExists(f"security zone {name} already exists", resource=name)
            await tx.apply(self.compiler.compile(desired))
            await tx.commit(self.commit_log("create"))
        if self.session.records_only:
            return desired
        if not await self.zone_exists(name):
            raise PostCommitDivergence(
                f"security zone {name} not exists after commit => check your config", resource=name
            )
        return await self.read(desired)

    async def read(self, reference: SecurityZone) -> Optional[SecurityZone]:
        current = await self.parse(
            f"security zones security-zone {reference.name}",
            Selector(kind=self.kind, name=reference.name),
        )
        if not current.name:
            return None
        current.address_book_configure_singly = reference.address_book_configure_singly
        if reference.address_book_configure_singly:
            current.address_book = []
            current.address_book_dns = []
            current.address_book_range = []
            current.address_book_wildcard = []
            current.address_book_set = []
        return current

    async def update(self, previous: SecurityZone, desired: SecurityZone) -> SecurityZone:
        name = desired.name
        singly = previous.address_book_configure_singly or desired.address_book_configure_singly
        if previous.address_book_configure_singly != desired.address_book_configure_singly:
            logger.warning(
                f"Changing address_book_configure_singly on zone {name} doesn't delete "
                "addresses and address-sets already configured"
            )
        async with self.transaction(name) as tx:
            await tx.apply(self.compiler.compile_reset(
                SecurityZone(name=name, address_book_configure_singly=singly)
            ))
            await tx.apply(self.compiler.compile(desired))
            await tx.commit(self.commit_log("update"))
        if self.session.records_only:
            return desired
        return await self.read(desired)

    async def delete(self, current: SecurityZone) -> None:
        async with self.transaction(current.name) as tx:
            await tx.apply(self.compiler.compile_delete(current))
            await tx.commit(self.commit_log("delete"))

    async def import_resource(self, resource_id: str) -> SecurityZone:
        current = await self.read(SecurityZone(name=resource_id))
        if current is None:
            raise ResourceNotFound(
                f"don't find zone with id '{resource_id}' (id must be <name>)", resource=resource_id
            )
        return current


class ZoneBookAddressResource(ResourceHandler):
    """Handler for ``junos_security_zone_book_address``."""

    kind = ResourceKind.ZONE_BOOK_ADDRESS
    resource_type = "junos_security_zone_book_address"

    def _path(self, zone: str, name: str) -> str:
        return f"security zones security-zone {zone} address-book address {name}"

    async def _exists(self, zone: str, name: str) -> bool:
        return not is_empty_dump(await self.dump(self._path(zone, name)))

    async def create(self, desired: ZoneBookAddress) -> ZoneBookAddress:
        resource = f"{desired.zone}/{desired.name}"
        self.require_security("security zone address-book address")
        async with self.transaction(resource) as tx:
            if not self.session.records_only:
                await self.check_zone(desired.zone)
                if await self._exists(desired.zone, desired.name):
                    raise ResourceExists(
                        f"security zone address-book address {desired.name} already exists in zone {desired.zone}",
                        resource=resource,
                    )
            await tx.apply(self.compiler.compile(desired))
            await tx.commit(self.commit_log("create"))
        if self.session.records_only:
            return desired
        if not await self._exists(desired.zone, desired.name):
            raise PostCommitDivergence(
                f"security zone address-book address {desired.name} not exists in zone {desired.zone}"
                " after commit => check your config",
                resource=resource,
            )
        return await self.read(desired)

    async def read(self, reference: ZoneBookAddress) -> Optional[ZoneBookAddress]:
        current = await self.parse(
            self._path(reference.zone, reference.name),
            Selector(kind=self.kind, zone=reference.zone, name=reference.name),
        )
        if not current.name:
            return None
        return current

    async def update(self, previous: ZoneBookAddress, desired: ZoneBookAddress) -> ZoneBookAddress:
        async with self.transaction(f"{desired.zone}/{desired.name}") as tx:
            await tx.apply(self.compiler.compile_delete(previous))
            await tx.apply(self.compiler.compile(desired))
            await tx.commit(self.commit_log("update"))
        if self.session.records_only:
            return desired
        return await self.read(desired)

    async def delete(self, current: ZoneBookAddress) -> None:
        async with self.transaction(f"{current.zone}/{current.name}") as tx:
            await tx.apply(self.compiler.compile_delete(current))
            await tx.commit(self.commit_log("delete"))

    async def import_resource(self, resource_id: str) -> ZoneBookAddress:
        zone, name = split_id(resource_id, 2, "<zone>_-_<name>")[:2]
        current = await self.read(ZoneBookAddress(zone=zone, name=name))
        if current is None:
            raise ResourceNotFound(
                f"don't find zone address-book address with id '{resource_id}' (id must be <zone>_-_<name>)",
                resource=resource_id,
            )
        return current
