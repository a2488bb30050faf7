"""IPsec VPNs with optional st0 bind-interface allocation."""
import logging
from dataclasses import replace
from typing import Optional

from ..config_engine.compiler import interface_path
from ..config_engine.parser import is_empty_dump
from ..config_engine.schema import Classification, IpsecVpn, ResourceKind, Selector
from ..errors import PostCommitDivergence, ResourceExists, ResourceNotFound
from .base import ResourceHandler

logger = logging.getLogger(__name__)


class IpsecVpnResource(ResourceHandler):
    """Handler for ``junos_security_ipsec_vpn``.

    With ``bind_interface_auto`` the first st0 unit absent from the device is
    created and bound; it is removed again on delete when nothing else
    configured it.
    """

    kind = ResourceKind.IPSEC_VPN
    resource_type = "junos_security_ipsec_vpn"

    def _path(self, name: str) -> str:
        return f"security ipsec vpn {name}"

    async def _exists(self, name: str) -> bool:
        return not is_empty_dump(await self.dump(self._path(name)))

    async def create(self, desired: IpsecVpn) -> IpsecVpn:
        name = desired.name
        self.require_security("security ipsec vpn")
        async with self.transaction(name) as tx:
            async with self.session.guard:
                if not self.session.records_only and await self._exists(name):
                    raise ResourceExists(f"security ipsec vpn {name} already exists", resource=name)
                # st0 may not exist at all; only an allocation needs the terse list
                tunnel_units = None
                if desired.bind_interface_auto and not desired.bind_interface:
                    tunnel_units = await self.session.query("show interfaces st0 terse")
                batch = self.compiler.compile(desired, self.session.context(tunnel_units=tunnel_units))
                await tx.apply(batch)
            await tx.commit(self.commit_log("create"))
        if "bind_interface" in batch.allocations:
            desired = replace(desired, bind_interface=batch.allocations["bind_interface"])
            logger.info(f"ipsec vpn {name} bound to {desired.bind_interface}")
        if self.session.records_only:
            return desired
        if not await self._exists(name):
            raise PostCommitDivergence(
                f"security ipsec vpn {name} not exists after commit => check your config", resource=name
            )
        return await self.read(desired)

    async def read(self, reference: IpsecVpn) -> Optional[IpsecVpn]:
        current = await self.parse(self._path(reference.name), Selector(kind=self.kind, name=reference.name))
        if not current.name:
            return None
        current.bind_interface_auto = reference.bind_interface_auto
        if current.vpn_monitor is not None and reference.vpn_monitor is not None:
            current.vpn_monitor.source_interface_auto = reference.vpn_monitor.source_interface_auto
            if current.vpn_monitor.source_interface_auto:
                current.vpn_monitor.source_interface = reference.vpn_monitor.source_interface
        return current

    async def update(self, previous: IpsecVpn, desired: IpsecVpn) -> IpsecVpn:
        if desired.bind_interface_auto and not desired.bind_interface:
            desired = replace(desired, bind_interface=previous.bind_interface)
        async with self.transaction(desired.name) as tx:
            await tx.apply([f"delete {self._path(desired.name)}"])
            await tx.apply(self.compiler.compile(desired, self.session.context()))
            await tx.commit(self.commit_log("update"))
        if self.session.records_only:
            return desired
        return await self.read(desired)

    async def delete(self, current: IpsecVpn) -> None:
        async with self.transaction(current.name) as tx:
            batch = self.compiler.compile_delete(current)
            if current.bind_interface_auto and current.bind_interface:
                if await self.interface_state(current.bind_interface) != Classification.CONFIGURED:
                    batch.delete(f"interfaces {interface_path(current.bind_interface)}")
            await tx.apply(batch)
            await tx.commit(self.commit_log("delete"))

    async def import_resource(self, resource_id: str) -> IpsecVpn:
        current = await self.read(IpsecVpn(name=resource_id))
        if current is None:
            raise ResourceNotFound(
                f"don't find security ipsec vpn with id '{resource_id}' (id must be <name>)",
                resource=resource_id,
            )
        return current
