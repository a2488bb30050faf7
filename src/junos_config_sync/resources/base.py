"""Base class for resource handlers.

A handler drives one resource family through create, read, update, delete
and import against a DeviceSession. Mutations always run inside a
Transaction; reads that feed an allocation run under the session guard.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

from ..config_engine import allocator
from ..config_engine.classifier import classify_interface, is_bare_unit
from ..config_engine.compiler import LineCompiler, interface_path
from ..config_engine.parser import (
    StateParser,
    is_empty_dump,
    routing_instance_of_interface,
    zone_inbound_traffic,
    zone_of_interface,
)
from ..config_engine.schema import Classification, ResourceKind, Selector
from ..config_engine.transaction import Transaction
from ..errors import (
    IncompatibleDevice,
    PostCommitDivergence,
    ResourceExists,
    ResourceNotFound,
    StructuralConstraintViolation,
)
from ..session import DeviceSession

logger = logging.getLogger(__name__)

# Separator between the parts of a compound import id
ID_SEPARATOR = "_-_"


class ResourceHandler(ABC):
    """Lifecycle operations for one resource family."""

    kind: ResourceKind
    # Name used in commit comments, e.g. "create resource junos_interface"
    resource_type: str = ""

    def __init__(self, session: DeviceSession, cancel: Optional[asyncio.Event] = None):
        self.session = session
        self.cancel = cancel
        self.compiler = LineCompiler()
        self.parser = StateParser()

    # --- Operations ---

    @abstractmethod
    async def create(self, desired):
        """Configure a new object and return the state read back."""

    @abstractmethod
    async def read(self, reference):
        """Current state of the object ``reference`` identifies, None when absent."""

    @abstractmethod
    async def update(self, previous, desired):
        """Replace ``previous`` with ``desired`` in one commit."""

    @abstractmethod
    async def delete(self, current) -> None:
        """Remove the object."""

    @abstractmethod
    async def import_resource(self, resource_id: str):
        """Read an existing object by its import id."""

    # --- Shared plumbing ---

    def commit_log(self, action: str) -> str:
        return f"{action} resource {self.resource_type}"

    def transaction(self, resource: Optional[str] = None) -> Transaction:
        return self.session.transaction(resource=resource, cancel=self.cancel)

    @property
    def group(self) -> str:
        return self.session.config.group_interface_delete

    async def dump(self, path: str) -> str:
        return await self.session.dump(path)

    async def parse(self, path: str, selector: Selector):
        return self.parser.parse(await self.dump(path), selector)

    async def interfaces_snapshot(self) -> str:
        return await self.dump("interfaces")

    async def interface_state(self, name: str) -> Classification:
        return classify_interface(
            await self.dump(f"interfaces {interface_path(name)}"),
            logical="." in name,
            group=self.group,
        )

    def require_security(self, what: str) -> None:
        """Raise IncompatibleDevice on a platform without a security stack."""
        facts = self.session.facts
        if not facts.is_security_compatible():
            raise IncompatibleDevice(f"{what} not compatible with Junos device {facts.hardware_model}")

    async def zone_exists(self, zone: str) -> bool:
        return not is_empty_dump(await self.dump(f"security zones security-zone {zone}"))

    async def routing_instance_exists(self, routing_instance: str) -> bool:
        if routing_instance == "default":
            return True
        return not is_empty_dump(await self.dump(f"routing-instances {routing_instance}"))

    async def check_zone(self, zone: str, message: str = "security zone {} doesn't exist") -> None:
        if not await self.zone_exists(zone):
            raise ResourceNotFound(message.format(zone), field="security_zone")

    async def check_routing_instance(self, routing_instance: str) -> None:
        if not await self.routing_instance_exists(routing_instance):
            raise ResourceNotFound(
                f"routing instance {routing_instance} doesn't exist", field="routing_instance"
            )

    async def interface_memberships(self, name: str) -> tuple[str, list[str], list[str], str]:
        """(zone, inbound protocols, inbound services, routing instance) of an interface."""
        zone = ""
        protocols: list[str] = []
        services: list[str] = []
        if self.session.facts.is_security_compatible():
            zones = await self.dump("security zones")
            zone = zone_of_interface(zones, name)
            if zone:
                protocols, services = zone_inbound_traffic(zones, zone, name)
        instances = await self.dump("routing-instances")
        return zone, protocols, services, routing_instance_of_interface(instances, name)

    async def release_aggregate(self, tx: Transaction, ae: str, count: str) -> None:
        """Delete the ``ae`` parent when the new device count no longer covers it
        and nothing but a placeholder is left on it.
        """
        if not ae or int(count) >= allocator.ae_index(ae) + 1:
            return
        if await self.interface_state(ae) != Classification.CONFIGURED:
            logger.info(f"Removing unused aggregated interface {ae}")
            await tx.apply([f"delete interfaces {ae}"])


def split_id(resource_id: str, parts: int, expected: str) -> list[str]:
    """Split a compound import id; ``expected`` describes the format in the error."""
    split = resource_id.split(ID_SEPARATOR)
    if len(split) < parts:
        raise StructuralConstraintViolation(
            f"missing element(s) in id with separator {ID_SEPARATOR} (id must be {expected})",
            resource=resource_id,
        )
    return split


class InterfaceHandler(ResourceHandler):
    """Shared placeholder handling for the interface families."""

    # Message used when the interface is back to its placeholder after commit
    disabled_after_commit = "interface {} always disable after commit => check your config"
    missing_after_commit = "interface {} not exists and config can't found after commit => check your config"

    async def claim_interface(self, tx: Transaction, name: str) -> None:
        """Refuse a configured interface, strip the placeholder from a disabled one."""
        state = await self.interface_state(name)
        if state == Classification.CONFIGURED:
            raise ResourceExists(f"interface {name} already configured", resource=name)
        if state == Classification.ADMINISTRATIVELY_DISABLED:
            logger.debug(f"Clearing placeholder on {name}")
            await tx.apply(self.compiler.clear_placeholder(name, self.group))

    async def present(self, name: str) -> bool:
        """True when the interface is configured, or unconfigured but known to the device."""
        dump = await self.dump(f"interfaces {interface_path(name)}")
        state = classify_interface(dump, logical="." in name, group=self.group)
        if state == Classification.ADMINISTRATIVELY_DISABLED:
            return False
        if state == Classification.UNCONFIGURED and not is_bare_unit(dump):
            return await self.session.interface_exists(name)
        return True

    async def confirm_interface(self, name: str) -> None:
        dump = await self.dump(f"interfaces {interface_path(name)}")
        state = classify_interface(dump, logical="." in name, group=self.group)
        if state == Classification.ADMINISTRATIVELY_DISABLED:
            raise PostCommitDivergence(self.disabled_after_commit.format(name), resource=name)
        if state == Classification.UNCONFIGURED and not is_bare_unit(dump):
            if not await self.session.interface_exists(name):
                raise PostCommitDivergence(self.missing_after_commit.format(name), resource=name)

    async def leave_placeholder(self, name: str) -> None:
        """Disable an interface the device still has after its configuration was deleted."""
        if not await self.session.interface_exists(name):
            return
        async with self.transaction(name) as tx:
            await tx.apply(self.compiler.placeholder(name, self.group))
            await tx.commit(self.commit_log("disable(NC)"))

    async def import_interface(self, resource_id: str) -> None:
        """Refuse to import a disabled or missing interface."""
        dump = await self.dump(f"interfaces {interface_path(resource_id)}")
        state = classify_interface(dump, logical="." in resource_id, group=self.group)
        if state == Classification.ADMINISTRATIVELY_DISABLED:
            raise StructuralConstraintViolation(
                f"interface '{resource_id}' is disabled, import is not possible", resource=resource_id
            )
        if state == Classification.UNCONFIGURED and not is_bare_unit(dump):
            if not await self.session.interface_exists(resource_id):
                raise ResourceNotFound(
                    f"don't find interface with id '{resource_id}' (id must be <name>)", resource=resource_id
                )
