"""Device session: one channel, its facts, its read guard."""
import asyncio
import logging
from typing import Optional

from .config_engine.guard import ReadGuard
from .config_engine.schema import DeviceContext
from .config_engine.transaction import Transaction
from .devices.base import DeviceConfig, DeviceFacts, RemoteChannel
from .devices.netconf import RPC_INTERFACE_INFORMATION
from .devices.setfile import SetFileChannel
from .errors import ChannelError

logger = logging.getLogger(__name__)


class DeviceSession:
    """Handle on a connected device.

    Closed deterministically when used as an async context manager:

        async with DeviceSession(channel) as session:
            exists = await session.interface_exists("ge-0/0/3")
    """

    def __init__(self, channel: RemoteChannel, guard: Optional[ReadGuard] = None):
        """
        Args:
            channel: Remote channel, connected on entry if it is not already
            guard: Read guard shared with other sessions on the same device
        """
        self.channel = channel
        self.guard = guard if guard is not None else ReadGuard()

    @property
    def device_id(self) -> str:
        return self.channel.device_id

    @property
    def config(self) -> DeviceConfig:
        return self.channel.config

    @property
    def facts(self) -> DeviceFacts:
        return self.channel.facts

    @property
    def records_only(self) -> bool:
        """True when directives are recorded to a file instead of sent to a device."""
        return isinstance(self.channel, SetFileChannel)

    async def open(self) -> None:
        if not self.channel.is_connected:
            await self.channel.connect()

    async def close(self) -> None:
        if self.channel.is_connected:
            await self.channel.disconnect()

    async def __aenter__(self) -> "DeviceSession":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    # --- Reads ---

    async def query(self, command: str) -> str:
        return await self.channel.query(command)

    async def dump(self, path: str) -> str:
        """``show configuration <path> | display set relative``."""
        return await self.channel.query(f"show configuration {path} | display set relative")

    async def interface_exists(self, name: str) -> bool:
        """Look the interface up in the interface table. A "not found" rpc-error means absent."""
        try:
            await self.channel.query_structured(RPC_INTERFACE_INFORMATION.format(name))
        except ChannelError as e:
            if "not found" in e.message:
                return False
            raise
        return True

    # --- Helpers for handlers ---

    def context(self, **snapshots) -> DeviceContext:
        """DeviceContext carrying this session's facts and placeholder group."""
        return DeviceContext(
            facts=self.facts,
            group_interface_delete=self.config.group_interface_delete,
            **snapshots,
        )

    def transaction(self, resource: Optional[str] = None,
                    cancel: Optional[asyncio.Event] = None) -> Transaction:
        return Transaction(self.channel, self.config, cancel=cancel, resource=resource)
