"""Set-file channel: records staged directives in a local file.

Used for offline runs (``JUNOS_FAKECREATE_SETFILE``). Every read reports an
empty device, the lock is always granted and commit is a no-op, so create
flows run end to end and leave the batch they would have sent in the file.
"""
import asyncio
import logging
from pathlib import Path

from .base import RemoteChannel, DeviceConfig, DeviceFacts, EMPTY_SENTINEL

logger = logging.getLogger(__name__)


class SetFileChannel(RemoteChannel):
    """RemoteChannel that appends every applied line to ``config.fake_set_file``."""

    def __init__(self, device_id: str, config: DeviceConfig):
        super().__init__(device_id, config)
        if not config.fake_set_file:
            raise ValueError(f"device {device_id}: fake_set_file is required for the set-file channel")
        self.path = Path(config.fake_set_file).expanduser()
        self._write_lock = asyncio.Lock()

    async def connect(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.facts = DeviceFacts(hardware_model="set-file", security_override=True)
        self._connected = True
        logger.info(f"Recording directives for {self.device_id} in {self.path}")

    async def disconnect(self) -> None:
        self._connected = False

    async def query(self, command: str) -> str:
        logger.debug(f"set-file query ignored: {command}")
        return EMPTY_SENTINEL

    async def query_structured(self, rpc: str) -> str:
        return ""

    async def apply(self, lines: list[str]) -> list[str]:
        async with self._write_lock:
            with open(self.path, "a", encoding="utf-8") as f:
                for line in lines:
                    f.write(line + "\n")
        return []

    async def lock(self) -> bool:
        return True

    async def unlock(self) -> None:
        return None

    async def validate(self) -> list[str]:
        return []

    async def commit(self, log: str) -> list[str]:
        logger.debug(f"set-file commit ignored: {log}")
        return []

    async def discard_candidate(self) -> None:
        return None
