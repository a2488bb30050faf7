"""Lock / edit / validate / commit protocol around one mutation.

Usage:
    async with Transaction(channel, config) as tx:
        await tx.apply(batch)
        await tx.commit("create resource junos_interface")

Leaving the block without a commit (or with an exception) discards the
candidate. The candidate lock is released exactly once on every path, and
every path ends in ``TransactionState.CLOSED`` (``history`` keeps the trail).
"""
import asyncio
import logging
from enum import Enum
from typing import Iterable, Optional

from tenacity import RetryError

from ..devices.base import DeviceConfig, RemoteChannel
from ..errors import (
    ApplyRejected,
    ChannelError,
    CommitFailed,
    LockAcquisitionStalled,
    ValidationFailed,
)
from ..utils.connection import poll_until_granted
from ..utils.logging_config import timed_section

logger = logging.getLogger(__name__)


class TransactionState(str, Enum):
    IDLE = "idle"
    LOCKED = "locked"
    EDITED = "edited"
    VALIDATED_OK = "validated_ok"
    VALIDATED_FAILED = "validated_failed"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    CLOSED = "closed"


def _messages(error: ChannelError) -> list[str]:
    return [part for part in error.message.split("; ") if part]


class Transaction:
    """One locked edit of the candidate configuration."""

    def __init__(
        self,
        channel: RemoteChannel,
        config: Optional[DeviceConfig] = None,
        cancel: Optional[asyncio.Event] = None,
        resource: Optional[str] = None,
    ):
        """
        Args:
            channel: Connected remote channel
            config: Pacing options, defaults to the channel's own
            cancel: Stops the lock wait when set
            resource: Identifier folded into raised errors
        """
        self.channel = channel
        self.config = config or channel.config
        self.cancel = cancel
        self.resource = resource
        self.history: list[TransactionState] = [TransactionState.IDLE]
        self.committed = False
        self.warnings: list[str] = []
        self._locked = False

    @property
    def state(self) -> TransactionState:
        return self.history[-1]

    def _move(self, state: TransactionState) -> None:
        if self.history[-1] != state:
            self.history.append(state)

    async def __aenter__(self) -> "Transaction":
        await self._acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if not self.committed:
            if exc_type is not None:
                logger.warning(f"Transaction on {self.channel.device_id} aborted: {exc_val}")
            await self.rollback()
        await self._release()
        return False

    async def _acquire(self) -> None:
        device_id = self.channel.device_id
        logger.debug(f"Waiting for candidate lock on {device_id}")
        try:
            await poll_until_granted(
                self.channel.lock,
                interval=self.config.sleep_lock,
                cancel=self.cancel,
                max_attempts=self.config.max_lock_attempts,
            )
        except RetryError:
            raise LockAcquisitionStalled(
                f"candidate lock on {device_id} not acquired", resource=self.resource
            ) from None
        self._locked = True
        self._move(TransactionState.LOCKED)
        logger.debug(f"Candidate lock on {device_id} acquired")

    async def _release(self) -> None:
        if not self._locked:
            return
        self._locked = False
        try:
            await self.channel.unlock()
        finally:
            self._move(TransactionState.CLOSED)

    async def apply(self, lines: Iterable[str]) -> list[str]:
        """Stage lines in the candidate. A rejected batch rolls back and raises ApplyRejected."""
        lines = list(lines)
        if not lines:
            return []
        logger.debug(f"Applying {len(lines)} lines on {self.channel.device_id}")
        try:
            warnings = await self.channel.apply(lines)
        except ChannelError as e:
            await self.rollback()
            raise ApplyRejected(
                "load configuration rejected", resource=self.resource, messages=_messages(e)
            ) from e
        self._move(TransactionState.EDITED)
        self.warnings.extend(warnings)
        return warnings

    async def commit(self, log: str) -> list[str]:
        """
        Commit check, then commit with ``log`` as the commit comment.

        Returns:
            Warnings reported by the device

        Raises:
            ValidationFailed: commit check returned errors
            CommitFailed: commit returned errors
        """
        device_id = self.channel.device_id
        async with timed_section("commit", device_id):
            try:
                warnings = await self.channel.validate()
            except ChannelError as e:
                self._move(TransactionState.VALIDATED_FAILED)
                await self.rollback()
                raise ValidationFailed(
                    "commit check failed", resource=self.resource, messages=_messages(e)
                ) from e
            self._move(TransactionState.VALIDATED_OK)
            try:
                warnings += await self.channel.commit(log)
            except ChannelError as e:
                await self.rollback()
                raise CommitFailed(
                    "commit failed", resource=self.resource, messages=_messages(e)
                ) from e
        self.committed = True
        self._move(TransactionState.COMMITTED)
        self.warnings.extend(warnings)
        logger.info(f"Committed on {device_id}: {log}")
        return warnings

    async def rollback(self) -> None:
        """Discard the candidate and release the lock. No-op once committed or rolled back."""
        if self.committed or not self._locked:
            return
        logger.info(f"Rolling back candidate on {self.channel.device_id}")
        try:
            await self.channel.discard_candidate()
        finally:
            self._move(TransactionState.ROLLED_BACK)
            await self._release()
