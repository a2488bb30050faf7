"""Tests for the lock / edit / validate / commit protocol."""
import asyncio

import pytest

from junos_config_sync.config_engine.guard import ReadGuard
from junos_config_sync.config_engine.transaction import Transaction, TransactionState
from junos_config_sync.errors import (
    ApplyRejected,
    CommitFailed,
    LockAcquisitionStalled,
    ValidationFailed,
)
from conftest import FakeChannel


LINES = ["set interfaces ge-0/0/3 description \"uplink\""]


class TestTransactionSuccess:
    """Tests for the happy path."""

    @pytest.mark.asyncio
    async def test_commit_sequence(self):
        """Lock, apply, check, commit, unlock in that order."""
        channel = FakeChannel()
        async with Transaction(channel) as tx:
            await tx.apply(LINES)
            await tx.commit("create resource junos_interface")
        assert channel.calls == ["lock", "apply", "validate", "commit", "unlock"]
        assert channel.commits == ["create resource junos_interface"]
        assert tx.committed
        assert tx.history == [
            TransactionState.IDLE,
            TransactionState.LOCKED,
            TransactionState.EDITED,
            TransactionState.VALIDATED_OK,
            TransactionState.COMMITTED,
            TransactionState.CLOSED,
        ]

    @pytest.mark.asyncio
    async def test_empty_apply_skips_device(self):
        """An empty batch is not sent."""
        channel = FakeChannel()
        async with Transaction(channel) as tx:
            assert await tx.apply([]) == []
            await tx.commit("noop")
        assert "apply" not in channel.calls

    @pytest.mark.asyncio
    async def test_rollback_after_commit_is_noop(self):
        """A committed transaction never discards."""
        channel = FakeChannel()
        async with Transaction(channel) as tx:
            await tx.apply(LINES)
            await tx.commit("log")
            await tx.rollback()
        assert channel.count("discard") == 0
        assert channel.count("unlock") == 1


class TestTransactionRollback:
    """Failures discard the candidate and unlock exactly once."""

    @pytest.mark.asyncio
    async def test_apply_rejected(self):
        """load-configuration errors become ApplyRejected with the device messages."""
        channel = FakeChannel()
        channel.fail_on["apply"] = "syntax error; missing argument"
        with pytest.raises(ApplyRejected) as exc_info:
            async with Transaction(channel, resource="ge-0/0/3") as tx:
                await tx.apply(LINES)
        assert exc_info.value.messages == ["syntax error", "missing argument"]
        assert exc_info.value.resource == "ge-0/0/3"
        assert channel.count("discard") == 1
        assert channel.count("unlock") == 1
        assert channel.calls.index("discard") < channel.calls.index("unlock")

    @pytest.mark.asyncio
    async def test_validation_failed(self):
        """commit check errors become ValidationFailed."""
        channel = FakeChannel()
        channel.fail_on["validate"] = "configuration check-out failed"
        with pytest.raises(ValidationFailed):
            async with Transaction(channel) as tx:
                await tx.apply(LINES)
                await tx.commit("log")
        assert "commit" not in channel.calls
        assert channel.count("discard") == 1
        assert channel.count("unlock") == 1
        assert not tx.committed
        assert tx.history[-3:] == [
            TransactionState.VALIDATED_FAILED,
            TransactionState.ROLLED_BACK,
            TransactionState.CLOSED,
        ]

    @pytest.mark.asyncio
    async def test_commit_failed(self):
        """commit errors become CommitFailed."""
        channel = FakeChannel()
        channel.fail_on["commit"] = "commit failed"
        with pytest.raises(CommitFailed):
            async with Transaction(channel) as tx:
                await tx.apply(LINES)
                await tx.commit("log")
        assert channel.count("discard") == 1
        assert channel.count("unlock") == 1

    @pytest.mark.asyncio
    async def test_exception_in_block(self):
        """Leaving the block with an error discards the candidate."""
        channel = FakeChannel()
        with pytest.raises(RuntimeError):
            async with Transaction(channel) as tx:
                await tx.apply(LINES)
                raise RuntimeError("handler failure")
        assert tx.history[-2:] == [TransactionState.ROLLED_BACK, TransactionState.CLOSED]
        assert channel.count("discard") == 1
        assert channel.count("unlock") == 1

    @pytest.mark.asyncio
    async def test_exit_without_commit(self):
        """Leaving the block cleanly but uncommitted also discards."""
        channel = FakeChannel()
        async with Transaction(channel) as tx:
            await tx.apply(LINES)
        assert channel.calls[-2:] == ["discard", "unlock"]
        assert tx.state == TransactionState.CLOSED
        assert not tx.committed


class TestLockAcquisition:
    """Tests for the blocking candidate lock wait."""

    @pytest.mark.asyncio
    async def test_retries_until_granted(self):
        """Refused locks are polled again."""
        channel = FakeChannel(max_lock_attempts=5)
        channel.lock_refusals = 2
        async with Transaction(channel) as tx:
            await tx.commit("log")
        assert channel.count("lock") == 3

    @pytest.mark.asyncio
    async def test_attempts_exhausted(self):
        """A bounded wait raises LockAcquisitionStalled and never unlocks."""
        channel = FakeChannel(max_lock_attempts=3)
        channel.lock_refusals = 10
        with pytest.raises(LockAcquisitionStalled):
            async with Transaction(channel):
                pass
        assert channel.count("lock") == 3
        assert channel.count("unlock") == 0
        assert channel.count("discard") == 0

    @pytest.mark.asyncio
    async def test_cancelled(self):
        """A set cancel event stops the wait."""
        channel = FakeChannel(max_lock_attempts=None)
        channel.lock_refusals = 10
        cancel = asyncio.Event()
        cancel.set()
        with pytest.raises(LockAcquisitionStalled):
            async with Transaction(channel, cancel=cancel):
                pass
        assert channel.count("unlock") == 0


class TestReadGuard:
    """Tests for the read guard."""

    @pytest.mark.asyncio
    async def test_serializes_holders(self):
        """A second holder waits for the first one."""
        guard = ReadGuard()
        order = []

        async def holder(name):
            async with guard:
                order.append(f"{name}-in")
                await asyncio.sleep(0.01)
                order.append(f"{name}-out")

        await asyncio.gather(holder("a"), holder("b"))
        assert order == ["a-in", "a-out", "b-in", "b-out"]
        assert not guard.locked
