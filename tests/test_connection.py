"""Tests for connection utilities."""
import pytest
import asyncio

import paramiko
from tenacity import RetryError

from junos_config_sync.utils.connection import (
    with_retry,
    poll_until_granted,
    RETRYABLE_EXCEPTIONS,
)


class TestWithRetry:
    """Tests for retry decorator."""

    @pytest.mark.asyncio
    async def test_async_success_no_retry(self):
        """Successful async function doesn't retry."""
        call_count = 0

        @with_retry(max_attempts=3)
        async def succeeding_func():
            nonlocal call_count
            call_count += 1
            return "success"

        result = await succeeding_func()
        assert result == "success"
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_async_retry_then_success(self):
        """Async function retries on failure then succeeds."""
        call_count = 0

        @with_retry(max_attempts=3, min_wait=0.01, max_wait=0.1)
        async def failing_then_succeeding():
            nonlocal call_count
            call_count += 1
            if call_count < 2:
                raise ConnectionRefusedError("Connection refused")
            return "success"

        result = await failing_then_succeeding()
        assert result == "success"
        assert call_count == 2

    @pytest.mark.asyncio
    async def test_async_max_retries_exceeded(self):
        """Async function raises after max retries."""
        call_count = 0

        @with_retry(max_attempts=3, min_wait=0.01, max_wait=0.1)
        async def always_failing():
            nonlocal call_count
            call_count += 1
            raise TimeoutError("Always times out")

        with pytest.raises(TimeoutError):
            await always_failing()
        assert call_count == 3

    @pytest.mark.asyncio
    async def test_authentication_not_retried(self):
        """Bad credentials fail on the first attempt."""
        call_count = 0

        @with_retry(max_attempts=3, min_wait=0.01, max_wait=0.1)
        async def bad_login():
            nonlocal call_count
            call_count += 1
            raise paramiko.AuthenticationException("Authentication failed")

        with pytest.raises(paramiko.AuthenticationException):
            await bad_login()
        assert call_count == 1

    def test_sync_success_no_retry(self):
        """Successful sync function doesn't retry."""
        call_count = 0

        @with_retry(max_attempts=3)
        def succeeding_func():
            nonlocal call_count
            call_count += 1
            return "success"

        assert succeeding_func() == "success"
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_non_retryable_exception(self):
        """Non-retryable exceptions are not retried."""
        call_count = 0

        @with_retry(max_attempts=3, min_wait=0.01)
        async def value_error():
            nonlocal call_count
            call_count += 1
            raise ValueError("Not retryable")

        with pytest.raises(ValueError):
            await value_error()
        assert call_count == 1

    def test_retryable_exceptions_cover_ssh(self):
        assert paramiko.SSHException in RETRYABLE_EXCEPTIONS
        assert OSError in RETRYABLE_EXCEPTIONS


class TestPollUntilGranted:
    """Tests for the blocking poll loop."""

    @pytest.mark.asyncio
    async def test_granted_immediately(self):
        async def attempt():
            return True

        assert await poll_until_granted(attempt, interval=0) is True

    @pytest.mark.asyncio
    async def test_polls_until_granted(self):
        answers = [False, False, True]

        async def attempt():
            return answers.pop(0)

        assert await poll_until_granted(attempt, interval=0) is True
        assert answers == []

    @pytest.mark.asyncio
    async def test_max_attempts(self):
        calls = 0

        async def attempt():
            nonlocal calls
            calls += 1
            return False

        with pytest.raises(RetryError):
            await poll_until_granted(attempt, interval=0, max_attempts=4)
        assert calls == 4

    @pytest.mark.asyncio
    async def test_cancel_interrupts_sleep(self):
        """Setting the event ends a long wait early."""
        cancel = asyncio.Event()

        async def attempt():
            return False

        async def cancel_soon():
            await asyncio.sleep(0.05)
            cancel.set()

        asyncio.get_running_loop().create_task(cancel_soon())
        with pytest.raises(RetryError):
            await asyncio.wait_for(poll_until_granted(attempt, interval=30, cancel=cancel), timeout=5)

    @pytest.mark.asyncio
    async def test_attempt_errors_propagate(self):
        async def attempt():
            raise ConnectionResetError("reset")

        with pytest.raises(ConnectionResetError):
            await poll_until_granted(attempt, interval=0)
