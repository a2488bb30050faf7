"""Utility modules for retries, polling and logging."""
from .connection import with_retry, poll_until_granted
from .logging_config import (
    setup_logging,
    timed,
    timed_section,
    trace_rpc,
    perf_logger,
)

__all__ = [
    "with_retry",
    "poll_until_granted",
    "setup_logging",
    "timed",
    "timed_section",
    "trace_rpc",
    "perf_logger",
]
