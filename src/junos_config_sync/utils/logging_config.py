"""Logging setup for junos-config-sync.

Three loggers, all under ``junos_config_sync``:

- ``junos_config_sync``       library messages (console + rotating file)
- ``junos_config_sync.perf``  one line per timed RPC, transaction or operation
- ``junos_config_sync.rpc``   raw NETCONF payloads, off unless JUNOS_LOG_RPC is set

Environment Variables:
    JUNOS_LOG_LEVEL: console level, DEBUG/INFO/WARNING/ERROR (default: INFO)
    JUNOS_LOG_PATH: log file (default: ~/.junos-config-sync/junos-config-sync.log)
    JUNOS_LOG_MAX_SIZE: rotate after this many MB (default: 10)
    JUNOS_LOG_BACKUPS: rotated files kept (default: 5)
    JUNOS_LOG_RPC: any non-empty value traces NETCONF payloads to the file
    JUNOS_LOG_RPC_MAX: payload characters kept per trace line (default: 2000)

Usage:
    setup_logging()

    @timed("commit")
    async def commit(self, log): ...

    async with timed_section("junos_interface_create", device_id="srx-edge"):
        ...
"""
import asyncio
import functools
import logging
import os
import time
from contextlib import asynccontextmanager, contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

main_logger = logging.getLogger("junos_config_sync")
perf_logger = logging.getLogger("junos_config_sync.perf")
rpc_logger = logging.getLogger("junos_config_sync.rpc")

LOG_FORMAT = "%(asctime)s.%(msecs)03d | %(name)-25s | %(levelname)-7s | %(message)s"
PERF_FORMAT = "%(asctime)s.%(msecs)03d | PERF | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_handlers: list[logging.Handler] = []


def get_log_level() -> int:
    level_str = os.environ.get("JUNOS_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file() -> Path:
    default_path = Path.home() / ".junos-config-sync" / "junos-config-sync.log"
    return Path(os.environ.get("JUNOS_LOG_PATH", str(default_path))).expanduser()


def _rotating(path: Path, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path,
        maxBytes=int(os.environ.get("JUNOS_LOG_MAX_SIZE", "10")) * 1024 * 1024,
        backupCount=int(os.environ.get("JUNOS_LOG_BACKUPS", "5")),
        encoding="utf-8",
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    return handler


def setup_logging(level: Optional[int] = None, log_file: Optional[Path] = None) -> Path:
    """Attach console and file handlers to the library loggers.

    Arguments override the environment. Calling it again replaces the
    handlers from the previous call instead of stacking them.

    Returns:
        Path of the main log file
    """
    level = get_log_level() if level is None else level
    log_file = get_log_file() if log_file is None else Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    for logger in (main_logger, perf_logger, rpc_logger):
        for handler in _handlers:
            logger.removeHandler(handler)
    for handler in _handlers:
        handler.close()
    _handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    main_file = _rotating(log_file, logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    perf_file = _rotating(
        log_file.with_name(f"{log_file.stem}-perf{log_file.suffix}"),
        logging.Formatter(PERF_FORMAT, datefmt=DATE_FORMAT),
    )
    _handlers.extend([console, main_file, perf_file])

    # Handlers filter, the logger keeps everything
    main_logger.setLevel(logging.DEBUG)
    main_logger.addHandler(console)
    main_logger.addHandler(main_file)

    perf_logger.propagate = False
    perf_logger.setLevel(logging.DEBUG)
    perf_logger.addHandler(perf_file)
    perf_logger.addHandler(console)

    # RPC payloads go to the main file only, never to the console
    rpc_logger.propagate = False
    rpc_logger.setLevel(logging.DEBUG if os.environ.get("JUNOS_LOG_RPC") else logging.CRITICAL + 1)
    rpc_logger.addHandler(main_file)

    main_logger.info(f"Logging initialized: level={logging.getLevelName(level)}, file={log_file}")
    return log_file


def trace_rpc(direction: str, device: str, payload: str) -> None:
    """Log one NETCONF payload; ``direction`` is ">>" (sent) or "<<" (received)."""
    if not rpc_logger.isEnabledFor(logging.DEBUG):
        return
    limit = int(os.environ.get("JUNOS_LOG_RPC_MAX", "2000"))
    if limit and len(payload) > limit:
        payload = f"{payload[:limit]}... ({len(payload)} chars)"
    rpc_logger.debug(f"{device} {direction} {payload}")


@contextmanager
def _measure(operation: str, device_id: Optional[str], extra: dict) -> Iterator[None]:
    start = time.perf_counter()
    status = "OK"
    try:
        yield
    except Exception as e:
        status = f"FAIL: {e}"
        raise
    finally:
        elapsed = (time.perf_counter() - start) * 1000
        msg = f"{operation:20s} | {device_id or 'N/A':15s} | {elapsed:8.2f}ms | {status}"
        if extra:
            msg += " | " + " | ".join(f"{k}={v}" for k, v in extra.items())
        if status == "OK":
            perf_logger.info(msg)
        else:
            perf_logger.warning(msg)


def timed(operation: str, device_id: Optional[str] = None):
    """Decorator recording how long a channel method takes.

    The device id defaults to ``self.device_id`` of the decorated method.
    """
    def decorator(func: Callable) -> Callable:
        def _device(args: tuple) -> Optional[str]:
            if device_id is not None:
                return device_id
            return getattr(args[0], "device_id", None) if args else None

        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs) -> Any:
                with _measure(operation, _device(args), {}):
                    return await func(*args, **kwargs)
            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs) -> Any:
            with _measure(operation, _device(args), {}):
                return func(*args, **kwargs)
        return sync_wrapper

    return decorator


@asynccontextmanager
async def timed_section(operation: str, device_id: Optional[str] = None, **extra):
    """Time an ``async with`` block; keyword arguments are appended to the record."""
    with _measure(operation, device_id, extra):
        yield
