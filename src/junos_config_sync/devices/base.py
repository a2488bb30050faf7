"""Remote command channel abstraction for Junos devices."""
import os
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)

# Envelope markers around "display set" payloads
XML_START_TAG_CONFIG_OUT = "<configuration-output>"
XML_END_TAG_CONFIG_OUT = "</configuration-output>"
# Payload reported for a scope with nothing configured
EMPTY_SENTINEL = "\n"

DEFAULT_CIPHERS = [
    "aes128-gcm@openssh.com",
    "chacha20-poly1305@openssh.com",
    "aes128-ctr",
    "aes192-ctr",
    "aes256-ctr",
    "aes128-cbc",
]


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name, "")
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"environment variable {name} must be an integer, got '{value}'") from None


def _env_str(name: str) -> str:
    return os.environ.get(name, "")


@dataclass
class DeviceConfig:
    """Configuration for a Junos device session.

    Pacing and placeholder options fall back to the JUNOS_* environment
    variables when the inventory does not set them.
    """
    host: str
    type: str = "netconf"
    name: str = ""
    port: int = 830
    username: str = "netconf"
    password: Optional[str] = None
    password_env: str = "JUNOS_PASSWORD"
    key_pem: str = ""
    key_file: str = field(default_factory=lambda: _env_str("JUNOS_KEYFILE"))
    key_pass: str = field(default_factory=lambda: _env_str("JUNOS_KEYPASS"))
    ciphers: list[str] = field(default_factory=lambda: list(DEFAULT_CIPHERS))
    timeout: int = 30
    retries: int = 3
    retry_delay: float = 2
    # Pacing
    sleep_short_ms: int = field(default_factory=lambda: _env_int("JUNOS_SLEEP_SHORT", 100))
    sleep_lock: int = field(default_factory=lambda: _env_int("JUNOS_SLEEP_LOCK", 10))
    ssh_sleep_closed: int = field(default_factory=lambda: _env_int("JUNOS_SLEEP_SSH_CLOSED", 0))
    max_lock_attempts: Optional[int] = None
    # Placeholder group applied to interfaces instead of "disable description NC"
    group_interface_delete: str = field(
        default_factory=lambda: _env_str("JUNOS_GROUP_INTERFACE_DELETE")
    )
    # set-file channel target
    fake_set_file: str = field(default_factory=lambda: _env_str("JUNOS_FAKECREATE_SETFILE"))

    def get_password(self) -> str:
        """Get password from config or environment variable."""
        if self.password:
            return self.password
        return os.environ.get(self.password_env, "")


@dataclass
class DeviceFacts:
    """Platform facts gathered once per session."""
    hardware_model: str = ""
    os_name: str = ""
    os_version: str = ""
    serial_number: str = ""
    host_name: str = ""
    cluster_node: bool = False
    # Forces the security answer for channels that have no real platform
    security_override: Optional[bool] = None

    def is_security_compatible(self) -> bool:
        """True for platforms with a security stack (SRX, vSRX, J-series)."""
        if self.security_override is not None:
            return self.security_override
        model = self.hardware_model.lower()
        return model.startswith(("srx", "vsrx", "j"))


class RemoteChannel(ABC):
    """Abstract remote command channel to one device.

    A channel is not reentrant: callers serialize access through the
    session's read guard, and implementations serialize each RPC exchange.
    """

    def __init__(self, device_id: str, config: DeviceConfig):
        self.device_id = device_id
        self.config = config
        self.facts = DeviceFacts()
        self._connected = False

    @property
    def host(self) -> str:
        return self.config.host

    @property
    def is_connected(self) -> bool:
        return self._connected

    # Connection management
    @abstractmethod
    async def connect(self) -> None:
        """Open the session and gather platform facts."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the session."""

    # Reads
    @abstractmethod
    async def query(self, command: str) -> str:
        """Run a read-only CLI command and return its raw text payload."""

    @abstractmethod
    async def query_structured(self, rpc: str) -> str:
        """Run an XML RPC and return the tag-delimited reply payload.

        Raises:
            ChannelError: the device answered with an rpc-error
        """

    # Candidate configuration
    @abstractmethod
    async def apply(self, lines: list[str]) -> list[str]:
        """Stage set/delete lines in the candidate. Returns device warnings."""

    @abstractmethod
    async def lock(self) -> bool:
        """Try to lock the candidate configuration once."""

    @abstractmethod
    async def unlock(self) -> None:
        """Release the candidate lock."""

    @abstractmethod
    async def validate(self) -> list[str]:
        """Run commit check. Returns warnings, raises on errors."""

    @abstractmethod
    async def commit(self, log: str) -> list[str]:
        """Commit the candidate with a log message. Returns warnings."""

    @abstractmethod
    async def discard_candidate(self) -> None:
        """Throw away uncommitted changes in the candidate."""

    # Context manager support
    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()
        return False
