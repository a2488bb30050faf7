"""Shared fixtures: a scripted in-memory channel standing in for a device."""
import pytest

from junos_config_sync.devices.base import DeviceConfig, DeviceFacts, RemoteChannel, EMPTY_SENTINEL
from junos_config_sync.errors import ChannelError
from junos_config_sync.session import DeviceSession


def show(path: str) -> str:
    """Command the session sends to dump ``path``."""
    return f"show configuration {path} | display set relative"


class FakeChannel(RemoteChannel):
    """RemoteChannel answering from dicts and recording every call.

    ``responses`` maps CLI commands to their payload; ``after_commit`` is
    merged into it when a commit succeeds. Steps named in ``fail_on``
    ("apply", "validate", "commit") raise ChannelError.
    """

    def __init__(self, hardware_model: str = "vsrx", group: str = "", **config):
        config.setdefault("sleep_lock", 0)
        config.setdefault("sleep_short_ms", 0)
        config.setdefault("max_lock_attempts", 3)
        config.setdefault("fake_set_file", "")
        super().__init__("test-srx", DeviceConfig(host="192.0.2.1", group_interface_delete=group, **config))
        self.facts = DeviceFacts(hardware_model=hardware_model)
        self._connected = True
        self.responses: dict[str, str] = {}
        self.after_commit: dict[str, str] = {}
        self.interfaces: set[str] = set()
        self.fail_on: dict[str, str] = {}
        self.lock_refusals = 0
        self.calls: list[str] = []
        self.applied: list[list[str]] = []
        self.commits: list[str] = []

    @property
    def applied_lines(self) -> list[str]:
        return [line for batch in self.applied for line in batch]

    def count(self, call: str) -> int:
        return self.calls.count(call)

    async def connect(self) -> None:
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False

    async def query(self, command: str) -> str:
        return self.responses.get(command, EMPTY_SENTINEL)

    async def query_structured(self, rpc: str) -> str:
        for name in self.interfaces:
            if f"<interface-name>{name}</interface-name>" in rpc:
                return "<interface-information/>"
        raise ChannelError("device not found")

    def _maybe_fail(self, step: str) -> None:
        if step in self.fail_on:
            raise ChannelError(self.fail_on[step])

    async def apply(self, lines: list[str]) -> list[str]:
        self.calls.append("apply")
        self._maybe_fail("apply")
        self.applied.append(list(lines))
        return []

    async def lock(self) -> bool:
        self.calls.append("lock")
        if self.lock_refusals > 0:
            self.lock_refusals -= 1
            return False
        return True

    async def unlock(self) -> None:
        self.calls.append("unlock")

    async def validate(self) -> list[str]:
        self.calls.append("validate")
        self._maybe_fail("validate")
        return []

    async def commit(self, log: str) -> list[str]:
        self.calls.append("commit")
        self._maybe_fail("commit")
        self.commits.append(log)
        self.responses.update(self.after_commit)
        return []

    async def discard_candidate(self) -> None:
        self.calls.append("discard")


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def session(channel):
    return DeviceSession(channel)
