"""Tests for NETCONF reply parsing and the interface lookup."""
import pytest

from junos_config_sync.devices.base import EMPTY_SENTINEL, DeviceFacts
from junos_config_sync.devices.netconf import (
    JunosNetconf,
    parse_reply,
    reply_command_output,
    reply_errors,
    reply_system_facts,
)
from junos_config_sync.devices.base import DeviceConfig
from junos_config_sync.errors import ChannelError
from junos_config_sync.session import DeviceSession


NS = 'xmlns="urn:ietf:params:xml:ns:netconf:base:1.0"'


def reply(body: str) -> str:
    return f'<rpc-reply {NS} message-id="1">{body}</rpc-reply>]]>]]>'


class TestReplyParsing:
    """Tests for the reply helpers."""

    def test_unparsable(self):
        with pytest.raises(ChannelError, match="unparsable"):
            parse_reply("<rpc-reply><unclosed>")

    def test_errors_by_severity(self):
        root = parse_reply(reply(
            "<rpc-error><error-severity>warning</error-severity>"
            "<error-message>statement has no contents; ignored</error-message></rpc-error>"
            "<rpc-error><error-severity>error</error-severity>"
            "<error-path>[edit interfaces]</error-path>"
            "<error-info><bad-element>ge-9/9/9</bad-element></error-info>"
            "<error-message>syntax error</error-message></rpc-error>"
        ))
        errors, warnings = reply_errors(root)
        assert errors == ["syntax error (bad-element: ge-9/9/9) [path: [edit interfaces]]"]
        assert warnings == ["statement has no contents; ignored"]

    def test_commit_results_errors(self):
        """rpc-error nested in commit-results is found too."""
        root = parse_reply(reply(
            "<commit-results><routing-engine><rpc-error>"
            "<error-severity>error</error-severity>"
            "<error-message>configuration check-out failed</error-message>"
            "</rpc-error></routing-engine></commit-results>"
        ))
        errors, _ = reply_errors(root)
        assert errors == ["configuration check-out failed"]

    def test_configuration_output(self):
        """Dumps keep their envelope."""
        root = parse_reply(reply("<configuration-output>set vlan-tagging\n</configuration-output>"))
        assert reply_command_output(root) == (
            "<configuration-output>set vlan-tagging\n</configuration-output>"
        )

    def test_empty_output(self):
        root = parse_reply(reply("<configuration-output>\n</configuration-output>"))
        assert reply_command_output(root) == EMPTY_SENTINEL

    def test_plain_output(self):
        root = parse_reply(reply("<output>st0.0 up up inet\n</output>"))
        assert reply_command_output(root) == "st0.0 up up inet\n"

    def test_system_facts(self):
        root = parse_reply(reply(
            "<system-information><hardware-model>srx345</hardware-model>"
            "<os-name>junos</os-name><os-version>21.4R3</os-version>"
            "<serial-number>CZ1234</serial-number><host-name>edge-1</host-name>"
            "</system-information>"
        ))
        facts = reply_system_facts(root)
        assert facts.hardware_model == "srx345"
        assert facts.os_version == "21.4R3"
        assert facts.is_security_compatible()

    def test_system_facts_missing(self):
        with pytest.raises(ChannelError):
            reply_system_facts(parse_reply(reply("<ok/>")))


class TestDeviceFacts:
    """Tests for platform detection."""

    @pytest.mark.parametrize("model,expected", [
        ("srx345", True),
        ("vSRX", True),
        ("j2350", True),
        ("ex4300-48t", False),
        ("mx204", False),
    ])
    def test_security_compatible(self, model, expected):
        assert DeviceFacts(hardware_model=model).is_security_compatible() is expected

    def test_override(self):
        assert DeviceFacts(hardware_model="ex4300", security_override=True).is_security_compatible()


class TestInterfaceLookup:
    """Tests for DeviceSession.interface_exists over NETCONF replies."""

    @pytest.mark.asyncio
    async def test_not_found(self, monkeypatch):
        channel = JunosNetconf("edge", DeviceConfig(host="192.0.2.1", sleep_short_ms=0))

        async def fake_rpc(body):
            return parse_reply(reply(
                "<rpc-error><error-severity>error</error-severity>"
                "<error-message>device ge-0/0/9 not found</error-message></rpc-error>"
            ))

        monkeypatch.setattr(channel, "_rpc", fake_rpc)
        assert await DeviceSession(channel).interface_exists("ge-0/0/9") is False

    @pytest.mark.asyncio
    async def test_found(self, monkeypatch):
        channel = JunosNetconf("edge", DeviceConfig(host="192.0.2.1", sleep_short_ms=0))

        async def fake_rpc(body):
            assert "<interface-name>ge-0/0/1</interface-name>" in body
            return parse_reply(reply("<interface-information><physical-interface/></interface-information>"))

        monkeypatch.setattr(channel, "_rpc", fake_rpc)
        assert await DeviceSession(channel).interface_exists("ge-0/0/1") is True

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self, monkeypatch):
        channel = JunosNetconf("edge", DeviceConfig(host="192.0.2.1", sleep_short_ms=0))

        async def fake_rpc(body):
            return parse_reply(reply(
                "<rpc-error><error-severity>error</error-severity>"
                "<error-message>permission denied</error-message></rpc-error>"
            ))

        monkeypatch.setattr(channel, "_rpc", fake_rpc)
        with pytest.raises(ChannelError, match="permission denied"):
            await DeviceSession(channel).interface_exists("ge-0/0/1")

    @pytest.mark.asyncio
    async def test_lock_refused_on_error(self, monkeypatch):
        """An rpc-error to lock means the lock is held elsewhere."""
        channel = JunosNetconf("edge", DeviceConfig(host="192.0.2.1"))

        async def fake_rpc(body):
            return parse_reply(reply(
                "<rpc-error><error-severity>error</error-severity>"
                "<error-message>configuration database locked by another user</error-message></rpc-error>"
            ))

        monkeypatch.setattr(channel, "_rpc", fake_rpc)
        assert await channel.lock() is False
