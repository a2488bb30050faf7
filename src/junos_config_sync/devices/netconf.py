"""Junos NETCONF channel over an SSH subsystem.

Technical details:
- NETCONF base 1.0 with the ``]]>]]>`` end-of-message framing
- paramiko SSHClient, ``invoke_subsystem("netconf")``
- Blocking socket I/O runs in the default executor
- Replies are parsed with ElementTree, namespaces ignored

RPCs used:
- <command format="text">              : show commands ("display set" dumps, terse)
- <load-configuration action="set">    : stage set/delete lines
- <commit-configuration><check/>       : dry-run validation
- <commit-configuration><log>          : commit
- <lock>/<unlock> on candidate         : single-writer editing
- <delete-config> on candidate         : discard uncommitted edits
- <get-system-information/>            : platform facts
"""
import asyncio
import io
import logging
import xml.etree.ElementTree as ET
from typing import Optional
from xml.sax.saxutils import escape

import paramiko

from .base import (
    RemoteChannel,
    DeviceConfig,
    DeviceFacts,
    EMPTY_SENTINEL,
    XML_START_TAG_CONFIG_OUT,
    XML_END_TAG_CONFIG_OUT,
)
from ..errors import ChannelError
from ..utils.connection import with_retry
from ..utils.logging_config import timed, trace_rpc

logger = logging.getLogger(__name__)

NETCONF_DELIMITER = "]]>]]>"
NETCONF_NS = "urn:ietf:params:xml:ns:netconf:base:1.0"

CLIENT_HELLO = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    f'<hello xmlns="{NETCONF_NS}"><capabilities>'
    "<capability>urn:ietf:params:netconf:base:1.0</capability>"
    "</capabilities></hello>"
)

RPC_COMMAND_TEXT = '<command format="text">{}</command>'
RPC_LOAD_CONFIG_SET = (
    '<load-configuration action="set" format="text">'
    "<configuration-set>{}</configuration-set></load-configuration>"
)
RPC_COMMIT_CHECK = "<commit-configuration><check/></commit-configuration>"
RPC_COMMIT = "<commit-configuration><log>{}</log></commit-configuration>"
RPC_LOCK_CANDIDATE = "<lock><target><candidate/></target></lock>"
RPC_UNLOCK_CANDIDATE = "<unlock><target><candidate/></target></unlock>"
RPC_CLEAR_CANDIDATE = "<delete-config><target><candidate/></target></delete-config>"
RPC_GET_SYSTEM_INFORMATION = "<get-system-information/>"
RPC_CLOSE_SESSION = "<close-session/>"
RPC_INTERFACE_INFORMATION = (
    "<get-interface-information><interface-name>{}</interface-name>"
    "</get-interface-information>"
)

# Ciphers paramiko implements; anything outside config.ciphers is disabled
KNOWN_SSH_CIPHERS = [
    "aes128-gcm@openssh.com",
    "aes256-gcm@openssh.com",
    "aes128-ctr",
    "aes192-ctr",
    "aes256-ctr",
    "aes128-cbc",
    "aes192-cbc",
    "aes256-cbc",
    "3des-cbc",
]


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _find_all(root: ET.Element, name: str) -> list[ET.Element]:
    return [el for el in root.iter() if _local_name(el.tag) == name]


def _child_text(element: ET.Element, name: str) -> str:
    for child in element:
        if _local_name(child.tag) == name:
            return (child.text or "").strip()
    return ""


def parse_reply(raw: str) -> ET.Element:
    """Parse one framed reply into an element tree."""
    payload = raw.replace(NETCONF_DELIMITER, "").strip()
    try:
        return ET.fromstring(payload)
    except ET.ParseError as e:
        raise ChannelError(f"unparsable NETCONF reply: {e}") from e


def reply_errors(root: ET.Element) -> tuple[list[str], list[str]]:
    """Split rpc-error elements into (errors, warnings) by severity.

    Covers rpc-error at the top level and nested in commit-results.
    """
    errors: list[str] = []
    warnings: list[str] = []
    for rpc_error in _find_all(root, "rpc-error"):
        message = _child_text(rpc_error, "error-message")
        path = _child_text(rpc_error, "error-path")
        bad_element = ""
        for info in _find_all(rpc_error, "bad-element"):
            bad_element = (info.text or "").strip()
        text = message
        if bad_element:
            text += f" (bad-element: {bad_element})"
        if path:
            text += f" [path: {path}]"
        if _child_text(rpc_error, "error-severity") == "error":
            errors.append(text)
        else:
            warnings.append(text)
    return errors, warnings


def reply_command_output(root: ET.Element) -> str:
    """Extract the text payload of a <command> reply.

    Configuration dumps keep their <configuration-output> envelope so
    downstream parsing sees exactly what the device framed.
    """
    for element in root.iter():
        name = _local_name(element.tag)
        if name == "configuration-output":
            text = element.text or ""
            if not text.strip():
                return EMPTY_SENTINEL
            return f"{XML_START_TAG_CONFIG_OUT}{text}{XML_END_TAG_CONFIG_OUT}"
        if name == "output":
            text = element.text or ""
            return text if text.strip() else EMPTY_SENTINEL
    return EMPTY_SENTINEL


def reply_system_facts(root: ET.Element) -> DeviceFacts:
    """Build DeviceFacts from a get-system-information reply."""
    for info in _find_all(root, "system-information"):
        return DeviceFacts(
            hardware_model=_child_text(info, "hardware-model"),
            os_name=_child_text(info, "os-name"),
            os_version=_child_text(info, "os-version"),
            serial_number=_child_text(info, "serial-number"),
            host_name=_child_text(info, "host-name"),
            cluster_node=any(_local_name(c.tag) == "cluster-node" for c in info),
        )
    raise ChannelError("get-system-information reply has no system-information")


def _load_private_key(pem: str, passphrase: str) -> paramiko.PKey:
    for key_class in (paramiko.RSAKey, paramiko.ECDSAKey, paramiko.Ed25519Key):
        try:
            return key_class.from_private_key(io.StringIO(pem), password=passphrase or None)
        except paramiko.SSHException:
            continue
    raise ChannelError("unsupported private key format in key_pem")


class NetconfSSH:
    """Low-level NETCONF 1.0 session over a paramiko SSH subsystem."""

    def __init__(self, config: DeviceConfig):
        self.config = config
        self._client: Optional[paramiko.SSHClient] = None
        self._channel: Optional[paramiko.Channel] = None
        self._message_id = 0
        self.server_hello = ""

    def open(self) -> None:
        """Connect, start the netconf subsystem and exchange hellos."""
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        disabled = [c for c in KNOWN_SSH_CIPHERS if c not in self.config.ciphers]
        connect_args = dict(
            port=self.config.port,
            username=self.config.username,
            timeout=self.config.timeout,
            allow_agent=False,
            look_for_keys=False,
            disabled_algorithms={"ciphers": disabled},
        )
        if self.config.key_pem:
            connect_args["pkey"] = _load_private_key(self.config.key_pem, self.config.key_pass)
        elif self.config.key_file:
            connect_args["key_filename"] = self.config.key_file
            connect_args["passphrase"] = self.config.key_pass or None
        else:
            connect_args["password"] = self.config.get_password()
        client.connect(self.config.host, **connect_args)

        channel = client.get_transport().open_session(timeout=self.config.timeout)
        channel.settimeout(self.config.timeout)
        channel.invoke_subsystem("netconf")
        self._client = client
        self._channel = channel

        self.server_hello = self._read_message()
        self._send(CLIENT_HELLO)

    def close(self) -> None:
        if self._channel:
            self._channel.close()
            self._channel = None
        if self._client:
            self._client.close()
            self._client = None

    def _send(self, message: str) -> None:
        if not self._channel:
            raise ConnectionError("Not connected")
        self._channel.sendall((message + NETCONF_DELIMITER).encode("utf-8"))

    def _read_message(self) -> str:
        if not self._channel:
            raise ConnectionError("Not connected")
        buffer = b""
        delimiter = NETCONF_DELIMITER.encode()
        while delimiter not in buffer:
            chunk = self._channel.recv(65535)
            if not chunk:
                raise EOFError("NETCONF session closed by device")
            buffer += chunk
        message, _, _ = buffer.partition(delimiter)
        return message.decode("utf-8", errors="replace")

    def exchange(self, body: str) -> str:
        """Send one RPC body and return the raw rpc-reply."""
        self._message_id += 1
        rpc = f'<rpc xmlns="{NETCONF_NS}" message-id="{self._message_id}">{body}</rpc>'
        trace_rpc(">>", self.config.name or self.config.host, body)
        self._send(rpc)
        reply = self._read_message()
        trace_rpc("<<", self.config.name or self.config.host, reply)
        return reply


class JunosNetconf(RemoteChannel):
    """RemoteChannel implementation talking NETCONF to a Junos device."""

    def __init__(self, device_id: str, config: DeviceConfig):
        super().__init__(device_id, config)
        self._ssh: Optional[NetconfSSH] = None
        self._rpc_lock = asyncio.Lock()

    @timed("netconf_connect")
    async def connect(self) -> None:
        loop = asyncio.get_running_loop()

        @with_retry(max_attempts=max(1, self.config.retries), min_wait=self.config.retry_delay)
        async def _open() -> NetconfSSH:
            ssh = NetconfSSH(self.config)
            await loop.run_in_executor(None, ssh.open)
            return ssh

        self._ssh = await _open()
        self._connected = True
        root = await self._rpc(RPC_GET_SYSTEM_INFORMATION)
        errors, _ = reply_errors(root)
        if errors:
            raise ChannelError("get-system-information failed: " + "; ".join(errors),
                               resource=self.device_id)
        self.facts = reply_system_facts(root)
        logger.info(
            f"Connected to {self.device_id} ({self.host}): "
            f"{self.facts.hardware_model} {self.facts.os_name} {self.facts.os_version}"
        )

    async def disconnect(self) -> None:
        if not self._ssh:
            return
        loop = asyncio.get_running_loop()
        try:
            await self._rpc(RPC_CLOSE_SESSION)
        except (ChannelError, OSError, EOFError, paramiko.SSHException) as e:
            logger.warning(f"close-session on {self.device_id} failed: {e}")
        finally:
            await loop.run_in_executor(None, self._ssh.close)
            self._ssh = None
            self._connected = False
            if self.config.ssh_sleep_closed > 0:
                await asyncio.sleep(self.config.ssh_sleep_closed)

    async def _rpc(self, body: str) -> ET.Element:
        if not self._ssh:
            raise ChannelError("Not connected", resource=self.device_id)
        loop = asyncio.get_running_loop()
        async with self._rpc_lock:
            raw = await loop.run_in_executor(None, self._ssh.exchange, body)
        return parse_reply(raw)

    async def _settle(self) -> None:
        if self.config.sleep_short_ms > 0:
            await asyncio.sleep(self.config.sleep_short_ms / 1000)

    @timed("query")
    async def query(self, command: str) -> str:
        root = await self._rpc(RPC_COMMAND_TEXT.format(escape(command)))
        await self._settle()
        errors, _ = reply_errors(root)
        if errors:
            raise ChannelError("; ".join(errors), resource=self.device_id, field=command)
        return reply_command_output(root)

    async def query_structured(self, rpc: str) -> str:
        root = await self._rpc(rpc)
        await self._settle()
        errors, _ = reply_errors(root)
        if errors:
            raise ChannelError("; ".join(errors), resource=self.device_id, field=rpc)
        return ET.tostring(root, encoding="unicode")

    @timed("load_configuration")
    async def apply(self, lines: list[str]) -> list[str]:
        root = await self._rpc(RPC_LOAD_CONFIG_SET.format(escape("\n".join(lines))))
        errors, warnings = reply_errors(root)
        if errors:
            raise ChannelError("; ".join(errors), resource=self.device_id)
        return warnings

    async def lock(self) -> bool:
        root = await self._rpc(RPC_LOCK_CANDIDATE)
        errors, warnings = reply_errors(root)
        if errors or warnings:
            logger.debug(f"candidate lock on {self.device_id} refused: {errors + warnings}")
            return False
        return True

    async def unlock(self) -> None:
        root = await self._rpc(RPC_UNLOCK_CANDIDATE)
        errors, _ = reply_errors(root)
        if errors:
            raise ChannelError("config unlock: " + "; ".join(errors), resource=self.device_id)

    @timed("commit_check")
    async def validate(self) -> list[str]:
        root = await self._rpc(RPC_COMMIT_CHECK)
        errors, warnings = reply_errors(root)
        if errors:
            raise ChannelError("; ".join(errors), resource=self.device_id)
        return warnings

    @timed("commit")
    async def commit(self, log: str) -> list[str]:
        root = await self._rpc(RPC_COMMIT.format(escape(log)))
        errors, warnings = reply_errors(root)
        if errors:
            raise ChannelError("; ".join(errors), resource=self.device_id)
        for warning in warnings:
            logger.warning(f"commit warning on {self.device_id}: {warning}")
        return warnings

    async def discard_candidate(self) -> None:
        root = await self._rpc(RPC_CLEAR_CANDIDATE)
        errors, _ = reply_errors(root)
        if errors:
            raise ChannelError("clear candidate: " + "; ".join(errors), resource=self.device_id)
