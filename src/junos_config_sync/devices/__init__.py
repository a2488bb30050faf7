"""Remote command channels to Junos devices."""
from .base import RemoteChannel, DeviceConfig, DeviceFacts, EMPTY_SENTINEL
from .netconf import JunosNetconf
from .setfile import SetFileChannel

__all__ = [
    "RemoteChannel",
    "DeviceConfig",
    "DeviceFacts",
    "EMPTY_SENTINEL",
    "JunosNetconf",
    "SetFileChannel",
]

# Channel type registry
CHANNEL_TYPES = {
    "netconf": JunosNetconf,
    "setfile": SetFileChannel,
}


def create_channel(device_id: str, config: dict) -> RemoteChannel:
    """Factory function to create channel instances.

    A configured ``fake_set_file`` selects the set-file channel regardless
    of ``type``.
    """
    device_config = DeviceConfig(**config)
    channel_type = device_config.type.lower()
    if device_config.fake_set_file:
        channel_type = "setfile"
    if channel_type not in CHANNEL_TYPES:
        raise ValueError(f"Unknown device type: {channel_type}")

    channel_class = CHANNEL_TYPES[channel_type]
    return channel_class(device_id, device_config)
