"""Device inventory management from YAML configuration."""
import logging
import os
from pathlib import Path
from typing import Optional

import yaml

from ..devices import create_channel, RemoteChannel

logger = logging.getLogger(__name__)


class DeviceInventory:
    """Device inventory loaded from YAML config.

    ```yaml
    defaults:
      username: netconf
      sleep_lock: 5
      group_interface_delete: NC-GROUP
    devices:
      srx-edge:
        host: 192.0.2.1
        key_file: ~/.ssh/junos_ed25519
      ex-access:
        host: 192.0.2.10
        password_env: EX_PASSWORD
    ```

    Each call to ``create_channel`` returns a fresh, unconnected channel so
    every operation runs in its own session.
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or self._find_config()
        self._config: dict = {}
        self._load_config()

    def _find_config(self) -> str:
        """Locate devices.yaml; ``JUNOS_INVENTORY`` wins over the search paths."""
        explicit = os.environ.get("JUNOS_INVENTORY")
        if explicit:
            if not Path(explicit).expanduser().exists():
                raise FileNotFoundError(f"JUNOS_INVENTORY points to a missing file: {explicit}")
            return str(Path(explicit).expanduser())

        search_paths = [
            Path.cwd() / "configs" / "devices.yaml",
            Path.cwd() / "devices.yaml",
            Path.home() / ".config" / "junos-config-sync" / "devices.yaml",
            Path("/etc/junos-config-sync/devices.yaml"),
        ]

        for path in search_paths:
            if path.exists():
                return str(path)

        raise FileNotFoundError(
            "Could not find devices.yaml. Create one in ./configs/devices.yaml"
        )

    def _load_config(self) -> None:
        """Load the YAML configuration and merge defaults into each device."""
        with open(self.config_path) as f:
            self._config = yaml.safe_load(f) or {}

        defaults = self._config.get("defaults", {})
        for device_id, device_config in self._config.get("devices", {}).items():
            if device_config is None:
                device_config = self._config["devices"][device_id] = {}
            for key, value in defaults.items():
                if key not in device_config:
                    device_config[key] = value
            if "host" not in device_config:
                logger.warning(f"Device '{device_id}' has no host")

    def get_device_ids(self) -> list[str]:
        """Get all device IDs."""
        return list(self._config.get("devices", {}).keys())

    def get_device_config(self, device_id: str) -> dict:
        """Get raw config for a device."""
        devices = self._config.get("devices", {})
        if device_id not in devices:
            raise KeyError(f"Unknown device: {device_id}")
        return devices[device_id]

    def create_channel(self, device_id: str) -> RemoteChannel:
        """New channel for a device, not yet connected."""
        config = dict(self.get_device_config(device_id))
        config.setdefault("name", device_id)
        return create_channel(device_id, config)

    def get_devices_by_type(self, device_type: str) -> list[str]:
        """Device IDs filtered by channel type (netconf, setfile)."""
        return [
            device_id
            for device_id, config in self._config.get("devices", {}).items()
            if config.get("type", "netconf") == device_type
        ]
