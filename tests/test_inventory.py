"""Tests for device inventory management."""
import pytest
import tempfile
import os
from junos_config_sync.config.inventory import DeviceInventory
from junos_config_sync.devices import JunosNetconf, SetFileChannel


class TestDeviceInventory:
    """Tests for DeviceInventory class."""

    @pytest.fixture
    def temp_config(self):
        """Create a temporary config file for testing."""
        config_content = """
defaults:
  username: automation
  sleep_lock: 5
  group_interface_delete: NC-GROUP

devices:
  srx-edge:
    host: 192.0.2.1
    key_file: ~/.ssh/junos_ed25519

  ex-access:
    host: 192.0.2.10
    username: ops
    password_env: EX_PASSWORD

  lab-offline:
    type: setfile
    host: 192.0.2.20
    fake_set_file: /tmp/lab-offline.set
"""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write(config_content)
            f.flush()
            yield f.name
        os.unlink(f.name)

    def test_load_config(self, temp_config):
        """Inventory loads config file correctly."""
        inv = DeviceInventory(temp_config)
        assert inv.get_device_ids() == ["srx-edge", "ex-access", "lab-offline"]

    def test_defaults_merged(self, temp_config):
        """Defaults fill in what a device does not set."""
        inv = DeviceInventory(temp_config)
        config = inv.get_device_config("srx-edge")
        assert config["username"] == "automation"
        assert config["sleep_lock"] == 5
        assert config["group_interface_delete"] == "NC-GROUP"

    def test_device_overrides_defaults(self, temp_config):
        inv = DeviceInventory(temp_config)
        assert inv.get_device_config("ex-access")["username"] == "ops"

    def test_unknown_device(self, temp_config):
        inv = DeviceInventory(temp_config)
        with pytest.raises(KeyError, match="Unknown device"):
            inv.get_device_config("nonexistent")

    def test_create_channel(self, temp_config):
        """Channels are built fresh from the merged config."""
        inv = DeviceInventory(temp_config)
        channel = inv.create_channel("srx-edge")
        assert isinstance(channel, JunosNetconf)
        assert channel.config.name == "srx-edge"
        assert channel.config.sleep_lock == 5
        assert not channel.is_connected
        assert inv.create_channel("srx-edge") is not channel

    def test_setfile_channel(self, temp_config):
        inv = DeviceInventory(temp_config)
        assert isinstance(inv.create_channel("lab-offline"), SetFileChannel)

    def test_devices_by_type(self, temp_config):
        inv = DeviceInventory(temp_config)
        assert inv.get_devices_by_type("netconf") == ["srx-edge", "ex-access"]
        assert inv.get_devices_by_type("setfile") == ["lab-offline"]

    def test_missing_config(self, tmp_path, monkeypatch):
        """Searching without any devices.yaml fails clearly."""
        monkeypatch.delenv("JUNOS_INVENTORY", raising=False)
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        if os.path.exists("/etc/junos-config-sync/devices.yaml"):
            pytest.skip("system-wide inventory present")
        with pytest.raises(FileNotFoundError):
            DeviceInventory()

    def test_found_in_configs_dir(self, tmp_path, monkeypatch):
        monkeypatch.delenv("JUNOS_INVENTORY", raising=False)
        (tmp_path / "configs").mkdir()
        (tmp_path / "configs" / "devices.yaml").write_text("devices:\n  r1:\n    host: 192.0.2.5\n")
        monkeypatch.chdir(tmp_path)
        inv = DeviceInventory()
        assert inv.get_device_ids() == ["r1"]

    def test_environment_path_wins(self, tmp_path, monkeypatch):
        """JUNOS_INVENTORY is used before the search paths."""
        (tmp_path / "configs").mkdir()
        (tmp_path / "configs" / "devices.yaml").write_text("devices:\n  r1:\n    host: 192.0.2.5\n")
        explicit = tmp_path / "lab.yaml"
        explicit.write_text("devices:\n  lab-1:\n    host: 192.0.2.6\n")
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("JUNOS_INVENTORY", str(explicit))
        assert DeviceInventory().get_device_ids() == ["lab-1"]

    def test_environment_path_missing(self, tmp_path, monkeypatch):
        monkeypatch.setenv("JUNOS_INVENTORY", str(tmp_path / "absent.yaml"))
        with pytest.raises(FileNotFoundError, match="JUNOS_INVENTORY"):
            DeviceInventory()
