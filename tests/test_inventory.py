"""Tests for device inventory management."""
import pytest
import tempfile
import os
from mcp_ios_config.config.inventory import DeviceInventory
from mcp_ios_config.devices import IOSDevice


class TestDeviceInventory:
    """Tests for DeviceInventory class."""

    @pytest.fixture
    def temp_config(self):
        """Create a temporary config file for testing."""
        config_content = """
defaults:
  type: ios
  username: admin
  password_env: "TEST_PASSWORD"
  timeout: 30

devices:
  core-sw1:
    name: "Core Switch 1"
    host: 192.0.2.10

  edge-r1:
    host: 192.0.2.1
    port: 2222
    timeout: 60
"""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write(config_content)
            f.flush()
            yield f.name
        os.unlink(f.name)

    def test_load_config(self, temp_config):
        """Inventory loads config file correctly."""
        inv = DeviceInventory(temp_config)
        assert inv.get_device_ids() == ["core-sw1", "edge-r1"]

    def test_defaults_merged(self, temp_config):
        """Defaults fill in missing device fields."""
        inv = DeviceInventory(temp_config)
        config = inv.get_device_config("core-sw1")
        assert config["type"] == "ios"
        assert config["username"] == "admin"
        assert config["password_env"] == "TEST_PASSWORD"

    def test_device_specific_overrides_defaults(self, temp_config):
        """Device-specific values override defaults."""
        inv = DeviceInventory(temp_config)
        assert inv.get_device_config("edge-r1")["timeout"] == 60

    def test_name_defaults_to_id(self, temp_config):
        """Devices without a name use their id."""
        inv = DeviceInventory(temp_config)
        assert inv.get_device_config("edge-r1")["name"] == "edge-r1"

    def test_get_device_unknown(self, temp_config):
        """Unknown device raises KeyError."""
        inv = DeviceInventory(temp_config)
        with pytest.raises(KeyError) as exc_info:
            inv.get_device_config("nonexistent")
        assert "Unknown device" in str(exc_info.value)

    def test_get_device(self, temp_config, monkeypatch):
        """Can create device instances."""
        monkeypatch.setenv("TEST_PASSWORD", "secret")
        inv = DeviceInventory(temp_config)
        device = inv.get_device("edge-r1")
        assert isinstance(device, IOSDevice)
        assert device.config.port == 2222
        assert device.config.get_password() == "secret"

    def test_get_device_cached(self, temp_config):
        """Device instances are cached."""
        inv = DeviceInventory(temp_config)
        assert inv.get_device("core-sw1") is inv.get_device("core-sw1")

    def test_get_all_devices(self, temp_config):
        """All devices are instantiated on demand."""
        inv = DeviceInventory(temp_config)
        assert set(inv.get_all_devices()) == {"core-sw1", "edge-r1"}

    @pytest.mark.asyncio
    async def test_close_all(self, temp_config):
        """close_all forgets device instances."""
        inv = DeviceInventory(temp_config)
        inv.get_all_devices()
        await inv.close_all()
        assert inv._devices == {}


class TestConfigDiscovery:
    """Tests for locating devices.yaml."""

    def test_env_var(self, tmp_path, monkeypatch):
        """IOSFORGE_CONFIG points at the inventory."""
        path = tmp_path / "inv.yaml"
        path.write_text("devices:\n  sw1:\n    type: ios\n    host: 10.0.0.1\n")
        monkeypatch.setenv("IOSFORGE_CONFIG", str(path))

        inv = DeviceInventory()
        assert inv.config_path == str(path)
        assert inv.get_device_ids() == ["sw1"]

    def test_env_var_missing_file(self, tmp_path, monkeypatch):
        """A dangling IOSFORGE_CONFIG is an error."""
        monkeypatch.setenv("IOSFORGE_CONFIG", str(tmp_path / "missing.yaml"))
        with pytest.raises(FileNotFoundError):
            DeviceInventory()

    def test_cwd_configs_dir(self, tmp_path, monkeypatch):
        """./configs/devices.yaml is found."""
        monkeypatch.delenv("IOSFORGE_CONFIG", raising=False)
        (tmp_path / "configs").mkdir()
        (tmp_path / "configs" / "devices.yaml").write_text("devices: {}\n")
        monkeypatch.chdir(tmp_path)

        inv = DeviceInventory()
        assert inv.get_device_ids() == []

    def test_empty_device_entry(self, tmp_path):
        """A device with no body still gets defaults."""
        path = tmp_path / "devices.yaml"
        path.write_text("defaults:\n  type: ios\ndevices:\n  sw1:\n")
        inv = DeviceInventory(str(path))
        assert inv.get_device_config("sw1") == {"type": "ios", "name": "sw1"}
