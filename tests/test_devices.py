"""Tests for device base classes and the IOS handler."""
import pytest

from mcp_ios_config.devices import (
    DEVICE_TYPES,
    DeviceConfig,
    DeviceStatus,
    IOSDevice,
    create_device,
)
from mcp_ios_config.devices.ios import PROMPT_PATTERN, IOSSSH


class TestDeviceConfig:
    """Tests for DeviceConfig dataclass."""

    def test_basic_config(self):
        """Basic device config creation."""
        config = DeviceConfig(
            type="ios",
            name="Core Switch",
            host="192.0.2.10",
            port=2222,
            username="admin",
        )
        assert config.type == "ios"
        assert config.name == "Core Switch"
        assert config.host == "192.0.2.10"
        assert config.protocol == "ssh"
        assert config.port == 2222
        assert config.username == "admin"

    def test_defaults(self):
        """Default values are applied."""
        config = DeviceConfig(type="ios", name="Test", host="10.0.0.1")
        assert config.password is None
        assert config.password_env == "IOS_PASSWORD"
        assert config.enable_secret_env == "IOS_ENABLE_SECRET"
        assert config.timeout == 30
        assert config.retries == 3
        assert config.enable_password_required is False

    def test_get_password_from_config(self):
        """Password from config takes precedence."""
        config = DeviceConfig(type="ios", name="Test", host="10.0.0.1", password="secret123")
        assert config.get_password() == "secret123"

    def test_get_password_from_env(self, monkeypatch):
        """Password falls back to environment variable."""
        monkeypatch.setenv("IOS_PASSWORD", "env_secret")
        config = DeviceConfig(type="ios", name="Test", host="10.0.0.1")
        assert config.get_password() == "env_secret"

    def test_get_password_custom_env(self, monkeypatch):
        """Custom password_env variable is respected."""
        monkeypatch.setenv("CUSTOM_PWD", "custom_secret")
        config = DeviceConfig(
            type="ios", name="Test", host="10.0.0.1", password_env="CUSTOM_PWD"
        )
        assert config.get_password() == "custom_secret"

    def test_enable_secret_env(self, monkeypatch):
        """Enable secret comes from its own variable."""
        monkeypatch.setenv("IOS_ENABLE_SECRET", "en4ble")
        config = DeviceConfig(type="ios", name="Test", host="10.0.0.1", password="login")
        assert config.get_enable_secret() == "en4ble"

    def test_enable_secret_falls_back_to_password(self, monkeypatch):
        """Without an enable secret the login password is used."""
        monkeypatch.delenv("IOS_ENABLE_SECRET", raising=False)
        config = DeviceConfig(type="ios", name="Test", host="10.0.0.1", password="login")
        assert config.get_enable_secret() == "login"


class TestDeviceStatus:
    """Tests for DeviceStatus dataclass."""

    def test_unreachable(self):
        """Unreachable devices carry the error."""
        status = DeviceStatus(reachable=False, error="Connection refused")
        assert status.reachable is False
        assert status.hostname is None
        assert status.error == "Connection refused"


class TestCreateDevice:
    """Tests for the device factory."""

    @pytest.mark.parametrize("device_type", ["ios", "IOS-XE", "cisco_ios"])
    def test_ios_types(self, device_type):
        """All IOS flavours map to IOSDevice."""
        device = create_device("sw1", {"type": device_type, "name": "sw1", "host": "10.0.0.1"})
        assert isinstance(device, IOSDevice)
        assert device.device_id == "sw1"
        assert device.is_connected is False

    def test_unknown_type(self):
        """Unknown types are rejected."""
        with pytest.raises(ValueError):
            create_device("sw1", {"type": "junos", "name": "sw1", "host": "10.0.0.1"})

    def test_registry(self):
        """Only IOS handlers are registered."""
        assert set(DEVICE_TYPES.values()) == {IOSDevice}


class TestIOSOutput:
    """Tests for IOS prompt and error detection."""

    @pytest.fixture
    def ios(self):
        return IOSDevice("sw1", DeviceConfig(type="ios", name="sw1", host="10.0.0.1"))

    @pytest.mark.parametrize("prompt", [
        "Switch#",
        "Router>",
        "core-sw1(config)#",
        "core-sw1(config-if)#",
        "edge.r1(config-router)#",
    ])
    def test_prompts(self, prompt):
        """Exec and config prompts are recognised."""
        assert PROMPT_PATTERN.search(prompt)

    @pytest.mark.parametrize("line", [
        "Building configuration...",
        " description uplink to core#",
        "% Invalid input detected at '^' marker.",
    ])
    def test_not_prompts(self, line):
        """Config lines are not prompts."""
        assert not PROMPT_PATTERN.search(line.strip())

    def test_invalid_input(self, ios):
        """Rejected commands are detected."""
        output = "switchport mode trunk\n        ^\n% Invalid input detected at '^' marker.\n"
        assert ios._has_error(output) == "% Invalid input detected at '^' marker."

    def test_incomplete_command(self, ios):
        """Incomplete commands are detected."""
        assert ios._has_error("% Incomplete command.") is not None

    def test_bad_mask(self, ios):
        """Bad masks are detected."""
        assert ios._has_error("% Bad mask 0xFF00FF00 for address 10.0.0.0") is not None

    def test_clean_output(self, ios):
        """Normal output has no error."""
        assert ios._has_error("VLAN Name Status Ports\n10 Eng active Gi0/2") is None

    @pytest.mark.asyncio
    async def test_execute_requires_connection(self, ios):
        """Commands need a session."""
        with pytest.raises(ConnectionError):
            await ios.execute("show version")


class ScriptedShell:
    """Stands in for a paramiko channel, replaying canned output once."""

    def __init__(self, chunks):
        self.chunks = list(chunks)
        self.sent = []

    def send(self, data):
        self.sent.append(data)
        return len(data)

    def recv_ready(self):
        return bool(self.chunks)

    def recv(self, size):
        return self.chunks.pop(0).encode()

    def close(self):
        pass


class TestIOSExecute:
    """Tests for command execution over the interactive shell."""

    def connected(self, chunks):
        ios = IOSDevice("sw1", DeviceConfig(type="ios", name="sw1", host="10.0.0.1", timeout=1))
        ios._ssh = IOSSSH("10.0.0.1", 22, "admin", "secret", timeout=1)
        ios._ssh._shell = ScriptedShell(chunks)
        ios._connected = True
        return ios

    @pytest.mark.asyncio
    async def test_output_up_to_prompt(self):
        """Echo and trailing prompt are stripped."""
        ios = self.connected([
            "show running-config\r\nhostname core-sw1\r\n!\r\nend\r\ncore-sw1#",
        ])

        success, output = await ios.execute("show running-config")

        assert success is True
        assert output == "hostname core-sw1\n!\nend"
        assert ios._ssh._shell.sent == ["show running-config\n"]

    @pytest.mark.asyncio
    async def test_missing_prompt_raises(self):
        """Output cut off before the prompt is never reported as success."""
        ios = self.connected([
            "show running-config\r\nhostname core-sw1\r\n!\r\nvlan 10\r\n",
        ])

        with pytest.raises(TimeoutError):
            await ios.execute("show running-config")
        assert ios.is_connected is False
