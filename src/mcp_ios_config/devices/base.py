"""Base device abstraction for IOS network devices."""
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class DeviceConfig:
    """Configuration for a network device."""
    type: str
    name: str
    host: str
    protocol: str = "ssh"
    port: int = 22
    username: str = ""
    password: Optional[str] = None
    password_env: str = "IOS_PASSWORD"
    enable_secret: Optional[str] = None
    enable_secret_env: str = "IOS_ENABLE_SECRET"
    timeout: int = 30
    retries: int = 3
    retry_delay: float = 2
    enable_password_required: bool = False

    def get_password(self) -> str:
        """Get password from config or environment variable."""
        if self.password:
            return self.password
        return os.environ.get(self.password_env, "")

    def get_enable_secret(self) -> str:
        """Get enable secret from config or environment variable.

        Falls back to the login password, which is what IOS devices without
        a separate enable secret expect.
        """
        if self.enable_secret:
            return self.enable_secret
        return os.environ.get(self.enable_secret_env, "") or self.get_password()


@dataclass
class DeviceStatus:
    """Device health and status information."""
    reachable: bool
    hostname: Optional[str] = None
    uptime: Optional[str] = None
    software_version: Optional[str] = None
    model: Optional[str] = None
    error: Optional[str] = None


class NetworkDevice(ABC):
    """One IOS device session.

    The reconcile engine talks to devices only through ``execute`` and
    ``execute_config_mode``. Neither may retry on its own: a command that
    timed out may still have been applied.
    """

    def __init__(self, device_id: str, config: DeviceConfig):
        self.device_id = device_id
        self.config = config
        self._connected = False

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def host(self) -> str:
        return self.config.host

    @property
    def is_connected(self) -> bool:
        return self._connected

    # Session
    @abstractmethod
    async def connect(self) -> bool:
        """Log in, reach privileged EXEC and disable paging."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the session. Safe to call when not connected."""
        pass

    @abstractmethod
    async def check_health(self) -> DeviceStatus:
        """Reachability plus what ``show version`` reports."""
        pass

    # Commands
    @abstractmethod
    async def execute(self, command: str) -> tuple[bool, str]:
        """Run one privileged EXEC command.

        Returns:
            Tuple of (success, output). success is False when IOS marks
            the command with a ``%`` error line.

        Raises:
            Session-level exceptions (timeouts, closed channel) unchanged
        """
        pass

    @abstractmethod
    async def execute_config_mode(self, commands: list[str]) -> tuple[bool, str]:
        """Send a batch inside ``configure terminal`` ... ``end``.

        Stops at the first rejected command; the commands before it stay
        applied.

        Returns:
            Tuple of (success, output)
        """
        pass

    @abstractmethod
    async def get_running_config(self) -> str:
        """Raw ``show running-config`` text, empty on failure."""
        pass

    @abstractmethod
    async def save_config(self) -> tuple[bool, str]:
        """Copy running-config to startup-config."""
        pass

    # One session per ``async with`` block
    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()
        return False
