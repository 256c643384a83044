"""Device inventory management from YAML configuration.

```yaml
defaults:
  type: ios
  username: admin
  password_env: IOS_PASSWORD
  enable_secret_env: IOS_ENABLE_SECRET

devices:
  core-sw1:
    name: Core Switch 1
    host: 192.0.2.10
  edge-r1:
    name: Edge Router
    host: 192.0.2.1
    port: 2222
```
"""
import logging
import os
from pathlib import Path
from typing import Optional

import yaml

from ..devices import create_device, NetworkDevice

logger = logging.getLogger(__name__)

CONFIG_ENV = "IOSFORGE_CONFIG"


class DeviceInventory:
    """Manages the device inventory loaded from YAML config."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or self._find_config()
        self._config: dict = {}
        self._devices: dict[str, NetworkDevice] = {}
        self._load_config()

    def _find_config(self) -> str:
        """Find the devices.yaml config file."""
        env_path = os.environ.get(CONFIG_ENV)
        if env_path:
            if not Path(env_path).exists():
                raise FileNotFoundError(f"{CONFIG_ENV} points to a missing file: {env_path}")
            return env_path

        search_paths = [
            Path.cwd() / "configs" / "devices.yaml",
            Path.cwd() / "devices.yaml",
            Path.home() / ".config" / "iosforge" / "devices.yaml",
        ]

        for path in search_paths:
            if path.exists():
                return str(path)

        raise FileNotFoundError(
            "Could not find devices.yaml. Create one in ./configs/devices.yaml "
            f"or set {CONFIG_ENV}"
        )

    def _load_config(self) -> None:
        """Load the YAML configuration."""
        with open(self.config_path) as f:
            self._config = yaml.safe_load(f) or {}

        defaults = self._config.get("defaults") or {}
        devices = self._config.get("devices") or {}
        self._config["devices"] = devices

        for device_id, device_config in devices.items():
            if device_config is None:
                device_config = devices[device_id] = {}
            for key, value in defaults.items():
                if key not in device_config:
                    device_config[key] = value
            device_config.setdefault("name", device_id)

        logger.info(f"Loaded {len(devices)} devices from {self.config_path}")

    def get_device_ids(self) -> list[str]:
        """Get all device IDs."""
        return list(self._config.get("devices", {}).keys())

    def get_device_config(self, device_id: str) -> dict:
        """Get raw config for a device."""
        devices = self._config.get("devices", {})
        if device_id not in devices:
            raise KeyError(f"Unknown device: {device_id}")
        return devices[device_id]

    def get_device(self, device_id: str) -> NetworkDevice:
        """Get or create a device instance."""
        if device_id not in self._devices:
            config = self.get_device_config(device_id)
            self._devices[device_id] = create_device(device_id, config)
        return self._devices[device_id]

    def get_all_devices(self) -> dict[str, NetworkDevice]:
        """Get all device instances."""
        for device_id in self.get_device_ids():
            self.get_device(device_id)
        return self._devices

    async def close_all(self) -> None:
        """Close all device connections."""
        for device in self._devices.values():
            if device.is_connected:
                await device.disconnect()
        self._devices.clear()
