"""Device handlers for Cisco IOS devices."""
from .base import NetworkDevice, DeviceConfig, DeviceStatus
from .ios import IOSDevice
from .show import parse_show, run_show

__all__ = [
    "NetworkDevice",
    "DeviceConfig",
    "DeviceStatus",
    "IOSDevice",
    "parse_show",
    "run_show",
]

# Device type registry
DEVICE_TYPES = {
    "ios": IOSDevice,
    "ios-xe": IOSDevice,
    "cisco_ios": IOSDevice,
}


def create_device(device_id: str, config: dict) -> NetworkDevice:
    """Factory function to create device instances."""
    device_type = config.get("type", "").lower()
    if device_type not in DEVICE_TYPES:
        raise ValueError(f"Unknown device type: {device_type}")

    device_class = DEVICE_TYPES[device_type]
    return device_class(device_id, DeviceConfig(**config))
