"""Config text codec - IOS running-config to records and back.

Usage:
    from mcp_ios_config.codec import ConfigCodec

    codec = ConfigCodec()
    running = codec.unmarshal(output)
    commands = codec.diff(running.vlans[0], Vlan(id=10, name="Voice"))
"""

from .model import (
    Eigrp,
    EigrpNetwork,
    Interface,
    IpAddress,
    Route,
    RunningConfig,
    Vlan,
)
from .parser import RunningConfigParser, parse_vlan_list, unmarshal
from .render import ConfigCodec, diff, format_vlan_list, marshal

__all__ = [
    "ConfigCodec",
    "unmarshal",
    "marshal",
    "diff",
    # Snapshot records
    "RunningConfig",
    "Vlan",
    "Route",
    "Eigrp",
    "EigrpNetwork",
    "Interface",
    "IpAddress",
    # Helpers
    "RunningConfigParser",
    "parse_vlan_list",
    "format_vlan_list",
]
