"""Config Engine - Declarative configuration for Cisco IOS entities.

The Config Engine reconciles one entity at a time:
- Send desired state, not individual commands
- Read the running-config, diff, send one minimal batch, read back
- Unset fields keep whatever the device already has

Usage:
    from mcp_ios_config.config_engine import ConfigEngine

    engine = ConfigEngine(inventory)
    result = await engine.apply("core-sw1", "switch_interface", {
        "name": "GigabitEthernet0/1",
        "description": "uplink",
        "trunk": {"allowed_vlans": [10, 20]},
    }, dry_run=True)
"""

from .engine import ConfigEngine
from .schema import (
    UNSET,
    Unset,
    EntityKind,
    RoutedMode,
    AccessMode,
    TrunkMode,
    SpanningTree,
    VlanState,
    RouteState,
    EigrpState,
    EthernetInterfaceState,
    SwitchInterfaceState,
    ReconcileResult,
    to_dict,
)
from .parser import ConfigParser
from .mapping import (
    EntityMapping,
    VlanMapping,
    RouteMapping,
    EigrpMapping,
    EthernetInterfaceMapping,
    SwitchInterfaceMapping,
)
from .locator import find, find_vlan, find_route, find_eigrp, find_interface
from .filter import filter_commands
from .reconciler import (
    Reconciler,
    VlanReconciler,
    RouteReconciler,
    EigrpReconciler,
    EthernetInterfaceReconciler,
    SwitchInterfaceReconciler,
)
from ..errors import (
    ReconcileError,
    TransportError,
    CodecError,
    ParseError,
    InvalidConfiguration,
    InvalidAddress,
)

__all__ = [
    # Main engine
    "ConfigEngine",
    # Schema classes
    "UNSET",
    "Unset",
    "EntityKind",
    "RoutedMode",
    "AccessMode",
    "TrunkMode",
    "SpanningTree",
    "VlanState",
    "RouteState",
    "EigrpState",
    "EthernetInterfaceState",
    "SwitchInterfaceState",
    "ReconcileResult",
    "to_dict",
    # Parser
    "ConfigParser",
    # Components (for advanced use)
    "EntityMapping",
    "VlanMapping",
    "RouteMapping",
    "EigrpMapping",
    "EthernetInterfaceMapping",
    "SwitchInterfaceMapping",
    "find",
    "find_vlan",
    "find_route",
    "find_eigrp",
    "find_interface",
    "filter_commands",
    "Reconciler",
    "VlanReconciler",
    "RouteReconciler",
    "EigrpReconciler",
    "EthernetInterfaceReconciler",
    "SwitchInterfaceReconciler",
    # Errors
    "ReconcileError",
    "TransportError",
    "CodecError",
    "ParseError",
    "InvalidConfiguration",
    "InvalidAddress",
]
