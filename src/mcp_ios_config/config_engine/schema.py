"""Schema definitions for the Config Engine.

Defines the desired-state records, the switchport mode union and the
result of a reconcile cycle.

Every optional attribute is tri-state:
- ``UNSET``: no opinion, keep what the device has
- ``None``: explicitly absent or disabled
- anything else: the value to configure
"""
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar, Optional, Union

from ..errors import InvalidConfiguration


class Unset:
    """Type of the ``UNSET`` sentinel. There is only ever one instance."""

    _instance: ClassVar[Optional["Unset"]] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNSET"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    def __reduce__(self):
        return (Unset, ())


UNSET = Unset()


class EntityKind(str, Enum):
    """Entity kinds the engine can reconcile."""
    VLAN = "vlan"
    STATIC_ROUTE = "static_route"
    EIGRP = "eigrp"
    ETHERNET_INTERFACE = "ethernet_interface"
    SWITCH_INTERFACE = "switch_interface"


PORTFAST_MODES = ("", "enable", "edge", "network", "disable")


# --- Switchport modes ---

@dataclass
class RoutedMode:
    """Layer 3 port (``no switchport``)."""


@dataclass
class AccessMode:
    """Access port carrying a single VLAN."""
    vlan: int = 1


@dataclass
class TrunkMode:
    """Trunk port.

    ``allowed_vlans=None`` allows every VLAN, an empty list allows none.
    The list is kept sorted and free of duplicates, the way IOS prints it.
    """
    encapsulation: str = "dot1q"
    allowed_vlans: Optional[list[int]] = None

    def __post_init__(self):
        if self.encapsulation is None:
            self.encapsulation = ""
        if self.allowed_vlans is not None:
            vlans = list(self.allowed_vlans)
            if all(isinstance(v, int) for v in vlans):
                vlans = sorted(set(vlans))
            self.allowed_vlans = vlans


SwitchMode = Union[RoutedMode, AccessMode, TrunkMode]
SWITCH_MODES = (RoutedMode, AccessMode, TrunkMode)


@dataclass
class SpanningTree:
    """Per-port spanning-tree options."""
    portfast: str = ""
    bpdu_guard: Union[bool, None, Unset] = UNSET

    def __post_init__(self):
        if self.portfast is None:
            self.portfast = ""
        if self.portfast not in PORTFAST_MODES:
            raise InvalidConfiguration(
                f"Invalid portfast mode '{self.portfast}', "
                f"expected one of: {', '.join(m for m in PORTFAST_MODES if m)}"
            )
        if self.bpdu_guard not in (True, False, None) and self.bpdu_guard is not UNSET:
            raise InvalidConfiguration(
                f"Invalid bpdu_guard value {self.bpdu_guard!r}, expected true, false or null"
            )


# --- Desired state records ---

@dataclass
class VlanState:
    """Desired state for a single VLAN."""
    kind: ClassVar[EntityKind] = EntityKind.VLAN

    id: int
    name: Union[str, None, Unset] = UNSET

    def __post_init__(self):
        if self.name == "":
            self.name = None

    @property
    def key(self) -> int:
        return self.id


@dataclass
class RouteState:
    """Desired state for a static route. Identity is (prefix, mask)."""
    kind: ClassVar[EntityKind] = EntityKind.STATIC_ROUTE

    prefix: str
    mask: str
    next_hop: str = ""

    @property
    def key(self) -> tuple[str, str]:
        return (self.prefix, self.mask)


@dataclass
class EigrpState:
    """Desired state for an EIGRP process. Networks are CIDR strings."""
    kind: ClassVar[EntityKind] = EntityKind.EIGRP

    asn: int
    networks: Union[list[str], Unset] = UNSET

    def __post_init__(self):
        if self.networks is None:
            self.networks = []

    @property
    def key(self) -> int:
        return self.asn


@dataclass
class EthernetInterfaceState:
    """Desired state for a routed interface.

    ``ips`` holds CIDR host addresses; the first is the primary address,
    the rest are configured as secondary.
    """
    kind: ClassVar[EntityKind] = EntityKind.ETHERNET_INTERFACE

    name: str
    description: Union[str, None, Unset] = UNSET
    shutdown: Union[bool, Unset] = UNSET
    ips: Union[list[str], Unset] = UNSET
    helper_addresses: Union[list[str], Unset] = UNSET

    def __post_init__(self):
        if self.description == "":
            self.description = None
        if self.shutdown is None:
            self.shutdown = False
        if self.ips is None:
            self.ips = []
        if self.helper_addresses is None:
            self.helper_addresses = []

    @property
    def key(self) -> str:
        return self.name


@dataclass
class SwitchInterfaceState:
    """Desired state for a switch port.

    ``mode=None`` means routed. ``spanning_tree=None`` turns portfast and
    BPDU guard off.
    """
    kind: ClassVar[EntityKind] = EntityKind.SWITCH_INTERFACE

    name: str
    description: Union[str, None, Unset] = UNSET
    shutdown: Union[bool, Unset] = UNSET
    mode: Union[SwitchMode, Unset] = UNSET
    spanning_tree: Union[SpanningTree, Unset] = UNSET

    def __post_init__(self):
        if self.description == "":
            self.description = None
        if self.shutdown is None:
            self.shutdown = False
        if self.mode is None:
            self.mode = RoutedMode()
        if self.mode is not UNSET and not isinstance(self.mode, SWITCH_MODES):
            raise InvalidConfiguration(
                f"Interface {self.name}: mode must be routed, access or trunk, "
                f"got {type(self.mode).__name__}"
            )
        if self.spanning_tree is None:
            self.spanning_tree = SpanningTree(bpdu_guard=None)

    @property
    def key(self) -> str:
        return self.name


DesiredState = Union[
    VlanState, RouteState, EigrpState, EthernetInterfaceState, SwitchInterfaceState
]


# --- Serialization ---

def _mode_to_dict(mode: SwitchMode) -> dict:
    if isinstance(mode, AccessMode):
        return {"access": {"vlan": mode.vlan}}
    if isinstance(mode, TrunkMode):
        return {
            "trunk": {
                "encapsulation": mode.encapsulation,
                "allowed_vlans": mode.allowed_vlans,
            }
        }
    return {"routed": True}


def to_dict(record: Any) -> Optional[dict]:
    """Convert a desired-state record to a JSON-ready dict.

    UNSET fields are omitted. The switchport mode is flattened to an
    ``access``, ``trunk`` or ``routed`` key, the same shape ConfigParser
    accepts.
    """
    if record is None:
        return None

    data: dict[str, Any] = {}
    for f in fields(record):
        value = getattr(record, f.name)
        if value is UNSET:
            continue
        if f.name == "mode":
            data.update(_mode_to_dict(value))
        elif isinstance(value, SpanningTree):
            st = {"portfast": value.portfast}
            if value.bpdu_guard is not UNSET:
                st["bpdu_guard"] = value.bpdu_guard
            data[f.name] = st
        elif isinstance(value, list):
            data[f.name] = list(value)
        else:
            data[f.name] = value
    return data


# --- Reconcile Results ---

@dataclass
class ReconcileResult:
    """Outcome of one apply or plan cycle for one entity."""
    kind: EntityKind
    key: Any
    state: Optional[DesiredState] = None
    previous: Optional[DesiredState] = None
    commands: list[str] = field(default_factory=list)
    created: bool = False
    dry_run: bool = False

    @property
    def changed(self) -> bool:
        """True when a command batch was (or would be) sent."""
        return len(self.commands) > 0

    @property
    def exists(self) -> bool:
        """False when the entity was not found after the cycle."""
        return self.state is not None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": self.kind.value,
            "key": list(self.key) if isinstance(self.key, tuple) else self.key,
            "state": to_dict(self.state),
            "previous": to_dict(self.previous),
            "commands": self.commands,
            "changed": self.changed,
            "created": self.created,
            "exists": self.exists,
            "dry_run": self.dry_run,
        }
