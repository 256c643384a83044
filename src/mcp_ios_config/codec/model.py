"""Structured running-config snapshot for Cisco IOS.

Every field holds a concrete value. A feature that is not configured is a
False flag or an empty/zero value, never None.
"""
from dataclasses import dataclass, field


@dataclass
class Vlan:
    """A ``vlan <id>`` block."""
    id: int
    name: str = ""


@dataclass
class Route:
    """An ``ip route <prefix> <mask> <next_hop>`` line."""
    prefix: str
    mask: str
    next_hop: str = ""


@dataclass
class EigrpNetwork:
    """A ``network <address> <wildcard>`` statement."""
    network: str
    wildcard: str


@dataclass
class Eigrp:
    """A ``router eigrp <asn>`` block."""
    asn: int
    networks: list[EigrpNetwork] = field(default_factory=list)


@dataclass
class IpAddress:
    """An interface address. The first one on an interface is primary."""
    address: str
    mask: str


@dataclass
class Interface:
    """An ``interface <name>`` block.

    Switchport mode is carried by the switchport/access/trunk flags; at most
    one of access and trunk is set. An empty trunk_allowed_vlans list means
    every VLAN is allowed unless trunk_allowed_none is set
    (``switchport trunk allowed vlan none``).
    """
    name: str
    description: str = ""
    shutdown: bool = False
    switchport: bool = False
    access: bool = False
    access_vlan: int = 0
    trunk: bool = False
    encapsulation: str = ""
    trunk_allowed_vlans: list[int] = field(default_factory=list)
    trunk_allowed_none: bool = False
    stp_portfast: str = ""   # "", enable, edge, network, disable
    stp_bpduguard: str = ""  # "", enable, disable
    ips: list[IpAddress] = field(default_factory=list)
    helper_addresses: list[str] = field(default_factory=list)


@dataclass
class RunningConfig:
    """Parsed ``show running-config``, one ordered list per entity kind."""
    hostname: str = ""
    vlans: list[Vlan] = field(default_factory=list)
    interfaces: list[Interface] = field(default_factory=list)
    routes: list[Route] = field(default_factory=list)
    eigrp_processes: list[Eigrp] = field(default_factory=list)
