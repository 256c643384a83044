"""Parser for IOS ``show running-config`` output.

Only the lines the reconcilers care about are understood. Everything else
is skipped, so a full production config parses without complaint.

    vlan 10
     name Engineering
    !
    interface GigabitEthernet0/1
     description uplink
     switchport trunk encapsulation dot1q
     switchport mode trunk
     switchport trunk allowed vlan 10,20-22
     spanning-tree bpduguard enable
    !
    router eigrp 100
     network 10.0.0.0 0.0.0.255
    !
    ip route 0.0.0.0 0.0.0.0 192.0.2.1
"""
import logging
import re
from typing import Optional

from ..errors import CodecError, InvalidAddress
from ..utils.addressing import classful_wildcard
from .model import (
    Eigrp,
    EigrpNetwork,
    Interface,
    IpAddress,
    Route,
    RunningConfig,
    Vlan,
)

logger = logging.getLogger(__name__)

VLAN_LIST_PATTERN = re.compile(r"^\d+([,-]\d+)*$")
PORTFAST_MODES = {"edge", "network", "disable"}


def parse_vlan_list(value: str) -> list[int]:
    """Expand an IOS VLAN list like ``10,20-22`` to ``[10, 20, 21, 22]``."""
    vlans: list[int] = []
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            start, _, end = part.partition("-")
            try:
                vlans.extend(range(int(start), int(end) + 1))
            except ValueError:
                raise CodecError(f"Invalid VLAN range: {part}")
        else:
            try:
                vlans.append(int(part))
            except ValueError:
                raise CodecError(f"Invalid VLAN id: {part}")
    return vlans


class RunningConfigParser:
    """Turn running-config text into a RunningConfig snapshot."""

    def parse(self, text: str) -> RunningConfig:
        """
        Parse running-config text.

        Args:
            text: Raw output of ``show running-config``

        Returns:
            RunningConfig with VLANs, interfaces, routes and EIGRP processes

        Raises:
            CodecError: If a recognised line is structurally broken
        """
        if text is None:
            raise CodecError("No running-config text to parse")

        config = RunningConfig()
        section: Optional[object] = None

        for raw_line in text.splitlines():
            line = raw_line.rstrip("\r").rstrip()
            if not line.strip():
                continue

            stripped = line.strip()

            if not line[0].isspace():
                # Top-level line closes whatever section was open
                section = None
                if stripped.startswith("!") or stripped == "end":
                    continue
                section = self._parse_top_level(config, stripped)
                continue

            if section is None or stripped.startswith("!"):
                continue

            if isinstance(section, Interface):
                self._parse_interface_line(section, stripped)
            elif isinstance(section, list):
                self._parse_vlan_line(section, stripped)
            elif isinstance(section, Eigrp):
                self._parse_eigrp_line(section, stripped)

        for iface in config.interfaces:
            self._finalize_interface(iface)

        logger.debug(
            f"Parsed running-config: {len(config.vlans)} vlans, "
            f"{len(config.interfaces)} interfaces, {len(config.routes)} routes, "
            f"{len(config.eigrp_processes)} eigrp processes"
        )
        return config

    def _parse_top_level(self, config: RunningConfig, line: str) -> Optional[object]:
        """Handle a top-level line. Returns the section it opens, if any."""
        tokens = line.split()

        if tokens[0] == "hostname" and len(tokens) > 1:
            config.hostname = tokens[1]
            return None

        if tokens[0] == "vlan" and len(tokens) == 2 and VLAN_LIST_PATTERN.match(tokens[1]):
            vlans = [Vlan(id=vlan_id) for vlan_id in parse_vlan_list(tokens[1])]
            config.vlans.extend(vlans)
            return vlans

        if tokens[0] == "interface" and len(tokens) > 1:
            iface = Interface(name=line[len("interface"):].strip())
            config.interfaces.append(iface)
            return iface

        if tokens[:2] == ["ip", "route"]:
            route = self._parse_route(tokens)
            if route:
                config.routes.append(route)
            return None

        if tokens[:2] == ["router", "eigrp"] and len(tokens) == 3:
            if not tokens[2].isdigit():
                # Named-mode EIGRP is not modelled
                return None
            process = Eigrp(asn=int(tokens[2]))
            config.eigrp_processes.append(process)
            return process

        return None

    def _parse_route(self, tokens: list[str]) -> Optional[Route]:
        """Parse ``ip route <prefix> <mask> <next-hop> ...``.

        VRF routes and other forms such as ``ip route profile`` are skipped.
        """
        if len(tokens) < 5 or tokens[2] == "vrf":
            logger.debug(f"Skipping route line: {' '.join(tokens)}")
            return None
        return Route(prefix=tokens[2], mask=tokens[3], next_hop=tokens[4])

    def _parse_vlan_line(self, vlans: list[Vlan], line: str) -> None:
        """Parse a line inside a ``vlan`` block."""
        if line.startswith("name ") and len(vlans) == 1:
            vlans[0].name = line[len("name "):].strip()

    def _parse_eigrp_line(self, process: Eigrp, line: str) -> None:
        """Parse a line inside a ``router eigrp`` block."""
        tokens = line.split()
        if tokens[0] != "network" or len(tokens) < 2:
            return

        try:
            wildcard = tokens[2] if len(tokens) > 2 else classful_wildcard(tokens[1])
        except InvalidAddress as e:
            raise CodecError(f"Malformed EIGRP network: {line}") from e

        process.networks.append(EigrpNetwork(network=tokens[1], wildcard=wildcard))

    def _parse_interface_line(self, iface: Interface, line: str) -> None:
        """Parse a line inside an ``interface`` block."""
        tokens = line.split()

        if tokens[0] == "description":
            iface.description = line[len("description"):].strip()

        elif line == "shutdown":
            iface.shutdown = True

        elif line == "no shutdown":
            iface.shutdown = False

        elif line == "no switchport":
            iface.switchport = False
            iface.access = False
            iface.trunk = False

        elif tokens[0] == "switchport":
            iface.switchport = True
            self._parse_switchport(iface, tokens[1:])

        elif tokens[0] == "spanning-tree" and len(tokens) > 1:
            self._parse_spanning_tree(iface, tokens[1:])

        elif tokens[:2] == ["ip", "address"] and len(tokens) >= 4:
            ip = IpAddress(address=tokens[2], mask=tokens[3])
            if "secondary" in tokens[4:]:
                iface.ips.append(ip)
            else:
                # Primary always leads the list
                iface.ips.insert(0, ip)

        elif line == "no ip address":
            iface.ips = []

        elif tokens[:2] == ["ip", "helper-address"] and len(tokens) >= 3:
            iface.helper_addresses.append(tokens[-1])

    def _parse_switchport(self, iface: Interface, args: list[str]) -> None:
        """Parse the arguments after ``switchport``."""
        if not args:
            return

        if args[:1] == ["mode"] and len(args) > 1:
            if args[1] == "trunk":
                iface.trunk = True
                iface.access = False
            elif args[1] == "access":
                iface.access = True
                iface.trunk = False

        elif args[:2] == ["access", "vlan"] and len(args) > 2:
            try:
                iface.access_vlan = int(args[2])
            except ValueError:
                raise CodecError(f"Invalid access VLAN: {args[2]}")

        elif args[:2] == ["trunk", "encapsulation"] and len(args) > 2:
            iface.encapsulation = args[2]

        elif args[:3] == ["trunk", "allowed", "vlan"] and len(args) > 3:
            self._parse_allowed_vlans(iface, args[3:])

    def _parse_allowed_vlans(self, iface: Interface, args: list[str]) -> None:
        """Parse ``switchport trunk allowed vlan [add|remove] <list>``."""
        if args[0] == "all":
            iface.trunk_allowed_vlans = []
            iface.trunk_allowed_none = False
        elif args[0] == "none":
            iface.trunk_allowed_vlans = []
            iface.trunk_allowed_none = True
        elif args[0] == "add" and len(args) > 1:
            iface.trunk_allowed_vlans = sorted(
                set(iface.trunk_allowed_vlans) | set(parse_vlan_list(args[1]))
            )
            iface.trunk_allowed_none = False
        elif args[0] == "remove" and len(args) > 1:
            removed = set(parse_vlan_list(args[1]))
            iface.trunk_allowed_vlans = [
                v for v in iface.trunk_allowed_vlans if v not in removed
            ]
        elif args[0] not in ("except",):
            iface.trunk_allowed_vlans = sorted(set(parse_vlan_list(args[0])))
            iface.trunk_allowed_none = False

    def _parse_spanning_tree(self, iface: Interface, args: list[str]) -> None:
        """Parse the arguments after ``spanning-tree``."""
        if args[0] == "portfast":
            if len(args) > 1 and args[1] in PORTFAST_MODES:
                iface.stp_portfast = args[1]
            else:
                iface.stp_portfast = "enable"
        elif args[0] == "bpduguard" and len(args) > 1:
            iface.stp_bpduguard = args[1]

    def _finalize_interface(self, iface: Interface) -> None:
        """Resolve the switchport mode flags into exactly one mode."""
        if not iface.switchport:
            iface.access = False
            iface.trunk = False
            iface.access_vlan = 0
            iface.encapsulation = ""
            iface.trunk_allowed_vlans = []
            iface.trunk_allowed_none = False
            return

        if not iface.trunk:
            iface.access = True

        if iface.access:
            # "switchport access vlan 1" is never printed
            if iface.access_vlan == 0:
                iface.access_vlan = 1
            iface.encapsulation = ""
            iface.trunk_allowed_vlans = []
            iface.trunk_allowed_none = False
        else:
            iface.access_vlan = 0


def unmarshal(text: str) -> RunningConfig:
    """Parse running-config text into a RunningConfig snapshot."""
    return RunningConfigParser().parse(text)
