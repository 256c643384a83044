"""Render IOS configuration commands from snapshot records.

``marshal`` creates an entity from nothing, ``diff`` moves an existing
entity to a new state. Both return newline-joined CLI text in the layout
IOS itself prints: a mode-entry line, indented sub-commands, then ``!``.
An empty string means there is nothing to change.
"""
from typing import Any, Callable

from ..errors import CodecError
from .model import Eigrp, Interface, IpAddress, Route, RunningConfig, Vlan
from .parser import unmarshal as parse_running_config


def format_vlan_list(vlans: list[int]) -> str:
    """Compress ``[10, 11, 12, 20]`` to ``10-12,20``."""
    ordered = sorted(set(vlans))
    if not ordered:
        return ""

    ranges = []
    start = prev = ordered[0]
    for vlan in ordered[1:]:
        if vlan == prev + 1:
            prev = vlan
            continue
        ranges.append(str(start) if start == prev else f"{start}-{prev}")
        start = prev = vlan
    ranges.append(str(start) if start == prev else f"{start}-{prev}")

    return ",".join(ranges)


def _block(header: str, lines: list[str]) -> str:
    return "\n".join([header] + lines + ["!"])


# --- VLAN ---

def _vlan_diff(old: Vlan, new: Vlan) -> str:
    if old.name == new.name:
        return ""
    if new.name:
        return _block(f"vlan {new.id}", [f" name {new.name}"])
    return _block(f"vlan {new.id}", [" no name"])


def _vlan_marshal(new: Vlan) -> str:
    lines = [f" name {new.name}"] if new.name else []
    return _block(f"vlan {new.id}", lines)


# --- Static route ---

def _route_line(route: Route) -> str:
    return " ".join(
        part for part in ("ip route", route.prefix, route.mask, route.next_hop) if part
    )


def _route_diff(old: Route, new: Route) -> str:
    if old == new:
        return ""
    return "\n".join([f"no {_route_line(old)}", _route_line(new)])


def _route_marshal(new: Route) -> str:
    return _route_line(new)


# --- EIGRP ---

def _eigrp_diff(old: Eigrp, new: Eigrp) -> str:
    old_networks = [(n.network, n.wildcard) for n in old.networks]
    new_networks = [(n.network, n.wildcard) for n in new.networks]

    lines = [
        f" no network {network} {wildcard}"
        for network, wildcard in old_networks
        if (network, wildcard) not in new_networks
    ]
    lines += [
        f" network {network} {wildcard}"
        for network, wildcard in new_networks
        if (network, wildcard) not in old_networks
    ]

    if not lines:
        return ""
    return _block(f"router eigrp {new.asn}", lines)


def _eigrp_marshal(new: Eigrp) -> str:
    return _block(
        f"router eigrp {new.asn}",
        [f" network {n.network} {n.wildcard}" for n in new.networks],
    )


# --- Interface ---

def _allowed_state(iface: Interface) -> tuple[bool, list[int]]:
    """(allows none, allowed list) for a trunk; all VLANs for anything else."""
    if not iface.trunk:
        return False, []
    return iface.trunk_allowed_none, sorted(set(iface.trunk_allowed_vlans))


def _switchport_lines(old: Interface, new: Interface) -> list[str]:
    """Mode transition lines. Trunk and access settings never mix."""
    lines = []

    if old.switchport and not new.switchport:
        lines.append(" no switchport")
        return lines
    if not new.switchport:
        return lines
    if not old.switchport:
        lines.append(" switchport")

    old_allowed = _allowed_state(old)

    if new.trunk:
        if new.encapsulation and new.encapsulation != old.encapsulation:
            lines.append(f" switchport trunk encapsulation {new.encapsulation}")
        if not old.trunk:
            lines.append(" switchport mode trunk")
        new_none, new_vlans = _allowed_state(new)
        if (new_none, new_vlans) != old_allowed:
            if new_none:
                lines.append(" switchport trunk allowed vlan none")
            elif new_vlans:
                lines.append(
                    f" switchport trunk allowed vlan {format_vlan_list(new_vlans)}"
                )
            else:
                lines.append(" no switchport trunk allowed vlan")

    elif new.access:
        if not old.access:
            lines.append(" switchport mode access")
        old_vlan = old.access_vlan if old.access else 1
        new_vlan = new.access_vlan or 1
        if new_vlan != old_vlan:
            if new_vlan == 1:
                lines.append(" no switchport access vlan")
            else:
                lines.append(f" switchport access vlan {new_vlan}")
        if old_allowed != (False, []):
            lines.append(" no switchport trunk allowed vlan")

    return lines


def _spanning_tree_lines(old: Interface, new: Interface) -> list[str]:
    lines = []

    if new.stp_portfast != old.stp_portfast:
        if not new.stp_portfast:
            lines.append(" no spanning-tree portfast")
        elif new.stp_portfast == "enable":
            lines.append(" spanning-tree portfast")
        else:
            lines.append(f" spanning-tree portfast {new.stp_portfast}")

    if new.stp_bpduguard != old.stp_bpduguard:
        if not new.stp_bpduguard:
            lines.append(" no spanning-tree bpduguard")
        else:
            lines.append(f" spanning-tree bpduguard {new.stp_bpduguard}")

    return lines


def _address_lines(old: Interface, new: Interface) -> list[str]:
    """Layer 3 lines. Skipped on switchports, where IOS rejects them."""
    if new.switchport:
        return []

    lines = []
    old_ips: list[IpAddress] = old.ips if not old.switchport else []

    if old_ips != new.ips:
        if not new.ips:
            lines.append(" no ip address")
        else:
            old_secondary = old_ips[1:]
            new_secondary = new.ips[1:]
            for ip in old_secondary:
                if ip not in new_secondary:
                    lines.append(f" no ip address {ip.address} {ip.mask} secondary")
            if not old_ips or old_ips[0] != new.ips[0]:
                lines.append(f" ip address {new.ips[0].address} {new.ips[0].mask}")
            for ip in new_secondary:
                if ip not in old_secondary:
                    lines.append(f" ip address {ip.address} {ip.mask} secondary")

    for helper in old.helper_addresses:
        if helper not in new.helper_addresses:
            lines.append(f" no ip helper-address {helper}")
    for helper in new.helper_addresses:
        if helper not in old.helper_addresses:
            lines.append(f" ip helper-address {helper}")

    return lines


def _interface_diff(old: Interface, new: Interface) -> str:
    lines = _switchport_lines(old, new)

    if new.description != old.description:
        if new.description:
            lines.append(f" description {new.description}")
        else:
            lines.append(" no description")

    lines += _address_lines(old, new)
    lines += _spanning_tree_lines(old, new)

    if new.shutdown != old.shutdown:
        lines.append(" shutdown" if new.shutdown else " no shutdown")

    if not lines:
        return ""
    return _block(f"interface {new.name}", lines)


def _interface_marshal(new: Interface) -> str:
    return _interface_diff(Interface(name=new.name), new)


class ConfigCodec:
    """Parse running-config text and render per-entity command text.

    Reconcilers receive one of these instead of calling the module
    functions directly, so tests can substitute a recording double.
    """

    MARSHALLERS: dict[type, Callable[[Any], str]] = {
        Vlan: _vlan_marshal,
        Route: _route_marshal,
        Eigrp: _eigrp_marshal,
        Interface: _interface_marshal,
    }

    DIFFERS: dict[type, Callable[[Any, Any], str]] = {
        Vlan: _vlan_diff,
        Route: _route_diff,
        Eigrp: _eigrp_diff,
        Interface: _interface_diff,
    }

    def unmarshal(self, text: str) -> RunningConfig:
        """Parse running-config text into a RunningConfig."""
        return parse_running_config(text)

    def marshal(self, new: Any) -> str:
        """Render the commands that create ``new`` from nothing."""
        renderer = self.MARSHALLERS.get(type(new))
        if renderer is None:
            raise CodecError(f"Cannot marshal {type(new).__name__}")
        return renderer(new)

    def diff(self, old: Any, new: Any) -> str:
        """Render the commands that turn ``old`` into ``new``."""
        if type(old) is not type(new):
            raise CodecError(
                f"Cannot diff {type(old).__name__} against {type(new).__name__}"
            )
        renderer = self.DIFFERS.get(type(new))
        if renderer is None:
            raise CodecError(f"Cannot diff {type(new).__name__}")
        return renderer(old, new)


def marshal(new: Any) -> str:
    """Render creation commands for one snapshot record."""
    return ConfigCodec().marshal(new)


def diff(old: Any, new: Any) -> str:
    """Render transition commands between two records of the same kind."""
    return ConfigCodec().diff(old, new)
