"""Find one entity by key in a parsed running-config."""
import logging
from typing import Any, Callable, Iterable, Optional, TypeVar

from ..codec.model import Eigrp, Interface, Route, RunningConfig, Vlan

logger = logging.getLogger(__name__)

T = TypeVar("T")


def find(items: Iterable[T], key: Any, key_fn: Callable[[T], Any]) -> Optional[T]:
    """
    Linear scan for the first item whose key equals ``key``.

    IOS never prints the same entity twice, so a duplicate means the
    snapshot was stitched from several sources. The first match wins.
    """
    found = None
    for item in items:
        if key_fn(item) != key:
            continue
        if found is None:
            found = item
        else:
            logger.debug(f"Duplicate entity for key {key!r}, keeping the first")
            break
    return found


def vlan_key(vlan: Vlan) -> int:
    return vlan.id


def route_key(route: Route) -> tuple[str, str]:
    return (route.prefix, route.mask)


def eigrp_key(process: Eigrp) -> int:
    return process.asn


def interface_key(iface: Interface) -> str:
    return iface.name


def find_vlan(config: RunningConfig, vlan_id: int) -> Optional[Vlan]:
    return find(config.vlans, vlan_id, vlan_key)


def find_route(config: RunningConfig, prefix: str, mask: str) -> Optional[Route]:
    return find(config.routes, (prefix, mask), route_key)


def find_eigrp(config: RunningConfig, asn: int) -> Optional[Eigrp]:
    return find(config.eigrp_processes, asn, eigrp_key)


def find_interface(config: RunningConfig, name: str) -> Optional[Interface]:
    return find(config.interfaces, name, interface_key)
