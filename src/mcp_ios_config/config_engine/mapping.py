"""Attribute mapping between desired-state records and device snapshots.

Each mapping converts in both directions:
- to_snapshot: desired record (tri-state) + current device record -> target
  device record (two-valued) that the codec can marshal or diff against
- from_snapshot: device record -> fully specified desired record

UNSET fields take the current device value, or the device default when the
entity does not exist yet. None fields become the disabled form.
"""
import copy
import logging
from typing import Any, Optional

from ..codec.model import Eigrp, EigrpNetwork, Interface, IpAddress, Route, Vlan
from ..errors import InvalidConfiguration
from ..utils.addressing import (
    check_host,
    join_cidr,
    mask_to_cidr,
    mask_to_wildcard,
    split_cidr,
    wildcard_to_cidr,
)
from .schema import (
    UNSET,
    AccessMode,
    EigrpState,
    EntityKind,
    EthernetInterfaceState,
    RoutedMode,
    RouteState,
    SpanningTree,
    SwitchInterfaceState,
    TrunkMode,
    VlanState,
    SWITCH_MODES,
)

logger = logging.getLogger(__name__)

BPDU_GUARD_TO_DEVICE = {None: "", True: "enable", False: "disable"}
BPDU_GUARD_FROM_DEVICE = {"": None, "enable": True, "disable": False}

VLAN_MIN = 1
VLAN_MAX = 4094


def resolve(value: Any, current: Any, default: Any) -> Any:
    """Resolve one tri-state field to its device value.

    UNSET keeps ``current`` (or ``default`` when there is no current value),
    None becomes ``default``, anything else is used as is.
    """
    if value is UNSET:
        return default if current is None else current
    if value is None:
        return default
    return value


def _check_vlan(vlan_id: int, context: str) -> None:
    if isinstance(vlan_id, bool) or not isinstance(vlan_id, int):
        raise InvalidConfiguration(f"{context}: VLAN id must be an integer, got {vlan_id!r}")
    if not VLAN_MIN <= vlan_id <= VLAN_MAX:
        raise InvalidConfiguration(
            f"{context}: VLAN id {vlan_id} out of range ({VLAN_MIN}-{VLAN_MAX})"
        )


class EntityMapping:
    """Base class for per-kind attribute mappings."""

    kind: EntityKind

    def to_snapshot(self, desired: Any, current: Optional[Any] = None) -> Any:
        raise NotImplementedError

    def from_snapshot(self, record: Any) -> Any:
        raise NotImplementedError


class VlanMapping(EntityMapping):
    kind = EntityKind.VLAN

    def to_snapshot(self, desired: VlanState, current: Optional[Vlan] = None) -> Vlan:
        _check_vlan(desired.id, "VLAN")
        name = resolve(desired.name, current.name if current else None, "")
        return Vlan(id=desired.id, name=name)

    def from_snapshot(self, record: Vlan) -> VlanState:
        return VlanState(id=record.id, name=record.name or None)


class RouteMapping(EntityMapping):
    """Prefix and mask are kept verbatim; they form the lookup key."""

    kind = EntityKind.STATIC_ROUTE

    def to_snapshot(self, desired: RouteState, current: Optional[Route] = None) -> Route:
        # Both raise InvalidAddress on malformed input
        join_cidr(desired.prefix, desired.mask)
        mask_to_cidr(desired.mask)
        if not desired.next_hop:
            raise InvalidConfiguration(
                f"Route {desired.prefix} {desired.mask}: next_hop is required"
            )
        return Route(prefix=desired.prefix, mask=desired.mask, next_hop=desired.next_hop)

    def from_snapshot(self, record: Route) -> RouteState:
        return RouteState(prefix=record.prefix, mask=record.mask, next_hop=record.next_hop)


class EigrpMapping(EntityMapping):
    kind = EntityKind.EIGRP

    def to_snapshot(self, desired: EigrpState, current: Optional[Eigrp] = None) -> Eigrp:
        if isinstance(desired.asn, bool) or not isinstance(desired.asn, int):
            raise InvalidConfiguration(f"EIGRP AS number must be an integer: {desired.asn!r}")
        if not 1 <= desired.asn <= 65535:
            raise InvalidConfiguration(f"EIGRP AS number {desired.asn} out of range (1-65535)")

        if desired.networks is UNSET:
            networks = copy.deepcopy(current.networks) if current else []
        else:
            networks = []
            for cidr in desired.networks:
                network, mask = split_cidr(cidr, strict=True)
                networks.append(
                    EigrpNetwork(network=network, wildcard=mask_to_wildcard(mask))
                )

        return Eigrp(asn=desired.asn, networks=networks)

    def from_snapshot(self, record: Eigrp) -> EigrpState:
        return EigrpState(
            asn=record.asn,
            networks=[
                f"{n.network}/{wildcard_to_cidr(n.wildcard)}" for n in record.networks
            ],
        )


class InterfaceMapping(EntityMapping):
    """Shared handling for the two interface kinds."""

    def _base(self, desired, current: Optional[Interface]) -> Interface:
        """Start from the device record so unmanaged lines stay untouched."""
        if not desired.name or not desired.name.strip():
            raise InvalidConfiguration("Interface name is required")

        target = copy.deepcopy(current) if current else Interface(name=desired.name)
        target.name = desired.name
        target.description = resolve(
            desired.description, current.description if current else None, ""
        )
        target.shutdown = resolve(
            desired.shutdown, current.shutdown if current else None, False
        )
        return target

    @staticmethod
    def _make_routed(target: Interface) -> None:
        target.switchport = False
        target.access = False
        target.access_vlan = 0
        target.trunk = False
        target.encapsulation = ""
        target.trunk_allowed_vlans = []
        target.trunk_allowed_none = False


class EthernetInterfaceMapping(InterfaceMapping):
    kind = EntityKind.ETHERNET_INTERFACE

    def to_snapshot(
        self, desired: EthernetInterfaceState, current: Optional[Interface] = None
    ) -> Interface:
        target = self._base(desired, current)
        self._make_routed(target)

        if desired.ips is not UNSET:
            target.ips = [IpAddress(*split_cidr(cidr)) for cidr in desired.ips]
        elif current is None or current.switchport:
            target.ips = []

        if desired.helper_addresses is not UNSET:
            target.helper_addresses = [check_host(h) for h in desired.helper_addresses]
        elif current is None:
            target.helper_addresses = []

        return target

    def from_snapshot(self, record: Interface) -> EthernetInterfaceState:
        return EthernetInterfaceState(
            name=record.name,
            description=record.description or None,
            shutdown=record.shutdown,
            ips=[join_cidr(ip.address, ip.mask) for ip in record.ips],
            helper_addresses=list(record.helper_addresses),
        )


class SwitchInterfaceMapping(InterfaceMapping):
    kind = EntityKind.SWITCH_INTERFACE

    def to_snapshot(
        self, desired: SwitchInterfaceState, current: Optional[Interface] = None
    ) -> Interface:
        target = self._base(desired, current)
        mode = desired.mode

        if mode is not UNSET and not isinstance(mode, SWITCH_MODES):
            raise InvalidConfiguration(
                f"Interface {desired.name}: mode must be routed, access or trunk"
            )

        if isinstance(mode, RoutedMode):
            self._make_routed(target)

        elif isinstance(mode, AccessMode):
            _check_vlan(mode.vlan, f"Interface {desired.name} access")
            self._make_routed(target)
            target.switchport = True
            target.access = True
            target.access_vlan = mode.vlan

        elif isinstance(mode, TrunkMode):
            allowed = mode.allowed_vlans
            for vlan in allowed or []:
                _check_vlan(vlan, f"Interface {desired.name} trunk")
            self._make_routed(target)
            target.switchport = True
            target.trunk = True
            target.encapsulation = mode.encapsulation or ""
            if allowed is not None:
                target.trunk_allowed_vlans = sorted(set(allowed))
                target.trunk_allowed_none = not allowed

        if target.switchport:
            # Layer 3 settings do not survive on a switchport
            target.ips = []
            target.helper_addresses = []

        if isinstance(desired.spanning_tree, SpanningTree):
            st = desired.spanning_tree
            target.stp_portfast = st.portfast
            if st.bpdu_guard is UNSET:
                if current is None:
                    target.stp_bpduguard = ""
            else:
                target.stp_bpduguard = BPDU_GUARD_TO_DEVICE[st.bpdu_guard]

        return target

    def from_snapshot(self, record: Interface) -> SwitchInterfaceState:
        if not record.switchport:
            mode = RoutedMode()
        elif record.trunk:
            if record.trunk_allowed_none:
                allowed = []
            else:
                allowed = list(record.trunk_allowed_vlans) or None
            mode = TrunkMode(encapsulation=record.encapsulation, allowed_vlans=allowed)
        else:
            mode = AccessMode(vlan=record.access_vlan or 1)

        if record.stp_bpduguard not in BPDU_GUARD_FROM_DEVICE:
            logger.debug(
                f"Unknown bpduguard value '{record.stp_bpduguard}' on {record.name}"
            )

        return SwitchInterfaceState(
            name=record.name,
            description=record.description or None,
            shutdown=record.shutdown,
            mode=mode,
            spanning_tree=SpanningTree(
                portfast=record.stp_portfast,
                bpdu_guard=BPDU_GUARD_FROM_DEVICE.get(record.stp_bpduguard),
            ),
        )


MAPPINGS: dict[EntityKind, EntityMapping] = {
    EntityKind.VLAN: VlanMapping(),
    EntityKind.STATIC_ROUTE: RouteMapping(),
    EntityKind.EIGRP: EigrpMapping(),
    EntityKind.ETHERNET_INTERFACE: EthernetInterfaceMapping(),
    EntityKind.SWITCH_INTERFACE: SwitchInterfaceMapping(),
}
