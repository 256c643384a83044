"""Parser for desired state input.

Converts dict/YAML/JSON input to desired-state records. A missing key
means "no opinion" (UNSET); an explicit null means "absent".

Switch interface modes are given as one of three keys:

    {"name": "Gi0/1", "access": {"vlan": 10}}
    {"name": "Gi0/2", "trunk": {"allowed_vlans": [10, 20]}}
    {"name": "Gi0/3", "routed": true}

For trunks, a missing or null ``allowed_vlans`` allows every VLAN and an
empty list allows none.
"""
from typing import Any, Callable

from ..errors import InvalidConfiguration, ParseError
from .schema import (
    UNSET,
    AccessMode,
    DesiredState,
    EigrpState,
    EntityKind,
    EthernetInterfaceState,
    RoutedMode,
    RouteState,
    SpanningTree,
    SwitchInterfaceState,
    TrunkMode,
    VlanState,
)

MODE_KEYS = ("access", "trunk", "routed")


def _get(config: dict, key: str) -> Any:
    """Tri-state lookup: missing -> UNSET, null -> None."""
    return config[key] if key in config else UNSET


def _require(config: dict, key: str, kind: str) -> Any:
    if config.get(key) is None:
        raise ParseError(f"Missing required field for {kind}: {key}")
    return config[key]


def _as_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ParseError(f"Invalid {field_name}: {value!r}")
    try:
        return int(value)
    except (ValueError, TypeError):
        raise ParseError(f"Invalid {field_name}: {value!r}")


def _as_list(value: Any, field_name: str) -> Any:
    """Accept a list or a single string; pass UNSET and None through."""
    if value is UNSET or value is None:
        return value
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple)):
        raise ParseError(f"Invalid {field_name}: expected a list, got {value!r}")
    return list(value)


class ConfigParser:
    """Parse desired state records from dict format."""

    def __init__(self):
        self._parsers: dict[EntityKind, Callable[[dict], DesiredState]] = {
            EntityKind.VLAN: self._parse_vlan,
            EntityKind.STATIC_ROUTE: self._parse_route,
            EntityKind.EIGRP: self._parse_eigrp,
            EntityKind.ETHERNET_INTERFACE: self._parse_ethernet_interface,
            EntityKind.SWITCH_INTERFACE: self._parse_switch_interface,
        }

    @staticmethod
    def parse_kind(kind: Any) -> EntityKind:
        """Resolve a kind name like "vlan" or "switch_interface"."""
        try:
            return EntityKind(kind)
        except ValueError:
            valid = ", ".join(k.value for k in EntityKind)
            raise ParseError(f"Unknown entity kind: {kind}. Must be one of: {valid}")

    def parse(self, kind: Any, config: dict[str, Any]) -> DesiredState:
        """
        Parse a configuration dict into a desired-state record.

        Args:
            kind: Entity kind name
            config: Field dict for one entity

        Returns:
            Desired-state record

        Raises:
            ParseError: If the kind is unknown or a key field is missing
            InvalidConfiguration: If the input violates a structural invariant
        """
        entity_kind = self.parse_kind(kind)
        if not isinstance(config, dict):
            raise ParseError(f"Expected an object for {entity_kind.value}, got {config!r}")
        return self._parsers[entity_kind](config)

    def parse_key(self, kind: Any, key: Any) -> Any:
        """Normalize a bare key from JSON input (route keys arrive as lists)."""
        entity_kind = self.parse_kind(kind)

        if entity_kind in (EntityKind.VLAN, EntityKind.EIGRP):
            return _as_int(key, f"{entity_kind.value} key")

        if entity_kind == EntityKind.STATIC_ROUTE:
            if isinstance(key, dict):
                parts = [key.get("prefix"), key.get("mask"), key.get("next_hop")]
            elif isinstance(key, (list, tuple)):
                parts = list(key)
            else:
                raise ParseError(f"Static route key must be [prefix, mask], got {key!r}")
            parts = [p for p in parts if p]
            if len(parts) < 2:
                raise ParseError(f"Static route key must be [prefix, mask], got {key!r}")
            return tuple(parts)

        if not isinstance(key, str) or not key.strip():
            raise ParseError(f"Interface key must be a name, got {key!r}")
        return key.strip()

    def _parse_vlan(self, config: dict) -> VlanState:
        vlan_id = _as_int(_require(config, "id", "vlan"), "VLAN ID")
        return VlanState(id=vlan_id, name=_get(config, "name"))

    def _parse_route(self, config: dict) -> RouteState:
        return RouteState(
            prefix=_require(config, "prefix", "static_route"),
            mask=_require(config, "mask", "static_route"),
            next_hop=_require(config, "next_hop", "static_route"),
        )

    def _parse_eigrp(self, config: dict) -> EigrpState:
        asn = _as_int(_require(config, "asn", "eigrp"), "EIGRP AS number")
        return EigrpState(asn=asn, networks=_as_list(_get(config, "networks"), "networks"))

    def _parse_ethernet_interface(self, config: dict) -> EthernetInterfaceState:
        return EthernetInterfaceState(
            name=_require(config, "name", "ethernet_interface"),
            description=_get(config, "description"),
            shutdown=_get(config, "shutdown"),
            ips=_as_list(_get(config, "ips"), "ips"),
            helper_addresses=_as_list(_get(config, "helper_addresses"), "helper_addresses"),
        )

    def _parse_switch_interface(self, config: dict) -> SwitchInterfaceState:
        name = _require(config, "name", "switch_interface")
        return SwitchInterfaceState(
            name=name,
            description=_get(config, "description"),
            shutdown=_get(config, "shutdown"),
            mode=self._parse_mode(name, config),
            spanning_tree=self._parse_spanning_tree(_get(config, "spanning_tree")),
        )

    def _parse_mode(self, name: str, config: dict) -> Any:
        """Pick the switchport mode. More than one mode is an error."""
        given = [k for k in MODE_KEYS if config.get(k) not in (None, False)]

        if len(given) > 1:
            raise InvalidConfiguration(
                f"Interface {name}: {' and '.join(given)} are mutually exclusive"
            )

        if not given:
            # Explicit nulls only: turn switching off
            if any(k in config for k in MODE_KEYS):
                return RoutedMode()
            return UNSET

        mode_key = given[0]
        if mode_key == "routed":
            return RoutedMode()

        options = config[mode_key]
        if options is True:
            options = {}
        if not isinstance(options, dict):
            raise ParseError(f"Interface {name}: {mode_key} must be an object")

        if mode_key == "access":
            vlan = options.get("vlan", options.get("access_vlan", 1))
            return AccessMode(vlan=_as_int(vlan, "access VLAN"))

        allowed = options.get("allowed_vlans")
        if allowed is not None:
            allowed = [_as_int(v, "allowed VLAN") for v in _as_list(allowed, "allowed_vlans")]
        return TrunkMode(
            encapsulation=options.get("encapsulation", "dot1q"),
            allowed_vlans=allowed,
        )

    def _parse_spanning_tree(self, value: Any) -> Any:
        if value is UNSET or value is None:
            return value
        if not isinstance(value, dict):
            raise ParseError(f"spanning_tree must be an object, got {value!r}")
        return SpanningTree(
            portfast=value.get("portfast") or "",
            bpdu_guard=_get(value, "bpdu_guard"),
        )
