"""Reconcile one entity against the device running-config.

Every kind runs the same cycle:

1. Read ``show running-config`` and parse it
2. Locate the entity by key
3. Map the desired record to a device record (UNSET keeps current values)
4. Render ``marshal`` (entity absent) or ``diff`` (entity present)
5. Filter the text into a command batch
6. Send the batch in one configuration session (skipped when empty)
7. Re-read, re-locate and report the state the device ended up in

Nothing is retried. A failure at any step ends the cycle with an error;
a failure in step 6 may leave the device partially configured.
"""
import logging
from typing import Any, Optional

from ..codec import ConfigCodec, RunningConfig, Vlan
from ..devices.base import NetworkDevice
from ..devices.show import run_show
from ..errors import InvalidConfiguration, TransportError
from .filter import filter_commands
from .locator import eigrp_key, find, interface_key, route_key, vlan_key
from .mapping import (
    EigrpMapping,
    EntityMapping,
    EthernetInterfaceMapping,
    RouteMapping,
    SwitchInterfaceMapping,
    VlanMapping,
)
from .schema import EntityKind, ReconcileResult, RouteState

logger = logging.getLogger(__name__)

RUNNING_CONFIG_COMMAND = "show running-config"


class Reconciler:
    """Reconcile cycle for one entity kind.

    Subclasses provide the mapping, the snapshot collection, the key
    function and the teardown command.
    """

    kind: EntityKind
    mapping: EntityMapping

    def __init__(self, codec: Optional[ConfigCodec] = None):
        self.codec = codec or ConfigCodec()

    # --- Per-kind hooks ---

    def collection(self, config: RunningConfig) -> list:
        raise NotImplementedError

    def snapshot_key(self, record: Any) -> Any:
        raise NotImplementedError

    def teardown_command(self, key: Any) -> str:
        raise NotImplementedError

    def normalize_key(self, key: Any) -> Any:
        """Accept a desired record or a bare key."""
        return getattr(key, "key", key)

    # --- Device I/O ---

    async def read_snapshot(self, device: NetworkDevice) -> RunningConfig:
        """Fetch and parse the running-config."""
        logger.debug(f"Reading running-config from {device.device_id}")
        try:
            success, output = await device.execute(RUNNING_CONFIG_COMMAND)
        except Exception as e:
            raise TransportError(
                f"Failed to read running-config from {device.device_id}: {e}"
            ) from e

        if not success:
            raise TransportError(
                f"Failed to read running-config from {device.device_id}",
                output=output,
            )

        return self.codec.unmarshal(output)

    async def configure(self, device: NetworkDevice, commands: list[str]) -> str:
        """Send one configuration batch."""
        logger.info(f"Sending {len(commands)} commands to {device.device_id}")
        try:
            success, output = await device.execute_config_mode(commands)
        except Exception as e:
            raise TransportError(
                f"Configuration failed on {device.device_id}: {e}"
            ) from e

        if not success:
            raise TransportError(
                f"Configuration rejected by {device.device_id}", output=output
            )
        return output

    def locate(self, config: RunningConfig, key: Any) -> Optional[Any]:
        return find(self.collection(config), key, self.snapshot_key)

    # --- Operations ---

    async def _render(self, device: NetworkDevice, desired: Any) -> tuple[Optional[Any], list[str]]:
        config = await self.read_snapshot(device)
        prior = self.locate(config, desired.key)

        # Mapping errors surface here, before any configuration command
        target = self.mapping.to_snapshot(desired, prior)

        if prior is None:
            logger.info(f"{self.kind.value} {desired.key} not on device, creating")
            text = self.codec.marshal(target)
        else:
            logger.info(f"{self.kind.value} {desired.key} exists, computing diff")
            text = self.codec.diff(prior, target)

        return prior, filter_commands(text)

    def _previous(self, prior: Optional[Any]) -> Optional[Any]:
        return None if prior is None else self.mapping.from_snapshot(prior)

    async def preview(self, device: NetworkDevice, desired: Any) -> ReconcileResult:
        """Dry run: the batch apply would send, next to the current state."""
        prior, commands = await self._render(device, desired)
        previous = self._previous(prior)
        return ReconcileResult(
            kind=self.kind,
            key=desired.key,
            state=previous,
            previous=previous,
            commands=commands,
            created=prior is None,
            dry_run=True,
        )

    async def plan(self, device: NetworkDevice, desired: Any) -> list[str]:
        """Return the command batch apply would send, without sending it."""
        result = await self.preview(device, desired)
        return result.commands

    async def apply(self, device: NetworkDevice, desired: Any) -> ReconcileResult:
        """Create or update one entity and report the resulting state."""
        prior, commands = await self._render(device, desired)
        previous = self._previous(prior)

        if commands:
            await self.configure(device, commands)
        else:
            logger.info(f"{self.kind.value} {desired.key} already in desired state")

        state = await self.read(device, desired.key)
        if state is None:
            logger.warning(
                f"{self.kind.value} {desired.key} not found on {device.device_id} after apply"
            )

        return ReconcileResult(
            kind=self.kind,
            key=desired.key,
            state=state,
            previous=previous,
            commands=commands,
            created=prior is None,
        )

    async def read(self, device: NetworkDevice, key: Any) -> Optional[Any]:
        """Current state of one entity, or None when it does not exist."""
        config = await self.read_snapshot(device)
        record = self.locate(config, self.normalize_key(key))
        if record is None:
            return None
        return self.mapping.from_snapshot(record)

    async def delete(self, device: NetworkDevice, key: Any) -> list[str]:
        """Send the teardown command. The device is not read back."""
        command = self.teardown_command(key)
        logger.info(f"Deleting {self.kind.value} on {device.device_id}: {command}")
        await self.configure(device, [command])
        return [command]

    async def list(self, device: NetworkDevice) -> list[Any]:
        """Current state of every entity of this kind."""
        config = await self.read_snapshot(device)
        return [self.mapping.from_snapshot(r) for r in self.collection(config)]


class VlanReconciler(Reconciler):
    """VLANs.

    With include_vlan_database=True, VLANs that only appear in ``show vlan``
    (VTP-learned or default VLANs) are added to the snapshot as well.
    """

    kind = EntityKind.VLAN
    mapping = VlanMapping()

    def __init__(self, codec: Optional[ConfigCodec] = None, include_vlan_database: bool = False):
        super().__init__(codec)
        self.include_vlan_database = include_vlan_database

    async def read_snapshot(self, device: NetworkDevice) -> RunningConfig:
        config = await super().read_snapshot(device)
        if self.include_vlan_database:
            await self._merge_vlan_database(device, config)
        return config

    async def _merge_vlan_database(self, device: NetworkDevice, config: RunningConfig) -> None:
        try:
            rows = await run_show(device, "show vlan")
        except Exception as e:
            raise TransportError(f"Failed to read VLAN database from {device.device_id}: {e}") from e

        known = {v.id for v in config.vlans}
        for row in rows:
            try:
                vlan_id = int(row.get("vlan_id", ""))
            except ValueError:
                continue
            if vlan_id not in known:
                config.vlans.append(Vlan(id=vlan_id, name=row.get("vlan_name", "")))
                known.add(vlan_id)

    def collection(self, config: RunningConfig) -> list:
        return config.vlans

    def snapshot_key(self, record) -> int:
        return vlan_key(record)

    def normalize_key(self, key: Any) -> int:
        return int(super().normalize_key(key))

    def teardown_command(self, key: Any) -> str:
        return f"no vlan {self.normalize_key(key)}"


class RouteReconciler(Reconciler):
    kind = EntityKind.STATIC_ROUTE
    mapping = RouteMapping()

    def collection(self, config: RunningConfig) -> list:
        return config.routes

    def snapshot_key(self, record) -> tuple[str, str]:
        return route_key(record)

    def normalize_key(self, key: Any) -> tuple[str, str]:
        key = super().normalize_key(key)
        if not isinstance(key, (tuple, list)) or len(key) < 2:
            raise InvalidConfiguration(f"Static route key must be (prefix, mask), got {key!r}")
        return (key[0], key[1])

    def teardown_command(self, key: Any) -> str:
        if isinstance(key, RouteState):
            parts = [key.prefix, key.mask, key.next_hop]
        else:
            # (prefix, mask) or (prefix, mask, next_hop)
            parts = list(self.normalize_key(key))
            if isinstance(key, (tuple, list)) and len(key) > 2:
                parts.append(key[2])
        return " ".join(["no ip route"] + [p for p in parts if p])


class EigrpReconciler(Reconciler):
    kind = EntityKind.EIGRP
    mapping = EigrpMapping()

    def collection(self, config: RunningConfig) -> list:
        return config.eigrp_processes

    def snapshot_key(self, record) -> int:
        return eigrp_key(record)

    def normalize_key(self, key: Any) -> int:
        return int(super().normalize_key(key))

    def teardown_command(self, key: Any) -> str:
        return f"no router eigrp {self.normalize_key(key)}"


class InterfaceReconciler(Reconciler):
    """Both interface kinds share the interface table and teardown."""

    def collection(self, config: RunningConfig) -> list:
        return config.interfaces

    def snapshot_key(self, record) -> str:
        return interface_key(record)

    def teardown_command(self, key: Any) -> str:
        return f"default interface {self.normalize_key(key)}"


class EthernetInterfaceReconciler(InterfaceReconciler):
    kind = EntityKind.ETHERNET_INTERFACE
    mapping = EthernetInterfaceMapping()


class SwitchInterfaceReconciler(InterfaceReconciler):
    kind = EntityKind.SWITCH_INTERFACE
    mapping = SwitchInterfaceMapping()


RECONCILERS: dict[EntityKind, type[Reconciler]] = {
    EntityKind.VLAN: VlanReconciler,
    EntityKind.STATIC_ROUTE: RouteReconciler,
    EntityKind.EIGRP: EigrpReconciler,
    EntityKind.ETHERNET_INTERFACE: EthernetInterfaceReconciler,
    EntityKind.SWITCH_INTERFACE: SwitchInterfaceReconciler,
}
