"""Main Config Engine - runs reconcile cycles against inventory devices.

Provides a single entry point for:
1. Parsing desired state input for one entity
2. Looking up the device and opening its session
3. Running the kind's reconciler (apply, plan, read, list, delete)
4. Writing an audit record for every change or planned change
"""
import logging
from typing import Any, Optional

from ..codec import ConfigCodec
from ..config.inventory import DeviceInventory
from ..utils.audit_log import ChangeTracker
from .parser import ConfigParser
from .reconciler import RECONCILERS, Reconciler, VlanReconciler
from .schema import DesiredState, EntityKind, ReconcileResult, to_dict

logger = logging.getLogger(__name__)


class ConfigEngine:
    """
    Main Config Engine for reconciling IOS entities.

    Usage:
        engine = ConfigEngine(inventory)
        result = await engine.apply("core-sw1", "vlan", {"id": 10, "name": "Voice"})
        print(result.commands)
    """

    def __init__(
        self,
        inventory: DeviceInventory,
        include_vlan_database: bool = False,
        codec: Optional[ConfigCodec] = None,
    ):
        """
        Initialize the Config Engine.

        Args:
            inventory: Device inventory for looking up devices
            include_vlan_database: Merge ``show vlan`` into VLAN snapshots
            codec: Config text codec shared by all reconcilers
        """
        self.inventory = inventory
        self.parser = ConfigParser()
        self.codec = codec or ConfigCodec()

        self.reconcilers: dict[EntityKind, Reconciler] = {}
        for kind, reconciler_class in RECONCILERS.items():
            if reconciler_class is VlanReconciler:
                self.reconcilers[kind] = VlanReconciler(
                    self.codec, include_vlan_database=include_vlan_database
                )
            else:
                self.reconcilers[kind] = reconciler_class(self.codec)

    def get_reconciler(self, kind: Any) -> Reconciler:
        """Look up the reconciler for a kind name."""
        return self.reconcilers[self.parser.parse_kind(kind)]

    def parse(self, kind: Any, config: dict[str, Any]) -> DesiredState:
        """Parse a config dict into a desired-state record (for external use)."""
        return self.parser.parse(kind, config)

    def _desired(self, kind: Any, config: Any) -> DesiredState:
        if isinstance(config, dict):
            return self.parser.parse(kind, config)
        return config

    async def apply(
        self,
        device_id: str,
        kind: Any,
        config: Any,
        dry_run: bool = False,
        user: str = "system",
    ) -> ReconcileResult:
        """
        Create or update one entity on a device.

        Input errors are raised before the device is contacted. Any error
        after that is audited and re-raised.

        Args:
            device_id: Inventory device id
            kind: Entity kind name
            config: Field dict (or an already built record)
            dry_run: Only compute the command batch
            user: User identifier for the audit log

        Returns:
            ReconcileResult with the commands and resulting state
        """
        reconciler = self.get_reconciler(kind)
        desired = self._desired(kind, config)
        device = self.inventory.get_device(device_id)
        tracker = ChangeTracker(device_id, user=user)
        operation = "plan" if dry_run else "apply"

        logger.info(
            f"{'DRY RUN: ' if dry_run else ''}Reconciling {reconciler.kind.value} "
            f"{desired.key} on {device_id}"
        )

        try:
            async with device:
                if dry_run:
                    result = await reconciler.preview(device, desired)
                else:
                    result = await reconciler.apply(device, desired)
        except Exception as e:
            tracker.log_change(
                operation=operation,
                kind=reconciler.kind.value,
                key=desired.key,
                success=False,
                error=str(e),
                output=getattr(e, "output", None) or "",
                dry_run=dry_run,
            )
            raise

        logger.info(
            f"{reconciler.kind.value} {desired.key} on {device_id}: "
            f"{len(result.commands)} commands"
        )

        if result.changed or not dry_run:
            tracker.log_change(
                operation=operation,
                kind=reconciler.kind.value,
                key=desired.key,
                success=True,
                commands=result.commands,
                dry_run=dry_run,
                before_state=to_dict(result.previous),
                after_state=to_dict(result.state),
            )
        return result

    async def plan(self, device_id: str, kind: Any, config: Any) -> ReconcileResult:
        """Compute the command batch without sending it."""
        return await self.apply(device_id, kind, config, dry_run=True)

    async def read(self, device_id: str, kind: Any, key: Any) -> Optional[DesiredState]:
        """Current state of one entity, or None when it does not exist."""
        reconciler = self.get_reconciler(kind)
        key = self.parser.parse_key(kind, key)
        device = self.inventory.get_device(device_id)

        async with device:
            return await reconciler.read(device, key)

    async def delete(
        self,
        device_id: str,
        kind: Any,
        key: Any,
        user: str = "system",
    ) -> list[str]:
        """Remove one entity. The device is not read back."""
        reconciler = self.get_reconciler(kind)
        key = self.parser.parse_key(kind, key)
        device = self.inventory.get_device(device_id)
        tracker = ChangeTracker(device_id, user=user)

        try:
            async with device:
                commands = await reconciler.delete(device, key)
        except Exception as e:
            tracker.log_change(
                operation="delete",
                kind=reconciler.kind.value,
                key=key,
                success=False,
                output=getattr(e, "output", None) or "",
                error=str(e),
            )
            raise

        tracker.log_change(
            operation="delete",
            kind=reconciler.kind.value,
            key=key,
            success=True,
            commands=commands,
        )
        return commands

    async def list(self, device_id: str, kind: Any) -> list[DesiredState]:
        """Current state of every entity of a kind."""
        reconciler = self.get_reconciler(kind)
        device = self.inventory.get_device(device_id)

        async with device:
            return await reconciler.list(device)
