"""Audit logging for configuration changes.

Every apply, plan and delete cycle the engine runs is written as one JSON
line to a dedicated audit log:
- device, entity kind and key
- the exact command batch sent (or that would be sent)
- the entity state before and after the cycle
- success or the error that ended the cycle
"""
import json
import logging
import os
from datetime import datetime, timezone
from dataclasses import dataclass, asdict, field
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

# Create dedicated audit logger
audit_logger = logging.getLogger("iosforge.audit")

DEFAULT_AUDIT_DIR = "~/.iosforge"


def get_audit_file(log_dir: Optional[str] = None) -> str:
    """Path of the audit log (IOSFORGE_AUDIT_DIR or ~/.iosforge)."""
    if log_dir is None:
        log_dir = os.environ.get("IOSFORGE_AUDIT_DIR", DEFAULT_AUDIT_DIR)
    return os.path.join(os.path.expanduser(log_dir), "audit.log")


def setup_audit_logging(log_dir: Optional[str] = None) -> str:
    """Configure audit logging to file.

    Args:
        log_dir: Directory for audit logs. Defaults to ~/.iosforge/

    Returns:
        Path of the audit log file
    """
    audit_file = get_audit_file(log_dir)
    Path(audit_file).parent.mkdir(parents=True, exist_ok=True)

    audit_logger.setLevel(logging.INFO)
    audit_logger.handlers.clear()

    handler = RotatingFileHandler(
        audit_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10,
        encoding="utf-8",
    )

    # One JSON document per line
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)
    audit_logger.propagate = False

    return audit_file


@dataclass
class ChangeRecord:
    """Record of one reconcile cycle."""
    timestamp: str
    device_id: str
    operation: str  # apply, plan, delete
    kind: str
    key: Any
    user: str
    dry_run: bool
    success: bool
    commands: list[str] = field(default_factory=list)
    before_state: Optional[dict] = None
    after_state: Optional[dict] = None
    output: str = ""
    error: Optional[str] = None

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(asdict(self), indent=None)

    @classmethod
    def from_json(cls, json_str: str) -> "ChangeRecord":
        """Parse from JSON string."""
        data = json.loads(json_str)
        return cls(**data)


class ChangeTracker:
    """Write audit records for one device."""

    def __init__(self, device_id: str, user: str = "system"):
        self.device_id = device_id
        self.user = user

    def log_change(
        self,
        operation: str,
        kind: str,
        key: Any,
        success: bool,
        commands: Optional[list[str]] = None,
        output: str = "",
        error: Optional[str] = None,
        dry_run: bool = False,
        before_state: Optional[dict] = None,
        after_state: Optional[dict] = None,
    ) -> ChangeRecord:
        """Log one reconcile cycle.

        Args:
            operation: apply, plan or delete
            kind: Entity kind, e.g. "vlan"
            key: Entity key (tuples are stored as lists)
            success: Whether the cycle completed
            commands: Command batch sent, or planned for dry runs
            output: Device output (truncated)
            error: Error message if failed
            dry_run: Whether this was a dry run
            before_state: Entity state before the cycle
            after_state: Entity state after the cycle

        Returns:
            The ChangeRecord that was logged
        """
        record = ChangeRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            device_id=self.device_id,
            operation=operation,
            kind=kind,
            key=list(key) if isinstance(key, tuple) else key,
            user=self.user,
            dry_run=dry_run,
            success=success,
            commands=list(commands or []),
            before_state=before_state,
            after_state=after_state,
            output=output[:1000] if output else "",  # Truncate long output
            error=error,
        )

        audit_logger.info(record.to_json())

        return record


def get_recent_changes(
    log_file: Optional[str] = None,
    device_id: Optional[str] = None,
    kind: Optional[str] = None,
    limit: int = 100,
) -> list[ChangeRecord]:
    """Read recent changes from audit log.

    Args:
        log_file: Path to audit log. Defaults to the configured audit file
        device_id: Filter by device ID
        kind: Filter by entity kind
        limit: Maximum number of records to return

    Returns:
        List of ChangeRecords, most recent first
    """
    if log_file is None:
        log_file = get_audit_file()

    if not os.path.exists(log_file):
        return []

    records = []
    with open(log_file, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = ChangeRecord.from_json(line)
            except (json.JSONDecodeError, TypeError):
                continue  # Skip malformed lines

            if device_id and record.device_id != device_id:
                continue
            if kind and record.kind != kind:
                continue

            records.append(record)

    return list(reversed(records[-limit:]))
