"""Error types raised by the reconciliation engine.

Every error is terminal for the reconcile cycle that raised it. Nothing in
the engine retries or swallows these; callers decide what to do next.
"""
from typing import Optional


class ReconcileError(Exception):
    """Base class for all reconcile cycle failures."""
    pass


class TransportError(ReconcileError):
    """Reading from or configuring the device failed at the session layer."""

    def __init__(self, message: str, output: Optional[str] = None):
        super().__init__(message)
        self.output = output


class CodecError(ReconcileError):
    """Device text could not be parsed, diffed or rendered."""
    pass


class ParseError(ReconcileError):
    """Desired state input is malformed (unknown kind, missing key field)."""
    pass


class InvalidConfiguration(ReconcileError):
    """Desired state violates a structural invariant.

    Raised before any configuration command reaches the device.
    """
    pass


class InvalidAddress(InvalidConfiguration):
    """A CIDR, netmask or wildcard string is not valid IPv4."""
    pass
