"""Utility modules for addressing, retries, logging and auditing."""
from .addressing import (
    cidr_to_mask,
    mask_to_cidr,
    mask_to_wildcard,
    wildcard_to_mask,
    wildcard_to_cidr,
    split_cidr,
    join_cidr,
)
from .connection import with_retry
from .logging_config import (
    setup_logging,
    timed,
    timed_section,
    perf_logger,
)

__all__ = [
    "cidr_to_mask",
    "mask_to_cidr",
    "mask_to_wildcard",
    "wildcard_to_mask",
    "wildcard_to_cidr",
    "split_cidr",
    "join_cidr",
    "with_retry",
    "setup_logging",
    "timed",
    "timed_section",
    "perf_logger",
]
