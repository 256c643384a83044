"""Retry logic for SSH session setup.

Only session establishment is retried. Commands and configuration
batches are never replayed: a configuration command that may or may not
have reached the device must not be sent twice.
"""
import logging
from typing import Callable

import paramiko
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception,
    before_sleep_log,
)

logger = logging.getLogger(__name__)


# Common network exceptions to retry on
RETRYABLE_EXCEPTIONS = (
    ConnectionRefusedError,
    ConnectionResetError,
    TimeoutError,
    OSError,
    EOFError,
    paramiko.SSHException,
)

# Wrong credentials will not get better by trying again
NON_RETRYABLE_EXCEPTIONS = (
    paramiko.AuthenticationException,
)


def is_retryable(
    exc: BaseException,
    exceptions: tuple = RETRYABLE_EXCEPTIONS,
    excluded: tuple = NON_RETRYABLE_EXCEPTIONS,
) -> bool:
    """True if a failed connection attempt is worth repeating."""
    return isinstance(exc, exceptions) and not isinstance(exc, excluded)


def with_retry(
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
    exceptions: tuple = RETRYABLE_EXCEPTIONS,
) -> Callable:
    """Decorator factory for retrying session setup with exponential backoff.

    tenacity picks the async or sync retry loop from the decorated callable.
    The last exception is re-raised once attempts run out.

    Args:
        max_attempts: Maximum number of attempts
        min_wait: Minimum wait time between retries (seconds)
        max_wait: Maximum wait time between retries (seconds)
        exceptions: Tuple of exception types to retry on
    """
    def should_retry(exc: BaseException) -> bool:
        return is_retryable(exc, exceptions)

    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception(should_retry),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
