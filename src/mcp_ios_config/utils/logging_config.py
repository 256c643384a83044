"""Logging configuration for the iosforge MCP server.

Provides configurable logging with:
- File-based logging with rotation
- Console output for real-time debugging
- Performance timing for connect, command and reconcile latency

Environment Variables:
    IOSFORGE_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    IOSFORGE_LOG_FILE: Path to log file (default: ~/.iosforge/iosforge.log)
    IOSFORGE_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    IOSFORGE_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from mcp_ios_config.utils.logging_config import setup_logging, timed

    setup_logging()  # Call once at startup

    @timed("connect")
    async def connect(self):
        ...

    async with timed_section("apply_entity", device_id="core-sw1", kind="vlan"):
        ...
"""
import asyncio
import functools
import logging
import os
import sys
import time
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Callable, Any

# Performance logger - separate from main logger for easy filtering
perf_logger = logging.getLogger("iosforge.perf")

PACKAGE_LOGGER = "mcp_ios_config"


def get_log_level() -> int:
    """Get log level from environment."""
    level_str = os.environ.get("IOSFORGE_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file() -> Path:
    """Get log file path from environment."""
    default_path = Path.home() / ".iosforge" / "iosforge.log"
    path_str = os.environ.get("IOSFORGE_LOG_FILE", str(default_path))
    return Path(path_str)


def _rotating_handler(path: Path, formatter: logging.Formatter) -> RotatingFileHandler:
    max_size_mb = int(os.environ.get("IOSFORGE_LOG_MAX_SIZE", "10"))
    backup_count = int(os.environ.get("IOSFORGE_LOG_BACKUPS", "5"))

    handler = RotatingFileHandler(
        path,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    return handler


def setup_logging() -> None:
    """Configure logging for the application.

    Sets up:
    - Console handler on stderr (stdout carries the MCP stdio protocol)
    - File handler with rotation (DEBUG level - captures everything)
    - Performance logger writing to its own file
    """
    log_level = get_log_level()
    log_file = get_log_file()

    log_file.parent.mkdir(parents=True, exist_ok=True)

    main_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(name)-32s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    perf_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | PERF | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(main_format)

    file_handler = _rotating_handler(log_file, main_format)

    perf_log_file = log_file.parent / "iosforge-perf.log"
    perf_handler = _rotating_handler(perf_log_file, perf_format)

    for name in ("iosforge", PACKAGE_LOGGER):
        logger = logging.getLogger(name)
        logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
        logger.addHandler(console_handler)
        logger.addHandler(file_handler)

    # iosforge.perf would otherwise also reach the main file via propagation
    perf_logger.propagate = False
    perf_logger.setLevel(logging.DEBUG)
    perf_logger.addHandler(perf_handler)
    perf_logger.addHandler(console_handler)

    logging.getLogger("iosforge").info(
        f"Logging initialized: level={logging.getLevelName(log_level)}, file={log_file}"
    )
    perf_logger.info(f"Performance logging to: {perf_log_file}")


def _log_timing(
    operation: str,
    device_id: Optional[str],
    start: float,
    error: Optional[BaseException] = None,
    extra: str = "",
) -> None:
    """Emit one perf line: operation | device | latency | outcome."""
    elapsed = (time.perf_counter() - start) * 1000
    status = "OK" if error is None else f"FAIL: {error}"
    msg = f"{operation:20s} | {device_id or 'N/A':15s} | {elapsed:8.2f}ms | {status}"
    if extra:
        msg += f" | {extra}"

    if error is None:
        perf_logger.info(msg)
    else:
        perf_logger.warning(msg)


def timed(operation: str, device_id: Optional[str] = None):
    """Decorator to log execution time of sync/async functions.

    The device id falls back to ``self.device_id`` on methods.
    """
    def decorator(func: Callable) -> Callable:
        def resolve_device(args) -> Optional[str]:
            if device_id is None and args and hasattr(args[0], "device_id"):
                return args[0].device_id
            return device_id

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                _log_timing(operation, resolve_device(args), start, error=e)
                raise
            _log_timing(operation, resolve_device(args), start)
            return result

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs) -> Any:
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _log_timing(operation, resolve_device(args), start, error=e)
                raise
            _log_timing(operation, resolve_device(args), start)
            return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


@asynccontextmanager
async def timed_section(operation: str, device_id: Optional[str] = None, **extra):
    """Async context manager for timing code sections.

    Usage:
        async with timed_section("apply_entity", device_id="core-sw1", kind="vlan"):
            await engine.apply(...)
    """
    start = time.perf_counter()
    extra_str = " | ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""

    try:
        yield
    except Exception as e:
        _log_timing(operation, device_id, start, error=e, extra=extra_str)
        raise
    _log_timing(operation, device_id, start, extra=extra_str)
