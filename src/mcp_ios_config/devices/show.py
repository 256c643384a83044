"""Structured show-command output via ntc-templates (TextFSM)."""
import logging

from ntc_templates.parse import parse_output

from ..errors import CodecError, TransportError
from .base import NetworkDevice

logger = logging.getLogger(__name__)

PLATFORM = "cisco_ios"


def parse_show(command: str, output: str) -> list[dict]:
    """
    Parse show-command output with the matching ntc-templates template.

    Args:
        command: The show command that produced the output, e.g. "show vlan"
        output: Raw device output

    Returns:
        One dict per record, keys lower-cased as ntc-templates returns them

    Raises:
        CodecError: If no template exists or the output does not match it
    """
    try:
        return parse_output(platform=PLATFORM, command=command, data=output)
    except Exception as e:
        raise CodecError(f"Cannot parse '{command}' output: {e}") from e


async def run_show(device: NetworkDevice, command: str) -> list[dict]:
    """Run a show command and return its parsed records."""
    success, output = await device.execute(command)
    if not success:
        raise TransportError(f"'{command}' failed on {device.device_id}", output=output)

    rows = parse_show(command, output)
    logger.debug(f"Parsed {len(rows)} records from '{command}' on {device.device_id}")
    return rows
