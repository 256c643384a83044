"""Cisco IOS / IOS-XE device handler via SSH CLI.

Technical details:
- SSH via paramiko, interactive shell via invoke_shell()
- ``terminal length 0`` after login, so no --More-- paging
- ``enable`` when the login lands in user EXEC (``>`` prompt)
- Config batches are wrapped in ``configure terminal`` / ``end``

Command Reference:
- show running-config    : Full running configuration
- show vlan              : VLAN database (TextFSM parsed)
- show version           : Software version, uptime, model
- write memory           : Save config
"""
import asyncio
import logging
import re
import time
from typing import Optional

import paramiko

from .base import NetworkDevice, DeviceConfig, DeviceStatus
from .show import parse_show
from ..errors import CodecError
from ..utils.connection import with_retry
from ..utils.logging_config import timed, perf_logger

logger = logging.getLogger(__name__)

# Router>, Switch#, Switch(config-if)#
PROMPT_PATTERN = re.compile(r"^[\w.\-/:]+(\([\w.\-/]+\))?[#>]$")
MORE_PATTERN = re.compile(r"\s*--More--\s*")
ANSI_PATTERN = re.compile(r"\x1b\[[0-9;?]*[a-zA-Z]")


class IOSSSH:
    """Low-level SSH shell for IOS devices."""

    def __init__(self, host: str, port: int, username: str, password: str, timeout: float = 30):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.timeout = timeout
        self._client: Optional[paramiko.SSHClient] = None
        self._shell: Optional[paramiko.Channel] = None
        self.prompt = ""

    async def connect(self) -> None:
        """Establish SSH connection with interactive shell."""
        loop = asyncio.get_event_loop()

        def _connect():
            client = paramiko.SSHClient()
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
            client.connect(
                self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                timeout=self.timeout,
                allow_agent=False,
                look_for_keys=False,
            )
            return client

        self._client = await loop.run_in_executor(None, _connect)

        def _get_shell():
            shell = self._client.invoke_shell(width=511)
            shell.settimeout(self.timeout)
            return shell

        self._shell = await loop.run_in_executor(None, _get_shell)

        # Banner / MOTD, then the first prompt
        await self._send_raw("\n")
        await self._read_until_prompt(timeout=10)

    async def close(self) -> None:
        """Close SSH connection."""
        if self._shell:
            try:
                self._shell.close()
            except Exception as e:
                logger.debug(f"Error closing shell: {e}")
            self._shell = None
        if self._client:
            try:
                self._client.close()
            except Exception as e:
                logger.debug(f"Error closing client: {e}")
            self._client = None

    async def _read_available(self, timeout: float = 1) -> str:
        """Read available data from shell."""
        if not self._shell:
            raise ConnectionError("Not connected")

        loop = asyncio.get_event_loop()

        def _recv():
            if self._shell.recv_ready():
                data = self._shell.recv(65535)
                return ANSI_PATTERN.sub("", data.decode("utf-8", errors="ignore"))
            return ""

        return await asyncio.wait_for(
            loop.run_in_executor(None, _recv),
            timeout=timeout
        )

    async def _read_until_prompt(self, timeout: float = 30, pattern: re.Pattern = PROMPT_PATTERN) -> str:
        """Read until the prompt (or ``pattern``) shows up.

        Raises:
            TimeoutError: If the prompt never appeared; the output read so
                far is incomplete and must not be trusted
        """
        output = ""
        start_time = asyncio.get_event_loop().time()

        while True:
            elapsed = asyncio.get_event_loop().time() - start_time
            if elapsed > timeout:
                logger.debug(f"Prompt timeout after {elapsed:.1f}s on {self.host}")
                raise TimeoutError(
                    f"No prompt from {self.host} after {elapsed:.1f}s "
                    f"({len(output)} bytes read)"
                )

            try:
                chunk = await self._read_available(timeout=min(2, timeout - elapsed))
            except asyncio.TimeoutError:
                await asyncio.sleep(0.1)
                continue

            if not chunk:
                await asyncio.sleep(0.1)
                continue

            output += chunk

            # Paging only happens before terminal length 0 took effect
            if MORE_PATTERN.search(output):
                await self._send_raw(" ")
                output = MORE_PATTERN.sub("\n", output)
                continue

            last_line = output.rstrip("\r\n").split("\n")[-1].strip()
            if pattern.search(last_line):
                if pattern is PROMPT_PATTERN:
                    self.prompt = last_line
                break

        return output

    async def _send_raw(self, data: str) -> None:
        """Send raw string to shell."""
        if not self._shell:
            raise ConnectionError("Not connected")
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, self._shell.send, data)

    async def send_command(self, command: str, timeout: float = 30) -> str:
        """Send a command and return the output."""
        await self._send_raw(f"{command}\n")
        output = await self._read_until_prompt(timeout=timeout)

        # Drop the command echo and the trailing prompt
        lines = output.replace("\r", "").split("\n")
        if lines and command in lines[0]:
            lines = lines[1:]
        if lines and PROMPT_PATTERN.search(lines[-1].strip()):
            lines = lines[:-1]

        return "\n".join(lines).strip()

    async def enable(self, secret: str) -> bool:
        """Enter privileged EXEC mode."""
        await self._send_raw("enable\n")
        output = await self._read_until_prompt(
            timeout=10, pattern=re.compile(r"([Pp]assword:\s*$)|([#>]\s*$)")
        )

        if "assword" in output:
            logger.debug("Enable password prompt detected, sending secret")
            await self._send_raw(f"{secret}\n")
            output = await self._read_until_prompt(timeout=10)

        if self.prompt.endswith("#") or output.rstrip().endswith("#"):
            logger.info(f"Enable mode successful on {self.host}")
            return True

        logger.warning(f"Enable mode failed on {self.host}, output: {output!r}")
        return False


class IOSDevice(NetworkDevice):
    """Cisco IOS device handler via SSH CLI."""

    def __init__(self, device_id: str, config: DeviceConfig):
        super().__init__(device_id, config)
        self._ssh: Optional[IOSSSH] = None

    # Error markers IOS prints under a rejected command
    ERROR_PATTERNS = [
        r"^% Invalid input",
        r"^% Incomplete command",
        r"^% Ambiguous command",
        r"^% Unknown command",
        r"^% Bad mask",
        r"^% Inconsistent address and mask",
        r"^% Invalid",
    ]

    def _has_error(self, output: str) -> Optional[str]:
        """Return the first error line in the output, if any."""
        for line in output.split("\n"):
            line_stripped = line.strip()
            if not line_stripped:
                continue
            for pattern in self.ERROR_PATTERNS:
                if re.search(pattern, line_stripped, re.IGNORECASE):
                    return line_stripped
        return None

    @with_retry(max_attempts=3, min_wait=2, max_wait=10)
    @timed("connect")
    async def connect(self) -> bool:
        """Connect to the IOS device via SSH."""
        logger.info(f"Connecting to IOS {self.device_id} at {self.host}")

        self._ssh = IOSSSH(
            self.host,
            self.config.port,
            self.config.username,
            self.config.get_password(),
            timeout=self.config.timeout
        )
        await self._ssh.connect()

        if self._ssh.prompt.endswith(">") or self.config.enable_password_required:
            if not await self._ssh.enable(self.config.get_enable_secret()):
                await self._ssh.close()
                raise ConnectionError(f"Failed to enter enable mode on {self.device_id}")

        await self._ssh.send_command("terminal length 0", timeout=5)
        await self._ssh.send_command("terminal width 511", timeout=5)

        self._connected = True
        logger.info(f"Connected to {self.device_id}")
        return True

    async def disconnect(self) -> None:
        """Disconnect from the device."""
        if self._ssh:
            await self._ssh.close()
            self._ssh = None
        self._connected = False
        logger.info(f"Disconnected from {self.device_id}")

    async def check_health(self) -> DeviceStatus:
        """Check device health."""
        try:
            if not self._connected:
                await self.connect()

            success, output = await self.execute("show version")
            if not success:
                return DeviceStatus(reachable=True, error=output)

            status = DeviceStatus(reachable=True)
            try:
                rows = parse_show("show version", output)
            except CodecError as e:
                logger.debug(f"Could not parse show version on {self.device_id}: {e}")
                rows = []

            if rows:
                row = rows[0]
                status.hostname = row.get("hostname") or None
                status.uptime = row.get("uptime") or None
                status.software_version = row.get("version") or None
                hardware = row.get("hardware") or []
                status.model = hardware[0] if hardware else None
            return status
        except Exception as e:
            return DeviceStatus(reachable=False, error=str(e))

    async def execute(self, command: str) -> tuple[bool, str]:
        """Execute a command on the device. Never retried."""
        if not self._ssh:
            raise ConnectionError("Not connected")

        start = time.perf_counter()
        try:
            output = await self._ssh.send_command(command, timeout=self.config.timeout)
            elapsed = (time.perf_counter() - start) * 1000

            error = self._has_error(output)
            if error:
                perf_logger.debug(
                    f"{'execute':20s} | {self.device_id:15s} | {elapsed:8.2f}ms | "
                    f"FAIL | cmd={command[:50]}"
                )
                return False, output

            perf_logger.debug(
                f"{'execute':20s} | {self.device_id:15s} | {elapsed:8.2f}ms | "
                f"OK | cmd={command[:50]}"
            )
            return True, output
        except Exception as e:
            elapsed = (time.perf_counter() - start) * 1000
            perf_logger.warning(
                f"{'execute':20s} | {self.device_id:15s} | {elapsed:8.2f}ms | "
                f"ERROR | cmd={command[:50]} | {e}"
            )
            logger.error(f"Command failed on {self.device_id}: {e}")
            self._connected = False
            raise

    async def execute_config_mode(self, commands: list[str]) -> tuple[bool, str]:
        """Execute commands in config mode, stopping at the first error."""
        success, output = await self.execute("configure terminal")
        if not success:
            return False, f"Failed to enter config mode: {output}"

        results = [output]
        overall_success = True

        for cmd in commands:
            success, cmd_output = await self.execute(cmd)
            results.append(f"{cmd}: {cmd_output}" if cmd_output else cmd)
            if not success:
                logger.warning(f"Command rejected on {self.device_id}: {cmd}")
                overall_success = False
                break

        await self.execute("end")

        return overall_success, "\n".join(results)

    async def get_running_config(self) -> str:
        """Get running configuration."""
        success, output = await self.execute("show running-config")
        return output if success else ""

    async def save_config(self) -> tuple[bool, str]:
        """Save running config to startup config."""
        return await self.execute("write memory")
