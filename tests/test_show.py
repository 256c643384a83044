"""Tests for TextFSM-parsed show commands."""
import pytest

from mcp_ios_config.devices import show
from mcp_ios_config.devices.show import parse_show, run_show
from mcp_ios_config.errors import CodecError, TransportError

from conftest import FakeDevice


class TestParseShow:
    """Tests for parse_show."""

    def test_delegates_to_ntc_templates(self, monkeypatch):
        """The cisco_ios platform and command are passed through."""
        seen = {}

        def fake_parse_output(platform, command, data):
            seen.update(platform=platform, command=command, data=data)
            return [{"vlan_id": "10", "vlan_name": "Engineering"}]

        monkeypatch.setattr(show, "parse_output", fake_parse_output)

        rows = parse_show("show vlan", "raw output")

        assert rows == [{"vlan_id": "10", "vlan_name": "Engineering"}]
        assert seen == {"platform": "cisco_ios", "command": "show vlan", "data": "raw output"}

    def test_template_failure(self, monkeypatch):
        """Template errors become CodecError."""
        def fake_parse_output(platform, command, data):
            raise ValueError("no template")

        monkeypatch.setattr(show, "parse_output", fake_parse_output)

        with pytest.raises(CodecError) as exc_info:
            parse_show("show nothing", "")
        assert isinstance(exc_info.value.__cause__, ValueError)


class TestRunShow:
    """Tests for run_show."""

    @pytest.mark.asyncio
    async def test_parsed_rows(self, monkeypatch):
        """Output is fetched from the device and parsed."""
        device = FakeDevice()
        device.show_output["show vlan"] = "VLAN Name\n10   Engineering"
        monkeypatch.setattr(
            show, "parse_output",
            lambda platform, command, data: [{"raw": data}],
        )

        rows = await run_show(device, "show vlan")

        assert rows == [{"raw": "VLAN Name\n10   Engineering"}]
        assert device.calls == [("execute", "show vlan")]

    @pytest.mark.asyncio
    async def test_failed_command(self):
        """A rejected show command is a transport error."""
        device = FakeDevice()

        async def rejected(command):
            return False, "% Invalid input detected at '^' marker."

        device.execute = rejected

        with pytest.raises(TransportError) as exc_info:
            await run_show(device, "show vlna")
        assert "Invalid input" in exc_info.value.output
