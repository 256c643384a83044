"""MCP Server for declarative Cisco IOS configuration.

Reconciles VLANs, static routes, EIGRP processes and interfaces against
the running-config of IOS devices reached over SSH.

Tools exposed:
- list_devices: List all configured devices
- device_status: Get health/status of a device
- show_command: Run a show command, optionally TextFSM-parsed
- apply_entity: Create or update one entity (dry_run to preview)
- plan_entity: Show the commands apply_entity would send
- read_entity: Current state of one entity
- list_entities: Current state of every entity of a kind
- delete_entity: Remove one entity
- save_config: Save running config to startup config
- get_audit_log: Recent reconcile cycles from the audit log
"""
import asyncio
import json
import logging
from typing import Any, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    TextContent,
    Tool,
    Resource,
)
from pydantic import AnyUrl

from .config.inventory import DeviceInventory
from .config_engine import ConfigEngine, EntityKind, to_dict
from .devices.show import parse_show
from .errors import ReconcileError
from .utils.logging_config import setup_logging, timed_section
from .utils.audit_log import setup_audit_logging, get_recent_changes

logger = logging.getLogger(__name__)

# Global inventory and engine (initialized on first use)
inventory: Optional[DeviceInventory] = None
engine: Optional[ConfigEngine] = None

KIND_NAMES = [k.value for k in EntityKind]


def get_inventory() -> DeviceInventory:
    """Get or create the device inventory."""
    global inventory
    if inventory is None:
        inventory = DeviceInventory()
    return inventory


def get_engine() -> ConfigEngine:
    """Get or create the config engine."""
    global engine
    if engine is None:
        engine = ConfigEngine(get_inventory())
    return engine


def _text(payload: dict) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(payload, indent=2))]


# Create MCP server
server = Server("iosforge")


# === TOOLS ===

DEVICE_ID = {"type": "string", "description": "Device ID from devices.yaml"}
KIND = {
    "type": "string",
    "enum": KIND_NAMES,
    "description": "Entity kind",
}
KEY = {
    "description": (
        "Entity key: VLAN id, EIGRP AS number, interface name, "
        "or [prefix, mask] for a static route"
    ),
}


@server.list_tools()
async def list_tools() -> list[Tool]:
    """List all available tools."""
    return [
        Tool(
            name="list_devices",
            description="List all configured IOS devices with their connection info",
            inputSchema={
                "type": "object",
                "properties": {},
                "required": []
            }
        ),
        Tool(
            name="device_status",
            description="Get health and version information for a device",
            inputSchema={
                "type": "object",
                "properties": {"device_id": DEVICE_ID},
                "required": ["device_id"]
            }
        ),
        Tool(
            name="show_command",
            description=(
                "Run a show command. With parse=true the output is parsed with "
                "ntc-templates (cisco_ios)."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "device_id": DEVICE_ID,
                    "command": {
                        "type": "string",
                        "description": "Show command, e.g. 'show vlan'"
                    },
                    "parse": {
                        "type": "boolean",
                        "description": "Return TextFSM-parsed records",
                        "default": False
                    }
                },
                "required": ["device_id", "command"]
            }
        ),
        Tool(
            name="apply_entity",
            description=(
                "Reconcile one entity to the desired state. Omitted fields keep "
                "their device value, null clears them. Use dry_run=true to preview."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "device_id": DEVICE_ID,
                    "kind": KIND,
                    "config": {
                        "type": "object",
                        "description": (
                            "Entity fields. vlan: id, name. static_route: prefix, "
                            "mask, next_hop. eigrp: asn, networks (CIDR). "
                            "ethernet_interface: name, description, shutdown, ips "
                            "(CIDR), helper_addresses. switch_interface: name, "
                            "description, shutdown, one of access {vlan} / trunk "
                            "{encapsulation, allowed_vlans} / routed, spanning_tree "
                            "{portfast, bpdu_guard}. Omitted allowed_vlans allows every VLAN, "
                            "[] allows none"
                        )
                    },
                    "dry_run": {
                        "type": "boolean",
                        "description": "Preview commands without applying",
                        "default": False
                    }
                },
                "required": ["device_id", "kind", "config"]
            }
        ),
        Tool(
            name="plan_entity",
            description="Show the command batch apply_entity would send, without sending it",
            inputSchema={
                "type": "object",
                "properties": {
                    "device_id": DEVICE_ID,
                    "kind": KIND,
                    "config": {"type": "object", "description": "Entity fields"}
                },
                "required": ["device_id", "kind", "config"]
            }
        ),
        Tool(
            name="read_entity",
            description="Get the current state of one entity",
            inputSchema={
                "type": "object",
                "properties": {"device_id": DEVICE_ID, "kind": KIND, "key": KEY},
                "required": ["device_id", "kind", "key"]
            }
        ),
        Tool(
            name="list_entities",
            description="Get the current state of every entity of a kind",
            inputSchema={
                "type": "object",
                "properties": {"device_id": DEVICE_ID, "kind": KIND},
                "required": ["device_id", "kind"]
            }
        ),
        Tool(
            name="delete_entity",
            description=(
                "Remove one entity (no vlan / no ip route / no router eigrp / "
                "default interface). The result is not verified."
            ),
            inputSchema={
                "type": "object",
                "properties": {"device_id": DEVICE_ID, "kind": KIND, "key": KEY},
                "required": ["device_id", "kind", "key"]
            }
        ),
        Tool(
            name="save_config",
            description="Save running config to startup config (write memory)",
            inputSchema={
                "type": "object",
                "properties": {"device_id": DEVICE_ID},
                "required": ["device_id"]
            }
        ),
        Tool(
            name="get_audit_log",
            description="Get recent reconcile cycles from the audit log",
            inputSchema={
                "type": "object",
                "properties": {
                    "device_id": {
                        "type": "string",
                        "description": "Filter by device ID"
                    },
                    "kind": {
                        "type": "string",
                        "description": "Filter by entity kind"
                    },
                    "limit": {
                        "type": "integer",
                        "description": "Maximum number of records",
                        "default": 20
                    }
                },
                "required": []
            }
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    """Handle tool calls."""
    device_id = arguments.get("device_id", "N/A")

    async with timed_section(f"tool:{name}", device_id=device_id):
        try:
            inv = get_inventory()

            if name == "list_devices":
                return await handle_list_devices(inv)

            elif name == "device_status":
                return await handle_device_status(inv, arguments["device_id"])

            elif name == "show_command":
                return await handle_show_command(
                    inv,
                    arguments["device_id"],
                    arguments["command"],
                    arguments.get("parse", False)
                )

            elif name == "apply_entity":
                return await handle_apply_entity(
                    get_engine(),
                    arguments["device_id"],
                    arguments["kind"],
                    arguments["config"],
                    arguments.get("dry_run", False)
                )

            elif name == "plan_entity":
                return await handle_apply_entity(
                    get_engine(),
                    arguments["device_id"],
                    arguments["kind"],
                    arguments["config"],
                    True
                )

            elif name == "read_entity":
                return await handle_read_entity(
                    get_engine(), arguments["device_id"], arguments["kind"], arguments["key"]
                )

            elif name == "list_entities":
                return await handle_list_entities(
                    get_engine(), arguments["device_id"], arguments["kind"]
                )

            elif name == "delete_entity":
                return await handle_delete_entity(
                    get_engine(), arguments["device_id"], arguments["kind"], arguments["key"]
                )

            elif name == "save_config":
                return await handle_save_config(inv, arguments["device_id"])

            elif name == "get_audit_log":
                return await handle_get_audit_log(
                    arguments.get("device_id"),
                    arguments.get("kind"),
                    arguments.get("limit", 20)
                )

            else:
                return [TextContent(type="text", text=f"Unknown tool: {name}")]

        except ReconcileError as e:
            logger.warning(f"Tool {name} failed: {e}")
            return _text(error_payload(e))

        except Exception as e:
            logger.exception(f"Tool {name} failed")
            return [TextContent(type="text", text=f"Error: {str(e)}")]


def error_payload(error: ReconcileError) -> dict:
    """JSON body for a reconcile failure."""
    payload: dict[str, Any] = {
        "success": False,
        "error": str(error),
        "error_type": type(error).__name__,
    }
    output = getattr(error, "output", None)
    if output:
        payload["device_output"] = output
    return payload


# === TOOL HANDLERS ===

async def handle_list_devices(inv: DeviceInventory) -> list[TextContent]:
    """List all configured devices."""
    devices = []
    for device_id in inv.get_device_ids():
        config = inv.get_device_config(device_id)
        devices.append({
            "id": device_id,
            "name": config.get("name", device_id),
            "type": config.get("type"),
            "host": config.get("host"),
            "port": config.get("port", 22),
        })

    return _text({"devices": devices})


async def handle_device_status(inv: DeviceInventory, device_id: str) -> list[TextContent]:
    """Get device health status."""
    device = inv.get_device(device_id)

    async with device:
        status = await device.check_health()

    return _text({
        "device_id": device_id,
        "reachable": status.reachable,
        "hostname": status.hostname,
        "uptime": status.uptime,
        "version": status.software_version,
        "model": status.model,
        "error": status.error,
    })


async def handle_show_command(
    inv: DeviceInventory,
    device_id: str,
    command: str,
    parse: bool
) -> list[TextContent]:
    """Run a show command, optionally parsed."""
    if not command.strip().lower().startswith(("show ", "sh ")):
        return _text({
            "success": False,
            "error": "Only show commands are allowed",
            "command": command,
        })

    device = inv.get_device(device_id)

    async with device:
        success, output = await device.execute(command)

    response: dict[str, Any] = {
        "device_id": device_id,
        "command": command,
        "success": success,
    }
    if parse and success:
        response["records"] = parse_show(command, output)
    else:
        response["output"] = output

    return _text(response)


async def handle_apply_entity(
    eng: ConfigEngine,
    device_id: str,
    kind: str,
    config: dict,
    dry_run: bool
) -> list[TextContent]:
    """
    Reconcile one entity.

    Returns the command batch and the state read back from the device.
    With dry_run the batch is computed but not sent.
    """
    result = await eng.apply(device_id, kind, config, dry_run=dry_run)

    response = {"success": True, "device_id": device_id}
    response.update(result.to_dict())
    if not result.dry_run and not result.exists:
        response["message"] = "Resource no longer exists on the device"

    return _text(response)


async def handle_read_entity(
    eng: ConfigEngine,
    device_id: str,
    kind: str,
    key: Any
) -> list[TextContent]:
    """Read one entity."""
    state = await eng.read(device_id, kind, key)

    return _text({
        "device_id": device_id,
        "kind": kind,
        "key": key,
        "exists": state is not None,
        "state": to_dict(state),
    })


async def handle_list_entities(
    eng: ConfigEngine,
    device_id: str,
    kind: str
) -> list[TextContent]:
    """List every entity of a kind."""
    states = await eng.list(device_id, kind)

    return _text({
        "device_id": device_id,
        "kind": kind,
        "count": len(states),
        "entities": [to_dict(s) for s in states],
    })


async def handle_delete_entity(
    eng: ConfigEngine,
    device_id: str,
    kind: str,
    key: Any
) -> list[TextContent]:
    """Delete one entity."""
    commands = await eng.delete(device_id, kind, key)

    return _text({
        "success": True,
        "device_id": device_id,
        "kind": kind,
        "key": key,
        "commands": commands,
    })


async def handle_save_config(inv: DeviceInventory, device_id: str) -> list[TextContent]:
    """Save device configuration."""
    device = inv.get_device(device_id)

    async with device:
        success, output = await device.save_config()

    return _text({
        "device_id": device_id,
        "action": "save_config",
        "success": success,
        "output": output,
    })


async def handle_get_audit_log(
    device_id: Optional[str] = None,
    kind: Optional[str] = None,
    limit: int = 20
) -> list[TextContent]:
    """Get recent reconcile cycles from the audit log."""
    records = get_recent_changes(device_id=device_id, kind=kind, limit=limit)

    formatted_records = []
    for r in records:
        formatted_records.append({
            "timestamp": r.timestamp,
            "device_id": r.device_id,
            "operation": r.operation,
            "kind": r.kind,
            "key": r.key,
            "dry_run": r.dry_run,
            "success": r.success,
            "commands": r.commands,
            "error": r.error,
        })

    return _text({
        "total_records": len(formatted_records),
        "filters": {
            "device_id": device_id,
            "kind": kind,
            "limit": limit,
        },
        "records": formatted_records,
    })


# === RESOURCES ===

@server.list_resources()
async def list_resources() -> list[Resource]:
    """List available resources."""
    inv = get_inventory()
    resources = []

    for device_id in inv.get_device_ids():
        config = inv.get_device_config(device_id)
        resources.append(Resource(
            uri=AnyUrl(f"ios://{device_id}/running-config"),
            name=f"{config.get('name', device_id)} running-config",
            description=f"Running configuration of {device_id}",
            mimeType="text/plain",
        ))

    return resources


@server.read_resource()
async def read_resource(uri: AnyUrl) -> str:
    """Read a resource."""
    # ios://device_id/running-config
    uri_str = str(uri)
    if uri_str.startswith("ios://"):
        parts = uri_str[len("ios://"):].split("/")
        if len(parts) >= 2 and parts[1] == "running-config":
            device = get_inventory().get_device(parts[0])
            async with device:
                return await device.get_running_config()

    return json.dumps({"error": f"Unknown resource: {uri}"})


def main():
    """Run the MCP server."""
    setup_logging()
    setup_audit_logging()

    async def run():
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options()
            )

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass
    finally:
        if inventory:
            asyncio.run(inventory.close_all())


if __name__ == "__main__":
    main()
