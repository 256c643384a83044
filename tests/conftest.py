"""Shared fixtures: an in-memory IOS device and a matching inventory."""
import pytest

from mcp_ios_config.codec import (
    Eigrp,
    EigrpNetwork,
    Interface,
    IpAddress,
    Route,
    RunningConfig,
    Vlan,
    format_vlan_list,
    parse_vlan_list,
    unmarshal,
)
from mcp_ios_config.devices.base import DeviceConfig, DeviceStatus, NetworkDevice
from mcp_ios_config.utils.addressing import classful_wildcard


RUNNING_CONFIG = """\
Building configuration...

Current configuration : 2143 bytes
!
version 15.2
hostname core-sw1
!
vlan 10
 name Engineering
!
vlan 20
 name Voice
!
interface GigabitEthernet0/1
 description uplink
 switchport trunk encapsulation dot1q
 switchport mode trunk
 switchport trunk allowed vlan 10,20-22
 spanning-tree bpduguard enable
!
interface GigabitEthernet0/2
 switchport access vlan 10
 switchport mode access
 spanning-tree portfast
!
interface GigabitEthernet0/3
 no switchport
 ip address 10.0.0.1 255.255.255.0
 ip address 10.0.1.1 255.255.255.0 secondary
 ip helper-address 192.0.2.50
 shutdown
!
interface Vlan1
 no ip address
 shutdown
!
router eigrp 100
 network 10.0.0.0 0.0.0.255
 network 192.168.1.0
!
ip route 0.0.0.0 0.0.0.0 192.0.2.1
ip route 172.16.0.0 255.255.0.0 10.0.0.254
!
line vty 0 4
 login local
!
end
"""


class FakeDevice(NetworkDevice):
    """NetworkDevice that serves a running-config from memory.

    Every execute and configuration batch is recorded in ``calls``.
    ``after_configure`` replaces the running-config once a batch succeeds.
    """

    def __init__(self, running_config: str = RUNNING_CONFIG, device_id: str = "core-sw1"):
        super().__init__(
            device_id,
            DeviceConfig(type="ios", name=device_id, host="192.0.2.10"),
        )
        self.running_config = running_config
        self.after_configure = None
        self.calls: list[tuple[str, object]] = []
        self.show_output: dict[str, str] = {}
        self.read_fails = False
        self.read_raises = None
        self.configure_fails = False
        self.configure_raises = None

    @property
    def config_batches(self) -> list[list[str]]:
        return [args for op, args in self.calls if op == "configure"]

    @property
    def reads(self) -> int:
        return sum(1 for op, args in self.calls if args == "show running-config")

    async def connect(self) -> bool:
        self._connected = True
        return True

    async def disconnect(self) -> None:
        self._connected = False

    async def check_health(self) -> DeviceStatus:
        return DeviceStatus(reachable=True, hostname=self.device_id)

    async def execute(self, command: str) -> tuple[bool, str]:
        self.calls.append(("execute", command))
        if command == "show running-config":
            if self.read_raises:
                raise self.read_raises
            if self.read_fails:
                return False, "% Invalid input detected at '^' marker."
            return True, self.running_config
        return True, self.show_output.get(command, "")

    async def execute_config_mode(self, commands: list[str]) -> tuple[bool, str]:
        self.calls.append(("configure", list(commands)))
        if self.configure_raises:
            raise self.configure_raises
        if self.configure_fails:
            return False, f"{commands[0]}: % Invalid input detected at '^' marker."
        if self.after_configure is not None:
            self.running_config = self.after_configure
        return True, "\n".join(commands)

    async def get_running_config(self) -> str:
        return self.running_config

    async def save_config(self) -> tuple[bool, str]:
        self.calls.append(("execute", "write memory"))
        return True, "[OK]"


def render_running_config(config: RunningConfig) -> str:
    """Print a RunningConfig the way IOS does: sorted, compressed VLAN lists."""
    lines = [f"hostname {config.hostname}", "!"]

    for vlan in config.vlans:
        lines.append(f"vlan {vlan.id}")
        if vlan.name:
            lines.append(f" name {vlan.name}")
        lines.append("!")

    for iface in config.interfaces:
        lines.append(f"interface {iface.name}")
        if iface.description:
            lines.append(f" description {iface.description}")
        if iface.switchport and iface.trunk:
            if iface.encapsulation:
                lines.append(f" switchport trunk encapsulation {iface.encapsulation}")
            if iface.trunk_allowed_none:
                lines.append(" switchport trunk allowed vlan none")
            elif iface.trunk_allowed_vlans:
                lines.append(
                    f" switchport trunk allowed vlan {format_vlan_list(iface.trunk_allowed_vlans)}"
                )
            lines.append(" switchport mode trunk")
        elif iface.switchport:
            if iface.access_vlan not in (0, 1):
                lines.append(f" switchport access vlan {iface.access_vlan}")
            lines.append(" switchport mode access")
        else:
            lines.append(" no switchport")
            for i, ip in enumerate(iface.ips):
                lines.append(f" ip address {ip.address} {ip.mask}" + (" secondary" if i else ""))
            for helper in iface.helper_addresses:
                lines.append(f" ip helper-address {helper}")
        if iface.stp_portfast == "enable":
            lines.append(" spanning-tree portfast")
        elif iface.stp_portfast:
            lines.append(f" spanning-tree portfast {iface.stp_portfast}")
        if iface.stp_bpduguard:
            lines.append(f" spanning-tree bpduguard {iface.stp_bpduguard}")
        if iface.shutdown:
            lines.append(" shutdown")
        lines.append("!")

    for process in config.eigrp_processes:
        lines.append(f"router eigrp {process.asn}")
        for n in process.networks:
            lines.append(f" network {n.network} {n.wildcard}")
        lines.append("!")

    for route in config.routes:
        lines.append(f"ip route {route.prefix} {route.mask} {route.next_hop}")

    lines.append("end")
    return "\n".join(lines) + "\n"


class SimulatedSwitch(FakeDevice):
    """FakeDevice that applies configuration batches to its running-config.

    Commands are interpreted against a parsed RunningConfig, which is then
    printed back in IOS form. Unknown commands fail the test.
    """

    def __init__(self, running_config: str = RUNNING_CONFIG):
        super().__init__(running_config)
        self.state = unmarshal(running_config)

    async def execute_config_mode(self, commands: list[str]) -> tuple[bool, str]:
        self.calls.append(("configure", list(commands)))
        context = None
        for command in commands:
            context = self._apply(context, command)
        self.running_config = render_running_config(self.state)
        return True, "\n".join(commands)

    def _interface(self, name: str) -> Interface:
        for iface in self.state.interfaces:
            if iface.name == name:
                return iface
        iface = Interface(name=name)
        self.state.interfaces.append(iface)
        return iface

    def _apply(self, context, line: str):
        tokens = line.split()
        state = self.state

        if tokens[0] == "vlan":
            vlan_id = int(tokens[1])
            for vlan in state.vlans:
                if vlan.id == vlan_id:
                    return vlan
            vlan = Vlan(id=vlan_id)
            state.vlans.append(vlan)
            return vlan

        if tokens[0] == "interface":
            return self._interface(line[len("interface"):].strip())

        if tokens[:2] == ["router", "eigrp"]:
            for process in state.eigrp_processes:
                if process.asn == int(tokens[2]):
                    return process
            process = Eigrp(asn=int(tokens[2]))
            state.eigrp_processes.append(process)
            return process

        if tokens[:2] == ["ip", "route"]:
            route = Route(prefix=tokens[2], mask=tokens[3], next_hop=tokens[4])
            if route not in state.routes:
                state.routes.append(route)
            return None

        if tokens[:3] == ["no", "ip", "route"]:
            state.routes = [
                r for r in state.routes
                if (r.prefix, r.mask) != (tokens[3], tokens[4])
                or (len(tokens) > 5 and r.next_hop != tokens[5])
            ]
            return None

        if tokens[:2] == ["no", "vlan"]:
            state.vlans = [v for v in state.vlans if v.id != int(tokens[2])]
            return None

        if tokens[:3] == ["no", "router", "eigrp"]:
            state.eigrp_processes = [
                p for p in state.eigrp_processes if p.asn != int(tokens[3])
            ]
            return None

        if tokens[:2] == ["default", "interface"]:
            name = line[len("default interface"):].strip()
            state.interfaces = [
                Interface(name=name) if i.name == name else i for i in state.interfaces
            ]
            return None

        if isinstance(context, Vlan):
            if tokens[0] == "name":
                context.name = line[len("name"):].strip()
            elif line == "no name":
                context.name = ""
            else:
                raise AssertionError(f"Unexpected vlan command: {line}")
        elif isinstance(context, Eigrp):
            self._apply_eigrp(context, tokens)
        elif isinstance(context, Interface):
            self._apply_interface(context, line)
        else:
            raise AssertionError(f"Unexpected command: {line}")
        return context

    @staticmethod
    def _apply_eigrp(process: Eigrp, tokens: list[str]) -> None:
        negate = tokens[0] == "no"
        if negate:
            tokens = tokens[1:]
        if tokens[0] != "network":
            raise AssertionError(f"Unexpected eigrp command: {' '.join(tokens)}")
        wildcard = tokens[2] if len(tokens) > 2 else classful_wildcard(tokens[1])
        network = EigrpNetwork(network=tokens[1], wildcard=wildcard)
        if negate:
            process.networks = [n for n in process.networks if n != network]
        elif network not in process.networks:
            process.networks.append(network)

    @staticmethod
    def _apply_interface(iface: Interface, line: str) -> None:
        tokens = line.split()

        if tokens[0] == "description":
            iface.description = line[len("description"):].strip()
        elif line == "no description":
            iface.description = ""
        elif line == "shutdown":
            iface.shutdown = True
        elif line == "no shutdown":
            iface.shutdown = False
        elif line == "switchport":
            # Layer 3 settings are dropped by the mode change
            iface.switchport = True
            iface.access = not iface.trunk
            iface.ips = []
            iface.helper_addresses = []
        elif line == "no switchport":
            iface.switchport = iface.access = iface.trunk = False
            iface.access_vlan = 0
            iface.encapsulation = ""
            iface.trunk_allowed_vlans = []
            iface.trunk_allowed_none = False
        elif line == "switchport mode trunk":
            iface.trunk, iface.access = True, False
        elif line == "switchport mode access":
            iface.access, iface.trunk = True, False
        elif tokens[:3] == ["switchport", "access", "vlan"]:
            iface.access_vlan = int(tokens[3])
        elif line == "no switchport access vlan":
            iface.access_vlan = 1
        elif tokens[:3] == ["switchport", "trunk", "encapsulation"]:
            iface.encapsulation = tokens[3]
        elif line == "switchport trunk allowed vlan none":
            iface.trunk_allowed_vlans = []
            iface.trunk_allowed_none = True
        elif tokens[:4] == ["switchport", "trunk", "allowed", "vlan"]:
            iface.trunk_allowed_vlans = parse_vlan_list(tokens[4])
            iface.trunk_allowed_none = False
        elif line == "no switchport trunk allowed vlan":
            iface.trunk_allowed_vlans = []
            iface.trunk_allowed_none = False
        elif tokens[:2] == ["ip", "address"]:
            ip = IpAddress(address=tokens[2], mask=tokens[3])
            if tokens[-1] == "secondary":
                iface.ips.append(ip)
            elif iface.ips:
                iface.ips[0] = ip
            else:
                iface.ips = [ip]
        elif tokens[:3] == ["no", "ip", "address"] and tokens[-1] == "secondary":
            ip = IpAddress(address=tokens[3], mask=tokens[4])
            iface.ips = [iface.ips[0]] + [i for i in iface.ips[1:] if i != ip]
        elif line == "no ip address":
            iface.ips = []
        elif tokens[:2] == ["ip", "helper-address"]:
            iface.helper_addresses.append(tokens[2])
        elif tokens[:3] == ["no", "ip", "helper-address"]:
            iface.helper_addresses.remove(tokens[3])
        elif tokens[:2] == ["spanning-tree", "portfast"]:
            iface.stp_portfast = tokens[2] if len(tokens) > 2 else "enable"
        elif line == "no spanning-tree portfast":
            iface.stp_portfast = ""
        elif tokens[:2] == ["spanning-tree", "bpduguard"]:
            iface.stp_bpduguard = tokens[2]
        elif line == "no spanning-tree bpduguard":
            iface.stp_bpduguard = ""
        else:
            raise AssertionError(f"Unexpected interface command: {line}")


class FakeInventory:
    """Inventory with fixed device instances."""

    def __init__(self, devices: dict):
        self._devices = devices

    def get_device_ids(self) -> list[str]:
        return list(self._devices)

    def get_device_config(self, device_id: str) -> dict:
        device = self.get_device(device_id)
        return {"type": device.config.type, "name": device.name, "host": device.host}

    def get_device(self, device_id: str):
        if device_id not in self._devices:
            raise KeyError(f"Unknown device: {device_id}")
        return self._devices[device_id]

    async def close_all(self) -> None:
        pass


@pytest.fixture
def device():
    """Fake device loaded with the sample running-config."""
    return FakeDevice()


@pytest.fixture
def inventory(device):
    """Inventory holding the fake device as core-sw1."""
    return FakeInventory({"core-sw1": device})


@pytest.fixture
def audit_dir(tmp_path, monkeypatch):
    """Route audit records to a temporary directory."""
    from mcp_ios_config.utils.audit_log import audit_logger, setup_audit_logging

    monkeypatch.setenv("IOSFORGE_AUDIT_DIR", str(tmp_path))
    path = setup_audit_logging(str(tmp_path))
    yield path
    for handler in list(audit_logger.handlers):
        handler.close()
        audit_logger.removeHandler(handler)
