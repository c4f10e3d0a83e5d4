"""
scenario.py - YAML Scenario Parser

Parses wireless echo scenarios from YAML configuration files.

Design philosophy:
- Keep it simple: minimal validation, no schema framework
- Fail fast: raise clear exceptions on errors
- No magic: explicit field names, one typed config per component

Example YAML:
    simulation:
      stop_time_s: 10
      seed: 1
      verbose: true
      tracing: true

    topology:
      mode: adhoc            # "adhoc" or "infrastructure"
      n_wifi: 5
      ssid: EECE5155         # infrastructure mode only
      channel:
        number: 1
        data_rate_mbps: 54

    layout:
      min_x: 0
      min_y: 0
      delta_x: 5
      delta_y: 10
      grid_width: 3
      layout_type: row_first
      max_rows: 6

    mobility:
      model: random_walk     # "random_walk" or "constant"
      bounds: [-90, 90, -90, 90]

    addressing:
      base: 192.168.1.0
      mask: 255.255.255.0

    applications:
      servers:
        - {node: 0, port: 20, start_s: 1, stop_s: 10}
      clients:
        - {node: 3, destination: 0, port: 20, start_s: 1, stop_s: 3,
           max_packets: 2, interval_s: 1, packet_size: 512}

    capture:
      - {node: 1, prefix: third_1_rts}
"""

import dataclasses
import yaml
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union
from pathlib import Path

from wlansim.mobility.models import MobilityConfig, Rectangle
from wlansim.mobility.position import GridLayoutConfig
from wlansim.network.channel import ChannelConfig
from wlansim.network.topology import TopologyConfig


@dataclass
class AddressingConfig:
    """IPv4 block the interfaces are numbered from."""
    base: str = "192.168.1.0"
    mask: str = "255.255.255.0"


@dataclass
class ServerConfig:
    """Echo server: node index, UDP port, active window [start_s, stop_s)."""
    node: int
    port: int
    start_s: float
    stop_s: float

    def __post_init__(self):
        _check_port(self.port, f"Server on node {self.node}")
        _check_window(self.start_s, self.stop_s, f"Server on node {self.node}")


@dataclass
class ClientConfig:
    """
    Echo client.

    Attributes:
        node: Node index the client runs on
        destination: Node index (first interface address) or dotted IPv4 address
        port: Destination UDP port
        start_s / stop_s: Active window
        max_packets: Packets to send (0 = unlimited)
        interval_s: Time between packets
        packet_size: Payload bytes per packet
    """
    node: int
    destination: Union[int, str]
    port: int
    start_s: float
    stop_s: float
    max_packets: int = 1
    interval_s: float = 1.0
    packet_size: int = 1024

    def __post_init__(self):
        name = f"Client on node {self.node}"
        _check_port(self.port, name)
        _check_window(self.start_s, self.stop_s, name)

        if self.max_packets < 0:
            raise ValueError(f"{name}: max_packets must be non-negative, got {self.max_packets}")

        if self.interval_s <= 0:
            raise ValueError(f"{name}: interval_s must be positive, got {self.interval_s}")

        if self.packet_size < 0:
            raise ValueError(f"{name}: packet_size must be non-negative, got {self.packet_size}")


@dataclass
class CaptureConfig:
    """Capture on interface `interface` of node `node`, artifacts named after prefix."""
    node: int
    prefix: str
    interface: int = 0

    def __post_init__(self):
        if not self.prefix:
            raise ValueError(f"Capture on node {self.node}: prefix must be non-empty")

        # Every node carries exactly one wireless interface
        if self.interface != 0:
            raise ValueError(f"Capture on node {self.node}: nodes have a single interface "
                             f"(index 0), got {self.interface}")


@dataclass
class Scenario:
    """
    Simulation scenario configuration.

    Attributes:
        stop_time_s: Event horizon (simulation stop time) in seconds
        seed: Random seed for mobility
        verbose: Enable echo application logging
        tracing: Arm the configured captures
        topology / layout / mobility / addressing: Component configs
        servers / clients: Echo applications
        captures: Capture requests (applied only if tracing is enabled)
    """
    stop_time_s: float
    seed: int
    topology: TopologyConfig
    layout: GridLayoutConfig = field(default_factory=GridLayoutConfig)
    mobility: MobilityConfig = field(default_factory=MobilityConfig)
    addressing: AddressingConfig = field(default_factory=AddressingConfig)
    servers: List[ServerConfig] = field(default_factory=list)
    clients: List[ClientConfig] = field(default_factory=list)
    captures: List[CaptureConfig] = field(default_factory=list)
    verbose: bool = True
    tracing: bool = True

    def __post_init__(self):
        """Validate scenario after initialization."""
        if self.stop_time_s <= 0:
            raise ValueError(f"stop_time_s must be positive, got {self.stop_time_s}")

        n = self.topology.n_wifi
        for server in self.servers:
            _check_node(server.node, n, "Server")
        for client in self.clients:
            _check_node(client.node, n, "Client")
            if isinstance(client.destination, int):
                _check_node(client.destination, n, "Client destination")
        for capture in self.captures:
            _check_node(capture.node, n, "Capture")

    def with_overrides(self, n_wifi: Optional[int] = None, verbose: Optional[bool] = None,
                       tracing: Optional[bool] = None, seed: Optional[int] = None) -> 'Scenario':
        """Return a re-validated copy with command-line overrides applied."""
        changes: Dict[str, Any] = {}
        if n_wifi is not None:
            changes['topology'] = dataclasses.replace(self.topology, n_wifi=n_wifi)
        if verbose is not None:
            changes['verbose'] = verbose
        if tracing is not None:
            changes['tracing'] = tracing
        if seed is not None:
            changes['seed'] = seed
        return dataclasses.replace(self, **changes)


def _check_node(node: int, n_wifi: int, what: str):
    if not (0 <= node < n_wifi):
        raise ValueError(f"{what} node {node} out of range (n_wifi={n_wifi})")


def _check_port(port: int, what: str):
    if not (0 < port < 65536):
        raise ValueError(f"{what}: port must be in [1, 65535], got {port}")


def _check_window(start_s: float, stop_s: float, what: str):
    if start_s < 0:
        raise ValueError(f"{what}: start_s must be non-negative, got {start_s}")
    if stop_s < start_s:
        raise ValueError(f"{what}: stop_s ({stop_s}) is before start_s ({start_s})")


def _section(data: Dict[str, Any], name: str, required: bool = False) -> Dict[str, Any]:
    if name not in data:
        if required:
            raise ValueError(f"Missing required section: '{name}'")
        return {}
    section = data[name]
    if not isinstance(section, dict):
        raise ValueError(f"'{name}' section must be a dict")
    return section


def _require(section: Dict[str, Any], key: str, where: str):
    if key not in section:
        raise ValueError(f"{where}: Missing required field '{key}'")
    return section[key]


def _parse_bool(value: Any, where: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ['true', 'yes', '1', 'false', 'no', '0']:
        return value.lower() in ['true', 'yes', '1']
    if isinstance(value, int) and value in [0, 1]:
        return bool(value)
    raise ValueError(f"{where} must be a boolean, got {value!r}")


def _parse_list(data: Dict[str, Any], name: str) -> List[Dict[str, Any]]:
    items = data.get(name) or []
    if not isinstance(items, list):
        raise ValueError(f"{name} must be a list")
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValueError(f"{name}[{i}] must be a dict, got {type(item)}")
    return items


def _parse_destination(value: Any) -> Union[int, str]:
    if isinstance(value, bool):
        raise ValueError(f"Invalid client destination: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return str(value)


def scenario_from_dict(data: Dict[str, Any]) -> Scenario:
    """
    Build a Scenario from an already-loaded mapping.

    Raises:
        ValueError: If required fields are missing or invalid
    """
    if not isinstance(data, dict):
        raise ValueError(f"Scenario must be a dict, got {type(data)}")

    sim = _section(data, 'simulation', required=True)
    stop_time_s = sim.get('stop_time_s')
    if stop_time_s is None:
        raise ValueError("Missing required field: simulation.stop_time_s")

    seed = sim.get('seed')
    if seed is None:
        raise ValueError("Missing required field: simulation.seed")

    # Topology
    topo = _section(data, 'topology', required=True)
    chan = topo.get('channel') or {}
    if not isinstance(chan, dict):
        raise ValueError("topology.channel must be a dict")
    max_range = chan.get('max_range_m')
    channel = ChannelConfig(
        number=int(chan.get('number', 1)),
        data_rate_mbps=float(chan.get('data_rate_mbps', 54.0)),
        overhead_bytes=int(chan.get('overhead_bytes', 64)),
        max_range_m=float(max_range) if max_range is not None else None,
    )
    topology = TopologyConfig(
        mode=str(topo.get('mode', 'adhoc')),
        n_wifi=int(_require(topo, 'n_wifi', 'topology')),
        ssid=str(topo.get('ssid', 'wlansim-ssid')),
        channel=channel,
    )

    # Layout
    lay = _section(data, 'layout')
    layout = GridLayoutConfig(
        min_x=float(lay.get('min_x', 0.0)),
        min_y=float(lay.get('min_y', 0.0)),
        delta_x=float(lay.get('delta_x', 5.0)),
        delta_y=float(lay.get('delta_y', 10.0)),
        grid_width=int(lay.get('grid_width', 3)),
        layout_type=str(lay.get('layout_type', 'row_first')),
        max_rows=int(lay.get('max_rows', 6)),
    )

    # Mobility
    mob = _section(data, 'mobility')
    bounds = mob.get('bounds', [-90.0, 90.0, -90.0, 90.0])
    if not isinstance(bounds, list) or len(bounds) != 4:
        raise ValueError("mobility.bounds must be a list [x_min, x_max, y_min, y_max]")
    mobility = MobilityConfig(
        model=str(mob.get('model', 'random_walk')),
        bounds=Rectangle(*(float(b) for b in bounds)),
        speed_min=float(mob.get('speed_min', 2.0)),
        speed_max=float(mob.get('speed_max', 4.0)),
        mode=str(mob.get('mode', 'distance')),
        distance=float(mob.get('distance', 1.0)),
        time_s=float(mob.get('time_s', 1.0)),
    )

    # Addressing
    addr = _section(data, 'addressing')
    addressing = AddressingConfig(
        base=str(addr.get('base', '192.168.1.0')),
        mask=str(addr.get('mask', '255.255.255.0')),
    )

    # Applications
    apps = _section(data, 'applications')
    servers = []
    for i, s in enumerate(_parse_list(apps, 'servers')):
        where = f"Server {i}"
        servers.append(ServerConfig(
            node=int(_require(s, 'node', where)),
            port=int(_require(s, 'port', where)),
            start_s=float(_require(s, 'start_s', where)),
            stop_s=float(_require(s, 'stop_s', where)),
        ))

    clients = []
    for i, c in enumerate(_parse_list(apps, 'clients')):
        where = f"Client {i}"
        clients.append(ClientConfig(
            node=int(_require(c, 'node', where)),
            destination=_parse_destination(_require(c, 'destination', where)),
            port=int(_require(c, 'port', where)),
            start_s=float(_require(c, 'start_s', where)),
            stop_s=float(_require(c, 'stop_s', where)),
            max_packets=int(c.get('max_packets', 1)),
            interval_s=float(c.get('interval_s', 1.0)),
            packet_size=int(c.get('packet_size', 1024)),
        ))

    # Capture
    captures = []
    for i, cap in enumerate(_parse_list(data, 'capture')):
        where = f"Capture {i}"
        captures.append(CaptureConfig(
            node=int(_require(cap, 'node', where)),
            prefix=str(_require(cap, 'prefix', where)),
            interface=int(cap.get('interface', 0)),
        ))

    return Scenario(
        stop_time_s=float(stop_time_s),
        seed=int(seed),
        topology=topology,
        layout=layout,
        mobility=mobility,
        addressing=addressing,
        servers=servers,
        clients=clients,
        captures=captures,
        verbose=_parse_bool(sim.get('verbose', True), 'simulation.verbose'),
        tracing=_parse_bool(sim.get('tracing', True), 'simulation.tracing'),
    )


def load_scenario(yaml_path: str) -> Scenario:
    """
    Load scenario from YAML file.

    Args:
        yaml_path: Path to YAML scenario file

    Returns:
        Scenario object with parsed configuration

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        ValueError: If required fields are missing or invalid
        yaml.YAMLError: If YAML syntax is invalid
    """
    path = Path(yaml_path)
    if not path.exists():
        raise FileNotFoundError(f"Scenario file not found: {yaml_path}")

    with open(path, 'r') as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML syntax in {yaml_path}: {e}")

    if not isinstance(data, dict):
        raise ValueError(f"Scenario file must contain a YAML dict, got {type(data)}")

    return scenario_from_dict(data)
