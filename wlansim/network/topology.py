"""
topology.py - Topology Builder

Creates nodes, places them on the grid, installs mobility, wireless
interfaces and addresses.

Two modes:
- adhoc:          every node is an ad-hoc peer on one shared channel
- infrastructure: node 0 is the coordinator (access point, fixed position),
                  nodes 1..n-1 are peers joining the coordinator's SSID

Fail fast: the grid-capacity guard runs before any node is created.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, TYPE_CHECKING

from wlansim.mobility.models import (
    CONSTANT, ConstantPositionModel, MobilityConfig, RandomWalk2dModel, node_rng,
)
from wlansim.mobility.position import GridLayoutConfig, GridPositionAllocator
from wlansim.network.addressing import AddressBlock
from wlansim.network.channel import ChannelConfig, WirelessChannel
from wlansim.network.node import NetworkRole, Node, WirelessInterface

if TYPE_CHECKING:
    from wlansim.harness.scheduler import Scheduler

logger = logging.getLogger(__name__)

ADHOC = "adhoc"
INFRASTRUCTURE = "infrastructure"


class GridCapacityError(ValueError):
    """Raised when the requested node count does not fit the grid layout."""
    pass


@dataclass
class TopologyConfig:
    """
    Wireless topology configuration.

    Attributes:
        mode: "adhoc" or "infrastructure"
        n_wifi: Number of wireless nodes
        ssid: Service set identifier (infrastructure mode)
        channel: Shared medium parameters
    """
    mode: str = ADHOC
    n_wifi: int = 5
    ssid: str = "wlansim-ssid"
    channel: ChannelConfig = field(default_factory=ChannelConfig)

    def __post_init__(self):
        """Validate topology configuration."""
        if self.mode not in [ADHOC, INFRASTRUCTURE]:
            raise ValueError(f"topology.mode must be '{ADHOC}' or '{INFRASTRUCTURE}', got '{self.mode}'")

        if self.n_wifi < 1:
            raise ValueError(f"topology.n_wifi must be at least 1, got {self.n_wifi}")

        if self.mode == INFRASTRUCTURE and not self.ssid:
            raise ValueError("topology.ssid is required in infrastructure mode")


class NodeSet:
    """Ordered collection of nodes with sequential ids."""

    def __init__(self, nodes: Optional[List[Node]] = None):
        self.nodes: List[Node] = list(nodes or [])

    def __len__(self):
        return len(self.nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)

    def get(self, index: int) -> Node:
        return self.nodes[index]

    def slice(self, start: int, stop: Optional[int] = None) -> 'NodeSet':
        return NodeSet(self.nodes[start:stop])


@dataclass
class Topology:
    """Result of TopologyBuilder.build()."""
    mode: str
    nodes: NodeSet
    channel: WirelessChannel
    interfaces: List[WirelessInterface]
    addresses: List[str]
    address_block: AddressBlock
    coordinator: Optional[Node] = None

    def interface_of(self, node_id: int, index: int = 0) -> WirelessInterface:
        return self.nodes.get(node_id).interfaces[index]

    def address_of(self, node_id: int, index: int = 0) -> str:
        return self.interface_of(node_id, index).address

    def dispose(self):
        for node in self.nodes:
            node.dispose()
        self.channel.dispose()
        self.interfaces = []


def check_grid_capacity(n_nodes: int, layout: GridLayoutConfig,
                        mobility: Optional[MobilityConfig] = None):
    """
    Grid-capacity guard.

    Raises:
        GridCapacityError: If n_nodes exceeds layout.capacity, or the populated
            grid does not fit inside the random walk rectangle
    """
    if n_nodes > layout.capacity:
        raise GridCapacityError(
            f"nWifi should be {layout.capacity} or less; "
            f"otherwise grid layout exceeds the bounding box (requested {n_nodes})"
        )

    if mobility is not None and mobility.model != CONSTANT:
        x_lo, x_hi, y_lo, y_hi = layout.extent()
        bounds = mobility.bounds
        if not (bounds.contains(x_lo, y_lo) and bounds.contains(x_hi, y_hi)):
            raise GridCapacityError(
                f"Grid extent x=[{x_lo}, {x_hi}] y=[{y_lo}, {y_hi}] "
                f"exceeds the mobility bounding box {bounds}"
            )


class TopologyBuilder:
    """
    Builds the wireless topology for one run.

    Every step is also available on its own (create_nodes,
    install_wireless_interfaces, install_mobility, install_addressing);
    build() runs them in the order the scenarios use.
    """

    def __init__(self, scheduler: 'Scheduler', seed: int = 1):
        self.scheduler = scheduler
        self.seed = seed

    def create_nodes(self, n: int) -> NodeSet:
        """Allocate n nodes with ids 0..n-1."""
        return NodeSet([Node(node_id) for node_id in range(n)])

    def create_channel(self, config: Optional[ChannelConfig] = None) -> WirelessChannel:
        return WirelessChannel(self.scheduler, config)

    def install_wireless_interfaces(self, nodes: NodeSet, channel: WirelessChannel,
                                    role: NetworkRole, ssid: Optional[str] = None) -> List[WirelessInterface]:
        """Attach one interface per node, in node order."""
        if role is NetworkRole.ADHOC_PEER:
            ssid = None
        return [WirelessInterface(node, channel, role, ssid) for node in nodes]

    def install_mobility(self, nodes: NodeSet, allocator: GridPositionAllocator,
                         mobility: MobilityConfig):
        """
        Place each node on the next grid cell and attach its mobility model.

        Random walks start at the current simulated time.
        """
        for node in nodes:
            position = allocator.next()
            if mobility.model == CONSTANT:
                node.mobility = ConstantPositionModel(position)
            else:
                node.mobility = RandomWalk2dModel(
                    self.scheduler,
                    position,
                    mobility.bounds,
                    rng=node_rng(node.node_id, self.seed),
                    speed_range=(mobility.speed_min, mobility.speed_max),
                    mode=mobility.mode,
                    distance=mobility.distance,
                    time_s=mobility.time_s,
                    label=f"RandomWalk2d[{node.node_id}]",
                )
                node.mobility.start()

    def install_addressing(self, interfaces: List[WirelessInterface], block: AddressBlock) -> List[str]:
        """Assign addresses in interface registration order."""
        return block.assign(interfaces)

    def build(self, config: TopologyConfig, layout: GridLayoutConfig,
              mobility: MobilityConfig, block: AddressBlock) -> Topology:
        """
        Build the complete topology.

        Raises:
            GridCapacityError: Before any node is created, if the grid cannot hold n_wifi nodes
        """
        check_grid_capacity(config.n_wifi, layout, mobility)

        nodes = self.create_nodes(config.n_wifi)
        channel = self.create_channel(config.channel)
        allocator = GridPositionAllocator(layout)

        coordinator = None
        if config.mode == INFRASTRUCTURE:
            coordinator = nodes.get(0)
            peers = nodes.slice(1)
            interfaces = self.install_wireless_interfaces(
                NodeSet([coordinator]), channel, NetworkRole.COORDINATOR, config.ssid)
            interfaces += self.install_wireless_interfaces(
                peers, channel, NetworkRole.PEER, config.ssid)

            coordinator.mobility = ConstantPositionModel(allocator.next())
            self.install_mobility(peers, allocator, mobility)
        else:
            interfaces = self.install_wireless_interfaces(nodes, channel, NetworkRole.ADHOC_PEER)
            self.install_mobility(nodes, allocator, mobility)

        addresses = self.install_addressing(interfaces, block)

        logger.info(f"Built {config.mode} topology: {len(nodes)} nodes on {block}")

        topology = Topology(
            mode=config.mode,
            nodes=nodes,
            channel=channel,
            interfaces=interfaces,
            addresses=addresses,
            address_block=block,
            coordinator=coordinator,
        )
        self.scheduler.schedule_destroy(topology.dispose)
        return topology
