"""
wlansim.network - Nodes, shared wireless medium, addressing and topology
"""

from wlansim.network.node import Datagram, NetworkRole, Node, WirelessInterface
from wlansim.network.channel import ChannelConfig, WirelessChannel
from wlansim.network.addressing import AddressBlock, AddressError, AddressExhaustedError
from wlansim.network.metrics import NetworkMetrics
from wlansim.network.topology import (
    GridCapacityError, NodeSet, Topology, TopologyBuilder, TopologyConfig,
)

__all__ = [
    'Datagram', 'NetworkRole', 'Node', 'WirelessInterface',
    'ChannelConfig', 'WirelessChannel',
    'AddressBlock', 'AddressError', 'AddressExhaustedError',
    'NetworkMetrics',
    'GridCapacityError', 'NodeSet', 'Topology', 'TopologyBuilder', 'TopologyConfig',
]
