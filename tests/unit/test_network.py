#!/usr/bin/env python3
"""
test_network.py - Unit Tests for Addressing, Channel and Topology

Tests address assignment, frame delivery on the shared channel and the
topology builder (both modes, grid-capacity guard).
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from wlansim.harness.scheduler import Scheduler
from wlansim.mobility.models import ConstantPositionModel, MobilityConfig, Rectangle
from wlansim.mobility.position import GridLayoutConfig
from wlansim.network.addressing import AddressBlock, AddressError, AddressExhaustedError
from wlansim.network.channel import ChannelConfig, WirelessChannel, can_hear
from wlansim.network.node import Datagram, NetworkRole, Node, WirelessInterface
from wlansim.network.topology import (
    GridCapacityError, TopologyBuilder, TopologyConfig, check_grid_capacity,
)


def _grid():
    return GridLayoutConfig(min_x=0.0, min_y=0.0, delta_x=5.0, delta_y=10.0, grid_width=3, max_rows=6)


def _walk():
    return MobilityConfig(model="random_walk", bounds=Rectangle(-90.0, 90.0, -90.0, 90.0))


def _static_pair(channel, role=NetworkRole.ADHOC_PEER, ssid=None, distance=5.0):
    a, b = Node(0), Node(1)
    a.mobility = ConstantPositionModel((0.0, 0.0))
    b.mobility = ConstantPositionModel((distance, 0.0))
    ia = WirelessInterface(a, channel, role, ssid)
    ib = WirelessInterface(b, channel, role, ssid)
    AddressBlock("10.0.0.0", "255.255.255.0").assign([ia, ib])
    return ia, ib


# ---------------------------------------------------------------- addressing

def test_sequential_assignment():
    """The k-th registered interface gets base + k."""
    channel = WirelessChannel(Scheduler())
    interfaces = [WirelessInterface(Node(i), channel, NetworkRole.ADHOC_PEER) for i in range(5)]

    block = AddressBlock("192.168.1.0", "255.255.255.0")
    addresses = block.assign(interfaces)

    assert addresses == ["192.168.1.1", "192.168.1.2", "192.168.1.3", "192.168.1.4", "192.168.1.5"]
    assert [i.address for i in interfaces] == addresses
    assert all(i.prefix_length == 24 for i in interfaces)
    assert len(set(addresses)) == len(addresses)
    assert block.assigned_count() == 5


def test_same_order_gives_same_addresses():
    """Two blocks with the same base and call order hand out identical addresses."""
    block_a = AddressBlock("10.1.0.0", "255.255.0.0")
    block_b = AddressBlock("10.1.0.0", "255.255.0.0")

    first = [block_a.new_address() for _ in range(3)]
    assert first == [block_b.new_address() for _ in range(3)]
    assert first == ["10.1.0.1", "10.1.0.2", "10.1.0.3"]


def test_block_exhaustion():
    """A /30 has two hosts; the third allocation reaches the broadcast address."""
    block = AddressBlock("10.0.0.0", "255.255.255.252")

    assert block.new_address() == "10.0.0.1"
    assert block.new_address() == "10.0.0.2"
    with pytest.raises(AddressExhaustedError):
        block.new_address()


def test_invalid_block():
    """Host bits set in the base, or a malformed mask, are rejected."""
    with pytest.raises(AddressError):
        AddressBlock("192.168.1.7", "255.255.255.0")

    with pytest.raises(AddressError):
        AddressBlock("192.168.1.0", "255.0.255.0")

    with pytest.raises(ValueError):
        AddressBlock("192.168.1.0", "255.255.255.0", first_host=0)


def test_block_contains():
    block = AddressBlock("192.168.2.0", "255.255.255.0")
    assert block.contains("192.168.2.200")
    assert not block.contains("192.168.3.1")
    assert block.prefix_length == 24
    assert str(block) == "192.168.2.0/24"


# ---------------------------------------------------------------- channel

def test_can_hear_rules():
    """Ad-hoc peers hear ad-hoc peers; infrastructure stations need the same SSID."""
    scheduler = Scheduler()
    channel = WirelessChannel(scheduler)
    other_channel = WirelessChannel(scheduler, ChannelConfig(number=6))

    adhoc_a = WirelessInterface(Node(0), channel, NetworkRole.ADHOC_PEER)
    adhoc_b = WirelessInterface(Node(1), channel, NetworkRole.ADHOC_PEER)
    ap = WirelessInterface(Node(2), channel, NetworkRole.COORDINATOR, "net-a")
    sta = WirelessInterface(Node(3), channel, NetworkRole.PEER, "net-a")
    foreign = WirelessInterface(Node(4), channel, NetworkRole.PEER, "net-b")
    far_adhoc = WirelessInterface(Node(5), other_channel, NetworkRole.ADHOC_PEER)

    assert can_hear(adhoc_a, adhoc_b)
    assert can_hear(ap, sta) and can_hear(sta, ap)
    assert not can_hear(sta, foreign)
    assert not can_hear(adhoc_a, ap)
    assert not can_hear(adhoc_a, far_adhoc)


def test_delay_model():
    """Transmission and propagation delays are rounded up to whole microseconds."""
    channel = WirelessChannel(Scheduler(), ChannelConfig(data_rate_mbps=54.0, overhead_bytes=64))

    assert channel.transmission_delay_us(512) == 86    # 4608 bits / 54 Mbit/s = 85.3us
    assert channel.propagation_delay_us(0.0) == 0
    assert channel.propagation_delay_us(300.0) == 2     # 1.0007us


def test_datagram_delivered_to_bound_port():
    """A sent datagram reaches the destination's port handler after the channel delay."""
    scheduler = Scheduler()
    channel = WirelessChannel(scheduler)
    ia, ib = _static_pair(channel)
    received = []

    ib.node.bind(9, lambda datagram, iface: received.append((scheduler.now, datagram, iface)))
    datagram = Datagram(ia.address, 5000, ib.address, 9, size_bytes=512)
    assert ia.send(datagram) is True
    scheduler.run()

    assert len(received) == 1
    time_us, got, iface = received[0]
    assert time_us == 86 + 1
    assert got is datagram
    assert iface is ib
    assert channel.metrics.packets_delivered == 1
    assert channel.metrics.bytes_delivered == 512


def test_unreachable_destination_dropped():
    """Unknown addresses and incompatible SSIDs drop the frame."""
    scheduler = Scheduler()
    channel = WirelessChannel(scheduler)
    ia, ib = _static_pair(channel, role=NetworkRole.PEER, ssid="net")
    ib.ssid = "other-net"

    assert ia.send(Datagram(ia.address, 1, "10.0.0.99", 9, size_bytes=10)) is False
    assert ia.send(Datagram(ia.address, 1, ib.address, 9, size_bytes=10)) is False
    assert channel.metrics.packets_dropped == 2
    assert scheduler.pending_count == 0


def test_out_of_range_dropped():
    scheduler = Scheduler()
    channel = WirelessChannel(scheduler, ChannelConfig(max_range_m=50.0))
    ia, ib = _static_pair(channel, distance=80.0)

    assert ia.send(Datagram(ia.address, 1, ib.address, 9, size_bytes=10)) is False


def test_send_without_address_raises():
    channel = WirelessChannel(Scheduler())
    iface = WirelessInterface(Node(0), channel, NetworkRole.ADHOC_PEER)
    with pytest.raises(RuntimeError):
        iface.send(Datagram("0.0.0.0", 1, "10.0.0.1", 9, size_bytes=1))


def test_bind_twice_raises():
    node = Node(0)
    node.bind(20, lambda d, i: None)
    with pytest.raises(ValueError, match="already bound"):
        node.bind(20, lambda d, i: None)
    node.unbind(20)
    assert not node.is_bound(20)


# ---------------------------------------------------------------- topology

def test_adhoc_topology():
    """Ad-hoc: all nodes are peers on the grid, addressed in node order."""
    scheduler = Scheduler()
    topology = TopologyBuilder(scheduler, seed=1).build(
        TopologyConfig(mode="adhoc", n_wifi=5), _grid(), _walk(),
        AddressBlock("192.168.1.0", "255.255.255.0"),
    )

    assert len(topology.nodes) == 5
    assert [n.node_id for n in topology.nodes] == [0, 1, 2, 3, 4]
    assert topology.coordinator is None
    assert all(i.role is NetworkRole.ADHOC_PEER for i in topology.interfaces)
    assert all(i.ssid is None for i in topology.interfaces)
    assert topology.addresses == [f"192.168.1.{k}" for k in range(1, 6)]
    assert topology.address_of(3) == "192.168.1.4"

    # Before the run every node sits on its grid cell
    positions = [n.get_position() for n in topology.nodes]
    assert positions == [(0.0, 0.0), (5.0, 0.0), (10.0, 0.0), (0.0, 10.0), (5.0, 10.0)]

    # One walk event per node
    assert scheduler.pending_count == 5


def test_infrastructure_topology():
    """Infrastructure: node 0 is a fixed coordinator, the rest are peers on its SSID."""
    scheduler = Scheduler()
    topology = TopologyBuilder(scheduler, seed=1).build(
        TopologyConfig(mode="infrastructure", n_wifi=5, ssid="EECE5155"), _grid(), _walk(),
        AddressBlock("192.168.2.0", "255.255.255.0"),
    )

    coordinator = topology.coordinator
    assert coordinator is topology.nodes.get(0)
    assert isinstance(coordinator.mobility, ConstantPositionModel)
    assert coordinator.get_position() == (0.0, 0.0)

    assert topology.interfaces[0].role is NetworkRole.COORDINATOR
    assert all(i.role is NetworkRole.PEER for i in topology.interfaces[1:])
    assert all(i.ssid == "EECE5155" for i in topology.interfaces)
    assert topology.address_of(0) == "192.168.2.1"
    assert topology.address_of(4) == "192.168.2.5"

    # Only the peers walk
    assert scheduler.pending_count == 4

    peer_positions = [n.get_position() for n in topology.nodes.slice(1)]
    assert peer_positions == [(5.0, 0.0), (10.0, 0.0), (0.0, 10.0), (5.0, 10.0)]


def test_capacity_guard_before_any_node():
    """19 nodes exceed the 3 x 6 grid; nothing is created or scheduled."""
    scheduler = Scheduler()
    builder = TopologyBuilder(scheduler, seed=1)

    with pytest.raises(GridCapacityError, match="nWifi should be 18 or less"):
        builder.build(TopologyConfig(mode="adhoc", n_wifi=19), _grid(), _walk(),
                      AddressBlock("192.168.1.0", "255.255.255.0"))

    assert scheduler.pending_count == 0


def test_capacity_boundary():
    """18 nodes fit exactly."""
    scheduler = Scheduler()
    topology = TopologyBuilder(scheduler, seed=1).build(
        TopologyConfig(mode="adhoc", n_wifi=18), _grid(), _walk(),
        AddressBlock("192.168.1.0", "255.255.255.0"),
    )
    assert len(topology.nodes) == 18
    assert topology.nodes.get(17).get_position() == (10.0, 50.0)


def test_grid_extent_outside_bounds():
    """A grid that overflows the walk rectangle is rejected."""
    mobility = MobilityConfig(model="random_walk", bounds=Rectangle(-20.0, 20.0, -20.0, 20.0))

    with pytest.raises(GridCapacityError, match="exceeds"):
        check_grid_capacity(5, _grid(), mobility)

    # Static nodes have no walk rectangle to respect
    check_grid_capacity(5, _grid(), MobilityConfig(model="constant"))


def test_topology_config_validation():
    with pytest.raises(ValueError):
        TopologyConfig(mode="mesh")

    with pytest.raises(ValueError):
        TopologyConfig(n_wifi=0)

    with pytest.raises(ValueError):
        TopologyConfig(mode="infrastructure", ssid="")


def test_topology_disposed_with_scheduler():
    """Destroying the scheduler tears down the topology it built."""
    scheduler = Scheduler()
    topology = TopologyBuilder(scheduler, seed=1).build(
        TopologyConfig(mode="adhoc", n_wifi=3), _grid(), _walk(),
        AddressBlock("192.168.1.0", "255.255.255.0"),
    )
    scheduler.destroy()

    assert topology.interfaces == []
    assert topology.channel.interfaces == []
    assert all(n.interfaces == [] for n in topology.nodes)
