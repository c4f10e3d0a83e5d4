"""
node.py - Nodes, Wireless Interfaces and Datagrams

A Node is a simulated participant: integer id, a mobility model supplying its
position, and zero or more wireless interfaces. Applications bind UDP ports on
a node; datagrams arriving on any of its interfaces are dispatched by
destination port.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from wlansim.mobility.models import MobilityModel
    from wlansim.network.channel import WirelessChannel

logger = logging.getLogger(__name__)


class NetworkRole(Enum):
    """MAC behavior of a wireless interface."""
    COORDINATOR = "coordinator"  # access point
    PEER = "peer"                # station associated with a coordinator
    ADHOC_PEER = "adhoc_peer"    # independent ad-hoc station


@dataclass
class Datagram:
    """UDP datagram carried by the wireless channel."""
    src_address: str
    src_port: int
    dst_address: str
    dst_port: int
    size_bytes: int
    uid: int = 0
    payload: Any = None
    sent_time_us: int = 0


class WirelessInterface:
    """
    Network interface attached to a node and a shared channel.

    Attributes:
        node: Owning node
        index: Position of this interface in node.interfaces
        channel: Shared medium the interface transmits on
        role: MAC behavior (coordinator, peer or ad-hoc peer)
        ssid: Service set identifier (None in ad-hoc mode)
        address: IPv4 address (None until addressing is installed)
    """

    def __init__(self, node: 'Node', channel: 'WirelessChannel', role: NetworkRole,
                 ssid: Optional[str] = None):
        self.node = node
        self.channel = channel
        self.role = role
        self.ssid = ssid
        self.address: Optional[str] = None
        self.prefix_length: Optional[int] = None
        self.index = len(node.interfaces)
        node.interfaces.append(self)
        channel.attach(self)

    def __repr__(self):
        return (f"WirelessInterface(node={self.node.node_id}, index={self.index}, "
                f"role={self.role.value}, address={self.address})")

    def set_address(self, address: str, prefix_length: int):
        self.address = address
        self.prefix_length = prefix_length

    def send(self, datagram: Datagram) -> bool:
        """Hand a datagram to the channel. Returns False if it was dropped."""
        if self.address is None:
            raise RuntimeError(f"Interface {self.node.node_id}/{self.index} has no address")
        return self.channel.transmit(self, datagram)

    def receive(self, datagram: Datagram):
        """Called by the channel on delivery."""
        self.node.deliver(datagram, self)


class Node:
    """Simulated node: identity, mobility and interfaces."""

    def __init__(self, node_id: int):
        self.node_id = node_id
        self.mobility: Optional['MobilityModel'] = None
        self.interfaces: List[WirelessInterface] = []
        self._port_handlers: Dict[int, Callable[[Datagram, WirelessInterface], None]] = {}

    def __repr__(self):
        return f"Node({self.node_id})"

    def get_position(self):
        if self.mobility is None:
            raise RuntimeError(f"Node {self.node_id} has no mobility model installed")
        return self.mobility.get_position()

    def primary_address(self) -> Optional[str]:
        """Address of the first interface (None if not yet assigned)."""
        if not self.interfaces:
            return None
        return self.interfaces[0].address

    def bind(self, port: int, handler: Callable[[Datagram, WirelessInterface], None]):
        """Bind a UDP port. Raises ValueError if the port is already bound."""
        if port in self._port_handlers:
            raise ValueError(f"Node {self.node_id}: port {port} already bound")
        self._port_handlers[port] = handler

    def unbind(self, port: int):
        self._port_handlers.pop(port, None)

    def is_bound(self, port: int) -> bool:
        return port in self._port_handlers

    def deliver(self, datagram: Datagram, interface: WirelessInterface):
        handler = self._port_handlers.get(datagram.dst_port)
        if handler is None:
            logger.debug(f"Node {self.node_id}: no socket on port {datagram.dst_port}, dropping")
            return
        handler(datagram, interface)

    def dispose(self):
        """Release mobility and sockets (called at scheduler teardown)."""
        if self.mobility is not None:
            self.mobility.dispose()
        self._port_handlers = {}
        self.interfaces = []
