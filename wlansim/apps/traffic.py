"""
traffic.py - Traffic Scheduler

Installs echo servers and clients and registers their start/stop events.

Every scheduled application becomes exactly two scheduler events: start at
start_us and stop at stop_us. A server is active on [start_us, stop_us).

Convention (not checked at runtime): a client's start time should not be
earlier than its server's start time, and its window should fall inside the
server's window. Requests sent while the server is inactive are silently lost,
which is occasionally what a scenario wants to show.
"""

from dataclasses import dataclass
from typing import List, Optional, TYPE_CHECKING

from wlansim.apps.echo import UdpEchoClient, UdpEchoServer

if TYPE_CHECKING:
    from wlansim.harness.scheduler import Scheduler
    from wlansim.network.node import Node

SERVER = "server"
CLIENT = "client"


@dataclass(frozen=True)
class ApplicationEvent:
    """Immutable record of one scheduled application."""
    node_id: int
    role: str
    start_us: int
    stop_us: int
    port: int
    remote_address: Optional[str] = None
    max_packets: Optional[int] = None
    interval_us: Optional[int] = None
    packet_size: Optional[int] = None


class TrafficScheduler:
    """
    Registers echo application windows with the scheduler.

    Usage:
        traffic = TrafficScheduler(scheduler)
        server = traffic.schedule_server(node0, 20, seconds_to_us(1), seconds_to_us(10))
        client = traffic.schedule_client(node3, "192.168.1.1", 20,
                                         seconds_to_us(1), seconds_to_us(3),
                                         max_packets=2, interval_us=seconds_to_us(1),
                                         packet_size=512)
    """

    def __init__(self, scheduler: 'Scheduler'):
        self.scheduler = scheduler
        self.events: List[ApplicationEvent] = []
        self.servers: List[UdpEchoServer] = []
        self.clients: List[UdpEchoClient] = []

    def schedule_server(self, node: 'Node', port: int, start_us: int, stop_us: int) -> UdpEchoServer:
        """Arm an echo server on node for [start_us, stop_us)."""
        _check_window(start_us, stop_us)

        server = UdpEchoServer(self.scheduler, node, port)
        self._register(server, f"UdpEchoServer[{node.node_id}]", start_us, stop_us)
        self.servers.append(server)
        self.events.append(ApplicationEvent(
            node_id=node.node_id, role=SERVER, start_us=start_us, stop_us=stop_us, port=port,
        ))
        return server

    def schedule_client(self, node: 'Node', remote_address: str, remote_port: int,
                        start_us: int, stop_us: int, max_packets: int,
                        interval_us: int, packet_size: int) -> UdpEchoClient:
        """
        Arm an echo client on node.

        The client emits one packet of packet_size bytes every interval_us while
        active, up to max_packets, and stops at stop_us or after max_packets,
        whichever comes first.
        """
        _check_window(start_us, stop_us)

        client = UdpEchoClient(
            self.scheduler, node, remote_address, remote_port,
            max_packets=max_packets, interval_us=interval_us, packet_size=packet_size,
        )
        self._register(client, f"UdpEchoClient[{node.node_id}]", start_us, stop_us)
        self.clients.append(client)
        self.events.append(ApplicationEvent(
            node_id=node.node_id, role=CLIENT, start_us=start_us, stop_us=stop_us,
            port=remote_port, remote_address=remote_address, max_packets=max_packets,
            interval_us=interval_us, packet_size=packet_size,
        ))
        return client

    def _register(self, app, name: str, start_us: int, stop_us: int):
        self.scheduler.schedule_at(start_us, app.start, label=f"{name}::Start")
        self.scheduler.schedule_at(stop_us, app.stop, label=f"{name}::Stop")


def _check_window(start_us: int, stop_us: int):
    if start_us < 0:
        raise ValueError(f"start time must be non-negative, got {start_us}us")
    if stop_us < start_us:
        raise ValueError(f"stop time ({stop_us}us) is before start time ({start_us}us)")
