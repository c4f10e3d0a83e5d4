"""
echo.py - UDP Echo Applications

UdpEchoServer returns every datagram it receives to its sender.
UdpEchoClient sends fixed-size datagrams at a fixed interval and records the
round trip of every echo it gets back.

Applications are inert until start() and inert again after stop(); the
TrafficScheduler turns those calls into scheduler events.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, TYPE_CHECKING

from wlansim.harness.scheduler import us_to_seconds
from wlansim.network.node import Datagram

if TYPE_CHECKING:
    from wlansim.harness.scheduler import EventId, Scheduler
    from wlansim.network.node import Node, WirelessInterface

client_logger = logging.getLogger("UdpEchoClientApplication")
server_logger = logging.getLogger("UdpEchoServerApplication")

EPHEMERAL_PORT_START = 49153


@dataclass(frozen=True)
class RoundTrip:
    """One completed echo exchange."""
    seq: int
    sent_us: int
    received_us: int

    @property
    def rtt_us(self) -> int:
        return self.received_us - self.sent_us


class Application:
    """Start/stop bookkeeping shared by the echo applications."""

    def __init__(self, scheduler: 'Scheduler', node: 'Node'):
        self.scheduler = scheduler
        self.node = node
        self.active = False

    def start(self):
        if self.active:
            return
        self.active = True
        self.on_start()

    def stop(self):
        if not self.active:
            return
        self.active = False
        self.on_stop()

    def on_start(self):
        pass

    def on_stop(self):
        pass

    def _now_s(self) -> float:
        return us_to_seconds(self.scheduler.now)


class UdpEchoServer(Application):
    """Echo responder bound to one UDP port while active."""

    def __init__(self, scheduler: 'Scheduler', node: 'Node', port: int):
        super().__init__(scheduler, node)
        self.port = port
        self.received = 0
        self.echoed = 0

    def on_start(self):
        self.node.bind(self.port, self._handle)

    def on_stop(self):
        self.node.unbind(self.port)

    def _handle(self, datagram: Datagram, interface: 'WirelessInterface'):
        self.received += 1
        server_logger.info(f"At time {self._now_s():g}s server received {datagram.size_bytes} bytes "
                           f"from {datagram.src_address} port {datagram.src_port}")

        reply = Datagram(
            src_address=interface.address,
            src_port=self.port,
            dst_address=datagram.src_address,
            dst_port=datagram.src_port,
            size_bytes=datagram.size_bytes,
            payload=datagram.payload,
        )
        server_logger.info(f"At time {self._now_s():g}s server sent {reply.size_bytes} bytes "
                           f"to {reply.dst_address} port {reply.dst_port}")
        if interface.send(reply):
            self.echoed += 1


class UdpEchoClient(Application):
    """
    Request generator.

    Sends the first datagram at start, then one every interval_us until
    max_packets have been sent (max_packets = 0 means no limit) or the
    application stops. Stopping cancels the pending send.
    """

    def __init__(self, scheduler: 'Scheduler', node: 'Node', remote_address: str, remote_port: int,
                 max_packets: int = 1, interval_us: int = 1_000_000, packet_size: int = 1024):
        super().__init__(scheduler, node)

        if max_packets < 0:
            raise ValueError(f"max_packets must be non-negative, got {max_packets}")
        if interval_us <= 0:
            raise ValueError(f"interval_us must be positive, got {interval_us}")
        if packet_size < 0:
            raise ValueError(f"packet_size must be non-negative, got {packet_size}")

        self.remote_address = remote_address
        self.remote_port = remote_port
        self.max_packets = max_packets
        self.interval_us = interval_us
        self.packet_size = packet_size

        self.local_port: Optional[int] = None
        self.sent = 0
        self.send_times: List[int] = []
        self.round_trips: List[RoundTrip] = []
        self._outstanding: Dict[int, int] = {}
        self._send_event: Optional['EventId'] = None

    def on_start(self):
        self.local_port = _ephemeral_port(self.node)
        self.node.bind(self.local_port, self._handle_reply)
        self._send_event = self.scheduler.schedule_now(
            self._send, label=f"UdpEchoClient[{self.node.node_id}]::Send")

    def on_stop(self):
        self.scheduler.cancel(self._send_event)
        self._send_event = None
        self.node.unbind(self.local_port)

    def _send(self):
        self._send_event = None
        interface = self.node.interfaces[0]
        seq = self.sent
        datagram = Datagram(
            src_address=interface.address,
            src_port=self.local_port,
            dst_address=self.remote_address,
            dst_port=self.remote_port,
            size_bytes=self.packet_size,
            payload=seq,
        )
        self.sent += 1
        self.send_times.append(self.scheduler.now)
        self._outstanding[seq] = self.scheduler.now

        client_logger.info(f"At time {self._now_s():g}s client sent {self.packet_size} bytes "
                           f"to {self.remote_address} port {self.remote_port}")
        interface.send(datagram)

        if self.max_packets == 0 or self.sent < self.max_packets:
            self._send_event = self.scheduler.schedule(
                self.interval_us, self._send, label=f"UdpEchoClient[{self.node.node_id}]::Send")

    def _handle_reply(self, datagram: Datagram, interface: 'WirelessInterface'):
        client_logger.info(f"At time {self._now_s():g}s client received {datagram.size_bytes} bytes "
                           f"from {datagram.src_address} port {datagram.src_port}")
        sent_us = self._outstanding.pop(datagram.payload, None)
        if sent_us is not None:
            self.round_trips.append(RoundTrip(datagram.payload, sent_us, self.scheduler.now))


def _ephemeral_port(node: 'Node') -> int:
    port = EPHEMERAL_PORT_START
    while node.is_bound(port):
        port += 1
    return port
