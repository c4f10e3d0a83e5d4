"""
channel.py - Shared Wireless Medium

Delivers datagrams between interfaces attached to the same channel.

DESIGN PHILOSOPHY:
- Stand-in for the PHY/MAC layers: no propagation-loss physics, no contention
- Deterministic delay: transmission time + propagation time
- Optional range cut-off (frames between nodes farther apart are dropped)
- Role/SSID compatibility decides who can hear whom

Delay model (microseconds, rounded up):
    transmission = (size_bytes + overhead_bytes) * 8 / data_rate_mbps
    propagation  = distance_m / speed_of_light
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, TYPE_CHECKING

from wlansim.network.metrics import NetworkMetrics
from wlansim.network.node import NetworkRole

if TYPE_CHECKING:
    from wlansim.harness.scheduler import Scheduler
    from wlansim.network.node import Datagram, WirelessInterface

logger = logging.getLogger(__name__)

SPEED_OF_LIGHT_M_S = 299_792_458.0

TX = "tx"
RX = "rx"


@dataclass
class ChannelConfig:
    """
    Wireless channel parameters.

    Attributes:
        number: Channel identifier; interfaces on different channels never hear each other
        data_rate_mbps: Constant PHY data rate
        overhead_bytes: UDP/IP/MAC header bytes added to every datagram
        max_range_m: Frames between nodes farther apart are dropped (None = unlimited)
    """
    number: int = 1
    data_rate_mbps: float = 54.0
    overhead_bytes: int = 64
    max_range_m: Optional[float] = None

    def __post_init__(self):
        """Validate channel configuration."""
        if self.data_rate_mbps <= 0:
            raise ValueError(f"data_rate_mbps must be positive, got {self.data_rate_mbps}")

        if self.overhead_bytes < 0:
            raise ValueError(f"overhead_bytes must be non-negative, got {self.overhead_bytes}")

        if self.max_range_m is not None and self.max_range_m <= 0:
            raise ValueError(f"max_range_m must be positive, got {self.max_range_m}")


def can_hear(a: 'WirelessInterface', b: 'WirelessInterface') -> bool:
    """True if frames from interface a can reach interface b."""
    if a.channel is not b.channel:
        return False
    adhoc_a = a.role is NetworkRole.ADHOC_PEER
    adhoc_b = b.role is NetworkRole.ADHOC_PEER
    if adhoc_a or adhoc_b:
        return adhoc_a and adhoc_b
    return a.ssid == b.ssid


class WirelessChannel:
    """
    Shared medium connecting wireless interfaces.

    Capture taps registered on an interface see every frame the interface
    sends (direction "tx") and every delivered frame it can hear, addressed
    to it or not (direction "rx").
    """

    def __init__(self, scheduler: 'Scheduler', config: Optional[ChannelConfig] = None):
        self.scheduler = scheduler
        self.config = config or ChannelConfig()
        self.interfaces: List['WirelessInterface'] = []
        self.metrics = NetworkMetrics()
        self._taps: Dict[int, Tuple['WirelessInterface', List[Callable]]] = {}
        self._next_uid = 0

    def attach(self, interface: 'WirelessInterface'):
        self.interfaces.append(interface)

    def add_tap(self, interface: 'WirelessInterface',
                callback: Callable[[str, 'WirelessInterface', 'Datagram', int], None]):
        """Register callback(direction, interface, datagram, time_us) for an interface."""
        self._taps.setdefault(id(interface), (interface, []))[1].append(callback)

    def _tap_tx(self, src: 'WirelessInterface', datagram: 'Datagram'):
        if id(src) in self._taps:
            for callback in self._taps[id(src)][1]:
                callback(TX, src, datagram, self.scheduler.now)

    def _tap_rx(self, src: 'WirelessInterface', datagram: 'Datagram'):
        for interface, callbacks in self._taps.values():
            if interface is src or not can_hear(src, interface):
                continue
            for callback in callbacks:
                callback(RX, interface, datagram, self.scheduler.now)

    def find_interface(self, address: str) -> Optional['WirelessInterface']:
        for interface in self.interfaces:
            if interface.address == address:
                return interface
        return None

    def transmission_delay_us(self, size_bytes: int) -> int:
        bits = (size_bytes + self.config.overhead_bytes) * 8
        return math.ceil(bits / self.config.data_rate_mbps)

    def propagation_delay_us(self, distance_m: float) -> int:
        return math.ceil(distance_m / SPEED_OF_LIGHT_M_S * 1_000_000)

    def transmit(self, src: 'WirelessInterface', datagram: 'Datagram') -> bool:
        """
        Send a datagram from src towards datagram.dst_address.

        Returns:
            True if delivery was scheduled, False if the frame was dropped
        """
        datagram.uid = self._next_uid
        self._next_uid += 1
        datagram.sent_time_us = self.scheduler.now
        self.metrics.record_sent()
        self._tap_tx(src, datagram)

        dst = self.find_interface(datagram.dst_address)
        if dst is None or not can_hear(src, dst):
            logger.debug(f"Dropping datagram {datagram.uid}: {datagram.dst_address} unreachable "
                         f"from {src.address}")
            self.metrics.record_dropped()
            return False

        distance = math.dist(src.node.get_position(), dst.node.get_position())
        if self.config.max_range_m is not None and distance > self.config.max_range_m:
            logger.debug(f"Dropping datagram {datagram.uid}: distance {distance:.1f}m out of range")
            self.metrics.record_dropped()
            return False

        delay_us = self.transmission_delay_us(datagram.size_bytes) + self.propagation_delay_us(distance)
        self.scheduler.schedule(delay_us, self._deliver, src, dst, datagram,
                                label=f"Channel{self.config.number}::Deliver")
        return True

    def _deliver(self, src: 'WirelessInterface', dst: 'WirelessInterface', datagram: 'Datagram'):
        latency_us = self.scheduler.now - datagram.sent_time_us
        self.metrics.record_delivered(latency_us, datagram.size_bytes)
        self._tap_rx(src, datagram)
        dst.receive(datagram)

    def dispose(self):
        self._taps = {}
        self.interfaces = []
