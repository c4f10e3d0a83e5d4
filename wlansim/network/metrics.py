"""
metrics.py - Network Metrics

Channel-wide packet counters and latency statistics.

DESIGN PHILOSOPHY:
- Simple counters and statistics
- Network-wide totals (not per-link)
- Easy to serialize to CSV
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional


@dataclass
class NetworkMetrics:
    """
    Network performance metrics.

    Tracks frame-level statistics for one wireless channel:
    - Frame counts (sent, delivered, dropped)
    - Latency statistics (min, max, average) in microseconds
    """

    packets_sent: int = 0
    packets_delivered: int = 0
    packets_dropped: int = 0
    bytes_delivered: int = 0
    total_latency_us: int = 0  # Sum of all latencies (for average calculation)
    min_latency_us: Optional[int] = None
    max_latency_us: Optional[int] = None

    def average_latency_us(self) -> float:
        """Average latency across delivered packets (0.0 if none)."""
        if self.packets_delivered == 0:
            return 0.0
        return self.total_latency_us / self.packets_delivered

    def record_sent(self):
        self.packets_sent += 1

    def record_delivered(self, latency_us: int, size_bytes: int = 0):
        """
        Record a packet being delivered.

        Args:
            latency_us: Latency for this packet in microseconds
            size_bytes: Payload size of the packet
        """
        self.packets_delivered += 1
        self.bytes_delivered += size_bytes
        self.total_latency_us += latency_us

        if self.min_latency_us is None or latency_us < self.min_latency_us:
            self.min_latency_us = latency_us

        if self.max_latency_us is None or latency_us > self.max_latency_us:
            self.max_latency_us = latency_us

    def record_dropped(self):
        self.packets_dropped += 1

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['average_latency_us'] = self.average_latency_us()
        return data
