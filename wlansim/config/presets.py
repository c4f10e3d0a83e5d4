"""
presets.py - Built-in Scenarios

The two reference scenarios, available without a YAML file:

adhoc:
    5 ad-hoc nodes on a 3-wide grid (5 m x 10 m spacing) random-walking in
    [-90, 90] x [-90, 90], addressed from 192.168.1.0/24. Echo server on
    node 0 port 20 for [1, 10) s; clients on node 3 ([1, 3) s) and node 4
    ([2, 5) s), 2 x 512-byte packets at 1 s intervals. Capture on node 1.

infrastructure:
    Node 0 is the access point (fixed position, SSID "EECE5155"), nodes 1-4
    are random-walking stations, addressed from 192.168.2.0/24. Echo server
    on the access point port 21 for [1, 10) s; clients on node 3 ([3, 10) s,
    2 s interval) and node 4 ([2, 10) s, 3 s interval). Captures on the
    access point and on node 4.
"""

from typing import Callable, Dict

from wlansim.config.scenario import (
    AddressingConfig, CaptureConfig, ClientConfig, Scenario, ServerConfig,
)
from wlansim.mobility.models import MobilityConfig, Rectangle
from wlansim.mobility.position import GridLayoutConfig
from wlansim.network.topology import ADHOC, INFRASTRUCTURE, TopologyConfig


def _grid() -> GridLayoutConfig:
    return GridLayoutConfig(min_x=0.0, min_y=0.0, delta_x=5.0, delta_y=10.0,
                            grid_width=3, layout_type="row_first", max_rows=6)


def _walk() -> MobilityConfig:
    return MobilityConfig(model="random_walk", bounds=Rectangle(-90.0, 90.0, -90.0, 90.0))


def adhoc_preset(n_wifi: int = 5) -> Scenario:
    return Scenario(
        stop_time_s=10.0,
        seed=1,
        topology=TopologyConfig(mode=ADHOC, n_wifi=n_wifi),
        layout=_grid(),
        mobility=_walk(),
        addressing=AddressingConfig("192.168.1.0", "255.255.255.0"),
        servers=[ServerConfig(node=0, port=20, start_s=1.0, stop_s=10.0)],
        clients=[
            ClientConfig(node=3, destination=0, port=20, start_s=1.0, stop_s=3.0,
                         max_packets=2, interval_s=1.0, packet_size=512),
            ClientConfig(node=4, destination=0, port=20, start_s=2.0, stop_s=5.0,
                         max_packets=2, interval_s=1.0, packet_size=512),
        ],
        captures=[CaptureConfig(node=1, prefix="third_1_rts")],
    )


def infrastructure_preset(n_wifi: int = 5) -> Scenario:
    return Scenario(
        stop_time_s=10.0,
        seed=1,
        topology=TopologyConfig(mode=INFRASTRUCTURE, n_wifi=n_wifi, ssid="EECE5155"),
        layout=_grid(),
        mobility=_walk(),
        addressing=AddressingConfig("192.168.2.0", "255.255.255.0"),
        servers=[ServerConfig(node=0, port=21, start_s=1.0, stop_s=10.0)],
        clients=[
            ClientConfig(node=3, destination=0, port=21, start_s=3.0, stop_s=10.0,
                         max_packets=2, interval_s=2.0, packet_size=512),
            ClientConfig(node=4, destination=0, port=21, start_s=2.0, stop_s=10.0,
                         max_packets=2, interval_s=3.0, packet_size=512),
        ],
        captures=[
            CaptureConfig(node=0, prefix="third_2i"),
            CaptureConfig(node=4, prefix="third_2ii"),
        ],
    )


PRESETS: Dict[str, Callable[..., Scenario]] = {
    'adhoc': adhoc_preset,
    'infrastructure': infrastructure_preset,
}
