#!/usr/bin/env python3
"""
test_capture.py - Unit Tests for the Capture Controller

Tests artifact naming, the arm-before-run rule and the FrameLog engine.
"""

import csv
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from wlansim.apps.traffic import TrafficScheduler
from wlansim.capture.controller import CaptureController, CaptureError, FrameLog
from wlansim.harness.scheduler import Scheduler, seconds_to_us
from wlansim.mobility.models import ConstantPositionModel
from wlansim.network.addressing import AddressBlock
from wlansim.network.channel import RX, TX, WirelessChannel
from wlansim.network.node import NetworkRole, Node, WirelessInterface


class RecordingEngine:
    """Capture engine that only remembers what it was handed."""

    def __init__(self):
        self.calls = []

    def start(self, requests):
        self.calls.append(list(requests))


def _setup(n=3):
    scheduler = Scheduler()
    channel = WirelessChannel(scheduler)
    nodes = []
    for i in range(n):
        node = Node(i)
        node.mobility = ConstantPositionModel((5.0 * i, 0.0))
        nodes.append(node)
    interfaces = [WirelessInterface(node, channel, NetworkRole.ADHOC_PEER) for node in nodes]
    AddressBlock("192.168.1.0", "255.255.255.0").assign(interfaces)
    return scheduler, nodes, interfaces


def _one_exchange(scheduler, nodes):
    """Node 1 sends one echo request to node 0."""
    traffic = TrafficScheduler(scheduler)
    traffic.schedule_server(nodes[0], 20, 0, seconds_to_us(10))
    traffic.schedule_client(nodes[1], nodes[0].primary_address(), 20, seconds_to_us(1), seconds_to_us(10),
                            max_packets=1, interval_us=seconds_to_us(1), packet_size=512)
    scheduler.stop(seconds_to_us(10))


def test_artifact_name():
    scheduler, nodes, interfaces = _setup()
    capture = CaptureController(scheduler)

    request = capture.arm(interfaces[1], "third_1_rts")

    assert request.artifact_name == "third_1_rts-1-0"
    assert capture.artifact_names() == ["third_1_rts-1-0"]


def test_engine_receives_requests_verbatim_at_run():
    """The engine is started once, with the armed requests, when run() begins."""
    scheduler, nodes, interfaces = _setup()
    capture = CaptureController(scheduler)
    first = capture.arm(interfaces[0], "a")
    second = capture.arm(interfaces[2], "b")
    engine = RecordingEngine()

    assert capture.attach(engine) is engine
    assert engine.calls == []

    scheduler.run()
    assert engine.calls == [[first, second]]


def test_arm_after_run_raises():
    scheduler, nodes, interfaces = _setup()
    capture = CaptureController(scheduler)
    scheduler.run()

    with pytest.raises(CaptureError):
        capture.arm(interfaces[0], "late")

    with pytest.raises(CaptureError):
        capture.attach()


def test_attach_twice_raises():
    scheduler, nodes, interfaces = _setup()
    capture = CaptureController(scheduler)
    capture.attach()

    with pytest.raises(CaptureError, match="already attached"):
        capture.attach(RecordingEngine())


def test_empty_prefix_rejected():
    scheduler, nodes, interfaces = _setup()
    with pytest.raises(ValueError):
        CaptureController(scheduler).arm(interfaces[0], "")


def test_frame_log_records_own_and_overheard_frames():
    """A capture sees its own transmissions and, promiscuously, frames for others."""
    scheduler, nodes, interfaces = _setup()
    _one_exchange(scheduler, nodes)

    capture = CaptureController(scheduler)
    capture.arm(interfaces[1], "client")
    capture.arm(interfaces[2], "bystander")
    log = capture.attach()
    assert isinstance(log, FrameLog)

    scheduler.run()

    client_frames = log.frames["client-1-0"]
    assert [f.direction for f in client_frames] == [TX, RX]
    assert client_frames[0].size_bytes == 512
    assert client_frames[0].dst == "192.168.1.1:20"
    assert client_frames[1].src == "192.168.1.1:20"
    assert client_frames[0].time_us == 1_000_000

    # Node 2 is neither sender nor receiver but hears both frames
    bystander = log.frames["bystander-2-0"]
    assert [f.direction for f in bystander] == [RX, RX]
    assert [f.uid for f in bystander] == [f.uid for f in client_frames]


def test_write_csv(tmp_path):
    scheduler, nodes, interfaces = _setup()
    _one_exchange(scheduler, nodes)

    capture = CaptureController(scheduler)
    capture.arm(interfaces[0], "server")
    log = capture.attach()
    scheduler.run()

    paths = log.write_csv(tmp_path / "captures")

    assert paths == [tmp_path / "captures" / "server-0-0.csv"]
    with open(paths[0], newline='') as f:
        rows = list(csv.DictReader(f))
    assert [row['direction'] for row in rows] == [RX, TX]
    assert rows[0]['src'].startswith("192.168.1.2:")
    assert rows[0]['size_bytes'] == "512"


def test_no_capture_without_attach():
    """Arming alone records nothing; no taps are installed."""
    scheduler, nodes, interfaces = _setup()
    _one_exchange(scheduler, nodes)

    capture = CaptureController(scheduler)
    capture.arm(interfaces[1], "client")
    scheduler.run()

    assert interfaces[1].channel._taps == {}
