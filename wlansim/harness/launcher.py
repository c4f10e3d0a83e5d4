#!/usr/bin/env python3
"""
launcher.py - Simulation Launcher

Owns the lifecycle of one simulation run:
- Validate the scenario (grid capacity, node references)
- Construct a fresh Scheduler
- Build the topology, install applications and captures
- Register the stop event, run, collect results
- Always destroy the scheduler (no leaked registrations between runs)

Design philosophy:
- Fail-fast during setup (validation before any node is created)
- One Scheduler per run, passed explicitly to every component
- Always tear down, also on errors
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from wlansim.apps.echo import RoundTrip
from wlansim.apps.traffic import TrafficScheduler
from wlansim.capture.controller import CaptureController, FrameLog
from wlansim.config.scenario import Scenario
from wlansim.harness.scheduler import Scheduler, TraceRecord, seconds_to_us, us_to_seconds
from wlansim.network.addressing import AddressBlock
from wlansim.network.topology import Topology, TopologyBuilder, check_grid_capacity

ECHO_LOGGERS = ["UdpEchoClientApplication", "UdpEchoServerApplication"]


def configure_logging(verbose: bool):
    """Enable INFO logging of the echo applications when verbose, WARNING otherwise."""
    logging.basicConfig(format="%(name)s: %(message)s")
    level = logging.INFO if verbose else logging.WARNING
    for name in ECHO_LOGGERS:
        logging.getLogger(name).setLevel(level)


@dataclass
class SimulationResult:
    """Results from simulation execution."""
    success: bool
    wall_time_s: float
    virtual_time_s: float
    events_executed: int = 0
    round_trips: Dict[int, List[RoundTrip]] = field(default_factory=dict)
    packets_sent: Dict[int, int] = field(default_factory=dict)
    network_metrics: Dict[str, float] = field(default_factory=dict)
    addresses: List[str] = field(default_factory=list)
    capture_artifacts: List[str] = field(default_factory=list)
    capture_files: List[Path] = field(default_factory=list)
    trace: List[TraceRecord] = field(default_factory=list)
    error_message: Optional[str] = None

    def total_round_trips(self) -> int:
        return sum(len(r) for r in self.round_trips.values())


class SimulationLauncher:
    """
    Runs one scenario from build to teardown.

    Usage:
        launcher = SimulationLauncher(scenario, output_dir=Path("out"))
        result = launcher.run()
    """

    def __init__(self, scenario: Scenario, output_dir: Optional[Path] = None):
        self.scenario = scenario
        self.output_dir = output_dir
        self.scheduler: Optional[Scheduler] = None
        self.topology: Optional[Topology] = None
        self.traffic: Optional[TrafficScheduler] = None
        self.capture: Optional[CaptureController] = None
        self.frame_log: Optional[FrameLog] = None

    def validate_scenario(self) -> List[str]:
        """
        Validate scenario before launch.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []
        s = self.scenario

        try:
            check_grid_capacity(s.topology.n_wifi, s.layout, s.mobility)
        except ValueError as e:
            errors.append(str(e))

        try:
            AddressBlock(s.addressing.base, s.addressing.mask)
        except ValueError as e:
            errors.append(str(e))

        return errors

    def build(self) -> Scheduler:
        """
        Construct scheduler, topology, applications and captures.

        Raises:
            GridCapacityError: If the node count does not fit the grid (nothing is built)
            ValueError: For other configuration errors
        """
        s = self.scenario
        check_grid_capacity(s.topology.n_wifi, s.layout, s.mobility)

        scheduler = Scheduler()
        self.scheduler = scheduler
        try:
            self._populate(scheduler)
        except Exception:
            scheduler.destroy()
            raise
        return scheduler

    def _populate(self, scheduler: Scheduler):
        s = self.scenario
        builder = TopologyBuilder(scheduler, seed=s.seed)
        block = AddressBlock(s.addressing.base, s.addressing.mask)
        topology = builder.build(s.topology, s.layout, s.mobility, block)
        self.topology = topology
        print(f"[Launcher] Built {s.topology.mode} topology with {len(topology.nodes)} nodes on {block}")

        traffic = TrafficScheduler(scheduler)
        for server in s.servers:
            traffic.schedule_server(
                topology.nodes.get(server.node), server.port,
                seconds_to_us(server.start_s), seconds_to_us(server.stop_s),
            )
        for client in s.clients:
            if isinstance(client.destination, int):
                remote = topology.address_of(client.destination)
            else:
                remote = client.destination
            traffic.schedule_client(
                topology.nodes.get(client.node), remote, client.port,
                seconds_to_us(client.start_s), seconds_to_us(client.stop_s),
                max_packets=client.max_packets,
                interval_us=seconds_to_us(client.interval_s),
                packet_size=client.packet_size,
            )
        self.traffic = traffic

        scheduler.stop(seconds_to_us(s.stop_time_s))

        capture = CaptureController(scheduler)
        if s.tracing:
            for request in s.captures:
                capture.arm(topology.interface_of(request.node, request.interface), request.prefix)
            self.frame_log = capture.attach(FrameLog())
            print(f"[Launcher] Capture armed on {len(capture.requests)} interface(s)")
        self.capture = capture

    def run(self) -> SimulationResult:
        """
        Build, run and tear down the scenario.

        Configuration errors raised while building propagate to the caller;
        failures during the run are reported in the result.
        """
        start_wall = time.time()
        scheduler = self.build()

        try:
            print(f"[Launcher] Running until t={self.scenario.stop_time_s:g}s (virtual time)")
            scheduler.run()
            result = self._collect(start_wall)

            if self.frame_log is not None and self.output_dir is not None:
                result.capture_files = self.frame_log.write_csv(self.output_dir)

            print(f"[Launcher] Simulation finished at t={result.virtual_time_s:g}s, "
                  f"{result.events_executed} events, {result.total_round_trips()} echo round trips")
            return result

        except Exception as e:
            return SimulationResult(
                success=False,
                wall_time_s=time.time() - start_wall,
                virtual_time_s=us_to_seconds(scheduler.now),
                events_executed=scheduler.events_executed,
                trace=list(scheduler.trace),
                error_message=f"{type(e).__name__}: {e}",
            )

        finally:
            scheduler.destroy()

    def _collect(self, start_wall: float) -> SimulationResult:
        scheduler = self.scheduler
        round_trips = {}
        packets_sent = {}
        for client in self.traffic.clients:
            node_id = client.node.node_id
            round_trips.setdefault(node_id, []).extend(client.round_trips)
            packets_sent[node_id] = packets_sent.get(node_id, 0) + client.sent

        return SimulationResult(
            success=True,
            wall_time_s=time.time() - start_wall,
            virtual_time_s=us_to_seconds(scheduler.now),
            events_executed=scheduler.events_executed,
            round_trips=round_trips,
            packets_sent=packets_sent,
            network_metrics=self.topology.channel.metrics.to_dict(),
            addresses=list(self.topology.addresses),
            capture_artifacts=self.capture.artifact_names(),
            trace=list(scheduler.trace),
        )


def run_scenario(scenario: Scenario, output_dir: Optional[Path] = None) -> SimulationResult:
    """Convenience wrapper: launch and run a scenario."""
    return SimulationLauncher(scenario, output_dir=output_dir).run()
