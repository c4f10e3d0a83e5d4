"""
controller.py - Capture Controller

Arms frame capture on selected interfaces before the run starts.

The controller only decides WHICH interfaces are captured and WHAT the
artifacts are called ("{prefix}-{node_id}-{interface_index}"). Recording is
done by a capture engine, which receives the request list verbatim once, when
the scheduler starts running. The default engine, FrameLog, keeps frame
summaries in memory and can write one CSV file per artifact.
"""

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from wlansim.harness.scheduler import Scheduler
    from wlansim.network.node import Datagram, WirelessInterface

logger = logging.getLogger(__name__)


class CaptureError(Exception):
    """Raised when capture is armed after the run has started."""
    pass


@dataclass
class CaptureRequest:
    """One interface marked for capture."""
    interface: 'WirelessInterface'
    prefix: str
    enabled: bool = True

    @property
    def artifact_name(self) -> str:
        return f"{self.prefix}-{self.interface.node.node_id}-{self.interface.index}"


@dataclass(frozen=True)
class FrameRecord:
    """Summary of one captured frame."""
    time_us: int
    direction: str
    uid: int
    src: str
    dst: str
    size_bytes: int


@dataclass
class FrameLog:
    """
    In-memory capture engine.

    Attributes:
        frames: artifact name -> captured frames, in capture order
    """
    frames: Dict[str, List[FrameRecord]] = field(default_factory=dict)
    requests: List[CaptureRequest] = field(default_factory=list)

    def start(self, requests: List[CaptureRequest]):
        """Receive the armed requests and tap their interfaces."""
        self.requests = list(requests)
        for request in self.requests:
            if not request.enabled:
                continue
            name = request.artifact_name
            self.frames.setdefault(name, [])
            request.interface.channel.add_tap(
                request.interface,
                lambda direction, iface, datagram, time_us, name=name:
                    self._record(name, direction, datagram, time_us),
            )

    def _record(self, name: str, direction: str, datagram: 'Datagram', time_us: int):
        self.frames[name].append(FrameRecord(
            time_us=time_us,
            direction=direction,
            uid=datagram.uid,
            src=f"{datagram.src_address}:{datagram.src_port}",
            dst=f"{datagram.dst_address}:{datagram.dst_port}",
            size_bytes=datagram.size_bytes,
        ))

    def write_csv(self, output_dir: Path) -> List[Path]:
        """Write one <artifact>.csv per armed interface. Returns the written paths."""
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        paths = []
        for name, records in self.frames.items():
            path = output_dir / f"{name}.csv"
            with open(path, 'w', newline='') as f:
                writer = csv.writer(f)
                writer.writerow(['time_us', 'direction', 'uid', 'src', 'dst', 'size_bytes'])
                for r in records:
                    writer.writerow([r.time_us, r.direction, r.uid, r.src, r.dst, r.size_bytes])
            paths.append(path)
            logger.info(f"Wrote {len(records)} frames to {path}")
        return paths


class CaptureController:
    """
    Collects capture requests and hands them to the engine at run start.

    Usage:
        capture = CaptureController(scheduler)
        capture.arm(topology.interface_of(1), "third_1_rts")
        engine = capture.attach()        # FrameLog by default
        scheduler.run()
    """

    def __init__(self, scheduler: 'Scheduler'):
        self.scheduler = scheduler
        self.requests: List[CaptureRequest] = []
        self.engine = None

    def arm(self, interface: 'WirelessInterface', prefix: str) -> CaptureRequest:
        """
        Mark interface for capture.

        Raises:
            CaptureError: If the scheduler has already started running
        """
        if self.scheduler.has_started():
            raise CaptureError("Capture must be armed before the simulation runs")
        if not prefix:
            raise ValueError("Capture prefix must be non-empty")

        request = CaptureRequest(interface=interface, prefix=prefix)
        self.requests.append(request)
        return request

    def attach(self, engine: Optional[object] = None):
        """
        Register the capture engine; it receives the request list when run() starts.

        The engine must provide start(requests).
        """
        if self.scheduler.has_started():
            raise CaptureError("Capture engine must be attached before the simulation runs")
        if self.engine is not None:
            raise CaptureError("A capture engine is already attached")

        self.engine = engine if engine is not None else FrameLog()
        self.scheduler.on_run(lambda: self.engine.start(self.requests))
        return self.engine

    def artifact_names(self) -> List[str]:
        return [r.artifact_name for r in self.requests if r.enabled]
