"""
models.py - Node Mobility Models

ConstantPositionModel: node stays where it was placed.
RandomWalk2dModel: bounded 2D random walk driven by scheduler events.

The random walk moves in straight segments. Each walk draws a speed and a
direction, then lasts either a fixed distance or a fixed time. A segment that
would cross the bounding rectangle is cut at the boundary, the velocity
component normal to the hit edge is reversed, and the walk continues with the
remaining time. Positions are computed lazily from the segment start:

    position(t) = start + velocity * (t - segment_start)
"""

import hashlib
import math
import random
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple, TYPE_CHECKING

from wlansim.harness.scheduler import seconds_to_us, us_to_seconds

if TYPE_CHECKING:
    from wlansim.harness.scheduler import EventId, Scheduler

Position = Tuple[float, float]

MODE_DISTANCE = "distance"
MODE_TIME = "time"

RANDOM_WALK = "random_walk"
CONSTANT = "constant"


@dataclass
class Rectangle:
    """Axis-aligned bounding box."""
    x_min: float
    x_max: float
    y_min: float
    y_max: float

    def __post_init__(self):
        if self.x_min > self.x_max:
            raise ValueError(f"Rectangle x_min ({self.x_min}) > x_max ({self.x_max})")
        if self.y_min > self.y_max:
            raise ValueError(f"Rectangle y_min ({self.y_min}) > y_max ({self.y_max})")

    def contains(self, x: float, y: float) -> bool:
        return self.x_min <= x <= self.x_max and self.y_min <= y <= self.y_max

    def clamp(self, x: float, y: float) -> Position:
        return (min(max(x, self.x_min), self.x_max),
                min(max(y, self.y_min), self.y_max))


@dataclass
class MobilityConfig:
    """
    Mobility policy for mobile nodes.

    Attributes:
        model: "random_walk" or "constant"
        bounds: Random walk rectangle
        speed_min / speed_max: Walk speed range (m/s)
        mode: "distance" (walk a fixed distance) or "time" (walk a fixed time)
        distance: Walk length in distance mode (m)
        time_s: Walk duration in time mode (s)
    """
    model: str = "random_walk"
    bounds: Rectangle = field(default_factory=lambda: Rectangle(-90.0, 90.0, -90.0, 90.0))
    speed_min: float = 2.0
    speed_max: float = 4.0
    mode: str = MODE_DISTANCE
    distance: float = 1.0
    time_s: float = 1.0

    def __post_init__(self):
        """Validate mobility configuration."""
        if self.model not in [RANDOM_WALK, CONSTANT]:
            raise ValueError(f"mobility.model must be '{RANDOM_WALK}' or '{CONSTANT}', got '{self.model}'")

        if self.mode not in [MODE_DISTANCE, MODE_TIME]:
            raise ValueError(f"mobility.mode must be '{MODE_DISTANCE}' or '{MODE_TIME}', got '{self.mode}'")

        if self.speed_min <= 0 or self.speed_min > self.speed_max:
            raise ValueError(
                f"mobility speed range must satisfy 0 < speed_min <= speed_max, "
                f"got [{self.speed_min}, {self.speed_max}]"
            )

        if self.distance <= 0:
            raise ValueError(f"mobility.distance must be positive, got {self.distance}")

        if self.time_s <= 0:
            raise ValueError(f"mobility.time_s must be positive, got {self.time_s}")


def node_rng(node_id: int, seed: int) -> random.Random:
    """
    Deterministic per-node random stream.

    IMPORTANT: Uses hashlib, not hash(), which is randomized per process.
    """
    hash_input = f"node_{node_id}_{seed}".encode('utf-8')
    hash_digest = hashlib.sha256(hash_input).digest()
    return random.Random(int.from_bytes(hash_digest[:8], 'big'))


class MobilityModel:
    """Base class: holds course-change listeners."""

    def __init__(self):
        self._listeners: List[Callable[['MobilityModel'], None]] = []
        self.course_changes = 0

    def get_position(self) -> Position:
        raise NotImplementedError

    def add_course_change_listener(self, callback: Callable[['MobilityModel'], None]):
        self._listeners.append(callback)

    def notify_course_change(self):
        self.course_changes += 1
        for listener in self._listeners:
            listener(self)

    def start(self):
        """Begin any time-driven behavior (no-op for static models)."""
        pass

    def dispose(self):
        """Release scheduled state (no-op for static models)."""
        self._listeners = []


class ConstantPositionModel(MobilityModel):
    """Static node: position fixed at allocation time."""

    def __init__(self, position: Position):
        super().__init__()
        self._position = (float(position[0]), float(position[1]))

    def get_position(self) -> Position:
        return self._position

    def set_position(self, position: Position):
        self._position = (float(position[0]), float(position[1]))
        self.notify_course_change()


class RandomWalk2dModel(MobilityModel):
    """
    Bounded 2D random walk.

    Usage:
        model = RandomWalk2dModel(scheduler, (0.0, 0.0), Rectangle(-90, 90, -90, 90),
                                  rng=node_rng(3, seed=1))
        model.start()      # first walk is drawn at the current simulated time
    """

    def __init__(self, scheduler: 'Scheduler', position: Position, bounds: Rectangle,
                 rng: random.Random, speed_range: Tuple[float, float] = (2.0, 4.0),
                 mode: str = MODE_DISTANCE, distance: float = 1.0, time_s: float = 1.0,
                 label: str = "RandomWalk2d"):
        super().__init__()

        if not bounds.contains(*position):
            raise ValueError(f"Initial position {position} is outside bounds {bounds}")
        if mode not in [MODE_DISTANCE, MODE_TIME]:
            raise ValueError(f"mode must be '{MODE_DISTANCE}' or '{MODE_TIME}', got '{mode}'")
        if speed_range[0] <= 0 or speed_range[0] > speed_range[1]:
            raise ValueError(f"speed_range must satisfy 0 < min <= max, got {speed_range}")

        self.scheduler = scheduler
        self.bounds = bounds
        self.rng = rng
        self.speed_range = speed_range
        self.mode = mode
        self.distance = distance
        self.time_us = seconds_to_us(time_s)
        self.label = label

        self._origin = (float(position[0]), float(position[1]))
        self._origin_time_us = scheduler.now
        self._velocity = (0.0, 0.0)
        self._event: Optional['EventId'] = None

    def get_position(self) -> Position:
        elapsed_s = us_to_seconds(self.scheduler.now - self._origin_time_us)
        x = self._origin[0] + self._velocity[0] * elapsed_s
        y = self._origin[1] + self._velocity[1] * elapsed_s
        return self.bounds.clamp(x, y)

    @property
    def velocity(self) -> Tuple[float, float]:
        return self._velocity

    def start(self):
        """Schedule the first walk at the current simulated time."""
        self._event = self.scheduler.schedule_now(self._draw_walk, label=self.label)

    def dispose(self):
        self.scheduler.cancel(self._event)
        self._event = None
        super().dispose()

    def _rebase(self):
        self._origin = self.get_position()
        self._origin_time_us = self.scheduler.now

    def _draw_walk(self):
        self._rebase()
        speed = self.rng.uniform(*self.speed_range)
        direction = self.rng.uniform(0.0, 2 * math.pi)
        self._velocity = (math.cos(direction) * speed, math.sin(direction) * speed)

        if self.mode == MODE_TIME:
            delay_left_us = self.time_us
        else:
            delay_left_us = seconds_to_us(self.distance / speed)
        self._walk(delay_left_us)

    def _walk(self, delay_left_us: int):
        x, y = self._origin
        vx, vy = self._velocity
        delay_s = us_to_seconds(delay_left_us)

        if self.bounds.contains(x + vx * delay_s, y + vy * delay_s):
            self._event = self.scheduler.schedule(delay_left_us, self._draw_walk, label=self.label)
        else:
            # Rounded up so the segment ends on the boundary (clamped), never short of it
            hit_us = min(math.ceil(self._time_to_boundary() * 1_000_000), delay_left_us)
            self._event = self.scheduler.schedule(
                hit_us, self._rebound, delay_left_us - hit_us, label=self.label
            )
        self.notify_course_change()

    def _time_to_boundary(self) -> float:
        x, y = self._origin
        vx, vy = self._velocity
        times = []
        if vx > 0:
            times.append((self.bounds.x_max - x) / vx)
        elif vx < 0:
            times.append((self.bounds.x_min - x) / vx)
        if vy > 0:
            times.append((self.bounds.y_max - y) / vy)
        elif vy < 0:
            times.append((self.bounds.y_min - y) / vy)
        return max(0.0, min(times)) if times else 0.0

    def _rebound(self, delay_left_us: int):
        self._rebase()
        x, y = self._origin
        vx, vy = self._velocity
        b = self.bounds
        if (x >= b.x_max and vx > 0) or (x <= b.x_min and vx < 0):
            vx = -vx
        if (y >= b.y_max and vy > 0) or (y <= b.y_min and vy < 0):
            vy = -vy
        self._velocity = (vx, vy)
        self._walk(delay_left_us)
