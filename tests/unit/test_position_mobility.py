#!/usr/bin/env python3
"""
test_position_mobility.py - Unit Tests for Grid Placement and Mobility

Tests the grid position allocator and the bounded random walk.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from wlansim.harness.scheduler import Scheduler, seconds_to_us, us_to_seconds
from wlansim.mobility.models import (
    ConstantPositionModel, MobilityConfig, RandomWalk2dModel, Rectangle, node_rng,
)
from wlansim.mobility.position import GridLayoutConfig, GridPositionAllocator


def test_row_first_grid_formula():
    """Node i maps to (min_x + (i mod w) * dx, min_y + floor(i / w) * dy)."""
    config = GridLayoutConfig(min_x=0.0, min_y=0.0, delta_x=5.0, delta_y=10.0, grid_width=3)
    allocator = GridPositionAllocator(config)

    for i in range(config.capacity):
        expected = (0.0 + (i % 3) * 5.0, 0.0 + (i // 3) * 10.0)
        assert allocator.next() == expected
        assert allocator.position_for(i) == expected


def test_grid_with_offset_origin():
    """The grid starts at (min_x, min_y)."""
    config = GridLayoutConfig(min_x=-20.0, min_y=7.5, delta_x=2.0, delta_y=3.0, grid_width=4)
    allocator = GridPositionAllocator(config)

    positions = [allocator.next() for _ in range(6)]
    assert positions == [(-20.0, 7.5), (-18.0, 7.5), (-16.0, 7.5), (-14.0, 7.5),
                         (-20.0, 10.5), (-18.0, 10.5)]


def test_column_first_grid():
    """Column-first layout fills columns before rows."""
    config = GridLayoutConfig(delta_x=5.0, delta_y=10.0, grid_width=3, layout_type="column_first")
    allocator = GridPositionAllocator(config)

    positions = [allocator.next() for _ in range(4)]
    assert positions == [(0.0, 0.0), (0.0, 10.0), (0.0, 20.0), (5.0, 0.0)]


def test_allocator_reset():
    """reset() restarts at the first cell."""
    allocator = GridPositionAllocator(GridLayoutConfig())
    allocator.next()
    allocator.next()
    allocator.reset()
    assert allocator.next() == (0.0, 0.0)


def test_capacity_and_extent():
    """A 3-wide grid with 6 rows holds 18 nodes inside [0, 10] x [0, 50]."""
    config = GridLayoutConfig(delta_x=5.0, delta_y=10.0, grid_width=3, max_rows=6)

    assert config.capacity == 18
    assert config.extent() == (0.0, 10.0, 0.0, 50.0)


def test_invalid_layout_config():
    """Bad layout parameters fail at construction."""
    with pytest.raises(ValueError, match="grid_width"):
        GridLayoutConfig(grid_width=0)

    with pytest.raises(ValueError, match="layout_type"):
        GridLayoutConfig(layout_type="diagonal")

    with pytest.raises(ValueError, match="max_rows"):
        GridLayoutConfig(max_rows=0)

    with pytest.raises(ValueError):
        GridPositionAllocator(GridLayoutConfig()).position_for(-1)


def test_rectangle_validation():
    """Rectangle rejects inverted bounds."""
    with pytest.raises(ValueError):
        Rectangle(10, 0, 0, 10)

    with pytest.raises(ValueError):
        Rectangle(0, 10, 5, -5)

    box = Rectangle(-1, 1, -2, 2)
    assert box.contains(1, -2)
    assert not box.contains(1.01, 0)
    assert box.clamp(5, -5) == (1, -2)


def test_mobility_config_validation():
    """Mobility config rejects unknown models and bad speed ranges."""
    with pytest.raises(ValueError, match="model"):
        MobilityConfig(model="teleport")

    with pytest.raises(ValueError, match="speed"):
        MobilityConfig(speed_min=5.0, speed_max=1.0)

    with pytest.raises(ValueError, match="mode"):
        MobilityConfig(mode="forever")


def test_constant_position():
    """A static node never moves."""
    model = ConstantPositionModel((3.0, 4.0))
    assert model.get_position() == (3.0, 4.0)

    changes = []
    model.add_course_change_listener(lambda m: changes.append(m.get_position()))
    model.set_position((1.0, 2.0))
    assert changes == [(1.0, 2.0)]


def _raw_position(model: RandomWalk2dModel):
    """Unclamped position on the current segment."""
    elapsed_s = us_to_seconds(model.scheduler.now - model._origin_time_us)
    vx, vy = model.velocity
    return (model._origin[0] + vx * elapsed_s, model._origin[1] + vy * elapsed_s)


def _walk_and_sample(bounds: Rectangle, seed: int, duration_s: float = 60.0, **kwargs):
    scheduler = Scheduler()
    model = RandomWalk2dModel(scheduler, (0.5, 0.5), bounds, rng=node_rng(0, seed), **kwargs)
    samples = []

    def sample():
        samples.append(_raw_position(model))
        scheduler.schedule(seconds_to_us(0.01), sample)

    model.start()
    scheduler.schedule_now(sample)
    scheduler.stop(seconds_to_us(duration_s))
    scheduler.run()
    return model, samples


def test_random_walk_stays_inside_bounds():
    """The trajectory never leaves the rectangle (small box forces many rebounds)."""
    bounds = Rectangle(0.0, 2.0, 0.0, 2.0)
    tolerance = 1e-4

    model, samples = _walk_and_sample(bounds, seed=7)

    assert len(samples) > 5000
    for x, y in samples:
        assert bounds.x_min - tolerance <= x <= bounds.x_max + tolerance
        assert bounds.y_min - tolerance <= y <= bounds.y_max + tolerance

    assert bounds.contains(*model.get_position())
    assert model.course_changes > 10


def test_random_walk_time_mode_stays_inside_bounds():
    """Time mode walks for a fixed duration, still bounded."""
    bounds = Rectangle(-1.0, 1.0, -1.0, 1.0)
    model, samples = _walk_and_sample(bounds, seed=3, mode="time", time_s=2.0,
                                      speed_range=(5.0, 10.0))
    for x, y in samples:
        assert -1.0001 <= x <= 1.0001
        assert -1.0001 <= y <= 1.0001


def test_random_walk_moves_and_is_deterministic():
    """Same seed gives the same trajectory, a different seed a different one."""
    bounds = Rectangle(-90.0, 90.0, -90.0, 90.0)

    _, first = _walk_and_sample(bounds, seed=1, duration_s=5.0)
    _, second = _walk_and_sample(bounds, seed=1, duration_s=5.0)
    _, other = _walk_and_sample(bounds, seed=2, duration_s=5.0)

    assert first == second
    assert first != other
    assert first[-1] != (0.5, 0.5)


def test_random_walk_position_before_start():
    """Before the first walk the node sits at its allocated position."""
    scheduler = Scheduler()
    model = RandomWalk2dModel(scheduler, (5.0, 10.0), Rectangle(-90, 90, -90, 90),
                              rng=node_rng(1, 1))
    assert model.get_position() == (5.0, 10.0)
    assert model.velocity == (0.0, 0.0)


def test_random_walk_rejects_outside_start():
    """The initial position must lie inside the bounds."""
    with pytest.raises(ValueError, match="outside"):
        RandomWalk2dModel(Scheduler(), (100.0, 0.0), Rectangle(-90, 90, -90, 90), rng=node_rng(0, 1))


def test_dispose_cancels_pending_walk():
    """Disposing a walking model withdraws its scheduled walk event."""
    scheduler = Scheduler()
    model = RandomWalk2dModel(scheduler, (0.0, 0.0), Rectangle(-90, 90, -90, 90), rng=node_rng(0, 1))
    model.start()
    assert scheduler.pending_count == 1

    model.dispose()
    assert scheduler.pending_count == 0


def test_node_rng_independent_of_process_hash():
    """Per-node streams derive from SHA-256, so they are reproducible."""
    assert node_rng(3, 42).random() == node_rng(3, 42).random()
    assert node_rng(3, 42).random() != node_rng(4, 42).random()
