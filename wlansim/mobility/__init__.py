"""
wlansim.mobility - Node placement and movement
"""

from wlansim.mobility.position import GridLayoutConfig, GridPositionAllocator
from wlansim.mobility.models import (
    ConstantPositionModel, MobilityConfig, MobilityModel, RandomWalk2dModel, Rectangle, node_rng,
)

__all__ = [
    'GridLayoutConfig',
    'GridPositionAllocator',
    'ConstantPositionModel',
    'MobilityConfig',
    'MobilityModel',
    'RandomWalk2dModel',
    'Rectangle',
    'node_rng',
]
