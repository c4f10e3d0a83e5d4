"""
position.py - Grid Position Allocator

Deterministic grid placement of nodes.

Row-first layout (grid_width = 3):

    0   1   2        y = min_y
    3   4   5        y = min_y + delta_y
    6   7   8        y = min_y + 2 * delta_y

Node i lands at (min_x + (i mod w) * delta_x, min_y + floor(i / w) * delta_y).
Column-first swaps the roles of the two axes.
"""

from dataclasses import dataclass
from typing import Tuple

ROW_FIRST = "row_first"
COLUMN_FIRST = "column_first"

Position = Tuple[float, float]


@dataclass
class GridLayoutConfig:
    """
    Grid layout parameters.

    Attributes:
        min_x: X coordinate of the first grid cell
        min_y: Y coordinate of the first grid cell
        delta_x: Spacing between columns (meters)
        delta_y: Spacing between rows (meters)
        grid_width: Cells per row (row_first) or per column (column_first)
        layout_type: "row_first" or "column_first"
        max_rows: Number of grid lines that fit the mobility bounds
    """
    min_x: float = 0.0
    min_y: float = 0.0
    delta_x: float = 5.0
    delta_y: float = 10.0
    grid_width: int = 3
    layout_type: str = ROW_FIRST
    max_rows: int = 6

    def __post_init__(self):
        """Validate layout configuration."""
        if self.grid_width < 1:
            raise ValueError(f"grid_width must be at least 1, got {self.grid_width}")

        if self.max_rows < 1:
            raise ValueError(f"max_rows must be at least 1, got {self.max_rows}")

        if self.layout_type not in [ROW_FIRST, COLUMN_FIRST]:
            raise ValueError(
                f"layout_type must be '{ROW_FIRST}' or '{COLUMN_FIRST}', got '{self.layout_type}'"
            )

    @property
    def capacity(self) -> int:
        """Largest node count the grid can hold without leaving its bounds."""
        return self.grid_width * self.max_rows

    def extent(self) -> Tuple[float, float, float, float]:
        """(x_min, x_max, y_min, y_max) covered by a fully populated grid."""
        if self.layout_type == ROW_FIRST:
            columns, rows = self.grid_width, self.max_rows
        else:
            columns, rows = self.max_rows, self.grid_width
        x_far = self.min_x + (columns - 1) * self.delta_x
        y_far = self.min_y + (rows - 1) * self.delta_y
        return (min(self.min_x, x_far), max(self.min_x, x_far),
                min(self.min_y, y_far), max(self.min_y, y_far))


class GridPositionAllocator:
    """
    Hands out grid positions in call order.

    The only state is the index of the next cell; position_for() is a pure
    function of the index. Callers must check node count against
    config.capacity before allocating.
    """

    def __init__(self, config: GridLayoutConfig):
        self.config = config
        self.current = 0

    def position_for(self, index: int) -> Position:
        """Grid coordinate of the index-th cell."""
        if index < 0:
            raise ValueError(f"index must be non-negative, got {index}")

        cfg = self.config
        major, minor = divmod(index, cfg.grid_width)
        if cfg.layout_type == ROW_FIRST:
            return (cfg.min_x + minor * cfg.delta_x, cfg.min_y + major * cfg.delta_y)
        return (cfg.min_x + major * cfg.delta_x, cfg.min_y + minor * cfg.delta_y)

    def next(self) -> Position:
        """Return the next grid position and advance the index."""
        position = self.position_for(self.current)
        self.current += 1
        return position

    def reset(self):
        """Restart allocation at the first cell."""
        self.current = 0
