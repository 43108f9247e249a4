"""Spatial indexing for efficient proximity queries."""

import math
from collections import defaultdict
from typing import Dict, Iterable, List, Tuple

from formation.config.field import DEFAULT_CELL_SIZE, DEFAULT_QUERY_RADIUS
from formation.exceptions import ConfigurationError
from formation.models import Agent

Cell = Tuple[int, int]


class SpatialIndex:
    """
    Uniform-grid partition of the plane for radius queries.

    Each agent is bucketed by the cell containing its position. A radius
    query only visits the cells overlapping the query's bounding square,
    so the number of distance calculations depends on local density rather
    than on the total number of agents.

    The grid is unbounded: cell keys are ``floor(coord / cell_size)``, so
    off-pitch positions are indexed like any other.
    """

    def __init__(self, cell_size: float = DEFAULT_CELL_SIZE):
        """
        Initialize the spatial index.

        Args:
            cell_size: Side length of each square cell (default 50, i.e.
                a 2x2 grid over the 100x100 pitch)
        """
        if cell_size <= 0:
            raise ConfigurationError(f"cell_size must be positive, got {cell_size}")
        self.cell_size = cell_size

        # Grid storage: (col, row) -> agents in that cell
        self.grid: Dict[Cell, List[Agent]] = defaultdict(list)
        self._count = 0

    def __len__(self) -> int:
        return self._count

    @property
    def cell_count(self) -> int:
        """Number of non-empty cells."""
        return len(self.grid)

    def bucket_sizes(self) -> Dict[Cell, int]:
        """Occupancy of every non-empty cell."""
        return {cell: len(agents) for cell, agents in self.grid.items()}

    def _get_cell(self, x: float, y: float) -> Cell:
        """Get the grid cell coordinates for a position."""
        cs = self.cell_size
        return (math.floor(x / cs), math.floor(y / cs))

    def _get_cell_range(self, x: float, y: float, radius: float) -> Tuple[int, int, int, int]:
        """Get the cell range covering the bounding square of a radius query.

        Returns:
            Tuple of (min_col, max_col, min_row, max_row)
        """
        cs = self.cell_size
        min_col = math.floor((x - radius) / cs)
        max_col = math.floor((x + radius) / cs)
        min_row = math.floor((y - radius) / cs)
        max_row = math.floor((y + radius) / cs)
        return (min_col, max_col, min_row, max_row)

    def insert(self, agent: Agent) -> None:
        """Add an agent to the cell containing its position."""
        cell = self._get_cell(agent.position.x, agent.position.y)
        self.grid[cell].append(agent)
        self._count += 1

    def insert_all(self, agents: Iterable[Agent]) -> None:
        for agent in agents:
            self.insert(agent)

    def query(self, x: float, y: float, radius: float = DEFAULT_QUERY_RADIUS) -> List[Agent]:
        """
        Find all agents within ``radius`` of ``(x, y)`` (boundary inclusive).

        Candidates come from the cells overlapping the bounding square; each
        is then filtered by true Euclidean distance. Order is unspecified.
        """
        results: List[Agent] = []
        grid = self.grid
        radius_sq = radius * radius
        min_col, max_col, min_row, max_row = self._get_cell_range(x, y, radius)

        for col in range(min_col, max_col + 1):
            for row in range(min_row, max_row + 1):
                # .get() avoids materialising empty buckets in the defaultdict
                cell_agents = grid.get((col, row))
                if not cell_agents:
                    continue
                for agent in cell_agents:
                    dx = agent.position.x - x
                    dy = agent.position.y - y
                    if dx * dx + dy * dy <= radius_sq:
                        results.append(agent)

        return results

    def clear(self) -> None:
        """Drop every bucket. The index stays usable afterwards."""
        self.grid.clear()
        self._count = 0
