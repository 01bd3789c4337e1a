"""
Oxygen / carbon dioxide field on a coarse grid.

Each tick the field diffuses (every cell blends with the mean of its in-bounds
Moore neighbors), relaxes toward the baseline, and is clamped to [0, 100].
Organisms read and perturb individual cells through cell_at() / exchange().
"""

import math
import numpy as np
from typing import Optional, Tuple
from scipy.ndimage import convolve

from .data_types import GasKind
from .constants import GAS_MIN, GAS_MAX


# Moore neighborhood kernel (center excluded)
_MOORE_KERNEL = np.array([[1.0, 1.0, 1.0],
                          [1.0, 0.0, 1.0],
                          [1.0, 1.0, 1.0]], dtype=np.float64)

Cell = Tuple[int, int]


class GasField:
    """
    Grid of (oxygen, co2) cells covering the world.

    Grid dimensions are ceil(width / cell_size) x ceil(height / cell_size).
    Cells outside the grid do not exist; the field itself never wraps.
    """

    def __init__(
        self,
        width: float,
        height: float,
        cell_size: float,
        baseline: float = 50.0,
        retention: float = 0.95,
        relaxation: float = 0.001
    ):
        self.width = width
        self.height = height
        self.cell_size = cell_size
        self.baseline = baseline
        self.retention = retention
        self.relaxation = relaxation

        self.cols = int(math.ceil(width / cell_size))
        self.rows = int(math.ceil(height / cell_size))

        self.oxygen = np.full((self.rows, self.cols), baseline, dtype=np.float64)
        self.co2 = np.full((self.rows, self.cols), baseline, dtype=np.float64)

        # Neighbor count per cell is static: 8 inside, 5 on edges, 3 in corners
        self._neighbor_counts = convolve(
            np.ones((self.rows, self.cols), dtype=np.float64),
            _MOORE_KERNEL, mode='constant', cval=0.0
        )

    def reset(self):
        """Restore every cell to the baseline"""
        self.oxygen.fill(self.baseline)
        self.co2.fill(self.baseline)

    def layer(self, gas: GasKind) -> np.ndarray:
        """Return the (rows, cols) array for a gas (live view, not a copy)"""
        return self.oxygen if gas is GasKind.OXYGEN else self.co2

    def diffuse(self):
        """
        Advance diffusion by one tick.

        Double-buffered: neighbor sums are computed from the pre-diffusion
        grids in one convolution, so the sweep has no ordering bias.
        Cells with no in-bounds neighbors (1x1 grid) skip the blend.
        """
        has_neighbors = self._neighbor_counts > 0
        safe_counts = np.where(has_neighbors, self._neighbor_counts, 1.0)
        neighbor_weight = 1.0 - self.retention

        for grid in (self.oxygen, self.co2):
            neighbor_mean = convolve(grid, _MOORE_KERNEL, mode='constant', cval=0.0) / safe_counts
            blended = np.where(
                has_neighbors,
                grid * self.retention + neighbor_mean * neighbor_weight,
                grid
            )
            blended += (self.baseline - blended) * self.relaxation
            np.clip(blended, GAS_MIN, GAS_MAX, out=grid)

    def cell_at(self, position: np.ndarray) -> Optional[Cell]:
        """
        Map a world position to its grid cell.

        The far world edges (x == width, y == height, where edge wrapping
        places organisms) belong to the last column / row.

        Returns:
            (row, col), or None when the position falls outside the grid
        """
        col = math.floor(position[0] / self.cell_size)
        row = math.floor(position[1] / self.cell_size)
        if col == self.cols and position[0] <= self.width:
            col -= 1
        if row == self.rows and position[1] <= self.height:
            row -= 1
        if 0 <= row < self.rows and 0 <= col < self.cols:
            return row, col
        return None

    def sample(self, position: np.ndarray, gas: GasKind) -> Optional[float]:
        """Gas value at a world position, or None outside the grid"""
        cell = self.cell_at(position)
        if cell is None:
            return None
        return float(self.layer(gas)[cell])

    def value(self, cell: Cell, gas: GasKind) -> float:
        return float(self.layer(gas)[cell])

    def exchange(self, cell: Cell, consumed: GasKind, produced: Optional[GasKind],
                 consumed_amount: float, produced_amount: float):
        """
        Apply one organism's respiration to a cell.

        Debits consumed gas, then credits produced gas (None credits
        nothing); each value is clamped back into [0, 100].
        """
        consumed_layer = self.layer(consumed)
        consumed_layer[cell] = min(GAS_MAX, max(GAS_MIN, consumed_layer[cell] - consumed_amount))

        if produced is None:
            return
        produced_layer = self.layer(produced)
        produced_layer[cell] = min(GAS_MAX, max(GAS_MIN, produced_layer[cell] + produced_amount))

    @property
    def mean_oxygen(self) -> float:
        return float(self.oxygen.mean()) if self.oxygen.size else 0.0

    @property
    def mean_co2(self) -> float:
        return float(self.co2.mean()) if self.co2.size else 0.0

    def to_dict(self) -> dict:
        """
        Serialize grid to JSON-compatible dict.

        Returns:
            Dict with grid geometry and nested oxygen/co2 lists (row-major)
        """
        return {
            'rows': self.rows,
            'cols': self.cols,
            'cell_size': self.cell_size,
            'oxygen': self.oxygen.tolist(),
            'co2': self.co2.tolist()
        }
