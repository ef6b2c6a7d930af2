"""Bounded-capacity uniform grid used for nearest neighbour lookups."""

import math
import numpy as np
from numba import njit
from typing import Optional, Tuple

from config import boids as config


BUCKET_CEIL = 0
BUCKET_FLOOR = 1

BUCKETING_MODES = {
    "ceil": BUCKET_CEIL,
    "floor": BUCKET_FLOOR,
}

# Occupancy is stored as int8
MAX_CAPACITY = 127


# ============================================================================
# NUMBA JIT-COMPILED GRID FUNCTIONS
# ============================================================================

@njit(cache=True)
def get_cell_coord(p: float, lower: float, size: float, dim: int, mode: int) -> int:
    """Bucket one coordinate along an axis, clamped to the grid."""
    t = (p - lower) / size
    if mode == BUCKET_CEIL:
        c = int(math.ceil(t))
    else:
        c = int(math.floor(t))
    return max(0, min(c, dim - 1))


@njit(cache=True)
def get_cell_index(
    x: float, y: float, z: float,
    lower: np.ndarray,
    cell_size: np.ndarray,
    dims: np.ndarray,
    mode: int
) -> int:
    """Convert 3D position to a row-major cell index."""
    cx = get_cell_coord(x, lower[0], cell_size[0], dims[0], mode)
    cy = get_cell_coord(y, lower[1], cell_size[1], dims[1], mode)
    cz = get_cell_coord(z, lower[2], cell_size[2], dims[2], mode)
    return cx * dims[1] * dims[2] + cy * dims[2] + cz


@njit(cache=True)
def reset_grid(counts: np.ndarray):
    """Mark every cell empty. Stale slot contents become unreachable."""
    for c in range(counts.shape[0]):
        counts[c] = 0


@njit(cache=True)
def insert_grid(counts: np.ndarray, slots: np.ndarray, capacity: int, cell: int, item: int) -> bool:
    """Append item to cell. Returns False when the cell is already full."""
    count = counts[cell]
    if count < capacity:
        slots[cell * capacity + count] = item
        counts[cell] = count + 1
        return True
    return False


# ============================================================================
# GRID CLASS
# ============================================================================

class SpatialGrid:
    """
    Uniform 3D bucket grid over an axis-aligned box.

    Every cell holds at most `capacity` ids in a preallocated flat slot
    array (cell * capacity + slot). Inserts into a full cell are dropped
    silently and counted in `dropped` until the next reset.
    """

    def __init__(
        self,
        lower,
        upper,
        cell_size,
        capacity: int = 8,
        bucketing: str = "ceil"
    ):
        self.lower = np.asarray(lower, dtype=np.float64).reshape(3).copy()
        self.upper = np.asarray(upper, dtype=np.float64).reshape(3).copy()
        self.cell_size = np.asarray(cell_size, dtype=np.float64).reshape(3).copy()

        if not np.all(self.lower < self.upper):
            raise ValueError(f"lower {self.lower} must be below upper {self.upper} on every axis")
        if not np.all(self.cell_size > 0):
            raise ValueError(f"cell_size {self.cell_size} must be positive on every axis")
        if not 1 <= int(capacity) <= MAX_CAPACITY:
            raise ValueError(f"capacity must be in [1, {MAX_CAPACITY}], got {capacity}")
        if bucketing not in BUCKETING_MODES:
            raise ValueError(f"unknown bucketing {bucketing!r}, expected one of {sorted(BUCKETING_MODES)}")

        self.capacity = int(capacity)
        self.bucketing = bucketing
        self.mode = BUCKETING_MODES[bucketing]

        self.dims = np.ceil((self.upper - self.lower) / self.cell_size).astype(np.int64)
        self.num_cells = int(self.dims[0] * self.dims[1] * self.dims[2])

        self.counts = np.zeros(self.num_cells, dtype=np.int8)
        self.slots = np.zeros(self.num_cells * self.capacity, dtype=np.int32)
        self.dropped = 0

    @classmethod
    def from_config(cls, overrides: Optional[dict] = None) -> "SpatialGrid":
        """Build a grid covering config.DOMAIN with config.GRID settings."""
        settings = {**config.DOMAIN, **config.GRID, **(overrides or {})}
        return cls(
            settings["lower"],
            settings["upper"],
            settings["cell_size"],
            capacity=settings["capacity"],
            bucketing=settings["bucketing"],
        )

    @property
    def extent(self) -> np.ndarray:
        return self.upper - self.lower

    def reset(self):
        """Clear all cells."""
        reset_grid(self.counts)
        self.dropped = 0

    def cell_coords(self, position) -> Tuple[int, int, int]:
        """Per-axis cell coordinates for a position."""
        return tuple(
            get_cell_coord(float(position[a]), self.lower[a], self.cell_size[a], int(self.dims[a]), self.mode)
            for a in range(3)
        )

    def cell_of(self, position) -> int:
        """Cell index a position maps to, without inserting it."""
        return get_cell_index(
            float(position[0]), float(position[1]), float(position[2]),
            self.lower, self.cell_size, self.dims, self.mode
        )

    def insert(self, position, item: int) -> int:
        """
        Insert an id at a position.

        Returns the cell index even when the cell is full and the id is
        dropped, so callers can cache it.
        """
        cell = self.cell_of(position)
        if not insert_grid(self.counts, self.slots, self.capacity, cell, item):
            self.dropped += 1
        return cell

    def occupants(self, cell: int) -> np.ndarray:
        """View of the valid ids stored in a cell, in insertion order."""
        start = cell * self.capacity
        return self.slots[start:start + int(self.counts[cell])]

    def __repr__(self):
        return (
            f"SpatialGrid(dims={tuple(int(d) for d in self.dims)}, "
            f"capacity={self.capacity}, bucketing={self.bucketing!r})"
        )
