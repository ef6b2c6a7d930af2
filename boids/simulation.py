"""
Boids simulation pipeline - grid indexing, neighbour interaction and integration.

Each frame runs three passes over the first n boids, in this order:

    index     rebuild the grid from current positions, caching each boid's cell
    interact  steer each boid using the occupants of its own cell only
    move      advance along the new heading and wrap at the domain faces

Neighbours are looked up in the boid's own cell, never the surrounding 26;
the default radii are tuned for that scope.
"""

import math
import numpy as np
from numba import njit, prange
from typing import Optional

from config import boids as config
from .flock import FlockState
from .grid import SpatialGrid, get_cell_index, insert_grid, reset_grid
from .params import BoidParams


# ============================================================================
# NUMBA JIT-COMPILED PIPELINE FUNCTIONS
# ============================================================================

@njit(cache=True)
def index_boids(
    positions: np.ndarray,
    cells: np.ndarray,
    counts: np.ndarray,
    slots: np.ndarray,
    capacity: int,
    lower: np.ndarray,
    cell_size: np.ndarray,
    dims: np.ndarray,
    mode: int,
    num_boids: int
) -> int:
    """Rebuild the grid from the first num_boids positions. Returns dropped inserts."""
    reset_grid(counts)

    dropped = 0
    for i in range(num_boids):
        cell = get_cell_index(
            positions[i, 0], positions[i, 1], positions[i, 2],
            lower, cell_size, dims, mode
        )
        if not insert_grid(counts, slots, capacity, cell, i):
            dropped += 1
        cells[i] = cell
    return dropped


@njit(cache=True)
def interact_boids(
    positions: np.ndarray,
    directions: np.ndarray,
    cells: np.ndarray,
    counts: np.ndarray,
    slots: np.ndarray,
    capacity: int,
    separation_radius: float,
    alignment_radius: float,
    cohesion_radius: float,
    separation_strength: float,
    alignment_strength: float,
    cohesion_strength: float,
    num_boids: int
):
    """
    Steer the first num_boids boids from the occupants of their cached cell.

    Runs sequentially and writes headings in place, so a boid sees the
    already updated heading of any lower-numbered neighbour. Positions are
    only read.
    """
    for i in range(num_boids):
        px = positions[i, 0]
        py = positions[i, 1]
        pz = positions[i, 2]

        hx = directions[i, 0]
        hy = directions[i, 1]
        hz = directions[i, 2]

        cell = cells[i]
        start = cell * capacity
        end = start + counts[cell]

        for slot in range(start, end):
            j = slots[slot]
            if j == i:
                continue

            dx = px - positions[j, 0]
            dy = py - positions[j, 1]
            dz = pz - positions[j, 2]
            dist = math.sqrt(dx * dx + dy * dy + dz * dz)

            # Coincident boids have no axis to push or pull along
            if dist > 0.0:
                ux = dx / dist
                uy = dy / dist
                uz = dz / dist
            else:
                ux, uy, uz = 0.0, 0.0, 0.0

            separation = separation_strength if dist < separation_radius else 0.0
            alignment = alignment_strength if dist < alignment_radius else 0.0
            cohesion = cohesion_strength if dist < cohesion_radius else 0.0

            hx += ux * separation + directions[j, 0] * alignment - ux * cohesion
            hy += uy * separation + directions[j, 1] * alignment - uy * cohesion
            hz += uz * separation + directions[j, 2] * alignment - uz * cohesion

        norm = math.sqrt(hx * hx + hy * hy + hz * hz)
        # Zero net heading keeps the previous one
        if norm > 0.0:
            directions[i, 0] = hx / norm
            directions[i, 1] = hy / norm
            directions[i, 2] = hz / norm


@njit(parallel=True, cache=True)
def move_boids(
    positions: np.ndarray,
    directions: np.ndarray,
    lower: np.ndarray,
    upper: np.ndarray,
    step: float,
    num_boids: int
):
    """Euler step along the heading with toroidal wrap-around per axis."""
    for i in prange(num_boids):
        for dim in range(3):
            p = positions[i, dim] + directions[i, dim] * step
            extent = upper[dim] - lower[dim]
            if p < lower[dim]:
                p += extent
            elif p > upper[dim]:
                p -= extent
            positions[i, dim] = p


# ============================================================================
# SIMULATION CLASS
# ============================================================================

class Simulation:
    """
    Owns one flock, its grid and its parameters.

    Nothing is module level, so independent simulations can run side by side.
    Callers must not mutate positions or directions while a pass is running.
    """

    def __init__(self, grid: SpatialGrid, flock: FlockState, params: Optional[BoidParams] = None):
        self.grid = grid
        self.flock = flock
        self.params = params if params is not None else BoidParams()
        self.frame = 0

    @classmethod
    def create(
        cls,
        lower,
        upper,
        cell_size,
        capacity: int,
        max_count: int,
        params: Optional[BoidParams] = None,
        seed: Optional[int] = None,
        bucketing: str = "ceil",
        verbose: bool = False
    ) -> "Simulation":
        """Build a grid over [lower, upper] and a randomly seeded flock of max_count boids."""
        grid = SpatialGrid(lower, upper, cell_size, capacity=capacity, bucketing=bucketing)
        flock = FlockState.random(grid.lower, grid.upper, max_count, rng=np.random.default_rng(seed))
        sim = cls(grid, flock, params)

        if verbose:
            dims = "x".join(str(int(d)) for d in grid.dims)
            print(
                f"[Boids] Initialized {flock.count:,} boids on a {dims} grid "
                f"(capacity {grid.capacity}, {grid.bucketing} bucketing)"
            )
        return sim

    @classmethod
    def from_config(cls, overrides: Optional[dict] = None, verbose: bool = False) -> "Simulation":
        """Build a simulation from config/boids.py, with optional top-level overrides."""
        settings = {
            **config.DOMAIN,
            **config.GRID,
            "max_count": config.POPULATION["max_count"],
            "seed": config.SIMULATION["seed"],
            **(overrides or {}),
        }
        return cls.create(
            settings["lower"],
            settings["upper"],
            settings["cell_size"],
            settings["capacity"],
            settings["max_count"],
            params=settings.get("params") or BoidParams.from_config(),
            seed=settings["seed"],
            bucketing=settings["bucketing"],
            verbose=verbose,
        )

    @property
    def count(self) -> int:
        return self.flock.count

    def positions(self, n: int) -> np.ndarray:
        """Read-back view of the first n positions."""
        return self.flock.positions_view(n)

    def directions(self, n: int) -> np.ndarray:
        """Read-back view of the first n headings."""
        return self.flock.directions_view(n)

    def index(self, n: int) -> int:
        """Rebuild the grid from the first n boids. Returns the number of dropped inserts."""
        n = self.flock.check_active(n)
        grid = self.grid
        grid.dropped = index_boids(
            self.flock.positions, self.flock.cells,
            grid.counts, grid.slots, grid.capacity,
            grid.lower, grid.cell_size, grid.dims, grid.mode,
            n
        )
        return grid.dropped

    def interact(self, n: int):
        """Update the headings of the first n boids from their cell mates."""
        n = self.flock.check_active(n)
        p = self.params
        interact_boids(
            self.flock.positions, self.flock.directions, self.flock.cells,
            self.grid.counts, self.grid.slots, self.grid.capacity,
            float(p.separation_radius), float(p.alignment_radius), float(p.cohesion_radius),
            float(p.separation_strength), float(p.alignment_strength), float(p.cohesion_strength),
            n
        )

    def move(self, n: int, dt: float):
        """Advance the first n boids by speed * dt along their headings."""
        n = self.flock.check_active(n)
        move_boids(
            self.flock.positions, self.flock.directions,
            self.grid.lower, self.grid.upper,
            float(self.params.speed * dt),
            n
        )

    def update_boids(self, n: int, dt: float):
        """Run one frame: index, interact, move."""
        n = self.flock.check_active(n)
        self.index(n)
        self.interact(n)
        self.move(n, dt)
        self.frame += 1

    def warmup(self):
        """Pre-compile the Numba kernels on a throwaway flock."""
        grid = SpatialGrid(self.grid.lower, self.grid.upper, self.grid.cell_size,
                           capacity=self.grid.capacity, bucketing=self.grid.bucketing)
        flock = FlockState.random(grid.lower, grid.upper, 16, rng=np.random.default_rng(0))
        Simulation(grid, flock, self.params).update_boids(16, 0.016)

    def __repr__(self):
        return f"Simulation(count={self.count}, grid={self.grid!r}, frame={self.frame})"
