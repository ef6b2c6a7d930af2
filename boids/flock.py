"""Flock storage - structure-of-arrays positions, headings and cached cells."""

import numpy as np
from typing import Optional


class FlockState:
    """
    Backing arrays for the maximum population the simulation will animate.

    Only a prefix of the arrays is processed each frame, so the active
    population can grow without reallocating.

    Attributes:
        count: Allocated population
        positions: (count, 3) locations
        directions: (count, 3) unit headings
        cells: (count,) grid cell recorded by the latest index pass
    """

    def __init__(self, count: int):
        if count <= 0:
            raise ValueError(f"flock size must be positive, got {count}")
        self.count = int(count)
        self.positions = np.zeros((self.count, 3), dtype=np.float64)
        self.directions = np.zeros((self.count, 3), dtype=np.float64)
        self.directions[:, 0] = 1.0
        self.cells = np.zeros(self.count, dtype=np.int32)

    @classmethod
    def random(
        cls,
        lower,
        upper,
        count: int,
        rng: Optional[np.random.Generator] = None
    ) -> "FlockState":
        """
        Spread count boids uniformly between lower and upper with random headings.

        Headings are drawn from the unit cube centered on the origin and
        normalized, the same way the browser version seeds its fish.
        """
        rng = rng if rng is not None else np.random.default_rng()
        lower = np.asarray(lower, dtype=np.float64)
        upper = np.asarray(upper, dtype=np.float64)

        flock = cls(count)
        flock.positions[:] = rng.random((flock.count, 3)) * (upper - lower) + lower

        dirs = rng.random((flock.count, 3)) - 0.5
        norms = np.linalg.norm(dirs, axis=1)
        # Exact zeros are practically impossible but would leave a NaN heading
        degenerate = norms == 0.0
        dirs[degenerate] = (1.0, 0.0, 0.0)
        norms[degenerate] = 1.0
        flock.directions[:] = dirs / norms[:, None]
        return flock

    def check_active(self, n: int) -> int:
        """Validate an active count against the allocated population."""
        n = int(n)
        if n < 0 or n > self.count:
            raise ValueError(f"active count {n} outside [0, {self.count}]")
        return n

    def positions_view(self, n: int) -> np.ndarray:
        """(n, 3) view of the first n positions."""
        return self.positions[:self.check_active(n)]

    def directions_view(self, n: int) -> np.ndarray:
        """(n, 3) view of the first n headings."""
        return self.directions[:self.check_active(n)]

    def __len__(self):
        return self.count
