"""Tunable flocking parameters."""

from dataclasses import dataclass, fields
from typing import Optional

from config import boids as config


@dataclass(frozen=True)
class BoidParams:
    """
    Constants consumed by the interaction and integration kernels.

    Attributes:
        speed: Distance travelled per second along the heading
        separation_radius: Neighbors closer than this push the boid away
        alignment_radius: Neighbors closer than this pull its heading along theirs
        cohesion_radius: Neighbors closer than this pull the boid toward them
        separation_strength: Weight of each separation contribution
        alignment_strength: Weight of each alignment contribution
        cohesion_strength: Weight of each cohesion contribution
    """
    speed: float = 60.0
    separation_radius: float = 25.0
    alignment_radius: float = 50.0
    cohesion_radius: float = 50.0
    separation_strength: float = 4.0
    alignment_strength: float = 6.0
    cohesion_strength: float = 1.0

    @classmethod
    def from_config(cls, overrides: Optional[dict] = None) -> "BoidParams":
        """Build parameters from config.BOIDS, with optional overrides."""
        values = {f.name: float(config.BOIDS[f.name]) for f in fields(cls) if f.name in config.BOIDS}
        if overrides:
            values.update({k: float(v) for k, v in overrides.items()})
        return cls(**values)
