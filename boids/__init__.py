"""Boids flocking on a bounded uniform grid."""

from .grid import SpatialGrid
from .flock import FlockState
from .params import BoidParams
from .ramp import PopulationRamp
from .simulation import Simulation

__all__ = ["SpatialGrid", "FlockState", "BoidParams", "PopulationRamp", "Simulation"]
