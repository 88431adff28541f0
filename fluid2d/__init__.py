"""
fluid2d/ — Real-Time 2D Stable Fluids
======================================
Exports the interfaces collaborators use.

Viewer / CLI import: FluidSimulation, SourceEvent
Functional callers:  initialize(), step(), reset(), release()
"""

from .config import SimulationConfig, SourceEvent, AmbientSource, TIMESTEP_FIXED, TIMESTEP_EXTERNAL
from .fields import FieldId, FieldStore
from .grid import Grid, BOUNDARY_REFLECT, BOUNDARY_ABSORB, BOUNDARY_WALL
from .relax import SCHEME_JACOBI, SCHEME_RED_BLACK, SCHEME_GAUSS_SEIDEL
from .simulation import FluidSimulation, initialize, step, reset, release

__all__ = [
    "FluidSimulation", "SimulationConfig", "SourceEvent", "AmbientSource",
    "Grid", "FieldId", "FieldStore",
    "initialize", "step", "reset", "release",
    "TIMESTEP_FIXED", "TIMESTEP_EXTERNAL",
    "BOUNDARY_REFLECT", "BOUNDARY_ABSORB", "BOUNDARY_WALL",
    "SCHEME_JACOBI", "SCHEME_RED_BLACK", "SCHEME_GAUSS_SEIDEL",
]
