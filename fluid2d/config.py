"""
config.py — Solver Settings and Input Events
=============================================
Every effect-bearing knob of the solver lives in one validated object,
checked once at construction so a tick never meets a bad value.

Two small records carry the outside world's input:
  - SourceEvent   : a one-off point impulse (pointer drag, script, ...)
  - AmbientSource : a fixed cell that emits every tick

All failures are ValueError, raised before any buffer is touched.
"""

import math
import numbers
from dataclasses import dataclass, field
from typing import Optional

from .grid import BOUNDARY_ABSORB, BOUNDARY_REFLECT, BOUNDARY_WALL
from .relax import SCHEMES, SCHEME_RED_BLACK


TIMESTEP_FIXED    = "fixed"
TIMESTEP_EXTERNAL = "external"


def _check_finite(name, value):
    if isinstance(value, bool) or not isinstance(value, numbers.Real) or not math.isfinite(value):
        raise ValueError(f"{name} must be a finite number, got {value!r}")


def _check_pair(name, value):
    if not hasattr(value, "__len__") or len(value) != 2:
        raise ValueError(f"{name} must be a (dx, dy) pair, got {value!r}")
    for i, component in enumerate(value):
        _check_finite(f"{name}[{i}]", component)


@dataclass(frozen=True)
class AmbientSource:
    """
    A fixed source cell injected every tick, regardless of user input.

    Args:
        x, y        : Cell coordinates. Clamped to the grid at injection time.
        density     : Density added per tick
        velocity    : (du, dv) added per tick
        temperature : Temperature added per tick
    """
    x: int
    y: int
    density: float = 0.0
    velocity: tuple = (0.0, 0.0)
    temperature: float = 0.0

    def __post_init__(self):
        _check_finite("ambient density", self.density)
        _check_finite("ambient temperature", self.temperature)
        _check_pair("ambient velocity", self.velocity)


@dataclass(frozen=True)
class SourceEvent:
    """
    A point impulse from the outside world (pointer drag, script, ...).

    Amounts left as None fall back to the simulation's configured
    source amounts. Given amounts must be finite; coordinates are
    clamped later, never rejected.
    """
    x: int
    y: int
    density: Optional[float] = None
    velocity: Optional[tuple] = None
    temperature: Optional[float] = None

    def __post_init__(self):
        if self.density is not None:
            _check_finite("event density", self.density)
        if self.temperature is not None:
            _check_finite("event temperature", self.temperature)
        if self.velocity is not None:
            _check_pair("event velocity", self.velocity)

    @classmethod
    def from_index(cls, index: int, n: int, **amounts) -> "SourceEvent":
        """Build an event from a flat cell index (x + n*y), clamped to the grid."""
        index = min(max(int(index), 0), n * n - 1)
        y, x = divmod(index, n)
        return cls(x=x, y=y, **amounts)


@dataclass
class SimulationConfig:
    """
    Every effect-bearing knob of the solver.

    Args:
        grid_size             : Side length N, boundary ring included (64)
        diffusion             : Diffusion rate of density and temperature (0)
        viscosity             : Diffusion rate of velocity (0)
        relaxation_iterations : Fixed sweep count K of every solve (20)
        relaxation_scheme     : "jacobi", "red_black" or "gauss_seidel"
        dt                    : Timestep used in "fixed" mode (0.1)
        time_step_mode        : "fixed" uses dt, "external" needs a dt per step
        source_density, source_velocity, source_temperature
                              : Amounts for a SourceEvent that carries none
        ambient_source        : AmbientSource emitted every tick, or None
        density_boundary      : "reflect" or "absorb" (default "absorb")
        pressure_boundary     : "reflect" or "absorb" (default "reflect")
        velocity_boundary     : "reflect" or "wall" (default "reflect")
        density_fade, temperature_fade
                              : Multiplicative decay per tick in (0, 1]
        buoyancy_density, buoyancy_thermal, ambient_temperature
                              : Force on v: -β·density + κ·(T - T_ambient).
                                Both coefficients 0 means off.
        color_scale           : (r, g, b) render multipliers. Not read by the solver.
    """
    # Grid and physics
    grid_size: int = 64
    diffusion: float = 0.0
    viscosity: float = 0.0

    # Solver
    relaxation_iterations: int = 20
    relaxation_scheme: str = SCHEME_RED_BLACK

    # Time stepping
    dt: float = 0.1
    time_step_mode: str = TIMESTEP_FIXED

    # Sources
    source_density: float = 100.0
    source_velocity: tuple = (0.0, 0.0)
    source_temperature: float = 0.0
    ambient_source: Optional[AmbientSource] = None

    # Boundaries
    density_boundary: str = BOUNDARY_ABSORB
    pressure_boundary: str = BOUNDARY_REFLECT
    velocity_boundary: str = BOUNDARY_REFLECT

    # Decay and buoyancy
    density_fade: float = 1.0
    temperature_fade: float = 1.0
    buoyancy_density: float = 0.0
    buoyancy_thermal: float = 0.0
    ambient_temperature: float = 0.0

    # Presentation pass-through
    color_scale: tuple = field(default=(1.0, 1.0, 1.0))

    def __post_init__(self):
        if isinstance(self.grid_size, bool) or not isinstance(self.grid_size, numbers.Integral):
            raise ValueError(f"grid_size must be an integer, got {self.grid_size!r}")
        if self.grid_size < 3:
            raise ValueError(f"grid_size must be at least 3, got {self.grid_size}")

        for name in ("diffusion", "viscosity", "dt", "source_density", "source_temperature",
                     "density_fade", "temperature_fade", "buoyancy_density",
                     "buoyancy_thermal", "ambient_temperature"):
            _check_finite(name, getattr(self, name))
        _check_pair("source_velocity", self.source_velocity)

        if self.diffusion < 0 or self.viscosity < 0:
            raise ValueError(
                f"diffusion and viscosity must be >= 0, got {self.diffusion}, {self.viscosity}"
            )

        if isinstance(self.relaxation_iterations, bool) or not isinstance(self.relaxation_iterations, numbers.Integral):
            raise ValueError(f"relaxation_iterations must be an integer, got {self.relaxation_iterations!r}")
        if self.relaxation_iterations < 1:
            raise ValueError(f"relaxation_iterations must be >= 1, got {self.relaxation_iterations}")
        if self.relaxation_scheme not in SCHEMES:
            raise ValueError(f"Unknown relaxation_scheme: {self.relaxation_scheme!r}. Use one of {SCHEMES}")

        if self.time_step_mode not in (TIMESTEP_FIXED, TIMESTEP_EXTERNAL):
            raise ValueError(f"Unknown time_step_mode: {self.time_step_mode!r}. Use 'fixed' or 'external'.")
        if self.time_step_mode == TIMESTEP_FIXED and self.dt <= 0:
            raise ValueError(f"dt must be > 0 in fixed mode, got {self.dt}")

        for name in ("density_boundary", "pressure_boundary"):
            if getattr(self, name) not in (BOUNDARY_REFLECT, BOUNDARY_ABSORB):
                raise ValueError(f"{name} must be 'reflect' or 'absorb', got {getattr(self, name)!r}")
        if self.velocity_boundary not in (BOUNDARY_REFLECT, BOUNDARY_WALL):
            raise ValueError(f"velocity_boundary must be 'reflect' or 'wall', got {self.velocity_boundary!r}")

        for name in ("density_fade", "temperature_fade"):
            value = getattr(self, name)
            if not 0.0 < value <= 1.0:
                raise ValueError(f"{name} must be in (0, 1], got {value}")

        if self.ambient_source is not None and not isinstance(self.ambient_source, AmbientSource):
            raise ValueError(f"ambient_source must be an AmbientSource, got {self.ambient_source!r}")

        if len(self.color_scale) != 3:
            raise ValueError(f"color_scale must be an (r, g, b) triple, got {self.color_scale!r}")
        for i, channel in enumerate(self.color_scale):
            _check_finite(f"color_scale[{i}]", channel)

    @property
    def thermal(self) -> bool:
        """Whether the temperature field takes part in the tick."""
        return self.buoyancy_thermal != 0.0
