"""
simulation.py — Master Physics Loop
====================================
This is the complete simulation step that ties everything together.
One call to `step()` advances the fluid by dt seconds.

Physics pipeline per tick:
  0. Optional clear, then sources (event + ambient) and buoyancy
  1. VelocityStep
       add sources → diffuse (viscosity) → project
       → self-advect → project again
  2. DensityStep
       add source → diffuse → advect along the new velocity
  3. TemperatureStep (only when thermal buoyancy is on), same as density
  4. Fade

Density is carried along by the flow but never projected: it is
transported, it does not have to be incompressible.

The "x0" twin of every field plays two roles. Before a step it holds the
tick's source; inside a step it holds the field's previous state. The
roles are handed around with FieldStore.swap, never by copying.

This follows the "Stable Fluids" paper by Jos Stam.
"""

import math
import time
from collections import deque
from dataclasses import replace

import numpy as np

from .advect import advect
from .config import SimulationConfig, SourceEvent, TIMESTEP_EXTERNAL
from .diffuse import diffuse
from .fields import FieldId, FieldStore
from .forces import add_source, apply_buoyancy, fade, inject_sources
from .grid import Grid
from .project import project
from .relax import SCHEMES


PERF_LOG_LENGTH = 1000   # frames of timing history kept


class FluidSimulation:
    """
    The complete 2D fluid simulation, and the state it evolves.

    Usage:
        with FluidSimulation(grid_size=64, diffusion=1e-4) as sim:
            for frame in range(100):
                density, (u, v) = sim.step(source_event=SourceEvent(32, 4))
                # Hand density to the viewer
    """

    def __init__(self, config: SimulationConfig = None, **kwargs):
        """
        Args:
            config : SimulationConfig. If omitted, kwargs are used to build one.
            kwargs : SimulationConfig fields (grid_size, diffusion, ...)
        """
        if config is None:
            config = SimulationConfig(**kwargs)
        elif kwargs:
            raise ValueError("Pass either a config or keyword options, not both")

        # Private copy, set_scheme() mutates it
        self.config = replace(config)
        self.grid = Grid(config.grid_size)
        self.fields = FieldStore(self.grid)
        self.frame = 0
        self.perf_log = deque(maxlen=PERF_LOG_LENGTH)

    # ── Lifecycle ─────────────────────────────────────────────────────────

    @property
    def released(self) -> bool:
        return self.fields.released

    def release(self):
        """Drop every field buffer. Safe to call more than once."""
        if not self.fields.released:
            self.fields.release()
            print(f"[Simulation] Released {self.grid.n}x{self.grid.n} buffers")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False

    def _check_alive(self):
        if self.fields.released:
            raise RuntimeError("Simulation has been released")

    def reset(self):
        """Zero density, velocity and temperature. Triggered by a 'clear' request."""
        self._check_alive()
        self.fields.clear(FieldId.DENSITY, FieldId.U, FieldId.V, FieldId.TEMPERATURE)
        print(f"[Simulation] Fields cleared at frame {self.frame}")

    def set_scheme(self, scheme: str):
        """
        Switch the relaxation sweep order used by diffusion and projection.

        Args:
            scheme : "jacobi", "red_black" or "gauss_seidel"
        """
        if scheme not in SCHEMES:
            raise ValueError(f"Unknown relaxation scheme: {scheme!r}. Use one of {SCHEMES}")
        self.config.relaxation_scheme = scheme
        print(f"[Simulation] Relaxation scheme switched to: {scheme}")

    # ── Read-only outputs ─────────────────────────────────────────────────

    @property
    def density(self) -> np.ndarray:
        """(N, N) read-only view, indexed [y, x]. Valid until the next step."""
        return self.fields.read_only(FieldId.DENSITY)

    @property
    def velocity(self) -> tuple:
        """(u, v) read-only (N, N) views. Valid until the next step."""
        return self.fields.read_only(FieldId.U), self.fields.read_only(FieldId.V)

    @property
    def temperature(self) -> np.ndarray:
        return self.fields.read_only(FieldId.TEMPERATURE)

    # ── Pipeline stages ───────────────────────────────────────────────────

    def _resolve_dt(self, dt) -> float:
        if self.config.time_step_mode == TIMESTEP_EXTERNAL:
            if dt is None:
                raise ValueError("time_step_mode is 'external': step() needs a dt")
            if not math.isfinite(dt) or dt <= 0:
                raise ValueError(f"dt must be finite and > 0, got {dt}")
            return float(dt)
        return self.config.dt

    def _project(self) -> dict:
        cfg, s = self.config, self.fields
        return project(
            self.grid,
            s.view(FieldId.U), s.view(FieldId.V),
            s.view(FieldId.PRESSURE), s.view(FieldId.DIVERGENCE),
            iterations=cfg.relaxation_iterations,
            scheme=cfg.relaxation_scheme,
            pressure_mode=cfg.pressure_boundary,
            velocity_mode=cfg.velocity_boundary,
        )

    def velocity_step(self, dt: float) -> tuple:
        """
        Add sources, diffuse, project, self-advect, project.
        Returns the metrics of both projections.
        """
        cfg, g, s = self.config, self.grid, self.fields
        U, V, U0, V0 = FieldId.U, FieldId.V, FieldId.U0, FieldId.V0
        iters, scheme, mode = cfg.relaxation_iterations, cfg.relaxation_scheme, cfg.velocity_boundary

        add_source(s.view(U), s.view(U0))
        add_source(s.view(V), s.view(V0))

        # U0/V0 now hold the state to diffuse from; U/V get written
        s.swap(U, U0)
        diffuse(g, s.view(U), s.view(U0), cfg.viscosity, dt, iters, mode, 0, scheme)
        s.swap(V, V0)
        diffuse(g, s.view(V), s.view(V0), cfg.viscosity, dt, iters, mode, 1, scheme)

        project_before = self._project()

        # Self-advection: the diffused, projected field transports itself
        s.swap(U0, U)
        s.swap(V0, V)
        advect(g, s.view(U), s.view(U0), s.view(U0), s.view(V0), dt, mode, 0)
        advect(g, s.view(V), s.view(V0), s.view(U0), s.view(V0), dt, mode, 1)

        project_after = self._project()
        return project_before, project_after

    def scalar_step(self, fid: FieldId, fid0: FieldId, dt: float, mode: str):
        """Add source, diffuse, advect along the current velocity."""
        cfg, g, s = self.config, self.grid, self.fields

        add_source(s.view(fid), s.view(fid0))
        s.swap(fid, fid0)
        diffuse(g, s.view(fid), s.view(fid0), cfg.diffusion, dt,
                cfg.relaxation_iterations, mode, None, cfg.relaxation_scheme)
        s.swap(fid, fid0)
        advect(g, s.view(fid), s.view(fid0), s.view(FieldId.U), s.view(FieldId.V), dt, mode)

    def density_step(self, dt: float):
        self.scalar_step(FieldId.DENSITY, FieldId.DENSITY0, dt, self.config.density_boundary)

    def temperature_step(self, dt: float):
        self.scalar_step(FieldId.TEMPERATURE, FieldId.TEMPERATURE0, dt, self.config.density_boundary)

    # ── One tick ──────────────────────────────────────────────────────────

    def step(self, dt: float = None, source_event: SourceEvent = None,
             clear_requested: bool = False) -> tuple:
        """
        Advance the simulation by one timestep.

        Args:
            dt              : Timestep. Required in 'external' mode, ignored in 'fixed'.
            source_event    : Point impulse for this tick, or None
            clear_requested : Zero density and velocity before the tick

        Returns:
            (density, (u, v)) read-only (N, N) views for presentation.
            Timings and divergence stats for the tick are appended to perf_log.
        """
        self._check_alive()
        dt = self._resolve_dt(dt)
        cfg, s = self.config, self.fields
        t_total_start = time.perf_counter()

        # ── Step 0: clear, sources, buoyancy ───────────────────────────────
        t0 = time.perf_counter()
        if clear_requested:
            self.reset()
        inject_sources(s, cfg, source_event)
        apply_buoyancy(s, dt, cfg)
        t_sources = (time.perf_counter() - t0) * 1000

        # ── Step 1: velocity ───────────────────────────────────────────────
        t0 = time.perf_counter()
        proj1, proj2 = self.velocity_step(dt)
        t_velocity = (time.perf_counter() - t0) * 1000

        # ── Step 2: density ────────────────────────────────────────────────
        t0 = time.perf_counter()
        self.density_step(dt)
        t_density = (time.perf_counter() - t0) * 1000

        # ── Step 3: temperature ────────────────────────────────────────────
        t0 = time.perf_counter()
        if cfg.thermal:
            self.temperature_step(dt)
        t_temperature = (time.perf_counter() - t0) * 1000

        # ── Step 4: fade ───────────────────────────────────────────────────
        fade(s.view(FieldId.DENSITY), cfg.density_fade)
        if cfg.thermal:
            fade(s.view(FieldId.TEMPERATURE), cfg.temperature_fade)

        # ── Frame bookkeeping ──────────────────────────────────────────────
        self.frame += 1
        t_total = (time.perf_counter() - t_total_start) * 1000

        self.perf_log.append({
            "frame"            : self.frame,
            "scheme"           : cfg.relaxation_scheme,
            "dt"               : dt,
            "total_ms"         : t_total,
            "fps"              : 1000.0 / t_total if t_total > 0 else 0,
            "sources_ms"       : t_sources,
            "velocity_ms"      : t_velocity,
            "project1_ms"      : proj1["time_ms"],
            "project2_ms"      : proj2["time_ms"],
            "density_ms"       : t_density,
            "temperature_ms"   : t_temperature,
            "divergence_max"   : proj2["divergence_after_max"],
            "divergence_mean"  : proj2["divergence_after_mean"],
            "density_total"    : float(s.view(FieldId.DENSITY).sum()),
        })
        return self.density, self.velocity

    def print_status(self):
        """Pretty-print current simulation state."""
        self._check_alive()
        s = self.fields
        d = s.view(FieldId.DENSITY)
        u, v = s.view(FieldId.U), s.view(FieldId.V)
        div = self.grid.divergence(u, v)
        p = s.view(FieldId.PRESSURE)
        print(f"\n{'='*50}")
        print(f"  Frame: {self.frame}  |  Scheme: {self.config.relaxation_scheme}")
        print(f"  Density   : max={d.max():.4f}, total={d.sum():.2f}")
        print(f"  Velocity  : max_u={np.abs(u).max():.4f}, max_v={np.abs(v).max():.4f}")
        print(f"  Divergence: max={np.abs(div).max():.6f}, mean={np.abs(div).mean():.8f}")
        print(f"  Pressure  : max={p.max():.4f}, min={p.min():.4f}")
        if self.perf_log:
            last = self.perf_log[-1]
            print(f"  Perf      : {last['total_ms']:.1f}ms/frame ({last['fps']:.1f} FPS)")
        print(f"{'='*50}")

    def __repr__(self):
        state = "released" if self.released else f"frame={self.frame}"
        return f"FluidSimulation(N={self.grid.n}, {state})"


# ── Functional interface ──────────────────────────────────────────────────────

def initialize(grid_size: int, diffusion: float, viscosity: float,
               relaxation_iterations: int = 20, **options) -> FluidSimulation:
    """
    Allocate a zeroed simulation.

    Raises ValueError for a bad configuration and MemoryError if the
    buffers cannot be allocated; nothing is kept in either case.
    """
    config = SimulationConfig(
        grid_size=grid_size,
        diffusion=diffusion,
        viscosity=viscosity,
        relaxation_iterations=relaxation_iterations,
        **options,
    )
    return FluidSimulation(config)


def step(state: FluidSimulation, dt: float = None, source_event: SourceEvent = None,
         clear_requested: bool = False) -> tuple:
    """Advance one tick. Returns (density, (u, v)) read-only views."""
    return state.step(dt=dt, source_event=source_event, clear_requested=clear_requested)


def reset(state: FluidSimulation):
    """Zero density and velocity."""
    state.reset()


def release(state: FluidSimulation):
    """Free the simulation's buffers."""
    state.release()
