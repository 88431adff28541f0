"""
forces.py — Sources, Buoyancy and Fade
=======================================
Everything that feeds the right-hand side of a tick.

Each tick the source buffers (U0, V0, DENSITY0, TEMPERATURE0) are wiped
and refilled from:
  - the external SourceEvent, if any (a pointer drag, a script, ...)
  - the ambient source, a fixed cell that emits every tick

Buoyancy is then added on top of V0: hot smoke rises because warm air is
less dense than cool air. We model this with a simple approximation:

  F_buoyancy = -β * density + κ * (T - T_ambient)

where:
  β = density coefficient (density weighs the fluid down)
  κ = thermal coefficient (temperature pushes fluid up)

The force points along +y, which the viewer draws upwards.
"""

import numpy as np

from .config import SimulationConfig, SourceEvent, AmbientSource
from .fields import FieldId, FieldStore


SOURCE_FIELDS = (FieldId.U0, FieldId.V0, FieldId.DENSITY0, FieldId.TEMPERATURE0)


def add_source(x: np.ndarray, s: np.ndarray):
    """x += s. Source amounts are per-tick impulses, not rates."""
    x += s


def _inject(store: FieldStore, x: int, y: int,
            density: float, velocity: tuple, temperature: float):
    # Out-of-range coordinates are clamped, never an error
    cx, cy = store.grid.clamp(x, y)
    index = store.grid.index(cx, cy)
    du, dv = velocity
    store.add_at(FieldId.DENSITY0, index, density)
    store.add_at(FieldId.U0, index, du)
    store.add_at(FieldId.V0, index, dv)
    store.add_at(FieldId.TEMPERATURE0, index, temperature)


def inject_sources(store: FieldStore, config: SimulationConfig,
                   event: SourceEvent = None):
    """
    Clear the source buffers and write this tick's impulses into them.

    Amounts the event leaves as None come from the config.

    Modifies: U0, V0, DENSITY0, TEMPERATURE0
    """
    store.clear(*SOURCE_FIELDS)

    if event is not None:
        _inject(
            store, event.x, event.y,
            density=config.source_density if event.density is None else event.density,
            velocity=config.source_velocity if event.velocity is None else event.velocity,
            temperature=config.source_temperature if event.temperature is None else event.temperature,
        )

    ambient: AmbientSource = config.ambient_source
    if ambient is not None:
        _inject(store, ambient.x, ambient.y,
                ambient.density, ambient.velocity, ambient.temperature)


def apply_buoyancy(store: FieldStore, dt: float, config: SimulationConfig):
    """
    Add the buoyancy impulse to the y-velocity source buffer.
    No-op when both coefficients are zero.

    Modifies: V0
    """
    beta, kappa = config.buoyancy_density, config.buoyancy_thermal
    if beta == 0.0 and kappa == 0.0:
        return

    force = -beta * store.view(FieldId.DENSITY)
    if kappa != 0.0:
        force = force + kappa * (store.view(FieldId.TEMPERATURE) - config.ambient_temperature)

    v0 = store.view(FieldId.V0)
    v0 += dt * force


def fade(field: np.ndarray, factor: float):
    """Multiplicative decay towards zero. factor == 1 leaves the field alone."""
    if factor != 1.0:
        field *= factor
