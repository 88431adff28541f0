"""
diffuse.py — Implicit Diffusion
================================
Diffusion makes a field spread out over time.
  - High diffusion  → density spreads fast (watercolor bleed)
  - Low diffusion   → density stays tight (laser-focused smoke column)
  - High viscosity  → thick fluid (honey)
  - Low viscosity   → thin fluid (air, water)

The math: we solve the implicit heat equation

    (I - a·∇²) x_new = x_old,   a = dt * rate * N²

Explicit diffusion (adding the Laplacian each step) is only stable for a
tiny dt. The implicit form is stable for any dt; relax.py gets it close
enough in a fixed number of sweeps.
"""

import numpy as np

from .grid import Grid, BOUNDARY_REFLECT
from .relax import relax, DEFAULT_ITERATIONS, SCHEME_RED_BLACK


def diffusion_coefficients(rate: float, dt: float, n: int) -> tuple:
    """
    Returns (a, c) for the relaxation solver.
    The N² factor converts the rate from domain units to grid-index units.
    c = 1 + 4a is always >= 1, so the solve can never divide by zero.
    """
    a = dt * rate * n * n
    return a, 1.0 + 4.0 * a


def diffuse(
    grid: Grid,
    x: np.ndarray,
    x0: np.ndarray,
    rate: float,
    dt: float,
    iterations: int = DEFAULT_ITERATIONS,
    mode: str = BOUNDARY_REFLECT,
    component: int = None,
    scheme: str = SCHEME_RED_BLACK,
):
    """
    Diffuse x0 into x.

    x0 holds the field's prior state (the right-hand side); x is written
    in place and its current contents are the first guess.

    Modifies: x
    """
    a, c = diffusion_coefficients(rate, dt, grid.n)

    if a == 0.0:
        # (I - 0·∇²) x = x0 is solved exactly by a copy
        np.copyto(x, x0)
        grid.apply_boundary(x, mode, component)
        return

    relax(grid, x, x0, a, c, iterations, mode, component, scheme)
