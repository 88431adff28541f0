"""
relax.py — Fixed-Count Relaxation Solver
=========================================
Both implicit diffusion and the pressure Poisson equation reduce to the
same 5-point linear system on the interior cells:

    c * x[i] - a * (x[up] + x[down] + x[left] + x[right]) = x0[i]

    diffusion : a = dt * rate * N²,  c = 1 + 4a
    pressure  : a = 1,               c = 4

Solving this exactly is expensive, so we relax it a fixed number of times
(K = 20 by default). There is no convergence test; K is the quality/cost
knob and the result must be reproducible for a given K.

Three sweep orders are available:

  gauss_seidel : in-place, lexicographic. Each update already sees the
                 neighbours updated earlier in the same sweep. Fastest
                 convergence per sweep, but inherently sequential (a Python
                 loop over cells). Reference semantics, use on small grids.
  red_black    : Gauss-Seidel on a checkerboard. All "red" cells (x+y even)
                 update from black neighbours, then all black cells from the
                 fresh red ones. Same convergence class as Gauss-Seidel, but
                 every colour pass is one vectorized NumPy operation.
  jacobi       : every update reads only the previous sweep (NumPy evaluates
                 the whole right-hand side before assigning). Order-free and
                 deterministic, roughly half the convergence rate.

After every sweep the boundary policy refills the edge ring.
"""

from functools import lru_cache

import numpy as np

from .grid import Grid, BOUNDARY_REFLECT


SCHEME_JACOBI       = "jacobi"
SCHEME_RED_BLACK    = "red_black"
SCHEME_GAUSS_SEIDEL = "gauss_seidel"

SCHEMES = (SCHEME_JACOBI, SCHEME_RED_BLACK, SCHEME_GAUSS_SEIDEL)

DEFAULT_ITERATIONS = 20


@lru_cache(maxsize=16)
def _color_masks(n: int) -> tuple:
    """
    Checkerboard masks over the interior block (N-2, N-2).
    Interior cell [j, i] is grid cell (x=i+1, y=j+1); parity is taken on
    grid coordinates so the pattern does not depend on the slicing.
    """
    jj, ii = np.indices((n - 2, n - 2))
    red = ((ii + jj + 2) % 2) == 0
    red.setflags(write=False)
    black = ~red
    black.setflags(write=False)
    return red, black


def _neighbor_sum(x: np.ndarray) -> np.ndarray:
    return x[2:, 1:-1] + x[:-2, 1:-1] + x[1:-1, 2:] + x[1:-1, :-2]


def _sweep_jacobi(x, x0, a, c):
    x[1:-1, 1:-1] = (x0[1:-1, 1:-1] + a * _neighbor_sum(x)) / c


def _sweep_red_black(x, x0, a, c):
    for mask in _color_masks(x.shape[0]):
        update = (x0[1:-1, 1:-1] + a * _neighbor_sum(x)) / c
        np.copyto(x[1:-1, 1:-1], update, where=mask)


def _sweep_gauss_seidel(x, x0, a, c):
    n = x.shape[0]
    for j in range(1, n - 1):
        row, up, down, src = x[j], x[j - 1], x[j + 1], x0[j]
        for i in range(1, n - 1):
            row[i] = (src[i] + a * (row[i - 1] + row[i + 1] + up[i] + down[i])) / c


_SWEEPS = {
    SCHEME_JACOBI: _sweep_jacobi,
    SCHEME_RED_BLACK: _sweep_red_black,
    SCHEME_GAUSS_SEIDEL: _sweep_gauss_seidel,
}


def relax(
    grid: Grid,
    x: np.ndarray,
    x0: np.ndarray,
    a: float,
    c: float,
    iterations: int = DEFAULT_ITERATIONS,
    mode: str = BOUNDARY_REFLECT,
    component: int = None,
    scheme: str = SCHEME_RED_BLACK,
):
    """
    Relax x towards the solution of the 5-point system, in place.

    x holds the initial guess on entry and the result on exit. The solver
    does not care which field x and x0 are; the caller picks the buffers.

    Args:
        grid       : Grid the buffers belong to
        x          : (N, N) target buffer, written in place
        x0         : (N, N) right-hand side, read only
        a          : Neighbour coefficient
        c          : Central coefficient (must be non-zero)
        iterations : Number of sweeps K
        mode       : Boundary mode applied after each sweep
        component  : Velocity component for the "wall" boundary
        scheme     : "jacobi", "red_black" or "gauss_seidel"
    """
    if c == 0:
        raise ValueError("Central coefficient c must be non-zero")
    try:
        sweep = _SWEEPS[scheme]
    except KeyError:
        raise ValueError(f"Unknown relaxation scheme: {scheme!r}. Use one of {SCHEMES}") from None

    for _ in range(iterations):
        sweep(x, x0, a, c)
        grid.apply_boundary(x, mode, component)
