"""
grid.py — Collocated N×N Grid
==============================
The fixed topology every other module works on.

Layout:
  - Every field is a flat buffer of N² values, addressed by
        index = x + N * y,   0 ≤ x, y < N
  - Reshaped to (N, N) the same buffer is indexed [y, x], so rows are
    y and columns are x. Reshaping is a view, never a copy.
  - The outer ring of cells (x or y equal to 0 or N-1) is the boundary.
    Solvers only update the interior and then let the boundary policy
    fill in the ring.

Boundary modes:
  - "reflect" : zero-gradient (Neumann). Edge copies its interior neighbour.
  - "absorb"  : edge is zero. Whatever reaches the wall leaves the box.
  - "wall"    : like reflect, but the velocity component normal to the
                wall is negated, so fluid cannot pass through it.
"""

import numpy as np


BOUNDARY_REFLECT = "reflect"
BOUNDARY_ABSORB  = "absorb"
BOUNDARY_WALL    = "wall"

BOUNDARY_MODES = (BOUNDARY_REFLECT, BOUNDARY_ABSORB, BOUNDARY_WALL)


class Grid:
    """
    Immutable N×N cell topology with index mapping and boundary policy.
    Holds no field data; FieldStore owns the buffers.
    """

    __slots__ = ("_n", "_cell_x", "_cell_y")

    def __init__(self, n: int):
        """
        Args:
            n : Side length in cells, boundary ring included.
        """
        if isinstance(n, bool) or not isinstance(n, (int, np.integer)):
            raise ValueError(f"Grid size must be an integer, got {n!r}")
        if n < 3:
            raise ValueError(f"Grid size must be at least 3 (one interior cell), got {n}")
        self._n = int(n)

        # Cell-center coordinates for the advection backtrace, shape (N, N)
        xs, ys = np.meshgrid(
            np.arange(self._n, dtype=np.float32),
            np.arange(self._n, dtype=np.float32),
            indexing="xy",
        )
        xs.setflags(write=False)
        ys.setflags(write=False)
        self._cell_x = xs
        self._cell_y = ys

    @property
    def n(self) -> int:
        return self._n

    @property
    def size(self) -> int:
        """Number of cells (length of every flat buffer)."""
        return self._n * self._n

    @property
    def shape(self) -> tuple:
        return (self._n, self._n)

    @property
    def cell_x(self) -> np.ndarray:
        return self._cell_x

    @property
    def cell_y(self) -> np.ndarray:
        return self._cell_y

    @property
    def sample_bounds(self) -> tuple:
        """
        Clamp range for backtraced sample positions.

        Half a cell inside the boundary ring on both sides, so the four
        bilinear taps (floor and floor+1) always land in [0, N-1].
        """
        return 0.5, self._n - 1.5

    # ── Index mapping ─────────────────────────────────────────────────────

    def index(self, x: int, y: int) -> int:
        return x + self._n * y

    def coords(self, index: int) -> tuple:
        y, x = divmod(int(index), self._n)
        return x, y

    def clamp(self, x: int, y: int) -> tuple:
        """Clamp a cell coordinate pair to [0, N-1]."""
        hi = self._n - 1
        return min(max(int(x), 0), hi), min(max(int(y), 0), hi)

    def clamp_index(self, index: int) -> int:
        return min(max(int(index), 0), self.size - 1)

    # ── Boundary policy ───────────────────────────────────────────────────

    def apply_boundary(self, field: np.ndarray, mode: str = BOUNDARY_REFLECT,
                       component: int = None):
        """
        Fill the edge ring of a (N, N) field in place.

        Args:
            field     : 2D view of a field buffer
            mode      : "reflect", "absorb" or "wall"
            component : 0 for x-velocity, 1 for y-velocity, None for scalars.
                        Only read by "wall".
        """
        if mode == BOUNDARY_ABSORB:
            field[0, :]  = 0.0
            field[-1, :] = 0.0
            field[:, 0]  = 0.0
            field[:, -1] = 0.0
            return
        if mode not in (BOUNDARY_REFLECT, BOUNDARY_WALL):
            raise ValueError(f"Unknown boundary mode: {mode!r}. Use one of {BOUNDARY_MODES}")

        # x-velocity flips at the left/right walls, y-velocity at top/bottom
        sx = -1.0 if (mode == BOUNDARY_WALL and component == 0) else 1.0
        sy = -1.0 if (mode == BOUNDARY_WALL and component == 1) else 1.0

        field[1:-1, 0]  = sx * field[1:-1, 1]
        field[1:-1, -1] = sx * field[1:-1, -2]
        field[0, 1:-1]  = sy * field[1, 1:-1]
        field[-1, 1:-1] = sy * field[-2, 1:-1]

        # Corners: average of the two adjacent edge cells
        field[0, 0]   = 0.5 * (field[0, 1]   + field[1, 0])
        field[0, -1]  = 0.5 * (field[0, -2]  + field[1, -1])
        field[-1, 0]  = 0.5 * (field[-1, 1]  + field[-2, 0])
        field[-1, -1] = 0.5 * (field[-1, -2] + field[-2, -1])

    # ── Diagnostics ───────────────────────────────────────────────────────

    def divergence(self, u: np.ndarray, v: np.ndarray) -> np.ndarray:
        """
        Central-difference divergence of (u, v), scaled exactly as the
        projection step sees it: -0.5 * (du + dv) / N on interior cells,
        zero on the boundary ring.

        For an incompressible field this should be ~0 everywhere.
        Returns a new (N, N) array.
        """
        div = np.zeros(self.shape, dtype=np.float32)
        div[1:-1, 1:-1] = -0.5 * (
            (u[1:-1, 2:] - u[1:-1, :-2]) +
            (v[2:, 1:-1] - v[:-2, 1:-1])
        ) / self._n
        return div

    def __eq__(self, other):
        return isinstance(other, Grid) and other._n == self._n

    def __hash__(self):
        return hash(("Grid", self._n))

    def __repr__(self):
        return f"Grid(n={self._n})"
