"""
fields.py — Named Field Buffers
================================
All simulation state lives in ONE contiguous float32 arena of shape
(number_of_fields, N²). Each logical field (velocity-x, density, ...) is
bound to one row of that arena through a slot table.

Swapping two fields exchanges their slots, not their data: O(1), no copy.
Because every lookup goes through the slot table, anyone asking for
FieldId.DENSITY after a swap gets the new buffer. Never hold on to a
buffer across a swap; ask the store again.
"""

from enum import IntEnum

import numpy as np

from .grid import Grid


class FieldId(IntEnum):
    U            = 0   # velocity, x component
    V            = 1   # velocity, y component
    U0           = 2   # x-velocity source / scratch twin
    V0           = 3
    DENSITY      = 4
    DENSITY0     = 5
    TEMPERATURE  = 6
    TEMPERATURE0 = 7
    PRESSURE     = 8
    DIVERGENCE   = 9


DTYPE = np.float32


class FieldStore:
    """
    Owns every field buffer of a simulation.

    Usage:
        store = FieldStore(Grid(64))
        store.add_at(FieldId.DENSITY0, store.grid.index(10, 20), 5.0)
        store.swap(FieldId.DENSITY, FieldId.DENSITY0)
        d = store.view(FieldId.DENSITY)     # (N, N), indexed [y, x]
    """

    def __init__(self, grid: Grid):
        self.grid = grid
        count = len(FieldId)
        try:
            # Single allocation: either every field exists or none does
            self._arena = np.zeros((count, grid.size), dtype=DTYPE)
        except MemoryError as exc:
            raise MemoryError(
                f"Could not allocate {count} fields of {grid.n}x{grid.n} cells"
            ) from exc
        self._slots = list(range(count))

    @property
    def released(self) -> bool:
        return self._arena is None

    def _row(self, fid: FieldId) -> np.ndarray:
        if self._arena is None:
            raise RuntimeError("FieldStore has been released")
        return self._arena[self._slots[fid]]

    def get(self, fid: FieldId) -> np.ndarray:
        """Flat view of length N², indexed by x + N*y."""
        return self._row(fid)

    def view(self, fid: FieldId) -> np.ndarray:
        """(N, N) view of the same buffer, indexed [y, x]."""
        return self._row(fid).reshape(self.grid.shape)

    def read_only(self, fid: FieldId) -> np.ndarray:
        """Non-writeable (N, N) view, for handing out to presentation code."""
        out = self.view(fid).view()
        out.flags.writeable = False
        return out

    def swap(self, a: FieldId, b: FieldId):
        """Exchange which buffers `a` and `b` are bound to. No data moves."""
        self._slots[a], self._slots[b] = self._slots[b], self._slots[a]

    def clear(self, *fids: FieldId):
        for fid in fids:
            self._row(fid).fill(0.0)

    def clear_all(self):
        self.clear(*FieldId)

    def set_at(self, fid: FieldId, index: int, value: float):
        self._row(fid)[index] = value

    def add_at(self, fid: FieldId, index: int, value: float):
        self._row(fid)[index] += value

    def release(self):
        """Drop the arena. Any later access raises RuntimeError."""
        self._arena = None

    def __repr__(self):
        if self._arena is None:
            return f"FieldStore({self.grid!r}, released)"
        return f"FieldStore({self.grid!r}, fields={len(self._slots)})"
