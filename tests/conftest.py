import numpy as np
import pytest

from fluid2d import FluidSimulation, Grid


@pytest.fixture
def grid():
    return Grid(32)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def make_sim():
    """Build simulations and release them after the test."""
    sims = []

    def _make(**kwargs):
        sim = FluidSimulation(**kwargs)
        sims.append(sim)
        return sim

    yield _make
    for sim in sims:
        sim.release()


def gaussian_blob(grid, cx, cy, sigma, amplitude=1.0):
    """Smooth bump centred on cell (cx, cy), float32, indexed [y, x]."""
    r2 = (grid.cell_x - cx) ** 2 + (grid.cell_y - cy) ** 2
    return (amplitude * np.exp(-r2 / (2.0 * sigma * sigma))).astype(np.float32)


@pytest.fixture
def blob():
    return gaussian_blob
