import numpy as np
import pytest

from fluid2d.grid import Grid, BOUNDARY_ABSORB, BOUNDARY_REFLECT, BOUNDARY_WALL


def test_index_and_coords_round_trip():
    grid = Grid(5)
    assert grid.index(0, 0) == 0
    assert grid.index(3, 2) == 3 + 5 * 2
    for index in range(grid.size):
        x, y = grid.coords(index)
        assert grid.index(x, y) == index


def test_flat_index_matches_row_major_view():
    grid = Grid(4)
    flat = np.arange(grid.size, dtype=np.float32)
    view = flat.reshape(grid.shape)
    assert view[2, 1] == flat[grid.index(1, 2)]


def test_clamp():
    grid = Grid(8)
    assert grid.clamp(-3, 4) == (0, 4)
    assert grid.clamp(12, 99) == (7, 7)
    assert grid.clamp_index(-1) == 0
    assert grid.clamp_index(1000) == 63


def test_sample_bounds_keep_stencil_inside():
    grid = Grid(10)
    lo, hi = grid.sample_bounds
    assert lo == 0.5
    assert hi == 8.5
    assert np.floor(hi) + 1 <= grid.n - 1


@pytest.mark.parametrize("n", [0, -4, 1, 2])
def test_rejects_grids_without_interior(n):
    with pytest.raises(ValueError):
        Grid(n)


def test_rejects_non_integer_size():
    with pytest.raises(ValueError):
        Grid(8.0)


def test_reflect_boundary_copies_interior(rng):
    grid = Grid(6)
    f = rng.standard_normal(grid.shape).astype(np.float32)
    grid.apply_boundary(f, BOUNDARY_REFLECT)
    np.testing.assert_array_equal(f[1:-1, 0], f[1:-1, 1])
    np.testing.assert_array_equal(f[1:-1, -1], f[1:-1, -2])
    np.testing.assert_array_equal(f[0, 1:-1], f[1, 1:-1])
    np.testing.assert_array_equal(f[-1, 1:-1], f[-2, 1:-1])
    assert f[0, 0] == pytest.approx(0.5 * (f[0, 1] + f[1, 0]))


def test_absorb_boundary_zeroes_ring(rng):
    grid = Grid(6)
    f = rng.standard_normal(grid.shape).astype(np.float32) + 5.0
    grid.apply_boundary(f, BOUNDARY_ABSORB)
    ring = np.ones(grid.shape, dtype=bool)
    ring[1:-1, 1:-1] = False
    assert np.all(f[ring] == 0.0)
    assert np.all(f[1:-1, 1:-1] != 0.0)


def test_wall_boundary_negates_normal_component(rng):
    grid = Grid(6)
    u = rng.standard_normal(grid.shape).astype(np.float32)
    v = u.copy()
    grid.apply_boundary(u, BOUNDARY_WALL, component=0)
    grid.apply_boundary(v, BOUNDARY_WALL, component=1)

    # x-velocity flips at left/right walls, copies at top/bottom
    np.testing.assert_array_equal(u[1:-1, 0], -u[1:-1, 1])
    np.testing.assert_array_equal(u[0, 1:-1], u[1, 1:-1])
    # y-velocity the other way round
    np.testing.assert_array_equal(v[0, 1:-1], -v[1, 1:-1])
    np.testing.assert_array_equal(v[1:-1, -1], v[1:-1, -2])


def test_unknown_boundary_mode():
    grid = Grid(4)
    with pytest.raises(ValueError):
        grid.apply_boundary(np.zeros(grid.shape), "periodic")


def test_divergence_of_uniform_flow_is_zero():
    grid = Grid(8)
    u = np.full(grid.shape, 3.0, dtype=np.float32)
    v = np.full(grid.shape, -1.0, dtype=np.float32)
    assert np.abs(grid.divergence(u, v)).max() == 0.0


def test_divergence_of_expanding_flow_is_negative():
    grid = Grid(8)
    u = grid.cell_x.copy()
    v = grid.cell_y.copy()
    div = grid.divergence(u, v)
    # -0.5 * (2 + 2) / N on every interior cell
    np.testing.assert_allclose(div[1:-1, 1:-1], -2.0 / 8)
