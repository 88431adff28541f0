import math

import numpy as np
import pytest

from fluid2d import (
    AmbientSource, FieldId, FluidSimulation, SimulationConfig, SourceEvent,
    initialize, release, reset, step,
)
from fluid2d.forces import inject_sources
from fluid2d.relax import SCHEMES


# ── Scenario A: a single density impulse on a still 4x4 grid ─────────────────

@pytest.mark.parametrize("scheme", SCHEMES)
def test_density_impulse_without_diffusion_stays_put(scheme):
    state = initialize(4, diffusion=0.0, viscosity=0.0, relaxation_scheme=scheme)
    try:
        density, (u, v) = step(state, source_event=SourceEvent(2, 2, density=1.0, velocity=(0.0, 0.0)))

        expected = np.zeros((4, 4), dtype=np.float32)
        expected[2, 2] = 1.0
        np.testing.assert_array_equal(density, expected)
        assert density.ravel()[2 + 4 * 2] == 1.0
        assert not u.any() and not v.any()
    finally:
        release(state)


def test_functional_and_method_interfaces_agree():
    event = SourceEvent(5, 6, density=2.0, velocity=(1.0, -0.5))
    a = initialize(12, diffusion=1e-4, viscosity=1e-4)
    b = FluidSimulation(grid_size=12, diffusion=1e-4, viscosity=1e-4)
    try:
        for _ in range(3):
            da, (ua, va) = step(a, source_event=event)
            db, (ub, vb) = b.step(source_event=event)
        np.testing.assert_array_equal(da, db)
        np.testing.assert_array_equal(ua, ub)
        np.testing.assert_array_equal(va, vb)
    finally:
        a.release()
        b.release()


# ── Configuration errors ─────────────────────────────────────────────────────

@pytest.mark.parametrize("kwargs", [
    {"grid_size": 0},
    {"grid_size": -8},
    {"grid_size": 2},
    {"grid_size": 16.0},
    {"diffusion": math.nan},
    {"viscosity": math.inf},
    {"diffusion": -0.1},
    {"relaxation_iterations": 0},
    {"relaxation_scheme": "sor"},
    {"dt": 0.0},
    {"time_step_mode": "adaptive"},
    {"density_boundary": "wall"},
    {"velocity_boundary": "absorb"},
    {"density_fade": 0.0},
    {"density_fade": 1.5},
    {"source_velocity": (1.0,)},
    {"color_scale": (1.0, 1.0)},
])
def test_invalid_configuration_is_rejected(kwargs):
    with pytest.raises(ValueError):
        SimulationConfig(**kwargs)


def test_initialize_rejects_bad_grid():
    with pytest.raises(ValueError):
        initialize(0, diffusion=0.0, viscosity=0.0)


def test_config_and_kwargs_are_exclusive():
    with pytest.raises(ValueError):
        FluidSimulation(SimulationConfig(grid_size=8), grid_size=8)


def test_non_finite_buoyancy_rejected():
    with pytest.raises(ValueError):
        SimulationConfig(time_step_mode="external", buoyancy_thermal=math.nan)


# ── Time stepping ────────────────────────────────────────────────────────────

def test_external_time_step_requires_dt(make_sim):
    sim = make_sim(grid_size=8, time_step_mode="external")
    with pytest.raises(ValueError):
        sim.step()
    with pytest.raises(ValueError):
        sim.step(dt=-0.1)
    with pytest.raises(ValueError):
        sim.step(dt=math.inf)

    sim.step(dt=0.05)
    assert sim.perf_log[-1]["dt"] == 0.05


def test_fixed_time_step_ignores_supplied_dt(make_sim):
    sim = make_sim(grid_size=8, dt=0.2)
    sim.step(dt=5.0)
    assert sim.perf_log[-1]["dt"] == 0.2
    assert sim.frame == 1


# ── Outputs and lifecycle ────────────────────────────────────────────────────

def test_outputs_are_read_only(make_sim):
    sim = make_sim(grid_size=8)
    density, (u, v) = sim.step(source_event=SourceEvent(4, 4))
    for out in (density, u, v):
        assert out.shape == (8, 8)
        with pytest.raises(ValueError):
            out[1, 1] = 3.0


def test_clear_request_zeroes_fields(make_sim):
    sim = make_sim(grid_size=16, viscosity=1e-4, diffusion=1e-4)
    for _ in range(3):
        sim.step(source_event=SourceEvent(8, 8, density=5.0, velocity=(1.0, 1.0)))
    assert sim.density.any()

    density, (u, v) = sim.step(clear_requested=True)
    assert not density.any()
    assert not u.any() and not v.any()


def test_reset_zeroes_density_and_velocity(make_sim):
    sim = make_sim(grid_size=16)
    sim.step(source_event=SourceEvent(8, 8, density=5.0, velocity=(2.0, 0.0)))
    reset(sim)
    u, v = sim.velocity
    assert not sim.density.any()
    assert not u.any() and not v.any()


def test_release_ends_the_simulation():
    sim = initialize(8, diffusion=0.0, viscosity=0.0)
    release(sim)
    assert sim.released
    with pytest.raises(RuntimeError):
        sim.step()
    # Releasing twice is harmless
    release(sim)


def test_context_manager_releases_on_error():
    with pytest.raises(KeyError):
        with FluidSimulation(grid_size=8) as sim:
            sim.step()
            raise KeyError("boom")
    assert sim.released


# ── Sources ──────────────────────────────────────────────────────────────────

def test_out_of_range_source_is_clamped(make_sim):
    sim = make_sim(grid_size=8)
    inject_sources(sim.fields, sim.config, SourceEvent(100, -5, density=3.0))
    d0 = sim.fields.view(FieldId.DENSITY0)
    assert d0[0, 7] == 3.0
    assert d0.sum() == 3.0

    # And the full step does not raise either
    sim.step(source_event=SourceEvent(-1, 999))


def test_event_amounts_fall_back_to_config(make_sim):
    sim = make_sim(grid_size=8, source_density=7.0, source_velocity=(0.5, -0.5))
    inject_sources(sim.fields, sim.config, SourceEvent(3, 4))
    index = sim.grid.index(3, 4)
    assert sim.fields.get(FieldId.DENSITY0)[index] == 7.0
    assert sim.fields.get(FieldId.U0)[index] == 0.5
    assert sim.fields.get(FieldId.V0)[index] == -0.5


@pytest.mark.parametrize("amounts", [
    {"density": math.nan},
    {"temperature": math.inf},
    {"velocity": (1.0,)},
    {"velocity": (1.0, math.nan)},
    {"velocity": 3.0},
])
def test_bad_event_amounts_rejected(amounts):
    with pytest.raises(ValueError):
        SourceEvent(4, 4, **amounts)


def test_rejected_event_leaves_fields_finite(make_sim):
    sim = make_sim(grid_size=8, diffusion=1e-3)
    with pytest.raises(ValueError):
        sim.step(source_event=SourceEvent(4, 4, density=math.nan))
    for _ in range(3):
        density, (u, v) = sim.step(source_event=SourceEvent(4, 4, density=1.0))
    assert np.isfinite(density).all()
    assert np.isfinite(u).all() and np.isfinite(v).all()


def test_source_buffers_are_cleared_every_tick(make_sim):
    sim = make_sim(grid_size=8)
    inject_sources(sim.fields, sim.config, SourceEvent(3, 3, density=1.0))
    inject_sources(sim.fields, sim.config, None)
    assert not sim.fields.get(FieldId.DENSITY0).any()


def test_source_event_from_index():
    event = SourceEvent.from_index(2 + 4 * 3, 4, density=1.0)
    assert (event.x, event.y, event.density) == (2, 3, 1.0)
    clamped = SourceEvent.from_index(10_000, 4)
    assert (clamped.x, clamped.y) == (3, 3)


def test_ambient_source_emits_every_tick(make_sim):
    sim = make_sim(grid_size=8, ambient_source=AmbientSource(4, 4, density=0.5))
    sim.step()
    assert sim.density[4, 4] == pytest.approx(0.5)
    sim.step()
    assert sim.density[4, 4] == pytest.approx(1.0)


def test_density_fade(make_sim):
    sim = make_sim(grid_size=4, density_fade=0.5)
    density, _ = sim.step(source_event=SourceEvent(2, 2, density=1.0))
    assert density[2, 2] == pytest.approx(0.5)


# ── Dynamics ─────────────────────────────────────────────────────────────────

def test_uniform_flow_carries_density_downstream(make_sim):
    sim = make_sim(grid_size=16, dt=0.1)
    # 0.1 * 16 * 0.625 = one cell per tick in +x
    sim.fields.view(FieldId.U)[:] = 0.625

    density, (u, v) = sim.step(source_event=SourceEvent(6, 8, density=1.0, velocity=(0.0, 0.0)))

    np.testing.assert_allclose(u, 0.625, atol=1e-5)
    np.testing.assert_allclose(v, 0.0, atol=1e-5)
    assert density[8, 7] == pytest.approx(1.0, abs=1e-4)
    assert density[8, 6] == pytest.approx(0.0, abs=1e-4)


def test_thermal_buoyancy_lifts_fluid(make_sim):
    sim = make_sim(grid_size=16, buoyancy_thermal=1.0)
    hot = SourceEvent(8, 8, density=0.0, temperature=1.0)
    sim.step(source_event=hot)
    assert sim.temperature[8, 8] > 0.0
    _, (u, v) = sim.step(source_event=hot)
    assert v[8, 8] > 0.0


def test_no_buoyancy_no_motion(make_sim):
    sim = make_sim(grid_size=16)
    for _ in range(3):
        _, (u, v) = sim.step(source_event=SourceEvent(8, 8, density=1.0, temperature=1.0))
    assert not u.any() and not v.any()
    # Temperature is not simulated without thermal buoyancy
    assert not sim.temperature.any()


@pytest.mark.parametrize("scheme", SCHEMES)
@pytest.mark.parametrize("velocity_boundary", ["reflect", "wall"])
def test_long_run_stays_finite(scheme, velocity_boundary, make_sim):
    sim = make_sim(
        grid_size=16, diffusion=1e-4, viscosity=1e-4,
        relaxation_scheme=scheme, velocity_boundary=velocity_boundary,
        buoyancy_thermal=0.5, density_boundary="reflect",
        ambient_source=AmbientSource(8, 2, density=1.0, velocity=(0.0, 4.0), temperature=1.0),
    )
    for frame in range(25):
        event = SourceEvent(3, 8, density=2.0, velocity=(20.0, 5.0)) if frame % 3 == 0 else None
        density, (u, v) = sim.step(source_event=event)

    assert np.isfinite(density).all()
    assert np.isfinite(u).all() and np.isfinite(v).all()
    assert len(sim.perf_log) == 25
    assert sim.perf_log[-1]["frame"] == 25


def test_set_scheme(make_sim):
    sim = make_sim(grid_size=8)
    sim.set_scheme("jacobi")
    assert sim.config.relaxation_scheme == "jacobi"
    sim.step()
    assert sim.perf_log[-1]["scheme"] == "jacobi"
    with pytest.raises(ValueError):
        sim.set_scheme("multigrid")


def test_set_scheme_does_not_touch_a_shared_config():
    config = SimulationConfig(grid_size=8)
    a = FluidSimulation(config)
    b = FluidSimulation(config)
    try:
        a.set_scheme("gauss_seidel")
        assert a.config.relaxation_scheme == "gauss_seidel"
        assert b.config.relaxation_scheme == "red_black"
        assert config.relaxation_scheme == "red_black"
    finally:
        a.release()
        b.release()
