"""
main.py — Master Entry Point
=============================
Runs the 2D stable-fluids solver.

Usage:
    python main.py                        # Headless run, stats every 10 frames
    python main.py --mode live            # Live matplotlib window (drag to paint)
    python main.py --mode benchmark       # Per-stage timing breakdown
    python main.py --scheme jacobi        # Pick the relaxation sweep order
"""

import argparse
import numpy as np

from fluid2d import AmbientSource, FluidSimulation, SimulationConfig, SourceEvent
from fluid2d.relax import SCHEMES, SCHEME_RED_BLACK


def build_config(N: int, scheme: str, iterations: int) -> SimulationConfig:
    """Demo setup: a smoke source near the bottom edge pushing upwards."""
    return SimulationConfig(
        grid_size=N,
        dt=0.1,
        diffusion=0.00001,
        viscosity=0.00001,
        relaxation_iterations=iterations,
        relaxation_scheme=scheme,
        source_density=5.0,
        source_velocity=(0.0, 2.0),
        ambient_source=AmbientSource(N // 2, 2, density=1.0, velocity=(0.0, 1.0)),
        density_fade=0.995,
        color_scale=(1.0, 0.55, 0.2),
    )


def run_live(config: SimulationConfig):
    """Live interactive visualization."""
    from visualizer import FluidVisualizer

    print(f"Starting live simulation (N={config.grid_size})...")
    print("Drag with the left button to paint, press 'c' to clear. Close the window to exit.\n")

    with FluidSimulation(config) as sim:
        viz = FluidVisualizer(sim)
        viz.run(fps=30)


def run_headless(config: SimulationConfig, frames: int = 100):
    """Run simulation without display — prints stats each 10 frames."""
    N = config.grid_size
    print(f"\nHeadless simulation | N={N} | {frames} frames | {config.relaxation_scheme}")
    print(f"{'─'*60}")

    total_times = []
    with FluidSimulation(config) as sim:
        for f in range(frames):
            # A side jet that switches on for the first half of the run
            event = SourceEvent(2, N // 2, velocity=(3.0, 0.0)) if f < frames // 2 else None
            sim.step(source_event=event)
            metrics = sim.perf_log[-1]
            total_times.append(metrics["total_ms"])

            if f % 10 == 0:
                print(f"  Frame {f:03d} | {metrics['total_ms']:6.1f}ms "
                      f"({metrics['fps']:.1f} FPS) | "
                      f"div_max={metrics['divergence_max']:.5f} | "
                      f"density={metrics['density_total']:.1f}")

        sim.print_status()

    print(f"\n{'─'*60}")
    print(f"  Average: {np.mean(total_times):.1f}ms/frame ({1000/np.mean(total_times):.1f} FPS)")
    print(f"  Min:     {np.min(total_times):.1f}ms")
    print(f"  Max:     {np.max(total_times):.1f}ms")


def run_benchmark(config: SimulationConfig, frames: int = 50):
    """
    Detailed performance breakdown.
    Shows how long each stage of the tick takes.
    """
    N = config.grid_size
    print(f"\n{'='*60}")
    print(f"  BENCHMARK | N={N} | {frames} frames | {config.relaxation_scheme} x{config.relaxation_iterations}")
    print(f"{'='*60}")

    with FluidSimulation(config) as sim:
        # Warm up
        for _ in range(5):
            sim.step(source_event=SourceEvent(N // 2, N // 2))

        logs = []
        for _ in range(frames):
            sim.step(source_event=SourceEvent(N // 2, N // 2))
            logs.append(sim.perf_log[-1])

    keys = ["sources_ms", "velocity_ms", "project1_ms", "project2_ms",
            "density_ms", "temperature_ms", "total_ms"]

    print(f"\n{'Step':<20} {'Mean':>8} {'Min':>8} {'Max':>8}")
    print(f"{'─'*50}")
    for k in keys:
        vals = [m[k] for m in logs]
        print(f"  {k:<18} {np.mean(vals):>7.1f}ms {np.min(vals):>7.1f}ms {np.max(vals):>7.1f}ms")

    total_vals = [m["total_ms"] for m in logs]
    print(f"\n{'─'*50}")
    print(f"  FPS (physics only): {1000/np.mean(total_vals):.1f}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="2D Stable Fluids")
    parser.add_argument(
        "--mode", choices=["live", "headless", "benchmark"],
        default="headless",
        help="Run mode (default: headless)"
    )
    parser.add_argument("--N",          type=int, default=64,  help="Grid resolution (default: 64)")
    parser.add_argument("--frames",     type=int, default=100, help="Number of frames")
    parser.add_argument("--scheme",     choices=SCHEMES, default=SCHEME_RED_BLACK,
                        help="Relaxation sweep order (default: red_black)")
    parser.add_argument("--iterations", type=int, default=20,  help="Relaxation sweeps per solve")

    args = parser.parse_args()
    config = build_config(args.N, args.scheme, args.iterations)

    if args.mode == "live":
        run_live(config)
    elif args.mode == "headless":
        run_headless(config, frames=args.frames)
    elif args.mode == "benchmark":
        run_benchmark(config, frames=args.frames)
