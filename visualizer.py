"""
visualizer.py — Live Density Viewer
====================================
Renders the 2D density field as an RGB image, tinted per channel by the
simulation's color_scale.

Controls:
  - Left-drag : inject density, plus velocity along the drag direction
  - c         : clear the fields

The viewer only talks to the simulation through step() and its read-only
outputs; mapping the pointer to a grid cell happens here, not in the solver.
"""

import numpy as np
import matplotlib.pyplot as plt
import matplotlib.animation as animation

from fluid2d import FluidSimulation, SourceEvent


DRAG_VELOCITY_SCALE = 1.0   # cells the fluid travels per tick, per cell of drag


def density_to_rgb(density: np.ndarray, color_scale: tuple, vmax: float = 1.0) -> np.ndarray:
    """
    Map a (N, N) density field to an (N, N, 3) float image in [0, 1].

    Args:
        density     : Density field, indexed [y, x]
        color_scale : (r, g, b) multipliers
        vmax        : Density shown at full brightness
    """
    level = np.clip(density / vmax, 0.0, 1.0)
    rgb = level[:, :, np.newaxis] * np.asarray(color_scale, dtype=np.float32)
    return np.clip(rgb, 0.0, 1.0)


def pointer_to_cell(xdata, ydata, n: int):
    """
    Image coordinates of a mouse event → (x, y) grid cell, or None when the
    pointer is outside the axes.
    """
    if xdata is None or ydata is None:
        return None
    x = int(np.clip(round(xdata), 0, n - 1))
    y = int(np.clip(round(ydata), 0, n - 1))
    return x, y


class FluidVisualizer:
    """
    Real-time viewer of the fluid simulation.

    Usage (standalone):
        from fluid2d import FluidSimulation
        from visualizer import FluidVisualizer

        sim = FluidSimulation(grid_size=128, diffusion=1e-5)
        viz = FluidVisualizer(sim)
        viz.run()  # Opens live window
    """

    def __init__(self, simulation: FluidSimulation, vmax: float = 1.0):
        """
        Args:
            simulation : FluidSimulation instance
            vmax       : Density drawn at full brightness
        """
        self.sim = simulation
        self.N = simulation.grid.n
        self.vmax = vmax

        self._pending = None        # SourceEvent for the next frame
        self._clear = False
        self._last = None           # last pointer position while dragging
        self._dragging = False

        self._setup_figure()

    def _setup_figure(self):
        """Initialize the matplotlib figure and hook up the pointer."""
        self.fig, self.ax = plt.subplots(figsize=(6, 6))
        self.fig.patch.set_facecolor('#0a0a0a')
        self.ax.set_facecolor('#0a0a0a')
        self.ax.set_xticks([])
        self.ax.set_yticks([])
        for spine in self.ax.spines.values():
            spine.set_edgecolor('#333333')

        self.img = self.ax.imshow(
            np.zeros((self.N, self.N, 3), dtype=np.float32),
            interpolation='bilinear',
            origin='lower',
            aspect='equal',
        )
        self.title_text = self.ax.set_title(
            "Fluid Sim — Frame 0 | 0.0 FPS",
            color='#cccccc', fontsize=10, fontfamily='monospace'
        )

        self.fig.canvas.mpl_connect('button_press_event', self.on_press)
        self.fig.canvas.mpl_connect('button_release_event', self.on_release)
        self.fig.canvas.mpl_connect('motion_notify_event', self.on_motion)
        self.fig.canvas.mpl_connect('key_press_event', self.on_key)
        plt.tight_layout()

    # ── Pointer and keyboard ──────────────────────────────────────────────

    def on_press(self, event):
        if event.button != 1 or event.inaxes is not self.ax:
            return
        self._dragging = True
        self._last = (event.xdata, event.ydata)
        cell = pointer_to_cell(event.xdata, event.ydata, self.N)
        if cell is not None:
            self._pending = SourceEvent(*cell, velocity=(0.0, 0.0))

    def on_release(self, event):
        if event.button == 1:
            self._dragging = False
            self._last = None

    def on_motion(self, event):
        if not self._dragging or event.inaxes is not self.ax:
            return
        cell = pointer_to_cell(event.xdata, event.ydata, self.N)
        if cell is None:
            return
        du = dv = 0.0
        if self._last is not None:
            # Advection moves dt * N cells per unit of velocity
            cells_per_unit = self.sim.config.dt * self.N
            du = (event.xdata - self._last[0]) * DRAG_VELOCITY_SCALE / cells_per_unit
            dv = (event.ydata - self._last[1]) * DRAG_VELOCITY_SCALE / cells_per_unit
        self._pending = SourceEvent(*cell, velocity=(du, dv))
        self._last = (event.xdata, event.ydata)

    def on_key(self, event):
        if event.key and event.key.lower() == 'c':
            self._clear = True

    # ── Animation ─────────────────────────────────────────────────────────

    def update(self, frame_num):
        """Called by FuncAnimation each frame. Steps sim and updates the image."""
        event, self._pending = self._pending, None
        clear, self._clear = self._clear, False

        density, _ = self.sim.step(source_event=event, clear_requested=clear)
        self.img.set_data(density_to_rgb(density, self.sim.config.color_scale, self.vmax))

        metrics = self.sim.perf_log[-1]
        self.title_text.set_text(
            f"Fluid Sim — Frame {metrics['frame']} | "
            f"{metrics['fps']:.1f} FPS | "
            f"div_max={metrics['divergence_max']:.5f}"
        )
        return [self.img, self.title_text]

    def run(self, fps: int = 30, frames: int = None):
        """
        Start the live animation window.

        Args:
            fps    : Target animation frame rate
            frames : Total frames to render (None = infinite)
        """
        interval_ms = 1000 // fps
        self.anim = animation.FuncAnimation(
            self.fig,
            self.update,
            frames=frames,
            interval=interval_ms,
            blit=False,
            cache_frame_data=False,
        )
        plt.show()
