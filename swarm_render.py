"""
Swarm Frame Rendering
=====================

Draws the simulation the way the recorded videos look: each group's
outline rings in the group colour, nested towards the ring centroid, and
a label with the group name and the current day's value placed on the
group's biggest outline.

Frames after the stabilisation window are written as numbered PNGs
(000001.png, ...) which ``write_gif`` (or ffmpeg) turns into an animation.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import imageio.v2 as imageio


# =============================================================================
# Styling
# =============================================================================

BACKGROUND = (107 / 255, 119 / 255, 237 / 255)
RED = (0.97254902, 0.149019608, 0.0)
BLUE = (47 / 255, 49 / 255, 235 / 255)

DPI = 100
STROKE_PX = 4.0
FONT_SIZE = 13

LABEL_MIN_AREA = 500.0
LABEL_MIN_WIDTH = 64.0
LABEL_PADDING = 96.0


PALETTE_SIZE = 12


def group_colour(gid: int) -> Tuple[float, float, float]:
    """Ids 0-11 alternate red / blue; anything past the palette is red."""
    if gid >= PALETTE_SIZE:
        return RED
    return RED if gid % 2 == 0 else BLUE


# =============================================================================
# Ring geometry
# =============================================================================

def ring_centroid(ring: np.ndarray) -> np.ndarray:
    """Length-weighted centroid of a polyline (mean point if it has no length)."""
    ring = np.asarray(ring, dtype=np.float64)
    seg = np.diff(ring, axis=0)
    lengths = np.linalg.norm(seg, axis=1)
    total = lengths.sum()
    if total == 0.0:
        return ring.mean(axis=0)
    mids = (ring[:-1] + ring[1:]) / 2.0
    return (mids * lengths[:, None]).sum(axis=0) / total


def ring_extent(ring: np.ndarray) -> Tuple[float, float]:
    """(width, height) of the ring's bounding box."""
    lo = ring.min(axis=0)
    hi = ring.max(axis=0)
    return float(hi[0] - lo[0]), float(hi[1] - lo[1])


def ring_count(area: float) -> int:
    if area > 160000.0:
        return 3
    if area > 30000.0:
        return 2
    return 1


def nested_rings(ring: np.ndarray) -> List[np.ndarray]:
    """The ring plus copies shrunk towards its centroid (innermost is a point)."""
    center = ring_centroid(ring)
    w, h = ring_extent(ring)
    num = ring_count(w * h)
    return [center + (ring - center) * (i / num) for i in range(num + 1)]


def label_anchor(hulls: List[np.ndarray], canvas_width: float,
                 canvas_height: float) -> Optional[np.ndarray]:
    """
    Where to put a group's label: the centroid of the hull with the largest
    bounding box, provided it is big enough to hold text and sits inside the
    canvas padded by LABEL_PADDING. None if the label should be skipped.
    """
    if not hulls:
        return None
    best_area = 0.0
    best_width = 0.0
    pos = np.zeros(2)
    for ring in hulls:
        w, h = ring_extent(ring)
        if w * h > best_area:
            best_area = w * h
            best_width = w
            pos = ring_centroid(ring)

    hx = canvas_width / 2 - LABEL_PADDING
    hy = canvas_height / 2 - LABEL_PADDING
    in_bounds = -hx <= pos[0] <= hx and -hy <= pos[1] <= hy
    if best_area > LABEL_MIN_AREA and best_width > LABEL_MIN_WIDTH and in_bounds:
        return pos
    return None


# =============================================================================
# Drawing
# =============================================================================

def new_figure(canvas_width: float, canvas_height: float):
    fig = plt.figure(figsize=(canvas_width / DPI, canvas_height / DPI), dpi=DPI)
    ax = fig.add_axes([0, 0, 1, 1])
    return fig, ax


def draw_frame(ax, sim):
    """Draw the simulation's current state onto ``ax`` (cleared first)."""
    p = sim.params
    ax.clear()
    ax.set_facecolor(BACKGROUND)
    ax.set_xlim(-p.canvas_width / 2, p.canvas_width / 2)
    ax.set_ylim(-p.canvas_height / 2, p.canvas_height / 2)
    ax.set_aspect('equal')
    ax.axis('off')
    ax.figure.patch.set_facecolor(BACKGROUND)

    lw = STROKE_PX * 72.0 / DPI
    for snap in sim.snapshot():
        colour = group_colour(snap.id)
        for ring in snap.hulls:
            for line in nested_rings(ring):
                ax.plot(line[:, 0], line[:, 1], color=colour, lw=lw,
                        solid_joinstyle='round', solid_capstyle='round')

        anchor = label_anchor(snap.hulls, p.canvas_width, p.canvas_height)
        if anchor is not None:
            text = f"{snap.label}\n{snap.display_value}"
            ax.text(anchor[0] - 2, anchor[1] - 2, text, color='white',
                    ha='center', va='center', fontsize=FONT_SIZE,
                    family='monospace', linespacing=2.0)
            ax.text(anchor[0], anchor[1], text, color='black',
                    ha='center', va='center', fontsize=FONT_SIZE,
                    family='monospace', linespacing=2.0)


def render_frame(sim, path) -> Path:
    """Render one frame to ``path`` with a throwaway figure."""
    fig, ax = new_figure(sim.params.canvas_width, sim.params.canvas_height)
    draw_frame(ax, sim)
    fig.savefig(path, facecolor=fig.get_facecolor())
    plt.close(fig)
    return Path(path)


class FrameRecorder:
    """
    ``on_frame`` callback for ``GroupSimulation.run``: saves frames strictly
    between the end of stabilisation and the last recorded day.
    """

    def __init__(self, out_dir):
        self.out_dir = Path(out_dir)
        self.out_dir.mkdir(parents=True, exist_ok=True)
        self.fig = None
        self.ax = None
        self.saved: List[Path] = []

    def should_capture(self, sim) -> bool:
        p = sim.params
        start = p.stabilize_frames
        end = start + p.frames_per_day * p.recorded_days
        return start < sim.state.frame < end

    def __call__(self, sim):
        if not self.should_capture(sim):
            return
        if self.fig is None:
            self.fig, self.ax = new_figure(sim.params.canvas_width, sim.params.canvas_height)
        draw_frame(self.ax, sim)
        adjusted = sim.state.frame - sim.params.stabilize_frames
        path = self.out_dir / f"{adjusted:06d}.png"
        self.fig.savefig(path, facecolor=self.fig.get_facecolor())
        self.saved.append(path)

    def close(self):
        if self.fig is not None:
            plt.close(self.fig)
            self.fig = None


def write_gif(frames_dir, gif_path, fps: int = 20) -> Path:
    """Assemble the numbered PNGs in ``frames_dir`` into a looping GIF."""
    frames = sorted(Path(frames_dir).glob("[0-9][0-9][0-9][0-9][0-9][0-9].png"))
    if not frames:
        raise FileNotFoundError(f"No frame PNGs found in: {frames_dir}")
    images = [imageio.imread(fp) for fp in frames]
    imageio.mimsave(gif_path, images, duration=1000.0 / fps, loop=0)
    return Path(gif_path)
