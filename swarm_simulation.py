"""
Day-Driven Group Swarm Simulation
=================================

Labelled groups of particles drift around a 2D canvas. Every "day" each
group's particle count is resized to that day's value from the dataset,
and the particles settle under a small set of stylised forces:

(1) Pairwise attraction / repulsion (all particle pairs, all groups):
    d < r:  s = (d / r) ** (1 / ramp)
            f = s · 9 · strength · (1/(s+1) + (s-3)/4) / d
            Δv_receiver += f · (x_source - x_receiver)
    ``strength`` is the friendly constant inside a group and the hostile
    constant across groups. Both are negative by default, which pushes
    particles apart; r and ramp come from the source particle.

(2) Star springs (hub particle 0 to every other particle in a group):
    target = x_from + unit(x_to - x_from) · rest_length
    F      = (target - x_to) · 0.5 · stiffness · (1 - damping)
    Δv_to += F,  Δv_from -= F

(3) Gravity towards the origin: same profile as (1) with a fixed
    strength and no distance cutoff.

Integration per frame: clamp speed, move, soft containment inside the
padded canvas rectangle, then bleed (1 - damping) of the velocity.

Day schedule: nothing happens for the stabilisation window, after that
the day index advances once per day window (day_seconds · frame_rate).

Requirements:
    pip install numpy scipy numba tqdm matplotlib imageio

Usage:
    python swarm_simulation.py data.json                    # default config
    python swarm_simulation.py data.json --config cfg.json  # override params
"""

from __future__ import annotations

import argparse
import json
import math
import time as time_module
from dataclasses import dataclass, field, fields, replace, asdict
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
from numba import njit, prange
from tqdm import tqdm

from swarm_dataset import Dataset, GroupRecord, load_dataset
from swarm_hulls import extract_boundaries

CONTAINMENT_MODES = ("literal", "corrected")


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class SimParams:
    # ── Particle interaction ──
    particle_radius: float = 120.0      # interaction radius
    force_ramp: float = 1.4             # steepness of the force profile
    hostile_strength: float = -1.5      # between different groups
    friendly_strength: float = -1.0     # within a group
    particle_damping: float = 0.9       # fraction of velocity lost per frame
    max_speed: float = 2.0

    # ── Springs ──
    spring_length: float = 120.0 * 1.2
    spring_stiffness: float = 4.3
    spring_damping: float = 0.9

    # ── Gravity ──
    gravity_strength: float = -3.0

    # ── Containment (canvas centred on origin) ──
    canvas_width: float = 800.0
    canvas_height: float = 800.0
    bounds_padding: float = 32.0
    containment_lenience: float = 32.0
    containment_floor: float = 0.1
    containment_mode: str = "literal"

    # ── Boundary extraction ──
    cluster_radius: float = 40.0
    cluster_min_points: int = 20
    hull_concavity: float = 2.0
    simplify_tolerance: float = 1.0

    # ── Placement ──
    ring_slots: int = 11
    ring_distance: Tuple[float, float] = (150.0, 250.0)
    spawn_jitter: Tuple[float, float] = (5.0, 50.0)
    empty_spawn_range: float = 200.0

    # ── Timing ──
    frame_rate: int = 20
    day_seconds: int = 5
    stabilize_seconds: int = 10
    recorded_days: int = 7

    # ── Run ──
    seed: Optional[int] = None
    start_date: str = ""
    end_date: str = ""

    def __post_init__(self):
        if self.containment_mode not in CONTAINMENT_MODES:
            raise ValueError(f"containment_mode must be one of {CONTAINMENT_MODES}, "
                             f"got {self.containment_mode!r}")
        if self.frame_rate <= 0 or self.day_seconds <= 0:
            raise ValueError("frame_rate and day_seconds must be positive")
        if self.stabilize_seconds < 0:
            raise ValueError("stabilize_seconds must be non-negative")
        if self.particle_radius <= 0 or self.force_ramp <= 0:
            raise ValueError("particle_radius and force_ramp must be positive")

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """(min_x, max_x, min_y, max_y) of the containment rectangle."""
        hx = self.canvas_width / 2 - self.bounds_padding
        hy = self.canvas_height / 2 - self.bounds_padding
        return (-hx, hx, -hy, hy)

    @property
    def frames_per_day(self) -> int:
        return self.day_seconds * self.frame_rate

    @property
    def stabilize_frames(self) -> int:
        return self.stabilize_seconds * self.frame_rate

    def total_frames(self, n_days: int) -> int:
        """Frames needed to reach the last recorded day (bounded by the data)."""
        last_day = max(0, min(self.recorded_days, n_days - 1))
        return self.stabilize_frames + last_day * self.frames_per_day + 1

    def to_dict(self) -> Dict:
        d = asdict(self)
        d["ring_distance"] = list(self.ring_distance)
        d["spawn_jitter"] = list(self.spawn_jitter)
        return d

    @classmethod
    def from_dict(cls, overrides: Dict) -> "SimParams":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ValueError(f"Unknown config keys: {unknown}")
        values = dict(overrides)
        for key in ("ring_distance", "spawn_jitter"):
            if key in values:
                values[key] = tuple(float(v) for v in values[key])
        return cls(**values)


def load_config(filepath) -> SimParams:
    """Load parameter overrides from a JSON object and merge over defaults."""
    with open(filepath, encoding="utf-8") as f:
        config = json.load(f)
    if not isinstance(config, dict):
        raise ValueError(f"Config must be a JSON object, got {type(config).__name__}")
    return SimParams.from_dict(config)


# =============================================================================
# DATA MODEL
# =============================================================================

@dataclass
class Spring:
    """Spring between two particles of one group (array positions)."""
    from_index: int
    to_index: int
    length: float
    stiffness: float
    damping: float


def build_star_springs(group_size: int, length: float, stiffness: float,
                       damping: float) -> List[Spring]:
    """Hub (index 0) connected to every other index: group_size - 1 springs."""
    hub = 0
    return [Spring(hub, hub + j, length, stiffness, damping)
            for j in range(1, group_size)]


@dataclass
class Particle:
    """Read-only view of one particle."""
    id: int
    position: np.ndarray
    velocity: np.ndarray
    bounds: np.ndarray
    radius: float
    ramp: float
    damping: float
    max_speed: float


class ParticleGroup:
    """
    One labelled group. Particle state is held as parallel arrays
    (positions, velocities, ids and the per-particle copies of the config
    values taken when each particle was created).
    """

    def __init__(self, gid: int, label: str, day_values, display_values,
                 positions: np.ndarray, params: SimParams):
        self.id = gid
        self.label = label
        self.day_values = np.asarray(day_values, dtype=np.int64)
        self.display_values = np.asarray(display_values, dtype=np.int64)

        self.positions = np.zeros((0, 2), dtype=np.float64)
        self.velocities = np.zeros((0, 2), dtype=np.float64)
        self.ids = np.zeros(0, dtype=np.int64)
        self.radius = np.zeros(0, dtype=np.float64)
        self.ramp = np.zeros(0, dtype=np.float64)
        self.damping = np.zeros(0, dtype=np.float64)
        self.max_speed = np.zeros(0, dtype=np.float64)
        self.bounds = np.zeros((0, 4), dtype=np.float64)

        positions = np.asarray(positions, dtype=np.float64).reshape(-1, 2)
        self.add_particles(positions, np.arange(len(positions), dtype=np.int64), params)

        self.springs: List[Spring] = []
        self.rebuild_springs(params)
        self.hulls: List[np.ndarray] = []

    @classmethod
    def from_record(cls, record: GroupRecord, params: SimParams,
                    rng: np.random.Generator) -> "ParticleGroup":
        """Spawn the group's day-0 particles around its ring slot."""
        angle = (record.index / params.ring_slots) * (2.0 * math.pi)
        d = rng.uniform(*params.ring_distance)
        cy = math.cos(angle) * d
        cx = math.sin(angle) * d

        n = record.day_values[0]
        na = rng.uniform(0.0, 2.0 * math.pi, size=n)
        nd = rng.uniform(*params.spawn_jitter, size=n)
        positions = np.column_stack([cx + np.cos(na) * nd, cy + np.sin(na) * nd])
        return cls(record.index, record.key, record.day_values,
                   record.display_values, positions, params)

    # ── Particle bookkeeping ──

    @property
    def size(self) -> int:
        return len(self.positions)

    def add_particles(self, positions: np.ndarray, ids: np.ndarray, params: SimParams):
        n = len(positions)
        self.positions = np.vstack([self.positions, positions])
        self.velocities = np.vstack([self.velocities, np.zeros((n, 2))])
        self.ids = np.concatenate([self.ids, np.asarray(ids, dtype=np.int64)])
        self.radius = np.concatenate([self.radius, np.full(n, params.particle_radius)])
        self.ramp = np.concatenate([self.ramp, np.full(n, params.force_ramp)])
        self.damping = np.concatenate([self.damping, np.full(n, params.particle_damping)])
        self.max_speed = np.concatenate([self.max_speed, np.full(n, params.max_speed)])
        self.bounds = np.vstack([self.bounds, np.tile(np.array(params.bounds), (n, 1))])

    def keep_particles(self, keep: np.ndarray):
        """Keep only the particles at array positions ``keep`` (order preserved)."""
        self.positions = self.positions[keep]
        self.velocities = self.velocities[keep]
        self.ids = self.ids[keep]
        self.radius = self.radius[keep]
        self.ramp = self.ramp[keep]
        self.damping = self.damping[keep]
        self.max_speed = self.max_speed[keep]
        self.bounds = self.bounds[keep]

    def rebuild_springs(self, params: SimParams):
        self.springs = build_star_springs(self.size, params.spring_length,
                                          params.spring_stiffness, params.spring_damping)

    def target_count(self, day: int) -> int:
        if day < 0 or day >= len(self.day_values):
            raise ValueError(f"group {self.label!r}: day {day} outside "
                             f"0..{len(self.day_values) - 1}")
        return int(self.day_values[day])

    def display_value(self, day: int) -> int:
        if day < 0 or day >= len(self.display_values):
            raise ValueError(f"group {self.label!r}: day {day} outside "
                             f"0..{len(self.display_values) - 1}")
        return int(self.display_values[day])

    def particle(self, i: int) -> Particle:
        return Particle(id=int(self.ids[i]),
                        position=self.positions[i].copy(),
                        velocity=self.velocities[i].copy(),
                        bounds=self.bounds[i].copy(),
                        radius=float(self.radius[i]),
                        ramp=float(self.ramp[i]),
                        damping=float(self.damping[i]),
                        max_speed=float(self.max_speed[i]))

    def particles(self) -> List[Particle]:
        return [self.particle(i) for i in range(self.size)]


# =============================================================================
# NUMBA KERNELS
# =============================================================================

@njit(cache=True)
def _profile(d, radius, ramp, strength):
    """Force factor for distance d (caller guarantees d > 0)."""
    s = (d / radius) ** (1.0 / ramp)
    return s * 9.0 * strength * (1.0 / (s + 1.0) + (s - 3.0) / 4.0) / d


@njit(parallel=True, cache=True)
def _attraction_numba(recv_pos, recv_ids, src_pos, src_ids, src_radius, src_ramp,
                      strength, same_group):
    """
    Velocity deltas received by every particle of one group from every
    particle of another (or the same) group. Each receiver accumulates
    over sources in a fixed order, so results do not depend on threading.
    """
    n = recv_pos.shape[0]
    m = src_pos.shape[0]
    out = np.zeros((n, 2), dtype=np.float64)

    for o in prange(n):
        ax = 0.0
        ay = 0.0
        for t in range(m):
            if same_group and recv_ids[o] == src_ids[t]:
                continue
            dx = src_pos[t, 0] - recv_pos[o, 0]
            dy = src_pos[t, 1] - recv_pos[o, 1]
            d = np.sqrt(dx * dx + dy * dy)
            if d > 0.0 and d < src_radius[t]:
                f = _profile(d, src_radius[t], src_ramp[t], strength)
                ax += f * dx
                ay += f * dy
        out[o, 0] = ax
        out[o, 1] = ay

    return out


@njit(cache=True)
def _gravity_numba(pos, radius, ramp, strength):
    n = pos.shape[0]
    out = np.zeros((n, 2), dtype=np.float64)
    for i in range(n):
        d = np.sqrt(pos[i, 0] * pos[i, 0] + pos[i, 1] * pos[i, 1])
        if d > 0.0:
            f = _profile(d, radius[i], ramp[i], strength)
            out[i, 0] = pos[i, 0] * f
            out[i, 1] = pos[i, 1] * f
    return out


# =============================================================================
# FORCE ENGINE
# =============================================================================

def attraction_deltas(receiver: ParticleGroup, source: ParticleGroup,
                      params: SimParams) -> np.ndarray:
    same = receiver.id == source.id
    strength = params.friendly_strength if same else params.hostile_strength
    if receiver.size == 0 or source.size == 0:
        return np.zeros((receiver.size, 2))
    return _attraction_numba(receiver.positions, receiver.ids,
                             source.positions, source.ids,
                             source.radius, source.ramp,
                             float(strength), bool(same))


def spring_deltas(group: ParticleGroup) -> np.ndarray:
    delta = np.zeros_like(group.positions)
    if not group.springs:
        return delta

    frm = np.array([s.from_index for s in group.springs], dtype=np.intp)
    to = np.array([s.to_index for s in group.springs], dtype=np.intp)
    length = np.array([s.length for s in group.springs])
    stiffness = np.array([s.stiffness for s in group.springs])
    damping = np.array([s.damping for s in group.springs])

    pos = group.positions
    diff = pos[to] - pos[frm]
    dist = np.linalg.norm(diff, axis=1)
    nonzero = dist > 0.0
    unit = np.divide(diff, dist[:, None], out=np.zeros_like(diff), where=nonzero[:, None])

    # One-way spring guard, evaluated on the normalised vector: a unit
    # vector only exceeds the rest length when the rest length is below 1.
    active = nonzero & ~(np.abs(np.linalg.norm(unit, axis=1)) > length)

    target = pos[frm] + unit * length[:, None]
    force = (target - pos[to]) * (0.5 * stiffness * (1.0 - damping))[:, None]
    force[~active] = 0.0

    np.add.at(delta, to, force)
    np.add.at(delta, frm, -force)
    return delta


def gravity_deltas(group: ParticleGroup, strength: float) -> np.ndarray:
    if group.size == 0:
        return np.zeros((0, 2))
    return _gravity_numba(group.positions, group.radius, group.ramp, float(strength))


def compute_velocity_deltas(groups: List[ParticleGroup], params: SimParams) -> List[np.ndarray]:
    """Read phase: every delta is computed from positions before any is applied."""
    deltas = [np.zeros_like(g.positions) for g in groups]
    for source in groups:
        for k, receiver in enumerate(groups):
            deltas[k] += attraction_deltas(receiver, source, params)
    for k, g in enumerate(groups):
        deltas[k] += spring_deltas(g)
        deltas[k] += gravity_deltas(g, params.gravity_strength)
    return deltas


def apply_forces(groups: List[ParticleGroup], params: SimParams):
    deltas = compute_velocity_deltas(groups, params)
    for g, dv in zip(groups, deltas):
        g.velocities += dv


# =============================================================================
# INTEGRATOR
# =============================================================================

def integrate(group: ParticleGroup, params: SimParams):
    """Clamp speed, move, soft containment, damping. Mutates the group."""
    if group.size == 0:
        return
    v = group.velocities
    pos = group.positions

    speed = np.linalg.norm(v, axis=1)
    over = speed > group.max_speed
    v[over] *= (group.max_speed[over] / speed[over])[:, None]

    pos += v

    lenience = params.containment_lenience
    floor = params.containment_floor
    min_x, max_x = group.bounds[:, 0], group.bounds[:, 1]
    min_y, max_y = group.bounds[:, 2], group.bounds[:, 3]
    literal = params.containment_mode == "literal"

    # min-x
    hit = pos[:, 0] < min_x
    norm = np.minimum(1.0, -(pos[:, 0] - min_x) / lenience)
    if literal:
        dv = np.maximum(v[:, 0] * norm, -floor)
    else:
        dv = np.minimum(v[:, 0] * norm, -floor)
    v[:, 0] -= np.where(hit, dv, 0.0)

    # max-x
    hit = pos[:, 0] > max_x
    norm = np.minimum(1.0, (pos[:, 0] - max_x) / lenience)
    dv = np.maximum(v[:, 0] * norm, floor)
    v[:, 0] -= np.where(hit, dv, 0.0)

    # min-y: the literal formula scales the x component
    hit = pos[:, 1] < min_y
    norm = np.minimum(1.0, -(pos[:, 1] - min_y) / lenience)
    if literal:
        dv = np.maximum(v[:, 0] * norm, floor)
    else:
        dv = np.minimum(v[:, 1] * norm, -floor)
    v[:, 1] -= np.where(hit, dv, 0.0)

    # max-y
    hit = pos[:, 1] > max_y
    norm = np.minimum(1.0, (pos[:, 1] - max_y) / lenience)
    comp = v[:, 0] if literal else v[:, 1]
    dv = np.maximum(comp * norm, floor)
    v[:, 1] -= np.where(hit, dv, 0.0)

    v *= (1.0 - group.damping)[:, None]


# =============================================================================
# RESIZE
# =============================================================================

def resize(group: ParticleGroup, new_count: int, params: SimParams,
           rng: np.random.Generator):
    """
    Shrink by removing uniformly random particles one at a time (survivor
    ids are left as they are), or grow by renumbering survivors 0..n-1 and
    piling the new particles onto one random survivor. Springs are rebuilt
    either way.
    """
    if (isinstance(new_count, bool) or not math.isfinite(new_count)
            or int(new_count) != new_count):
        raise ValueError(f"particle count must be an integer, got {new_count!r}")
    new_count = int(new_count)
    if new_count < 0:
        raise ValueError(f"particle count must be non-negative, got {new_count}")

    cur = group.size
    if new_count < cur:
        alive = list(range(cur))
        for _ in range(cur - new_count):
            alive.pop(int(rng.integers(len(alive))))
        group.keep_particles(np.array(alive, dtype=np.intp))
    else:
        group.ids = np.arange(cur, dtype=np.int64)
        if cur > 0:
            target = int(rng.integers(cur))
            x, y = group.positions[target]
        else:
            x = rng.uniform(-params.empty_spawn_range, params.empty_spawn_range)
            y = rng.uniform(-params.empty_spawn_range, params.empty_spawn_range)
        n_new = new_count - cur
        group.add_particles(np.tile([x, y], (n_new, 1)),
                            np.arange(cur, new_count, dtype=np.int64), params)

    group.rebuild_springs(params)


# =============================================================================
# DAY SCHEDULER / STATE
# =============================================================================

@dataclass
class SimulationState:
    frame: int = 0
    day: int = 0


class DayScheduler:
    """Maps a frame number to the day that should start on it (if any)."""

    def __init__(self, stabilize_frames: int, frames_per_day: int):
        if frames_per_day <= 0:
            raise ValueError("frames_per_day must be positive")
        self.stabilize_frames = stabilize_frames
        self.frames_per_day = frames_per_day

    @classmethod
    def from_params(cls, params: SimParams) -> "DayScheduler":
        return cls(params.stabilize_frames, params.frames_per_day)

    def is_stabilizing(self, frame: int) -> bool:
        return frame < self.stabilize_frames

    def target_day(self, frame: int) -> Optional[int]:
        """Day index for a day boundary frame, None on every other frame."""
        if self.is_stabilizing(frame):
            return None
        elapsed = frame - self.stabilize_frames
        if elapsed % self.frames_per_day != 0:
            return None
        return elapsed // self.frames_per_day


@dataclass
class GroupSnapshot:
    id: int
    label: str
    positions: np.ndarray
    hulls: List[np.ndarray] = field(default_factory=list)
    display_value: int = 0


# =============================================================================
# MAIN SIMULATION
# =============================================================================

class GroupSimulation:
    def __init__(self, dataset: Dataset, params: Optional[SimParams] = None,
                 rng: Optional[np.random.Generator] = None, verbose: bool = False):
        params = params or SimParams()
        self.params = replace(params, start_date=dataset.start_date,
                              end_date=dataset.end_date)
        self.rng = rng if rng is not None else np.random.default_rng(self.params.seed)
        self.verbose = verbose
        self.n_days = dataset.n_days

        self.groups = [ParticleGroup.from_record(rec, self.params, self.rng)
                       for rec in dataset.groups]
        self.state = SimulationState()
        self.scheduler = DayScheduler.from_params(self.params)

        if self.verbose:
            print(f"\nSimulation: {self.params.start_date} -> {self.params.end_date}")
            print(f"  Groups: {len(self.groups)}, days: {self.n_days}")
            print(f"  Particles on day 0: {self.total_particles}")
            print(f"  Stabilise {self.params.stabilize_frames} frames, "
                  f"{self.params.frames_per_day} frames/day")

    @property
    def total_particles(self) -> int:
        return sum(g.size for g in self.groups)

    @property
    def is_finished(self) -> bool:
        return self.state.frame >= self.params.total_frames(self.n_days)

    def day_counts(self, day: int) -> List[int]:
        """Every group's count for ``day``; raises ValueError if any is missing."""
        return [g.target_count(day) for g in self.groups]

    def set_day(self, day: int):
        """Resize every group to its count for ``day`` (outside the schedule too)."""
        self._resize_all(day, self.day_counts(day))

    def _resize_all(self, day: int, counts: List[int]):
        for g, n in zip(self.groups, counts):
            resize(g, n, self.params, self.rng)
        self.state.day = day
        if self.verbose:
            print(f"  [frame {self.state.frame}] day {day}: {self.total_particles} particles")

    def update_hulls(self):
        p = self.params
        for g in self.groups:
            g.hulls = extract_boundaries(g.positions, p.cluster_radius,
                                         p.cluster_min_points, p.hull_concavity,
                                         p.simplify_tolerance)

    def tick(self) -> SimulationState:
        # Day lookup happens first so a day past the data fails before anything moves
        day = self.scheduler.target_day(self.state.frame)
        counts = None
        if day is not None and day != self.state.day:
            counts = self.day_counts(day)

        apply_forces(self.groups, self.params)
        for g in self.groups:
            integrate(g, self.params)
        self.update_hulls()

        if counts is not None:
            self._resize_all(day, counts)

        self.state.frame += 1
        return self.state

    # ── Queries ──

    def display_value(self, group: ParticleGroup) -> int:
        return group.display_value(self.state.day)

    def snapshot(self) -> List[GroupSnapshot]:
        return [GroupSnapshot(id=g.id, label=g.label,
                              positions=g.positions.copy(),
                              hulls=[h.copy() for h in g.hulls],
                              display_value=self.display_value(g))
                for g in self.groups]

    def run(self, max_frames: Optional[int] = None,
            on_frame: Optional[Callable[["GroupSimulation"], None]] = None) -> SimulationState:
        total = self.params.total_frames(self.n_days)
        if max_frames is not None:
            total = min(total, max_frames)

        start_wall = time_module.time()
        pbar = tqdm(total=total, desc="Simulating", unit="frame", disable=not self.verbose)
        while self.state.frame < total:
            self.tick()
            if on_frame is not None:
                on_frame(self)
            pbar.update(1)
        pbar.close()

        if self.verbose:
            elapsed = time_module.time() - start_wall
            print("\nSimulation complete!")
            print(f"  Frames: {self.state.frame}, final day: {self.state.day}")
            print(f"  Wall time: {elapsed:.1f}s ({self.state.frame / max(elapsed, 1e-9):.1f} fps)")
        return self.state


# =============================================================================
# MAIN
# =============================================================================

def main(argv=None):
    parser = argparse.ArgumentParser(description="Day-driven group swarm simulation")
    parser.add_argument("dataset", help="Dataset JSON (groups, start_date, end_date)")
    parser.add_argument("--config", help="JSON object of SimParams overrides")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--out", default="./out", help="Base output directory")
    parser.add_argument("--no-render", action="store_true", help="Skip PNG frames")
    parser.add_argument("--gif", action="store_true", help="Also assemble a GIF")
    parser.add_argument("--quiet", action="store_true")
    args = parser.parse_args(argv)

    params = load_config(args.config) if args.config else SimParams()
    if args.seed is not None:
        params = replace(params, seed=args.seed)

    dataset = load_dataset(args.dataset)
    sim = GroupSimulation(dataset, params, verbose=not args.quiet)

    on_frame = None
    out_dir = Path(args.out) / sim.params.start_date
    if not args.no_render:
        import swarm_render
        out_dir.mkdir(parents=True, exist_ok=True)
        with open(out_dir / "config.json", "w", encoding="utf-8") as f:
            json.dump(sim.params.to_dict(), f, indent=2)
        on_frame = swarm_render.FrameRecorder(out_dir)

    sim.run(on_frame=on_frame)

    if not args.no_render:
        on_frame.close()
        if args.gif:
            gif = swarm_render.write_gif(out_dir, out_dir / "swarm.gif",
                                         fps=sim.params.frame_rate)
            if not args.quiet:
                print(f"  GIF: {gif}")
        if not args.quiet:
            print(f"  Output: {out_dir}")


if __name__ == "__main__":
    main()
