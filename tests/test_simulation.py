import json
import math

import numpy as np
import pytest

from conftest import make_dataset, make_group
from swarm_dataset import GroupRecord, save_dataset
from swarm_simulation import (
    GroupSimulation, ParticleGroup, SimParams, load_config, main,
)


# ── Parameters / config ──

def test_default_params():
    p = SimParams()
    assert p.bounds == (-368.0, 368.0, -368.0, 368.0)
    assert p.frames_per_day == 100
    assert p.stabilize_frames == 200
    assert p.spring_length == pytest.approx(144.0)
    assert p.containment_mode == "literal"


def test_invalid_params_raise():
    with pytest.raises(ValueError):
        SimParams(containment_mode="sideways")
    with pytest.raises(ValueError):
        SimParams(frame_rate=0)
    with pytest.raises(ValueError):
        SimParams(stabilize_seconds=-1)


def test_load_config_merges_over_defaults(tmp_path):
    cfg = tmp_path / "cfg.json"
    cfg.write_text(json.dumps({"frame_rate": 10, "ring_distance": [100, 120]}))
    p = load_config(cfg)
    assert p.frame_rate == 10
    assert p.ring_distance == (100.0, 120.0)
    assert p.max_speed == 2.0


def test_load_config_rejects_unknown_keys(tmp_path):
    cfg = tmp_path / "cfg.json"
    cfg.write_text(json.dumps({"frame_rat": 10}))
    with pytest.raises(ValueError, match="frame_rat"):
        load_config(cfg)


def test_load_config_rejects_non_object(tmp_path):
    cfg = tmp_path / "cfg.json"
    cfg.write_text("[1, 2]")
    with pytest.raises(ValueError):
        load_config(cfg)


def test_params_dict_round_trip():
    p = SimParams(seed=5, containment_mode="corrected")
    assert SimParams.from_dict(json.loads(json.dumps(p.to_dict()))) == p


# ── Placement ──

def test_group_spawns_around_ring_slot(params, rng):
    record = GroupRecord(key="#b", index=3, day_values=[40, 10],
                         display_values=[400, 100])
    g = ParticleGroup.from_record(record, params, rng)

    assert g.size == 40
    assert g.label == "#b"
    assert list(g.ids) == list(range(40))
    assert len(g.springs) == 39

    angle = 3 / 11 * 2 * math.pi
    direction = np.array([math.sin(angle), math.cos(angle)])
    mean = g.positions.mean(axis=0)
    # centre lies on the slot direction at 150..250 from the origin
    assert np.dot(mean, direction) == pytest.approx(np.linalg.norm(mean), rel=0.2)
    assert 100.0 < np.linalg.norm(mean) < 300.0


def test_placement_with_first_pick_rng(params, first_pick_rng):
    record = GroupRecord(key="a", index=0, day_values=[2], display_values=[2])
    g = ParticleGroup.from_record(record, params, first_pick_rng)
    # slot 0 points along +y, jitter angle 0 points along +x
    assert np.allclose(g.positions, [[5.0, 150.0], [5.0, 150.0]])


def test_fixed_seed_is_reproducible():
    data = make_dataset([30, 40], [25, 10])
    a = GroupSimulation(data, SimParams(seed=11))
    b = GroupSimulation(data, SimParams(seed=11))
    for _ in range(3):
        a.tick()
        b.tick()
    for ga, gb in zip(a.groups, b.groups):
        assert np.array_equal(ga.positions, gb.positions)


def test_empty_group_on_day_zero(rng):
    sim = GroupSimulation(make_dataset([0, 5], [4, 4]), rng=rng)
    assert sim.groups[0].size == 0
    sim.tick()
    assert sim.groups[0].hulls == []


# ── Controller ──

def test_simulation_takes_dates_from_dataset(rng):
    sim = GroupSimulation(make_dataset([3], start="a", end="b"), rng=rng)
    assert (sim.params.start_date, sim.params.end_date) == ("a", "b")
    assert sim.total_particles == 3


def test_tick_moves_particles_and_keeps_them_finite(rng):
    sim = GroupSimulation(make_dataset([30, 30], [30, 30]), rng=rng)
    before = [g.positions.copy() for g in sim.groups]
    for _ in range(5):
        sim.tick()
    for g, pos in zip(sim.groups, before):
        assert np.all(np.isfinite(g.positions))
        assert not np.array_equal(g.positions, pos)
        speeds = np.linalg.norm(g.velocities, axis=1)
        assert np.all(speeds <= g.max_speed * (1 - g.damping) + 1e-9)


def test_hulls_follow_dense_groups(rng):
    sim = GroupSimulation(make_dataset([60], [3]), rng=rng)
    sim.update_hulls()
    dense, sparse = sim.groups
    assert len(dense.hulls) >= 1
    for ring in dense.hulls:
        assert np.array_equal(ring[0], ring[-1])
    assert sparse.hulls == []


def test_snapshot_is_detached(rng):
    sim = GroupSimulation(make_dataset([5, 6], [2, 3]), rng=rng)
    snaps = sim.snapshot()
    assert [s.id for s in snaps] == [0, 1]
    assert [s.display_value for s in snaps] == [500, 200]
    snaps[0].positions[:] = 1e6
    assert np.all(np.abs(sim.groups[0].positions) < 1e3)

    sim.set_day(1)
    assert [s.display_value for s in sim.snapshot()] == [600, 300]


def test_particle_views(params):
    g = make_group([[1.0, 2.0], [3.0, 4.0]], params)
    p = g.particle(1)
    assert p.id == 1
    assert np.array_equal(p.position, [3.0, 4.0])
    assert p.radius == params.particle_radius
    p.position[:] = 0.0
    assert np.array_equal(g.positions[1], [3.0, 4.0])
    assert [q.id for q in g.particles()] == [0, 1]


# ── CLI ──

def test_main_runs_without_rendering(tmp_path, capsys):
    data = make_dataset([4, 6], [3, 2])
    path = save_dataset(data, tmp_path / "data.json")
    cfg = tmp_path / "cfg.json"
    cfg.write_text(json.dumps({"frame_rate": 1, "stabilize_seconds": 1, "day_seconds": 1}))

    main([str(path), "--config", str(cfg), "--seed", "1", "--no-render",
          "--out", str(tmp_path / "out")])

    out = capsys.readouterr().out
    assert "Simulation complete" in out
    assert not (tmp_path / "out").exists()
