import math

import numpy as np
import pytest

from conftest import make_group
from swarm_simulation import (
    apply_forces, attraction_deltas, build_star_springs, compute_velocity_deltas,
    gravity_deltas, spring_deltas,
)


def expected_factor(d, radius, ramp, strength):
    s = (d / radius) ** (1.0 / ramp)
    return s * 9.0 * strength * (1.0 / (s + 1.0) + (s - 3.0) / 4.0) / d


# ── Pairwise attraction / repulsion ──

@pytest.mark.parametrize("distance", [120.0, 150.0, 1000.0])
def test_attraction_zero_at_or_beyond_radius(params, distance):
    receiver = make_group([[0.0, 0.0]], params, gid=0)
    source = make_group([[distance, 0.0]], params, gid=1)
    assert np.all(attraction_deltas(receiver, source, params) == 0.0)


def test_attraction_zero_at_zero_distance(params):
    receiver = make_group([[5.0, 5.0]], params, gid=0)
    source = make_group([[5.0, 5.0]], params, gid=1)
    assert np.all(attraction_deltas(receiver, source, params) == 0.0)


def test_same_group_same_id_is_skipped(params):
    g = make_group([[0.0, 0.0], [10.0, 0.0]], params)
    g.ids = np.array([0, 0])
    assert np.all(attraction_deltas(g, g, params) == 0.0)

    g.ids = np.array([0, 1])
    assert np.any(attraction_deltas(g, g, params) != 0.0)


def test_same_id_in_different_groups_still_interacts(params):
    a = make_group([[0.0, 0.0]], params, gid=0)
    b = make_group([[10.0, 0.0]], params, gid=1)
    assert a.ids[0] == b.ids[0]
    assert attraction_deltas(a, b, params)[0, 0] != 0.0


def test_attraction_matches_profile_and_pushes_apart(params):
    receiver = make_group([[0.0, 0.0]], params, gid=0)
    source = make_group([[10.0, 0.0]], params, gid=1)
    delta = attraction_deltas(receiver, source, params)

    f = expected_factor(10.0, params.particle_radius, params.force_ramp,
                        params.hostile_strength)
    assert delta[0, 0] == pytest.approx(f * 10.0)
    assert delta[0, 1] == 0.0
    # negative default strength repels
    assert delta[0, 0] < 0.0


def test_friendly_and_hostile_strengths(params):
    same = make_group([[0.0, 0.0], [10.0, 0.0]], params, gid=0)
    friendly = attraction_deltas(same, same, params)[0, 0]

    receiver = make_group([[0.0, 0.0]], params, gid=0)
    other = make_group([[10.0, 0.0]], params, gid=1)
    hostile = attraction_deltas(receiver, other, params)[0, 0]

    assert hostile / friendly == pytest.approx(
        params.hostile_strength / params.friendly_strength)


def test_source_radius_is_used_not_receiver(params):
    short = make_group([[0.0, 0.0]], params, gid=0)
    short.radius[:] = 20.0
    long_ = make_group([[50.0, 0.0]], params, gid=1)

    # long_ receives from short: short's radius 20 < distance 50
    assert np.all(attraction_deltas(long_, short, params) == 0.0)
    # short receives from long_: long_'s radius 120 > 50
    assert attraction_deltas(short, long_, params)[0, 0] != 0.0


def test_attraction_with_empty_group(params):
    empty = make_group(np.zeros((0, 2)), params, gid=0, day_values=[0])
    other = make_group([[0.0, 0.0]], params, gid=1)
    assert attraction_deltas(empty, other, params).shape == (0, 2)
    assert np.all(attraction_deltas(other, empty, params) == 0.0)


# ── Gravity ──

def test_gravity_at_origin_is_zero(params):
    g = make_group([[0.0, 0.0]], params)
    delta = gravity_deltas(g, params.gravity_strength)
    assert np.all(delta == 0.0)
    assert np.all(np.isfinite(delta))


@pytest.mark.parametrize("x", [60.0, 500.0])
def test_gravity_pulls_towards_origin_at_any_distance(params, x):
    g = make_group([[x, 0.0]], params)
    delta = gravity_deltas(g, params.gravity_strength)
    f = expected_factor(x, params.particle_radius, params.force_ramp,
                        params.gravity_strength)
    assert delta[0, 0] == pytest.approx(x * f)
    assert delta[0, 0] < 0.0
    assert delta[0, 1] == 0.0


# ── Springs ──

def test_star_topology():
    springs = build_star_springs(5, 144.0, 4.3, 0.9)
    assert len(springs) == 4
    assert all(s.from_index == 0 for s in springs)
    assert [s.to_index for s in springs] == [1, 2, 3, 4]
    assert build_star_springs(1, 144.0, 4.3, 0.9) == []
    assert build_star_springs(0, 144.0, 4.3, 0.9) == []


def test_spring_pulls_towards_rest_length(params):
    g = make_group([[0.0, 0.0], [100.0, 0.0]], params)
    delta = spring_deltas(g)
    expected = (144.0 - 100.0) * 0.5 * 4.3 * (1.0 - 0.9)
    assert delta[1, 0] == pytest.approx(expected)
    assert delta[0, 0] == pytest.approx(-expected)
    assert np.allclose(delta[:, 1], 0.0)
    assert np.allclose(delta.sum(axis=0), 0.0)


def test_spring_at_zero_distance_is_noop(params):
    g = make_group([[3.0, 3.0], [3.0, 3.0]], params)
    assert np.all(spring_deltas(g) == 0.0)


def test_spring_guard_compares_unit_vector_to_rest_length(params):
    # Flagged behaviour: the one-way guard looks at the normalised vector,
    # so it never fires for rest lengths >= 1 and always fires below 1.
    g = make_group([[0.0, 0.0], [500.0, 0.0]], params)
    assert spring_deltas(g)[1, 0] != 0.0

    for s in g.springs:
        s.length = 0.5
    assert np.all(spring_deltas(g) == 0.0)


# ── Combined engine ──

def test_apply_forces_adds_all_deltas_from_one_read(params):
    a = make_group([[0.0, 0.0], [30.0, 10.0], [-20.0, 40.0]], params, gid=0)
    b = make_group([[60.0, 0.0], [90.0, -30.0]], params, gid=1)
    groups = [a, b]

    deltas = compute_velocity_deltas(groups, params)
    manual_a = (attraction_deltas(a, a, params) + attraction_deltas(a, b, params)
                + spring_deltas(a) + gravity_deltas(a, params.gravity_strength))
    assert np.allclose(deltas[0], manual_a)

    positions_before = [g.positions.copy() for g in groups]
    apply_forces(groups, params)
    for g, d, pos in zip(groups, deltas, positions_before):
        assert np.allclose(g.velocities, d)
        assert np.array_equal(g.positions, pos)


def test_forces_are_finite_for_stacked_particles(params):
    # freshly grown groups pile every new particle on one spot
    g = make_group([[10.0, 10.0]] * 6, params)
    apply_forces([g], params)
    assert np.all(np.isfinite(g.velocities))
    assert not math.isnan(float(g.velocities.sum()))
