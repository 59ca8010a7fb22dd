import numpy as np
import pytest

from mpm_core.node import Node, check_dim_phases


def test_invalid_dimension_or_phases():
    with pytest.raises(ValueError):
        Node(0, [0.0], dim=1)
    with pytest.raises(ValueError):
        Node(0, [0.0, 0.0], dim=2, nphases=3)
    assert check_dim_phases(3, 2) == (3, 2)


def test_velocity_from_momentum():
    n = Node(0, [0.0, 0.0])
    n.update_mass(0, 2.0)
    n.update_momentum(0, np.array([4.0, -2.0]))
    assert n.compute_velocity(0)
    assert np.allclose(n.velocity[0], [2.0, -1.0])


def test_empty_node_reports_failure():
    n = Node(0, [0.0, 0.0])
    assert not n.compute_velocity(0)
    assert not n.compute_acceleration_velocity(0, 0.1)
    assert np.allclose(n.velocity[0], 0.0)


def test_acceleration_and_velocity_update():
    n = Node(0, [0.0, 0.0, 0.0], dim=3)
    n.update_mass(0, 2.0)
    n.update_external_force(0, np.array([0.0, 0.0, -19.62]))
    n.update_internal_force(0, np.array([1.0, 0.0, 0.0]))
    assert n.compute_velocity(0)
    assert n.compute_acceleration_velocity(0, 0.5)
    assert np.allclose(n.acceleration[0], [0.5, 0.0, -9.81])
    assert np.allclose(n.velocity[0], [0.25, 0.0, -4.905])


def test_initialise_resets_accumulators_but_keeps_constraints():
    n = Node(0, [0.0, 0.0])
    n.assign_velocity_constraint(1, 0.0)
    n.update_mass(0, 1.0)
    n.update_momentum(0, np.array([1.0, 1.0]))
    n.initialise()
    assert n.mass[0] == 0.0
    assert np.allclose(n.momentum, 0.0)
    assert (1, 0) in n.velocity_constraints


def test_velocity_constraint_applied_after_solve():
    n = Node(0, [0.0, 0.0])
    assert n.assign_velocity_constraint(1, 0.0)
    assert not n.assign_velocity_constraint(2, 0.0)
    n.update_mass(0, 1.0)
    n.update_momentum(0, np.array([1.0, 3.0]))
    n.compute_velocity(0)
    assert np.allclose(n.velocity[0], [1.0, 0.0])
    n.update_external_force(0, np.array([0.0, -9.81]))
    n.compute_acceleration_velocity(0, 0.1)
    assert n.velocity[0, 1] == 0.0
    assert n.acceleration[0, 1] == 0.0


def test_two_phase_accumulators_are_independent():
    n = Node(0, [0.0, 0.0], nphases=2)
    n.update_mass(1, 3.0)
    assert n.mass[0] == 0.0
    assert n.mass[1] == 3.0
