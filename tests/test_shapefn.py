import numpy as np
import pytest

from mpm_core.fem.hex8 import HEX8_CORNERS, hex8_grad, hex8_shape
from mpm_core.fem.q4 import Q4_CORNERS, q4_grad, q4_shape
from mpm_core.numba.kernels_shapefn import hex8_shape_numba, q4_shape_numba, shape_numba


def _random_xi(dim, n=25, seed=0):
    rng = np.random.default_rng(seed)
    return rng.uniform(-1.0, 1.0, size=(n, dim))


def test_q4_partition_of_unity_and_zero_gradient_sum():
    for xi in _random_xi(2):
        N, dN = q4_shape_numba(xi[0], xi[1])
        assert N.sum() == pytest.approx(1.0, abs=1e-14)
        assert np.allclose(dN.sum(axis=0), 0.0, atol=1e-14)


def test_hex8_partition_of_unity_and_zero_gradient_sum():
    for xi in _random_xi(3):
        N, dN = hex8_shape_numba(xi[0], xi[1], xi[2])
        assert N.sum() == pytest.approx(1.0, abs=1e-14)
        assert np.allclose(dN.sum(axis=0), 0.0, atol=1e-14)


def test_shape_functions_are_nodal_interpolants():
    for a, corner in enumerate(Q4_CORNERS):
        N, _ = q4_shape_numba(corner[0], corner[1])
        assert np.allclose(N, np.eye(4)[a])
    for a, corner in enumerate(HEX8_CORNERS):
        N, _ = hex8_shape_numba(corner[0], corner[1], corner[2])
        assert np.allclose(N, np.eye(8)[a])


def test_numba_matches_numpy_reference():
    for xi in _random_xi(2, seed=1):
        N_ref, _, _ = q4_shape(xi[0], xi[1])
        N, dN = shape_numba(np.ascontiguousarray(xi))
        assert np.allclose(N, N_ref)
        assert np.allclose(dN, q4_grad(xi[0], xi[1]))
    for xi in _random_xi(3, seed=2):
        N_ref, _, _, _ = hex8_shape(xi[0], xi[1], xi[2])
        N, dN = shape_numba(np.ascontiguousarray(xi))
        assert np.allclose(N, N_ref)
        assert np.allclose(dN, hex8_grad(xi[0], xi[1], xi[2]))


def test_centroid_values():
    N, _ = q4_shape_numba(0.0, 0.0)
    assert np.allclose(N, 0.25)
    N, _ = hex8_shape_numba(0.0, 0.0, 0.0)
    assert np.allclose(N, 0.125)
