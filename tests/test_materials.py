import math

import numpy as np
import pytest

from mpm_core.constitutive import Bingham, LinearElastic, volumetric
from mpm_core.linear_elastic import iso_lame, isotropic_C6
from mpm_core.particle import Particle


class _RateStub:
    """Minimal particle context exposing a strain rate."""

    def __init__(self, rate):
        self._rate = np.asarray(rate, dtype=float)

    def strain_rate(self, phase=0):
        return self._rate.copy()


def test_isotropic_tensor_entries():
    E, nu = 2.0e7, 0.25
    _lam, G, K = iso_lame(E, nu)
    C = isotropic_C6(E, nu)
    assert C[0, 0] == pytest.approx(K + 4.0 * G / 3.0)
    assert C[0, 1] == pytest.approx(K - 2.0 * G / 3.0)
    assert C[3, 3] == pytest.approx(G)
    assert np.allclose(C, C.T)


def test_linear_elastic_zero_increment_returns_same_stress(elastic_props):
    mat = LinearElastic(id=1, properties=elastic_props)
    assert mat.status
    sig = np.array([1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
    out = mat.compute_stress(sig, np.zeros(6))
    assert np.array_equal(out, sig)
    assert out is not sig


def test_linear_elastic_uniaxial_increment(elastic_props):
    mat = LinearElastic(id=1, properties=elastic_props)
    de = np.array([1e-4, 0, 0, 0, 0, 0])
    sig0 = np.zeros(6)
    out = mat.compute_stress(sig0, de)
    C = mat.elastic_tensor()
    assert np.allclose(out, C[:, 0] * 1e-4)
    assert np.all(sig0 == 0.0)
    C[0, 0] = 0.0
    assert mat.elastic_tensor()[0, 0] != 0.0


@pytest.mark.parametrize(
    "props",
    [
        {"density": 1000.0, "youngs_modulus": 1e6},
        {"density": 1000.0, "youngs_modulus": 1e6, "poisson_ratio": 0.3, "colour": 1.0},
        {"density": 1000.0, "youngs_modulus": "abc", "poisson_ratio": 0.3},
        {"density": 1000.0, "youngs_modulus": float("nan"), "poisson_ratio": 0.3},
        {"density": -1.0, "youngs_modulus": 1e6, "poisson_ratio": 0.3},
        {"density": 1000.0, "youngs_modulus": 1e6, "poisson_ratio": 0.5},
    ],
)
def test_invalid_parameters_mark_material_invalid(props):
    mat = LinearElastic(id=3, properties=props)
    assert not mat.status
    assert mat.error
    with pytest.raises(RuntimeError):
        mat.compute_stress(np.zeros(6), np.zeros(6))


def test_bingham_unsupported_paths_raise_every_call(bingham_props):
    mat = Bingham(id=2, properties=bingham_props)
    assert mat.status
    sig = np.array([-1.0, -1.0, -1.0, 0.0, 0.0, 0.0])
    de = np.full(6, 1e-3)
    for _ in range(3):
        with pytest.raises(NotImplementedError):
            mat.compute_stress(sig, de)
        with pytest.raises(NotImplementedError):
            mat.elastic_tensor()
    assert np.allclose(sig, [-1.0, -1.0, -1.0, 0.0, 0.0, 0.0])
    assert np.allclose(de, 1e-3)
    assert mat.status


def test_bingham_at_rest_keeps_pressure_only(bingham_props):
    mat = Bingham(id=2, properties=bingham_props, dim=3)
    sig = np.array([-3.0, -3.0, -3.0, 0.0, 0.0, 0.0])
    out = mat.compute_stress(sig, np.zeros(6), _RateStub(np.zeros(6)))
    assert np.allclose(out, [-3.0, -3.0, -3.0, 0.0, 0.0, 0.0])


def test_bingham_pressure_update_uses_bulk_modulus(bingham_props):
    mat = Bingham(id=2, properties=bingham_props, dim=3)
    _lam, _G, K = iso_lame(bingham_props["youngs_modulus"], bingham_props["poisson_ratio"])
    de = np.array([1e-5, 2e-5, -1e-5, 0.0, 0.0, 0.0])
    out = mat.compute_stress(np.zeros(6), de, _RateStub(np.zeros(6)))
    assert out[0] == pytest.approx(K * volumetric(de))
    assert np.allclose(out[:3], out[0])
    assert np.allclose(out[3:], 0.0)


def test_bingham_newtonian_limit(bingham_props):
    props = dict(bingham_props, tau0=0.0, mu=2.0)
    mat = Bingham(id=2, properties=props, dim=3)
    rate = np.array([0.0, 0.0, 0.0, 0.5, 0.0, 0.0])
    out = mat.compute_stress(np.zeros(6), np.zeros(6), _RateStub(rate))
    assert out[3] == pytest.approx(2.0 * props["mu"] * rate[3])
    assert np.allclose(out[[0, 1, 2, 4, 5]], 0.0)


def test_bingham_below_critical_rate_has_no_deviator(bingham_props):
    mat = Bingham(id=2, properties=bingham_props, dim=3)
    rate = np.array([1e-5, 0.0, 0.0, 1e-5, 0.0, 0.0])
    sig = np.array([-2.0, -2.0, -2.0, 5.0, 0.0, 0.0])
    out = mat.compute_stress(sig, np.zeros(6), _RateStub(rate))
    assert np.allclose(out, [-2.0, -2.0, -2.0, 0.0, 0.0, 0.0])


def test_bingham_above_yield_regularised_viscosity(bingham_props):
    mat = Bingham(id=2, properties=bingham_props, dim=3)
    rate = np.array([0.0, 0.0, 0.0, 0.01, 0.0, 0.0])
    out = mat.compute_stress(np.zeros(6), np.zeros(6), _RateStub(rate))
    gamma = 2.0 * float(rate @ rate)
    modulus = 2.0 * (bingham_props["tau0"] / math.sqrt(gamma) + bingham_props["mu"])
    assert np.allclose(out, modulus * rate)


def test_bingham_2d_writes_in_plane_slots_only(bingham_props):
    mat = Bingham(id=2, properties=dict(bingham_props, tau0=0.0), dim=2)
    rate = np.array([0.1, -0.1, 0.0, 0.2, 0.3, 0.4])
    sig = np.array([-1.0, -1.0, -1.0, 0.0, 9.0, 9.0])
    out = mat.compute_stress(sig, np.zeros(6), _RateStub(rate))
    assert out[2] == 0.0
    assert out[4] == 0.0 and out[5] == 0.0
    tau = 2.0 * bingham_props["mu"] * rate
    assert out[0] == pytest.approx(-1.0 + tau[0])
    assert out[3] == pytest.approx(tau[3])


def test_bingham_one_dimensional_is_rejected(bingham_props):
    mat = Bingham(id=2, properties=bingham_props, dim=1)
    with pytest.raises(ValueError):
        mat.compute_stress(np.zeros(6), np.zeros(6), _RateStub(np.zeros(6)))


def test_bingham_critical_rate_is_floored(bingham_props):
    mat = Bingham(id=2, properties=dict(bingham_props, critical_shear_rate=0.0))
    assert mat.status
    assert mat.critical_shear_rate == pytest.approx(1e-15)


def test_particle_drives_bingham_with_its_strain_rate(bingham_props):
    mat = Bingham(id=2, properties=dict(bingham_props, tau0=0.0, mu=1.0), dim=2)
    p = Particle(0, [0.5, 0.5])
    p.assign_material(mat)
    p._strain_rate[0] = [0.0, 0.0, 0.0, 0.25, 0.0, 0.0]
    assert p.compute_stress(0)
    assert p.stress(0)[3] == pytest.approx(0.5)
