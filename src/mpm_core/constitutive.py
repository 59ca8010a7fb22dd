"""Constitutive models for material points (explicit MPM).

A model is configured once from a flat key-value parameter set and then maps
an incremental strain (Voigt ordering ``[xx, yy, zz, xy, yz, xz]`` with
engineering shear) to an updated stress vector.

This module provides:
  - Linear elastic (isotropic Hooke, incremental form)
  - Bingham viscoplastic fluid (rate dependent; needs the particle's strain
    rate, so the context-free stress path is unsupported)

Configuration is fail-fast: a missing, unknown or unparseable parameter
leaves the instance with ``status == False`` and every later stress request
raises.  Stress updates never mutate their inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional, Tuple

import logging
import math

import numpy as np

from mpm_core.linear_elastic import iso_lame, isotropic_C6

log = logging.getLogger(__name__)

# [1, 1, 1, 0, 0, 0]
DIRAC_DELTA = np.array([1.0, 1.0, 1.0, 0.0, 0.0, 0.0], dtype=float)


def volumetric(v6: np.ndarray) -> float:
    """Trace of a Voigt6 vector (sum of the normal components)."""
    v = np.asarray(v6, dtype=float).reshape(6)
    return float(v[0] + v[1] + v[2])


# ----------------------------
# Base
# ----------------------------


@dataclass
class Material:
    """Base class: parameter parsing, status flag and the stress interface."""

    id: int
    properties: Dict[str, Any]
    dim: int = 3

    status: bool = field(init=False, default=False)
    error: Optional[str] = field(init=False, default=None)

    required: ClassVar[Tuple[str, ...]] = ("density",)
    type_name: ClassVar[str] = "Material"

    def __post_init__(self) -> None:
        self.properties = dict(self.properties or {})
        self._params: Dict[str, float] = {}
        try:
            self._params = self._parse(self.properties)
            self._validate()
            self._configure()
        except (KeyError, TypeError, ValueError) as exc:
            self.status = False
            self.error = str(exc)
            log.error("material #%s (%s) is invalid: %s", self.id, self.type_name, exc)
            return
        self.status = True

    def _parse(self, props: Dict[str, Any]) -> Dict[str, float]:
        unknown = sorted(set(props) - set(self.required))
        if unknown:
            raise ValueError(f"unknown parameter(s) {unknown}")
        params: Dict[str, float] = {}
        for key in self.required:
            if key not in props:
                raise KeyError(f"missing parameter '{key}'")
            value = float(props[key])
            if not math.isfinite(value):
                raise ValueError(f"parameter '{key}' is not finite")
            params[key] = value
        return params

    def _validate(self) -> None:
        if self._params["density"] <= 0.0:
            raise ValueError("density must be positive")

    def _configure(self) -> None:
        pass

    def _check_status(self) -> None:
        if not self.status:
            raise RuntimeError(f"material #{self.id} ({self.type_name}) is invalid: {self.error}")

    def parameter(self, name: str) -> float:
        """Configured scalar parameter (raises for invalid materials)."""
        self._check_status()
        return float(self._params[name])

    @property
    def density(self) -> float:
        return self.parameter("density")

    def elastic_tensor(self) -> np.ndarray:
        raise NotImplementedError(f"{self.type_name} has no elastic tensor")

    def compute_stress(self, stress: np.ndarray, dstrain: np.ndarray, particle=None, phase: int = 0) -> np.ndarray:
        """Return the updated stress; inputs are left untouched."""
        raise NotImplementedError


# ----------------------------
# Linear elastic
# ----------------------------


@dataclass
class LinearElastic(Material):
    """Incremental isotropic Hooke law: ``sigma += C : dstrain``."""

    required: ClassVar[Tuple[str, ...]] = ("density", "youngs_modulus", "poisson_ratio")
    type_name: ClassVar[str] = "LinearElastic"

    def _validate(self) -> None:
        super()._validate()
        if self._params["youngs_modulus"] <= 0.0:
            raise ValueError("youngs_modulus must be positive")
        nu = self._params["poisson_ratio"]
        if not (-1.0 < nu < 0.5):
            raise ValueError("poisson_ratio must lie in (-1, 0.5)")

    def _configure(self) -> None:
        self.de = isotropic_C6(self._params["youngs_modulus"], self._params["poisson_ratio"])

    def elastic_tensor(self) -> np.ndarray:
        self._check_status()
        return np.array(self.de, copy=True)

    def compute_stress(self, stress: np.ndarray, dstrain: np.ndarray, particle=None, phase: int = 0) -> np.ndarray:
        self._check_status()
        sig = np.asarray(stress, dtype=float).reshape(6)
        de = np.asarray(dstrain, dtype=float).reshape(6)
        return sig + self.de @ de


# -------------------------------------
# Bingham viscoplastic fluid
# -------------------------------------


@dataclass
class Bingham(Material):
    """Bingham fluid: bulk pressure update plus regularised viscous deviator.

    Parameters (keys of ``properties``)
    -----------------------------------
    density, youngs_modulus, poisson_ratio:
        Give the bulk modulus ``K = E / (3 (1 - 2 nu))``.
    tau0:
        Yield stress.
    mu:
        Plastic viscosity.
    critical_shear_rate:
        Shear rate below which the material is treated as at rest.

    The von Mises check zeroes the trial deviator when ``tau . tau < 2 tau0^2``;
    there is no return mapping onto the yield surface.
    """

    required: ClassVar[Tuple[str, ...]] = (
        "density",
        "youngs_modulus",
        "poisson_ratio",
        "tau0",
        "mu",
        "critical_shear_rate",
    )
    type_name: ClassVar[str] = "Bingham"

    # floor for the critical shear rate
    min_critical_shear_rate: ClassVar[float] = 1.0e-15

    def _validate(self) -> None:
        super()._validate()
        if self._params["youngs_modulus"] <= 0.0:
            raise ValueError("youngs_modulus must be positive")
        nu = self._params["poisson_ratio"]
        if not (-1.0 < nu < 0.5):
            raise ValueError("poisson_ratio must lie in (-1, 0.5)")
        for key in ("tau0", "mu", "critical_shear_rate"):
            if self._params[key] < 0.0:
                raise ValueError(f"{key} must be non-negative")

    def _configure(self) -> None:
        _lam, _G, K = iso_lame(self._params["youngs_modulus"], self._params["poisson_ratio"])
        self.bulk_modulus = float(K)
        self.tau0 = self._params["tau0"]
        self.mu = self._params["mu"]
        self.critical_shear_rate = max(self._params["critical_shear_rate"], self.min_critical_shear_rate)

    def elastic_tensor(self) -> np.ndarray:
        raise NotImplementedError("Bingham has no elastic tensor; stress needs the particle strain rate")

    def compute_stress(self, stress: np.ndarray, dstrain: np.ndarray, particle=None, phase: int = 0) -> np.ndarray:
        if particle is None:
            raise NotImplementedError(
                "Bingham.compute_stress requires particle context (strain rate); "
                "the stress/dstrain-only path is not supported"
            )
        self._check_status()
        if self.dim not in _BINGHAM_ASSEMBLY:
            raise ValueError(f"Bingham model is not defined in {self.dim}-D")

        sig = np.asarray(stress, dtype=float).reshape(6)
        de = np.asarray(dstrain, dtype=float).reshape(6)
        strain_rate = np.asarray(particle.strain_rate(phase), dtype=float).reshape(6)

        # pressure (mean stress) update from the volumetric increment
        p_old = volumetric(sig) / 3.0
        p_new = p_old + self.bulk_modulus * volumetric(de)

        shear_rate = 2.0 * float(strain_rate @ strain_rate)
        modulus = 0.0
        if shear_rate > self.critical_shear_rate * self.critical_shear_rate:
            modulus = 2.0 * (self.tau0 / math.sqrt(shear_rate) + self.mu)

        tau = modulus * strain_rate
        # von Mises: below yield, no deviatoric stress
        if float(tau @ tau) < 2.0 * self.tau0 * self.tau0:
            tau = np.zeros(6, dtype=float)

        return _BINGHAM_ASSEMBLY[self.dim](p_new, tau)


def _assemble_2d(p: float, tau: np.ndarray) -> np.ndarray:
    out = np.zeros(6, dtype=float)
    out[0] = p + tau[0]
    out[1] = p + tau[1]
    out[3] = tau[3]
    return out


def _assemble_3d(p: float, tau: np.ndarray) -> np.ndarray:
    return p * DIRAC_DELTA + tau


_BINGHAM_ASSEMBLY = {2: _assemble_2d, 3: _assemble_3d}
