"""Isoparametric elements of the background grid (Q4 in 2-D, Hex8 in 3-D).

An element is stateless: it knows its topology (node count, parent corners)
and evaluates shape functions, Jacobians and strain-displacement blocks for a
given set of nodal coordinates ``xe`` with shape ``(nnodes, dim)``.

Strain components are packed per dimension:

* 2-D: ``[exx, eyy, gxy]`` which occupy Voigt slots ``(0, 1, 3)``
* 3-D: ``[exx, eyy, ezz, gxy, gyz, gxz]`` (all six slots)

Shear components are engineering strains (``gxy = du/dy + dv/dx``).
"""

from __future__ import annotations

from typing import Dict, Tuple

import numpy as np

from mpm_core.fem.hex8 import HEX8_CORNERS
from mpm_core.fem.q4 import Q4_CORNERS
from mpm_core.fem.quadrature import gauss_points_hex, gauss_points_quad
from mpm_core.numba.kernels_shapefn import inverse_map_numba, shape_numba


# Voigt slots filled by the packed strain vector, keyed on dimension.
VOIGT_SLOTS: Dict[int, Tuple[int, ...]] = {
    2: (0, 1, 3),
    3: (0, 1, 2, 3, 4, 5),
}


class Element:
    """Common isoparametric machinery; subclasses fix the topology."""

    dim: int = 0
    nnodes: int = 0
    corners: np.ndarray = np.zeros((0, 0))

    # Newton inverse-map controls
    maxit: int = 25
    tol: float = 1e-12
    xi_tol: float = 1e-10

    @property
    def nstrain(self) -> int:
        return len(VOIGT_SLOTS[self.dim])

    @property
    def voigt_slots(self) -> Tuple[int, ...]:
        return VOIGT_SLOTS[self.dim]

    def _xi(self, xi) -> np.ndarray:
        xi = np.ascontiguousarray(xi, dtype=np.float64).reshape(-1)
        if xi.shape[0] != self.dim:
            raise ValueError(f"xi has {xi.shape[0]} components, element is {self.dim}-D")
        return xi

    def shapefn(self, xi) -> np.ndarray:
        N, _dN = shape_numba(self._xi(xi))
        return N

    def grad_shapefn(self, xi) -> np.ndarray:
        """Local gradients, shape (nnodes, dim)."""
        _N, dN = shape_numba(self._xi(xi))
        return dN

    def jacobian(self, xi, xe: np.ndarray) -> np.ndarray:
        """``J[i, j] = d x_j / d xi_i``."""
        dN = self.grad_shapefn(xi)
        return dN.T @ np.asarray(xe, dtype=float)

    def dn_dx(self, xi, xe: np.ndarray) -> Tuple[np.ndarray, float]:
        """Physical shape-function gradients (nnodes, dim) and det(J)."""
        dN = self.grad_shapefn(xi)
        J = self.jacobian(xi, xe)
        detJ = float(np.linalg.det(J))
        invJ = np.linalg.inv(J)
        return dN @ invJ.T, detJ

    def bmatrix(self, xi, xe: np.ndarray) -> np.ndarray:
        """Strain-displacement blocks, shape (nnodes, nstrain, dim)."""
        grad, _detJ = self.dn_dx(xi, xe)
        B = np.zeros((self.nnodes, self.nstrain, self.dim), dtype=float)
        if self.dim == 2:
            B[:, 0, 0] = grad[:, 0]
            B[:, 1, 1] = grad[:, 1]
            B[:, 2, 0] = grad[:, 1]
            B[:, 2, 1] = grad[:, 0]
        else:
            B[:, 0, 0] = grad[:, 0]
            B[:, 1, 1] = grad[:, 1]
            B[:, 2, 2] = grad[:, 2]
            B[:, 3, 0] = grad[:, 1]
            B[:, 3, 1] = grad[:, 0]
            B[:, 4, 1] = grad[:, 2]
            B[:, 4, 2] = grad[:, 1]
            B[:, 5, 0] = grad[:, 2]
            B[:, 5, 2] = grad[:, 0]
        return B

    def natural_coordinates(self, x, xe: np.ndarray) -> Tuple[np.ndarray, bool]:
        """Inverse map ``x -> xi``; returns ``(xi, inside)``.

        ``inside`` is False when Newton does not converge or the converged
        ``xi`` lies outside ``[-1, 1]^dim`` by more than ``xi_tol``.
        """
        xe = np.ascontiguousarray(xe, dtype=np.float64)
        x = np.ascontiguousarray(x, dtype=np.float64).reshape(-1)
        # scale the residual tolerance with the element size
        h = float(np.max(np.ptp(xe, axis=0)))
        xi, converged = inverse_map_numba(xe, x, int(self.maxit), float(self.tol) * max(1.0, h))
        if not converged or not np.all(np.isfinite(xi)):
            return xi, False
        if np.any(np.abs(xi) > 1.0 + self.xi_tol):
            return xi, False
        return np.clip(xi, -1.0, 1.0), True

    def quadrature(self, order: int = 2) -> Tuple[np.ndarray, np.ndarray]:
        raise NotImplementedError

    def compute_volume(self, xe: np.ndarray, order: int = 2) -> float:
        """Integrate det(J) over the parent domain."""
        pts, wts = self.quadrature(order)
        vol = 0.0
        for p, w in zip(pts, wts):
            _grad, detJ = self.dn_dx(p, xe)
            vol += w * detJ
        return float(vol)


class Quad4Element(Element):
    dim = 2
    nnodes = 4
    corners = Q4_CORNERS

    def quadrature(self, order: int = 2) -> Tuple[np.ndarray, np.ndarray]:
        return gauss_points_quad(order)


class Hex8Element(Element):
    dim = 3
    nnodes = 8
    corners = HEX8_CORNERS

    def quadrature(self, order: int = 2) -> Tuple[np.ndarray, np.ndarray]:
        return gauss_points_hex(order)


def make_element(dim: int) -> Element:
    """Element for a spatial dimension (Q4 for 2, Hex8 for 3)."""
    if int(dim) == 2:
        return Quad4Element()
    if int(dim) == 3:
        return Hex8Element()
    raise ValueError(f"Unsupported dimension {dim}; use 2 or 3")
