"""Small shape-function kernels (Q4 / Hex8) and the inverse isoparametric map.

These are intentionally tiny and stateless; the element classes call them for
every particle on every step, so they are compiled with Numba.
"""

from __future__ import annotations

import numpy as np
from numba import njit


@njit(cache=True)
def q4_shape_numba(xi: float, eta: float):
    """Return Q4 shape functions and their local gradients.

    Parameters
    ----------
    xi, eta : float
        Natural coordinates in [-1, 1].

    Returns
    -------
    N : (4,) float
    dN : (4, 2) float
        Columns are d/dxi and d/deta.
    """
    N = np.empty(4, dtype=np.float64)
    dN = np.empty((4, 2), dtype=np.float64)

    N[0] = 0.25 * (1.0 - xi) * (1.0 - eta)
    N[1] = 0.25 * (1.0 + xi) * (1.0 - eta)
    N[2] = 0.25 * (1.0 + xi) * (1.0 + eta)
    N[3] = 0.25 * (1.0 - xi) * (1.0 + eta)

    dN[0, 0] = -0.25 * (1.0 - eta)
    dN[1, 0] = +0.25 * (1.0 - eta)
    dN[2, 0] = +0.25 * (1.0 + eta)
    dN[3, 0] = -0.25 * (1.0 + eta)

    dN[0, 1] = -0.25 * (1.0 - xi)
    dN[1, 1] = -0.25 * (1.0 + xi)
    dN[2, 1] = +0.25 * (1.0 + xi)
    dN[3, 1] = +0.25 * (1.0 - xi)
    return N, dN


@njit(cache=True)
def hex8_shape_numba(xi: float, eta: float, zeta: float):
    """Return Hex8 shape functions (8,) and local gradients (8, 3)."""
    sx = (-1.0, 1.0, 1.0, -1.0, -1.0, 1.0, 1.0, -1.0)
    sy = (-1.0, -1.0, 1.0, 1.0, -1.0, -1.0, 1.0, 1.0)
    sz = (-1.0, -1.0, -1.0, -1.0, 1.0, 1.0, 1.0, 1.0)
    N = np.empty(8, dtype=np.float64)
    dN = np.empty((8, 3), dtype=np.float64)
    for i in range(8):
        a = 1.0 + sx[i] * xi
        b = 1.0 + sy[i] * eta
        c = 1.0 + sz[i] * zeta
        N[i] = 0.125 * a * b * c
        dN[i, 0] = 0.125 * sx[i] * b * c
        dN[i, 1] = 0.125 * sy[i] * a * c
        dN[i, 2] = 0.125 * sz[i] * a * b
    return N, dN


@njit(cache=True)
def shape_numba(xi: np.ndarray):
    """Dispatch on the local dimension: Q4 for 2-D, Hex8 for 3-D."""
    if xi.shape[0] == 2:
        return q4_shape_numba(xi[0], xi[1])
    return hex8_shape_numba(xi[0], xi[1], xi[2])


@njit(cache=True)
def inverse_map_numba(xe: np.ndarray, x: np.ndarray, maxit: int, tol: float):
    """Newton-Raphson inverse of the isoparametric map.

    Solves ``sum_n N_n(xi) * xe[n] = x`` for ``xi``.

    Parameters
    ----------
    xe : (nnodes, dim) float
        Nodal coordinates of the cell.
    x : (dim,) float
        Target point in physical space.
    maxit : int
        Maximum Newton iterations.
    tol : float
        Absolute tolerance on the physical residual.

    Returns
    -------
    xi : (dim,) float
    converged : bool
    """
    dim = x.shape[0]
    xi = np.zeros(dim, dtype=np.float64)
    for _it in range(maxit + 1):
        N, dN = shape_numba(xi)
        # r = xe^T N - x,  A = dx/dxi = xe^T dN  (dim x dim)
        r = -x.copy()
        A = np.zeros((dim, dim), dtype=np.float64)
        for n in range(xe.shape[0]):
            for i in range(dim):
                r[i] += N[n] * xe[n, i]
                for j in range(dim):
                    A[i, j] += xe[n, i] * dN[n, j]
        if np.sqrt(np.sum(r * r)) <= tol:
            return xi, True
        dxi = np.linalg.solve(A, r)
        xi = xi - dxi
        # Newton diverging far outside the parent domain: stop early.
        if np.max(np.abs(xi)) > 1.0e3:
            return xi, False
    return xi, False
