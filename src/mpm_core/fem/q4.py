"""Q4 shape functions (bilinear quadrilateral)."""

from __future__ import annotations
import numpy as np

# Parent-domain corner coordinates, counter-clockwise from (-1, -1).
Q4_CORNERS = np.array([[-1.0, -1.0], [1.0, -1.0], [1.0, 1.0], [-1.0, 1.0]], dtype=float)


def q4_shape(xi: float, eta: float):
    # N1..N4 (counter-clockwise)
    N = 0.25 * np.array(
        [(1 - xi) * (1 - eta),
         (1 + xi) * (1 - eta),
         (1 + xi) * (1 + eta),
         (1 - xi) * (1 + eta)],
        dtype=float,
    )
    dN_dxi = 0.25 * np.array(
        [-(1 - eta), (1 - eta), (1 + eta), -(1 + eta)], dtype=float
    )
    dN_deta = 0.25 * np.array(
        [-(1 - xi), -(1 + xi), (1 + xi), (1 - xi)], dtype=float
    )
    return N, dN_dxi, dN_deta


def q4_grad(xi: float, eta: float) -> np.ndarray:
    """Local gradients stacked as an (4, 2) array ``[dN/dxi, dN/deta]``."""
    _N, dN_dxi, dN_deta = q4_shape(xi, eta)
    return np.column_stack([dN_dxi, dN_deta])
