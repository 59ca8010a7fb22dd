"""Hex8 shape functions (trilinear hexahedron).

Node ordering: bottom face (zeta = -1) counter-clockwise from (-1, -1, -1),
then the top face (zeta = +1) in the same order.
"""

from __future__ import annotations
import numpy as np

HEX8_CORNERS = np.array(
    [
        [-1.0, -1.0, -1.0],
        [1.0, -1.0, -1.0],
        [1.0, 1.0, -1.0],
        [-1.0, 1.0, -1.0],
        [-1.0, -1.0, 1.0],
        [1.0, -1.0, 1.0],
        [1.0, 1.0, 1.0],
        [-1.0, 1.0, 1.0],
    ],
    dtype=float,
)


def hex8_shape(xi: float, eta: float, zeta: float):
    a = 1.0 + HEX8_CORNERS[:, 0] * xi
    b = 1.0 + HEX8_CORNERS[:, 1] * eta
    c = 1.0 + HEX8_CORNERS[:, 2] * zeta
    N = 0.125 * a * b * c
    dN_dxi = 0.125 * HEX8_CORNERS[:, 0] * b * c
    dN_deta = 0.125 * HEX8_CORNERS[:, 1] * a * c
    dN_dzeta = 0.125 * HEX8_CORNERS[:, 2] * a * b
    return N, dN_dxi, dN_deta, dN_dzeta


def hex8_grad(xi: float, eta: float, zeta: float) -> np.ndarray:
    """Local gradients stacked as an (8, 3) array."""
    _N, dN_dxi, dN_deta, dN_dzeta = hex8_shape(xi, eta, zeta)
    return np.column_stack([dN_dxi, dN_deta, dN_dzeta])
