"""Isotropic linear-elastic helpers shared across the package.

Placed at top-level to avoid circular imports between
`mpm_core.constitutive` and the material factory.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np


def iso_lame(E: float, nu: float) -> Tuple[float, float, float]:
    """Return (lambda, G, K) for 3D isotropic elasticity."""
    E = float(E)
    nu = float(nu)
    G = E / (2.0 * (1.0 + nu))
    lam = E * nu / ((1.0 + nu) * (1.0 - 2.0 * nu))
    K = E / (3.0 * (1.0 - 2.0 * nu))
    return lam, G, K


def isotropic_C6(E: float, nu: float) -> np.ndarray:
    """3D isotropic Hooke matrix in engineering-strain Voigt6.

    Parameters
    ----------
    E:
        Young's modulus.
    nu:
        Poisson's ratio.

    Returns
    -------
    C : (6,6) ndarray
        Ordering ``[xx, yy, zz, xy, yz, xz]``.
    """
    _lam, G, K = iso_lame(E, nu)
    a1 = K + (4.0 / 3.0) * G
    a2 = K - (2.0 / 3.0) * G
    C = np.zeros((6, 6), dtype=float)
    # normal-normal
    C[0, 0] = C[1, 1] = C[2, 2] = a1
    C[0, 1] = C[0, 2] = C[1, 0] = C[1, 2] = C[2, 0] = C[2, 1] = a2
    # shear (engineering)
    C[3, 3] = C[4, 4] = C[5, 5] = G
    return C
