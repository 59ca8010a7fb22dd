"""Gauss-Legendre quadrature on the parent quad / hex."""

from __future__ import annotations

from typing import Tuple

import numpy as np


def gauss_points_1d(n: int) -> Tuple[np.ndarray, np.ndarray]:
    if n < 1:
        raise ValueError(f"Quadrature order must be >= 1, got {n}")
    pts, wts = np.polynomial.legendre.leggauss(int(n))
    return pts.astype(float), wts.astype(float)


def gauss_points_quad(n: int = 2) -> Tuple[np.ndarray, np.ndarray]:
    """Tensor-product rule on [-1,1]^2. Returns (points (n*n, 2), weights (n*n,))."""
    p, w = gauss_points_1d(n)
    # eta outer, xi inner (same sweep as the structured node numbering)
    pts = np.array([[xi, eta] for eta in p for xi in p], dtype=float)
    wts = np.array([wx * wy for wy in w for wx in w], dtype=float)
    return pts, wts


def gauss_points_hex(n: int = 2) -> Tuple[np.ndarray, np.ndarray]:
    """Tensor-product rule on [-1,1]^3."""
    p, w = gauss_points_1d(n)
    pts = np.array([[xi, eta, zeta] for zeta in p for eta in p for xi in p], dtype=float)
    wts = np.array([wx * wy * wz for wz in w for wy in w for wx in w], dtype=float)
    return pts, wts
