"""Structured quad / hex grid generators.

Connectivity follows the node ordering of :mod:`mpm_core.fem.q4` and
:mod:`mpm_core.fem.hex8`.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np


def structured_quad_mesh(L: float, H: float, nx: int, ny: int, origin: Optional[Sequence[float]] = None):
    x0, y0 = (0.0, 0.0) if origin is None else (float(origin[0]), float(origin[1]))
    xs = np.linspace(x0, x0 + L, nx + 1)
    ys = np.linspace(y0, y0 + H, ny + 1)
    nodes = np.array([[x, y] for y in ys for x in xs], dtype=float)

    def nid(i, j):  # i along x, j along y
        return j * (nx + 1) + i

    elems = []
    for j in range(ny):
        for i in range(nx):
            n1 = nid(i, j)
            n2 = nid(i + 1, j)
            n3 = nid(i + 1, j + 1)
            n4 = nid(i, j + 1)
            elems.append([n1, n2, n3, n4])
    return nodes, np.array(elems, dtype=int)


def structured_hex_mesh(
    L: float, W: float, H: float, nx: int, ny: int, nz: int, origin: Optional[Sequence[float]] = None
):
    x0, y0, z0 = (0.0, 0.0, 0.0) if origin is None else tuple(float(v) for v in origin[:3])
    xs = np.linspace(x0, x0 + L, nx + 1)
    ys = np.linspace(y0, y0 + W, ny + 1)
    zs = np.linspace(z0, z0 + H, nz + 1)
    nodes = np.array([[x, y, z] for z in zs for y in ys for x in xs], dtype=float)

    def nid(i, j, k):
        return k * (nx + 1) * (ny + 1) + j * (nx + 1) + i

    elems = []
    for k in range(nz):
        for j in range(ny):
            for i in range(nx):
                elems.append(
                    [
                        nid(i, j, k), nid(i + 1, j, k), nid(i + 1, j + 1, k), nid(i, j + 1, k),
                        nid(i, j, k + 1), nid(i + 1, j, k + 1), nid(i + 1, j + 1, k + 1), nid(i, j + 1, k + 1),
                    ]
                )
    return nodes, np.array(elems, dtype=int)


def structured_mesh(lengths: Sequence[float], ncells: Sequence[int], origin: Optional[Sequence[float]] = None):
    """Dimension-agnostic wrapper around the quad / hex generators."""
    if len(lengths) != len(ncells):
        raise ValueError("lengths and ncells must have the same dimension")
    if len(lengths) == 2:
        return structured_quad_mesh(lengths[0], lengths[1], int(ncells[0]), int(ncells[1]), origin)
    if len(lengths) == 3:
        return structured_hex_mesh(
            lengths[0], lengths[1], lengths[2], int(ncells[0]), int(ncells[1]), int(ncells[2]), origin
        )
    raise ValueError(f"Unsupported dimension {len(lengths)}; use 2 or 3")


def particles_in_box(
    nodes: np.ndarray,
    elems: np.ndarray,
    per_cell: int,
    region_min: Optional[Sequence[float]] = None,
    region_max: Optional[Sequence[float]] = None,
) -> np.ndarray:
    """Regularly spaced particle seeds, ``per_cell`` per direction in each cell.

    Only valid for axis-aligned structured cells. Seeds outside the optional
    ``[region_min, region_max]`` box are dropped.
    """
    dim = nodes.shape[1]
    offsets = (np.arange(per_cell) + 0.5) / per_cell
    grids = np.meshgrid(*([offsets] * dim), indexing="ij")
    local = np.column_stack([g.reshape(-1) for g in grids])

    pts = []
    for conn in elems:
        xe = nodes[conn]
        lo = xe.min(axis=0)
        hi = xe.max(axis=0)
        pts.append(lo + local * (hi - lo))
    pts = np.vstack(pts) if pts else np.zeros((0, dim), dtype=float)

    mask = np.ones(pts.shape[0], dtype=bool)
    if region_min is not None:
        mask &= np.all(pts >= np.asarray(region_min, dtype=float)[:dim], axis=1)
    if region_max is not None:
        mask &= np.all(pts <= np.asarray(region_max, dtype=float)[:dim], axis=1)
    return pts[mask]
