"""ASCII mesh / particle readers.

Mesh format::

    ! comment lines start with '!'
    nnodes ncells
    x y [z]            (nnodes lines)
    n0 n1 n2 n3 [...]  (ncells lines, node ordering of the element)

Particle format::

    nparticles
    x y [z]            (nparticles lines)
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Tuple, Union

import numpy as np


def _data_lines(path: Union[str, Path]) -> List[List[str]]:
    rows = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            s = line.strip()
            if not s or s.startswith("!"):
                continue
            rows.append(s.split())
    return rows


def read_mesh_ascii(path: Union[str, Path], dim: int = 2) -> Tuple[np.ndarray, np.ndarray]:
    """Return ``(node_coordinates (nnodes, dim), cells (ncells, nnodes_per_cell))``."""
    rows = _data_lines(path)
    if not rows:
        raise ValueError(f"{path}: empty mesh file")
    try:
        nnodes, ncells = int(rows[0][0]), int(rows[0][1])
    except (IndexError, ValueError) as exc:
        raise ValueError(f"{path}: bad header {rows[0]!r}") from exc
    if len(rows) < 1 + nnodes + ncells:
        raise ValueError(f"{path}: expected {nnodes} nodes and {ncells} cells, file is truncated")

    coords = np.array([[float(v) for v in r[:dim]] for r in rows[1 : 1 + nnodes]], dtype=float)
    if coords.shape != (nnodes, dim):
        raise ValueError(f"{path}: node coordinates must have {dim} components")
    cells = np.array([[int(v) for v in r] for r in rows[1 + nnodes : 1 + nnodes + ncells]], dtype=int)
    if cells.size and (cells.min() < 0 or cells.max() >= nnodes):
        raise ValueError(f"{path}: cell connectivity references unknown nodes")
    return coords, cells


def read_particles_ascii(path: Union[str, Path], dim: int = 2) -> np.ndarray:
    rows = _data_lines(path)
    if not rows:
        raise ValueError(f"{path}: empty particle file")
    n = int(rows[0][0])
    if len(rows) < 1 + n:
        raise ValueError(f"{path}: expected {n} particles, file is truncated")
    pts = np.array([[float(v) for v in r[:dim]] for r in rows[1 : 1 + n]], dtype=float)
    if pts.shape != (n, dim):
        raise ValueError(f"{path}: particle coordinates must have {dim} components")
    return pts
