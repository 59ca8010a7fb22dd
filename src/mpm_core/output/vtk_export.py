"""VTK export for MPM grids and material points.

This module writes legacy ASCII VTK files for visualization in ParaView or
other VTK-compatible tools. It only reads state through public accessors.

Key features:
  - Background mesh with nodal mass / velocity
  - Particles as vertex cells with stress, strain, velocity and volume
  - ParaView series file (.pvd) for a sequence of particle snapshots
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from mpm_core.mesh import Mesh
from mpm_core.particle import Particle

log = logging.getLogger(__name__)

# VTK cell type ids
VTK_VERTEX = 1
VTK_QUAD = 9
VTK_HEXAHEDRON = 12

_CELL_TYPES = {1: VTK_VERTEX, 4: VTK_QUAD, 8: VTK_HEXAHEDRON}


def _write_field(f, name: str, values: np.ndarray, n: int) -> bool:
    values = np.asarray(values, dtype=float)
    if values.shape[0] != n:
        log.warning("%s has wrong size (%d != %d), skipping", name, values.shape[0], n)
        return False
    if values.ndim == 1:
        f.write(f"SCALARS {name} float 1\n")
        f.write("LOOKUP_TABLE default\n")
        for val in values:
            f.write(f"{float(val):.6e}\n")
        return True
    ncomp = values.shape[1]
    if ncomp in (2, 3):
        # VTK vectors are always 3-D
        f.write(f"VECTORS {name} float\n")
        for row in values:
            r = np.zeros(3)
            r[:ncomp] = row
            f.write(f"{r[0]:.6e} {r[1]:.6e} {r[2]:.6e}\n")
        return True
    f.write(f"FIELD {name}_field 1\n")
    f.write(f"{name} {ncomp} {n} float\n")
    for row in values:
        f.write(" ".join(f"{float(v):.6e}" for v in row) + "\n")
    return True


def write_vtk_unstructured_grid(
    filename: str,
    nodes: np.ndarray,
    elems: np.ndarray,
    point_data: Optional[Dict[str, np.ndarray]] = None,
    cell_data: Optional[Dict[str, np.ndarray]] = None,
    title: str = "MPM",
) -> None:
    """Write VTK unstructured grid file (legacy ASCII format).

    Parameters
    ----------
    filename : str
        Output .vtk filename
    nodes : np.ndarray
        Point coordinates [n_points, ndim]
    elems : np.ndarray
        Cell connectivity [n_cells, n_points_per_cell] (1, 4 or 8 points)
    point_data : dict
        Point data {field_name: values[n_points] or values[n_points, ncomp]}
    cell_data : dict
        Cell data {field_name: values[n_cells] or values[n_cells, ncomp]}
    """
    nodes = np.asarray(nodes, dtype=float)
    elems = np.asarray(elems, dtype=int)
    n_nodes = nodes.shape[0]
    n_elem = elems.shape[0]

    # Ensure 3D coordinates (pad with zeros if 2D)
    nodes_3d = np.zeros((n_nodes, 3))
    nodes_3d[:, : nodes.shape[1]] = nodes

    n_per = elems.shape[1] if n_elem else 1
    if n_per not in _CELL_TYPES:
        raise ValueError(f"unsupported cell with {n_per} points")

    with open(filename, "w") as f:
        f.write("# vtk DataFile Version 3.0\n")
        f.write(f"{title}\n")
        f.write("ASCII\n")
        f.write("DATASET UNSTRUCTURED_GRID\n")

        f.write(f"POINTS {n_nodes} float\n")
        for x in nodes_3d:
            f.write(f"{x[0]:.6e} {x[1]:.6e} {x[2]:.6e}\n")

        f.write(f"\nCELLS {n_elem} {n_elem * (1 + n_per)}\n")
        for elem in elems:
            f.write(f"{n_per} " + " ".join(str(int(i)) for i in elem) + "\n")

        f.write(f"\nCELL_TYPES {n_elem}\n")
        for _ in range(n_elem):
            f.write(f"{_CELL_TYPES[n_per]}\n")

        if point_data:
            f.write(f"\nPOINT_DATA {n_nodes}\n")
            for name, values in point_data.items():
                _write_field(f, name, values, n_nodes)

        if cell_data:
            f.write(f"\nCELL_DATA {n_elem}\n")
            for name, values in cell_data.items():
                _write_field(f, name, values, n_elem)

    log.info("VTK file written: %s", filename)


def write_mesh_vtk(filename: str, mesh: Mesh, phase: int = 0) -> None:
    """Background grid with nodal mass and velocity."""
    node_ids = list(mesh.nodes.keys())
    index = {nid: i for i, nid in enumerate(node_ids)}
    coords = np.array([mesh.nodes[n].coordinates for n in node_ids], dtype=float)
    elems = np.array([[index[n.id] for n in c.nodes] for c in mesh.cells.values()], dtype=int)
    point_data = {
        "mass": np.array([mesh.nodes[n].mass[phase] for n in node_ids]),
        "velocity": np.array([mesh.nodes[n].velocity[phase] for n in node_ids]),
    }
    cell_data = {"nparticles": np.array([c.nparticles() for c in mesh.cells.values()], dtype=float)}
    write_vtk_unstructured_grid(filename, coords, elems.reshape(len(mesh.cells), -1), point_data, cell_data, "MPM mesh")


def write_particles_vtk(filename: str, particles: Iterable[Particle], phase: int = 0) -> int:
    """Particles as vertex cells; returns the number written."""
    plist: List[Particle] = [p for p in particles if p.status]
    if not plist:
        raise ValueError("no active particles to export")
    n = len(plist)
    coords = np.array([p.coordinates for p in plist], dtype=float)
    point_data = {
        "id": np.array([p.id for p in plist], dtype=float),
        "mass": np.array([p.mass(phase) for p in plist]),
        "volume": np.array([p.volume for p in plist]),
        "velocity": np.array([p.velocity(phase) for p in plist]),
        "stress": np.array([p.stress(phase) for p in plist]),
        "strain": np.array([p.strain(phase) for p in plist]),
    }
    write_vtk_unstructured_grid(filename, coords, np.arange(n).reshape(n, 1), point_data, None, "MPM particles")
    return n


def write_pvd(output_dir: str, entries: Sequence[Tuple[float, str]], name: str = "particles.pvd") -> Path:
    """ParaView series file for ``(time, vtk_file)`` entries."""
    pvd_filename = Path(output_dir) / name
    with open(pvd_filename, "w") as f:
        f.write('<?xml version="1.0"?>\n')
        f.write('<VTKFile type="Collection" version="0.1">\n')
        f.write('  <Collection>\n')
        for t, vtk_file in entries:
            f.write(f'    <DataSet timestep="{t:.6e}" file="{vtk_file}"/>\n')
        f.write('  </Collection>\n')
        f.write('</VTKFile>\n')
    log.info("ParaView series file: %s", pvd_filename)
    return pvd_filename
