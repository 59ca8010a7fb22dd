"""Output utilities for MPM runs."""

from mpm_core.output.vtk_export import (
    write_vtk_unstructured_grid,
    write_mesh_vtk,
    write_particles_vtk,
    write_pvd,
)

__all__ = [
    "write_vtk_unstructured_grid",
    "write_mesh_vtk",
    "write_particles_vtk",
    "write_pvd",
]
