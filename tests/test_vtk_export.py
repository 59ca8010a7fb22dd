import numpy as np
import pytest

from mpm_core.mesh import Mesh
from mpm_core.output.vtk_export import (
    VTK_QUAD,
    write_mesh_vtk,
    write_particles_vtk,
    write_pvd,
    write_vtk_unstructured_grid,
)


def test_unstructured_grid_header_and_cells(tmp_path):
    nodes = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])
    elems = np.array([[0, 1, 2, 3]])
    path = tmp_path / "grid.vtk"
    write_vtk_unstructured_grid(str(path), nodes, elems, point_data={"m": np.ones(4)})
    text = path.read_text()
    assert text.startswith("# vtk DataFile Version 3.0")
    assert "POINTS 4 float" in text
    assert "CELLS 1 5" in text
    assert f"\n{VTK_QUAD}\n" in text
    assert "SCALARS m float 1" in text


def test_unsupported_cell_raises(tmp_path):
    with pytest.raises(ValueError):
        write_vtk_unstructured_grid(str(tmp_path / "x.vtk"), np.zeros((3, 2)), np.array([[0, 1, 2]]))


def test_mesh_and_particle_export(tmp_path, elastic_props):
    mesh = Mesh.structured([1.0, 1.0, 1.0], [1, 1, 1])
    mat = mesh.materials.create("LinearElastic", 0, elastic_props, dim=3)
    mesh.create_particles(np.array([[0.25, 0.25, 0.25], [0.75, 0.75, 0.75]]), mat)
    write_mesh_vtk(str(tmp_path / "mesh.vtk"), mesh)
    assert "CELL_TYPES 1\n12" in (tmp_path / "mesh.vtk").read_text()

    n = write_particles_vtk(str(tmp_path / "p.vtk"), mesh.particles.values())
    assert n == 2
    text = (tmp_path / "p.vtk").read_text()
    assert "VECTORS velocity float" in text
    assert "FIELD stress_field 1" in text

    pvd = write_pvd(str(tmp_path), [(0.0, "p.vtk")])
    assert 'file="p.vtk"' in pvd.read_text()


def test_particle_export_requires_active_particles(tmp_path):
    with pytest.raises(ValueError):
        write_particles_vtk(str(tmp_path / "p.vtk"), [])
