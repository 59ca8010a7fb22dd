import numpy as np
import pytest

from mpm_core.constitutive import LinearElastic
from mpm_core.mesh import Mesh
from mpm_core.particle import Particle


def _mesh_2x1():
    return Mesh.structured([2.0, 1.0], [2, 1])


def test_particle_dimension_checks():
    with pytest.raises(ValueError):
        Particle(0, [0.5], dim=1)
    with pytest.raises(ValueError):
        Particle(0, [0.5, 0.5], dim=2, nphases=0)


def test_assign_cell_is_idempotent():
    mesh = _mesh_2x1()
    p = Particle(0, [0.25, 0.5])
    cell = mesh.cells[0]
    assert p.assign_cell(cell)
    xi = p.reference_location()
    assert p.assign_cell(cell)
    assert p.cell is cell
    assert p.cell_id == 0
    assert cell.particle_ids == {0}
    assert np.allclose(p.reference_location(), xi)


def test_assign_cell_moves_membership():
    mesh = _mesh_2x1()
    p = Particle(0, [0.25, 0.5])
    assert p.assign_cell(mesh.cells[0])
    p.coordinates[0] = 1.5
    assert p.assign_cell(mesh.cells[1])
    assert mesh.cells[0].nparticles() == 0
    assert mesh.cells[1].particle_ids == {0}


def test_assign_cell_keeps_current_cell_when_target_is_wrong():
    mesh = _mesh_2x1()
    p = Particle(0, [0.25, 0.5])
    assert p.assign_cell(mesh.cells[0])
    assert p.assign_cell(mesh.cells[1])
    assert p.cell is mesh.cells[0]


def test_assign_cell_outside_detaches():
    mesh = _mesh_2x1()
    p = Particle(0, [0.25, 0.5])
    p.assign_cell(mesh.cells[0])
    p.coordinates[:] = [5.0, 5.0]
    assert not p.assign_cell(mesh.cells[1])
    assert p.cell is None
    assert p.cell_id is None
    assert mesh.cells[0].nparticles() == 0


def test_shapefn_cache_is_invalidated_by_cell_changes():
    mesh = _mesh_2x1()
    p = Particle(0, [0.25, 0.5])
    assert not p.compute_shapefn()
    p.assign_cell(mesh.cells[0])
    assert not p.shapefn_valid
    assert p.compute_shapefn()
    assert p.shapefn_valid
    assert p.shapefn.sum() == pytest.approx(1.0)
    assert p.bmatrix.shape == (4, 3, 2)
    p.remove_cell()
    assert not p.shapefn_valid
    assert not p.map_mass_momentum_to_nodes(0)


def test_volume_mass_and_scatter_conserve_mass(elastic_props):
    mesh = _mesh_2x1()
    mat = LinearElastic(id=0, properties=elastic_props, dim=2)
    particles = [Particle(i, x) for i, x in enumerate([[0.25, 0.25], [0.75, 0.75], [1.3, 0.4]])]
    for p in particles:
        assert p.assign_material(mat)
        cell = mesh.find_cell(p.coordinates)
        assert p.assign_cell(cell)
    for p in particles:
        assert p.compute_volume()
        assert p.compute_mass(0)
        assert p.compute_shapefn()
        assert p.map_mass_momentum_to_nodes(0)
    assert particles[0].volume == pytest.approx(0.5)
    assert particles[2].volume == pytest.approx(1.0)
    total = sum(p.mass(0) for p in particles)
    assert total == pytest.approx(2.0 * elastic_props["density"])
    assert mesh.nodal_mass(0) == pytest.approx(total)


def test_compute_mass_requires_material_and_volume(elastic_props):
    p = Particle(0, [0.5, 0.5])
    assert not p.compute_mass(0)
    p.assign_material(LinearElastic(id=0, properties=elastic_props, dim=2))
    assert not p.compute_mass(0)


def test_invalid_material_is_rejected():
    p = Particle(0, [0.5, 0.5])
    bad = LinearElastic(id=0, properties={"density": 1.0}, dim=2)
    assert not p.assign_material(bad)
    assert p.material is None


def test_compute_strain_packs_2d_slots():
    mesh = Mesh.structured([1.0, 1.0], [1, 1])
    for n in mesh.nodes.values():
        n.velocity[0] = [0.2 * n.coordinates[0], 0.1 * n.coordinates[0]]
    p = Particle(0, [0.5, 0.5])
    p.assign_cell(mesh.cells[0])
    p.compute_shapefn()
    assert p.compute_strain(0, 0.5)
    assert np.allclose(p.strain_rate(0), [0.2, 0.0, 0.0, 0.1, 0.0, 0.0])
    assert np.allclose(p.dstrain(0), [0.1, 0.0, 0.0, 0.05, 0.0, 0.0])
    assert np.allclose(p.strain(0), p.dstrain(0))
    assert p.volumetric_strain_centroid(0) == pytest.approx(0.1)


def test_update_volume_from_strain_rate():
    mesh = Mesh.structured([1.0, 1.0], [1, 1])
    for n in mesh.nodes.values():
        n.velocity[0] = [0.2 * n.coordinates[0], 0.0]
    p = Particle(0, [0.5, 0.5])
    p.assign_cell(mesh.cells[0])
    p.compute_shapefn()
    p.assign_volume(2.0)
    p.compute_strain(0, 0.1)
    assert p.update_volume_strainrate(0, 0.1)
    assert p.volume == pytest.approx(2.0 * (1.0 + 0.1 * 0.2))


def test_position_updates():
    mesh = Mesh.structured([1.0, 1.0], [1, 1])
    for n in mesh.nodes.values():
        n.velocity[0] = [1.0, 0.0]
        n.acceleration[0] = [0.0, -10.0]
    p = Particle(0, [0.5, 0.5])
    p.assign_velocity(0, [0.0, 2.0])
    p.assign_cell(mesh.cells[0])
    p.compute_shapefn()
    assert p.compute_updated_position(0, 0.1)
    assert np.allclose(p.velocity(0), [0.0, 1.0])
    assert np.allclose(p.coordinates, [0.6, 0.5])

    q = Particle(1, [0.5, 0.5])
    q.assign_cell(mesh.cells[0])
    q.compute_shapefn()
    assert q.compute_updated_position_velocity(0, 0.1)
    assert np.allclose(q.velocity(0), [1.0, 0.0])
    assert np.allclose(q.coordinates, [0.6, 0.5])


def test_record_roundtrip_preserves_state():
    p = Particle(42, [0.1, 0.2, 0.3], dim=3, nphases=2)
    p.assign_mass(1, 3.5)
    p.assign_volume(0.125)
    p.assign_velocity(0, [1.0, 2.0, 3.0])
    p.assign_stress(1, np.arange(6.0))
    rec = p.to_record()

    q = Particle(42, [0.0, 0.0, 0.0], dim=3, nphases=2)
    assert q.initialise_particle(rec)
    assert np.allclose(q.coordinates, p.coordinates)
    assert q.mass(1) == 3.5
    assert q.volume == 0.125
    assert np.allclose(q.velocity(0), [1.0, 2.0, 3.0])
    assert np.allclose(q.stress(1), np.arange(6.0))
    assert not Particle(7, [0, 0, 0], dim=3).initialise_particle(rec)


def test_position_update_without_move_only_sets_velocity():
    mesh = Mesh.structured([1.0, 1.0], [1, 1])
    for n in mesh.nodes.values():
        n.velocity[0] = [1.0, 0.0]
        n.acceleration[0] = [0.0, -10.0]
    p = Particle(0, [0.5, 0.5])
    p.assign_cell(mesh.cells[0])
    p.compute_shapefn()
    assert p.compute_updated_position(0, 0.1, move=False)
    assert np.allclose(p.velocity(0), [0.0, -1.0])
    assert np.allclose(p.coordinates, [0.5, 0.5])
    assert p.compute_updated_position_velocity(0, 0.1, move=False)
    assert np.allclose(p.velocity(0), [1.0, 0.0])
    assert np.allclose(p.coordinates, [0.5, 0.5])


def test_loading_record_clears_rates_and_cell():
    mesh = Mesh.structured([1.0, 1.0], [1, 1])
    for n in mesh.nodes.values():
        n.velocity[0] = [0.2 * n.coordinates[0], 0.0]
    p = Particle(3, [0.5, 0.5])
    p.assign_cell(mesh.cells[0])
    p.compute_shapefn()
    p.compute_strain(0, 0.1)
    assert np.any(p.strain_rate(0) != 0.0)

    rec = Particle(3, [0.25, 0.75]).to_record()
    assert p.initialise_particle(rec)
    assert np.allclose(p.coordinates, [0.25, 0.75])
    assert np.all(p.strain_rate(0) == 0.0)
    assert np.all(p.dstrain(0) == 0.0)
    assert p.cell is None and p.cell_id is None
    assert p.reference_location() is None
    assert not p.shapefn_valid
    assert 3 not in mesh.cells[0].particle_ids
