"""
Test RunConfig serialization/deserialization round-trip.

Verifies that to_dict() -> from_dict() and the YAML / JSON files preserve
all data.
"""

import pytest

from mpm_core.config import (
    MaterialConfig,
    MeshConfig,
    OutputConfig,
    ParticleConfig,
    RunConfig,
    SolverConfig,
)


def _config():
    return RunConfig(
        name="dam_break",
        mesh=MeshConfig(dim=2, lengths=[4.0, 2.0], ncells=[8, 4], origin=[-1.0, 0.0]),
        particles=ParticleConfig(per_cell=2, region_min=[-1.0, 0.0], region_max=[0.0, 1.0], material_id=1),
        materials=[
            MaterialConfig(id=1, type="Bingham", properties={
                "density": 1000.0, "youngs_modulus": 2e6, "poisson_ratio": 0.3,
                "tau0": 1.0, "mu": 0.01, "critical_shear_rate": 1e-3,
            }),
        ],
        solver=SolverConfig(scheme="usl", dt=1e-4, nsteps=50, velocity_constraints=[(0, 1, 0.0), (1, 0, 0.5)]),
        output=OutputConfig(vtk_dir="out", every=10),
    )


def test_dict_roundtrip():
    cfg = _config()
    cfg2 = RunConfig.from_dict(cfg.to_dict())
    assert cfg2 == cfg


def test_yaml_roundtrip(tmp_path):
    cfg = _config()
    path = tmp_path / "run.yaml"
    cfg.save_yaml(str(path))
    assert RunConfig.load(str(path)) == cfg


def test_json_roundtrip(tmp_path):
    cfg = _config()
    path = tmp_path / "run.json"
    cfg.save_json(str(path))
    assert RunConfig.load(str(path)) == cfg


def test_defaults_from_empty_dict():
    cfg = RunConfig.from_dict({})
    assert cfg.mesh.dim == 2
    assert cfg.solver.scheme == "usf"
    assert cfg.solver.position_update == "acceleration"
    assert cfg.output.vtk_dir is None


def test_validate_accepts_good_config():
    _config().validate()


@pytest.mark.parametrize(
    "mutate",
    [
        lambda c: setattr(c.mesh, "dim", 4),
        lambda c: setattr(c.mesh, "ncells", [1]),
        lambda c: setattr(c.solver, "scheme", "musl"),
        lambda c: setattr(c.solver, "dt", 0.0),
        lambda c: setattr(c.solver, "nphases", 3),
        lambda c: setattr(c.solver, "position_update", "pic"),
        lambda c: setattr(c.particles, "material_id", 7),
        lambda c: c.materials.append(MaterialConfig(id=1, type="LinearElastic")),
    ],
)
def test_validate_rejects_bad_config(mutate):
    cfg = _config()
    mutate(cfg)
    with pytest.raises(ValueError):
        cfg.validate()
