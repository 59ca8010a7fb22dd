"""mpm_core package (explicit material point method core)."""

from .node import Node
from .cell import Cell
from .particle import Particle
from .mesh import Mesh
from .constitutive import Material, LinearElastic, Bingham
from .material_factory import MaterialRegistry, make_material, normalize_material_type
from .scheme import USF, USL, make_scheme
from .solver import MPMExplicit, build_mesh
from .config import RunConfig, MeshConfig, ParticleConfig, MaterialConfig, SolverConfig, OutputConfig

__all__ = [
    "Node", "Cell", "Particle", "Mesh",
    "Material", "LinearElastic", "Bingham",
    "MaterialRegistry", "make_material", "normalize_material_type",
    "USF", "USL", "make_scheme",
    "MPMExplicit", "build_mesh",
    "RunConfig", "MeshConfig", "ParticleConfig", "MaterialConfig", "SolverConfig", "OutputConfig",
]
