"""
Run configuration dataclasses.

Provides structured configuration for the background mesh, particle
generation, materials, the explicit solver and output, with JSON / YAML
round-tripping.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Tuple
import json
import yaml


# ============================================================================
# MESH / PARTICLES
# ============================================================================

@dataclass
class MeshConfig:
    """Structured background mesh"""
    dim: int = 2
    lengths: List[float] = field(default_factory=lambda: [1.0, 1.0])
    ncells: List[int] = field(default_factory=lambda: [1, 1])
    origin: Optional[List[float]] = None

    def validate(self) -> None:
        if self.dim not in (2, 3):
            raise ValueError(f"mesh.dim must be 2 or 3, got {self.dim}")
        if len(self.lengths) != self.dim or len(self.ncells) != self.dim:
            raise ValueError("mesh.lengths and mesh.ncells need one entry per dimension")
        if self.origin is not None and len(self.origin) != self.dim:
            raise ValueError("mesh.origin needs one entry per dimension")
        if any(float(x) <= 0.0 for x in self.lengths) or any(int(n) < 1 for n in self.ncells):
            raise ValueError("mesh.lengths must be > 0 and mesh.ncells >= 1")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dim": self.dim,
            "lengths": [float(x) for x in self.lengths],
            "ncells": [int(n) for n in self.ncells],
            "origin": None if self.origin is None else [float(x) for x in self.origin],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MeshConfig':
        origin = data.get("origin")
        return cls(
            dim=int(data.get("dim", 2)),
            lengths=[float(x) for x in data.get("lengths", [1.0, 1.0])],
            ncells=[int(n) for n in data.get("ncells", [1, 1])],
            origin=None if origin is None else [float(x) for x in origin],
        )


@dataclass
class ParticleConfig:
    """Particles seeded on a regular sub-grid inside a box"""
    per_cell: int = 2  # per direction per cell
    region_min: Optional[List[float]] = None
    region_max: Optional[List[float]] = None
    velocity: Optional[List[float]] = None
    material_id: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "per_cell": self.per_cell,
            "region_min": self.region_min,
            "region_max": self.region_max,
            "velocity": self.velocity,
            "material_id": self.material_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ParticleConfig':
        def _vec(key: str) -> Optional[List[float]]:
            v = data.get(key)
            return None if v is None else [float(x) for x in v]

        return cls(
            per_cell=int(data.get("per_cell", 2)),
            region_min=_vec("region_min"),
            region_max=_vec("region_max"),
            velocity=_vec("velocity"),
            material_id=int(data.get("material_id", 0)),
        )


# ============================================================================
# MATERIALS
# ============================================================================

@dataclass
class MaterialConfig:
    """One constitutive model instance (flat key-value parameters)"""
    id: int
    type: str
    properties: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "type": self.type, "properties": dict(self.properties)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MaterialConfig':
        return cls(id=int(data["id"]), type=str(data["type"]), properties=dict(data.get("properties", {})))


# ============================================================================
# SOLVER / OUTPUT
# ============================================================================

@dataclass
class SolverConfig:
    """Explicit time stepping"""
    scheme: str = "usf"  # "usf" or "usl"
    dt: float = 1e-3
    nsteps: int = 100
    gravity: List[float] = field(default_factory=lambda: [0.0, -9.81])
    nphases: int = 1
    position_update: str = "acceleration"  # "acceleration" or "velocity"
    update_volume: bool = False
    workers: int = 1
    abort_on_lost_particle: bool = True
    log_every: int = 10
    # (node_id, direction, velocity)
    velocity_constraints: List[Tuple[int, int, float]] = field(default_factory=list)

    def validate(self, dim: int) -> None:
        if self.scheme.lower() not in ("usf", "usl"):
            raise ValueError(f"solver.scheme must be 'usf' or 'usl', got '{self.scheme}'")
        if self.position_update not in ("acceleration", "velocity"):
            raise ValueError(
                f"solver.position_update must be 'acceleration' or 'velocity', got '{self.position_update}'"
            )
        if not self.dt > 0.0:
            raise ValueError(f"solver.dt must be > 0, got {self.dt}")
        if self.nsteps < 0:
            raise ValueError(f"solver.nsteps must be >= 0, got {self.nsteps}")
        if self.nphases not in (1, 2):
            raise ValueError(f"solver.nphases must be 1 or 2, got {self.nphases}")
        if len(self.gravity) < dim:
            raise ValueError(f"solver.gravity needs {dim} components")
        if self.workers < 1:
            raise ValueError(f"solver.workers must be >= 1, got {self.workers}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scheme": self.scheme,
            "dt": self.dt,
            "nsteps": self.nsteps,
            "gravity": [float(g) for g in self.gravity],
            "nphases": self.nphases,
            "position_update": self.position_update,
            "update_volume": self.update_volume,
            "workers": self.workers,
            "abort_on_lost_particle": self.abort_on_lost_particle,
            "log_every": self.log_every,
            "velocity_constraints": [[int(n), int(d), float(v)] for n, d, v in self.velocity_constraints],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SolverConfig':
        defaults = cls()
        return cls(
            scheme=str(data.get("scheme", defaults.scheme)).lower(),
            dt=float(data.get("dt", defaults.dt)),
            nsteps=int(data.get("nsteps", defaults.nsteps)),
            gravity=[float(g) for g in data.get("gravity", defaults.gravity)],
            nphases=int(data.get("nphases", defaults.nphases)),
            position_update=str(data.get("position_update", defaults.position_update)),
            update_volume=bool(data.get("update_volume", defaults.update_volume)),
            workers=int(data.get("workers", defaults.workers)),
            abort_on_lost_particle=bool(data.get("abort_on_lost_particle", defaults.abort_on_lost_particle)),
            log_every=int(data.get("log_every", defaults.log_every)),
            velocity_constraints=[
                (int(n), int(d), float(v)) for n, d, v in data.get("velocity_constraints", [])
            ],
        )


@dataclass
class OutputConfig:
    """Output specification"""
    vtk_dir: Optional[str] = None
    every: int = 0  # 0 = only the final state

    def to_dict(self) -> Dict[str, Any]:
        return {"vtk_dir": self.vtk_dir, "every": self.every}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OutputConfig':
        return cls(vtk_dir=data.get("vtk_dir"), every=int(data.get("every", 0)))


# ============================================================================
# RUN
# ============================================================================

@dataclass
class RunConfig:
    """Complete run configuration"""
    name: str = "mpm"
    mesh: MeshConfig = field(default_factory=MeshConfig)
    particles: ParticleConfig = field(default_factory=ParticleConfig)
    materials: List[MaterialConfig] = field(default_factory=list)
    solver: SolverConfig = field(default_factory=SolverConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def validate(self) -> None:
        self.mesh.validate()
        self.solver.validate(self.mesh.dim)
        ids = [m.id for m in self.materials]
        if len(ids) != len(set(ids)):
            raise ValueError(f"duplicate material ids in {ids}")
        if self.materials and self.particles.material_id not in ids:
            raise ValueError(f"particles.material_id {self.particles.material_id} is not a configured material")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON/YAML export"""
        return {
            "name": self.name,
            "mesh": self.mesh.to_dict(),
            "particles": self.particles.to_dict(),
            "materials": [m.to_dict() for m in self.materials],
            "solver": self.solver.to_dict(),
            "output": self.output.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RunConfig':
        """Construct from dictionary (inverse of to_dict)"""
        data = data or {}
        return cls(
            name=str(data.get("name", "mpm")),
            mesh=MeshConfig.from_dict(data.get("mesh", {})),
            particles=ParticleConfig.from_dict(data.get("particles", {})),
            materials=[MaterialConfig.from_dict(m) for m in data.get("materials", [])],
            solver=SolverConfig.from_dict(data.get("solver", {})),
            output=OutputConfig.from_dict(data.get("output", {})),
        )

    def save_json(self, filepath: str):
        """Save to JSON file"""
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    def save_yaml(self, filepath: str):
        """Save to YAML file"""
        with open(filepath, 'w') as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    @classmethod
    def load_json(cls, filepath: str) -> 'RunConfig':
        """Load from JSON file"""
        with open(filepath, 'r') as f:
            data = json.load(f)
        return cls.from_dict(data)

    @classmethod
    def load_yaml(cls, filepath: str) -> 'RunConfig':
        """Load from YAML file"""
        with open(filepath, 'r') as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data)

    @classmethod
    def load(cls, filepath: str) -> 'RunConfig':
        """Dispatch on the file extension (.json, otherwise YAML)"""
        if str(filepath).lower().endswith(".json"):
            return cls.load_json(filepath)
        return cls.load_yaml(filepath)
