"""Lagrangian material point.

A particle carries kinematic and constitutive state per phase and drives the
particle <-> grid transfers through the cell it currently sits in.

Ownership
---------
* The mesh owns cells and nodes. A particle keeps only a weak reference to
  its cell; the cell keeps only the particle id.
* Materials are owned by a :class:`~mpm_core.material_factory.MaterialRegistry`
  and shared between particles.

Interpolation cache
-------------------
``shapefn`` and ``bmatrix`` are derived state: valid after
:meth:`Particle.compute_shapefn`, invalidated by :meth:`Particle.assign_cell`
and :meth:`Particle.remove_cell`. Every transfer that needs them checks
:attr:`Particle.shapefn_valid` and reports failure instead of using stale
data.

Per-phase state uses Voigt6 vectors ``[xx, yy, zz, xy, yz, xz]`` (engineering
shear). In 2-D only slots 0, 1 and 3 are driven by the grid.
"""

from __future__ import annotations

import logging
import weakref
from typing import Optional

import numpy as np

from mpm_core.cell import Cell
from mpm_core.constitutive import Material
from mpm_core.fem.element import VOIGT_SLOTS
from mpm_core.io.particle_record import PARTICLE_RECORD_DTYPE
from mpm_core.node import check_dim_phases

log = logging.getLogger(__name__)


class Particle:
    def __init__(self, pid: int, coordinates, dim: int = 2, nphases: int = 1, status: bool = True) -> None:
        self.dim, self.nphases = check_dim_phases(dim, nphases)
        self._id = int(pid)
        self.coordinates = np.asarray(coordinates, dtype=float).reshape(-1)[: self.dim].copy()
        if self.coordinates.shape[0] != self.dim:
            raise ValueError(f"particle #{self._id}: expected {self.dim} coordinates")
        self.status = bool(status)

        self._slots = VOIGT_SLOTS[self.dim]
        self._cell_ref: Optional[weakref.ReferenceType] = None
        self.cell_id: Optional[int] = None
        self.xi: Optional[np.ndarray] = None
        self.material: Optional[Material] = None

        self.initialise()

    @property
    def id(self) -> int:
        return self._id

    def __repr__(self) -> str:
        return f"Particle(id={self._id}, coordinates={self.coordinates.tolist()}, cell={self.cell_id})"

    def initialise(self) -> None:
        """Zero the per-phase state and drop cached interpolation."""
        n = self.nphases
        self._mass = np.zeros(n, dtype=float)
        self._velocity = np.zeros((n, self.dim), dtype=float)
        self._stress = np.zeros((n, 6), dtype=float)
        self._strain = np.zeros((n, 6), dtype=float)
        self._strain_rate = np.zeros((n, 6), dtype=float)
        self._dstrain = np.zeros((n, 6), dtype=float)
        self._volumetric_strain_centroid = np.zeros(n, dtype=float)
        self._volume = 0.0
        self._invalidate_shapefn()

    # ------------------------------------------------------------------
    # accessors
    # ------------------------------------------------------------------

    @property
    def cell(self) -> Optional[Cell]:
        return self._cell_ref() if self._cell_ref is not None else None

    @property
    def volume(self) -> float:
        return self._volume

    def assign_volume(self, volume: float) -> None:
        self._volume = float(volume)

    def mass(self, phase: int = 0) -> float:
        return float(self._mass[phase])

    def assign_mass(self, phase: int, mass: float) -> None:
        self._mass[phase] = float(mass)

    def velocity(self, phase: int = 0) -> np.ndarray:
        return self._velocity[phase].copy()

    def assign_velocity(self, phase: int, velocity) -> bool:
        v = np.asarray(velocity, dtype=float).reshape(-1)
        if v.shape[0] != self.dim:
            return False
        self._velocity[phase] = v
        return True

    def stress(self, phase: int = 0) -> np.ndarray:
        return self._stress[phase].copy()

    def assign_stress(self, phase: int, stress) -> None:
        self._stress[phase] = np.asarray(stress, dtype=float).reshape(6)

    def strain(self, phase: int = 0) -> np.ndarray:
        return self._strain[phase].copy()

    def strain_rate(self, phase: int = 0) -> np.ndarray:
        return self._strain_rate[phase].copy()

    def dstrain(self, phase: int = 0) -> np.ndarray:
        return self._dstrain[phase].copy()

    def volumetric_strain_centroid(self, phase: int = 0) -> float:
        return float(self._volumetric_strain_centroid[phase])

    def reference_location(self) -> Optional[np.ndarray]:
        return None if self.xi is None else self.xi.copy()

    @property
    def shapefn(self) -> Optional[np.ndarray]:
        return self._shapefn

    @property
    def bmatrix(self) -> Optional[np.ndarray]:
        return self._bmatrix

    @property
    def shapefn_valid(self) -> bool:
        return self._shapefn_valid

    def _invalidate_shapefn(self) -> None:
        self._shapefn: Optional[np.ndarray] = None
        self._bmatrix: Optional[np.ndarray] = None
        self._shapefn_valid = False

    # ------------------------------------------------------------------
    # cell association
    # ------------------------------------------------------------------

    def compute_reference_location(self) -> bool:
        """Recompute ``xi`` in the current cell; False if outside or no cell."""
        cell = self.cell
        if cell is None:
            return False
        xi, found = cell.compute_reference_location(self.coordinates)
        if not found:
            return False
        self.xi = xi
        self._invalidate_shapefn()
        return True

    def assign_cell(self, cell: Cell) -> bool:
        """Attach to ``cell`` if the particle lies inside it.

        If it does not, a different current cell that still contains the
        particle is kept. Otherwise the particle is detached.
        """
        current = self.cell
        xi, found = cell.compute_reference_location(self.coordinates)
        if found:
            if current is not None:
                current.remove_particle_id(self._id)
            self._cell_ref = weakref.ref(cell)
            self.cell_id = cell.id
            self.xi = xi
            self._invalidate_shapefn()
            return cell.add_particle_id(self._id)

        if current is not None and current is not cell:
            xi_old, still_inside = current.compute_reference_location(self.coordinates)
            if still_inside:
                self.xi = xi_old
                self._invalidate_shapefn()
                return True

        log.debug("particle #%d is not inside cell #%d", self._id, cell.id)
        self.remove_cell()
        return False

    def remove_cell(self) -> None:
        cell = self.cell
        if cell is not None:
            cell.remove_particle_id(self._id)
        self._cell_ref = None
        self.cell_id = None
        self.xi = None
        self._invalidate_shapefn()

    def assign_material(self, material: Material) -> bool:
        if material is None or not material.status:
            return False
        self.material = material
        return True

    # ------------------------------------------------------------------
    # interpolation, volume, mass
    # ------------------------------------------------------------------

    def compute_shapefn(self) -> bool:
        cell = self.cell
        if cell is None or self.xi is None:
            return False
        self._shapefn = cell.shapefn(self.xi)
        self._bmatrix = cell.bmatrix(self.xi)
        self._shapefn_valid = True
        return True

    def compute_volume(self) -> bool:
        """Share of the cell volume: ``cell.volume / nparticles``."""
        cell = self.cell
        if cell is None or cell.nparticles() == 0:
            return False
        self._volume = cell.volume / cell.nparticles()
        return True

    def compute_mass(self, phase: int = 0) -> bool:
        if self.material is None or not self.material.status or self._volume <= 0.0:
            return False
        self._mass[phase] = self._volume * self.material.density
        return True

    def _ready(self) -> Optional[Cell]:
        cell = self.cell
        if cell is None or not self._shapefn_valid:
            return None
        return cell

    def map_mass_momentum_to_nodes(self, phase: int = 0) -> bool:
        cell = self._ready()
        if cell is None:
            return False
        m = self._mass[phase]
        cell.map_particle_mass_to_nodes(self._shapefn, phase, m)
        cell.map_particle_momentum_to_nodes(self._shapefn, phase, m * self._velocity[phase])
        return True

    # ------------------------------------------------------------------
    # strain / stress
    # ------------------------------------------------------------------

    def compute_strain(self, phase: int, dt: float) -> bool:
        cell = self._ready()
        if cell is None:
            return False
        rate = np.zeros(6, dtype=float)
        rate[list(self._slots)] = cell.compute_strain_rate(self._bmatrix, phase)
        self._strain_rate[phase] = rate
        self._dstrain[phase] = rate * dt
        self._strain[phase] += self._dstrain[phase]

        # volumetric strain at the cell centroid (reduced integration)
        rate_c = cell.compute_strain_rate_centroid(phase)
        self._volumetric_strain_centroid[phase] += dt * float(np.sum(rate_c[: self.dim]))
        return True

    def compute_stress(self, phase: int = 0) -> bool:
        if self.material is None:
            return False
        self._stress[phase] = self.material.compute_stress(
            self._stress[phase].copy(), self._dstrain[phase].copy(), self, phase
        )
        return True

    def update_volume_strainrate(self, phase: int, dt: float) -> bool:
        """``volume *= 1 + dt * tr(strain_rate)``."""
        if self._volume <= 0.0:
            return False
        self._volume *= 1.0 + dt * float(np.sum(self._strain_rate[phase, :3]))
        return True

    # ------------------------------------------------------------------
    # forces
    # ------------------------------------------------------------------

    def map_body_force(self, phase: int, gravity) -> bool:
        cell = self._ready()
        if cell is None:
            return False
        g = np.asarray(gravity, dtype=float).reshape(-1)[: self.dim]
        cell.compute_nodal_body_force(self._shapefn, phase, self._mass[phase], g)
        return True

    def map_internal_force(self, phase: int = 0) -> bool:
        cell = self._ready()
        if cell is None:
            return False
        stress_packed = self._stress[phase, list(self._slots)]
        cell.compute_nodal_internal_force(self._bmatrix, phase, self._volume, stress_packed)
        return True

    # ------------------------------------------------------------------
    # position update
    # ------------------------------------------------------------------

    def compute_updated_position(self, phase: int, dt: float, move: bool = True) -> bool:
        """Advance with the interpolated nodal acceleration.

        The velocity of ``phase`` is always updated; coordinates only when
        ``move`` is set, so a multi-phase particle moves once per step.
        """
        cell = self._ready()
        if cell is None:
            return False
        self._velocity[phase] += cell.interpolate_nodal_acceleration(self._shapefn, phase) * dt
        if move:
            self.coordinates += cell.interpolate_nodal_velocity(self._shapefn, phase) * dt
        return True

    def compute_updated_position_velocity(self, phase: int, dt: float, move: bool = True) -> bool:
        """Advance with the interpolated nodal velocity."""
        cell = self._ready()
        if cell is None:
            return False
        self._velocity[phase] = cell.interpolate_nodal_velocity(self._shapefn, phase)
        if move:
            self.coordinates += self._velocity[phase] * dt
        return True

    # ------------------------------------------------------------------
    # checkpoint record
    # ------------------------------------------------------------------

    def initialise_particle(self, record) -> bool:
        """Load state from a :data:`PARTICLE_RECORD_DTYPE` record."""
        if int(record["id"]) != self._id:
            return False
        self.remove_cell()
        self.initialise()
        d, n = self.dim, self.nphases
        self.coordinates = np.array(record["coord"][:d], dtype=float)
        self._mass = np.array(record["mass"][:n], dtype=float)
        self._volume = float(record["volume"])
        self._velocity = np.array(record["velocity"][:n, :d], dtype=float)
        self._stress = np.array(record["stress"][:n], dtype=float)
        self._strain = np.array(record["strain"][:n], dtype=float)
        self._volumetric_strain_centroid = np.array(record["volumetric_strain_centroid"][:n], dtype=float)
        self.status = bool(record["status"])
        return True

    def to_record(self) -> np.ndarray:
        rec = np.zeros((), dtype=PARTICLE_RECORD_DTYPE)
        d, n = self.dim, self.nphases
        rec["id"] = self._id
        rec["coord"][:d] = self.coordinates
        rec["mass"][:n] = self._mass
        rec["volume"] = self._volume
        rec["velocity"][:n, :d] = self._velocity
        rec["stress"][:n] = self._stress
        rec["strain"][:n] = self._strain
        rec["volumetric_strain_centroid"][:n] = self._volumetric_strain_centroid
        rec["cell_id"] = -1 if self.cell_id is None else self.cell_id
        rec["material_id"] = -1 if self.material is None else self.material.id
        rec["status"] = self.status
        return rec

