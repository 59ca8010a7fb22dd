"""Explicit MPM step schemes.

Both schemes share the same stages and differ only in where strain and
stress are updated:

* USF (update stress first): stress from the nodal velocities obtained by
  the mass/momentum scatter, before forces are mapped.
* USL (update stress last): stress from the nodal velocities after the
  nodal acceleration solve and the particle position update.

A stage returns the list of particles for which a per-particle operation
reported failure, so the solver can log or abort.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Sequence

import numpy as np

from mpm_core.mesh import Mesh
from mpm_core.particle import Particle

log = logging.getLogger(__name__)

_schemes = ("usf", "usl")
_position_updates = ("acceleration", "velocity")


class _MPMScheme:
    name = "base"

    def __init__(
        self,
        mesh: Mesh,
        dt: float,
        position_update: str = "acceleration",
        update_volume: bool = False,
    ) -> None:
        if position_update not in _position_updates:
            raise ValueError(
                f"Please select position_update from {_position_updates}. Found {position_update}"
            )
        self.mesh = mesh
        self.dt = float(dt)
        self.position_update = position_update
        self.update_volume = bool(update_volume)

    @property
    def phases(self) -> range:
        return range(self.mesh.nphases)

    def _particle_pass(self, fn: Callable[[Particle], bool]) -> List[Particle]:
        particles = [p for p in self.mesh.particles.values() if p.status]
        results = self.mesh.iterate_over_particles(fn)
        return [p for p, ok in zip(particles, results) if not ok]

    def _compute_shapefn(self, p: Particle) -> bool:
        return p.compute_shapefn()

    def _map_mass_momentum(self, p: Particle) -> bool:
        return all(p.map_mass_momentum_to_nodes(phase) for phase in self.phases)

    def _compute_strain_stress(self, p: Particle) -> bool:
        ok = True
        for phase in self.phases:
            ok = p.compute_strain(phase, self.dt) and ok
            # volume follows the solid skeleton (phase 0)
            if self.update_volume and phase == 0:
                p.update_volume_strainrate(phase, self.dt)
            ok = p.compute_stress(phase) and ok
        return ok

    def _update_position(self, p: Particle) -> bool:
        if self.position_update == "velocity":
            update = p.compute_updated_position_velocity
        else:
            update = p.compute_updated_position
        # every phase gets its velocity, coordinates move with phase 0 only
        return all([update(phase, self.dt, move=(phase == 0)) for phase in self.phases])

    # ---- stages -----------------------------------------------------------

    def compute_nodal_kinematics(self) -> List[Particle]:
        """Reset nodes, scatter mass and momentum, solve nodal velocity."""
        self.mesh.iterate_over_nodes(lambda n: n.initialise())
        failed = self._particle_pass(self._compute_shapefn)
        failed += self._particle_pass(self._map_mass_momentum)
        for phase in self.phases:
            self.mesh.iterate_over_nodes(lambda n: n.compute_velocity(phase))
        return failed

    def compute_stress_strain(self) -> List[Particle]:
        return self._particle_pass(self._compute_strain_stress)

    def precompute_stress_strain(self) -> List[Particle]:
        return []

    def postcompute_stress_strain(self) -> List[Particle]:
        return []

    def compute_forces(self, gravity: Sequence[float]) -> List[Particle]:
        """Body and internal forces to nodes, then nodal acceleration and velocity."""
        g = np.asarray(gravity, dtype=float).reshape(-1)

        def _forces(p: Particle) -> bool:
            ok = True
            for phase in self.phases:
                ok = p.map_body_force(phase, g) and ok
                ok = p.map_internal_force(phase) and ok
            return ok

        failed = self._particle_pass(_forces)
        for phase in self.phases:
            self.mesh.iterate_over_nodes(lambda n: n.compute_acceleration_velocity(phase, self.dt))
        return failed

    def compute_particle_kinematics(self) -> List[Particle]:
        return self._particle_pass(self._update_position)


class USF(_MPMScheme):
    """Update stress first."""

    name = "usf"

    def precompute_stress_strain(self) -> List[Particle]:
        return self.compute_stress_strain()


class USL(_MPMScheme):
    """Update stress last."""

    name = "usl"

    def postcompute_stress_strain(self) -> List[Particle]:
        return self.compute_stress_strain()


def make_scheme(
    scheme: str, mesh: Mesh, dt: float, position_update: str = "acceleration", update_volume: bool = False
) -> _MPMScheme:
    key = (scheme or "").strip().lower()
    if key == "usf":
        return USF(mesh, dt, position_update, update_volume)
    if key == "usl":
        return USL(mesh, dt, position_update, update_volume)
    raise ValueError(f"Please select scheme from {_schemes}. Found {scheme}")
