"""Explicit MPM driver.

:class:`MPMExplicit` wires a :class:`~mpm_core.mesh.Mesh` to a USF or USL
scheme and advances it in time. :func:`build_mesh` assembles a mesh,
materials and particles from a :class:`~mpm_core.config.RunConfig`.
"""

from __future__ import annotations

import logging
import math
import warnings
from typing import Callable, List, Optional

import numpy as np

from mpm_core.config import RunConfig, SolverConfig
from mpm_core.diagnostics import StepDiagnostics, compute_step_diagnostics
from mpm_core.fem.mesh import particles_in_box, structured_mesh
from mpm_core.linear_elastic import iso_lame
from mpm_core.mesh import Mesh
from mpm_core.particle import Particle
from mpm_core.scheme import make_scheme

log = logging.getLogger(__name__)


def estimate_critical_dt(mesh: Mesh) -> Optional[float]:
    """CFL estimate ``h / c_p`` over the materials in use (None if unknown)."""
    if not mesh.cells:
        return None
    h = min(c.volume for c in mesh.cells.values()) ** (1.0 / mesh.dim)
    c_max = 0.0
    for mat in {id(p.material): p.material for p in mesh.particles.values() if p.material is not None}.values():
        try:
            E = mat.parameter("youngs_modulus")
            nu = mat.parameter("poisson_ratio")
        except KeyError:
            continue
        _lam, G, K = iso_lame(E, nu)
        c_max = max(c_max, math.sqrt((K + 4.0 * G / 3.0) / mat.density))
    if c_max <= 0.0:
        return None
    return h / c_max


class MPMExplicit:
    def __init__(self, mesh: Mesh, config: Optional[SolverConfig] = None) -> None:
        self.mesh = mesh
        if config is None:
            config = SolverConfig(gravity=[0.0] * (mesh.dim - 1) + [-9.81])
        self.config = config
        self.config.validate(mesh.dim)
        if self.config.nphases != mesh.nphases:
            raise ValueError(f"solver.nphases={self.config.nphases} but mesh has {mesh.nphases} phase(s)")
        self.dt = float(self.config.dt)
        self.gravity = np.zeros(mesh.dim, dtype=float)
        self.gravity[:] = np.asarray(self.config.gravity, dtype=float)[: mesh.dim]
        self.mpm_scheme = make_scheme(
            self.config.scheme, mesh, self.dt, self.config.position_update, self.config.update_volume
        )
        self.step_count = 0
        self.time = 0.0
        self.history: List[StepDiagnostics] = []
        self._initialised = False

    # ------------------------------------------------------------------

    def _handle_lost(self, lost: List[Particle], stage: str) -> int:
        if not lost:
            return 0
        ids = sorted(p.id for p in lost)
        if self.config.abort_on_lost_particle:
            raise RuntimeError(f"{stage}: {len(ids)} particle(s) left the mesh: {ids[:10]}")
        for p in lost:
            p.status = False
        warnings.warn(f"{stage}: deactivated {len(ids)} particle(s) outside the mesh", RuntimeWarning)
        return len(ids)

    def initialise(self) -> None:
        """Locate particles, derive volume and mass, apply constraints."""
        mesh = self.mesh
        self._handle_lost(mesh.locate_particles(), "initialise")
        for p in mesh.particles.values():
            if not p.status:
                continue
            if p.volume <= 0.0 and not p.compute_volume():
                raise RuntimeError(f"particle #{p.id}: volume could not be computed")
            for phase in range(mesh.nphases):
                if p.mass(phase) <= 0.0 and not p.compute_mass(phase):
                    raise RuntimeError(f"particle #{p.id}: mass could not be computed (material assigned?)")

        if self.config.velocity_constraints and not mesh.assign_velocity_constraints(self.config.velocity_constraints):
            raise ValueError("invalid velocity constraint(s) in solver configuration")

        dt_crit = estimate_critical_dt(mesh)
        if dt_crit is not None and self.dt > dt_crit:
            warnings.warn(
                f"dt={self.dt:.3e} exceeds the CFL estimate {dt_crit:.3e}; the run may be unstable",
                RuntimeWarning,
            )
        self._initialised = True
        log.info("initialised %r, dt=%.3e, scheme=%s", mesh, self.dt, self.mpm_scheme.name)

    def step(self) -> StepDiagnostics:
        if not self._initialised:
            self.initialise()
        s = self.mpm_scheme
        failed = s.compute_nodal_kinematics()
        failed += s.precompute_stress_strain()
        failed += s.compute_forces(self.gravity)
        failed += s.compute_particle_kinematics()
        failed += s.postcompute_stress_strain()
        if failed:
            log.debug("step %d: %d particle operation(s) reported failure", self.step_count + 1, len(failed))

        self.step_count += 1
        self.time += self.dt
        n_lost = self._handle_lost(self.mesh.locate_particles(), f"step {self.step_count}")

        diag = compute_step_diagnostics(self.step_count, self.time, self.dt, self.mesh, n_lost)
        self.history.append(diag)
        every = self.config.log_every
        if every > 0 and self.step_count % every == 0:
            log.info("[step] %s", diag.summary())
        return diag

    def solve(
        self, nsteps: Optional[int] = None, callback: Optional[Callable[["MPMExplicit", StepDiagnostics], None]] = None
    ) -> List[StepDiagnostics]:
        n = self.config.nsteps if nsteps is None else int(nsteps)
        if not self._initialised:
            self.initialise()
        out = []
        for _ in range(n):
            diag = self.step()
            out.append(diag)
            if callback is not None:
                callback(self, diag)
        return out


def build_mesh(cfg: RunConfig) -> Mesh:
    """Structured mesh, materials and seeded particles from a run config."""
    cfg.validate()
    mc, pc = cfg.mesh, cfg.particles
    mesh = Mesh(dim=mc.dim, nphases=cfg.solver.nphases, workers=cfg.solver.workers)
    nodes, elems = structured_mesh(mc.lengths, mc.ncells, mc.origin)
    mesh.create_nodes(nodes)
    mesh.create_cells(elems)

    for m in cfg.materials:
        mesh.materials.create(m.type, m.id, m.properties, dim=mc.dim)

    coords = particles_in_box(nodes, elems, pc.per_cell, pc.region_min, pc.region_max)
    material = mesh.materials.get(pc.material_id)
    particles = mesh.create_particles(coords, material)

    if pc.velocity is not None:
        for p in particles:
            for phase in range(mesh.nphases):
                if not p.assign_velocity(phase, pc.velocity[: mesh.dim]):
                    raise ValueError(f"particles.velocity needs {mesh.dim} components")

    # per-particle volume: cell volume / particles in that cell
    lost = mesh.locate_particles()
    if lost:
        raise ValueError(f"{len(lost)} seeded particle(s) fall outside the mesh")
    for p in particles:
        p.compute_volume()
    return mesh
