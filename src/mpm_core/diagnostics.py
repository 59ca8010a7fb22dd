"""Per-step diagnostics for MPM runs.

The snapshot is read-only: it sums quantities already produced by the step
and never modifies particle or node state. Conservation checks compare
``particle_mass`` against ``nodal_mass`` (the scatter conserves mass up to
rounding when every active particle is located).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict

import numpy as np

from mpm_core.mesh import Mesh


@dataclass(frozen=True)
class StepDiagnostics:
    step: int
    time: float
    dt: float
    n_active: int
    n_unlocated: int

    particle_mass: float
    nodal_mass: float
    kinetic_energy: float
    momentum_norm: float
    v_max: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def summary(self) -> str:
        return (
            f"step={self.step} t={self.time:.4g} active={self.n_active} lost={self.n_unlocated} "
            f"m_p={self.particle_mass:.6g} m_n={self.nodal_mass:.6g} "
            f"KE={self.kinetic_energy:.4g} v_max={self.v_max:.4g}"
        )


def compute_step_diagnostics(step: int, time: float, dt: float, mesh: Mesh, n_unlocated: int = 0) -> StepDiagnostics:
    """Diagnostics for phase 0 (and the sum over phases for masses)."""
    active = [p for p in mesh.particles.values() if p.status]
    if not active:
        return StepDiagnostics(
            step=int(step),
            time=float(time),
            dt=float(dt),
            n_active=0,
            n_unlocated=int(n_unlocated),
            particle_mass=0.0,
            nodal_mass=0.0,
            kinetic_energy=0.0,
            momentum_norm=0.0,
            v_max=0.0,
        )

    phases = range(mesh.nphases)
    m = np.array([[p.mass(ph) for ph in phases] for p in active], dtype=float)
    v = np.array([[p.velocity(ph) for ph in phases] for p in active], dtype=float)

    vnorm = np.linalg.norm(v, axis=2)
    momentum = np.einsum("ij,ijk->k", m, v)

    return StepDiagnostics(
        step=int(step),
        time=float(time),
        dt=float(dt),
        n_active=len(active),
        n_unlocated=int(n_unlocated),
        particle_mass=float(m.sum()),
        nodal_mass=float(sum(mesh.nodal_mass(ph) for ph in phases)),
        kinetic_energy=float(0.5 * np.sum(m * vnorm**2)),
        momentum_norm=float(np.linalg.norm(momentum)),
        v_max=float(vnorm.max()),
    )
