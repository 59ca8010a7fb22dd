"""Fixed-layout particle checkpoint record.

The layout is independent of the run dimension and phase count: coordinates
and velocities always carry three components and every per-phase field
carries :data:`MAX_PHASES` entries; unused slots are zero. Field order and
widths must not change, persisted checkpoints depend on them.
"""

from __future__ import annotations

from typing import Iterable, List

import numpy as np

MAX_PHASES = 2

PARTICLE_RECORD_DTYPE = np.dtype(
    [
        ("id", np.uint64),
        ("coord", np.float64, (3,)),
        ("mass", np.float64, (MAX_PHASES,)),
        ("volume", np.float64),
        ("velocity", np.float64, (MAX_PHASES, 3)),
        ("stress", np.float64, (MAX_PHASES, 6)),
        ("strain", np.float64, (MAX_PHASES, 6)),
        ("volumetric_strain_centroid", np.float64, (MAX_PHASES,)),
        ("cell_id", np.int64),
        ("material_id", np.int64),
        ("status", np.bool_),
    ]
)


def particles_to_records(particles: Iterable) -> np.ndarray:
    """Pack particles into a structured array of :data:`PARTICLE_RECORD_DTYPE`."""
    recs = [p.to_record() for p in particles]
    out = np.zeros(len(recs), dtype=PARTICLE_RECORD_DTYPE)
    for i, r in enumerate(recs):
        out[i] = r
    return out


def records_to_particles(records: np.ndarray, dim: int, nphases: int = 1) -> List:
    """Rebuild particles from records (cell and material links are not restored)."""
    from mpm_core.particle import Particle

    records = np.asarray(records, dtype=PARTICLE_RECORD_DTYPE)
    particles = []
    for rec in records.reshape(-1):
        p = Particle(int(rec["id"]), rec["coord"][:dim], dim=dim, nphases=nphases)
        p.initialise_particle(rec)
        particles.append(p)
    return particles
