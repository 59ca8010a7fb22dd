"""Interfaces consumed and produced by the core: checkpoint records, ASCII input."""

from .particle_record import (
    PARTICLE_RECORD_DTYPE,
    MAX_PHASES,
    particles_to_records,
    records_to_particles,
)
from .mesh_ascii import read_mesh_ascii, read_particles_ascii

__all__ = [
    "PARTICLE_RECORD_DTYPE",
    "MAX_PHASES",
    "particles_to_records",
    "records_to_particles",
    "read_mesh_ascii",
    "read_particles_ascii",
]
