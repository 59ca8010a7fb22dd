"""Grid node: per-phase accumulators for the particle-to-grid scatter.

Accumulators (mass, momentum, external / internal force) are reset by
:meth:`Node.initialise` at the start of every step and then only ever
*added to*. Additions take a per-node lock so that particles in different
cells sharing this node can scatter from worker threads.

Velocity constraints are configuration and survive ``initialise``.
"""

from __future__ import annotations

import threading
from typing import Dict, Tuple

import numpy as np

# mass below this is treated as an empty node
MASS_TOLERANCE = float(np.finfo(float).eps)


def check_dim_phases(dim: int, nphases: int) -> Tuple[int, int]:
    dim = int(dim)
    nphases = int(nphases)
    if dim not in (2, 3):
        raise ValueError(f"Unsupported dimension {dim}; use 2 or 3")
    if nphases not in (1, 2):
        raise ValueError(f"Unsupported number of phases {nphases}; use 1 or 2")
    return dim, nphases


class Node:
    def __init__(self, node_id: int, coordinates, dim: int = 2, nphases: int = 1) -> None:
        self.dim, self.nphases = check_dim_phases(dim, nphases)
        self.id = int(node_id)
        self.coordinates = np.asarray(coordinates, dtype=float).reshape(-1)[: self.dim].copy()
        if self.coordinates.shape[0] != self.dim:
            raise ValueError(f"node #{self.id}: expected {self.dim} coordinates")

        self._lock = threading.Lock()
        # (direction, phase) -> prescribed velocity
        self.velocity_constraints: Dict[Tuple[int, int], float] = {}

        self.mass = np.zeros(self.nphases, dtype=float)
        self.momentum = np.zeros((self.nphases, self.dim), dtype=float)
        self.external_force = np.zeros((self.nphases, self.dim), dtype=float)
        self.internal_force = np.zeros((self.nphases, self.dim), dtype=float)
        self.velocity = np.zeros((self.nphases, self.dim), dtype=float)
        self.acceleration = np.zeros((self.nphases, self.dim), dtype=float)

    def __repr__(self) -> str:
        return f"Node(id={self.id}, coordinates={self.coordinates.tolist()})"

    def initialise(self) -> None:
        """Zero every accumulator and derived field."""
        self.mass[...] = 0.0
        self.momentum[...] = 0.0
        self.external_force[...] = 0.0
        self.internal_force[...] = 0.0
        self.velocity[...] = 0.0
        self.acceleration[...] = 0.0

    # ---- scatter targets ------------------------------------------------

    def update_mass(self, phase: int, mass: float) -> None:
        with self._lock:
            self.mass[phase] += mass

    def update_momentum(self, phase: int, momentum: np.ndarray) -> None:
        with self._lock:
            self.momentum[phase] += momentum

    def update_external_force(self, phase: int, force: np.ndarray) -> None:
        with self._lock:
            self.external_force[phase] += force

    def update_internal_force(self, phase: int, force: np.ndarray) -> None:
        with self._lock:
            self.internal_force[phase] += force

    def force(self, phase: int) -> np.ndarray:
        return self.external_force[phase] + self.internal_force[phase]

    # ---- nodal solve ----------------------------------------------------

    def compute_velocity(self, phase: int = 0) -> bool:
        """``velocity = momentum / mass``; False for an empty node."""
        if self.mass[phase] <= MASS_TOLERANCE:
            self.velocity[phase] = 0.0
            return False
        self.velocity[phase] = self.momentum[phase] / self.mass[phase]
        self.apply_velocity_constraints(phase)
        return True

    def compute_acceleration_velocity(self, phase: int, dt: float) -> bool:
        """``acceleration = force / mass``, then ``velocity += acceleration * dt``."""
        if self.mass[phase] <= MASS_TOLERANCE:
            self.acceleration[phase] = 0.0
            return False
        self.acceleration[phase] = self.force(phase) / self.mass[phase]
        self.velocity[phase] += self.acceleration[phase] * dt
        self.apply_velocity_constraints(phase, dt)
        return True

    # ---- constraints ----------------------------------------------------

    def assign_velocity_constraint(self, direction: int, velocity: float, phase: int = 0) -> bool:
        direction = int(direction)
        if not (0 <= direction < self.dim) or not (0 <= int(phase) < self.nphases):
            return False
        self.velocity_constraints[(direction, int(phase))] = float(velocity)
        return True

    def apply_velocity_constraints(self, phase: int, dt: float = 0.0) -> None:
        for (direction, cphase), value in self.velocity_constraints.items():
            if cphase != phase:
                continue
            if dt > 0.0:
                # keep acceleration consistent with the prescribed velocity
                self.acceleration[phase, direction] = 0.0
            self.velocity[phase, direction] = value
