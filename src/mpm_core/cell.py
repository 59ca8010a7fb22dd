"""Background-grid cell.

A cell references a fixed, ordered set of :class:`~mpm_core.node.Node`
objects (4 for Q4, 8 for Hex8) owned by the mesh. It provides the geometric
search used to locate particles, shape-function evaluation and the
scatter/gather helpers between particles and its nodes.

Membership (the set of particle ids inside the cell) is only changed by the
particle itself through ``assign_cell`` / ``remove_cell``.
"""

from __future__ import annotations

import threading
from typing import List, Optional, Sequence, Set, Tuple

import numpy as np

from mpm_core.fem.element import Element, make_element
from mpm_core.node import Node


class Cell:
    def __init__(self, cell_id: int, element: Optional[Element] = None, dim: int = 2) -> None:
        self.id = int(cell_id)
        self.element = element if element is not None else make_element(dim)
        self.dim = self.element.dim
        self.nodes: List[Node] = []
        self.volume: float = 0.0
        self._xe: Optional[np.ndarray] = None
        self._centroid_bmatrix: Optional[np.ndarray] = None
        self._particle_ids: Set[int] = set()
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"Cell(id={self.id}, nnodes={len(self.nodes)}, volume={self.volume:.6g})"

    # ---- construction ---------------------------------------------------

    def add_node(self, local_id: int, node: Node) -> bool:
        """Insert ``node`` at position ``local_id`` of the connectivity."""
        if local_id != len(self.nodes) or len(self.nodes) >= self.element.nnodes:
            return False
        if node.dim != self.dim:
            return False
        self.nodes.append(node)
        return True

    def add_nodes(self, nodes: Sequence[Node]) -> bool:
        return all(self.add_node(i, n) for i, n in enumerate(nodes, start=len(self.nodes)))

    @property
    def nnodes(self) -> int:
        return len(self.nodes)

    def initialise(self) -> bool:
        """Freeze the geometry; True once every node is present and det(J) > 0."""
        if len(self.nodes) != self.element.nnodes:
            return False
        self._xe = np.array([n.coordinates for n in self.nodes], dtype=float)
        self.volume = self.element.compute_volume(self._xe)
        if not self.volume > 0.0:
            return False
        self._centroid_bmatrix = self.element.bmatrix(np.zeros(self.dim), self._xe)
        return True

    @property
    def is_initialised(self) -> bool:
        return self._xe is not None

    def nodal_coordinates(self) -> np.ndarray:
        if self._xe is None:
            return np.array([n.coordinates for n in self.nodes], dtype=float)
        return self._xe

    def centroid(self) -> np.ndarray:
        return self.nodal_coordinates().mean(axis=0)

    # ---- particle membership -------------------------------------------

    def add_particle_id(self, pid: int) -> bool:
        with self._lock:
            self._particle_ids.add(int(pid))
        return True

    def remove_particle_id(self, pid: int) -> None:
        with self._lock:
            self._particle_ids.discard(int(pid))

    @property
    def particle_ids(self) -> Set[int]:
        return set(self._particle_ids)

    def nparticles(self) -> int:
        return len(self._particle_ids)

    # ---- geometry / interpolation --------------------------------------

    def compute_reference_location(self, coordinates) -> Tuple[np.ndarray, bool]:
        """Local coordinates of a physical point; ``(xi, success)``."""
        if len(self.nodes) != self.element.nnodes:
            return np.zeros(self.dim), False
        return self.element.natural_coordinates(coordinates, self.nodal_coordinates())

    def is_point_in_cell(self, coordinates) -> bool:
        return self.compute_reference_location(coordinates)[1]

    def shapefn(self, xi) -> np.ndarray:
        return self.element.shapefn(xi)

    def grad_shapefn(self, xi) -> np.ndarray:
        return self.element.grad_shapefn(xi)

    def bmatrix(self, xi) -> np.ndarray:
        return self.element.bmatrix(xi, self.nodal_coordinates())

    def nodal_velocities(self, phase: int) -> np.ndarray:
        return np.array([n.velocity[phase] for n in self.nodes], dtype=float)

    def nodal_accelerations(self, phase: int) -> np.ndarray:
        return np.array([n.acceleration[phase] for n in self.nodes], dtype=float)

    def interpolate_nodal_velocity(self, shapefn: np.ndarray, phase: int) -> np.ndarray:
        return shapefn @ self.nodal_velocities(phase)

    def interpolate_nodal_acceleration(self, shapefn: np.ndarray, phase: int) -> np.ndarray:
        return shapefn @ self.nodal_accelerations(phase)

    def compute_strain_rate(self, bmatrix: np.ndarray, phase: int) -> np.ndarray:
        """Packed strain rate ``sum_n B_n v_n`` (length 3 in 2-D, 6 in 3-D)."""
        return np.einsum("nij,nj->i", bmatrix, self.nodal_velocities(phase))

    def compute_strain_rate_centroid(self, phase: int) -> np.ndarray:
        if self._centroid_bmatrix is None:
            self._centroid_bmatrix = self.element.bmatrix(np.zeros(self.dim), self.nodal_coordinates())
        return self.compute_strain_rate(self._centroid_bmatrix, phase)

    # ---- scatter ----------------------------------------------------------

    def map_particle_mass_to_nodes(self, shapefn: np.ndarray, phase: int, pmass: float) -> None:
        for N, node in zip(shapefn, self.nodes):
            node.update_mass(phase, N * pmass)

    def map_particle_momentum_to_nodes(self, shapefn: np.ndarray, phase: int, pmomentum: np.ndarray) -> None:
        for N, node in zip(shapefn, self.nodes):
            node.update_momentum(phase, N * pmomentum)

    def compute_nodal_body_force(self, shapefn: np.ndarray, phase: int, pmass: float, gravity: np.ndarray) -> None:
        for N, node in zip(shapefn, self.nodes):
            node.update_external_force(phase, N * pmass * gravity)

    def compute_nodal_internal_force(
        self, bmatrix: np.ndarray, phase: int, pvolume: float, stress_packed: np.ndarray
    ) -> None:
        """Add ``-volume * B_n^T sigma`` to every node."""
        for B, node in zip(bmatrix, self.nodes):
            node.update_internal_force(phase, -pvolume * (B.T @ stress_packed))
