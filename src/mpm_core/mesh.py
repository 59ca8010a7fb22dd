"""Mesh: arena that owns nodes, cells and particles.

The mesh is the only owner of grid objects; particles refer to cells by weak
reference and cells refer to particles by id. Per-particle passes can fan out
over a thread pool; scatters into shared nodes are serialised by the node
locks, so the pass result does not depend on the worker count beyond
floating-point rounding.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

import numpy as np
from scipy.spatial import cKDTree

from mpm_core.cell import Cell
from mpm_core.constitutive import Material
from mpm_core.fem.element import make_element
from mpm_core.fem.mesh import structured_mesh
from mpm_core.material_factory import MaterialRegistry
from mpm_core.node import Node, check_dim_phases
from mpm_core.particle import Particle

log = logging.getLogger(__name__)

T = TypeVar("T")


class Mesh:
    def __init__(self, mesh_id: int = 0, dim: int = 2, nphases: int = 1, workers: int = 1) -> None:
        self.dim, self.nphases = check_dim_phases(dim, nphases)
        self.id = int(mesh_id)
        self.workers = max(1, int(workers))
        self.element = make_element(self.dim)
        self.nodes: Dict[int, Node] = {}
        self.cells: Dict[int, Cell] = {}
        self.particles: Dict[int, Particle] = {}
        self.materials = MaterialRegistry()
        self._tree: Optional[cKDTree] = None
        self._tree_ids: List[int] = []

    def __repr__(self) -> str:
        return (
            f"Mesh(dim={self.dim}, nodes={len(self.nodes)}, cells={len(self.cells)}, "
            f"particles={len(self.particles)})"
        )

    # ------------------------------------------------------------------
    # construction
    # ------------------------------------------------------------------

    @classmethod
    def structured(
        cls,
        lengths: Sequence[float],
        ncells: Sequence[int],
        origin: Optional[Sequence[float]] = None,
        nphases: int = 1,
        workers: int = 1,
    ) -> "Mesh":
        nodes, elems = structured_mesh(lengths, ncells, origin)
        mesh = cls(dim=len(lengths), nphases=nphases, workers=workers)
        mesh.create_nodes(nodes)
        mesh.create_cells(elems)
        return mesh

    def add_node(self, node: Node) -> bool:
        if node.id in self.nodes or node.dim != self.dim:
            return False
        self.nodes[node.id] = node
        return True

    def create_nodes(self, coordinates: np.ndarray, start_id: int = 0) -> None:
        for i, x in enumerate(np.asarray(coordinates, dtype=float), start=start_id):
            if not self.add_node(Node(i, x, dim=self.dim, nphases=self.nphases)):
                raise ValueError(f"duplicate node id {i}")

    def add_cell(self, cell: Cell) -> bool:
        if cell.id in self.cells or cell.dim != self.dim:
            return False
        if not cell.is_initialised and not cell.initialise():
            return False
        self.cells[cell.id] = cell
        self._tree = None
        return True

    def create_cells(self, connectivity: np.ndarray, start_id: int = 0) -> None:
        for i, conn in enumerate(np.asarray(connectivity, dtype=int), start=start_id):
            cell = Cell(i, self.element)
            try:
                nodes = [self.nodes[int(n)] for n in conn]
            except KeyError as exc:
                raise ValueError(f"cell {i}: unknown node {exc.args[0]}") from exc
            if not cell.add_nodes(nodes) or not self.add_cell(cell):
                raise ValueError(f"cell {i}: invalid connectivity {list(conn)} (check node ordering)")

    def add_particle(self, particle: Particle) -> bool:
        if particle.id in self.particles or particle.dim != self.dim or particle.nphases != self.nphases:
            return False
        self.particles[particle.id] = particle
        return True

    def create_particles(
        self, coordinates: np.ndarray, material: Optional[Material] = None, start_id: Optional[int] = None
    ) -> List[Particle]:
        if start_id is None:
            start_id = (max(self.particles) + 1) if self.particles else 0
        created = []
        for i, x in enumerate(np.asarray(coordinates, dtype=float), start=start_id):
            p = Particle(i, x, dim=self.dim, nphases=self.nphases)
            if material is not None and not p.assign_material(material):
                raise ValueError(f"material #{material.id} is invalid: {material.error}")
            if not self.add_particle(p):
                raise ValueError(f"duplicate particle id {i}")
            created.append(p)
        return created

    def assign_velocity_constraints(self, constraints: Iterable[Tuple[int, int, float]], phase: int = 0) -> bool:
        """``constraints``: iterable of ``(node_id, direction, velocity)``."""
        status = True
        for node_id, direction, value in constraints:
            node = self.nodes.get(int(node_id))
            if node is None or not node.assign_velocity_constraint(direction, value, phase):
                log.warning("velocity constraint on node %s direction %s rejected", node_id, direction)
                status = False
        return status

    # ------------------------------------------------------------------
    # iteration
    # ------------------------------------------------------------------

    def _map(self, fn: Callable[..., T], items: List) -> List[T]:
        if self.workers > 1 and len(items) > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                return list(pool.map(fn, items))
        return [fn(item) for item in items]

    def iterate_over_particles(self, fn: Callable[[Particle], T], active_only: bool = True) -> List[T]:
        """Apply ``fn`` to every (active) particle; returns the results in id order."""
        items = [p for p in self.particles.values() if p.status or not active_only]
        return self._map(fn, items)

    def iterate_over_nodes(self, fn: Callable[[Node], T]) -> List[T]:
        return [fn(n) for n in self.nodes.values()]

    def iterate_over_cells(self, fn: Callable[[Cell], T]) -> List[T]:
        return [fn(c) for c in self.cells.values()]

    # ------------------------------------------------------------------
    # particle location
    # ------------------------------------------------------------------

    def _cell_tree(self) -> cKDTree:
        if self._tree is None:
            self._tree_ids = list(self.cells.keys())
            centroids = np.array([self.cells[c].centroid() for c in self._tree_ids], dtype=float)
            self._tree = cKDTree(centroids)
        return self._tree

    def candidate_cells(self, point: np.ndarray) -> List[Cell]:
        """Cells nearest to ``point`` by centroid distance (closest first)."""
        if not self.cells:
            return []
        k = min(len(self.cells), 3 ** self.dim)
        _d, idx = self._cell_tree().query(np.asarray(point, dtype=float), k=k)
        idx = np.atleast_1d(idx)
        return [self.cells[self._tree_ids[int(i)]] for i in idx if int(i) < len(self._tree_ids)]

    def find_cell(self, point: np.ndarray) -> Optional[Cell]:
        for cell in self.candidate_cells(point):
            if cell.is_point_in_cell(point):
                return cell
        for cell in self.cells.values():
            lo = cell.nodal_coordinates().min(axis=0)
            hi = cell.nodal_coordinates().max(axis=0)
            if np.all(point >= lo) and np.all(point <= hi) and cell.is_point_in_cell(point):
                return cell
        return None

    def _locate(self, particle: Particle) -> bool:
        if particle.cell is not None and particle.compute_reference_location():
            return True
        cell = self.find_cell(particle.coordinates)
        if cell is None:
            particle.remove_cell()
            return False
        return particle.assign_cell(cell)

    def locate_particles(self) -> List[Particle]:
        """Attach every active particle to the cell containing it.

        Returns the particles that could not be located; they are left
        without a cell.
        """
        items = [p for p in self.particles.values() if p.status]
        found = [self._locate(p) for p in items]
        lost = [p for p, ok in zip(items, found) if not ok]
        for p in lost:
            log.warning("particle #%d at %s is outside the mesh", p.id, p.coordinates.tolist())
        return lost

    # ------------------------------------------------------------------
    # totals
    # ------------------------------------------------------------------

    def nodal_mass(self, phase: int = 0) -> float:
        return float(sum(n.mass[phase] for n in self.nodes.values()))

    def particle_mass(self, phase: int = 0) -> float:
        return float(sum(p.mass(phase) for p in self.particles.values() if p.status))
