"""Command-line runner for explicit MPM simulations.

Usage:
  mpm-run run.yaml
  mpm-run run.yaml --nsteps 200 --scheme usl --vtk-dir out/ --vtk-every 20
  mpm-run run.yaml --dry-run
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np

from mpm_core.config import RunConfig
from mpm_core.io.particle_record import particles_to_records
from mpm_core.output.vtk_export import write_mesh_vtk, write_particles_vtk, write_pvd
from mpm_core.solver import MPMExplicit, build_mesh
from mpm_core.utils.run_info import print_material_summary, print_mesh_summary, print_run_header


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Explicit material point method runner")
    ap.add_argument("config", type=str, help="Run configuration (.yaml / .yml / .json)")
    ap.add_argument("--nsteps", type=int, help="Override number of steps")
    ap.add_argument("--dt", type=float, help="Override time step")
    ap.add_argument("--scheme", type=str, choices=["usf", "usl"], help="Override stress update scheme")
    ap.add_argument("--workers", type=int, help="Threads for per-particle passes")
    ap.add_argument("--vtk-dir", type=str, help="Write VTK snapshots to this directory")
    ap.add_argument("--vtk-every", type=int, help="Snapshot interval in steps (0 = final only)")
    ap.add_argument("--checkpoint", type=str, help="Save final particle records (.npy)")
    ap.add_argument("--dry-run", action="store_true", help="Print configuration without running solver")
    ap.add_argument("-v", "--verbose", action="count", default=0, help="-v info, -vv debug")
    return ap


def _apply_overrides(cfg: RunConfig, args: argparse.Namespace) -> None:
    if args.nsteps is not None:
        cfg.solver.nsteps = args.nsteps
    if args.dt is not None:
        cfg.solver.dt = args.dt
    if args.scheme is not None:
        cfg.solver.scheme = args.scheme
    if args.workers is not None:
        cfg.solver.workers = args.workers
    if args.vtk_dir is not None:
        cfg.output.vtk_dir = args.vtk_dir
    if args.vtk_every is not None:
        cfg.output.every = args.vtk_every


def run(cfg: RunConfig, checkpoint: Optional[str] = None) -> MPMExplicit:
    print_run_header(cfg.name)
    mesh = build_mesh(cfg)
    print_mesh_summary(mesh)
    print_material_summary(mesh.materials)

    solver = MPMExplicit(mesh, cfg.solver)
    snapshots: List[Tuple[float, str]] = []
    out_dir = Path(cfg.output.vtk_dir) if cfg.output.vtk_dir else None
    if out_dir is not None:
        out_dir.mkdir(parents=True, exist_ok=True)

    def _snapshot(s: MPMExplicit) -> None:
        name = f"particles_{s.step_count:06d}.vtk"
        write_particles_vtk(str(out_dir / name), s.mesh.particles.values())
        snapshots.append((s.time, name))

    def _callback(s: MPMExplicit, _diag) -> None:
        every = cfg.output.every
        if out_dir is not None and every > 0 and s.step_count % every == 0:
            _snapshot(s)

    solver.solve(callback=_callback)

    if out_dir is not None:
        if not snapshots or snapshots[-1][1] != f"particles_{solver.step_count:06d}.vtk":
            _snapshot(solver)
        write_mesh_vtk(str(out_dir / "mesh.vtk"), mesh)
        write_pvd(str(out_dir), snapshots)

    if checkpoint:
        np.save(checkpoint, particles_to_records(mesh.particles.values()))
        print(f"[run] checkpoint written: {checkpoint}")

    if solver.history:
        print(f"[run] done  {solver.history[-1].summary()}")
    else:
        print("[run] done  (no steps)")
    return solver


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    level = logging.WARNING if args.verbose == 0 else (logging.INFO if args.verbose == 1 else logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    cfg = RunConfig.load(args.config)
    _apply_overrides(cfg, args)
    try:
        cfg.validate()
    except ValueError as exc:
        print(f"Error: {exc}")
        return 2

    if args.dry_run:
        print(cfg.to_dict())
        return 0

    try:
        run(cfg, args.checkpoint)
    except RuntimeError as exc:
        print(f"[run] aborted: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
