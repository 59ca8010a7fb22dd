"""Run-time info printing utilities."""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

import numba

from mpm_core.constitutive import Bingham, LinearElastic
from mpm_core.material_factory import MaterialRegistry
from mpm_core.mesh import Mesh


def _fmt_pa(x: float) -> str:
    x = float(x)
    if abs(x) >= 1e9:
        return f"{x/1e9:.3g} GPa"
    if abs(x) >= 1e6:
        return f"{x/1e6:.3g} MPa"
    if abs(x) >= 1e3:
        return f"{x/1e3:.3g} kPa"
    return f"{x:.3g} Pa"


def print_run_header(tag: str) -> None:
    # Use a stable timezone so logs are comparable across machines.
    ts = datetime.now(ZoneInfo("Europe/Berlin")).strftime("%Y-%m-%d %H:%M:%S %Z")
    print(f"\n[run] {tag}  start={ts}")
    print(f"[numba] version={numba.__version__}")


def print_mesh_summary(mesh: Mesh) -> None:
    active = sum(1 for p in mesh.particles.values() if p.status)
    print(
        f"[mesh] dim={mesh.dim}  nodes={len(mesh.nodes)}  cells={len(mesh.cells)}"
        f"  particles={active}  phases={mesh.nphases}  workers={mesh.workers}"
    )


def print_material_summary(materials: MaterialRegistry) -> None:
    if len(materials) == 0:
        print("[material] (none)")
        return
    for mat in materials:
        E = mat.parameter("youngs_modulus")
        nu = mat.parameter("poisson_ratio")
        rho = mat.density
        if isinstance(mat, Bingham):
            print(f"[material] #{mat.id} (bingham) E={_fmt_pa(E)}  nu={nu:.3g}  rho={rho:.4g} kg/m3")
            print(
                f"[material] tau0={_fmt_pa(mat.parameter('tau0'))}  mu={mat.parameter('mu'):.3g} Pa.s"
                f"  critical_shear_rate={mat.parameter('critical_shear_rate'):.3g} 1/s"
            )
        elif isinstance(mat, LinearElastic):
            print(f"[material] #{mat.id} (elastic) E={_fmt_pa(E)}  nu={nu:.3g}  rho={rho:.4g} kg/m3")
        else:
            print(f"[material] #{mat.id} (unknown type '{mat.type_name}')")
