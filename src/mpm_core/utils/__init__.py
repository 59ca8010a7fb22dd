"""Utility helpers for runners."""

from .run_info import print_run_header, print_material_summary, print_mesh_summary

__all__ = [
    "print_run_header",
    "print_material_summary",
    "print_mesh_summary",
]
