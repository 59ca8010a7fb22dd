"""Finite-element building blocks used by the background grid."""

from .element import Element, Quad4Element, Hex8Element, make_element
from .quadrature import gauss_points_quad, gauss_points_hex
from .mesh import structured_quad_mesh, structured_hex_mesh, structured_mesh, particles_in_box

__all__ = [
    "Element",
    "Quad4Element",
    "Hex8Element",
    "make_element",
    "gauss_points_quad",
    "gauss_points_hex",
    "structured_quad_mesh",
    "structured_hex_mesh",
    "structured_mesh",
    "particles_in_box",
]
