"""Numba-compiled kernels for the grid interpolation hot paths."""

from .kernels_shapefn import (
    q4_shape_numba,
    hex8_shape_numba,
    shape_numba,
    inverse_map_numba,
)

__all__ = [
    "q4_shape_numba",
    "hex8_shape_numba",
    "shape_numba",
    "inverse_map_numba",
]
