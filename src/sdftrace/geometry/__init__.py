"""Geometry module: signed distance primitives and combinators.

Components:
    sdf: Sphere, plane and Mandelbulb distance functions, union /
        difference / intersection combinators, and domain wrapping

All functions are Taichi functions (@ti.func) evaluated inside kernels.
Distances follow the usual convention: negative inside, zero on the
surface, positive outside, never overestimating the true distance.
"""

from .sdf import (
    mandelbulb,
    sdf_difference,
    sdf_intersection,
    sdf_plane,
    sdf_sphere,
    sdf_union,
    wrap_coordinate,
)

__all__ = [
    "sdf_union",
    "sdf_difference",
    "sdf_intersection",
    "sdf_sphere",
    "sdf_plane",
    "mandelbulb",
    "wrap_coordinate",
]
