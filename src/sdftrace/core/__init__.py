"""Core rendering module.

This module contains the building blocks of the renderer:

Components:
    ray: Ray data structure, vector utilities and orthonormal bases
    rng: Per-pixel PCG random streams
    sampling: Cosine-weighted hemisphere sampling
    marcher: Sphere tracing and normal estimation
    integrator: Path tracing, per-pixel sampling and the pixel kernel
    render: Render configuration, output buffer and dispatch

All compute-intensive operations are Taichi functions and kernels.
"""

from .marcher import (
    HitRecord,
    estimate_normal,
    march,
    set_march_tolerances,
)
from .ray import (
    Ray,
    build_onb_from_normal,
    cross,
    dot,
    length,
    local_to_world,
    make_ray,
    near_zero,
    normalize,
    smallest_axis,
    vec3,
)
from .rng import next_float, next_signed, next_u32, pcg_hash, seed_stream
from .sampling import random_in_unit_disk, sample_cosine_hemisphere

# Note: integrator and render are NOT imported here to avoid circular imports
# (the camera depends on core.ray). Import them directly:
#   from src.sdftrace.core.render import RenderConfig, render

__all__ = [
    "Ray",
    "make_ray",
    "vec3",
    "length",
    "normalize",
    "dot",
    "cross",
    "near_zero",
    "smallest_axis",
    "build_onb_from_normal",
    "local_to_world",
    "pcg_hash",
    "seed_stream",
    "next_u32",
    "next_float",
    "next_signed",
    "random_in_unit_disk",
    "sample_cosine_hemisphere",
    "HitRecord",
    "march",
    "estimate_normal",
    "set_march_tolerances",
]
