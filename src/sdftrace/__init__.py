"""Taichi-based signed-distance-field path tracer.

This package renders scenes described implicitly by signed distance fields,
combining sphere tracing with Monte Carlo path tracing:
- Sphere tracing against analytic and fractal distance fields
- Finite-difference surface normals
- Cosine-weighted diffuse bounces under a constant ambient sky
- Stratified, jittered anti-aliasing with deterministic per-pixel randomness

Subpackages:
    core: Vector utilities, random streams, marcher, integrator, render driver
    geometry: Distance-field primitives and combinators
    scene: Scene compositions and scene selection
    camera: Camera setup and primary ray generation
    preview: Image export utilities
"""

__version__ = "0.1.0"
