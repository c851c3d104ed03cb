"""Camera module for primary ray generation.

Components:
    pinhole: Pinhole camera with look-at positioning

Pixel coordinates run left to right and top to bottom; they are mapped to
square-pixel device coordinates and combined with the camera basis to give
world-space ray directions scaled to the maximum ray distance.
"""

from .pinhole import (
    CameraConfig,
    camera_ray_direction,
    get_camera_info,
    get_primary_ray,
    setup_camera,
)

__all__ = [
    "CameraConfig",
    "setup_camera",
    "camera_ray_direction",
    "get_primary_ray",
    "get_camera_info",
]
