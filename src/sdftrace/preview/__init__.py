"""Preview module for render output.

Components:
    export: 8-bit conversion and PNG export of render results

Example:
    >>> from src.sdftrace.preview import save_png
    >>> save_png(result, "output.png")
"""

from src.sdftrace.preview.export import (
    image_to_uint8,
    save_png,
    save_png_from_array,
    to_rgba,
)

__all__ = [
    "save_png",
    "save_png_from_array",
    "image_to_uint8",
    "to_rgba",
]
