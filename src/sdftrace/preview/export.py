"""Image export utilities for rendered images.

Converts the renderer's linear float output to 8-bit images. Channels are
scaled by 255 and clamped to [0, 255]; exported PNGs carry an opaque alpha
channel.

Example:
    >>> from src.sdftrace.core.render import RenderConfig, render
    >>> from src.sdftrace.preview.export import save_png
    >>>
    >>> result = render(RenderConfig(width=320, height=240, seed=3))
    >>> save_png(result, "spheres.png")
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

if TYPE_CHECKING:
    from src.sdftrace.core.render import RenderResult


def image_to_uint8(image: npt.NDArray[np.floating]) -> npt.NDArray[np.uint8]:
    """Convert a linear float image to uint8.

    Non-finite values are treated as 0 before clamping.

    Args:
        image: Image array of shape (H, W, 3) with nominal range [0, 1].

    Returns:
        8-bit image array of the same shape.
    """
    scaled = np.nan_to_num(image.astype(np.float64) * 255.0, nan=0.0, posinf=255.0, neginf=0.0)
    return np.clip(scaled, 0.0, 255.0).astype(np.uint8)


def to_rgba(image: npt.NDArray[np.uint8]) -> npt.NDArray[np.uint8]:
    """Append an opaque alpha channel to an (H, W, 3) uint8 image."""
    alpha = np.full(image.shape[:2] + (1,), 255, dtype=np.uint8)
    return np.concatenate([image, alpha], axis=2)


def save_png_from_array(image: npt.NDArray[np.floating], filepath: str | Path) -> None:
    """Save a (H, W, 3) linear float image as an RGBA PNG file."""
    rgba = to_rgba(image_to_uint8(image))
    PILImage.fromarray(rgba).save(str(filepath))


def save_png(result: RenderResult, filepath: str | Path) -> None:
    """Save a render result as an RGBA PNG file.

    Args:
        result: The finished render.
        filepath: Output file path (should end in .png).
    """
    save_png_from_array(result.as_image(), filepath)
