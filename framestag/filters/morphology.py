"""Morphological erosion and dilation on a square window.

The window side is ``2 * radius + 1``. Neighbours outside the image are
ignored: erosion starts its running minimum at 255 and dilation starts
its running maximum at 0, so missing neighbours can never change the
result.

Usage:
    from framestag.filters.morphology import erode, dilate

    result = erode(image, radius=2)
    result = dilate(image, radius=1)
"""
from enum import Enum

import numpy as np
from scipy.ndimage import maximum_filter, minimum_filter

from framestag.config import settings
from framestag.errors import InvalidParameterError
from .base import validate_rgba


class MorphologyOp(Enum):
    """Morphological operation."""
    EROSION = 'EROSION'
    DILATION = 'DILATION'


def validate_radius(radius: int) -> None:
    if isinstance(radius, bool) or not isinstance(radius, (int, np.integer)):
        raise InvalidParameterError(f"Morphology radius must be an integer, got {radius!r}")
    if not 1 <= radius <= settings.MAX_MORPH_RADIUS:
        raise InvalidParameterError(
            f"Morphology radius must be in [1, {settings.MAX_MORPH_RADIUS}], got {radius}"
        )


def morphology(image: np.ndarray, op: MorphologyOp | str, radius: int = 1) -> np.ndarray:
    """Apply erosion or dilation to the RGB channels (u8).

    Args:
        image: RGBA uint8 array (H, W, 4)
        op: Operation, enum member or its name
        radius: Window radius

    Returns:
        RGBA uint8 array (H, W, 4) with alpha forced to 255
    """
    validate_rgba(image, "morphology")
    validate_radius(radius)
    op = MorphologyOp(op.upper()) if isinstance(op, str) else op

    size = 2 * radius + 1
    result = np.empty_like(image)
    for ch in range(3):
        if op is MorphologyOp.EROSION:
            result[:, :, ch] = minimum_filter(image[:, :, ch], size=size, mode='constant', cval=255)
        else:
            result[:, :, ch] = maximum_filter(image[:, :, ch], size=size, mode='constant', cval=0)
    result[:, :, 3] = 255
    return result


def erode(image: np.ndarray, radius: int = 1) -> np.ndarray:
    """Erode image - per-channel minimum over the window."""
    return morphology(image, MorphologyOp.EROSION, radius)


def dilate(image: np.ndarray, radius: int = 1) -> np.ndarray:
    """Dilate image - per-channel maximum over the window."""
    return morphology(image, MorphologyOp.DILATION, radius)
