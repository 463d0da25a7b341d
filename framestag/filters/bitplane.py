"""Bit-plane slicing of quantized luma."""
import numpy as np

from framestag.errors import InvalidParameterError
from .base import validate_rgba, luma_milli, gray_to_rgba


def validate_bit(bit: int) -> None:
    if isinstance(bit, bool) or not isinstance(bit, (int, np.integer)) or not 1 <= bit <= 8:
        raise InvalidParameterError(f"Bit plane must be an integer in [1, 8], got {bit!r}")


def slice_bit_plane(image: np.ndarray, bit: int = 8) -> np.ndarray:
    """Show the pixels where bit ``bit - 1`` of ``floor(luma)`` is set.

    Args:
        image: RGBA uint8 array (H, W, 4)
        bit: Bit plane, 1 (least significant) to 8 (most significant)

    Returns:
        RGBA uint8 array, white where the bit is set, black elsewhere, opaque
    """
    validate_rgba(image, "slice_bit_plane")
    validate_bit(bit)

    quantized = luma_milli(image) // 1000
    mask = (quantized & (1 << (bit - 1))) != 0
    return gray_to_rgba(np.where(mask, 255, 0).astype(np.uint8))
