# FrameStag Filters - Shared Helpers
"""
Array validation and luma helpers shared by the CPU filter library.

Every filter works on RGBA uint8 arrays of shape (H, W, 4) in top-left
row order, which is the layout of :class:`framestag.frame.Frame`.
"""
import numpy as np

# Rec. 601 luma weights
LUMA_WEIGHTS = (0.299, 0.587, 0.114)


def validate_rgba(image: np.ndarray, name: str = "image") -> None:
    """Validate RGBA uint8 shape and dtype.

    Raises:
        ValueError: If the array is not (H, W, 4) uint8
    """
    if not isinstance(image, np.ndarray):
        raise ValueError(f"{name}: expected numpy array, got {type(image).__name__}")
    if image.ndim != 3 or image.shape[2] != 4:
        raise ValueError(f"{name}: expected RGBA image (H, W, 4), got shape {image.shape}")
    if image.dtype != np.uint8:
        raise ValueError(f"{name}: expected uint8 dtype, got {image.dtype}")


def luma(image: np.ndarray) -> np.ndarray:
    """Compute the float64 luma (0-255 scale) of an RGBA or RGB array.

    Args:
        image: uint8 array (H, W, 3|4)

    Returns:
        float64 array (H, W)
    """
    r = image[:, :, 0].astype(np.float64)
    g = image[:, :, 1].astype(np.float64)
    b = image[:, :, 2].astype(np.float64)
    return LUMA_WEIGHTS[0] * r + LUMA_WEIGHTS[1] * g + LUMA_WEIGHTS[2] * b


def to_uint8(values: np.ndarray) -> np.ndarray:
    """Clamp to [0, 255] and round to the nearest integer."""
    return np.rint(np.clip(values, 0.0, 255.0)).astype(np.uint8)


def gray_to_rgba(gray: np.ndarray) -> np.ndarray:
    """Replicate a (H, W) uint8 plane into RGB with opaque alpha."""
    h, w = gray.shape
    result = np.empty((h, w, 4), dtype=np.uint8)
    result[:, :, 0] = gray
    result[:, :, 1] = gray
    result[:, :, 2] = gray
    result[:, :, 3] = 255
    return result


def luma_milli(image: np.ndarray) -> np.ndarray:
    """Luma in integer thousandths: ``299*R + 587*G + 114*B``.

    Integer arithmetic makes ``floor(luma)`` and ``round(luma)`` exact,
    which float evaluation of the weights does not guarantee at integer
    boundaries (gray 128 would otherwise land on 127.99999999999999).
    """
    r = image[:, :, 0].astype(np.int64)
    g = image[:, :, 1].astype(np.int64)
    b = image[:, :, 2].astype(np.int64)
    return 299 * r + 587 * g + 114 * b
