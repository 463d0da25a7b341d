"""Motion heatmap: highlight pixels whose luma changed since the previous frame."""
import numpy as np

from framestag.config import settings
from framestag.errors import InvalidParameterError
from .base import validate_rgba, luma, to_uint8

# Neon green, RGBA in [0, 1]
HIGHLIGHT_COLOR = (0.2, 1.0, 0.4, 0.7)
HIGHLIGHT_MIX = 0.5


def validate_threshold(threshold: float) -> None:
    if isinstance(threshold, bool) or not isinstance(threshold, (int, float, np.floating)):
        raise InvalidParameterError(f"Motion threshold must be a number, got {threshold!r}")
    if not 0.0 <= threshold <= 1.0:
        raise InvalidParameterError(f"Motion threshold must be in [0, 1], got {threshold}")


def motion_mask(current: np.ndarray, previous: np.ndarray, threshold: float) -> np.ndarray:
    """Boolean (H, W) mask of pixels whose normalized luma differs by more than ``threshold``."""
    diff = np.abs(luma(current) - luma(previous)) / 255.0
    return diff > threshold


def motion_heatmap(
    current: np.ndarray,
    previous: np.ndarray,
    threshold: float | None = None,
) -> np.ndarray:
    """Blend moving pixels 50/50 with the highlight color.

    ``current`` is the image as it stands in the pipeline (possibly already
    filtered), ``previous`` the raw frame of the previous tick.

    Args:
        current: RGBA uint8 array (H, W, 4)
        previous: RGBA uint8 array of the same shape
        threshold: Normalized luma difference, defaults to ``settings.MOTION_THRESHOLD``

    Returns:
        RGBA uint8 array (H, W, 4)
    """
    validate_rgba(current, "motion_heatmap")
    validate_rgba(previous, "motion_heatmap")
    if current.shape != previous.shape:
        raise ValueError(f"Frame shapes don't match: {current.shape} vs {previous.shape}")
    if threshold is None:
        threshold = settings.MOTION_THRESHOLD
    validate_threshold(threshold)

    mask = motion_mask(current, previous, threshold)
    highlight = np.asarray(HIGHLIGHT_COLOR, dtype=np.float64) * 255.0
    blended = to_uint8(current.astype(np.float64) * (1.0 - HIGHLIGHT_MIX) + highlight * HIGHLIGHT_MIX)

    result = current.copy()
    result[mask] = blended[mask]
    return result
