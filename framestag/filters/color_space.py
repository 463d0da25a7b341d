"""Color-space decomposition into a single displayable channel.

## Channels

| Channel | Output |
|---------|--------|
| RGB | Unchanged copy of the input |
| GRAYSCALE | Rec. 601 luma |
| HSV_HUE | Hue, 0-1 mapped to 0-255 |
| HSV_SAT | Saturation, 0-1 mapped to 0-255 |
| HSV_VAL | Value, 0-1 mapped to 0-255 |

The single-channel results are replicated into R, G and B with alpha 255.
"""
from enum import Enum

import numpy as np

from framestag.errors import InvalidParameterError
from .base import validate_rgba, luma, to_uint8, gray_to_rgba


class ColorChannel(Enum):
    """Channel extracted by the color-space decomposition."""
    RGB = 'RGB'
    GRAYSCALE = 'GRAYSCALE'
    HSV_HUE = 'HSV_HUE'
    HSV_SAT = 'HSV_SAT'
    HSV_VAL = 'HSV_VAL'


def rgb_to_hsv(image: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Convert RGB(A) uint8 to normalized HSV planes.

    Hue uses the max-component six-sector formula; when red is the maximum
    and green < blue the sector wraps by adding 6. Ties prefer red, then green.

    Returns:
        Tuple of float64 (H, W) arrays (hue, saturation, value), each in [0, 1]
    """
    rgb = image[:, :, :3].astype(np.float64) / 255.0
    r, g, b = rgb[:, :, 0], rgb[:, :, 1], rgb[:, :, 2]
    vmax = rgb.max(axis=2)
    vmin = rgb.min(axis=2)
    delta = vmax - vmin

    saturation = np.where(vmax == 0, 0.0, delta / np.where(vmax == 0, 1.0, vmax))

    safe_delta = np.where(delta == 0, 1.0, delta)
    hue_r = (g - b) / safe_delta + np.where(g < b, 6.0, 0.0)
    hue_g = (b - r) / safe_delta + 2.0
    hue_b = (r - g) / safe_delta + 4.0
    hue = np.select([vmax == r, vmax == g], [hue_r, hue_g], default=hue_b) / 6.0
    hue = np.where(delta == 0, 0.0, hue)

    return hue, saturation, vmax


def decompose_color_space(image: np.ndarray, channel: ColorChannel | str = ColorChannel.GRAYSCALE) -> np.ndarray:
    """Extract one color-space component as a gray RGBA image.

    Args:
        image: RGBA uint8 array (H, W, 4)
        channel: Component to extract

    Returns:
        RGBA uint8 array (H, W, 4)
    """
    validate_rgba(image, "decompose_color_space")
    try:
        channel = ColorChannel(channel.upper()) if isinstance(channel, str) else ColorChannel(channel)
    except ValueError:
        raise InvalidParameterError(f"Unknown color channel: {channel!r}") from None

    if channel is ColorChannel.RGB:
        return image.copy()
    if channel is ColorChannel.GRAYSCALE:
        return gray_to_rgba(to_uint8(luma(image)))

    hue, saturation, value = rgb_to_hsv(image)
    component = {
        ColorChannel.HSV_HUE: hue,
        ColorChannel.HSV_SAT: saturation,
        ColorChannel.HSV_VAL: value,
    }[channel]
    return gray_to_rgba(to_uint8(component * 255.0))
