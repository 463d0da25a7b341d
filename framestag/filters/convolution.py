"""Kernel convolution.

Out-of-range taps do not contribute to the weighted sum, which is the
same as reading zero outside the image. The tap at matrix position
``(cy, cx)`` samples the source at ``(y + cy - side // 2, x + cx - side // 2)``.

Usage:
    from framestag.filters.convolution import convolve
    from framestag.kernels import KERNELS

    result = convolve(rgba_image, KERNELS['gaussian_blur_3'])
"""
import numpy as np
from scipy.ndimage import correlate

from framestag.kernels import Kernel
from .base import validate_rgba, to_uint8


def convolve(image: np.ndarray, kernel: Kernel) -> np.ndarray:
    """Convolve the RGB channels of an image with a kernel (u8).

    Args:
        image: RGBA uint8 array (H, W, 4)
        kernel: Square kernel with factor and bias

    Returns:
        RGBA uint8 array (H, W, 4) with alpha forced to 255

    Raises:
        InvalidParameterError: If the kernel is malformed
    """
    validate_rgba(image, "convolve")
    kernel.validate()

    weights = np.asarray(kernel.matrix, dtype=np.float64).reshape(kernel.height, kernel.width)
    h, w = image.shape[:2]
    result = np.empty((h, w, 4), dtype=np.uint8)

    for ch in range(3):
        channel = image[:, :, ch].astype(np.float64)
        summed = correlate(channel, weights, mode='constant', cval=0.0)
        result[:, :, ch] = to_uint8(summed * kernel.factor + kernel.bias)

    result[:, :, 3] = 255
    return result
