# FrameStag Filters Module
"""
CPU reference implementations of the pipeline transforms.

The GPU engine runs the same formulas as shaders; these functions define
the expected numeric result and back the CPU engine.
"""

from .base import (
    LUMA_WEIGHTS,
    validate_rgba,
    luma,
    luma_milli,
    to_uint8,
    gray_to_rgba,
)
from .convolution import convolve
from .morphology import MorphologyOp, morphology, erode, dilate
from .bitplane import slice_bit_plane
from .color_space import ColorChannel, rgb_to_hsv, decompose_color_space
from .motion import HIGHLIGHT_COLOR, motion_mask, motion_heatmap
from .analyzers import (
    HISTOGRAM_BINS,
    HistogramData,
    ProbeResult,
    compute_histogram,
    probe,
)

__all__ = [
    # Helpers
    'LUMA_WEIGHTS',
    'validate_rgba',
    'luma',
    'luma_milli',
    'to_uint8',
    'gray_to_rgba',
    # Transforms
    'convolve',
    'MorphologyOp',
    'morphology',
    'erode',
    'dilate',
    'slice_bit_plane',
    'ColorChannel',
    'rgb_to_hsv',
    'decompose_color_space',
    'HIGHLIGHT_COLOR',
    'motion_mask',
    'motion_heatmap',
    # Analyzers
    'HISTOGRAM_BINS',
    'HistogramData',
    'ProbeResult',
    'compute_histogram',
    'probe',
]
