# FrameStag Filters - Analyzers
"""
Histogram and neighborhood probe over rendered frames.

Analyzers never modify the image; they read a readback array and return
plain data for the caller to display.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

from framestag.errors import InvalidParameterError
from .base import validate_rgba, luma_milli

HISTOGRAM_BINS = 256
HISTOGRAM_CHANNELS = ('red', 'green', 'blue', 'luma')


@dataclass
class HistogramData:
    """Per-channel 256-bin histograms.

    :param red: Counts of the red channel values
    :param green: Counts of the green channel values
    :param blue: Counts of the blue channel values
    :param luma: Counts of the rounded luma values
    :param max: Largest bin across all four channels, for normalization
    """
    red: np.ndarray
    green: np.ndarray
    blue: np.ndarray
    luma: np.ndarray
    max: int

    def channel(self, name: str) -> np.ndarray:
        if name not in HISTOGRAM_CHANNELS:
            raise KeyError(f"Unknown histogram channel: {name!r}")
        return getattr(self, name)

    def normalized(self, name: str) -> np.ndarray:
        """Channel counts scaled to [0, 1] by the shared maximum."""
        counts = self.channel(name).astype(np.float64)
        if self.max == 0:
            return np.zeros_like(counts)
        return counts / self.max

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {name: self.channel(name).tolist() for name in HISTOGRAM_CHANNELS}
        result['max'] = self.max
        return result


def compute_histogram(image: np.ndarray) -> HistogramData:
    """Count R, G, B and luma values.

    Luma is rounded half up, so 127.5 falls into bin 128.

    Args:
        image: RGBA uint8 array (H, W, 4)

    Returns:
        HistogramData with uint32 counters
    """
    validate_rgba(image, "compute_histogram")

    def _count(values: np.ndarray) -> np.ndarray:
        return np.bincount(values.ravel(), minlength=HISTOGRAM_BINS).astype(np.uint32)

    red = _count(image[:, :, 0])
    green = _count(image[:, :, 1])
    blue = _count(image[:, :, 2])
    luma_values = (luma_milli(image) + 500) // 1000
    luma_hist = _count(np.clip(luma_values, 0, HISTOGRAM_BINS - 1))

    peak = int(max(red.max(), green.max(), blue.max(), luma_hist.max()))
    return HistogramData(red=red, green=green, blue=blue, luma=luma_hist, max=peak)


@dataclass
class ProbeResult:
    """A square neighborhood of pixels around a probe position.

    :param x: Probe column in image coordinates
    :param y: Probe row in image coordinates
    :param cells: uint8 array (size, size, 4); cells outside the image are zero
    """
    x: int
    y: int
    cells: np.ndarray

    @property
    def size(self) -> int:
        return self.cells.shape[0]

    @property
    def center(self) -> tuple[int, int, int, int]:
        """Pixel at the probe position."""
        half = self.size // 2
        return self.pixel(half, half)

    def pixel(self, row: int, col: int) -> tuple[int, int, int, int]:
        r, g, b, a = self.cells[row, col]
        return int(r), int(g), int(b), int(a)

    def rows(self) -> list[list[tuple[int, int, int, int]]]:
        return [[self.pixel(row, col) for col in range(self.size)] for row in range(self.size)]


def probe(image: np.ndarray, x: int, y: int, size: int = 10) -> ProbeResult:
    """Extract a ``size x size`` neighborhood centered at (x, y).

    Cell ``(i, j)`` holds the pixel at ``(x + j - size // 2, y + i - size // 2)``,
    or ``(0, 0, 0, 0)`` when that position lies outside the image.

    Args:
        image: RGBA uint8 array (H, W, 4)
        x: Column of the probe center
        y: Row of the probe center
        size: Side length of the neighborhood

    Returns:
        ProbeResult
    """
    validate_rgba(image, "probe")
    if size < 1:
        raise InvalidParameterError(f"Probe size must be positive, got {size}")

    h, w = image.shape[:2]
    half = size // 2
    cols = np.arange(size) + x - half
    rows = np.arange(size) + y - half
    valid_cols = (cols >= 0) & (cols < w)
    valid_rows = (rows >= 0) & (rows < h)

    cells = np.zeros((size, size, 4), dtype=np.uint8)
    if valid_cols.any() and valid_rows.any():
        cells[np.ix_(valid_rows, valid_cols)] = image[np.ix_(rows[valid_rows], cols[valid_cols])]
    return ProbeResult(x=x, y=y, cells=cells)
