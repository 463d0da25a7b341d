# FrameStag - Analytics
"""
Per-tick histogram and pixel probe over the rendered output.

The engine output is read back once per tick by :meth:`FrameAnalytics.update`;
probes then reuse that readback instead of touching the device again.

Usage:
    analytics = FrameAnalytics()
    engine.execute(pipeline)
    histogram = analytics.update(engine)
    grid = analytics.probe_text(mouse_x, mouse_y, DisplayMode.HEX)
"""

from __future__ import annotations

from enum import Enum

import numpy as np

from .config import settings
from .engine import PipelineEngine
from .errors import ReadbackError
from .filters.analyzers import HistogramData, ProbeResult, compute_histogram, probe
from .frame import Frame


class DisplayMode(Enum):
    """Text rendering of a probe cell."""
    RGB = 'RGB'
    HEX = 'HEX'
    GRAY = 'GRAY'


def cell_gray(pixel: tuple[int, ...]) -> int:
    """Rounded luma of a pixel, half up."""
    r, g, b = pixel[:3]
    return (299 * r + 587 * g + 114 * b + 500) // 1000


def format_cell(pixel: tuple[int, ...], mode: DisplayMode | str = DisplayMode.RGB) -> str:
    """Render one probe cell.

    - RGB: ``"r g b"``
    - HEX: ``"#RRGGBB"``
    - GRAY: rounded luma
    """
    mode = DisplayMode(mode.upper()) if isinstance(mode, str) else mode
    r, g, b = (int(v) for v in pixel[:3])
    if mode is DisplayMode.RGB:
        return f"{r} {g} {b}"
    if mode is DisplayMode.HEX:
        return f"#{r:02X}{g:02X}{b:02X}"
    return str(cell_gray((r, g, b)))


def cell_color(pixel: tuple[int, ...], mode: DisplayMode | str = DisplayMode.RGB) -> str:
    """CSS background color of a probe cell; grayscale in GRAY mode."""
    mode = DisplayMode(mode.upper()) if isinstance(mode, str) else mode
    r, g, b = (int(v) for v in pixel[:3])
    if mode is DisplayMode.GRAY:
        gray = cell_gray((r, g, b))
        return f"rgb({gray}, {gray}, {gray})"
    return f"rgb({r}, {g}, {b})"


class FrameAnalytics:
    """Histogram and probe state derived from the latest readback.

    :param probe_size: Side of the probe grid, defaults to ``settings.PROBE_SIZE``
    """

    def __init__(self, probe_size: int | None = None):
        self.probe_size = probe_size or settings.PROBE_SIZE
        self.pixels: np.ndarray | None = None
        self.histogram: HistogramData | None = None

    def update(self, engine: PipelineEngine) -> HistogramData:
        """Read the engine output once and recompute the histogram."""
        return self.update_from_frame(engine.read_frame())

    def update_from_frame(self, frame: Frame) -> HistogramData:
        self.pixels = frame.pixels
        self.histogram = compute_histogram(self.pixels)
        return self.histogram

    @property
    def has_data(self) -> bool:
        return self.pixels is not None

    def probe(self, x: int, y: int, size: int | None = None) -> ProbeResult:
        """Neighborhood of the last readback centered at (x, y).

        :raises ReadbackError: If :meth:`update` has not been called yet
        """
        if self.pixels is None:
            raise ReadbackError("No readback available, call update() first")
        return probe(self.pixels, x, y, size or self.probe_size)

    def probe_text(self, x: int, y: int, mode: DisplayMode | str = DisplayMode.RGB,
                   size: int | None = None) -> list[list[str]]:
        result = self.probe(x, y, size)
        return [[format_cell(pixel, mode) for pixel in row] for row in result.rows()]

    def reset(self) -> None:
        self.pixels = None
        self.histogram = None
