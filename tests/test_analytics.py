"""
Tests for frame analytics and probe cell formatting.
"""

import pytest

from framestag.analytics import DisplayMode, FrameAnalytics, cell_color, format_cell
from framestag.errors import ReadbackError
from framestag.pipeline import Pipeline


class TestFormatCell:
    """Test probe cell text rendering."""

    def test_rgb(self):
        assert format_cell((1, 22, 255, 255), DisplayMode.RGB) == "1 22 255"

    def test_hex(self):
        assert format_cell((255, 10, 0, 255), DisplayMode.HEX) == "#FF0A00"

    def test_gray(self):
        # 0.299 * 100 + 0.587 * 150 + 0.114 * 200 = 140.75
        assert format_cell((100, 150, 200, 255), DisplayMode.GRAY) == "141"

    def test_mode_by_name(self):
        assert format_cell((0, 0, 0, 0), 'hex') == "#000000"
        with pytest.raises(ValueError):
            format_cell((0, 0, 0, 0), 'cmyk')

    def test_cell_color(self):
        assert cell_color((10, 20, 30, 255)) == "rgb(10, 20, 30)"
        assert cell_color((100, 150, 200, 255), DisplayMode.GRAY) == "rgb(141, 141, 141)"


class TestFrameAnalytics:
    """Test readback-driven analytics."""

    def test_update_reads_engine(self, cpu_engine, uniform_frame):
        analytics = FrameAnalytics()
        cpu_engine.load_frame(uniform_frame)
        cpu_engine.execute(Pipeline())
        histogram = analytics.update(cpu_engine)
        count = uniform_frame.width * uniform_frame.height
        assert histogram.red[10] == count
        assert histogram.max == count
        assert analytics.has_data

    def test_histogram_follows_pipeline(self, cpu_engine, gradient_frame):
        analytics = FrameAnalytics()
        cpu_engine.load_frame(gradient_frame)
        cpu_engine.execute(Pipeline.parse('bitplane 8'))
        histogram = analytics.update(cpu_engine)
        total = gradient_frame.width * gradient_frame.height
        assert histogram.red[0] + histogram.red[255] == total

    def test_probe_uses_cached_readback(self, cpu_engine, uniform_frame):
        analytics = FrameAnalytics()
        cpu_engine.load_frame(uniform_frame)
        cpu_engine.execute(Pipeline())
        analytics.update(cpu_engine)
        cpu_engine.release()

        result = analytics.probe(0, 0)
        assert result.size == 10
        assert result.pixel(0, 0) == (0, 0, 0, 0)
        assert result.center == (10, 20, 30, 255)

    def test_probe_text(self, uniform_frame):
        analytics = FrameAnalytics(probe_size=3)
        analytics.update_from_frame(uniform_frame)
        grid = analytics.probe_text(1, 1, DisplayMode.HEX)
        assert grid == [["#0A141E"] * 3] * 3

    def test_probe_before_update(self):
        with pytest.raises(ReadbackError):
            FrameAnalytics().probe(0, 0)

    def test_reset(self, uniform_frame):
        analytics = FrameAnalytics()
        analytics.update_from_frame(uniform_frame)
        analytics.reset()
        assert not analytics.has_data
        assert analytics.histogram is None
