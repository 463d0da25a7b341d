"""
Tests for the CPU pipeline engine and the shared execution contract.
"""

import numpy as np
import pytest

from framestag.engine import CpuPipelineEngine, TickReport, create_engine
from framestag.errors import InvalidParameterError, ReadbackError, ResourceInitError
from framestag.filters import (
    ColorChannel,
    MorphologyOp,
    convolve,
    decompose_color_space,
    erode,
    motion_heatmap,
    slice_bit_plane,
)
from framestag.frame import Frame
from framestag.kernels import KERNELS, Kernel
from framestag.pipeline import (
    BitPlaneSlice,
    ColorSpace,
    Convolution,
    CustomTransform,
    Morphology,
    MotionHeatmap,
    Pipeline,
)


def run(engine, frame, pipeline):
    engine.load_frame(frame)
    report = engine.execute(pipeline)
    return engine.read_frame(), report


class TestIdentity:
    """Pipelines that must leave the frame untouched."""

    def test_empty_pipeline(self, cpu_engine, random_frame):
        output, report = run(cpu_engine, random_frame, Pipeline())
        assert output == random_frame
        assert report.executed == []

    def test_all_inactive(self, cpu_engine, random_frame):
        pipeline = Pipeline.parse('kernel sharpen|erode 2|bitplane 8')
        for stage in list(pipeline):
            pipeline.toggle(stage.id)
        output, report = run(cpu_engine, random_frame, pipeline)
        assert output == random_frame
        assert report.skipped == [s.id for s in pipeline]
        assert report.ok

    def test_output_before_execute_is_source(self, cpu_engine, random_frame):
        cpu_engine.load_frame(random_frame)
        assert cpu_engine.read_frame() == random_frame

    def test_identity_kernel(self, cpu_engine, random_frame):
        output, _ = run(cpu_engine, random_frame, [Convolution(kernel=KERNELS['identity'])])
        assert output == random_frame


class TestExecution:
    """Stage chaining, skipping and reporting."""

    def test_chain_matches_composition(self, cpu_engine, gradient_frame):
        pipeline = Pipeline([
            Convolution(kernel=KERNELS['gaussian_blur_3']),
            Morphology(operation=MorphologyOp.EROSION, radius=1),
            ColorSpace(channel=ColorChannel.GRAYSCALE),
            BitPlaneSlice(bit=7),
        ])
        output, report = run(cpu_engine, gradient_frame, pipeline)

        expected = convolve(gradient_frame.pixels, KERNELS['gaussian_blur_3'])
        expected = erode(expected, 1)
        expected = decompose_color_space(expected, ColorChannel.GRAYSCALE)
        expected = slice_bit_plane(expected, 7)
        np.testing.assert_array_equal(output.pixels, expected)
        assert report.executed == [s.id for s in pipeline]

    def test_disable_equals_remove(self, gradient_frame):
        pipeline = Pipeline.parse('kernel sharpen|dilate 2|colorspace hsv_hue|bitplane 6')
        middle = pipeline[1].id
        removed = Pipeline([s for s in pipeline if s.id != middle])
        pipeline.toggle(middle)

        with CpuPipelineEngine() as a, CpuPipelineEngine() as b:
            out_disabled, _ = run(a, gradient_frame, pipeline)
            out_removed, _ = run(b, gradient_frame, removed)
        assert out_disabled == out_removed

    def test_invalid_stage_is_skipped(self, cpu_engine, gradient_frame):
        bad = Morphology(radius=9)
        good = BitPlaneSlice(bit=8)
        output, report = run(cpu_engine, gradient_frame, [bad, good])
        assert report.executed == [good.id]
        assert bad.id in report.errors
        assert 'radius' in report.errors[bad.id]
        np.testing.assert_array_equal(output.pixels, slice_bit_plane(gradient_frame.pixels, 8))

    def test_malformed_kernel_is_skipped(self, cpu_engine, gradient_frame):
        bad = Convolution(kernel=Kernel(matrix=(1, 2, 3, 4), width=3, height=3))
        output, report = run(cpu_engine, gradient_frame, [bad])
        assert report.executed == []
        assert bad.id in report.errors
        assert output == gradient_frame

    @pytest.mark.parametrize("bit", [0, 9])
    def test_bit_plane_out_of_range_is_skipped(self, cpu_engine, gradient_frame, bit):
        bad = BitPlaneSlice(bit=bit)
        good = Morphology(operation=MorphologyOp.EROSION, radius=1)
        output, report = run(cpu_engine, gradient_frame, [bad, good])
        assert report.executed == [good.id]
        assert bad.id in report.errors
        np.testing.assert_array_equal(output.pixels, erode(gradient_frame.pixels, 1))

    def test_custom_stage_degrades_to_identity(self, cpu_engine, gradient_frame):
        custom = CustomTransform()
        after = BitPlaneSlice(bit=8)
        output, report = run(cpu_engine, gradient_frame, [custom, after])
        assert report.executed == [custom.id, after.id]
        assert custom.id in report.errors
        assert not report.ok
        np.testing.assert_array_equal(output.pixels, slice_bit_plane(gradient_frame.pixels, 8))

    def test_custom_failure_compiled_once(self, cpu_engine, gradient_frame):
        custom = CustomTransform(source='broken')
        run(cpu_engine, gradient_frame, [custom])
        run(cpu_engine, gradient_frame, [custom])
        assert cpu_engine.programs.stats.failures == 1
        assert cpu_engine.programs.stats.hits >= 1

    def test_snapshot_taken_before_run(self, cpu_engine, gradient_frame):
        pipeline = Pipeline.parse('bitplane 8')
        cpu_engine.load_frame(gradient_frame)
        report = cpu_engine.execute(pipeline)
        pipeline.append(BitPlaneSlice(bit=1))
        assert len(report.executed) == 1

    def test_tick_counter(self, cpu_engine, uniform_frame):
        cpu_engine.load_frame(uniform_frame)
        reports = [cpu_engine.execute([]) for _ in range(3)]
        assert [r.tick for r in reports] == [0, 1, 2]
        assert isinstance(reports[0], TickReport)
        assert reports[2].to_dict()['tick'] == 2

    def test_execute_without_frame(self, cpu_engine):
        with pytest.raises(InvalidParameterError):
            cpu_engine.execute([])


class TestMotionLag:
    """The motion stage sees the previous tick's raw frame."""

    def test_one_tick_lag(self, cpu_engine):
        black = Frame.filled(4, 4, (0, 0, 0))
        white = Frame.filled(4, 4, (255, 255, 255))
        pipeline = Pipeline([MotionHeatmap(threshold=0.05)])

        first, _ = run(cpu_engine, black, pipeline)
        assert first == black  # seeded, no motion on the first tick

        second, _ = run(cpu_engine, white, pipeline)
        expected = motion_heatmap(white.pixels, black.pixels, 0.05)
        np.testing.assert_array_equal(second.pixels, expected)
        assert second != white

        third, _ = run(cpu_engine, white, pipeline)
        assert third == white

    def test_previous_is_raw_not_filtered(self, cpu_engine, gradient_frame):
        # The previous frame stays raw even when earlier stages filter the image
        pipeline = Pipeline([ColorSpace(channel=ColorChannel.HSV_HUE), MotionHeatmap(threshold=0.0)])
        run(cpu_engine, gradient_frame, pipeline)
        output, _ = run(cpu_engine, gradient_frame, pipeline)
        hue = decompose_color_space(gradient_frame.pixels, ColorChannel.HSV_HUE)
        expected = motion_heatmap(hue, gradient_frame.pixels, 0.0)
        np.testing.assert_array_equal(output.pixels, expected)

    def test_resize_reseeds(self, cpu_engine):
        pipeline = [MotionHeatmap(threshold=0.05)]
        run(cpu_engine, Frame.filled(4, 4, (0, 0, 0)), pipeline)
        white = Frame.filled(6, 5, (255, 255, 255))
        output, _ = run(cpu_engine, white, pipeline)
        assert output == white


class TestResources:
    """Resize, readback and release."""

    def test_resize_is_idempotent(self, cpu_engine, monkeypatch):
        calls = []
        original = cpu_engine._allocate

        def spy(width, height):
            calls.append((width, height))
            original(width, height)

        monkeypatch.setattr(cpu_engine, '_allocate', spy)
        cpu_engine.resize(8, 6)
        cpu_engine.resize(8, 6)
        cpu_engine.load_frame(Frame.filled(8, 6, (1, 2, 3)))
        assert calls == [(8, 6)]
        cpu_engine.resize(4, 4)
        assert calls == [(8, 6), (4, 4)]
        assert cpu_engine.size == (4, 4)

    @pytest.mark.parametrize("size", [(0, 4), (4, 0), (-1, 3)])
    def test_resize_invalid(self, cpu_engine, size):
        with pytest.raises(InvalidParameterError):
            cpu_engine.resize(*size)

    def test_readback_row_order(self, cpu_engine):
        pixels = np.zeros((3, 2, 4), dtype=np.uint8)
        pixels[0, 0] = (1, 2, 3, 4)
        pixels[2, 1] = (9, 8, 7, 6)
        cpu_engine.load_frame(pixels)
        cpu_engine.execute([])
        flat = cpu_engine.read_pixels()
        assert flat.dtype == np.uint8
        assert flat.shape == (3 * 2 * 4,)
        assert tuple(flat[:4]) == (1, 2, 3, 4)
        assert tuple(flat[-4:]) == (9, 8, 7, 6)

    def test_readback_without_frame(self, cpu_engine):
        with pytest.raises(ReadbackError):
            cpu_engine.read_pixels()

    def test_present_returns_frame(self, cpu_engine, uniform_frame):
        cpu_engine.load_frame(uniform_frame)
        cpu_engine.execute([])
        assert cpu_engine.present() == uniform_frame

    def test_release_is_idempotent(self, uniform_frame):
        engine = CpuPipelineEngine()
        engine.load_frame(uniform_frame)
        engine.release()
        engine.release()
        assert engine.released
        with pytest.raises(InvalidParameterError):
            engine.execute([])
        with pytest.raises(ReadbackError):
            engine.read_pixels()

    def test_context_manager(self, uniform_frame):
        with CpuPipelineEngine() as engine:
            engine.load_frame(uniform_frame)
        assert engine.released


class TestCreateEngine:
    """Backend selection."""

    def test_cpu(self):
        engine = create_engine('cpu')
        assert isinstance(engine, CpuPipelineEngine)
        engine.release()

    def test_unknown_backend(self):
        with pytest.raises(InvalidParameterError):
            create_engine('vulkan')

    def test_auto_falls_back_to_cpu(self, monkeypatch):
        import framestag.engine.gl as gl

        class Unavailable:
            def __init__(self, **kwargs):
                raise ResourceInitError("no display")

        monkeypatch.setattr(gl, 'GLPipelineEngine', Unavailable)
        engine = create_engine('auto')
        assert isinstance(engine, CpuPipelineEngine)
        engine.release()

    def test_gl_does_not_fall_back(self, monkeypatch):
        import framestag.engine.gl as gl

        class Unavailable:
            def __init__(self, **kwargs):
                raise ResourceInitError("no display")

        monkeypatch.setattr(gl, 'GLPipelineEngine', Unavailable)
        with pytest.raises(ResourceInitError):
            create_engine('gl')

    def test_default_from_settings(self, monkeypatch):
        from framestag.config import settings

        monkeypatch.setattr(settings, 'BACKEND', 'cpu')
        engine = create_engine()
        assert engine.backend == 'cpu'
        engine.release()
