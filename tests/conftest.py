"""
Pytest fixtures for FrameStag tests
"""

import numpy as np
import pytest

from framestag.engine import CpuPipelineEngine
from framestag.errors import ResourceInitError
from framestag.frame import Frame


@pytest.fixture
def gradient_frame() -> Frame:
    """
    32x24 frame with a horizontal red ramp, vertical green ramp and constant blue.
    :return: The frame
    """
    h, w = 24, 32
    pixels = np.empty((h, w, 4), dtype=np.uint8)
    pixels[:, :, 0] = np.linspace(0, 255, w, dtype=np.uint8)[np.newaxis, :]
    pixels[:, :, 1] = np.linspace(0, 255, h, dtype=np.uint8)[:, np.newaxis]
    pixels[:, :, 2] = 90
    pixels[:, :, 3] = 255
    return Frame(pixels)


@pytest.fixture
def checkerboard_frame() -> Frame:
    """16x16 black and white checkerboard with 4 pixel squares."""
    yy, xx = np.mgrid[0:16, 0:16]
    on = ((yy // 4) + (xx // 4)) % 2 == 1
    pixels = np.zeros((16, 16, 4), dtype=np.uint8)
    pixels[on, :3] = 255
    pixels[:, :, 3] = 255
    return Frame(pixels)


@pytest.fixture
def uniform_frame() -> Frame:
    return Frame.filled(20, 10, (10, 20, 30))


@pytest.fixture
def random_frame() -> Frame:
    rng = np.random.default_rng(1234)
    pixels = rng.integers(0, 256, size=(18, 22, 4), dtype=np.uint8)
    pixels[:, :, 3] = 255
    return Frame(pixels)


@pytest.fixture
def cpu_engine():
    engine = CpuPipelineEngine()
    yield engine
    engine.release()


@pytest.fixture
def gl_engine():
    """
    Offscreen OpenGL engine. Skips the test if no context can be created.
    :return: The engine
    """
    from framestag.engine.gl import GLPipelineEngine

    try:
        engine = GLPipelineEngine()
    except ResourceInitError as e:
        pytest.skip(f"OpenGL not available: {e}")
    yield engine
    engine.release()
