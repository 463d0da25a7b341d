# FrameStag Engine - CPU
"""
Pipeline engine on numpy buffers.

Runs the reference filters of :mod:`framestag.filters` with the same
buffer layout and tick order as the GPU engine, so pipelines can run and be
tested without a graphics device. Fragment programs cannot run on the CPU:
every custom transform fails to compile and renders as identity.
"""

from __future__ import annotations

from typing import Any, Callable

import numpy as np

from framestag.errors import ProgramCompileError
from framestag.filters import (
    convolve,
    decompose_color_space,
    morphology,
    motion_heatmap,
    slice_bit_plane,
)
from framestag.frame import Frame
from framestag.shaders import PASSTHROUGH_FRAGMENT
from .base import PipelineEngine
from .program_cache import LookupResult, ProgramCache

CpuProgram = Callable[[np.ndarray], np.ndarray]


def _identity(image: np.ndarray) -> np.ndarray:
    return image


def compile_cpu_program(source: str) -> CpuProgram:
    """Only the passthrough program has a CPU equivalent."""
    if source == PASSTHROUGH_FRAGMENT:
        return _identity
    raise ProgramCompileError("Fragment programs are not supported by the CPU engine", source=source)


class CpuPipelineEngine(PipelineEngine):
    """Pipeline engine backed by numpy arrays."""

    backend = 'cpu'

    def __init__(self, max_programs: int | None = None):
        super().__init__()
        self._programs = ProgramCache(
            compiler=compile_cpu_program,
            identity_source=PASSTHROUGH_FRAGMENT,
            max_entries=max_programs,
        )
        self._source: np.ndarray | None = None
        self._previous: np.ndarray | None = None
        self._buffers: list[np.ndarray] = []
        self._current: np.ndarray | None = None
        self._target = 0

    @property
    def programs(self) -> ProgramCache:
        return self._programs

    # ------------------------------------------------------------------
    # Buffer primitives
    # ------------------------------------------------------------------

    def _allocate(self, width: int, height: int) -> None:
        shape = (height, width, 4)
        self._source = np.zeros(shape, dtype=np.uint8)
        self._previous = np.zeros(shape, dtype=np.uint8)
        self._buffers = [np.zeros(shape, dtype=np.uint8), np.zeros(shape, dtype=np.uint8)]
        self._current = self._source
        self._target = 0

    def _upload(self, frame: Frame) -> None:
        np.copyto(self._source, frame.pixels)
        self._begin_tick()

    def _begin_tick(self) -> None:
        self._current = self._source
        self._target = 0

    def _store_previous(self) -> None:
        np.copyto(self._previous, self._source)

    def _draw(self, result: np.ndarray) -> None:
        target = self._buffers[self._target]
        np.copyto(target, result)
        self._current = target
        self._target ^= 1

    def _read_output(self) -> np.ndarray:
        return self._current.copy()

    def _release_resources(self) -> None:
        self._programs.release()
        self._source = None
        self._previous = None
        self._buffers = []
        self._current = None

    # ------------------------------------------------------------------
    # Stage handlers
    # ------------------------------------------------------------------

    def _apply_convolution(self, stage) -> None:
        self._draw(convolve(self._current, stage.kernel))

    def _apply_morphology(self, stage) -> None:
        self._draw(morphology(self._current, stage.operation, stage.radius))

    def _apply_bit_plane(self, stage) -> None:
        self._draw(slice_bit_plane(self._current, stage.bit))

    def _apply_color_space(self, stage) -> None:
        self._draw(decompose_color_space(self._current, stage.channel))

    def _apply_motion(self, stage) -> None:
        self._draw(motion_heatmap(self._current, self._previous, stage.threshold))

    def _apply_custom(self, stage) -> LookupResult:
        program, result = self._programs.resolve(stage.source)
        self._draw(program(self._current))
        return result

    def present(self, target: Any = None) -> Frame:
        """Return the output frame. ``target`` is unused on the CPU."""
        return self.read_frame()
