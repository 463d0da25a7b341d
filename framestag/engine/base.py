# FrameStag Engine - Base
"""
Execution contract shared by the GPU and CPU pipeline engines.

An engine owns four buffers sized to the current frame: the raw source,
two ping-pong targets and the previous tick's raw frame. Each tick runs the
active stages of a pipeline snapshot in order. A stage reads the output of
its predecessor (the source for the first stage) and writes the alternate
ping-pong target, after which the roles swap.

Usage:
    with create_engine() as engine:
        engine.load_frame(frame)
        report = engine.execute(pipeline)
        pixels = engine.read_pixels()
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterable
import logging
import time

import numpy as np

from framestag.errors import InvalidParameterError, ReadbackError
from framestag.frame import Frame, FrameSourceTypes
from framestag.pipeline import (
    BitPlaneSlice,
    ColorSpace,
    Convolution,
    CustomTransform,
    FilterStage,
    Morphology,
    MotionHeatmap,
    Pipeline,
    StageType,
)
from .program_cache import Failed, LookupResult

logger = logging.getLogger(__name__)


# Handler method per stage type. Checked for completeness at import.
_STAGE_HANDLERS: dict[StageType, str] = {
    StageType.CONVOLUTION: '_apply_convolution',
    StageType.MORPHOLOGY: '_apply_morphology',
    StageType.BIT_PLANE_SLICE: '_apply_bit_plane',
    StageType.COLOR_SPACE: '_apply_color_space',
    StageType.MOTION_HEATMAP: '_apply_motion',
    StageType.CUSTOM_TRANSFORM: '_apply_custom',
}

_missing = set(StageType) - set(_STAGE_HANDLERS)
if _missing:
    raise TypeError(f"No engine handler for stage types: {sorted(t.value for t in _missing)}")


@dataclass
class TickReport:
    """Outcome of one :meth:`PipelineEngine.execute` call.

    :param tick: Zero-based tick number
    :param executed: Ids of stages that drew, in order
    :param skipped: Ids of inactive stages
    :param errors: Stage id to error message, for stages that rendered as
        identity or were skipped as invalid
    """
    tick: int
    executed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            'tick': self.tick,
            'executed': list(self.executed),
            'skipped': list(self.skipped),
            'errors': dict(self.errors),
        }


class PipelineEngine(ABC):
    """Abstract multi-pass pipeline renderer.

    Subclasses provide the buffer primitives; the tick order lives here.
    Engines are not thread-safe.
    """

    backend: str = ''

    def __init__(self):
        self._start_time = time.monotonic()
        self._size = (0, 0)
        self._frame_loaded = False
        self._previous_valid = False
        self._released = False
        self.tick = 0

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def size(self) -> tuple[int, int]:
        """(width, height) of the allocated buffers."""
        return self._size

    @property
    def width(self) -> int:
        return self._size[0]

    @property
    def height(self) -> int:
        return self._size[1]

    @property
    def elapsed(self) -> float:
        """Seconds since the engine was created, fed to ``u_time``."""
        return time.monotonic() - self._start_time

    @property
    def released(self) -> bool:
        return self._released

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resize(self, width: int, height: int) -> None:
        """Reallocate all buffers for new dimensions. No-op if unchanged."""
        self._check_alive()
        if not isinstance(width, (int, np.integer)) or not isinstance(height, (int, np.integer)) \
                or width < 1 or height < 1:
            raise InvalidParameterError(f"Invalid frame dimensions: {width}x{height}")
        if (width, height) == self._size:
            return
        logger.debug(f"Allocating {self.backend} buffers for {width}x{height}")
        self._allocate(width, height)
        self._size = (width, height)
        self._frame_loaded = False
        self._previous_valid = False

    def load_frame(self, source: FrameSourceTypes) -> None:
        """Upload the raw frame of the current tick."""
        self._check_alive()
        frame = Frame.from_any(source)
        self.resize(frame.width, frame.height)
        self._upload(frame)
        self._frame_loaded = True

    def execute(self, pipeline: Pipeline | Iterable[FilterStage]) -> TickReport:
        """Run one tick of the pipeline against the loaded frame.

        :param pipeline: Pipeline or iterable of stages. It is snapshotted
            before the first stage runs.
        :returns: The tick report
        """
        self._check_alive()
        if not self._frame_loaded:
            raise InvalidParameterError("No frame loaded, call load_frame() before execute()")

        if isinstance(pipeline, Pipeline):
            stages = pipeline.snapshot()
        else:
            stages = tuple(pipeline)
        report = TickReport(tick=self.tick)

        # No previous frame yet: motion compares against the current one
        if not self._previous_valid:
            self._store_previous()
            self._previous_valid = True

        self._begin_tick()
        for stage in stages:
            if not stage.active:
                report.skipped.append(stage.id)
                continue
            try:
                stage.validate()
            except InvalidParameterError as e:
                logger.warning(f"Skipping stage {stage.name!r} ({stage.id}): {e}")
                report.errors[stage.id] = str(e)
                continue

            handler = getattr(self, _STAGE_HANDLERS[stage.stage_type])
            result = handler(stage)
            report.executed.append(stage.id)
            if isinstance(result, Failed):
                report.errors[stage.id] = result.reason

        self._store_previous()
        self.tick += 1
        return report

    def read_pixels(self) -> np.ndarray:
        """Final output as a flat uint8 RGBA array in top-left row order.

        :raises ReadbackError: If no frame is loaded or the device fails
        """
        if self._released:
            raise ReadbackError("Engine has been released")
        if not self._frame_loaded:
            raise ReadbackError("No frame loaded")
        try:
            pixels = self._read_output()
        except ReadbackError:
            raise
        except Exception as e:
            raise ReadbackError(f"Readback failed: {e}") from e

        expected = self.width * self.height * 4
        if pixels.size != expected:
            raise ReadbackError(f"Readback returned {pixels.size} values, expected {expected}")
        return pixels.reshape(-1)

    def read_frame(self) -> Frame:
        """Final output as a :class:`Frame`."""
        return Frame(self.read_pixels().reshape(self.height, self.width, 4))

    @abstractmethod
    def present(self, target: Any = None) -> Any:
        """Show the final output on ``target``."""

    def release(self) -> None:
        """Free all resources. Safe to call more than once."""
        if self._released:
            return
        self._release_resources()
        self._released = True
        self._frame_loaded = False
        self._size = (0, 0)
        logger.debug(f"{self.backend} engine released")

    def __enter__(self) -> 'PipelineEngine':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()

    def _check_alive(self) -> None:
        if self._released:
            raise InvalidParameterError("Engine has been released")

    # ------------------------------------------------------------------
    # Buffer primitives
    # ------------------------------------------------------------------

    @abstractmethod
    def _allocate(self, width: int, height: int) -> None:
        """Create the source, ping-pong and previous-frame buffers."""

    @abstractmethod
    def _upload(self, frame: Frame) -> None:
        """Write the raw frame into the source buffer and make it the output."""

    @abstractmethod
    def _begin_tick(self) -> None:
        """Make the source buffer the input of the first stage."""

    @abstractmethod
    def _store_previous(self) -> None:
        """Copy the source buffer into the previous-frame buffer."""

    @abstractmethod
    def _read_output(self) -> np.ndarray:
        """Return the current output as uint8 RGBA, top-left row order."""

    @abstractmethod
    def _release_resources(self) -> None:
        ...

    # ------------------------------------------------------------------
    # Stage handlers
    # ------------------------------------------------------------------

    @abstractmethod
    def _apply_convolution(self, stage: Convolution) -> LookupResult | None:
        ...

    @abstractmethod
    def _apply_morphology(self, stage: Morphology) -> LookupResult | None:
        ...

    @abstractmethod
    def _apply_bit_plane(self, stage: BitPlaneSlice) -> LookupResult | None:
        ...

    @abstractmethod
    def _apply_color_space(self, stage: ColorSpace) -> LookupResult | None:
        ...

    @abstractmethod
    def _apply_motion(self, stage: MotionHeatmap) -> LookupResult | None:
        ...

    @abstractmethod
    def _apply_custom(self, stage: CustomTransform) -> LookupResult | None:
        """Run a user program. A ``Failed`` result means identity was drawn."""
