# FrameStag - Annotations
"""
Interface to an external detector that annotates the rendered frame.

The detector (object or face detection) is not part of FrameStag. It
receives the final rendered frame and returns boxes and landmarks in image
coordinates; nothing else couples it to the engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable
import logging

import cv2
import numpy as np

from .engine import PipelineEngine
from .frame import Frame

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in pixel coordinates, top-left origin."""
    x: float
    y: float
    width: float
    height: float
    label: str = ''
    score: float = 1.0

    def to_dict(self) -> dict[str, Any]:
        return {
            'x': self.x,
            'y': self.y,
            'width': self.width,
            'height': self.height,
            'label': self.label,
            'score': self.score,
        }


@dataclass(frozen=True)
class Landmarks:
    """Keypoints of one detection, e.g. the mesh of a face."""
    points: tuple[tuple[float, float], ...]
    label: str = ''

    def to_dict(self) -> dict[str, Any]:
        return {'points': [list(p) for p in self.points], 'label': self.label}


@dataclass
class Annotations:
    boxes: list[BoundingBox] = field(default_factory=list)
    landmarks: list[Landmarks] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.boxes) + len(self.landmarks)

    def to_dict(self) -> dict[str, Any]:
        return {
            'boxes': [b.to_dict() for b in self.boxes],
            'landmarks': [lm.to_dict() for lm in self.landmarks],
        }


@runtime_checkable
class AnnotationProvider(Protocol):
    """Anything that turns a rendered frame into annotations."""

    def annotate(self, frame: Frame) -> Annotations:
        ...


def annotate_output(engine: PipelineEngine, provider: AnnotationProvider) -> Annotations:
    """Read the engine's rendered frame and pass it to ``provider``."""
    frame = engine.read_frame()
    annotations = provider.annotate(frame)
    logger.debug(f"{type(provider).__name__} returned {len(annotations)} annotations")
    return annotations


def draw_annotations(frame: Frame, annotations: Annotations,
                     color: tuple[int, int, int, int] = (0, 255, 0, 255),
                     thickness: int = 1) -> Frame:
    """Render boxes and landmark points onto a copy of ``frame``."""
    canvas = frame.to_array()
    for box in annotations.boxes:
        top_left = (int(round(box.x)), int(round(box.y)))
        bottom_right = (int(round(box.x + box.width)) - 1, int(round(box.y + box.height)) - 1)
        cv2.rectangle(canvas, top_left, bottom_right, color, thickness)
    for landmarks in annotations.landmarks:
        for px, py in landmarks.points:
            cv2.circle(canvas, (int(round(px)), int(round(py))), max(1, thickness), color, -1)
    return Frame(np.ascontiguousarray(canvas))
