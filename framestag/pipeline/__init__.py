# FrameStag Pipeline Module
"""
Pipeline model: ordered stage descriptors edited between ticks and read
by the engine as an immutable snapshot.
"""

from .stages import (
    StageType,
    FilterStage,
    Convolution,
    Morphology,
    BitPlaneSlice,
    ColorSpace,
    MotionHeatmap,
    CustomTransform,
    STAGE_REGISTRY,
    STAGE_ALIASES,
    register_stage,
    register_alias,
    new_stage_id,
)
from .model import Pipeline

__all__ = [
    'StageType',
    'FilterStage',
    'Convolution',
    'Morphology',
    'BitPlaneSlice',
    'ColorSpace',
    'MotionHeatmap',
    'CustomTransform',
    'STAGE_REGISTRY',
    'STAGE_ALIASES',
    'register_stage',
    'register_alias',
    'new_stage_id',
    'Pipeline',
]
