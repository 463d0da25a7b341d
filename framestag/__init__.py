"""
FrameStag - Real-time multi-pass image filter pipeline with GPU and CPU engines
"""

from .errors import (
    FrameStagError,
    ResourceInitError,
    ProgramCompileError,
    InvalidParameterError,
    ReadbackError,
)
from .frame import Frame, FrameSourceTypes
from .kernels import Kernel, KERNELS, get_kernel
from .pipeline import (
    StageType,
    FilterStage,
    Convolution,
    Morphology,
    BitPlaneSlice,
    ColorSpace,
    MotionHeatmap,
    CustomTransform,
    Pipeline,
)
from .filters import MorphologyOp, ColorChannel, HistogramData, ProbeResult
from .engine import (
    PipelineEngine,
    CpuPipelineEngine,
    TickReport,
    ProgramCache,
    Compiled,
    Failed,
    create_engine,
)
from .analytics import FrameAnalytics, DisplayMode, format_cell
from .annotations import (
    AnnotationProvider,
    Annotations,
    BoundingBox,
    Landmarks,
    annotate_output,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Errors
    "FrameStagError",
    "ResourceInitError",
    "ProgramCompileError",
    "InvalidParameterError",
    "ReadbackError",
    # Frames and kernels
    "Frame",
    "FrameSourceTypes",
    "Kernel",
    "KERNELS",
    "get_kernel",
    # Pipeline model
    "StageType",
    "FilterStage",
    "Convolution",
    "Morphology",
    "MorphologyOp",
    "BitPlaneSlice",
    "ColorSpace",
    "ColorChannel",
    "MotionHeatmap",
    "CustomTransform",
    "Pipeline",
    # Engines
    "PipelineEngine",
    "CpuPipelineEngine",
    "TickReport",
    "ProgramCache",
    "Compiled",
    "Failed",
    "create_engine",
    # Analytics
    "FrameAnalytics",
    "DisplayMode",
    "format_cell",
    "HistogramData",
    "ProbeResult",
    # Annotations
    "AnnotationProvider",
    "Annotations",
    "BoundingBox",
    "Landmarks",
    "annotate_output",
]
