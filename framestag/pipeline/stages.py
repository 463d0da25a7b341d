# FrameStag Pipeline - Stages
"""
Stage descriptors for the filter pipeline.

Stages are frozen dataclasses: pure data without rendering behavior. The
engine dispatches on :attr:`FilterStage.stage_type`. Editing a stage means
replacing it, so a snapshot taken at the start of a tick can never change
underneath the engine.

All stages are JSON-serializable:

    {"type": "Morphology", "id": "stage-1a2b3c4d", "name": "Morphology",
     "active": true, "params": {"operation": "EROSION", "radius": 2}}
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, ClassVar
import re
import uuid

from framestag.config import settings
from framestag.errors import InvalidParameterError
from framestag.filters.bitplane import validate_bit
from framestag.filters.color_space import ColorChannel
from framestag.filters.morphology import MorphologyOp, validate_radius
from framestag.filters.motion import validate_threshold
from framestag.kernels import Kernel, KERNELS
from framestag.shaders import DEFAULT_CUSTOM_SOURCE


class StageType(Enum):
    """Tag of each stage variant."""
    CONVOLUTION = 'Convolution'
    MORPHOLOGY = 'Morphology'
    BIT_PLANE_SLICE = 'BitPlaneSlice'
    COLOR_SPACE = 'ColorSpace'
    MOTION_HEATMAP = 'MotionHeatmap'
    CUSTOM_TRANSFORM = 'CustomTransform'


# Global registries
STAGE_REGISTRY: dict[str, type['FilterStage']] = {}
STAGE_ALIASES: dict[str, type['FilterStage'] | tuple[type['FilterStage'], dict[str, Any]]] = {}


def register_stage(cls: type['FilterStage']) -> type['FilterStage']:
    """Decorator to register a stage class."""
    STAGE_REGISTRY[cls.stage_type.value] = cls
    STAGE_REGISTRY[cls.stage_type.value.lower()] = cls
    return cls


def register_alias(alias: str, cls: type['FilterStage'], **default_params: Any) -> None:
    """Register a short name for a stage class, optionally with preset parameters.

    Examples:
        register_alias('erode', Morphology, operation=MorphologyOp.EROSION)
    """
    if default_params:
        STAGE_ALIASES[alias.lower()] = (cls, default_params)
    else:
        STAGE_ALIASES[alias.lower()] = cls


def new_stage_id() -> str:
    return f"stage-{uuid.uuid4().hex[:8]}"


@dataclass(frozen=True)
class FilterStage(ABC):
    """Base class of all pipeline stages.

    :param id: Unique identifier within a pipeline
    :param name: Display name, defaults to the stage's display name
    :param active: Inactive stages are skipped without touching the buffers
    """
    id: str = field(default_factory=new_stage_id, kw_only=True)
    name: str = field(default='', kw_only=True)
    active: bool = field(default=True, kw_only=True)

    stage_type: ClassVar[StageType]
    display_name: ClassVar[str] = ''
    _primary_param: ClassVar[str | None] = None

    def __post_init__(self):
        if not self.name:
            object.__setattr__(self, 'name', self.display_name or self.stage_type.value)

    @abstractmethod
    def validate(self) -> None:
        """Check the parameters.

        :raises InvalidParameterError: If a parameter is out of range
        """

    @abstractmethod
    def params(self) -> dict[str, Any]:
        """Type-specific parameters in JSON-compatible form."""

    @classmethod
    @abstractmethod
    def _params_from_dict(cls, params: dict[str, Any]) -> dict[str, Any]:
        """Convert serialized parameters into constructor keyword arguments."""

    def with_active(self, active: bool) -> 'FilterStage':
        return replace(self, active=active)

    def to_dict(self) -> dict[str, Any]:
        return {
            'type': self.stage_type.value,
            'id': self.id,
            'name': self.name,
            'active': self.active,
            'params': self.params(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'FilterStage':
        """Deserialize any registered stage from a dictionary."""
        stage_type = data.get('type')
        if not stage_type:
            raise ValueError("Stage dictionary has no 'type'")
        stage_cls = STAGE_REGISTRY.get(stage_type) or STAGE_REGISTRY.get(stage_type.lower())
        if stage_cls is None:
            raise ValueError(f"Unknown stage type: {stage_type}")

        kwargs = stage_cls._params_from_dict(data.get('params', {}))
        if 'id' in data:
            kwargs['id'] = data['id']
        if 'name' in data:
            kwargs['name'] = data['name']
        if 'active' in data:
            kwargs['active'] = bool(data['active'])
        return stage_cls(**kwargs)

    @classmethod
    def parse(cls, text: str) -> 'FilterStage':
        """Parse a single stage from the compact string format.

        Examples:
            'kernel sharpen'
            'erode 2'
            'bitplane 8'
            'motion threshold=0.1'
            'colorspace(hsv_hue)'
        """
        text = text.strip()
        match = re.match(r'^(\w+)\(([^)]*)\)$', text)
        if match:
            name = match.group(1).lower()
            args = [a for a in re.split(r'[,\s]+', match.group(2).strip()) if a]
        else:
            parts = text.split()
            if not parts:
                raise ValueError(f"Invalid stage format: {text!r}")
            name = parts[0].lower()
            args = parts[1:]

        alias_entry = STAGE_ALIASES.get(name)
        kwargs: dict[str, Any] = {}
        if isinstance(alias_entry, tuple):
            stage_cls, defaults = alias_entry
            kwargs.update(defaults)
        elif alias_entry is not None:
            stage_cls = alias_entry
        else:
            stage_cls = STAGE_REGISTRY.get(name)
        if stage_cls is None:
            raise ValueError(f"Unknown stage: {name}")

        positional = []
        for arg in args:
            if '=' in arg:
                key, value = arg.split('=', 1)
                kwargs[key.strip()] = _parse_value(value)
            else:
                positional.append(_parse_value(arg))
        if positional:
            if stage_cls._primary_param is None or len(positional) > 1:
                raise ValueError(f"Stage {name!r} takes at most one positional argument")
            kwargs[stage_cls._primary_param] = positional[0]

        return stage_cls(**stage_cls._params_from_dict(kwargs))

    def to_string(self) -> str:
        """Compact string form understood by :meth:`parse`."""
        params = ' '.join(f"{k}={v}" for k, v in self.params().items() if not isinstance(v, (dict, list)))
        head = self.stage_type.value.lower()
        return f"{head} {params}".strip()


@register_stage
@dataclass(frozen=True)
class Convolution(FilterStage):
    """Weighted sum over a square footprint.

    Example:
        'kernel sharpen' or 'convolution kernel=gaussian_blur_5'

    Kernels without a preset use the matrix form:
        'kernel matrix=0,-1,0,-1,5,-1,0,-1,0 factor=1 bias=0'
    """
    kernel: Kernel = field(default_factory=lambda: KERNELS['identity'])

    stage_type: ClassVar[StageType] = StageType.CONVOLUTION
    display_name: ClassVar[str] = 'Kernel Filter'
    _primary_param: ClassVar[str] = 'kernel'

    def validate(self) -> None:
        if not isinstance(self.kernel, Kernel):
            raise InvalidParameterError(f"Expected Kernel, got {type(self.kernel).__name__}")
        self.kernel.validate(max_size=settings.MAX_KERNEL_SIZE)

    def params(self) -> dict[str, Any]:
        return {'kernel': self.kernel.to_dict()}

    @classmethod
    def _params_from_dict(cls, params: dict[str, Any]) -> dict[str, Any]:
        if 'matrix' in params and 'kernel' not in params:
            return {'kernel': _kernel_from_matrix(params)}
        kernel = params.get('kernel', KERNELS['identity'])
        if isinstance(kernel, str):
            kernel = KERNELS.get(kernel)
            if kernel is None:
                raise ValueError(f"Unknown kernel preset: {params['kernel']}")
        elif isinstance(kernel, dict):
            kernel = Kernel.from_dict(kernel)
        return {'kernel': kernel}

    def to_string(self) -> str:
        for key, preset in KERNELS.items():
            if preset == self.kernel:
                return f"kernel {key}"
        kernel = self.kernel
        matrix = ','.join(_format_number(v) for v in kernel.matrix)
        return f"kernel matrix={matrix} factor={_format_number(kernel.factor)} bias={_format_number(kernel.bias)}"


@register_stage
@dataclass(frozen=True)
class Morphology(FilterStage):
    """Erosion (window minimum) or dilation (window maximum)."""
    operation: MorphologyOp = MorphologyOp.DILATION
    radius: int = 1

    stage_type: ClassVar[StageType] = StageType.MORPHOLOGY
    _primary_param: ClassVar[str] = 'radius'

    def validate(self) -> None:
        if not isinstance(self.operation, MorphologyOp):
            raise InvalidParameterError(f"Unknown morphology operation: {self.operation!r}")
        validate_radius(self.radius)

    def params(self) -> dict[str, Any]:
        return {'operation': self.operation.value, 'radius': self.radius}

    @classmethod
    def _params_from_dict(cls, params: dict[str, Any]) -> dict[str, Any]:
        result = dict(params)
        operation = result.get('operation', MorphologyOp.DILATION)
        if isinstance(operation, str):
            operation = MorphologyOp(operation.upper())
        result['operation'] = operation
        return result

    def to_string(self) -> str:
        head = 'erode' if self.operation is MorphologyOp.EROSION else 'dilate'
        return f"{head} {self.radius}"


@register_stage
@dataclass(frozen=True)
class BitPlaneSlice(FilterStage):
    """White where the selected bit of quantized luma is set, black elsewhere."""
    bit: int = 8

    stage_type: ClassVar[StageType] = StageType.BIT_PLANE_SLICE
    display_name: ClassVar[str] = 'Bit Plane'
    _primary_param: ClassVar[str] = 'bit'

    def validate(self) -> None:
        validate_bit(self.bit)

    def params(self) -> dict[str, Any]:
        return {'bit': self.bit}

    @classmethod
    def _params_from_dict(cls, params: dict[str, Any]) -> dict[str, Any]:
        return dict(params)


@register_stage
@dataclass(frozen=True)
class ColorSpace(FilterStage):
    """Replace the image with one color-space component."""
    channel: ColorChannel = ColorChannel.GRAYSCALE

    stage_type: ClassVar[StageType] = StageType.COLOR_SPACE
    display_name: ClassVar[str] = 'Color Space'
    _primary_param: ClassVar[str] = 'channel'

    def validate(self) -> None:
        if not isinstance(self.channel, ColorChannel):
            raise InvalidParameterError(f"Unknown color channel: {self.channel!r}")

    def params(self) -> dict[str, Any]:
        return {'channel': self.channel.value}

    @classmethod
    def _params_from_dict(cls, params: dict[str, Any]) -> dict[str, Any]:
        result = dict(params)
        channel = result.get('channel', ColorChannel.GRAYSCALE)
        if isinstance(channel, str):
            try:
                channel = ColorChannel(channel.upper())
            except ValueError:
                raise ValueError(f"Unknown color channel: {channel}") from None
        result['channel'] = channel
        return result

    def to_string(self) -> str:
        return f"colorspace {self.channel.value.lower()}"


@register_stage
@dataclass(frozen=True)
class MotionHeatmap(FilterStage):
    """Highlight pixels whose luma changed since the previous tick's raw frame.

    :param threshold: Normalized luma difference (0.0 - 1.0) above which a
        pixel counts as moving
    """
    threshold: float = field(default_factory=lambda: settings.MOTION_THRESHOLD)

    stage_type: ClassVar[StageType] = StageType.MOTION_HEATMAP
    display_name: ClassVar[str] = 'Motion Heatmap'
    _primary_param: ClassVar[str] = 'threshold'

    def validate(self) -> None:
        validate_threshold(self.threshold)

    def params(self) -> dict[str, Any]:
        return {'threshold': self.threshold}

    @classmethod
    def _params_from_dict(cls, params: dict[str, Any]) -> dict[str, Any]:
        return dict(params)


@register_stage
@dataclass(frozen=True)
class CustomTransform(FilterStage):
    """User-supplied fragment program.

    Only compile and link success is checked; a failing program renders as
    identity.
    """
    source: str = DEFAULT_CUSTOM_SOURCE

    stage_type: ClassVar[StageType] = StageType.CUSTOM_TRANSFORM
    display_name: ClassVar[str] = 'Custom Shader'
    _primary_param: ClassVar[str] = 'source'

    def validate(self) -> None:
        if not isinstance(self.source, str) or not self.source.strip():
            raise InvalidParameterError("Custom transform source must be a non-empty string")

    def params(self) -> dict[str, Any]:
        return {'source': self.source}

    @classmethod
    def _params_from_dict(cls, params: dict[str, Any]) -> dict[str, Any]:
        return dict(params)

    def to_string(self) -> str:
        raise ValueError("Custom transforms have no compact string form, use to_dict()")


register_alias('kernel', Convolution)
register_alias('erode', Morphology, operation=MorphologyOp.EROSION)
register_alias('dilate', Morphology, operation=MorphologyOp.DILATION)
register_alias('bitplane', BitPlaneSlice)
register_alias('colorspace', ColorSpace)
register_alias('motion', MotionHeatmap)


def _parse_value(s: str) -> int | float | bool | str:
    """Parse string value to the appropriate type."""
    s = s.strip()
    if (s.startswith("'") and s.endswith("'")) or (s.startswith('"') and s.endswith('"')):
        return s[1:-1]
    if s.lower() == 'true':
        return True
    if s.lower() == 'false':
        return False
    try:
        return int(s)
    except ValueError:
        pass
    try:
        return float(s)
    except ValueError:
        pass
    return s


def _format_number(value: float) -> str:
    """Shortest text that parses back to the same float."""
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)


def _kernel_from_matrix(params: dict[str, Any]) -> Kernel:
    """Build a square kernel from the ``matrix=`` compact form."""
    matrix = params['matrix']
    if isinstance(matrix, str):
        values = [float(v) for v in matrix.split(',') if v.strip()]
    elif isinstance(matrix, (int, float)):
        values = [float(matrix)]
    else:
        values = [float(v) for v in matrix]
    return Kernel.square(
        values,
        factor=float(params.get('factor', 1.0)),
        bias=float(params.get('bias', 0.0)),
    )
