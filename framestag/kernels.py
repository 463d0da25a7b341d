# FrameStag - Convolution Kernels
"""
Convolution kernel definition and the built-in kernel presets.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
import math

from .errors import InvalidParameterError


@dataclass(frozen=True)
class Kernel:
    """Square weight matrix with normalization factor and bias.

    The output of a convolution is ``clamp(sum(weight * pixel) * factor + bias, 0, 255)``.

    :param matrix: Row-major weights, ``width * height`` entries
    :param width: Matrix width
    :param height: Matrix height
    :param factor: Normalization factor applied to the weighted sum
    :param bias: Offset added after normalization (0-255 scale)
    """
    matrix: tuple[float, ...]
    width: int = 3
    height: int = 3
    factor: float = 1.0
    bias: float = 0.0
    name: str = 'Custom'
    description: str = ''
    formula: str = ''

    def __post_init__(self):
        # Lists are accepted for convenience but stored as tuples
        if not isinstance(self.matrix, tuple):
            object.__setattr__(self, 'matrix', tuple(float(v) for v in self.matrix))

    @property
    def side(self) -> int:
        return self.width

    def validate(self, max_size: int | None = None) -> None:
        """Check the matrix invariants.

        :param max_size: Optional upper bound for the side length
        :raises InvalidParameterError: If the kernel is malformed
        """
        if self.width < 1 or self.height < 1:
            raise InvalidParameterError(f"Kernel dimensions must be positive, got {self.width}x{self.height}")
        if self.width != self.height:
            raise InvalidParameterError(f"Kernel must be square, got {self.width}x{self.height}")
        if len(self.matrix) != self.width * self.height:
            raise InvalidParameterError(
                f"Kernel matrix has {len(self.matrix)} entries, expected {self.width * self.height}"
            )
        if max_size is not None and self.width > max_size:
            raise InvalidParameterError(f"Kernel side {self.width} exceeds maximum of {max_size}")
        for value in (*self.matrix, self.factor, self.bias):
            if not math.isfinite(value):
                raise InvalidParameterError("Kernel weights, factor and bias must be finite")

    def to_dict(self) -> dict[str, Any]:
        result = {
            'matrix': list(self.matrix),
            'width': self.width,
            'height': self.height,
            'factor': self.factor,
            'bias': self.bias,
            'name': self.name,
        }
        if self.description:
            result['description'] = self.description
        if self.formula:
            result['formula'] = self.formula
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'Kernel':
        return cls(
            matrix=tuple(data['matrix']),
            width=data.get('width', 3),
            height=data.get('height', 3),
            factor=data.get('factor', 1.0),
            bias=data.get('bias', 0.0),
            name=data.get('name', 'Custom'),
            description=data.get('description', ''),
            formula=data.get('formula', ''),
        )

    @classmethod
    def square(cls, matrix: list[float], factor: float = 1.0, bias: float = 0.0, name: str = 'Custom') -> 'Kernel':
        """Create a square kernel, inferring the side from the matrix length."""
        side = int(round(math.sqrt(len(matrix))))
        if side * side != len(matrix):
            raise InvalidParameterError(f"Matrix of {len(matrix)} entries is not square")
        return cls(matrix=tuple(matrix), width=side, height=side, factor=factor, bias=bias, name=name)


KERNELS: dict[str, Kernel] = {
    'identity': Kernel(
        name='Identity',
        matrix=(0, 0, 0, 0, 1, 0, 0, 0, 0),
        description='Does not modify the image. The center pixel is kept as is.',
        formula='I(x, y) = I(x, y)',
    ),
    'gaussian_blur_3': Kernel(
        name='Gaussian Blur 3x3',
        matrix=(1, 2, 1, 2, 4, 2, 1, 2, 1),
        factor=1 / 16,
        description='Smooths the image by averaging pixels with a weighted Gaussian distribution.',
        formula='G(x, y) = (1/16) * sum(kernel * I)',
    ),
    'gaussian_blur_5': Kernel(
        name='Gaussian Blur 5x5',
        matrix=(
            1, 4, 6, 4, 1,
            4, 16, 24, 16, 4,
            6, 24, 36, 24, 6,
            4, 16, 24, 16, 4,
            1, 4, 6, 4, 1,
        ),
        width=5,
        height=5,
        factor=1 / 256,
        description='Stronger smoothing with a larger 5x5 kernel window.',
        formula='G(x, y) = (1/256) * sum(kernel * I)',
    ),
    'sharpen': Kernel(
        name='Sharpen',
        matrix=(0, -1, 0, -1, 5, -1, 0, -1, 0),
        description='Enhances edges by subtracting surrounding pixels from the center.',
        formula='S(x, y) = 5*I(x, y) - neighbors',
    ),
    'laplacian': Kernel(
        name='Laplacian',
        matrix=(0, 1, 0, 1, -4, 1, 0, 1, 0),
        description='Detects rapid changes (edges) regardless of orientation.',
        formula='L = d2f/dx2 + d2f/dy2',
    ),
    'sobel_x': Kernel(
        name='Sobel Horizontal',
        matrix=(-1, 0, 1, -2, 0, 2, -1, 0, 1),
        description='Gradient approximation in the horizontal direction.',
        formula='Gx = Kx * I',
    ),
    'sobel_y': Kernel(
        name='Sobel Vertical',
        matrix=(-1, -2, -1, 0, 0, 0, 1, 2, 1),
        description='Gradient approximation in the vertical direction.',
        formula='Gy = Ky * I',
    ),
    'emboss': Kernel(
        name='Emboss',
        matrix=(-2, -1, 0, -1, 1, 1, 0, 1, 2),
        description='Creates a 3D shadow effect.',
        formula='E(x, y) = I(x, y) + shadow',
    ),
}


def get_kernel(name: str) -> Kernel:
    """Look up a preset kernel by name.

    :raises KeyError: If no preset with that name exists
    """
    try:
        return KERNELS[name]
    except KeyError:
        raise KeyError(f"Unknown kernel preset: {name!r}. Available: {', '.join(KERNELS)}") from None
