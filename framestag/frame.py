# FrameStag - Frame
"""
Immutable RGBA8 frame container.

A frame is the unit the engine consumes each tick: width, height and a
row-major, top-left-origin RGBA8 pixel buffer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING, Union

import numpy as np

if TYPE_CHECKING:
    from PIL import Image as PILImage


@dataclass(frozen=True, eq=False)
class Frame:
    """A read-only RGBA8 image.

    :param pixels: uint8 array of shape (height, width, 4)
    """
    pixels: np.ndarray

    def __post_init__(self):
        pixels = self.pixels
        if not isinstance(pixels, np.ndarray):
            raise ValueError(f"Expected numpy array, got {type(pixels).__name__}")
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"Expected RGBA image (H, W, 4), got shape {pixels.shape}")
        if pixels.dtype != np.uint8:
            raise ValueError(f"Expected uint8 dtype, got {pixels.dtype}")
        if pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise ValueError("Frame dimensions must be positive")
        if pixels.flags.writeable:
            pixels = pixels.copy()
            pixels.flags.writeable = False
            object.__setattr__(self, 'pixels', pixels)

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def size(self) -> tuple[int, int]:
        """(width, height) tuple."""
        return self.width, self.height

    def to_array(self) -> np.ndarray:
        """Return a writeable copy of the pixels."""
        return self.pixels.copy()

    def to_bytes(self) -> bytes:
        """Flat RGBA bytes in top-left row order."""
        return self.pixels.tobytes()

    def to_pil(self) -> 'PILImage.Image':
        from PIL import Image as PILImage
        return PILImage.fromarray(self.pixels)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Frame):
            return NotImplemented
        return self.pixels.shape == other.pixels.shape and np.array_equal(self.pixels, other.pixels)

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_array(cls, array: np.ndarray) -> 'Frame':
        """Create a frame from a gray (H, W), (H, W, 1), RGB or RGBA uint8 array.

        Missing alpha is filled with 255.
        """
        if array.dtype != np.uint8:
            raise ValueError(f"Expected uint8 dtype, got {array.dtype}")
        if array.ndim == 2:
            array = array[:, :, np.newaxis]
        if array.ndim != 3:
            raise ValueError(f"Expected 2 or 3 dimensional array, got shape {array.shape}")

        channels = array.shape[2]
        if channels == 4:
            return cls(np.ascontiguousarray(array))
        h, w = array.shape[:2]
        rgba = np.empty((h, w, 4), dtype=np.uint8)
        if channels == 1:
            rgba[:, :, :3] = array
        elif channels == 3:
            rgba[:, :, :3] = array
        else:
            raise ValueError(f"Unsupported channel count: {channels}")
        rgba[:, :, 3] = 255
        return cls(rgba)

    @classmethod
    def from_bytes(cls, data: bytes | bytearray | memoryview, width: int, height: int) -> 'Frame':
        """Create a frame from a flat RGBA8 buffer (top-left origin)."""
        expected = width * height * 4
        if len(data) != expected:
            raise ValueError(f"Expected {expected} bytes for {width}x{height} RGBA, got {len(data)}")
        pixels = np.frombuffer(bytes(data), dtype=np.uint8).reshape(height, width, 4)
        return cls(pixels)

    @classmethod
    def from_pil(cls, image: 'PILImage.Image') -> 'Frame':
        if image.mode != 'RGBA':
            image = image.convert('RGBA')
        return cls(np.asarray(image, dtype=np.uint8))

    @classmethod
    def from_cv(cls, array: np.ndarray) -> 'Frame':
        """Create a frame from an OpenCV BGR, BGRA or gray array."""
        import cv2

        if array.ndim == 2 or (array.ndim == 3 and array.shape[2] == 1):
            return cls.from_array(array)
        if array.shape[2] == 3:
            return cls(cv2.cvtColor(array, cv2.COLOR_BGR2RGBA))
        if array.shape[2] == 4:
            return cls(cv2.cvtColor(array, cv2.COLOR_BGRA2RGBA))
        raise ValueError(f"Unsupported channel count: {array.shape[2]}")

    @classmethod
    def filled(cls, width: int, height: int, color: tuple[int, ...]) -> 'Frame':
        """Create a uniform frame. ``color`` is RGB or RGBA."""
        if len(color) == 3:
            color = (*color, 255)
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[:, :] = color
        return cls(pixels)

    @classmethod
    def from_any(cls, source: 'FrameSourceTypes') -> 'Frame':
        """Convert any supported frame source into a Frame."""
        if isinstance(source, Frame):
            return source
        if isinstance(source, np.ndarray):
            return cls.from_array(source)
        from PIL import Image as PILImage

        if isinstance(source, PILImage.Image):
            return cls.from_pil(source)
        raise TypeError(f"Unsupported frame source: {type(source).__name__}")


FrameSourceTypes = Union[Frame, np.ndarray, Any]
