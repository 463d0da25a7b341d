"""Engine comparison utilities for parity testing.

Runs the same frame sequence and pipeline through two engines (usually
the GPU engine against the CPU reference) and compares every tick's
readback.

All comparisons are done in normalized float space (0.0-1.0), so the
default tolerance of one step per channel reads as ``1 / 255``.

Usage:
    results = compare_engines(CpuPipelineEngine(), GLPipelineEngine(), frames, pipeline)
    assert all(r.match for r in results)
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, NamedTuple
import logging

import numpy as np
from PIL import Image

from .engine import PipelineEngine
from .frame import Frame, FrameSourceTypes
from .pipeline import FilterStage, Pipeline

logger = logging.getLogger(__name__)

# One quantization step per channel, with headroom for float rounding
DEFAULT_TOLERANCE = 1.0 / 255.0 + 1e-6


class ComparisonResult(NamedTuple):
    """Result of comparing two images."""
    match: bool
    diff_ratio: float
    diff_count: int
    total_pixels: int
    message: str
    max_diff: float = 0.0  # Maximum per-channel difference in normalized space


def normalize_to_float(image: np.ndarray) -> np.ndarray:
    """Normalize image to float32 in range [0.0, 1.0].

    Args:
        image: uint8 (0-255) or float (already 0.0-1.0) array

    Returns:
        float32 array with values in [0.0, 1.0]
    """
    if image.dtype == np.uint8:
        return image.astype(np.float32) / 255.0
    elif image.dtype in (np.float32, np.float64):
        return image.astype(np.float32)
    else:
        raise ValueError(f"Unsupported dtype for normalization: {image.dtype}")


def compute_pixel_diff(
    img1: np.ndarray,
    img2: np.ndarray,
    tolerance: float = DEFAULT_TOLERANCE,
) -> tuple[float, np.ndarray, float]:
    """Compute pixel difference between two images in normalized float space.

    Args:
        img1: First image (H, W, C)
        img2: Second image (H, W, C)
        tolerance: Maximum allowed per-channel difference in [0.0, 1.0] space

    Returns:
        Tuple of (diff_ratio, diff_mask, max_diff)
        - diff_ratio: Fraction of pixels that differ (0.0 to 1.0)
        - diff_mask: Boolean array where True = pixel differs
        - max_diff: Maximum per-channel difference found (in normalized space)
    """
    if img1.shape != img2.shape:
        raise ValueError(
            f"Image shapes don't match: {img1.shape} vs {img2.shape}"
        )

    diff = np.abs(normalize_to_float(img1) - normalize_to_float(img2))
    max_diff = float(diff.max()) if diff.size else 0.0

    # A pixel is "different" if ANY channel differs by more than tolerance
    diff_mask = np.any(diff > tolerance, axis=2)

    diff_ratio = float(np.sum(diff_mask)) / diff_mask.size
    return diff_ratio, diff_mask, max_diff


def compare_images(
    reference: np.ndarray,
    candidate: np.ndarray,
    tolerance: float = DEFAULT_TOLERANCE,
) -> ComparisonResult:
    """Compare two images; they match when no pixel exceeds ``tolerance``."""
    if reference.shape != candidate.shape:
        return ComparisonResult(
            match=False,
            diff_ratio=1.0,
            diff_count=0,
            total_pixels=0,
            message=f"Shape mismatch: {reference.shape} vs {candidate.shape}",
        )

    diff_ratio, diff_mask, max_diff = compute_pixel_diff(reference, candidate, tolerance)
    diff_count = int(np.sum(diff_mask))
    match = diff_count == 0
    if match:
        message = f"PASS: max_diff={max_diff:.6f}"
    else:
        message = f"FAIL: {diff_ratio*100:.4f}% pixels differ (max_diff={max_diff:.6f}) exceeds tolerance={tolerance:.6f}"

    return ComparisonResult(
        match=match,
        diff_ratio=diff_ratio,
        diff_count=diff_count,
        total_pixels=diff_mask.size,
        message=message,
        max_diff=max_diff,
    )


def images_match(
    img1: np.ndarray,
    img2: np.ndarray,
    tolerance: float = DEFAULT_TOLERANCE,
) -> bool:
    """Check if two images match within tolerance.

    Returns:
        True if every channel of every pixel is within tolerance
    """
    if img1.shape != img2.shape:
        return False
    return compare_images(img1, img2, tolerance).match


def compare_engines(
    reference: PipelineEngine,
    candidate: PipelineEngine,
    frames: Iterable[FrameSourceTypes],
    pipeline: Pipeline | Iterable[FilterStage],
    tolerance: float = DEFAULT_TOLERANCE,
) -> list[ComparisonResult]:
    """Run the same ticks on two engines and compare each readback.

    Args:
        reference: Engine producing the expected output
        candidate: Engine under test
        frames: Frame sequence, one per tick
        pipeline: Pipeline executed on every tick
        tolerance: Maximum per-channel difference in [0.0, 1.0] space

    Returns:
        One ComparisonResult per tick
    """
    if not isinstance(pipeline, Pipeline):
        pipeline = Pipeline(stages=list(pipeline))

    results = []
    for tick, source in enumerate(frames):
        frame = Frame.from_any(source)
        outputs = []
        for engine in (reference, candidate):
            engine.load_frame(frame)
            engine.execute(pipeline)
            outputs.append(engine.read_frame().pixels)
        result = compare_images(outputs[0], outputs[1], tolerance)
        if not result.match:
            logger.info(f"Tick {tick}: {reference.backend} vs {candidate.backend}: {result.message}")
        results.append(result)
    return results


def save_comparison_image(
    reference: np.ndarray,
    candidate: np.ndarray,
    path: str | Path,
    tolerance: float = DEFAULT_TOLERANCE,
) -> Path:
    """Save a side-by-side image: [reference | candidate | diff].

    Differing pixels are red in the diff panel.

    Returns:
        Path of the written PNG
    """
    _, diff_mask, _ = compute_pixel_diff(reference, candidate, tolerance)
    h, w = reference.shape[:2]

    diff_img = np.zeros((h, w, 4), dtype=np.uint8)
    diff_img[diff_mask] = [255, 0, 0, 255]

    gap = 10
    combined = np.zeros((h, w * 3 + gap * 2, 4), dtype=np.uint8)
    combined[:, :, :3] = 128
    combined[:, :, 3] = 255
    combined[:, 0:w] = reference
    combined[:, w + gap:w * 2 + gap] = candidate
    combined[:, w * 2 + gap * 2:] = diff_img

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(combined).save(path)
    return path


__all__ = [
    'DEFAULT_TOLERANCE',
    'ComparisonResult',
    'normalize_to_float',
    'compute_pixel_diff',
    'compare_images',
    'images_match',
    'compare_engines',
    'save_comparison_image',
]
