# FrameStag Engine Module
"""
Pipeline engines and backend selection.

Usage:
    from framestag.engine import create_engine

    engine = create_engine()       # GPU if available, CPU otherwise
    engine = create_engine('cpu')  # force the numpy engine
"""

from __future__ import annotations

import logging

from framestag.config import settings
from framestag.errors import InvalidParameterError, ResourceInitError
from .base import PipelineEngine, TickReport
from .cpu import CpuPipelineEngine, compile_cpu_program
from .program_cache import CacheStats, Compiled, Failed, LookupResult, ProgramCache

logger = logging.getLogger(__name__)

BACKENDS = ('auto', 'gl', 'cpu')


def create_engine(backend: str | None = None, **kwargs) -> PipelineEngine:
    """Create a pipeline engine.

    :param backend: ``'gl'``, ``'cpu'`` or ``'auto'``. Defaults to
        ``settings.BACKEND``. ``'auto'`` falls back to the CPU engine when no
        OpenGL context can be created.
    :param kwargs: Passed to the engine constructor
    :raises ResourceInitError: If ``'gl'`` is requested and unavailable
    """
    backend = (backend or settings.BACKEND).lower()
    if backend not in BACKENDS:
        raise InvalidParameterError(f"Unknown backend {backend!r}, expected one of {', '.join(BACKENDS)}")

    if backend == 'cpu':
        return CpuPipelineEngine(**kwargs)

    from .gl import GLPipelineEngine

    if backend == 'gl':
        return GLPipelineEngine(**kwargs)
    try:
        return GLPipelineEngine(**kwargs)
    except ResourceInitError as e:
        logger.warning(f"OpenGL unavailable, falling back to CPU engine: {e}")
        cpu_kwargs = {k: v for k, v in kwargs.items() if k == 'max_programs'}
        return CpuPipelineEngine(**cpu_kwargs)


__all__ = [
    'PipelineEngine',
    'TickReport',
    'CpuPipelineEngine',
    'compile_cpu_program',
    'ProgramCache',
    'CacheStats',
    'Compiled',
    'Failed',
    'LookupResult',
    'create_engine',
    'BACKENDS',
]
