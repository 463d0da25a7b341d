# FrameStag Engine - Program Cache
"""
LRU cache of compiled transform programs keyed by their exact source text.

A lookup returns a tagged result: ``Compiled(program)`` or ``Failed(reason)``.
A failed source is remembered, so it is compiled once and from then on
redirected to the pinned identity program.

Usage:
    cache = ProgramCache(compiler=ctx_compile, identity_source=PASSTHROUGH_FRAGMENT,
                         on_evict=lambda program: program.release())
    program, result = cache.resolve(stage.source)
    if isinstance(result, Failed):
        report.errors[stage.id] = result.reason
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union
import logging

from framestag.config import settings
from framestag.errors import ProgramCompileError, ResourceInitError

logger = logging.getLogger(__name__)

P = TypeVar('P')


@dataclass(frozen=True)
class Compiled(Generic[P]):
    """A source that compiled and linked."""
    program: P


@dataclass(frozen=True)
class Failed:
    """A source that failed to compile or link."""
    reason: str


LookupResult = Union[Compiled, Failed]


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    failures: int = 0
    evictions: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            'hits': self.hits,
            'misses': self.misses,
            'failures': self.failures,
            'evictions': self.evictions,
        }


class ProgramCache:
    """Bounded LRU cache of compiled programs.

    :param compiler: Callable turning source text into a program. Raises
        ProgramCompileError (or any backend exception) on failure.
    :param identity_source: Source of the passthrough program. Compiled
        eagerly and never evicted.
    :param max_entries: Maximum number of cached sources, failures included.
        Defaults to ``settings.PROGRAM_CACHE_SIZE``.
    :param on_evict: Called with each compiled program dropped from the cache
    """

    def __init__(
        self,
        compiler: Callable[[str], Any],
        identity_source: str,
        max_entries: int | None = None,
        on_evict: Callable[[Any], None] | None = None,
    ):
        if max_entries is None:
            max_entries = settings.PROGRAM_CACHE_SIZE
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self._compiler = compiler
        self._on_evict = on_evict
        self.max_entries = max_entries
        self.stats = CacheStats()
        self._entries: OrderedDict[str, LookupResult] = OrderedDict()

        self.identity_source = identity_source
        try:
            self.identity = self._compile(identity_source)
        except ProgramCompileError as e:
            raise ResourceInitError(f"Identity program failed to compile: {e}") from e

    def _compile(self, source: str) -> Any:
        try:
            return self._compiler(source)
        except ProgramCompileError:
            raise
        except Exception as e:
            raise ProgramCompileError(str(e), source=source) from e

    def lookup(self, source: str) -> LookupResult:
        """Return the cached result for ``source``, compiling on a miss."""
        if source == self.identity_source:
            self.stats.hits += 1
            return Compiled(self.identity)

        entry = self._entries.get(source)
        if entry is not None:
            self._entries.move_to_end(source)
            self.stats.hits += 1
            return entry

        self.stats.misses += 1
        try:
            entry = Compiled(self._compile(source))
        except ProgramCompileError as e:
            self.stats.failures += 1
            logger.warning(f"Program failed to compile, using identity instead: {e}")
            entry = Failed(str(e))

        self._entries[source] = entry
        self._evict()
        return entry

    def resolve(self, source: str) -> tuple[Any, LookupResult]:
        """Program to run for ``source`` plus the lookup result.

        Failed sources resolve to the identity program.
        """
        result = self.lookup(source)
        if isinstance(result, Compiled):
            return result.program, result
        return self.identity, result

    def _evict(self) -> None:
        while len(self._entries) > self.max_entries:
            _, entry = self._entries.popitem(last=False)
            self.stats.evictions += 1
            if isinstance(entry, Compiled):
                self._release(entry.program)

    def _release(self, program: Any) -> None:
        if self._on_evict is not None:
            self._on_evict(program)

    def clear(self) -> None:
        """Drop every entry. The identity program stays."""
        for entry in self._entries.values():
            if isinstance(entry, Compiled):
                self._release(entry.program)
        self._entries.clear()

    def release(self) -> None:
        """Drop every entry including the identity program."""
        self.clear()
        if self.identity is not None:
            self._release(self.identity)
            self.identity = None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, source: object) -> bool:
        return source in self._entries
