"""Compiled-template cache keyed by source content hash.

Two templates with identical text share one CompiledTemplate regardless of
their names, and editing a file yields a new key, so entries never need
invalidating; ``maxsize`` only bounds memory.

Thread-Safety:
Reads are plain dict lookups. A miss compiles outside any lock and
publishes with ``dict.setdefault``, so racing threads may both compile but
all of them end up using the single entry that won.

"""

from __future__ import annotations

import logging
from collections.abc import Callable

from flux.compiler import CompiledTemplate, source_key

logger = logging.getLogger(__name__)


class TemplateCache:
    """Cache of CompiledTemplate objects keyed by SHA-256 of the source.

    Attributes:
        maxsize: Maximum number of entries (None = unbounded). When full,
            the oldest entry is evicted first.
        hits: Lookups served from the cache
        misses: Lookups that required compilation

    Example:
            >>> cache = TemplateCache()
            >>> a = cache.get_or_compile("Hi {{ name }}", compile_template)
            >>> b = cache.get_or_compile("Hi {{ name }}", compile_template)
            >>> a is b
            True

    """

    __slots__ = ("_entries", "hits", "maxsize", "misses")

    def __init__(self, maxsize: int | None = None):
        if maxsize is not None and maxsize < 1:
            raise ValueError(f"maxsize must be positive or None, got {maxsize}")
        self._entries: dict[str, CompiledTemplate] = {}
        self.maxsize = maxsize
        self.hits = 0
        self.misses = 0

    def get(self, source: str) -> CompiledTemplate | None:
        """Return the cached compiled form of ``source``, if any."""
        return self._entries.get(source_key(source))

    def get_or_compile(
        self,
        source: str,
        compile_func: Callable[[str], CompiledTemplate],
    ) -> CompiledTemplate:
        """Return the compiled form of ``source``, compiling on a miss.

        Compilation errors propagate and leave the cache unchanged.
        """
        key = source_key(source)
        compiled = self._entries.get(key)
        if compiled is not None:
            self.hits += 1
            return compiled

        self.misses += 1
        logger.debug("Template cache miss for %s", key[:12])
        compiled = compile_func(source)
        if self.maxsize is not None:
            while len(self._entries) >= self.maxsize:
                oldest = next(iter(self._entries), None)
                if oldest is None:
                    break
                self._entries.pop(oldest, None)
        return self._entries.setdefault(key, compiled)

    def clear(self) -> None:
        self._entries = {}
        self.hits = 0
        self.misses = 0

    def info(self) -> dict[str, int | None]:
        """Cache statistics: size, maxsize, hits and misses."""
        return {
            "size": len(self._entries),
            "maxsize": self.maxsize,
            "hits": self.hits,
            "misses": self.misses,
        }

    def __contains__(self, source: object) -> bool:
        return isinstance(source, str) and source_key(source) in self._entries

    def __len__(self) -> int:
        return len(self._entries)
