from loguru import logger

from memoizer.cache import CacheBackend, MappingCache, MemoryCache, TheineCache
from memoizer.memoize import NO_ARGS, Memoize, memoize

logger.disable("memoizer")

__all__ = [
    "NO_ARGS",
    "CacheBackend",
    "MappingCache",
    "Memoize",
    "MemoryCache",
    "TheineCache",
    "memoize",
]
