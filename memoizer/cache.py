from collections.abc import Hashable, MutableMapping
from datetime import timedelta
from typing import Any, Protocol, runtime_checkable

import theine

BACKEND_METHODS = ("has", "get", "set", "delete")


@runtime_checkable
class CacheBackend(Protocol):
    def has(self, key: Hashable) -> bool: ...

    def get(self, key: Hashable) -> Any: ...

    def set(self, key: Hashable, value: Any) -> None: ...

    def delete(self, key: Hashable) -> None: ...


class MemoryCache:
    """Unbounded process-local store. Entries live until deleted."""

    def __init__(self):
        self.store = {}

    def has(self, key):
        return key in self.store

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value):
        self.store[key] = value

    def delete(self, key):
        if key in self.store:
            del self.store[key]

    def __contains__(self, key):
        return self.has(key)

    def __len__(self):
        return len(self.store)


class MappingCache:
    """Exposes a ``MutableMapping`` (dict, cachetools caches, ...) as a backend.

    Whatever eviction the mapping does on its own is left untouched.
    """

    def __init__(self, mapping: MutableMapping):
        self.mapping = mapping

    def has(self, key):
        return key in self.mapping

    def get(self, key):
        return self.mapping[key]

    def set(self, key, value):
        self.mapping[key] = value

    def delete(self, key):
        self.mapping.pop(key, None)


class TheineCache:
    """Bounded backend on top of theine's W-TinyLFU cache.

    A hit found by ``has`` is kept for the ``get`` that follows it, so each
    access counts once in theine's frequency sketch.
    """

    def __init__(self, size: int, ttl: timedelta | None = None):
        self.cache = theine.Cache(size)
        self.ttl = ttl
        self.peeked = None

    def has(self, key) -> bool:
        value, found = self.cache.get(key)
        self.peeked = (key, value) if found else None
        return found

    def get(self, key):
        if self.peeked is not None and self.peeked[0] is key:
            _, value = self.peeked
            self.peeked = None
            return value
        value, _ = self.cache.get(key)
        return value

    def set(self, key, value) -> None:
        self.peeked = None
        self.cache.set(key, value, self.ttl)

    def delete(self, key) -> None:
        self.peeked = None
        self.cache.delete(key)


def as_backend(cache=None) -> CacheBackend:
    if cache is None:
        return MemoryCache()
    if all(callable(getattr(cache, name, None)) for name in BACKEND_METHODS):
        return cache
    if isinstance(cache, MutableMapping):
        return MappingCache(cache)
    raise TypeError(
        f"cache must implement {', '.join(BACKEND_METHODS)} or be a MutableMapping, "
        f"got {type(cache).__name__}"
    )
