import asyncio
import inspect
from collections.abc import Awaitable, Callable, Hashable
from functools import wraps
from typing import Any

from loguru import logger

from memoizer.cache import CacheBackend, as_backend


class _NoArgs:
    def __repr__(self):
        return "NO_ARGS"


# key used by the default hash when a call has no positional arguments
NO_ARGS = _NoArgs()


def first_argument(*args, **kwargs) -> Hashable:
    return args[0] if args else NO_ARGS


class Eviction:
    """Drops ``key`` from ``cache`` once its entry is both stored and failed.

    An eager task can fail inside ``create_task``, before the memoizer has
    stored it, so whichever of the two happens last does the delete.
    """

    def __init__(self, cache: CacheBackend, key):
        self.cache = cache
        self.key = key
        self.stored = False
        self.failed = False

    def mark_stored(self):
        self.stored = True
        if self.failed:
            self.evict()

    def mark_failed(self):
        self.failed = True
        if self.stored:
            self.evict()

    def evict(self):
        logger.debug("Evicting failed result for key {!r}", self.key)
        self.cache.delete(self.key)


async def evict_on_failure(eviction: Eviction, awaitable: Awaitable):
    """Await ``awaitable``, evicting its cache entry if it fails.

    The exception is re-raised as is, so the task running this coroutine
    ends exactly as the original awaitable did.
    """
    try:
        return await awaitable
    except BaseException:
        eviction.mark_failed()
        raise


class Memoize:
    def __init__(self, hash: Callable[..., Hashable] | None = None, cache=None):
        if hash is not None and not callable(hash):
            raise TypeError(f"hash must be callable, got {type(hash).__name__}")
        self.hash = hash if hash is not None else first_argument
        # validated now, but a default store is only created per function
        self.cache = None if cache is None else as_backend(cache)

    def __call__(self, func: Callable) -> Callable:
        hash_ = self.hash
        cache = self.cache if self.cache is not None else as_backend()
        name = getattr(func, "__qualname__", repr(func))

        @wraps(func)
        def memoizer(*args, **kwargs):
            key = hash_(*args, **kwargs)
            if cache.has(key):
                return cache.get(key)
            result = func(*args, **kwargs)
            eviction = None
            if inspect.isawaitable(result):
                eviction = Eviction(cache, key)
                result = asyncio.get_running_loop().create_task(
                    evict_on_failure(eviction, result)
                )
            cache.set(key, result)
            logger.debug("Stored result of {} for key {!r}", name, key)
            if eviction is not None:
                eviction.mark_stored()
            return result

        memoizer.cache = cache
        return memoizer


def memoize(
    fn: Callable | None = None,
    *,
    hash: Callable[..., Hashable] | None = None,
    cache: Any = None,
):
    """Wrap ``fn`` so repeated calls with the same key reuse the first result.

    The key is ``hash(*args, **kwargs)``, by default the first positional
    argument. Awaitable results are stored as a single shared task, which is
    removed from ``cache`` if it fails. Works as ``memoize(fn)``,
    ``@memoize`` and ``@memoize(hash=..., cache=...)``.
    """
    decorator = Memoize(hash=hash, cache=cache)
    if fn is None:
        return decorator
    return decorator(fn)
