"""
Deduplication cache for AI augmentation requests.

Short-TTL memoization keyed by a fingerprint of the augmentation request.
Identical fingerprints inside the TTL window never trigger a second
external call, and concurrent requests for the same fingerprint share a
single in-flight future instead of racing.

Entries expire lazily on lookup. Only results accepted by ``should_cache``
are stored, so a failed augmentation is retried by the next request rather
than served from cache for five minutes.
"""

import asyncio
import hashlib
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, Sequence, TypeVar

from pydantic import BaseModel

from core.constants import DEFAULT_AI_CACHE_TTL_MS

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, dict):
        return {str(k): _to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    return value


def compute_fingerprint(
    shortlist: Sequence[Any],
    user_context: Any,
    scope_id: str,
) -> str:
    """
    Stable hash of an augmentation request.

    Args:
        shortlist: Shortlist entries (models or dicts)
        user_context: Prompt-relevant context (model or dict)
        scope_id: Program or onboarding profile id

    Returns:
        Hex SHA-256 digest over canonical JSON
    """
    payload = {
        "scope": str(scope_id),
        "shortlist": _to_jsonable(list(shortlist)),
        "context": _to_jsonable(user_context),
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


@dataclass
class CacheEntry(Generic[T]):
    """Cache entry with TTL support."""

    value: T
    created_at: float


class DeduplicationCache:
    """
    Fingerprint-keyed cache with in-flight request sharing.

    Construct one per process and inject it; tests construct their own and
    call ``clear()``.
    """

    DEFAULT_TTL_SECONDS = DEFAULT_AI_CACHE_TTL_MS / 1000

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache.

        Args:
            ttl_seconds: Time-to-live for cached results (default: 300)
            clock: Monotonic time source, injectable for tests
        """
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._in_flight: Dict[str, "asyncio.Future[Any]"] = {}
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0
        self._shared = 0

    def _get_valid(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.created_at > self._ttl:
            del self._entries[key]
            return None
        return entry

    async def get_or_compute(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
        should_cache: Callable[[T], bool] = lambda _: True,
    ) -> T:
        """
        Return the cached value for ``key`` or compute it once.

        If another caller is already computing the same key, await its
        future instead of calling ``factory`` again. The in-flight slot is
        released on completion whether the factory succeeded or raised.

        Args:
            key: Request fingerprint
            factory: Coroutine function producing the value
            should_cache: Predicate deciding whether a result is stored

        Returns:
            The cached, shared or freshly computed value
        """
        async with self._lock:
            entry = self._get_valid(key)
            if entry is not None:
                self._hits += 1
                logger.info(f"Augmentation cache hit for {key[:12]}")
                return entry.value

            future = self._in_flight.get(key)
            if future is not None:
                self._shared += 1
                owner = False
            else:
                self._misses += 1
                future = asyncio.get_running_loop().create_future()
                self._in_flight[key] = future
                owner = True

        if not owner:
            logger.info(f"Joining in-flight augmentation for {key[:12]}")
            return await asyncio.shield(future)

        try:
            value = await factory()
        except BaseException as e:
            async with self._lock:
                self._in_flight.pop(key, None)
            if isinstance(e, asyncio.CancelledError):
                future.cancel()
            elif not future.done():
                future.set_exception(e)
                # Mark retrieved so an unawaited failure is not reported as lost
                future.exception()
            raise

        async with self._lock:
            self._in_flight.pop(key, None)
            if should_cache(value):
                self._entries[key] = CacheEntry(value=value, created_at=self._clock())
        future.set_result(value)
        return value

    def clear(self) -> None:
        """Drop all cached entries and reset counters."""
        self._entries.clear()
        self._hits = 0
        self._misses = 0
        self._shared = 0

    def get_stats(self) -> dict:
        """
        Get cache statistics for monitoring.

        Returns:
            Dictionary with cache stats
        """
        now = self._clock()
        valid = sum(1 for e in self._entries.values() if now - e.created_at <= self._ttl)
        return {
            "total_entries": len(self._entries),
            "valid_entries": valid,
            "in_flight": len(self._in_flight),
            "hits": self._hits,
            "misses": self._misses,
            "shared": self._shared,
            "ttl_seconds": self._ttl,
        }
