"""
Exercise catalog index.

Read-only lookup from bucket slugs to candidate exercises. Built from a
snapshot of the catalog tables; inactive buckets and inactive exercises
are dropped at build time so rule evaluation never sees them.
"""

import asyncio
import logging
import time
from concurrent.futures import Executor
from typing import Dict, Iterable, List, Optional

from application.ports import CatalogRepository
from models.rehab import Exercise, ExerciseBucket

logger = logging.getLogger(__name__)


class ExerciseCatalogIndex:
    """
    In-memory index of active buckets and their active exercises.

    Exercises under each bucket are ordered by ``sort_order`` then ``id``.
    """

    def __init__(
        self,
        buckets: Iterable[ExerciseBucket],
        exercises: Iterable[Exercise],
    ):
        self._buckets: Dict[str, ExerciseBucket] = {}
        by_id: Dict[int, ExerciseBucket] = {}
        for bucket in buckets:
            if not bucket.is_active:
                continue
            self._buckets[bucket.slug] = bucket
            by_id[bucket.id] = bucket

        self._exercises: Dict[str, List[Exercise]] = {slug: [] for slug in self._buckets}
        for exercise in exercises:
            bucket = by_id.get(exercise.bucket_id)
            if bucket is None or not exercise.is_active:
                continue
            self._exercises[bucket.slug].append(exercise)

        for items in self._exercises.values():
            items.sort(key=lambda e: (e.sort_order, e.id))

    @classmethod
    def from_rows(cls, bucket_rows: List[Dict], exercise_rows: List[Dict]) -> "ExerciseCatalogIndex":
        """Build an index from raw repository rows."""
        return cls(
            [ExerciseBucket.model_validate(row) for row in bucket_rows],
            [Exercise.model_validate(row) for row in exercise_rows],
        )

    def bucket(self, slug: str) -> Optional[ExerciseBucket]:
        """Active bucket by slug, None if missing or inactive."""
        return self._buckets.get(slug)

    def active_exercises(self, slug: str) -> List[Exercise]:
        """Active exercises of a bucket in rank order."""
        return list(self._exercises.get(slug, []))

    def __len__(self) -> int:
        return sum(len(items) for items in self._exercises.values())


class ExerciseCatalog:
    """
    Loads and caches an ExerciseCatalogIndex from the catalog repository.

    The catalog is static-ish reference data, so the index is rebuilt at
    most once per ``ttl_seconds``.
    """

    CACHE_TTL_SECONDS = 300

    def __init__(
        self,
        repository: CatalogRepository,
        executor: Optional[Executor] = None,
        ttl_seconds: float = CACHE_TTL_SECONDS,
    ):
        self._repo = repository
        self._executor = executor
        self._ttl = ttl_seconds
        self._index: Optional[ExerciseCatalogIndex] = None
        self._loaded_at = 0.0

    def load(self) -> ExerciseCatalogIndex:
        """Build a fresh index from the repository (blocking)."""
        index = ExerciseCatalogIndex.from_rows(
            self._repo.get_buckets(),
            self._repo.get_exercises(),
        )
        logger.debug(f"Loaded exercise catalog with {len(index)} active exercises")
        return index

    async def get_index(self) -> ExerciseCatalogIndex:
        """Cached index, reloading on the executor when stale."""
        now = time.monotonic()
        if self._index is not None and now - self._loaded_at < self._ttl:
            return self._index

        loop = asyncio.get_running_loop()
        self._index = await loop.run_in_executor(self._executor, self.load)
        self._loaded_at = now
        return self._index

    def invalidate(self) -> None:
        """Drop the cached index so the next lookup reloads it."""
        self._index = None
