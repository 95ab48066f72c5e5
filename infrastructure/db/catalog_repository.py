"""
Supabase implementation of CatalogRepository.

Reads the exercise_buckets and exercises tables. Both are reference data
written only by the seeding script.
"""

import logging
from typing import Dict, List

from supabase import Client

from infrastructure.db.base import db_retry, translate_errors

logger = logging.getLogger(__name__)


class SupabaseCatalogRepository:
    """
    Supabase-backed exercise catalog.

    Queries against:
    - exercise_buckets: Buckets keyed by (area, slug)
    - exercises: Exercises with low/moderate dosage JSON
    """

    def __init__(self, client: Client):
        """
        Initialize repository with Supabase client.

        Args:
            client: Authenticated Supabase client
        """
        self._client = client

    @db_retry
    def get_buckets(self) -> List[Dict]:
        response = (
            self._client.table("exercise_buckets")
            .select("*")
            .order("sort_order")
            .execute()
        )
        return response.data

    @db_retry
    def get_exercises(self) -> List[Dict]:
        response = (
            self._client.table("exercises")
            .select("*")
            .order("sort_order")
            .execute()
        )
        return response.data

    @db_retry
    def upsert_bucket(self, data: Dict) -> Dict:
        """
        Insert or update a bucket by slug.

        Args:
            data: Bucket columns including ``slug``

        Returns:
            The stored bucket row
        """
        with translate_errors("exercise_buckets"):
            response = (
                self._client.table("exercise_buckets")
                .upsert(data, on_conflict="slug")
                .execute()
            )
        return response.data[0]

    @db_retry
    def upsert_exercise(self, data: Dict) -> Dict:
        """
        Insert or update an exercise by (bucket_id, name).

        Args:
            data: Exercise columns including ``bucket_id`` and ``name``

        Returns:
            The stored exercise row
        """
        with translate_errors("exercises"):
            response = (
                self._client.table("exercises")
                .upsert(data, on_conflict="bucket_id,name")
                .execute()
            )
        logger.debug(f"Upserted exercise {data.get('name')}")
        return response.data[0]
