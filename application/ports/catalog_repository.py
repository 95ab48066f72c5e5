"""
Exercise catalog repository port (interface).

Buckets and exercises are read-only reference data for plan generation.
The upsert methods exist for the seeding script only.
"""

from typing import Dict, List, Protocol


class CatalogRepository(Protocol):
    """
    Repository interface for exercise buckets and exercises.

    Rows are returned unfiltered (inactive rows included); filtering by the
    ``is_active`` flags is the catalog index's job.
    """

    def get_buckets(self) -> List[Dict]:
        """
        Get all exercise buckets.

        Returns:
            List of bucket dictionaries
        """
        ...

    def get_exercises(self) -> List[Dict]:
        """
        Get all exercises.

        Returns:
            List of exercise dictionaries
        """
        ...

    def upsert_bucket(self, data: Dict) -> Dict:
        """
        Create or update a bucket keyed by its slug.

        Args:
            data: Bucket fields (area, slug, label, is_active, sort_order)

        Returns:
            The stored bucket dictionary
        """
        ...

    def upsert_exercise(self, data: Dict) -> Dict:
        """
        Create or update an exercise keyed by bucket and name.

        Args:
            data: Exercise fields

        Returns:
            The stored exercise dictionary
        """
        ...
