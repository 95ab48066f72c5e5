"""
Supabase implementation of ProgramRepository.

A partial unique index on rehab_programs(user_id, area, side) where
status = 'active' keeps at most one active program per area and side.
"""

import logging
from typing import Any, Dict, List, Optional

from supabase import Client

from infrastructure.db.base import db_retry, translate_errors

logger = logging.getLogger(__name__)


class SupabaseProgramRepository:
    """
    Supabase-backed rehab program repository.

    Queries against rehab_programs, which also stores the streak counters
    and the cached weekly summary.
    """

    def __init__(self, client: Client):
        """
        Initialize repository with Supabase client.

        Args:
            client: Authenticated Supabase client
        """
        self._client = client

    @db_retry
    def create(self, data: Dict) -> Dict:
        """
        Create a new program.

        Args:
            data: Program data dictionary

        Returns:
            Created program dictionary with generated ID

        Raises:
            PersistenceConflictError: If an active program already exists
                for the same user, area and side
        """
        with translate_errors("rehab_programs"):
            response = (
                self._client.table("rehab_programs")
                .insert(data)
                .execute()
            )
        return response.data[0]

    @db_retry
    def get_by_id(self, program_id: str) -> Optional[Dict]:
        response = (
            self._client.table("rehab_programs")
            .select("*")
            .eq("id", program_id)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    @db_retry
    def get_active(self, user_id: str, area: str, side: str) -> Optional[Dict]:
        response = (
            self._client.table("rehab_programs")
            .select("*")
            .eq("user_id", user_id)
            .eq("area", area)
            .eq("side", side)
            .eq("status", "active")
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    @db_retry
    def list_by_user(self, user_id: str) -> List[Dict]:
        response = (
            self._client.table("rehab_programs")
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
        return response.data

    @db_retry
    def update(self, program_id: str, updates: Dict[str, Any]) -> Optional[Dict]:
        """
        Update program columns.

        Args:
            program_id: The program's UUID as string
            updates: Columns to set

        Returns:
            Updated program dictionary, or None if not found
        """
        response = (
            self._client.table("rehab_programs")
            .update(updates)
            .eq("id", program_id)
            .execute()
        )
        return response.data[0] if response.data else None

    @db_retry
    def pause_active(self, user_id: str) -> List[str]:
        """Pause every active program of a user and return their IDs."""
        response = (
            self._client.table("rehab_programs")
            .update({"status": "paused"})
            .eq("user_id", user_id)
            .eq("status", "active")
            .execute()
        )
        paused = [row["id"] for row in response.data]
        if paused:
            logger.info(f"Paused programs {paused} for user {user_id}")
        return paused
