"""
Supabase implementation of LogRepository.

rehab_logs carries a unique constraint on (user_id, program_id, log_date);
a second log for the same day surfaces as PersistenceConflictError.
"""

from datetime import date
from typing import Dict, List, Optional

from supabase import Client

from infrastructure.db.base import db_retry, translate_errors


class SupabaseLogRepository:
    """Supabase-backed symptom log repository."""

    def __init__(self, client: Client):
        """
        Initialize repository with Supabase client.

        Args:
            client: Authenticated Supabase client
        """
        self._client = client

    @db_retry
    def create(self, data: Dict) -> Dict:
        with translate_errors("rehab_logs"):
            response = (
                self._client.table("rehab_logs")
                .insert(data)
                .execute()
            )
        return response.data[0]

    @db_retry
    def get_by_id(self, log_id: str) -> Optional[Dict]:
        response = (
            self._client.table("rehab_logs")
            .select("*")
            .eq("id", log_id)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    @db_retry
    def update_notes(self, log_id: str, notes: Optional[str]) -> Optional[Dict]:
        response = (
            self._client.table("rehab_logs")
            .update({"notes": notes})
            .eq("id", log_id)
            .execute()
        )
        return response.data[0] if response.data else None

    @db_retry
    def list_for_program(
        self,
        program_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[Dict]:
        """
        List logs of a program, oldest first.

        Args:
            program_id: Program UUID
            start: Inclusive lower bound on log_date
            end: Inclusive upper bound on log_date

        Returns:
            List of log dictionaries ordered by log_date
        """
        query = (
            self._client.table("rehab_logs")
            .select("*")
            .eq("program_id", program_id)
        )
        if start is not None:
            query = query.gte("log_date", start.isoformat())
        if end is not None:
            query = query.lte("log_date", end.isoformat())
        response = query.order("log_date").execute()
        return response.data
