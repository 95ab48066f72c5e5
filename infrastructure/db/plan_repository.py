"""
Supabase implementation of PlanRepository.

rehab_plans is append-only. Unique constraints on rehab_log_id and
parent_plan_id make a duplicate plan for a log, or a fork in the
progression chain, fail as PersistenceConflictError.
"""

from typing import Dict, List, Optional

from supabase import Client

from infrastructure.db.base import db_retry, translate_errors


class SupabasePlanRepository:
    """Supabase-backed rehab plan repository."""

    def __init__(self, client: Client):
        """
        Initialize repository with Supabase client.

        Args:
            client: Authenticated Supabase client
        """
        self._client = client

    @db_retry
    def create(self, data: Dict) -> Dict:
        with translate_errors("rehab_plans"):
            response = (
                self._client.table("rehab_plans")
                .insert(data)
                .execute()
            )
        return response.data[0]

    @db_retry
    def get_by_id(self, plan_id: str) -> Optional[Dict]:
        response = (
            self._client.table("rehab_plans")
            .select("*")
            .eq("id", plan_id)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    @db_retry
    def get_by_log_id(self, log_id: str) -> Optional[Dict]:
        response = (
            self._client.table("rehab_plans")
            .select("*")
            .eq("rehab_log_id", log_id)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    @db_retry
    def get_latest(self, program_id: str, is_initial: Optional[bool] = None) -> Optional[Dict]:
        """
        Most recent plan of a program by generated_at.

        Args:
            program_id: Program UUID
            is_initial: Restrict to initial (True) or log-driven (False) plans

        Returns:
            Plan dictionary, or None if the program has no matching plan
        """
        query = (
            self._client.table("rehab_plans")
            .select("*")
            .eq("program_id", program_id)
        )
        if is_initial is not None:
            query = query.eq("is_initial", is_initial)
        response = query.order("generated_at", desc=True).limit(1).execute()
        return response.data[0] if response.data else None

    @db_retry
    def list_for_program(self, program_id: str) -> List[Dict]:
        response = (
            self._client.table("rehab_plans")
            .select("*")
            .eq("program_id", program_id)
            .order("generated_at")
            .execute()
        )
        return response.data
