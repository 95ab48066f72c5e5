"""
Supabase implementation of UserRepository.

Only the app mode column of the users table is touched here.
"""

from typing import Dict, Optional

from supabase import Client

from infrastructure.db.base import db_retry


class SupabaseUserRepository:
    """Supabase-backed user mode repository."""

    def __init__(self, client: Client):
        self._client = client

    @db_retry
    def get_mode(self, user_id: str) -> Optional[str]:
        response = (
            self._client.table("users")
            .select("mode")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        return response.data[0].get("mode") if response.data else None

    @db_retry
    def set_mode(self, user_id: str, mode: str) -> Dict:
        response = (
            self._client.table("users")
            .upsert({"id": user_id, "mode": mode}, on_conflict="id")
            .execute()
        )
        return response.data[0]
