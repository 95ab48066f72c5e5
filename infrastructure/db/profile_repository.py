"""
Supabase implementation of ProfileRepository.

Onboarding profiles are append-only; a re-onboarding creates a new row.
"""

from typing import Any, Dict, Optional

from supabase import Client

from infrastructure.db.base import db_retry, translate_errors


class SupabaseProfileRepository:
    """Supabase-backed onboarding profile repository (user_onboarding_profiles)."""

    def __init__(self, client: Client):
        self._client = client

    @db_retry
    def create(self, data: Dict) -> Dict:
        """
        Create a new onboarding profile.

        Args:
            data: Profile columns including the computed suggestion

        Returns:
            Created profile dictionary with generated ID
        """
        with translate_errors("user_onboarding_profiles"):
            response = (
                self._client.table("user_onboarding_profiles")
                .insert(data)
                .execute()
            )
        return response.data[0]

    @db_retry
    def get_by_id(self, profile_id: str) -> Optional[Dict]:
        response = (
            self._client.table("user_onboarding_profiles")
            .select("*")
            .eq("id", profile_id)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    @db_retry
    def set_ai_pattern(self, profile_id: str, pattern: Dict[str, Any]) -> Optional[Dict]:
        """Attach the AI insight; the only column written after creation."""
        response = (
            self._client.table("user_onboarding_profiles")
            .update({"ai_pattern_json": pattern})
            .eq("id", profile_id)
            .execute()
        )
        return response.data[0] if response.data else None
