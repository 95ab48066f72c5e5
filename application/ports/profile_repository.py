"""
Onboarding profile repository port (interface).
"""

from typing import Any, Dict, Optional, Protocol


class ProfileRepository(Protocol):
    """
    Repository interface for onboarding profiles.

    Profiles are immutable once created; only the AI pattern enrichment
    may be attached later.
    """

    def create(self, data: Dict) -> Dict:
        """
        Create an onboarding profile.

        Args:
            data: Profile fields including the computed suggestion

        Returns:
            The created profile dictionary (with id and created_at)
        """
        ...

    def get_by_id(self, profile_id: str) -> Optional[Dict]:
        """
        Get a profile by ID.

        Args:
            profile_id: Profile UUID

        Returns:
            Profile dictionary if found, None otherwise
        """
        ...

    def set_ai_pattern(self, profile_id: str, pattern: Dict[str, Any]) -> Optional[Dict]:
        """
        Attach the AI pattern insight to a profile.

        Args:
            profile_id: Profile UUID
            pattern: Insight payload

        Returns:
            Updated profile dictionary, None if not found
        """
        ...
