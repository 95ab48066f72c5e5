"""
Rehab program repository port (interface).
"""

from typing import Any, Dict, List, Optional, Protocol


class ProgramRepository(Protocol):
    """
    Repository interface for rehab programs.

    Programs carry the adherence aggregates (streaks, cached weekly
    summary), so ``update`` is used by the adherence aggregator as well as
    by lifecycle changes.
    """

    def create(self, data: Dict) -> Dict:
        """
        Create a program.

        Args:
            data: Program fields

        Returns:
            The created program dictionary

        Raises:
            PersistenceConflictError: If an active program already exists
                for the same user, area and side
        """
        ...

    def get_by_id(self, program_id: str) -> Optional[Dict]:
        """
        Get a program by ID.

        Args:
            program_id: Program UUID

        Returns:
            Program dictionary if found, None otherwise
        """
        ...

    def get_active(self, user_id: str, area: str, side: str) -> Optional[Dict]:
        """
        Get the user's active program for an area and side.

        Returns:
            Program dictionary if found, None otherwise
        """
        ...

    def list_by_user(self, user_id: str) -> List[Dict]:
        """
        List all programs of a user, newest first.
        """
        ...

    def update(self, program_id: str, updates: Dict[str, Any]) -> Optional[Dict]:
        """
        Update program fields.

        Args:
            program_id: Program UUID
            updates: Fields to update

        Returns:
            Updated program dictionary, None if not found
        """
        ...

    def pause_active(self, user_id: str) -> List[str]:
        """
        Pause every active program of a user.

        Returns:
            IDs of the programs that were paused
        """
        ...
