"""
Rehab log repository port (interface).
"""

from datetime import date
from typing import Dict, List, Optional, Protocol


class LogRepository(Protocol):
    """
    Repository interface for daily symptom logs.

    Logs are unique per user, program and date. Only ``notes`` may change
    after creation.
    """

    def create(self, data: Dict) -> Dict:
        """
        Create a log.

        Args:
            data: Log fields

        Returns:
            The created log dictionary

        Raises:
            PersistenceConflictError: If a log already exists for the same
                user, program and date
        """
        ...

    def get_by_id(self, log_id: str) -> Optional[Dict]:
        """
        Get a log by ID.

        Returns:
            Log dictionary if found, None otherwise
        """
        ...

    def update_notes(self, log_id: str, notes: Optional[str]) -> Optional[Dict]:
        """
        Replace the notes of a log.

        Returns:
            Updated log dictionary, None if not found
        """
        ...

    def list_for_program(
        self,
        program_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[Dict]:
        """
        List logs of a program, ordered by date ascending.

        Args:
            program_id: Program UUID
            start: Inclusive lower date bound
            end: Inclusive upper date bound

        Returns:
            List of log dictionaries
        """
        ...
