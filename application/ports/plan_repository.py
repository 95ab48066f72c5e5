"""
Rehab plan repository port (interface).

Plans form an append-only table. Each row links to its predecessor via
``parent_plan_id``; the storage layer enforces one plan per log and one
child per parent.
"""

from typing import Dict, List, Optional, Protocol


class PlanRepository(Protocol):
    """
    Repository interface for rehab plans.
    """

    def create(self, data: Dict) -> Dict:
        """
        Insert a plan.

        Args:
            data: Plan fields

        Returns:
            The created plan dictionary

        Raises:
            PersistenceConflictError: If the log already has a plan or the
                parent already has a child
        """
        ...

    def get_by_id(self, plan_id: str) -> Optional[Dict]:
        """
        Get a plan by ID.

        Returns:
            Plan dictionary if found, None otherwise
        """
        ...

    def get_by_log_id(self, log_id: str) -> Optional[Dict]:
        """
        Get the plan generated for a log.

        Returns:
            Plan dictionary if found, None otherwise
        """
        ...

    def get_latest(self, program_id: str, is_initial: Optional[bool] = None) -> Optional[Dict]:
        """
        Get the most recent plan of a program by ``generated_at``.

        Args:
            program_id: Program UUID
            is_initial: Restrict to initial (True) or non-initial (False)
                plans; None for any

        Returns:
            Plan dictionary if found, None otherwise
        """
        ...

    def list_for_program(self, program_id: str) -> List[Dict]:
        """
        List all plans of a program, ordered by ``generated_at`` ascending.
        """
        ...
