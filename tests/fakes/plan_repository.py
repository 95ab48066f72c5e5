"""
Fake rehab plan repository for testing.

Enforces uniqueness of rehab_log_id and parent_plan_id, so forks in the
progression chain fail the same way they do against the database.
"""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import uuid4

from application.exceptions import PersistenceConflictError


def _generated_at(row: Dict) -> datetime:
    value = row["generated_at"]
    return value if isinstance(value, datetime) else datetime.fromisoformat(value)


class FakePlanRepository:
    """In-memory fake implementation of PlanRepository."""

    def __init__(self):
        self._plans: Dict[str, Dict] = {}

    # -------------------------------------------------------------------------
    # Test Helpers
    # -------------------------------------------------------------------------

    def seed(self, plans: List[Dict]) -> None:
        """Insert plans directly, bypassing conflict checks."""
        for plan in plans:
            plan_id = plan.get("id", str(uuid4()))
            self._plans[plan_id] = {**plan, "id": plan_id}

    def get_all(self) -> List[Dict]:
        return list(self._plans.values())

    def count(self) -> int:
        return len(self._plans)

    # -------------------------------------------------------------------------
    # Repository Interface Implementation
    # -------------------------------------------------------------------------

    def create(self, data: Dict) -> Dict:
        for plan in self._plans.values():
            if data.get("rehab_log_id") and plan.get("rehab_log_id") == data["rehab_log_id"]:
                raise PersistenceConflictError(
                    "Plan already exists for log", constraint="rehab_plans_rehab_log_id_key"
                )
            if data.get("parent_plan_id") and plan.get("parent_plan_id") == data["parent_plan_id"]:
                raise PersistenceConflictError(
                    "Parent plan already has a child", constraint="rehab_plans_parent_plan_id_key"
                )
        plan_id = str(uuid4())
        row = {**data, "id": plan_id}
        self._plans[plan_id] = row
        return dict(row)

    def get_by_id(self, plan_id: str) -> Optional[Dict]:
        plan = self._plans.get(plan_id)
        return dict(plan) if plan else None

    def get_by_log_id(self, log_id: str) -> Optional[Dict]:
        for plan in self._plans.values():
            if plan.get("rehab_log_id") == log_id:
                return dict(plan)
        return None

    def get_latest(self, program_id: str, is_initial: Optional[bool] = None) -> Optional[Dict]:
        rows = [
            plan for plan in self._plans.values()
            if plan["program_id"] == program_id
            and (is_initial is None or bool(plan.get("is_initial")) == is_initial)
        ]
        if not rows:
            return None
        return dict(max(rows, key=_generated_at))

    def list_for_program(self, program_id: str) -> List[Dict]:
        rows = [dict(p) for p in self._plans.values() if p["program_id"] == program_id]
        return sorted(rows, key=_generated_at)
