"""
Fake rehab log repository for testing.

Enforces the (user_id, program_id, log_date) uniqueness constraint.
"""

from datetime import date, datetime, timezone
from typing import Dict, List, Optional
from uuid import uuid4

from application.exceptions import PersistenceConflictError


def _as_date(value) -> date:
    return value if isinstance(value, date) else date.fromisoformat(value)


class FakeLogRepository:
    """In-memory fake implementation of LogRepository."""

    def __init__(self):
        self._logs: Dict[str, Dict] = {}

    def seed(self, logs: List[Dict]) -> List[Dict]:
        """Insert logs directly, bypassing conflict checks."""
        stored = []
        for log in logs:
            log_id = log.get("id", str(uuid4()))
            row = {
                "stiffness": 0,
                "swelling": None,
                "activity_level": "light",
                "aggravators": [],
                "notes": None,
                "is_onboarding": False,
                **log,
                "id": log_id,
                "log_date": _as_date(log["log_date"]).isoformat(),
            }
            self._logs[log_id] = row
            stored.append(dict(row))
        return stored

    def get_all(self) -> List[Dict]:
        return list(self._logs.values())

    def create(self, data: Dict) -> Dict:
        log_date = _as_date(data["log_date"]).isoformat()
        for log in self._logs.values():
            if (
                log["user_id"] == data["user_id"]
                and log["program_id"] == data["program_id"]
                and log["log_date"] == log_date
            ):
                raise PersistenceConflictError(
                    "Log already exists for this date",
                    constraint="rehab_logs_user_program_date_key",
                )
        log_id = str(uuid4())
        row = {
            **data,
            "id": log_id,
            "log_date": log_date,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        self._logs[log_id] = row
        return dict(row)

    def get_by_id(self, log_id: str) -> Optional[Dict]:
        log = self._logs.get(log_id)
        return dict(log) if log else None

    def update_notes(self, log_id: str, notes: Optional[str]) -> Optional[Dict]:
        log = self._logs.get(log_id)
        if log is None:
            return None
        log["notes"] = notes
        return dict(log)

    def list_for_program(
        self,
        program_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[Dict]:
        rows = [
            dict(log) for log in self._logs.values()
            if log["program_id"] == program_id
            and (start is None or _as_date(log["log_date"]) >= start)
            and (end is None or _as_date(log["log_date"]) <= end)
        ]
        return sorted(rows, key=lambda r: r["log_date"])
