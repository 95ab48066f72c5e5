"""
Unit tests for the Supabase repository implementations.

The Supabase client is a MagicMock whose query builder returns itself,
so each test checks the calls a repository makes and how it maps rows
and errors.
"""

from datetime import date
from unittest.mock import MagicMock, Mock

import httpx
import pytest
from postgrest.exceptions import APIError

from application.exceptions import PersistenceConflictError
from infrastructure.db import (
    SupabaseLogRepository,
    SupabasePlanRepository,
    SupabaseProgramRepository,
)
from infrastructure.db.base import translate_errors

pytestmark = pytest.mark.unit


def make_client(*results):
    """Client whose query builder chains and whose execute yields ``results``."""
    query = MagicMock()
    for method in ("select", "insert", "update", "upsert", "eq", "gte", "lte", "order", "limit"):
        getattr(query, method).return_value = query
    query.execute.side_effect = list(results)
    client = MagicMock()
    client.table.return_value = query
    return client, query


def unique_violation(constraint: str) -> APIError:
    return APIError({
        "code": "23505",
        "message": f'duplicate key value violates unique constraint "{constraint}"',
        "details": None,
        "hint": None,
    })


# ============================================================================
# Error Translation Tests
# ============================================================================


class TestTranslateErrors:
    """Tests for PostgREST error mapping."""

    def test_unique_violation_becomes_conflict(self):
        with pytest.raises(PersistenceConflictError) as exc_info:
            with translate_errors("rehab_plans"):
                raise unique_violation("rehab_plans_parent_plan_id_key")

        assert exc_info.value.constraint == "rehab_plans_parent_plan_id_key"
        assert exc_info.value.retryable is True

    def test_other_errors_propagate(self):
        error = APIError({"code": "42501", "message": "permission denied", "details": None, "hint": None})

        with pytest.raises(APIError):
            with translate_errors("rehab_plans"):
                raise error


# ============================================================================
# Repository Tests
# ============================================================================


class TestSupabaseLogRepository:
    """Tests for SupabaseLogRepository."""

    def test_create_returns_inserted_row(self):
        client, query = make_client(Mock(data=[{"id": "log-1"}]))

        row = SupabaseLogRepository(client).create({"pain": 3})

        client.table.assert_called_with("rehab_logs")
        query.insert.assert_called_once_with({"pain": 3})
        assert row == {"id": "log-1"}

    def test_duplicate_day_is_conflict(self):
        client, query = make_client(unique_violation("rehab_logs_user_program_date_key"))

        with pytest.raises(PersistenceConflictError):
            SupabaseLogRepository(client).create({"pain": 3})

        assert query.execute.call_count == 1

    def test_get_by_id_missing(self):
        client, _ = make_client(Mock(data=[]))

        assert SupabaseLogRepository(client).get_by_id("missing") is None

    def test_list_for_program_bounds_dates(self):
        client, query = make_client(Mock(data=[]))

        SupabaseLogRepository(client).list_for_program("p1", date(2025, 3, 1), date(2025, 3, 10))

        query.gte.assert_called_once_with("log_date", "2025-03-01")
        query.lte.assert_called_once_with("log_date", "2025-03-10")
        query.order.assert_called_once_with("log_date")

    def test_transport_error_is_retried(self):
        client, query = make_client(httpx.ConnectError("connection reset"), Mock(data=[{"id": "log-1"}]))

        row = SupabaseLogRepository(client).get_by_id("log-1")

        assert row == {"id": "log-1"}
        assert query.execute.call_count == 2

    def test_transport_error_gives_up_after_three_attempts(self):
        errors = [httpx.ConnectError("connection reset")] * 3
        client, query = make_client(*errors)

        with pytest.raises(httpx.ConnectError):
            SupabaseLogRepository(client).get_by_id("log-1")

        assert query.execute.call_count == 3


class TestSupabasePlanRepository:
    """Tests for SupabasePlanRepository."""

    def test_get_latest_filters_initial_and_orders_desc(self):
        client, query = make_client(Mock(data=[{"id": "plan-2"}]))

        row = SupabasePlanRepository(client).get_latest("p1", False)

        query.eq.assert_any_call("program_id", "p1")
        query.eq.assert_any_call("is_initial", False)
        query.order.assert_called_once_with("generated_at", desc=True)
        query.limit.assert_called_once_with(1)
        assert row == {"id": "plan-2"}

    def test_get_latest_without_filter(self):
        client, query = make_client(Mock(data=[]))

        assert SupabasePlanRepository(client).get_latest("p1") is None
        assert query.eq.call_count == 1


class TestSupabaseProgramRepository:
    """Tests for SupabaseProgramRepository."""

    def test_pause_active_returns_ids(self):
        client, query = make_client(Mock(data=[{"id": "p1"}, {"id": "p2"}]))

        paused = SupabaseProgramRepository(client).pause_active("user-1")

        query.update.assert_called_once_with({"status": "paused"})
        query.eq.assert_any_call("status", "active")
        assert paused == ["p1", "p2"]
