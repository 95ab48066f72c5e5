"""
Unit tests for the RehabEngine facade.

Tests cover onboarding, log recording, explicit plan generation,
ownership checks and mode switching, all over fake repositories.
"""

from datetime import timedelta

import pytest

from application.exceptions import NotFoundError, PersistenceConflictError, ValidationError
from core.constants import PLAN_CONFLICT_ATTEMPTS
from models.onboarding import ModeSuggestion, OnboardingInput, RiskLevel
from models.rehab import ActivityLevel, AppMode, RehabLogCreate
from services.llm.schemas import OnboardingInsight
from tests.conftest import OTHER_USER_ID, TEST_USER_ID, TODAY
from tests.fakes import FakePlanAugmenter


# ---------------------------------------------------------------------------
# Onboarding Tests
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestOnboarding:
    """Tests for evaluate_onboarding and submit_onboarding."""

    def test_evaluate_does_not_persist(self, engine, profile_repo, sample_onboarding):
        suggestion = engine.evaluate_onboarding(OnboardingInput(**sample_onboarding))

        assert suggestion.mode_suggestion == ModeSuggestion.REHAB
        assert suggestion.risk_level == RiskLevel.MEDIUM
        assert profile_repo.get_all() == []

    @pytest.mark.asyncio
    async def test_rehab_submission_starts_program(
        self, engine, sample_onboarding, program_repo, log_repo, user_repo
    ):
        result = await engine.submit_onboarding(TEST_USER_ID, OnboardingInput(**sample_onboarding), TODAY)

        assert result.suggestion.reasoning == "Based on your pain at rest: 5/10 and recent onset"
        assert result.profile.version == 2
        assert result.program_id is not None

        program = program_repo.get_by_id(result.program_id)
        assert program["metadata"]["risk_level"] == "medium"
        assert program["metadata"]["onboarding_profile_id"] == result.profile.id
        assert program["start_date"] == TODAY.isoformat()
        assert program["current_streak"] == 1

        [baseline] = log_repo.get_all()
        assert baseline["is_onboarding"] is True
        assert baseline["pain"] == 5
        assert baseline["activity_level"] == ActivityLevel.REST.value

        assert result.plan.is_initial is True
        assert result.plan.parent_plan_id is None
        assert user_repo.get_mode(TEST_USER_ID) == "rehab"

    @pytest.mark.asyncio
    async def test_maintenance_submission_stores_profile_only(
        self, engine, augmenter, sample_onboarding, program_repo, plan_repo
    ):
        answers = {**sample_onboarding, "pain_rest": 2, "onset": "chronic"}

        result = await engine.submit_onboarding(TEST_USER_ID, OnboardingInput(**answers), TODAY)

        assert result.suggestion.mode_suggestion == ModeSuggestion.MAINTENANCE
        assert result.program_id is None
        assert result.plan is None
        assert program_repo.count() == 0
        assert plan_repo.count() == 0
        assert augmenter.onboarding_calls == 0

    @pytest.mark.asyncio
    async def test_red_flag_submission_is_high_risk(self, engine, sample_onboarding, program_repo):
        answers = {**sample_onboarding, "red_flags": ["night_pain"]}

        result = await engine.submit_onboarding(TEST_USER_ID, OnboardingInput(**answers), TODAY)

        assert result.suggestion.risk_level == RiskLevel.HIGH
        assert program_repo.get_by_id(result.program_id)["metadata"]["risk_level"] == "high"
        assert "isometric_knee" in {item.bucket_slug for item in result.plan.shortlist_json}

    @pytest.mark.asyncio
    async def test_insight_is_stored_and_shapes_initial_plan(self, make_engine, sample_onboarding):
        insight = OnboardingInsight(
            suspected_pattern="Front of knee irritation",
            reasoning=["Pain on stairs"],
            recommended_focus=["isometric loading"],
            reassurance="This usually settles with gentle loading.",
            confidence="high",
        )
        engine = make_engine(augmenter=FakePlanAugmenter(insight=insight))
        answers = {**sample_onboarding, "user_description": "Sore at the front of my knee on stairs"}

        result = await engine.submit_onboarding(TEST_USER_ID, OnboardingInput(**answers), TODAY)

        assert result.profile.ai_pattern_json["suspected_pattern"] == "Front of knee irritation"
        assert "isometric_knee" in {item.bucket_slug for item in result.plan.shortlist_json}

    @pytest.mark.asyncio
    async def test_existing_active_program_is_reused(
        self, engine, sample_onboarding, active_program, program_repo
    ):
        result = await engine.submit_onboarding(TEST_USER_ID, OnboardingInput(**sample_onboarding), TODAY)

        assert result.program_id == active_program["id"]
        assert program_repo.count() == 1

    @pytest.mark.asyncio
    async def test_reonboarding_same_day_adds_second_root_plan(
        self, engine, sample_onboarding, log_repo, plan_repo
    ):
        data = OnboardingInput(**sample_onboarding)
        first = await engine.submit_onboarding(TEST_USER_ID, data, TODAY)

        second = await engine.submit_onboarding(TEST_USER_ID, data, TODAY)

        assert second.program_id == first.program_id
        assert len(log_repo.get_all()) == 1
        assert plan_repo.count() == 2
        assert all(plan["is_initial"] and plan["parent_plan_id"] is None for plan in plan_repo.get_all())


# ---------------------------------------------------------------------------
# Log Recording Tests
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestRecordLog:
    """Tests for record_log and update_log_notes."""

    @pytest.mark.asyncio
    async def test_log_generates_plan_and_updates_adherence(self, engine, active_program):
        data = RehabLogCreate(program_id=active_program["id"], pain=3, stiffness=2, aggravators=["Stairs"])

        result = await engine.record_log(TEST_USER_ID, data, TODAY)

        assert result.log.log_date == TODAY
        assert result.log.aggravators == ["stairs"]
        assert result.plan.rehab_log_id == result.log.id
        assert result.adherence.current_streak == 1
        assert result.adherence.summary is not None

    @pytest.mark.asyncio
    async def test_backfilled_log_is_accepted(self, engine, active_program):
        data = RehabLogCreate(program_id=active_program["id"], log_date=TODAY - timedelta(days=2), pain=4)

        result = await engine.record_log(TEST_USER_ID, data, TODAY)

        assert result.log.log_date == TODAY - timedelta(days=2)

    @pytest.mark.asyncio
    async def test_future_date_is_rejected(self, engine, active_program, log_repo):
        data = RehabLogCreate(program_id=active_program["id"], log_date=TODAY + timedelta(days=1), pain=4)

        with pytest.raises(ValidationError, match="future"):
            await engine.record_log(TEST_USER_ID, data, TODAY)
        assert log_repo.get_all() == []

    @pytest.mark.asyncio
    async def test_paused_program_is_rejected(self, engine, active_program, program_repo):
        program_repo.update(active_program["id"], {"status": "paused"})

        with pytest.raises(ValidationError, match="non-active"):
            await engine.record_log(TEST_USER_ID, RehabLogCreate(program_id=active_program["id"], pain=4), TODAY)

    @pytest.mark.asyncio
    async def test_other_users_program_is_not_found(self, engine, active_program):
        with pytest.raises(NotFoundError):
            await engine.record_log(OTHER_USER_ID, RehabLogCreate(program_id=active_program["id"], pain=4), TODAY)

    @pytest.mark.asyncio
    async def test_second_log_for_same_date_conflicts(self, engine, active_program):
        data = RehabLogCreate(program_id=active_program["id"], pain=4)
        await engine.record_log(TEST_USER_ID, data, TODAY)

        with pytest.raises(PersistenceConflictError):
            await engine.record_log(TEST_USER_ID, data, TODAY)

    @staticmethod
    def _conflicting_plan_inserts(plan_repo, monkeypatch, conflicts: int):
        """Make the next ``conflicts`` plan inserts lose the parent race."""
        create = plan_repo.create
        attempts = []

        def create_after_conflicts(data):
            attempts.append(data)
            if len(attempts) <= conflicts:
                raise PersistenceConflictError(
                    "Parent plan already has a child", constraint="rehab_plans_parent_plan_id_key"
                )
            return create(data)

        monkeypatch.setattr(plan_repo, "create", create_after_conflicts)
        return attempts

    @pytest.mark.asyncio
    async def test_plan_conflict_after_log_is_stored_is_retried(
        self, engine, plan_repo, log_repo, monkeypatch, active_program
    ):
        attempts = self._conflicting_plan_inserts(plan_repo, monkeypatch, conflicts=1)

        result = await engine.record_log(
            TEST_USER_ID, RehabLogCreate(program_id=active_program["id"], pain=4), TODAY
        )

        assert result.plan is not None
        assert result.plan.rehab_log_id == result.log.id
        assert len(attempts) == 2
        assert plan_repo.count() == 1
        assert len(log_repo.get_all()) == 1

    @pytest.mark.asyncio
    async def test_plan_stored_by_concurrent_writer_is_returned(
        self, engine, plan_repo, monkeypatch, active_program
    ):
        create = plan_repo.create

        def raced(data):
            create(data)
            raise PersistenceConflictError(
                "Plan already exists for log", constraint="rehab_plans_rehab_log_id_key"
            )

        monkeypatch.setattr(plan_repo, "create", raced)

        result = await engine.record_log(
            TEST_USER_ID, RehabLogCreate(program_id=active_program["id"], pain=4), TODAY
        )

        assert result.plan is not None
        assert result.plan.rehab_log_id == result.log.id
        assert plan_repo.count() == 1

    @pytest.mark.asyncio
    async def test_log_is_returned_without_plan_when_conflicts_persist(
        self, engine, plan_repo, log_repo, monkeypatch, active_program
    ):
        self._conflicting_plan_inserts(plan_repo, monkeypatch, conflicts=PLAN_CONFLICT_ATTEMPTS)

        result = await engine.record_log(
            TEST_USER_ID, RehabLogCreate(program_id=active_program["id"], pain=4), TODAY
        )

        assert result.plan is None
        assert result.adherence.current_streak == 1
        assert len(log_repo.get_all()) == 1

        plan = await engine.generate_plan(log_id=result.log.id, user_id=TEST_USER_ID)

        assert plan.rehab_log_id == result.log.id
        assert plan_repo.count() == 1

    @pytest.mark.asyncio
    async def test_notes_update(self, engine, seed_log):
        log = seed_log(0)

        updated = await engine.update_log_notes(TEST_USER_ID, log["id"], "Felt better after walking")

        assert updated.notes == "Felt better after walking"

    @pytest.mark.asyncio
    async def test_notes_update_of_other_users_log(self, engine, seed_log):
        log = seed_log(0)

        with pytest.raises(NotFoundError):
            await engine.update_log_notes(OTHER_USER_ID, log["id"], "Not mine")


# ---------------------------------------------------------------------------
# Plan Query Tests
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestPlans:
    """Tests for explicit generation and plan queries."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ids", [{}, {"log_id": "a", "onboarding_profile_id": "b"}])
    async def test_exactly_one_trigger_required(self, engine, ids):
        with pytest.raises(ValidationError, match="exactly one"):
            await engine.generate_plan(**ids)

    @pytest.mark.asyncio
    async def test_generate_for_log(self, engine, seed_log):
        log = seed_log(0)

        plan = await engine.generate_plan(log_id=log["id"], user_id=TEST_USER_ID)

        assert plan.rehab_log_id == log["id"]

    @pytest.mark.asyncio
    async def test_generate_for_other_users_log(self, engine, seed_log):
        log = seed_log(0)

        with pytest.raises(NotFoundError):
            await engine.generate_plan(log_id=log["id"], user_id=OTHER_USER_ID)

    @pytest.mark.asyncio
    async def test_generate_for_onboarding_profile(self, engine, sample_onboarding):
        result = await engine.submit_onboarding(TEST_USER_ID, OnboardingInput(**sample_onboarding), TODAY)

        plan = await engine.generate_plan(onboarding_profile_id=result.profile.id, user_id=TEST_USER_ID)

        assert plan.is_initial is True
        assert plan.id != result.plan.id

    @pytest.mark.asyncio
    async def test_get_plan_hides_other_users_plan(self, engine, seed_log):
        plan = await engine.generate_plan(log_id=seed_log(0)["id"])

        assert (await engine.get_plan(plan.id, TEST_USER_ID)).id == plan.id
        with pytest.raises(NotFoundError):
            await engine.get_plan(plan.id, OTHER_USER_ID)

    @pytest.mark.asyncio
    async def test_latest_plan_and_chain(self, engine, seed_log, active_program):
        first = await engine.generate_plan(log_id=seed_log(1)["id"])
        second = await engine.generate_plan(log_id=seed_log(0)["id"])

        latest = await engine.get_latest_plan(active_program["id"], TEST_USER_ID)
        chain = await engine.get_plan_chain(active_program["id"], TEST_USER_ID)

        assert latest.id == second.id
        assert [p.id for p in chain] == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_program_queries_check_ownership(self, engine, active_program):
        with pytest.raises(NotFoundError):
            await engine.get_latest_plan(active_program["id"], OTHER_USER_ID)
        with pytest.raises(NotFoundError):
            await engine.get_program_adherence(active_program["id"], OTHER_USER_ID)


# ---------------------------------------------------------------------------
# Mode Switch Tests
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestSwitchMode:
    """Tests for app mode switching."""

    @pytest.fixture
    def rehab_user(self, user_repo):
        user_repo.set_mode(TEST_USER_ID, "rehab")
        return TEST_USER_ID

    @pytest.mark.asyncio
    async def test_maintenance_disabled_by_default(self, engine, rehab_user):
        with pytest.raises(ValidationError, match="currently disabled"):
            await engine.switch_mode(rehab_user, AppMode.MAINTENANCE)

    @pytest.mark.asyncio
    async def test_same_mode_is_rejected(self, engine, rehab_user):
        with pytest.raises(ValidationError, match="already in rehab mode"):
            await engine.switch_mode(rehab_user, AppMode.REHAB)

    @pytest.mark.asyncio
    async def test_leaving_rehab_pauses_active_programs(self, engine, rehab_user, active_program, program_repo):
        result = await engine.switch_mode(rehab_user, AppMode.TRAINING)

        assert result.mode == AppMode.TRAINING
        assert result.paused_program_ids == [active_program["id"]]
        assert program_repo.get_by_id(active_program["id"])["status"] == "paused"

    @pytest.mark.asyncio
    async def test_maintenance_when_enabled(self, make_engine, rehab_user, active_program, user_repo):
        engine = make_engine(maintenance_mode_enabled=True)

        result = await engine.switch_mode(rehab_user, AppMode.MAINTENANCE)

        assert result.paused_program_ids == [active_program["id"]]
        assert user_repo.get_mode(rehab_user) == "maintenance"

    @pytest.mark.asyncio
    async def test_entering_rehab_pauses_nothing(self, engine, active_program):
        result = await engine.switch_mode(TEST_USER_ID, AppMode.REHAB)

        assert result.paused_program_ids == []