"""
Rehab engine facade.

The single entry point used by the API layer. It wires the rule
evaluator, plan assembler and adherence aggregator together and owns the
shared executor for blocking repository calls.

Typical flow for a new log:
    log persisted -> streak updated -> plan generated (shortlist, cached
    augmentation, chained to its parent) -> summary refreshed if stale
"""

import asyncio
import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from datetime import date, datetime, timezone
from functools import partial
from typing import Any, Callable, Optional

from application.exceptions import NotFoundError, PersistenceConflictError, ValidationError
from application.ports import (
    CatalogRepository,
    LogRepository,
    PlanRepository,
    ProfileRepository,
    ProgramRepository,
    UserRepository,
)
from core.constants import (
    DEFAULT_AI_TIMEOUT_MS,
    DEFAULT_STREAK_CADENCE_DAYS,
    DEFAULT_SUMMARY_PERIOD_DAYS,
    PLAN_CONFLICT_ATTEMPTS,
)
from models.onboarding import (
    ONBOARDING_SCHEMA_VERSION,
    ModeSuggestion,
    OnboardingInput,
    OnboardingProfile,
    Suggestion,
)
from models.rehab import (
    ActivityLevel,
    AppMode,
    ModeSwitchResult,
    OnboardingResult,
    ProgramAdherence,
    ProgramStatus,
    RehabLog,
    RehabLogCreate,
    RehabLogResult,
    RehabPlan,
    RehabProgram,
)
from services.adherence import AdherenceAggregator
from services.dedup_cache import DeduplicationCache
from services.exercise_catalog import ExerciseCatalog
from services.plan_assembler import PlanAssembler
from services.program_locks import ProgramLockRegistry
from services.rules import suggest_mode

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RehabEngine:
    """
    Plan generation and adaptive progression engine.

    Ownership checks take an optional ``user_id``; resources owned by
    another user are reported as not found.
    """

    def __init__(
        self,
        profile_repo: ProfileRepository,
        program_repo: ProgramRepository,
        log_repo: LogRepository,
        plan_repo: PlanRepository,
        user_repo: UserRepository,
        catalog_repo: CatalogRepository,
        augmenter: Any,
        cache: DeduplicationCache,
        timeout_ms: int = DEFAULT_AI_TIMEOUT_MS,
        streak_cadence_days: int = DEFAULT_STREAK_CADENCE_DAYS,
        summary_period_days: int = DEFAULT_SUMMARY_PERIOD_DAYS,
        maintenance_mode_enabled: bool = False,
        catalog: Optional[ExerciseCatalog] = None,
        executor: Optional[Executor] = None,
        clock: Callable[[], datetime] = utcnow,
        locks: Optional[ProgramLockRegistry] = None,
    ):
        """
        Initialize the engine.

        Args:
            profile_repo: Repository for onboarding profiles
            program_repo: Repository for programs
            log_repo: Repository for logs
            plan_repo: Repository for plans
            user_repo: Repository for user mode
            catalog_repo: Repository for the exercise catalog
            augmenter: AI gateway (OpenAIPlanAugmenter or a fake)
            cache: Process-wide dedup cache for augmentation results
            timeout_ms: Gateway timeout per call
            streak_cadence_days: Max days between logs that continue a streak
            summary_period_days: Weekly summary throttle
            maintenance_mode_enabled: Whether users may switch to maintenance
            catalog: Preloaded catalog loader (built from catalog_repo if None)
            executor: Executor for blocking repository calls (owned if None)
            clock: UTC time source, injectable for tests
            locks: Process-wide per-program locks shared by every engine
                (private to this engine if None)
        """
        self._profiles = profile_repo
        self._programs = program_repo
        self._logs = log_repo
        self._plans = plan_repo
        self._users = user_repo
        self._augmenter = augmenter
        self._timeout_ms = timeout_ms
        self._maintenance_mode_enabled = maintenance_mode_enabled
        self._clock = clock
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=4, thread_name_prefix="rehab_engine_"
        )

        locks = locks if locks is not None else ProgramLockRegistry()
        self._catalog = catalog or ExerciseCatalog(catalog_repo, executor=self._executor)
        self.assembler = PlanAssembler(
            plan_repo=plan_repo,
            log_repo=log_repo,
            program_repo=program_repo,
            profile_repo=profile_repo,
            catalog=self._catalog,
            augmenter=augmenter,
            cache=cache,
            executor=self._executor,
            timeout_ms=timeout_ms,
            clock=clock,
            locks=locks,
        )
        self.adherence = AdherenceAggregator(
            program_repo=program_repo,
            log_repo=log_repo,
            plan_repo=plan_repo,
            summarizer=augmenter,
            executor=self._executor,
            cadence_days=streak_cadence_days,
            summary_period_days=summary_period_days,
            clock=clock,
            locks=locks,
        )

    async def _run(self, fn: Callable, *args: Any, **kwargs: Any) -> Any:
        return await asyncio.get_event_loop().run_in_executor(
            self._executor, partial(fn, *args, **kwargs)
        )

    def shutdown(self) -> None:
        """Release the executor threads if this engine created them."""
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    # -------------------------------------------------------------------------
    # Onboarding
    # -------------------------------------------------------------------------

    def evaluate_onboarding(self, data: OnboardingInput) -> Suggestion:
        """Deterministic mode suggestion for onboarding answers."""
        return suggest_mode(data)

    async def submit_onboarding(
        self,
        user_id: str,
        data: OnboardingInput,
        today: date,
    ) -> OnboardingResult:
        """
        Persist an onboarding submission and, for rehab, start the program.

        Steps for a rehab suggestion:
        1. Store the profile with the computed suggestion
        2. Attach the optional AI insight (bounded, never blocks)
        3. Create or reuse the active program for the area and side
        4. Record the baseline log for today and start the streak
        5. Generate the initial plan

        Returns:
            OnboardingResult with the profile, suggestion and initial plan
        """
        suggestion = suggest_mode(data)
        profile_row = await self._run(
            self._profiles.create,
            {
                **data.model_dump(mode="json"),
                "user_id": user_id,
                "mode_suggestion": suggestion.mode_suggestion.value,
                "risk_level": suggestion.risk_level.value,
                "reasoning": suggestion.reasoning,
                "version": ONBOARDING_SCHEMA_VERSION,
            },
        )
        profile = OnboardingProfile.model_validate(profile_row)
        logger.info(
            f"Onboarding profile {profile.id} for user {user_id}: "
            f"{suggestion.mode_suggestion.value}/{suggestion.risk_level.value}"
        )

        if suggestion.mode_suggestion != ModeSuggestion.REHAB:
            return OnboardingResult(profile=profile, suggestion=suggestion)

        insight = await self._augmenter.analyze_onboarding(
            profile.model_dump(mode="json"), self._timeout_ms
        )
        if insight is not None:
            updated = await self._run(
                self._profiles.set_ai_pattern, profile.id, insight.model_dump(mode="json")
            )
            if updated is not None:
                profile = OnboardingProfile.model_validate(updated)

        program = await self._get_or_create_program(profile, suggestion, today)
        await self._users_set_mode(user_id, AppMode.REHAB)

        try:
            await self._run(
                self._logs.create,
                {
                    "user_id": user_id,
                    "program_id": program.id,
                    "log_date": today.isoformat(),
                    "pain": data.pain_rest,
                    "stiffness": data.stiffness,
                    "activity_level": ActivityLevel.REST.value,
                    "aggravators": data.aggravators,
                    "notes": None,
                    "is_onboarding": True,
                },
            )
            await self.adherence.record_log(program.id, today)
        except PersistenceConflictError:
            logger.warning(f"Baseline log for program {program.id} on {today} already exists")

        plan = await self.assembler.generate_initial(profile.id, program.id)
        return OnboardingResult(
            profile=profile,
            suggestion=suggestion,
            program_id=program.id,
            plan=plan,
        )

    async def _get_or_create_program(
        self,
        profile: OnboardingProfile,
        suggestion: Suggestion,
        today: date,
    ) -> RehabProgram:
        area, side = profile.area.value, profile.side.value
        row = await self._run(self._programs.get_active, profile.user_id, area, side)
        if row is not None:
            return RehabProgram.model_validate(row)

        data = {
            "user_id": profile.user_id,
            "area": area,
            "side": side,
            "status": ProgramStatus.ACTIVE.value,
            "start_date": today.isoformat(),
            "metadata": {
                "risk_level": suggestion.risk_level.value,
                "onboarding_profile_id": profile.id,
                "goal": profile.goal,
            },
        }
        try:
            row = await self._run(self._programs.create, data)
        except PersistenceConflictError:
            # Concurrent onboarding created it first
            row = await self._run(self._programs.get_active, profile.user_id, area, side)
            if row is None:
                raise
        program = RehabProgram.model_validate(row)
        logger.info(f"Started rehab program {program.id} ({area}/{side}) for {profile.user_id}")
        return program

    async def _users_set_mode(self, user_id: str, mode: AppMode) -> None:
        current = await self._run(self._users.get_mode, user_id)
        if current != mode.value:
            await self._run(self._users.set_mode, user_id, mode.value)

    # -------------------------------------------------------------------------
    # Logs
    # -------------------------------------------------------------------------

    async def record_log(
        self,
        user_id: str,
        data: RehabLogCreate,
        today: date,
    ) -> RehabLogResult:
        """
        Record a symptom log and generate its plan.

        Args:
            user_id: Authenticated user
            data: Validated log input
            today: The user's local date, used when ``data.log_date`` is unset

        Returns:
            RehabLogResult with the log, its plan and adherence. The plan is
            None when its insert kept conflicting after the log was stored.

        Raises:
            NotFoundError: If the program does not exist or is not the user's
            ValidationError: If the program is not active or the date is in
                the future
            PersistenceConflictError: If a log already exists for that date
        """
        program = await self._get_owned_program(data.program_id, user_id)
        if program.status != ProgramStatus.ACTIVE:
            raise ValidationError("Cannot log to a non-active program")

        log_date = data.log_date or today
        if log_date > today:
            raise ValidationError("Log date cannot be in the future")

        row = await self._run(
            self._logs.create,
            {
                **data.model_dump(mode="json", exclude={"log_date"}),
                "user_id": user_id,
                "log_date": log_date.isoformat(),
                "is_onboarding": False,
            },
        )
        log = RehabLog.model_validate(row)
        logger.info(f"Rehab log {log.id} created for program {program.id} on {log_date}")

        await self.adherence.record_log(program.id, log_date)
        plan = await self._generate_log_plan(log.id)
        adherence = await self.adherence.get_program_adherence(program.id)
        return RehabLogResult(log=log, plan=plan, adherence=adherence)

    async def _generate_log_plan(self, log_id: str) -> Optional[RehabPlan]:
        """
        Generate the plan for a stored log, retrying chain conflicts.

        The log is already committed, so a conflict is not surfaced to the
        caller: the plan is re-resolved against the new chain head, or left
        for ``generate_plan`` after the last attempt.
        """
        for attempt in range(1, PLAN_CONFLICT_ATTEMPTS + 1):
            try:
                return await self.assembler.generate_for_log(log_id)
            except PersistenceConflictError as e:
                existing = await self._run(self._plans.get_by_log_id, log_id)
                if existing is not None:
                    return RehabPlan.model_validate(existing)
                logger.warning(
                    f"Plan for log {log_id} conflicted on {e.constraint} "
                    f"(attempt {attempt}/{PLAN_CONFLICT_ATTEMPTS})"
                )
        logger.warning(f"Plan for log {log_id} deferred after {PLAN_CONFLICT_ATTEMPTS} conflicts")
        return None

    async def update_log_notes(
        self,
        user_id: str,
        log_id: str,
        notes: Optional[str],
    ) -> RehabLog:
        """Replace the notes of a log; the only permitted log edit."""
        row = await self._run(self._logs.get_by_id, log_id)
        if row is None or row.get("user_id") != user_id:
            raise NotFoundError("RehabLog", log_id)
        updated = await self._run(self._logs.update_notes, log_id, notes)
        if updated is None:
            raise NotFoundError("RehabLog", log_id)
        return RehabLog.model_validate(updated)

    # -------------------------------------------------------------------------
    # Plans
    # -------------------------------------------------------------------------

    async def generate_plan(
        self,
        log_id: Optional[str] = None,
        onboarding_profile_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> RehabPlan:
        """
        Generate a plan for a log or an onboarding profile.

        A plan is always returned when augmentation fails; only validation
        and persistence errors propagate.

        Raises:
            ValidationError: Unless exactly one id is given
            NotFoundError: If the referenced record does not exist
            PersistenceConflictError: On a uniqueness conflict (retryable)
        """
        if (log_id is None) == (onboarding_profile_id is None):
            raise ValidationError("Provide exactly one of log_id or onboarding_profile_id")

        if log_id is not None:
            if user_id is not None:
                row = await self._run(self._logs.get_by_id, log_id)
                if row is None or row.get("user_id") != user_id:
                    raise NotFoundError("RehabLog", log_id)
            return await self.assembler.generate_for_log(log_id)

        if user_id is not None:
            row = await self._run(self._profiles.get_by_id, onboarding_profile_id)
            if row is None or row.get("user_id") != user_id:
                raise NotFoundError("OnboardingProfile", onboarding_profile_id)
        return await self.assembler.generate_initial(onboarding_profile_id)

    async def get_plan(self, plan_id: str, user_id: Optional[str] = None) -> RehabPlan:
        plan = await self.assembler.get_plan(plan_id)
        if user_id is not None and plan.user_id != user_id:
            raise NotFoundError("RehabPlan", plan_id)
        return plan

    async def get_latest_plan(
        self,
        program_id: str,
        user_id: Optional[str] = None,
    ) -> Optional[RehabPlan]:
        await self._get_owned_program(program_id, user_id)
        return await self.assembler.get_latest_plan(program_id)

    async def get_plan_chain(self, program_id: str, user_id: Optional[str] = None):
        await self._get_owned_program(program_id, user_id)
        return await self.assembler.get_plan_chain(program_id)

    # -------------------------------------------------------------------------
    # Programs
    # -------------------------------------------------------------------------

    async def get_program_adherence(
        self,
        program_id: str,
        user_id: Optional[str] = None,
    ) -> ProgramAdherence:
        await self._get_owned_program(program_id, user_id)
        return await self.adherence.get_program_adherence(program_id)

    async def _get_owned_program(self, program_id: str, user_id: Optional[str]) -> RehabProgram:
        row = await self._run(self._programs.get_by_id, program_id)
        if row is None or (user_id is not None and row.get("user_id") != user_id):
            raise NotFoundError("RehabProgram", program_id)
        return RehabProgram.model_validate(row)

    # -------------------------------------------------------------------------
    # Mode
    # -------------------------------------------------------------------------

    async def switch_mode(self, user_id: str, mode: AppMode) -> ModeSwitchResult:
        """
        Switch the user's app mode.

        Leaving rehab auto-pauses every active program of the user.

        Raises:
            ValidationError: If the mode is disabled or already current
        """
        if mode == AppMode.MAINTENANCE and not self._maintenance_mode_enabled:
            raise ValidationError("Maintenance mode is currently disabled")

        previous = await self._run(self._users.get_mode, user_id)
        if previous == mode.value:
            raise ValidationError(f"You are already in {mode.value} mode")

        paused = []
        if previous == AppMode.REHAB.value:
            paused = await self._run(self._programs.pause_active, user_id)
            if paused:
                logger.info(f"Auto-paused {len(paused)} rehab program(s) for user {user_id}")

        await self._run(self._users.set_mode, user_id, mode.value)
        logger.info(f"User {user_id} mode: {previous} -> {mode.value}")
        return ModeSwitchResult(mode=mode, paused_program_ids=paused)
