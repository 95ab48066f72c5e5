"""
Plan assembler and progression chain builder.

Combines the deterministic shortlist with the augmentation outcome into a
persisted, immutable plan that links to its predecessor for the same
program.

Each trigger runs in three phases:
1. Deterministic: load the log, classify the trend, build the shortlist
2. Augmentation: one gateway call through the dedup cache, no lock held
3. Persistence: under a per-program lock, resolve the parent plan and
   insert exactly one row

Plans move ``pending -> success | failed | skipped`` in memory and only
the terminal state is stored; a stored plan is never updated.
"""

import asyncio
import logging
from concurrent.futures import Executor
from datetime import datetime, timedelta, timezone
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from application.exceptions import (
    NotFoundError,
    PersistenceConflictError,
    ProgressionChainError,
)
from application.ports import LogRepository, PlanRepository, ProfileRepository, ProgramRepository
from core.constants import DEFAULT_AI_TIMEOUT_MS, MAX_CHAIN_DEPTH, TREND_WINDOW_DAYS
from models.onboarding import OnboardingProfile
from models.rehab import (
    AiStatus,
    PlanType,
    RehabLog,
    RehabPlan,
    RehabProgram,
    ShortlistExercise,
    UserContext,
)
from services.dedup_cache import DeduplicationCache, compute_fingerprint
from services.exercise_catalog import ExerciseCatalog
from services.llm.schemas import (
    AugmentationFailure,
    AugmentationResult,
    AugmentationSkipped,
    AugmentationSuccess,
)
from services.program_locks import ProgramLockRegistry
from services.rules import (
    SymptomSnapshot,
    analyze_trend,
    build_shortlist,
    map_pattern_to_buckets,
    summarize_trend,
)

logger = logging.getLogger(__name__)

MAX_AI_ERROR_LENGTH = 500


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def resolve_plan_status(result: AugmentationResult) -> Tuple[PlanType, AiStatus, Optional[str]]:
    """
    Map an augmentation outcome to the stored plan state.

    Returns:
        Tuple of (plan_type, ai_status, ai_error)
    """
    if isinstance(result, AugmentationSuccess):
        return PlanType.AI, AiStatus.SUCCESS, None
    if isinstance(result, AugmentationFailure):
        return PlanType.FALLBACK, AiStatus.FAILED, f"{result.kind}: {result.reason}"[:MAX_AI_ERROR_LENGTH]
    return PlanType.FALLBACK, AiStatus.SKIPPED, None


class PlanAssembler:
    """
    Generates plans for logs and onboarding profiles.

    The dedup cache, lock registry and executor are injected so one
    instance of each can be shared across the process.
    """

    def __init__(
        self,
        plan_repo: PlanRepository,
        log_repo: LogRepository,
        program_repo: ProgramRepository,
        profile_repo: ProfileRepository,
        catalog: ExerciseCatalog,
        augmenter: Any,
        cache: DeduplicationCache,
        executor: Optional[Executor] = None,
        timeout_ms: int = DEFAULT_AI_TIMEOUT_MS,
        clock: Callable[[], datetime] = utcnow,
        locks: Optional[ProgramLockRegistry] = None,
    ):
        """
        Initialize the plan assembler.

        Args:
            plan_repo: Repository for plan persistence
            log_repo: Repository for symptom logs
            program_repo: Repository for programs
            profile_repo: Repository for onboarding profiles
            catalog: Exercise catalog loader
            augmenter: Gateway with an async ``augment(shortlist, context, timeout_ms)``
            cache: Dedup cache for augmentation results
            executor: Executor for blocking repository calls
            timeout_ms: Gateway timeout per call
            clock: UTC time source, injectable for tests
            locks: Process-wide lock registry; a private one if None
        """
        self._plans = plan_repo
        self._logs = log_repo
        self._programs = program_repo
        self._profiles = profile_repo
        self._catalog = catalog
        self._augmenter = augmenter
        self._cache = cache
        self._executor = executor
        self._timeout_ms = timeout_ms
        self._clock = clock
        self._locks = locks if locks is not None else ProgramLockRegistry()

    async def _run(self, fn: Callable, *args: Any, **kwargs: Any) -> Any:
        return await asyncio.get_event_loop().run_in_executor(
            self._executor, partial(fn, *args, **kwargs)
        )

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    async def generate_for_log(self, log_id: str) -> RehabPlan:
        """
        Generate the plan for a symptom log.

        Args:
            log_id: Log UUID

        Returns:
            The persisted plan

        Raises:
            NotFoundError: If the log or its program does not exist
            PersistenceConflictError: If the log already has a plan, or a
                concurrent writer took the same parent
        """
        row = await self._run(self._logs.get_by_id, log_id)
        if row is None:
            raise NotFoundError("RehabLog", log_id)
        log = RehabLog.model_validate(row)

        if await self._run(self._plans.get_by_log_id, log_id) is not None:
            raise PersistenceConflictError(
                f"Plan already exists for log {log_id}", constraint="rehab_plans_rehab_log_id_key"
            )

        program = await self._get_program(log.program_id)

        prior_rows = await self._run(
            self._logs.list_for_program,
            program.id,
            log.log_date - timedelta(days=TREND_WINDOW_DAYS),
            log.log_date,
        )
        analysis = analyze_trend(log, [RehabLog.model_validate(r) for r in prior_rows])
        index = await self._catalog.get_index()

        shortlist = build_shortlist(
            SymptomSnapshot.from_log(log),
            program.area.value,
            index,
            program.risk_level,
            analysis.trend,
        )
        context = UserContext(
            area=program.area.value,
            side=program.side.value,
            pain=log.pain,
            stiffness=log.stiffness,
            swelling=log.swelling,
            activity_level=log.activity_level.value,
            aggravators=log.aggravators,
            risk_level=program.risk_level.value,
            trend=analysis.trend.value if analysis.trend else None,
            trend_summary=summarize_trend(analysis),
            goal=program.metadata.get("goal"),
        )

        result = await self._augment(program.id, shortlist, context)
        return await self._persist(
            program=program,
            shortlist=shortlist,
            context=context,
            result=result,
            rehab_log_id=log.id,
            trend=context.trend,
        )

    async def generate_initial(
        self,
        profile_id: str,
        program_id: Optional[str] = None,
    ) -> RehabPlan:
        """
        Generate the initial (root) plan from an onboarding profile.

        Initial plans have no trend, always use low dosage, and include
        buckets inferred from the profile's AI insight when one exists.

        Args:
            profile_id: Onboarding profile UUID
            program_id: Program to attach to; defaults to the user's active
                program for the profile's area and side

        Returns:
            The persisted initial plan
        """
        row = await self._run(self._profiles.get_by_id, profile_id)
        if row is None:
            raise NotFoundError("OnboardingProfile", profile_id)
        profile = OnboardingProfile.model_validate(row)

        if program_id is None:
            program_row = await self._run(
                self._programs.get_active, profile.user_id, profile.area.value, profile.side.value
            )
            if program_row is None:
                raise NotFoundError("RehabProgram", f"active:{profile.area.value}")
            program = RehabProgram.model_validate(program_row)
        else:
            program = await self._get_program(program_id)

        extra_buckets: Sequence[str] = ()
        if profile.ai_pattern_json:
            mapping = map_pattern_to_buckets(profile.ai_pattern_json, profile.area.value)
            extra_buckets = mapping.buckets
            logger.info(f"Initial plan buckets from insight: {mapping.notes}")

        index = await self._catalog.get_index()
        shortlist = build_shortlist(
            SymptomSnapshot.from_profile(profile),
            profile.area.value,
            index,
            profile.risk_level,
            None,
            extra_buckets=extra_buckets,
            is_initial=True,
        )
        context = UserContext(
            area=profile.area.value,
            side=profile.side.value,
            pain=profile.pain_rest,
            stiffness=profile.stiffness,
            aggravators=profile.aggravators,
            risk_level=profile.risk_level.value,
            goal=profile.goal,
            is_initial=True,
        )

        result = await self._augment(profile.id, shortlist, context)
        return await self._persist(
            program=program,
            shortlist=shortlist,
            context=context,
            result=result,
            onboarding_profile_id=profile.id,
            is_initial=True,
        )

    async def _augment(
        self,
        scope_id: str,
        shortlist: List[ShortlistExercise],
        context: UserContext,
    ) -> AugmentationResult:
        """One gateway call per fingerprint; only successes are cached."""
        shortlist_data = [item.model_dump(mode="json") for item in shortlist]
        context_data = context.model_dump(mode="json")
        key = compute_fingerprint(shortlist_data, context_data, scope_id)

        async def call() -> AugmentationResult:
            try:
                return await self._augmenter.augment(shortlist_data, context_data, self._timeout_ms)
            except Exception as e:
                logger.exception(f"Augmenter raised instead of returning a result: {e}")
                return AugmentationFailure(reason=str(e) or type(e).__name__, kind="failed")

        return await self._cache.get_or_compute(
            key,
            call,
            should_cache=lambda r: isinstance(r, AugmentationSuccess),
        )

    async def _persist(
        self,
        program: RehabProgram,
        shortlist: List[ShortlistExercise],
        context: UserContext,
        result: AugmentationResult,
        rehab_log_id: Optional[str] = None,
        onboarding_profile_id: Optional[str] = None,
        is_initial: bool = False,
        trend: Optional[str] = None,
    ) -> RehabPlan:
        plan_type, ai_status, ai_error = resolve_plan_status(result)
        ai_output = ai_feedback = None
        if isinstance(result, AugmentationSuccess):
            ai_output = result.content.output.model_dump(mode="json")
            if result.content.feedback is not None:
                ai_feedback = result.content.feedback.model_dump(mode="json")
        elif isinstance(result, AugmentationSkipped):
            logger.debug(f"Augmentation skipped: {result.reason}")

        lock = self._locks.get("plan_chain", program.id)
        async with lock:
            parent = None if is_initial else await self._resolve_parent(program.id)
            generated_at = self._clock()
            if parent is not None and generated_at <= parent.generated_at:
                generated_at = parent.generated_at + timedelta(microseconds=1)

            data: Dict[str, Any] = {
                "user_id": program.user_id,
                "program_id": program.id,
                "rehab_log_id": rehab_log_id,
                "onboarding_profile_id": onboarding_profile_id,
                "parent_plan_id": parent.id if parent else None,
                "is_initial": is_initial,
                "plan_type": plan_type.value,
                "ai_status": ai_status.value,
                "ai_error": ai_error,
                "shortlist_json": [item.model_dump(mode="json") for item in shortlist],
                "ai_output_json": ai_output,
                "ai_feedback_json": ai_feedback,
                "user_context_json": context.model_dump(mode="json"),
                "trend": trend,
                "generated_at": generated_at.isoformat(),
            }
            try:
                row = await self._run(self._plans.create, data)
            except PersistenceConflictError as e:
                logger.warning(
                    f"Plan insert conflict for program {program.id} "
                    f"(constraint={e.constraint}): {e}"
                )
                raise

        plan = RehabPlan.model_validate(row)
        logger.info(
            f"Created plan {plan.id} for program {program.id} "
            f"(ai_status={plan.ai_status.value}, parent={plan.parent_plan_id})"
        )
        return plan

    async def _resolve_parent(self, program_id: str) -> Optional[RehabPlan]:
        """Most recent non-initial plan, else the most recent initial plan."""
        row = await self._run(self._plans.get_latest, program_id, False)
        if row is None:
            row = await self._run(self._plans.get_latest, program_id, True)
        return RehabPlan.model_validate(row) if row else None

    async def _get_program(self, program_id: str) -> RehabProgram:
        row = await self._run(self._programs.get_by_id, program_id)
        if row is None:
            raise NotFoundError("RehabProgram", program_id)
        return RehabProgram.model_validate(row)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_plan(self, plan_id: str) -> RehabPlan:
        row = await self._run(self._plans.get_by_id, plan_id)
        if row is None:
            raise NotFoundError("RehabPlan", plan_id)
        return RehabPlan.model_validate(row)

    async def get_latest_plan(self, program_id: str) -> Optional[RehabPlan]:
        """Most recent plan of a program by ``generated_at``, or None."""
        row = await self._run(self._plans.get_latest, program_id, None)
        return RehabPlan.model_validate(row) if row else None

    async def get_plan_chain(
        self,
        program_id: str,
        max_depth: int = MAX_CHAIN_DEPTH,
    ) -> List[RehabPlan]:
        """
        Rebuild the progression chain of a program, oldest first.

        Starts at the chain head (the plan a new log would attach to) and
        follows parent links.

        Raises:
            ProgressionChainError: On a cycle, a dangling parent, a parent
                that is not older than its child, or a chain deeper than
                ``max_depth``
        """
        head = await self._resolve_parent(program_id)
        if head is None:
            return []

        rows = await self._run(self._plans.list_for_program, program_id)
        by_id = {row["id"]: RehabPlan.model_validate(row) for row in rows}
        by_id.setdefault(head.id, head)

        chain = [head]
        seen = {head.id}
        current = head
        while current.parent_plan_id is not None:
            if len(chain) >= max_depth:
                raise ProgressionChainError(
                    f"Chain for program {program_id} exceeds max depth {max_depth}"
                )
            parent = by_id.get(current.parent_plan_id)
            if parent is None:
                raise ProgressionChainError(
                    f"Plan {current.id} references missing parent {current.parent_plan_id}"
                )
            if parent.id in seen:
                raise ProgressionChainError(f"Cycle detected at plan {parent.id}")
            if parent.generated_at >= current.generated_at:
                raise ProgressionChainError(
                    f"Plan {current.id} is not newer than its parent {parent.id}"
                )
            seen.add(parent.id)
            chain.append(parent)
            current = parent

        chain.reverse()
        return chain
