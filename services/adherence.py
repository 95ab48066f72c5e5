"""
Adherence aggregator.

Maintains per-program streak counters on every accepted log and serves a
cached weekly summary that is regenerated at most once per summary period.
Throttling is checked on read and write; no background scheduler is
involved.
"""

import asyncio
import logging
from concurrent.futures import Executor
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from functools import partial
from typing import Any, Callable, Dict, List, Optional

from application.exceptions import NotFoundError
from application.ports import LogRepository, PlanRepository, ProgramRepository
from core.constants import DEFAULT_STREAK_CADENCE_DAYS, DEFAULT_SUMMARY_PERIOD_DAYS
from models.rehab import ProgramAdherence, RehabLog, RehabPlan, RehabProgram, WeeklySummary
from services.program_locks import ProgramLockRegistry

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class StreakUpdate:
    """New streak counters for a program after a log."""

    current_streak: int
    longest_streak: int
    last_logged_at: Optional[date]
    changed: bool


def next_streak(
    current_streak: int,
    longest_streak: int,
    last_logged_at: Optional[date],
    log_date: date,
    cadence_days: int = DEFAULT_STREAK_CADENCE_DAYS,
) -> StreakUpdate:
    """
    Compute streak counters for a newly accepted log.

    - First log, or a gap larger than the cadence: streak restarts at 1
    - 0 < days since last log <= cadence: streak + 1
    - Same day, or a log backfilled before ``last_logged_at``: unchanged,
      and ``last_logged_at`` never moves backwards

    ``longest_streak`` is max(longest, current) and never decreases.
    """
    if last_logged_at is None:
        current = 1
    else:
        delta = (log_date - last_logged_at).days
        if delta <= 0:
            return StreakUpdate(current_streak, longest_streak, last_logged_at, changed=False)
        current = current_streak + 1 if delta <= cadence_days else 1

    return StreakUpdate(
        current_streak=current,
        longest_streak=max(longest_streak, current),
        last_logged_at=log_date,
        changed=True,
    )


@dataclass(frozen=True)
class WeeklyStats:
    """Aggregate inputs for a weekly summary."""

    adherence_rate: float
    days_logged: int
    total_days: int
    logs_this_week: int
    avg_pain_change: Optional[float]
    avg_stiffness_change: Optional[float]
    trend: Optional[str]

    def to_prompt_data(self, current_streak: int) -> Dict[str, Any]:
        return {
            "adherence_rate": self.adherence_rate,
            "current_streak": current_streak,
            "logs_this_week": self.logs_this_week,
            "avg_pain_change": self.avg_pain_change,
            "avg_stiffness_change": self.avg_stiffness_change,
            "trend": self.trend,
        }


def _mean(values: List[int]) -> Optional[float]:
    return sum(values) / len(values) if values else None


def compute_weekly_stats(
    program: RehabProgram,
    logs: List[RehabLog],
    today: date,
    latest_trend: Optional[str],
    period_days: int = DEFAULT_SUMMARY_PERIOD_DAYS,
) -> WeeklyStats:
    """
    Week-over-week statistics for a program.

    This week is the ``period_days`` ending today; the previous week is the
    same span before it. With no previous-week data the change is 0.
    """
    week_start = today - timedelta(days=period_days - 1)
    prev_start = week_start - timedelta(days=period_days)

    this_week = [log for log in logs if week_start <= log.log_date <= today]
    prev_week = [log for log in logs if prev_start <= log.log_date < week_start]

    pain_now = _mean([log.pain for log in this_week])
    stiff_now = _mean([log.stiffness for log in this_week])
    pain_prev = _mean([log.pain for log in prev_week])
    stiff_prev = _mean([log.stiffness for log in prev_week])

    pain_change = None
    stiffness_change = None
    if pain_now is not None:
        pain_change = round(pain_now - (pain_prev if pain_prev is not None else pain_now), 2)
        stiffness_change = round(stiff_now - (stiff_prev if stiff_prev is not None else stiff_now), 2)

    days_logged = len({log.log_date for log in logs if log.log_date <= today})
    total_days = max(1, (today - program.start_date).days + 1)

    return WeeklyStats(
        adherence_rate=round(min(1.0, days_logged / total_days), 4),
        days_logged=days_logged,
        total_days=total_days,
        logs_this_week=len(this_week),
        avg_pain_change=pain_change,
        avg_stiffness_change=stiffness_change,
        trend=latest_trend,
    )


class AdherenceAggregator:
    """
    Streak and weekly summary maintenance for rehab programs.

    Args:
        program_repo: Repository for programs
        log_repo: Repository for logs
        plan_repo: Repository for plans (latest trend)
        summarizer: Object with an async ``summarize_week(data)`` returning
            ``(WeeklySummaryOutput, source)``
        executor: Executor for blocking repository calls
        cadence_days: Max days between logs that continue a streak
        summary_period_days: Summary throttle and week length
        clock: UTC time source, injectable for tests
        locks: Process-wide lock registry; a private one if None
    """

    def __init__(
        self,
        program_repo: ProgramRepository,
        log_repo: LogRepository,
        plan_repo: PlanRepository,
        summarizer: Any,
        executor: Optional[Executor] = None,
        cadence_days: int = DEFAULT_STREAK_CADENCE_DAYS,
        summary_period_days: int = DEFAULT_SUMMARY_PERIOD_DAYS,
        clock: Callable[[], datetime] = utcnow,
        locks: Optional[ProgramLockRegistry] = None,
    ):
        self._programs = program_repo
        self._logs = log_repo
        self._plans = plan_repo
        self._summarizer = summarizer
        self._executor = executor
        self._cadence_days = cadence_days
        self._period = timedelta(days=summary_period_days)
        self._period_days = summary_period_days
        self._clock = clock
        self._locks = locks if locks is not None else ProgramLockRegistry()

    async def _run(self, fn: Callable, *args: Any, **kwargs: Any) -> Any:
        return await asyncio.get_event_loop().run_in_executor(
            self._executor, partial(fn, *args, **kwargs)
        )

    async def _get_program(self, program_id: str) -> RehabProgram:
        row = await self._run(self._programs.get_by_id, program_id)
        if row is None:
            raise NotFoundError("RehabProgram", program_id)
        return RehabProgram.model_validate(row)

    async def record_log(self, program_id: str, log_date: date) -> RehabProgram:
        """
        Update streak counters for an accepted log.

        Args:
            program_id: Program UUID
            log_date: Calendar date of the log

        Returns:
            The program with updated counters
        """
        lock = self._locks.get("adherence", program_id)
        async with lock:
            program = await self._get_program(program_id)
            update = next_streak(
                program.current_streak,
                program.longest_streak,
                program.last_logged_at,
                log_date,
                self._cadence_days,
            )
            if not update.changed:
                logger.info(f"Streak unchanged for program {program_id} (log date {log_date})")
                return program

            row = await self._run(
                self._programs.update,
                program_id,
                {
                    "current_streak": update.current_streak,
                    "longest_streak": update.longest_streak,
                    "last_logged_at": update.last_logged_at.isoformat(),
                },
            )
        logger.info(
            f"Streak for program {program_id}: current={update.current_streak}, "
            f"longest={update.longest_streak}"
        )
        return RehabProgram.model_validate(row)

    def _summary_is_fresh(self, program: RehabProgram, now: datetime) -> bool:
        generated_at = program.last_summary_generated_at
        if generated_at is None or program.last_summary_json is None:
            return False
        if generated_at.tzinfo is None:
            generated_at = generated_at.replace(tzinfo=timezone.utc)
        return now - generated_at < self._period

    async def get_summary(self, program_id: str) -> Dict[str, Any]:
        """
        Return the weekly summary, regenerating it only when stale.

        The stored ``last_summary_json`` is served unchanged while it is
        younger than the summary period.
        """
        lock = self._locks.get("adherence", program_id)
        async with lock:
            program = await self._get_program(program_id)
            now = self._clock()
            if self._summary_is_fresh(program, now):
                return program.last_summary_json

            summary = await self._build_summary(program, now)
            await self._run(
                self._programs.update,
                program_id,
                {
                    "last_summary_json": summary,
                    "last_summary_generated_at": now.isoformat(),
                },
            )
        logger.info(f"Regenerated weekly summary for program {program_id} ({summary['source']})")
        return summary

    async def _build_summary(self, program: RehabProgram, now: datetime) -> Dict[str, Any]:
        today = now.date()
        log_rows = await self._run(self._logs.list_for_program, program.id, None, today)
        logs = [RehabLog.model_validate(row) for row in log_rows]

        plan_row = await self._run(self._plans.get_latest, program.id, False)
        latest_trend = None
        if plan_row is not None:
            plan = RehabPlan.model_validate(plan_row)
            latest_trend = plan.trend.value if plan.trend else None

        stats = compute_weekly_stats(program, logs, today, latest_trend, self._period_days)
        text, source = await self._summarizer.summarize_week(
            stats.to_prompt_data(program.current_streak)
        )

        summary = WeeklySummary(
            summary=text.summary,
            highlights=text.highlights,
            encouragement=text.encouragement,
            emoji=text.emoji,
            source=source,
            adherence_rate=stats.adherence_rate,
            logs_this_week=stats.logs_this_week,
            avg_pain_change=stats.avg_pain_change,
            avg_stiffness_change=stats.avg_stiffness_change,
            trend=latest_trend,
            period_start=today - timedelta(days=self._period_days - 1),
            period_end=today,
        )
        return summary.model_dump(mode="json")

    async def get_program_adherence(self, program_id: str) -> ProgramAdherence:
        """Streak counters plus the (throttled) weekly summary."""
        summary = await self.get_summary(program_id)
        program = await self._get_program(program_id)
        return ProgramAdherence(
            program_id=program.id,
            current_streak=program.current_streak,
            longest_streak=program.longest_streak,
            last_logged_at=program.last_logged_at,
            summary=summary,
            summary_generated_at=program.last_summary_generated_at,
        )
