"""
Rehab program, log, plan and catalog models.

Repositories exchange plain row dictionaries; services validate them into
these models before applying any rules.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from core.constants import MAX_NOTES_LENGTH
from core.sanitization import sanitize_tag_list, sanitize_user_input
from models.onboarding import BodyArea, OnboardingProfile, RiskLevel, Side, Suggestion


class ProgramStatus(str, Enum):
    """Rehab program lifecycle status."""

    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"


class ActivityLevel(str, Enum):
    """Self-reported activity level for a log day."""

    REST = "rest"
    LIGHT = "light"
    MODERATE = "moderate"
    HEAVY = "heavy"


class PlanType(str, Enum):
    """Provenance of a plan's exercise content."""

    AI = "ai"
    FALLBACK = "fallback"
    MANUAL = "manual"


class AiStatus(str, Enum):
    """Outcome of the augmentation attempt for a plan."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class Trend(str, Enum):
    """Symptom trajectory over the recent log window."""

    IMPROVING = "improving"
    STABLE = "stable"
    WORSENING = "worsening"


class DosageLevel(str, Enum):
    """Which dosage column of an exercise applies."""

    LOW = "low"
    MOD = "mod"


class AppMode(str, Enum):
    """Top-level app mode for a user."""

    REHAB = "rehab"
    MAINTENANCE = "maintenance"
    TRAINING = "training"


# =============================================================================
# Catalog
# =============================================================================


class Dosage(BaseModel):
    """Prescription for one exercise. All fields are optional."""

    sets: Optional[int] = Field(None, ge=1, le=20)
    reps: Optional[int] = Field(None, ge=1, le=100)
    hold_seconds: Optional[int] = Field(None, ge=1, le=600)
    time_seconds: Optional[int] = Field(None, ge=1, le=3600)
    rest_seconds: Optional[int] = Field(None, ge=0, le=600)
    notes: Optional[str] = None


class ExerciseBucket(BaseModel):
    """A symptom-tag category of exercises, e.g. knee mobility."""

    id: int
    area: str
    slug: str
    label: str
    is_active: bool = True
    sort_order: int = 0


class Exercise(BaseModel):
    """A catalog exercise belonging to exactly one bucket."""

    id: int
    bucket_id: int
    name: str
    description: Optional[str] = None
    dosage_low_json: Dosage = Field(default_factory=Dosage)
    dosage_mod_json: Dosage = Field(default_factory=Dosage)
    safety_notes: Optional[str] = None
    is_active: bool = True
    sort_order: int = 0

    @field_validator("dosage_low_json", "dosage_mod_json", mode="before")
    @classmethod
    def default_empty_dosage(cls, v: Any) -> Any:
        return v if v is not None else {}


class ShortlistExercise(BaseModel):
    """One entry of a deterministic shortlist."""

    id: int
    name: str
    bucket_slug: str
    dosage: Dosage
    dosage_level: DosageLevel
    dosage_text: str
    description: Optional[str] = None
    safety_notes: Optional[str] = None


# =============================================================================
# Programs and logs
# =============================================================================


class RehabProgram(BaseModel):
    """One rehab program per user, body area and side."""

    id: str
    user_id: str
    area: BodyArea
    side: Side = Side.NA
    status: ProgramStatus = ProgramStatus.ACTIVE
    start_date: date
    metadata: Dict[str, Any] = Field(default_factory=dict)
    current_streak: int = 0
    longest_streak: int = 0
    last_logged_at: Optional[date] = None
    last_summary_json: Optional[Dict[str, Any]] = None
    last_summary_generated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def risk_level(self) -> RiskLevel:
        """Risk level copied from onboarding, low when unknown."""
        try:
            return RiskLevel(self.metadata.get("risk_level", RiskLevel.LOW.value))
        except ValueError:
            return RiskLevel.LOW


class RehabLogCreate(BaseModel):
    """Request model for a new symptom log."""

    program_id: str
    log_date: Optional[date] = None
    pain: int = Field(ge=0, le=10)
    stiffness: int = Field(0, ge=0, le=10)
    swelling: Optional[int] = Field(None, ge=0, le=10)
    activity_level: ActivityLevel = ActivityLevel.LIGHT
    aggravators: List[str] = Field(default_factory=list)
    notes: Optional[str] = None

    @field_validator("aggravators", mode="before")
    @classmethod
    def validate_aggravators(cls, v: Any) -> List[str]:
        return sanitize_tag_list(v)

    @field_validator("notes", mode="before")
    @classmethod
    def validate_notes(cls, v: Any) -> Optional[str]:
        if v is None or not isinstance(v, str):
            return None
        return sanitize_user_input(v, max_length=MAX_NOTES_LENGTH) or None


class RehabLogNotesUpdate(BaseModel):
    """Notes are the only mutable field of a log."""

    notes: Optional[str] = None

    @field_validator("notes", mode="before")
    @classmethod
    def validate_notes(cls, v: Any) -> Optional[str]:
        if v is None or not isinstance(v, str):
            return None
        return sanitize_user_input(v, max_length=MAX_NOTES_LENGTH) or None


class RehabLog(BaseModel):
    """A persisted daily symptom log."""

    id: str
    user_id: str
    program_id: str
    log_date: date
    pain: int
    stiffness: int = 0
    swelling: Optional[int] = None
    activity_level: ActivityLevel = ActivityLevel.LIGHT
    aggravators: List[str] = []
    notes: Optional[str] = None
    is_onboarding: bool = False
    created_at: Optional[datetime] = None

    @property
    def symptom_score(self) -> int:
        """Combined pain and stiffness score used for trend classification."""
        return self.pain + self.stiffness


# =============================================================================
# Plans
# =============================================================================


class UserContext(BaseModel):
    """Prompt-relevant context captured on every plan."""

    area: str
    side: str = Side.NA.value
    pain: int
    stiffness: int = 0
    swelling: Optional[int] = None
    activity_level: Optional[str] = None
    aggravators: List[str] = []
    risk_level: str = RiskLevel.LOW.value
    trend: Optional[str] = None
    trend_summary: Optional[str] = None
    goal: Optional[str] = None
    is_initial: bool = False


class RehabPlan(BaseModel):
    """A persisted, immutable plan in a program's progression chain."""

    id: str
    user_id: str
    program_id: str
    rehab_log_id: Optional[str] = None
    onboarding_profile_id: Optional[str] = None
    parent_plan_id: Optional[str] = None
    is_initial: bool = False
    plan_type: PlanType
    ai_status: AiStatus
    ai_error: Optional[str] = None
    shortlist_json: List[ShortlistExercise]
    ai_output_json: Optional[Dict[str, Any]] = None
    ai_feedback_json: Optional[Dict[str, Any]] = None
    user_context_json: Dict[str, Any] = Field(default_factory=dict)
    trend: Optional[Trend] = None
    generated_at: datetime


class GeneratePlanRequest(BaseModel):
    """Request model for explicit plan generation.

    Exactly one of ``log_id`` or ``onboarding_profile_id`` must be set.
    """

    log_id: Optional[str] = None
    onboarding_profile_id: Optional[str] = None


class ModeSwitchRequest(BaseModel):
    """Request model for switching the user's app mode."""

    mode: AppMode


class ModeSwitchResult(BaseModel):
    """Result of a mode switch."""

    mode: AppMode
    paused_program_ids: List[str] = []


# =============================================================================
# Adherence
# =============================================================================


class WeeklySummary(BaseModel):
    """Cached weekly summary stored on the program."""

    summary: str
    highlights: List[str] = []
    encouragement: str
    emoji: str = ""
    source: str = "fallback"
    adherence_rate: float = Field(ge=0.0, le=1.0)
    logs_this_week: int = 0
    avg_pain_change: Optional[float] = None
    avg_stiffness_change: Optional[float] = None
    trend: Optional[Trend] = None
    period_start: date
    period_end: date


class ProgramAdherence(BaseModel):
    """Streak counters plus the (throttled) weekly summary."""

    program_id: str
    current_streak: int
    longest_streak: int
    last_logged_at: Optional[date] = None
    summary: Optional[Dict[str, Any]] = None
    summary_generated_at: Optional[datetime] = None


class RehabLogResult(BaseModel):
    """
    Response model for a recorded log: the log, its plan and adherence.

    ``plan`` is None when plan generation kept conflicting; the log is
    stored and the plan can be requested with ``generate_plan``.
    """

    log: RehabLog
    plan: Optional[RehabPlan] = None
    adherence: ProgramAdherence


class OnboardingResult(BaseModel):
    """Response model for a completed onboarding submission."""

    profile: OnboardingProfile
    suggestion: Suggestion
    program_id: Optional[str] = None
    plan: Optional[RehabPlan] = None
