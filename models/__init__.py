"""Models package for the rehab plan API."""

from models.onboarding import (
    BodyArea,
    ModeSuggestion,
    OnboardingInput,
    OnboardingProfile,
    Onset,
    RedFlag,
    RiskLevel,
    Side,
    Suggestion,
)
from models.rehab import (
    ActivityLevel,
    AiStatus,
    AppMode,
    Dosage,
    DosageLevel,
    Exercise,
    ExerciseBucket,
    GeneratePlanRequest,
    ModeSwitchRequest,
    ModeSwitchResult,
    OnboardingResult,
    PlanType,
    ProgramAdherence,
    ProgramStatus,
    RehabLog,
    RehabLogCreate,
    RehabLogNotesUpdate,
    RehabLogResult,
    RehabPlan,
    RehabProgram,
    ShortlistExercise,
    Trend,
    UserContext,
    WeeklySummary,
)

__all__ = [
    # Onboarding
    "BodyArea",
    "ModeSuggestion",
    "OnboardingInput",
    "OnboardingProfile",
    "OnboardingResult",
    "Onset",
    "RedFlag",
    "RiskLevel",
    "Side",
    "Suggestion",
    # Rehab
    "ActivityLevel",
    "AiStatus",
    "AppMode",
    "Dosage",
    "DosageLevel",
    "Exercise",
    "ExerciseBucket",
    "GeneratePlanRequest",
    "ModeSwitchRequest",
    "ModeSwitchResult",
    "PlanType",
    "ProgramAdherence",
    "ProgramStatus",
    "RehabLog",
    "RehabLogCreate",
    "RehabLogNotesUpdate",
    "RehabLogResult",
    "RehabPlan",
    "RehabProgram",
    "ShortlistExercise",
    "Trend",
    "UserContext",
    "WeeklySummary",
]
