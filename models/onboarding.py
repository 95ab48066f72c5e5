"""
Onboarding models.

The onboarding profile is the user's baseline symptom report. The
deterministic mode suggestion is computed once at submission time and
stored alongside the raw answers.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from core.constants import MAX_NOTES_LENGTH
from core.sanitization import sanitize_tag_list, sanitize_user_input

ONBOARDING_SCHEMA_VERSION = 2


class ModeSuggestion(str, Enum):
    """App mode suggested from the onboarding answers."""

    REHAB = "rehab"
    MAINTENANCE = "maintenance"


class RiskLevel(str, Enum):
    """Risk classification from the onboarding rules."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Onset(str, Enum):
    """How long the symptoms have been present."""

    RECENT = "recent"
    ONGOING = "ongoing"
    CHRONIC = "chronic"


class RedFlag(str, Enum):
    """Symptoms that warrant professional assessment."""

    NIGHT_PAIN = "night_pain"
    NUMBNESS = "numbness"
    TRAUMA = "trauma"
    FEVER = "fever"
    LOCKING = "locking"


class BodyArea(str, Enum):
    """Body areas supported by the exercise catalog."""

    KNEE = "knee"
    SHOULDER = "shoulder"
    LOWER_BACK = "lower_back"
    UPPER_BACK = "upper_back"
    HIP = "hip"
    ANKLE = "ankle"
    WRIST = "wrist"
    ELBOW = "elbow"
    OTHER = "other"


class Side(str, Enum):
    """Which side of the body is affected."""

    LEFT = "left"
    RIGHT = "right"
    BOTH = "both"
    NA = "na"


class OnboardingInput(BaseModel):
    """Request model for an onboarding submission."""

    area: BodyArea
    area_other_label: Optional[str] = Field(None, max_length=50)
    side: Side = Side.NA
    onset: Onset
    pain_rest: int = Field(ge=0, le=10, description="Pain at rest, 0-10")
    pain_activity: int = Field(ge=0, le=10, description="Pain during activity, 0-10")
    stiffness: int = Field(0, ge=0, le=10, description="Stiffness, 0-10")
    red_flags: List[RedFlag] = Field(default_factory=list)
    aggravators: List[str] = Field(default_factory=list)
    easers: List[str] = Field(default_factory=list)
    goal: Optional[str] = Field(None, max_length=200)
    user_description: Optional[str] = Field(None, max_length=2000)

    @field_validator("aggravators", "easers", mode="before")
    @classmethod
    def validate_tags(cls, v: Any) -> List[str]:
        """Sanitize free-text tags to prevent prompt injection."""
        return sanitize_tag_list(v)

    @field_validator("user_description", "goal", mode="before")
    @classmethod
    def validate_free_text(cls, v: Any) -> Optional[str]:
        if v is None or not isinstance(v, str):
            return None
        return sanitize_user_input(v, max_length=MAX_NOTES_LENGTH) or None


class Suggestion(BaseModel):
    """Deterministic mode suggestion for an onboarding submission."""

    mode_suggestion: ModeSuggestion
    risk_level: RiskLevel
    reasoning: str


class OnboardingProfile(BaseModel):
    """A persisted onboarding submission."""

    id: str
    user_id: str
    area: BodyArea
    area_other_label: Optional[str] = None
    side: Side = Side.NA
    onset: Onset
    pain_rest: int
    pain_activity: int
    stiffness: int = 0
    red_flags: List[RedFlag] = []
    aggravators: List[str] = []
    easers: List[str] = []
    goal: Optional[str] = None
    user_description: Optional[str] = None
    mode_suggestion: ModeSuggestion
    risk_level: RiskLevel
    reasoning: str
    version: int = ONBOARDING_SCHEMA_VERSION
    ai_pattern_json: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None

