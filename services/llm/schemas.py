"""
LLM response schemas for plan augmentation.

Pydantic models for structured LLM responses, plus the tagged
augmentation result returned by the gateway. Output that does not
validate against these models is never persisted.
"""

from dataclasses import dataclass
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


class AIPlanBullet(BaseModel):
    """Coaching for one shortlisted exercise."""

    exercise_id: int = Field(description="ID of a shortlisted exercise")
    exercise_name: str = Field(min_length=1)
    dosage_text: str = Field(description="Dosage copied from the shortlist")
    coaching: str = Field(default="", description="1-2 sentences of coaching")


class AIOutput(BaseModel):
    """Formatted plan content."""

    summary: str = Field(min_length=1, max_length=1000)
    bullets: List[AIPlanBullet] = Field(min_length=1)
    caution: Optional[str] = None

    @field_validator("summary")
    @classmethod
    def strip_summary(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("summary must not be blank")
        return v

    @field_validator("caution", mode="before")
    @classmethod
    def blank_caution_to_none(cls, v: object) -> Optional[str]:
        if not isinstance(v, str) or not v.strip():
            return None
        return v.strip()


class AIFeedback(BaseModel):
    """Progress feedback relative to the previous plan."""

    summary: str = Field(min_length=1, max_length=1000)
    coaching: List[str] = Field(default_factory=list, max_length=5)
    caution: Optional[str] = None

    @field_validator("coaching", mode="before")
    @classmethod
    def clean_coaching(cls, v: object) -> List[str]:
        if not isinstance(v, list):
            return []
        return [str(item).strip() for item in v if str(item).strip()]

    @field_validator("caution", mode="before")
    @classmethod
    def blank_caution_to_none(cls, v: object) -> Optional[str]:
        if not isinstance(v, str) or not v.strip():
            return None
        return v.strip()


class AugmentedContent(BaseModel):
    """Validated augmentation payload stored on a successful plan."""

    output: AIOutput
    feedback: Optional[AIFeedback] = None


class WeeklySummaryOutput(BaseModel):
    """Motivational weekly summary text."""

    summary: str = Field(min_length=1)
    highlights: List[str] = Field(default_factory=list)
    encouragement: str = Field(min_length=1)
    emoji: str = ""

    @field_validator("highlights", mode="before")
    @classmethod
    def clean_highlights(cls, v: object) -> List[str]:
        if not isinstance(v, list):
            return []
        return [h.strip() for h in v if isinstance(h, str) and h.strip()]


class OnboardingInsight(BaseModel):
    """Non-diagnostic pain pattern insight for an onboarding profile."""

    suspected_pattern: str = Field(min_length=1)
    reasoning: List[str] = Field(min_length=1)
    recommended_focus: List[str] = Field(min_length=1)
    reassurance: str = Field(min_length=1)
    caution: Optional[str] = None
    confidence: Literal["high", "medium", "low"]
    suggested_side: Optional[Literal["left", "right", "both", "na"]] = None

    @field_validator("suggested_side", mode="before")
    @classmethod
    def drop_unknown_side(cls, v: object) -> Optional[str]:
        return v if v in ("left", "right", "both", "na") else None


# =============================================================================
# Tagged augmentation result
# =============================================================================


@dataclass(frozen=True)
class AugmentationSuccess:
    """The gateway returned validated content."""

    content: AugmentedContent
    status: Literal["success"] = "success"


@dataclass(frozen=True)
class AugmentationFailure:
    """The gateway call failed or timed out. Never raised to callers."""

    reason: str
    kind: Literal["timeout", "failed"] = "failed"
    status: Literal["failed"] = "failed"


@dataclass(frozen=True)
class AugmentationSkipped:
    """Augmentation disabled or no credential configured."""

    reason: str
    status: Literal["skipped"] = "skipped"


AugmentationResult = Union[AugmentationSuccess, AugmentationFailure, AugmentationSkipped]
