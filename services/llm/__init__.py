"""
LLM integration module for the rehab plan API.

This module provides the optional AI augmentation gateway: coaching
content for deterministic shortlists, weekly summaries and onboarding
insights.
"""

from services.llm.client import OpenAIPlanAugmenter, canned_summary
from services.llm.schemas import (
    AIFeedback,
    AIOutput,
    AIPlanBullet,
    AugmentationFailure,
    AugmentationResult,
    AugmentationSkipped,
    AugmentationSuccess,
    AugmentedContent,
    OnboardingInsight,
    WeeklySummaryOutput,
)

__all__ = [
    "OpenAIPlanAugmenter",
    "canned_summary",
    "AIFeedback",
    "AIOutput",
    "AIPlanBullet",
    "AugmentationFailure",
    "AugmentationResult",
    "AugmentationSkipped",
    "AugmentationSuccess",
    "AugmentedContent",
    "OnboardingInsight",
    "WeeklySummaryOutput",
]
