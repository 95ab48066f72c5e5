"""
Fake AI augmentation gateways for testing.

These fakes provide deterministic responses without calling the OpenAI
API. FailingPlanAugmenter and SlowPlanAugmenter exercise the fallback
paths; RaisingPlanAugmenter breaks the never-raise contract on purpose.
"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence, Tuple

from application.exceptions import GatewayFailureError
from services.llm.client import canned_summary
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


class FakePlanAugmenter:
    """
    Deterministic fake for OpenAIPlanAugmenter.

    Builds one bullet per shortlisted exercise and records every call.
    """

    def __init__(
        self,
        insight: Optional[OnboardingInsight] = None,
        summary_source: str = "ai",
    ):
        self._insight = insight
        self._summary_source = summary_source
        self.call_count = 0
        self.summary_calls = 0
        self.onboarding_calls = 0
        self.last_context: Optional[Dict[str, Any]] = None
        self.contexts: List[Dict[str, Any]] = []

    @property
    def enabled(self) -> bool:
        return True

    def reset(self) -> None:
        self.call_count = 0
        self.summary_calls = 0
        self.onboarding_calls = 0
        self.last_context = None
        self.contexts = []

    async def augment(
        self,
        shortlist: Sequence[Dict[str, Any]],
        user_context: Dict[str, Any],
        timeout_ms: Optional[int] = None,
    ) -> AugmentationResult:
        self.call_count += 1
        self.last_context = user_context
        self.contexts.append(user_context)
        if not shortlist:
            return AugmentationSkipped(reason="Empty shortlist")

        bullets = [
            AIPlanBullet(
                exercise_id=item["id"],
                exercise_name=item["name"],
                dosage_text=item["dosage_text"],
                coaching=f"Move slowly through {item['name'].lower()}.",
            )
            for item in shortlist
        ]
        feedback = None
        if user_context.get("trend"):
            feedback = AIFeedback(
                summary=f"Your symptoms look {user_context['trend']}.",
                coaching=["Keep the same pace this week"],
            )
        return AugmentationSuccess(
            content=AugmentedContent(
                output=AIOutput(summary="Today's gentle plan", bullets=bullets),
                feedback=feedback,
            )
        )

    async def summarize_week(
        self,
        data: Dict[str, Any],
        timeout_ms: Optional[int] = None,
    ) -> Tuple[WeeklySummaryOutput, str]:
        self.summary_calls += 1
        if self._summary_source != "ai":
            return canned_summary(data.get("trend")), "fallback"
        return (
            WeeklySummaryOutput(
                summary=f"You logged {data['logs_this_week']} times this week.",
                highlights=["Consistent logging", "Steady symptoms", "Good habits"],
                encouragement="Keep going!",
                emoji="📈",
            ),
            "ai",
        )

    async def analyze_onboarding(
        self,
        profile: Dict[str, Any],
        timeout_ms: Optional[int] = None,
    ) -> Optional[OnboardingInsight]:
        self.onboarding_calls += 1
        return self._insight


class FailingPlanAugmenter(FakePlanAugmenter):
    """Gateway that reports a failure for every augmentation."""

    def __init__(self, kind: str = "failed", reason: str = "OpenAI API error (status=500)"):
        super().__init__(summary_source="fallback")
        self._kind = kind
        self._reason = reason

    async def augment(
        self,
        shortlist: Sequence[Dict[str, Any]],
        user_context: Dict[str, Any],
        timeout_ms: Optional[int] = None,
    ) -> AugmentationResult:
        self.call_count += 1
        return AugmentationFailure(reason=self._reason, kind=self._kind)


class RaisingPlanAugmenter(FakePlanAugmenter):
    """Gateway that raises instead of returning a tagged result."""

    async def augment(
        self,
        shortlist: Sequence[Dict[str, Any]],
        user_context: Dict[str, Any],
        timeout_ms: Optional[int] = None,
    ) -> AugmentationResult:
        self.call_count += 1
        raise GatewayFailureError("connection reset")


class SlowPlanAugmenter(FakePlanAugmenter):
    """Gateway that sleeps before answering, to widen race windows."""

    def __init__(self, delay_seconds: float = 0.05):
        super().__init__()
        self._delay = delay_seconds

    async def augment(
        self,
        shortlist: Sequence[Dict[str, Any]],
        user_context: Dict[str, Any],
        timeout_ms: Optional[int] = None,
    ) -> AugmentationResult:
        await asyncio.sleep(self._delay)
        return await super().augment(shortlist, user_context, timeout_ms)
