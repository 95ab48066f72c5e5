"""
OpenAI client wrapper for plan augmentation.

Provides the OpenAIPlanAugmenter class: a bounded-latency gateway that
turns a deterministic shortlist into coaching content. The gateway is
strictly optional. It never raises to its callers; every outcome is
reported as an AugmentationSuccess, AugmentationFailure or
AugmentationSkipped value.

No retries happen inside a call. The OpenAI client is built with
``max_retries=0`` and the whole request is bounded by ``asyncio.wait_for``.
"""

import asyncio
import json
import logging
import time
from typing import Any, Dict, Optional, Sequence

from openai import APIError, AsyncOpenAI, OpenAIError
from pydantic import ValidationError as PydanticValidationError

from application.exceptions import (
    GatewayError,
    GatewayFailureError,
    GatewayTimeoutError,
    SchemaMismatchError,
)
from core.constants import DEFAULT_AI_TIMEOUT_MS
from services.llm.prompts import (
    ONBOARDING_SYSTEM_PROMPT,
    PLAN_SYSTEM_PROMPT,
    WEEKLY_SUMMARY_SYSTEM_PROMPT,
    build_onboarding_prompt,
    build_plan_prompt,
    build_weekly_summary_prompt,
)
from services.llm.schemas import (
    AIOutput,
    AugmentationFailure,
    AugmentationResult,
    AugmentationSkipped,
    AugmentationSuccess,
    AugmentedContent,
    OnboardingInsight,
    WeeklySummaryOutput,
)

logger = logging.getLogger(__name__)

VALID_EMOJIS = ("🎉", "💪", "🌟", "📈")

# Canned weekly summaries, used whenever AI is unavailable
CANNED_SUMMARIES: Dict[str, Dict[str, Any]] = {
    "improving": {
        "summary": "Great week! Your pain and stiffness are trending down, and you're staying consistent.",
        "highlights": [
            "Pain levels improving",
            "Building momentum with regular logging",
            "Showing positive progress",
        ],
        "encouragement": "Keep up the excellent work - you're on the right track!",
        "emoji": "🎉",
    },
    "stable": {
        "summary": "Steady progress this week. You're maintaining your gains and staying consistent.",
        "highlights": [
            "Consistent logging habit",
            "Maintaining stability",
            "Building a strong foundation",
        ],
        "encouragement": "Small, consistent steps lead to lasting results. Stay the course!",
        "emoji": "📈",
    },
    "worsening": {
        "summary": "This week had some challenges, but you're still showing up and tracking your progress.",
        "highlights": [
            "Continuing to log despite setbacks",
            "Building awareness of patterns",
            "Staying committed to recovery",
        ],
        "encouragement": (
            "Progress isn't always linear. Focus on rest and gentle movement, "
            "and consult your provider if symptoms persist."
        ),
        "emoji": "💪",
    },
    "default": {
        "summary": "Thanks for staying consistent with your rehab tracking this week!",
        "highlights": [
            "Regular logging helps track patterns",
            "Building healthy habits",
            "Taking ownership of recovery",
        ],
        "encouragement": "Every log entry brings you closer to your goals. Keep it up!",
        "emoji": "🌟",
    },
}


def canned_summary(trend: Optional[str]) -> WeeklySummaryOutput:
    """Canned weekly summary for a trend (default when unknown)."""
    return WeeklySummaryOutput(**CANNED_SUMMARIES.get(trend or "default", CANNED_SUMMARIES["default"]))


class OpenAIPlanAugmenter:
    """
    OpenAI-powered plan augmentation gateway.

    Uses GPT-4o-mini in JSON mode. Disabled (every call returns
    ``skipped``) unless ``enabled`` is set and an API key is configured.
    """

    DEFAULT_MODEL = "gpt-4o-mini"
    DEFAULT_TEMPERATURE = 0.3
    DEFAULT_MAX_TOKENS = 500

    def __init__(
        self,
        api_key: Optional[str],
        enabled: bool = False,
        model: str = DEFAULT_MODEL,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout_ms: int = DEFAULT_AI_TIMEOUT_MS,
    ):
        """
        Initialize the augmenter.

        Args:
            api_key: OpenAI API key; None disables the gateway
            enabled: AI feature flag
            model: Model to use (default: gpt-4o-mini)
            temperature: Sampling temperature
            max_tokens: Completion token limit
            timeout_ms: Default hard timeout per call in milliseconds
        """
        self._enabled = bool(enabled and api_key)
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout_ms = timeout_ms
        self._client: Optional[AsyncOpenAI] = (
            AsyncOpenAI(api_key=api_key, max_retries=0) if self._enabled else None
        )

    @property
    def enabled(self) -> bool:
        return self._enabled

    # -------------------------------------------------------------------------
    # Plan augmentation
    # -------------------------------------------------------------------------

    async def augment(
        self,
        shortlist: Sequence[Dict[str, Any]],
        user_context: Dict[str, Any],
        timeout_ms: Optional[int] = None,
    ) -> AugmentationResult:
        """
        Format a shortlist into coaching content.

        Args:
            shortlist: Shortlist entries as dicts
            user_context: UserContext as a dict
            timeout_ms: Hard timeout for the whole call (default from init)

        Returns:
            AugmentationSuccess, AugmentationFailure or AugmentationSkipped
        """
        if not self._enabled:
            return AugmentationSkipped(reason="AI augmentation disabled or not configured")
        if not shortlist:
            return AugmentationSkipped(reason="Empty shortlist")

        timeout = (timeout_ms if timeout_ms is not None else self._timeout_ms) / 1000
        start = time.monotonic()
        try:
            raw = await self._bounded(
                self._call_llm(PLAN_SYSTEM_PROMPT, build_plan_prompt(shortlist, user_context)),
                timeout,
            )
            content = self._parse_plan_response(raw, shortlist, with_feedback=bool(user_context.get("trend")))
        except GatewayError as e:
            logger.warning(f"Plan augmentation {e.kind}: {e}")
            return AugmentationFailure(reason=str(e), kind=e.kind)

        logger.info(
            f"Plan augmented with {len(content.output.bullets)} bullets "
            f"in {(time.monotonic() - start) * 1000:.0f}ms"
        )
        return AugmentationSuccess(content=content)

    def _parse_plan_response(
        self,
        raw_response: str,
        shortlist: Sequence[Dict[str, Any]],
        with_feedback: bool,
    ) -> AugmentedContent:
        """
        Parse and validate the plan response.

        Bullets are rebuilt from the shortlist so names and dosages always
        match the deterministic selection; only coaching text comes from
        the model.

        Raises:
            SchemaMismatchError: If the JSON is invalid, fails validation, or
                references an exercise outside the shortlist
        """
        data = self._load_json(raw_response)
        try:
            content = AugmentedContent.model_validate(data)
        except PydanticValidationError as e:
            raise SchemaMismatchError(f"Plan response failed validation: {e.error_count()} error(s)") from e

        by_id = {int(ex["id"]): ex for ex in shortlist}
        bullets = []
        for bullet in content.output.bullets:
            exercise = by_id.get(bullet.exercise_id)
            if exercise is None:
                raise SchemaMismatchError(
                    f"Plan response references exercise {bullet.exercise_id} outside the shortlist"
                )
            bullets.append(
                bullet.model_copy(
                    update={
                        "exercise_name": exercise["name"],
                        "dosage_text": exercise.get("dosage_text") or bullet.dosage_text,
                        "coaching": bullet.coaching.strip(),
                    }
                )
            )

        output = AIOutput(summary=content.output.summary, bullets=bullets, caution=content.output.caution)
        feedback = content.feedback if with_feedback else None
        return AugmentedContent(output=output, feedback=feedback)

    # -------------------------------------------------------------------------
    # Weekly summary
    # -------------------------------------------------------------------------

    async def summarize_week(
        self,
        data: Dict[str, Any],
        timeout_ms: Optional[int] = None,
    ) -> tuple[WeeklySummaryOutput, str]:
        """
        Generate a weekly progress summary.

        Falls back to a canned summary for the trend on any failure.

        Args:
            data: adherence_rate, current_streak, avg_pain_change,
                avg_stiffness_change, logs_this_week, trend
            timeout_ms: Hard timeout (default from init)

        Returns:
            Tuple of (summary, source) where source is "ai" or "fallback"
        """
        trend = data.get("trend")
        if not self._enabled:
            logger.info(f"AI disabled - using canned weekly summary for trend {trend}")
            return canned_summary(trend), "fallback"

        timeout = (timeout_ms if timeout_ms is not None else self._timeout_ms) / 1000
        try:
            raw = await self._bounded(
                self._call_llm(WEEKLY_SUMMARY_SYSTEM_PROMPT, build_weekly_summary_prompt(data)),
                timeout,
            )
            parsed = self._load_json(raw)
            summary = WeeklySummaryOutput.model_validate(parsed)
        except GatewayError as e:
            logger.warning(f"Weekly summary {e.kind}, using canned fallback: {e}")
            return canned_summary(trend), "fallback"
        except PydanticValidationError as e:
            logger.warning(f"Weekly summary failed validation, using canned fallback: {e.error_count()} error(s)")
            return canned_summary(trend), "fallback"

        highlights = (summary.highlights + ["Staying committed to recovery"] * 3)[:3]
        emoji = summary.emoji if summary.emoji in VALID_EMOJIS else canned_summary(trend).emoji
        return summary.model_copy(update={"highlights": highlights, "emoji": emoji}), "ai"

    # -------------------------------------------------------------------------
    # Onboarding insight
    # -------------------------------------------------------------------------

    async def analyze_onboarding(
        self,
        profile: Dict[str, Any],
        timeout_ms: Optional[int] = None,
    ) -> Optional[OnboardingInsight]:
        """
        Infer a non-diagnostic pain pattern from onboarding answers.

        Returns:
            OnboardingInsight, or None when disabled, without a description,
            or on any failure. Onboarding never waits beyond the timeout.
        """
        if not self._enabled or not profile.get("user_description"):
            return None

        timeout = (timeout_ms if timeout_ms is not None else self._timeout_ms) / 1000
        try:
            raw = await self._bounded(
                self._call_llm(ONBOARDING_SYSTEM_PROMPT, build_onboarding_prompt(profile)),
                timeout,
            )
            insight = OnboardingInsight.model_validate(self._load_json(raw))
        except GatewayError as e:
            logger.warning(f"Onboarding insight {e.kind}: {e}")
            return None
        except PydanticValidationError as e:
            logger.warning(f"Onboarding insight failed validation: {e.error_count()} error(s)")
            return None

        logger.info(f"Onboarding insight generated with {insight.confidence} confidence")
        return insight

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    async def _bounded(self, coro: Any, timeout_seconds: float) -> str:
        """
        Await an LLM call under a hard timeout, classifying every error.

        Raises:
            GatewayTimeoutError: On timeout
            GatewayFailureError: On transport, quota or authentication errors
        """
        try:
            return await asyncio.wait_for(coro, timeout=timeout_seconds)
        except asyncio.TimeoutError as e:
            raise GatewayTimeoutError(f"AI call exceeded {timeout_seconds * 1000:.0f}ms") from e
        except APIError as e:
            status = getattr(e, "status_code", None)
            raise GatewayFailureError(f"OpenAI API error (status={status}): {e.message}") from e
        except OpenAIError as e:
            raise GatewayFailureError(f"OpenAI client error: {e}") from e

    async def _call_llm(self, system_prompt: str, user_prompt: str) -> str:
        """
        Call the OpenAI API.

        Args:
            system_prompt: The system prompt
            user_prompt: The user prompt

        Returns:
            Raw response content

        Raises:
            GatewayFailureError: On an empty response
            OpenAIError: On API errors
        """
        if self._client is None:
            raise GatewayFailureError("OpenAI client not configured")

        response = await self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            response_format={"type": "json_object"},
        )

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise GatewayFailureError("Empty response from LLM")

        return content

    @staticmethod
    def _load_json(raw_response: str) -> Any:
        try:
            data = json.loads(raw_response)
        except json.JSONDecodeError as e:
            raise SchemaMismatchError(f"Invalid JSON from LLM: {e}") from e
        if not isinstance(data, dict):
            raise SchemaMismatchError("LLM response is not a JSON object")
        return data
