"""
LLM prompt templates for plan augmentation.

System and user prompts for structured plan formatting, weekly summaries
and onboarding insights. Every user-provided string is passed through
sanitize_user_input before it reaches a prompt.
"""

from typing import Any, Dict, List, Optional, Sequence

from core.constants import MAX_NOTES_LENGTH
from core.sanitization import sanitize_user_input

PLAN_SYSTEM_PROMPT = """You are a supportive physical therapy assistant formatting an exercise plan for a patient recovering from injury.

The exercises have already been selected for safety by deterministic rules. Your job is presentation and coaching only.

CRITICAL Guidelines:
- Use the EXACT exercise_id values shown in the shortlist
- Include every shortlisted exercise in the bullets array
- Do NOT invent new exercises or modify dosages
- Be warm and encouraging, never diagnostic
- Add a caution only when the context warrants extra care
- This is educational guidance only, NOT medical advice

Return only valid JSON.
"""

PLAN_USER_PROMPT = """**User Context:**
- Body area: {area} ({side})
- Pain: {pain}/10, stiffness: {stiffness}/10
- Activity level: {activity_level}
- Aggravators: {aggravators}
- Risk level: {risk_level}
- Trend: {trend_summary}
{goal_line}
**Shortlisted Exercises (pre-selected for safety):**
{exercise_list}

Return a JSON object with this exact structure:
{{
  "output": {{
    "summary": "2-3 empathetic sentences that reference the user's context",
    "bullets": [
      {{
        "exercise_id": 123,
        "exercise_name": "Exercise Name",
        "dosage_text": "Exact dosage from the shortlist",
        "coaching": "1-2 sentences of supportive coaching"
      }}
    ],
    "caution": "Optional caution, or null"
  }}{feedback_schema}
}}
"""

FEEDBACK_SCHEMA = """,
  "feedback": {{
    "summary": "1-2 sentences on the {trend} trend since the last plan",
    "coaching": ["tip 1", "tip 2", "tip 3"],
    "caution": "Required if the trend is worsening, otherwise null"
  }}"""

WEEKLY_SUMMARY_SYSTEM_PROMPT = """You are an empathetic physical therapist providing weekly encouragement.
Focus on effort and progress. No medical advice or diagnosis.
Be warm, supportive, and motivating.
"""

WEEKLY_SUMMARY_USER_PROMPT = """User's Weekly Rehab Progress:

**Adherence:**
- Current streak: {current_streak} days
- Overall adherence: {adherence_percent}%
- Logs this week: {logs_this_week}/7 days

**Progress Metrics:**
- Pain change: {pain_change} (vs previous week)
- Stiffness change: {stiffness_change} (vs previous week)
- Overall trend: {trend}

Return a JSON object:
{{
  "summary": "1-2 sentence overview celebrating progress and consistency",
  "highlights": ["achievement 1", "achievement 2", "achievement 3"],
  "encouragement": "Gentle next-step motivation (1 sentence)",
  "emoji": "one of 🎉 💪 🌟 📈"
}}
"""

ONBOARDING_SYSTEM_PROMPT = """You are a cautious, supportive physiotherapy assistant.
Analyze the user's pain description and data.
Infer the most likely pain pattern (non-diagnostic, educational only).
Suggest which body side is affected if mentioned in the description.
Return safe, conservative recommendations.

CRITICAL: This is educational guidance only, NOT medical diagnosis.
"""

ONBOARDING_USER_PROMPT = """User's pain description: "{description}"

Pain levels:
- At rest: {pain_rest}/10
- During activity: {pain_activity}/10
- Stiffness: {stiffness}/10

Duration: {onset}
Body area: {area}

Makes it worse: {aggravators}
Helps: {easers}
Red flags: {red_flags}

Return JSON with:
{{
  "suspected_pattern": "friendly, non-clinical name for the likely pain pattern",
  "reasoning": ["observation 1", "observation 2", "observation 3"],
  "recommended_focus": ["focus 1 (e.g. 'mobility')", "focus 2 (e.g. 'isometrics')"],
  "reassurance": "brief reassuring message",
  "caution": "brief caution if needed, or null",
  "confidence": "high" | "medium" | "low",
  "suggested_side": "left" | "right" | "both" | "na" | null
}}
"""


def _join_or(values: Sequence[str], empty: str) -> str:
    cleaned = [sanitize_user_input(v) for v in values if v]
    return ", ".join(v for v in cleaned if v) or empty


def format_exercise_list(shortlist: Sequence[Dict[str, Any]]) -> str:
    """Numbered exercise list with ids, dosage and safety notes."""
    lines = []
    for idx, ex in enumerate(shortlist, 1):
        lines.append(
            f"{idx}. **{ex['name']}** (ID: {ex['id']}) - {ex['bucket_slug']}\n"
            f"   - Dosage: {ex.get('dosage_text') or 'as tolerated'}\n"
            f"   - Safety: {ex.get('safety_notes') or 'N/A'}"
        )
    return "\n".join(lines)


def build_plan_prompt(
    shortlist: Sequence[Dict[str, Any]],
    user_context: Dict[str, Any],
) -> str:
    """
    Build the user prompt for plan formatting.

    Args:
        shortlist: Shortlist entries as dicts
        user_context: UserContext as a dict

    Returns:
        Formatted user prompt string
    """
    trend = user_context.get("trend")
    goal = user_context.get("goal")
    goal_line = (
        f"- Goal: {sanitize_user_input(goal, max_length=MAX_NOTES_LENGTH)}\n" if goal else ""
    )

    return PLAN_USER_PROMPT.format(
        area=user_context.get("area", "unknown"),
        side=user_context.get("side", "na"),
        pain=user_context.get("pain", 0),
        stiffness=user_context.get("stiffness", 0),
        activity_level=user_context.get("activity_level") or "not reported",
        aggravators=_join_or(user_context.get("aggravators") or [], "None reported"),
        risk_level=user_context.get("risk_level", "low"),
        trend_summary=user_context.get("trend_summary") or "First log entry",
        goal_line=goal_line,
        exercise_list=format_exercise_list(shortlist),
        feedback_schema=FEEDBACK_SCHEMA.format(trend=trend) if trend else "",
    )


def _signed(value: Optional[float]) -> str:
    if value is None:
        return "n/a"
    return f"+{value:.1f}" if value >= 0 else f"{value:.1f}"


def build_weekly_summary_prompt(data: Dict[str, Any]) -> str:
    """Build the user prompt for a weekly progress summary."""
    return WEEKLY_SUMMARY_USER_PROMPT.format(
        current_streak=data.get("current_streak", 0),
        adherence_percent=round(float(data.get("adherence_rate", 0.0)) * 100),
        logs_this_week=data.get("logs_this_week", 0),
        pain_change=_signed(data.get("avg_pain_change")),
        stiffness_change=_signed(data.get("avg_stiffness_change")),
        trend=data.get("trend") or "stable",
    )


def build_onboarding_prompt(profile: Dict[str, Any]) -> str:
    """Build the user prompt for an onboarding insight."""
    area = str(profile.get("area", "other"))
    other = profile.get("area_other_label")
    area_label = f"{area} ({sanitize_user_input(other)})" if other else area.replace("_", " ")
    description = sanitize_user_input(
        profile.get("user_description") or "", max_length=MAX_NOTES_LENGTH
    )

    red_flags: List[str] = [str(f) for f in profile.get("red_flags") or []]
    return ONBOARDING_USER_PROMPT.format(
        description=description or "No description provided",
        pain_rest=profile.get("pain_rest", 0),
        pain_activity=profile.get("pain_activity", 0),
        stiffness=profile.get("stiffness", 0),
        onset=profile.get("onset", "unknown"),
        area=area_label,
        aggravators=_join_or(profile.get("aggravators") or [], "none specified"),
        easers=_join_or(profile.get("easers") or [], "none specified"),
        red_flags=", ".join(red_flags) or "none",
    )
