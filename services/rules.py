"""
Deterministic rehab rules.

Pure functions only: no I/O, no clock, no randomness. Everything that
decides what a user is told to do (mode suggestion, exercise shortlist,
trend classification, dosage text) lives here so the decisions can be
audited and reproduced from stored inputs.

Shortlist rules (area-abstracted):
    - mobility_{area} always
    - isometric_{area} when risk is high or pain >= 6
    - activation_{body part} when the trend is improving and pain <= 5
    - light_strength_{area} when pain <= 3 and the trend is not worsening
    - stability_{region} when activity is moderate/heavy and pain <= 5
    - aggravator-specific buckets (knee + stairs, knee + squatting)
    - general fallback buckets when nothing above yields an exercise
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

from application.exceptions import InsufficientDataError
from core.constants import (
    ACTIVATION_PAIN_CEILING,
    ISOMETRIC_PAIN_THRESHOLD,
    LIGHT_STRENGTH_PAIN_CEILING,
    MAX_EXERCISES_PER_BUCKET,
    MAX_SHORTLIST_LENGTH,
    PAIN_REST_REHAB_THRESHOLD,
    TREND_RELATIVE_THRESHOLD,
    TREND_WINDOW_DAYS,
)
from models.onboarding import (
    ModeSuggestion,
    OnboardingInput,
    OnboardingProfile,
    Onset,
    RiskLevel,
    Suggestion,
)
from models.rehab import (
    ActivityLevel,
    Dosage,
    DosageLevel,
    RehabLog,
    ShortlistExercise,
    Trend,
)

logger = logging.getLogger(__name__)

GENERAL_AREA = "general"
FALLBACK_BUCKETS: Tuple[str, ...] = ("mobility_general", "isometric_general")

# Area -> muscle group used for activation buckets
ACTIVATION_BODY_PARTS: Dict[str, str] = {
    "knee": "quads",
    "shoulder": "rotator_cuff",
    "ankle": "calf",
    "hip": "glutes",
    "elbow": "biceps",
}

# Area -> region used for stability buckets
STABILITY_REGIONS: Dict[str, str] = {
    "knee": "lower",
    "hip": "lower",
    "ankle": "lower",
    "shoulder": "upper",
    "elbow": "upper",
    "wrist": "upper",
    "upper_back": "upper",
    "lower_back": "core",
}

# (area, aggravator) -> extra bucket
AGGRAVATOR_BUCKETS: Dict[Tuple[str, str], str] = {
    ("knee", "stairs"): "activation_quads",
    ("knee", "squatting"): "stability_lower",
}


# =============================================================================
# Mode suggestion
# =============================================================================


def suggest_mode(profile: Union[OnboardingInput, OnboardingProfile]) -> Suggestion:
    """
    Suggest an app mode and risk level from onboarding answers.

    Rules are evaluated in strict priority order and the first match wins:
    1. Any red flag -> rehab / high
    2. Pain at rest >= 4 or onset recent/ongoing -> rehab / medium
    3. Pain at rest <= 3 and chronic onset -> maintenance / low
    4. Anything else -> maintenance / low

    Args:
        profile: Onboarding input or stored profile

    Returns:
        Suggestion with mode, risk level and a user-facing reasoning string
    """
    red_flags = list(profile.red_flags or [])
    if red_flags:
        count = len(red_flags)
        plural = "s" if count > 1 else ""
        return Suggestion(
            mode_suggestion=ModeSuggestion.REHAB,
            risk_level=RiskLevel.HIGH,
            reasoning=(
                f"You reported {count} red flag{plural} that may need "
                "professional assessment"
            ),
        )

    onset = Onset(profile.onset)
    if profile.pain_rest >= PAIN_REST_REHAB_THRESHOLD or onset in (
        Onset.RECENT,
        Onset.ONGOING,
    ):
        reasons = []
        if profile.pain_rest >= PAIN_REST_REHAB_THRESHOLD:
            reasons.append(f"pain at rest: {profile.pain_rest}/10")
        if onset == Onset.RECENT:
            reasons.append("recent onset")
        elif onset == Onset.ONGOING:
            reasons.append("ongoing symptoms")
        return Suggestion(
            mode_suggestion=ModeSuggestion.REHAB,
            risk_level=RiskLevel.MEDIUM,
            reasoning=f"Based on your {' and '.join(reasons)}",
        )

    if profile.pain_rest < PAIN_REST_REHAB_THRESHOLD and onset == Onset.CHRONIC:
        return Suggestion(
            mode_suggestion=ModeSuggestion.MAINTENANCE,
            risk_level=RiskLevel.LOW,
            reasoning="Your symptoms are manageable and long-standing",
        )

    return Suggestion(
        mode_suggestion=ModeSuggestion.MAINTENANCE,
        risk_level=RiskLevel.LOW,
        reasoning="Based on your overall profile",
    )


# =============================================================================
# Trend classification
# =============================================================================


@dataclass(frozen=True)
class TrendAnalysis:
    """Result of comparing the current log against its trailing window."""

    trend: Optional[Trend]
    current_score: int
    baseline_score: Optional[float] = None
    relative_delta: Optional[float] = None
    window_size: int = 0


def trailing_window(
    current_log: RehabLog,
    prior_logs: Iterable[RehabLog],
    window_days: int = TREND_WINDOW_DAYS,
) -> List[RehabLog]:
    """Prior logs dated within ``window_days`` before the current log."""
    start = current_log.log_date - timedelta(days=window_days)
    return [
        log
        for log in prior_logs
        if log.id != current_log.id and start <= log.log_date < current_log.log_date
    ]


def _relative_delta(current_score: int, window: Sequence[RehabLog]) -> Tuple[float, float]:
    if not window:
        raise InsufficientDataError(
            "Trend needs at least two logs: the current one and one prior"
        )
    baseline = sum(log.symptom_score for log in window) / len(window)
    return baseline, (current_score - baseline) / max(baseline, 1.0)


def analyze_trend(
    current_log: RehabLog,
    prior_logs: Iterable[RehabLog],
    window_days: int = TREND_WINDOW_DAYS,
    threshold: float = TREND_RELATIVE_THRESHOLD,
) -> TrendAnalysis:
    """
    Classify the symptom trend of ``current_log`` against prior logs.

    Score is pain + stiffness. The baseline is the mean score of prior logs
    in the trailing window; the relative delta is
    ``(current - baseline) / max(baseline, 1)``. A delta at or below
    ``-threshold`` is improving, at or above ``+threshold`` is worsening,
    anything in between is stable. With no prior log in the window the
    trend is None.
    """
    window = trailing_window(current_log, prior_logs, window_days)
    current_score = current_log.symptom_score
    try:
        baseline, delta = _relative_delta(current_score, window)
    except InsufficientDataError as e:
        logger.debug(f"No trend for log {current_log.id}: {e}")
        return TrendAnalysis(trend=None, current_score=current_score)

    if delta <= -threshold:
        trend = Trend.IMPROVING
    elif delta >= threshold:
        trend = Trend.WORSENING
    else:
        trend = Trend.STABLE

    return TrendAnalysis(
        trend=trend,
        current_score=current_score,
        baseline_score=baseline,
        relative_delta=delta,
        window_size=len(window),
    )


def classify_trend(
    current_log: RehabLog,
    prior_logs: Iterable[RehabLog],
) -> Optional[Trend]:
    """Trend of the current log, or None when there is not enough data."""
    return analyze_trend(current_log, prior_logs).trend


def summarize_trend(analysis: TrendAnalysis) -> str:
    """Short human-readable description of a trend analysis."""
    if analysis.trend is None or analysis.baseline_score is None:
        return "First log entry"

    diff = analysis.current_score - analysis.baseline_score
    window = f"{analysis.window_size}-log avg"
    if analysis.trend == Trend.IMPROVING:
        return f"Symptoms down {abs(diff):.1f} pts vs {window}"
    if analysis.trend == Trend.WORSENING:
        return f"Symptoms up {abs(diff):.1f} pts vs {window}"
    return f"Symptoms stable (score {analysis.current_score}/20)"


# =============================================================================
# Shortlist
# =============================================================================


@dataclass(frozen=True)
class SymptomSnapshot:
    """The symptom state a shortlist is computed from."""

    pain: int
    stiffness: int = 0
    activity_level: Optional[ActivityLevel] = None
    aggravators: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_log(cls, log: RehabLog) -> "SymptomSnapshot":
        return cls(
            pain=log.pain,
            stiffness=log.stiffness,
            activity_level=log.activity_level,
            aggravators=tuple(log.aggravators),
        )

    @classmethod
    def from_profile(cls, profile: OnboardingProfile) -> "SymptomSnapshot":
        return cls(
            pain=profile.pain_rest,
            stiffness=profile.stiffness,
            activity_level=None,
            aggravators=tuple(profile.aggravators),
        )


def select_dosage_level(
    risk_level: RiskLevel,
    trend: Optional[Trend],
    is_initial: bool = False,
) -> DosageLevel:
    """Moderate dosage only for low-risk, improving, non-initial plans."""
    if is_initial:
        return DosageLevel.LOW
    if risk_level == RiskLevel.LOW and trend == Trend.IMPROVING:
        return DosageLevel.MOD
    return DosageLevel.LOW


def select_buckets(
    snapshot: SymptomSnapshot,
    area: str,
    risk_level: RiskLevel,
    trend: Optional[Trend],
) -> List[str]:
    """Bucket slugs selected by the shortlist rules, in rule order."""
    return _unique(
        _symptom_buckets(snapshot, area, risk_level, trend) + _aggravator_buckets(snapshot, area)
    )


def _symptom_buckets(
    snapshot: SymptomSnapshot,
    area: str,
    risk_level: RiskLevel,
    trend: Optional[Trend],
) -> List[str]:
    buckets = [f"mobility_{area}"]

    if risk_level == RiskLevel.HIGH or snapshot.pain >= ISOMETRIC_PAIN_THRESHOLD:
        buckets.append(f"isometric_{area}")

    if trend == Trend.IMPROVING and snapshot.pain <= ACTIVATION_PAIN_CEILING:
        buckets.append(f"activation_{ACTIVATION_BODY_PARTS.get(area, area)}")

    if snapshot.pain <= LIGHT_STRENGTH_PAIN_CEILING and trend != Trend.WORSENING:
        buckets.append(f"light_strength_{area}")

    if (
        snapshot.activity_level in (ActivityLevel.MODERATE, ActivityLevel.HEAVY)
        and snapshot.pain <= ACTIVATION_PAIN_CEILING
    ):
        buckets.append(f"stability_{STABILITY_REGIONS.get(area, area)}")

    return buckets


def _aggravator_buckets(snapshot: SymptomSnapshot, area: str) -> List[str]:
    return [
        AGGRAVATOR_BUCKETS[(area, aggravator)]
        for aggravator in snapshot.aggravators
        if (area, aggravator) in AGGRAVATOR_BUCKETS
    ]


def _low_dosage_slugs(
    snapshot: SymptomSnapshot,
    area: str,
    risk_level: RiskLevel,
    trend: Optional[Trend],
) -> Set[str]:
    """Buckets added only because of an aggravator; these stay at low dosage."""
    symptom = set(_symptom_buckets(snapshot, area, risk_level, trend))
    return {slug for slug in _aggravator_buckets(snapshot, area) if slug not in symptom}


def build_shortlist(
    snapshot: SymptomSnapshot,
    area: str,
    catalog: Any,
    risk_level: RiskLevel,
    trend: Optional[Trend],
    extra_buckets: Sequence[str] = (),
    is_initial: bool = False,
    max_length: int = MAX_SHORTLIST_LENGTH,
) -> List[ShortlistExercise]:
    """
    Build the deterministic exercise shortlist for a symptom state.

    Candidates are ranked by bucket sort order, then specificity (area
    buckets before general ones), then exercise sort order, then id. At most
    two exercises are taken per bucket and the result is capped at
    ``max_length``.

    Args:
        snapshot: Pain, stiffness, activity and aggravators to evaluate
        area: Program body area
        catalog: ExerciseCatalogIndex (anything with ``bucket()`` and
            ``active_exercises()``)
        risk_level: Risk level from onboarding
        trend: Current trend, None when unknown
        extra_buckets: Additional bucket slugs (e.g. from an onboarding insight)
        is_initial: Initial plans always use low dosage
        max_length: Shortlist cap

    Returns:
        Ordered, de-duplicated list of ShortlistExercise
    """
    slugs = _unique(list(select_buckets(snapshot, area, risk_level, trend)) + list(extra_buckets))
    level = select_dosage_level(risk_level, trend, is_initial)

    low_only = _low_dosage_slugs(snapshot, area, risk_level, trend)
    shortlist = _collect(slugs, catalog, level, low_only, max_length)
    if not shortlist:
        logger.info(f"No area exercises for {area}, using general fallback buckets")
        shortlist = _collect(list(FALLBACK_BUCKETS), catalog, level, low_only, max_length)
    return shortlist


def _collect(
    slugs: Sequence[str],
    catalog: Any,
    level: DosageLevel,
    low_only: Set[str],
    max_length: int,
) -> List[ShortlistExercise]:
    candidates = []
    for slug in slugs:
        bucket = catalog.bucket(slug)
        if bucket is None:
            continue
        specificity = 1 if bucket.area == GENERAL_AREA else 0
        for exercise in catalog.active_exercises(slug)[:MAX_EXERCISES_PER_BUCKET]:
            candidates.append(
                ((bucket.sort_order, specificity, exercise.sort_order, exercise.id), bucket, exercise)
            )

    candidates.sort(key=lambda c: c[0])

    shortlist: List[ShortlistExercise] = []
    seen = set()
    for _, bucket, exercise in candidates:
        if exercise.id in seen:
            continue
        seen.add(exercise.id)

        # Isometric loading always starts at low dosage
        low = bucket.slug in low_only or bucket.slug.startswith("isometric_")
        bucket_level = DosageLevel.LOW if low else level
        dosage = (
            exercise.dosage_mod_json
            if bucket_level == DosageLevel.MOD
            else exercise.dosage_low_json
        )
        shortlist.append(
            ShortlistExercise(
                id=exercise.id,
                name=exercise.name,
                bucket_slug=bucket.slug,
                dosage=dosage,
                dosage_level=bucket_level,
                dosage_text=format_dosage_text(dosage),
                description=exercise.description,
                safety_notes=exercise.safety_notes,
            )
        )
        if len(shortlist) >= max_length:
            break
    return shortlist


def _unique(values: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def format_dosage_text(dosage: Optional[Dosage]) -> str:
    """
    Render a dosage as text, e.g. ``"2 sets × 10 reps, 30s rest, • Slow"``.

    Time-only dosages render in minutes when possible (``"10 min"``).
    """
    if dosage is None:
        return ""

    parts = []
    if dosage.sets and dosage.reps:
        parts.append(f"{dosage.sets} sets × {dosage.reps} reps")
    elif dosage.sets and dosage.hold_seconds:
        parts.append(f"{dosage.sets} sets × {dosage.hold_seconds}s hold")
    elif dosage.sets and dosage.time_seconds:
        parts.append(f"{dosage.sets} sets × {dosage.time_seconds}s")
    elif dosage.time_seconds:
        minutes, seconds = divmod(dosage.time_seconds, 60)
        if minutes and not seconds:
            parts.append(f"{minutes} min")
        elif minutes:
            parts.append(f"{minutes} min {seconds}s")
        else:
            parts.append(f"{seconds}s")

    if dosage.rest_seconds:
        parts.append(f"{dosage.rest_seconds}s rest")

    if dosage.notes:
        parts.append(f"• {dosage.notes}")

    return ", ".join(parts)


# =============================================================================
# Onboarding insight -> buckets
# =============================================================================


@dataclass(frozen=True)
class PatternRule:
    keywords: Tuple[str, ...]
    buckets: Tuple[str, ...]
    rationale: str


PATTERN_RULES: Tuple[PatternRule, ...] = (
    PatternRule(
        ("quad", "patellar", "front of knee", "kneecap"),
        ("isometric_knee", "mobility_knee"),
        "Front-of-knee pattern: isometric loading + mobility",
    ),
    PatternRule(
        ("meniscus", "twisting", "locking", "catching"),
        ("stability_lower", "mobility_knee"),
        "Meniscus-like pattern: stability work + controlled mobility",
    ),
    PatternRule(
        ("hamstring",),
        ("activation_quads", "mobility_knee"),
        "Hamstring involvement: quad activation + gentle mobility",
    ),
    PatternRule(
        ("achilles", "calf", "ankle"),
        ("isometric_ankle", "mobility_ankle"),
        "Ankle/calf pattern: isometric strengthening + mobility",
    ),
    PatternRule(
        ("isometric", "load management"),
        ("isometric_knee", "isometric_ankle"),
        "Isometric focus: safe loading without movement",
    ),
    PatternRule(
        ("mobility", "range of motion", "stiffness"),
        ("mobility_knee", "mobility_ankle"),
        "Mobility focus: gentle range of motion work",
    ),
    PatternRule(
        ("activation", "muscle activation"),
        ("activation_quads",),
        "Activation focus: targeted muscle engagement",
    ),
    PatternRule(
        ("stability", "balance", "control"),
        ("stability_lower",),
        "Stability focus: balance and proprioception",
    ),
)


@dataclass(frozen=True)
class PatternMapping:
    """Bucket slugs inferred from an onboarding insight."""

    buckets: Tuple[str, ...]
    rationale: Tuple[str, ...]
    matched_keywords: Tuple[str, ...]
    confidence: str
    notes: str


def map_pattern_to_buckets(
    insight: Mapping[str, Any],
    area: Optional[str] = None,
) -> PatternMapping:
    """
    Map an AI onboarding insight to exercise bucket slugs by keyword.

    Low-confidence insights are restricted to conservative (mobility and
    isometric) buckets. No match falls back to the general buckets.

    Args:
        insight: Dict with ``suspected_pattern``, ``recommended_focus`` and
            ``confidence``
        area: Program body area, included in the keyword search

    Returns:
        PatternMapping with the selected buckets and an explanation
    """
    pattern = str(insight.get("suspected_pattern") or "").lower()
    focus = [str(f).lower() for f in insight.get("recommended_focus") or []]
    confidence = str(insight.get("confidence") or "low").lower()
    search_text = " ".join([pattern, *focus, (area or "").lower()])

    matched: List[PatternRule] = []
    keywords: List[str] = []
    for rule in PATTERN_RULES:
        found = [k for k in rule.keywords if k in search_text]
        if found:
            matched.append(rule)
            keywords.extend(found)

    if not matched:
        return PatternMapping(
            buckets=FALLBACK_BUCKETS,
            rationale=("Using general safe exercises - no specific pattern detected",),
            matched_keywords=(),
            confidence="low",
            notes=f"No pattern match found - using safe defaults ({', '.join(FALLBACK_BUCKETS)})",
        )

    buckets = _unique(b for rule in matched for b in rule.buckets)
    notes = f"Matched {len(matched)} rule(s) with keywords: {', '.join(keywords)}"

    if confidence == "low":
        conservative = [b for b in buckets if "mobility" in b or "isometric" in b]
        if conservative:
            buckets = conservative
            notes = f"Low AI confidence - restricted to conservative buckets: {', '.join(conservative)}"
        else:
            buckets = list(FALLBACK_BUCKETS)
            notes = f"Low AI confidence + no conservative buckets - using fallback: {', '.join(FALLBACK_BUCKETS)}"

    return PatternMapping(
        buckets=tuple(buckets),
        rationale=tuple(rule.rationale for rule in matched),
        matched_keywords=tuple(keywords),
        confidence=confidence,
        notes=notes,
    )

