"""
Services package for the rehab plan API.

Contains business logic services for:
- Onboarding mode suggestion and shortlist rules
- Exercise catalog loading
- AI augmentation with request deduplication
- Plan assembly and the progression chain
- Streaks and weekly summaries
"""

from services.adherence import AdherenceAggregator, StreakUpdate, next_streak
from services.dedup_cache import DeduplicationCache, compute_fingerprint
from services.exercise_catalog import ExerciseCatalog, ExerciseCatalogIndex
from services.plan_assembler import PlanAssembler, resolve_plan_status
from services.rehab_engine import RehabEngine
from services.rules import (
    SymptomSnapshot,
    TrendAnalysis,
    analyze_trend,
    build_shortlist,
    map_pattern_to_buckets,
    suggest_mode,
)

__all__ = [
    "AdherenceAggregator",
    "DeduplicationCache",
    "ExerciseCatalog",
    "ExerciseCatalogIndex",
    "PlanAssembler",
    "RehabEngine",
    "StreakUpdate",
    "SymptomSnapshot",
    "TrendAnalysis",
    "analyze_trend",
    "build_shortlist",
    "compute_fingerprint",
    "map_pattern_to_buckets",
    "next_streak",
    "resolve_plan_status",
    "suggest_mode",
]
