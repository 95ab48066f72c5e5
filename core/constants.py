"""
Shared constants for the rehab plan engine.

This module has no dependencies on models or services to avoid circular imports.
"""

# Maximum length for a single user-provided tag (aggravator, easer, red flag label)
MAX_TAG_LENGTH = 100

# Maximum number of tags allowed per request field
MAX_TAGS_COUNT = 10

# Maximum length for free-text notes forwarded to the AI prompt
MAX_NOTES_LENGTH = 500

# ---------------------------------------------------------------------------
# Rule evaluator
# ---------------------------------------------------------------------------

# Pain-at-rest score at or above which onboarding suggests rehab (medium risk)
PAIN_REST_REHAB_THRESHOLD = 4

# Hard cap on the number of exercises in a shortlist
MAX_SHORTLIST_LENGTH = 6

# Maximum exercises taken from a single bucket before moving to the next
MAX_EXERCISES_PER_BUCKET = 2

# Pain at or above which isometric loading is added regardless of risk
ISOMETRIC_PAIN_THRESHOLD = 6

# Pain at or below which activation/stability work is allowed
ACTIVATION_PAIN_CEILING = 5

# Pain at or below which light strengthening is allowed
LIGHT_STRENGTH_PAIN_CEILING = 3

# Trailing window (days) of prior logs used as the trend baseline
TREND_WINDOW_DAYS = 14

# Relative change of (pain + stiffness) vs baseline that counts as a trend
TREND_RELATIVE_THRESHOLD = 0.15

# ---------------------------------------------------------------------------
# Progression chain
# ---------------------------------------------------------------------------

# Upper bound on parent-link traversal when rebuilding a chain
MAX_CHAIN_DEPTH = 500

# Plan inserts attempted for a stored log before the plan is deferred
PLAN_CONFLICT_ATTEMPTS = 3

# ---------------------------------------------------------------------------
# Adherence
# ---------------------------------------------------------------------------

DEFAULT_STREAK_CADENCE_DAYS = 1
DEFAULT_SUMMARY_PERIOD_DAYS = 7

# ---------------------------------------------------------------------------
# AI augmentation
# ---------------------------------------------------------------------------

DEFAULT_AI_TIMEOUT_MS = 10_000
DEFAULT_AI_CACHE_TTL_MS = 5 * 60 * 1000
