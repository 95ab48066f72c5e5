"""
FastAPI Dependency Providers for the Rehab Plan API.

This module provides FastAPI dependency injection functions that return
interface types (Protocols) rather than concrete implementations.

Architecture:
- Settings, Supabase client, dedup cache, program locks, AI gateway,
  catalog and the executor are cached per-process (lru_cache)
- Repository providers create new instances per-request
- Auth providers extract user from headers

Usage in routers:
    from api.deps import get_current_user, get_engine
    from services.rehab_engine import RehabEngine

    @router.get("/rehab/plans/{plan_id}")
    async def get_plan(
        plan_id: str,
        user_id: str = Depends(get_current_user),
        engine: RehabEngine = Depends(get_engine),
    ):
        return await engine.get_plan(plan_id, user_id)

Testing:
    # Override dependencies in tests
    app.dependency_overrides[get_engine] = lambda: engine_with_fakes
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import Depends, Header, HTTPException
from supabase import Client, create_client

from application.ports import (
    CatalogRepository,
    LogRepository,
    PlanRepository,
    ProfileRepository,
    ProgramRepository,
    UserRepository,
)
from backend.settings import Settings, get_settings as _get_settings
from infrastructure.db import (
    SupabaseCatalogRepository,
    SupabaseLogRepository,
    SupabasePlanRepository,
    SupabaseProfileRepository,
    SupabaseProgramRepository,
    SupabaseUserRepository,
)
from services.dedup_cache import DeduplicationCache
from services.exercise_catalog import ExerciseCatalog
from services.llm import OpenAIPlanAugmenter
from services.program_locks import ProgramLockRegistry
from services.rehab_engine import RehabEngine

logger = logging.getLogger(__name__)


# =============================================================================
# Settings Provider
# =============================================================================


def get_settings() -> Settings:
    """
    Get application settings.

    Returns cached Settings instance from backend.settings.
    Use this as a FastAPI dependency for settings access.
    """
    return _get_settings()


# =============================================================================
# Supabase Client Provider
# =============================================================================


@lru_cache
def get_supabase_client() -> Optional[Client]:
    """
    Get Supabase client instance (cached).

    Returns:
        Client: Supabase client instance, or None if not configured
    """
    settings = _get_settings()

    if not settings.supabase_url or not settings.supabase_key:
        return None

    return create_client(settings.supabase_url, settings.supabase_key)


def get_supabase_client_required() -> Client:
    """
    Get Supabase client instance, raising if not configured.

    Raises:
        HTTPException: 503 if Supabase is not configured
    """
    client = get_supabase_client()
    if client is None:
        raise HTTPException(
            status_code=503,
            detail="Database not available. Supabase credentials not configured.",
        )
    return client


# =============================================================================
# Repository Providers
# =============================================================================


def get_profile_repo(
    client: Client = Depends(get_supabase_client_required),
) -> ProfileRepository:
    return SupabaseProfileRepository(client)


def get_program_repo(
    client: Client = Depends(get_supabase_client_required),
) -> ProgramRepository:
    return SupabaseProgramRepository(client)


def get_log_repo(
    client: Client = Depends(get_supabase_client_required),
) -> LogRepository:
    return SupabaseLogRepository(client)


def get_plan_repo(
    client: Client = Depends(get_supabase_client_required),
) -> PlanRepository:
    return SupabasePlanRepository(client)


def get_user_repo(
    client: Client = Depends(get_supabase_client_required),
) -> UserRepository:
    return SupabaseUserRepository(client)


def get_catalog_repo(
    client: Client = Depends(get_supabase_client_required),
) -> CatalogRepository:
    return SupabaseCatalogRepository(client)


# =============================================================================
# Engine Providers
# =============================================================================


@lru_cache
def get_executor() -> ThreadPoolExecutor:
    """Process-wide executor for blocking repository calls."""
    return ThreadPoolExecutor(max_workers=8, thread_name_prefix="rehab_engine_")


@lru_cache
def get_dedup_cache() -> DeduplicationCache:
    """
    Process-wide dedup cache for augmentation results.

    One instance per process so concurrent requests with the same
    fingerprint share a single gateway call.
    """
    settings = _get_settings()
    return DeduplicationCache(ttl_seconds=settings.ai_cache_ttl_ms / 1000)


@lru_cache
def get_program_locks() -> ProgramLockRegistry:
    """
    Process-wide per-program locks.

    Engines are built per request, so the locks that serialize streak
    updates and plan parent resolution must outlive any one engine.
    """
    return ProgramLockRegistry()


@lru_cache
def get_augmenter() -> OpenAIPlanAugmenter:
    """
    AI gateway configured from settings.

    Disabled (every call skipped) unless AI_ENABLED is set and an
    OpenAI key is present.
    """
    settings = _get_settings()
    if settings.ai_enabled and not settings.openai_api_key:
        logger.warning("AI_ENABLED is set but OPENAI_API_KEY is missing; augmentation disabled")
    return OpenAIPlanAugmenter(
        api_key=settings.openai_api_key,
        enabled=settings.ai_configured,
        model=settings.openai_model,
        temperature=settings.openai_temperature,
        max_tokens=settings.openai_max_tokens,
        timeout_ms=settings.ai_timeout_ms,
    )


@lru_cache
def get_exercise_catalog() -> ExerciseCatalog:
    """
    Shared catalog loader; the index is reloaded after its TTL.

    Raises:
        HTTPException: 503 if Supabase is not configured
    """
    client = get_supabase_client_required()
    return ExerciseCatalog(SupabaseCatalogRepository(client), executor=get_executor())


def get_engine(
    settings: Settings = Depends(get_settings),
    profile_repo: ProfileRepository = Depends(get_profile_repo),
    program_repo: ProgramRepository = Depends(get_program_repo),
    log_repo: LogRepository = Depends(get_log_repo),
    plan_repo: PlanRepository = Depends(get_plan_repo),
    user_repo: UserRepository = Depends(get_user_repo),
    catalog_repo: CatalogRepository = Depends(get_catalog_repo),
) -> RehabEngine:
    """
    Get a RehabEngine wired to the request's repositories.

    The dedup cache, lock registry, gateway, catalog and executor are
    shared across requests.
    """
    return RehabEngine(
        profile_repo=profile_repo,
        program_repo=program_repo,
        log_repo=log_repo,
        plan_repo=plan_repo,
        user_repo=user_repo,
        catalog_repo=catalog_repo,
        augmenter=get_augmenter(),
        cache=get_dedup_cache(),
        timeout_ms=settings.ai_timeout_ms,
        streak_cadence_days=settings.streak_cadence_days,
        summary_period_days=settings.summary_period_days,
        maintenance_mode_enabled=settings.maintenance_mode_enabled,
        catalog=get_exercise_catalog(),
        executor=get_executor(),
        locks=get_program_locks(),
    )


# =============================================================================
# Request Context Providers
# =============================================================================


def get_timezone(
    x_timezone: Optional[str] = Header(None),
) -> ZoneInfo:
    """
    Resolve the caller's IANA timezone from the X-Timezone header.

    Defaults to UTC when the header is absent.

    Raises:
        HTTPException: 400 if the timezone name is unknown
    """
    if not x_timezone:
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(x_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise HTTPException(
            status_code=400,
            detail=f"Unknown timezone '{x_timezone}'",
        )


def get_today(tz: ZoneInfo = Depends(get_timezone)) -> date:
    """The caller's local calendar date."""
    return datetime.now(tz).date()


# =============================================================================
# Authentication Providers
# =============================================================================


async def get_current_user(
    authorization: Optional[str] = Header(None),
) -> str:
    """
    Get the current authenticated user ID.

    Extracts user ID from the Authorization header.

    Args:
        authorization: Bearer token header

    Returns:
        str: User ID from authentication

    Raises:
        HTTPException: 401 if authentication fails
        RuntimeError: If auth stub is used in production
    """
    # Block production deployment with auth stub
    environment = os.environ.get("ENVIRONMENT", "development").lower()
    if environment == "production":
        raise RuntimeError(
            "Authentication stub cannot be used in production. "
            "Implement proper JWT validation before deploying."
        )

    if not authorization:
        raise HTTPException(
            status_code=401,
            detail="Missing authorization header",
        )

    if not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=401,
            detail="Invalid authorization header format",
        )

    token = authorization[7:]  # Remove "Bearer " prefix

    if not token:
        raise HTTPException(
            status_code=401,
            detail="Invalid token",
        )

    # Stub: the bearer token is the user id
    return token


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    # Settings
    "get_settings",
    # Database
    "get_supabase_client",
    "get_supabase_client_required",
    # Repositories
    "get_catalog_repo",
    "get_log_repo",
    "get_plan_repo",
    "get_profile_repo",
    "get_program_repo",
    "get_user_repo",
    # Engine
    "get_augmenter",
    "get_dedup_cache",
    "get_engine",
    "get_exercise_catalog",
    "get_executor",
    # Request context
    "get_timezone",
    "get_today",
    # Authentication
    "get_current_user",
]
