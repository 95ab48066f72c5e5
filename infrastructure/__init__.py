"""
Infrastructure layer package for the rehab plan API.

This package contains concrete implementations of the port interfaces.
"""

from infrastructure.db import (
    SupabaseCatalogRepository,
    SupabaseLogRepository,
    SupabasePlanRepository,
    SupabaseProfileRepository,
    SupabaseProgramRepository,
    SupabaseUserRepository,
)

__all__ = [
    "SupabaseCatalogRepository",
    "SupabaseLogRepository",
    "SupabasePlanRepository",
    "SupabaseProfileRepository",
    "SupabaseProgramRepository",
    "SupabaseUserRepository",
]
