"""
Database infrastructure package.

Supabase implementations of the repository ports.
"""

from infrastructure.db.catalog_repository import SupabaseCatalogRepository
from infrastructure.db.log_repository import SupabaseLogRepository
from infrastructure.db.plan_repository import SupabasePlanRepository
from infrastructure.db.profile_repository import SupabaseProfileRepository
from infrastructure.db.program_repository import SupabaseProgramRepository
from infrastructure.db.user_repository import SupabaseUserRepository

__all__ = [
    "SupabaseCatalogRepository",
    "SupabaseLogRepository",
    "SupabasePlanRepository",
    "SupabaseProfileRepository",
    "SupabaseProgramRepository",
    "SupabaseUserRepository",
]
