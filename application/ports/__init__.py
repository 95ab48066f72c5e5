"""
Port interfaces (Protocols) for the rehab plan API.

This package defines the interface contracts that the infrastructure
layer must implement. Using Protocols enables:
- Clean separation of concerns
- Easy testing with in-memory fakes
- Dependency inversion (depend on abstractions, not concretions)
"""

from application.ports.catalog_repository import CatalogRepository
from application.ports.log_repository import LogRepository
from application.ports.plan_repository import PlanRepository
from application.ports.profile_repository import ProfileRepository
from application.ports.program_repository import ProgramRepository
from application.ports.user_repository import UserRepository

__all__ = [
    "CatalogRepository",
    "LogRepository",
    "PlanRepository",
    "ProfileRepository",
    "ProgramRepository",
    "UserRepository",
]
