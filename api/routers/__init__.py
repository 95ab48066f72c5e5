"""
Router package for the Rehab Plan API.

This package contains all API routers organized by domain:
- health: Health check endpoints
- onboarding: Mode suggestion and onboarding submission
- logs: Daily symptom logs
- plans: Plan generation and lookup
- programs: Progression chain and adherence
- users: App mode switching
"""

from api.routers.health import router as health_router
from api.routers.logs import router as logs_router
from api.routers.onboarding import router as onboarding_router
from api.routers.plans import router as plans_router
from api.routers.programs import router as programs_router
from api.routers.users import router as users_router

__all__ = [
    "health_router",
    "logs_router",
    "onboarding_router",
    "plans_router",
    "programs_router",
    "users_router",
]
