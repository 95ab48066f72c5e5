"""
Fake implementations for testing.

This package provides in-memory fake implementations of repository
interfaces and the AI gateway for fast, isolated testing without
database or network dependencies.
"""

from tests.fakes.catalog_repository import FakeCatalogRepository, build_default_catalog
from tests.fakes.log_repository import FakeLogRepository
from tests.fakes.plan_augmenter import (
    FailingPlanAugmenter,
    FakePlanAugmenter,
    RaisingPlanAugmenter,
    SlowPlanAugmenter,
)
from tests.fakes.plan_repository import FakePlanRepository
from tests.fakes.profile_repository import FakeProfileRepository
from tests.fakes.program_repository import FakeProgramRepository
from tests.fakes.user_repository import FakeUserRepository

__all__ = [
    "FakeCatalogRepository",
    "FakeLogRepository",
    "FakePlanRepository",
    "FakeProfileRepository",
    "FakeProgramRepository",
    "FakeUserRepository",
    "FakePlanAugmenter",
    "FailingPlanAugmenter",
    "RaisingPlanAugmenter",
    "SlowPlanAugmenter",
    "build_default_catalog",
]
