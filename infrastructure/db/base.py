"""
Shared helpers for Supabase repositories.

Transient transport failures are retried with exponential backoff;
Postgres unique violations surface as PersistenceConflictError so the
engine can report them as retryable conflicts.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import httpx
from postgrest.exceptions import APIError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from application.exceptions import PersistenceConflictError

logger = logging.getLogger(__name__)

# Default retry configuration
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_MIN_WAIT_SECONDS = 0.2
DEFAULT_MAX_WAIT_SECONDS = 2

# Postgres SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"

db_retry = retry(
    retry=retry_if_exception_type(httpx.TransportError),
    stop=stop_after_attempt(DEFAULT_MAX_ATTEMPTS),
    wait=wait_exponential(multiplier=DEFAULT_MIN_WAIT_SECONDS, max=DEFAULT_MAX_WAIT_SECONDS),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


def _constraint_name(error: APIError) -> Optional[str]:
    details = error.details or ""
    message = error.message or ""
    for text in (message, details):
        if '"' in text:
            parts = text.split('"')
            if len(parts) >= 3:
                return parts[1]
    return None


@contextmanager
def translate_errors(table: str) -> Iterator[None]:
    """
    Map PostgREST errors raised inside the block to engine errors.

    Unique violations become PersistenceConflictError; every other
    error propagates unchanged.
    """
    try:
        yield
    except APIError as e:
        if e.code == UNIQUE_VIOLATION:
            constraint = _constraint_name(e)
            logger.warning(f"Unique violation on {table} (constraint={constraint})")
            raise PersistenceConflictError(
                f"Conflicting write to {table}", constraint=constraint
            ) from e
        raise
