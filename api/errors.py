"""
Engine error to HTTP mapping.

Routers catch RehabEngineError and re-raise the HTTPException built here,
so status codes stay consistent across endpoints.
"""

import logging

from fastapi import HTTPException

from application.exceptions import (
    NotFoundError,
    PersistenceConflictError,
    ProgressionChainError,
    RehabEngineError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def to_http_exception(error: RehabEngineError) -> HTTPException:
    """
    Build the HTTPException for an engine error.

    - NotFoundError -> 404
    - ValidationError -> 422
    - PersistenceConflictError -> 409 with ``retryable: true``
    - ProgressionChainError and anything else -> 500
    """
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, ValidationError):
        return HTTPException(status_code=422, detail=str(error))
    if isinstance(error, PersistenceConflictError):
        return HTTPException(
            status_code=409,
            detail={"message": str(error), "retryable": error.retryable},
        )
    if isinstance(error, ProgressionChainError):
        logger.error(f"Corrupt progression chain: {error}")
        return HTTPException(status_code=500, detail="Progression chain is inconsistent")

    logger.error(f"Unhandled engine error: {error}")
    return HTTPException(status_code=500, detail="An unexpected error occurred")
