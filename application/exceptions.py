"""
Application-layer exceptions.

These exceptions are used across application, service and infrastructure
layers. Gateway errors are always recovered locally (the plan degrades to a
fallback); persistence conflicts are surfaced to the caller as retryable.
"""

from typing import Optional


class RehabEngineError(Exception):
    """Base class for all engine errors."""

    pass


class ValidationError(RehabEngineError):
    """Input rejected before it reaches the engine."""

    pass


class NotFoundError(RehabEngineError):
    """A referenced log, program, profile or plan does not exist."""

    def __init__(self, entity: str, entity_id: object):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


# ---------------------------------------------------------------------------
# AI augmentation gateway
# ---------------------------------------------------------------------------


class GatewayError(RehabEngineError):
    """Base class for augmentation gateway failures."""

    kind = "failed"


class GatewayTimeoutError(GatewayError):
    """The external call did not finish within the configured timeout."""

    kind = "timeout"


class GatewayFailureError(GatewayError):
    """Transport, quota or authentication error from the external service."""

    pass


class SchemaMismatchError(GatewayError):
    """The external service answered, but the payload failed validation."""

    pass


# ---------------------------------------------------------------------------
# Persistence and progression
# ---------------------------------------------------------------------------


class PersistenceConflictError(RehabEngineError):
    """Error when a uniqueness constraint rejects a write.

    Raised for a duplicate plan on the same log, a duplicate log for the
    same program and date, or two plans racing for the same parent in a
    progression chain. Callers may retry the whole request.
    """

    retryable = True

    def __init__(self, message: str, constraint: Optional[str] = None):
        super().__init__(message)
        self.constraint = constraint


class InsufficientDataError(RehabEngineError):
    """Fewer than two comparable logs exist for a trend classification."""

    pass


class ProgressionChainError(RehabEngineError):
    """Stored parent links for a program do not form a valid chain."""

    pass
