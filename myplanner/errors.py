"""
Error hierarchy.

Remote failures are split into retryable and non-retryable classes so the
mutation coordinator can decide whether another attempt makes sense:

    RetryableOperationError     -> retried with linear backoff
    NonRetryableOperationError  -> surfaced on first occurrence

ValidationError is raised before anything is sent anywhere.
"""

from __future__ import annotations


class PlannerError(Exception):
    """Base exception for all planner errors."""


class ValidationError(PlannerError, ValueError):
    """Malformed slot or missing required field. Never retried."""


class OperationError(PlannerError):
    """Base class for failures of a remote operation."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RetryableOperationError(OperationError):
    """Transient failure that may succeed on retry.

    Examples: connection refused, timeouts, HTTP 5xx, HTTP 429.
    """


class NonRetryableOperationError(OperationError):
    """Semantic rejection by the backend. Retrying will not help.

    Examples: resource already changed server-side, bad request payload.
    """


class AuthorizationError(NonRetryableOperationError):
    """User is not allowed to perform the operation (HTTP 401/403)."""


class DuplicateInvocation:
    """
    Marker returned by MutationCoordinator.mutate when the id is already in flight.

    Not an error: callers must never render it as a failure. It is falsy so that
    `if not result:` style checks treat it like "nothing happened".
    """

    _instance: DuplicateInvocation | None = None

    def __new__(cls) -> DuplicateInvocation:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "DUPLICATE_INVOCATION"


DUPLICATE_INVOCATION = DuplicateInvocation()


def is_retryable(exc: BaseException) -> bool:
    """
    Classify a failure for the retry loop.

    Unclassified exceptions (e.g. a raw OSError from a transport) count as
    transient. Cancellation and other BaseExceptions never do.
    """
    if isinstance(exc, (NonRetryableOperationError, ValidationError)):
        return False
    return isinstance(exc, Exception)
