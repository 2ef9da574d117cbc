"""
Structured error types for the command scheduler.

Every failure the scheduler can observe is expressed as a typed
``SchedulerError`` carrying a category, a retry hint, free-form context
and an optional chained cause.  The run loop uses the type to decide
whether a failure is contained at the job boundary or aborts the whole
cycle.

Manifesto:
    - **Typed Error Hierarchy:** One class per failure the cycle can observe
    - **Explicit Retry Semantics:** Each error knows if it's retryable
    - **Rich Context:** Errors carry job name / id for logging
    - **Error Chaining:** Preserve original exceptions while adding context

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                      SchedulerError                          │
        │          (category, retryable, context, cause)               │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  LockConflictError      TargetNotFoundError   ConfigError    │
        │  (SCHEDULING)           (EXECUTION)           (CONFIG)       │
        │                                                              │
        │  StoreUnavailableError  TargetFaultError                     │
        │  (DATABASE, retryable)  (EXECUTION)                          │
        │                                                              │
        │  InvalidExpressionError JobNotFoundError                     │
        │  (VALIDATION)           (VALIDATION)                         │
        └─────────────────────────────────────────────────────────────┘

    Per-job errors (lock conflict, target not found, target fault, store
    unavailable) are contained by the run loop.  ``ConfigError`` is the only
    cycle-fatal error and is raised before any job is evaluated.

Tags:
    error-handling, exception-hierarchy, retry-logic, scheduler

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    DATABASE = "DATABASE"         # Store connection, transaction failures
    CONFIG = "CONFIG"             # Missing / unwritable log path, bad settings
    VALIDATION = "VALIDATION"     # Bad cron expression, unknown job name
    SCHEDULING = "SCHEDULING"     # Lock conflicts
    EXECUTION = "EXECUTION"       # Target resolution and target faults
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


class SchedulerError(Exception):
    """
    Base exception for all scheduler errors.

    Subclasses set ``default_category`` and ``default_retryable`` so call
    sites only pass what differs from the domain default.

    Examples:
        >>> error = SchedulerError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(job="nightly-report").context
        {'job': 'nightly-report'}
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context: dict[str, Any] = dict(context or {})
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> SchedulerError:
        """Add context to this error (fluent API)."""
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.context:
            result["context"] = dict(self.context)
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# PER-JOB ERRORS (contained by the run loop)
# =============================================================================


class LockConflictError(SchedulerError):
    """The job is owned by another process this cycle.

    Expected and non-fatal: the job is skipped until the next invocation.
    """

    default_category = ErrorCategory.SCHEDULING


class TargetNotFoundError(SchedulerError):
    """The command resolver has no target for the requested name."""

    default_category = ErrorCategory.EXECUTION

    def __init__(self, command: str, **kwargs: Any):
        super().__init__(f"Cannot find {command}", **kwargs)
        self.command = command


class TargetFaultError(SchedulerError):
    """The dispatched target raised instead of returning an exit code."""

    default_category = ErrorCategory.EXECUTION


class StoreUnavailableError(SchedulerError):
    """The job store failed during lock acquisition or persistence."""

    default_category = ErrorCategory.DATABASE
    default_retryable = True


# =============================================================================
# CYCLE-LEVEL AND VALIDATION ERRORS
# =============================================================================


class ConfigError(SchedulerError):
    """Invalid scheduler configuration (e.g. unwritable log directory)."""

    default_category = ErrorCategory.CONFIG


class InvalidExpressionError(SchedulerError):
    """A recurrence expression could not be parsed."""

    default_category = ErrorCategory.VALIDATION

    def __init__(self, expression: str | None, **kwargs: Any):
        super().__init__(f"Invalid cron expression: {expression!r}", **kwargs)
        self.expression = expression


class JobNotFoundError(SchedulerError):
    """No job is registered under the requested name."""

    default_category = ErrorCategory.VALIDATION

    def __init__(self, name: str, **kwargs: Any):
        super().__init__(f"Job not found: {name}", **kwargs)
        self.name = name


def is_retryable(error: BaseException) -> bool:
    """Check whether an error is worth retrying on a later cycle."""
    if isinstance(error, SchedulerError):
        return error.retryable
    return False


__all__ = [
    "ErrorCategory",
    "SchedulerError",
    "LockConflictError",
    "TargetNotFoundError",
    "TargetFaultError",
    "StoreUnavailableError",
    "ConfigError",
    "InvalidExpressionError",
    "JobNotFoundError",
    "is_retryable",
]
