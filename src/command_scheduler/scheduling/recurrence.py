"""Recurrence evaluation.

A pure function pair over cron expressions, backed by ``croniter``:

* ``next_after(expression, after)``: first scheduled instant strictly
  after ``after``.
* ``validate_expression(expression)``: raise ``InvalidExpressionError``
  for anything ``croniter`` cannot parse.

Macros (``@daily``, ``@hourly`` …) are accepted.  Evaluation happens in
UTC; the result is always timezone-aware.

Tags:
    scheduling, cron, croniter, recurrence
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from croniter import croniter

from command_scheduler.core.errors import InvalidExpressionError
from command_scheduler.core.timestamps import ensure_utc

NextRunEvaluator = Callable[[str, datetime], datetime]


def validate_expression(expression: str | None) -> str:
    """Return the stripped expression, or raise ``InvalidExpressionError``."""
    if not expression or not expression.strip():
        raise InvalidExpressionError(expression)
    expression = expression.strip()
    if not croniter.is_valid(expression):
        raise InvalidExpressionError(expression)
    return expression


def is_valid_expression(expression: str | None) -> bool:
    try:
        validate_expression(expression)
    except InvalidExpressionError:
        return False
    return True


def next_after(expression: str, after: datetime) -> datetime:
    """Compute the next scheduled instant strictly after ``after``.

    Args:
        expression: Cron expression (5-part, optional seconds, or macro)
        after: Reference instant; naive values are taken as UTC

    Returns:
        Next run datetime in UTC

    Raises:
        InvalidExpressionError: If the expression cannot be parsed
    """
    anchor = ensure_utc(after)
    try:
        return ensure_utc(croniter(expression, anchor).get_next(datetime))
    except (ValueError, KeyError) as e:
        raise InvalidExpressionError(expression, cause=e) from e


__all__ = [
    "NextRunEvaluator",
    "is_valid_expression",
    "next_after",
    "validate_expression",
]
