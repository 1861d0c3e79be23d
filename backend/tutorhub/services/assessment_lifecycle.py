"""Teacher-facing administrative lifecycle of an assessment.

    draft -> scheduled -> active
    scheduled | active -> cancelled   (terminal)

Independent of the learner-facing temporal bucket. Functions mutate the
passed assessment in place and return it; persisting is the caller's job.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Optional

from tutorhub.core.exceptions import InvalidTransitionError, ValidationError
from tutorhub.models.assessment import AssessmentStatus
from tutorhub.services.assessment_timeline import as_date

logger = logging.getLogger(__name__)

DRAFT = AssessmentStatus.draft.value
SCHEDULED = AssessmentStatus.scheduled.value
ACTIVE = AssessmentStatus.active.value
CANCELLED = AssessmentStatus.cancelled.value

# action -> {from_status: to_status}
TRANSITIONS: dict[str, dict[str, str]] = {
    "schedule": {DRAFT: SCHEDULED},
    "reschedule": {SCHEDULED: SCHEDULED},
    "send_now": {SCHEDULED: ACTIVE, ACTIVE: ACTIVE},
    "cancel": {SCHEDULED: CANCELLED, ACTIVE: CANCELLED, CANCELLED: CANCELLED},
}

# Descriptive fields and dates may still be edited in these states.
EDITABLE_STATUSES = frozenset({DRAFT, SCHEDULED})


def initial_status(as_scheduled: bool) -> str:
    return SCHEDULED if as_scheduled else DRAFT


def _status_of(assessment: Any) -> str:
    status = getattr(assessment, "status", None)
    return str(getattr(status, "value", status) or "")


def next_status(current: str, action: str) -> str:
    allowed = TRANSITIONS.get(action)
    if allowed is None:
        raise ValueError(f"Unknown lifecycle action: {action}")
    cur = str(getattr(current, "value", current) or "")
    if cur not in allowed:
        raise InvalidTransitionError(
            f"Cannot {action.replace('_', ' ')} an assessment that is {cur or 'unknown'}",
            details={"action": action, "status": cur},
        )
    return allowed[cur]


def can_transition(current: str, action: str) -> bool:
    try:
        next_status(current, action)
    except InvalidTransitionError:
        return False
    return True


def validate_window(start_date: Any, end_date: Any) -> tuple[date, date]:
    if start_date is None or end_date is None:
        raise ValidationError("Start date and end date are required")
    try:
        start, end = as_date(start_date), as_date(end_date)
    except ValueError as exc:
        raise ValidationError(f"Invalid date: {exc}") from exc
    if end < start:
        raise ValidationError(
            "End date must be on or after the start date",
            details={"start_date": start.isoformat(), "end_date": end.isoformat()},
        )
    return start, end


def _apply(assessment: Any, action: str) -> Any:
    before = _status_of(assessment)
    after = next_status(before, action)
    assessment.status = after
    if before != after:
        logger.info("assessment %s: %s -> %s (%s)", getattr(assessment, "id", None), before, after, action)
    return assessment


def schedule(assessment: Any) -> Any:
    return _apply(assessment, "schedule")


def send_now(assessment: Any) -> Any:
    """Open the assessment to learners immediately, ignoring its start date."""

    return _apply(assessment, "send_now")


def cancel(assessment: Any) -> Any:
    return _apply(assessment, "cancel")


def reschedule(assessment: Any, new_start_date: Any, new_end_date: Optional[Any] = None) -> Any:
    """Move a scheduled assessment's window.

    Without an explicit end date the window keeps its length.
    """

    next_status(_status_of(assessment), "reschedule")

    old_start, old_end = as_date(assessment.start_date), as_date(assessment.end_date)
    try:
        start = as_date(new_start_date)
    except ValueError as exc:
        raise ValidationError(f"Invalid date: {exc}") from exc
    if new_end_date is None:
        end = start + timedelta(days=max(0, (old_end - old_start).days))
    else:
        end = new_end_date
    start, end = validate_window(start, end)

    assessment.start_date = start
    assessment.end_date = end
    logger.info(
        "assessment %s rescheduled: %s..%s -> %s..%s",
        getattr(assessment, "id", None), old_start, old_end, start, end,
    )
    return assessment


def ensure_editable(assessment: Any) -> None:
    status = _status_of(assessment)
    if status not in EDITABLE_STATUSES:
        raise InvalidTransitionError(
            f"Assessment is {status} and can no longer be edited",
            details={"action": "edit", "status": status},
        )
