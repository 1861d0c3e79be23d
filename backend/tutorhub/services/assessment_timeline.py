"""Learner-facing temporal classification of assessments.

"today" is always an argument; nothing in here reads the wall clock.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from tutorhub.models.assessment import AssessmentStatus


class TemporalBucket(str, Enum):
    upcoming = "upcoming"
    in_progress = "in_progress"
    missed = "missed"
    completed = "completed"


# Statuses a learner can ever observe.
LEARNER_VISIBLE_STATUSES = frozenset({AssessmentStatus.scheduled.value, AssessmentStatus.active.value})


def as_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def classify(start_date: Any, end_date: Any, today: Any, has_completed_response: bool) -> TemporalBucket:
    if has_completed_response:
        return TemporalBucket.completed

    start, end, now = as_date(start_date), as_date(end_date), as_date(today)
    if now < start:
        return TemporalBucket.upcoming
    if now <= end:
        return TemporalBucket.in_progress
    return TemporalBucket.missed


def is_learner_visible(status: Any) -> bool:
    return str(getattr(status, "value", status) or "") in LEARNER_VISIBLE_STATUSES


def classify_for_learner(assessment: Any, today: Any, has_completed_response: bool) -> Optional[TemporalBucket]:
    """Bucket for a learner, or None when the assessment is not visible.

    Drafts and cancelled assessments are never classified. An assessment that
    was sent early (status active) is open even before its start date.
    """

    status = getattr(assessment, "status", None)
    status = str(getattr(status, "value", status) or "")
    if not is_learner_visible(status):
        return None

    bucket = classify(assessment.start_date, assessment.end_date, today, has_completed_response)
    if bucket is TemporalBucket.upcoming and status == AssessmentStatus.active.value:
        return TemporalBucket.in_progress
    return bucket


def days_remaining(due_date: Any, today: Any) -> int:
    # Whole calendar dates, so ceil((due - today) / 1 day) is the day delta.
    return (as_date(due_date) - as_date(today)).days


def format_time_remaining(days: int) -> str:
    n = abs(int(days))
    unit = "day" if n == 1 else "days"
    if days < 0:
        return f"{n} {unit} ago"
    return f"{n} {unit}"


def time_remaining_label(assessment: Any, today: Any) -> str:
    return format_time_remaining(days_remaining(assessment.end_date, today))
