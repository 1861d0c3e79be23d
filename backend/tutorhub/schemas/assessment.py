from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class AssessmentCreateRequest(BaseModel):
    review_id: int
    title: str = Field(min_length=1, max_length=255)
    subject: str = Field(min_length=1, max_length=120)
    grade: str = Field(min_length=1, max_length=50)
    description: Optional[str] = None
    start_date: date
    end_date: date

    # False keeps the assessment as a draft.
    as_scheduled: bool = True

    # Kept as plain str so an unknown kind reaches the service and is
    # reported with the usual VALIDATION_ERROR envelope.
    audience_kind: str = "class"
    target_class_ids: List[int] = Field(default_factory=list)
    target_group_ids: List[int] = Field(default_factory=list)
    target_learner_ids: List[int] = Field(default_factory=list)


class AssessmentUpdateRequest(BaseModel):
    title: Optional[str] = None
    subject: Optional[str] = None
    grade: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    audience_kind: Optional[str] = None
    target_class_ids: Optional[List[int]] = None
    target_group_ids: Optional[List[int]] = None
    target_learner_ids: Optional[List[int]] = None


class RescheduleRequest(BaseModel):
    start_date: date
    # Omitted: the window keeps its length.
    end_date: Optional[date] = None


class ReminderRequest(BaseModel):
    message: str = Field(min_length=1, max_length=2000)


class GradeRequest(BaseModel):
    score: int = Field(ge=0, le=100)
    feedback: Optional[str] = Field(default=None, max_length=4000)


class AnswersRequest(BaseModel):
    # question id -> letter ("A", "B", ...); null clears a saved answer
    answers: Dict[str, Optional[str]] = Field(default_factory=dict)

