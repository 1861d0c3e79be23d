from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from tutorhub.api.deps import get_db, get_today, require_user
from tutorhub.models.user import User
from tutorhub.schemas.assessment import AnswersRequest
from tutorhub.services.assessment_timeline import TemporalBucket
from tutorhub.services.learner_assessment_service import (
    get_assessment_for_attempt,
    get_result,
    learner_summary,
    list_learner_assessments,
    save_progress,
    submit_assessment,
)


router = APIRouter(tags=["learner"])


@router.get("/learner/assessments")
def learner_assessments_list(
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
    today: date = Depends(get_today),
    bucket: Optional[TemporalBucket] = None,
):
    data = list_learner_assessments(
        db,
        learner_id=int(user.id),
        today=today,
        bucket=bucket.value if bucket is not None else None,
    )
    return {"request_id": request.state.request_id, "data": data, "error": None}


# Declared before /{assessment_id} so "summary" is not parsed as an id.
@router.get("/learner/assessments/summary")
def learner_assessments_summary(
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
    today: date = Depends(get_today),
):
    data = learner_summary(db, learner_id=int(user.id), today=today)
    return {"request_id": request.state.request_id, "data": data, "error": None}


@router.get("/learner/assessments/{assessment_id}")
def learner_assessment_open(
    request: Request,
    assessment_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
    today: date = Depends(get_today),
):
    data = get_assessment_for_attempt(db, assessment_id=assessment_id, learner_id=int(user.id), today=today)
    return {"request_id": request.state.request_id, "data": data, "error": None}


@router.put("/learner/assessments/{assessment_id}/progress")
def learner_assessment_progress(
    request: Request,
    assessment_id: int,
    payload: AnswersRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
    today: date = Depends(get_today),
):
    data = save_progress(
        db,
        assessment_id=assessment_id,
        learner_id=int(user.id),
        answers=payload.answers,
        today=today,
    )
    return {"request_id": request.state.request_id, "data": data, "error": None}


@router.post("/learner/assessments/{assessment_id}/submit")
def learner_assessment_submit(
    request: Request,
    assessment_id: int,
    payload: AnswersRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
    today: date = Depends(get_today),
):
    # Always submit as the current user.
    data = submit_assessment(
        db,
        assessment_id=assessment_id,
        learner_id=int(user.id),
        answers=payload.answers,
        today=today,
    )
    return {"request_id": request.state.request_id, "data": data, "error": None}


@router.get("/learner/assessments/{assessment_id}/result")
def learner_assessment_result(
    request: Request,
    assessment_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
    today: date = Depends(get_today),
):
    data = get_result(db, assessment_id=assessment_id, learner_id=int(user.id), today=today)
    return {"request_id": request.state.request_id, "data": data, "error": None}
