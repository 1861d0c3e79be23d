"""Persistence of LearnerResponse rows.

One row per (learner, review), guarded by a unique constraint. Learner saves
never touch feedback/graded_at. Grading is only allowed once the response is
final, and a final response no longer accepts learner saves, so the teacher's
score is never overwritten.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tutorhub.core.clock import utcnow
from tutorhub.core.exceptions import ConflictError, NotFoundError, ValidationError
from tutorhub.models.learner_response import LearnerResponse, SubmissionStatus

logger = logging.getLogger(__name__)


def get_response(db: Session, *, learner_id: int, review_id: int) -> Optional[LearnerResponse]:
    return (
        db.query(LearnerResponse)
        .filter(LearnerResponse.learner_id == int(learner_id), LearnerResponse.review_id == int(review_id))
        .first()
    )


def responses_for_learner(db: Session, *, learner_id: int, review_ids: Iterable[int]) -> Dict[int, LearnerResponse]:
    ids = sorted({int(r) for r in review_ids})
    if not ids:
        return {}
    rows = (
        db.query(LearnerResponse)
        .filter(LearnerResponse.learner_id == int(learner_id), LearnerResponse.review_id.in_(ids))
        .all()
    )
    return {int(r.review_id): r for r in rows}


def responses_for_review(db: Session, *, review_id: int, learner_ids: Iterable[int]) -> Dict[int, LearnerResponse]:
    ids = sorted({int(x) for x in learner_ids})
    if not ids:
        return {}
    rows = (
        db.query(LearnerResponse)
        .filter(LearnerResponse.review_id == int(review_id), LearnerResponse.learner_id.in_(ids))
        .all()
    )
    return {int(r.learner_id): r for r in rows}


def merge_answers(existing: Optional[Mapping[Any, Any]], incoming: Optional[Mapping[Any, Any]]) -> Dict[str, str]:
    """Newer answers win; earlier answers not resent are kept. None/"" clears."""

    merged: Dict[str, str] = {str(k): v for k, v in dict(existing or {}).items() if v not in (None, "")}
    for k, v in dict(incoming or {}).items():
        key = str(k)
        if v is None or str(v).strip() == "":
            merged.pop(key, None)
        else:
            merged[key] = str(v).strip()
    return merged


def _insert_response(db: Session, values: Dict[str, Any]) -> LearnerResponse:
    row = LearnerResponse(**values)
    db.add(row)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(
            "A response already exists for this learner and review",
            details={"learner_id": values.get("learner_id"), "review_id": values.get("review_id")},
        ) from exc
    return row


def _apply_learner_fields(
    row: LearnerResponse,
    *,
    answers: Mapping[str, Any],
    complete: bool,
    score: Optional[int],
    now: datetime,
) -> None:
    row.responses = dict(answers)
    if complete:
        row.submission_status = SubmissionStatus.completed.value
        row.score = score
        row.submitted_at = now
    else:
        row.submission_status = SubmissionStatus.incomplete.value


def save_learner_response(
    db: Session,
    *,
    learner_id: int,
    review_id: int,
    answers: Mapping[str, Any],
    complete: bool = False,
    score: Optional[int] = None,
    now: Optional[datetime] = None,
) -> LearnerResponse:
    """Insert or update the learner's row; `answers` is the full merged map.

    Only learner-owned columns are written. A completed response is final.
    """

    now = now or utcnow()
    row = get_response(db, learner_id=learner_id, review_id=review_id)
    if row is not None and row.is_completed:
        raise ConflictError(
            "This assessment has already been submitted",
            code="ALREADY_SUBMITTED",
            details={"learner_id": int(learner_id), "review_id": int(review_id)},
        )

    if row is None:
        values: Dict[str, Any] = {
            "learner_id": int(learner_id),
            "review_id": int(review_id),
            "responses": dict(answers),
            "submission_status": SubmissionStatus.incomplete.value,
        }
        if complete:
            values.update(
                submission_status=SubmissionStatus.completed.value,
                score=score,
                submitted_at=now,
            )
        try:
            row = _insert_response(db, values)
        except ConflictError:
            # Another save won the insert; fall back to updating its row.
            logger.info("learner %s review %s: concurrent insert, retrying as update", learner_id, review_id)
            row = get_response(db, learner_id=learner_id, review_id=review_id)
            if row is None:
                raise
            if row.is_completed:
                raise ConflictError("This assessment has already been submitted", code="ALREADY_SUBMITTED")
            _apply_learner_fields(row, answers=answers, complete=complete, score=score, now=now)
    else:
        _apply_learner_fields(row, answers=answers, complete=complete, score=score, now=now)

    db.commit()
    db.refresh(row)
    return row


def grade_response(
    db: Session,
    *,
    learner_id: int,
    review_id: int,
    score: int,
    feedback: Optional[str],
    now: Optional[datetime] = None,
) -> LearnerResponse:
    """Teacher override of score plus feedback; touches teacher-owned columns only."""

    try:
        value = int(score)
    except (TypeError, ValueError) as exc:
        raise ValidationError("Score must be a whole number between 0 and 100") from exc
    if value < 0 or value > 100:
        raise ValidationError("Score must be between 0 and 100", details={"score": value})

    row = get_response(db, learner_id=learner_id, review_id=review_id)
    if row is None:
        raise NotFoundError(
            "No response found for this learner and review",
            details={"learner_id": int(learner_id), "review_id": int(review_id)},
        )

    if not row.is_completed:
        raise ConflictError(
            "This response has not been submitted yet",
            code="NOT_SUBMITTED",
            details={"learner_id": int(learner_id), "review_id": int(review_id)},
        )

    row.score = value
    row.feedback = (feedback or "").strip() or None
    row.graded_at = now or utcnow()
    db.commit()
    db.refresh(row)
    return row
