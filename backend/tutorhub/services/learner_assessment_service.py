from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy.orm import Session

from tutorhub.core.config import settings
from tutorhub.core.exceptions import ConflictError, NotFoundError
from tutorhub.models.assessment import Assessment
from tutorhub.models.learner_response import LearnerResponse
from tutorhub.services.assessment_reporting import RosterEntry, summarize
from tutorhub.services.assessment_timeline import (
    LEARNER_VISIBLE_STATUSES,
    TemporalBucket,
    classify_for_learner,
    days_remaining,
    format_time_remaining,
)
from tutorhub.services.audience import audience_label, audience_target, is_known_audience_kind, target_applies
from tutorhub.services.membership_service import learner_classroom_ids, learner_group_ids
from tutorhub.services.response_service import get_response, merge_answers, responses_for_learner, save_learner_response
from tutorhub.services.review_service import get_review, get_review_questions, question_out, reviewed_questions
from tutorhub.services.scoring import grade_answers

logger = logging.getLogger(__name__)


def _applies_to(assessment: Assessment, learner_id: int, classroom_ids: List[int], group_ids: List[int]) -> bool:
    target = audience_target(assessment)
    if not is_known_audience_kind(target.kind):
        logger.warning(
            "assessment %s has unknown audience kind %r; hidden from learners",
            assessment.id, assessment.audience_kind,
        )
        return False
    return target_applies(target, learner_id, classroom_ids, group_ids)


def _visible_assessments(db: Session, learner_id: int) -> List[Assessment]:
    classroom_ids = learner_classroom_ids(db, learner_id)
    group_ids = learner_group_ids(db, learner_id)
    rows = (
        db.query(Assessment)
        .filter(Assessment.status.in_(sorted(LEARNER_VISIBLE_STATUSES)))
        .order_by(Assessment.start_date.asc(), Assessment.id.asc())
        .all()
    )
    return [a for a in rows if _applies_to(a, learner_id, classroom_ids, group_ids)]


def _classified(
    db: Session, learner_id: int, today: date
) -> List[Tuple[Assessment, TemporalBucket, Optional[LearnerResponse]]]:
    assessments = _visible_assessments(db, learner_id)
    responses = responses_for_learner(db, learner_id=learner_id, review_ids=[a.review_id for a in assessments])
    out = []
    for a in assessments:
        resp = responses.get(int(a.review_id))
        bucket = classify_for_learner(a, today, bool(resp is not None and resp.is_completed))
        if bucket is not None:
            out.append((a, bucket, resp))
    return out


def _sort_key(bucket: Optional[TemporalBucket]):
    if bucket is TemporalBucket.in_progress:
        return lambda item: (item[0].end_date, item[0].id)
    if bucket is TemporalBucket.missed:
        return lambda item: (-item[0].end_date.toordinal(), item[0].id)
    if bucket is TemporalBucket.completed:
        return lambda item: (-(item[2].submitted_at.timestamp() if item[2] and item[2].submitted_at else 0), item[0].id)
    return lambda item: (item[0].start_date, item[0].id)


def _item(a: Assessment, bucket: TemporalBucket, resp: Optional[LearnerResponse], today: date) -> Dict[str, Any]:
    completed = bucket is TemporalBucket.completed
    return {
        "assessment_id": int(a.id),
        "review_id": int(a.review_id),
        "title": a.title,
        "subject": a.subject,
        "grade": a.grade,
        "type": audience_label(a.audience_kind),
        "start_date": a.start_date.isoformat(),
        "due_date": a.end_date.isoformat(),
        "bucket": bucket.value,
        "days_remaining": days_remaining(a.end_date, today),
        "time_remaining": format_time_remaining(days_remaining(a.end_date, today)),
        "submission_status": resp.submission_status if resp is not None else None,
        "answered": len(resp.responses or {}) if resp is not None else 0,
        "question_count": int(a.question_count or 0),
        "score": resp.score if completed and resp is not None else None,
        "feedback": resp.feedback if completed and resp is not None else None,
        "submitted_at": resp.submitted_at.isoformat() if completed and resp is not None and resp.submitted_at else None,
    }


def list_learner_assessments(
    db: Session, *, learner_id: int, today: date, bucket: Optional[str] = None
) -> List[Dict[str, Any]]:
    wanted = TemporalBucket(bucket) if bucket else None
    items = _classified(db, learner_id, today)
    if wanted is not None:
        items = [it for it in items if it[1] is wanted]
    items.sort(key=_sort_key(wanted))
    return [_item(a, b, r, today) for a, b, r in items]


def learner_summary(db: Session, *, learner_id: int, today: date) -> Dict[str, Any]:
    entries = [
        RosterEntry(
            learner_id=int(learner_id),
            assessment_id=int(a.id),
            bucket=b,
            submission_status=r.submission_status if r is not None else None,
            score=r.score if r is not None else None,
        )
        for a, b, r in _classified(db, learner_id, today)
    ]
    return summarize(entries).as_dict()


def _load_for_learner(
    db: Session, *, assessment_id: int, learner_id: int, today: date
) -> Tuple[Assessment, TemporalBucket, Optional[LearnerResponse]]:
    a = db.query(Assessment).filter(Assessment.id == int(assessment_id)).first()
    if a is None or a.status not in LEARNER_VISIBLE_STATUSES:
        raise NotFoundError("Assessment not found", details={"assessment_id": int(assessment_id)})
    if not _applies_to(a, learner_id, learner_classroom_ids(db, learner_id), learner_group_ids(db, learner_id)):
        raise NotFoundError("Assessment not found", details={"assessment_id": int(assessment_id)})

    resp = get_response(db, learner_id=learner_id, review_id=int(a.review_id))
    bucket = classify_for_learner(a, today, bool(resp is not None and resp.is_completed))
    return a, bucket, resp


def _ensure_open(a: Assessment, bucket: TemporalBucket) -> None:
    if bucket is TemporalBucket.completed:
        raise ConflictError("This assessment has already been submitted", code="ALREADY_SUBMITTED")
    if bucket is TemporalBucket.upcoming:
        raise ConflictError(
            f"This assessment opens on {a.start_date.isoformat()}",
            code="NOT_OPEN",
            details={"start_date": a.start_date.isoformat()},
        )
    if bucket is TemporalBucket.missed and not settings.ALLOW_LATE_SUBMISSIONS:
        raise ConflictError(
            f"This assessment closed on {a.end_date.isoformat()}",
            code="CLOSED",
            details={"end_date": a.end_date.isoformat()},
        )


def get_assessment_for_attempt(db: Session, *, assessment_id: int, learner_id: int, today: date) -> Dict[str, Any]:
    a, bucket, resp = _load_for_learner(db, assessment_id=assessment_id, learner_id=learner_id, today=today)
    if bucket is TemporalBucket.upcoming:
        _ensure_open(a, bucket)

    review = get_review(db, int(a.review_id))
    questions = get_review_questions(db, int(a.review_id))
    return {
        "assessment_id": int(a.id),
        "review_id": int(a.review_id),
        "title": a.title,
        "description": a.description or "",
        "subject": a.subject,
        "grade": a.grade,
        "start_date": a.start_date.isoformat(),
        "end_date": a.end_date.isoformat(),
        "time_limit": review.time_limit or "01:00",
        "bucket": bucket.value,
        "read_only": bucket is TemporalBucket.completed,
        "questions": [question_out(q) for q in questions],
        "saved_answers": dict(resp.responses or {}) if resp is not None else {},
    }


def save_progress(
    db: Session,
    *,
    assessment_id: int,
    learner_id: int,
    answers: Mapping[str, Any],
    today: date,
) -> Dict[str, Any]:
    a, bucket, resp = _load_for_learner(db, assessment_id=assessment_id, learner_id=learner_id, today=today)
    _ensure_open(a, bucket)

    merged = merge_answers(resp.responses if resp is not None else None, answers)
    row = save_learner_response(db, learner_id=learner_id, review_id=int(a.review_id), answers=merged)
    return {
        "assessment_id": int(a.id),
        "review_id": int(row.review_id),
        "submission_status": row.submission_status,
        "answered": len(row.responses or {}),
        "saved_answers": dict(row.responses or {}),
    }


def submit_assessment(
    db: Session,
    *,
    assessment_id: int,
    learner_id: int,
    answers: Mapping[str, Any],
    today: date,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    a, bucket, resp = _load_for_learner(db, assessment_id=assessment_id, learner_id=learner_id, today=today)
    _ensure_open(a, bucket)

    merged = merge_answers(resp.responses if resp is not None else None, answers)
    questions = get_review_questions(db, int(a.review_id))
    result = grade_answers(merged, questions)
    if result.total == 0:
        logger.error("assessment %s (review %s) has an empty answer key; scored 0", a.id, a.review_id)
    for w in result.warnings:
        logger.warning("assessment %s learner %s: %s", a.id, learner_id, w)

    row = save_learner_response(
        db,
        learner_id=learner_id,
        review_id=int(a.review_id),
        answers=merged,
        complete=True,
        score=result.percent,
        now=now,
    )
    return {
        "assessment_id": int(a.id),
        "review_id": int(row.review_id),
        "submission_status": row.submission_status,
        "score": row.score,
        "correct": result.correct,
        "total": result.total,
        "late": bucket is TemporalBucket.missed,
        "submitted_at": row.submitted_at.isoformat() if row.submitted_at else None,
        "warnings": list(result.warnings),
    }


def get_result(db: Session, *, assessment_id: int, learner_id: int, today: date) -> Dict[str, Any]:
    a, bucket, resp = _load_for_learner(db, assessment_id=assessment_id, learner_id=learner_id, today=today)
    if resp is None or not resp.is_completed:
        raise NotFoundError("No submitted response for this assessment", details={"assessment_id": int(a.id)})

    questions = get_review_questions(db, int(a.review_id))
    graded, review_rows = reviewed_questions(questions, resp.responses)

    return {
        "assessment_id": int(a.id),
        "review_id": int(a.review_id),
        "title": a.title,
        "subject": a.subject,
        "score": resp.score,
        "correct": graded.correct,
        "total": graded.total,
        "feedback": resp.feedback,
        "submitted_at": resp.submitted_at.isoformat() if resp.submitted_at else None,
        "questions": review_rows,
    }
