from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from tutorhub.core.exceptions import ConflictError, NotFoundError, ValidationError
from tutorhub.models.assessment import Assessment, AssessmentStatus, AudienceKind
from tutorhub.models.classroom import Classroom
from tutorhub.models.learner_response import LearnerResponse
from tutorhub.models.notification import NotificationType
from tutorhub.models.user import User
from tutorhub.services import assessment_lifecycle as lifecycle
from tutorhub.services.assessment_reporting import (
    RosterEntry,
    rank_learners,
    reminder_recipients,
    submission_label,
    summarize,
)
from tutorhub.services.assessment_timeline import (
    LEARNER_VISIBLE_STATUSES,
    classify,
    classify_for_learner,
    is_learner_visible,
    time_remaining_label,
)
from tutorhub.services.audience import audience_details, audience_label, is_known_audience_kind, normalize_kind, parse_id_set
from tutorhub.services.membership_service import candidate_learner_ids, classroom_learner_ids, get_teacher_classroom
from tutorhub.services.notification_service import ReminderDispatcher, notify_learners, store_reminders
from tutorhub.services.response_service import get_response, grade_response, responses_for_review
from tutorhub.services.review_service import get_review, get_review_questions, reviewed_questions
from tutorhub.services.user_service import display_name

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("review_id", "title", "subject", "grade", "start_date", "end_date")
_TARGET_FIELD = {
    AudienceKind.class_.value: "target_class_ids",
    AudienceKind.group.value: "target_group_ids",
    AudienceKind.individual.value: "target_learner_ids",
}
_ALL_FILTER_VALUES = {"", "all", "all subjects", "all grades", "all statuses"}


def _clean(v: Any) -> str:
    return str(v or "").strip()


def _is_all(v: Optional[str]) -> bool:
    return _clean(v).lower() in _ALL_FILTER_VALUES


def assessment_out(a: Assessment) -> Dict[str, Any]:
    return {
        "assessment_id": int(a.id),
        "review_id": int(a.review_id),
        "teacher_id": a.teacher_id,
        "title": a.title,
        "description": a.description,
        "subject": a.subject,
        "grade": a.grade,
        "question_count": int(a.question_count or 0),
        "start_date": a.start_date.isoformat(),
        "end_date": a.end_date.isoformat(),
        "status": a.status,
        "audience_kind": a.audience_kind,
        "target_audience": audience_label(a.audience_kind),
        "audience_details": audience_details(a),
        "target_class_ids": sorted(parse_id_set(a.target_class_ids)),
        "target_group_ids": sorted(parse_id_set(a.target_group_ids)),
        "target_learner_ids": sorted(parse_id_set(a.target_learner_ids)),
        "created_at": a.created_at.isoformat() if a.created_at else None,
    }


def _validated_audience(kind: Any, members: Dict[str, Any]) -> Tuple[str, Dict[str, List[int]]]:
    k = normalize_kind(kind)
    if not is_known_audience_kind(k):
        raise ValidationError(
            "Target audience must be one of: class, group, individual",
            details={"audience_kind": kind},
        )
    field = _TARGET_FIELD[k]
    ids = sorted(parse_id_set(members.get(field)))
    if not ids:
        raise ValidationError(f"Select at least one target for a {k} assessment", details={"field": field})

    # Only the list for the chosen kind is kept.
    lists = {f: [] for f in _TARGET_FIELD.values()}
    lists[field] = ids
    return k, lists


def create_assessment(db: Session, *, teacher_id: Optional[int], data: Dict[str, Any]) -> Assessment:
    missing = [f for f in _REQUIRED_FIELDS if data.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required field(s): {', '.join(missing)}", details={"missing": missing})

    start, end = lifecycle.validate_window(data["start_date"], data["end_date"])
    kind, lists = _validated_audience(data.get("audience_kind"), data)

    review = get_review(db, int(data["review_id"]))
    questions = get_review_questions(db, int(review.id))
    if not questions:
        raise ValidationError(
            "The review has no questions; add at least one before creating an assessment",
            details={"review_id": int(review.id)},
        )

    row = Assessment(
        review_id=int(review.id),
        teacher_id=int(teacher_id) if teacher_id is not None else None,
        title=_clean(data["title"]),
        subject=_clean(data["subject"]),
        grade=_clean(data["grade"]),
        description=_clean(data.get("description")) or None,
        question_count=len(questions),
        start_date=start,
        end_date=end,
        status=lifecycle.initial_status(bool(data.get("as_scheduled", True))),
        audience_kind=kind,
        **lists,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("assessment %s created (%s, %s audience)", row.id, row.status, kind)
    return row


def get_assessment(db: Session, assessment_id: int) -> Assessment:
    row = db.query(Assessment).filter(Assessment.id == int(assessment_id)).first()
    if not row:
        raise NotFoundError("Assessment not found", details={"assessment_id": int(assessment_id)})
    return row


def get_teacher_assessment(db: Session, *, assessment_id: int, teacher_id: int) -> Assessment:
    row = get_assessment(db, assessment_id)
    if row.teacher_id is not None and int(row.teacher_id) != int(teacher_id):
        raise NotFoundError("Assessment not found", details={"assessment_id": int(assessment_id)})
    return row


def list_teacher_assessments(
    db: Session,
    *,
    teacher_id: int,
    status: Optional[str] = None,
    subject: Optional[str] = None,
    grade: Optional[str] = None,
    search: Optional[str] = None,
) -> List[Dict[str, Any]]:
    q = db.query(Assessment).filter(or_(Assessment.teacher_id == int(teacher_id), Assessment.teacher_id.is_(None)))
    if not _is_all(status):
        q = q.filter(Assessment.status == _clean(status).lower())
    if not _is_all(subject):
        q = q.filter(Assessment.subject == _clean(subject))
    if not _is_all(grade):
        q = q.filter(Assessment.grade == _clean(grade))
    rows = q.order_by(Assessment.start_date.asc(), Assessment.id.asc()).all()

    out = [assessment_out(r) for r in rows]
    term = _clean(search).lower()
    if term:
        out = [
            r for r in out
            if term in r["title"].lower() or term in r["subject"].lower() or term in r["audience_details"].lower()
        ]
    return out


def update_assessment(db: Session, *, assessment_id: int, teacher_id: int, changes: Dict[str, Any]) -> Assessment:
    row = get_teacher_assessment(db, assessment_id=assessment_id, teacher_id=teacher_id)
    lifecycle.ensure_editable(row)

    for field in ("title", "subject", "grade"):
        if field in changes and changes[field] is not None:
            value = _clean(changes[field])
            if not value:
                raise ValidationError(f"{field.title()} is required", details={"field": field})
            setattr(row, field, value)
    if "description" in changes:
        row.description = _clean(changes["description"]) or None

    if changes.get("start_date") is not None or changes.get("end_date") is not None:
        start, end = lifecycle.validate_window(
            changes.get("start_date") or row.start_date,
            changes.get("end_date") or row.end_date,
        )
        row.start_date, row.end_date = start, end

    touches_targets = any(changes.get(f) is not None for f in _TARGET_FIELD.values())
    if changes.get("audience_kind") is not None or touches_targets:
        kind = changes.get("audience_kind") or row.audience_kind
        # Lists not sent fall back to the stored ones.
        merged = {
            f: changes[f] if changes.get(f) is not None else getattr(row, f)
            for f in _TARGET_FIELD.values()
        }
        kind, lists = _validated_audience(kind, merged)
        row.audience_kind = kind
        for f, ids in lists.items():
            setattr(row, f, ids)

    db.commit()
    db.refresh(row)
    return row


def schedule_assessment(db: Session, *, assessment_id: int, teacher_id: int) -> Assessment:
    row = get_teacher_assessment(db, assessment_id=assessment_id, teacher_id=teacher_id)
    lifecycle.schedule(row)
    db.commit()
    db.refresh(row)
    return row


def reschedule_assessment(
    db: Session,
    *,
    assessment_id: int,
    teacher_id: int,
    start_date: date,
    end_date: Optional[date] = None,
) -> Assessment:
    row = get_teacher_assessment(db, assessment_id=assessment_id, teacher_id=teacher_id)
    lifecycle.reschedule(row, start_date, end_date)
    db.commit()
    db.refresh(row)
    return row


def send_assessment_now(db: Session, *, assessment_id: int, teacher_id: int) -> Assessment:
    row = get_teacher_assessment(db, assessment_id=assessment_id, teacher_id=teacher_id)
    was_active = row.status == AssessmentStatus.active.value
    lifecycle.send_now(row)
    db.commit()
    db.refresh(row)

    if not was_active:
        learners = candidate_learner_ids(db, row)
        notify_learners(
            db,
            assessment=row,
            learner_ids=learners,
            type=NotificationType.assessment_sent.value,
            title=f"New assessment: {row.title}",
            message=f"{row.title} ({row.subject}) is now open. Due {row.end_date.isoformat()}.",
        )
    return row


def cancel_assessment(db: Session, *, assessment_id: int, teacher_id: int) -> Assessment:
    row = get_teacher_assessment(db, assessment_id=assessment_id, teacher_id=teacher_id)
    lifecycle.cancel(row)
    db.commit()
    db.refresh(row)
    return row


def _roster(
    db: Session,
    assessment: Assessment,
    today: date,
    only: Optional[Iterable[int]] = None,
) -> List[Tuple[RosterEntry, Optional[LearnerResponse]]]:
    learners = candidate_learner_ids(db, assessment)
    if only is not None:
        keep = {int(x) for x in only}
        learners = [lid for lid in learners if lid in keep]
    responses = responses_for_review(db, review_id=int(assessment.review_id), learner_ids=learners)
    out: List[Tuple[RosterEntry, Optional[LearnerResponse]]] = []
    for lid in learners:
        resp = responses.get(int(lid))
        completed = bool(resp is not None and resp.is_completed)
        # drafts/cancelled still get a date-only bucket for the teacher view
        bucket = classify_for_learner(assessment, today, completed)
        if bucket is None:
            bucket = classify(assessment.start_date, assessment.end_date, today, completed)
        entry = RosterEntry(
            learner_id=int(lid),
            assessment_id=int(assessment.id),
            bucket=bucket,
            submission_status=resp.submission_status if resp is not None else None,
            score=resp.score if resp is not None else None,
        )
        out.append((entry, resp))
    return out


def submissions_for_assessment(db: Session, *, assessment_id: int, teacher_id: int, today: date) -> Dict[str, Any]:
    row = get_teacher_assessment(db, assessment_id=assessment_id, teacher_id=teacher_id)
    roster = _roster(db, row, today)

    ids = [e.learner_id for e, _ in roster]
    users = {int(u.id): u for u in db.query(User).filter(User.id.in_(ids)).all()} if ids else {}

    rows = []
    for entry, resp in roster:
        completed = entry.has_completed
        rows.append({
            "learner_id": entry.learner_id,
            "learner_name": display_name(users.get(entry.learner_id), entry.learner_id),
            "bucket": entry.bucket.value,
            "status": submission_label(entry.bucket),
            "score": entry.score if completed else None,
            "submitted_at": resp.submitted_at.isoformat() if completed and resp.submitted_at else None,
            "feedback": resp.feedback if completed else None,
        })

    return {
        "assessment": assessment_out(row),
        "time_remaining": time_remaining_label(row, today),
        "submissions": rows,
        "stats": summarize(e for e, _ in roster).as_dict(),
    }


def send_reminders(
    db: Session,
    *,
    assessment_id: int,
    teacher_id: int,
    message: str,
    today: date,
    dispatcher: Optional[ReminderDispatcher] = None,
) -> Dict[str, Any]:
    text = _clean(message)
    if not text:
        raise ValidationError("Please enter a reminder message")

    row = get_teacher_assessment(db, assessment_id=assessment_id, teacher_id=teacher_id)
    if not is_learner_visible(row.status):
        raise ConflictError(
            f"Reminders cannot be sent for a {row.status} assessment",
            details={"status": row.status},
        )

    recipients = reminder_recipients(e for e, _ in _roster(db, row, today))
    sent = (dispatcher or store_reminders)(db, row, recipients, text) if recipients else []
    logger.info("assessment %s: reminder sent to %d learner(s)", row.id, len(recipients))
    return {"assessment_id": int(row.id), "recipients": recipients, "sent": len(sent)}


def _owned_assessment_for_review(db: Session, *, teacher_id: int, review_id: int) -> Assessment:
    owned = (
        db.query(Assessment)
        .filter(Assessment.review_id == int(review_id))
        .filter(or_(Assessment.teacher_id == int(teacher_id), Assessment.teacher_id.is_(None)))
        .order_by(Assessment.id.desc())
        .first()
    )
    if not owned:
        raise NotFoundError("No assessment of yours uses this review", details={"review_id": int(review_id)})
    return owned


def grade_submission(
    db: Session,
    *,
    teacher_id: int,
    learner_id: int,
    review_id: int,
    score: int,
    feedback: Optional[str],
) -> Dict[str, Any]:
    owned = _owned_assessment_for_review(db, teacher_id=teacher_id, review_id=review_id)
    resp = grade_response(db, learner_id=learner_id, review_id=review_id, score=score, feedback=feedback)
    notify_learners(
        db,
        assessment=owned,
        learner_ids=[int(resp.learner_id)],
        type=NotificationType.assessment_graded.value,
        title=f"Graded: {owned.title}",
        message=f"Your score for {owned.title} is {resp.score}%.",
    )
    return {
        "learner_id": int(resp.learner_id),
        "review_id": int(resp.review_id),
        "score": resp.score,
        "feedback": resp.feedback,
        "submission_status": resp.submission_status,
        "graded_at": resp.graded_at.isoformat() if resp.graded_at else None,
    }


def _learner_names(db: Session, ids: Iterable[int]) -> Dict[int, str]:
    ids = sorted({int(x) for x in ids})
    users = {int(u.id): u for u in db.query(User).filter(User.id.in_(ids)).all()} if ids else {}
    return {lid: display_name(users.get(lid), lid) for lid in ids}


def _classroom_rosters(
    db: Session, *, teacher_id: int, classroom_id: int, subject: Optional[str], today: date
) -> Tuple[Classroom, List[int], List[Tuple[Assessment, List[Tuple[RosterEntry, Optional[LearnerResponse]]]]]]:
    classroom = get_teacher_classroom(db, classroom_id=classroom_id, teacher_id=teacher_id)
    members = classroom_learner_ids(db, int(classroom.id))

    q = (
        db.query(Assessment)
        .filter(or_(Assessment.teacher_id == int(teacher_id), Assessment.teacher_id.is_(None)))
        .filter(Assessment.status.in_(sorted(LEARNER_VISIBLE_STATUSES)))
    )
    if not _is_all(subject):
        q = q.filter(Assessment.subject == _clean(subject))
    assessments = q.order_by(Assessment.start_date.asc(), Assessment.id.asc()).all()

    rosters = []
    for a in assessments:
        roster = _roster(db, a, today, only=members) if members else []
        if roster:
            rosters.append((a, roster))
    return classroom, members, rosters


def classroom_submissions_report(
    db: Session, *, teacher_id: int, classroom_id: int, subject: Optional[str] = None, today: date
) -> Dict[str, Any]:
    """Every classroom learner against every open assessment they are targeted by.

    Rows are ordered by learner name, then assessment start date. Draft and
    cancelled assessments are left out.
    """

    classroom, members, rosters = _classroom_rosters(
        db, teacher_id=teacher_id, classroom_id=classroom_id, subject=subject, today=today
    )
    names = _learner_names(db, members)

    rows = []
    entries: List[RosterEntry] = []
    by_status = {"submitted": 0, "pending": 0, "missed": 0}
    for a, roster in rosters:
        for entry, resp in roster:
            completed = entry.has_completed
            label = submission_label(entry.bucket)
            by_status[label] += 1
            entries.append(entry)
            rows.append({
                "learner_id": entry.learner_id,
                "learner_name": names.get(entry.learner_id, display_name(None, entry.learner_id)),
                "assessment_id": int(a.id),
                "assessment_title": a.title,
                "review_id": int(a.review_id),
                "bucket": entry.bucket.value,
                "status": label,
                "score": entry.score if completed else None,
                "submitted_at": resp.submitted_at.isoformat() if completed and resp.submitted_at else None,
                "feedback": resp.feedback if completed else None,
            })
    rows.sort(key=lambda r: (r["learner_name"].lower(), r["learner_id"]))

    stats = summarize(entries).as_dict()
    stats["by_status"] = by_status
    return {
        "classroom_id": int(classroom.id),
        "classroom_name": classroom.name,
        "subject": None if _is_all(subject) else _clean(subject),
        "submissions": rows,
        "stats": stats,
    }


def classroom_leaderboard(
    db: Session, *, teacher_id: int, classroom_id: int, subject: Optional[str] = None, today: date
) -> Dict[str, Any]:
    classroom, members, rosters = _classroom_rosters(
        db, teacher_id=teacher_id, classroom_id=classroom_id, subject=subject, today=today
    )

    # Assessments sharing a review share one response; count it once.
    scored: Dict[Tuple[int, int], int] = {}
    for a, roster in rosters:
        for entry, _ in roster:
            if entry.has_completed and entry.score is not None:
                scored[(entry.learner_id, int(a.review_id))] = int(entry.score)

    scores_by_learner: Dict[int, List[int]] = {}
    for (lid, _), value in scored.items():
        scores_by_learner.setdefault(lid, []).append(value)

    ranked = rank_learners(scores_by_learner, _learner_names(db, members))
    return {
        "classroom_id": int(classroom.id),
        "classroom_name": classroom.name,
        "subject": None if _is_all(subject) else _clean(subject),
        "learners": [r.as_dict() for r in ranked],
    }


def submission_details(db: Session, *, teacher_id: int, learner_id: int, review_id: int) -> Dict[str, Any]:
    owned = _owned_assessment_for_review(db, teacher_id=teacher_id, review_id=review_id)
    resp = get_response(db, learner_id=learner_id, review_id=review_id)
    if resp is None:
        raise NotFoundError(
            "This learner has no response for the review",
            details={"learner_id": int(learner_id), "review_id": int(review_id)},
        )

    graded, questions = reviewed_questions(get_review_questions(db, int(review_id)), resp.responses)
    learner = db.query(User).filter(User.id == int(learner_id)).first()
    completed = resp.is_completed
    return {
        "learner_id": int(resp.learner_id),
        "learner_name": display_name(learner, int(learner_id)),
        "assessment_id": int(owned.id),
        "assessment_title": owned.title,
        "review_id": int(resp.review_id),
        "status": "submitted" if completed else "pending",
        "submission_status": resp.submission_status,
        "score": resp.score,
        "correct": graded.correct,
        "total": graded.total,
        "feedback": resp.feedback,
        "submitted_at": resp.submitted_at.isoformat() if resp.submitted_at else None,
        "graded_at": resp.graded_at.isoformat() if resp.graded_at else None,
        "questions": questions,
    }
