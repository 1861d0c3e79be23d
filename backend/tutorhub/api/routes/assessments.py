from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from tutorhub.api.deps import get_db, get_today, require_teacher
from tutorhub.models.user import User
from tutorhub.schemas.assessment import (
    AssessmentCreateRequest,
    AssessmentUpdateRequest,
    GradeRequest,
    ReminderRequest,
    RescheduleRequest,
)
from tutorhub.services.assessment_service import (
    assessment_out,
    cancel_assessment,
    classroom_leaderboard,
    classroom_submissions_report,
    create_assessment,
    get_teacher_assessment,
    grade_submission,
    list_teacher_assessments,
    reschedule_assessment,
    schedule_assessment,
    send_assessment_now,
    send_reminders,
    submission_details,
    submissions_for_assessment,
    update_assessment,
)


teacher_router = APIRouter(tags=["teacher"])


@teacher_router.post("/teacher/assessments")
def teacher_assessments_create(
    request: Request,
    payload: AssessmentCreateRequest,
    db: Session = Depends(get_db),
    teacher: User = Depends(require_teacher),
):
    row = create_assessment(db, teacher_id=int(teacher.id), data=payload.model_dump())
    return {"request_id": request.state.request_id, "data": assessment_out(row), "error": None}


@teacher_router.get("/teacher/assessments")
def teacher_assessments_list(
    request: Request,
    db: Session = Depends(get_db),
    teacher: User = Depends(require_teacher),
    status: Optional[str] = None,
    subject: Optional[str] = None,
    grade: Optional[str] = None,
    search: Optional[str] = None,
):
    data = list_teacher_assessments(
        db,
        teacher_id=int(teacher.id),
        status=status,
        subject=subject,
        grade=grade,
        search=search,
    )
    return {"request_id": request.state.request_id, "data": data, "error": None}


@teacher_router.get("/teacher/assessments/{assessment_id}")
def teacher_assessments_get(
    request: Request,
    assessment_id: int,
    db: Session = Depends(get_db),
    teacher: User = Depends(require_teacher),
):
    row = get_teacher_assessment(db, assessment_id=assessment_id, teacher_id=int(teacher.id))
    return {"request_id": request.state.request_id, "data": assessment_out(row), "error": None}


@teacher_router.patch("/teacher/assessments/{assessment_id}")
def teacher_assessments_update(
    request: Request,
    assessment_id: int,
    payload: AssessmentUpdateRequest,
    db: Session = Depends(get_db),
    teacher: User = Depends(require_teacher),
):
    row = update_assessment(
        db,
        assessment_id=assessment_id,
        teacher_id=int(teacher.id),
        changes=payload.model_dump(exclude_unset=True),
    )
    return {"request_id": request.state.request_id, "data": assessment_out(row), "error": None}


@teacher_router.post("/teacher/assessments/{assessment_id}/schedule")
def teacher_assessments_schedule(
    request: Request,
    assessment_id: int,
    db: Session = Depends(get_db),
    teacher: User = Depends(require_teacher),
):
    row = schedule_assessment(db, assessment_id=assessment_id, teacher_id=int(teacher.id))
    return {"request_id": request.state.request_id, "data": assessment_out(row), "error": None}


@teacher_router.post("/teacher/assessments/{assessment_id}/reschedule")
def teacher_assessments_reschedule(
    request: Request,
    assessment_id: int,
    payload: RescheduleRequest,
    db: Session = Depends(get_db),
    teacher: User = Depends(require_teacher),
):
    row = reschedule_assessment(
        db,
        assessment_id=assessment_id,
        teacher_id=int(teacher.id),
        start_date=payload.start_date,
        end_date=payload.end_date,
    )
    return {"request_id": request.state.request_id, "data": assessment_out(row), "error": None}


@teacher_router.post("/teacher/assessments/{assessment_id}/send-now")
def teacher_assessments_send_now(
    request: Request,
    assessment_id: int,
    db: Session = Depends(get_db),
    teacher: User = Depends(require_teacher),
):
    row = send_assessment_now(db, assessment_id=assessment_id, teacher_id=int(teacher.id))
    return {"request_id": request.state.request_id, "data": assessment_out(row), "error": None}


@teacher_router.post("/teacher/assessments/{assessment_id}/cancel")
def teacher_assessments_cancel(
    request: Request,
    assessment_id: int,
    db: Session = Depends(get_db),
    teacher: User = Depends(require_teacher),
):
    row = cancel_assessment(db, assessment_id=assessment_id, teacher_id=int(teacher.id))
    return {"request_id": request.state.request_id, "data": assessment_out(row), "error": None}


@teacher_router.get("/teacher/assessments/{assessment_id}/submissions")
def teacher_assessment_submissions(
    request: Request,
    assessment_id: int,
    db: Session = Depends(get_db),
    teacher: User = Depends(require_teacher),
    today: date = Depends(get_today),
):
    data = submissions_for_assessment(db, assessment_id=assessment_id, teacher_id=int(teacher.id), today=today)
    return {"request_id": request.state.request_id, "data": data, "error": None}


@teacher_router.post("/teacher/assessments/{assessment_id}/reminders")
def teacher_assessment_reminders(
    request: Request,
    assessment_id: int,
    payload: ReminderRequest,
    db: Session = Depends(get_db),
    teacher: User = Depends(require_teacher),
    today: date = Depends(get_today),
):
    data = send_reminders(
        db,
        assessment_id=assessment_id,
        teacher_id=int(teacher.id),
        message=payload.message,
        today=today,
    )
    return {"request_id": request.state.request_id, "data": data, "error": None}


@teacher_router.put("/teacher/responses/{learner_id}/{review_id}/grade")
def teacher_grade_response(
    request: Request,
    learner_id: int,
    review_id: int,
    payload: GradeRequest,
    db: Session = Depends(get_db),
    teacher: User = Depends(require_teacher),
):
    data = grade_submission(
        db,
        teacher_id=int(teacher.id),
        learner_id=learner_id,
        review_id=review_id,
        score=payload.score,
        feedback=payload.feedback,
    )
    return {"request_id": request.state.request_id, "data": data, "error": None}


@teacher_router.get("/teacher/responses/{learner_id}/{review_id}")
def teacher_response_details(
    request: Request,
    learner_id: int,
    review_id: int,
    db: Session = Depends(get_db),
    teacher: User = Depends(require_teacher),
):
    data = submission_details(db, teacher_id=int(teacher.id), learner_id=learner_id, review_id=review_id)
    return {"request_id": request.state.request_id, "data": data, "error": None}


@teacher_router.get("/teacher/classrooms/{classroom_id}/submissions")
def teacher_classroom_submissions(
    request: Request,
    classroom_id: int,
    db: Session = Depends(get_db),
    teacher: User = Depends(require_teacher),
    today: date = Depends(get_today),
    subject: Optional[str] = None,
):
    data = classroom_submissions_report(
        db,
        teacher_id=int(teacher.id),
        classroom_id=classroom_id,
        subject=subject,
        today=today,
    )
    return {"request_id": request.state.request_id, "data": data, "error": None}


@teacher_router.get("/teacher/classrooms/{classroom_id}/leaderboard")
def teacher_classroom_leaderboard(
    request: Request,
    classroom_id: int,
    db: Session = Depends(get_db),
    teacher: User = Depends(require_teacher),
    today: date = Depends(get_today),
    subject: Optional[str] = None,
):
    data = classroom_leaderboard(
        db,
        teacher_id=int(teacher.id),
        classroom_id=classroom_id,
        subject=subject,
        today=today,
    )
    return {"request_id": request.state.request_id, "data": data, "error": None}
