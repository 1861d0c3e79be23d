from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, List

from sqlalchemy.orm import Session

from tutorhub.core.config import settings
from tutorhub.models.assessment import Assessment
from tutorhub.models.notification import Notification, NotificationType

logger = logging.getLogger(__name__)

# (db, assessment, learner_ids, message) -> notifications handed to delivery
ReminderDispatcher = Callable[[Session, Assessment, List[int], str], List[Notification]]


def create_notification(
    db: Session,
    *,
    user_id: int,
    type: str,
    title: str,
    message: str,
    data: dict[str, Any] | None = None,
    assessment_id: int | None = None,
) -> Notification:
    notif_type = NotificationType(type)
    row = Notification(
        user_id=int(user_id),
        type=notif_type,
        title=str(title),
        message=str(message),
        payload_json=data or {},
        is_read=False,
        assessment_id=assessment_id,
    )
    db.add(row)
    db.flush()
    return row


def notify_learners(
    db: Session,
    *,
    assessment: Assessment,
    learner_ids: Iterable[int],
    type: str,
    title: str,
    message: str,
) -> List[Notification]:
    rows = [
        create_notification(
            db,
            user_id=int(lid),
            type=type,
            title=title,
            message=message,
            data={"assessment_id": int(assessment.id), "review_id": int(assessment.review_id)},
            assessment_id=int(assessment.id),
        )
        for lid in learner_ids
    ]
    db.commit()
    logger.info("[NOTIFY] %s for assessment %s -> %d learner(s)", type, assessment.id, len(rows))
    return rows


def store_reminders(db: Session, assessment: Assessment, learner_ids: List[int], message: str) -> List[Notification]:
    """Default dispatcher: persist reminders as notifications; delivery reads them later."""

    return notify_learners(
        db,
        assessment=assessment,
        learner_ids=learner_ids,
        type=NotificationType.assessment_reminder.value,
        title=f"{settings.DEFAULT_REMINDER_TITLE}: {assessment.title}",
        message=message,
    )


def list_notifications(db: Session, *, user_id: int, unread_only: bool = True) -> List[Notification]:
    q = db.query(Notification).filter(Notification.user_id == int(user_id))
    if unread_only:
        q = q.filter(Notification.is_read.is_(False))
    return q.order_by(Notification.created_at.desc(), Notification.id.desc()).all()


def mark_read(db: Session, *, user_id: int, notification_id: int) -> bool:
    row = (
        db.query(Notification)
        .filter(Notification.id == int(notification_id), Notification.user_id == int(user_id))
        .first()
    )
    if not row:
        return False
    row.is_read = True
    db.commit()
    return True
