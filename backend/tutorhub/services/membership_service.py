from __future__ import annotations

import logging
from typing import Any, List

from sqlalchemy.orm import Session

from tutorhub.core.exceptions import NotFoundError
from tutorhub.models.assessment import AudienceKind
from tutorhub.models.classroom import Classroom, ClassroomMember
from tutorhub.models.learner_group import LearnerGroupMember
from tutorhub.services.audience import audience_target

logger = logging.getLogger(__name__)


def learner_classroom_ids(db: Session, learner_id: int) -> List[int]:
    rows = db.query(ClassroomMember.classroom_id).filter(ClassroomMember.user_id == int(learner_id)).all()
    return sorted({int(r[0]) for r in rows})


def learner_group_ids(db: Session, learner_id: int) -> List[int]:
    rows = db.query(LearnerGroupMember.group_id).filter(LearnerGroupMember.user_id == int(learner_id)).all()
    return sorted({int(r[0]) for r in rows})


def get_teacher_classroom(db: Session, *, classroom_id: int, teacher_id: int) -> Classroom:
    row = db.query(Classroom).filter(Classroom.id == int(classroom_id)).first()
    if not row or (row.teacher_id is not None and int(row.teacher_id) != int(teacher_id)):
        raise NotFoundError("Classroom not found", details={"classroom_id": int(classroom_id)})
    return row


def classroom_learner_ids(db: Session, classroom_id: int) -> List[int]:
    rows = db.query(ClassroomMember.user_id).filter(ClassroomMember.classroom_id == int(classroom_id)).all()
    return sorted({int(r[0]) for r in rows})


def candidate_learner_ids(db: Session, assessment: Any) -> List[int]:
    """Every learner an assessment targets (its roster)."""

    target = audience_target(assessment)
    if target.kind == AudienceKind.class_.value:
        if not target.class_ids:
            return []
        rows = (
            db.query(ClassroomMember.user_id)
            .filter(ClassroomMember.classroom_id.in_(sorted(target.class_ids)))
            .distinct()
            .all()
        )
        return sorted({int(r[0]) for r in rows})
    if target.kind == AudienceKind.group.value:
        if not target.group_ids:
            return []
        rows = (
            db.query(LearnerGroupMember.user_id)
            .filter(LearnerGroupMember.group_id.in_(sorted(target.group_ids)))
            .distinct()
            .all()
        )
        return sorted({int(r[0]) for r in rows})
    if target.kind == AudienceKind.individual.value:
        return sorted(target.learner_ids)

    logger.warning(
        "assessment %s has unknown audience kind %r; roster is empty",
        getattr(assessment, "id", None), getattr(assessment, "audience_kind", None),
    )
    return []
