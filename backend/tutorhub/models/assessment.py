from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column

from tutorhub.db.base_class import Base, JSONType


class AssessmentStatus(str, Enum):
    draft = "draft"
    scheduled = "scheduled"
    active = "active"
    cancelled = "cancelled"


class AudienceKind(str, Enum):
    class_ = "class"
    group = "group"
    individual = "individual"


class Assessment(Base):
    __tablename__ = "assessments"

    id: Mapped[int] = mapped_column(primary_key=True)
    review_id: Mapped[int] = mapped_column(ForeignKey("reviews.id"), index=True, nullable=False)
    teacher_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), index=True, nullable=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[str] = mapped_column(String(120), nullable=False)
    grade: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    question_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))

    # Inclusive calendar dates.
    start_date: Mapped[date] = mapped_column(Date, index=True, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, index=True, nullable=False)

    # Plain strings so rows with a legacy/unknown value still load.
    status: Mapped[str] = mapped_column(String(20), index=True, nullable=False, default=AssessmentStatus.draft.value)
    audience_kind: Mapped[str] = mapped_column(String(20), nullable=False, default=AudienceKind.class_.value)

    # Only the list matching audience_kind is meaningful.
    target_class_ids: Mapped[list[int]] = mapped_column(JSONType, nullable=False, default=list)
    target_group_ids: Mapped[list[int]] = mapped_column(JSONType, nullable=False, default=list)
    target_learner_ids: Mapped[list[int]] = mapped_column(JSONType, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
