from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from tutorhub.db.base_class import Base, JSONType


class SubmissionStatus(str, Enum):
    incomplete = "incomplete"
    completed = "completed"


class LearnerResponse(Base):
    """One learner's answers/progress/score for one review."""

    __tablename__ = "learner_responses"

    id: Mapped[int] = mapped_column(primary_key=True)
    learner_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True, nullable=False)
    # Keyed by review, not assessment: a review may outlive one assessment instance.
    review_id: Mapped[int] = mapped_column(ForeignKey("reviews.id"), index=True, nullable=False)

    # Learner-owned columns
    # question id (as str) -> submitted letter
    responses: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    submission_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SubmissionStatus.incomplete.value
    )
    score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Teacher-owned columns
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    graded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (UniqueConstraint("learner_id", "review_id", name="uq_learner_response_learner_review"),)

    @property
    def is_completed(self) -> bool:
        return self.submission_status == SubmissionStatus.completed.value
