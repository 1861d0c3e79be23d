from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column

from tutorhub.db.base_class import Base, JSONType


class Review(Base):
    """Question set an assessment is generated from."""

    __tablename__ = "reviews"

    id: Mapped[int] = mapped_column(primary_key=True)
    teacher_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), index=True, nullable=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[str | None] = mapped_column(String(120), nullable=True)
    grade: Mapped[str | None] = mapped_column(String(50), nullable=True)
    # "HH:MM"
    time_limit: Mapped[str] = mapped_column(String(10), nullable=False, default="01:00", server_default=text("'01:00'"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class ReviewQuestion(Base):
    __tablename__ = "review_questions"

    id: Mapped[int] = mapped_column(primary_key=True)
    review_id: Mapped[int] = mapped_column(ForeignKey("reviews.id", ondelete="CASCADE"), index=True, nullable=False)
    question_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    question_text: Mapped[str] = mapped_column(Text, nullable=False)

    # Ordered option values; a submitted letter is resolved against this list.
    options: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    # Stored as the option value, not its letter/index.
    correct_answer: Mapped[str] = mapped_column(Text, nullable=False)

    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    hint: Mapped[str | None] = mapped_column(Text, nullable=True)
