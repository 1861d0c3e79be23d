from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SQLEnum, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from tutorhub.db.base_class import Base, JSONType


class NotificationType(str, Enum):
    assessment_reminder = "assessment_reminder"
    assessment_sent = "assessment_sent"
    assessment_graded = "assessment_graded"


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type: Mapped[NotificationType] = mapped_column(
        SQLEnum(NotificationType, name="notification_type", native_enum=False), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="Notification")
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    payload_json: Mapped[dict | None] = mapped_column(JSONType, nullable=True, default=dict)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0", index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)

    assessment_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("assessments.id"), index=True, nullable=True)

    @property
    def data(self) -> dict:
        return self.payload_json or {}
