from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from tutorhub.api.deps import get_db, require_user
from tutorhub.models.user import User
from tutorhub.services.notification_service import list_notifications, mark_read


router = APIRouter(tags=["notifications"])


@router.get("/notifications")
def get_notifications(
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
    unread_only: bool = True,
):
    rows = list_notifications(db, user_id=int(user.id), unread_only=unread_only)
    data = [
        {
            "id": int(r.id),
            "user_id": int(r.user_id),
            "type": str(r.type.value if hasattr(r.type, "value") else r.type),
            "title": r.title,
            "message": r.message,
            "assessment_id": r.assessment_id,
            "data": r.data or {},
            "is_read": bool(r.is_read),
            "created_at": r.created_at.isoformat() if r.created_at else None,
        }
        for r in rows
    ]
    return {"request_id": request.state.request_id, "data": data, "error": None}


@router.patch("/notifications/{notification_id}/read")
def mark_notification_read(
    request: Request,
    notification_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
):
    if not mark_read(db, user_id=int(user.id), notification_id=notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    data = {"id": int(notification_id), "is_read": True}
    return {"request_id": request.state.request_id, "data": data, "error": None}
