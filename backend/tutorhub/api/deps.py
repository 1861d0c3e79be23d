"""Request-scoped dependencies for the assessment routes.

Callers identify themselves with X-User-Id and X-User-Role. Routes under
/teacher need the teacher role; learner routes and notifications only need an
id. "student" is read as learner.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from tutorhub.core.clock import get_today
from tutorhub.db.session import get_db
from tutorhub.models.user import User
from tutorhub.services.user_service import ensure_user_exists

__all__ = ["get_db", "get_today", "get_current_user_optional", "require_user", "require_teacher"]


def _normalize_role(role: Optional[str]) -> Optional[str]:
    if not role:
        return None
    r = str(role).strip().lower()
    if r == "student":
        return "learner"
    if r in {"teacher", "learner"}:
        return r
    return None


def get_current_user_optional(
    db: Session = Depends(get_db),
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    x_user_role: Optional[str] = Header(default=None, alias="X-User-Role"),
) -> Optional[User]:
    """The caller named by the identity headers, or None for anonymous and malformed ids."""

    if not x_user_id:
        return None

    try:
        uid = int(str(x_user_id).strip())
    except ValueError:
        return None

    role = _normalize_role(x_user_role) or "learner"
    return ensure_user_exists(db, uid, role=role)


def require_user(user: Optional[User] = Depends(get_current_user_optional)) -> User:
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def require_teacher(user: User = Depends(require_user)) -> User:
    if _normalize_role(getattr(user, "role", None)) != "teacher":
        raise HTTPException(status_code=403, detail="Teacher role required")
    return user


