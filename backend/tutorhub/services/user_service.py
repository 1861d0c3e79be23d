from __future__ import annotations

from sqlalchemy.orm import Session

from tutorhub.models.user import User


def _demo_email(db: Session, role: str, uid: int) -> str:
    email = f"{role}{uid}@demo.local"
    if db.query(User).filter(User.email == email).first():
        email = f"{role}{uid}-{uid}@demo.local"
    return email


def ensure_user_exists(db: Session, user_id: int, *, role: str = "learner") -> User:
    """Return the teacher or learner behind a request, registering them on first sight.

    Assessments carry a teacher_id, and learner responses and notifications carry
    a user id. All three point at `users`. The caller's role is taken as current,
    so an id that switches between teacher and learner headers follows the switch.
    """

    user = db.query(User).filter(User.id == int(user_id)).first()
    if user is not None:
        if role and (user.role or "") != role:
            user.role = role
            db.commit()
        return user

    uid = int(user_id)
    user = User(id=uid, email=_demo_email(db, role, uid), full_name=f"{role.title()} {uid}", role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def display_name(user: User | None, fallback_id: int) -> str:
    """Name shown on rosters, reports and the leaderboard."""

    if user is None:
        return f"Learner {fallback_id}"
    return (user.full_name or "").strip() or user.email or f"Learner {fallback_id}"
