from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from tutorhub.api.deps import get_db
from tutorhub.core.config import settings


router = APIRouter(tags=["health"])


@router.get("/health")
def health(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"status": "ok", "app": settings.APP_NAME, "env": settings.ENV, "database": "ok"}
