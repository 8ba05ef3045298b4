from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import get_current_user_id
from ..database import get_db
from ..schemas import StatsOut
from ..services import JobService

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/stats", response_model=StatsOut)
def stats(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Count of the caller's jobs per status; every status is present."""
    return JobService(db).stats(user_id)
