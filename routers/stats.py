"""
Statistics API Endpoint
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.database import get_db
from services.app_stats import build_statistics

router = APIRouter(prefix="/api", tags=["stats"])


@router.get("/stats")
def get_statistics(db: Session = Depends(get_db)):
    """
    Usage statistics over named users.

    Overview, category breakdown, daily calculations for the last 30 days
    and the newest users. Cached briefly when Redis is available.
    """
    return {
        "success": True,
        "data": build_statistics(db),
        "generatedAt": datetime.now(timezone.utc).isoformat(),
    }
