"""
Admin API Endpoints

Maintenance operations on stored records.
"""
import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from core.bmi_config import bmi_config
from core.cache import invalidate_records_cache
from core.database import get_db
from models import utcnow
from schemas import CleanupResponse
from services.user_records import purge_anonymous

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["admin"])


@router.post("/cleanup", response_model=CleanupResponse)
def cleanup_sensitive_data(
    retention_days: Optional[int] = Query(
        None, ge=0, alias="retentionDays",
        description="Override the configured anonymous record retention",
    ),
    db: Session = Depends(get_db),
):
    """
    Purge anonymous calculations older than the retention window.

    Named users are never touched; delete those individually.
    """
    if retention_days is None:
        retention_days = bmi_config.anonymous_retention_days

    deleted = purge_anonymous(db, older_than=utcnow() - timedelta(days=retention_days))
    db.commit()
    invalidate_records_cache()

    logger.info(f"Sensitive data cleanup removed {deleted} anonymous records")
    return {"message": "Sensitive data cleanup completed successfully", "deleted": deleted}
