"""
Scheduled Cleanup Tasks

Removes anonymous BMI records once they leave the retention window.
Runs via Celery Beat scheduler.
"""

from datetime import timedelta
from typing import Dict, Optional
import logging

from celery import Task

from core.bmi_config import bmi_config
from core.cache import invalidate_records_cache
from core.database import get_db_sync
from models import utcnow
from services.user_records import purge_anonymous
from tasks import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="tasks.purge_anonymous_records", bind=True)
def purge_anonymous_records_task(self: Task, retention_days: Optional[int] = None) -> Dict:
    """Delete anonymous records older than the retention window."""
    if retention_days is None:
        retention_days = bmi_config.anonymous_retention_days

    db = get_db_sync()
    try:
        deleted = purge_anonymous(db, older_than=utcnow() - timedelta(days=retention_days))
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Anonymous record purge failed: {e}", exc_info=True)
        raise
    finally:
        db.close()

    invalidate_records_cache()
    logger.info(f"Purged {deleted} anonymous records older than {retention_days} days")
    return {"status": "success", "deleted": deleted, "retention_days": retention_days}
