"""
Periodic jobs run by Celery beat (times are UTC).
"""
from celery.schedules import crontab

beat_schedule = {
    "purge-anonymous-records": {
        "task": "tasks.purge_anonymous_records",
        "schedule": crontab(hour=3, minute=0),
        # A missed run is skipped rather than queued behind the next one
        "options": {"expires": 6 * 3600},
    },
}
