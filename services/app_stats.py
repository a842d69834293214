"""
Application Statistics Service

Aggregates over named users and calculation history:
- overview (totals, gender split, averages, first/last activity)
- category breakdown with share of users
- daily calculation counts for the recent window
- newest users

Results are JSON-ready and cached in Redis when available.
"""
from collections import Counter
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from core.bmi_config import bmi_config
from core.cache import STATS_PREFIX, cached
from core.config import settings
from models import BMIHistoryEntry, UserRecord, utcnow
from services.user_records import round_bmi


def _round(value: Optional[float], digits: int) -> float:
    return round(float(value), digits) if value is not None else 0


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _overview(db: Session) -> Dict[str, Any]:
    total, male, female, avg_age, avg_bmi, first_user, last_activity = db.query(
        func.count(UserRecord.id),
        func.sum(case((UserRecord.gender == "male", 1), else_=0)),
        func.sum(case((UserRecord.gender == "female", 1), else_=0)),
        func.avg(UserRecord.age),
        func.avg(UserRecord.current_bmi),
        func.min(UserRecord.created_at),
        func.max(UserRecord.last_calculation),
    ).filter(UserRecord.is_anonymous.is_(False)).one()

    return {
        "totalUsers": total or 0,
        "maleUsers": int(male or 0),
        "femaleUsers": int(female or 0),
        "averageAge": _round(avg_age, 1),
        "averageBmi": _round(avg_bmi, 2),
        "firstUserDate": _iso(first_user),
        "lastActivity": _iso(last_activity),
    }


def _category_breakdown(db: Session, total_users: int) -> List[Dict[str, Any]]:
    count = func.count(UserRecord.id)
    rows = db.query(
        UserRecord.current_category,
        count,
        func.avg(UserRecord.current_bmi),
        func.avg(UserRecord.age),
    ).filter(
        UserRecord.is_anonymous.is_(False)
    ).group_by(UserRecord.current_category).order_by(count.desc(), UserRecord.current_category).all()

    return [
        {
            "category": category,
            "count": users,
            "percentage": round(users / total_users * 100, 1) if total_users else 0,
            "averageBmi": _round(avg_bmi, 2),
            "averageAge": _round(avg_age, 1),
        }
        for category, users, avg_bmi, avg_age in rows
    ]


def _activity_trend(db: Session) -> List[Dict[str, Any]]:
    """Calculations per day within the trend window, newest day first."""
    days = bmi_config.activity_trend_days
    cutoff = utcnow() - timedelta(days=days)
    timestamps = db.query(BMIHistoryEntry.calculated_at).filter(
        BMIHistoryEntry.calculated_at >= cutoff
    ).all()

    per_day = Counter(calculated_at.date() for (calculated_at,) in timestamps)
    return [
        {"date": day.isoformat(), "calculations": per_day[day]}
        for day in sorted(per_day, reverse=True)[:days]
    ]


def _recent_users(db: Session) -> List[Dict[str, Any]]:
    users = db.query(UserRecord).filter(
        UserRecord.is_anonymous.is_(False)
    ).order_by(UserRecord.created_at.desc(), UserRecord.id.desc()).limit(bmi_config.recent_users_limit).all()

    return [
        {
            "name": user.name,
            "gender": user.gender,
            "bmi": round_bmi(user.current_bmi),
            "category": user.current_category,
            "joinedAt": _iso(user.created_at),
        }
        for user in users
    ]


@cached(STATS_PREFIX, ttl=settings.CACHE_TTL_STATS)
def build_statistics(db: Session) -> Dict[str, Any]:
    overview = _overview(db)
    return {
        "overview": overview,
        "categoryBreakdown": _category_breakdown(db, overview["totalUsers"]),
        "activityTrend": _activity_trend(db),
        "recentUsers": _recent_users(db),
    }
