"""
User Record Service

Persistence of BMI calculations and the query logic behind the admin
table views:
1. Record a calculation (create or update the user, append history)
2. Look up, list and delete users
3. Filter / sort / paginate named users for table views
4. Purge expired anonymous records

Anonymous users never appear in listings, facets, or exports.
"""
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import asc, desc, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from core.bmi_config import bmi_config
from models import BMIHistoryEntry, UserRecord, utcnow
from services.bmi_calculator import BMIResult


SORT_COLUMNS = {
    "name": UserRecord.name,
    "gender": UserRecord.gender,
    "age": UserRecord.age,
    "height": UserRecord.height,
    "weight": UserRecord.weight,
    "currentBmi": UserRecord.current_bmi,
    "currentCategory": UserRecord.current_category,
    "lastCalculation": UserRecord.last_calculation,
}

FILTERABLE_GENDERS = ("male", "female")
GENDER_LABELS = {"male": "Male", "female": "Female"}


class InvalidQueryError(ValueError):
    """Raised when table query parameters are out of range."""


@dataclass(frozen=True)
class Measurement:
    """Validated input of a single calculation."""
    height: float
    weight: float
    age: Optional[int] = None
    gender: str = "unknown"
    name: Optional[str] = None


@dataclass
class TableQuery:
    """Filter, sort and pagination parameters of a table view."""
    page: int = 1
    limit: int = 10
    sort_by: str = "lastCalculation"
    sort_order: str = "desc"
    search: str = ""
    category: str = ""
    gender: str = ""
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    min_bmi: Optional[float] = None
    max_bmi: Optional[float] = None

    def validate(self) -> "TableQuery":
        if self.page < 1 or self.limit < 1 or self.limit > bmi_config.max_page_size:
            raise InvalidQueryError("Invalid pagination parameters")
        if self.sort_by not in SORT_COLUMNS:
            raise InvalidQueryError("Invalid sort field")
        if self.sort_order not in ("asc", "desc"):
            raise InvalidQueryError("Invalid sort order")
        return self

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def normalized_gender(self) -> Optional[str]:
        gender = (self.gender or "").strip().lower()
        return gender if gender in FILTERABLE_GENDERS else None

    def applied_filters(self) -> Dict[str, Any]:
        """Active filters only, for echoing back to clients."""
        filters = {
            "search": (self.search or "").strip() or None,
            "category": (self.category or "").strip() or None,
            "gender": self.normalized_gender,
            "minAge": self.min_age,
            "maxAge": self.max_age,
            "minBmi": self.min_bmi,
            "maxBmi": self.max_bmi,
        }
        return {k: v for k, v in filters.items() if v is not None}


@dataclass
class TablePage:
    """One page of serialized rows plus pagination info."""
    rows: List[Dict[str, Any]]
    total_count: int
    page: int
    limit: int
    total_pages: int = field(init=False)

    def __post_init__(self):
        self.total_pages = math.ceil(self.total_count / self.limit) if self.limit else 0

    def pagination(self) -> Dict[str, Any]:
        return {
            "currentPage": self.page,
            "totalPages": self.total_pages,
            "totalCount": self.total_count,
            "limit": self.limit,
            "hasNextPage": self.page < self.total_pages,
            "hasPrevPage": self.page > 1,
        }


# =============================================================================
# SERIALIZATION
# =============================================================================

def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def round_bmi(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return round(value, bmi_config.display_precision)


def serialize_row(user: UserRecord) -> Dict[str, Any]:
    """Table row with display defaults for missing values."""
    return {
        "id": str(user.id),
        "name": user.name or "Anonymous",
        "gender": user.gender.lower() if user.gender else "unknown",
        "age": user.age if user.age else "N/A",
        "height": user.height or 0,
        "weight": user.weight or 0,
        "currentBmi": round_bmi(user.current_bmi),
        "currentCategory": user.current_category or "Unknown",
        "lastCalculation": _isoformat(user.last_calculation),
        "calculationCount": user.calculation_count or 0,
    }


def serialize_history(entry: BMIHistoryEntry) -> Dict[str, Any]:
    return {
        "id": str(entry.id),
        "gender": entry.gender,
        "height": entry.height,
        "weight": entry.weight,
        "age": entry.age,
        "bmi": round_bmi(entry.bmi),
        "category": entry.category,
        "calculatedAt": _isoformat(entry.calculated_at),
    }


# =============================================================================
# WRITES
# =============================================================================

def record_calculation(
    db: Session,
    measurement: Measurement,
    result: BMIResult,
) -> Tuple[UserRecord, bool]:
    """
    Store a calculation.

    Named users are updated in place; a measurement without a name always
    creates a new anonymous user. One history entry is appended either way.

    If another transaction creates the same name first, the unique name
    index rejects our insert; the session is rolled back and the existing
    user is updated instead. Call this before adding other pending work to
    the session.

    Returns:
        (user, is_new_user)
    """
    now = utcnow()
    user = find_by_name(db, measurement.name) if measurement.name else None
    is_new = user is None

    if is_new:
        user = UserRecord(
            name=measurement.name,
            is_anonymous=not measurement.name,
            created_at=now,
            calculation_count=0,
        )
        db.add(user)
        if measurement.name:
            try:
                db.flush()
            except IntegrityError:
                db.rollback()
                user = find_by_name(db, measurement.name)
                if user is None:
                    raise
                is_new = False

    user.gender = measurement.gender
    user.age = measurement.age
    user.height = measurement.height
    user.weight = measurement.weight
    user.current_bmi = result.bmi
    user.current_category = result.category.value
    user.calculation_count = (user.calculation_count or 0) + 1
    user.last_calculation = now

    user.history.append(
        BMIHistoryEntry(
            gender=measurement.gender,
            height=measurement.height,
            weight=measurement.weight,
            age=measurement.age,
            bmi=result.bmi,
            category=result.category.value,
            calculated_at=now,
        )
    )
    db.flush()
    return user, is_new


def delete_by_name(db: Session, name: str) -> bool:
    """Delete a named user and their history. Returns False when absent."""
    user = find_by_name(db, name)
    if not user:
        return False
    db.delete(user)
    db.flush()
    return True


def purge_anonymous(db: Session, older_than: datetime) -> int:
    """Delete anonymous users whose last calculation precedes the cutoff."""
    expired = db.query(UserRecord).filter(
        UserRecord.is_anonymous.is_(True),
        UserRecord.last_calculation < older_than,
    ).all()

    for user in expired:
        db.delete(user)
    db.flush()
    return len(expired)


# =============================================================================
# READS
# =============================================================================

def _named_users(db: Session) -> Query:
    return db.query(UserRecord).filter(UserRecord.is_anonymous.is_(False))


def find_by_name(db: Session, name: str) -> Optional[UserRecord]:
    """Case-insensitive lookup of a named user."""
    if not name:
        return None
    return _named_users(db).filter(
        func.lower(UserRecord.name) == name.strip().lower()
    ).first()


def get_user_with_history(db: Session, name: str, limit: Optional[int] = None) -> Optional[Dict[str, Any]]:
    """User row plus newest-first history, or None when the user is unknown."""
    user = find_by_name(db, name)
    if not user:
        return None

    if limit is None:
        limit = bmi_config.user_history_limit

    history = db.query(BMIHistoryEntry).filter(
        BMIHistoryEntry.user_id == user.id
    ).order_by(BMIHistoryEntry.calculated_at.desc(), BMIHistoryEntry.id.desc()).limit(limit).all()

    payload = serialize_row(user)
    payload["createdAt"] = _isoformat(user.created_at)
    payload["bmiHistory"] = [serialize_history(entry) for entry in history]
    return payload


def list_recent(db: Session, limit: int = 10, skip: int = 0) -> List[Dict[str, Any]]:
    users = _named_users(db).order_by(
        UserRecord.last_calculation.desc(), UserRecord.id.desc()
    ).offset(skip).limit(limit).all()
    return [serialize_row(user) for user in users]


def count_named(db: Session) -> int:
    return _named_users(db).count()


def _apply_filters(query: Query, table_query: TableQuery) -> Query:
    search = (table_query.search or "").strip()
    if search:
        query = query.filter(func.lower(UserRecord.name).contains(search.lower(), autoescape=True))

    category = (table_query.category or "").strip()
    if category:
        query = query.filter(UserRecord.current_category == category)

    gender = table_query.normalized_gender
    if gender:
        query = query.filter(UserRecord.gender == gender)

    if table_query.min_age is not None:
        query = query.filter(UserRecord.age >= table_query.min_age)
    if table_query.max_age is not None:
        query = query.filter(UserRecord.age <= table_query.max_age)
    if table_query.min_bmi is not None:
        query = query.filter(UserRecord.current_bmi >= table_query.min_bmi)
    if table_query.max_bmi is not None:
        query = query.filter(UserRecord.current_bmi <= table_query.max_bmi)

    return query


def query_table(db: Session, table_query: TableQuery) -> TablePage:
    """Run a validated table query and return one page of rows."""
    query = _apply_filters(_named_users(db), table_query)
    total_count = query.count()

    column = SORT_COLUMNS[table_query.sort_by]
    direction = asc if table_query.sort_order == "asc" else desc
    users = query.order_by(direction(column), direction(UserRecord.id)).offset(
        table_query.offset
    ).limit(table_query.limit).all()

    return TablePage(
        rows=[serialize_row(user) for user in users],
        total_count=total_count,
        page=table_query.page,
        limit=table_query.limit,
    )


def fetch_all_rows(db: Session, table_query: TableQuery) -> List[Dict[str, Any]]:
    """Every matching row, newest calculation first (no pagination)."""
    users = _apply_filters(_named_users(db), table_query).order_by(
        UserRecord.last_calculation.desc(), UserRecord.id.desc()
    ).all()
    return [serialize_row(user) for user in users]


def category_facets(db: Session) -> List[Dict[str, Any]]:
    rows = db.query(UserRecord.current_category, func.count(UserRecord.id)).filter(
        UserRecord.is_anonymous.is_(False),
        UserRecord.current_category.isnot(None),
    ).group_by(UserRecord.current_category).order_by(UserRecord.current_category).all()
    return [{"value": category, "count": count} for category, count in rows]


def gender_facets(db: Session) -> List[Dict[str, Any]]:
    """Male and female are always listed, with zero counts when absent."""
    rows = db.query(UserRecord.gender, func.count(UserRecord.id)).filter(
        UserRecord.is_anonymous.is_(False),
        UserRecord.gender.in_(FILTERABLE_GENDERS),
    ).group_by(UserRecord.gender).all()
    counts = dict(rows)
    return [
        {"value": gender, "label": GENDER_LABELS[gender], "count": counts.get(gender, 0)}
        for gender in FILTERABLE_GENDERS
    ]
