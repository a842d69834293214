"""
User API Endpoints

Listing, lookup (with BMI history) and deletion of named users.
Names are matched case-insensitively.
"""
import math

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from core.cache import invalidate_records_cache
from core.database import get_db
from core.exceptions import NotFoundError
from schemas import MessageResponse, UserDetailResponse, UsersListResponse
from services.user_records import count_named, delete_by_name, get_user_with_history, list_recent

router = APIRouter(prefix="/api", tags=["users"])


@router.get("/users", response_model=UsersListResponse)
def list_users(
    limit: int = Query(10, ge=1, le=100, description="Number of users to return"),
    skip: int = Query(0, ge=0, description="Number of users to skip"),
    db: Session = Depends(get_db),
):
    """Most recently active named users."""
    total = count_named(db)
    return {
        "users": list_recent(db, limit=limit, skip=skip),
        "total": total,
        "page": skip // limit + 1,
        "totalPages": math.ceil(total / limit),
    }


@router.get("/user/{name}", response_model=UserDetailResponse)
def get_user(name: str, db: Session = Depends(get_db)):
    """A single user with their most recent calculations."""
    user = get_user_with_history(db, name)
    if not user:
        raise NotFoundError("User not found")
    return {"user": user}


@router.delete("/user/{name}", response_model=MessageResponse)
def delete_user(name: str, db: Session = Depends(get_db)):
    """Delete a user and their history."""
    if not delete_by_name(db, name):
        raise NotFoundError("User not found")
    db.commit()
    invalidate_records_cache()
    return {"message": "User deleted successfully"}
