from sqlalchemy import Column, Integer, Boolean, Float, DateTime, ForeignKey, Text, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from core.database import Base
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRecord(Base):
    """
    A person who has calculated their BMI.

    Named users are matched case-insensitively and updated in place on every
    calculation. Anonymous calculations always create their own record and are
    hidden from table views.
    """
    __tablename__ = "bmi_user"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=True)
    is_anonymous = Column(Boolean, default=False, nullable=False)
    gender = Column(Text, nullable=True)  # 'male', 'female', 'unknown'
    age = Column(Integer, nullable=True)
    height = Column(Float, nullable=True)  # cm
    weight = Column(Float, nullable=True)  # kg
    current_bmi = Column(Float, nullable=True)
    current_category = Column(Text, nullable=True)
    calculation_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    last_calculation = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    history = relationship(
        "BMIHistoryEntry",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="BMIHistoryEntry.calculated_at.desc()",
    )

    __table_args__ = (
        # NULL names (anonymous users) never conflict
        Index("ix_bmi_user_name_lower", func.lower(name), unique=True),
        Index("ix_bmi_user_last_calculation", "last_calculation"),
    )


class BMIHistoryEntry(Base):
    """One BMI calculation, kept for history and activity trends."""
    __tablename__ = "bmi_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("bmi_user.id", ondelete="CASCADE"), nullable=False, index=True)
    gender = Column(Text, nullable=True)
    height = Column(Float, nullable=False)
    weight = Column(Float, nullable=False)
    age = Column(Integer, nullable=True)
    bmi = Column(Float, nullable=False)
    category = Column(Text, nullable=False)
    calculated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    user = relationship("UserRecord", back_populates="history")
