"""
BMI Calculation API Endpoint

Computes BMI, category and health tip, then stores the calculation.

Storage is best-effort: the calculation result is returned even when the
database is unavailable, flagged with saved=false and a warning.
"""
import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from core.bmi_config import bmi_config
from core.cache import invalidate_records_cache
from core.database import get_session_factory
from core.exceptions import ValidationError
from schemas import BMIRequest, BMIResponse, Gender
from services.bmi_calculator import BMIResult, compute_bmi, evaluate, is_valid_bmi
from services.user_records import Measurement, record_calculation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["bmi"])

PERSISTENCE_WARNING = "Your result was calculated but could not be saved."


def parse_number(value) -> Optional[float]:
    """Finite float from a number or numeric string; None when unparseable."""
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _within_bounds(height: float, weight: float) -> bool:
    return (
        bmi_config.min_height_cm <= height <= bmi_config.max_height_cm
        and bmi_config.min_weight_kg <= weight <= bmi_config.max_weight_kg
    )


def parse_age(value) -> Optional[int]:
    """
    Whole years, truncated ("25.7" -> 25).

    0 and blank mean "not given". Negative, fractional-below-one or
    non-numeric values are rejected.
    """
    if value is None:
        return None
    number = parse_number(value)
    if number == 0:
        return None
    if number is None or int(number) <= 0:
        raise ValidationError("Invalid age provided.", field="age")
    return int(number)


def validate_measurement(request: BMIRequest) -> Measurement:
    """Reject missing, unparseable or implausible input before the engine is called."""
    if request.height is None or request.weight is None:
        raise ValidationError("Height and weight are required.")

    height = parse_number(request.height)
    weight = parse_number(request.weight)
    if (
        height is None
        or weight is None
        or height <= 0
        or weight <= 0
        or not _within_bounds(height, weight)
        or not is_valid_bmi(compute_bmi(height, weight))
    ):
        raise ValidationError("Invalid height or weight provided.")

    return Measurement(
        height=height,
        weight=weight,
        age=parse_age(request.age),
        gender=(request.gender or Gender.UNKNOWN).value,
        name=request.name,
    )


def save_calculation(session_factory: sessionmaker, measurement: Measurement, result: BMIResult) -> bool:
    """Persist a calculation; returns False instead of raising on database errors."""
    db = None
    try:
        db = session_factory()
        user, is_new = record_calculation(db, measurement, result)
        db.commit()
        logger.info(
            "BMI calculation stored",
            extra={"extra_fields": {"user_id": user.id, "is_new_user": is_new, "category": result.category.value}},
        )
    except SQLAlchemyError as e:
        if db:
            db.rollback()
        logger.error(f"Failed to store BMI calculation: {e}")
        return False
    finally:
        if db:
            db.close()

    invalidate_records_cache()
    return True


@router.post("/bmi", response_model=BMIResponse)
def calculate_bmi(
    request: BMIRequest,
    session_factory: sessionmaker = Depends(get_session_factory),
):
    """
    Calculate BMI from height (cm) and weight (kg).

    Named calculations update that user's record and history;
    calculations without a name are stored as anonymous records.
    """
    measurement = validate_measurement(request)
    result = evaluate(measurement.height, measurement.weight)

    saved = save_calculation(session_factory, measurement, result)

    return BMIResponse(
        bmi=result.rounded_bmi(bmi_config.display_precision),
        category=result.category,
        healthTip=result.health_tip,
        gender=measurement.gender,
        height=measurement.height,
        weight=measurement.weight,
        age=measurement.age,
        name=measurement.name or "Anonymous",
        saved=saved,
        warning=None if saved else PERSISTENCE_WARNING,
    )
