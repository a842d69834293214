"""
BMI Calculation Service

BMI = weight_kg / (height_m)²

Categories use half-open intervals with inclusive lower bounds:
    < 18.5          Underweight
    18.5 to < 25    Normal
    25 to < 30      Overweight
    >= 30           Obese

Inputs are validated by the caller; every function here is pure.
"""
import math
from dataclasses import dataclass
from enum import Enum


class BMICategory(str, Enum):
    """Weight category assigned from a BMI value."""
    UNDERWEIGHT = "Underweight"
    NORMAL = "Normal"
    OVERWEIGHT = "Overweight"
    OBESE = "Obese"


# Upper bounds (exclusive), evaluated in order
CATEGORY_THRESHOLDS = (
    (18.5, BMICategory.UNDERWEIGHT),
    (25.0, BMICategory.NORMAL),
    (30.0, BMICategory.OVERWEIGHT),
)

HEALTH_TIPS = {
    BMICategory.UNDERWEIGHT: (
        "Consider consulting a nutritionist to develop a healthy weight gain plan. "
        "Focus on nutrient-dense foods and regular exercise to build muscle mass."
    ),
    BMICategory.NORMAL: (
        "Great job! Maintain your healthy weight through balanced nutrition and "
        "regular physical activity. Keep up the good work!"
    ),
    BMICategory.OVERWEIGHT: (
        "Consider adopting a balanced diet and increasing physical activity. "
        "Small lifestyle changes can make a big difference in your health."
    ),
    BMICategory.OBESE: (
        "We recommend consulting with a healthcare professional to develop a "
        "comprehensive weight management plan. Focus on gradual, sustainable changes."
    ),
}

FALLBACK_HEALTH_TIP = "No specific health tip available for this category."


@dataclass(frozen=True)
class BMIResult:
    """Outcome of a single BMI evaluation."""
    bmi: float
    category: BMICategory
    health_tip: str

    def rounded_bmi(self, precision: int = 2) -> float:
        return round(self.bmi, precision)


def compute_bmi(height_cm: float, weight_kg: float) -> float:
    """
    Calculate BMI from height (cm) and weight (kg).

    Formula: BMI = weight_kg / (height_m)²
    where height_m = height_cm / 100

    No rounding is applied; display rounding belongs to the caller.

    Never raises for positive inputs. Height is divided out twice rather than
    squared, so extreme values overflow to inf or underflow to 0.0 instead of
    raising; callers reject results that are not finite and positive
    (see is_valid_bmi).

    Examples:
        >>> round(compute_bmi(175, 70), 3)
        22.857
        >>> compute_bmi(1e-200, 70)
        inf
    """
    return weight_kg * 10000.0 / height_cm / height_cm


def is_valid_bmi(bmi: float) -> bool:
    """True for a finite, strictly positive BMI."""
    return math.isfinite(bmi) and bmi > 0


def categorize(bmi: float) -> BMICategory:
    """Map a BMI value to its category."""
    for upper_bound, category in CATEGORY_THRESHOLDS:
        if bmi < upper_bound:
            return category
    return BMICategory.OBESE


def health_tip(category) -> str:
    """Advisory text for a category; unknown values get the fallback message."""
    try:
        return HEALTH_TIPS[BMICategory(category)]
    except (ValueError, KeyError):
        return FALLBACK_HEALTH_TIP


def evaluate(height_cm: float, weight_kg: float) -> BMIResult:
    """Compute, categorize and attach the health tip in one step."""
    bmi = compute_bmi(height_cm, weight_kg)
    category = categorize(bmi)
    return BMIResult(bmi=bmi, category=category, health_tip=health_tip(category))
