# bmi.py
from decimal import Decimal, ROUND_HALF_UP

# Adult WHO bands, informational only (children are classified against catalog thresholds)
BMI_CATEGORIES = {
    "underweight": {"min": 0.0, "max": 18.5, "label": "Underweight"},
    "normal": {"min": 18.5, "max": 25.0, "label": "Normal"},
    "overweight": {"min": 25.0, "max": 30.0, "label": "Overweight"},
    "obesity": {"min": 30.0, "max": 100.0, "label": "Obesity"},
}


def raw_bmi(weight_kg: float, height_m: float) -> float:
    return weight_kg / (height_m * height_m)


def compute_bmi(weight_kg: float, height_cm: float) -> float:
    """weight / (height in meters)^2, rounded half-up to 1 decimal."""
    if height_cm <= 0 or weight_kg <= 0:
        raise ValueError("weight and height must be positive")
    value = raw_bmi(weight_kg, height_cm / 100.0)
    return float(Decimal(repr(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def bmi_category(bmi: float) -> str:
    if bmi < BMI_CATEGORIES["normal"]["min"]:
        return "underweight"
    if bmi < BMI_CATEGORIES["overweight"]["min"]:
        return "normal"
    if bmi < BMI_CATEGORIES["obesity"]["min"]:
        return "overweight"
    return "obesity"


def format_bmi(bmi: float) -> str:
    return f"{bmi:.1f} kg/m²"
