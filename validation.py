# validation.py
# Data-quality gate for a raw measurement. Hard errors block record creation;
# soft errors are advisory only.
import math
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Union

from bmi import raw_bmi
from catalogs import CatalogLookup
from config import VALIDATION
from models import GENDERS, ValidationRange

DateLike = Union[date, datetime, str]


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    is_hard_error: bool
    field: str
    message: str
    code: str


def _ok(field: str) -> ValidationResult:
    return ValidationResult(True, False, field, "", "")


def _hard(field: str, code: str, message: str) -> ValidationResult:
    return ValidationResult(False, True, field, message, code)


def _soft(field: str, code: str, message: str) -> ValidationResult:
    return ValidationResult(False, False, field, message, code)


def _is_positive_number(x) -> bool:
    try:
        return math.isfinite(x) and x > 0
    except TypeError:
        return False


def _exact(x: float) -> Decimal:
    # repr gives the shortest string that round-trips, i.e. what the user typed
    return Decimal(repr(float(x)))


def _decimal_places(d: Decimal) -> int:
    return max(0, -d.normalize().as_tuple().exponent)


def as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    # malformed strings raise ValueError; callers handle that as an unexpected failure
    return datetime.fromisoformat(value).date()


def _years_before(d: date, years: int) -> date:
    try:
        return d.replace(year=d.year - years)
    except ValueError:
        # Feb 29 -> Feb 28
        return d.replace(year=d.year - years, day=28)


def validate_age(age) -> ValidationResult:
    lo, hi = VALIDATION["min_age"], VALIDATION["max_age"]
    try:
        whole = float(age).is_integer()
    except (TypeError, ValueError):
        whole = False
    if not whole or age < lo or age > hi:
        return _hard("age", "AGE_OUT_OF_RANGE", f"Age must be a whole number of years between {lo} and {hi}")
    return _ok("age")


def validate_gender(gender) -> ValidationResult:
    if gender not in GENDERS:
        return _hard("gender", "GENDER_INVALID", "Gender must be 'male' or 'female'")
    return _ok("gender")


def validate_weight(weight_kg, rng: Optional[ValidationRange]) -> ValidationResult:
    if not _is_positive_number(weight_kg):
        return _hard("weight", "WEIGHT_INVALID", "Weight must be a valid number greater than 0")

    if rng is not None:
        if weight_kg < rng.min_weight:
            return _hard("weight", "WEIGHT_TOO_LOW",
                         f"Weight cannot be below {rng.min_weight} kg for the selected age")
        if weight_kg > rng.max_weight:
            return _hard("weight", "WEIGHT_TOO_HIGH",
                         "Value too high for the selected age. Check the measurement.")

    limit = VALIDATION["weight_decimals"]
    if _decimal_places(_exact(weight_kg)) > limit:
        return _soft("weight", "WEIGHT_DECIMALS", f"Enter a valid number with up to {limit} decimal")

    return _ok("weight")


def validate_height(height_cm, rng: Optional[ValidationRange]) -> ValidationResult:
    """Height arrives in cm; ranges and the decimal rule are in meters."""
    if not _is_positive_number(height_cm):
        return _hard("height", "HEIGHT_INVALID", "Height must be a valid number greater than 0")

    height_m = _exact(height_cm) / 100

    if rng is not None:
        if float(height_m) < rng.min_height:
            return _hard("height", "HEIGHT_TOO_LOW",
                         f"Height cannot be below {rng.min_height:.2f} m for the selected age")
        if float(height_m) > rng.max_height:
            return _hard("height", "HEIGHT_TOO_HIGH",
                         "Value too high for the selected age. Check the measurement.")

    limit = VALIDATION["height_decimals"]
    if _decimal_places(height_m) > limit:
        return _soft("height", "HEIGHT_DECIMALS", f"Enter a valid height with up to {limit} decimals (in meters)")

    return _ok("height")


def validate_measurement_date(measurement_date: DateLike, today: Optional[date] = None) -> ValidationResult:
    today = today or date.today()
    d = as_date(measurement_date)

    if d > today:
        return _hard("measurement_date", "DATE_FUTURE", "The measurement date cannot be in the future")

    years = VALIDATION["max_record_age_years"]
    if d < _years_before(today, years):
        return _hard("measurement_date", "DATE_TOO_OLD",
                     f"The measurement date cannot be more than {years} years ago")

    return _ok("measurement_date")


def validate_bmi_consistency(bmi: float) -> ValidationResult:
    if bmi < VALIDATION["bmi_abs_min"]:
        return _hard("bmi", "BMI_TOO_LOW", "BMI outside the physiological range. Check the entered data.")
    if bmi > VALIDATION["bmi_abs_max"]:
        return _hard("bmi", "BMI_TOO_HIGH", "BMI outside the physiological range. Check the entered data.")
    return _ok("bmi")


class Validator:
    def __init__(self, catalog: CatalogLookup):
        self.catalog = catalog

    def validate(
        self,
        weight_kg: float,
        height_cm: float,
        age: int,
        gender: str,
        measurement_date: DateLike,
        today: Optional[date] = None,
    ) -> List[ValidationResult]:
        """
        Returns one result per check (valid ones included), in order:
          age, gender, weight, height, measurement_date, bmi
        The BMI check is left out when weight or height is not a positive number.
        """
        results: List[ValidationResult] = []

        age_result = validate_age(age)
        gender_result = validate_gender(gender)
        results += [age_result, gender_result]

        # Range bounds need a valid age group; without one only the generic checks run
        rng = None
        if age_result.is_valid and gender_result.is_valid:
            rng = self.catalog.range_for_age(int(age), gender).entry

        results.append(validate_weight(weight_kg, rng))
        results.append(validate_height(height_cm, rng))
        results.append(validate_measurement_date(measurement_date, today))

        if _is_positive_number(weight_kg) and _is_positive_number(height_cm):
            results.append(validate_bmi_consistency(raw_bmi(weight_kg, height_cm / 100.0)))

        return results


def has_hard_errors(results: List[ValidationResult]) -> bool:
    return any(r.is_hard_error for r in results)


def error_messages(results: List[ValidationResult]) -> List[str]:
    """Messages of every failed check, hard and soft."""
    return [r.message for r in results if not r.is_valid]


def soft_errors(results: List[ValidationResult]) -> List[ValidationResult]:
    return [r for r in results if not r.is_valid and not r.is_hard_error]
