# models.py
# Entities shared by the evaluation pipeline, storage and UI.
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

MALE = "male"
FEMALE = "female"
GENDERS = (MALE, FEMALE)

RED = "red"
YELLOW = "yellow"
GREEN = "green"
STATUSES = (RED, YELLOW, GREEN)

CRITICAL = "critical"
WARNING = "warning"
INFO = "info"


@dataclass
class NutritionalThreshold:
    """BMI cut points for one (age group, gender) pair."""
    id: str
    age_group: str
    gender: str
    red_max: float
    yellow_max: float
    green_max: float
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class ValidationRange:
    """Plausible weight (kg) and height (m) bounds for one (age group, gender) pair."""
    id: str
    age_group: str
    gender: str
    min_weight: float
    max_weight: float
    min_height: float
    max_height: float
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Recommendation:
    id: str
    status: str
    title: str
    message: str
    action: str
    priority: int
    is_active: bool = True


@dataclass
class Patient:
    id: str
    full_name: str
    age: int
    gender: str
    created_at: Optional[datetime] = None


@dataclass
class MedicalRecord:
    id: str
    patient_id: str
    measurement_date: date
    weight_kg: float
    height_cm: float
    age: int
    gender: str
    bmi: float
    nutritional_status: str
    alert_level: str
    percentile: int
    professional_id: str
    professional_name: str
    created_at: datetime
    updated_at: datetime
    notes: str = ""
    # {"created_by": ..., "updated_by": ..., "reason": ...}
    audit_trail: dict = field(default_factory=dict)


@dataclass
class Alert:
    id: str
    patient_id: str
    record_id: str
    level: str
    status: str
    title: str
    message: str
    recommendation: str
    priority: int
    is_resolved: bool
    created_at: datetime
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None


@dataclass
class FollowUp:
    id: str
    alert_id: str
    patient_id: str
    scheduled_date: date
    professional_id: str
    professional_name: str
    status: str
    created_at: datetime
    created_by: str
    notes: str = ""
    completed_at: Optional[datetime] = None


@dataclass
class AuditLog:
    id: str
    entity: str       # patient | record | alert | followup
    entity_id: str
    action: str       # create | update | delete | resolve
    before: Any
    after: Any
    user_id: str
    user_name: str
    timestamp: datetime
    reason: Optional[str] = None
