# followup.py
import uuid
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Optional

from config import FOLLOWUP
from models import Alert, FollowUp, RED, YELLOW

FOLLOWUP_STATUSES = ("scheduled", "completed", "cancelled", "no_show")


def suggested_followup_date(alert: Alert, today: Optional[date] = None) -> Optional[date]:
    """Red alerts get a visit within a week, yellow within the 2-4 week window, green none."""
    today = today or date.today()
    if alert.status == RED:
        return today + timedelta(days=FOLLOWUP["red_days"])
    if alert.status == YELLOW:
        return today + timedelta(days=FOLLOWUP["yellow_days"])
    return None


def schedule_followup(
    alert: Alert,
    scheduled_date: Optional[date],
    professional_id: str,
    professional_name: str,
    created_by: str,
    notes: str,
    now: Optional[datetime] = None,
) -> FollowUp:
    if scheduled_date is None:
        raise ValueError("A follow-up needs a scheduled date")
    if not (notes or "").strip():
        raise ValueError("A follow-up needs notes")

    return FollowUp(
        id=str(uuid.uuid4()),
        alert_id=alert.id,
        patient_id=alert.patient_id,
        scheduled_date=scheduled_date,
        professional_id=professional_id,
        professional_name=professional_name,
        status="scheduled",
        notes=notes.strip(),
        created_at=now or datetime.now(),
        created_by=created_by,
    )


def change_followup_status(followup: FollowUp, status: str, now: Optional[datetime] = None) -> FollowUp:
    if status not in FOLLOWUP_STATUSES:
        raise ValueError(f"Unknown follow-up status: {status}")
    completed_at = (now or datetime.now()) if status == "completed" else None
    return replace(followup, status=status, completed_at=completed_at)
