# alerts.py
import uuid
from dataclasses import replace
from datetime import datetime
from typing import List, Optional

from classification import ClassificationResult
from config import ALERT_TITLES
from models import Alert, GREEN


def generate_alert(
    patient_id: str,
    record_id: str,
    classification: ClassificationResult,
    now: Optional[datetime] = None,
) -> Alert:
    """New alert for a classified record. Green alerts are born resolved."""
    return Alert(
        id=str(uuid.uuid4()),
        patient_id=patient_id,
        record_id=record_id,
        level=classification.alert_level,
        status=classification.status,
        title=ALERT_TITLES[classification.status],
        message=classification.message,
        recommendation=classification.recommendation,
        priority=classification.priority,
        is_resolved=classification.status == GREEN,
        created_at=now or datetime.now(),
    )


def resolve_alert(alert: Alert, resolved_by: str, now: Optional[datetime] = None) -> Alert:
    if alert.is_resolved:
        raise ValueError(f"Alert {alert.id} is already resolved")
    return replace(alert, is_resolved=True, resolved_at=now or datetime.now(), resolved_by=resolved_by)


def prioritize_alerts(alerts: List[Alert]) -> List[Alert]:
    # priority 1 first, then most recent first
    by_date = sorted(alerts, key=lambda a: a.created_at, reverse=True)
    return sorted(by_date, key=lambda a: a.priority)
