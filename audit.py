# audit.py
# Append-only audit entries. Retention is a storage policy (storage.prune_audit_logs).
import uuid
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional, Protocol

from models import Alert, AuditLog, FollowUp, MedicalRecord


class AuditRecorder(Protocol):
    def record_audit(self, entry: AuditLog) -> None: ...


def snapshot(obj: Any) -> Any:
    """JSON-safe copy of an entity (dataclasses, dates and enums flattened)."""
    if obj is None:
        return None
    if is_dataclass(obj):
        obj = asdict(obj)
    if isinstance(obj, dict):
        return {k: snapshot(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [snapshot(v) for v in obj]
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    return obj


def create_audit_log(
    entity: str,
    entity_id: str,
    action: str,
    before: Any,
    after: Any,
    user_id: str,
    user_name: str,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> AuditLog:
    return AuditLog(
        id=str(uuid.uuid4()),
        entity=entity,
        entity_id=entity_id,
        action=action,
        before=snapshot(before),
        after=snapshot(after),
        user_id=user_id,
        user_name=user_name,
        reason=reason,
        timestamp=now or datetime.now(),
    )


def audit_record_creation(recorder: AuditRecorder, record: MedicalRecord, user_id: str, user_name: str) -> AuditLog:
    entry = create_audit_log("record", record.id, "create", None, record, user_id, user_name,
                             reason="New anthropometric record")
    recorder.record_audit(entry)
    return entry


def audit_alert_creation(recorder: AuditRecorder, alert: Alert, user_id: str, user_name: str) -> AuditLog:
    entry = create_audit_log("alert", alert.id, "create", None, alert, user_id, user_name,
                             reason=f"Alert raised for record {alert.record_id}")
    recorder.record_audit(entry)
    return entry


def audit_alert_resolution(
    recorder: AuditRecorder,
    before: Alert,
    after: Alert,
    user_id: str,
    user_name: str,
    reason: Optional[str] = None,
) -> AuditLog:
    entry = create_audit_log("alert", after.id, "resolve", before, after, user_id, user_name, reason=reason)
    recorder.record_audit(entry)
    return entry


def audit_followup_change(
    recorder: AuditRecorder,
    before: Optional[FollowUp],
    after: FollowUp,
    user_id: str,
    user_name: str,
    reason: Optional[str] = None,
) -> AuditLog:
    action = "create" if before is None else "update"
    entry = create_audit_log("followup", after.id, action, before, after, user_id, user_name, reason=reason)
    recorder.record_audit(entry)
    return entry
