# storage.py
# SQLAlchemy Core persistence. The module itself is the catalog store,
# record sink and audit recorder handed to pipeline.NutritionEvaluator.
import os
import json
import uuid
from dataclasses import asdict
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import (
    create_engine, MetaData, Table, Column,
    Integer, Float, String, Date, DateTime, Text, Boolean
)
from sqlalchemy.sql import select, insert, update, delete
from sqlalchemy.pool import NullPool

from catalogs import (
    all_default_ranges,
    all_default_thresholds,
    check_threshold_order,
    default_recommendation,
)
from config import AUDIT
from models import (
    Alert, AuditLog, FollowUp, MedicalRecord, NutritionalThreshold, Patient,
    Recommendation, ValidationRange, GENDERS, STATUSES,
)


def _get_db_url() -> str:
    url = os.getenv("DATABASE_URL", "").strip()
    if not url:
        try:
            import streamlit as st
            url = str(st.secrets.get("DATABASE_URL", "")).strip()
        except Exception:
            # no secrets file outside a Streamlit run
            pass
    return url


_engine = None


def get_engine():
    global _engine
    if _engine is None:
        db_url = _get_db_url()
        if db_url:
            _engine = create_engine(db_url, pool_pre_ping=True, poolclass=NullPool)
        else:
            _engine = create_engine("sqlite:///nutrition.db", connect_args={"check_same_thread": False})
    return _engine


metadata = MetaData()

patients = Table(
    "patients", metadata,
    Column("id", String(36), primary_key=True),
    Column("full_name", String(200), nullable=False),
    Column("age", Integer, nullable=False),
    Column("gender", String(10), nullable=False),
    Column("created_at", DateTime, nullable=False),
)

nutritional_thresholds = Table(
    "nutritional_thresholds", metadata,
    Column("id", String(64), primary_key=True),
    Column("age_group", String(8), nullable=False),
    Column("gender", String(10), nullable=False),
    Column("red_max", Float, nullable=False),
    Column("yellow_max", Float, nullable=False),
    Column("green_max", Float, nullable=False),
    Column("is_active", Boolean, nullable=False),
    Column("created_at", DateTime, nullable=True),
    Column("updated_at", DateTime, nullable=True),
)

validation_ranges = Table(
    "validation_ranges", metadata,
    Column("id", String(64), primary_key=True),
    Column("age_group", String(8), nullable=False),
    Column("gender", String(10), nullable=False),
    Column("min_weight", Float, nullable=False),
    Column("max_weight", Float, nullable=False),
    Column("min_height", Float, nullable=False),
    Column("max_height", Float, nullable=False),
    Column("is_active", Boolean, nullable=False),
    Column("created_at", DateTime, nullable=True),
    Column("updated_at", DateTime, nullable=True),
)

recommendations = Table(
    "recommendations", metadata,
    Column("id", String(64), primary_key=True),
    Column("status", String(10), nullable=False),
    Column("title", String(200), nullable=False),
    Column("message", Text, nullable=False),
    Column("action", Text, nullable=False),
    Column("priority", Integer, nullable=False),
    Column("is_active", Boolean, nullable=False),
)

medical_records = Table(
    "medical_records", metadata,
    Column("id", String(36), primary_key=True),
    Column("patient_id", String(36), nullable=False),
    Column("measurement_date", Date, nullable=False),
    Column("weight_kg", Float, nullable=False),
    Column("height_cm", Float, nullable=False),
    Column("age", Integer, nullable=False),
    Column("gender", String(10), nullable=False),
    Column("bmi", Float, nullable=False),
    Column("nutritional_status", String(10), nullable=False),
    Column("alert_level", String(10), nullable=False),
    Column("percentile", Integer, nullable=False),
    Column("notes", Text, nullable=True),
    Column("professional_id", String(80), nullable=False),
    Column("professional_name", String(200), nullable=False),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
    Column("audit_trail_json", Text, nullable=True),
)

alerts = Table(
    "alerts", metadata,
    Column("id", String(36), primary_key=True),
    Column("patient_id", String(36), nullable=False),
    Column("record_id", String(36), nullable=False),
    Column("level", String(10), nullable=False),
    Column("status", String(10), nullable=False),
    Column("title", String(200), nullable=False),
    Column("message", Text, nullable=False),
    Column("recommendation", Text, nullable=False),
    Column("priority", Integer, nullable=False),
    Column("is_resolved", Boolean, nullable=False),
    Column("created_at", DateTime, nullable=False),
    Column("resolved_at", DateTime, nullable=True),
    Column("resolved_by", String(80), nullable=True),
)

followups = Table(
    "followups", metadata,
    Column("id", String(36), primary_key=True),
    Column("alert_id", String(36), nullable=False),
    Column("patient_id", String(36), nullable=False),
    Column("scheduled_date", Date, nullable=False),
    Column("professional_id", String(80), nullable=False),
    Column("professional_name", String(200), nullable=False),
    Column("status", String(20), nullable=False),
    Column("notes", Text, nullable=True),
    Column("completed_at", DateTime, nullable=True),
    Column("created_at", DateTime, nullable=False),
    Column("created_by", String(80), nullable=False),
)

audit_logs = Table(
    "audit_logs", metadata,
    Column("id", String(36), primary_key=True),
    Column("entity", String(20), nullable=False),
    Column("entity_id", String(64), nullable=False),
    Column("action", String(20), nullable=False),
    Column("before_json", Text, nullable=True),
    Column("after_json", Text, nullable=True),
    Column("user_id", String(80), nullable=False),
    Column("user_name", String(200), nullable=False),
    Column("reason", Text, nullable=True),
    Column("timestamp", DateTime, nullable=False),
)


def init_db() -> None:
    metadata.create_all(get_engine())


def _fetch(stmt) -> list:
    with get_engine().begin() as conn:
        return conn.execute(stmt).fetchall()


# -------------------------
# Patients
# -------------------------
def add_patient(full_name: str, age: int, gender: str) -> Patient:
    if not full_name.strip():
        raise ValueError("Patient name is required")
    if gender not in GENDERS:
        raise ValueError(f"Unknown gender: {gender}")
    patient = Patient(id=str(uuid.uuid4()), full_name=full_name.strip(), age=int(age),
                      gender=gender, created_at=datetime.now())
    with get_engine().begin() as conn:
        conn.execute(insert(patients).values(**asdict(patient)))
    return patient


def get_patient(patient_id: str) -> Optional[Patient]:
    rows = _fetch(select(patients).where(patients.c.id == patient_id))
    return Patient(**rows[0]._mapping) if rows else None


def list_patients() -> List[Patient]:
    rows = _fetch(select(patients).order_by(patients.c.full_name))
    return [Patient(**r._mapping) for r in rows]


# -------------------------
# Catalogs (read side = catalogs.CatalogStore)
# -------------------------
def list_thresholds() -> List[NutritionalThreshold]:
    t = nutritional_thresholds
    rows = _fetch(select(t).order_by(t.c.created_at, t.c.id))
    return [NutritionalThreshold(**r._mapping) for r in rows]


def list_ranges() -> List[ValidationRange]:
    t = validation_ranges
    rows = _fetch(select(t).order_by(t.c.created_at, t.c.id))
    return [ValidationRange(**r._mapping) for r in rows]


def list_recommendations() -> List[Recommendation]:
    t = recommendations
    rows = _fetch(select(t).order_by(t.c.priority, t.c.id))
    return [Recommendation(**r._mapping) for r in rows]


def _check_threshold(threshold: NutritionalThreshold) -> None:
    problems = check_threshold_order([threshold])
    if problems:
        raise ValueError(problems[0])


def _check_range(rng: ValidationRange) -> None:
    if not (0 < rng.min_weight < rng.max_weight):
        raise ValueError(f"Range {rng.age_group}/{rng.gender}: expected 0 < min_weight < max_weight")
    if not (0 < rng.min_height < rng.max_height):
        raise ValueError(f"Range {rng.age_group}/{rng.gender}: expected 0 < min_height < max_height")


def add_threshold(age_group: str, gender: str, red_max: float, yellow_max: float, green_max: float,
                  is_active: bool = True) -> NutritionalThreshold:
    now = datetime.now()
    threshold = NutritionalThreshold(
        id=str(uuid.uuid4()), age_group=age_group, gender=gender,
        red_max=float(red_max), yellow_max=float(yellow_max), green_max=float(green_max),
        is_active=is_active, created_at=now, updated_at=now,
    )
    _check_threshold(threshold)
    with get_engine().begin() as conn:
        conn.execute(insert(nutritional_thresholds).values(**asdict(threshold)))
    return threshold


def update_threshold(threshold_id: str, **updates) -> NutritionalThreshold:
    t = nutritional_thresholds
    rows = _fetch(select(t).where(t.c.id == threshold_id))
    if not rows:
        raise KeyError(threshold_id)
    data = dict(rows[0]._mapping)
    data.update(updates, updated_at=datetime.now())
    threshold = NutritionalThreshold(**data)
    _check_threshold(threshold)
    with get_engine().begin() as conn:
        conn.execute(update(t).where(t.c.id == threshold_id).values(**asdict(threshold)))
    return threshold


def add_range(age_group: str, gender: str, min_weight: float, max_weight: float,
              min_height: float, max_height: float, is_active: bool = True) -> ValidationRange:
    now = datetime.now()
    rng = ValidationRange(
        id=str(uuid.uuid4()), age_group=age_group, gender=gender,
        min_weight=float(min_weight), max_weight=float(max_weight),
        min_height=float(min_height), max_height=float(max_height),
        is_active=is_active, created_at=now, updated_at=now,
    )
    _check_range(rng)
    with get_engine().begin() as conn:
        conn.execute(insert(validation_ranges).values(**asdict(rng)))
    return rng


def update_range(range_id: str, **updates) -> ValidationRange:
    t = validation_ranges
    rows = _fetch(select(t).where(t.c.id == range_id))
    if not rows:
        raise KeyError(range_id)
    data = dict(rows[0]._mapping)
    data.update(updates, updated_at=datetime.now())
    rng = ValidationRange(**data)
    _check_range(rng)
    with get_engine().begin() as conn:
        conn.execute(update(t).where(t.c.id == range_id).values(**asdict(rng)))
    return rng


def add_recommendation(status: str, title: str, message: str, action: str, priority: int,
                       is_active: bool = True) -> Recommendation:
    if status not in STATUSES:
        raise ValueError(f"Unknown status: {status}")
    rec = Recommendation(id=str(uuid.uuid4()), status=status, title=title, message=message,
                         action=action, priority=int(priority), is_active=is_active)
    with get_engine().begin() as conn:
        conn.execute(insert(recommendations).values(**asdict(rec)))
    return rec


def update_recommendation(recommendation_id: str, **updates) -> Recommendation:
    t = recommendations
    rows = _fetch(select(t).where(t.c.id == recommendation_id))
    if not rows:
        raise KeyError(recommendation_id)
    data = dict(rows[0]._mapping)
    data.update(updates)
    rec = Recommendation(**data)
    with get_engine().begin() as conn:
        conn.execute(update(t).where(t.c.id == recommendation_id).values(**asdict(rec)))
    return rec


def seed_default_catalogs() -> int:
    """Copy the built-in tables into empty catalog tables. Returns how many rows were inserted."""
    now = datetime.now()
    inserted = 0
    with get_engine().begin() as conn:
        if not conn.execute(select(nutritional_thresholds.c.id)).first():
            for t in all_default_thresholds():
                t.created_at = t.updated_at = now
                conn.execute(insert(nutritional_thresholds).values(**asdict(t)))
                inserted += 1
        if not conn.execute(select(validation_ranges.c.id)).first():
            for r in all_default_ranges():
                r.created_at = r.updated_at = now
                conn.execute(insert(validation_ranges).values(**asdict(r)))
                inserted += 1
        if not conn.execute(select(recommendations.c.id)).first():
            for status in STATUSES:
                conn.execute(insert(recommendations).values(**asdict(default_recommendation(status))))
                inserted += 1
    return inserted


# -------------------------
# Records + alerts (pipeline.RecordSink)
# -------------------------
def _insert_record(conn, record: MedicalRecord) -> None:
    data = asdict(record)
    data["audit_trail_json"] = json.dumps(data.pop("audit_trail") or {})
    conn.execute(insert(medical_records).values(**data))


def _insert_alert(conn, alert: Alert) -> None:
    conn.execute(insert(alerts).values(**asdict(alert)))


def save_evaluation(record: MedicalRecord, alert: Alert) -> None:
    """Writes a record and its alert in one transaction; neither row survives a failure."""
    with get_engine().begin() as conn:
        _insert_record(conn, record)
        _insert_alert(conn, alert)


def _row_to_record(row) -> MedicalRecord:
    d = dict(row._mapping)
    try:
        d["audit_trail"] = json.loads(d.pop("audit_trail_json") or "{}")
    except json.JSONDecodeError:
        d["audit_trail"] = {}
    d["notes"] = d.get("notes") or ""
    return MedicalRecord(**d)


def fetch_records(patient_id: Optional[str] = None) -> List[MedicalRecord]:
    t = medical_records
    stmt = select(t).order_by(t.c.measurement_date, t.c.created_at)
    if patient_id is not None:
        stmt = stmt.where(t.c.patient_id == patient_id)
    return [_row_to_record(r) for r in _fetch(stmt)]


def update_alert(alert: Alert) -> None:
    with get_engine().begin() as conn:
        conn.execute(update(alerts).where(alerts.c.id == alert.id).values(**asdict(alert)))


def get_alert(alert_id: str) -> Optional[Alert]:
    rows = _fetch(select(alerts).where(alerts.c.id == alert_id))
    return Alert(**rows[0]._mapping) if rows else None


def fetch_alerts(patient_id: Optional[str] = None, unresolved_only: bool = False) -> List[Alert]:
    stmt = select(alerts).order_by(alerts.c.created_at)
    if patient_id is not None:
        stmt = stmt.where(alerts.c.patient_id == patient_id)
    if unresolved_only:
        stmt = stmt.where(alerts.c.is_resolved == False)  # noqa: E712
    return [Alert(**r._mapping) for r in _fetch(stmt)]


# -------------------------
# Follow-ups
# -------------------------
def save_followup(followup: FollowUp) -> None:
    data = asdict(followup)
    with get_engine().begin() as conn:
        exists = conn.execute(
            select(followups.c.id).where(followups.c.id == followup.id)
        ).fetchone()
        if exists:
            conn.execute(update(followups).where(followups.c.id == followup.id).values(**data))
        else:
            conn.execute(insert(followups).values(**data))


def fetch_followups(patient_id: Optional[str] = None, alert_id: Optional[str] = None) -> List[FollowUp]:
    t = followups
    stmt = select(t).order_by(t.c.scheduled_date)
    if patient_id is not None:
        stmt = stmt.where(t.c.patient_id == patient_id)
    if alert_id is not None:
        stmt = stmt.where(t.c.alert_id == alert_id)
    out = []
    for r in _fetch(stmt):
        d = dict(r._mapping)
        d["notes"] = d.get("notes") or ""
        out.append(FollowUp(**d))
    return out


# -------------------------
# Audit log (audit.AuditRecorder)
# -------------------------
def record_audit(entry: AuditLog) -> None:
    data = asdict(entry)
    data["before_json"] = json.dumps(data.pop("before"))
    data["after_json"] = json.dumps(data.pop("after"))
    with get_engine().begin() as conn:
        conn.execute(insert(audit_logs).values(**data))


def fetch_audit_logs(
    entity_id: Optional[str] = None,
    entity: Optional[str] = None,
    user_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[AuditLog]:
    t = audit_logs
    stmt = select(t).order_by(t.c.timestamp)
    if entity_id is not None:
        stmt = stmt.where(t.c.entity_id == entity_id)
    if entity is not None:
        stmt = stmt.where(t.c.entity == entity)
    if user_id is not None:
        stmt = stmt.where(t.c.user_id == user_id)
    if start is not None:
        stmt = stmt.where(t.c.timestamp >= start)
    if end is not None:
        stmt = stmt.where(t.c.timestamp <= end)

    out = []
    for r in _fetch(stmt):
        d = dict(r._mapping)
        d["before"] = json.loads(d.pop("before_json") or "null")
        d["after"] = json.loads(d.pop("after_json") or "null")
        out.append(AuditLog(**d))
    return out


def prune_audit_logs(retention_days: Optional[int] = None, now: Optional[datetime] = None) -> int:
    """Drop entries older than the retention window. Returns the number deleted."""
    days = AUDIT["retention_days"] if retention_days is None else retention_days
    cutoff = (now or datetime.now()) - timedelta(days=days)
    with get_engine().begin() as conn:
        result = conn.execute(delete(audit_logs).where(audit_logs.c.timestamp < cutoff))
    return result.rowcount
