import json
from datetime import date, datetime

from alerts import generate_alert, resolve_alert
from audit import (
    audit_alert_resolution,
    audit_followup_change,
    audit_record_creation,
    create_audit_log,
    snapshot,
)
from classification import Finding
from followup import change_followup_status, schedule_followup
from pipeline import EvaluationContext, MeasurementRequest, NutritionEvaluator

NOW = datetime(2026, 10, 19, 9, 0)


def test_create_audit_log_makes_json_safe_snapshots():
    entry = create_audit_log("record", "r1", "update", {"when": date(2026, 1, 2)}, {"when": NOW},
                             "u1", "Dr. Vega", reason="fix typo", now=NOW)
    assert entry.before == {"when": "2026-01-02"}
    assert entry.after == {"when": "2026-10-19T09:00:00"}
    assert entry.timestamp == NOW
    assert entry.reason == "fix typo"
    json.dumps(entry.after)


def test_snapshot_flattens_enums_and_nested_values():
    assert snapshot({"f": Finding.NORMAL, "xs": (1, NOW)}) == {"f": "normal", "xs": [1, "2026-10-19T09:00:00"]}
    assert snapshot(None) is None


def test_record_creation_is_recorded(memory_store, empty_catalog):
    outcome = NutritionEvaluator(empty_catalog).evaluate(
        MeasurementRequest(10, 90, 4, "male", date(2026, 10, 1)),
        EvaluationContext("p1", "u1", "Dr. Vega"),
        today=NOW.date(),
    )
    entry = audit_record_creation(memory_store, outcome.record, "u1", "Dr. Vega")

    assert memory_store.audit == [entry]
    assert entry.entity == "record"
    assert entry.action == "create"
    assert entry.before is None
    assert entry.after["patient_id"] == "p1"


def test_alert_resolution_is_recorded(memory_store, classifier):
    alert = generate_alert("p1", "r1", classifier.classify(12.3, 4, "male"), now=NOW)
    resolved = resolve_alert(alert, "u1", now=NOW)
    entry = audit_alert_resolution(memory_store, alert, resolved, "u1", "Dr. Vega", reason="visit done")

    assert entry.action == "resolve"
    assert entry.entity_id == alert.id
    assert entry.before["is_resolved"] is False
    assert entry.after["is_resolved"] is True


def test_followup_changes_are_create_then_update(memory_store, classifier):
    alert = generate_alert("p1", "r1", classifier.classify(12.3, 4, "male"), now=NOW)
    fu = schedule_followup(alert, date(2026, 10, 26), "u1", "Dr. Vega", "u1", "Weigh again", now=NOW)
    done = change_followup_status(fu, "completed", now=NOW)

    first = audit_followup_change(memory_store, None, fu, "u1", "Dr. Vega")
    second = audit_followup_change(memory_store, fu, done, "u1", "Dr. Vega")

    assert (first.action, second.action) == ("create", "update")
    assert second.after["status"] == "completed"
    assert len(memory_store.audit) == 2
