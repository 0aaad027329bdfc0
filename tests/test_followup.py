from datetime import date, datetime, timedelta

import pytest
from alerts import generate_alert
from followup import change_followup_status, schedule_followup, suggested_followup_date

NOW = datetime(2026, 10, 19, 9, 0)
TODAY = NOW.date()


@pytest.fixture
def red_alert(classifier):
    return generate_alert("p1", "r1", classifier.classify(12.3, 4, "male"), now=NOW)


def test_schedule_followup_links_alert_and_patient(red_alert):
    fu = schedule_followup(red_alert, date(2026, 10, 26), "d1", "Dr. Vega", "d1", "  Re-weigh  ", now=NOW)
    assert fu.alert_id == red_alert.id
    assert fu.patient_id == "p1"
    assert fu.status == "scheduled"
    assert fu.notes == "Re-weigh"
    assert fu.completed_at is None


@pytest.mark.parametrize("when, notes", [(None, "Re-weigh"), (date(2026, 10, 26), "   "), (date(2026, 10, 26), "")])
def test_schedule_followup_requires_date_and_notes(red_alert, when, notes):
    with pytest.raises(ValueError):
        schedule_followup(red_alert, when, "d1", "Dr. Vega", "d1", notes)


def test_completing_sets_completed_at(red_alert):
    fu = schedule_followup(red_alert, date(2026, 10, 26), "d1", "Dr. Vega", "d1", "Re-weigh", now=NOW)
    done = change_followup_status(fu, "completed", now=NOW)
    assert done.status == "completed"
    assert done.completed_at == NOW
    assert fu.status == "scheduled"

    reopened = change_followup_status(done, "no_show")
    assert reopened.completed_at is None


def test_unknown_status_is_rejected(red_alert):
    fu = schedule_followup(red_alert, date(2026, 10, 26), "d1", "Dr. Vega", "d1", "Re-weigh")
    with pytest.raises(ValueError):
        change_followup_status(fu, "postponed")


def test_suggested_dates_by_status(classifier, red_alert):
    yellow = generate_alert("p1", "r2", classifier.classify(13.5, 4, "male"))
    green = generate_alert("p1", "r3", classifier.classify(15.0, 4, "male"))

    assert suggested_followup_date(red_alert, TODAY) == TODAY + timedelta(days=7)
    assert suggested_followup_date(yellow, TODAY) == TODAY + timedelta(days=21)
    assert suggested_followup_date(green, TODAY) is None
