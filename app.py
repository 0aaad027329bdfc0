import logging
from datetime import date, datetime, timedelta

import streamlit as st
import pandas as pd
import matplotlib.pyplot as plt

import storage
from alerts import prioritize_alerts, resolve_alert
from audit import audit_alert_resolution, audit_followup_change
from bmi import bmi_category, format_bmi
from config import AGE_GROUPS, APP
from followup import (
    FOLLOWUP_STATUSES,
    change_followup_status,
    schedule_followup,
    suggested_followup_date,
)
from models import GENDERS, STATUSES
from pipeline import EvaluationContext, MeasurementRequest, NutritionEvaluator
from reports import export_csv, nutritional_stats, records_frame

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

st.set_page_config(page_title=APP["title"], layout="wide")

storage.init_db()

# -------------------------
# Header + Disclaimer
# -------------------------
st.title(APP["title"])
st.info(APP["disclaimer"])

STATUS_BADGE = {"red": "🚨 RED", "yellow": "⚠️ YELLOW", "green": "✅ GREEN"}

# -------------------------
# Professional login
# -------------------------
if "professional_id" not in st.session_state:
    st.subheader("Professional login")

    full_name = st.text_input("Full name")
    professional_id = st.text_input("Professional ID")

    if st.button("Continue"):
        if not full_name.strip():
            st.error("Enter your full name.")
            st.stop()
        if not professional_id.strip():
            st.error("Enter your professional ID.")
            st.stop()

        st.session_state["professional_id"] = professional_id.strip()
        st.session_state["professional_name"] = full_name.strip()
        st.rerun()

    st.stop()

st.sidebar.success(f"Logged in: {st.session_state.get('professional_name', 'User')}")
if st.sidebar.button("Logout"):
    for k in ["professional_id", "professional_name", "last_outcome"]:
        st.session_state.pop(k, None)
    st.rerun()

# -------------------------
# Helpers
# -------------------------
def _user():
    return st.session_state["professional_id"], st.session_state["professional_name"]


def _patient_label(p) -> str:
    return f"{p.full_name} ({p.age} y, {p.gender})"


def _evaluator() -> NutritionEvaluator:
    return NutritionEvaluator(storage, sink=storage, audit=storage)


tabs = st.tabs(["1) Patients", "2) Measurement", "3) Alerts & Follow-up", "4) Catalogs", "5) Reports", "6) Audit log"])

# -------------------------
# 1) Patients
# -------------------------
with tabs[0]:
    st.subheader("Register patient")

    name = st.text_input("Patient full name")
    c1, c2 = st.columns(2)
    with c1:
        age = st.number_input("Age (years)", min_value=3, max_value=120, value=5)
    with c2:
        gender = st.selectbox("Gender", list(GENDERS))

    if st.button("Register patient"):
        try:
            patient = storage.add_patient(name, int(age), gender)
            st.success(f"Registered {patient.full_name} ✅")
        except ValueError as e:
            st.error(str(e))

    patients = storage.list_patients()
    if patients:
        st.dataframe(
            pd.DataFrame([{"name": p.full_name, "age": p.age, "gender": p.gender, "id": p.id} for p in patients]),
            use_container_width=True,
        )
    else:
        st.info("No patients yet.")

# -------------------------
# 2) Measurement
# -------------------------
with tabs[1]:
    st.subheader("New anthropometric record (validation + classification)")

    patients = storage.list_patients()
    if not patients:
        st.info("Register a patient first.")
    else:
        patient = st.selectbox("Patient", patients, format_func=_patient_label)

        col_w, col_h, col_d = st.columns(3)
        with col_w:
            weight_kg = st.number_input("Weight (kg)", min_value=0.0, max_value=300.0, value=0.0, step=0.1)
        with col_h:
            height_cm = st.number_input("Height (cm)", min_value=0.0, max_value=250.0, value=0.0, step=1.0)
        with col_d:
            measurement_date = st.date_input("Measurement date", value=date.today())
        notes = st.text_area("Notes (optional)", height=80)

        if st.button("Calculate & save"):
            request = MeasurementRequest(
                weight_kg=float(weight_kg),
                height_cm=float(height_cm),
                age=patient.age,
                gender=patient.gender,
                measurement_date=measurement_date,
            )
            pro_id, pro_name = _user()
            context = EvaluationContext(
                patient_id=patient.id,
                professional_id=pro_id,
                professional_name=pro_name,
                notes=notes.strip(),
            )
            try:
                st.session_state["last_outcome"] = _evaluator().record_measurement(request, context)
            except Exception:
                logging.getLogger(__name__).exception("Saving measurement failed")
                st.error("Something went wrong while saving the record. Please try again.")

        outcome = st.session_state.get("last_outcome")
        if outcome is not None and outcome.patient_id == patient.id:
            if not outcome.ok:
                st.error("Validation errors prevent saving this record:")
                for msg in outcome.errors:
                    st.write("•", msg)
            else:
                record, alert = outcome.record, outcome.alert
                for msg in outcome.warnings:
                    st.warning(msg)

                text = f"{STATUS_BADGE[record.nutritional_status]}: {alert.message}"
                if record.nutritional_status == "red":
                    st.error(text)
                elif record.nutritional_status == "yellow":
                    st.warning(text)
                else:
                    st.success(text)

                st.write(f"**BMI:** {format_bmi(record.bmi)} • **Percentile (approx.):** P{record.percentile}")
                if record.age >= 18:
                    st.caption(f"Adult BMI category: {bmi_category(record.bmi)}")
                st.write(f"**Recommendation:** {alert.recommendation}")
                if outcome.classification.threshold_source == "default":
                    st.caption("Classified with built-in default thresholds (no catalog entry configured).")

        # History + trend for the selected patient
        history = storage.fetch_records(patient.id)
        if history:
            df = records_frame(history)
            st.write("### History")
            st.dataframe(df.drop(columns=["id", "patient_id"]), use_container_width=True)

            if len(df) > 1:
                st.write("### BMI trend")
                fig = plt.figure()
                plt.plot(df["measurement_date"], df["bmi"], marker="o")
                plt.xticks(rotation=30)
                plt.ylabel("BMI (kg/m²)")
                st.pyplot(fig)

# -------------------------
# 3) Alerts & Follow-up
# -------------------------
with tabs[2]:
    st.subheader("Open alerts (by priority)")

    pro_id, pro_name = _user()
    open_alerts = prioritize_alerts(storage.fetch_alerts(unresolved_only=True))
    names = {p.id: p.full_name for p in storage.list_patients()}

    if not open_alerts:
        st.success("No open alerts.")

    for alert in open_alerts:
        with st.expander(f"{STATUS_BADGE[alert.status]} • {names.get(alert.patient_id, alert.patient_id)} • {alert.title}"):
            st.write(alert.message)
            st.write(f"**Recommendation:** {alert.recommendation}")
            st.caption(f"Raised {alert.created_at:%Y-%m-%d %H:%M}")

            suggested = suggested_followup_date(alert) or date.today() + timedelta(days=14)
            fu_date = st.date_input("Follow-up date", value=suggested, key=f"fu_date_{alert.id}")
            fu_notes = st.text_input("Follow-up notes", key=f"fu_notes_{alert.id}")
            c1, c2 = st.columns(2)
            with c1:
                if st.button("Schedule follow-up", key=f"fu_{alert.id}"):
                    try:
                        fu = schedule_followup(alert, fu_date, pro_id, pro_name, pro_id, fu_notes)
                    except ValueError as e:
                        st.error(str(e))
                    else:
                        storage.save_followup(fu)
                        audit_followup_change(storage, None, fu, pro_id, pro_name)
                        st.success("Follow-up scheduled ✅")
            with c2:
                reason = st.text_input("Resolution reason", key=f"res_reason_{alert.id}")
                if st.button("Resolve alert", key=f"res_{alert.id}"):
                    resolved = resolve_alert(alert, pro_id)
                    storage.update_alert(resolved)
                    audit_alert_resolution(storage, alert, resolved, pro_id, pro_name, reason or None)
                    st.rerun()

    st.write("### Follow-ups")
    fus = storage.fetch_followups()
    if not fus:
        st.info("No follow-ups scheduled.")
    for fu in fus:
        c1, c2 = st.columns([3, 1])
        with c1:
            st.write(f"{fu.scheduled_date} • {names.get(fu.patient_id, fu.patient_id)} • {fu.status} • {fu.notes}")
        with c2:
            new_status = st.selectbox("Status", FOLLOWUP_STATUSES, index=FOLLOWUP_STATUSES.index(fu.status),
                                      key=f"fu_status_{fu.id}", label_visibility="collapsed")
            if new_status != fu.status:
                updated = change_followup_status(fu, new_status)
                storage.save_followup(updated)
                audit_followup_change(storage, fu, updated, pro_id, pro_name)
                st.rerun()

# -------------------------
# 4) Catalogs
# -------------------------
with tabs[3]:
    st.subheader("Catalogs (thresholds, validation ranges, recommendations)")

    if st.button("Load built-in defaults into empty catalogs"):
        n = storage.seed_default_catalogs()
        st.success(f"Inserted {n} catalog entries.")

    st.write("### Nutritional thresholds (BMI)")
    thresholds = storage.list_thresholds()
    if thresholds:
        st.dataframe(pd.DataFrame([vars(t) for t in thresholds]), use_container_width=True)
    else:
        st.caption("Empty: built-in defaults are used.")

    with st.form("add_threshold"):
        c1, c2, c3, c4, c5 = st.columns(5)
        group = c1.selectbox("Age group", AGE_GROUPS)
        t_gender = c2.selectbox("Gender", list(GENDERS), key="t_gender")
        red_max = c3.number_input("Red max", value=13.0, step=0.1)
        yellow_max = c4.number_input("Yellow max", value=14.0, step=0.1)
        green_max = c5.number_input("Green max", value=17.0, step=0.1)
        if st.form_submit_button("Add threshold"):
            try:
                storage.add_threshold(group, t_gender, red_max, yellow_max, green_max)
                st.success("Threshold added ✅")
            except ValueError as e:
                st.error(str(e))

    st.write("### Validation ranges (kg / m)")
    ranges = storage.list_ranges()
    if ranges:
        st.dataframe(pd.DataFrame([vars(r) for r in ranges]), use_container_width=True)
    else:
        st.caption("Empty: built-in defaults are used.")

    with st.form("add_range"):
        c1, c2, c3, c4, c5, c6 = st.columns(6)
        r_group = c1.selectbox("Age group", AGE_GROUPS, key="r_group")
        r_gender = c2.selectbox("Gender", list(GENDERS), key="r_gender")
        min_w = c3.number_input("Min weight", value=10.0)
        max_w = c4.number_input("Max weight", value=30.0)
        min_h = c5.number_input("Min height (m)", value=0.80, step=0.01)
        max_h = c6.number_input("Max height (m)", value=1.30, step=0.01)
        if st.form_submit_button("Add range"):
            try:
                storage.add_range(r_group, r_gender, min_w, max_w, min_h, max_h)
                st.success("Range added ✅")
            except ValueError as e:
                st.error(str(e))

    st.write("### Recommendations")
    recs = storage.list_recommendations()
    for rec in recs:
        label = f"{STATUS_BADGE[rec.status]} • {rec.title} ({'active' if rec.is_active else 'inactive'})"
        with st.expander(label):
            st.write(rec.message)
            st.write(f"**Action:** {rec.action}")
            if st.button("Deactivate" if rec.is_active else "Activate", key=f"rec_toggle_{rec.id}"):
                storage.update_recommendation(rec.id, is_active=not rec.is_active)
                st.rerun()

    with st.form("add_recommendation"):
        rec_status = st.selectbox("Status", list(STATUSES))
        rec_title = st.text_input("Title")
        rec_message = st.text_area("Message", height=60)
        rec_action = st.text_area("Action", height=60)
        rec_priority = st.number_input("Priority (1 = highest)", min_value=1, max_value=3, value=1)
        if st.form_submit_button("Add recommendation"):
            try:
                storage.add_recommendation(rec_status, rec_title, rec_message, rec_action, int(rec_priority))
                st.success("Recommendation added ✅")
            except ValueError as e:
                st.error(str(e))

# -------------------------
# 5) Reports
# -------------------------
with tabs[4]:
    st.subheader("Nutritional status report")

    df = records_frame(storage.fetch_records())
    if df.empty:
        st.info("No records yet.")
    else:
        stats = nutritional_stats(df)
        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Patients", stats["total_patients"])
        c2.metric("Red", stats["red_alerts"])
        c3.metric("Yellow", stats["yellow_alerts"])
        c4.metric("Green", stats["green_status"])

        monthly = pd.DataFrame(stats["monthly_evolution"]).set_index("month")
        st.write("### Monthly evolution")
        fig = plt.figure()
        for status in STATUSES:
            plt.plot(monthly.index, monthly[status], marker="o", color=status, label=status)
        plt.legend()
        plt.xticks(rotation=30)
        st.pyplot(fig)

        st.write("### By age group")
        st.dataframe(pd.DataFrame(stats["age_group_distribution"]), use_container_width=True)
        st.write("### By gender")
        st.dataframe(pd.DataFrame(stats["gender_distribution"]), use_container_width=True)

        st.download_button(
            "Download records (CSV)",
            data=export_csv(df),
            file_name=f"nutrition_records_{datetime.now():%Y%m%d}.csv",
            mime="text/csv",
        )

# -------------------------
# 6) Audit log
# -------------------------
with tabs[5]:
    st.subheader("Audit log")

    entity = st.selectbox("Entity", ["all", "record", "alert", "followup"])
    logs = storage.fetch_audit_logs(entity=None if entity == "all" else entity)
    if logs:
        st.dataframe(
            pd.DataFrame([
                {"timestamp": l.timestamp, "entity": l.entity, "action": l.action,
                 "entity_id": l.entity_id, "user": l.user_name, "reason": l.reason}
                for l in reversed(logs)
            ]),
            use_container_width=True,
        )
    else:
        st.info("No audit entries yet.")

    if st.button("Prune entries older than the retention window"):
        n = storage.prune_audit_logs()
        st.success(f"Removed {n} old entries.")
