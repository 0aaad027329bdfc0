# reports.py
from dataclasses import asdict
from typing import Dict, List

import pandas as pd

from catalogs import age_group
from config import AGE_GROUPS
from models import MedicalRecord, RED, YELLOW, GREEN, STATUSES

RECORD_COLUMNS = [
    "id", "patient_id", "measurement_date", "weight_kg", "height_cm", "age", "gender",
    "bmi", "nutritional_status", "alert_level", "percentile", "professional_name", "notes",
]


def records_frame(records: List[MedicalRecord]) -> pd.DataFrame:
    if not records:
        return pd.DataFrame(columns=RECORD_COLUMNS)
    df = pd.DataFrame([asdict(r) for r in records])[RECORD_COLUMNS]
    df["measurement_date"] = pd.to_datetime(df["measurement_date"])
    return df


def latest_by_patient(df: pd.DataFrame) -> pd.DataFrame:
    """One row per patient: the most recent measurement."""
    if df.empty:
        return df
    return (
        df.sort_values("measurement_date")
        .groupby("patient_id", as_index=False)
        .tail(1)
        .reset_index(drop=True)
    )


def _status_shares(group: pd.DataFrame) -> Dict[str, float]:
    n = len(group)
    counts = group["nutritional_status"].value_counts()
    return {f"{s}_percentage": round(100.0 * counts.get(s, 0) / n, 1) if n else 0.0 for s in STATUSES}


def nutritional_stats(df: pd.DataFrame) -> Dict:
    """
    Dashboard numbers. Status counts use each patient's latest record;
    monthly evolution counts every record in its month.
    """
    latest = latest_by_patient(df)
    counts = latest["nutritional_status"].value_counts() if not latest.empty else {}

    stats = {
        "total_patients": int(latest["patient_id"].nunique()) if not latest.empty else 0,
        "red_alerts": int(counts.get(RED, 0)),
        "yellow_alerts": int(counts.get(YELLOW, 0)),
        "green_status": int(counts.get(GREEN, 0)),
        "monthly_evolution": [],
        "age_group_distribution": [],
        "gender_distribution": [],
    }
    if df.empty:
        return stats

    monthly = (
        df.assign(month=df["measurement_date"].dt.strftime("%Y-%m"))
        .pivot_table(index="month", columns="nutritional_status", values="id", aggfunc="count", fill_value=0)
        .reindex(columns=list(STATUSES), fill_value=0)
    )
    stats["monthly_evolution"] = [
        {"month": month, **{s: int(row[s]) for s in STATUSES}} for month, row in monthly.iterrows()
    ]

    with_group = latest.assign(age_group=latest["age"].map(age_group))
    for group in AGE_GROUPS:
        rows = with_group[with_group["age_group"] == group]
        if len(rows):
            stats["age_group_distribution"].append({"age_group": group, "count": len(rows), **_status_shares(rows)})

    for gender, rows in latest.groupby("gender"):
        stats["gender_distribution"].append({"gender": gender, "count": len(rows), **_status_shares(rows)})

    return stats


def export_csv(df: pd.DataFrame) -> str:
    out = df.copy()
    if not out.empty:
        out["measurement_date"] = out["measurement_date"].dt.date.astype(str)
    return out.to_csv(index=False)
