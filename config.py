# config.py
# Built-in catalog defaults + evaluation settings (clinical staff can tweak these easily).
# Used whenever the catalog store has no active entry for a key.

AGE_GROUPS = ["3-5", "6-10", "11-17", "18+"]

DEFAULTS = {
    # BMI cut points per (age group, gender): red_max < yellow_max < green_max
    "thresholds": {
        ("3-5", "male"): {"red_max": 13.1, "yellow_max": 14.0, "green_max": 17.0},
        ("3-5", "female"): {"red_max": 12.8, "yellow_max": 13.8, "green_max": 16.8},
        ("6-10", "male"): {"red_max": 13.5, "yellow_max": 14.5, "green_max": 18.0},
        ("6-10", "female"): {"red_max": 13.2, "yellow_max": 14.2, "green_max": 17.8},
        ("11-17", "male"): {"red_max": 15.0, "yellow_max": 16.0, "green_max": 25.0},
        ("11-17", "female"): {"red_max": 15.0, "yellow_max": 16.0, "green_max": 25.0},
        ("18+", "male"): {"red_max": 18.5, "yellow_max": 25.0, "green_max": 30.0},
        ("18+", "female"): {"red_max": 18.5, "yellow_max": 25.0, "green_max": 30.0},
    },

    # Plausible input ranges: weight in kg, height in meters
    "ranges": {
        ("3-5", "male"): {"min_weight": 10, "max_weight": 30, "min_height": 0.80, "max_height": 1.30},
        ("3-5", "female"): {"min_weight": 9, "max_weight": 28, "min_height": 0.75, "max_height": 1.25},
        ("6-10", "male"): {"min_weight": 15, "max_weight": 50, "min_height": 1.00, "max_height": 1.50},
        ("6-10", "female"): {"min_weight": 14, "max_weight": 45, "min_height": 0.95, "max_height": 1.45},
        ("11-17", "male"): {"min_weight": 25, "max_weight": 80, "min_height": 1.20, "max_height": 1.80},
        ("11-17", "female"): {"min_weight": 25, "max_weight": 80, "min_height": 1.20, "max_height": 1.80},
        ("18+", "male"): {"min_weight": 30, "max_weight": 150, "min_height": 1.30, "max_height": 2.20},
        ("18+", "female"): {"min_weight": 30, "max_weight": 150, "min_height": 1.30, "max_height": 2.20},
    },

    "recommendations": {
        "red": {
            "title": "Critical alert",
            "message": "SEVERE nutritional status. Requires immediate attention.",
            "action": "Refer immediately to a pediatric nutrition specialist. Evaluate hospitalization if necessary.",
            "priority": 1,
        },
        "yellow": {
            "title": "Follow-up alert",
            "message": "Early signs of undernutrition. Schedule a check-up and follow-up.",
            "action": "Schedule a control appointment in 2-4 weeks. Review diet and lifestyle.",
            "priority": 2,
        },
        "green": {
            "title": "Normal status",
            "message": "Normal weight. Keep an adequate diet and regular check-ups.",
            "action": "Keep a balanced diet and periodic check-ups every 6 months.",
            "priority": 3,
        },
    },

    # The recommendation catalog is keyed by status only, so the
    # overweight side of "red" always uses this text.
    "overweight": {
        "message": "SEVERE overweight/obesity. Requires immediate attention.",
        "action": "Refer to a nutrition specialist. Start a diet and physical activity plan.",
    },
}

VALIDATION = {
    "weight_decimals": 1,
    "height_decimals": 2,   # in meters, i.e. whole centimeters

    # Absolute physiological BMI band (independent of age)
    "bmi_abs_min": 8.0,
    "bmi_abs_max": 50.0,

    "max_record_age_years": 10,

    "min_age": 3,
    "max_age": 120,
}

# Coarse percentile proxy per classification tier (not a population percentile)
PERCENTILE = {
    "severe_undernutrition": 5,
    "undernutrition_risk": 10,
    "normal": 50,
    "severe_overweight": 95,
}

ALERT_TITLES = {
    "red": "Critical alert - severe nutritional status",
    "yellow": "Follow-up alert - nutritional risk",
    "green": "Normal nutritional status",
}

FOLLOWUP = {
    # Days until the suggested control visit, by status
    "red_days": 7,
    "yellow_days": 21,
}

AUDIT = {
    "retention_days": 365,
}

APP = {
    "title": "Nutrition Monitor",
    "disclaimer": (
        "Clinical support tool. Classification uses configurable BMI cut points "
        "and does not replace a professional assessment."
    )
}
