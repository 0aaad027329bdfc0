# classification.py
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from catalogs import CatalogLookup
from config import DEFAULTS, PERCENTILE
from models import (
    NutritionalThreshold,
    RED, YELLOW, GREEN,
    CRITICAL, WARNING, INFO,
)


class Finding(Enum):
    """
    What the BMI says, before it is projected onto the red/yellow/green scale.
    Both ends of the U-shaped risk curve project to red.
    """
    SEVERE_UNDERNUTRITION = "severe_undernutrition"
    UNDERNUTRITION_RISK = "undernutrition_risk"
    NORMAL = "normal"
    SEVERE_OVERWEIGHT = "severe_overweight"

    @property
    def status(self) -> str:
        return _PROJECTION[self][0]

    @property
    def alert_level(self) -> str:
        return _PROJECTION[self][1]

    @property
    def priority(self) -> int:
        return _PROJECTION[self][2]

    @property
    def percentile(self) -> int:
        return PERCENTILE[self.value]


_PROJECTION = {
    Finding.SEVERE_UNDERNUTRITION: (RED, CRITICAL, 1),
    Finding.UNDERNUTRITION_RISK: (YELLOW, WARNING, 2),
    Finding.NORMAL: (GREEN, INFO, 3),
    Finding.SEVERE_OVERWEIGHT: (RED, CRITICAL, 1),
}


@dataclass(frozen=True)
class ClassificationResult:
    status: str
    alert_level: str
    message: str
    recommendation: str
    priority: int
    finding: Finding
    threshold_source: str


def find_tier(bmi: float, threshold: NutritionalThreshold) -> Finding:
    # First match wins; each boundary belongs to the better tier
    if bmi < threshold.red_max:
        return Finding.SEVERE_UNDERNUTRITION
    if bmi < threshold.yellow_max:
        return Finding.UNDERNUTRITION_RISK
    if bmi <= threshold.green_max:
        return Finding.NORMAL
    return Finding.SEVERE_OVERWEIGHT


class Classifier:
    def __init__(self, catalog: CatalogLookup):
        self.catalog = catalog

    def _tier(self, bmi: float, age: int, gender: str) -> Tuple[Finding, str]:
        lookup = self.catalog.threshold_for_age(age, gender)
        return find_tier(bmi, lookup.entry), lookup.source

    def classify(self, bmi: float, age: int, gender: str) -> ClassificationResult:
        finding, source = self._tier(bmi, age, gender)

        if finding is Finding.SEVERE_OVERWEIGHT:
            text = DEFAULTS["overweight"]
            message, recommendation = text["message"], text["action"]
        else:
            rec = self.catalog.get_recommendation(finding.status).entry
            message, recommendation = rec.message, rec.action

        return ClassificationResult(
            status=finding.status,
            alert_level=finding.alert_level,
            message=message,
            recommendation=recommendation,
            priority=finding.priority,
            finding=finding,
            threshold_source=source,
        )

    def estimate_percentile(self, bmi: float, age: int, gender: str) -> int:
        """Coarse percentile bucket for the same tier classify() assigns."""
        finding, _ = self._tier(bmi, age, gender)
        return finding.percentile
