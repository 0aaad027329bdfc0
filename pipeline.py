# pipeline.py
# Measurement -> validation -> BMI -> classification -> record + alert.
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Protocol

from alerts import generate_alert
from audit import AuditRecorder, audit_alert_creation, audit_record_creation
from bmi import compute_bmi
from catalogs import CatalogLookup, CatalogStore
from classification import ClassificationResult, Classifier
from models import Alert, MedicalRecord
from validation import (
    DateLike,
    ValidationResult,
    Validator,
    as_date,
    error_messages,
    has_hard_errors,
    soft_errors,
)

logger = logging.getLogger(__name__)


class RecordSink(Protocol):
    def save_evaluation(self, record: MedicalRecord, alert: Alert) -> None:
        """Persist the record and its alert together, or neither."""


@dataclass
class MeasurementRequest:
    weight_kg: float
    height_cm: float
    age: int
    gender: str
    measurement_date: DateLike


@dataclass
class EvaluationContext:
    patient_id: str
    professional_id: str
    professional_name: str
    notes: str = ""
    record_id: Optional[str] = None


@dataclass
class EvaluationOutcome:
    patient_id: str
    results: List[ValidationResult] = field(default_factory=list)
    record: Optional[MedicalRecord] = None
    alert: Optional[Alert] = None
    classification: Optional[ClassificationResult] = None

    @property
    def ok(self) -> bool:
        return self.record is not None

    @property
    def errors(self) -> List[str]:
        return error_messages(self.results)

    @property
    def warnings(self) -> List[str]:
        return [r.message for r in soft_errors(self.results)]


class NutritionEvaluator:
    """
    Wires the core together. evaluate() has no side effects; record_measurement()
    additionally hands the record and alert to the sink and the audit log.
    """

    def __init__(
        self,
        catalog_store: CatalogStore,
        sink: Optional[RecordSink] = None,
        audit: Optional[AuditRecorder] = None,
    ):
        catalog = CatalogLookup(catalog_store)
        self.validator = Validator(catalog)
        self.classifier = Classifier(catalog)
        self.sink = sink
        self.audit = audit

    def evaluate(
        self,
        request: MeasurementRequest,
        context: EvaluationContext,
        today: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> EvaluationOutcome:
        results = self.validator.validate(
            request.weight_kg,
            request.height_cm,
            request.age,
            request.gender,
            request.measurement_date,
            today=today,
        )
        if has_hard_errors(results):
            logger.info(
                "Measurement for patient %s blocked: %s",
                context.patient_id,
                ", ".join(r.code for r in results if r.is_hard_error),
            )
            return EvaluationOutcome(patient_id=context.patient_id, results=results)

        now = now or datetime.now()
        age = int(request.age)
        bmi = compute_bmi(request.weight_kg, request.height_cm)
        classification = self.classifier.classify(bmi, age, request.gender)
        percentile = self.classifier.estimate_percentile(bmi, age, request.gender)

        record_id = context.record_id or str(uuid.uuid4())
        record = MedicalRecord(
            id=record_id,
            patient_id=context.patient_id,
            measurement_date=as_date(request.measurement_date),
            weight_kg=float(request.weight_kg),
            height_cm=float(request.height_cm),
            age=age,
            gender=request.gender,
            bmi=bmi,
            nutritional_status=classification.status,
            alert_level=classification.alert_level,
            percentile=percentile,
            professional_id=context.professional_id,
            professional_name=context.professional_name,
            created_at=now,
            updated_at=now,
            notes=context.notes,
            audit_trail={"created_by": context.professional_id, "reason": "Anthropometric record"},
        )
        alert = generate_alert(context.patient_id, record_id, classification, now=now)

        return EvaluationOutcome(
            patient_id=context.patient_id,
            results=results,
            record=record,
            alert=alert,
            classification=classification,
        )

    def record_measurement(
        self,
        request: MeasurementRequest,
        context: EvaluationContext,
        today: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> EvaluationOutcome:
        outcome = self.evaluate(request, context, today=today, now=now)
        if not outcome.ok:
            return outcome

        if self.sink is not None:
            self.sink.save_evaluation(outcome.record, outcome.alert)
        if self.audit is not None:
            audit_record_creation(self.audit, outcome.record, context.professional_id, context.professional_name)
            audit_alert_creation(self.audit, outcome.alert, context.professional_id, context.professional_name)

        logger.info(
            "Recorded %s for patient %s (BMI %.1f, %s)",
            outcome.record.id,
            context.patient_id,
            outcome.record.bmi,
            outcome.record.nutritional_status,
        )
        return outcome
