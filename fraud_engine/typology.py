"""
Mapping of technical finding codes to business fraud typologies.

Upstream analysis reports findings as opaque codes.  This table turns
them into the fraud type, lifecycle context and expected investigation
complexity needed to value an investigation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from fraud_engine.classifier import RiskLevel
from fraud_engine.roi import Complexity, FraudContext, FraudType


@dataclass(frozen=True)
class Typology:
    code: str
    fraud_type: FraudType
    context: FraudContext
    severity: RiskLevel
    risk_score: float
    average_amount: float
    detection_difficulty: float
    complexity: Complexity


def _t(code, fraud_type, context, severity, risk, amount, difficulty, complexity):
    return Typology(code, fraud_type, context, severity, risk, amount, difficulty, complexity)


FINDING_TYPOLOGIES: dict[str, Typology] = {
    t.code: t
    for t in (
        _t("DIGITAL_PRINT_DETECTED", FraudType.IDENTITY_THEFT, FraudContext.SUBSCRIPTION,
           RiskLevel.HIGH, 85, 2500, 30, Complexity.MEDIUM),
        _t("SIGNATURE_INCONSISTENCY", FraudType.DOCUMENT_FORGED, FraudContext.CLAIM,
           RiskLevel.HIGH, 80, 3200, 45, Complexity.MEDIUM),
        _t("AMOUNT_ANOMALY", FraudType.INFLATED_AMOUNT, FraudContext.CLAIM,
           RiskLevel.MEDIUM, 70, 1800, 25, Complexity.SIMPLE),
        _t("DATE_INCONSISTENCY", FraudType.INVALID_LICENCE_DATE, FraudContext.SUBSCRIPTION,
           RiskLevel.MEDIUM, 65, 450, 20, Complexity.SIMPLE),
        _t("TEMPLATE_MISMATCH", FraudType.FAKE_SUPPORTING_DOCUMENTS, FraudContext.SUBSCRIPTION,
           RiskLevel.HIGH, 90, 1200, 60, Complexity.COMPLEX),
        _t("AI_GENERATED_CONTENT", FraudType.CYBER_FRAUD, FraudContext.CLAIM,
           RiskLevel.CRITICAL, 95, 5000, 80, Complexity.COMPLEX),
        _t("BONUS_MALUS_ANOMALY", FraudType.FAKE_NO_CLAIMS_BONUS, FraudContext.SUBSCRIPTION,
           RiskLevel.HIGH, 75, 850, 35, Complexity.MEDIUM),
        _t("ADDRESS_ANOMALY", FraudType.ADDRESS_CHANGE, FraudContext.SUBSCRIPTION,
           RiskLevel.MEDIUM, 60, 320, 25, Complexity.SIMPLE),
        _t("VIN_ANOMALY", FraudType.MISREPRESENTED_VEHICLE, FraudContext.SUBSCRIPTION,
           RiskLevel.HIGH, 85, 2100, 40, Complexity.MEDIUM),
        _t("EXPERT_SEAL_MISSING", FraudType.COMPLICIT_EXPERT, FraudContext.CLAIM,
           RiskLevel.CRITICAL, 90, 4500, 70, Complexity.COMPLEX),
        _t("REPAIR_INVOICE_DUPLICATE", FraudType.COMPLICIT_REPAIRER, FraudContext.CLAIM,
           RiskLevel.HIGH, 80, 2800, 50, Complexity.MEDIUM),
        _t("STAGED_EVENT_PATTERN", FraudType.FICTITIOUS_CLAIM, FraudContext.CLAIM,
           RiskLevel.CRITICAL, 92, 6500, 65, Complexity.COMPLEX),
    )
}


def lookup(code: str) -> Optional[Typology]:
    """Typology for one finding code, or ``None`` if the code is unknown."""
    return FINDING_TYPOLOGIES.get(code.strip().upper())


def resolve_typology(codes: Iterable[str]) -> Optional[Typology]:
    """Pick the typology with the highest risk among ``codes``.

    Unknown codes are ignored.  Ties go to the code listed first.
    """
    best: Optional[Typology] = None
    for code in codes:
        typology = lookup(code)
        if typology is not None and (best is None or typology.risk_score > best.risk_score):
            best = typology
    return best
