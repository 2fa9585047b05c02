"""Tests for finding code to fraud typology mapping."""

from fraud_engine.classifier import RiskLevel
from fraud_engine.roi import Complexity, FraudContext, FraudType, ROICalculator
from fraud_engine.typology import FINDING_TYPOLOGIES, lookup, resolve_typology


def test_lookup_known_code():
    typology = lookup("SIGNATURE_INCONSISTENCY")
    assert typology.fraud_type == FraudType.DOCUMENT_FORGED
    assert typology.context == FraudContext.CLAIM
    assert typology.complexity == Complexity.MEDIUM
    assert typology.severity == RiskLevel.HIGH


def test_lookup_normalizes_code():
    assert lookup("  signature_inconsistency ") == lookup("SIGNATURE_INCONSISTENCY")


def test_lookup_unknown_code():
    assert lookup("NOT_A_CODE") is None


def test_resolve_picks_highest_risk():
    typology = resolve_typology(["AMOUNT_ANOMALY", "AI_GENERATED_CONTENT", "VIN_ANOMALY"])
    assert typology.code == "AI_GENERATED_CONTENT"
    assert typology.fraud_type == FraudType.CYBER_FRAUD


def test_resolve_tie_keeps_first_code():
    # Both score 85
    assert resolve_typology(["VIN_ANOMALY", "DIGITAL_PRINT_DETECTED"]).code == "VIN_ANOMALY"
    assert resolve_typology(["DIGITAL_PRINT_DETECTED", "VIN_ANOMALY"]).code == "DIGITAL_PRINT_DETECTED"


def test_resolve_ignores_unknown_codes():
    assert resolve_typology([]) is None
    assert resolve_typology(["UNKNOWN"]) is None
    assert resolve_typology(["UNKNOWN", "ADDRESS_ANOMALY"]).code == "ADDRESS_ANOMALY"


def test_every_typology_is_valuable():
    calc = ROICalculator()
    for typology in FINDING_TYPOLOGIES.values():
        roi = calc.calculate(
            typology.fraud_type, typology.context, "auto", typology.average_amount,
            typology.complexity,
        )
        assert roi.total_cost > 0
