"""Tests for rule evaluation and signal classification."""

from datetime import datetime, timezone

import pytest

from fraud_engine.catalog import (
    BusinessDistrict,
    CatalogEntry,
    CatalogRepository,
    DetectionRule,
    InvestigationStep,
    Playbook,
    SourceTag,
    SpecializedTeam,
)
from fraud_engine.classifier import (
    GENERIC_CATALOG_ID,
    ClassificationResult,
    DetectionSignal,
    FraudClassifier,
    RiskLevel,
)
from fraud_engine.default_catalog import default_catalog


def _signal(
    source: SourceTag = SourceTag.CYBER,
    context: str = "auto",
    score: float = 90,
    confidence: float = 0.9,
) -> DetectionSignal:
    return DetectionSignal(
        source=source, business_context=context, score=score, confidence=confidence
    )


def _entry(catalog_id: str, threshold: float = 50, sla: float = 24) -> CatalogEntry:
    return CatalogEntry(
        catalog_id=catalog_id,
        name=catalog_id,
        source=SourceTag.BEHAVIORAL,
        districts=(BusinessDistrict.AUTO,),
        fraud_type="fictitious_claim",
        severity_range=(0, 100),
        rules=(
            DetectionRule(
                rule_id=f"{catalog_id}-R",
                name="rule",
                threshold=threshold,
                confidence_required=0.5,
                escalation_score=95,
                assigned_team=SpecializedTeam.BEHAVIOR_ANALYSIS,
            ),
        ),
        playbook=Playbook(
            steps=(
                InvestigationStep(
                    step_order=1,
                    action="Review",
                    required_role=SpecializedTeam.BEHAVIOR_ANALYSIS,
                    estimated_hours=1,
                ),
            ),
            specialized_team=SpecializedTeam.BEHAVIOR_ANALYSIS,
            default_sla_hours=sla,
        ),
    )


def _build_classifier() -> FraudClassifier:
    return FraudClassifier(default_catalog())


# ── Risk level thresholds ────────────────────────────────────────────


def test_risk_level_buckets():
    classifier = _build_classifier()
    assert classifier.risk_level(0) == RiskLevel.LOW
    assert classifier.risk_level(49.9) == RiskLevel.LOW
    assert classifier.risk_level(50) == RiskLevel.MEDIUM
    assert classifier.risk_level(69.9) == RiskLevel.MEDIUM
    assert classifier.risk_level(70) == RiskLevel.HIGH
    assert classifier.risk_level(84.9) == RiskLevel.HIGH
    assert classifier.risk_level(85) == RiskLevel.CRITICAL
    assert classifier.risk_level(100) == RiskLevel.CRITICAL


def test_custom_thresholds():
    classifier = FraudClassifier(
        default_catalog(), thresholds={"medium": 20, "high": 40, "critical": 60}
    )
    assert classifier.risk_level(10) == RiskLevel.LOW
    assert classifier.risk_level(30) == RiskLevel.MEDIUM
    assert classifier.risk_level(50) == RiskLevel.HIGH
    assert classifier.risk_level(60) == RiskLevel.CRITICAL


def test_business_impact_bumped_for_cyber_and_aml():
    classifier = _build_classifier()
    assert classifier.business_impact(60, SourceTag.CYBER) == RiskLevel.HIGH
    assert classifier.business_impact(60, SourceTag.AML) == RiskLevel.HIGH
    assert classifier.business_impact(60, SourceTag.DOCUMENTARY) == RiskLevel.MEDIUM
    assert classifier.business_impact(90, SourceTag.CYBER) == RiskLevel.CRITICAL


# ── Classification ───────────────────────────────────────────────────


def test_cyber_network_scenario():
    result = _build_classifier().classify(_signal(SourceTag.CYBER, "auto", 90, 0.9))
    assert result.catalog_id == "CATALOG-CYBER-001"
    assert [r.rule_id for r in result.triggered_rules] == ["CYBER-001"]
    assert result.confidence == pytest.approx(1.0)
    assert result.risk_level == RiskLevel.CRITICAL
    assert result.escalation_required is True
    assert result.recommended_team == SpecializedTeam.CYBER_FRAUD
    assert result.sla_hours == 24


def test_confidence_capped_at_one():
    result = _build_classifier().classify(_signal(score=95, confidence=0.98))
    assert result.confidence == 1.0


def test_no_rule_triggered_reduces_confidence():
    result = _build_classifier().classify(_signal(score=60, confidence=0.9))
    assert result.catalog_id == "CATALOG-CYBER-001"
    assert result.triggered_rules == ()
    assert result.confidence == pytest.approx(0.72)
    assert result.escalation_required is False


def test_several_rules_raise_confidence():
    result = _build_classifier().classify(
        _signal(SourceTag.DOCUMENTARY, "medical", score=75, confidence=0.8)
    )
    assert result.catalog_id == "CATALOG-DOC-HEALTH-001"
    assert len(result.triggered_rules) == 2
    assert result.confidence == pytest.approx(1.0)
    assert result.district == BusinessDistrict.HEALTH


def test_escalation_requires_triggered_rule_at_score():
    classifier = _build_classifier()
    below = classifier.classify(_signal(SourceTag.DOCUMENTARY, "auto", 79, 0.8))
    at = classifier.classify(_signal(SourceTag.DOCUMENTARY, "auto", 80, 0.8))
    assert not below.escalation_required
    assert at.escalation_required


def test_generic_fallback_when_no_candidate():
    result = _build_classifier().classify(_signal(SourceTag.AML, "travel", 72, 0.8))
    assert result.is_generic
    assert result.catalog_id == GENERIC_CATALOG_ID
    assert result.confidence == pytest.approx(0.4)
    assert result.recommended_team == SpecializedTeam.COMPLIANCE
    assert result.estimated_hours == 24
    assert result.risk_level == RiskLevel.HIGH
    assert result.business_impact == RiskLevel.CRITICAL
    assert result.triggered_rules == ()
    assert result.escalation_required is False


def test_generic_fallback_on_empty_catalog():
    result = FraudClassifier(CatalogRepository()).classify(
        _signal(SourceTag.BEHAVIORAL, "home", 30, 0.5)
    )
    assert result.is_generic
    assert result.recommended_team == SpecializedTeam.BEHAVIOR_ANALYSIS
    assert result.risk_level == RiskLevel.LOW


def test_score_at_least_90_is_critical_for_every_source():
    classifier = _build_classifier()
    for source in SourceTag:
        for score in (90, 95, 100):
            result = classifier.classify(_signal(source, "auto", score, 0.3))
            assert result.risk_level == RiskLevel.CRITICAL


def test_highest_confidence_candidate_wins():
    catalog = CatalogRepository([
        _entry("CAT-A", threshold=80),
        _entry("CAT-B", threshold=40),
    ])
    result = FraudClassifier(catalog).classify(
        _signal(SourceTag.BEHAVIORAL, "auto", 60, 0.7)
    )
    assert result.catalog_id == "CAT-B"


def test_ties_go_to_lowest_catalog_id():
    catalog = CatalogRepository([
        _entry("CAT-C", sla=10),
        _entry("CAT-A", sla=30),
        _entry("CAT-B", sla=20),
    ])
    result = FraudClassifier(catalog).classify(
        _signal(SourceTag.BEHAVIORAL, "auto", 60, 0.7)
    )
    assert result.catalog_id == "CAT-A"
    assert result.sla_hours == 30


def test_classify_is_deterministic():
    classifier = _build_classifier()
    signal = _signal(SourceTag.DOCUMENTARY, "auto", 72.5, 0.66)
    first = classifier.classify(signal)
    for _ in range(10):
        assert classifier.classify(signal) == first
    assert FraudClassifier(default_catalog()).classify(signal) == first


def test_classify_many_preserves_order():
    classifier = _build_classifier()
    signals = [
        _signal(SourceTag.CYBER, "auto", 90, 0.9),
        _signal(SourceTag.AML, "travel", 50, 0.5),
        _signal(SourceTag.BEHAVIORAL, "home", 55, 0.6),
    ]
    results = classifier.classify_many(signals)
    assert [r.catalog_id for r in results] == [
        "CATALOG-CYBER-001",
        GENERIC_CATALOG_ID,
        "CATALOG-BEHAV-001",
    ]


# ── Result helpers ───────────────────────────────────────────────────


def test_sla_deadline():
    result = _build_classifier().classify(_signal())
    detected = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)
    assert result.sla_deadline(detected) == datetime(2024, 3, 2, 8, 0, tzinfo=timezone.utc)


def test_result_to_dict():
    result = _build_classifier().classify(_signal())
    d = result.to_dict()
    assert d["catalog_id"] == "CATALOG-CYBER-001"
    assert d["triggered_rules"] == ["CYBER-001"]
    assert d["risk_level"] == "critical"
    assert d["recommended_team"] == "cyber_fraud_team"
    assert isinstance(result, ClassificationResult)


def test_to_dataframe():
    classifier = _build_classifier()
    frame = classifier.to_dataframe(
        classifier.classify_many([_signal(), _signal(score=40)])
    )
    assert len(frame) == 2
    assert {"catalog_id", "confidence", "risk_level"} <= set(frame.columns)
    assert classifier.to_dataframe([]).empty
