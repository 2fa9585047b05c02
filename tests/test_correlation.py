"""Tests for temporal correlation between a subject's risk entities."""

from datetime import datetime, timedelta, timezone

import pytest

from fraud_engine.correlation import CorrelationDetector, CorrelationType
from fraud_engine.risk import RiskCategory, RiskEntity, RiskRepository, SeverityLevel

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _entity(
    risk_id: str,
    days: float,
    category: RiskCategory = RiskCategory.FRAUD,
    subject_id: str = "SUBJ-1",
) -> RiskEntity:
    created = START + timedelta(days=days)
    return RiskEntity(
        risk_id=risk_id,
        subject_id=subject_id,
        risk_type="fraud",
        category=category,
        level=SeverityLevel.MEDIUM,
        created_at=created,
        updated_at=created,
    )


def _build_detector(*entities: RiskEntity, **kwargs) -> CorrelationDetector:
    repo = RiskRepository()
    for e in entities:
        repo.put(e)
    return CorrelationDetector(repo, **kwargs)


# ── Discovery ────────────────────────────────────────────────────────


def test_fewer_than_two_entities_yields_nothing():
    assert _build_detector().detect("SUBJ-1") == []
    assert _build_detector(_entity("R-1", 0)).detect("SUBJ-1") == []


def test_same_category_within_window():
    detector = _build_detector(_entity("R-1", 0), _entity("R-2", 3.5))
    [correlation] = detector.detect("SUBJ-1")
    assert correlation.primary_id == "R-1"
    assert correlation.correlated_ids == ("R-2",)
    assert correlation.correlation_type == CorrelationType.TEMPORAL
    assert correlation.strength == pytest.approx(0.5)
    assert correlation.confidence == pytest.approx(0.7)
    assert correlation.time_lag_days == 3


def test_strength_has_a_floor():
    detector = _build_detector(_entity("R-1", 0), _entity("R-2", 6.5))
    [correlation] = detector.detect("SUBJ-1")
    assert correlation.strength == pytest.approx(0.3)


def test_exactly_seven_days_is_inside_window():
    detector = _build_detector(_entity("R-1", 0), _entity("R-2", 7))
    assert len(detector.detect("SUBJ-1")) == 1


def test_outside_window_or_different_category():
    detector = _build_detector(
        _entity("R-1", 0),
        _entity("R-2", 7.5),
        _entity("R-3", 1, category=RiskCategory.AML),
    )
    assert detector.detect("SUBJ-1") == []


def test_scoped_to_subject():
    detector = _build_detector(
        _entity("R-1", 0, subject_id="SUBJ-1"),
        _entity("R-2", 1, subject_id="SUBJ-2"),
    )
    assert detector.detect("SUBJ-1") == []
    assert detector.detect("SUBJ-2") == []


def test_every_pair_is_considered():
    detector = _build_detector(
        _entity("R-1", 0), _entity("R-2", 1), _entity("R-3", 2)
    )
    pairs = {(c.primary_id, c.correlated_ids[0]) for c in detector.detect("SUBJ-1")}
    assert pairs == {("R-1", "R-2"), ("R-1", "R-3"), ("R-2", "R-3")}


def test_correlation_is_symmetric():
    detector = _build_detector(
        _entity("R-1", 0), _entity("R-2", 2), _entity("R-3", 20)
    )
    assert detector.correlated_ids("SUBJ-1", "R-1") == ["R-2"]
    assert detector.correlated_ids("SUBJ-1", "R-2") == ["R-1"]
    assert detector.correlated_ids("SUBJ-1", "R-3") == []
    assert len(detector.correlations_for("SUBJ-1", "R-2")) == 1


def test_order_independent_of_insertion():
    a = _build_detector(_entity("R-2", 1), _entity("R-1", 0)).detect("SUBJ-1")
    b = _build_detector(_entity("R-1", 0), _entity("R-2", 1)).detect("SUBJ-1")
    assert a == b


# ── Configuration ────────────────────────────────────────────────────


def test_custom_window():
    detector = _build_detector(_entity("R-1", 0), _entity("R-2", 10), window_days=14)
    [correlation] = detector.detect("SUBJ-1")
    assert correlation.strength == pytest.approx(max(0.3, 1 - 10 / 14))


def test_non_positive_window_rejected():
    with pytest.raises(ValueError):
        _build_detector(window_days=0)


def test_to_dict():
    detector = _build_detector(_entity("R-1", 0), _entity("R-2", 1))
    d = detector.detect("SUBJ-1")[0].to_dict()
    assert d["correlation_type"] == "temporal"
    assert d["correlated_ids"] == ["R-2"]
    assert "fraud" in d["pattern"]
