"""Tests for composite risk scoring and the risk lifecycle."""

import copy
import itertools
from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from fraud_engine.exceptions import ApprovalRequired, InvalidStateTransition
from fraud_engine.risk import (
    AdjustmentFactors,
    ComponentScores,
    EvidenceItem,
    LifecycleStatus,
    MitigationAction,
    QualityMetrics,
    RiskCategory,
    SeverityLevel,
)
from fraud_engine.scorer import RiskScorer, clamp

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _clock():
    """Clock advancing one minute per call."""
    ticks = itertools.count()
    return lambda: START + timedelta(minutes=next(ticks))


def _build_scorer() -> RiskScorer:
    return RiskScorer(clock=_clock())


def _components(value: float) -> ComponentScores:
    return ComponentScores(value, value, value, value)


def _entity(scorer: RiskScorer, score: float = 50, **kwargs):
    return scorer.create_entity(
        subject_id="SUBJ-1",
        risk_type="document_forged",
        category=RiskCategory.FRAUD,
        components=_components(score),
        risk_id="RISK-1",
        **kwargs,
    )


# ── Score computation ────────────────────────────────────────────────


def test_clamp():
    assert clamp(-5) == 0
    assert clamp(105) == 100
    assert clamp(42.5) == 42.5
    assert clamp(2, 0, 1) == 1


def test_compute_formula():
    scoring = _build_scorer().compute(
        ComponentScores(historical=50, behavioral=60, contextual=70, predictive=80),
        AdjustmentFactors(volume_weight=0.2),
        QualityMetrics(),
    )
    assert scoring.base_score == pytest.approx(65)
    assert scoring.adjusted_score == pytest.approx(78)
    assert scoring.final_score == pytest.approx(78)
    assert scoring.confidence == pytest.approx(1.0)


def test_compute_with_quality_and_adjustments():
    scoring = _build_scorer().compute(
        ComponentScores(historical=70, behavioral=85, contextual=60, predictive=75),
        AdjustmentFactors(volume_weight=0.1, complexity_bonus=0.05),
        QualityMetrics(data_completeness=0.9, data_freshness=0.8),
    )
    assert scoring.base_score == pytest.approx(72.5)
    assert scoring.adjusted_score == pytest.approx(83.375)
    assert scoring.final_score == pytest.approx(83.375 * 0.9625)
    assert scoring.confidence == pytest.approx(0.925)


def test_compute_clamps_adjusted_and_final():
    scorer = _build_scorer()
    high = scorer.compute(_components(100), AdjustmentFactors(seasonality=1.0), QualityMetrics())
    assert high.adjusted_score == 100
    assert high.final_score == 100

    low = scorer.compute(_components(80), AdjustmentFactors(time_decay=-2.0), QualityMetrics())
    assert low.adjusted_score == 0
    assert low.final_score == 0


def test_final_score_always_in_range():
    scorer = _build_scorer()
    rng = np.random.default_rng(3)
    for _ in range(200):
        scoring = scorer.compute(
            ComponentScores(*rng.uniform(0, 100, size=4)),
            AdjustmentFactors(*rng.uniform(-1.5, 1.5, size=5)),
            QualityMetrics(*rng.uniform(0, 1, size=4)),
        )
        assert 0 <= scoring.final_score <= 100
        assert 0 <= scoring.adjusted_score <= 100


def test_quality_metrics_must_be_in_unit_interval():
    with pytest.raises(ValueError):
        QualityMetrics(data_completeness=1.2)
    with pytest.raises(ValueError):
        QualityMetrics(cross_validation=-0.1)


def test_explicit_confidence_is_clamped():
    scoring = _build_scorer().compute(
        _components(50), AdjustmentFactors(), QualityMetrics(), confidence=1.4
    )
    assert scoring.confidence == 1.0


# ── Level bucketing ──────────────────────────────────────────────────


@pytest.mark.parametrize(
    "score,level",
    [
        (0, SeverityLevel.VERY_LOW),
        (19.99, SeverityLevel.VERY_LOW),
        (20, SeverityLevel.LOW),
        (39.9, SeverityLevel.LOW),
        (40, SeverityLevel.MEDIUM),
        (59.9, SeverityLevel.MEDIUM),
        (60, SeverityLevel.HIGH),
        (74.9, SeverityLevel.HIGH),
        (75, SeverityLevel.VERY_HIGH),
        (89.9, SeverityLevel.VERY_HIGH),
        (90, SeverityLevel.CRITICAL),
        (100, SeverityLevel.CRITICAL),
    ],
)
def test_level_for(score, level):
    assert _build_scorer().level_for(score) == level


# ── Entity creation ──────────────────────────────────────────────────


def test_create_entity_records_initial_history():
    entity = _entity(_build_scorer(), score=65)
    assert entity.status == LifecycleStatus.DETECTED
    assert entity.level == SeverityLevel.HIGH
    assert entity.version == 1
    assert len(entity.history) == 1
    assert entity.history[0].reason == "Initial detection"
    assert entity.history[0].score == pytest.approx(65)


def test_create_entity_requires_approval_only_when_critical():
    scorer = _build_scorer()
    assert _entity(scorer, score=95).requires_approval
    assert not _entity(scorer, score=80).requires_approval
    assert _entity(scorer, score=80, requires_approval=True).requires_approval


def test_create_entity_treats_naive_timestamp_as_utc():
    entity = _entity(_build_scorer(), created_at=datetime(2024, 3, 1, 12, 0))
    assert entity.created_at == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
    assert entity.history[0].timestamp.tzinfo is not None


def test_create_entity_generates_id():
    entity = _build_scorer().create_entity(
        "SUBJ-1", "fraud", RiskCategory.FRAUD, _components(10)
    )
    assert entity.risk_id.startswith("RISK-")


# ── apply_score ──────────────────────────────────────────────────────


def test_apply_score_appends_one_entry_when_score_changes():
    scorer = _build_scorer()
    entity = _entity(scorer, score=50)

    scorer.apply_score(
        entity, _components(80), AdjustmentFactors(), QualityMetrics(), actor="analyst",
        reason="New evidence",
    )
    assert len(entity.history) == 2
    assert entity.final_score == pytest.approx(80)
    assert entity.level == SeverityLevel.VERY_HIGH
    last = entity.history[-1]
    assert last.actor == "analyst"
    assert last.reason == "New evidence"
    assert last.level == SeverityLevel.VERY_HIGH
    assert last.timestamp > entity.history[0].timestamp


def test_apply_score_no_entry_when_score_unchanged():
    scorer = _build_scorer()
    entity = _entity(scorer, score=50)
    version = entity.version

    # Different components with the same mean
    scorer.apply_score(
        entity,
        ComponentScores(40, 60, 50, 50),
        AdjustmentFactors(),
        QualityMetrics(),
        actor="analyst",
    )
    assert len(entity.history) == 1
    assert entity.scoring.components == ComponentScores(40, 60, 50, 50)
    assert entity.version == version + 1


def test_history_length_never_decreases():
    scorer = _build_scorer()
    entity = _entity(scorer, score=50)
    lengths = [len(entity.history)]
    for value in (50, 60, 60, 30, 30, 95, 10):
        scorer.apply_score(
            entity, _components(value), AdjustmentFactors(), QualityMetrics(), actor="x"
        )
        lengths.append(len(entity.history))
    assert lengths == sorted(lengths)
    assert lengths[-1] == 1 + 4


def test_apply_score_on_closed_entity_is_rejected_without_change():
    scorer = _build_scorer()
    entity = _entity(scorer, score=50)
    scorer.transition(entity, LifecycleStatus.CLOSED, actor="lead", reason="duplicate")
    snapshot = copy.deepcopy(entity)

    with pytest.raises(InvalidStateTransition):
        scorer.apply_score(
            entity, _components(99), AdjustmentFactors(), QualityMetrics(), actor="x"
        )
    assert entity == snapshot
    assert entity.history == snapshot.history


# ── Lifecycle ────────────────────────────────────────────────────────


def test_allowed_transitions():
    scorer = _build_scorer()
    entity = _entity(scorer, score=50)
    scorer.transition(entity, LifecycleStatus.INVESTIGATING, actor="lead")
    scorer.transition(entity, LifecycleStatus.MITIGATED, actor="lead")
    scorer.transition(entity, LifecycleStatus.CLOSED, actor="lead", reason="resolved")
    assert entity.is_closed
    assert entity.closed_by == "lead"
    assert entity.closure_reason == "resolved"
    assert entity.closed_at is not None


def test_invalid_transitions():
    scorer = _build_scorer()
    entity = _entity(scorer, score=50)
    with pytest.raises(InvalidStateTransition):
        scorer.transition(entity, LifecycleStatus.MITIGATED, actor="lead")

    scorer.transition(entity, LifecycleStatus.CLOSED, actor="lead")
    for target in LifecycleStatus:
        with pytest.raises(InvalidStateTransition):
            scorer.transition(entity, target, actor="lead")


def test_any_open_state_can_close():
    scorer = _build_scorer()
    for status in (
        LifecycleStatus.DETECTED,
        LifecycleStatus.INVESTIGATING,
        LifecycleStatus.MITIGATED,
        LifecycleStatus.ACCEPTED,
    ):
        assert scorer.can_transition(status, LifecycleStatus.CLOSED)
    assert not scorer.can_transition(LifecycleStatus.CLOSED, LifecycleStatus.CLOSED)


def test_approval_gate_for_high_severity():
    scorer = _build_scorer()
    entity = _entity(scorer, score=95)
    assert entity.level == SeverityLevel.CRITICAL

    with pytest.raises(ApprovalRequired):
        scorer.transition(entity, LifecycleStatus.INVESTIGATING, actor="lead")
    assert entity.status == LifecycleStatus.DETECTED

    scorer.approve(entity, approver="manager")
    assert entity.approval.approver == "manager"
    scorer.transition(entity, LifecycleStatus.INVESTIGATING, actor="lead")
    assert entity.status == LifecycleStatus.INVESTIGATING


def test_approval_required_is_a_state_error():
    scorer = _build_scorer()
    entity = _entity(scorer, score=80, requires_approval=True)
    with pytest.raises(InvalidStateTransition):
        scorer.transition(entity, LifecycleStatus.CLOSED, actor="lead")


def test_no_gate_without_requires_approval_flag():
    scorer = _build_scorer()
    entity = _entity(scorer, score=95, requires_approval=False)
    scorer.transition(entity, LifecycleStatus.INVESTIGATING, actor="lead")
    assert entity.status == LifecycleStatus.INVESTIGATING


def test_no_gate_below_very_high():
    scorer = _build_scorer()
    entity = _entity(scorer, score=70, requires_approval=True)
    scorer.transition(entity, LifecycleStatus.INVESTIGATING, actor="lead")
    assert entity.status == LifecycleStatus.INVESTIGATING


def test_evidence_and_mitigation_bump_version():
    scorer = _build_scorer()
    entity = _entity(scorer, score=50)
    scorer.add_evidence(entity, EvidenceItem("EV-1", "document", "Scanned invoice"))
    scorer.add_mitigation(entity, MitigationAction("Suspend payment", priority="high"))
    assert len(entity.evidence) == 1
    assert len(entity.mitigations) == 1
    assert entity.version == 3

    scorer.transition(entity, LifecycleStatus.CLOSED, actor="lead")
    with pytest.raises(InvalidStateTransition):
        scorer.add_evidence(entity, EvidenceItem("EV-2", "document"))


# ── Reporting ────────────────────────────────────────────────────────


def test_statistics():
    scorer = _build_scorer()
    entities = [
        scorer.create_entity("S", "t", RiskCategory.FRAUD, _components(v), risk_id=f"R-{v}")
        for v in (10, 30, 50, 70, 95)
    ]
    stats = scorer.statistics(entities)
    assert stats["total"] == 5
    assert stats["mean_score"] == pytest.approx(51)
    assert stats["median_score"] == pytest.approx(50)
    assert stats["max_score"] == pytest.approx(95)
    assert stats["by_level"]["critical"] == 1
    assert stats["by_level"]["very_low"] == 1
    assert stats["by_status"]["detected"] == 5
    assert stats["by_category"] == {"fraud": 5}
    assert [b["count"] for b in stats["score_distribution"]] == [1, 1, 1, 1, 1]
    assert stats["pending_approval"] == 1


def test_statistics_empty():
    assert _build_scorer().statistics([]) == {"total": 0}


def test_generate_report():
    scorer = _build_scorer()
    entity = _entity(scorer, score=70)
    report = scorer.generate_report([entity])
    assert "Risk Portfolio Report" in report
    assert "RISK-1" in report
    assert scorer.generate_report([]) == "No risk entities."


def test_history_frame():
    scorer = _build_scorer()
    entity = _entity(scorer, score=50)
    scorer.apply_score(entity, _components(70), AdjustmentFactors(), QualityMetrics(), actor="x")
    frame = scorer.history_frame(entity)
    assert list(frame["score"]) == pytest.approx([50, 70])
    assert list(frame["level"]) == ["medium", "high"]


def test_to_dataframe():
    scorer = _build_scorer()
    frame = scorer.to_dataframe([_entity(scorer, score=50)])
    assert frame.loc[0, "risk_id"] == "RISK-1"
    assert scorer.to_dataframe([]).empty
