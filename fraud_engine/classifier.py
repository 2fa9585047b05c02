"""
Rule evaluation and classification of detection signals.

Matches an incoming signal against the fraud catalog, fires the
detection rules of every candidate typology and keeps the most
confident match.  Classification is total: a signal that matches no
typology yields a generic result rather than an error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Iterable, Optional

import pandas as pd

from fraud_engine.catalog import (
    BusinessDistrict,
    CatalogEntry,
    CatalogRepository,
    DetectionRule,
    SourceTag,
    SpecializedTeam,
    map_business_context,
)


GENERIC_CATALOG_ID = "GENERIC"


class RiskLevel(str, Enum):
    """Four-level risk taxonomy of a classified detection.

    Not interchangeable with the six-level ``SeverityLevel`` used for
    risk entities.
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    def bumped(self) -> "RiskLevel":
        """Return the next level up, saturating at CRITICAL."""
        order = list(RiskLevel)
        return order[min(len(order) - 1, order.index(self) + 1)]


@dataclass(frozen=True)
class DetectionSignal:
    """Opaque detection produced by an upstream analysis pipeline."""

    source: SourceTag
    business_context: str
    score: float
    confidence: float
    finding_codes: tuple[str, ...] = ()
    raw_payload: dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying one detection signal."""

    catalog_id: str
    confidence: float
    score: float
    triggered_rules: tuple[DetectionRule, ...]
    risk_level: RiskLevel
    recommended_team: SpecializedTeam
    estimated_hours: float
    business_impact: RiskLevel
    escalation_required: bool
    district: BusinessDistrict
    sla_hours: float

    @property
    def is_generic(self) -> bool:
        return self.catalog_id == GENERIC_CATALOG_ID

    def sla_deadline(self, detected_at: datetime) -> datetime:
        """Target resolution time for a detection raised at ``detected_at``."""
        return detected_at + timedelta(hours=self.sla_hours)

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "catalog_id": self.catalog_id,
            "confidence": round(self.confidence, 4),
            "score": self.score,
            "triggered_rules": [r.rule_id for r in self.triggered_rules],
            "risk_level": self.risk_level.value,
            "recommended_team": self.recommended_team.value,
            "estimated_hours": self.estimated_hours,
            "business_impact": self.business_impact.value,
            "escalation_required": self.escalation_required,
            "district": self.district.value,
            "sla_hours": self.sla_hours,
        }


class FraudClassifier:
    """Classifies detection signals against a catalog repository.

    The classifier holds no mutable state of its own; it is safe to
    share between threads.
    """

    # Minimum score for each level; below "medium" is LOW.
    RISK_THRESHOLDS: dict[str, float] = {
        "medium": 50,
        "high": 70,
        "critical": 85,
    }

    DEFAULT_TEAMS: dict[SourceTag, SpecializedTeam] = {
        SourceTag.CYBER: SpecializedTeam.CYBER_FRAUD,
        SourceTag.AML: SpecializedTeam.COMPLIANCE,
        SourceTag.DOCUMENTARY: SpecializedTeam.FRAUD,
        SourceTag.BEHAVIORAL: SpecializedTeam.BEHAVIOR_ANALYSIS,
    }

    HIGH_IMPACT_SOURCES: frozenset[SourceTag] = frozenset(
        {SourceTag.CYBER, SourceTag.AML}
    )

    GENERIC_HOURS: float = 24
    GENERIC_CONFIDENCE_FACTOR: float = 0.5
    UNMATCHED_CONFIDENCE_FACTOR: float = 0.8
    CONFIDENCE_PER_RULE: float = 0.1

    def __init__(
        self,
        catalog: CatalogRepository,
        thresholds: Optional[dict[str, float]] = None,
    ) -> None:
        """
        Args:
            catalog: Repository the candidate typologies are read from.
            thresholds: Custom risk-level thresholds mapping
                ``{level: min_score}`` for ``medium``, ``high`` and
                ``critical``.
        """
        self._catalog = catalog
        self._thresholds = thresholds or self.RISK_THRESHOLDS

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def classify(self, signal: DetectionSignal) -> ClassificationResult:
        """Classify a single detection signal.

        Args:
            signal: The detection to classify.

        Returns:
            ``ClassificationResult`` for the best matching typology, or a
            generic result when no typology applies.
        """
        district = map_business_context(signal.business_context)
        candidates = self._catalog.find_applicable(signal.source, district)
        if not candidates:
            return self._generic_result(signal, district)

        best: Optional[ClassificationResult] = None
        # Candidates arrive ordered by catalog id, and only a strictly
        # higher confidence replaces the current best.
        for entry in candidates:
            result = self._evaluate_entry(entry, signal, district)
            if best is None or result.confidence > best.confidence:
                best = result
        return best

    def classify_many(
        self, signals: Iterable[DetectionSignal]
    ) -> list[ClassificationResult]:
        """Classify a batch of signals, preserving order."""
        return [self.classify(s) for s in signals]

    def risk_level(self, score: float) -> RiskLevel:
        """Map an anomaly score (0-100) to a risk level."""
        if score >= self._thresholds.get("critical", 85):
            return RiskLevel.CRITICAL
        if score >= self._thresholds.get("high", 70):
            return RiskLevel.HIGH
        if score >= self._thresholds.get("medium", 50):
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def business_impact(self, score: float, source: SourceTag) -> RiskLevel:
        """Risk level, one step higher for cyber and AML sources."""
        level = self.risk_level(score)
        if source in self.HIGH_IMPACT_SOURCES:
            return level.bumped()
        return level

    @staticmethod
    def to_dataframe(results: list[ClassificationResult]) -> pd.DataFrame:
        """Export classification results as a DataFrame."""
        if not results:
            return pd.DataFrame()
        return pd.DataFrame([r.to_dict() for r in results])

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _evaluate_entry(
        self,
        entry: CatalogEntry,
        signal: DetectionSignal,
        district: BusinessDistrict,
    ) -> ClassificationResult:
        triggered = tuple(
            r for r in entry.rules if r.is_triggered(signal.score, signal.confidence)
        )
        if triggered:
            confidence = min(
                1.0, signal.confidence + self.CONFIDENCE_PER_RULE * len(triggered)
            )
        else:
            confidence = signal.confidence * self.UNMATCHED_CONFIDENCE_FACTOR

        return ClassificationResult(
            catalog_id=entry.catalog_id,
            confidence=confidence,
            score=signal.score,
            triggered_rules=triggered,
            risk_level=self.risk_level(signal.score),
            recommended_team=entry.playbook.specialized_team,
            estimated_hours=entry.playbook.default_sla_hours,
            business_impact=self.business_impact(signal.score, signal.source),
            escalation_required=any(r.escalates(signal.score) for r in triggered),
            district=district,
            sla_hours=entry.playbook.default_sla_hours,
        )

    def _generic_result(
        self, signal: DetectionSignal, district: BusinessDistrict
    ) -> ClassificationResult:
        return ClassificationResult(
            catalog_id=GENERIC_CATALOG_ID,
            confidence=signal.confidence * self.GENERIC_CONFIDENCE_FACTOR,
            score=signal.score,
            triggered_rules=(),
            risk_level=self.risk_level(signal.score),
            recommended_team=self.DEFAULT_TEAMS[signal.source],
            estimated_hours=self.GENERIC_HOURS,
            business_impact=self.business_impact(signal.score, signal.source),
            escalation_required=False,
            district=district,
            sla_hours=self.GENERIC_HOURS,
        )
