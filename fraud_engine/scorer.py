"""
Composite risk scoring and lifecycle management for risk entities.

Combines four component scores, five signed adjustment factors and four
quality metrics into a final 0-100 score, buckets it into a six-level
severity, and records every change of the final score in the entity's
append-only history.  Also enforces the lifecycle state machine and the
approval gate for high-severity risks.
"""

from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

import numpy as np
import pandas as pd

from fraud_engine.exceptions import ApprovalRequired, InvalidStateTransition
from fraud_engine.risk import (
    AdjustmentFactors,
    ApprovalRecord,
    ComponentScores,
    EvidenceItem,
    LifecycleStatus,
    MitigationAction,
    QualityMetrics,
    RiskCategory,
    RiskEntity,
    Scoring,
    ScoreHistoryEntry,
    SeverityLevel,
)


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


class RiskScorer:
    """Scores risk entities and drives their lifecycle.

    The scorer mutates the entities it is given and holds no state of
    its own.  Callers sharing entities between threads must serialize
    writes per entity (see ``RiskRepository.locked``).
    """

    # Minimum final score for each level; below "low" is VERY_LOW.
    LEVEL_THRESHOLDS: dict[SeverityLevel, float] = {
        SeverityLevel.CRITICAL: 90,
        SeverityLevel.VERY_HIGH: 75,
        SeverityLevel.HIGH: 60,
        SeverityLevel.MEDIUM: 40,
        SeverityLevel.LOW: 20,
    }

    TRANSITIONS: dict[LifecycleStatus, frozenset[LifecycleStatus]] = {
        LifecycleStatus.DETECTED: frozenset(
            {LifecycleStatus.INVESTIGATING, LifecycleStatus.CLOSED}
        ),
        LifecycleStatus.INVESTIGATING: frozenset(
            {
                LifecycleStatus.MITIGATED,
                LifecycleStatus.ACCEPTED,
                LifecycleStatus.CLOSED,
            }
        ),
        LifecycleStatus.MITIGATED: frozenset({LifecycleStatus.CLOSED}),
        LifecycleStatus.ACCEPTED: frozenset({LifecycleStatus.CLOSED}),
        LifecycleStatus.CLOSED: frozenset(),
    }

    APPROVAL_LEVELS: frozenset[SeverityLevel] = frozenset(
        {SeverityLevel.VERY_HIGH, SeverityLevel.CRITICAL}
    )

    # Distribution buckets for reporting, as [low, high) ranges.
    SCORE_BUCKETS: list[tuple[float, float]] = [
        (0, 20),
        (20, 40),
        (40, 60),
        (60, 80),
        (80, 100),
    ]

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """
        Args:
            clock: Returns the current time for history and audit
                timestamps.  Defaults to UTC wall-clock time.
        """
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def compute(
        self,
        components: ComponentScores,
        adjustments: AdjustmentFactors,
        quality: QualityMetrics,
        confidence: Optional[float] = None,
    ) -> Scoring:
        """Compute a scoring block from raw inputs.

        ``base`` is the mean of the component scores;
        ``adjusted = clamp(base * (1 + sum(adjustments)))`` and
        ``final = clamp(adjusted * (0.5 + 0.5 * mean(quality)))``, both
        clamped to ``[0, 100]``.

        Args:
            components: Component scores (0-100).
            adjustments: Signed adjustment factors.
            quality: Quality metrics in ``[0, 1]``.
            confidence: Scoring confidence; defaults to the mean quality.

        Returns:
            A new ``Scoring``.
        """
        base = float(np.mean(components.values()))
        adjusted = clamp(base * (1.0 + adjustments.total))
        final = clamp(adjusted * (0.5 + 0.5 * quality.mean))
        if confidence is None:
            confidence = quality.mean
        return Scoring(
            base_score=base,
            adjusted_score=adjusted,
            final_score=final,
            confidence=clamp(confidence, 0.0, 1.0),
            components=components,
            adjustments=adjustments,
            quality=quality,
        )

    def level_for(self, score: float) -> SeverityLevel:
        """Bucket a final score into a severity level."""
        for level, minimum in self.LEVEL_THRESHOLDS.items():
            if score >= minimum:
                return level
        return SeverityLevel.VERY_LOW

    def apply_score(
        self,
        entity: RiskEntity,
        components: ComponentScores,
        adjustments: AdjustmentFactors,
        quality: QualityMetrics,
        actor: str,
        reason: str = "Score update",
        confidence: Optional[float] = None,
    ) -> RiskEntity:
        """Rescore an entity.

        The scoring block is replaced.  When the final score differs
        from the stored one, the level is re-bucketed and exactly one
        history entry is appended; otherwise the history is untouched.

        Args:
            entity: Entity to rescore (mutated in place).
            components: Component scores.
            adjustments: Adjustment factors.
            quality: Quality metrics.
            actor: Who or what triggered the rescoring.
            reason: Free-text reason stored in the history entry.
            confidence: Optional explicit scoring confidence.

        Returns:
            The same entity, updated.

        Raises:
            InvalidStateTransition: If the entity is closed.  The entity
                is left unchanged.
        """
        self._assert_open(entity)
        scoring = self.compute(components, adjustments, quality, confidence)
        now = self._clock()

        previous = entity.scoring.final_score
        entity.scoring = scoring
        if not math.isclose(previous, scoring.final_score, abs_tol=1e-9):
            entity.level = self.level_for(scoring.final_score)
            entity._append_history(
                ScoreHistoryEntry(
                    timestamp=now,
                    score=scoring.final_score,
                    level=entity.level,
                    reason=reason,
                    actor=actor,
                )
            )
        self._touch(entity, now)
        return entity

    def create_entity(
        self,
        subject_id: str,
        risk_type: str,
        category: RiskCategory,
        components: ComponentScores,
        adjustments: Optional[AdjustmentFactors] = None,
        quality: Optional[QualityMetrics] = None,
        actor: str = "system",
        risk_id: Optional[str] = None,
        title: str = "",
        requires_approval: Optional[bool] = None,
        created_at: Optional[datetime] = None,
    ) -> RiskEntity:
        """Create a newly detected risk entity with its first history entry.

        ``requires_approval`` defaults to ``True`` for critical risks.
        A naive ``created_at`` is taken to be UTC.
        """
        scoring = self.compute(
            components,
            adjustments or AdjustmentFactors(),
            quality or QualityMetrics(),
        )
        level = self.level_for(scoring.final_score)
        timestamp = created_at or self._clock()
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        if requires_approval is None:
            requires_approval = level == SeverityLevel.CRITICAL

        entity = RiskEntity(
            risk_id=risk_id or f"RISK-{uuid.uuid4().hex[:12].upper()}",
            subject_id=subject_id,
            risk_type=risk_type,
            category=category,
            level=level,
            scoring=scoring,
            requires_approval=requires_approval,
            title=title,
            created_at=timestamp,
            updated_at=timestamp,
            created_by=actor,
        )
        entity._append_history(
            ScoreHistoryEntry(
                timestamp=timestamp,
                score=scoring.final_score,
                level=level,
                reason="Initial detection",
                actor=actor,
            )
        )
        return entity

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def can_transition(
        self, current: LifecycleStatus, target: LifecycleStatus
    ) -> bool:
        return target in self.TRANSITIONS[current]

    def transition(
        self,
        entity: RiskEntity,
        target: LifecycleStatus,
        actor: str,
        reason: str = "",
    ) -> RiskEntity:
        """Move an entity to ``target``.

        Raises:
            InvalidStateTransition: If the move is not allowed from the
                current status.
            ApprovalRequired: If a very-high or critical entity that
                requires approval leaves ``detected`` unapproved.
        """
        current = entity.status
        if not self.can_transition(current, target):
            raise InvalidStateTransition(entity.risk_id, current.value, target.value)
        if (
            current == LifecycleStatus.DETECTED
            and entity.requires_approval
            and entity.level in self.APPROVAL_LEVELS
            and entity.approval is None
        ):
            raise ApprovalRequired(entity.risk_id, current.value, target.value)

        now = self._clock()
        entity.status = target
        if target == LifecycleStatus.CLOSED:
            entity.closed_by = actor
            entity.closed_at = now
            entity.closure_reason = reason
        self._touch(entity, now)
        return entity

    def approve(self, entity: RiskEntity, approver: str) -> RiskEntity:
        """Record an explicit approval on an entity."""
        self._assert_open(entity)
        now = self._clock()
        entity.approval = ApprovalRecord(approver=approver, timestamp=now)
        self._touch(entity, now)
        return entity

    def add_evidence(self, entity: RiskEntity, item: EvidenceItem) -> RiskEntity:
        self._assert_open(entity)
        entity.evidence.append(item)
        self._touch(entity, self._clock())
        return entity

    def add_mitigation(
        self, entity: RiskEntity, action: MitigationAction
    ) -> RiskEntity:
        self._assert_open(entity)
        entity.mitigations.append(action)
        self._touch(entity, self._clock())
        return entity

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def statistics(self, entities: Iterable[RiskEntity]) -> dict:
        """Summary statistics over a set of entities."""
        entities = list(entities)
        if not entities:
            return {"total": 0}

        scores = np.array([e.final_score for e in entities], dtype=np.float64)
        by_level = {level.value: 0 for level in SeverityLevel}
        by_status = {status.value: 0 for status in LifecycleStatus}
        by_category: dict[str, int] = {}
        for e in entities:
            by_level[e.level.value] += 1
            by_status[e.status.value] += 1
            by_category[e.category.value] = by_category.get(e.category.value, 0) + 1

        distribution = []
        for low, high in self.SCORE_BUCKETS:
            if high >= 100:
                count = int(np.sum(scores >= low))
            else:
                count = int(np.sum((scores >= low) & (scores < high)))
            distribution.append({"min": low, "max": high, "count": count})

        return {
            "total": len(entities),
            "mean_score": float(np.mean(scores)),
            "median_score": float(np.median(scores)),
            "p95_score": float(np.percentile(scores, 95)),
            "max_score": float(np.max(scores)),
            "by_level": by_level,
            "by_status": by_status,
            "by_category": by_category,
            "score_distribution": distribution,
            "pending_approval": sum(
                1
                for e in entities
                if e.requires_approval
                and e.approval is None
                and e.status == LifecycleStatus.DETECTED
            ),
        }

    def generate_report(self, entities: Iterable[RiskEntity]) -> str:
        """Generate a text summary report of risk entities.

        Returns:
            Multi-line report string.
        """
        entities = list(entities)
        if not entities:
            return "No risk entities."

        stats = self.statistics(entities)
        lines: list[str] = [
            "Risk Portfolio Report",
            "=" * 60,
            f"Generated: {self._clock().isoformat()}",
            f"Total Risks: {stats['total']}",
            "",
            "Status Breakdown:",
        ]
        for status, count in stats["by_status"].items():
            if count:
                lines.append(f"  {status:20s} {count:>5d}")

        lines.append("")
        lines.append("Severity Breakdown:")
        for level, count in stats["by_level"].items():
            if count:
                lines.append(f"  {level:20s} {count:>5d}")

        lines.append("")
        lines.append("Score Statistics:")
        lines.append(f"  Mean:   {stats['mean_score']:.2f}")
        lines.append(f"  Median: {stats['median_score']:.2f}")
        lines.append(f"  P95:    {stats['p95_score']:.2f}")
        lines.append(f"  Max:    {stats['max_score']:.2f}")
        lines.append("")
        lines.append(f"Awaiting approval: {stats['pending_approval']}")

        lines.append("")
        lines.append("Top 10 Highest Risks:")
        lines.append("-" * 60)
        top = sorted(entities, key=lambda e: e.final_score, reverse=True)[:10]
        for e in top:
            lines.append(
                f"  [{e.risk_id}] {e.subject_id} "
                f"| score={e.final_score:.2f} "
                f"| level={e.level.value} "
                f"| status={e.status.value}"
            )
        return "\n".join(lines)

    @staticmethod
    def history_frame(entity: RiskEntity) -> pd.DataFrame:
        """Export an entity's score history as a DataFrame."""
        frame = pd.DataFrame([h.to_dict() for h in entity.history])
        if not frame.empty:
            frame["timestamp"] = pd.to_datetime(frame["timestamp"])
        return frame

    @staticmethod
    def to_dataframe(entities: Iterable[RiskEntity]) -> pd.DataFrame:
        """Export entities as a DataFrame."""
        rows = [e.to_dict() for e in entities]
        if not rows:
            return pd.DataFrame()
        return pd.DataFrame(rows)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _assert_open(entity: RiskEntity) -> None:
        if entity.is_closed:
            raise InvalidStateTransition(entity.risk_id, entity.status.value)

    @staticmethod
    def _touch(entity: RiskEntity, now: datetime) -> None:
        entity.updated_at = now
        entity.version += 1
