"""
Classification performance against analyst outcomes.

Once investigations conclude, each classified detection is either
confirmed as fraud or dismissed.  Comparing those outcomes with what
the classifier predicted yields precision/recall style metrics for the
engine as a whole and rolling performance metrics for each catalog
entry.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

import numpy as np
from sklearn.metrics import (
    accuracy_score,
    classification_report,
    confusion_matrix,
    f1_score,
    precision_score,
    recall_score,
)

from fraud_engine.catalog import CatalogEntry, CatalogRepository, PerformanceMetrics
from fraud_engine.classifier import ClassificationResult


@dataclass(frozen=True)
class InvestigationOutcome:
    """Analyst verdict on one classified detection."""

    classification: ClassificationResult
    confirmed_fraud: bool
    investigation_hours: Optional[float] = None
    cost: Optional[float] = None

    @property
    def predicted_fraud(self) -> bool:
        """The classifier's call: a typology matched with a fired rule."""
        return (
            not self.classification.is_generic
            and bool(self.classification.triggered_rules)
        )


@dataclass
class EvaluationMetrics:
    """Container for classification evaluation metrics."""

    n_outcomes: int = 0
    accuracy: float = 0.0
    precision: float = 0.0
    recall: float = 0.0
    f1: float = 0.0
    confusion_matrix: Optional[np.ndarray] = None
    classification_report: str = ""
    per_catalog: dict[str, PerformanceMetrics] = field(default_factory=dict)

    def summary(self) -> str:
        """Return a human-readable summary."""
        lines = [
            "Classification Performance",
            "=" * 40,
            f"Outcomes:  {self.n_outcomes}",
            f"Accuracy:  {self.accuracy:.4f}",
            f"Precision: {self.precision:.4f}",
            f"Recall:    {self.recall:.4f}",
            f"F1 Score:  {self.f1:.4f}",
        ]
        if self.per_catalog:
            lines.append("")
            lines.append("Per catalog entry:")
            for catalog_id, metrics in sorted(self.per_catalog.items()):
                lines.append(
                    f"  {catalog_id:28s} success={metrics.success_rate:.2%} "
                    f"fp={metrics.false_positive_rate:.2%} "
                    f"avg_hours={metrics.average_duration_hours:.1f}"
                )
        lines.append("")
        lines.append(self.classification_report)
        return "\n".join(lines)


class PerformanceEvaluator:
    """Evaluates classifications and rolls catalog metrics forward.

    New observations are blended with an entry's current metrics as if
    the current metrics summarised ``prior_weight`` earlier outcomes.
    """

    def __init__(self, prior_weight: float = 20.0) -> None:
        """
        Args:
            prior_weight: Pseudo-count given to the existing metrics of
                a catalog entry.  ``0`` replaces them outright.
        """
        if prior_weight < 0:
            raise ValueError("prior_weight must be non-negative")
        self._prior_weight = prior_weight

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def evaluate(
        self,
        outcomes: Iterable[InvestigationOutcome],
        catalog: Optional[CatalogRepository] = None,
    ) -> EvaluationMetrics:
        """Score predictions against verdicts.

        Args:
            outcomes: Concluded investigations.
            catalog: When given, per-entry rolled metrics are included.

        Returns:
            ``EvaluationMetrics`` for the batch.

        Raises:
            ValueError: If ``outcomes`` is empty.
        """
        outcomes = list(outcomes)
        if not outcomes:
            raise ValueError("No outcomes to evaluate")

        y_true = np.array([int(o.confirmed_fraud) for o in outcomes])
        y_pred = np.array([int(o.predicted_fraud) for o in outcomes])

        metrics = EvaluationMetrics(
            n_outcomes=len(outcomes),
            accuracy=float(accuracy_score(y_true, y_pred)),
            precision=float(precision_score(y_true, y_pred, zero_division=0)),
            recall=float(recall_score(y_true, y_pred, zero_division=0)),
            f1=float(f1_score(y_true, y_pred, zero_division=0)),
            confusion_matrix=confusion_matrix(y_true, y_pred, labels=[0, 1]),
            classification_report=classification_report(
                y_true,
                y_pred,
                labels=[0, 1],
                target_names=["Dismissed", "Fraud"],
                zero_division=0,
            ),
        )

        if catalog is not None:
            for catalog_id, group in self._group_by_catalog(outcomes).items():
                entry = catalog.get(catalog_id)
                if entry is not None:
                    metrics.per_catalog[catalog_id] = self.rolled_metrics(entry, group)
        return metrics

    def rolled_metrics(
        self, entry: CatalogEntry, outcomes: list[InvestigationOutcome]
    ) -> PerformanceMetrics:
        """Blend an entry's metrics with new outcomes classified under it."""
        current = entry.performance
        if not outcomes:
            return current

        n = len(outcomes)
        confirmed = np.array([o.confirmed_fraud for o in outcomes], dtype=bool)
        success_rate = float(confirmed.mean())
        false_positive_rate = 1.0 - success_rate

        hours = [o.investigation_hours for o in outcomes if o.investigation_hours is not None]
        costs = [o.cost for o in outcomes if o.cost is not None]

        return replace(
            current,
            success_rate=self._blend(current.success_rate, success_rate, n),
            false_positive_rate=self._blend(
                current.false_positive_rate, false_positive_rate, n
            ),
            average_duration_hours=(
                self._blend(current.average_duration_hours, float(np.mean(hours)), len(hours))
                if hours
                else current.average_duration_hours
            ),
            cost_per_investigation=(
                self._blend(current.cost_per_investigation, float(np.mean(costs)), len(costs))
                if costs
                else current.cost_per_investigation
            ),
        )

    def apply(
        self,
        catalog: CatalogRepository,
        outcomes: Iterable[InvestigationOutcome],
    ) -> list[CatalogEntry]:
        """Write rolled metrics back into ``catalog``.

        Returns:
            The updated entries.
        """
        updated: list[CatalogEntry] = []
        for catalog_id, group in self._group_by_catalog(list(outcomes)).items():
            entry = catalog.get(catalog_id)
            if entry is None:
                continue
            updated.append(replace(entry, performance=self.rolled_metrics(entry, group)))
        catalog.put_many(updated)
        return updated

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _blend(self, prior: float, observed: float, n: int) -> float:
        return (prior * self._prior_weight + observed * n) / (self._prior_weight + n)

    @staticmethod
    def _group_by_catalog(
        outcomes: list[InvestigationOutcome],
    ) -> dict[str, list[InvestigationOutcome]]:
        groups: dict[str, list[InvestigationOutcome]] = {}
        for o in outcomes:
            if o.classification.is_generic:
                continue
            groups.setdefault(o.classification.catalog_id, []).append(o)
        return groups
