"""
Correlation discovery between the risk entities of one subject.

Two risks of the same category opened within a short window of each
other are reported as temporally correlated.  Discovery is scoped to a
single subject and runs over every unordered pair, so cost grows with
the square of that subject's entity count; subjects with very many
entities are better served by indexing on ``(category, time bucket)``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from itertools import combinations
from typing import Optional

from fraud_engine.risk import RiskEntity, RiskRepository


class CorrelationType(str, Enum):
    TEMPORAL = "temporal"
    CATEGORICAL = "categorical"
    NETWORK = "network"


@dataclass(frozen=True)
class Correlation:
    """A derived relationship between risk entities of one subject."""

    primary_id: str
    correlated_ids: tuple[str, ...]
    correlation_type: CorrelationType
    strength: float
    confidence: float
    time_lag_days: int
    pattern: str = ""

    def involves(self, risk_id: str) -> bool:
        return risk_id == self.primary_id or risk_id in self.correlated_ids

    def to_dict(self) -> dict:
        return {
            "primary_id": self.primary_id,
            "correlated_ids": list(self.correlated_ids),
            "correlation_type": self.correlation_type.value,
            "strength": round(self.strength, 4),
            "confidence": self.confidence,
            "time_lag_days": self.time_lag_days,
            "pattern": self.pattern,
        }


class CorrelationDetector:
    """Finds temporal correlations among a subject's risk entities."""

    WINDOW_DAYS: float = 7.0
    MIN_STRENGTH: float = 0.3
    # Fixed confidence for temporal correlations; not derived from data.
    DEFAULT_CONFIDENCE: float = 0.7

    def __init__(
        self,
        repository: RiskRepository,
        window_days: Optional[float] = None,
    ) -> None:
        """
        Args:
            repository: Source of the subject's risk entities.
            window_days: Maximum creation gap for a correlation.
        """
        self._repository = repository
        self._window_days = window_days if window_days is not None else self.WINDOW_DAYS
        if self._window_days <= 0:
            raise ValueError("window_days must be positive")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def detect(self, subject_id: str) -> list[Correlation]:
        """Return every correlation between the subject's entities.

        Never raises; a subject with fewer than two entities has no
        correlations.
        """
        return self.detect_among(self._repository.for_subject(subject_id))

    def detect_among(self, entities: list[RiskEntity]) -> list[Correlation]:
        """Correlate an explicit set of entities."""
        if len(entities) < 2:
            return []

        ordered = sorted(entities, key=lambda e: (e.created_at, e.risk_id))
        correlations: list[Correlation] = []
        for first, second in combinations(ordered, 2):
            correlation = self._correlate(first, second)
            if correlation is not None:
                correlations.append(correlation)
        return correlations

    def correlations_for(self, subject_id: str, risk_id: str) -> list[Correlation]:
        """Correlations of the subject that involve ``risk_id``."""
        return [c for c in self.detect(subject_id) if c.involves(risk_id)]

    def correlated_ids(self, subject_id: str, risk_id: str) -> list[str]:
        """Ids of the entities correlated with ``risk_id``, either side."""
        ids: list[str] = []
        for c in self.correlations_for(subject_id, risk_id):
            for other in (c.primary_id, *c.correlated_ids):
                if other != risk_id and other not in ids:
                    ids.append(other)
        return ids

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _correlate(
        self, first: RiskEntity, second: RiskEntity
    ) -> Optional[Correlation]:
        if first.category != second.category:
            return None
        days = abs((second.created_at - first.created_at).total_seconds()) / 86400.0
        if days > self._window_days:
            return None

        strength = max(self.MIN_STRENGTH, 1.0 - days / self._window_days)
        lag = int(math.floor(days))
        return Correlation(
            primary_id=first.risk_id,
            correlated_ids=(second.risk_id,),
            correlation_type=CorrelationType.TEMPORAL,
            strength=strength,
            confidence=self.DEFAULT_CONFIDENCE,
            time_lag_days=lag,
            pattern=(
                f"Risks of category {first.category.value} "
                f"occurring within {lag} days"
            ),
        )
