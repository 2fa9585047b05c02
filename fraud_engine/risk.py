"""
Risk entities and their repository.

A risk entity is a long-lived, scored record of an open (or closed)
risk investigation for one subject.  Its score history is append-only:
entries are added when the final score changes and are never removed
or reordered.
"""

from __future__ import annotations

import copy
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Iterator, Optional, Protocol

import numpy as np

from fraud_engine.exceptions import (
    ConcurrentModificationError,
    DuplicateRisk,
    NotFound,
)


class SeverityLevel(str, Enum):
    """Six-level severity of a risk entity.

    Deliberately separate from the four-level ``RiskLevel`` produced by
    classification.
    """

    VERY_LOW = "very_low"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"
    CRITICAL = "critical"


class LifecycleStatus(str, Enum):
    """Workflow status of a risk entity."""

    DETECTED = "detected"
    INVESTIGATING = "investigating"
    MITIGATED = "mitigated"
    ACCEPTED = "accepted"
    CLOSED = "closed"


class RiskCategory(str, Enum):
    FRAUD = "fraud"
    AML = "aml"
    KYC = "kyc"
    OPERATIONAL = "operational"
    FINANCIAL = "financial"
    REGULATORY = "regulatory"
    REPUTATIONAL = "reputational"
    TECHNICAL = "technical"


# ----------------------------------------------------------------------
# Scoring inputs
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class ComponentScores:
    """Four scoring components, each on a 0-100 scale."""

    historical: float = 0.0
    behavioral: float = 0.0
    contextual: float = 0.0
    predictive: float = 0.0

    def values(self) -> list[float]:
        return [getattr(self, f.name) for f in fields(self)]


@dataclass(frozen=True)
class AdjustmentFactors:
    """Signed multiplicative adjustments applied to the base score."""

    time_decay: float = 0.0
    volume_weight: float = 0.0
    complexity_bonus: float = 0.0
    industry_context: float = 0.0
    seasonality: float = 0.0

    def values(self) -> list[float]:
        return [getattr(self, f.name) for f in fields(self)]

    @property
    def total(self) -> float:
        return float(sum(self.values()))


@dataclass(frozen=True)
class QualityMetrics:
    """Data quality indicators, each in ``[0, 1]``.

    Raises:
        ValueError: If a metric lies outside ``[0, 1]``.
    """

    data_completeness: float = 1.0
    data_freshness: float = 1.0
    algorithmic_certainty: float = 1.0
    cross_validation: float = 1.0

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{f.name} must be within [0, 1], got {value}")

    def values(self) -> list[float]:
        return [getattr(self, f.name) for f in fields(self)]

    @property
    def mean(self) -> float:
        return float(np.mean(self.values()))


@dataclass(frozen=True)
class Scoring:
    base_score: float = 0.0
    adjusted_score: float = 0.0
    final_score: float = 0.0
    confidence: float = 0.0
    components: ComponentScores = field(default_factory=ComponentScores)
    adjustments: AdjustmentFactors = field(default_factory=AdjustmentFactors)
    quality: QualityMetrics = field(default_factory=QualityMetrics)


# ----------------------------------------------------------------------
# Linked records
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class ScoreHistoryEntry:
    timestamp: datetime
    score: float
    level: SeverityLevel
    reason: str
    actor: str

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "score": round(self.score, 4),
            "level": self.level.value,
            "reason": self.reason,
            "actor": self.actor,
        }


@dataclass(frozen=True)
class ApprovalRecord:
    approver: str
    timestamp: datetime


@dataclass(frozen=True)
class EvidenceItem:
    evidence_id: str
    evidence_type: str
    description: str = ""
    reliability: float = 1.0
    collected_at: Optional[datetime] = None


@dataclass(frozen=True)
class MitigationAction:
    action: str
    priority: str = "medium"
    estimated_hours: float = 0.0
    estimated_cost: float = 0.0
    expected_reduction: float = 0.0
    responsible: str = ""


# ----------------------------------------------------------------------
# Entity
# ----------------------------------------------------------------------


@dataclass
class RiskEntity:
    """An open or closed risk investigation for one subject.

    Mutations go through ``RiskScorer``; the history list is only ever
    appended to via ``_append_history``.
    """

    risk_id: str
    subject_id: str
    risk_type: str
    category: RiskCategory
    level: SeverityLevel
    status: LifecycleStatus = LifecycleStatus.DETECTED
    scoring: Scoring = field(default_factory=Scoring)
    requires_approval: bool = False
    approval: Optional[ApprovalRecord] = None
    title: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    created_by: str = "system"
    version: int = 1
    evidence: list[EvidenceItem] = field(default_factory=list)
    mitigations: list[MitigationAction] = field(default_factory=list)
    correlated_ids: list[str] = field(default_factory=list)
    closed_by: Optional[str] = None
    closed_at: Optional[datetime] = None
    closure_reason: str = ""
    _history: list[ScoreHistoryEntry] = field(default_factory=list, repr=False)

    @property
    def history(self) -> tuple[ScoreHistoryEntry, ...]:
        """Score history, oldest first."""
        return tuple(self._history)

    @property
    def final_score(self) -> float:
        return self.scoring.final_score

    @property
    def is_closed(self) -> bool:
        return self.status == LifecycleStatus.CLOSED

    def _append_history(self, entry: ScoreHistoryEntry) -> None:
        self._history.append(entry)

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "risk_id": self.risk_id,
            "subject_id": self.subject_id,
            "risk_type": self.risk_type,
            "category": self.category.value,
            "level": self.level.value,
            "status": self.status.value,
            "final_score": round(self.scoring.final_score, 4),
            "confidence": round(self.scoring.confidence, 4),
            "requires_approval": self.requires_approval,
            "approved_by": self.approval.approver if self.approval else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "version": self.version,
            "history_length": len(self._history),
        }


# ----------------------------------------------------------------------
# Repository
# ----------------------------------------------------------------------


@dataclass
class RiskFilter:
    subject_id: Optional[str] = None
    categories: Optional[list[RiskCategory]] = None
    levels: Optional[list[SeverityLevel]] = None
    statuses: Optional[list[LifecycleStatus]] = None
    min_score: Optional[float] = None
    max_score: Optional[float] = None

    def matches(self, entity: RiskEntity) -> bool:
        if self.subject_id is not None and entity.subject_id != self.subject_id:
            return False
        if self.categories is not None and entity.category not in self.categories:
            return False
        if self.levels is not None and entity.level not in self.levels:
            return False
        if self.statuses is not None and entity.status not in self.statuses:
            return False
        if self.min_score is not None and entity.final_score < self.min_score:
            return False
        if self.max_score is not None and entity.final_score > self.max_score:
            return False
        return True


class RiskStore(Protocol):
    """Minimal persistence contract the engine relies on."""

    def get(self, risk_id: str) -> Optional[RiskEntity]: ...

    def list(self, filters: Optional[RiskFilter] = None) -> list[RiskEntity]: ...

    def put(self, entity: RiskEntity, expected_version: Optional[int] = None) -> None: ...

    def add(self, entity: RiskEntity) -> None: ...


class RiskRepository:
    """In-memory store of risk entities with per-entity write locks.

    ``get`` and ``list`` hand out copies, so a caller mutating its copy
    never affects the stored entity until it is written back with
    ``put``.  ``put`` rejects a write whose ``expected_version`` does not
    match the stored version.
    """

    def __init__(self) -> None:
        self._entities: dict[str, RiskEntity] = {}
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, risk_id: str) -> Optional[RiskEntity]:
        """Return a copy of the entity, or ``None``."""
        with self._guard:
            entity = self._entities.get(risk_id)
            return copy.deepcopy(entity) if entity is not None else None

    def require(self, risk_id: str) -> RiskEntity:
        """Return a copy of the entity.

        Raises:
            NotFound: If no such entity exists.
        """
        entity = self.get(risk_id)
        if entity is None:
            raise NotFound("Risk entity", risk_id)
        return entity

    def list(self, filters: Optional[RiskFilter] = None) -> list[RiskEntity]:
        """Return copies of matching entities, oldest first."""
        with self._guard:
            entities = [copy.deepcopy(e) for e in self._entities.values()]
        if filters is not None:
            entities = [e for e in entities if filters.matches(e)]
        return sorted(entities, key=lambda e: (e.created_at, e.risk_id))

    def for_subject(self, subject_id: str) -> list[RiskEntity]:
        return self.list(RiskFilter(subject_id=subject_id))

    def put(self, entity: RiskEntity, expected_version: Optional[int] = None) -> None:
        """Store a copy of ``entity``.

        Args:
            entity: Entity to write.
            expected_version: Version the writer read before mutating.
                ``None`` skips the check.

        Raises:
            ConcurrentModificationError: If the stored version differs
                from ``expected_version``.
        """
        with self._guard:
            current = self._entities.get(entity.risk_id)
            if (
                expected_version is not None
                and current is not None
                and current.version != expected_version
            ):
                raise ConcurrentModificationError(
                    entity.risk_id, expected_version, current.version
                )
            self._entities[entity.risk_id] = copy.deepcopy(entity)

    def add(self, entity: RiskEntity) -> None:
        """Store a copy of a new entity.

        Raises:
            DuplicateRisk: If an entity with the same id is already stored.
        """
        with self._guard:
            if entity.risk_id in self._entities:
                raise DuplicateRisk(entity.risk_id)
            self._entities[entity.risk_id] = copy.deepcopy(entity)

    @contextmanager
    def locked(self, risk_id: str) -> Iterator[None]:
        """Hold the single-writer lock of one entity."""
        with self._guard:
            lock = self._locks.setdefault(risk_id, threading.RLock())
        with lock:
            yield

    def clear(self) -> None:
        with self._guard:
            self._entities.clear()
            self._locks.clear()

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, risk_id: object) -> bool:
        return risk_id in self._entities
