"""
Decision engine facade.

Wires the catalog, classifier, risk scorer, correlation detector, ROI
calculator and plan builder around two injected repositories, and
serializes every write to a risk entity through the repository's
per-entity lock and version check.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Iterable, Optional

from fraud_engine.catalog import CatalogRepository, SourceTag
from fraud_engine.classifier import (
    ClassificationResult,
    DetectionSignal,
    FraudClassifier,
)
from fraud_engine.correlation import Correlation, CorrelationDetector
from fraud_engine.default_catalog import default_catalog
from fraud_engine.exceptions import FraudEngineError, UnknownFraudType
from fraud_engine.performance import (
    EvaluationMetrics,
    InvestigationOutcome,
    PerformanceEvaluator,
)
from fraud_engine.planner import AlertContext, InvestigationPlan, PlanBuilder
from fraud_engine.risk import (
    AdjustmentFactors,
    ComponentScores,
    EvidenceItem,
    LifecycleStatus,
    MitigationAction,
    QualityMetrics,
    RiskCategory,
    RiskEntity,
    RiskFilter,
    RiskRepository,
)
from fraud_engine.roi import (
    Complexity,
    CostStructure,
    FraudContext,
    FraudType,
    LineOfBusiness,
    ROICalculator,
    ROIResult,
)
from fraud_engine.scorer import RiskScorer
from fraud_engine.typology import resolve_typology


class DecisionEngine:
    """Entry point tying the decision components together.

    Example::

        with DecisionEngine() as engine:
            result = engine.classify(signal)
            risk = engine.open_risk_from_classification("CUST-1", signal, result)
            plan = engine.plan_for(result)
    """

    SOURCE_CATEGORIES: dict[SourceTag, RiskCategory] = {
        SourceTag.AML: RiskCategory.AML,
    }

    def __init__(
        self,
        catalog: Optional[CatalogRepository] = None,
        risks: Optional[RiskRepository] = None,
        *,
        thresholds: Optional[dict[str, float]] = None,
        cost_structure: Optional[CostStructure] = None,
        correlation_window_days: Optional[float] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """
        Args:
            catalog: Catalog repository.  Defaults to the bundled
                reference catalog.
            risks: Risk repository.  Defaults to an empty in-memory one.
            thresholds: Classifier risk-level thresholds override.
            cost_structure: ROI unit costs override.
            correlation_window_days: Correlation window override.
            clock: Time source for history and audit timestamps.
        """
        self._owns_catalog = catalog is None
        self._owns_risks = risks is None
        self._catalog = catalog if catalog is not None else default_catalog()
        self._risks = risks if risks is not None else RiskRepository()

        self.classifier = FraudClassifier(self._catalog, thresholds=thresholds)
        self.scorer = RiskScorer(clock=clock)
        self.correlations = CorrelationDetector(
            self._risks, window_days=correlation_window_days
        )
        self.roi = ROICalculator(cost_structure)
        self.planner = PlanBuilder(self._catalog)
        self.evaluator = PerformanceEvaluator()
        self._closed = False

    @property
    def catalog(self) -> CatalogRepository:
        return self._catalog

    @property
    def risks(self) -> RiskRepository:
        return self._risks

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def classify(self, signal: DetectionSignal) -> ClassificationResult:
        self._ensure_open()
        return self.classifier.classify(signal)

    def classify_many(
        self, signals: Iterable[DetectionSignal]
    ) -> list[ClassificationResult]:
        self._ensure_open()
        return self.classifier.classify_many(signals)

    # ------------------------------------------------------------------
    # Risk entities
    # ------------------------------------------------------------------

    def open_risk_from_classification(
        self,
        subject_id: str,
        signal: DetectionSignal,
        result: ClassificationResult,
        actor: str = "system",
        risk_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> RiskEntity:
        """Open a risk entity for a classified detection.

        Every scoring component starts at the signal's anomaly score.
        AML signals open AML risks; all other sources open fraud risks.

        Returns:
            A copy of the stored entity.

        Raises:
            DuplicateRisk: If ``risk_id`` is already in use.
        """
        self._ensure_open()
        entry = None if result.is_generic else self._catalog.get(result.catalog_id)
        score = signal.score
        entity = self.scorer.create_entity(
            subject_id=subject_id,
            risk_type=entry.fraud_type if entry is not None else "generic",
            category=self.SOURCE_CATEGORIES.get(signal.source, RiskCategory.FRAUD),
            components=ComponentScores(score, score, score, score),
            actor=actor,
            risk_id=risk_id,
            title=entry.name if entry is not None else "Unclassified detection",
            created_at=created_at,
        )
        with self._risks.locked(entity.risk_id):
            self._risks.add(entity)
        return entity

    def get_risk(self, risk_id: str) -> RiskEntity:
        """Return a copy of a risk entity.

        Raises:
            NotFound: If the entity does not exist.
        """
        return self._risks.require(risk_id)

    def list_risks(self, filters: Optional[RiskFilter] = None) -> list[RiskEntity]:
        return self._risks.list(filters)

    def apply_score(
        self,
        risk_id: str,
        components: ComponentScores,
        adjustments: Optional[AdjustmentFactors] = None,
        quality: Optional[QualityMetrics] = None,
        actor: str = "system",
        reason: str = "Score update",
        confidence: Optional[float] = None,
    ) -> RiskEntity:
        """Rescore a stored risk entity under its write lock.

        Raises:
            NotFound: If the entity does not exist.
            InvalidStateTransition: If the entity is closed.
            ConcurrentModificationError: If the entity was written by a
                caller that bypassed the lock.
        """
        return self._mutate(
            risk_id,
            lambda entity: self.scorer.apply_score(
                entity,
                components,
                adjustments or AdjustmentFactors(),
                quality or QualityMetrics(),
                actor=actor,
                reason=reason,
                confidence=confidence,
            ),
        )

    def transition(
        self,
        risk_id: str,
        target: LifecycleStatus,
        actor: str,
        reason: str = "",
    ) -> RiskEntity:
        return self._mutate(
            risk_id,
            lambda entity: self.scorer.transition(entity, target, actor, reason),
        )

    def approve(self, risk_id: str, approver: str) -> RiskEntity:
        return self._mutate(
            risk_id, lambda entity: self.scorer.approve(entity, approver)
        )

    def add_evidence(self, risk_id: str, item: EvidenceItem) -> RiskEntity:
        return self._mutate(
            risk_id, lambda entity: self.scorer.add_evidence(entity, item)
        )

    def add_mitigation(self, risk_id: str, action: MitigationAction) -> RiskEntity:
        return self._mutate(
            risk_id, lambda entity: self.scorer.add_mitigation(entity, action)
        )

    # ------------------------------------------------------------------
    # Correlation
    # ------------------------------------------------------------------

    def detect_correlations(self, subject_id: str) -> list[Correlation]:
        self._ensure_open()
        return self.correlations.detect(subject_id)

    def link_correlations(self, subject_id: str) -> list[Correlation]:
        """Detect correlations and record them on each open entity.

        Closed entities are left as they are.
        """
        found = self.detect_correlations(subject_id)
        for entity in self._risks.for_subject(subject_id):
            if entity.is_closed:
                continue
            linked = self.correlations.correlated_ids(subject_id, entity.risk_id)
            if linked == entity.correlated_ids:
                continue
            with self._risks.locked(entity.risk_id):
                current = self._risks.require(entity.risk_id)
                version = current.version
                current.correlated_ids = linked
                current.version += 1
                self._risks.put(current, expected_version=version)
        return found

    # ------------------------------------------------------------------
    # Valuation and planning
    # ------------------------------------------------------------------

    def calculate_roi(
        self,
        fraud_type: FraudType | str,
        context: FraudContext | str,
        line_of_business: LineOfBusiness | str,
        detected_amount: float = 0.0,
        complexity: Complexity | str = Complexity.MEDIUM,
    ) -> ROIResult:
        self._ensure_open()
        return self.roi.calculate(
            fraud_type, context, line_of_business, detected_amount, complexity
        )

    def valuate(
        self,
        result: ClassificationResult,
        finding_codes: Iterable[str] = (),
        line_of_business: Optional[LineOfBusiness | str] = None,
        detected_amount: float = 0.0,
    ) -> ROIResult:
        """Value the investigation of a classified detection.

        The fraud type, context and complexity come from the highest-risk
        finding code.  Without a known finding code, the matched catalog
        entry's fraud type is valued in the generic context.  The line of
        business defaults to the detection's district.

        Raises:
            UnknownFraudType: If no fraud type can be determined.
        """
        self._ensure_open()
        line = line_of_business if line_of_business is not None else result.district.value
        typology = resolve_typology(finding_codes)
        if typology is not None:
            return self.roi.calculate(
                typology.fraud_type,
                typology.context,
                line,
                detected_amount,
                typology.complexity,
            )

        if result.is_generic:
            raise UnknownFraudType(result.catalog_id)
        entry = self._catalog.require(result.catalog_id)
        return self.roi.calculate(
            entry.fraud_type, FraudContext.GENERIC, line, detected_amount
        )

    def build_plan(
        self,
        catalog_id: str,
        alert: AlertContext,
        plan_id: Optional[str] = None,
    ) -> InvestigationPlan:
        self._ensure_open()
        return self.planner.build_plan(catalog_id, alert, plan_id=plan_id)

    def plan_for(
        self, result: ClassificationResult, plan_id: Optional[str] = None
    ) -> InvestigationPlan:
        """Plan the investigation of a classified detection.

        Raises:
            NotFound: For a generic classification, which has no playbook.
        """
        return self.build_plan(
            result.catalog_id, AlertContext.from_classification(result), plan_id
        )

    # ------------------------------------------------------------------
    # Performance and reporting
    # ------------------------------------------------------------------

    def evaluate(self, outcomes: Iterable[InvestigationOutcome]) -> EvaluationMetrics:
        self._ensure_open()
        return self.evaluator.evaluate(outcomes, self._catalog)

    def record_outcomes(self, outcomes: Iterable[InvestigationOutcome]) -> None:
        """Roll analyst verdicts into the catalog's performance metrics."""
        self._ensure_open()
        self.evaluator.apply(self._catalog, outcomes)

    def statistics(self) -> dict:
        self._ensure_open()
        return self.scorer.statistics(self._risks.list())

    def generate_report(self) -> str:
        self._ensure_open()
        return self.scorer.generate_report(self._risks.list())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release repositories the engine created itself.

        Injected repositories are left untouched.  Further calls raise
        ``FraudEngineError``.
        """
        if self._closed:
            return
        if self._owns_risks:
            self._risks.clear()
        if self._owns_catalog:
            self._catalog.clear()
        self._closed = True

    def __enter__(self) -> "DecisionEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._closed:
            raise FraudEngineError("Engine is closed")

    def _mutate(
        self, risk_id: str, mutation: Callable[[RiskEntity], RiskEntity]
    ) -> RiskEntity:
        self._ensure_open()
        with self._risks.locked(risk_id):
            entity = self._risks.require(risk_id)
            version = entity.version
            mutation(entity)
            self._risks.put(entity, expected_version=version)
        return entity
