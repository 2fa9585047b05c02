"""
Investigation plan generation from catalog playbooks.

Adapts the steps of a typology's playbook to the severity and
confidence of an alert: effort estimates are scaled up for severe or
uncertain alerts, and the plan lists the critical path, the steps that
can start in parallel, and the review checkpoints.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from fraud_engine.catalog import (
    CatalogRepository,
    EvidenceRequirement,
    InvestigationStep,
    SpecializedTeam,
)
from fraud_engine.classifier import ClassificationResult, RiskLevel


@dataclass(frozen=True)
class AlertContext:
    severity: RiskLevel
    confidence: float

    @classmethod
    def from_classification(cls, result: ClassificationResult) -> "AlertContext":
        return cls(severity=result.risk_level, confidence=result.confidence)


@dataclass(frozen=True)
class PlanStep:
    step_id: str
    step_order: int
    action: str
    required_role: SpecializedTeam
    base_hours: float
    adjusted_hours: float
    dependencies: tuple[str, ...]
    is_mandatory: bool
    can_be_automated: bool
    deliverables: tuple[str, ...]

    def to_dict(self) -> dict:
        return {
            "step_id": self.step_id,
            "step_order": self.step_order,
            "action": self.action,
            "required_role": self.required_role.value,
            "base_hours": self.base_hours,
            "adjusted_hours": self.adjusted_hours,
            "dependencies": list(self.dependencies),
            "is_mandatory": self.is_mandatory,
            "can_be_automated": self.can_be_automated,
        }


@dataclass(frozen=True)
class Checkpoint:
    step_id: str
    review_required: bool
    decision_point: bool


@dataclass(frozen=True)
class InvestigationPlan:
    plan_id: str
    catalog_id: str
    steps: tuple[PlanStep, ...]
    critical_path: tuple[str, ...]
    parallel_tracks: tuple[tuple[str, ...], ...]
    total_hours: float
    required_evidence: tuple[EvidenceRequirement, ...]
    assigned_teams: tuple[SpecializedTeam, ...]
    checkpoints: tuple[Checkpoint, ...]

    def step(self, step_id: str) -> Optional[PlanStep]:
        for s in self.steps:
            if s.step_id == step_id:
                return s
        return None


class PlanBuilder:
    """Builds investigation plans from catalog playbooks.

    The critical path is the ordered list of mandatory steps rather
    than a longest path through the dependency graph.
    """

    SEVERITY_MULTIPLIERS: dict[RiskLevel, float] = {
        RiskLevel.CRITICAL: 1.5,
        RiskLevel.HIGH: 1.2,
    }
    LOW_CONFIDENCE_THRESHOLD: float = 0.6
    LOW_CONFIDENCE_MULTIPLIER: float = 1.3
    REVIEW_HOURS: float = 4.0

    def __init__(self, catalog: CatalogRepository) -> None:
        self._catalog = catalog

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build_plan(
        self,
        catalog_id: str,
        alert: AlertContext,
        plan_id: Optional[str] = None,
    ) -> InvestigationPlan:
        """Build the plan for an alert classified under ``catalog_id``.

        Args:
            catalog_id: Catalog entry whose playbook is used.
            alert: Severity and confidence of the alert.
            plan_id: Identifier to give the plan; generated if omitted.

        Returns:
            The adapted ``InvestigationPlan``.

        Raises:
            NotFound: If the catalog entry does not exist.
        """
        entry = self._catalog.require(catalog_id)
        playbook = entry.playbook
        multiplier = self.hours_multiplier(alert)

        steps = tuple(
            self._adapt(step, multiplier)
            for step in sorted(playbook.steps, key=lambda s: s.step_order)
        )

        return InvestigationPlan(
            plan_id=plan_id or f"PLAN-{uuid.uuid4().hex[:12].upper()}",
            catalog_id=entry.catalog_id,
            steps=steps,
            critical_path=self.critical_path(steps),
            parallel_tracks=self.parallel_tracks(steps),
            total_hours=round(sum(s.adjusted_hours for s in steps), 2),
            required_evidence=playbook.evidence_requirements,
            assigned_teams=self._teams(playbook.specialized_team, steps),
            checkpoints=tuple(
                Checkpoint(
                    step_id=s.step_id,
                    review_required=s.adjusted_hours > self.REVIEW_HOURS,
                    decision_point="decision" in s.deliverables,
                )
                for s in steps
                if s.is_mandatory
            ),
        )

    def hours_multiplier(self, alert: AlertContext) -> float:
        """Combined effort multiplier for an alert."""
        multiplier = self.SEVERITY_MULTIPLIERS.get(alert.severity, 1.0)
        if alert.confidence < self.LOW_CONFIDENCE_THRESHOLD:
            multiplier *= self.LOW_CONFIDENCE_MULTIPLIER
        return multiplier

    @staticmethod
    def critical_path(steps: tuple[PlanStep, ...]) -> tuple[str, ...]:
        return tuple(s.step_id for s in steps if s.is_mandatory)

    @staticmethod
    def parallel_tracks(steps: tuple[PlanStep, ...]) -> tuple[tuple[str, ...], ...]:
        """Group the steps without dependencies into a single track.

        A lone independent step is not a parallel track.
        """
        independent = tuple(s.step_id for s in steps if not s.dependencies)
        if len(independent) > 1:
            return (independent,)
        return ()

    @staticmethod
    def to_dataframe(plan: InvestigationPlan) -> pd.DataFrame:
        """Export plan steps as a DataFrame."""
        frame = pd.DataFrame([s.to_dict() for s in plan.steps])
        if not frame.empty:
            frame["on_critical_path"] = frame["step_id"].isin(plan.critical_path)
        return frame

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _adapt(step: InvestigationStep, multiplier: float) -> PlanStep:
        return PlanStep(
            step_id=step.step_id,
            step_order=step.step_order,
            action=step.action,
            required_role=step.required_role,
            base_hours=step.estimated_hours,
            adjusted_hours=round(step.estimated_hours * multiplier, 2),
            dependencies=step.dependencies,
            is_mandatory=step.is_mandatory,
            can_be_automated=step.can_be_automated,
            deliverables=step.deliverables,
        )

    @staticmethod
    def _teams(
        lead: SpecializedTeam, steps: tuple[PlanStep, ...]
    ) -> tuple[SpecializedTeam, ...]:
        teams = [lead]
        for s in steps:
            if s.required_role not in teams:
                teams.append(s.required_role)
        return tuple(teams)
