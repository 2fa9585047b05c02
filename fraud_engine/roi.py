"""
Return-on-investigation valuation.

Prices an investigation (human effort, technology, opportunity cost)
against the benefit of stopping the fraud, with a benefit model that
depends on where in the policy lifecycle the fraud was found.  The
calculation is a pure function of its inputs.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Optional

import pandas as pd

from fraud_engine.exceptions import UnknownFraudType, UnknownLineOfBusiness


class FraudType(str, Enum):
    # Subscription
    ADDRESS_CHANGE = "address_change"
    FAKE_NO_CLAIMS_BONUS = "fake_no_claims_bonus"
    IDENTITY_THEFT = "identity_theft"
    INVALID_LICENCE_DATE = "invalid_licence_date"
    FAKE_SUPPORTING_DOCUMENTS = "fake_supporting_documents"
    MISREPRESENTED_VEHICLE = "misrepresented_vehicle"
    # Claims
    DOCUMENT_FORGED = "document_forged"
    INFLATED_AMOUNT = "inflated_amount"
    FICTITIOUS_CLAIM = "fictitious_claim"
    COMPLICIT_EXPERT = "complicit_expert"
    COMPLICIT_REPAIRER = "complicit_repairer"
    # Organised
    ORGANISED_NETWORK = "organised_network"
    CYBER_FRAUD = "cyber_fraud"
    MONEY_LAUNDERING = "money_laundering"


class FraudContext(str, Enum):
    """Point in the policy lifecycle where the fraud was found."""

    SUBSCRIPTION = "subscription"
    CLAIM = "claim"
    MANAGEMENT = "management"
    GENERIC = "generic"


class LineOfBusiness(str, Enum):
    AUTO = "auto"
    HOME = "home"
    HEALTH = "health"
    PROFESSIONAL = "professional"
    TRAVEL = "travel"
    LEGAL = "legal"


class Complexity(str, Enum):
    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"


@dataclass(frozen=True)
class FraudProfile:
    """Typical amount and detection delay of a fraud type."""

    average_amount: float
    detection_days: float


@dataclass(frozen=True)
class CostStructure:
    """Unit costs and business values used in every valuation."""

    technology_cost: float = 2.50
    analyst_hourly: float = 45.0
    investigator_hourly: float = 65.0
    expert_hourly: float = 120.0
    customer_lifetime_value: float = 1200.0
    brand_protection_rate: float = 0.10
    claim_handling_rate: float = 0.15
    deterrence_rate: float = 0.20
    premium_annualisation: float = 3.2
    opportunity_rate: float = 0.1
    management_factor: float = 0.7
    generic_benefit_factor: float = 2.0
    generic_horizon_days: float = 14.0

    # Analyst, investigator and expert hours per complexity.
    effort_hours: dict[Complexity, tuple[float, float, float]] = field(
        default_factory=lambda: {
            Complexity.SIMPLE: (2, 0, 0),
            Complexity.MEDIUM: (3, 2, 0),
            Complexity.COMPLEX: (4, 4, 4),
        }
    )

    def human_cost(self, complexity: Complexity) -> float:
        analyst, investigator, expert = self.effort_hours[complexity]
        return (
            analyst * self.analyst_hourly
            + investigator * self.investigator_hourly
            + expert * self.expert_hourly
        )


@dataclass(frozen=True)
class CostBreakdown:
    human_cost: float
    technology_cost: float
    opportunity_cost: float

    @property
    def total_cost(self) -> float:
        return self.human_cost + self.technology_cost + self.opportunity_cost


@dataclass(frozen=True)
class ROIResult:
    """Valuation of investigating one detected fraud."""

    fraud_type: FraudType
    context: FraudContext
    line_of_business: LineOfBusiness
    detected_amount: float
    complexity: Complexity
    human_cost: float
    technology_cost: float
    opportunity_cost: float
    total_cost: float
    benefit: float
    net_roi: float
    ratio: float
    payback_days: float
    annual_premium_at_risk: Optional[float] = None
    customer_lifetime_value: Optional[float] = None
    risk_multiplier: Optional[float] = None
    immediate_recovery: Optional[float] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        for key in ("fraud_type", "context", "line_of_business", "complexity"):
            data[key] = data[key].value
        return data


class ROICalculator:
    """Computes context-dependent return on investigation.

    Identical inputs always produce identical results.
    """

    LINE_MULTIPLIERS: dict[LineOfBusiness, float] = {
        LineOfBusiness.AUTO: 1.0,
        LineOfBusiness.HOME: 0.8,
        LineOfBusiness.HEALTH: 1.2,
        LineOfBusiness.PROFESSIONAL: 1.5,
        LineOfBusiness.TRAVEL: 0.6,
        LineOfBusiness.LEGAL: 0.9,
    }

    FRAUD_PROFILES: dict[FraudType, FraudProfile] = {
        FraudType.ADDRESS_CHANGE: FraudProfile(320, 30),
        FraudType.FAKE_NO_CLAIMS_BONUS: FraudProfile(850, 45),
        FraudType.IDENTITY_THEFT: FraudProfile(2500, 15),
        FraudType.INVALID_LICENCE_DATE: FraudProfile(450, 60),
        FraudType.FAKE_SUPPORTING_DOCUMENTS: FraudProfile(1200, 20),
        FraudType.MISREPRESENTED_VEHICLE: FraudProfile(2100, 25),
        FraudType.DOCUMENT_FORGED: FraudProfile(3200, 10),
        FraudType.INFLATED_AMOUNT: FraudProfile(1800, 7),
        FraudType.FICTITIOUS_CLAIM: FraudProfile(6500, 5),
        FraudType.COMPLICIT_EXPERT: FraudProfile(4500, 14),
        FraudType.COMPLICIT_REPAIRER: FraudProfile(2800, 12),
        FraudType.ORGANISED_NETWORK: FraudProfile(18000, 21),
        FraudType.CYBER_FRAUD: FraudProfile(8500, 3),
        FraudType.MONEY_LAUNDERING: FraudProfile(35000, 30),
    }

    # Subscription-side risk multipliers; other types weigh 1.0.
    RISK_MULTIPLIERS: dict[FraudType, float] = {
        FraudType.IDENTITY_THEFT: 2.5,
        FraudType.MISREPRESENTED_VEHICLE: 2.0,
        FraudType.FAKE_NO_CLAIMS_BONUS: 1.8,
        FraudType.INVALID_LICENCE_DATE: 1.5,
        FraudType.FAKE_SUPPORTING_DOCUMENTS: 1.4,
        FraudType.ADDRESS_CHANGE: 1.3,
    }

    SUBSCRIPTION_PAYBACK_FACTOR: float = 0.8
    CLAIM_PAYBACK_FACTOR: float = 0.3

    def __init__(self, cost_structure: Optional[CostStructure] = None) -> None:
        self._costs = cost_structure or CostStructure()

    @property
    def cost_structure(self) -> CostStructure:
        return self._costs

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def calculate(
        self,
        fraud_type: FraudType | str,
        context: FraudContext | str,
        line_of_business: LineOfBusiness | str,
        detected_amount: float = 0.0,
        complexity: Complexity | str = Complexity.MEDIUM,
    ) -> ROIResult:
        """Value the investigation of one detected fraud.

        Args:
            fraud_type: Fraud typology being investigated.
            context: Lifecycle context of the detection.
            line_of_business: Insurance line the fraud belongs to.
            detected_amount: Amount at stake; ``0`` uses the fraud
                type's typical amount.
            complexity: Expected investigation complexity.

        Returns:
            ``ROIResult`` with cost, benefit and ratio.

        Raises:
            UnknownFraudType: If ``fraud_type`` is not recognised.
            UnknownLineOfBusiness: If ``line_of_business`` is not
                recognised.
            ValueError: If ``context`` or ``complexity`` is invalid, or
                the amount is negative.
        """
        fraud_type = self._parse_fraud_type(fraud_type)
        line = self._parse_line(line_of_business)
        context = FraudContext(context)
        complexity = Complexity(complexity)
        if detected_amount < 0:
            raise ValueError("detected_amount must be non-negative")

        profile = self.FRAUD_PROFILES[fraud_type]
        amount = detected_amount or profile.average_amount

        if context == FraudContext.SUBSCRIPTION:
            return self._subscription(fraud_type, line, amount, complexity, profile)
        if context == FraudContext.CLAIM:
            return self._claim(fraud_type, line, amount, complexity, profile)
        if context == FraudContext.MANAGEMENT:
            return self._management(fraud_type, line, amount, complexity, profile)
        return self._generic(fraud_type, line, amount, complexity)

    def investigation_costs(
        self, complexity: Complexity | str, investigation_days: float
    ) -> CostBreakdown:
        """Cost of an investigation of given complexity and duration."""
        human = self._costs.human_cost(Complexity(complexity))
        return CostBreakdown(
            human_cost=human,
            technology_cost=self._costs.technology_cost,
            opportunity_cost=investigation_days * self._costs.opportunity_rate * human,
        )

    def compare_contexts(
        self,
        fraud_type: FraudType | str,
        line_of_business: LineOfBusiness | str,
        detected_amount: float = 0.0,
        complexity: Complexity | str = Complexity.MEDIUM,
    ) -> pd.DataFrame:
        """Value the same fraud in every context, one row per context."""
        rows = [
            self.calculate(
                fraud_type, context, line_of_business, detected_amount, complexity
            ).to_dict()
            for context in FraudContext
        ]
        return pd.DataFrame(rows).set_index("context")

    # ------------------------------------------------------------------
    # Context models
    # ------------------------------------------------------------------

    def _subscription(
        self,
        fraud_type: FraudType,
        line: LineOfBusiness,
        amount: float,
        complexity: Complexity,
        profile: FraudProfile,
    ) -> ROIResult:
        multiplier = self.LINE_MULTIPLIERS[line]
        premium_at_risk = amount * self._costs.premium_annualisation * multiplier
        lifetime_value = self._costs.customer_lifetime_value * multiplier
        risk_multiplier = self.RISK_MULTIPLIERS.get(fraud_type, 1.0)
        benefit = (premium_at_risk + lifetime_value) * risk_multiplier
        costs = self.investigation_costs(complexity, profile.detection_days)
        return self._result(
            fraud_type,
            FraudContext.SUBSCRIPTION,
            line,
            amount,
            complexity,
            costs,
            benefit,
            payback_days=max(1.0, profile.detection_days * self.SUBSCRIPTION_PAYBACK_FACTOR),
            annual_premium_at_risk=premium_at_risk,
            customer_lifetime_value=lifetime_value,
            risk_multiplier=risk_multiplier,
        )

    def _claim(
        self,
        fraud_type: FraudType,
        line: LineOfBusiness,
        amount: float,
        complexity: Complexity,
        profile: FraudProfile,
    ) -> ROIResult:
        recovery = amount * self.LINE_MULTIPLIERS[line]
        c = self._costs
        benefit = recovery * (
            1 + c.claim_handling_rate + c.deterrence_rate + c.brand_protection_rate
        )
        costs = self.investigation_costs(complexity, profile.detection_days)
        return self._result(
            fraud_type,
            FraudContext.CLAIM,
            line,
            amount,
            complexity,
            costs,
            benefit,
            payback_days=max(1.0, profile.detection_days * self.CLAIM_PAYBACK_FACTOR),
            immediate_recovery=recovery,
        )

    def _management(
        self,
        fraud_type: FraudType,
        line: LineOfBusiness,
        amount: float,
        complexity: Complexity,
        profile: FraudProfile,
    ) -> ROIResult:
        subscription = self._subscription(fraud_type, line, amount, complexity, profile)
        claim = self._claim(fraud_type, line, amount, complexity, profile)
        benefit = self._costs.management_factor * (
            (subscription.benefit + claim.benefit) / 2
        )
        costs = self.investigation_costs(complexity, profile.detection_days)
        return self._result(
            fraud_type,
            FraudContext.MANAGEMENT,
            line,
            amount,
            complexity,
            costs,
            benefit,
            payback_days=(subscription.payback_days + claim.payback_days) / 2,
            annual_premium_at_risk=subscription.annual_premium_at_risk,
            customer_lifetime_value=subscription.customer_lifetime_value,
            risk_multiplier=subscription.risk_multiplier,
            immediate_recovery=claim.immediate_recovery,
        )

    def _generic(
        self,
        fraud_type: FraudType,
        line: LineOfBusiness,
        amount: float,
        complexity: Complexity,
    ) -> ROIResult:
        c = self._costs
        benefit = amount * self.LINE_MULTIPLIERS[line] * c.generic_benefit_factor
        costs = self.investigation_costs(complexity, c.generic_horizon_days)
        return self._result(
            fraud_type,
            FraudContext.GENERIC,
            line,
            amount,
            complexity,
            costs,
            benefit,
            payback_days=c.generic_horizon_days,
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _result(
        fraud_type: FraudType,
        context: FraudContext,
        line: LineOfBusiness,
        amount: float,
        complexity: Complexity,
        costs: CostBreakdown,
        benefit: float,
        payback_days: float,
        **breakdown: float,
    ) -> ROIResult:
        total = costs.total_cost
        net = benefit - total
        return ROIResult(
            fraud_type=fraud_type,
            context=context,
            line_of_business=line,
            detected_amount=amount,
            complexity=complexity,
            human_cost=costs.human_cost,
            technology_cost=costs.technology_cost,
            opportunity_cost=costs.opportunity_cost,
            total_cost=total,
            benefit=benefit,
            net_roi=net,
            ratio=net / total,
            payback_days=payback_days,
            **breakdown,
        )

    @classmethod
    def _parse_fraud_type(cls, value: FraudType | str) -> FraudType:
        try:
            fraud_type = FraudType(value)
        except ValueError:
            raise UnknownFraudType(str(value)) from None
        if fraud_type not in cls.FRAUD_PROFILES:
            raise UnknownFraudType(fraud_type.value)
        return fraud_type

    @classmethod
    def _parse_line(cls, value: LineOfBusiness | str) -> LineOfBusiness:
        try:
            line = LineOfBusiness(value)
        except ValueError:
            raise UnknownLineOfBusiness(str(value)) from None
        if line not in cls.LINE_MULTIPLIERS:
            raise UnknownLineOfBusiness(line.value)
        return line


def format_for_display(roi: ROIResult) -> dict[str, list[str] | str]:
    """Render a valuation for business readers.

    Returns:
        Dictionary with a one-line ``summary``, a list of ``details``
        and a list of ``recommendations``.
    """
    def money(amount: float) -> str:
        return f"EUR {round(amount):,}"

    def pct(ratio: float) -> str:
        return f"{ratio * 100:.1f}%"

    details: list[str] = []
    recommendations: list[str] = []

    if roi.context == FraudContext.SUBSCRIPTION:
        summary = f"Subscription ROI: {money(roi.net_roi)} (ratio: {pct(roi.ratio)})"
        details.append(f"Annual premium protected: {money(roi.annual_premium_at_risk or 0)}")
        details.append(f"Customer value: {money(roi.customer_lifetime_value or 0)}")
        details.append(f"Payback period: {roi.payback_days:g} days")
        if roi.ratio > 3:
            recommendations.append("Excellent ROI - prioritise this detection type")
    else:
        label = roi.context.value.capitalize()
        summary = f"{label} ROI: {money(roi.net_roi)} (ratio: {pct(roi.ratio)})"
        if roi.immediate_recovery is not None:
            details.append(f"Amount recovered: {money(roi.immediate_recovery)}")
        details.append(f"Total benefit: {money(roi.benefit)}")
        details.append(f"Payback period: {roi.payback_days:g} days")
        if roi.ratio > 5:
            recommendations.append("Exceptional ROI - immediate impact")

    if roi.ratio < 0:
        recommendations.append("Investigation cost exceeds expected benefit - review triage")

    details.append(f"Investigation cost: {money(roi.human_cost)}")
    details.append(f"Technology cost: {money(roi.technology_cost)}")
    details.append(f"Opportunity cost: {money(roi.opportunity_cost)}")
    return {"summary": summary, "details": details, "recommendations": recommendations}
